from __future__ import annotations

from conftest import FakeShell

from nanobot_deploy.runtime import ContainerSpec, DockerRuntime, exact_name_filter


def test_exact_name_filter_is_anchored() -> None:
    assert exact_name_filter("nanobot") == "name=^/?nanobot$"
    assert exact_name_filter("a.b") == r"name=^/?a\.b$"


def test_list_by_name_parses_ids() -> None:
    shell = FakeShell(outputs={"docker": "abc123\n\ndef456\n"})
    runtime = DockerRuntime(shell)

    assert runtime.list_by_name("nanobot") == ["abc123", "def456"]
    assert shell.commands[-1] == ["docker", "ps", "-a", "-q", "-f", "name=^/?nanobot$"]

    runtime.list_by_name("nanobot", running_only=True)
    assert shell.commands[-1] == ["docker", "ps", "-q", "-f", "name=^/?nanobot$"]


def test_list_by_name_on_daemon_error_is_empty() -> None:
    runtime = DockerRuntime(FakeShell(fail_on={"docker"}))
    assert runtime.list_by_name("nanobot") == []


def test_oneshot_argv() -> None:
    spec = ContainerSpec(
        image="nanobot",
        command=("agent", "-m", "hi"),
        auto_remove=True,
        interactive=True,
        volumes=(("/home/pi/.nanobot", "/root/.nanobot"),),
    )
    assert spec.argv() == [
        "run",
        "--rm",
        "-it",
        "-v",
        "/home/pi/.nanobot:/root/.nanobot",
        "nanobot",
        "agent",
        "-m",
        "hi",
    ]


def test_build_and_logs_commands(tmp_path) -> None:
    shell = FakeShell()
    runtime = DockerRuntime(shell)

    runtime.build("nanobot", tmp_path)
    runtime.logs("nanobot", tail=50, follow=True)

    assert shell.commands == [
        ["docker", "build", "-t", "nanobot", str(tmp_path)],
        ["docker", "logs", "-f", "--tail", "50", "nanobot"],
    ]
    assert not any(c.privileged for c in shell.calls)


def test_status_first_line() -> None:
    runtime = DockerRuntime(FakeShell(outputs={"docker": "Up 3 minutes\n"}))
    assert runtime.status("nanobot") == "Up 3 minutes"
    assert DockerRuntime(FakeShell()).status("nanobot") is None
