from __future__ import annotations

import subprocess
from dataclasses import dataclass, replace
from pathlib import Path

import pytest

from nanobot_deploy.config import default_config
from nanobot_deploy.host import HostFacts
from nanobot_deploy.installer import InstallError
from nanobot_deploy.pipeline import SetupContext
from nanobot_deploy.profiles import AMD_2GB
from nanobot_deploy.runtime import ContainerSpec


def _cp(argv, returncode: int = 0, stdout: str = "", stderr: str = "") -> subprocess.CompletedProcess[str]:
    return subprocess.CompletedProcess(list(argv), returncode, stdout, stderr)


@dataclass
class ShellCall:
    argv: list[str]
    privileged: bool
    input_text: str | None
    cwd: Path | None


class FakeShell:
    """Records commands; applies `tee`/`cp` to real paths so file effects can be asserted."""

    def __init__(self, available=(), fail_on=(), outputs=None) -> None:
        self.calls: list[ShellCall] = []
        self.available = set(available)
        self.fail_on = set(fail_on)
        self.outputs = dict(outputs or {})

    def run(self, argv, *, privileged=False, input_text=None, capture=True, cwd=None):
        argv = [str(a) for a in argv]
        self.calls.append(ShellCall(argv=argv, privileged=privileged, input_text=input_text, cwd=cwd))
        if argv[0] in self.fail_on:
            return _cp(argv, 1, "", f"{argv[0]}: operation failed")
        if argv[0] == "tee":
            target = Path(argv[-1])
            mode = "a" if "-a" in argv else "w"
            with target.open(mode, encoding="utf-8") as f:
                f.write(input_text or "")
        elif argv[0] == "cp":
            Path(argv[2]).write_bytes(Path(argv[1]).read_bytes())
        return _cp(argv, 0, self.outputs.get(argv[0], ""), "")

    def which(self, cmd: str) -> str | None:
        return f"/usr/bin/{cmd}" if cmd in self.available else None

    @property
    def commands(self) -> list[list[str]]:
        return [c.argv for c in self.calls]


class FakeRuntime:
    """In-memory container runtime with docker's name-uniqueness rules."""

    def __init__(
        self,
        *,
        build_rc: int = 0,
        run_rc: int = 0,
        onboard_rc: int = 0,
        starts_running: bool = True,
        marker: Path | None = None,
        logs_text: str = "Error: no API key configured",
    ) -> None:
        self.build_rc = build_rc
        self.run_rc = run_rc
        self.onboard_rc = onboard_rc
        self.starts_running = starts_running
        self.marker = marker
        self.logs_text = logs_text
        self.containers: dict[str, dict] = {}
        self.calls: list[tuple] = []
        self.builds = 0
        self._next_id = 1

    def add_container(self, name: str, *, image: str = "nanobot@old", running: bool = True) -> str:
        cid = f"old{self._next_id}"
        self._next_id += 1
        self.containers[name] = {"id": cid, "image": image, "running": running}
        return cid

    def build(self, tag: str, context: Path):
        self.calls.append(("build", tag, str(context)))
        if self.build_rc == 0:
            self.builds += 1
        return _cp(["docker", "build"], self.build_rc)

    def run(self, spec: ContainerSpec, *, stream: bool = False):
        self.calls.append(("run", spec))
        if spec.auto_remove:
            if self.onboard_rc == 0 and self.marker is not None and spec.command == ("onboard",):
                self.marker.write_text("{}", encoding="utf-8")
            return _cp(spec.argv(), self.onboard_rc, "", "onboard failed" if self.onboard_rc else "")
        if self.run_rc:
            return _cp(spec.argv(), self.run_rc, "", "Bind for 0.0.0.0:18790 failed: port is already allocated")
        if spec.name in self.containers:
            return _cp(spec.argv(), 125, "", "Conflict. The container name is already in use")
        cid = f"new{self._next_id}"
        self._next_id += 1
        self.containers[spec.name] = {
            "id": cid,
            "image": f"{spec.image}@build{self.builds}",
            "running": self.starts_running,
            "spec": spec,
        }
        return _cp(spec.argv(), 0, cid + "\n", "")

    def stop(self, name: str):
        self.calls.append(("stop", name))
        if name not in self.containers:
            return _cp(["docker", "stop", name], 1, "", f"No such container: {name}")
        self.containers[name]["running"] = False
        return _cp(["docker", "stop", name])

    def remove(self, name: str):
        self.calls.append(("remove", name))
        container = self.containers.get(name)
        if container is None:
            return _cp(["docker", "rm", name], 1, "", f"No such container: {name}")
        if container["running"]:
            return _cp(["docker", "rm", name], 1, "", "cannot remove a running container")
        del self.containers[name]
        return _cp(["docker", "rm", name])

    def list_by_name(self, name: str, *, running_only: bool = False) -> list[str]:
        self.calls.append(("list", name, running_only))
        container = self.containers.get(name)
        if container is None or (running_only and not container["running"]):
            return []
        return [container["id"]]

    def status(self, name: str) -> str | None:
        container = self.containers.get(name)
        if container and container["running"]:
            return "Up 2 seconds"
        return None

    def logs(self, name: str, *, tail=None, follow=False, stream=False):
        self.calls.append(("logs", name))
        return _cp(["docker", "logs", name], 0, self.logs_text, "")

    def call_names(self) -> list[str]:
        return [c[0] for c in self.calls]

    def oneshots(self) -> list[ContainerSpec]:
        return [c[1] for c in self.calls if c[0] == "run" and c[1].auto_remove]


class FakeInstaller:
    def __init__(self, *, installed: bool = True, install_error: str | None = None, grant_rc: int = 0) -> None:
        self.installed = installed
        self.install_error = install_error
        self.grant_rc = grant_rc
        self.install_calls = 0
        self.granted: list[str] = []

    def is_installed(self) -> bool:
        return self.installed

    def install(self) -> None:
        self.install_calls += 1
        if self.install_error:
            raise InstallError(self.install_error)
        self.installed = True

    def grant_group(self, user: str):
        self.granted.append(user)
        return _cp(["usermod", "-aG", "docker", user], self.grant_rc, "", "usermod failed" if self.grant_rc else "")


class ScriptedPrompter:
    def __init__(self, answers=()) -> None:
        self.answers = list(answers)
        self.confirms: list[str] = []
        self.pauses: list[str] = []

    def confirm(self, message: str, *, default: bool = False) -> bool:
        self.confirms.append(message)
        return self.answers.pop(0) if self.answers else default

    def pause(self, message: str) -> None:
        self.pauses.append(message)


def make_host(**overrides) -> HostFacts:
    values = dict(
        machine="x86_64",
        swap_total_mib=1024,
        runtime_present=True,
        in_runtime_group=True,
        is_root=False,
        user="deploy",
    )
    values.update(overrides)
    return HostFacts(**values)


@pytest.fixture
def deploy_config(tmp_path):
    src = tmp_path / "src"
    src.mkdir()
    (src / "Dockerfile").write_text("FROM python:3.12-slim\n", encoding="utf-8")
    (tmp_path / "fstab").write_text("UUID=abcd / ext4 defaults 0 1\n", encoding="utf-8")
    return replace(
        default_config(),
        config_dir=tmp_path / "dot-nanobot",
        source_dir=src,
        swapfile=tmp_path / "swapfile",
        fstab=tmp_path / "fstab",
        dphys_config=tmp_path / "dphys-swapfile",
        user="deploy",
    )


@pytest.fixture
def make_ctx(deploy_config):
    def _make(
        *,
        profile=AMD_2GB,
        host=None,
        shell=None,
        runtime=None,
        installer=None,
        prompter=None,
        config=None,
    ) -> SetupContext:
        cfg = config or deploy_config
        return SetupContext(
            config=cfg,
            profile=profile,
            host=host or make_host(),
            shell=shell or FakeShell(),
            runtime=runtime or FakeRuntime(marker=cfg.marker_path),
            installer=installer or FakeInstaller(),
            prompter=prompter or ScriptedPrompter(),
        )

    return _make
