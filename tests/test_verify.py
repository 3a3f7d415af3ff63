from __future__ import annotations

from conftest import FakeRuntime

from nanobot_deploy.pipeline import FailureKind
from nanobot_deploy.verify import VerifyStage


def test_running_container_verifies(make_ctx) -> None:
    runtime = FakeRuntime()
    cid = runtime.add_container("nanobot", running=True)

    result = VerifyStage().run(make_ctx(runtime=runtime))

    assert result.ok
    assert result.data == {"container_id": cid, "status": "Up 2 seconds"}
    assert ("logs", "nanobot") not in runtime.calls


def test_stopped_container_fails_with_logs(make_ctx) -> None:
    runtime = FakeRuntime(logs_text="Traceback: KeyError 'apiKey'")
    runtime.add_container("nanobot", running=False)

    result = VerifyStage().run(make_ctx(runtime=runtime))

    assert result.failure.kind is FailureKind.VERIFICATION
    assert "KeyError 'apiKey'" in result.failure.details
    assert result.data["logs"] == "Traceback: KeyError 'apiKey'"


def test_missing_container_fails(make_ctx) -> None:
    runtime = FakeRuntime(logs_text="")
    result = VerifyStage().run(make_ctx(runtime=runtime))

    assert result.failure.kind is FailureKind.VERIFICATION
    assert result.failure.details == "<no logs>"
