from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Protocol, Sequence

from .config import DeployConfig
from .host import HostFacts
from .installer import PackageInstaller
from .profiles import Profile
from .prompts import Prompter
from .runtime import ContainerRuntime
from .shell import Shell

logger = logging.getLogger(__name__)

EXIT_FAILURE = 2
EXIT_CHECKPOINT = 3


class FailureKind(str, Enum):
    PREFLIGHT = "preflight"
    INSTALL = "install"
    CHECKPOINT = "checkpoint"
    BUILD = "build"
    BOOTSTRAP = "bootstrap"
    LIFECYCLE = "lifecycle"
    VERIFICATION = "verification"
    DISPATCH = "dispatch"
    FETCH = "fetch"

    @property
    def exit_code(self) -> int:
        if self is FailureKind.CHECKPOINT:
            return EXIT_CHECKPOINT
        return EXIT_FAILURE


@dataclass(frozen=True)
class Failure:
    kind: FailureKind
    message: str
    hints: tuple[str, ...] = ()
    details: str = ""


@dataclass(frozen=True)
class StageResult:
    failure: Failure | None = None
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, **data: Any) -> "StageResult":
        return cls(failure=None, data=data)

    @classmethod
    def fail(
        cls,
        kind: FailureKind,
        message: str,
        *,
        hints: Sequence[str] = (),
        details: str = "",
        **data: Any,
    ) -> "StageResult":
        return cls(failure=Failure(kind=kind, message=message, hints=tuple(hints), details=details), data=data)


@dataclass(frozen=True)
class IgnoredOutcome:
    """Result of a best-effort step: recorded, never propagated."""

    label: str
    succeeded: bool
    detail: str = ""


def best_effort(label: str, action: Callable[[], subprocess.CompletedProcess[str]]) -> IgnoredOutcome:
    try:
        res = action()
    except OSError as exc:
        logger.debug("%s failed (ignored): %s", label, exc)
        return IgnoredOutcome(label=label, succeeded=False, detail=str(exc))
    if res.returncode != 0:
        detail = (res.stderr or "").strip()
        logger.debug("%s failed (ignored): %s", label, detail)
        return IgnoredOutcome(label=label, succeeded=False, detail=detail)
    return IgnoredOutcome(label=label, succeeded=True)


@dataclass
class SetupContext:
    config: DeployConfig
    profile: Profile
    host: HostFacts
    shell: Shell
    runtime: ContainerRuntime
    installer: PackageInstaller
    prompter: Prompter


class Stage(Protocol):
    """One blocking, idempotent step of the setup pipeline."""

    stage_id: str

    def run(self, ctx: SetupContext) -> StageResult:
        ...


@dataclass(frozen=True)
class PipelineResult:
    ran_stages: list[str]
    results: dict[str, StageResult]
    failed_stage: str | None = None
    failure: Failure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


def run_pipeline(ctx: SetupContext, stages: Sequence[Stage]) -> PipelineResult:
    """Run stages in order, stopping at the first failure."""

    ran: list[str] = []
    results: dict[str, StageResult] = {}
    for stage in stages:
        logger.info("Running stage %s", stage.stage_id)
        result = stage.run(ctx)
        ran.append(stage.stage_id)
        results[stage.stage_id] = result
        if not result.ok:
            logger.info("Stage %s failed: %s", stage.stage_id, result.failure.kind.value)
            return PipelineResult(
                ran_stages=ran,
                results=results,
                failed_stage=stage.stage_id,
                failure=result.failure,
            )
    return PipelineResult(ran_stages=ran, results=results)
