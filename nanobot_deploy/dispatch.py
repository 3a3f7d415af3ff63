from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from . import console
from .config import DeployConfig
from .pipeline import Failure, FailureKind, PipelineResult, SetupContext
from .profiles import Profile, resolve_profile
from .shell import Shell, describe_failure
from .stages import run_setup

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpdateResult:
    profile: Profile
    failure: Failure | None = None
    pipeline: PipelineResult | None = None
    fetched: bool = False

    @property
    def ok(self) -> bool:
        return self.failure is None


def check_update_preconditions(config: DeployConfig, profile: Profile) -> Failure | None:
    """Refuse to update a host that was never set up, or from outside a checkout."""
    if not config.dockerfile.is_file():
        return Failure(
            kind=FailureKind.DISPATCH,
            message=f"Setup sources not found: no Dockerfile in {config.source_dir}.",
            hints=(
                "Run this command from the nanobot checkout,",
                "or pass --source-dir /path/to/nanobot.",
            ),
        )
    if not config.marker_path.is_file():
        return Failure(
            kind=FailureKind.DISPATCH,
            message=f"Error: Config not found at {config.config_dir}",
            hints=(
                "Please run setup first:",
                f"nanobot-deploy setup {profile.key}",
            ),
        )
    return None


class UpdateDispatcher:
    def __init__(
        self,
        config: DeployConfig,
        shell: Shell,
        context_factory: Callable[[Profile], SetupContext],
        setup: Callable[[SetupContext], PipelineResult] = run_setup,
    ) -> None:
        self.config = config
        self.shell = shell
        self.context_factory = context_factory
        self.setup = setup

    def run(self, requested: str | None, machine: str) -> UpdateResult:
        profile = resolve_profile(requested, machine)
        logger.debug("Update profile %s (requested=%r, machine=%s)", profile.key, requested, machine)

        failure = check_update_preconditions(self.config, profile)
        if failure is not None:
            return UpdateResult(profile=profile, failure=failure)

        console.info("Step 1: Updating code from git...")
        res = self.shell.run(["git", "pull"], cwd=self.config.source_dir)
        if res.returncode != 0:
            return UpdateResult(
                profile=profile,
                failure=Failure(
                    kind=FailureKind.FETCH,
                    message="git pull failed; the running container was left untouched.",
                    hints=(f"Resolve the checkout state in {self.config.source_dir} and re-run the update.",),
                    details=describe_failure(res),
                ),
            )
        output = (res.stdout or "").strip()
        if output:
            console.block(output)

        console.info("Step 2: Rebuilding container...")
        result = self.setup(self.context_factory(profile))
        return UpdateResult(profile=profile, failure=result.failure, pipeline=result, fetched=True)
