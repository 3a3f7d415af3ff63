from __future__ import annotations

from . import console
from .installer import InstallError
from .pipeline import FailureKind, SetupContext, StageResult
from .shell import describe_failure


class InstallRuntimeStage:
    stage_id = "install_runtime"

    def run(self, ctx: SetupContext) -> StageResult:
        group = ctx.config.runtime_group
        if ctx.installer.is_installed():
            console.ok("Docker is already installed.")
            if not ctx.host.is_root and not ctx.host.in_runtime_group:
                console.warn(
                    f"Current session is not in the '{group}' group; docker commands may be denied. "
                    "Log out and back in if you were added recently."
                )
            return StageResult.success(action="present")

        console.warn("Docker not found. Installing Docker...")
        try:
            ctx.installer.install()
        except InstallError as exc:
            return StageResult.fail(
                FailureKind.INSTALL,
                str(exc),
                hints=["Install Docker manually (https://docs.docker.com/engine/install/) and re-run setup."],
            )
        console.ok("Docker installed successfully.")

        if ctx.host.is_root:
            return StageResult.success(action="installed")

        user = ctx.config.user
        console.warn(f"Adding {user} to {group} group...")
        res = ctx.installer.grant_group(user)
        if res.returncode != 0:
            return StageResult.fail(
                FailureKind.INSTALL,
                f"Docker is installed but {user} could not be added to the '{group}' group.",
                hints=[f"sudo usermod -aG {group} {user}", "Then log out, log back in and re-run setup."],
                details=describe_failure(res),
            )
        return StageResult.fail(
            FailureKind.CHECKPOINT,
            "Please log out and log back in for group changes to take effect.",
            hints=["Then run this command again."],
            action="group_granted",
        )
