from __future__ import annotations

from . import console
from .pipeline import FailureKind, SetupContext, StageResult


class VerifyStage:
    stage_id = "verify"

    def run(self, ctx: SetupContext) -> StageResult:
        cfg = ctx.config
        name = cfg.service_name
        running = ctx.runtime.list_by_name(name, running_only=True)
        if not running:
            res = ctx.runtime.logs(name)
            logs = ((res.stdout or "") + (res.stderr or "")).strip()
            return StageResult.fail(
                FailureKind.VERIFICATION,
                "Deployment failed. Container is not running.",
                hints=[f"docker logs {name}", f"docker ps -a -f name={name}"],
                details=logs or "<no logs>",
                logs=logs,
            )

        container_id = running[0]
        status = ctx.runtime.status(name) or "unknown"
        console.rule("[bold green]Deployment Successful![/]")
        console.print(f"Container ID: {container_id}", highlight=False)
        console.print(f"Status:       {status}", highlight=False)
        console.print(f"Logs:         docker logs {name}", highlight=False)
        console.print(f"Config:       {cfg.marker_path}", highlight=False)
        console.print("")
        console.warn(f"Tip: Check logs with: docker logs -f {name}")
        return StageResult.success(container_id=container_id, status=status)
