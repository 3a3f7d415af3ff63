from __future__ import annotations

from . import console
from .pipeline import FailureKind, IgnoredOutcome, SetupContext, StageResult, best_effort
from .runtime import ContainerSpec
from .shell import describe_failure

RESTART_POLICY = "always"
SERVICE_COMMAND = ("gateway",)


def service_spec(ctx: SetupContext) -> ContainerSpec:
    cfg = ctx.config
    return ContainerSpec(
        image=cfg.image_tag,
        command=SERVICE_COMMAND,
        name=cfg.service_name,
        detach=True,
        restart=RESTART_POLICY,
        ports=((cfg.port, cfg.port),),
        volumes=(cfg.volume,),
    )


class ReplaceContainerStage:
    """Remove any prior container with the service name, then start a fresh one."""

    stage_id = "replace_container"

    def run(self, ctx: SetupContext) -> StageResult:
        name = ctx.config.service_name
        cleanup: list[IgnoredOutcome] = []

        existing = ctx.runtime.list_by_name(name)
        if existing:
            console.warn(f"Stopping and removing existing {name} container...")
            # either call may fail when the container is already gone; that is
            # the state we want anyway
            cleanup.append(best_effort(f"stop {name}", lambda: ctx.runtime.stop(name)))
            cleanup.append(best_effort(f"remove {name}", lambda: ctx.runtime.remove(name)))

        console.info(f"Starting {name} gateway...")
        res = ctx.runtime.run(service_spec(ctx))
        if res.returncode != 0:
            port = ctx.config.port
            return StageResult.fail(
                FailureKind.LIFECYCLE,
                f"Failed to start the {name} container.",
                hints=[
                    f"Check whether port {port} is already in use: ss -ltnp | grep {port}",
                    f"Inspect leftovers: docker ps -a -f name={name}",
                ],
                details=describe_failure(res),
                replaced=existing,
                cleanup=cleanup,
            )
        container_id = (res.stdout or "").strip()
        return StageResult.success(container_id=container_id, replaced=existing, cleanup=cleanup)
