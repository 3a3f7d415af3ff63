from __future__ import annotations

from enum import Enum

from . import console
from .pipeline import FailureKind, SetupContext, StageResult
from .runtime import ContainerSpec
from .shell import describe_failure

PROVIDERS_EXAMPLE = '"providers": { "openrouter": { "apiKey": "sk-..." } }'
ACK_MESSAGE = "Press Enter when you have configured your API keys (or Ctrl+C to stop)..."


class BootstrapState(str, Enum):
    DIRECTORY_ABSENT = "directory_absent"
    DIRECTORY_CREATED = "directory_created"
    MARKER_ABSENT = "marker_absent"
    MARKER_PRESENT = "marker_present"
    ONBOARD_RUN = "onboard_run"
    AWAITING_ACK = "awaiting_ack"
    READY = "ready"


def onboard_spec(ctx: SetupContext) -> ContainerSpec:
    return ContainerSpec(
        image=ctx.config.image_tag,
        command=("onboard",),
        auto_remove=True,
        volumes=(ctx.config.volume,),
    )


class ConfigBootstrapStage:
    """Make sure the config dir and its marker file exist before the service starts.

    The marker is produced by the image's own ``onboard`` command; it is never
    written or overwritten here. Once it exists this stage does nothing, so the
    only way back into onboarding is deleting the marker by hand.
    """

    stage_id = "config_bootstrap"

    def run(self, ctx: SetupContext) -> StageResult:
        cfg = ctx.config
        states: list[BootstrapState] = []

        if not cfg.config_dir.is_dir():
            states.append(BootstrapState.DIRECTORY_ABSENT)
            try:
                cfg.config_dir.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                return StageResult.fail(
                    FailureKind.BOOTSTRAP,
                    f"Could not create config directory {cfg.config_dir}: {exc}",
                    states=states,
                )
        states.append(BootstrapState.DIRECTORY_CREATED)

        if cfg.marker_path.exists():
            states += [BootstrapState.MARKER_PRESENT, BootstrapState.READY]
            console.ok(f"Configuration found at {cfg.config_dir}")
            return StageResult.success(states=states, onboarded=False)

        states.append(BootstrapState.MARKER_ABSENT)
        console.warn("Config not found. Initializing...")
        res = ctx.runtime.run(onboard_spec(ctx), stream=True)
        states.append(BootstrapState.ONBOARD_RUN)
        if res.returncode != 0:
            return StageResult.fail(
                FailureKind.BOOTSTRAP,
                "Onboarding container failed; no configuration was created.",
                hints=[f"Try it by hand: docker run --rm -v {cfg.config_dir}:{cfg.container_config_dir} {cfg.image_tag} onboard"],
                details=describe_failure(res),
                states=states,
            )
        if not cfg.marker_path.exists():
            console.warn(f"Onboarding finished but {cfg.marker_path} was not created.")

        console.warn(f"IMPORTANT: Please edit {cfg.marker_path} to add your API keys.")
        console.warn("Example:")
        console.hints([PROVIDERS_EXAMPLE])
        states.append(BootstrapState.AWAITING_ACK)
        ctx.prompter.pause(ACK_MESSAGE)
        states.append(BootstrapState.READY)
        return StageResult.success(states=states, onboarded=True)
