from __future__ import annotations

from . import console
from .bootstrap import ConfigBootstrapStage
from .dependencies import InstallRuntimeStage
from .lifecycle import ReplaceContainerStage
from .pipeline import FailureKind, PipelineResult, SetupContext, Stage, StageResult, run_pipeline
from .swap import SwapPreflightStage
from .verify import VerifyStage


class BuildImageStage:
    stage_id = "build_image"

    def run(self, ctx: SetupContext) -> StageResult:
        cfg = ctx.config
        console.info(f"Building {cfg.image_tag} Docker image...")
        res = ctx.runtime.build(cfg.image_tag, cfg.source_dir)
        if res.returncode != 0:
            return StageResult.fail(
                FailureKind.BUILD,
                f"Image build failed (exit {res.returncode}).",
                hints=[
                    "Scroll up for the failing build step.",
                    f"Re-run by hand: docker build -t {cfg.image_tag} {cfg.source_dir}",
                ],
            )
        return StageResult.success(tag=cfg.image_tag)


def build_stages() -> list[Stage]:
    return [
        SwapPreflightStage(),
        InstallRuntimeStage(),
        BuildImageStage(),
        ConfigBootstrapStage(),
        ReplaceContainerStage(),
        VerifyStage(),
    ]


def run_setup(ctx: SetupContext) -> PipelineResult:
    profile = ctx.profile
    console.rule(f"[bold]nanobot Setup ({profile.title})[/]")
    if ctx.host.arch != profile.base_arch:
        console.warn(
            f"Host architecture is {ctx.host.arch}; the {profile.key} profile expects {profile.base_arch}. "
            "The image build may fail on an unsupported base image."
        )
    return run_pipeline(ctx, build_stages())
