from __future__ import annotations

import platform
from pathlib import Path

import typer

from .. import console
from ..config import resolve_config
from ..context import build_context
from ..dispatch import UpdateDispatcher
from ..profiles import ProfileChoice
from ..shell import SubprocessShell
from .common import CONFIG_DIR_HELP, SOURCE_DIR_HELP, YES_HELP, report_failure


def update(
    profile: ProfileChoice | None = typer.Argument(
        None,
        help="Platform profile. Detected from the CPU architecture when omitted (arm64 -> rpi, else amd).",
    ),
    source_dir: Path | None = typer.Option(None, "--source-dir", help=SOURCE_DIR_HELP, file_okay=False),
    config_dir: Path | None = typer.Option(None, "--config-dir", help=CONFIG_DIR_HELP, file_okay=False),
    assume_yes: bool = typer.Option(False, "--yes", help=YES_HELP),
) -> None:
    """Pull the latest source and re-run setup for an already configured host.

    Examples:
      nanobot-deploy update
      nanobot-deploy update rpi
    """
    console.rule("[bold]nanobot Update[/]")
    cfg = resolve_config(source_dir=source_dir, config_dir=config_dir)
    shell = SubprocessShell()
    dispatcher = UpdateDispatcher(
        cfg,
        shell,
        lambda p: build_context(cfg, p, shell=shell, assume_yes=assume_yes),
    )
    result = dispatcher.run(profile.value if profile else None, platform.machine())
    if not result.ok:
        report_failure(result.failure)

    name = cfg.service_name
    console.rule("[bold green]Update Complete![/]")
    console.print(f"Logs:    docker logs -f {name}", highlight=False)
    console.print(f"Status:  docker ps | grep {name}", highlight=False)
    console.print(f"Config:  {cfg.marker_path}", highlight=False)
