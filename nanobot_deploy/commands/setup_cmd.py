from __future__ import annotations

from pathlib import Path

import typer

from ..config import resolve_config
from ..context import build_context
from ..profiles import AMD_2GB, RPI_4GB, Profile
from ..stages import run_setup
from .common import CONFIG_DIR_HELP, SOURCE_DIR_HELP, YES_HELP, report_failure

app = typer.Typer(help="First-time setup: build and start the nanobot container on this host.")


def _setup(profile: Profile, *, source_dir: Path | None, config_dir: Path | None, assume_yes: bool) -> None:
    cfg = resolve_config(source_dir=source_dir, config_dir=config_dir)
    ctx = build_context(cfg, profile, assume_yes=assume_yes)
    result = run_setup(ctx)
    if not result.ok:
        report_failure(result.failure)


@app.command("amd", help="Set up on an x86-64 VPS with 2GB RAM (creates a 1GB swap file if none exists).")
def setup_amd(
    source_dir: Path | None = typer.Option(None, "--source-dir", help=SOURCE_DIR_HELP, file_okay=False),
    config_dir: Path | None = typer.Option(None, "--config-dir", help=CONFIG_DIR_HELP, file_okay=False),
    assume_yes: bool = typer.Option(False, "--yes", help=YES_HELP),
) -> None:
    _setup(AMD_2GB, source_dir=source_dir, config_dir=config_dir, assume_yes=assume_yes)


@app.command("rpi", help="Set up on a Raspberry Pi 4 with 4GB RAM (offers to grow dphys-swapfile to 2GB).")
def setup_rpi(
    source_dir: Path | None = typer.Option(None, "--source-dir", help=SOURCE_DIR_HELP, file_okay=False),
    config_dir: Path | None = typer.Option(None, "--config-dir", help=CONFIG_DIR_HELP, file_okay=False),
    assume_yes: bool = typer.Option(False, "--yes", help=YES_HELP),
) -> None:
    _setup(RPI_4GB, source_dir=source_dir, config_dir=config_dir, assume_yes=assume_yes)
