from __future__ import annotations

import os

import typer

from .. import console
from ..config import config_path, resolve_config, save_config, to_toml

app = typer.Typer(help="Manage local deploy settings (~/.config/nanobot-deploy/config.toml).")


@app.command("init")
def init_settings(
    force: bool = typer.Option(False, "--force", help="Overwrite existing settings."),
) -> None:
    """Write the current effective settings to the settings file."""
    path = config_path()
    if os.path.exists(path) and not force:
        console.info(f"Settings already exist: {path}")
        console.info("Use --force to overwrite.")
        return
    saved = save_config(resolve_config())
    console.ok(f"Settings written: {saved}")


@app.command("show")
def show_settings() -> None:
    cfg = resolve_config()
    for key, value in to_toml(cfg).items():
        console.console.print(f"{key}={value}", highlight=False)
    console.console.print(f"user={cfg.user}", highlight=False)


@app.command("path")
def show_path() -> None:
    console.console.print(config_path(), highlight=False)
