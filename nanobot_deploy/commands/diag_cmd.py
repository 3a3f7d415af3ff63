from __future__ import annotations

import sys

import typer

from .. import console
from ..config import DeployConfig, resolve_config
from ..runtime import ContainerSpec, DockerRuntime
from ..shell import SubprocessShell

channels_app = typer.Typer(help="Chat channel diagnostics.")


def _run_oneshot(cfg: DeployConfig, *command: str) -> None:
    if not cfg.marker_path.exists():
        console.warn(f"No configuration at {cfg.marker_path}; run `nanobot-deploy setup <amd|rpi>` first.")
    runtime = DockerRuntime(SubprocessShell())
    spec = ContainerSpec(
        image=cfg.image_tag,
        command=command,
        auto_remove=True,
        volumes=(cfg.volume,),
        interactive=sys.stdin.isatty(),
    )
    res = runtime.run(spec, stream=True)
    if res.returncode != 0:
        raise typer.Exit(code=res.returncode)


def agent(
    message: str = typer.Option(..., "-m", "--message", help="Message to send to the agent."),
) -> None:
    """Send one message to the agent in a throwaway container."""
    _run_oneshot(resolve_config(), "agent", "-m", message)


def status() -> None:
    """Show nanobot's own status report."""
    _run_oneshot(resolve_config(), "status")


@channels_app.command("status")
def channels_status() -> None:
    """Show chat channel connection status."""
    _run_oneshot(resolve_config(), "channels", "status")


def logs(
    follow: bool = typer.Option(False, "-f", "--follow", help="Follow log output."),
    tail: int | None = typer.Option(None, "--tail", help="Only show the last N lines."),
) -> None:
    """Show the service container's logs."""
    cfg = resolve_config()
    runtime = DockerRuntime(SubprocessShell())
    res = runtime.logs(cfg.service_name, tail=tail, follow=follow, stream=True)
    if res.returncode != 0:
        raise typer.Exit(code=res.returncode)
