from __future__ import annotations

import typer

from .commands import diag_cmd, settings_cmd, setup_cmd, update_cmd
from .logging_ import setup_logging


def _build_app() -> typer.Typer:
    app = typer.Typer(
        name="nanobot-deploy",
        help="Provision a host for the nanobot container and keep it updated.",
        no_args_is_help=True,
    )

    app.add_typer(setup_cmd.app, name="setup")
    app.command("update")(update_cmd.update)

    # operator diagnostics; the setup pipeline never calls these
    app.command("agent")(diag_cmd.agent)
    app.command("status")(diag_cmd.status)
    app.add_typer(diag_cmd.channels_app, name="channels")
    app.command("logs")(diag_cmd.logs)

    app.add_typer(settings_cmd.app, name="settings")

    @app.callback()
    def _main(
            verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logs."),
    ):
        setup_logging(verbose)

    return app


app = _build_app()
