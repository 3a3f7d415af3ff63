from __future__ import annotations

from typing import NoReturn

import typer

from .. import console
from ..pipeline import Failure

SOURCE_DIR_HELP = "nanobot checkout used as the image build context (default: current directory)."
CONFIG_DIR_HELP = "Host directory mounted as the container's config dir (default: ~/.nanobot)."
YES_HELP = "Answer yes to the swap resize question (the API key pause still waits)."


def report_failure(failure: Failure) -> NoReturn:
    console.err(failure.message)
    if failure.details:
        console.block(failure.details)
    if failure.hints:
        console.hints(failure.hints)
    raise typer.Exit(code=failure.kind.exit_code)
