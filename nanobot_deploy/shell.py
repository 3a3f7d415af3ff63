from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from pathlib import Path
from typing import Protocol, Sequence

logger = logging.getLogger(__name__)


class Shell(Protocol):
    """Runs host commands on behalf of the pipeline stages."""

    def run(
        self,
        argv: Sequence[str],
        *,
        privileged: bool = False,
        input_text: str | None = None,
        capture: bool = True,
        cwd: Path | None = None,
    ) -> subprocess.CompletedProcess[str]:
        ...

    def which(self, cmd: str) -> str | None:
        ...


def fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def is_root() -> bool:
    return hasattr(os, "geteuid") and os.geteuid() == 0


class SubprocessShell:
    def run(
        self,
        argv: Sequence[str],
        *,
        privileged: bool = False,
        input_text: str | None = None,
        capture: bool = True,
        cwd: Path | None = None,
    ) -> subprocess.CompletedProcess[str]:
        cmd = list(argv)
        if privileged and not is_root():
            cmd = ["sudo", *cmd]
        logger.debug("CMD %s", fmt_argv(cmd))
        try:
            if capture:
                res = subprocess.run(
                    cmd,
                    input=input_text,
                    text=True,
                    capture_output=True,
                    cwd=cwd,
                    check=False,
                )
            else:
                res = subprocess.run(cmd, input=input_text, text=True, cwd=cwd, check=False)
        except FileNotFoundError as exc:
            return subprocess.CompletedProcess(cmd, 127, "", str(exc))
        if res.stdout:
            logger.debug("STDOUT %s", res.stdout.strip())
        if res.stderr:
            logger.debug("STDERR %s", res.stderr.strip())
        return res

    def which(self, cmd: str) -> str | None:
        return shutil.which(cmd)


def describe_failure(res: subprocess.CompletedProcess[str]) -> str:
    output = (res.stderr or "").strip() or (res.stdout or "").strip()
    argv = res.args if isinstance(res.args, (list, tuple)) else [str(res.args)]
    head = f"{fmt_argv([str(a) for a in argv])} exited with {res.returncode}"
    return f"{head}: {output}" if output else head
