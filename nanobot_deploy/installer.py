from __future__ import annotations

import hashlib
import logging
import os
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import httpx

from .config import DEFAULT_INSTALLER_URL, DEFAULT_RUNTIME_GROUP
from .shell import Shell

logger = logging.getLogger(__name__)


class InstallError(RuntimeError):
    pass


class PackageInstaller(Protocol):
    def is_installed(self) -> bool:
        ...

    def install(self) -> None:
        ...

    def grant_group(self, user: str) -> subprocess.CompletedProcess[str]:
        ...


def _download_file(url: str, dest: Path) -> str:
    sha = hashlib.sha256()
    with httpx.stream("GET", url, timeout=30.0, follow_redirects=True) as resp:
        resp.raise_for_status()
        with dest.open("wb") as f:
            for chunk in resp.iter_bytes():
                if not chunk:
                    continue
                sha.update(chunk)
                f.write(chunk)
    return sha.hexdigest()


@dataclass
class DockerInstaller:
    shell: Shell
    url: str = DEFAULT_INSTALLER_URL
    group: str = DEFAULT_RUNTIME_GROUP
    command: str = "docker"

    def is_installed(self) -> bool:
        return self.shell.which(self.command) is not None

    def install(self) -> None:
        fd, tmp = tempfile.mkstemp(prefix="get-docker-", suffix=".sh")
        os.close(fd)
        script = Path(tmp)
        try:
            try:
                digest = _download_file(self.url, script)
            except httpx.HTTPError as exc:
                raise InstallError(f"Failed to download the Docker installer from {self.url}: {exc}") from exc
            logger.debug("Installer %s sha256=%s", self.url, digest)
            res = self.shell.run(["sh", str(script)], privileged=True, capture=False)
            if res.returncode != 0:
                raise InstallError(f"Docker installer script exited with {res.returncode}.")
        finally:
            script.unlink(missing_ok=True)

    def grant_group(self, user: str) -> subprocess.CompletedProcess[str]:
        return self.shell.run(["usermod", "-aG", self.group, user], privileged=True)
