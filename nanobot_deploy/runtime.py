from __future__ import annotations

import logging
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Sequence

from .shell import Shell

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContainerSpec:
    image: str
    command: tuple[str, ...] = ()
    name: str | None = None
    detach: bool = False
    auto_remove: bool = False
    restart: str | None = None
    ports: tuple[tuple[int, int], ...] = ()
    volumes: tuple[tuple[str, str], ...] = ()
    interactive: bool = False

    def argv(self) -> list[str]:
        args = ["run"]
        if self.detach:
            args.append("-d")
        if self.auto_remove:
            args.append("--rm")
        if self.interactive:
            args.append("-it")
        if self.name:
            args += ["--name", self.name]
        if self.restart:
            args += ["--restart", self.restart]
        for host_port, container_port in self.ports:
            args += ["-p", f"{host_port}:{container_port}"]
        for host_path, container_path in self.volumes:
            args += ["-v", f"{host_path}:{container_path}"]
        args.append(self.image)
        args += list(self.command)
        return args


class ContainerRuntime(Protocol):
    def build(self, tag: str, context: Path) -> subprocess.CompletedProcess[str]:
        ...

    def run(self, spec: ContainerSpec, *, stream: bool = False) -> subprocess.CompletedProcess[str]:
        ...

    def stop(self, name: str) -> subprocess.CompletedProcess[str]:
        ...

    def remove(self, name: str) -> subprocess.CompletedProcess[str]:
        ...

    def list_by_name(self, name: str, *, running_only: bool = False) -> list[str]:
        ...

    def status(self, name: str) -> str | None:
        ...

    def logs(
        self,
        name: str,
        *,
        tail: int | None = None,
        follow: bool = False,
        stream: bool = False,
    ) -> subprocess.CompletedProcess[str]:
        ...


def exact_name_filter(name: str) -> str:
    # docker matches name filters as a substring regex; anchor it so
    # "nanobot" does not also pick up "nanobot-old"
    return f"name=^/?{re.escape(name)}$"


@dataclass
class DockerRuntime:
    shell: Shell
    binary: str = "docker"

    def _docker(self, args: Sequence[str], *, capture: bool = True) -> subprocess.CompletedProcess[str]:
        return self.shell.run([self.binary, *args], capture=capture)

    def build(self, tag: str, context: Path) -> subprocess.CompletedProcess[str]:
        return self._docker(["build", "-t", tag, str(context)], capture=False)

    def run(self, spec: ContainerSpec, *, stream: bool = False) -> subprocess.CompletedProcess[str]:
        return self._docker(spec.argv(), capture=not stream)

    def stop(self, name: str) -> subprocess.CompletedProcess[str]:
        return self._docker(["stop", name])

    def remove(self, name: str) -> subprocess.CompletedProcess[str]:
        return self._docker(["rm", name])

    def list_by_name(self, name: str, *, running_only: bool = False) -> list[str]:
        args = ["ps", "-q", "-f", exact_name_filter(name)]
        if not running_only:
            args.insert(1, "-a")
        res = self._docker(args)
        if res.returncode != 0:
            logger.debug("docker ps failed: %s", (res.stderr or "").strip())
            return []
        return [line.strip() for line in (res.stdout or "").splitlines() if line.strip()]

    def status(self, name: str) -> str | None:
        res = self._docker(["ps", "-f", exact_name_filter(name), "--format", "{{.Status}}"])
        if res.returncode != 0:
            return None
        value = (res.stdout or "").strip()
        return value.splitlines()[0] if value else None

    def logs(
        self,
        name: str,
        *,
        tail: int | None = None,
        follow: bool = False,
        stream: bool = False,
    ) -> subprocess.CompletedProcess[str]:
        args = ["logs"]
        if follow:
            args.append("-f")
        if tail is not None:
            args += ["--tail", str(tail)]
        args.append(name)
        return self._docker(args, capture=not stream)
