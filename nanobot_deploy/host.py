from __future__ import annotations

import grp
import logging
import os
import platform
from dataclasses import dataclass
from pathlib import Path

from .shell import Shell, is_root

logger = logging.getLogger(__name__)

MEMINFO_PATH = Path("/proc/meminfo")


@dataclass(frozen=True)
class HostFacts:
    machine: str
    swap_total_mib: int
    runtime_present: bool
    in_runtime_group: bool
    is_root: bool
    user: str

    @property
    def arch(self) -> str:
        return normalize_arch(self.machine)


def normalize_arch(machine: str) -> str:
    m = machine.lower()
    return {
        "x86_64": "amd64",
        "amd64": "amd64",
        "aarch64": "arm64",
        "arm64": "arm64",
    }.get(m, m)


def is_arm64(machine: str) -> bool:
    return normalize_arch(machine) == "arm64"


def read_swap_total_mib(meminfo: Path = MEMINFO_PATH) -> int:
    """Total swap in MiB, as ``free -m`` reports it."""
    with meminfo.open(encoding="utf-8") as f:
        for line in f:
            key, _, rest = line.partition(":")
            if key.strip() != "SwapTotal":
                continue
            parts = rest.split()
            kib = int(parts[0]) if parts else 0
            return kib // 1024
    return 0


def in_group(group: str) -> bool:
    """Whether the live session carries ``group``.

    A freshly added membership only shows up after a new login, which is
    exactly what the runtime will see.
    """
    try:
        gid = grp.getgrnam(group).gr_gid
    except KeyError:
        return False
    return gid in os.getgroups()


def probe_host(shell: Shell, *, user: str, runtime_cmd: str = "docker", runtime_group: str = "docker") -> HostFacts:
    facts = HostFacts(
        machine=platform.machine(),
        swap_total_mib=read_swap_total_mib(MEMINFO_PATH),
        runtime_present=shell.which(runtime_cmd) is not None,
        in_runtime_group=in_group(runtime_group),
        is_root=is_root(),
        user=user,
    )
    logger.debug("Host facts: %s", facts)
    return facts
