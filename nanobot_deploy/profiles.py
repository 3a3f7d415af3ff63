from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .host import is_arm64


class SwapStrategy(str, Enum):
    CREATE_IF_MISSING = "create-if-missing"
    RESIZE_MANAGED = "resize-managed"


@dataclass(frozen=True)
class Profile:
    key: str
    name: str
    title: str
    base_arch: str
    swap_strategy: SwapStrategy
    # MiB; below this the preflight acts
    swap_threshold_mib: int
    swap_target_mib: int


AMD_2GB = Profile(
    key="amd",
    name="amd2gb",
    title="AMD 2GB RAM Optimized",
    base_arch="amd64",
    swap_strategy=SwapStrategy.CREATE_IF_MISSING,
    swap_threshold_mib=1,
    swap_target_mib=1024,
)

RPI_4GB = Profile(
    key="rpi",
    name="rpi4gb",
    title="Raspberry Pi 4",
    base_arch="arm64",
    swap_strategy=SwapStrategy.RESIZE_MANAGED,
    # just under 2048 so a rounded-down 2 GiB swap still counts
    swap_threshold_mib=1900,
    swap_target_mib=2048,
)

PROFILES: dict[str, Profile] = {p.key: p for p in (AMD_2GB, RPI_4GB)}


class ProfileChoice(str, Enum):
    amd = "amd"
    rpi = "rpi"


def get_profile(key: str) -> Profile:
    try:
        return PROFILES[key]
    except KeyError:
        raise ValueError(f"Unknown profile: {key} (expected one of: {', '.join(PROFILES)})") from None


def resolve_profile(requested: str | None, machine: str) -> Profile:
    """Explicit choice wins; otherwise 64-bit ARM means the Pi profile."""
    if requested:
        key = requested.strip().lower()
        if key in PROFILES:
            return PROFILES[key]
    return RPI_4GB if is_arm64(machine) else AMD_2GB
