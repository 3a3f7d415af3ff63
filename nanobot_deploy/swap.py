from __future__ import annotations

import logging
import re
from datetime import datetime
from pathlib import Path

from . import console
from .pipeline import FailureKind, SetupContext, StageResult
from .profiles import SwapStrategy
from .shell import describe_failure

logger = logging.getLogger(__name__)

SWAP_MANAGER = "dphys-swapfile"
SWAP_MANAGER_SERVICE = "/etc/init.d/dphys-swapfile"
SWAPSIZE_KEY = "CONF_SWAPSIZE"

_SWAPSIZE_RE = re.compile(rf"^{SWAPSIZE_KEY}=.*$", re.MULTILINE)


def fstab_line(swapfile: Path) -> str:
    return f"{swapfile} none swap sw 0 0"


def fstab_has_swap_entry(fstab: Path, swapfile: Path) -> bool:
    try:
        text = fstab.read_text(encoding="utf-8")
    except FileNotFoundError:
        return False
    for line in text.splitlines():
        parts = line.split()
        if len(parts) < 3 or parts[0].startswith("#"):
            continue
        if parts[0] == str(swapfile) and parts[2] == "swap":
            return True
    return False


def set_swapsize(text: str, size_mib: int) -> str:
    """Rewrite the CONF_SWAPSIZE line, or append one if there is none."""
    line = f"{SWAPSIZE_KEY}={size_mib}"
    if _SWAPSIZE_RE.search(text):
        return _SWAPSIZE_RE.sub(line, text)
    if text and not text.endswith("\n"):
        text += "\n"
    return f"{text}{line}\n"


def _size_arg(size_mib: int) -> str:
    if size_mib % 1024 == 0:
        return f"{size_mib // 1024}G"
    return f"{size_mib}M"


def _backup_path(path: Path) -> Path:
    timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
    return path.with_name(f"{path.name}.bak-{timestamp}")


class SwapPreflightStage:
    stage_id = "swap_preflight"

    def run(self, ctx: SetupContext) -> StageResult:
        if ctx.profile.swap_strategy is SwapStrategy.CREATE_IF_MISSING:
            return self._ensure_swapfile(ctx)
        return self._ensure_managed_swap(ctx)

    def _ensure_swapfile(self, ctx: SetupContext) -> StageResult:
        current = ctx.host.swap_total_mib
        if current > 0:
            console.ok(f"Swap already exists ({current}MB). Good.")
            return StageResult.success(action="present", swap_mib=current)

        swapfile = ctx.config.swapfile
        size = _size_arg(ctx.profile.swap_target_mib)
        console.warn(f"Detected 0 swap. Creating {size}B swap file for stability...")
        for argv in (
            ["fallocate", "-l", size, str(swapfile)],
            ["chmod", "600", str(swapfile)],
            ["mkswap", str(swapfile)],
            ["swapon", str(swapfile)],
        ):
            res = ctx.shell.run(argv, privileged=True)
            if res.returncode != 0:
                return StageResult.fail(
                    FailureKind.PREFLIGHT,
                    "Swap creation failed.",
                    hints=[f"Inspect {swapfile} and /proc/swaps, then re-run setup."],
                    details=describe_failure(res),
                )

        fstab = ctx.config.fstab
        if fstab_has_swap_entry(fstab, swapfile):
            logger.debug("%s already lists %s", fstab, swapfile)
        else:
            entry = fstab_line(swapfile) + "\n"
            try:
                existing = fstab.read_text(encoding="utf-8")
            except FileNotFoundError:
                existing = ""
            if existing and not existing.endswith("\n"):
                entry = "\n" + entry
            res = ctx.shell.run(["tee", "-a", str(fstab)], privileged=True, input_text=entry)
            if res.returncode != 0:
                return StageResult.fail(
                    FailureKind.PREFLIGHT,
                    f"Swap is active but could not be persisted in {fstab}.",
                    hints=[f"Add this line to {fstab} manually: {fstab_line(swapfile)}"],
                    details=describe_failure(res),
                )
        console.ok("Swap created.")
        return StageResult.success(action="created", swap_mib=ctx.profile.swap_target_mib)

    def _ensure_managed_swap(self, ctx: SetupContext) -> StageResult:
        profile = ctx.profile
        if ctx.shell.which(SWAP_MANAGER) is None:
            console.warn(f"{SWAP_MANAGER} not found. Skipping swap check.")
            console.warn("If you experience OOM errors, manually add a swap file:")
            size = _size_arg(profile.swap_target_mib)
            swapfile = ctx.config.swapfile
            console.hints(
                [
                    f"sudo fallocate -l {size} {swapfile} && sudo mkswap {swapfile} && sudo swapon {swapfile}",
                ]
            )
            return StageResult.success(action="unmanaged", swap_mib=ctx.host.swap_total_mib)

        console.info("Checking swap configuration...")
        current = ctx.host.swap_total_mib
        if current >= profile.swap_threshold_mib:
            console.ok(f"Swap size is {current}MB (good)")
            return StageResult.success(action="sufficient", swap_mib=current)

        target_gb = profile.swap_target_mib // 1024
        conf = ctx.config.dphys_config
        console.warn(f"Swap size is {current}MB. Recommended {target_gb}GB for smooth Docker builds.")
        console.info(f"We can update {conf} for you.")
        if not ctx.prompter.confirm(f"Update swap to {target_gb}GB?", default=False):
            console.warn("Skipping swap update. Builds might fail if RAM runs out.")
            return StageResult.success(action="declined", swap_mib=current)

        console.info(f"Updating {conf}...")
        backup = None
        if conf.exists():
            backup = _backup_path(conf)
            res = ctx.shell.run(["cp", str(conf), str(backup)], privileged=True)
            if res.returncode != 0:
                return self._resize_failed(res, "Could not back up the swap manager config.")
            text = conf.read_text(encoding="utf-8")
        else:
            text = ""

        res = ctx.shell.run(["tee", str(conf)], privileged=True, input_text=set_swapsize(text, profile.swap_target_mib))
        if res.returncode != 0:
            return self._resize_failed(res, f"Could not write {conf}.")

        console.info("Applying swap changes (this may take a moment)...")
        res = ctx.shell.run([SWAP_MANAGER_SERVICE, "restart"], privileged=True)
        if res.returncode != 0:
            return self._resize_failed(res, "Restarting the swap manager failed.")
        console.ok("Swap updated.")
        return StageResult.success(
            action="resized",
            swap_mib=profile.swap_target_mib,
            backup=str(backup) if backup else None,
        )

    @staticmethod
    def _resize_failed(res, message: str) -> StageResult:
        return StageResult.fail(
            FailureKind.PREFLIGHT,
            message,
            hints=[f"Check {SWAP_MANAGER} manually, then re-run setup."],
            details=describe_failure(res),
        )
