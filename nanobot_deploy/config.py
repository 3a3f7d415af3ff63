from __future__ import annotations

import getpass
import os
import tomllib
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import tomli_w
from platformdirs import user_config_dir

from . import console

APP_NAME = "nanobot-deploy"
CONFIG_FILENAME = "config.toml"

ENV_SOURCE_DIR = "NANOBOT_DEPLOY_SOURCE_DIR"
ENV_CONFIG_DIR = "NANOBOT_DEPLOY_CONFIG_DIR"

DEFAULT_SERVICE_NAME = "nanobot"
DEFAULT_IMAGE_TAG = "nanobot"
DEFAULT_PORT = 18790
DEFAULT_CONTAINER_CONFIG_DIR = "/root/.nanobot"
DEFAULT_MARKER_NAME = "config.json"
DEFAULT_INSTALLER_URL = "https://get.docker.com"
DEFAULT_RUNTIME_GROUP = "docker"
DEFAULT_SWAPFILE = "/swapfile"
DEFAULT_FSTAB = "/etc/fstab"
DEFAULT_DPHYS_CONFIG = "/etc/dphys-swapfile"

# keys a settings file may set; everything else is ignored
_PATH_KEYS = {"config_dir", "source_dir", "swapfile", "fstab", "dphys_config"}
_INT_KEYS = {"port"}
_STR_KEYS = {
    "service_name",
    "image_tag",
    "container_config_dir",
    "marker_name",
    "installer_url",
    "runtime_group",
}


@dataclass(frozen=True)
class DeployConfig:
    service_name: str
    image_tag: str
    port: int
    config_dir: Path
    container_config_dir: str
    marker_name: str
    source_dir: Path
    swapfile: Path
    fstab: Path
    dphys_config: Path
    installer_url: str
    runtime_group: str
    user: str

    @property
    def marker_path(self) -> Path:
        return self.config_dir / self.marker_name

    @property
    def volume(self) -> tuple[str, str]:
        return str(self.config_dir), self.container_config_dir

    @property
    def dockerfile(self) -> Path:
        return self.source_dir / "Dockerfile"


def config_path() -> str:
    return f"{user_config_dir(APP_NAME)}/{CONFIG_FILENAME}"


def _current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return os.getenv("USER") or "root"


def default_config() -> DeployConfig:
    return DeployConfig(
        service_name=DEFAULT_SERVICE_NAME,
        image_tag=DEFAULT_IMAGE_TAG,
        port=DEFAULT_PORT,
        config_dir=Path.home() / ".nanobot",
        container_config_dir=DEFAULT_CONTAINER_CONFIG_DIR,
        marker_name=DEFAULT_MARKER_NAME,
        source_dir=Path.cwd(),
        swapfile=Path(DEFAULT_SWAPFILE),
        fstab=Path(DEFAULT_FSTAB),
        dphys_config=Path(DEFAULT_DPHYS_CONFIG),
        installer_url=DEFAULT_INSTALLER_URL,
        runtime_group=DEFAULT_RUNTIME_GROUP,
        user=_current_user(),
    )


def from_toml(data: dict[str, Any], base: DeployConfig | None = None) -> DeployConfig:
    cfg = base or default_config()
    updates: dict[str, Any] = {}
    for key, value in data.items():
        if value is None:
            continue
        if key in _PATH_KEYS:
            text = str(value).strip()
            if text:
                updates[key] = Path(text).expanduser()
        elif key in _INT_KEYS:
            try:
                updates[key] = int(value)
            except (TypeError, ValueError):
                console.warn(f"Ignoring invalid {key} in settings: {value!r}")
        elif key in _STR_KEYS:
            text = str(value).strip()
            if text:
                updates[key] = text
    return replace(cfg, **updates)


def to_toml(cfg: DeployConfig) -> dict[str, Any]:
    data: dict[str, Any] = {}
    for f in fields(cfg):
        if f.name == "user":
            continue
        value = getattr(cfg, f.name)
        data[f.name] = str(value) if isinstance(value, Path) else value
    return data


def load_config() -> DeployConfig:
    path = config_path()
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError:
        return default_config()
    except tomllib.TOMLDecodeError as exc:
        console.warn(f"Ignoring unreadable settings file {path}: {exc}")
        return default_config()
    return from_toml(data)


def apply_env(cfg: DeployConfig) -> DeployConfig:
    updates: dict[str, Any] = {}
    source_dir = os.getenv(ENV_SOURCE_DIR, "").strip()
    if source_dir:
        updates["source_dir"] = Path(source_dir).expanduser()
    config_dir = os.getenv(ENV_CONFIG_DIR, "").strip()
    if config_dir:
        updates["config_dir"] = Path(config_dir).expanduser()
    return replace(cfg, **updates) if updates else cfg


def resolve_config(
    *,
    source_dir: Path | None = None,
    config_dir: Path | None = None,
) -> DeployConfig:
    """Defaults, then the settings file, then env, then CLI options."""
    cfg = apply_env(load_config())
    updates: dict[str, Any] = {}
    if source_dir is not None:
        updates["source_dir"] = source_dir.expanduser()
    if config_dir is not None:
        updates["config_dir"] = config_dir.expanduser()
    if updates:
        cfg = replace(cfg, **updates)
    return replace(cfg, source_dir=cfg.source_dir.resolve())


def ensure_parent_dir(path: str) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)


def save_config(cfg: DeployConfig) -> str:
    path = config_path()
    ensure_parent_dir(path)
    with open(path, "wb") as f:
        f.write(tomli_w.dumps(to_toml(cfg)).encode("utf-8"))
    os.chmod(path, 0o600)
    return path
