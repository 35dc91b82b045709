from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

try:
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib  # type: ignore[no-redef]

from .connection import DEFAULT_SERVICE

DEFAULT_CONFIG = Path("/etc/kobe/client.conf")


@dataclass
class KobeConfig:
    endpoint: Optional[str] = None
    service: str = DEFAULT_SERVICE
    inventory: Optional[Path] = None
    script_dir: Optional[Path] = None
    timeout: Optional[float] = None
    connect_timeout: Optional[float] = None
    aws_region: Optional[str] = None
    aws_profile: Optional[str] = None


def load_config(path: Path) -> KobeConfig:
    if not path.exists():
        return KobeConfig()
    data = tomllib.loads(path.read_text())
    defaults = data.get("defaults", {})
    endpoint = defaults.get("endpoint")
    inventory = defaults.get("inventory")
    script_dir = defaults.get("script_dir")
    timeout = defaults.get("timeout")
    connect_timeout = defaults.get("connect_timeout")
    aws_region = defaults.get("aws_region")
    aws_profile = defaults.get("aws_profile")
    return KobeConfig(
        endpoint=str(endpoint) if endpoint else None,
        service=str(defaults.get("service", DEFAULT_SERVICE)),
        inventory=_relative_to(path, inventory),
        script_dir=_relative_to(path, script_dir),
        timeout=float(timeout) if timeout is not None else None,
        connect_timeout=float(connect_timeout) if connect_timeout is not None else None,
        aws_region=str(aws_region) if aws_region else None,
        aws_profile=str(aws_profile) if aws_profile else None,
    )


def _relative_to(config_path: Path, value: Optional[str]) -> Optional[Path]:
    if not value:
        return None
    candidate = Path(value).expanduser()
    if not candidate.is_absolute():
        candidate = config_path.parent / candidate
    return candidate
