from __future__ import annotations

from pathlib import Path
from typing import Any, Optional, Union

import jinja2

from .errors import ScriptLoadError

PathLike = Union[str, Path]


def read_text(path: PathLike) -> str:
    """Read a script or playbook body."""

    target = Path(path).expanduser()
    try:
        return target.read_text()
    except (OSError, UnicodeDecodeError) as exc:
        raise ScriptLoadError(f"Unable to read {target}: {exc}") from exc


def read_private_key(path: PathLike) -> str:
    target = Path(path).expanduser()
    try:
        return target.read_text()
    except (OSError, UnicodeDecodeError) as exc:
        raise ScriptLoadError(f"Unable to read private key {target}: {exc}") from exc


def resolve_script_path(path: PathLike, script_dir: Optional[Path]) -> Path:
    candidate = Path(path).expanduser()
    if script_dir is not None and not candidate.is_absolute():
        return Path(script_dir).expanduser() / candidate
    return candidate


def render_script(text: str, variables: dict[str, Any]) -> str:
    env = jinja2.Environment(undefined=jinja2.StrictUndefined, autoescape=False, keep_trailing_newline=True)
    try:
        return env.from_string(text).render(**variables)
    except jinja2.TemplateError as exc:
        raise ScriptLoadError(f"Unable to render script: {exc}") from exc
