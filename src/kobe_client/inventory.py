from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

try:
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib  # type: ignore[no-redef]

from .errors import ScriptLoadError
from .loaders import read_private_key
from .secrets import SecretResolver
from .types import Group, Host, Inventory, ProxyConfig

logger = logging.getLogger(__name__)

CREDENTIAL_KEYS = ("password", "private_key")


class InventoryLoader:
    """Loads target inventories from TOML files."""

    def __init__(self, resolver: Optional[SecretResolver] = None):
        self.resolver = resolver or SecretResolver()

    def load(self, path: Path) -> Inventory:
        path = Path(path).expanduser()
        try:
            text = path.read_text()
        except (OSError, UnicodeDecodeError) as exc:
            raise ScriptLoadError(f"Unable to read inventory {path}: {exc}") from exc
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            line = getattr(exc, "lineno", "?")
            column = getattr(exc, "colno", "?")
            message = getattr(exc, "msg", str(exc))
            raise ValueError(f"{path}:{line}:{column} {message}") from None

        base_dir = path.parent
        hosts = [
            self._parse_host(name, payload, base_dir)
            for name, payload in data.get("hosts", {}).items()
        ]
        known = {host.name for host in hosts}
        groups = [self._parse_group(name, payload, known) for name, payload in data.get("groups", {}).items()]
        inventory = Inventory(hosts=hosts, groups=groups, vars=_stringify(data.get("vars", {})))
        if inventory.is_empty():
            raise ValueError(f"{path} defines no hosts or groups")
        logger.debug("Loaded inventory %s: %d host(s), %d group(s)", path, len(hosts), len(groups))
        return inventory

    def _parse_host(self, name: str, payload: dict[str, Any], base_dir: Path) -> Host:
        if not isinstance(payload, dict):
            raise ValueError(f"Host '{name}' must be a table")
        ip = payload.get("ip")
        if not ip:
            raise ValueError(f"Host '{name}' is missing an ip")
        credentials = self.resolver.resolve({k: payload[k] for k in CREDENTIAL_KEYS if k in payload})
        private_key = credentials.get("private_key", "")
        key_file = payload.get("private_key_file")
        if key_file and not private_key:
            key_path = Path(str(key_file)).expanduser()
            if not key_path.is_absolute():
                key_path = base_dir / key_path
            private_key = read_private_key(key_path)
        return Host(
            ip=str(ip),
            name=str(payload.get("name", name)),
            port=int(payload.get("port", 22)),
            user=str(payload.get("user", "")),
            password=str(credentials.get("password", "")),
            private_key=str(private_key),
            proxy_config=self._parse_proxy(name, payload.get("proxy")),
            vars=_stringify(payload.get("vars", {})),
        )

    def _parse_proxy(self, host_name: str, raw: Any) -> Optional[ProxyConfig]:
        if raw is None:
            return None
        if not isinstance(raw, dict):
            raise ValueError(f"Host '{host_name}' proxy must be a table")
        resolved = self.resolver.resolve(raw)
        return ProxyConfig(
            enable=bool(resolved.get("enable", True)),
            user=str(resolved.get("user", "")),
            password=str(resolved.get("password", "")),
            ip=str(resolved.get("ip", "")),
            port=int(resolved.get("port", 22)),
        )

    @staticmethod
    def _parse_group(name: str, payload: dict[str, Any], known_hosts: set[str]) -> Group:
        if not isinstance(payload, dict):
            raise ValueError(f"Group '{name}' must be a table")
        members = [str(member) for member in payload.get("hosts", [])]
        unknown = [member for member in members if member not in known_hosts]
        if unknown:
            raise ValueError(f"Group '{name}' references unknown host(s): {', '.join(unknown)}")
        return Group(
            name=name,
            hosts=members,
            children=[str(child) for child in payload.get("children", [])],
            vars=_stringify(payload.get("vars", {})),
        )


def _stringify(values: dict[str, Any]) -> dict[str, str]:
    return {str(k): str(v) for k, v in values.items()}
