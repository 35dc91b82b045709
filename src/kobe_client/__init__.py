"""Client library for the kobe remote automation service."""

from .builder import build_adhoc_request, build_playbook_request
from .client import TaskClient
from .connection import Connection, Endpoint, connect
from .errors import (
    ConnectionFailedError,
    CredentialError,
    KobeError,
    NotFoundError,
    RemoteError,
    ScriptLoadError,
)
from .inventory import InventoryLoader
from .types import (
    Group,
    Host,
    Inventory,
    ProxyConfig,
    RunAdhocRequest,
    RunPlaybookRequest,
    TaskHandle,
    TaskResult,
)

__all__ = [
    "Connection",
    "ConnectionFailedError",
    "CredentialError",
    "Endpoint",
    "Group",
    "Host",
    "Inventory",
    "InventoryLoader",
    "KobeError",
    "NotFoundError",
    "ProxyConfig",
    "RemoteError",
    "RunAdhocRequest",
    "RunPlaybookRequest",
    "ScriptLoadError",
    "TaskClient",
    "TaskHandle",
    "TaskResult",
    "build_adhoc_request",
    "build_playbook_request",
    "connect",
]
