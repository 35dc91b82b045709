from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class ProxyConfig:
    enable: bool = False
    user: str = ""
    password: str = ""
    ip: str = ""
    port: int = 0


@dataclass
class Host:
    ip: str
    name: str = ""
    port: int = 22
    user: str = ""
    password: str = ""
    private_key: str = ""
    proxy_config: Optional[ProxyConfig] = None
    vars: dict[str, str] = field(default_factory=dict)


@dataclass
class Group:
    name: str
    hosts: list[str] = field(default_factory=list)
    children: list[str] = field(default_factory=list)
    vars: dict[str, str] = field(default_factory=dict)


@dataclass
class Inventory:
    hosts: list[Host] = field(default_factory=list)
    groups: list[Group] = field(default_factory=list)
    vars: dict[str, str] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not self.hosts and not self.groups


@dataclass
class RunAdhocRequest:
    inventory: Inventory
    pattern: str
    module: str
    param: str


@dataclass
class RunPlaybookRequest:
    inventory: Inventory
    project: str
    playbook: str
    tag: str
    content: str


@dataclass(frozen=True)
class TaskHandle:
    id: str


@dataclass
class TaskResult:
    success: bool
    message: str
    content: str
    id: str = ""
    finished: bool = False
    start_time: str = ""
    end_time: str = ""
    project: str = ""
