"""Assemble kobe requests from explicit parameters.

Nothing here touches the filesystem or the network: script and playbook
bodies arrive as already-loaded text.
"""

from __future__ import annotations

from .types import Inventory, RunAdhocRequest, RunPlaybookRequest


def build_adhoc_request(
    inventory: Inventory,
    pattern: str,
    module: str,
    script_body: str,
) -> RunAdhocRequest:
    _require_targets(inventory)
    _require("pattern", pattern)
    _require("module", module)
    return RunAdhocRequest(
        inventory=inventory,
        pattern=pattern,
        module=module,
        param=script_body,
    )


def build_playbook_request(
    inventory: Inventory,
    project: str,
    playbook_name: str,
    tag: str,
    playbook_body: str,
) -> RunPlaybookRequest:
    _require_targets(inventory)
    _require("project", project)
    _require("playbook", playbook_name)
    return RunPlaybookRequest(
        inventory=inventory,
        project=project,
        playbook=playbook_name,
        tag=tag,
        content=playbook_body,
    )


def _require_targets(inventory: Inventory) -> None:
    if inventory.is_empty():
        raise ValueError("Inventory must define at least one host or group")


def _require(name: str, value: str) -> None:
    if not value or not value.strip():
        raise ValueError(f"{name} must not be empty")
