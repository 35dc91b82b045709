"""Protobuf messages of the kobe service and conversions to the client types.

The message layout mirrors the service's ``kobe.proto``. Descriptors are
assembled at runtime into a private descriptor pool, once per proto package.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

from .types import (
    Group,
    Host,
    Inventory,
    ProxyConfig,
    RunAdhocRequest,
    RunPlaybookRequest,
    TaskResult,
)

_FDP = descriptor_pb2.FieldDescriptorProto

STRING = _FDP.TYPE_STRING
INT32 = _FDP.TYPE_INT32
BOOL = _FDP.TYPE_BOOL

# (field name, number, type, repeated, message type or None)
MESSAGES: dict[str, list[tuple[str, int, int, bool, Any]]] = {
    "ProxyConfig": [
        ("enable", 1, BOOL, False, None),
        ("user", 2, STRING, False, None),
        ("password", 3, STRING, False, None),
        ("ip", 4, STRING, False, None),
        ("port", 5, INT32, False, None),
    ],
    "Host": [
        ("ip", 1, STRING, False, None),
        ("name", 2, STRING, False, None),
        ("port", 3, INT32, False, None),
        ("user", 4, STRING, False, None),
        ("password", 5, STRING, False, None),
        ("privateKey", 6, STRING, False, None),
        ("proxyConfig", 7, None, False, "ProxyConfig"),
        ("vars", 8, None, True, "map"),
    ],
    "Group": [
        ("name", 1, STRING, False, None),
        ("children", 2, STRING, True, None),
        ("vars", 3, None, True, "map"),
        ("hosts", 4, STRING, True, None),
    ],
    "Inventory": [
        ("hosts", 1, None, True, "Host"),
        ("groups", 2, None, True, "Group"),
        ("vars", 3, None, True, "map"),
    ],
    "Result": [
        ("id", 1, STRING, False, None),
        ("startTime", 2, STRING, False, None),
        ("endTime", 3, STRING, False, None),
        ("message", 4, STRING, False, None),
        ("success", 5, BOOL, False, None),
        ("finished", 6, BOOL, False, None),
        ("content", 7, STRING, False, None),
        ("project", 8, STRING, False, None),
    ],
    "RunPlaybookRequest": [
        ("project", 1, STRING, False, None),
        ("playbook", 2, STRING, False, None),
        ("inventory", 3, None, False, "Inventory"),
        ("tag", 4, STRING, False, None),
        ("content", 5, STRING, False, None),
    ],
    "RunPlaybookResult": [
        ("result", 1, None, False, "Result"),
    ],
    "RunAdhocRequest": [
        ("inventory", 1, None, False, "Inventory"),
        ("pattern", 2, STRING, False, None),
        ("module", 3, STRING, False, None),
        ("param", 4, STRING, False, None),
    ],
    "RunAdhocResult": [
        ("result", 1, None, False, "Result"),
    ],
    "GetResultRequest": [
        ("taskId", 1, STRING, False, None),
    ],
    "GetResultResponse": [
        ("item", 1, None, False, "Result"),
    ],
}


class Messages:
    """Message classes of one proto package, exposed as attributes."""

    def __init__(self, package: str, classes: dict[str, Any]):
        self.package = package
        for name, cls in classes.items():
            setattr(self, name, cls)


def _map_entry(field_name: str) -> descriptor_pb2.DescriptorProto:
    entry = descriptor_pb2.DescriptorProto(name=f"{field_name.capitalize()}Entry")
    entry.options.map_entry = True
    entry.field.add(name="key", number=1, type=STRING, label=_FDP.LABEL_OPTIONAL)
    entry.field.add(name="value", number=2, type=STRING, label=_FDP.LABEL_OPTIONAL)
    return entry


def _file_descriptor(package: str) -> descriptor_pb2.FileDescriptorProto:
    fdp = descriptor_pb2.FileDescriptorProto(
        name=f"{package.replace('.', '/')}/kobe.proto",
        package=package,
        syntax="proto3",
    )
    for message_name, fields in MESSAGES.items():
        message = fdp.message_type.add(name=message_name)
        for field_name, number, field_type, repeated, type_ref in fields:
            label = _FDP.LABEL_REPEATED if repeated else _FDP.LABEL_OPTIONAL
            if type_ref == "map":
                entry = _map_entry(field_name)
                message.nested_type.append(entry)
                message.field.add(
                    name=field_name,
                    number=number,
                    label=label,
                    type=_FDP.TYPE_MESSAGE,
                    type_name=f".{package}.{message_name}.{entry.name}",
                )
            elif type_ref is not None:
                message.field.add(
                    name=field_name,
                    number=number,
                    label=label,
                    type=_FDP.TYPE_MESSAGE,
                    type_name=f".{package}.{type_ref}",
                )
            else:
                message.field.add(name=field_name, number=number, label=label, type=field_type)
    return fdp


@lru_cache(maxsize=None)
def messages_for(package: str) -> Messages:
    pool = descriptor_pool.DescriptorPool()
    pool.AddSerializedFile(_file_descriptor(package).SerializeToString())
    classes = {
        name: message_factory.GetMessageClass(pool.FindMessageTypeByName(f"{package}.{name}"))
        for name in MESSAGES
    }
    return Messages(package=package, classes=classes)


# Client types -> messages ---------------------------------------------------
def host_to_message(msgs: Messages, host: Host):
    message = msgs.Host(
        ip=host.ip,
        name=host.name,
        port=host.port,
        user=host.user,
        password=host.password,
        privateKey=host.private_key,
        vars=dict(host.vars),
    )
    proxy = host.proxy_config
    if proxy is not None:
        message.proxyConfig.CopyFrom(
            msgs.ProxyConfig(
                enable=proxy.enable,
                user=proxy.user,
                password=proxy.password,
                ip=proxy.ip,
                port=proxy.port,
            )
        )
    return message


def group_to_message(msgs: Messages, group: Group):
    return msgs.Group(
        name=group.name,
        children=list(group.children),
        vars=dict(group.vars),
        hosts=list(group.hosts),
    )


def inventory_to_message(msgs: Messages, inventory: Inventory):
    return msgs.Inventory(
        hosts=[host_to_message(msgs, host) for host in inventory.hosts],
        groups=[group_to_message(msgs, group) for group in inventory.groups],
        vars=dict(inventory.vars),
    )


def adhoc_to_message(msgs: Messages, request: RunAdhocRequest):
    return msgs.RunAdhocRequest(
        inventory=inventory_to_message(msgs, request.inventory),
        pattern=request.pattern,
        module=request.module,
        param=request.param,
    )


def playbook_to_message(msgs: Messages, request: RunPlaybookRequest):
    return msgs.RunPlaybookRequest(
        project=request.project,
        playbook=request.playbook,
        inventory=inventory_to_message(msgs, request.inventory),
        tag=request.tag,
        content=request.content,
    )


# Messages -> client types ---------------------------------------------------
def host_from_message(message) -> Host:
    proxy = None
    if message.HasField("proxyConfig"):
        raw = message.proxyConfig
        proxy = ProxyConfig(
            enable=raw.enable,
            user=raw.user,
            password=raw.password,
            ip=raw.ip,
            port=raw.port,
        )
    return Host(
        ip=message.ip,
        name=message.name,
        port=message.port,
        user=message.user,
        password=message.password,
        private_key=message.privateKey,
        proxy_config=proxy,
        vars=dict(message.vars),
    )


def inventory_from_message(message) -> Inventory:
    return Inventory(
        hosts=[host_from_message(host) for host in message.hosts],
        groups=[
            Group(
                name=group.name,
                hosts=list(group.hosts),
                children=list(group.children),
                vars=dict(group.vars),
            )
            for group in message.groups
        ],
        vars=dict(message.vars),
    )


def result_from_message(message) -> TaskResult:
    return TaskResult(
        success=message.success,
        message=message.message,
        content=message.content,
        id=message.id,
        finished=message.finished,
        start_time=message.startTime,
        end_time=message.endTime,
        project=message.project,
    )
