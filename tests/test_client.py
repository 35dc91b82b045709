from concurrent.futures import ThreadPoolExecutor

import grpc
import pytest

from kobe_client.builder import build_adhoc_request, build_playbook_request
from kobe_client.client import TaskClient
from kobe_client.connection import connect
from kobe_client.errors import ConnectionFailedError, NotFoundError, RemoteError
from kobe_client.types import Host, Inventory, TaskHandle

from conftest import FakeKobeServer


@pytest.fixture
def client(kobe_server):
    connection = connect(kobe_server.endpoint, timeout=5)
    try:
        yield TaskClient(connection, timeout=5)
    finally:
        connection.close()


def test_adhoc_echo_scenario(client: TaskClient) -> None:
    inventory = Inventory(hosts=[Host(ip="10.0.0.5", port=22, user="op")], groups=[], vars={})
    request = build_adhoc_request(inventory, "all", "shell", "echo hi")

    handle = client.submit_adhoc(request)
    assert isinstance(handle, TaskHandle)
    assert handle.id

    result = client.fetch_result(handle.id)
    assert result.success is True
    assert result.content == "hi\n"
    assert result.finished is True


def test_adhoc_request_reaches_server(client: TaskClient, kobe_server, inventory: Inventory) -> None:
    client.submit_adhoc(build_adhoc_request(inventory, "web1", "command", "uptime"))

    kind, received = kobe_server.requests[0]
    assert kind == "adhoc"
    assert received.pattern == "web1"
    assert received.inventory.hosts[0].ip == "10.0.0.5"
    assert received.inventory.hosts[0].user == "op"
    assert dict(received.inventory.hosts[0].vars) == {"ansible_connection": "ssh"}


def test_submit_playbook(client: TaskClient, kobe_server, inventory: Inventory) -> None:
    request = build_playbook_request(inventory, "KobeProject", "first", "hello", "- hosts: all\n")

    handle = client.submit_playbook(request)
    result = client.fetch_result(handle.id)

    assert result.content == "ran first\n"
    _, received = kobe_server.requests[0]
    assert received.tag == "hello"
    assert received.content == "- hosts: all\n"


def test_fetch_unknown_id_raises_not_found(client: TaskClient) -> None:
    with pytest.raises(NotFoundError) as excinfo:
        client.fetch_result("unknown-id")
    assert excinfo.value.task_id == "unknown-id"


def test_fetch_never_submitted_id_raises_not_found(client: TaskClient, inventory: Inventory) -> None:
    client.submit_adhoc(build_adhoc_request(inventory, "all", "shell", "echo a"))
    with pytest.raises(NotFoundError):
        client.fetch_result("bf2bec78-bca2-4c42-bb47-c07124076c75")


def test_empty_get_result_response_is_not_found() -> None:
    server = FakeKobeServer(empty_unknown=True)
    server.start()
    try:
        with connect(server.endpoint, timeout=5) as connection:
            with pytest.raises(NotFoundError):
                TaskClient(connection).fetch_result("unknown-id")
    finally:
        server.stop()


def test_rejected_request_raises_remote_error(client: TaskClient, inventory: Inventory) -> None:
    request = build_playbook_request(inventory, "missing", "first", "", "")
    with pytest.raises(RemoteError) as excinfo:
        client.submit_playbook(request)
    assert excinfo.value.code == "FAILED_PRECONDITION"
    assert "does not exist" in str(excinfo.value)


def test_unknown_service_raises_remote_error(kobe_server, inventory: Inventory) -> None:
    with connect(kobe_server.endpoint, timeout=5, service="other.KobeApi") as connection:
        with pytest.raises(RemoteError) as excinfo:
            TaskClient(connection).submit_adhoc(build_adhoc_request(inventory, "all", "shell", "true"))
    assert excinfo.value.code == grpc.StatusCode.UNIMPLEMENTED.name


def test_concurrent_submissions_are_independent(client: TaskClient, inventory: Inventory) -> None:
    requests = [build_adhoc_request(inventory, "all", "shell", f"echo task-{i}") for i in range(2)]

    with ThreadPoolExecutor(max_workers=2) as pool:
        handles = list(pool.map(client.submit_adhoc, requests))

    assert handles[0].id != handles[1].id
    contents = {client.fetch_result(handle.id).content for handle in handles}
    assert contents == {"task-0\n", "task-1\n"}


def test_closed_connection_fails_before_marshalling(kobe_server, inventory: Inventory, monkeypatch) -> None:
    connection = connect(kobe_server.endpoint, timeout=5)
    client = TaskClient(connection)
    connection.close()

    def _fail(*args, **kwargs):
        raise AssertionError("request must not be marshalled")

    monkeypatch.setattr("kobe_client.client.adhoc_to_message", _fail)
    with pytest.raises(ConnectionFailedError):
        client.submit_adhoc(build_adhoc_request(inventory, "all", "shell", "true"))
    assert kobe_server.requests == []


def test_server_gone_raises_remote_error(inventory: Inventory) -> None:
    server = FakeKobeServer()
    server.start()
    connection = connect(server.endpoint, timeout=5)
    server.stop()
    try:
        with pytest.raises(RemoteError) as excinfo:
            TaskClient(connection, timeout=2).submit_adhoc(build_adhoc_request(inventory, "all", "shell", "true"))
        assert excinfo.value.code in {"UNAVAILABLE", "DEADLINE_EXCEEDED"}
    finally:
        connection.close()
