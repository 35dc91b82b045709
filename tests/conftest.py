from __future__ import annotations

import threading
import uuid
from concurrent import futures

import grpc
import pytest

from kobe_client.connection import DEFAULT_SERVICE
from kobe_client.schema import messages_for
from kobe_client.types import Host, Inventory


class FakeKobeServer:
    """In-process kobe service that completes every task immediately."""

    def __init__(self, *, service: str = DEFAULT_SERVICE, empty_unknown: bool = False):
        self.service = service
        self.empty_unknown = empty_unknown
        self.msgs = messages_for(service.rpartition(".")[0])
        self.results: dict[str, object] = {}
        self.requests: list[tuple[str, object]] = []
        self._lock = threading.Lock()
        self._server = grpc.server(futures.ThreadPoolExecutor(max_workers=8))
        handlers = {
            "RunAdhoc": self._handler(self.run_adhoc, self.msgs.RunAdhocRequest),
            "RunPlaybook": self._handler(self.run_playbook, self.msgs.RunPlaybookRequest),
            "GetResult": self._handler(self.get_result, self.msgs.GetResultRequest),
        }
        self._server.add_generic_rpc_handlers((grpc.method_handlers_generic_handler(service, handlers),))
        self.port = self._server.add_insecure_port("127.0.0.1:0")

    @staticmethod
    def _handler(fn, request_cls):
        return grpc.unary_unary_rpc_method_handler(
            fn,
            request_deserializer=request_cls.FromString,
            response_serializer=lambda msg: msg.SerializeToString(),
        )

    @property
    def endpoint(self) -> str:
        return f"127.0.0.1:{self.port}"

    def start(self) -> None:
        self._server.start()

    def stop(self) -> None:
        self._server.stop(None)

    def _complete(self, kind: str, request, content: str, success: bool = True):
        task_id = str(uuid.uuid4())
        result = self.msgs.Result(
            id=task_id,
            success=success,
            finished=True,
            message="done" if success else "failed",
            content=content,
        )
        with self._lock:
            self.requests.append((kind, request))
            self.results[task_id] = result
        return result

    def run_adhoc(self, request, context):
        if not request.pattern:
            context.abort(grpc.StatusCode.INVALID_ARGUMENT, "pattern is required")
        content = ""
        if request.module == "shell" and request.param.startswith("echo "):
            content = request.param[len("echo "):] + "\n"
        result = self._complete("adhoc", request, content)
        return self.msgs.RunAdhocResult(result=result)

    def run_playbook(self, request, context):
        if request.project == "missing":
            context.abort(grpc.StatusCode.FAILED_PRECONDITION, "project missing does not exist")
        result = self._complete("playbook", request, f"ran {request.playbook}\n")
        return self.msgs.RunPlaybookResult(result=result)

    def get_result(self, request, context):
        with self._lock:
            result = self.results.get(request.taskId)
        if result is None:
            if self.empty_unknown:
                return self.msgs.GetResultResponse()
            context.abort(grpc.StatusCode.NOT_FOUND, f"can not find task {request.taskId}")
        return self.msgs.GetResultResponse(item=result)


@pytest.fixture
def kobe_server():
    server = FakeKobeServer()
    server.start()
    try:
        yield server
    finally:
        server.stop()


@pytest.fixture
def inventory() -> Inventory:
    host = Host(ip="10.0.0.5", name="web1", port=22, user="op", vars={"ansible_connection": "ssh"})
    return Inventory(hosts=[host], groups=[], vars={})
