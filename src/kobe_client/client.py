from __future__ import annotations

import logging
from typing import Any, Callable, Optional

import grpc

from .connection import Connection
from .errors import NotFoundError, RemoteError
from .schema import adhoc_to_message, playbook_to_message, result_from_message
from .types import RunAdhocRequest, RunPlaybookRequest, TaskHandle, TaskResult

logger = logging.getLogger(__name__)


class TaskClient:
    """Typed operations of the kobe service over an open connection.

    The client keeps no record of submitted tasks; every returned
    :class:`TaskHandle` must be stored by the caller. ``timeout`` sets the
    default per-call deadline in seconds and may be overridden per call.
    """

    def __init__(self, connection: Connection, *, timeout: Optional[float] = None):
        self.connection = connection
        self.timeout = timeout

    def submit_adhoc(self, request: RunAdhocRequest, *, timeout: Optional[float] = None) -> TaskHandle:
        msgs = self._messages()
        message = adhoc_to_message(msgs, request)
        logger.debug(
            "RunAdhoc pattern=%s module=%s hosts=%d",
            request.pattern,
            request.module,
            len(request.inventory.hosts),
        )
        response = self._call("RunAdhoc", message, msgs.RunAdhocResult.FromString, timeout)
        return self._handle_from(response, "RunAdhoc")

    def submit_playbook(self, request: RunPlaybookRequest, *, timeout: Optional[float] = None) -> TaskHandle:
        msgs = self._messages()
        message = playbook_to_message(msgs, request)
        logger.debug(
            "RunPlaybook project=%s playbook=%s tag=%s hosts=%d",
            request.project,
            request.playbook,
            request.tag,
            len(request.inventory.hosts),
        )
        response = self._call("RunPlaybook", message, msgs.RunPlaybookResult.FromString, timeout)
        return self._handle_from(response, "RunPlaybook")

    def fetch_result(self, task_id: str, *, timeout: Optional[float] = None) -> TaskResult:
        msgs = self._messages()
        message = msgs.GetResultRequest(taskId=task_id)
        logger.debug("GetResult task=%s", task_id)
        response = self._call(
            "GetResult",
            message,
            msgs.GetResultResponse.FromString,
            timeout,
            task_id=task_id,
        )
        if not response.HasField("item"):
            raise NotFoundError(task_id)
        result = result_from_message(response.item)
        if not result.id:
            result.id = task_id
        logger.debug("GetResult task=%s finished=%s success=%s", task_id, result.finished, result.success)
        return result

    def _messages(self):
        # Checked before any marshalling.
        self.connection.ensure_open()
        return self.connection.messages

    def _call(
        self,
        method: str,
        message: Any,
        deserializer: Callable[[bytes], Any],
        timeout: Optional[float],
        *,
        task_id: Optional[str] = None,
    ) -> Any:
        stub = self.connection.channel.unary_unary(
            self.connection.method(method),
            request_serializer=_serialize,
            response_deserializer=deserializer,
        )
        effective = self.timeout if timeout is None else timeout
        try:
            return stub(message, timeout=effective)
        except grpc.RpcError as exc:
            if task_id is not None and exc.code() == grpc.StatusCode.NOT_FOUND:
                raise NotFoundError(task_id, exc.details()) from None
            raise _remote_error(method, exc) from None

    @staticmethod
    def _handle_from(response: Any, method: str) -> TaskHandle:
        if not response.HasField("result") or not response.result.id:
            raise RemoteError(f"{method} returned no task id")
        task_id = response.result.id
        logger.debug("%s accepted as task %s", method, task_id)
        return TaskHandle(id=task_id)


def _serialize(message: Any) -> bytes:
    return message.SerializeToString()


def _remote_error(method: str, exc: grpc.RpcError) -> RemoteError:
    code = exc.code()
    code_name = code.name if code is not None else "UNKNOWN"
    details = exc.details() or ""
    message = f"{method} failed: {code_name}"
    if details:
        message = f"{message} - {details}"
    return RemoteError(message, code=code_name, details=details)
