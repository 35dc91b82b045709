from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Optional, Union
from urllib.parse import urlsplit

import grpc

from .errors import ConnectionFailedError
from .schema import Messages, messages_for

logger = logging.getLogger(__name__)

DEFAULT_SERVICE = "api.KobeApi"


@dataclass(frozen=True)
class Endpoint:
    host: str
    port: int

    @classmethod
    def parse(cls, text: str) -> "Endpoint":
        """Parse ``host:port`` or ``http://host:port``.

        Channels are plaintext only, so any other scheme is rejected.
        """

        raw = text.strip()
        if "://" not in raw:
            raw = f"//{raw}"
        parts = urlsplit(raw)
        if parts.scheme not in ("", "http"):
            raise ValueError(f"Unsupported scheme '{parts.scheme}' in endpoint '{text}' (plaintext only)")
        try:
            port = parts.port
        except ValueError:
            raise ValueError(f"Invalid port in endpoint '{text}'") from None
        if not parts.hostname or port is None:
            raise ValueError(f"Endpoint '{text}' must look like host:port")
        return cls(host=parts.hostname, port=port)

    @property
    def target(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{host}:{self.port}"

    def __str__(self) -> str:
        return self.target


class Connection:
    """An open channel to the kobe service.

    The channel may be shared by concurrent callers. Close it with
    :meth:`close` or use the connection as a context manager.
    """

    def __init__(self, endpoint: Endpoint, channel: grpc.Channel, *, service: str = DEFAULT_SERVICE):
        self.endpoint = endpoint
        self.service = service
        self.messages: Messages = messages_for(service.rpartition(".")[0])
        self._channel: Optional[grpc.Channel] = channel

    @property
    def closed(self) -> bool:
        return self._channel is None

    @property
    def channel(self) -> grpc.Channel:
        self.ensure_open()
        assert self._channel is not None
        return self._channel

    def ensure_open(self) -> None:
        if self._channel is None:
            raise ConnectionFailedError(f"Connection to {self.endpoint} is closed")

    def method(self, name: str) -> str:
        return f"/{self.service}/{name}"

    def close(self) -> None:
        channel, self._channel = self._channel, None
        if channel is not None:
            logger.debug("Closing channel to %s", self.endpoint)
            channel.close()

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def connect(
    endpoint: Union[Endpoint, str],
    *,
    timeout: Optional[float] = None,
    service: str = DEFAULT_SERVICE,
) -> Connection:
    """Open a channel to ``endpoint`` and wait until it is ready.

    Raises :class:`ConnectionFailedError` on the first failed connection
    attempt, or when the channel is not ready within ``timeout`` seconds
    (``None`` leaves the wait unbounded). The attempt is not retried.
    """

    if isinstance(endpoint, str):
        endpoint = Endpoint.parse(endpoint)
    if "." not in service:
        raise ValueError(f"Service name '{service}' must be qualified with its proto package")

    logger.info("Connecting to kobe service at %s", endpoint)
    channel = grpc.insecure_channel(endpoint.target)
    try:
        state = _wait_for_ready(channel, timeout)
    except BaseException:
        channel.close()
        raise
    if state is not grpc.ChannelConnectivity.READY:
        channel.close()
        reason = "timed out" if state is None else state.name.lower().replace("_", " ")
        raise ConnectionFailedError(f"Unable to reach kobe service at {endpoint} ({reason})")
    return Connection(endpoint, channel, service=service)


def _wait_for_ready(channel: grpc.Channel, timeout: Optional[float]) -> Optional[grpc.ChannelConnectivity]:
    """Return the first settled connectivity state, or ``None`` on timeout."""

    settled = {
        grpc.ChannelConnectivity.READY,
        grpc.ChannelConnectivity.TRANSIENT_FAILURE,
        grpc.ChannelConnectivity.SHUTDOWN,
    }
    reached: list[grpc.ChannelConnectivity] = []
    done = threading.Event()

    def _on_change(state: grpc.ChannelConnectivity) -> None:
        if state in settled and not done.is_set():
            reached.append(state)
            done.set()

    channel.subscribe(_on_change, try_to_connect=True)
    try:
        if not done.wait(timeout):
            return None
    finally:
        channel.unsubscribe(_on_change)
    return reached[0]
