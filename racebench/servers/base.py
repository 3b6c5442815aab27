"""Transport adapter interface shared by the echo servers and the race runner"""

import logging
import socket
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, Optional, Tuple

from racebench.core.metrics import ROLES


class EchoListener:
    """
    A bound echo server serving on a daemon thread.

    ``serve`` blocks until ``shutdown`` is called from another thread.
    """

    def __init__(
        self,
        role: str,
        protocol: str,
        host: str,
        port: int,
        serve: Callable[[], None],
        shutdown: Callable[[], None],
        logger: Optional[logging.Logger] = None,
    ):
        self.role = role
        self.protocol = protocol
        self.host = host
        self.port = port
        self._serve = serve
        self._shutdown = shutdown
        self._logger = logger or logging.getLogger(__name__)
        self._thread: Optional[threading.Thread] = None

    def start(self) -> 'EchoListener':
        self._thread = threading.Thread(
            target=self._run,
            name=f"{self.role}-{self.port}",
            daemon=True,
        )
        self._thread.start()
        self._logger.info(
            f"{self.role} ({self.protocol}) server listening at: {self.host}:{self.port}"
        )
        return self

    def _run(self):
        try:
            self._serve()
        except Exception as e:
            # The listener stops; its siblings keep serving
            self._logger.error(f"{self.role} server at {self.host}:{self.port} stopped: {e}")

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def close(self, timeout: float = 5):
        self._shutdown()
        if self._thread is not None:
            self._thread.join(timeout=timeout)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class Transport(ABC):
    """One raced transport: an echo server factory plus a one-shot client"""

    role: str = ''
    protocol: str = ''

    @abstractmethod
    def listen(
        self,
        host: str,
        port: int,
        logger: Optional[logging.Logger] = None,
    ) -> EchoListener:
        """Bind ``host:port`` (raising BindError) and start echoing"""

    @abstractmethod
    def roundtrip(self, host: str, port: int, payload: bytes, timeout: float) -> bytes:
        """
        Connect, send ``payload`` once and return the single reply.

        Raises TransportError or OperationTimeout.
        """


@dataclass(frozen=True)
class TransportSet:
    """The three transports raced against each other"""

    fast: Transport
    request_reply: Transport
    persistent: Transport

    def for_role(self, role: str) -> Transport:
        return getattr(self, role)

    def items(self) -> Iterator[Tuple[str, Transport]]:
        for role in ROLES:
            yield role, self.for_role(role)

    def protocols(self) -> Dict[str, str]:
        return {role: transport.protocol for role, transport in self.items()}


def wait_for_port(host: str, port: int, timeout: float = 10) -> bool:
    """Wait until ``host:port`` accepts TCP connections"""
    if host in ('0.0.0.0', ''):
        host = '127.0.0.1'
    start_time = time.time()
    while time.time() - start_time < timeout:
        try:
            with socket.create_connection((host, port), timeout=1):
                return True
        except OSError:
            time.sleep(0.05)

    raise TimeoutError(f"Server not accepting connections at {host}:{port} after {timeout}s")
