"""Echo servers and clients for the three raced transports"""

from racebench.core.config import DEFAULT_TIMEOUT
from racebench.servers.base import EchoListener, Transport, TransportSet, wait_for_port
from racebench.servers.rpyc_servers import RPyCTransport
from racebench.servers.http_servers import HTTPTransport
from racebench.servers.ws_servers import WebSocketTransport


def default_transports(timeout: float = DEFAULT_TIMEOUT) -> TransportSet:
    """RPyC as the fast transport, HTTP as request/reply, WebSocket as persistent"""
    return TransportSet(
        fast=RPyCTransport(timeout=timeout),
        request_reply=HTTPTransport(),
        persistent=WebSocketTransport(),
    )


__all__ = [
    'EchoListener',
    'Transport',
    'TransportSet',
    'RPyCTransport',
    'HTTPTransport',
    'WebSocketTransport',
    'default_transports',
    'wait_for_port',
]
