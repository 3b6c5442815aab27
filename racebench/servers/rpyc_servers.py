"""RPyC echo service: the fast transport"""

import logging
import socket
from typing import Optional

import rpyc
from rpyc.core.async_ import AsyncResultTimeout
from rpyc.utils.server import ThreadedServer

from racebench.core.config import DEFAULT_TIMEOUT
from racebench.core.errors import BindError, OperationTimeout, TransportError
from racebench.servers.base import EchoListener, Transport


class EchoService(rpyc.Service):
    """RPyC service returning whatever it receives"""

    def exposed_echo(self, data):
        """Echo data back unmodified"""
        return data


def _protocol_config(timeout):
    return {
        'allow_public_attrs': False,
        'allow_pickle': False,
        'sync_request_timeout': timeout,
    }


def create_rpyc_connection(host='localhost', port=18812, timeout=DEFAULT_TIMEOUT):
    """Create RPyC connection to an echo service"""
    return rpyc.connect(host, port, config=_protocol_config(timeout))


class RPyCTransport(Transport):
    """Fast transport backed by an RPyC ThreadedServer"""

    role = 'fast'
    protocol = 'rpyc'

    def __init__(self, timeout: float = DEFAULT_TIMEOUT):
        # Server-side sync_request_timeout for the echo service
        self.timeout = timeout

    def listen(self, host, port, logger: Optional[logging.Logger] = None) -> EchoListener:
        try:
            # ThreadedServer binds in its constructor
            server = ThreadedServer(
                EchoService,
                hostname=host,
                port=port,
                reuse_addr=True,
                protocol_config=_protocol_config(self.timeout),
                logger=logging.getLogger(f"{__name__}.{port}"),
            )
        except OSError as e:
            raise BindError(self.role, host, port, str(e)) from e

        return EchoListener(
            self.role,
            self.protocol,
            host,
            port,
            serve=server.start,
            shutdown=server.close,
            logger=logger,
        ).start()

    def roundtrip(self, host, port, payload, timeout):
        try:
            conn = create_rpyc_connection(host, port, timeout=timeout)
        except socket.timeout as e:
            raise OperationTimeout(self.role, f"connect to {host}:{port} timed out") from e
        except OSError as e:
            raise TransportError(self.role, f"connect to {host}:{port} failed: {e}") from e

        try:
            return conn.root.echo(payload)
        except AsyncResultTimeout as e:
            raise OperationTimeout(self.role, f"no reply within {timeout}s") from e
        except (EOFError, OSError) as e:
            raise TransportError(self.role, f"connection lost: {e}") from e
        finally:
            conn.close()
