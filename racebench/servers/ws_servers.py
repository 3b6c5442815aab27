"""WebSocket echo server: the persistent transport"""

import logging
from typing import Optional

from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI
from websockets.sync.client import connect
from websockets.sync.server import serve

from racebench.core.errors import BindError, OperationTimeout, TransportError
from racebench.servers.base import EchoListener, Transport


def _bounce(websocket):
    """Send every message straight back on the same connection"""
    try:
        for message in websocket:
            websocket.send(message)
    except ConnectionClosed:
        pass


class WebSocketTransport(Transport):
    """Persistent channel backed by the websockets threading implementation"""

    role = 'persistent'
    protocol = 'websocket'

    def listen(self, host, port, logger: Optional[logging.Logger] = None) -> EchoListener:
        try:
            server = serve(
                _bounce,
                host,
                port,
                max_size=None,
                compression=None,
                logger=logging.getLogger(f"{__name__}.{port}"),
            )
        except OSError as e:
            raise BindError(self.role, host, port, str(e)) from e

        return EchoListener(
            self.role,
            self.protocol,
            host,
            port,
            serve=server.serve_forever,
            shutdown=server.shutdown,
            logger=logger,
        ).start()

    def roundtrip(self, host, port, payload, timeout):
        uri = f"ws://{host}:{port}"
        try:
            ws = connect(uri, open_timeout=timeout, max_size=None, compression=None)
        except TimeoutError as e:
            raise OperationTimeout(self.role, f"opening {uri} timed out") from e
        except (OSError, InvalidHandshake, InvalidURI) as e:
            raise TransportError(self.role, f"connect to {uri} failed: {e}") from e

        # One message out, one message back, then close the channel
        with ws:
            try:
                ws.send(payload)
                return ws.recv(timeout=timeout)
            except TimeoutError as e:
                raise OperationTimeout(self.role, f"no reply within {timeout}s") from e
            except (ConnectionClosed, OSError) as e:
                raise TransportError(self.role, f"channel to {uri} lost: {e}") from e
