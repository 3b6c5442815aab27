"""HTTP echo server: the request/reply transport"""

import logging
from typing import Optional

import requests
from flask import Flask, request
from werkzeug.serving import make_server

from racebench.core.errors import BindError, OperationTimeout, TransportError
from racebench.servers.base import EchoListener, Transport


ECHO_PATH = '/echo'


def create_echo_app() -> Flask:
    """Flask app bouncing the request body back"""
    app = Flask(__name__)

    @app.route(ECHO_PATH, methods=['POST'])
    def echo():
        return request.get_data(), 200, {'Content-Type': 'application/octet-stream'}

    return app


def create_http_session():
    """Create HTTP session for talking to echo servers"""
    session = requests.Session()
    adapter = requests.adapters.HTTPAdapter(
        pool_connections=10,
        pool_maxsize=100,
        max_retries=0,
    )
    session.mount('http://', adapter)
    return session


def _stop(server):
    server.shutdown()
    server.server_close()


class HTTPTransport(Transport):
    """Request/reply transport backed by Flask and requests"""

    role = 'request_reply'
    protocol = 'http'

    def __init__(self):
        # Disable per-request werkzeug logging
        logging.getLogger('werkzeug').setLevel(logging.ERROR)

    def listen(self, host, port, logger: Optional[logging.Logger] = None) -> EchoListener:
        try:
            server = make_server(host, port, create_echo_app(), threaded=True)
        except OSError as e:
            raise BindError(self.role, host, port, str(e)) from e
        except SystemExit as e:
            # werkzeug prints the reason and exits when the bind fails
            raise BindError(self.role, host, port, 'address unavailable') from e

        return EchoListener(
            self.role,
            self.protocol,
            host,
            port,
            serve=server.serve_forever,
            shutdown=lambda: _stop(server),
            logger=logger,
        ).start()

    def roundtrip(self, host, port, payload, timeout):
        # A fresh connection per request, like a one-shot HTTP client
        try:
            response = requests.post(
                f"http://{host}:{port}{ECHO_PATH}",
                data=payload,
                headers={'Content-Type': 'application/octet-stream'},
                timeout=timeout,
            )
        except requests.Timeout as e:
            raise OperationTimeout(self.role, f"no reply within {timeout}s") from e
        except requests.RequestException as e:
            raise TransportError(self.role, str(e)) from e

        if response.status_code != 200:
            raise TransportError(self.role, f"HTTP {response.status_code} from {host}:{port}")
        return response.content
