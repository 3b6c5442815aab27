"""Tests for the RPyC, HTTP and WebSocket echo transports"""

import socket

import pytest

from racebench.core.errors import BindError, TransportError
from racebench.servers import (
    HTTPTransport,
    RPyCTransport,
    WebSocketTransport,
    default_transports,
    wait_for_port,
)
from racebench.servers.http_servers import ECHO_PATH, create_http_session
from racebench.servers.rpyc_servers import create_rpyc_connection


TRANSPORTS = [RPyCTransport, HTTPTransport, WebSocketTransport]


@pytest.fixture(params=TRANSPORTS, ids=lambda cls: cls.protocol)
def transport(request):
    return request.param()


class TestEchoRoundTrip:
    """Test every transport echoes payloads verbatim"""

    def test_tiny_payload(self, transport, port, ping_payload):
        with transport.listen('127.0.0.1', port):
            wait_for_port('127.0.0.1', port)

            reply = transport.roundtrip('127.0.0.1', port, ping_payload, timeout=5)

        assert reply == ping_payload
        assert isinstance(reply, bytes)

    def test_large_payload(self, transport, port, test_data_large):
        with transport.listen('127.0.0.1', port):
            wait_for_port('127.0.0.1', port)

            reply = transport.roundtrip('127.0.0.1', port, test_data_large, timeout=5)

        assert reply == test_data_large

    def test_binary_payload(self, transport, port):
        """Test non-text bytes survive the round trip"""
        payload = bytes(range(256)) * 4

        with transport.listen('127.0.0.1', port):
            wait_for_port('127.0.0.1', port)

            assert transport.roundtrip('127.0.0.1', port, payload, timeout=5) == payload

    def test_repeated_round_trips(self, transport, port, test_data_small):
        """Test one listener serves several one-shot clients"""
        with transport.listen('127.0.0.1', port):
            wait_for_port('127.0.0.1', port)

            for _ in range(5):
                assert transport.roundtrip('127.0.0.1', port, test_data_small, timeout=5) == test_data_small


class TestTransportErrors:
    """Test failures surface as typed errors"""

    def test_connection_refused(self, transport, port, ping_payload):
        with pytest.raises(TransportError) as excinfo:
            transport.roundtrip('127.0.0.1', port, ping_payload, timeout=2)

        assert excinfo.value.kind == 'TRANSPORT'
        assert excinfo.value.role == transport.role

    def test_bind_error_when_port_taken(self, transport, port):
        """Test a busy port raises BindError instead of crashing"""
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
            blocker.bind(('127.0.0.1', port))
            blocker.listen(1)

            with pytest.raises(BindError) as excinfo:
                transport.listen('127.0.0.1', port)

        assert excinfo.value.kind == 'BIND'
        assert excinfo.value.port == port


class TestListenerLifecycle:
    """Test listeners start on daemon threads and stop cleanly"""

    def test_close_frees_port(self, transport, port):
        listener = transport.listen('127.0.0.1', port)
        wait_for_port('127.0.0.1', port)
        assert listener.is_alive

        listener.close()

        assert not listener.is_alive

    def test_listening_log_line(self, transport, port, caplog):
        caplog.set_level('INFO')

        with transport.listen('127.0.0.1', port):
            pass

        assert f"server listening at: 127.0.0.1:{port}" in caplog.text


class TestBackendClients:
    """Test the backend-specific client helpers"""

    def test_rpyc_connection(self, port):
        with RPyCTransport().listen('127.0.0.1', port):
            wait_for_port('127.0.0.1', port)

            conn = create_rpyc_connection('127.0.0.1', port, timeout=5)
            try:
                assert conn.root.echo(b"hello world") == b"hello world"
            finally:
                conn.close()

    def test_rpyc_server_uses_configured_timeout(self, port, monkeypatch):
        """Test the echo service gets the transport timeout as sync_request_timeout"""
        from racebench.servers import rpyc_servers

        seen = {}
        real_server = rpyc_servers.ThreadedServer

        def recording_server(*args, **kwargs):
            seen.update(kwargs['protocol_config'])
            return real_server(*args, **kwargs)

        monkeypatch.setattr(rpyc_servers, 'ThreadedServer', recording_server)

        with RPyCTransport(timeout=7.5).listen('127.0.0.1', port):
            wait_for_port('127.0.0.1', port)

        assert seen['sync_request_timeout'] == 7.5

    def test_http_session(self, port):
        with HTTPTransport().listen('127.0.0.1', port):
            wait_for_port('127.0.0.1', port)

            session = create_http_session()
            try:
                response = session.post(f'http://127.0.0.1:{port}{ECHO_PATH}', data=b"hello world")
            finally:
                session.close()

        assert response.status_code == 200
        assert response.content == b"hello world"

    def test_http_rejects_get(self, port):
        with HTTPTransport().listen('127.0.0.1', port):
            wait_for_port('127.0.0.1', port)

            session = create_http_session()
            try:
                response = session.get(f'http://127.0.0.1:{port}{ECHO_PATH}')
            finally:
                session.close()

        assert response.status_code == 405


def test_default_transports():
    transports = default_transports()

    assert transports.protocols() == {
        'fast': 'rpyc',
        'request_reply': 'http',
        'persistent': 'websocket',
    }
    assert [role for role, _ in transports.items()] == ['fast', 'request_reply', 'persistent']


def test_default_transports_timeout():
    assert default_transports(timeout=3.0).fast.timeout == 3.0


def test_werkzeug_declared():
    """Test werkzeug, imported directly by the HTTP server, is a declared requirement"""
    from importlib.metadata import PackageNotFoundError, requires

    try:
        requirements = requires('racebench') or []
    except PackageNotFoundError:
        pytest.skip("racebench is not installed")

    names = {req.split(';')[0].split('>')[0].split('=')[0].strip().lower() for req in requirements}
    assert 'werkzeug' in names
