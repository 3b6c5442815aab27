"""Pytest configuration and fixtures"""

import random
import socket
import threading
import time

import pytest

from racebench.core.errors import BindError
from racebench.servers.base import EchoListener, Transport, TransportSet


def find_free_port():
    """Find a free port for testing"""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('', 0))
        s.listen(1)
        port = s.getsockname()[1]
    return port


def _port_is_free(port):
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        try:
            s.bind(('127.0.0.1', port))
        except OSError:
            return False
    return True


def find_free_port_range(count, attempts=50):
    """Find ``count`` consecutive free ports"""
    for _ in range(attempts):
        base = random.randint(20000, 60000 - count)
        if all(_port_is_free(base + offset) for offset in range(count)):
            return base
    raise RuntimeError(f"No {count} consecutive free ports found")


@pytest.fixture
def base_port():
    """First of nine consecutive free ports (three instances)"""
    return find_free_port_range(9)


@pytest.fixture
def port():
    return find_free_port()


@pytest.fixture
def ping_payload():
    return b'ping'


@pytest.fixture
def test_data_small():
    """Small test data (1KB)"""
    return b'x' * 1024


@pytest.fixture
def test_data_large():
    """Large test data (100KB)"""
    return b'x' * 102400


class FakeTransport(Transport):
    """
    In-process transport for harness tests.

    ``reply`` maps the sent payload to the reply, ``delay`` is either a number
    of seconds or a callable of the port, ``error`` is raised instead of
    replying, and ``hang`` blocks until ``release()``.
    """

    def __init__(self, role, protocol='fake', reply=None, delay=0.0, error=None,
                 hang=False, busy_ports=()):
        self.role = role
        self.protocol = protocol
        self.reply = reply or (lambda payload: payload)
        self.delay = delay
        self.error = error
        self.hang = hang
        self.busy_ports = set(busy_ports)
        self.calls = []
        self._released = threading.Event()
        self._lock = threading.Lock()

    def release(self):
        self._released.set()

    def listen(self, host, port, logger=None):
        if port in self.busy_ports:
            raise BindError(self.role, host, port, 'Address already in use')
        stopped = threading.Event()
        return EchoListener(
            self.role, self.protocol, host, port,
            serve=stopped.wait, shutdown=stopped.set, logger=logger,
        ).start()

    def roundtrip(self, host, port, payload, timeout):
        with self._lock:
            self.calls.append((host, port))
        if self.hang:
            self._released.wait(timeout=10)
        delay = self.delay(port) if callable(self.delay) else self.delay
        if delay:
            time.sleep(delay)
        if self.error is not None:
            raise self.error
        return self.reply(payload)


@pytest.fixture
def fake_transports():
    """Three well-behaved fake transports"""
    return TransportSet(
        fast=FakeTransport('fast'),
        request_reply=FakeTransport('request_reply'),
        persistent=FakeTransport('persistent'),
    )


def make_transports(**overrides):
    transports = {
        'fast': FakeTransport('fast'),
        'request_reply': FakeTransport('request_reply'),
        'persistent': FakeTransport('persistent'),
    }
    transports.update(overrides)
    return TransportSet(**transports)
