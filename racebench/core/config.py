"""Run configuration, port derivation and payload fixtures"""

import os
from dataclasses import dataclass, asdict
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

from racebench.core.errors import ConfigurationError


FIXTURES_DIR = Path(__file__).resolve().parent.parent / 'fixtures'

DEFAULT_INSTANCE_COUNT = 1
DEFAULT_BASE_PORT = 8000
DEFAULT_BIND_ADDRESS = '0.0.0.0'
DEFAULT_TIMEOUT = 30.0


class PayloadSize(Enum):
    """Payload size classes; values name the fixture files (``<value>kb``)"""

    TINY = '0'
    KB1 = '1'
    KB10 = '10'
    KB100 = '100'

    @classmethod
    def parse(cls, value) -> 'PayloadSize':
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        if text == 'tiny':
            return cls.TINY
        if text.endswith('kb'):
            text = text[:-2]
        for member in cls:
            if member.value == text:
                return member
        raise ConfigurationError(
            f"Unknown payload size {value!r} (expected one of 0, 1, 10, 100)"
        )

    @property
    def fixture_name(self) -> str:
        return f"{self.value}kb"


@dataclass(frozen=True)
class PortTriple:
    """Ports of one instance, one per transport role"""

    fast: int
    request_reply: int
    persistent: int

    def for_role(self, role: str) -> int:
        return getattr(self, role)

    def as_tuple(self) -> Tuple[int, int, int]:
        return (self.fast, self.request_reply, self.persistent)


@dataclass(frozen=True)
class RunConfiguration:
    """Immutable settings for one process invocation"""

    instance_count: int = DEFAULT_INSTANCE_COUNT
    base_port: int = DEFAULT_BASE_PORT
    bind_address: str = DEFAULT_BIND_ADDRESS
    payload_size: PayloadSize = PayloadSize.TINY
    timeout: float = DEFAULT_TIMEOUT

    def __post_init__(self):
        if self.instance_count < 1:
            raise ConfigurationError(
                f"instance_count must be at least 1, got {self.instance_count}"
            )
        if self.timeout <= 0:
            raise ConfigurationError(f"timeout must be positive, got {self.timeout}")
        last_port = self.base_port + 3 * self.instance_count - 1
        if self.base_port < 1 or last_port > 65535:
            raise ConfigurationError(
                f"ports {self.base_port}-{last_port} fall outside 1-65535"
            )
        # Accept raw strings such as '10' from callers
        object.__setattr__(self, 'payload_size', PayloadSize.parse(self.payload_size))

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        **overrides: Any,
    ) -> 'RunConfiguration':
        """
        Resolve configuration from environment variables.

        NUM_SPINUPS, START_PORT, ADDRESS, DATA_SIZE and RACE_TIMEOUT are read
        from ``environ`` (``os.environ`` by default). Keyword overrides that
        are not None win over the environment.
        """
        environ = os.environ if environ is None else environ

        values = {
            'instance_count': _env_number(environ, 'NUM_SPINUPS', int, DEFAULT_INSTANCE_COUNT),
            'base_port': _env_number(environ, 'START_PORT', int, DEFAULT_BASE_PORT),
            'bind_address': environ.get('ADDRESS') or DEFAULT_BIND_ADDRESS,
            'payload_size': environ.get('DATA_SIZE') or PayloadSize.TINY,
            'timeout': _env_number(environ, 'RACE_TIMEOUT', float, DEFAULT_TIMEOUT),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def port_triple(self, index: int) -> PortTriple:
        """Ports for instance ``index``; disjoint across roles and instances"""
        if not 0 <= index < self.instance_count:
            raise IndexError(f"instance index {index} out of range")
        fast = self.base_port + index
        return PortTriple(
            fast=fast,
            request_reply=fast + self.instance_count,
            persistent=fast + 2 * self.instance_count,
        )

    def port_triples(self) -> Iterator[Tuple[int, PortTriple]]:
        for index in range(self.instance_count):
            yield index, self.port_triple(index)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['payload_size'] = self.payload_size.fixture_name
        return data


def _env_number(environ, name, cast, default):
    raw = environ.get(name)
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigurationError(f"{name}={raw!r} is not a valid {cast.__name__}") from None


def load_payload(size, fixtures_dir: Optional[Path] = None) -> bytes:
    """Read the payload fixture for ``size`` once, as bytes"""
    size = PayloadSize.parse(size)
    path = Path(fixtures_dir or FIXTURES_DIR) / size.fixture_name
    try:
        return path.read_bytes()
    except FileNotFoundError:
        raise ConfigurationError(f"Payload fixture not found: {path}") from None
