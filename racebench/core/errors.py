"""Error taxonomy for races and echo servers"""

from typing import List, Optional


class RaceBenchError(Exception):
    """Base class for all racebench errors"""

    kind = 'ERROR'


class ConfigurationError(RaceBenchError):
    """Invalid run configuration or missing payload fixture"""

    kind = 'CONFIG'


class OperationError(RaceBenchError):
    """A single transport operation of a race failed"""

    def __init__(self, role: str, message: str):
        super().__init__(f"{role}: {message}")
        self.role = role


class TransportError(OperationError):
    """Connection, send or receive failure reported by a transport"""

    kind = 'TRANSPORT'


class MismatchError(OperationError):
    """A reply arrived but differs from the payload that was sent"""

    kind = 'MISMATCH'

    def __init__(self, role: str, expected_size: int, received_size: int):
        super().__init__(
            role,
            f"received wrong response ({received_size} bytes, expected {expected_size})"
        )
        self.expected_size = expected_size
        self.received_size = received_size


class OperationTimeout(OperationError):
    """No reply arrived within the per-operation timeout"""

    kind = 'TIMEOUT'


class BindError(RaceBenchError):
    """An echo listener could not bind its assigned port"""

    kind = 'BIND'

    def __init__(self, role: str, host: str, port: int, reason: Optional[str] = None):
        message = f"{role} server could not bind {host}:{port}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)
        self.role = role
        self.host = host
        self.port = port


class RaceFailure(RaceBenchError):
    """One instance's race failed; carries every operation error of that race"""

    def __init__(self, index: int, errors: List[OperationError]):
        details = '; '.join(f"[{e.kind}] {e}" for e in errors)
        super().__init__(f"instance {index} failed: {details}")
        self.index = index
        self.errors = errors

    @property
    def kind(self) -> str:
        return self.errors[0].kind if self.errors else 'ERROR'
