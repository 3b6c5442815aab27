"""Round-trip latency race between RPyC, HTTP and WebSocket transports"""

from racebench.core.config import PayloadSize, PortTriple, RunConfiguration, load_payload
from racebench.core.errors import (
    RaceBenchError,
    ConfigurationError,
    TransportError,
    MismatchError,
    OperationTimeout,
    BindError,
    RaceFailure,
)
from racebench.core.metrics import (
    TimingTriple,
    SampleSet,
    TransportStatistics,
    compute_statistics,
    summarize,
)
from racebench.core.harness import EchoServerSet, Race, RaceRunner, Orchestrator
from racebench.core.report import RaceReport
from racebench.servers import TransportSet, default_transports

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("racebench")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"
__all__ = [
    "PayloadSize",
    "PortTriple",
    "RunConfiguration",
    "load_payload",
    "RaceBenchError",
    "ConfigurationError",
    "TransportError",
    "MismatchError",
    "OperationTimeout",
    "BindError",
    "RaceFailure",
    "TimingTriple",
    "SampleSet",
    "TransportStatistics",
    "compute_statistics",
    "summarize",
    "EchoServerSet",
    "Race",
    "RaceRunner",
    "Orchestrator",
    "RaceReport",
    "TransportSet",
    "default_transports",
]
