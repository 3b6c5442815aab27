"""Spin-up orchestration, echo server sets and the race runner"""

import concurrent.futures
import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Dict, List, Optional

from racebench.core.clock import Clock, elapsed_ms, now_ms
from racebench.core.config import PortTriple, RunConfiguration, load_payload
from racebench.core.errors import (
    BindError,
    MismatchError,
    OperationError,
    OperationTimeout,
    RaceFailure,
    TransportError,
)
from racebench.core.metrics import ROLES, SampleSet, TimingTriple, summarize
from racebench.core.report import RaceReport, collect_system_info
from racebench.servers import default_transports
from racebench.servers.base import EchoListener, TransportSet


log = logging.getLogger(__name__)

# Pause between race launches so spinning up one race does not skew the next
LAUNCH_DELAY = 0.001

MAX_WORKERS = 384


def _shutdown(executor: ThreadPoolExecutor, abandon: bool):
    """Shut the pool down, leaving operations past their race deadline behind"""
    if abandon:
        log.warning("abandoning operations that outlived the race deadline")
    executor.shutdown(wait=not abandon, cancel_futures=abandon)


class EchoServerSet:
    """The three echo listeners of one instance"""

    def __init__(
        self,
        index: int,
        ports: PortTriple,
        transports: TransportSet,
        host: str,
        logger: Optional[logging.Logger] = None,
    ):
        self.index = index
        self.ports = ports
        self.transports = transports
        self.host = host
        self.logger = logger or log
        self.listeners: Dict[str, EchoListener] = {}
        self.errors: List[BindError] = []

    def start(self) -> 'EchoServerSet':
        """Start every listener; a bind failure only loses that listener"""
        for role, transport in self.transports.items():
            port = self.ports.for_role(role)
            try:
                self.listeners[role] = transport.listen(self.host, port, logger=self.logger)
            except BindError as e:
                self.errors.append(e)
                self.logger.error(f"instance {self.index}: {e}")
        return self

    @property
    def healthy(self) -> bool:
        return not self.errors

    def close(self):
        for listener in self.listeners.values():
            listener.close()
        self.listeners.clear()

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class Race:
    """Three in-flight transport operations of one instance"""

    def __init__(self, index: int, ports: PortTriple, futures: Dict[str, Future], timeout: float):
        self.index = index
        self.ports = ports
        self.futures = futures
        # Backstop only: each transport enforces its own timeout for connect and reply
        self.deadline = time.monotonic() + 2 * timeout + 1
        self.expired = False

    def result(self) -> TimingTriple:
        """Wait for all three operations, then return their durations"""
        remaining = max(0.0, self.deadline - time.monotonic())
        done, _ = concurrent.futures.wait(
            list(self.futures.values()),
            timeout=remaining,
            return_when=concurrent.futures.ALL_COMPLETED,
        )

        durations = {}
        errors: List[OperationError] = []
        for role in ROLES:
            future = self.futures[role]
            if future not in done:
                self.expired = True
                errors.append(OperationTimeout(role, "operation did not settle before the race deadline"))
                continue
            try:
                durations[role] = future.result()
            except OperationError as e:
                errors.append(e)

        if errors:
            raise RaceFailure(self.index, errors)
        return TimingTriple(**durations)


class RaceRunner:
    """
    Sends the same payload over all three transports at once.

    Each operation takes its own dispatch timestamp right before handing the
    payload to its transport, and completes once the reply arrived and equals
    the payload byte for byte.
    """

    def __init__(
        self,
        transports: TransportSet,
        payload: bytes,
        host: str,
        timeout: float,
        clock: Clock = now_ms,
    ):
        self.transports = transports
        self.payload = payload
        self.host = host
        self.timeout = timeout
        self.clock = clock

    def _operation(self, role: str, port: int) -> float:
        transport = self.transports.for_role(role)
        start = self.clock()
        try:
            reply = transport.roundtrip(self.host, port, self.payload, self.timeout)
        except OperationError:
            raise
        except OSError as e:
            raise TransportError(role, str(e)) from e
        except Exception as e:
            raise TransportError(role, f"{type(e).__name__}: {e}") from e

        if reply != self.payload:
            raise MismatchError(role, len(self.payload), len(reply) if reply is not None else 0)
        return elapsed_ms(start, self.clock)

    def start(self, index: int, ports: PortTriple, executor: ThreadPoolExecutor) -> Race:
        """Dispatch fast, request_reply and persistent, in that order"""
        futures = {
            role: executor.submit(self._operation, role, ports.for_role(role))
            for role in ROLES
        }
        return Race(index, ports, futures, self.timeout)

    def run(self, index: int, ports: PortTriple) -> TimingTriple:
        """Run a single race on a private pool"""
        executor = ThreadPoolExecutor(max_workers=len(ROLES))
        race = self.start(index, ports, executor)
        try:
            return race.result()
        finally:
            _shutdown(executor, race.expired)


class Orchestrator:
    """Runs every instance of a configuration in server or client mode"""

    def __init__(
        self,
        config: RunConfiguration,
        transports: Optional[TransportSet] = None,
        payload: Optional[bytes] = None,
        clock: Clock = now_ms,
        launch_delay: float = LAUNCH_DELAY,
        max_workers: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ):
        if transports is None:
            transports = default_transports(config.timeout)

        self.config = config
        self.transports = transports
        self.payload = payload
        self.clock = clock
        self.launch_delay = launch_delay
        self.max_workers = max_workers or min(len(ROLES) * config.instance_count, MAX_WORKERS)
        self.logger = logger or log
        self.server_sets: List[EchoServerSet] = []

    def _log_configuration(self, mode: str):
        self.logger.info(f"Running speed test ({mode}) with: {self.config.to_dict()}")

    def serve(self) -> List[EchoServerSet]:
        """Start one echo server set per instance without waiting for readiness"""
        self._log_configuration('server')

        for index, ports in self.config.port_triples():
            server_set = EchoServerSet(
                index,
                ports,
                self.transports,
                self.config.bind_address,
                logger=self.logger,
            )
            self.server_sets.append(server_set.start())

        failed = sum(len(s.errors) for s in self.server_sets)
        if failed:
            self.logger.warning(f"{failed} listener(s) failed to start")
        return self.server_sets

    def serve_forever(self, poll_interval: float = 1.0):
        """Serve until interrupted, then close every listener"""
        if not self.server_sets:
            self.serve()
        try:
            while True:
                time.sleep(poll_interval)
        finally:
            self.close()

    def close(self):
        for server_set in self.server_sets:
            server_set.close()
        self.server_sets = []

    def race(self) -> SampleSet:
        """
        Launch one race per instance and collect their timing triples.

        All races settle before anything is raised. A failed instance aborts
        the run: the first RaceFailure in launch order propagates and no
        samples are returned.
        """
        self._log_configuration('client')

        if self.payload is None:
            self.payload = load_payload(self.config.payload_size)

        runner = RaceRunner(
            self.transports,
            self.payload,
            self.config.bind_address,
            self.config.timeout,
            clock=self.clock,
        )

        sample_set = SampleSet()
        failures: List[RaceFailure] = []

        executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix='race')
        races: List[Race] = []
        try:
            for index, ports in self.config.port_triples():
                races.append(runner.start(index, ports, executor))
                time.sleep(self.launch_delay)

            for race in races:
                try:
                    triple = race.result()
                except RaceFailure as e:
                    self.logger.error(str(e))
                    failures.append(e)
                    continue
                self.logger.debug(
                    f"instance {race.index}: fast={triple.fast:.3f}ms "
                    f"request_reply={triple.request_reply:.3f}ms "
                    f"persistent={triple.persistent:.3f}ms"
                )
                sample_set.add(triple)
        finally:
            _shutdown(executor, any(race.expired for race in races))

        if failures:
            if len(failures) > 1:
                self.logger.error(f"{len(failures)} of {self.config.instance_count} instances failed")
            raise failures[0]
        return sample_set

    def run(self) -> RaceReport:
        """Race every instance and reduce the samples into a report"""
        sample_set = self.race()
        statistics = summarize(sample_set, self.transports.protocols())
        return RaceReport(
            config=self.config,
            statistics=statistics,
            sample_set=sample_set,
            metadata={'system': collect_system_info()},
        )
