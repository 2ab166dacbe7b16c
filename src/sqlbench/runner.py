"""Benchmark runner for sqlbench.

Drives the measurement loop::

    INIT -> LOOPING -> DRAINING -> TEARDOWN -> DONE

Each iteration (a "pass") measures every query once, in the order the query
files were given. Stop conditions, the interrupt signal and the live table
redraw are only checked between passes, never during a measurement, so a
slow query can delay shutdown until it finishes.
"""

from __future__ import annotations

import logging
import signal
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from types import FrameType, TracebackType
from typing import TYPE_CHECKING, Any

from sqlbench.errors import MeasurementError, NegativeTimeError, SetupError, TeardownError
from sqlbench.measure import Measurement, get_measurement_method
from sqlbench.samples import SampleRow

if TYPE_CHECKING:
    from sqlbench.executor import QueryExecutor
    from sqlbench.queries import Benchmark, Query
    from sqlbench.samples import SampleWriter

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    """Lifecycle state of a benchmark run."""

    INIT = "init"
    LOOPING = "looping"
    DRAINING = "draining"
    TEARDOWN = "teardown"
    DONE = "done"


class StopKind(str, Enum):
    """Why the measurement loop stopped."""

    ITERATIONS = "iterations"
    DURATION = "duration"
    INTERRUPT = "interrupt"


def format_seconds(seconds: float) -> str:
    """Format a duration the way it was given, e.g. ``10s`` or ``2.5s``."""
    return f"{seconds:g}s"


@dataclass(frozen=True)
class StopReason:
    """Stop condition plus the message shown to the user."""

    kind: StopKind
    message: str

    @classmethod
    def after_iterations(cls, iterations: int) -> StopReason:
        return cls(StopKind.ITERATIONS, f"Stopping after {iterations} iterations as requested.")

    @classmethod
    def after_duration(cls, seconds: float) -> StopReason:
        return cls(
            StopKind.DURATION, f"Stopping after {format_seconds(seconds)} as requested."
        )

    @classmethod
    def interrupted(cls, signal_name: str = "interrupt") -> StopReason:
        return cls(StopKind.INTERRUPT, f"Stopping due to receiving {signal_name} signal.")


@dataclass
class RunResult:
    """Outcome of a completed benchmark run."""

    reason: StopReason
    iterations: int
    elapsed_seconds: float
    queries: list[Query] = field(default_factory=list)
    negative_time_retries: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dict."""
        return {
            "reason": self.reason.kind.value,
            "message": self.reason.message,
            "iterations": self.iterations,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
            "negative_time_retries": self.negative_time_retries,
            "queries": {q.name: q.stats.to_dict() if q.stats else None for q in self.queries},
        }


class InterruptWatcher:
    """Turns SIGINT into a flag the runner polls between passes.

    The handler only records the signal. The loop notices it after the
    current pass finishes, so an in-flight measurement is never cut short.
    Outside the main thread no handler can be installed; :meth:`trigger`
    still works there.
    """

    def __init__(self, signals: tuple[signal.Signals, ...] = (signal.SIGINT,)):
        self.signals = signals
        self.signal_name: str | None = None
        self._event = threading.Event()
        self._previous: dict[signal.Signals, Any] = {}

    def _handle(self, signum: int, frame: FrameType | None) -> None:
        self.trigger("interrupt" if signum == signal.SIGINT else signal.Signals(signum).name)

    def trigger(self, signal_name: str = "interrupt") -> None:
        """Request a graceful stop."""
        if self.signal_name is None:
            self.signal_name = signal_name
        self._event.set()

    def poll(self) -> bool:
        """Return True once a stop was requested. Never blocks."""
        return self._event.is_set()

    def __enter__(self) -> InterruptWatcher:
        if threading.current_thread() is threading.main_thread():
            for sig in self.signals:
                self._previous[sig] = signal.signal(sig, self._handle)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        for sig, previous in self._previous.items():
            signal.signal(sig, previous)
        self._previous.clear()


class BenchmarkRunner:
    """Runs the measurement loop for one benchmark on one connection."""

    def __init__(
        self,
        benchmark: Benchmark,
        executor: QueryExecutor,
        method: str = "explain",
        include_planning: bool = False,
        iterations: int | None = None,
        seconds: float | None = None,
        render_interval: float | None = None,
        sink: SampleWriter | None = None,
        on_render: Callable[[list[Query]], None] | None = None,
        interrupt: InterruptWatcher | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize benchmark runner.

        Args:
            benchmark: Queries to run
            executor: Connection the queries run on
            method: Measurement method name (see ``sqlbench.measure``)
            include_planning: Include planning time in measurements
            iterations: Stop after this many passes (None = no limit)
            seconds: Stop after this many seconds (None = no limit)
            render_interval: Seconds between live redraws (None = final only)
            sink: Where every sample is persisted (None = not persisted)
            on_render: Called with the sorted queries to draw the table
            interrupt: Polled between passes for a graceful stop
            clock: Monotonic clock, overridable for tests

        Raises:
            UnknownMethodError: If ``method`` is not registered
        """
        get_measurement_method(method)

        self.benchmark = benchmark
        self.executor = executor
        self.method = method
        self.include_planning = include_planning
        self.iterations = iterations
        self.seconds = seconds
        self.render_interval = render_interval
        self.sink = sink
        self.on_render = on_render
        self.interrupt = interrupt
        self.clock = clock

        self.state = RunState.INIT
        self.negative_time_retries = 0
        self._bindings: dict[str, Measurement] = {}

    def _set_state(self, state: RunState) -> None:
        logger.debug("Runner state %s -> %s", self.state.value, state.value)
        self.state = state

    def run(self) -> RunResult:
        """Run the benchmark until a stop condition is met.

        Returns:
            RunResult with the stop reason and final statistics

        Raises:
            SetupError: If the init query fails (teardown is skipped)
            MeasurementError: If a query fails for any reason other than a
                negative reported time
            PersistError: If a sample cannot be written
            TeardownError: If the destroy query fails
        """
        self._set_state(RunState.INIT)
        self.executor.execute_statements(self.benchmark.init, SetupError)

        self._set_state(RunState.LOOPING)
        start = self.clock()
        reason, iteration = self._loop(start)
        elapsed = self.clock() - start
        logger.info("%s (%d iterations, %.2fs)", reason.message, iteration, elapsed)

        self._set_state(RunState.DRAINING)
        self._release_bindings()

        self._set_state(RunState.TEARDOWN)
        self.executor.execute_statements(self.benchmark.destroy, TeardownError)

        self._set_state(RunState.DONE)
        self.benchmark.update()
        if self.on_render is not None:
            self.on_render(self.benchmark.queries)

        return RunResult(
            reason=reason,
            iterations=iteration,
            elapsed_seconds=elapsed,
            queries=list(self.benchmark.queries),
            negative_time_retries=self.negative_time_retries,
        )

    def _loop(self, start: float) -> tuple[StopReason, int]:
        """Measure passes until a stop condition is met."""
        last_render = start
        iteration = 0
        while True:
            iteration += 1
            for query in self.benchmark.measure_order:
                seconds = self._measure(query)
                query.seconds.append(seconds)
                if self.sink is not None:
                    row = SampleRow(iteration=iteration, query=query.name, seconds=seconds)
                    self.sink.write(row)

            reason = self._check_stop(iteration, start)
            if reason is not None:
                return reason, iteration

            if self.render_interval is not None and self.on_render is not None:
                now = self.clock()
                if now - last_render >= self.render_interval:
                    self.benchmark.update()
                    self.on_render(self.benchmark.queries)
                    last_render = now

    def _check_stop(self, iteration: int, start: float) -> StopReason | None:
        """Check stop conditions at the end of a pass."""
        if self.iterations is not None and iteration >= self.iterations:
            return StopReason.after_iterations(iteration)
        if self.seconds is not None and self.clock() - start >= self.seconds:
            return StopReason.after_duration(self.seconds)
        if self.interrupt is not None and self.interrupt.poll():
            return StopReason.interrupted(self.interrupt.signal_name or "interrupt")
        return None

    def _binding(self, query: Query) -> Measurement:
        """Get or create the measurement bound to this query."""
        measurement = self._bindings.get(query.name)
        if measurement is None:
            measurement = self.executor.bind(self.method, query.sql, self.include_planning)
            self._bindings[query.name] = measurement
            logger.debug("Bound %s with method %s", query.label, self.method)
        return measurement

    def _measure(self, query: Query) -> float:
        """Take one sample, retrying on negative reported times.

        Negative times are retried immediately, without backoff and without
        a retry limit.
        """
        measurement = self._binding(query)
        while True:
            try:
                return measurement.measure()
            except NegativeTimeError as e:
                self.negative_time_retries += 1
                logger.debug("%s: %s, retrying", query.label, e)
            except MeasurementError as e:
                raise type(e)(f"{query.label}: {e}", query=query) from e

    def _release_bindings(self) -> None:
        for measurement in self._bindings.values():
            measurement.close()
        self._bindings.clear()
