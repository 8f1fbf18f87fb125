"""Polling loop that admits, dispatches, reaps and forgets session jobs."""

from __future__ import annotations

import logging
import signal
import time
from collections.abc import Callable, Iterator
from concurrent.futures import Executor, Future, ThreadPoolExecutor, wait
from contextlib import contextmanager

from demo_ingest.clients.base import JobSource
from demo_ingest.orchestrator.errors import SourceUnavailableError
from demo_ingest.orchestrator.models import (
    FailureClass,
    JobOutcome,
    OrchestratorRunSummary,
    TickReport,
)

logger = logging.getLogger(__name__)

FailureHandler = Callable[[str, JobOutcome], None]


def ignore_failure(job_id: str, outcome: JobOutcome) -> None:
    """Default failure hook; failures are already logged by the orchestrator."""


class JobOrchestrator:
    """Owns the admission queue, the in-flight table and the completed cache.

    All three collections are mutated only from ``tick`` on the calling
    thread. Pipeline runs execute on ``executor`` and report back solely
    through their futures, which ``tick`` probes with ``Future.done()``
    so the loop never blocks on a running job.
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        source: JobSource,
        run_job: Callable[[str], JobOutcome],
        concurrency: int = 1,
        queue_capacity: int | None = None,
        batch_size: int = 1,
        short_interval_seconds: float = 1.0,
        long_interval_seconds: float = 60.0,
        drain: bool = False,
        failure_handler: FailureHandler = ignore_failure,
        executor: Executor | None = None,
        clock: Callable[[], float] = time.time,
        monotonic: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if concurrency <= 0:
            raise ValueError("concurrency must be positive")
        self.source = source
        self.run_job = run_job
        self.concurrency = concurrency
        self.queue_capacity = queue_capacity if queue_capacity is not None else concurrency
        self.batch_size = batch_size
        self.short_interval_seconds = short_interval_seconds
        self.long_interval_seconds = long_interval_seconds
        self.drain = drain
        self.failure_handler = failure_handler
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=concurrency,
            thread_name_prefix="demo-job",
        )
        self._clock = clock
        self._monotonic = monotonic
        self._sleep = sleep
        # dict keeps insertion order, so dispatch is FIFO among queued ids.
        self._queue: dict[str, None] = {}
        self._in_flight: dict[str, Future[JobOutcome]] = {}
        self._completed: dict[str, float] = {}
        self._stop_requested = False
        self._stop_signal_name: str | None = None

    @property
    def retention_seconds(self) -> float:
        return 2 * self.long_interval_seconds

    @property
    def is_idle(self) -> bool:
        return not self._queue and not self._in_flight

    def queued_ids(self) -> tuple[str, ...]:
        return tuple(self._queue)

    def in_flight_ids(self) -> tuple[str, ...]:
        return tuple(self._in_flight)

    def completed(self) -> dict[str, float]:
        return dict(self._completed)

    def tick(self) -> TickReport:
        """Run one admission, dispatch, reap and eviction pass in that order."""

        report = TickReport()
        self._admit(report)
        self._dispatch(report)
        self._reap(report)
        self._evict(report)
        return report

    def run_loop(self) -> OrchestratorRunSummary:
        """Tick until stopped, or in drain mode until nothing is queued or in flight."""

        summary = OrchestratorRunSummary()
        with self._signal_handlers():
            try:
                while not self._stop_requested:
                    started = self._monotonic()
                    report = self._guarded_tick()
                    idle = self.is_idle
                    summary.add(report, idle=idle)
                    if self.drain and idle and report.source_error is None:
                        logger.info("Queue completed")
                        break
                    self._pace(started, idle=idle)
            finally:
                if self._in_flight:
                    self._finish_in_flight(summary)
        return summary

    def request_stop(self, signal_name: str | None = None) -> None:
        if not self._stop_requested:
            logger.info(
                "Stop requested%s; finishing %d in-flight job(s)",
                f" by {signal_name}" if signal_name else "",
                len(self._in_flight),
            )
        self._stop_requested = True
        self._stop_signal_name = signal_name

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    def __enter__(self) -> JobOrchestrator:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def _admit(self, report: TickReport) -> None:
        if len(self._queue) >= self.queue_capacity:
            return

        logger.info("%d sessions in local queue. Querying for more...", len(self._queue))
        try:
            candidates = self.source.list_pending(self.batch_size)
        except SourceUnavailableError as error:
            logger.warning("Job source unavailable: %s", error)
            report.source_error = str(error)
            return
        except Exception as error:  # noqa: BLE001
            logger.exception("Job source raised unexpectedly")
            report.source_error = f"{type(error).__name__}: {error}"
            return

        for job_id in candidates:
            if len(self._queue) >= self.queue_capacity:
                logger.warning(
                    "Local queue is full (%d); ignoring the rest of this batch",
                    self.queue_capacity,
                )
                break
            if job_id in self._queue or job_id in self._in_flight or job_id in self._completed:
                continue
            self._queue[job_id] = None
            report.admitted += 1

        logger.info("Added %d sessions to queue (%d total).", report.admitted, len(self._queue))

    def _dispatch(self, report: TickReport) -> None:
        while len(self._in_flight) < self.concurrency and self._queue:
            job_id = next(iter(self._queue))
            if job_id in self._in_flight:
                del self._queue[job_id]
                continue
            logger.info("Starting job: %s", job_id)
            future = self._executor.submit(self.run_job, job_id)
            del self._queue[job_id]
            self._in_flight[job_id] = future
            report.dispatched += 1

    def _reap(self, report: TickReport) -> None:
        for job_id, future in list(self._in_flight.items()):
            if not future.done():
                continue
            del self._in_flight[job_id]
            outcome = _outcome_of(future)
            self._completed[job_id] = self._clock()
            if outcome.ok:
                logger.info("Job completed successfully: %s", job_id)
                report.succeeded += 1
                continue
            logger.warning(
                "Job failed: job_id=%s failure_class=%s error=%s",
                job_id,
                outcome.failure_class.value if outcome.failure_class else "unknown",
                outcome.error,
            )
            report.failed += 1
            self._handle_failure(job_id, outcome)

    def _evict(self, report: TickReport) -> None:
        cutoff = self._clock() - self.retention_seconds
        expired = [job_id for job_id, finished in self._completed.items() if finished < cutoff]
        for job_id in expired:
            del self._completed[job_id]
        report.evicted = len(expired)
        if expired:
            logger.debug("Evicted %d completed job(s) from suppression cache", len(expired))

    def _handle_failure(self, job_id: str, outcome: JobOutcome) -> None:
        try:
            self.failure_handler(job_id, outcome)
        except Exception:  # noqa: BLE001
            logger.exception("Failure handler raised for %s", job_id)

    def _guarded_tick(self) -> TickReport:
        try:
            return self.tick()
        except Exception:  # noqa: BLE001
            logger.exception("Orchestrator tick failed")
            return TickReport()

    def _pace(self, started: float, *, idle: bool) -> None:
        target = self.long_interval_seconds if idle else self.short_interval_seconds
        remaining = target - (self._monotonic() - started)
        if remaining > 0:
            self._sleep_with_stop(remaining)

    def _sleep_with_stop(self, seconds: float) -> None:
        deadline = self._monotonic() + seconds
        while not self._stop_requested:
            remaining = deadline - self._monotonic()
            if remaining <= 0:
                return
            self._sleep(min(0.1, remaining))

    def _finish_in_flight(self, summary: OrchestratorRunSummary) -> None:
        wait(list(self._in_flight.values()))
        report = TickReport()
        self._reap(report)
        summary.add(report, idle=self.is_idle)

    @contextmanager
    def _signal_handlers(self) -> Iterator[None]:
        def _on_signal(signum: int, _: object | None) -> None:
            self.request_stop(signal_name=signal.Signals(signum).name)

        previous: dict[signal.Signals, object] = {}
        try:
            for stop_signal in (signal.SIGINT, signal.SIGTERM):
                previous[stop_signal] = signal.signal(stop_signal, _on_signal)
        except ValueError:
            # Only the main thread may install handlers; run without them.
            logger.debug("Signal handlers not installed outside the main thread")
        try:
            yield
        finally:
            for stop_signal, handler in previous.items():
                if handler is not None:
                    signal.signal(stop_signal, handler)


def _outcome_of(future: Future[JobOutcome]) -> JobOutcome:
    try:
        outcome = future.result()
    except Exception as error:  # noqa: BLE001
        return JobOutcome.failure(
            f"Unexpected error: {type(error).__name__}: {error}",
            FailureClass.UNEXPECTED_ERROR,
        )
    if isinstance(outcome, JobOutcome):
        return outcome
    if isinstance(outcome, str):
        if outcome:
            return JobOutcome.failure(outcome, FailureClass.UNEXPECTED_ERROR)
        return JobOutcome.success()
    return JobOutcome.failure(
        f"Unexpected pipeline result: {outcome!r}",
        FailureClass.UNEXPECTED_ERROR,
    )
