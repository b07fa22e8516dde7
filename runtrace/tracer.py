"""
Tracer - owns the lifecycle of one Run.

    created ──post()──▶ reported ──end()──▶ finalized ──patch()──▶ updated

post() and patch() are best-effort reports; a failed report is surfaced to
whoever called it but never changes the run's identity or hierarchy, which
are fixed in the constructor. end() is local and happens exactly once.

Usage:
    tracer = Tracer("pipeline", RunType.CHAIN, {"question": q}, config=config)
    await tracer.post()

    llm = tracer.create_child("ChatOpenAI", RunType.LLM, {"messages": msgs})
    await llm.post()
    llm.end({"completion": text})
    await llm.patch()

    tracer.end({"answer": text})
    await tracer.patch()

A Tracer belongs to the task that built it. Hand children to other tasks,
never the same Tracer to two tasks at once.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Any
from uuid import UUID, uuid4

from runtrace.client import ReportingClient
from runtrace.config import TracingConfig, get_config
from runtrace.context import TraceContext
from runtrace.dotted_order import create_dotted_order, utc_now
from runtrace.exceptions import RunAlreadyFinalizedError
from runtrace.schemas.metrics import Metrics
from runtrace.schemas.run import Run, RunType, RunUpdate
from runtrace.serialization import DEFAULT_SERIALIZER, SerializationStrategy

logger = logging.getLogger(__name__)


class TracerState(StrEnum):
    CREATED = "created"
    REPORTED = "reported"
    FINALIZED = "finalized"
    UPDATED = "updated"


def error_message(error: BaseException | str) -> str:
    """Message recorded on a run for a failure; the exception itself is untouched."""
    if isinstance(error, str):
        return error
    return str(error) or type(error).__name__


class Tracer:
    """
    Builds a Run and reports it.

    Args:
        name: Human-readable run name
        run_type: A RunType or any custom type string
        inputs: Raw inputs; normalized to a JSON object by ``serializer``
        parent: Context of the parent run. None makes this the root of a new trace.
        thread_id: Conversation id; inherited from ``parent`` when omitted
        session_name: Project name; defaults to the parent's, then config.project
        tags: Free-form tags reported with the run
        extra: Free-form metadata reported with the run
        config: Tracing configuration (defaults to the process-wide one)
        client: Shared reporting client. Without one, each report opens and
            closes its own.
        serializer: Normalization policy for inputs and outputs

    Raises:
        SerializationError: If ``inputs`` cannot be normalized
    """

    def __init__(
        self,
        name: str,
        run_type: RunType | str,
        inputs: Any,
        *,
        parent: TraceContext | None = None,
        thread_id: str | None = None,
        session_name: str | None = None,
        tags: list[str] | None = None,
        extra: dict[str, Any] | None = None,
        config: TracingConfig | None = None,
        client: ReportingClient | None = None,
        serializer: SerializationStrategy | None = None,
    ):
        self.config = config or get_config()
        self._client = client
        self._serializer = serializer or DEFAULT_SERIALIZER
        self._state = TracerState.CREATED

        normalized = self._serializer.ensure_inputs(inputs)
        run_id = uuid4()
        start_time = utc_now()

        if parent is not None:
            trace_id = parent.trace_id
            parent_run_id = parent.run_id
            dotted_order = create_dotted_order(start_time, run_id, parent.dotted_order)
            thread_id = thread_id or parent.thread_id
            session_name = session_name or parent.session_name
        else:
            trace_id = run_id
            parent_run_id = None
            dotted_order = create_dotted_order(start_time, run_id)

        self._run = Run(
            id=run_id,
            name=name,
            run_type=run_type,
            inputs=normalized,
            start_time=start_time,
            trace_id=trace_id,
            parent_run_id=parent_run_id,
            dotted_order=dotted_order,
            thread_id=thread_id,
            session_name=session_name or self.config.project,
            tags=list(tags or []),
            extra=dict(extra or {}),
        )

    # -- hierarchy ---------------------------------------------------------

    def context(self) -> TraceContext:
        """Snapshot to hand to children or carry across a task boundary."""
        return TraceContext(
            trace_id=self._run.trace_id,
            dotted_order=self._run.dotted_order,
            run_id=self._run.id,
            thread_id=self._run.thread_id,
            session_name=self._run.session_name,
        )

    def create_child(
        self,
        name: str,
        run_type: RunType | str,
        inputs: Any,
        **kwargs: Any,
    ) -> Tracer:
        """
        Create a tracer for a child run.

        The child shares this tracer's config, client and serializer; the
        only run state it receives is the immutable context().
        """
        kwargs.setdefault("config", self.config)
        kwargs.setdefault("client", self._client)
        kwargs.setdefault("serializer", self._serializer)
        return Tracer(name, run_type, inputs, parent=self.context(), **kwargs)

    # -- local mutation ----------------------------------------------------

    def end(self, outputs: Any = None, *, error: BaseException | str | None = None) -> None:
        """
        Finalize the run.

        Args:
            outputs: Result of the node; normalized to an object. Ignored when
                ``error`` is given.
            error: The failure, if the node failed. Only its message is kept.

        Raises:
            RunAlreadyFinalizedError: If end() was already called
            SerializationError: If ``outputs`` cannot be normalized; the run
                is left unfinalized
        """
        if self._run.end_time is not None:
            raise RunAlreadyFinalizedError(
                f"Run {self._run.name} ({self._run.id}) is already finalized"
            )

        if error is not None:
            self._run.error = error_message(error)
        else:
            self._run.outputs = self._serializer.ensure_outputs(outputs)

        self._run.end_time = max(utc_now(), self._run.start_time)
        self._state = TracerState.FINALIZED

    def set_error(self, error: BaseException | str) -> None:
        """Record an error message without finalizing the run."""
        self._run.error = error_message(error)

    def set_metrics(self, metrics: Metrics) -> None:
        """Record token/cost counters; they travel with the next patch()."""
        self._run.apply_metrics(metrics)

    # -- reporting ---------------------------------------------------------

    async def post(self) -> None:
        """
        Report the run's creation.

        Raises:
            TransportError: If the backend call fails
            ValidationError: If the run is not reportable
        """
        if not self.config.enabled:
            logger.debug(f"Tracing disabled, not reporting run {self._run.name}")
            return

        if self._client is not None:
            await self._client.create_run(self._run)
        else:
            async with ReportingClient(self.config) as client:
                await client.create_run(self._run)

        if self._state is TracerState.CREATED:
            self._state = TracerState.REPORTED

    async def patch(self) -> None:
        """
        Report the run's current mutable state (also available as post_update).

        Meant to follow end(); calling it earlier sends an incomplete update.

        Raises:
            TransportError: If the backend call fails
        """
        if not self.config.enabled:
            logger.debug(f"Tracing disabled, not updating run {self._run.name}")
            return

        update = RunUpdate.from_run(self._run)
        if self._client is not None:
            await self._client.update_run(self._run.id, update)
        else:
            async with ReportingClient(self.config) as client:
                await client.update_run(self._run.id, update)

        if self._state is TracerState.FINALIZED:
            self._state = TracerState.UPDATED

    def post_sync(self) -> None:
        """Blocking variant of post()."""
        if not self.config.enabled:
            logger.debug(f"Tracing disabled, not reporting run {self._run.name}")
            return

        if self._client is not None:
            self._client.create_run_sync(self._run)
        else:
            with ReportingClient(self.config) as client:
                client.create_run_sync(self._run)

        if self._state is TracerState.CREATED:
            self._state = TracerState.REPORTED

    def patch_sync(self) -> None:
        """Blocking variant of patch()."""
        if not self.config.enabled:
            logger.debug(f"Tracing disabled, not updating run {self._run.name}")
            return

        update = RunUpdate.from_run(self._run)
        if self._client is not None:
            self._client.update_run_sync(self._run.id, update)
        else:
            with ReportingClient(self.config) as client:
                client.update_run_sync(self._run.id, update)

        if self._state is TracerState.FINALIZED:
            self._state = TracerState.UPDATED

    # update-run report under its runs-API name
    post_update = patch
    post_update_sync = patch_sync

    # -- accessors ---------------------------------------------------------

    @property
    def run(self) -> Run:
        return self._run

    @property
    def state(self) -> TracerState:
        return self._state

    @property
    def client(self) -> ReportingClient | None:
        return self._client

    @property
    def serializer(self) -> SerializationStrategy:
        return self._serializer

    @property
    def run_id(self) -> UUID:
        return self._run.id

    @property
    def trace_id(self) -> UUID:
        return self._run.trace_id

    @property
    def parent_run_id(self) -> UUID | None:
        return self._run.parent_run_id

    @property
    def dotted_order(self) -> str:
        return self._run.dotted_order

    @property
    def name(self) -> str:
        return self._run.name

    @property
    def run_type(self) -> RunType | str:
        return self._run.run_type

    @property
    def thread_id(self) -> str | None:
        return self._run.thread_id

    @property
    def session_name(self) -> str | None:
        return self._run.session_name

    def __repr__(self) -> str:
        return (
            f"Tracer(name={self._run.name!r}, run_type={str(self._run.run_type)!r}, "
            f"state={self._state.value!r}, dotted_order={self._run.dotted_order!r})"
        )
