"""
RunScope - a Tracer with the post / end / patch bookkeeping done for you.

For manual tracing of code that does not fit the trace_node() shape:

    scope = RunScope.root("pipeline", RunType.CHAIN, {"question": q})
    await scope.post_start()

    step = scope.child("retrieve", RunType.RETRIEVER, {"query": q})
    await step.post_start()
    await step.end_ok(docs)

    await scope.end_ok({"answer": answer})

post_start() reports at most once. end_ok() / end_error() finalize and send
the update; an update failure is logged rather than raised.
"""

from __future__ import annotations

import logging
from typing import Any

from runtrace.context import TraceContext
from runtrace.schemas.run import RunType
from runtrace.tracer import Tracer

logger = logging.getLogger(__name__)


class RunScope:
    """Owns one Tracer and remembers whether its start was reported."""

    def __init__(self, tracer: Tracer):
        self._tracer = tracer
        self._posted = False

    @classmethod
    def root(cls, name: str, run_type: RunType | str, inputs: Any, **kwargs: Any) -> RunScope:
        """
        Start a new trace.

        Raises:
            SerializationError: If ``inputs`` cannot be normalized
        """
        return cls(Tracer(name, run_type, inputs, **kwargs))

    @classmethod
    def from_context(
        cls,
        context: TraceContext,
        name: str,
        run_type: RunType | str,
        inputs: Any,
        **kwargs: Any,
    ) -> RunScope:
        """Continue a trace whose parent lives elsewhere (another task or module)."""
        return cls(Tracer(name, run_type, inputs, parent=context, **kwargs))

    def child(self, name: str, run_type: RunType | str, inputs: Any, **kwargs: Any) -> RunScope:
        return RunScope(self._tracer.create_child(name, run_type, inputs, **kwargs))

    @property
    def tracer(self) -> Tracer:
        return self._tracer

    @property
    def posted(self) -> bool:
        return self._posted

    def context(self) -> TraceContext:
        return self._tracer.context()

    async def post_start(self) -> None:
        """
        Report the run's creation. Safe to call more than once.

        Raises:
            TransportError: If the report fails; a later call will retry
        """
        if self._posted:
            return
        await self._tracer.post()
        self._posted = True

    async def end_ok(self, outputs: Any) -> None:
        """
        Finalize with ``outputs`` and report the update (best-effort).

        Raises:
            SerializationError: If ``outputs`` cannot be normalized
        """
        self._tracer.end(outputs)
        await self._patch()

    async def end_error(self, error: BaseException | str, outputs: Any = None) -> None:
        """
        Finalize as failed and report the update (best-effort).

        Partial ``outputs``, when given, are reported alongside the error.
        """
        if outputs is not None:
            self._tracer.set_error(error)
            self._tracer.end(outputs)
        else:
            self._tracer.end(error=error)
        await self._patch()

    async def _patch(self) -> None:
        try:
            await self._tracer.patch()
        except Exception as e:
            logger.warning(
                f"Failed to report end of run {self._tracer.name} ({self._tracer.run_id}): {e}"
            )

    def __repr__(self) -> str:
        return f"RunScope({self._tracer!r}, posted={self._posted})"
