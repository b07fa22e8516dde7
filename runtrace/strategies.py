"""
Tracing strategies: where run start / end / error events are delivered.

A strategy receives finished Run objects and decides how to report them.
ClientTracingStrategy maps them onto the runs API; other strategies can
send them elsewhere (a queue, a file) without touching the Tracer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from runtrace.client import ReportingClient
from runtrace.schemas.run import Run, RunUpdate


class TracingStrategy(ABC):
    """Delivery policy for run lifecycle events."""

    @abstractmethod
    async def trace_start(self, run: Run) -> None:
        """Deliver a newly created run."""

    @abstractmethod
    async def trace_end(self, run: Run) -> None:
        """Deliver a finalized run."""

    @abstractmethod
    async def trace_error(self, run: Run, error: str) -> None:
        """Deliver a run that failed with ``error``."""


class ClientTracingStrategy(TracingStrategy):
    """Reports through a shared ReportingClient."""

    def __init__(self, client: ReportingClient):
        self.client = client

    async def trace_start(self, run: Run) -> None:
        await self.client.create_run(run)

    async def trace_end(self, run: Run) -> None:
        await self.client.update_run(run.id, RunUpdate.from_run(run))

    async def trace_error(self, run: Run, error: str) -> None:
        update = RunUpdate.from_run(run).model_copy(update={"error": error})
        await self.client.update_run(run.id, update)
