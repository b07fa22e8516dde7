"""Convenience constructors for the common tracer shapes."""

from __future__ import annotations

from typing import Any

from runtrace.client import ReportingClient
from runtrace.context import TraceContext
from runtrace.schemas.run import RunType
from runtrace.tracer import Tracer


class TracerFactory:
    """
    Picks between root, thread-stamped and child construction.

    Every method is a thin dispatch onto the Tracer constructor; extra
    keyword arguments (config, serializer, tags, ...) are passed through.
    """

    @staticmethod
    def create(name: str, run_type: RunType | str, inputs: Any, **kwargs: Any) -> Tracer:
        return Tracer(name, run_type, inputs, **kwargs)

    @staticmethod
    def create_root(name: str, run_type: RunType | str, inputs: Any, **kwargs: Any) -> Tracer:
        """Start a new trace; any ``parent`` argument is ignored."""
        kwargs.pop("parent", None)
        return Tracer(name, run_type, inputs, **kwargs)

    @staticmethod
    def create_with_thread(
        name: str,
        run_type: RunType | str,
        inputs: Any,
        thread_id: str,
        **kwargs: Any,
    ) -> Tracer:
        """Start a new trace correlated with a conversation thread."""
        return Tracer(name, run_type, inputs, thread_id=thread_id, **kwargs)

    @staticmethod
    def create_with_client(
        name: str,
        run_type: RunType | str,
        inputs: Any,
        client: ReportingClient,
        **kwargs: Any,
    ) -> Tracer:
        return Tracer(name, run_type, inputs, client=client, **kwargs)

    @staticmethod
    def create_with_context(
        name: str,
        run_type: RunType | str,
        inputs: Any,
        context: TraceContext,
        **kwargs: Any,
    ) -> Tracer:
        """Create a child of the run that ``context`` was taken from."""
        return Tracer(name, run_type, inputs, parent=context, **kwargs)

    @staticmethod
    def create_for_node(
        node_name: str,
        run_type: RunType | str,
        inputs: Any,
        parent_context: TraceContext | None = None,
        **kwargs: Any,
    ) -> Tracer:
        """Child of ``parent_context`` when given, otherwise a new root."""
        return Tracer(node_name, run_type, inputs, parent=parent_context, **kwargs)
