"""
Trace Context Propagation for runtrace.

A TraceContext is the only thing a parent run hands to its children: the
trace id, the parent's hierarchy key and the correlation ids children
inherit. It is frozen, so any number of tasks may read one concurrently.

Besides explicit hand-off, the orchestration wrapper publishes the active
context in a ContextVar. asyncio copies the current context into every task
it creates, so nodes fanned out with asyncio.gather() see their parent
without any extra plumbing:

    async def branch(x):
        return await trace_node("branch", RunType.CHAIN, x, work)

    await trace_node("fan_out", RunType.CHAIN, xs,
                     lambda xs: asyncio.gather(*(branch(x) for x in xs)))

Threads do not inherit contextvars. For thread pools capture the context
first and re-attach it in the worker:

    ctx = get_current_context()

    def worker():
        with attach_context(ctx):
            ...
"""

from __future__ import annotations

import contextvars
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, replace
from uuid import UUID


@dataclass(frozen=True)
class TraceContext:
    """
    Immutable parent-to-child hand-off value.

    Attributes:
        trace_id: Id of the root run of the trace
        dotted_order: Hierarchy key of the run the context was taken from
        run_id: Id of that run; becomes the child's parent_run_id
        thread_id: Conversation/session correlation id inherited by children
        session_name: Project name inherited by children
    """

    trace_id: UUID
    dotted_order: str
    run_id: UUID | None = None
    thread_id: str | None = None
    session_name: str | None = None

    def with_thread_id(self, thread_id: str) -> TraceContext:
        return replace(self, thread_id=thread_id)

    def with_session_name(self, session_name: str) -> TraceContext:
        return replace(self, session_name=session_name)


_current_context: contextvars.ContextVar[TraceContext | None] = contextvars.ContextVar(
    "runtrace_context", default=None
)


def get_current_context() -> TraceContext | None:
    """Get the context of the innermost traced node running in this task."""
    return _current_context.get()


def set_current_context(ctx: TraceContext | None) -> contextvars.Token:
    """
    Set the current trace context.

    Returns:
        Token for resetting the context (use in finally block)
    """
    return _current_context.set(ctx)


def reset_current_context(token: contextvars.Token) -> None:
    """Reset the current context using a token from set_current_context."""
    _current_context.reset(token)


@contextmanager
def attach_context(ctx: TraceContext | None) -> Iterator[TraceContext | None]:
    """
    Make ``ctx`` the current context for the duration of the block.

    Passing None clears the current context inside the block, which starts
    a fresh trace for anything traced there.
    """
    token = _current_context.set(ctx)
    try:
        yield ctx
    finally:
        _current_context.reset(token)
