"""
Orchestration wrapper: run a node function inside a traced Run.

trace_node() sequences the whole lifecycle around one call:

    1. tracing disabled → call the function, nothing else
    2. normalize inputs, build the Tracer (child of the current context, if any)
    3. report the run's creation (failure: logged)
    4. call the function with the raw inputs
    5. finalize with outputs or the error message (unreportable outputs
       finalize the run as failed)
    6. report the update (failure: logged)
    7. return the function's result, or re-raise its exception unchanged

Reporting can fail in any way without the caller noticing anything but a
log line. The caller always gets exactly what the function produced.

Usage:
    async def double(x: int) -> int:
        return x * 2

    result = await trace_node("double", RunType.LLM, 21, double)   # 42

    @traced_node(run_type=RunType.TOOL)
    async def search(query: str, limit: int = 5) -> list[str]:
        ...
"""

from __future__ import annotations

import functools
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from runtrace.client import ReportingClient
from runtrace.config import TracingConfig, get_config
from runtrace.context import TraceContext, attach_context, get_current_context
from runtrace.exceptions import SerializationError
from runtrace.schemas.run import RunType
from runtrace.serialization import SerializationStrategy
from runtrace.tracer import Tracer

logger = logging.getLogger(__name__)

I = TypeVar("I")
O = TypeVar("O")
F = TypeVar("F", bound=Callable[..., Any])


def _build_tracer(
    name: str,
    run_type: RunType | str,
    inputs: Any,
    config: TracingConfig,
    client: ReportingClient | None,
    serializer: SerializationStrategy | None,
    parent: TraceContext | None,
    run_options: dict[str, Any],
) -> Tracer | None:
    try:
        return Tracer(
            name,
            run_type,
            inputs,
            parent=parent if parent is not None else get_current_context(),
            config=config,
            client=client,
            serializer=serializer,
            **run_options,
        )
    except SerializationError as e:
        logger.warning(f"Not tracing node {name}: {e.message}")
        return None


def _finalize_ok(tracer: Tracer, result: Any) -> None:
    """
    End the run with ``result``.

    Outputs that cannot be serialized end the run as failed instead, so the
    backend still receives an end_time.
    """
    try:
        tracer.end(result)
    except SerializationError as e:
        logger.warning(f"Outputs of run {tracer.name} ({tracer.run_id}) not reportable: {e.message}")
        tracer.end(error=f"Outputs could not be serialized: {e.message}")


async def _safe_post(tracer: Tracer) -> None:
    try:
        await tracer.post()
    except Exception as e:
        logger.warning(f"Failed to report start of run {tracer.name} ({tracer.run_id}): {e}")


async def _safe_patch(tracer: Tracer) -> None:
    try:
        await tracer.patch()
    except Exception as e:
        logger.warning(f"Failed to report end of run {tracer.name} ({tracer.run_id}): {e}")


def _safe_post_sync(tracer: Tracer) -> None:
    try:
        tracer.post_sync()
    except Exception as e:
        logger.warning(f"Failed to report start of run {tracer.name} ({tracer.run_id}): {e}")


def _safe_patch_sync(tracer: Tracer) -> None:
    try:
        tracer.patch_sync()
    except Exception as e:
        logger.warning(f"Failed to report end of run {tracer.name} ({tracer.run_id}): {e}")


async def trace_node(
    name: str,
    run_type: RunType | str,
    inputs: I,
    func: Callable[[I], Awaitable[O]],
    *,
    config: TracingConfig | None = None,
    client: ReportingClient | None = None,
    serializer: SerializationStrategy | None = None,
    parent: TraceContext | None = None,
    **run_options: Any,
) -> O:
    """
    Execute ``func(inputs)`` as a traced run.

    Args:
        name: Run name
        run_type: Run type
        inputs: Raw inputs, passed to ``func`` as is
        func: Coroutine function implementing the node
        config: Tracing configuration (defaults to the process-wide one)
        client: Shared reporting client
        serializer: Normalization policy for inputs and outputs
        parent: Explicit parent context; defaults to the current task's
        **run_options: Forwarded to Tracer (thread_id, session_name, tags, extra)

    Returns:
        Whatever ``func`` returns

    Raises:
        Whatever ``func`` raises, unchanged
    """
    config = config or get_config()
    if not config.enabled:
        return await func(inputs)

    tracer = _build_tracer(name, run_type, inputs, config, client, serializer, parent, run_options)
    if tracer is None:
        return await func(inputs)

    await _safe_post(tracer)

    try:
        with attach_context(tracer.context()):
            result = await func(inputs)
    except Exception as exc:
        tracer.end(error=exc)
        await _safe_patch(tracer)
        raise

    _finalize_ok(tracer, result)
    await _safe_patch(tracer)
    return result


def trace_node_sync(
    name: str,
    run_type: RunType | str,
    inputs: I,
    func: Callable[[I], O],
    *,
    config: TracingConfig | None = None,
    client: ReportingClient | None = None,
    serializer: SerializationStrategy | None = None,
    parent: TraceContext | None = None,
    **run_options: Any,
) -> O:
    """Blocking variant of trace_node() for plain functions."""
    config = config or get_config()
    if not config.enabled:
        return func(inputs)

    tracer = _build_tracer(name, run_type, inputs, config, client, serializer, parent, run_options)
    if tracer is None:
        return func(inputs)

    _safe_post_sync(tracer)

    try:
        with attach_context(tracer.context()):
            result = func(inputs)
    except Exception as exc:
        tracer.end(error=exc)
        _safe_patch_sync(tracer)
        raise

    _finalize_ok(tracer, result)
    _safe_patch_sync(tracer)
    return result


def _bind_inputs(signature: inspect.Signature, args: tuple, kwargs: dict) -> dict[str, Any]:
    """Map a call's arguments to parameter names, defaults applied."""
    try:
        bound = signature.bind(*args, **kwargs)
    except TypeError:
        return {"args": list(args), "kwargs": dict(kwargs)}
    bound.apply_defaults()
    arguments = dict(bound.arguments)
    arguments.pop("self", None)
    arguments.pop("cls", None)
    return arguments


def traced_node(
    name: str | None = None,
    run_type: RunType | str = RunType.CHAIN,
    **options: Any,
) -> Callable[[F], F]:
    """
    Decorator that traces every call of a function.

    The run's inputs are the call's arguments keyed by parameter name.

    Args:
        name: Run name (defaults to the function name)
        run_type: Run type
        **options: Forwarded to trace_node / trace_node_sync

    Example:
        @traced_node(run_type=RunType.RETRIEVER)
        async def retrieve(query: str) -> list[str]:
            ...
    """
    def decorator(func: F) -> F:
        node_name = name or func.__name__
        signature = inspect.signature(func)

        def _enabled() -> bool:
            return (options.get("config") or get_config()).enabled

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            if not _enabled():
                return await func(*args, **kwargs)
            inputs = _bind_inputs(signature, args, kwargs)
            return await trace_node(
                node_name, run_type, inputs, lambda _: func(*args, **kwargs), **options
            )

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            if not _enabled():
                return func(*args, **kwargs)
            inputs = _bind_inputs(signature, args, kwargs)
            return trace_node_sync(
                node_name, run_type, inputs, lambda _: func(*args, **kwargs), **options
            )

        if inspect.iscoroutinefunction(func):
            return async_wrapper  # type: ignore
        return sync_wrapper  # type: ignore

    return decorator
