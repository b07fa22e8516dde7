"""
Observer fan-out for node execution.

Observers get a side channel of start / end / error notifications around a
wrapped node. They are independent of reporting: a listener that raises is
logged and skipped, and the node's result and error propagation are never
affected.

Usage:
    class PrintObserver(Observer):
        def on_node_start(self, node_name, inputs):
            print("start", node_name)
        def on_node_end(self, node_name, outputs):
            print("end", node_name)
        def on_node_error(self, node_name, error):
            print("error", node_name, error)

    node = ObservableNodeWrapper("chatbot", RunType.CHAIN, observers=[PrintObserver()])
    reply = await node.execute(state, chatbot)
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, TypeVar

from runtrace.config import get_config
from runtrace.decorator import trace_node, trace_node_sync
from runtrace.exceptions import SerializationError
from runtrace.schemas.run import RunType
from runtrace.serialization import DEFAULT_SERIALIZER, SerializationStrategy
from runtrace.tracer import error_message

logger = logging.getLogger(__name__)

I = TypeVar("I")
O = TypeVar("O")


class Observer(ABC):
    """Listener for node execution events."""

    @abstractmethod
    def on_node_start(self, node_name: str, inputs: Any) -> None:
        """Called before the node runs."""

    @abstractmethod
    def on_node_end(self, node_name: str, outputs: Any) -> None:
        """Called after the node returned."""

    @abstractmethod
    def on_node_error(self, node_name: str, error: str) -> None:
        """Called after the node raised."""


class LoggingObserver(Observer):
    """Writes node events to the runtrace logger."""

    def __init__(self, level: int = logging.INFO):
        self.level = level

    def on_node_start(self, node_name: str, inputs: Any) -> None:
        logger.log(self.level, f"Node '{node_name}' started")

    def on_node_end(self, node_name: str, outputs: Any) -> None:
        logger.log(self.level, f"Node '{node_name}' completed")

    def on_node_error(self, node_name: str, error: str) -> None:
        logger.log(self.level, f"Node '{node_name}' error: {error}")


class ObservableNode:
    """
    Registry of observers with isolated delivery.

    Thread-safe: observers may be added or removed while notifications are
    in flight; each notification works on a snapshot of the registry.
    """

    def __init__(self, observers: Iterable[Observer] = ()):
        self._observers: list[Observer] = list(observers)
        self._lock = threading.Lock()

    @property
    def observers(self) -> list[Observer]:
        with self._lock:
            return list(self._observers)

    def add_observer(self, observer: Observer) -> None:
        with self._lock:
            self._observers.append(observer)

    def remove_observer(self, observer: Observer) -> None:
        with self._lock:
            if observer in self._observers:
                self._observers.remove(observer)

    def _notify(self, event: str, node_name: str, payload: Any) -> None:
        for observer in self.observers:
            try:
                getattr(observer, event)(node_name, payload)
            except Exception:
                logger.exception(
                    f"Observer {type(observer).__name__}.{event} failed for node '{node_name}'"
                )

    def notify_start(self, node_name: str, inputs: Any) -> None:
        self._notify("on_node_start", node_name, inputs)

    def notify_end(self, node_name: str, outputs: Any) -> None:
        self._notify("on_node_end", node_name, outputs)

    def notify_error(self, node_name: str, error: str) -> None:
        self._notify("on_node_error", node_name, error)


def _observed_value(normalize: Callable[[Any], dict[str, Any]], value: Any) -> Any:
    try:
        return normalize(value)
    except SerializationError:
        return value


class ObservableNodeWrapper(ObservableNode):
    """
    A named node that is traced and observed on every execution.

    Args:
        name: Node (run) name
        run_type: Run type of the node
        observers: Initial listeners
        notify_when_disabled: Deliver notifications even when tracing is off
        serializer: Normalization policy, shared by tracing and notifications
        **trace_options: Forwarded to trace_node (config, client, tags, ...)
    """

    def __init__(
        self,
        name: str,
        run_type: RunType | str = RunType.CHAIN,
        *,
        observers: Iterable[Observer] = (),
        notify_when_disabled: bool = True,
        serializer: SerializationStrategy | None = None,
        **trace_options: Any,
    ):
        super().__init__(observers)
        self.name = name
        self.run_type = run_type
        self.notify_when_disabled = notify_when_disabled
        self.serializer = serializer or DEFAULT_SERIALIZER
        self.trace_options = trace_options

    def with_observer(self, observer: Observer) -> ObservableNodeWrapper:
        self.add_observer(observer)
        return self

    def _should_notify(self) -> bool:
        if self.notify_when_disabled:
            return True
        return (self.trace_options.get("config") or get_config()).enabled

    async def execute(self, inputs: I, func: Callable[[I], Awaitable[O]]) -> O:
        """Run ``func(inputs)`` through trace_node, notifying observers around it."""
        notify = self._should_notify()
        if notify:
            self.notify_start(self.name, _observed_value(self.serializer.ensure_inputs, inputs))

        try:
            result = await trace_node(
                self.name,
                self.run_type,
                inputs,
                func,
                serializer=self.serializer,
                **self.trace_options,
            )
        except Exception as exc:
            if notify:
                self.notify_error(self.name, error_message(exc))
            raise

        if notify:
            self.notify_end(self.name, _observed_value(self.serializer.ensure_outputs, result))
        return result

    def execute_sync(self, inputs: I, func: Callable[[I], O]) -> O:
        """Blocking variant of execute()."""
        notify = self._should_notify()
        if notify:
            self.notify_start(self.name, _observed_value(self.serializer.ensure_inputs, inputs))

        try:
            result = trace_node_sync(
                self.name,
                self.run_type,
                inputs,
                func,
                serializer=self.serializer,
                **self.trace_options,
            )
        except Exception as exc:
            if notify:
                self.notify_error(self.name, error_message(exc))
            raise

        if notify:
            self.notify_end(self.name, _observed_value(self.serializer.ensure_outputs, result))
        return result
