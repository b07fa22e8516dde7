"""
Serialization adapter: turns arbitrary values into report-ready JSON objects.

The backend requires ``inputs`` and ``outputs`` to be JSON objects. Values
that already serialize to an object pass through unchanged; anything else
(scalars, lists, None) is wrapped under a single conventional key:

    ensure_inputs_object("hi")      -> {"input": "hi"}
    ensure_outputs_object(42)       -> {"output": 42}
    ensure_inputs_object({"a": 1})  -> {"a": 1}

Conversion to JSON types goes through pydantic, so models, dataclasses,
UUIDs, datetimes and enums are all accepted.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import TypeAdapter

from runtrace.exceptions import SerializationError

INPUT_KEY = "input"
OUTPUT_KEY = "output"

_any_adapter: TypeAdapter[Any] = TypeAdapter(Any)


def to_json_value(value: Any) -> Any:
    """
    Convert a value to plain JSON-compatible Python.

    Raises:
        SerializationError: If the value has no JSON representation
    """
    try:
        return _any_adapter.dump_python(value, mode="json")
    except Exception as e:
        raise SerializationError(
            f"Cannot serialize value of type {type(value).__name__}: {e}",
            details={"type": type(value).__name__},
        ) from e


def ensure_object(value: Any, key: str) -> dict[str, Any]:
    """
    Serialize ``value`` and guarantee the result is a JSON object.

    Args:
        value: Any serializable value
        key: Key used to wrap non-object values

    Returns:
        The serialized object, or ``{key: serialized_value}``
    """
    json_value = to_json_value(value)
    if isinstance(json_value, dict):
        return json_value
    return {key: json_value}


def ensure_inputs_object(value: Any) -> dict[str, Any]:
    return ensure_object(value, INPUT_KEY)


def ensure_outputs_object(value: Any) -> dict[str, Any]:
    return ensure_object(value, OUTPUT_KEY)


class SerializationStrategy(ABC):
    """Policy for normalizing run inputs and outputs into JSON objects."""

    @abstractmethod
    def ensure_inputs(self, value: Any) -> dict[str, Any]:
        """Normalize a run's inputs."""

    @abstractmethod
    def ensure_outputs(self, value: Any) -> dict[str, Any]:
        """Normalize a run's outputs."""


class DefaultSerializationStrategy(SerializationStrategy):
    """Wraps non-object values under ``input`` / ``output`` (or custom keys)."""

    def __init__(self, input_key: str = INPUT_KEY, output_key: str = OUTPUT_KEY):
        self.input_key = input_key
        self.output_key = output_key

    def ensure_inputs(self, value: Any) -> dict[str, Any]:
        return ensure_object(value, self.input_key)

    def ensure_outputs(self, value: Any) -> dict[str, Any]:
        return ensure_object(value, self.output_key)

    def __repr__(self) -> str:
        return (
            f"DefaultSerializationStrategy(input_key={self.input_key!r}, "
            f"output_key={self.output_key!r})"
        )


DEFAULT_SERIALIZER = DefaultSerializationStrategy()
