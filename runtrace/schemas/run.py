"""
Run Schema - one recorded execution unit.

A Run holds the inputs, outputs, timing, error and hierarchy position of a
single node invocation. The Tracer owns it; the reporting client only ever
sees it through to_payload() and RunUpdate.
"""

from datetime import datetime
from enum import StrEnum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

from runtrace.schemas.metrics import Metrics


class RunType(StrEnum):
    """Kinds of run the backend knows how to render."""

    CHAIN = "chain"
    LLM = "llm"
    TOOL = "tool"
    RETRIEVER = "retriever"
    EMBEDDING = "embedding"
    PROMPT = "prompt"
    RUNNABLE = "runnable"

    @classmethod
    def coerce(cls, value: "RunType | str") -> "RunType | str":
        """Map a known name onto the enum; keep any other string as a custom type."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return value


METRIC_FIELDS = (
    "prompt_tokens",
    "completion_tokens",
    "total_tokens",
    "prompt_cost",
    "completion_cost",
    "total_cost",
)


class Run(BaseModel):
    """One execution unit within a trace."""

    id: UUID = Field(default_factory=uuid4)
    name: str
    run_type: RunType | str = RunType.CHAIN
    inputs: dict[str, Any] = Field(default_factory=dict)
    outputs: dict[str, Any] | None = None
    start_time: datetime
    end_time: datetime | None = None
    trace_id: UUID
    parent_run_id: UUID | None = None
    dotted_order: str = Field(description="Hierarchy key, see runtrace.dotted_order")
    session_id: str | None = None
    session_name: str | None = None
    thread_id: str | None = None
    error: str | None = None
    tags: list[str] = Field(default_factory=list)
    extra: dict[str, Any] = Field(default_factory=dict)

    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None
    prompt_cost: float | None = None
    completion_cost: float | None = None
    total_cost: float | None = None

    @field_validator("run_type", mode="before")
    @classmethod
    def _coerce_run_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return RunType.coerce(value)
        return value

    @property
    def is_root(self) -> bool:
        return self.parent_run_id is None

    @property
    def is_finalized(self) -> bool:
        return self.end_time is not None

    def apply_metrics(self, metrics: Metrics) -> None:
        """Copy every counter that is set on ``metrics`` onto this run."""
        for field_name in METRIC_FIELDS:
            value = getattr(metrics, field_name)
            if value is not None:
                setattr(self, field_name, value)

    def to_payload(self) -> dict[str, Any]:
        """Create-run request body: JSON types, unset and empty fields dropped."""
        payload = self.model_dump(mode="json", exclude_none=True)
        if not self.tags:
            payload.pop("tags", None)
        if not self.extra:
            payload.pop("extra", None)
        return payload


class RunUpdate(BaseModel):
    """The mutable subset of a run, sent by the update-run call."""

    outputs: dict[str, Any] | None = None
    end_time: datetime | None = None
    error: str | None = None
    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None
    total_cost: float | None = None

    @classmethod
    def from_run(cls, run: Run) -> "RunUpdate":
        return cls(
            outputs=run.outputs,
            end_time=run.end_time,
            error=run.error,
            prompt_tokens=run.prompt_tokens,
            completion_tokens=run.completion_tokens,
            total_tokens=run.total_tokens,
            total_cost=run.total_cost,
        )

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)
