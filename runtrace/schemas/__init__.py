"""Schemas - runs, run updates, metrics and chat message payloads."""

from runtrace.schemas.messages import (
    AIMessage,
    HumanMessage,
    Message,
    SystemMessage,
    ToolCall,
    ToolMessage,
    messages_payload,
    parse_messages,
)
from runtrace.schemas.metrics import Metrics
from runtrace.schemas.run import Run, RunType, RunUpdate

__all__ = [
    "AIMessage",
    "HumanMessage",
    "Message",
    "Metrics",
    "Run",
    "RunType",
    "RunUpdate",
    "SystemMessage",
    "ToolCall",
    "ToolMessage",
    "messages_payload",
    "parse_messages",
]
