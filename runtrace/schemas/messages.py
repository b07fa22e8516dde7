"""
Message Schema - chat payloads for LLM runs.

The backend renders LLM runs whose inputs/outputs hold a ``messages`` list
of role-tagged objects. These models build that shape; they carry no
behavior beyond serialization.
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter


class ToolCall(BaseModel):
    """A tool invocation requested by the model."""

    id: str
    name: str
    args: dict[str, Any] = Field(default_factory=dict)


class AIMessage(BaseModel):
    role: Literal["ai"] = "ai"
    content: str
    tool_calls: list[ToolCall] = Field(default_factory=list)


class ToolMessage(BaseModel):
    role: Literal["tool"] = "tool"
    tool_call_id: str
    content: str
    name: str


class HumanMessage(BaseModel):
    role: Literal["human"] = "human"
    content: str


class SystemMessage(BaseModel):
    role: Literal["system"] = "system"
    content: str


Message = Annotated[
    AIMessage | ToolMessage | HumanMessage | SystemMessage,
    Field(discriminator="role"),
]

_message_list = TypeAdapter(list[Message])


def messages_payload(messages: list[Message]) -> dict[str, Any]:
    """Wrap messages as ``{"messages": [...]}`` with empty tool_calls omitted."""
    dumped = _message_list.dump_python(messages, mode="json")
    for item in dumped:
        if item.get("role") == "ai" and not item.get("tool_calls"):
            item.pop("tool_calls", None)
    return {"messages": dumped}


def parse_messages(data: list[dict[str, Any]]) -> list[Message]:
    """Validate a list of role-tagged dicts into message models."""
    return _message_list.validate_python(data)
