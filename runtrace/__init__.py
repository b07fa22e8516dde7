"""
runtrace - run tracing for computation graphs.

Records inputs, outputs, timing, errors and parent/child structure for the
nodes of a computation graph and reports them to a LangSmith-compatible
runs API.

Quick Start:
    # Enable via environment variables
    export LANGSMITH_TRACING=true
    export LANGSMITH_API_KEY=ls-...
    export LANGSMITH_PROJECT=my-agent

    from runtrace import RunType, init_config, trace_node

    init_config()  # once, at startup

    async def double(x: int) -> int:
        return x * 2

    result = await trace_node("double", RunType.LLM, 21, double)

Usage Patterns:

    1. Wrapping a node call:
        ```python
        answer = await trace_node("chatbot", RunType.CHAIN, state, chatbot)
        ```

    2. Decorating a function:
        ```python
        @traced_node(run_type=RunType.TOOL)
        async def search(query: str) -> list[str]:
            ...
        ```

    3. Manual hierarchy:
        ```python
        tracer = Tracer("pipeline", RunType.CHAIN, inputs)
        await tracer.post()
        child = tracer.create_child("llm", RunType.LLM, prompt)
        ...
        ```

Run Hierarchy:
    Graph (root, trace_id = its own id)
    └── chatbot              dotted_order = K.C1
        └── ChatOpenAI       dotted_order = K.C1.G1

Nested trace_node() calls pick up their parent from the current task's
context automatically, including across asyncio.gather().
"""

from runtrace.client import ReportingClient
from runtrace.config import (
    TracingConfig,
    get_config,
    init_config,
    is_tracing_enabled,
    reset_config,
)
from runtrace.context import (
    TraceContext,
    attach_context,
    get_current_context,
)
from runtrace.decorator import trace_node, trace_node_sync, traced_node
from runtrace.exceptions import (
    ConfigurationError,
    RunAlreadyFinalizedError,
    SerializationError,
    TracingDisabled,
    TracingError,
    TransportError,
    ValidationError,
)
from runtrace.factory import TracerFactory
from runtrace.logging_config import disable_reporting_logs, enable_reporting_logs
from runtrace.graph import GraphTrace
from runtrace.observers import (
    LoggingObserver,
    ObservableNode,
    ObservableNodeWrapper,
    Observer,
)
from runtrace.schemas import (
    AIMessage,
    HumanMessage,
    Message,
    Metrics,
    Run,
    RunType,
    RunUpdate,
    SystemMessage,
    ToolCall,
    ToolMessage,
)
from runtrace.scope import RunScope
from runtrace.serialization import (
    DefaultSerializationStrategy,
    SerializationStrategy,
    ensure_inputs_object,
    ensure_object,
    ensure_outputs_object,
)
from runtrace.strategies import ClientTracingStrategy, TracingStrategy
from runtrace.tracer import Tracer, TracerState
from runtrace.validation import validate_run

__version__ = "0.1.0"

__all__ = [
    # Configuration
    "TracingConfig",
    "init_config",
    "get_config",
    "is_tracing_enabled",
    "reset_config",
    # Logging
    "enable_reporting_logs",
    "disable_reporting_logs",
    # Errors
    "TracingError",
    "ConfigurationError",
    "TransportError",
    "SerializationError",
    "ValidationError",
    "RunAlreadyFinalizedError",
    "TracingDisabled",
    # Data model
    "Run",
    "RunType",
    "RunUpdate",
    "Metrics",
    "AIMessage",
    "HumanMessage",
    "Message",
    "SystemMessage",
    "ToolCall",
    "ToolMessage",
    # Tracing
    "Tracer",
    "TracerState",
    "TracerFactory",
    "TraceContext",
    "attach_context",
    "get_current_context",
    "trace_node",
    "trace_node_sync",
    "traced_node",
    "RunScope",
    "GraphTrace",
    # Reporting
    "ReportingClient",
    "TracingStrategy",
    "ClientTracingStrategy",
    "validate_run",
    # Serialization
    "SerializationStrategy",
    "DefaultSerializationStrategy",
    "ensure_object",
    "ensure_inputs_object",
    "ensure_outputs_object",
    # Observers
    "Observer",
    "LoggingObserver",
    "ObservableNode",
    "ObservableNodeWrapper",
]
