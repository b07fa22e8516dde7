"""
GraphTrace - graph-shaped hierarchy for agent loops.

Produces the tree the backend renders for graph executions:

    Graph (chain)
    ├── chatbot (chain)
    │   └── ChatOpenAI (llm)
    ├── should_continue (chain)
    └── tools (chain)
        └── tool/calculator (tool)

Inputs and outputs are plain values, so any application can supply
backend-friendly payloads such as ``{"messages": [...]}``.

Usage:
    graph = await GraphTrace.start_root({"messages": history}, thread_id=tid)

    step = await graph.start_node_iteration("chatbot", {"messages": history})
    await graph.trace_llm_call(step, "ChatOpenAI", {"messages": history},
                               {"messages": [reply]}, model_name="gpt-4o-mini")
    await step.end_ok({"messages": [reply]})

    await graph.end_root({"messages": history + [reply]})
"""

from __future__ import annotations

from typing import Any

from runtrace.schemas.run import RunType
from runtrace.scope import RunScope
from runtrace.tracer import Tracer

ROOT_RUN_NAME = "Graph"
TOOL_RUN_PREFIX = "tool/"


class GraphTrace:
    """Root run of one graph execution plus helpers for its children."""

    def __init__(self, root: RunScope):
        self._root = root

    @classmethod
    async def start_root(
        cls,
        inputs: Any,
        thread_id: str | None = None,
        **kwargs: Any,
    ) -> GraphTrace:
        """
        Create and report the root ``Graph`` run.

        Raises:
            TransportError: If the root run cannot be reported
        """
        root = RunScope.root(ROOT_RUN_NAME, RunType.CHAIN, inputs, thread_id=thread_id, **kwargs)
        await root.post_start()
        return cls(root)

    @property
    def root_scope(self) -> RunScope:
        return self._root

    @property
    def root_tracer(self) -> Tracer:
        return self._root.tracer

    async def start_node_iteration(self, node_name: str, inputs: Any) -> RunScope:
        """Create and report one step of the graph directly under the root."""
        step = self._root.child(node_name, RunType.CHAIN, inputs)
        await step.post_start()
        return step

    async def trace_llm_call(
        self,
        parent_node: RunScope,
        llm_name: str,
        inputs: Any,
        outputs: Any,
        model_name: str | None = None,
    ) -> RunScope:
        """Record a completed LLM call under ``parent_node``."""
        if model_name and isinstance(inputs, dict):
            inputs = {**inputs, "model": model_name}
        llm = parent_node.child(llm_name, RunType.LLM, inputs)
        await llm.post_start()
        await llm.end_ok(outputs)
        return llm

    async def trace_decision(
        self,
        parent_node: RunScope,
        decision_name: str,
        inputs: Any,
        outputs: Any,
    ) -> RunScope:
        """Record a routing decision (e.g. ``should_continue``) under ``parent_node``."""
        decision = parent_node.child(decision_name, RunType.CHAIN, inputs)
        await decision.post_start()
        await decision.end_ok(outputs)
        return decision

    async def trace_tool_call(
        self,
        parent_node: RunScope,
        tool_name: str,
        inputs: Any,
        outputs: Any,
    ) -> RunScope:
        """Record a completed tool call, named ``tool/<tool_name>``."""
        tool = parent_node.child(f"{TOOL_RUN_PREFIX}{tool_name}", RunType.TOOL, inputs)
        await tool.post_start()
        await tool.end_ok(outputs)
        return tool

    async def end_root(self, outputs: Any) -> None:
        """Finalize and update the root run."""
        await self._root.end_ok(outputs)
