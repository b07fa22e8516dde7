"""Tests for the Tracer: run creation, hierarchy and the report pair."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from runtrace.config import TracingConfig, init_config
from runtrace.context import TraceContext
from runtrace.dotted_order import parse_dotted_order
from runtrace.exceptions import RunAlreadyFinalizedError, SerializationError, TransportError
from runtrace.schemas.metrics import Metrics
from runtrace.schemas.run import RunType
from runtrace.serialization import DefaultSerializationStrategy
from runtrace.tracer import Tracer, TracerState, error_message


class TestRootRun:
    def test_root_run_is_its_own_trace(self, disabled_config):
        tracer = Tracer("root", RunType.CHAIN, {"q": 1}, config=disabled_config)

        assert tracer.trace_id == tracer.run_id
        assert tracer.parent_run_id is None
        assert tracer.run.is_root
        assert parse_dotted_order(tracer.dotted_order) == [
            (tracer.run.start_time, tracer.run_id)
        ]

    def test_inputs_are_normalized(self, disabled_config):
        tracer = Tracer("root", RunType.LLM, "hi", config=disabled_config)
        assert tracer.run.inputs == {"input": "hi"}

    def test_custom_serializer(self, disabled_config):
        serializer = DefaultSerializationStrategy(input_key="prompt")
        tracer = Tracer("root", RunType.LLM, "hi", config=disabled_config, serializer=serializer)

        assert tracer.run.inputs == {"prompt": "hi"}
        assert tracer.create_child("c", RunType.LLM, "x").run.inputs == {"prompt": "x"}

    def test_unserializable_inputs_raise(self, disabled_config):
        with pytest.raises(SerializationError):
            Tracer("root", RunType.CHAIN, object(), config=disabled_config)

    def test_ids_are_unique(self, disabled_config):
        ids = {Tracer("r", RunType.CHAIN, {}, config=disabled_config).run_id for _ in range(200)}
        assert len(ids) == 200

    def test_session_name_defaults_to_project(self, enabled_config):
        tracer = Tracer("root", RunType.CHAIN, {}, config=enabled_config)
        assert tracer.session_name == "test-project"

    def test_uses_initialized_config_by_default(self, enabled_config):
        init_config(enabled_config)
        assert Tracer("root", RunType.CHAIN, {}).config is enabled_config

    def test_metadata_is_copied(self, disabled_config):
        tags = ["a"]
        tracer = Tracer("root", RunType.CHAIN, {}, tags=tags, extra={"k": 1}, config=disabled_config)
        tags.append("b")

        assert tracer.run.tags == ["a"]
        assert tracer.run.extra == {"k": 1}

    def test_initial_state(self, disabled_config):
        tracer = Tracer("root", RunType.CHAIN, {}, config=disabled_config)
        assert tracer.state is TracerState.CREATED
        assert tracer.run.end_time is None
        assert tracer.run.outputs is None


class TestHierarchy:
    def test_parent_child_grandchild(self, disabled_config):
        root = Tracer("root", RunType.CHAIN, {}, config=disabled_config)
        child = root.create_child("child", RunType.LLM, {})
        grandchild = child.create_child("grandchild", RunType.TOOL, {})

        assert root.trace_id == child.trace_id == grandchild.trace_id == root.run_id
        assert child.parent_run_id == root.run_id
        assert grandchild.parent_run_id == child.run_id

        assert child.dotted_order.startswith(root.dotted_order + ".")
        assert grandchild.dotted_order.startswith(child.dotted_order + ".")
        assert len(child.dotted_order) > len(root.dotted_order)
        assert len(parse_dotted_order(grandchild.dotted_order)) == 3

    def test_child_key_is_parent_key_plus_own_segment(self, disabled_config):
        root = Tracer("root", RunType.CHAIN, {}, config=disabled_config)
        child = root.create_child("child", RunType.LLM, {})

        segments = parse_dotted_order(child.dotted_order)
        assert segments[-1] == (child.run.start_time, child.run_id)
        assert child.dotted_order.rsplit(".", 1)[0] == root.dotted_order

    def test_siblings_are_distinct_and_ordered(self, disabled_config):
        root = Tracer("root", RunType.CHAIN, {}, config=disabled_config)
        first = root.create_child("a", RunType.LLM, {})
        second = root.create_child("b", RunType.LLM, {})

        assert first.dotted_order != second.dotted_order
        assert not second.dotted_order.startswith(first.dotted_order)
        assert not first.dotted_order.startswith(second.dotted_order)
        assert first.dotted_order < second.dotted_order

    def test_children_start_after_parent(self, disabled_config):
        root = Tracer("root", RunType.CHAIN, {}, config=disabled_config)
        child = root.create_child("child", RunType.LLM, {})
        assert child.run.start_time > root.run.start_time

    def test_child_inherits_thread_and_session(self, enabled_config):
        root = Tracer("root", RunType.CHAIN, {}, thread_id="t-1", session_name="s", config=enabled_config)
        child = root.create_child("child", RunType.LLM, {})

        assert child.thread_id == "t-1"
        assert child.session_name == "s"

    def test_child_can_override_thread(self, disabled_config):
        root = Tracer("root", RunType.CHAIN, {}, thread_id="t-1", config=disabled_config)
        assert root.create_child("c", RunType.LLM, {}, thread_id="t-2").thread_id == "t-2"

    def test_child_shares_client_and_config(self, enabled_config, client):
        root = Tracer("root", RunType.CHAIN, {}, config=enabled_config, client=client)
        child = root.create_child("child", RunType.LLM, {})

        assert child.client is client
        assert child.config is enabled_config

    def test_context_snapshot(self, disabled_config):
        tracer = Tracer("root", RunType.CHAIN, {}, thread_id="t", config=disabled_config)
        ctx = tracer.context()

        assert isinstance(ctx, TraceContext)
        assert ctx.trace_id == tracer.trace_id
        assert ctx.dotted_order == tracer.dotted_order
        assert ctx.run_id == tracer.run_id
        assert ctx.thread_id == "t"

    def test_parent_finalization_does_not_touch_child(self, disabled_config):
        root = Tracer("root", RunType.CHAIN, {}, config=disabled_config)
        child = root.create_child("child", RunType.LLM, {})
        key = child.dotted_order

        root.end({"done": True})

        assert child.dotted_order == key
        assert child.run.end_time is None

    def test_child_from_explicit_context(self, disabled_config):
        root = Tracer("root", RunType.CHAIN, {}, config=disabled_config)
        child = Tracer("remote", RunType.TOOL, {}, parent=root.context(), config=disabled_config)

        assert child.parent_run_id == root.run_id
        assert child.trace_id == root.trace_id
        assert child.dotted_order.startswith(root.dotted_order + ".")

    @pytest.mark.asyncio
    async def test_concurrent_children_have_distinct_keys(self, disabled_config):
        root = Tracer("root", RunType.CHAIN, {}, config=disabled_config)

        async def spawn(i):
            await asyncio.sleep(0)
            return root.create_child(f"branch-{i}", RunType.CHAIN, {"i": i})

        children = await asyncio.gather(*(spawn(i) for i in range(20)))
        keys = {c.dotted_order for c in children}

        assert len(keys) == 20
        assert all(k.startswith(root.dotted_order + ".") for k in keys)


class TestEnd:
    def test_end_with_outputs(self, disabled_config):
        tracer = Tracer("n", RunType.LLM, 21, config=disabled_config)
        tracer.end(42)

        assert tracer.run.outputs == {"output": 42}
        assert tracer.run.error is None
        assert tracer.run.end_time >= tracer.run.start_time
        assert tracer.state is TracerState.FINALIZED

    def test_end_with_error(self, disabled_config):
        tracer = Tracer("n", RunType.LLM, 21, config=disabled_config)
        error = ValueError("bad input")
        tracer.end(error=error)

        assert tracer.run.error == "bad input"
        assert tracer.run.outputs is None
        assert tracer.run.end_time is not None
        assert error.args == ("bad input",)

    def test_end_twice_is_rejected(self, disabled_config):
        tracer = Tracer("n", RunType.LLM, 21, config=disabled_config)
        tracer.end(1)
        end_time = tracer.run.end_time

        with pytest.raises(RunAlreadyFinalizedError):
            tracer.end(2)
        assert tracer.run.outputs == {"output": 1}
        assert tracer.run.end_time == end_time

    def test_unserializable_outputs_leave_run_open(self, disabled_config):
        tracer = Tracer("n", RunType.LLM, 21, config=disabled_config)

        with pytest.raises(SerializationError):
            tracer.end(object())
        assert tracer.run.end_time is None
        assert tracer.state is TracerState.CREATED

    def test_set_error_and_metrics(self, disabled_config):
        tracer = Tracer("n", RunType.LLM, 21, config=disabled_config)
        tracer.set_error("partial failure")
        tracer.set_metrics(Metrics().with_tokens(3, 4))

        assert tracer.run.error == "partial failure"
        assert tracer.run.total_tokens == 7

    def test_error_message_helper(self):
        assert error_message("plain") == "plain"
        assert error_message(KeyError("k")) == "'k'"
        assert error_message(RuntimeError()) == "RuntimeError"


class TestReporting:
    @pytest.mark.asyncio
    async def test_post_then_patch(self, backend, client, enabled_config):
        tracer = Tracer("n", RunType.LLM, 21, config=enabled_config, client=client)

        await tracer.post()
        assert tracer.state is TracerState.REPORTED
        tracer.end(42)
        await tracer.patch()

        assert tracer.state is TracerState.UPDATED
        assert backend.created[0]["inputs"] == {"input": 21}
        assert backend.created[0]["dotted_order"] == tracer.dotted_order
        assert backend.created[0]["session_name"] == "test-project"
        assert backend.updated[0]["json"]["outputs"] == {"output": 42}

    @pytest.mark.asyncio
    async def test_post_failure_surfaces_but_keeps_identity(self, failing_client, enabled_config):
        tracer = Tracer("n", RunType.LLM, 21, config=enabled_config, client=failing_client)
        run_id, key, start = tracer.run_id, tracer.dotted_order, tracer.run.start_time

        with pytest.raises(TransportError):
            await tracer.post()

        assert (tracer.run_id, tracer.dotted_order, tracer.run.start_time) == (run_id, key, start)
        assert tracer.state is TracerState.CREATED

    @pytest.mark.asyncio
    async def test_post_update_sends_the_update(self, backend, client, enabled_config):
        tracer = Tracer("n", RunType.LLM, 21, config=enabled_config, client=client)
        tracer.end(42)

        await tracer.post_update()

        assert tracer.state is TracerState.UPDATED
        assert backend.updated[0]["path"] == f"/api/v1/runs/{tracer.run_id}"
        assert backend.updated[0]["json"]["outputs"] == {"output": 42}

    def test_post_update_sync(self, backend, client, enabled_config):
        tracer = Tracer("n", RunType.LLM, 21, config=enabled_config, client=client)
        tracer.end(error="failed")
        tracer.post_update_sync()

        assert backend.updated[0]["json"]["error"] == "failed"

    @pytest.mark.asyncio
    async def test_post_twice_sends_two_creates(self, backend, client, enabled_config):
        tracer = Tracer("n", RunType.LLM, 21, config=enabled_config, client=client)
        await tracer.post()
        await tracer.post()
        assert len(backend.created) == 2

    @pytest.mark.asyncio
    async def test_patch_before_end_sends_incomplete_update(self, backend, client, enabled_config):
        tracer = Tracer("n", RunType.LLM, 21, config=enabled_config, client=client)
        await tracer.patch()

        assert backend.updated[0]["json"] == {}
        assert tracer.state is TracerState.CREATED

    @pytest.mark.asyncio
    async def test_disabled_tracer_makes_no_calls(self, disabled_config):
        with patch("runtrace.tracer.ReportingClient") as client_cls:
            tracer = Tracer("n", RunType.LLM, 21, config=disabled_config)
            await tracer.post()
            tracer.end(1)
            await tracer.patch()

        client_cls.assert_not_called()
        assert tracer.state is TracerState.FINALIZED

    @pytest.mark.asyncio
    async def test_without_client_each_report_uses_short_lived_client(self, enabled_config):
        instance = MagicMock()
        instance.create_run = AsyncMock()
        instance.update_run = AsyncMock()
        instance.__aenter__ = AsyncMock(return_value=instance)
        instance.__aexit__ = AsyncMock(return_value=None)

        with patch("runtrace.tracer.ReportingClient", return_value=instance) as client_cls:
            tracer = Tracer("n", RunType.LLM, 21, config=enabled_config)
            await tracer.post()
            tracer.end(1)
            await tracer.patch()

        assert client_cls.call_count == 2
        client_cls.assert_called_with(enabled_config)
        instance.create_run.assert_awaited_once_with(tracer.run)
        assert instance.__aexit__.await_count == 2

    def test_sync_reporting(self, backend, client, enabled_config):
        tracer = Tracer("n", RunType.TOOL, {"a": 1}, config=enabled_config, client=client)
        tracer.post_sync()
        tracer.end({"b": 2})
        tracer.patch_sync()

        assert tracer.state is TracerState.UPDATED
        assert [r["method"] for r in backend.requests] == ["POST", "PATCH"]

    def test_sync_reports_without_client_close_their_pools(self, backend, enabled_config):
        opened = []

        def make_client(config):
            client = backend.client(config)
            opened.append(client)
            return client

        with patch("runtrace.tracer.ReportingClient", side_effect=make_client):
            tracer = Tracer("n", RunType.TOOL, {"a": 1}, config=enabled_config)
            tracer.post_sync()
            tracer.end({"b": 2})
            tracer.patch_sync()

        assert len(opened) == 2
        assert all(c._async_client is None for c in opened)
        assert all(c.is_closed for c in opened)
        assert [r["method"] for r in backend.requests] == ["POST", "PATCH"]

    def test_sync_disabled(self):
        tracer = Tracer("n", RunType.TOOL, {}, config=TracingConfig())
        tracer.post_sync()
        tracer.patch_sync()
        assert tracer.state is TracerState.CREATED

    def test_repr_mentions_name_and_state(self, disabled_config):
        text = repr(Tracer("node-x", "custom", {}, config=disabled_config))
        assert "node-x" in text
        assert "custom" in text
        assert "created" in text
