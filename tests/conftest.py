"""Shared fixtures for runtrace tests."""

import json
import logging

import httpx
import pytest

from runtrace.client import ReportingClient
from runtrace.config import TracingConfig, reset_config
from runtrace.logging_config import disable_reporting_logs


class RecordingBackend:
    """In-memory runs API: records every request and answers with ``status_code``."""

    def __init__(self, status_code: int = 200):
        self.status_code = status_code
        self.requests: list[dict] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        self.requests.append(
            {
                "method": request.method,
                "path": request.url.path,
                "headers": dict(request.headers),
                "json": body,
            }
        )
        return httpx.Response(self.status_code, json={"ok": self.status_code < 400})

    @property
    def created(self) -> list[dict]:
        return [r["json"] for r in self.requests if r["method"] == "POST"]

    @property
    def updated(self) -> list[dict]:
        return [r for r in self.requests if r["method"] == "PATCH"]

    def client(self, config: TracingConfig) -> ReportingClient:
        transport = httpx.MockTransport(self.handler)
        return ReportingClient(config, transport=transport, sync_transport=transport)


@pytest.fixture(autouse=True)
def clean_state():
    """Every test starts with no initialized config and default log levels."""
    reset_config()
    yield
    reset_config()
    disable_reporting_logs()
    for name in list(logging.Logger.manager.loggerDict):
        if name.startswith("runtrace."):
            logging.getLogger(name).setLevel(logging.NOTSET)


@pytest.fixture
def enabled_config():
    return TracingConfig(
        enabled=True,
        endpoint="https://tracing.test/api/v1",
        api_key="test-key",
        project="test-project",
    )


@pytest.fixture
def disabled_config():
    return TracingConfig(enabled=False)


@pytest.fixture
def backend():
    return RecordingBackend()


@pytest.fixture
def failing_backend():
    return RecordingBackend(status_code=503)


@pytest.fixture
def client(backend, enabled_config):
    return backend.client(enabled_config)


@pytest.fixture
def failing_client(failing_backend, enabled_config):
    return failing_backend.client(enabled_config)
