"""
Reporting client: the two HTTP calls a run needs.

    POST  {endpoint}/runs            full run, sent before the node executes
    PATCH {endpoint}/runs/{run_id}   outputs / error / end_time / metrics

One ReportingClient is meant to be shared by every tracer in the process:
it holds at most one httpx pool per side (async and blocking) and no
per-run state. Each pool is opened on first use of its side, so a client
used only for blocking reports never builds an async pool.

Usage:
    async with ReportingClient(config) as client:
        tracer = Tracer("step", RunType.CHAIN, inputs, config=config, client=client)
        await tracer.post()
"""

from __future__ import annotations

import logging
import threading
from typing import Any
from uuid import UUID

import httpx

from runtrace.config import TracingConfig
from runtrace.exceptions import TracingDisabled, TransportError
from runtrace.schemas.run import Run, RunUpdate
from runtrace.validation import validate_run

logger = logging.getLogger(__name__)

MAX_ERROR_BODY = 500


class ReportingClient:
    """
    HTTP client for the runs API.

    Args:
        config: Tracing configuration (endpoint, credentials, timeout)
        transport: Optional async transport (e.g. httpx.MockTransport in tests)
        sync_transport: Optional transport for the blocking client
    """

    def __init__(
        self,
        config: TracingConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        sync_transport: httpx.BaseTransport | None = None,
    ):
        self.config = config
        self._transport = transport
        self._sync_transport = sync_transport
        self._async_client: httpx.AsyncClient | None = None
        self._sync_client: httpx.Client | None = None
        self._lock = threading.Lock()

    @property
    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["x-api-key"] = self.config.api_key
        if self.config.tenant_id:
            headers["x-tenant-id"] = self.config.tenant_id
        return headers

    def _get_async_client(self) -> httpx.AsyncClient:
        with self._lock:
            if self._async_client is None:
                self._async_client = httpx.AsyncClient(
                    base_url=self.config.endpoint,
                    headers=self._headers,
                    timeout=self.config.timeout_seconds,
                    transport=self._transport,
                )
            return self._async_client

    def _get_sync_client(self) -> httpx.Client:
        with self._lock:
            if self._sync_client is None:
                self._sync_client = httpx.Client(
                    base_url=self.config.endpoint,
                    headers=self._headers,
                    timeout=self.config.timeout_seconds,
                    transport=self._sync_transport,
                )
            return self._sync_client

    @property
    def is_closed(self) -> bool:
        """True when every pool that was opened has been closed."""
        return all(
            client.is_closed
            for client in (self._async_client, self._sync_client)
            if client is not None
        )

    def _check_enabled(self) -> None:
        if not self.config.enabled:
            raise TracingDisabled()

    def _handle_response(self, response: httpx.Response) -> None:
        """Raise TransportError for any non-2xx answer."""
        if response.is_success:
            return
        body = response.text[:MAX_ERROR_BODY]
        raise TransportError(
            f"HTTP {response.status_code}: {body}",
            status_code=response.status_code,
            details={"url": str(response.request.url)},
        )

    @staticmethod
    def _create_body(run: Run) -> dict[str, Any]:
        validate_run(run)
        return run.to_payload()

    # -- async -------------------------------------------------------------

    async def create_run(self, run: Run) -> None:
        """POST the full run."""
        self._check_enabled()
        body = self._create_body(run)
        try:
            response = await self._get_async_client().post("/runs", json=body)
        except httpx.HTTPError as e:
            raise TransportError(f"create_run failed: {e}", details={"run_id": str(run.id)}) from e
        self._handle_response(response)
        logger.debug(f"Reported run start: {run.name} ({run.id})")

    async def update_run(self, run_id: UUID, update: RunUpdate) -> None:
        """PATCH the mutable fields of a run."""
        self._check_enabled()
        try:
            response = await self._get_async_client().patch(
                f"/runs/{run_id}", json=update.to_payload()
            )
        except httpx.HTTPError as e:
            raise TransportError(f"update_run failed: {e}", details={"run_id": str(run_id)}) from e
        self._handle_response(response)
        logger.debug(f"Reported run update: {run_id}")

    async def aclose(self) -> None:
        """Close every pool that was opened."""
        if self._async_client is not None:
            await self._async_client.aclose()
        if self._sync_client is not None:
            self._sync_client.close()

    async def __aenter__(self) -> ReportingClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    # -- blocking ----------------------------------------------------------

    def create_run_sync(self, run: Run) -> None:
        """Blocking variant of create_run."""
        self._check_enabled()
        body = self._create_body(run)
        try:
            response = self._get_sync_client().post("/runs", json=body)
        except httpx.HTTPError as e:
            raise TransportError(f"create_run failed: {e}", details={"run_id": str(run.id)}) from e
        self._handle_response(response)
        logger.debug(f"Reported run start: {run.name} ({run.id})")

    def update_run_sync(self, run_id: UUID, update: RunUpdate) -> None:
        """Blocking variant of update_run."""
        self._check_enabled()
        try:
            response = self._get_sync_client().patch(
                f"/runs/{run_id}", json=update.to_payload()
            )
        except httpx.HTTPError as e:
            raise TransportError(f"update_run failed: {e}", details={"run_id": str(run_id)}) from e
        self._handle_response(response)
        logger.debug(f"Reported run update: {run_id}")

    def close(self) -> None:
        """
        Close the blocking pool.

        An async pool can only be closed from a running loop; if one was
        opened, use aclose() instead.
        """
        if self._sync_client is not None:
            self._sync_client.close()
        if self._async_client is not None and not self._async_client.is_closed:
            logger.warning("ReportingClient.close() left the async pool open; use aclose()")

    def __enter__(self) -> ReportingClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
