"""
Tracing Configuration for runtrace.

Provides environment-based configuration for run reporting with
sensible defaults and zero-config operation. Tracing is off unless
explicitly switched on.

Environment Variables:
    LANGSMITH_TRACING: Enable/disable reporting (default: false)
    LANGSMITH_ENDPOINT: Backend base URL (default: https://api.smith.langchain.com)
    LANGSMITH_API_KEY: API key, required when tracing is enabled
    LANGSMITH_PROJECT: Project name, reported as the run's session_name
    LANGSMITH_TENANT_ID: Optional workspace scoping
    LANGSMITH_TIMEOUT_SECONDS: HTTP timeout for each report (default: 10)

The process-wide handle is explicit: call init_config() once at startup
and read it back with get_config(). Nothing is loaded lazily behind the
caller's back.
"""

from __future__ import annotations

import os
import threading
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from typing import Any

from runtrace.exceptions import ConfigurationError
from runtrace.logging_config import enable_reporting_logs

DEFAULT_ENDPOINT = "https://api.smith.langchain.com"
DEFAULT_TIMEOUT_SECONDS = 10.0

ENV_PREFIX = "LANGSMITH_"


def _parse_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in ("true", "1", "yes", "on")


def _parse_float(value: str | None, default: float) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass(frozen=True)
class TracingConfig:
    """
    Configuration for run reporting.

    Immutable configuration object that can be created from environment
    variables or passed explicitly.

    Attributes:
        enabled: Master switch; when False no tracer is built and no request is sent
        endpoint: Base URL of the tracing backend
        api_key: Key sent as ``x-api-key``; required whenever enabled
        project: Project name used as every run's session_name
        tenant_id: Optional workspace id sent as ``x-tenant-id``
        timeout_seconds: Timeout applied to each create/update request
    """

    enabled: bool = False
    endpoint: str = DEFAULT_ENDPOINT
    api_key: str | None = None
    project: str | None = None
    tenant_id: str | None = None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        if self.enabled and not self.api_key:
            raise ConfigurationError(
                f"{ENV_PREFIX}API_KEY is required when tracing is enabled",
                details={"endpoint": self.endpoint},
            )
        if self.endpoint.endswith("/"):
            object.__setattr__(self, "endpoint", self.endpoint.rstrip("/"))

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> TracingConfig:
        """
        Create configuration from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            TracingConfig populated from the environment

        Raises:
            ConfigurationError: If tracing is enabled without an API key
        """
        env = os.environ if environ is None else environ

        return cls(
            enabled=_parse_bool(env.get(f"{ENV_PREFIX}TRACING")),
            endpoint=env.get(f"{ENV_PREFIX}ENDPOINT") or DEFAULT_ENDPOINT,
            api_key=env.get(f"{ENV_PREFIX}API_KEY") or None,
            project=env.get(f"{ENV_PREFIX}PROJECT") or None,
            tenant_id=env.get(f"{ENV_PREFIX}TENANT_ID") or None,
            timeout_seconds=_parse_float(
                env.get(f"{ENV_PREFIX}TIMEOUT_SECONDS"), DEFAULT_TIMEOUT_SECONDS
            ),
        )

    def with_overrides(self, **kwargs: Any) -> TracingConfig:
        """
        Create a new config with specific values overridden.

        Args:
            **kwargs: Fields to override

        Returns:
            New TracingConfig with overrides applied
        """
        known = {f.name for f in fields(self)}
        unknown = set(kwargs) - known
        if unknown:
            raise ConfigurationError(
                f"Unknown configuration fields: {', '.join(sorted(unknown))}"
            )
        return replace(self, **kwargs)


_config_lock = threading.Lock()
_config: TracingConfig | None = None


def init_config(
    config: TracingConfig | None = None,
    *,
    log_level: str | None = None,
) -> TracingConfig:
    """
    Initialize the process-wide configuration exactly once.

    Args:
        config: Explicit configuration. If None, read from the environment.
        log_level: When given, also turn on the reporting side channel at
            this level (see runtrace.logging_config.enable_reporting_logs)

    Returns:
        The stored configuration

    Raises:
        ConfigurationError: If the environment is invalid, or if a different
            configuration was already initialized
    """
    global _config
    resolved = config if config is not None else TracingConfig.from_env()
    with _config_lock:
        if _config is not None and _config != resolved:
            raise ConfigurationError(
                "Tracing configuration is already initialized",
                details={"current": repr(_config)},
            )
        _config = resolved
        stored = _config

    if log_level is not None:
        enable_reporting_logs(log_level)
    return stored


def get_config() -> TracingConfig:
    """
    Get the initialized configuration.

    Returns a disabled default when init_config() was never called, so an
    uninitialized process does no reporting at all. The default is not
    stored.
    """
    with _config_lock:
        if _config is None:
            return TracingConfig()
        return _config


def is_tracing_enabled() -> bool:
    """Whether the process-wide configuration has tracing switched on."""
    return get_config().enabled


def reset_config() -> None:
    """
    Forget the initialized configuration.

    Use this for testing or to reconfigure reporting.
    """
    global _config
    with _config_lock:
        _config = None
