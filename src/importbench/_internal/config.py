"""Configuration loading for importbench."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from importbench._internal.errors import ConfigError

DEFAULT_ENDPOINT = "http://localhost:8529"


def _default_endpoints() -> tuple[str, ...]:
    return (DEFAULT_ENDPOINT,)


@dataclass(frozen=True)
class ImportBenchConfig:
    """Connection settings for the document store.

    Attributes:
        endpoints: Store endpoints; requests go to the first one.
        username: User for basic authentication.
        password: Password for basic authentication.
        conn_limit: Maximum concurrent HTTP connections.
        request_timeout: Timeout in seconds for ordinary requests.
        batch_deadline: Per-batch submission deadline in seconds. Generous
            on purpose so slow backends do not abort a benchmark.
    """

    endpoints: tuple[str, ...] = field(default_factory=_default_endpoints)
    username: str = "root"
    password: str = ""
    conn_limit: int = 64
    request_timeout: float = 30.0
    batch_deadline: float = 3600.0


def _parse_positive_float(name: str, raw: str) -> float:
    try:
        value = float(raw)
    except ValueError:
        msg = f"{name} must be a number, got: {raw!r}"
        raise ConfigError(msg) from None

    if value <= 0:
        msg = f"{name} must be positive, got: {value}"
        raise ConfigError(msg)
    return value


def load_config() -> ImportBenchConfig:
    """Load configuration from environment variables with defaults.

    Environment variables:
        IMPORTBENCH_ENDPOINTS: Comma-separated endpoint URLs
            (default: http://localhost:8529).
        IMPORTBENCH_USERNAME: Username (default: root).
        IMPORTBENCH_PASSWORD: Password (default: empty).
        IMPORTBENCH_CONN_LIMIT: Connection limit (default: 64).
        IMPORTBENCH_REQUEST_TIMEOUT: Request timeout in seconds (default: 30).
        IMPORTBENCH_BATCH_DEADLINE: Batch deadline in seconds (default: 3600).

    Returns:
        Populated ImportBenchConfig instance.

    Raises:
        ConfigError: If an environment variable has an invalid value.
    """
    endpoints_str = os.environ.get("IMPORTBENCH_ENDPOINTS", DEFAULT_ENDPOINT)
    endpoints = tuple(e.strip() for e in endpoints_str.split(",") if e.strip())
    if not endpoints:
        msg = f"IMPORTBENCH_ENDPOINTS must list at least one endpoint, got: {endpoints_str!r}"
        raise ConfigError(msg)

    conn_limit_str = os.environ.get("IMPORTBENCH_CONN_LIMIT", "64")
    try:
        conn_limit = int(conn_limit_str)
    except ValueError:
        msg = f"IMPORTBENCH_CONN_LIMIT must be an integer, got: {conn_limit_str!r}"
        raise ConfigError(msg) from None

    if conn_limit < 1:
        msg = f"IMPORTBENCH_CONN_LIMIT must be >= 1, got: {conn_limit}"
        raise ConfigError(msg)

    request_timeout = _parse_positive_float(
        "IMPORTBENCH_REQUEST_TIMEOUT",
        os.environ.get("IMPORTBENCH_REQUEST_TIMEOUT", "30.0"),
    )
    batch_deadline = _parse_positive_float(
        "IMPORTBENCH_BATCH_DEADLINE",
        os.environ.get("IMPORTBENCH_BATCH_DEADLINE", "3600.0"),
    )

    return ImportBenchConfig(
        endpoints=endpoints,
        username=os.environ.get("IMPORTBENCH_USERNAME", "root"),
        password=os.environ.get("IMPORTBENCH_PASSWORD", ""),
        conn_limit=conn_limit,
        request_timeout=request_timeout,
        batch_deadline=batch_deadline,
    )
