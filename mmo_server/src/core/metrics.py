"""
Prometheus metrics configuration for the MMO character server.

This module provides metrics collection for the character session cache,
its persistence layer, and the autosave scheduler.
"""

from prometheus_client import (
    Counter,
    Histogram,
    Gauge,
    Info,
    CollectorRegistry,
    generate_latest,
    CONTENT_TYPE_LATEST,
)
from typing import Dict, Optional
import time
import functools
from mmo_server.src.core.logging_config import get_logger

logger = get_logger(__name__)

# Create a custom registry for our metrics
REGISTRY = CollectorRegistry()

# =============================================================================
# APPLICATION INFO METRICS
# =============================================================================

app_info = Info(
    "mmo_server_info", "MMO character server application information", registry=REGISTRY
)

# =============================================================================
# SESSION CACHE METRICS
# =============================================================================

characters_loaded_total = Counter(
    "mmo_characters_loaded_total",
    "Total number of characters loaded into the session cache",
    ["source"],  # source: existing, created
    registry=REGISTRY,
)

characters_resident = Gauge(
    "mmo_characters_resident",
    "Current number of characters resident in the session cache",
    registry=REGISTRY,
)

character_saves_total = Counter(
    "mmo_character_saves_total",
    "Total number of character save attempts",
    ["status"],  # status: success, failure, cache_miss
    registry=REGISTRY,
)

# =============================================================================
# AUTOSAVE METRICS
# =============================================================================

autosave_runs_total = Counter(
    "mmo_autosave_runs_total",
    "Total number of autosave ticks",
    ["status"],  # status: success, error
    registry=REGISTRY,
)

autosave_duration_seconds = Histogram(
    "mmo_autosave_duration_seconds",
    "Autosave flush duration in seconds",
    registry=REGISTRY,
)

# =============================================================================
# DATABASE METRICS
# =============================================================================

database_operations_total = Counter(
    "mmo_database_operations_total",
    "Total number of database operations",
    ["operation", "table"],
    registry=REGISTRY,
)

database_operation_duration_seconds = Histogram(
    "mmo_database_operation_duration_seconds",
    "Database operation duration in seconds",
    ["operation", "table"],
    registry=REGISTRY,
)

migrations_applied_total = Counter(
    "mmo_migrations_applied_total",
    "Total number of schema migrations applied",
    registry=REGISTRY,
)

# =============================================================================
# ERROR METRICS
# =============================================================================

errors_total = Counter(
    "mmo_errors_total",
    "Total number of errors",
    ["component", "error_type"],
    registry=REGISTRY,
)


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def init_metrics(environment: str = "development"):
    """Initialize metrics with application information."""
    app_info.info(
        {
            "version": "0.1.0",
            "service": "mmo-character-server",
            "environment": environment,
        }
    )
    logger.info("Prometheus metrics initialized")


def get_metrics() -> bytes:
    """Get current metrics in Prometheus format."""
    return generate_latest(REGISTRY)


def get_metrics_content_type() -> str:
    """Get the content type for Prometheus metrics."""
    return CONTENT_TYPE_LATEST


def track_time(metric: Histogram, labels: Optional[Dict[str, str]] = None):
    """Decorator to track execution time of coroutine functions."""

    def decorator(func):
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                return await func(*args, **kwargs)
            finally:
                duration = time.time() - start_time
                if labels:
                    metric.labels(**labels).observe(duration)
                else:
                    metric.observe(duration)

        return async_wrapper

    return decorator


def record_error(component: str, error_type: str) -> None:
    errors_total.labels(component=component, error_type=error_type).inc()
