"""Logging field schema - v1.0

Standard fields (added to all logs):
- schema_version: Log schema version
- service: Service name (instancevol)
- component: Component name (RECONCILER, API_CLIENT, API)
- event: Event type (volume_created, operation_timeout, etc.)
- trace_id: Request trace ID
- duration_ms: Duration in milliseconds

High cardinality fields (OK in logs, NOT in metric labels):
- volume_id: Zoned volume identifier
- server_id: Attached server ID
"""

from enum import StrEnum


class LogEvent(StrEnum):
    """Standard log event types.

    Use these event types in the 'event' extra field for consistent
    log filtering and analysis.
    """

    # Volume lifecycle events
    VOLUME_CREATED = "volume_created"
    VOLUME_ABSENT = "volume_absent"
    VOLUME_RENAMED = "volume_renamed"
    VOLUME_RESIZED = "volume_resized"
    VOLUME_DELETED = "volume_deleted"
    VOLUME_DELETE_RETRY = "volume_delete_retry"
    VOLUME_WAIT = "volume_wait"

    # Operation outcome events
    OPERATION_FAILED = "operation_failed"
    OPERATION_TIMEOUT = "operation_timeout"
    VALIDATION_FAILED = "validation_failed"

    # Lifecycle events
    APP_STARTED = "app_started"
    APP_STOPPED = "app_stopped"

    # API events
    REQUEST_COMPLETE = "request_complete"
    REQUEST_FAILED = "request_failed"
    REQUEST_SLOW = "request_slow"


class ErrorClass(StrEnum):
    """Error classification for structured error logging."""

    TRANSIENT = "transient"  # Retryable (5xx, network timeout, volume attached)
    PERMANENT = "permanent"  # Not retryable (invalid input, remote rejection)
    TIMEOUT = "timeout"  # Deadline exhausted
    RATE_LIMITED = "rate_limited"  # Remote answered 429


class Component(StrEnum):
    """Component identifiers for log filtering."""

    RECONCILER = "reconciler"
    API_CLIENT = "api_client"
    API = "api"
