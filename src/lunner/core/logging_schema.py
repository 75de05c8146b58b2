"""Logging field schema - v1.0

Standard fields (added to all logs):
- schema_version: Log schema version
- service: Service name (lunner)
- node_id: Node identity of this process
- pid: OS process ID of the node
- event: Event type (claim_inserted, leader_timed_out, etc.)
- component: Component name (election, watcher, hooks)

High cardinality fields (OK in logs, NOT in metric labels):
- leader: Node identity found in the claim row
- hook_pid: Hook process ID (hook exit records)
"""

from enum import StrEnum


class LogEvent(StrEnum):
    """Standard log event types.

    Use these event types in the 'event' extra field for consistent
    log filtering and analysis.
    """

    # Lifecycle events
    APP_STARTED = "app_started"
    APP_STOPPED = "app_stopped"
    CONFIG_LOADED = "config_loaded"
    CONFIG_WARNING = "config_warning"

    # Election events
    SCHEMA_READY = "schema_ready"
    CLAIM_INSERTED = "claim_inserted"
    CLAIM_RENEWED = "claim_renewed"
    LEADER_OBSERVED = "leader_observed"
    LEADER_TIMED_OUT = "leader_timed_out"
    ELECTION_FAILED = "election_failed"
    VERDICT_READ_FAILED = "verdict_read_failed"

    # Leadership events
    LEADERSHIP_ACQUIRED = "leadership_acquired"
    LEADERSHIP_LOST = "leadership_lost"
    ROLE_CHANGED = "role_changed"

    # Hook events
    HOOK_STARTED = "hook_started"
    HOOK_EXITED = "hook_exited"
    HOOK_SPAWN_FAILED = "hook_spawn_failed"


class ErrorClass(StrEnum):
    """Error classification for structured error logging.

    Use these in the 'error_class' extra field to enable
    filtering by error type and setting up alerts.
    """

    TRANSIENT = "transient"  # Retried next tick (conflict, connection loss)
    PERMANENT = "permanent"  # Will not fix itself (schema mismatch, bad SQL)
    TIMEOUT = "timeout"  # Database round trip exceeded postgres.timeout_seconds


class Component(StrEnum):
    """Component identifiers for log filtering."""

    ELECTION = "election"  # Election engine
    WATCHER = "watcher"  # Role change watcher
    HOOKS = "hooks"  # Hook dispatcher
    CLI = "cli"
