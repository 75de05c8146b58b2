"""Prometheus metrics definitions for the election node."""

import logging

from prometheus_client import Counter, Gauge, Histogram, start_http_server

from lunner.app.config import MetricsConfig
from lunner.core.errors import ConfigError

logger = logging.getLogger(__name__)

# FAST: one serializable transaction plus one read (0.5ms ~ 5s)
_BUCKETS_FAST = (
    0.0005, 0.001, 0.002, 0.005, 0.01,
    0.02, 0.05, 0.1, 0.2, 0.5,
    1, 2, 5,
)

IS_LEADER = Gauge(
    "lunner_is_leader",
    "1 if this node's last verdict was leader, 0 otherwise",
)

ELECTION_CYCLES_TOTAL = Counter(
    "lunner_election_cycles_total",
    "Election cycles by committed action (claim, renew, takeover, standby, error)",
    ["action"],
)

ELECTION_CYCLE_DURATION = Histogram(
    "lunner_election_cycle_duration_seconds",
    "Duration of one election cycle including the verdict read",
    buckets=_BUCKETS_FAST,
)

HOOK_LAUNCHES_TOTAL = Counter(
    "lunner_hook_launches_total",
    "Hook processes started, by role",
    ["role"],
)


def start_metrics_server(config: MetricsConfig) -> bool:
    """Start the exporter if enabled. Returns True if started.

    Raises:
        ConfigError: The address cannot be bound (port in use, bad host).
    """
    if not config.enabled:
        return False
    try:
        start_http_server(config.port, addr=config.host)
    except OSError as e:
        raise ConfigError(
            f"Couldn't start metrics exporter on {config.host}:{config.port}: {e}"
        ) from e
    logger.info("Metrics exporter listening on %s:%d", config.host, config.port)
    return True
