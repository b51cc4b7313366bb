"""In-memory expiring storage used for job correlation."""

from actions_exporter.cache.expiring import (
    DEFAULT_SWEEP_INTERVAL_SECONDS,
    DEFAULT_TTL_SECONDS,
    ExpiringCache,
)

__all__ = [
    "DEFAULT_SWEEP_INTERVAL_SECONDS",
    "DEFAULT_TTL_SECONDS",
    "ExpiringCache",
]
