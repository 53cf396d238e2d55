"""Utility functions for batching and time handling."""

from .batching import DEFAULT_BATCH_SIZE, batched_lookup, chunked
from .timestamps import (
    ensure_utc,
    format_timestamp_for_log,
    from_store_timestamp,
    to_store_timestamp,
    utc_now,
)

__all__ = [
    # Batching
    "DEFAULT_BATCH_SIZE",
    "chunked",
    "batched_lookup",
    # Timestamps
    "utc_now",
    "ensure_utc",
    "to_store_timestamp",
    "from_store_timestamp",
    "format_timestamp_for_log",
]
