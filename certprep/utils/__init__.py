"""Utility modules."""
from certprep.utils.time_utils import (
    ensure_aware,
    isoformat,
    parse_iso_timestamp,
    seconds_between,
    utc_now,
)
from certprep.utils.validation import validate_id

__all__ = [
    "ensure_aware",
    "isoformat",
    "parse_iso_timestamp",
    "seconds_between",
    "utc_now",
    "validate_id",
]
