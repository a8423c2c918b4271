"""Error types surfaced to callers."""

from __future__ import annotations

from typing import Any, Optional

INVALID_TIME_PERIOD = "INVALID_TIME_PERIOD"
INVALID_TIME_RANGE = "INVALID_TIME_RANGE"
INVALID_DATE_FORMAT = "INVALID_DATE_FORMAT"
INVALID_TIMEZONE = "INVALID_TIMEZONE"
INVALID_PERIOD_TYPE = "INVALID_PERIOD_TYPE"
INVALID_DETAIL_LEVEL = "INVALID_DETAIL_LEVEL"
INVALID_GROUP_BY = "INVALID_GROUP_BY"


class TimelineError(ValueError):
    """Malformed caller input, tagged with a machine-readable code."""

    def __init__(self, message: str, code: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": str(self), "code": self.code, "details": self.details}
