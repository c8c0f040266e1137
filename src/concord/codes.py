"""Issue and verdict code constants for concord.

These constants prevent stringly-typed codes and ensure
client code uses the correct values.
"""

from enum import Enum


class IssueCode(str, Enum):
    """Codes for documents skipped during ingestion (non-fatal)."""

    SOURCE_UNAVAILABLE = "SOURCE_UNAVAILABLE"
    SERIAL_MISMATCH = "SERIAL_MISMATCH"
    MALFORMED_REPORT = "MALFORMED_REPORT"


class VerdictReason(str, Enum):
    """Why a combination did or did not reach consensus."""

    AGREED = "agreed"
    INSUFFICIENT_PLATFORMS = "insufficient_platforms"
    BELOW_THRESHOLD = "below_threshold"
    TIE = "tie"
    MISMATCH = "mismatch"


class ReportShape(str, Enum):
    """Structural variants a platform report can take."""

    NESTED = "nested"
    FLAT = "flat"
    UNKNOWN = "unknown"
