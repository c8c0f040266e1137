"""Exception taxonomy for concord.

Per-document errors (SourceUnavailable, MalformedReport) are recovered by the
orchestrator; configuration and empty-run errors abort before any report is
written.
"""

from typing import Optional


class ConcordError(Exception):
    """Base class for all concord errors."""
    pass


class SourceUnavailable(ConcordError):
    """A platform's document could not be read (or is for another serial)."""

    def __init__(self, message: str, *, platform: Optional[str] = None, source: Optional[str] = None):
        super().__init__(message)
        self.platform = platform
        self.source = source


class MalformedReport(ConcordError):
    """A document is present but matches no recognized report shape."""

    def __init__(self, message: str, *, platform: Optional[str] = None, source: Optional[str] = None):
        super().__init__(message)
        self.platform = platform
        self.source = source


class SerialMismatch(SourceUnavailable):
    """A document was retrieved but belongs to a different build serial."""
    pass


class InvalidPolicy(ConcordError, ValueError):
    """The agreement policy configuration is self-contradictory."""
    pass


class EmptyRunError(ConcordError):
    """No combinations were produced: nothing was compared."""
    pass


class EmptyGroupError(ConcordError, ValueError):
    """The evaluator was handed a combination group with no records."""
    pass
