"""concord: cross-platform consensus for reproducible build checksums."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("concord")
except PackageNotFoundError:
    __version__ = "dev"

# Public API exports
from concord.api import run_consensus, evaluate_reports, load_policy, write_outputs, ConsensusRun
from concord.codes import IssueCode, VerdictReason, ReportShape
from concord.contracts import IngestIssue
from concord.errors import (
    ConcordError,
    SourceUnavailable,
    MalformedReport,
    InvalidPolicy,
    EmptyRunError,
    EmptyGroupError,
)
from concord.kernel.policy import ConsensusPolicy
from concord.report import ConsensusReport

__all__ = [
    "__version__",
    "run_consensus",
    "evaluate_reports",
    "load_policy",
    "write_outputs",
    "ConsensusRun",
    "ConsensusPolicy",
    "ConsensusReport",
    "IngestIssue",
    "IssueCode",
    "VerdictReason",
    "ReportShape",
    "ConcordError",
    "SourceUnavailable",
    "MalformedReport",
    "InvalidPolicy",
    "EmptyRunError",
    "EmptyGroupError",
]
