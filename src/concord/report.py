"""Consensus report serializer: aggregate verdicts into one report."""

from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from concord.contracts import IngestIssue
from concord.kernel.evaluate import ConsensusVerdict
from concord.kernel.hash_utils import digest_canonical
from concord.kernel.policy import ConsensusPolicy

REPORT_FORMAT = "concord.consensus-report"
REPORT_VERSION = "1"


class ConsensusSettings(BaseModel):
    """Overall outcome plus the policy that produced it."""
    achieved: bool
    threshold: int
    require_all_match: bool
    min_platforms: int
    allow_partial: bool


class ConsensusSummary(BaseModel):
    total_combinations: int
    consensus_achieved: int
    disagreements: int
    consensus_rate: float  # achieved / total, 0.0 when undefined
    consensus_rate_defined: bool


class ConsensusReport(BaseModel):
    """Root output artifact; created once per run and never mutated."""
    format: str = REPORT_FORMAT
    version: str = REPORT_VERSION
    timestamp: str
    serial: Optional[str] = None
    consensus: ConsensusSettings
    summary: ConsensusSummary
    platforms: List[str]
    comparisons: List[ConsensusVerdict]
    skipped_sources: List[IngestIssue] = Field(default_factory=list)
    fingerprint: str

    model_config = ConfigDict(frozen=True)

    @property
    def achieved(self) -> bool:
        return self.consensus.achieved

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


def summarize(verdicts: Sequence[ConsensusVerdict]) -> ConsensusSummary:
    total = len(verdicts)
    achieved = sum(1 for v in verdicts if v.consensus)
    disagreements = sum(1 for v in verdicts if v.disagreement)
    return ConsensusSummary(
        total_combinations=total,
        consensus_achieved=achieved,
        disagreements=disagreements,
        consensus_rate=(achieved / total) if total else 0.0,
        consensus_rate_defined=total > 0,
    )


def overall_consensus(
    verdicts: Sequence[ConsensusVerdict],
    policy: ConsensusPolicy,
    platform_count: int,
) -> bool:
    """Decide the run-level outcome.

    An empty comparison proves nothing, so zero combinations is a failure in
    every mode.
    """
    if not verdicts:
        return False
    if policy.require_all_match:
        return all(v.consensus for v in verdicts)
    if platform_count < max(policy.threshold, policy.min_platforms):
        return False
    if policy.allow_partial:
        return any(v.consensus for v in verdicts)
    return not any(v.disagreement for v in verdicts)


def comparisons_fingerprint(verdicts: Sequence[ConsensusVerdict], policy: ConsensusPolicy) -> str:
    """Digest over the policy and comparisons (timestamp excluded)."""
    return digest_canonical({
        "policy": policy.describe(),
        "comparisons": [v.model_dump(mode="json") for v in verdicts],
    })


def build_consensus_report(
    verdicts: Sequence[ConsensusVerdict],
    policy: ConsensusPolicy,
    platforms: Sequence[str],
    timestamp: str,
    serial: Optional[str] = None,
    issues: Sequence[IngestIssue] = (),
) -> ConsensusReport:
    """Aggregate verdicts and run metadata into a ConsensusReport."""
    ordered = sorted(verdicts, key=lambda v: v.key)
    platform_names = sorted(set(platforms))
    return ConsensusReport(
        timestamp=timestamp,
        serial=serial,
        consensus=ConsensusSettings(
            achieved=overall_consensus(ordered, policy, len(platform_names)),
            **policy.describe(),
        ),
        summary=summarize(ordered),
        platforms=platform_names,
        comparisons=ordered,
        skipped_sources=sorted(issues, key=lambda i: (i.source or "", i.code, i.message)),
        fingerprint=comparisons_fingerprint(ordered, policy),
    )
