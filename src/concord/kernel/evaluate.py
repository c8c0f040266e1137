"""Consensus evaluation for one combination group (pure logic)."""

from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from concord.codes import VerdictReason
from concord.errors import EmptyGroupError
from .policy import ConsensusPolicy, validate_policy
from .records import CombinationGroup


class PlatformResult(BaseModel):
    """One platform's reported checksum, as shown in a verdict."""
    platform: str
    checksum: str

    model_config = ConfigDict(frozen=True)


class ConsensusVerdict(BaseModel):
    """Decision about one (architecture, suite) combination."""
    architecture: str
    suite: str
    consensus: bool
    consensus_checksum: Optional[str] = None  # set only when consensus is achieved
    platforms_agreeing: int  # size of the largest agreeing bloc
    platforms_total: int  # distinct platforms that reported
    platform_results: List[PlatformResult]
    disagreement: bool
    reason: VerdictReason

    model_config = ConfigDict(frozen=True)

    @property
    def key(self) -> Tuple[str, str]:
        return (self.architecture, self.suite)


def tally_checksums(group: CombinationGroup) -> Dict[str, List[str]]:
    """Map each distinct checksum to the sorted distinct platforms reporting it."""
    tally: Dict[str, set] = {}
    for record in group.records:
        tally.setdefault(record.checksum, set()).add(record.platform)
    return {checksum: sorted(platforms) for checksum, platforms in sorted(tally.items())}


def evaluate_group(group: CombinationGroup, policy: ConsensusPolicy) -> ConsensusVerdict:
    """Apply the agreement policy to one group.

    Disagreement is a normal outcome (consensus=False), never an exception.

    Raises:
        EmptyGroupError: If the group has no records.
        InvalidPolicy: If the policy is self-contradictory.
    """
    if not group.records:
        raise EmptyGroupError(f"Combination {group.architecture}/{group.suite} has no records")
    policy = validate_policy(policy)

    tally = tally_checksums(group)
    ranked = sorted(tally.items(), key=lambda item: (-len(item[1]), item[0]))
    top_checksum, top_platforms = ranked[0]
    top_count = len(top_platforms)
    tied = len(ranked) > 1 and len(ranked[1][1]) == top_count
    total = len(group.platforms)

    if total < policy.min_platforms:
        reason = VerdictReason.INSUFFICIENT_PLATFORMS
    elif policy.require_all_match:
        reason = VerdictReason.AGREED if len(tally) == 1 else VerdictReason.MISMATCH
    elif tied:
        reason = VerdictReason.TIE
    elif top_count < policy.threshold:
        reason = VerdictReason.BELOW_THRESHOLD
    else:
        reason = VerdictReason.AGREED

    consensus = reason is VerdictReason.AGREED
    platform_results = sorted(
        {(r.platform, r.checksum) for r in group.records}
    )
    return ConsensusVerdict(
        architecture=group.architecture,
        suite=group.suite,
        consensus=consensus,
        consensus_checksum=top_checksum if consensus else None,
        platforms_agreeing=top_count,
        platforms_total=total,
        platform_results=[PlatformResult(platform=p, checksum=c) for p, c in platform_results],
        disagreement=total > 0 and not consensus,
        reason=reason,
    )


def evaluate_groups(groups: Dict[Tuple[str, str], CombinationGroup], policy: ConsensusPolicy) -> List[ConsensusVerdict]:
    """Evaluate every group, in key order."""
    return [evaluate_group(groups[key], policy) for key in sorted(groups)]
