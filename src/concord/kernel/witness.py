"""Witness evidence for disagreeing combinations (pure logic)."""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from concord.codes import VerdictReason
from .evaluate import ConsensusVerdict, tally_checksums
from .hash_utils import digest_canonical
from .records import CanonicalResultRecord, CombinationGroup

EVIDENCE_TYPE = "reproducibility-disagreement"

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")
# Parts matching this need no disambiguation: no separator, nothing substituted
_PLAIN_PART = re.compile(r"[A-Za-z0-9._]+")


class PlatformEvidence(BaseModel):
    """Everything one platform told us about the disputed combination."""
    platform: str
    checksum: Optional[str] = None
    conflicting_checksums: Optional[List[str]] = None  # platform disagreed with itself
    claimed_reproducible: Optional[bool] = None
    timestamp: Optional[str] = None
    build_url: Optional[str] = None
    serial: Optional[str] = None
    run_id: Optional[str] = None
    source: Optional[str] = None
    environment: Optional[Dict[str, Any]] = None
    official_checksum: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class WitnessEvidence(BaseModel):
    """Forensic bundle for human audit; never read back by the pipeline."""
    architecture: str
    suite: str
    timestamp: str
    type: str = EVIDENCE_TYPE
    reason: VerdictReason
    checksum_tally: Dict[str, List[str]]
    platform_evidence: List[PlatformEvidence]
    investigation_required: bool = True

    model_config = ConfigDict(frozen=True)

    def to_json_dict(self) -> Dict[str, Any]:
        """JSON-ready dict with absent provenance omitted."""
        data = self.model_dump(mode="json", exclude={"platform_evidence"})
        data["platform_evidence"] = [
            entry.model_dump(mode="json", exclude_none=True) for entry in self.platform_evidence
        ]
        return data


def _platform_entry(platform: str, records: List[CanonicalResultRecord]) -> PlatformEvidence:
    checksums = sorted({r.checksum for r in records})
    first = records[0]
    prov = first.provenance
    return PlatformEvidence(
        platform=platform,
        checksum=checksums[0] if len(checksums) == 1 else None,
        conflicting_checksums=checksums if len(checksums) > 1 else None,
        claimed_reproducible=first.claimed_reproducible,
        timestamp=prov.timestamp,
        build_url=prov.build_url,
        serial=prov.serial,
        run_id=prov.run_id,
        source=prov.source,
        environment=prov.environment,
        official_checksum=prov.official_checksum,
    )


def build_witness_evidence(
    verdict: ConsensusVerdict,
    group: CombinationGroup,
    timestamp: str,
) -> WitnessEvidence:
    """Assemble the evidence bundle for one disagreement.

    One entry per reporting platform; provenance the platform did not supply is
    left absent.

    Raises:
        ValueError: If the verdict is not a disagreement, or belongs to a
            different combination than the group.
    """
    if not verdict.disagreement:
        raise ValueError(
            f"Evidence is only generated for disagreements; "
            f"{verdict.architecture}/{verdict.suite} has none"
        )
    if verdict.key != group.key:
        raise ValueError(
            f"Verdict {verdict.architecture}/{verdict.suite} does not match "
            f"group {group.architecture}/{group.suite}"
        )

    by_platform: Dict[str, List[CanonicalResultRecord]] = {}
    for record in group.records:
        by_platform.setdefault(record.platform, []).append(record)

    return WitnessEvidence(
        architecture=verdict.architecture,
        suite=verdict.suite,
        timestamp=timestamp,
        reason=verdict.reason,
        checksum_tally=tally_checksums(group),
        platform_evidence=[
            _platform_entry(platform, by_platform[platform]) for platform in sorted(by_platform)
        ],
    )


def evidence_filename(architecture: str, suite: str) -> str:
    """Deterministic, collision-free evidence file name for a combination.

    Plain names map to `evidence-<arch>-<suite>.json`. When either part
    contains "-" or characters that have to be replaced, the split point is
    ambiguous, so a short digest of the raw pair is appended.
    """
    arch = _UNSAFE_FILENAME_CHARS.sub("_", architecture)
    suite_name = _UNSAFE_FILENAME_CHARS.sub("_", suite)
    if _PLAIN_PART.fullmatch(architecture) and _PLAIN_PART.fullmatch(suite):
        return f"evidence-{arch}-{suite_name}.json"
    digest = digest_canonical([architecture, suite]).split(":", 1)[1][:12]
    return f"evidence-{arch}-{suite_name}-{digest}.json"
