"""Public API for the concord consensus engine.

High-level functions that return complete, structured results. The CLI is
a thin wrapper around these; callers should not need anything from
concord._internal.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from concord.codes import ReportShape
from concord.contracts import IngestIssue
from concord.errors import EmptyRunError, InvalidPolicy, MalformedReport
from concord.kernel.evaluate import ConsensusVerdict, evaluate_groups
from concord.kernel.grouping import GroupKey, group_records
from concord.kernel.normalize import parse_report
from concord.kernel.policy import ConsensusPolicy, build_policy, validate_policy
from concord.kernel.records import CanonicalResultRecord, CombinationGroup, PlatformReport
from concord.kernel.witness import WitnessEvidence, build_witness_evidence, evidence_filename
from concord.report import ConsensusReport, build_consensus_report
from concord._internal.io.results_dir import issue_from_error, read_sources
from concord._internal.io.writer import write_json_atomic

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
POLICY_FILE_KEYS = {"threshold", "require_all_match", "min_platforms", "allow_partial", "expected_platforms"}


def _normalize_path(path: Union[str, os.PathLike, Path]) -> Path:
    """Normalize path input to Path object."""
    return Path(path) if not isinstance(path, Path) else path


def format_timestamp(now: Optional[datetime] = None) -> str:
    """UTC timestamp in the report format (second precision, Z suffix)."""
    moment = now or datetime.now(timezone.utc)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime(TIMESTAMP_FORMAT)


def load_policy(
    policy_path: Optional[Union[str, Path]] = None,
    **overrides: Any,
) -> ConsensusPolicy:
    """Build the run policy from an optional JSON file plus explicit overrides.

    Overrides whose value is None are ignored, so unset CLI flags fall back to
    the file and then to the model defaults.

    Raises:
        InvalidPolicy: If the file is unreadable/unknown or the result is invalid.
    """
    values: Dict[str, Any] = {}
    if policy_path is not None:
        path = _normalize_path(policy_path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise InvalidPolicy(f"Cannot read policy file {path}: {e}") from e
        if not isinstance(data, dict):
            raise InvalidPolicy(f"Policy file {path} must contain a JSON object")
        unknown = sorted(set(data) - POLICY_FILE_KEYS)
        if unknown:
            raise InvalidPolicy(f"Policy file {path} has unknown keys: {', '.join(unknown)}")
        values.update(data)
    values.update({k: v for k, v in overrides.items() if v is not None})
    return build_policy(**values)


@dataclass(frozen=True)
class NormalizationResult:
    """Canonical records from every usable document, plus what was skipped."""
    records: Tuple[CanonicalResultRecord, ...]
    issues: Tuple[IngestIssue, ...]
    platforms: Tuple[str, ...]  # platforms that contributed at least one record
    shapes: Dict[str, ReportShape] = field(default_factory=dict)  # source -> detected shape


def normalize_documents(reports: Iterable[PlatformReport]) -> NormalizationResult:
    """Parse every report; a malformed document is skipped, never fatal."""
    records: List[CanonicalResultRecord] = []
    issues: List[IngestIssue] = []
    platforms = set()
    shapes: Dict[str, ReportShape] = {}
    for report in reports:
        label = report.source or report.platform
        try:
            parsed = parse_report(report)
        except MalformedReport as e:
            logger.warning("Skipping malformed %s report: %s", report.platform, e)
            issues.append(issue_from_error(e))
            continue
        logger.debug("%s: %s shape, %d record(s)", label, parsed.shape.value, len(parsed.records))
        records.extend(parsed.records)
        if parsed.records:
            platforms.add(report.platform)
        shapes[label] = parsed.shape
    return NormalizationResult(
        records=tuple(records),
        issues=tuple(issues),
        platforms=tuple(sorted(platforms)),
        shapes=shapes,
    )


def evaluate_records(
    records: Iterable[CanonicalResultRecord],
    policy: ConsensusPolicy,
) -> Tuple[Dict[GroupKey, CombinationGroup], List[ConsensusVerdict]]:
    """Group records and evaluate each combination."""
    groups = group_records(records)
    return groups, evaluate_groups(groups, policy)


@dataclass(frozen=True)
class ConsensusRun:
    """Everything one invocation computed; nothing is written yet."""
    report: ConsensusReport
    groups: Dict[GroupKey, CombinationGroup]
    verdicts: Tuple[ConsensusVerdict, ...]
    issues: Tuple[IngestIssue, ...]

    @property
    def achieved(self) -> bool:
        return self.report.consensus.achieved

    def disagreements(self) -> List[ConsensusVerdict]:
        return [v for v in self.verdicts if v.disagreement]

    def evidence(self) -> List[WitnessEvidence]:
        """Witness bundles for every disagreeing combination."""
        return [
            build_witness_evidence(v, self.groups[v.key], self.report.timestamp)
            for v in self.disagreements()
        ]


def _single_serial(reports: Sequence[PlatformReport]) -> Optional[str]:
    serials = {r.serial for r in reports if r.serial is not None}
    return serials.pop() if len(serials) == 1 else None


def evaluate_reports(
    reports: Sequence[PlatformReport],
    policy: ConsensusPolicy,
    *,
    issues: Sequence[IngestIssue] = (),
    serial: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ConsensusRun:
    """Run the whole pipeline over already-loaded reports.

    Raises:
        InvalidPolicy: Before anything is evaluated, if the policy is invalid.
        EmptyRunError: If no combination was produced.
    """
    policy = validate_policy(policy)
    normalized = normalize_documents(reports)
    all_issues = tuple(issues) + normalized.issues

    groups, verdicts = evaluate_records(normalized.records, policy)
    if not verdicts:
        raise EmptyRunError(
            f"No architecture/suite combinations found: {len(reports)} document(s) read, "
            f"{len(all_issues)} skipped"
        )

    for verdict in verdicts:
        if verdict.consensus:
            logger.info(
                "Consensus: %s/%s (%d/%d platforms)",
                verdict.suite, verdict.architecture, verdict.platforms_agreeing, verdict.platforms_total,
            )
        else:
            logger.warning(
                "Disagreement: %s/%s (%s, %d/%d platforms)",
                verdict.suite, verdict.architecture, verdict.reason.value,
                verdict.platforms_agreeing, verdict.platforms_total,
            )

    report = build_consensus_report(
        verdicts,
        policy,
        normalized.platforms,
        timestamp=format_timestamp(now),
        serial=serial or _single_serial(reports),
        issues=all_issues,
    )
    return ConsensusRun(
        report=report,
        groups=groups,
        verdicts=tuple(verdicts),
        issues=all_issues,
    )


def run_consensus(
    results_dir: Union[str, os.PathLike, Path],
    policy: Optional[ConsensusPolicy] = None,
    *,
    expected_serial: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ConsensusRun:
    """Read every platform document in results_dir and compute consensus.

    Raises:
        FileNotFoundError: If results_dir does not exist.
        InvalidPolicy: If the policy is invalid (checked before reading anything).
        EmptyRunError: If no usable combination was found.
    """
    policy = validate_policy(policy or ConsensusPolicy())
    root = _normalize_path(results_dir)
    reports, issues = read_sources(root, expected_serial=expected_serial)
    logger.info("Comparing %d platform report(s) from %s", len(reports), root)
    return evaluate_reports(
        reports,
        policy,
        issues=issues,
        serial=expected_serial,
        now=now,
    )


@dataclass(frozen=True)
class WrittenOutputs:
    report_path: Path
    evidence_paths: Tuple[Path, ...] = ()


def write_outputs(
    run: ConsensusRun,
    output: Union[str, os.PathLike, Path],
    *,
    generate_evidence: bool = False,
    evidence_dir: Optional[Union[str, os.PathLike, Path]] = None,
) -> WrittenOutputs:
    """Persist evidence (optional) and then the report.

    The report goes last: its presence marks a complete run.

    Raises:
        ValueError: If two evidence bundles would share a file name.
        OSError: If an output location cannot be written.
    """
    report_path = _normalize_path(output)
    evidence_paths: List[Path] = []
    if generate_evidence:
        target_dir = _normalize_path(evidence_dir) if evidence_dir is not None else report_path.parent / "evidence"
        bundles = run.evidence()
        targets = [target_dir / evidence_filename(b.architecture, b.suite) for b in bundles]
        if len(set(targets)) != len(targets):
            raise ValueError(f"Evidence file names collide in {target_dir}")
        for bundle, target in zip(bundles, targets):
            path = write_json_atomic(target, bundle.to_json_dict())
            logger.info("Witness evidence saved to: %s", path)
            evidence_paths.append(path)

    write_json_atomic(report_path, run.report.to_json_dict())
    logger.info("Consensus report saved to: %s", report_path)
    return WrittenOutputs(report_path=report_path, evidence_paths=tuple(evidence_paths))
