"""Tests for the consensus report aggregate."""

from concord.contracts import IngestIssue
from concord.kernel.evaluate import evaluate_groups
from concord.kernel.grouping import group_records
from concord.kernel.policy import ConsensusPolicy
from concord.kernel.records import CanonicalResultRecord
from concord.report import REPORT_FORMAT, build_consensus_report, overall_consensus, summarize

from conftest import CHECKSUM_ABC, CHECKSUM_B060, CHECKSUM_DEF

TIMESTAMP = "2025-10-20T08:00:00Z"


def _verdicts(rows, policy):
    records = [
        CanonicalResultRecord(platform=p, architecture=a, suite=s, checksum=c)
        for p, a, s, c in rows
    ]
    return evaluate_groups(group_records(records), policy)


AGREE = [
    ("github", "amd64", "bookworm", CHECKSUM_B060),
    ("gcp", "amd64", "bookworm", CHECKSUM_B060),
]
DISAGREE = [
    ("github", "arm64", "trixie", CHECKSUM_ABC),
    ("gcp", "arm64", "trixie", CHECKSUM_DEF),
]


def test_summary_counts_and_rate():
    verdicts = _verdicts(AGREE + DISAGREE, ConsensusPolicy())
    summary = summarize(verdicts)
    assert summary.total_combinations == 2
    assert summary.consensus_achieved == 1
    assert summary.disagreements == 1
    assert summary.consensus_rate == 0.5
    assert summary.consensus_rate_defined is True


def test_summary_of_nothing_is_undefined():
    summary = summarize([])
    assert summary.consensus_rate == 0.0
    assert summary.consensus_rate_defined is False


def test_overall_requires_no_disagreements_in_threshold_mode():
    policy = ConsensusPolicy()
    assert overall_consensus(_verdicts(AGREE, policy), policy, 2) is True
    assert overall_consensus(_verdicts(AGREE + DISAGREE, policy), policy, 2) is False


def test_allow_partial_passes_with_any_agreement():
    policy = ConsensusPolicy(allow_partial=True)
    assert overall_consensus(_verdicts(AGREE + DISAGREE, policy), policy, 2) is True
    assert overall_consensus(_verdicts(DISAGREE, policy), policy, 2) is False


def test_overall_fails_when_too_few_platforms_reported():
    policy = ConsensusPolicy(threshold=3, allow_partial=True)
    rows = AGREE + [("azure", "amd64", "bookworm", CHECKSUM_B060)]
    verdicts = _verdicts(rows, policy)
    assert overall_consensus(verdicts, policy, 3) is True
    assert overall_consensus(verdicts, policy, 2) is False


def test_strict_mode_requires_every_combination():
    policy = ConsensusPolicy(require_all_match=True)
    assert overall_consensus(_verdicts(AGREE, policy), policy, 2) is True
    assert overall_consensus(_verdicts(AGREE + DISAGREE, policy), policy, 2) is False


def test_empty_comparison_never_passes():
    for policy in (ConsensusPolicy(), ConsensusPolicy(require_all_match=True), ConsensusPolicy(allow_partial=True)):
        assert overall_consensus([], policy, 3) is False


def test_build_report():
    policy = ConsensusPolicy()
    issue = IngestIssue(code="MALFORMED_REPORT", message="bad", platform="azure", source="azure.json")
    report = build_consensus_report(
        _verdicts(AGREE + DISAGREE, policy),
        policy,
        ["gcp", "github", "gcp"],
        timestamp=TIMESTAMP,
        serial="20251020",
        issues=[issue],
    )
    assert report.format == REPORT_FORMAT
    assert report.platforms == ["gcp", "github"]
    assert report.achieved is False
    assert [c.key for c in report.comparisons] == [("amd64", "bookworm"), ("arm64", "trixie")]
    assert report.skipped_sources == [issue]

    data = report.to_json_dict()
    assert data["consensus"] == {
        "achieved": False,
        "threshold": 2,
        "require_all_match": False,
        "min_platforms": 2,
        "allow_partial": False,
    }
    assert data["comparisons"][1]["reason"] == "tie"
    assert data["fingerprint"].startswith("sha256:")


def test_fingerprint_ignores_timestamp_but_tracks_policy():
    policy = ConsensusPolicy()
    verdicts = _verdicts(AGREE, policy)
    first = build_consensus_report(verdicts, policy, ["gcp", "github"], timestamp=TIMESTAMP)
    later = build_consensus_report(verdicts, policy, ["gcp", "github"], timestamp="2025-10-21T00:00:00Z")
    partial = ConsensusPolicy(allow_partial=True)
    other = build_consensus_report(verdicts, partial, ["gcp", "github"], timestamp=TIMESTAMP)

    assert first.fingerprint == later.fingerprint
    assert first.fingerprint != other.fingerprint
