"""Tests for witness evidence assembly."""

import pytest

from concord.codes import VerdictReason
from concord.kernel.evaluate import evaluate_group
from concord.kernel.grouping import group_records
from concord.kernel.policy import ConsensusPolicy
from concord.kernel.records import CanonicalResultRecord, Provenance
from concord.kernel.witness import EVIDENCE_TYPE, build_witness_evidence, evidence_filename

from conftest import CHECKSUM_ABC, CHECKSUM_B060, CHECKSUM_DEF

TIMESTAMP = "2025-10-20T08:00:00Z"


def _disagreement_group():
    records = [
        CanonicalResultRecord(
            platform="github", architecture="arm64", suite="trixie", checksum=CHECKSUM_ABC,
            claimed_reproducible=True,
            provenance=Provenance(
                timestamp="2025-10-20T06:12:00Z",
                build_url="https://github.com/example/rebuild/actions/runs/1002",
                serial="20251020",
                environment={"runner": "ubuntu-24.04"},
            ),
        ),
        CanonicalResultRecord(
            platform="gcp", architecture="arm64", suite="trixie", checksum=CHECKSUM_DEF,
            claimed_reproducible=False,
            provenance=Provenance(serial="20251020"),
        ),
    ]
    return group_records(records)[("arm64", "trixie")]


def test_evidence_for_disagreement():
    group = _disagreement_group()
    verdict = evaluate_group(group, ConsensusPolicy())
    evidence = build_witness_evidence(verdict, group, TIMESTAMP)

    assert evidence.type == EVIDENCE_TYPE
    assert evidence.investigation_required is True
    assert evidence.reason is VerdictReason.TIE
    assert evidence.timestamp == TIMESTAMP
    assert evidence.checksum_tally == {CHECKSUM_ABC: ["github"], CHECKSUM_DEF: ["gcp"]}
    assert [e.platform for e in evidence.platform_evidence] == ["gcp", "github"]

    github = evidence.platform_evidence[1]
    assert github.checksum == CHECKSUM_ABC
    assert github.build_url == "https://github.com/example/rebuild/actions/runs/1002"
    assert github.environment == {"runner": "ubuntu-24.04"}


def test_absent_provenance_is_omitted_not_null():
    group = _disagreement_group()
    verdict = evaluate_group(group, ConsensusPolicy())
    data = build_witness_evidence(verdict, group, TIMESTAMP).to_json_dict()

    gcp = data["platform_evidence"][0]
    assert gcp == {
        "platform": "gcp",
        "checksum": CHECKSUM_DEF,
        "claimed_reproducible": False,
        "serial": "20251020",
    }
    assert data["type"] == "reproducibility-disagreement"
    assert data["reason"] == "tie"


def test_self_conflicting_platform_lists_all_values():
    records = [
        CanonicalResultRecord(platform="github", architecture="amd64", suite="bookworm", checksum=CHECKSUM_ABC),
        CanonicalResultRecord(platform="github", architecture="amd64", suite="bookworm", checksum=CHECKSUM_DEF),
        CanonicalResultRecord(platform="gcp", architecture="amd64", suite="bookworm", checksum=CHECKSUM_B060),
    ]
    group = group_records(records)[("amd64", "bookworm")]
    verdict = evaluate_group(group, ConsensusPolicy())
    evidence = build_witness_evidence(verdict, group, TIMESTAMP)

    github = next(e for e in evidence.platform_evidence if e.platform == "github")
    assert github.checksum is None
    assert github.conflicting_checksums == [CHECKSUM_ABC, CHECKSUM_DEF]


def test_no_evidence_for_consensus():
    records = [
        CanonicalResultRecord(platform=p, architecture="amd64", suite="bookworm", checksum=CHECKSUM_B060)
        for p in ("github", "gcp")
    ]
    group = group_records(records)[("amd64", "bookworm")]
    verdict = evaluate_group(group, ConsensusPolicy())
    with pytest.raises(ValueError, match="only generated for disagreements"):
        build_witness_evidence(verdict, group, TIMESTAMP)


def test_mismatched_group_rejected():
    group = _disagreement_group()
    verdict = evaluate_group(group, ConsensusPolicy())
    other = group_records([
        CanonicalResultRecord(platform="gcp", architecture="amd64", suite="bookworm", checksum=CHECKSUM_B060),
    ])[("amd64", "bookworm")]
    with pytest.raises(ValueError, match="does not match"):
        build_witness_evidence(verdict, other, TIMESTAMP)


def test_evidence_filename_plain_parts():
    assert evidence_filename("arm64", "trixie") == "evidence-arm64-trixie.json"
    assert evidence_filename("ppc64el", "bookworm") == "evidence-ppc64el-bookworm.json"


def test_evidence_filename_is_unambiguous_for_hyphenated_parts():
    first = evidence_filename("kfreebsd-amd64", "sid")
    second = evidence_filename("kfreebsd", "amd64-sid")

    assert first != second
    assert first.startswith("evidence-kfreebsd-amd64-sid-")
    assert first == evidence_filename("kfreebsd-amd64", "sid")
    assert evidence_filename("amd64", "bookworm-backports") != "evidence-amd64-bookworm-backports.json"


def test_evidence_filename_substitution_does_not_merge_names():
    substituted = evidence_filename("arm/v7", "sid experimental")
    assert substituted.startswith("evidence-arm_v7-sid_experimental-")
    assert substituted != evidence_filename("arm_v7", "sid_experimental")
    assert substituted != evidence_filename("arm:v7", "sid experimental")
