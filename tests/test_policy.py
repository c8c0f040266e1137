"""Tests for the agreement policy model and policy loading."""

import json

import pytest

from concord.api import load_policy
from concord.errors import InvalidPolicy
from concord.kernel.policy import ConsensusPolicy, build_policy, validate_policy


def test_defaults():
    policy = ConsensusPolicy()
    assert policy.threshold == 2
    assert policy.min_platforms == 2
    assert policy.require_all_match is False
    assert policy.allow_partial is False
    assert policy.mode == "threshold"


def test_describe_omits_expected_platforms():
    policy = ConsensusPolicy(require_all_match=True, expected_platforms=3)
    assert policy.mode == "strict"
    assert policy.describe() == {
        "threshold": 2,
        "require_all_match": True,
        "min_platforms": 2,
        "allow_partial": False,
    }


@pytest.mark.parametrize("values, message", [
    ({"threshold": 0}, "threshold must be >= 1"),
    ({"threshold": -1}, "threshold must be >= 1"),
    ({"min_platforms": 0}, "min_platforms must be >= 1"),
    ({"expected_platforms": 0}, "expected_platforms must be >= 1"),
    ({"threshold": 3, "expected_platforms": 2}, "can never be met"),
    ({"min_platforms": 4, "expected_platforms": 3}, "can never be met"),
])
def test_build_policy_rejects_contradictions(values, message):
    with pytest.raises(InvalidPolicy, match=message):
        build_policy(**values)


def test_strict_mode_ignores_unreachable_threshold():
    policy = build_policy(threshold=5, require_all_match=True, expected_platforms=2)
    assert policy.require_all_match is True


def test_unknown_field_rejected():
    with pytest.raises(InvalidPolicy):
        build_policy(quorum=3)


def test_build_policy_ignores_none():
    assert build_policy(threshold=None, min_platforms=3) == ConsensusPolicy(min_platforms=3)


def test_validate_policy_catches_unvalidated_instances():
    sneaky = ConsensusPolicy.model_construct(
        threshold=0, require_all_match=False, min_platforms=2, allow_partial=False, expected_platforms=None,
    )
    with pytest.raises(InvalidPolicy):
        validate_policy(sneaky)


def test_load_policy_file_and_overrides(tmp_path):
    path = tmp_path / "policy.json"
    path.write_text(json.dumps({"threshold": 3, "min_platforms": 3}), encoding="utf-8")

    assert load_policy(path).threshold == 3
    policy = load_policy(path, threshold=2, min_platforms=None)
    assert policy.threshold == 2
    assert policy.min_platforms == 3


def test_load_policy_without_file():
    assert load_policy() == ConsensusPolicy()
    assert load_policy(require_all_match=True).require_all_match is True


def test_load_policy_rejects_unknown_keys(tmp_path):
    path = tmp_path / "policy.json"
    path.write_text(json.dumps({"threshold": 2, "quorum": 3}), encoding="utf-8")
    with pytest.raises(InvalidPolicy, match="quorum"):
        load_policy(path)


def test_load_policy_rejects_non_object(tmp_path):
    path = tmp_path / "policy.json"
    path.write_text("[2]", encoding="utf-8")
    with pytest.raises(InvalidPolicy, match="JSON object"):
        load_policy(path)


def test_load_policy_missing_file(tmp_path):
    with pytest.raises(InvalidPolicy, match="Cannot read policy file"):
        load_policy(tmp_path / "absent.json")
