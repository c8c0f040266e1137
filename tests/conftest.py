"""Pytest configuration and shared fixtures.

No sys.path hacks - tests should import from installed concord package.
"""

import json
from pathlib import Path

import pytest

FIXTURES = Path(__file__).resolve().parent.parent / "fixtures"

CHECKSUM_B060 = "b0600123456789abcdef0123456789abcdef0123456789abcdef0123456730ba"
CHECKSUM_ABC = "abc123" + "0" * 58
CHECKSUM_DEF = "def456" + "0" * 58
CHECKSUM_FED = "fed789" + "0" * 58


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES


@pytest.fixture
def write_report(tmp_path):
    """Write a platform document into tmp_path/results and return its path."""
    results_dir = tmp_path / "results"
    results_dir.mkdir()

    def _write(filename: str, data) -> Path:
        path = results_dir / filename
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        return path

    _write.dir = results_dir
    return _write


def flat_doc(*results, serial="20251020", timestamp="2025-10-20T06:12:00Z", **extra):
    """Flat-shape document: {"results": [...]}."""
    doc = {"serial": serial, "timestamp": timestamp, "results": list(results)}
    doc.update(extra)
    return doc


def nested_doc(tree, serial="20251020", timestamp="2025-10-20T06:12:00Z", **extra):
    """Nested-shape document from {arch: {suite: checksum}}."""
    architectures = {
        arch: {
            "status": "success",
            "suites": {suite: {"reproducible": True, "sha256": checksum} for suite, checksum in suites.items()},
        }
        for arch, suites in tree.items()
    }
    doc = {"serial": serial, "timestamp": timestamp, "architectures": architectures}
    doc.update(extra)
    return doc


def result(arch, suite, checksum, **extra):
    entry = {"architecture": arch, "suite": suite, "sha256": checksum}
    entry.update(extra)
    return entry


def verified_doc(arch, suite, leaf, serial="20251020"):
    """Nested document whose single leaf is a raw checksum-verification result."""
    return {
        "serial": serial,
        "architectures": {arch: {"status": leaf.get("status", "success"), "suites": {suite: leaf}}},
    }


def diverged_leaf(ours, official):
    """Leaf for a build that did not match the official image."""
    return {
        "status": "failed",
        "reproducible": False,
        "official_sha256": official,
        "our_sha256": ours,
        "build_time_seconds": 451,
    }
