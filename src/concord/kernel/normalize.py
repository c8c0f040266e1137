"""Normalize platform reports into canonical result records (pure logic).

Two report layouts are recognized, tried in a fixed order:

1. nested: {"architectures": {ARCH: {"suites": {SUITE: {"sha256": ...}}}}}
2. flat:   {"results": [{"architecture", "suite", "sha256"}, ...]} or a bare
           JSON array of such objects

Leaves written by checksum verification carry "our_sha256" (and
"official_sha256" when an official image existed); the platform's own
digest is the one that votes.

Anything else is the UNKNOWN variant and is rejected as malformed rather
than silently producing no records.
"""

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, ValidationError

from concord.codes import ReportShape
from concord.errors import MalformedReport
from .hash_utils import ChecksumError, normalize_checksum
from .records import CanonicalResultRecord, PlatformReport, Provenance

# our_sha256 is what a platform built when it diverged from the official image
CHECKSUM_FIELDS = ("our_sha256", "sha256", "checksum")
OFFICIAL_CHECKSUM_FIELD = "official_sha256"


class ParsedReport(BaseModel):
    """Result of shape dispatch: which variant matched and what it yielded."""
    platform: str
    shape: ReportShape
    records: Tuple[CanonicalResultRecord, ...]

    model_config = ConfigDict(frozen=True)


def detect_shape(payload: Any) -> ReportShape:
    """Structurally classify a raw payload."""
    if isinstance(payload, dict):
        if isinstance(payload.get("architectures"), dict):
            return ReportShape.NESTED
        if isinstance(payload.get("results"), list):
            return ReportShape.FLAT
        return ReportShape.UNKNOWN
    if isinstance(payload, list):
        return ReportShape.FLAT
    return ReportShape.UNKNOWN


def _malformed(report: PlatformReport, reason: str) -> MalformedReport:
    where = report.source or report.platform
    return MalformedReport(f"{where}: {reason}", platform=report.platform, source=report.source)


def _str_field(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return None


def _read_checksum(obj: Dict[str, Any]) -> Optional[Any]:
    """Return the first non-null checksum field, or None when the build produced none."""
    for field in CHECKSUM_FIELDS:
        value = obj.get(field)
        if value is not None:
            return value
    return None


def _document_provenance(report: PlatformReport) -> Dict[str, Any]:
    payload = report.payload
    if not isinstance(payload, dict):
        return {"source": report.source}

    build_url = None
    platform_meta = payload.get("platform")
    if isinstance(platform_meta, dict):
        build_url = _str_field(platform_meta.get("build_url"))
    if build_url is None:
        build_url = _str_field(payload.get("build_url"))

    environment = payload.get("environment")
    return {
        "timestamp": report.timestamp,
        "build_url": build_url,
        "serial": report.serial,
        "run_id": _str_field(payload.get("run_id")),
        "source": report.source,
        "environment": environment if isinstance(environment, dict) and environment else None,
    }


def _make_record(
    report: PlatformReport,
    architecture: Any,
    suite: Any,
    entry: Dict[str, Any],
    doc_provenance: Dict[str, Any],
) -> Optional[CanonicalResultRecord]:
    raw_checksum = _read_checksum(entry)
    if raw_checksum is None:
        return None

    arch = _str_field(architecture)
    suite_name = _str_field(suite)
    if arch is None or suite_name is None:
        raise _malformed(report, f"result entry has invalid architecture/suite: {architecture!r}/{suite!r}")

    try:
        checksum = normalize_checksum(raw_checksum)
        raw_official = entry.get(OFFICIAL_CHECKSUM_FIELD)
        official = normalize_checksum(raw_official) if raw_official is not None else None
    except ChecksumError as e:
        raise _malformed(report, f"{arch}/{suite_name}: {e}")

    provenance = dict(doc_provenance)
    provenance["official_checksum"] = official
    entry_timestamp = _str_field(entry.get("timestamp"))
    if entry_timestamp is not None:
        provenance["timestamp"] = entry_timestamp
    entry_build_url = _str_field(entry.get("build_url"))
    if entry_build_url is not None:
        provenance["build_url"] = entry_build_url

    reproducible = entry.get("reproducible")
    try:
        return CanonicalResultRecord(
            platform=report.platform,
            architecture=arch,
            suite=suite_name,
            checksum=checksum,
            claimed_reproducible=reproducible if isinstance(reproducible, bool) else None,
            provenance=Provenance(**provenance),
        )
    except ValidationError as e:
        raise _malformed(report, f"{arch}/{suite_name}: {e.errors()[0]['msg']}")


def _parse_nested(report: PlatformReport) -> List[CanonicalResultRecord]:
    doc_provenance = _document_provenance(report)
    records: List[CanonicalResultRecord] = []
    for arch, arch_entry in report.payload["architectures"].items():
        if not isinstance(arch_entry, dict):
            raise _malformed(report, f"architecture {arch!r} is not an object")
        suites = arch_entry.get("suites")
        if not isinstance(suites, dict):
            raise _malformed(report, f"architecture {arch!r} has no 'suites' object")
        for suite, leaf in suites.items():
            if not isinstance(leaf, dict):
                raise _malformed(report, f"suite {arch}/{suite} is not an object")
            record = _make_record(report, arch, suite, leaf, doc_provenance)
            if record is not None:
                records.append(record)
    return records


def _parse_flat(report: PlatformReport) -> List[CanonicalResultRecord]:
    payload = report.payload
    items = payload if isinstance(payload, list) else payload["results"]
    doc_provenance = _document_provenance(report)
    records: List[CanonicalResultRecord] = []
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            raise _malformed(report, f"results[{i}] is not an object")
        if "architecture" not in item or "suite" not in item:
            raise _malformed(report, f"results[{i}] is missing architecture/suite")
        record = _make_record(report, item["architecture"], item["suite"], item, doc_provenance)
        if record is not None:
            records.append(record)
    return records


def parse_report(report: PlatformReport) -> ParsedReport:
    """Dispatch on shape and parse.

    Raises:
        MalformedReport: If the payload matches no known shape, or a matched
            shape contains entries that cannot be interpreted.
    """
    shape = detect_shape(report.payload)
    if shape is ReportShape.NESTED:
        records = _parse_nested(report)
    elif shape is ReportShape.FLAT:
        records = _parse_flat(report)
    else:
        raise _malformed(report, "unrecognized report shape (expected 'architectures' tree or 'results' array)")
    return ParsedReport(platform=report.platform, shape=shape, records=tuple(records))


def normalize_report(report: PlatformReport) -> List[CanonicalResultRecord]:
    """Parse a platform report into canonical records."""
    return list(parse_report(report).records)
