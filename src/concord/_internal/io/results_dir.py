"""Local results-directory source adapter.

Associates every JSON document in a directory with exactly one platform and
loads it into a PlatformReport. Platform identity is resolved here, never in
the kernel.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict

from concord.codes import IssueCode
from concord.contracts import IngestIssue
from concord.errors import MalformedReport, SerialMismatch, SourceUnavailable
from concord.kernel.records import PlatformReport

logger = logging.getLogger(__name__)

MANIFEST_NAME = "sources.json"

# "<platform>-<serial...>.json": platform is everything before the first "-<digit>"
_PLATFORM_RE = re.compile(r"^(?P<platform>.+?)-\d")


class SourceRef(BaseModel):
    """One document and the platform it came from."""
    platform: str
    path: Path

    model_config = ConfigDict(frozen=True)


def platform_from_filename(path: Union[str, Path]) -> str:
    """Derive a platform name from the file naming convention."""
    stem = Path(path).stem
    match = _PLATFORM_RE.match(stem)
    return match.group("platform") if match else stem


def _manifest_entries(data: Any) -> List[Tuple[str, str]]:
    if isinstance(data, dict) and isinstance(data.get("sources"), list):
        entries = []
        for i, item in enumerate(data["sources"]):
            if not isinstance(item, dict) or not item.get("path") or not item.get("platform"):
                raise ValueError(f"{MANIFEST_NAME}: sources[{i}] needs 'path' and 'platform'")
            entries.append((str(item["path"]), str(item["platform"])))
        return entries
    if isinstance(data, dict) and all(isinstance(v, str) for v in data.values()):
        return [(str(k), v) for k, v in data.items()]
    raise ValueError(
        f"{MANIFEST_NAME} must map file names to platforms or hold a 'sources' list"
    )


def discover_sources(results_dir: Union[str, Path]) -> Tuple[List[SourceRef], List[IngestIssue]]:
    """List the documents in a results directory with their platforms.

    A sources.json manifest, when present, is authoritative; otherwise every
    top-level *.json file is used and its platform comes from the file name.

    Raises:
        FileNotFoundError: If the directory does not exist.
        ValueError: If the manifest is present but unreadable or unusable.
    """
    root = Path(results_dir)
    if not root.is_dir():
        raise FileNotFoundError(f"Results directory not found: {root}")

    refs: List[SourceRef] = []
    issues: List[IngestIssue] = []
    manifest_path = root / MANIFEST_NAME
    if manifest_path.exists():
        try:
            manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"{manifest_path}: invalid JSON ({e})")
        except UnicodeDecodeError as e:
            raise ValueError(f"{manifest_path}: not UTF-8 text ({e.reason})")
        except OSError as e:
            raise ValueError(f"{manifest_path}: cannot read manifest ({e.strerror or e})")
        for relpath, platform in _manifest_entries(manifest):
            doc_path = root / relpath
            if not doc_path.is_file():
                logger.warning("Source for platform %s not found: %s", platform, doc_path)
                issues.append(IngestIssue(
                    code=IssueCode.SOURCE_UNAVAILABLE.value,
                    message=f"Listed in {MANIFEST_NAME} but not found",
                    platform=platform,
                    source=str(doc_path),
                ))
                continue
            refs.append(SourceRef(platform=platform, path=doc_path))
    else:
        for doc_path in sorted(root.glob("*.json")):
            if doc_path.is_file():
                refs.append(SourceRef(platform=platform_from_filename(doc_path), path=doc_path))

    refs.sort(key=lambda r: (r.platform, str(r.path)))
    logger.debug("Discovered %d source document(s) in %s", len(refs), root)
    return refs, issues


def load_platform_report(ref: SourceRef, expected_serial: Optional[str] = None) -> PlatformReport:
    """Read and parse one source document.

    Raises:
        SourceUnavailable: If the file cannot be read.
        SerialMismatch: If the document names a serial other than expected_serial.
        MalformedReport: If the file is not valid UTF-8 JSON.
    """
    source = str(ref.path)
    try:
        text = ref.path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise MalformedReport(f"{source}: not UTF-8 text ({e.reason})", platform=ref.platform, source=source)
    except OSError as e:
        raise SourceUnavailable(f"{source}: {e.strerror or e}", platform=ref.platform, source=source)

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedReport(f"{source}: invalid JSON ({e.msg} at line {e.lineno})", platform=ref.platform, source=source)

    report = PlatformReport.from_payload(ref.platform, payload, source=source)
    if expected_serial is not None and report.serial is not None and report.serial != expected_serial:
        raise SerialMismatch(
            f"{source}: serial {report.serial} does not match expected {expected_serial}",
            platform=ref.platform,
            source=source,
        )
    return report


def issue_from_error(error: Union[SourceUnavailable, MalformedReport]) -> IngestIssue:
    """Convert a recovered per-document error into a report issue."""
    if isinstance(error, SerialMismatch):
        code = IssueCode.SERIAL_MISMATCH
    elif isinstance(error, SourceUnavailable):
        code = IssueCode.SOURCE_UNAVAILABLE
    else:
        code = IssueCode.MALFORMED_REPORT
    return IngestIssue(
        code=code.value,
        message=str(error),
        platform=error.platform,
        source=error.source,
    )


def read_sources(
    results_dir: Union[str, Path],
    expected_serial: Optional[str] = None,
) -> Tuple[List[PlatformReport], List[IngestIssue]]:
    """Discover and load every document, isolating per-document failures."""
    refs, issues = discover_sources(results_dir)
    reports: List[PlatformReport] = []
    for ref in refs:
        try:
            reports.append(load_platform_report(ref, expected_serial=expected_serial))
        except (SourceUnavailable, MalformedReport) as e:
            logger.warning("Skipping %s source: %s", ref.platform, e)
            issues.append(issue_from_error(e))
    return reports, issues
