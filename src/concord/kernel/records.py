"""Pydantic models for platform reports and canonical result records."""

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .hash_utils import normalize_checksum


def _optional_str(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list, bool)):
        return None
    text = str(value).strip()
    return text or None


class PlatformReport(BaseModel):
    """One raw document retrieved from one platform for one build serial."""
    platform: str
    payload: Any
    serial: Optional[str] = None
    timestamp: Optional[str] = None
    source: Optional[str] = None  # Where the adapter found the document (path, URL, ...)

    model_config = ConfigDict(frozen=True)

    @field_validator("platform")
    @classmethod
    def validate_platform(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Platform name must not be empty")
        return v

    @classmethod
    def from_payload(cls, platform: str, payload: Any, source: Optional[str] = None) -> "PlatformReport":
        """Build a report, lifting serial/timestamp out of an object payload."""
        serial = None
        timestamp = None
        if isinstance(payload, dict):
            serial = _optional_str(payload.get("serial"))
            timestamp = _optional_str(payload.get("timestamp"))
        return cls(
            platform=platform,
            payload=payload,
            serial=serial,
            timestamp=timestamp,
            source=source,
        )


class Provenance(BaseModel):
    """Metadata carried alongside a checksum; every field may be absent."""
    timestamp: Optional[str] = None
    build_url: Optional[str] = None
    serial: Optional[str] = None
    run_id: Optional[str] = None
    source: Optional[str] = None
    environment: Optional[Dict[str, Any]] = None
    official_checksum: Optional[str] = None  # reference digest the platform compared against; never a vote

    model_config = ConfigDict(frozen=True)


class CanonicalResultRecord(BaseModel):
    """One platform's checksum for one (architecture, suite)."""
    platform: str
    architecture: str
    suite: str
    checksum: str  # lower-case hex digest
    claimed_reproducible: Optional[bool] = None
    provenance: Provenance = Field(default_factory=Provenance)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("platform", "architecture", "suite")
    @classmethod
    def validate_label(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Labels must not be empty")
        return v

    @field_validator("checksum", mode="before")
    @classmethod
    def validate_checksum(cls, v: Any) -> str:
        return normalize_checksum(v)

    @property
    def key(self) -> Tuple[str, str]:
        return (self.architecture, self.suite)

    def identity(self) -> Tuple[str, str, str, str, Optional[bool]]:
        """Comparison tuple that ignores provenance."""
        return (self.platform, self.architecture, self.suite, self.checksum, self.claimed_reproducible)


class CombinationGroup(BaseModel):
    """All records sharing one (architecture, suite) key."""
    architecture: str
    suite: str
    records: Tuple[CanonicalResultRecord, ...] = ()

    model_config = ConfigDict(frozen=True)

    @property
    def key(self) -> Tuple[str, str]:
        return (self.architecture, self.suite)

    @property
    def platforms(self) -> List[str]:
        """Sorted distinct platform names reporting on this combination."""
        return sorted({r.platform for r in self.records})

    def __len__(self) -> int:
        return len(self.records)
