"""Public models shared by ingestion and reporting."""

from typing import Optional
from pydantic import BaseModel


class IngestIssue(BaseModel):
    """A document skipped during ingestion (reduces coverage, never fatal)."""
    code: str  # IssueCode value: "SOURCE_UNAVAILABLE" | "SERIAL_MISMATCH" | "MALFORMED_REPORT"
    message: str
    platform: Optional[str] = None
    source: Optional[str] = None  # path of the offending document
