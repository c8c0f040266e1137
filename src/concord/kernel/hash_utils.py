"""Checksum normalization and stable hashing.

Checksums reported by platforms are opaque: they are only ever compared for
equality, never recomputed. Normalization therefore stays shallow.

Key rules:
- Optional "sha256:" style algorithm prefix stripped
- Lower-cased
- Hex charset only
- Length must match a known digest size
"""

import hashlib
import json
import re
from typing import Any

# md5, sha1, sha224, sha256, sha384, sha512 hex lengths
DIGEST_HEX_LENGTHS = frozenset({32, 40, 56, 64, 96, 128})

_HEX_RE = re.compile(r"^[0-9a-f]+$")
_PREFIX_RE = re.compile(r"^(md5|sha1|sha224|sha256|sha384|sha512):", re.IGNORECASE)


class ChecksumError(ValueError):
    """Raised when a reported checksum is not a plausible hex digest."""
    pass


def normalize_checksum(value: Any) -> str:
    """Return the canonical (lower-case hex) form of a reported checksum.

    Raises:
        ChecksumError: If the value is not a string, has a non-hex charset,
            or has a length that matches no known digest.
    """
    if not isinstance(value, str):
        raise ChecksumError(f"Checksum must be a string, got {type(value).__name__}")
    candidate = _PREFIX_RE.sub("", value.strip()).lower()
    if not candidate:
        raise ChecksumError("Checksum is empty")
    if not _HEX_RE.match(candidate):
        raise ChecksumError(f"Checksum {value!r} is not hexadecimal")
    if len(candidate) not in DIGEST_HEX_LENGTHS:
        raise ChecksumError(
            f"Checksum {value!r} has length {len(candidate)}; "
            f"expected one of {sorted(DIGEST_HEX_LENGTHS)}"
        )
    return candidate


def digest_canonical(obj: Any) -> str:
    """Compute SHA256 of an object's canonical JSON form.

    Canonicalization rules match canonical_dumps in compact form:
    - sort_keys=True
    - separators=(",", ":")
    - ensure_ascii=False

    Returns:
        SHA256 hash as hex string (prefixed with "sha256:")
    """
    canonical = json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
    return f"sha256:{digest}"
