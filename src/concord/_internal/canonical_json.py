"""Centralized canonical JSON serialization.

This module provides a single function for byte-stable JSON serialization
used everywhere: consensus reports, evidence files, normalized record dumps
and the report fingerprint.

Critical: two runs over the same documents must produce byte-identical
comparisons, otherwise the fingerprint is useless.
"""

import json
from typing import Any, Optional


def canonical_dumps(obj: Any, indent: Optional[int] = None) -> str:
    """
    Canonical JSON serialization for byte-stable evidence.

    Rules:
    - UTF-8 encoding
    - Sorted keys
    - Stable separators (",", ":") in compact form
    - Deterministic list ordering (lists must already be sorted before calling)
    - No trailing whitespace

    Args:
        obj: Python object to serialize
        indent: Pretty-print indentation for human-facing files (None = compact)

    Returns:
        Canonical JSON string (UTF-8 encoded)
    """
    if indent is not None:
        return json.dumps(obj, sort_keys=True, indent=indent, ensure_ascii=False)
    return json.dumps(
        obj,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False  # UTF-8 encoding
    )
