"""Partition canonical records by (architecture, suite)."""

from typing import Dict, Iterable, List, Tuple

from .records import CanonicalResultRecord, CombinationGroup

GroupKey = Tuple[str, str]


def _record_sort_key(record: CanonicalResultRecord) -> tuple:
    return (record.platform, record.checksum, record.provenance.source or "")


def group_records(records: Iterable[CanonicalResultRecord]) -> Dict[GroupKey, CombinationGroup]:
    """Group records into one CombinationGroup per observed key.

    The key set is the union over all platforms, so a combination reported by
    a single platform still gets a group. Keys are returned in sorted order and
    records within a group are sorted by platform then checksum, which makes
    the output independent of input order.
    """
    buckets: Dict[GroupKey, List[CanonicalResultRecord]] = {}
    for record in records:
        buckets.setdefault(record.key, []).append(record)

    return {
        key: CombinationGroup(
            architecture=key[0],
            suite=key[1],
            records=tuple(sorted(buckets[key], key=_record_sort_key)),
        )
        for key in sorted(buckets)
    }


def observed_platforms(records: Iterable[CanonicalResultRecord]) -> List[str]:
    """Sorted distinct platform names present in the records."""
    return sorted({r.platform for r in records})
