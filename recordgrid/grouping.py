"""
Separator grouping and distinguish partitioning.

Grouping splits the sorted records into named sections keyed by artist, year,
decade or genre. Distinguishing pulls records carrying selected
characteristics (Soundtrack, Reissue, ...) out into trailing sections, one per
characteristic, and removes them from the ordinary sections.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Dict, List, Optional, Sequence, Tuple

from recordgrid.models import (
    CHARACTERISTICS,
    DistinguishedGroup,
    Group,
    Record,
    RegularGroup,
)
from recordgrid.sorting import strip_leading_article


UNKNOWN_ARTIST = "Unknown Artist"
UNKNOWN_YEAR_LABEL = "Unknown Year"
UNKNOWN_DECADE = "Unknown Decade"
UNKNOWN_GENRE = "Unknown Genre"

_NUMERIC_RE = re.compile(r"^\s*[+-]?\d+(\.\d*)?\s*$", re.ASCII)
_CHUNK_RE = re.compile(r"(\d+)", re.ASCII)


# ============================================================================
# Group keys
# ============================================================================

def _year_prefix(record: Record) -> str:
    return str(record.release_date)[:4] if record.release_date else ""


def decade_label(record: Record) -> str:
    # "1967" -> "1960s"; uses the leading four characters only
    year = _year_prefix(record)
    if not year or not _NUMERIC_RE.match(year):
        return UNKNOWN_DECADE
    start = int(float(year)) // 10 * 10
    return f"{start}s"


def group_key(record: Record, field: str, honour_the: bool = False) -> str:
    if field == "releaseDate":
        return _year_prefix(record) or UNKNOWN_YEAR_LABEL
    if field == "decade":
        return decade_label(record)
    if field == "genre":
        return record.genre or UNKNOWN_GENRE
    # artist, and the fallback for unrecognised fields
    key = record.sort_artist or record.artist or UNKNOWN_ARTIST
    return strip_leading_article(key, honour_the)


def group_records(records: Sequence[Record], field: str, honour_the: bool = False) -> Dict[str, List[Record]]:
    """Bucket records by group key, preserving their order within each bucket."""
    grouped: Dict[str, List[Record]] = {}
    for record in records:
        grouped.setdefault(group_key(record, field, honour_the), []).append(record)
    return grouped


# ============================================================================
# Group ordering
# ============================================================================

def fold_accents(s: str) -> str:
    """Drop combining marks and casefold: "Édith" -> "edith"."""
    normalized = unicodedata.normalize("NFKD", s)
    return "".join(c for c in normalized if not unicodedata.combining(c)).casefold()


def natural_sort_key(text: str) -> tuple:
    """Numeric-aware, accent- and case-insensitive key.

    "2000s" sorts after "990s" and "Édith Piaf" files under E. Digit runs
    compare as numbers and before letters. Remaining ties go to the
    unaccented spelling, then to lowercase, so the order is total.
    """
    chunks = []
    # split() with a capturing group puts the digit runs at odd indices
    for i, part in enumerate(_CHUNK_RE.split(text)):
        if not part:
            continue
        if i % 2:
            chunks.append((0, int(part)))
        else:
            chunks.append((1, fold_accents(part)))
    return (tuple(chunks), text.casefold(), text.swapcase())


def order_group_keys(keys: Sequence[str], direction: str = "asc") -> List[str]:
    return sorted(keys, key=natural_sort_key, reverse=(direction == "desc"))


# ============================================================================
# Distinguish
# ============================================================================

def first_distinguishing(record: Record, active: Sequence[str]) -> Optional[str]:
    """First characteristic in ``active`` (priority order) that ``record`` carries."""
    for characteristic in active:
        if characteristic in record.characteristics:
            return characteristic
    return None


def partition_distinguished(
    records: Sequence[Record], active: Sequence[str]
) -> Tuple[List[Record], Dict[str, List[Record]]]:
    """Split records into regular ones and one bucket per active characteristic.

    A record lands in exactly one bucket, the first match in priority order,
    even when it carries several active characteristics.
    """
    active = [c for c in CHARACTERISTICS if c in active]
    regular: List[Record] = []
    buckets: Dict[str, List[Record]] = {c: [] for c in active}
    for record in records:
        matched = first_distinguishing(record, active)
        if matched:
            buckets[matched].append(record)
        else:
            regular.append(record)
    return regular, buckets


def without_distinguished(
    grouped: Dict[str, List[Record]], active: Sequence[str]
) -> Dict[str, List[Record]]:
    """Remove claimed records from separator groups, dropping emptied groups."""
    kept: Dict[str, List[Record]] = {}
    for key, records in grouped.items():
        regular = [r for r in records if first_distinguishing(r, active) is None]
        if regular:
            kept[key] = regular
    return kept


def assemble_groups(
    regular: Dict[str, List[Record]],
    buckets: Optional[Dict[str, List[Record]]] = None,
    direction: str = "asc",
) -> Tuple[Group, ...]:
    """Render order: regular groups by key (in ``direction``), then the
    non-empty distinguished buckets in priority order.
    """
    groups: List[Group] = [
        RegularGroup(key, tuple(regular[key])) for key in order_group_keys(list(regular), direction)
    ]
    for characteristic in CHARACTERISTICS:
        bucket = (buckets or {}).get(characteristic)
        if bucket:
            groups.append(DistinguishedGroup(characteristic, tuple(bucket)))
    return tuple(groups)
