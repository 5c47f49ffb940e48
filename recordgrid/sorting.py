"""
Filtering and sorting functions for the record grid.

This module provides functions for:
- Dropping hidden records and applying the active filter mode
- Normalizing artist and title strings for sorting (leading "The")
- Parsing free-form release dates into a sortable year
- Resolving per-field sort keys and ordering records by up to three sort pills
"""

from __future__ import annotations

import re
from functools import cmp_to_key
from typing import Iterable, List, Optional, Sequence, Tuple

from recordgrid.models import (
    FilterConfig,
    ListenStats,
    MAX_SORT_PILLS,
    Record,
    SomeFilters,
    SortPill,
)


# ============================================================================
# Visibility and filter mode
# ============================================================================

FORMAT_FLAGS = {
    "LP": "lps",
    "EP": "eps",
    "Single": "singles",
}

CHARACTERISTIC_FLAGS = {
    "Soundtrack": "soundtracks",
    "Compilation": "compilations",
    "Concert": "concerts",
    "ComposerWork": "composer_works",
    "Miscellanea": "miscellanea",
    "Reissue": "reissues",
}


def is_hidden(record: Record) -> bool:
    # Only an explicit False hides a record.
    return record.show_on_grid is False


def passes_some_filters(record: Record, flags: SomeFilters) -> bool:
    """AND semantics: the format must be enabled, and so must every flagged
    characteristic the record carries. Records without characteristics are
    constrained by format only.
    """
    fmt_flag = FORMAT_FLAGS.get(record.effective_format)
    if not fmt_flag or not getattr(flags, fmt_flag):
        return False
    for characteristic in record.characteristics:
        flag = CHARACTERISTIC_FLAGS.get(characteristic)
        if flag and not getattr(flags, flag):
            return False
    return True


def matches_filter_mode(record: Record, mode: str, flags: SomeFilters) -> bool:
    if mode == "some":
        return passes_some_filters(record, flags)
    if mode == "lps":
        return record.effective_format == "LP"
    if mode == "eps":
        return record.format == "EP"
    if mode == "singles":
        return record.format == "Single"
    if mode == "soundtracks":
        return "Soundtrack" in record.characteristics
    if mode == "compilations":
        return "Compilation" in record.characteristics
    if mode == "invisible":
        return is_hidden(record)
    # "all" and anything unrecognised
    return True


def filter_records(records: Iterable[Record], config: FilterConfig) -> List[Record]:
    """Return the records visible under ``config``, in input order.

    Hidden records are dropped first unless the Invisible flag is on. The
    ``invisible`` mode is exempt from that gate since it asks for hidden
    records explicitly.
    """
    mode = config.filter_mode
    flags = config.some_filters
    gate_hidden = not flags.invisible and mode != "invisible"
    rows: List[Record] = []
    for record in records:
        if gate_hidden and is_hidden(record):
            continue
        if matches_filter_mode(record, mode, flags):
            rows.append(record)
    return rows


# ============================================================================
# String normalization
# ============================================================================

LEADING_THE_RE = re.compile(r"^the\s+", re.IGNORECASE)


def strip_leading_article(text: str, honour_the: bool = False) -> str:
    # "The Beatles" -> "Beatles" unless the article is honoured
    if honour_the or not text:
        return text or ""
    return LEADING_THE_RE.sub("", text, count=1)


def sort_artist_text(record: Record, honour_the: bool = False) -> str:
    return strip_leading_article(record.sort_artist or record.artist or "", honour_the)


def sort_title_text(record: Record, honour_the: bool = False) -> str:
    return strip_leading_article(
        record.sort_name or record.sort_title or record.title or "", honour_the
    )


# ============================================================================
# Release dates
# ============================================================================

UNKNOWN_YEAR = 9999

DAY_FIRST_DATE_RE = re.compile(r"^\d{2}-\d{2}-\d{4}$", re.ASCII)
ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$", re.ASCII)
YEAR_RE = re.compile(r"\d{4}", re.ASCII)


def parse_release_year(value: object) -> int:
    """Parse a free-form release date into a year.

    Accepts "DD-MM-YYYY", "YYYY-MM-DD", or anything containing a run of four
    digits ("1995", "Spring 1972"). Missing or unparsable values give 9999 so
    they file last in ascending order.
    """
    if value is None or value == "" or value == 0:
        return UNKNOWN_YEAR
    text = str(value)
    if DAY_FIRST_DATE_RE.match(text):
        return int(text[-4:])
    if ISO_DATE_RE.match(text):
        return int(text[:4])
    m = YEAR_RE.search(text)
    return int(m.group(0)) if m else UNKNOWN_YEAR


# ============================================================================
# Sort keys and ordering
# ============================================================================

def listen_seconds(record: Record, listen_stats: Optional[ListenStats]) -> int:
    entry = (listen_stats or {}).get(record.id) or {}
    try:
        return int(entry.get("total_seconds") or 0)
    except (TypeError, ValueError):
        return 0


def resolve_sort_key(
    record: Record,
    field: str,
    honour_the: bool = False,
    listen_stats: Optional[ListenStats] = None,
):
    """Comparable value for ``record`` under a sort pill field.

    Strings come back lower-cased; releaseDate and listenTime are ints.
    Unknown fields resolve to "" so they never reorder anything.
    """
    if field == "artist":
        return sort_artist_text(record, honour_the).lower()
    if field == "title":
        return sort_title_text(record, honour_the).lower()
    if field == "releaseDate":
        return parse_release_year(record.release_date)
    if field == "dateAdded":
        return (record.created_at or "").lower()
    if field == "listenTime":
        return listen_seconds(record, listen_stats)
    return ""


def _compare_keys(a: tuple, b: tuple, pills: Sequence[SortPill]) -> int:
    for a_val, b_val, pill in zip(a, b, pills):
        if a_val < b_val:
            return 1 if pill.descending else -1
        if a_val > b_val:
            return -1 if pill.descending else 1
    return 0


def compare_records(
    a: Record,
    b: Record,
    pills: Sequence[SortPill],
    honour_the: bool = False,
    listen_stats: Optional[ListenStats] = None,
) -> int:
    pills = tuple(pills[:MAX_SORT_PILLS])
    ka = tuple(resolve_sort_key(a, p.field, honour_the, listen_stats) for p in pills)
    kb = tuple(resolve_sort_key(b, p.field, honour_the, listen_stats) for p in pills)
    return _compare_keys(ka, kb, pills)


def sort_records(
    records: Sequence[Record],
    pills: Sequence[SortPill],
    honour_the: bool = False,
    listen_stats: Optional[ListenStats] = None,
) -> List[Record]:
    """Stable multi-key sort; full ties keep their input order.

    Keys are resolved once per record and pill. No pills returns the input
    order unchanged.
    """
    pills = tuple(pills[:MAX_SORT_PILLS])
    if not pills:
        return list(records)
    keyed: List[Tuple[tuple, Record]] = [
        (tuple(resolve_sort_key(r, p.field, honour_the, listen_stats) for p in pills), r)
        for r in records
    ]
    keyed.sort(key=cmp_to_key(lambda x, y: _compare_keys(x[0], y[0], pills)))
    return [r for _, r in keyed]
