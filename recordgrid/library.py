"""
Library folder access.

Reads album records from ``collections/*.json`` and aggregates listening
time per album from the ledgers (``ledgers.db``, or the older
``ledgers.json`` when there is no database). Readers report problems through
an optional ``log_callback`` and skip or degrade instead of raising, so a
damaged file never takes the whole grid down.
"""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Mapping, Optional

from recordgrid.errors import LibraryError
from recordgrid.models import Record

COLLECTIONS_DIR = "collections"
LEDGERS_DB = "ledgers.db"
LEDGERS_JSON = "ledgers.json"
SQL_BATCH = 500

LogCallback = Optional[Callable[[str], None]]


def _text(value) -> Optional[str]:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def _characteristics(value) -> tuple:
    if not value:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(c) for c in value if c)


def build_record(data: Mapping) -> Record:
    """Build a Record from one persisted collection dict (camelCase keys)."""
    if "id" not in data:
        raise LibraryError("collection entry has no id")
    return Record(
        id=data["id"],
        title=_text(data.get("title") or data.get("name")) or "",
        artist=_text(data.get("artist")) or "",
        sort_title=_text(data.get("sortTitle")),
        sort_name=_text(data.get("sortName")),
        sort_artist=_text(data.get("sortArtist")),
        format=_text(data.get("format")),
        characteristics=_characteristics(data.get("characteristics")),
        release_date=_text(data.get("releaseDate")),
        created_at=_text(data.get("createdAt")),
        show_on_grid=data.get("showOnGrid") is not False,
        genre=_text(data.get("genre")),
    )


def _read_json(path: Path):
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def load_records(library_path: Path, log_callback: LogCallback = None) -> List[Record]:
    """Load every album collection in the library, ordered by file name."""
    collections = Path(library_path) / COLLECTIONS_DIR
    if not collections.is_dir():
        if log_callback:
            log_callback(f"No collections folder at {collections}")
        return []
    rows: List[Record] = []
    for path in sorted(collections.glob("*.json")):
        try:
            data = _read_json(path)
        except (OSError, ValueError) as e:
            if log_callback:
                log_callback(f"Skipping unreadable collection {path.name}: {e}")
            continue
        if not isinstance(data, dict):
            continue
        # Mixtapes, facets and smart collections live in the same folder
        if data.get("type", "album") != "album":
            continue
        try:
            rows.append(build_record(data))
        except LibraryError as e:
            if log_callback:
                log_callback(f"Skipping {path.name}: {e}")
    return rows


# ============================================================================
# Listening ledgers
# ============================================================================

def _stats_from_db(db_path: Path, ids: List[str]) -> Dict[str, Dict[str, int]]:
    result: Dict[str, Dict[str, int]] = {}
    db = sqlite3.connect(str(db_path))
    db.row_factory = sqlite3.Row
    try:
        # Stay under SQLite's bound-parameter limit
        for start in range(0, len(ids), SQL_BATCH):
            batch = ids[start:start + SQL_BATCH]
            placeholders = ",".join("?" for _ in batch)
            cursor = db.execute(
                f"""
                SELECT album_id,
                       SUM(seconds) AS total_seconds,
                       COUNT(*) AS listen_count
                FROM listens
                WHERE album_id IN ({placeholders})
                GROUP BY album_id
                """,
                batch,
            )
            for row in cursor.fetchall():
                result[str(row["album_id"])] = {
                    "total_seconds": int(row["total_seconds"] or 0),
                    "listen_count": int(row["listen_count"] or 0),
                }
    finally:
        db.close()
    return result


def _stats_from_json(json_path: Path, ids: List[str]) -> Dict[str, Dict[str, int]]:
    wanted = set(ids)
    result: Dict[str, Dict[str, int]] = {}
    data = _read_json(json_path)
    for listen in (data or {}).get("listens", []):
        album_id = listen.get("album_id")
        if album_id is None or str(album_id) not in wanted:
            continue
        entry = result.setdefault(str(album_id), {"total_seconds": 0, "listen_count": 0})
        entry["total_seconds"] += int(listen.get("seconds") or 0)
        entry["listen_count"] += 1
    return result


def load_listen_stats(
    library_path: Path,
    record_ids: Iterable[object],
    log_callback: LogCallback = None,
) -> Dict[object, Dict[str, int]]:
    """Per-album listening totals for ``record_ids``.

    Returns ``{id: {"total_seconds": n, "listen_count": n}}`` for albums that
    have listens. Any failure to read the ledgers yields ``{}``.
    """
    by_text = {str(i): i for i in record_ids}
    if not by_text:
        return {}
    root = Path(library_path)
    db_path = root / LEDGERS_DB
    json_path = root / LEDGERS_JSON
    try:
        if db_path.exists():
            raw = _stats_from_db(db_path, list(by_text))
        elif json_path.exists():
            raw = _stats_from_json(json_path, list(by_text))
        else:
            return {}
    except (sqlite3.Error, OSError, ValueError, TypeError, AttributeError) as e:
        if log_callback:
            log_callback(f"Error reading listening ledgers: {e}")
        return {}
    # Key results by the caller's ids, which may not be strings
    return {by_text[k]: v for k, v in raw.items() if k in by_text}
