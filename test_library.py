# Assertions for reading collections and listening ledgers from a library folder.

import json
import sqlite3
import tempfile
from pathlib import Path

from recordgrid.errors import LibraryError
from recordgrid.library import build_record, load_listen_stats, load_records


def assert_eq(a, b, msg: str = ""):
    if a != b:
        raise AssertionError(msg or f"Expected {b!r}, got {a!r}")


def _write(path: Path, payload) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    text = payload if isinstance(payload, str) else json.dumps(payload)
    path.write_text(text, encoding="utf-8")


def _make_library(root: Path) -> None:
    cols = root / "collections"
    _write(cols / "01-abba.json", {
        "type": "album", "id": "abba", "title": "Arrival", "artist": "ABBA",
        "releaseDate": 1976, "format": "LP", "characteristics": ["Reissue"],
    })
    _write(cols / "02-beatles.json", {
        "id": "beatles", "name": "Revolver", "artist": "The Beatles",
        "sortTitle": "Revolver", "releaseDate": "1966-08-05", "showOnGrid": False,
    })
    _write(cols / "03-mixtape.json", {"type": "mixtape", "id": "tape", "title": "Road Trip"})
    _write(cols / "04-broken.json", "{not json")
    _write(cols / "05-noid.json", {"type": "album", "title": "Orphan"})
    _write(cols / "06-list.json", [1, 2, 3])
    _write(cols / "notes.txt", "ignored")


def test_build_record_maps_persisted_keys():
    record = build_record({
        "id": 7, "name": "Kind of Blue", "artist": "Miles Davis", "sortArtist": "Davis, Miles",
        "createdAt": "2024-01-01", "characteristics": "Reissue", "genre": "Jazz",
    })
    assert_eq(record.id, 7)
    assert_eq(record.title, "Kind of Blue")
    assert_eq(record.sort_artist, "Davis, Miles")
    assert_eq(record.characteristics, ("Reissue",))
    assert_eq(record.show_on_grid, True)
    assert_eq(record.effective_format, "LP")
    try:
        build_record({"title": "No id"})
    except LibraryError:
        pass
    else:
        raise AssertionError("Expected LibraryError for an entry without an id")


def test_load_records_skips_non_albums_and_bad_files():
    with tempfile.TemporaryDirectory() as tmp:
        root = Path(tmp)
        _make_library(root)
        messages = []
        records = load_records(root, log_callback=messages.append)
        assert_eq([r.id for r in records], ["abba", "beatles"])
        abba, beatles = records
        assert_eq(abba.release_date, "1976")
        assert_eq(abba.characteristics, ("Reissue",))
        assert_eq(beatles.title, "Revolver")
        assert_eq(beatles.show_on_grid, False)
        assert any("04-broken.json" in m for m in messages)
        assert any("05-noid.json" in m for m in messages)


def test_load_records_without_collections_folder():
    with tempfile.TemporaryDirectory() as tmp:
        messages = []
        assert_eq(load_records(Path(tmp), log_callback=messages.append), [])
        assert_eq(len(messages), 1)


def test_listen_stats_from_database():
    with tempfile.TemporaryDirectory() as tmp:
        root = Path(tmp)
        db = sqlite3.connect(str(root / "ledgers.db"))
        db.execute("CREATE TABLE listens (album_id TEXT, seconds INTEGER)")
        db.executemany(
            "INSERT INTO listens VALUES (?, ?)",
            [("abba", 120), ("abba", 60), ("beatles", 300), ("other", 999)],
        )
        db.commit()
        db.close()
        stats = load_listen_stats(root, ["abba", "beatles", "can"])
        assert_eq(stats, {
            "abba": {"total_seconds": 180, "listen_count": 2},
            "beatles": {"total_seconds": 300, "listen_count": 1},
        })


def test_listen_stats_from_json_fallback():
    with tempfile.TemporaryDirectory() as tmp:
        root = Path(tmp)
        _write(root / "ledgers.json", {"listens": [
            {"album_id": 1, "seconds": 40},
            {"album_id": 1, "seconds": 2},
            {"album_id": 2},
            {"seconds": 10},
        ]})
        stats = load_listen_stats(root, [1, 2, 3])
        assert_eq(stats, {
            1: {"total_seconds": 42, "listen_count": 2},
            2: {"total_seconds": 0, "listen_count": 1},
        })


def test_listen_stats_degrade_to_empty():
    with tempfile.TemporaryDirectory() as tmp:
        root = Path(tmp)
        assert_eq(load_listen_stats(root, ["abba"]), {})
        assert_eq(load_listen_stats(root, []), {})

        (root / "ledgers.db").write_bytes(b"this is not a sqlite database at all" * 4)
        messages = []
        assert_eq(load_listen_stats(root, ["abba"], log_callback=messages.append), {})
        assert_eq(len(messages), 1)


def main():
    for name, fn in sorted(globals().items()):
        if name.startswith("test_") and callable(fn):
            fn()
    print("All library assertions passed.")


if __name__ == "__main__":
    main()
