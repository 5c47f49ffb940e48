"""Output formatting and export functions for the record grid.

Writes a projection as TXT (with group dividers), CSV or JSON. Grouped
projections list records group by group; the header-less regular group gets
no divider line.
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Dict, List, Optional

from recordgrid.models import DistinguishedGroup, Group, Projection, Record
from recordgrid.sorting import UNKNOWN_YEAR, parse_release_year


def get_year_str(r: Record) -> str:
    year = parse_release_year(r.release_date)
    return f" ({year})" if year != UNKNOWN_YEAR else ""

def get_format_part(r: Record) -> str:
    return f" [{r.effective_format}]" if r.effective_format != "LP" else ""

def get_divider_line(group: Group, show_counts: bool) -> Optional[str]:
    if not group.show_header:
        return None
    if show_counts:
        return f"=== {group.label} ({len(group.records)}) ==="
    return f"=== {group.label} ==="

def format_txt_line(r: Record, artist_width: int, title_width: int, align: bool) -> str:
    year_str = get_year_str(r)
    format_part = get_format_part(r)
    artist = r.artist or "Unknown Artist"
    if align:
        return f"{artist.ljust(artist_width)} | {r.title.ljust(title_width)}{year_str}{format_part}".rstrip()
    return f"{artist} — {r.title}{year_str}{format_part}".rstrip()

def generate_txt_lines(
    projection: Projection,
    show_counts: bool = False,
    align: bool = False,
) -> List[str]:
    """Return the lines that would appear in the TXT output."""
    rows = projection.records
    artist_width = max((len(r.artist or "Unknown Artist") for r in rows), default=0) if align else 0
    title_width = max((len(r.title) for r in rows), default=0) if align else 0

    lines: List[str] = []
    if not projection.is_grouped:
        for r in rows:
            lines.append(format_txt_line(r, artist_width, title_width, align))
        return lines
    for group in projection.groups:
        div_line = get_divider_line(group, show_counts)
        if div_line:
            lines.append(div_line)
        for r in group.records:
            lines.append(format_txt_line(r, artist_width, title_width, align))
    return lines


def write_txt(projection: Projection, out_path: Path, show_counts: bool = False, align: bool = False) -> None:
    lines = generate_txt_lines(projection, show_counts=show_counts, align=align)
    with out_path.open("w", encoding="utf-8") as f:
        for line in lines:
            f.write(line + "\n")


def record_to_json(r: Record) -> Dict[str, object]:
    year = parse_release_year(r.release_date)
    return {
        "id": r.id,
        "artist": r.artist,
        "title": r.title,
        "year": year if year != UNKNOWN_YEAR else None,
        "releaseDate": r.release_date,
        "format": r.effective_format,
        "characteristics": list(r.characteristics),
        "genre": r.genre,
        "showOnGrid": r.show_on_grid,
    }


def projection_to_json(projection: Projection) -> Dict[str, object]:
    groups = None
    if projection.is_grouped:
        groups = [
            {
                "key": g.legacy_key,
                "label": g.label,
                "distinguished": isinstance(g, DistinguishedGroup),
                "showHeader": g.show_header,
                "records": [r.id for r in g.records],
            }
            for g in projection.groups
        ]
    return {
        "records": [record_to_json(r) for r in projection.records],
        "groups": groups,
    }


def write_json(projection: Projection, out_path: Path) -> None:
    with out_path.open("w", encoding="utf-8") as f:
        json.dump(projection_to_json(projection), f, ensure_ascii=False, indent=2)


def _csv_rows(projection: Projection):
    if not projection.is_grouped:
        for r in projection.records:
            yield "", r
        return
    for g in projection.groups:
        for r in g.records:
            yield g.label, r


def write_csv(projection: Projection, out_path: Path) -> None:
    cols = [
        "Group",
        "Artist",
        "Title",
        "Year",
        "Format",
        "Characteristics",
        "Genre",
        "Id",
    ]
    with out_path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(cols)
        for label, r in _csv_rows(projection):
            year = parse_release_year(r.release_date)
            writer.writerow(
                [
                    label,
                    r.artist,
                    r.title,
                    year if year != UNKNOWN_YEAR else "",
                    r.effective_format,
                    "; ".join(r.characteristics),
                    r.genre or "",
                    r.id,
                ]
            )
