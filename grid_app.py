#!/usr/bin/env python3
"""
Record Grid Projection

Loads the albums of a library folder, applies the grid's view options
(filter mode, up to three sort pills, optional grouping, distinguish
characteristics, honour "The") and writes the resulting shelf order as TXT,
and optionally CSV and JSON.

View options come from a saved view-state JSON file (--view-state) and can be
overridden on the command line. Listening stats for the listen-time sort are
fetched from a running host (--stats-url or RECORDGRID_HOST_URL) or read from
the library's ledgers.

Library discovery order:
- CLI: --library
- Environment: RECORDGRID_LIBRARY
- Optional .env file

Usage examples:
  python grid_app.py --library ~/Music/Gloaming --sort artist --sort releaseDate:desc
  python grid_app.py --group-by decade --distinguish Soundtrack,Reissue --counts
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional

from recordgrid import __version__
from recordgrid.api import fetch_listen_stats, get_host_url, host_headers
from recordgrid.config import (
    SOME_FILTER_KEYS,
    get_library_path,
    load_view_state,
    parse_sort_arg,
    save_view_state,
    view_config_from_state,
    view_state_from_config,
)
from recordgrid.export import generate_txt_lines, write_csv, write_json, write_txt
from recordgrid.library import load_listen_stats, load_records
from recordgrid.models import (
    CHARACTERISTICS,
    DistinguishConfig,
    FILTER_MODES,
    DistinguishedGroup,
    GROUP_FIELDS,
    GroupConfig,
    MAX_SORT_PILLS,
    Projection,
    Record,
    SomeFilters,
    ViewConfig,
)
from recordgrid.projection import project
from recordgrid.stats import ListenStatsStore, needs_listen_stats


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Record grid shelf order")
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
        help="Show program's version number and exit.",
    )
    parser.add_argument(
        "--library",
        help="Library folder (with collections/). If omitted, reads RECORDGRID_LIBRARY env var.",
    )
    parser.add_argument(
        "--view-state",
        help="Saved view-state JSON to start from (filterMode, sortPills, separators, ...).",
    )
    parser.add_argument(
        "--save-view-state",
        help="Write the effective view state to this JSON file.",
    )
    parser.add_argument(
        "--filter",
        choices=list(FILTER_MODES),
        help="Filter mode.",
    )
    parser.add_argument(
        "--some",
        help="Comma-separated flags enabled for --filter some (e.g. 'LPs,EPs,Soundtracks'); others are off.",
    )
    parser.add_argument(
        "--sort",
        action="append",
        metavar="FIELD[:DIR]",
        help="Sort pill, repeatable up to 3 (artist, title, releaseDate, dateAdded, listenTime; asc/desc).",
    )
    parser.add_argument(
        "--group-by",
        choices=list(GROUP_FIELDS),
        help="Enable separators grouped by this field.",
    )
    parser.add_argument(
        "--distinguish",
        help="Comma-separated characteristics to pull out at the end (e.g. 'Soundtrack,Reissue').",
    )
    parser.add_argument(
        "--honour-the",
        action="store_true",
        default=None,
        help="Keep a leading 'The' when sorting and grouping.",
    )
    parser.add_argument(
        "--stats-url",
        help="Host base URL for listening stats. If omitted, reads RECORDGRID_HOST_URL, else the library ledgers.",
    )
    parser.add_argument(
        "--output-dir",
        default=".",
        help="Directory where outputs are written.",
    )
    parser.add_argument(
        "--basename",
        default="grid_order",
        help="Base file name for outputs (grid_order.txt/.csv/.json).",
    )
    parser.add_argument("--csv", action="store_true", help="Also write a CSV export.")
    parser.add_argument("--json", action="store_true", help="Also write a JSON export.")
    parser.add_argument("--counts", action="store_true", help="Show record counts in group dividers.")
    parser.add_argument("--align", action="store_true", help="Align artist and title columns in TXT output.")
    parser.add_argument("--print", action="store_true", help="Also print the TXT lines to stdout.")
    return parser.parse_args(argv)


def _split_list(text: Optional[str]) -> List[str]:
    return [s.strip() for s in (text or "").split(",") if s.strip()]


def apply_overrides(config: ViewConfig, args: argparse.Namespace) -> ViewConfig:
    """Command line options win over the saved view state."""
    filter_config = config.filter
    if args.filter:
        filter_config = replace(filter_config, filter_mode=args.filter)
    if args.some is not None:
        enabled = set(_split_list(args.some))
        unknown = enabled - set(SOME_FILTER_KEYS)
        if unknown:
            raise ValueError(f"Unknown --some flags: {', '.join(sorted(unknown))}")
        flags = SomeFilters(**{attr: key in enabled for key, attr in SOME_FILTER_KEYS.items()})
        filter_config = replace(filter_config, some_filters=flags)
    config = replace(config, filter=filter_config)

    if args.sort:
        if len(args.sort) > MAX_SORT_PILLS:
            print(f"Using the first {MAX_SORT_PILLS} of {len(args.sort)} sort pills.")
        config = replace(config, sort_pills=tuple(parse_sort_arg(s) for s in args.sort[:MAX_SORT_PILLS]))
    if args.group_by:
        config = replace(config, group=GroupConfig(enabled=True, field=args.group_by))
    if args.distinguish is not None:
        chosen = _split_list(args.distinguish)
        unknown = set(chosen) - set(CHARACTERISTICS)
        if unknown:
            raise ValueError(f"Unknown characteristics: {', '.join(sorted(unknown))}")
        config = replace(config, distinguish=DistinguishConfig(tuple(chosen)))
    if args.honour_the:
        config = replace(config, honour_the=True)
    return config


def resolve_listen_stats(args, library: Path, records: List[Record], config: ViewConfig) -> Dict:
    if not needs_listen_stats(config.active_pills):
        return {}
    host = get_host_url(args.stats_url)
    if host:
        print(f"Fetching listening stats from {host}...")
        fetcher = lambda ids: fetch_listen_stats(host, ids, headers=host_headers(), log_callback=print)
    else:
        fetcher = lambda ids: load_listen_stats(library, ids, log_callback=print)
    store = ListenStatsStore()
    worker = store.fetch_async(fetcher, [r.id for r in records], log_callback=print)
    worker.join()
    return store.stats


def write_outputs(args, out_dir: Path, projection: Projection) -> None:
    txt_path = out_dir / f"{args.basename}.txt"
    write_txt(projection, txt_path, show_counts=bool(args.counts), align=bool(args.align))
    print(f"Wrote: {txt_path}")
    if args.csv:
        csv_path = out_dir / f"{args.basename}.csv"
        write_csv(projection, csv_path)
        print(f"Wrote: {csv_path}")
    if args.json:
        json_path = out_dir / f"{args.basename}.json"
        write_json(projection, json_path)
        print(f"Wrote: {json_path}")


def print_summary(records: List[Record], projection: Projection) -> None:
    summary_parts = [f"Records: {len(projection.records)}/{len(records)}"]
    if projection.is_grouped:
        summary_parts.append(f"Groups: {len(projection.groups)}")
        distinguished = sum(len(g.records) for g in projection.groups if isinstance(g, DistinguishedGroup))
        if distinguished:
            summary_parts.append(f"Distinguished: {distinguished}")
    print("Summary: " + " • ".join(summary_parts))


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    library = get_library_path(args.library)

    print(f"Record Grid v{__version__}")

    state = load_view_state(Path(args.view_state), log_callback=print) if args.view_state else {}
    config = apply_overrides(view_config_from_state(state), args)

    print(f"Loading records from {library}...")
    records = load_records(library, log_callback=print)
    if not records:
        print("No records found.")
        return

    listen_stats = resolve_listen_stats(args, library, records, config)
    projection = project(records, config, listen_stats)

    out_dir = Path(args.output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    write_outputs(args, out_dir, projection)
    if args.print:
        for line in generate_txt_lines(projection, show_counts=bool(args.counts), align=bool(args.align)):
            print(line)
    if args.save_view_state:
        save_view_state(Path(args.save_view_state), view_state_from_config(config))
        print(f"Wrote: {args.save_view_state}")
    print_summary(records, projection)


def run() -> None:
    try:
        main()
    except KeyboardInterrupt:
        print("\nInterrupted.")
        sys.exit(130)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    run()
