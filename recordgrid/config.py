"""
View-state configuration.

The grid's view state is persisted as a JSON dict with the keys the desktop
app uses (``filterMode``, ``someFilters``, ``sortPills``,
``separatorsEnabled``, ``separatorField``, ``distinguishFilters``,
``honourThe``). This module maps that dict to and from ``ViewConfig`` using
the app's defaults for anything missing, and finds the library folder from the
command line or the environment (optionally via .env).
"""

from __future__ import annotations

import json
import os
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

from dotenv import load_dotenv

from recordgrid.models import (
    CHARACTERISTICS,
    DistinguishConfig,
    FilterConfig,
    GroupConfig,
    MAX_SORT_PILLS,
    SomeFilters,
    SortPill,
    ViewConfig,
)

load_dotenv()

# Persisted someFilters key -> SomeFilters attribute
SOME_FILTER_KEYS: Dict[str, str] = {
    "LPs": "lps",
    "EPs": "eps",
    "Singles": "singles",
    "Soundtracks": "soundtracks",
    "Compilations": "compilations",
    "Concerts": "concerts",
    "ComposerWorks": "composer_works",
    "Miscellanea": "miscellanea",
    "Reissues": "reissues",
    "Invisible": "invisible",
}

DEFAULT_SORT_PILLS = (SortPill("artist", "asc"),)


def parse_some_filters(data: Optional[Mapping[str, Any]]) -> SomeFilters:
    if not isinstance(data, Mapping):
        return SomeFilters()
    values = {attr: bool(data[key]) for key, attr in SOME_FILTER_KEYS.items() if key in data}
    return replace(SomeFilters(), **values)


def parse_sort_pills(data: Any) -> tuple:
    """Up to three pills; malformed entries skipped, bad directions become asc."""
    if data is None:
        return DEFAULT_SORT_PILLS
    pills: List[SortPill] = []
    for item in data if isinstance(data, list) else []:
        if not isinstance(item, Mapping) or not item.get("field"):
            continue
        direction = item.get("direction")
        pills.append(SortPill(str(item["field"]), "desc" if direction == "desc" else "asc"))
        if len(pills) == MAX_SORT_PILLS:
            break
    return tuple(pills)


def parse_sort_arg(text: str) -> SortPill:
    """'releaseDate:desc' -> SortPill('releaseDate', 'desc')."""
    field, _, direction = text.partition(":")
    direction = direction.strip().lower()
    return SortPill(field.strip(), "desc" if direction == "desc" else "asc")


def view_config_from_state(state: Optional[Mapping[str, Any]]) -> ViewConfig:
    state = state if isinstance(state, Mapping) else {}
    distinguish = state.get("distinguishFilters")
    return ViewConfig(
        filter=FilterConfig(
            filter_mode=str(state.get("filterMode") or "all"),
            some_filters=parse_some_filters(state.get("someFilters")),
        ),
        sort_pills=parse_sort_pills(state.get("sortPills")),
        group=GroupConfig(
            enabled=bool(state.get("separatorsEnabled", False)),
            field=str(state.get("separatorField") or "artist"),
        ),
        distinguish=DistinguishConfig.from_flags(distinguish if isinstance(distinguish, Mapping) else {}),
        honour_the=bool(state.get("honourThe", False)),
    )


def view_state_from_config(config: ViewConfig) -> Dict[str, Any]:
    flags = config.filter.some_filters
    return {
        "filterMode": config.filter.filter_mode,
        "someFilters": {key: getattr(flags, attr) for key, attr in SOME_FILTER_KEYS.items()},
        "sortPills": [{"field": p.field, "direction": p.direction} for p in config.active_pills],
        "separatorsEnabled": config.group.enabled,
        "separatorField": config.group.field,
        "distinguishFilters": {c: c in config.distinguish.active for c in CHARACTERISTICS},
        "honourThe": config.honour_the,
    }


def load_view_state(path: Path, log_callback: Optional[Callable[[str], None]] = None) -> Dict[str, Any]:
    """Load a saved view state; a missing or malformed file loads as {}."""
    path = Path(path)
    if not path.exists():
        return {}
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        if log_callback:
            log_callback(f"Ignoring unreadable view state {path}: {e}")
        return {}
    return data if isinstance(data, dict) else {}


def save_view_state(path: Path, state: Mapping[str, Any]) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(dict(state), f, indent=2)


def get_library_path(arg_path: Optional[str]) -> Path:
    """Library folder from args or environment."""
    value = arg_path or os.getenv("RECORDGRID_LIBRARY")
    if not value:
        sys.exit(
            "Error: No library given. Pass --library or set RECORDGRID_LIBRARY in the environment (optionally via .env)."
        )
    return Path(value).expanduser()
