"""
Record projection pipeline.

``project`` turns a record collection plus view configuration into what the
grid renders: the ordered flat list, and the ordered groups when grouping or
distinguishing is active. Stages run in a fixed order:

1. visibility and filter mode
2. multi-key sort
3. separator grouping (optional)
4. distinguish partitioning (optional)

The function is pure and deterministic, so results can be memoized with
``ProjectionCache``.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Hashable, Iterable, Optional, Tuple

from recordgrid.grouping import (
    assemble_groups,
    group_records,
    partition_distinguished,
    without_distinguished,
)
from recordgrid.models import ListenStats, Projection, Record, ViewConfig
from recordgrid.sorting import filter_records, listen_seconds, sort_records


def project(
    records: Iterable[Record],
    config: Optional[ViewConfig] = None,
    listen_stats: Optional[ListenStats] = None,
) -> Projection:
    config = config or ViewConfig()
    filtered = filter_records(records, config.filter)
    ordered = sort_records(
        filtered,
        config.active_pills,
        honour_the=config.honour_the,
        listen_stats=listen_stats,
    )

    separated = None
    if config.group.enabled:
        separated = group_records(ordered, config.group.field, config.honour_the)

    active = config.distinguish.active
    direction = config.group_direction
    if not active:
        if separated is None:
            return Projection(tuple(ordered))
        return Projection(tuple(ordered), assemble_groups(separated, direction=direction))

    regular, buckets = partition_distinguished(ordered, active)
    if separated is not None:
        regular_groups = without_distinguished(separated, active)
    else:
        # Header-less group for everything that was not pulled out
        regular_groups = {"": regular} if regular else {}

    flat = list(regular)
    for characteristic in active:
        flat.extend(buckets[characteristic])
    return Projection(tuple(flat), assemble_groups(regular_groups, buckets, direction))


def uses_listen_time(config: ViewConfig) -> bool:
    return any(p.field == "listenTime" for p in config.active_pills)


class ProjectionCache:
    """Memoizes ``project`` keyed by (records, config, relevant stats).

    Stats only take part in the key when a pill sorts by listen time, so a
    stats refresh does not invalidate unrelated projections. The least recently
    used entry is evicted once ``max_entries`` is reached.
    """

    def __init__(self, max_entries: int = 16):
        self.max_entries = max(1, max_entries)
        self._entries: "OrderedDict[Hashable, Projection]" = OrderedDict()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def fingerprint(
        records: Tuple[Record, ...],
        config: ViewConfig,
        listen_stats: Optional[ListenStats],
    ) -> Hashable:
        stats_key: Tuple = ()
        if uses_listen_time(config):
            stats_key = tuple((r.id, listen_seconds(r, listen_stats)) for r in records)
        return (records, config, stats_key)

    def get(
        self,
        records: Iterable[Record],
        config: Optional[ViewConfig] = None,
        listen_stats: Optional[ListenStats] = None,
    ) -> Projection:
        config = config or ViewConfig()
        records = tuple(records)
        key = self.fingerprint(records, config, listen_stats)
        cached = self._entries.get(key)
        if cached is not None:
            self._entries.move_to_end(key)
            self.hits += 1
            return cached
        self.misses += 1
        result = project(records, config, listen_stats)
        self._entries[key] = result
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
        return result

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
