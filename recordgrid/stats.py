"""Listening-stats lookup shared between a background fetch and the grid.

Each new record list starts a new generation. A fetch result is installed
only if its generation is still current, so a slow response for a list that
is no longer displayed cannot overwrite the stats of the current one.
"""

from __future__ import annotations

import threading
from typing import Callable, Dict, Iterable, Optional, Sequence

from recordgrid.models import SortPill

Fetcher = Callable[[list], Dict[object, Dict[str, int]]]


def needs_listen_stats(pills: Sequence[SortPill]) -> bool:
    return any(p.field == "listenTime" for p in pills)


class ListenStatsStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._generation = 0
        self._stats: Dict[object, Dict[str, int]] = {}

    @property
    def stats(self) -> Dict[object, Dict[str, int]]:
        with self._lock:
            return dict(self._stats)

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def begin(self) -> int:
        """Start a generation for a new record list and clear old stats."""
        with self._lock:
            self._generation += 1
            self._stats = {}
            return self._generation

    def apply(self, token: int, stats: Optional[Dict[object, Dict[str, int]]]) -> bool:
        with self._lock:
            if token != self._generation:
                return False
            self._stats = dict(stats or {})
            return True

    def fetch_async(
        self,
        fetcher: Fetcher,
        record_ids: Iterable[object],
        on_done: Optional[Callable[[bool], None]] = None,
        log_callback: Optional[Callable[[str], None]] = None,
    ) -> threading.Thread:
        """Run ``fetcher(ids)`` on a daemon thread and apply its result.

        ``on_done(applied)`` receives False when the result arrived for a
        superseded generation.
        """
        ids = list(record_ids)
        token = self.begin()

        def worker() -> None:
            try:
                result = fetcher(ids)
            except Exception as e:
                if log_callback:
                    log_callback(f"Listening stats fetch failed: {e}")
                result = {}
            applied = self.apply(token, result)
            if not applied and log_callback:
                log_callback("Discarded listening stats for a superseded record list")
            if on_done:
                on_done(applied)

        t = threading.Thread(target=worker, name="listen-stats", daemon=True)
        t.start()
        return t
