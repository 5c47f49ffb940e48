from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple, Union


# Distinguish priority order; the first carried characteristic wins.
CHARACTERISTICS: Tuple[str, ...] = (
    "Soundtrack",
    "Compilation",
    "Concert",
    "ComposerWork",
    "Miscellanea",
    "Reissue",
)

CHARACTERISTIC_LABELS: Dict[str, str] = {
    "Soundtrack": "Soundtracks",
    "Compilation": "Compilations",
    "Concert": "Concerts",
    "ComposerWork": "Composer Works",
    "Miscellanea": "Miscellanea",
    "Reissue": "Reissues",
}

FORMATS: Tuple[str, ...] = ("LP", "EP", "Single")
DEFAULT_FORMAT = "LP"

SORT_FIELDS: Tuple[str, ...] = ("artist", "title", "releaseDate", "dateAdded", "listenTime")
GROUP_FIELDS: Tuple[str, ...] = ("artist", "releaseDate", "decade", "genre")
FILTER_MODES: Tuple[str, ...] = (
    "all", "some", "lps", "eps", "singles", "soundtracks", "compilations", "invisible",
)
MAX_SORT_PILLS = 3

# Legacy group-map prefix used by older renderers for distinguished groups.
DISTINGUISHED_KEY_PREFIX = "zzz_"

# record id -> {"total_seconds": int, "listen_count": int}
ListenStats = Mapping[object, Mapping[str, object]]


def _as_tuple(value) -> tuple:
    if isinstance(value, tuple):
        return value
    if isinstance(value, (str, SortPill)):
        return (value,)
    return tuple(value or ())


@dataclass(frozen=True)
class Record:
    id: object
    title: str = ""
    artist: str = ""
    sort_title: Optional[str] = None
    sort_name: Optional[str] = None
    sort_artist: Optional[str] = None
    format: Optional[str] = None
    characteristics: Tuple[str, ...] = ()
    release_date: Optional[str] = None
    created_at: Optional[str] = None
    show_on_grid: bool = True
    genre: Optional[str] = None

    def __post_init__(self) -> None:
        # Records are hashed by ProjectionCache; accept any iterable here
        object.__setattr__(self, "characteristics", _as_tuple(self.characteristics))

    @property
    def effective_format(self) -> str:
        return self.format or DEFAULT_FORMAT


@dataclass(frozen=True)
class SortPill:
    field: str
    direction: str = "asc"

    @property
    def descending(self) -> bool:
        return self.direction == "desc"


@dataclass(frozen=True)
class SomeFilters:
    """Independent toggles used by the ``some`` filter mode.

    ``invisible`` also gates hidden records for every other mode.
    """
    lps: bool = True
    eps: bool = True
    singles: bool = True
    soundtracks: bool = True
    compilations: bool = True
    concerts: bool = False
    composer_works: bool = False
    miscellanea: bool = False
    reissues: bool = False
    invisible: bool = False


@dataclass(frozen=True)
class FilterConfig:
    filter_mode: str = "all"
    some_filters: SomeFilters = field(default_factory=SomeFilters)


@dataclass(frozen=True)
class GroupConfig:
    enabled: bool = False
    field: str = "artist"


@dataclass(frozen=True)
class DistinguishConfig:
    enabled: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "enabled", _as_tuple(self.enabled))

    @property
    def active(self) -> Tuple[str, ...]:
        """Enabled characteristics in priority order, unknown names dropped."""
        return tuple(c for c in CHARACTERISTICS if c in self.enabled)

    @classmethod
    def from_flags(cls, flags: Mapping[str, bool]) -> "DistinguishConfig":
        return cls(tuple(c for c in CHARACTERISTICS if flags.get(c)))


@dataclass(frozen=True)
class ViewConfig:
    filter: FilterConfig = field(default_factory=FilterConfig)
    sort_pills: Tuple[SortPill, ...] = (SortPill("artist", "asc"),)
    group: GroupConfig = field(default_factory=GroupConfig)
    distinguish: DistinguishConfig = field(default_factory=DistinguishConfig)
    honour_the: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "sort_pills", _as_tuple(self.sort_pills))

    @property
    def active_pills(self) -> Tuple[SortPill, ...]:
        return tuple(self.sort_pills[:MAX_SORT_PILLS])

    @property
    def group_direction(self) -> str:
        pills = self.active_pills
        return pills[0].direction if pills else "asc"


# ============================================================================
# Projection output
# ============================================================================

@dataclass(frozen=True)
class RegularGroup:
    key: str
    records: Tuple[Record, ...]

    @property
    def label(self) -> str:
        return self.key

    @property
    def show_header(self) -> bool:
        # The empty-key group holds the undistinguished records when no
        # separator field is active; it renders without a header.
        return self.key != ""

    @property
    def legacy_key(self) -> str:
        return self.key


@dataclass(frozen=True)
class DistinguishedGroup:
    characteristic: str
    records: Tuple[Record, ...]

    @property
    def label(self) -> str:
        return CHARACTERISTIC_LABELS.get(self.characteristic, self.characteristic)

    @property
    def show_header(self) -> bool:
        return True

    @property
    def legacy_key(self) -> str:
        return DISTINGUISHED_KEY_PREFIX + self.label


Group = Union[RegularGroup, DistinguishedGroup]


@dataclass(frozen=True)
class Projection:
    records: Tuple[Record, ...]
    groups: Optional[Tuple[Group, ...]] = None

    @property
    def is_grouped(self) -> bool:
        return self.groups is not None

    def record_ids(self) -> List[object]:
        return [r.id for r in self.records]

    def triples(self) -> List[Tuple[str, str, Tuple[Record, ...]]]:
        """(group key, display label, records) in render order."""
        return [(g.legacy_key, g.label, g.records) for g in (self.groups or ())]

    def legacy_group_map(self) -> Optional[Dict[str, List[Record]]]:
        """Group map keyed the way persisted renderers expect ("zzz_" prefix)."""
        if self.groups is None:
            return None
        return {g.legacy_key: list(g.records) for g in self.groups}
