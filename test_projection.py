# End-to-end assertions for the projection pipeline and its cache.

import random

from recordgrid.models import (
    DistinguishConfig,
    DistinguishedGroup,
    FilterConfig,
    GroupConfig,
    Record,
    RegularGroup,
    SomeFilters,
    SortPill,
    ViewConfig,
)
from recordgrid.projection import ProjectionCache, project


def assert_eq(a, b, msg: str = ""):
    if a != b:
        raise AssertionError(msg or f"Expected {b!r}, got {a!r}")


def ids(records):
    return [r.id for r in records]


BEATLES = Record("b", title="Sgt. Pepper", artist="The Beatles", release_date="1967-06-01")
ABBA = Record("a", title="ABBA", artist="ABBA", release_date="1975")
MORRICONE = Record(
    "o", title="Once Upon a Time in the West", artist="Ennio Morricone",
    release_date="1968", characteristics=("Soundtrack",),
)
CAN = Record("r", title="Tago Mago", artist="Can", release_date="1971", characteristics=("Reissue",))

SHELF = [BEATLES, ABBA, MORRICONE, CAN]


def by_decade(direction="asc", distinguish=()):
    return ViewConfig(
        sort_pills=(SortPill("artist", direction),),
        group=GroupConfig(enabled=True, field="decade"),
        distinguish=DistinguishConfig(tuple(distinguish)),
    )


def test_default_view_sorts_by_artist():
    result = project([BEATLES, ABBA])
    assert_eq(result.record_ids(), ["a", "b"])
    assert_eq(result.groups, None)
    assert_eq(result.is_grouped, False)


def test_decade_grouping():
    result = project([BEATLES, ABBA], by_decade())
    assert_eq([g.key for g in result.groups], ["1960s", "1970s"])
    assert_eq([ids(g.records) for g in result.groups], [["b"], ["a"]])
    assert_eq(result.record_ids(), ["a", "b"])


def test_distinguish_without_grouping():
    config = ViewConfig(distinguish=DistinguishConfig(("Soundtrack",)))
    result = project([BEATLES, ABBA, MORRICONE], config)
    assert_eq(result.record_ids(), ["a", "b", "o"])
    legacy = result.legacy_group_map()
    assert_eq(list(legacy), ["", "zzz_Soundtracks"])
    assert_eq(ids(legacy[""]), ["a", "b"])
    assert_eq(ids(legacy["zzz_Soundtracks"]), ["o"])
    assert_eq(result.groups[0].show_header, False)
    assert_eq(result.groups[1].show_header, True)


def test_no_header_less_group_when_everything_is_distinguished():
    config = ViewConfig(distinguish=DistinguishConfig(("Soundtrack",)))
    result = project([MORRICONE], config)
    assert_eq([type(g) for g in result.groups], [DistinguishedGroup])


def test_grouping_with_distinguish():
    result = project(SHELF, by_decade(distinguish=("Soundtrack", "Reissue")))
    assert_eq(result.record_ids(), ["a", "b", "o", "r"])
    assert_eq(
        [(g.label, ids(g.records)) for g in result.groups],
        [("1960s", ["b"]), ("1970s", ["a"]), ("Soundtracks", ["o"]), ("Reissues", ["r"])],
    )


def test_descending_sort_keeps_distinguished_last():
    result = project(SHELF, by_decade("desc", ("Reissue", "Soundtrack")))
    assert_eq(result.record_ids(), ["b", "a", "o", "r"])
    assert_eq([g.label for g in result.groups], ["1970s", "1960s", "Soundtracks", "Reissues"])
    assert_eq([type(g) for g in result.groups[:2]], [RegularGroup, RegularGroup])


def test_disabled_grouping_ignores_field():
    config = ViewConfig(group=GroupConfig(enabled=False, field="decade"))
    assert_eq(project(SHELF, config).groups, None)


def test_some_mode_filters_before_distinguish():
    # Reissues are off by default in the some-mode flags, so there is
    # nothing left for the Reissue bucket
    config = ViewConfig(
        filter=FilterConfig("some"),
        distinguish=DistinguishConfig(("Reissue",)),
    )
    result = project(SHELF, config)
    assert_eq(sorted(result.record_ids()), ["a", "b", "o"])
    assert_eq([g.legacy_key for g in result.groups], [""])

    with_reissues = ViewConfig(
        filter=FilterConfig("some", SomeFilters(reissues=True)),
        distinguish=DistinguishConfig(("Reissue",)),
    )
    assert_eq(project(SHELF, with_reissues).legacy_group_map()["zzz_Reissues"], [CAN])


def test_listen_time_sort():
    config = ViewConfig(sort_pills=(SortPill("listenTime", "desc"), SortPill("artist", "asc")))
    stats = {"r": {"total_seconds": 3600}, "o": {"total_seconds": 60}}
    assert_eq(project(SHELF, config, stats).record_ids(), ["r", "o", "a", "b"])
    assert_eq(project(SHELF, config).record_ids(), ["a", "b", "r", "o"])


def test_triples_follow_render_order():
    result = project(SHELF, by_decade(distinguish=("Soundtrack",)))
    triples = result.triples()
    assert_eq([t[0] for t in triples], ["1960s", "1970s", "zzz_Soundtracks"])
    assert_eq([t[1] for t in triples], ["1960s", "1970s", "Soundtracks"])
    assert_eq(ids(triples[1][2]), ["a", "r"])
    assert_eq(project(SHELF).triples(), [])


def _random_shelf(rng, n=60):
    artists = ["The Beatles", "ABBA", "Can", "The Cure", "Neu!", "", "Air"]
    dates = ["1967", "1975-01-01", "25-12-1971", None, "2001", "1980", "abcd"]
    formats = [None, "LP", "EP", "Single"]
    rows = []
    for i in range(n):
        chars = tuple(c for c in ("Soundtrack", "Reissue", "Concert") if rng.random() < 0.2)
        rows.append(Record(
            id=f"r{i}",
            title=f"Title {rng.randint(1, 20)}",
            artist=rng.choice(artists),
            release_date=rng.choice(dates),
            format=rng.choice(formats),
            characteristics=chars,
            show_on_grid=rng.random() > 0.1,
        ))
    return rows


def test_groups_cover_flat_list_exactly():
    rng = random.Random(1971)
    rows = _random_shelf(rng)
    for field in ("artist", "releaseDate", "decade", "genre"):
        for direction in ("asc", "desc"):
            config = ViewConfig(
                sort_pills=(SortPill("artist", direction), SortPill("releaseDate", "desc")),
                group=GroupConfig(enabled=True, field=field),
                distinguish=DistinguishConfig(("Reissue", "Soundtrack")),
            )
            result = project(rows, config)
            grouped_ids = [r.id for g in result.groups for r in g.records]
            assert_eq(sorted(grouped_ids), sorted(result.record_ids()))
            assert_eq(len(set(grouped_ids)), len(grouped_ids))
            assert all(g.records for g in result.groups)


def test_flat_list_is_a_permutation_of_visible_records():
    rng = random.Random(42)
    rows = _random_shelf(rng)
    visible = sorted(r.id for r in rows if r.show_on_grid)
    for distinguish in ((), ("Soundtrack",), ("Concert", "Reissue")):
        config = ViewConfig(
            sort_pills=(SortPill("title", "desc"),),
            distinguish=DistinguishConfig(distinguish),
        )
        assert_eq(sorted(project(rows, config).record_ids()), visible)


def test_projection_is_deterministic():
    rows = _random_shelf(random.Random(7))
    config = by_decade(distinguish=("Soundtrack",))
    assert_eq(project(rows, config), project(list(rows), config))


def test_cache_hits_and_eviction():
    cache = ProjectionCache(max_entries=2)
    first = cache.get(SHELF)
    assert cache.get(list(SHELF)) is first
    assert_eq((cache.hits, cache.misses), (1, 1))

    cache.get(SHELF, by_decade())
    cache.get(SHELF, by_decade("desc"))
    assert_eq(len(cache), 2)
    # The default view was least recently used and has been evicted
    cache.get(SHELF)
    assert_eq(cache.misses, 4)

    cache.clear()
    assert_eq(len(cache), 0)


def test_cache_only_keys_stats_for_listen_time():
    cache = ProjectionCache()
    cache.get(SHELF, None, {"a": {"total_seconds": 1}})
    cache.get(SHELF, None, {"a": {"total_seconds": 99}})
    assert_eq(cache.hits, 1)

    listen = ViewConfig(sort_pills=(SortPill("listenTime", "desc"),))
    low = cache.get(SHELF, listen, {"a": {"total_seconds": 1}, "b": {"total_seconds": 5}})
    high = cache.get(SHELF, listen, {"a": {"total_seconds": 99}, "b": {"total_seconds": 5}})
    assert_eq(low.record_ids()[0], "b")
    assert_eq(high.record_ids()[0], "a")
    assert_eq(cache.misses, 3)


def test_cache_accepts_list_fields():
    ost = Record("s", artist="Ennio Morricone", characteristics=["Soundtrack"])
    plain = Record("p", artist="ABBA", characteristics="Reissue")
    assert_eq(ost.characteristics, ("Soundtrack",))
    assert_eq(plain.characteristics, ("Reissue",))

    config = ViewConfig(
        sort_pills=[SortPill("artist", "desc")],
        distinguish=DistinguishConfig(["Soundtrack"]),
    )
    assert_eq(config.sort_pills, (SortPill("artist", "desc"),))
    cache = ProjectionCache()
    result = cache.get([ost, plain], config)
    assert_eq(result, project([ost, plain], config))
    assert_eq(result.legacy_group_map(), {"": [plain], "zzz_Soundtracks": [ost]})
    assert cache.get([ost, plain], ViewConfig(sort_pills=[SortPill("artist", "desc")],
                                              distinguish=DistinguishConfig(["Soundtrack"]))) is result


def main():
    for name, fn in sorted(globals().items()):
        if name.startswith("test_") and callable(fn):
            fn()
    print("All projection assertions passed.")


if __name__ == "__main__":
    main()
