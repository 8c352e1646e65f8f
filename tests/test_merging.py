import pytest

from gpxtools.fit import FitError
from gpxtools.merge import MergeError
from gpxtools.merging import MergeSessionStore, merge_files


def _gpx(lat, start, end):
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<gpx version="1.1" creator="device">\n'
        "<trk><trkseg>\n"
        f'<trkpt lat="{lat}" lon="2.0"><ele>100</ele><time>{start}</time></trkpt>\n'
        f'<trkpt lat="{lat + 0.01}" lon="2.0"><ele>110</ele><time>{end}</time></trkpt>\n'
        "</trkseg></trk></gpx>\n"
    ).encode("utf-8")


EARLY = _gpx(45.0, "2024-01-01T08:00:00Z", "2024-01-01T08:02:00Z")
LATE = _gpx(46.0, "2024-01-01T10:00:00Z", "2024-01-01T10:02:00Z")


def test_merge_keeps_all_points():
    merged, stats, per_file = merge_files([("a.gpx", EARLY), ("b.gpx", LATE)])
    assert merged.count(b"<trkpt") == 4
    assert stats["point_count"] == 4
    assert [entry["stats"]["point_count"] for entry in per_file] == [2, 2]


def test_merge_orders_by_first_time():
    merged, _, per_file = merge_files([("late.gpx", LATE), ("early.gpx", EARLY)])
    assert merged.index(b'lat="45.0"') < merged.index(b'lat="46.0"')
    assert [entry["name"] for entry in per_file] == ["late.gpx", "early.gpx"]


def test_merge_total_distance_covers_parts():
    _, stats, per_file = merge_files([("a.gpx", EARLY), ("b.gpx", LATE)])
    parts = sum(entry["stats"]["total_km"] for entry in per_file)
    assert stats["total_km"] >= parts


def test_merge_unnamed_label():
    _, _, per_file = merge_files([(None, EARLY), (None, LATE)])
    assert [entry["name"] for entry in per_file] == ["(unnamed)", "(unnamed)"]


def test_merge_rewrites_creator():
    merged, _, _ = merge_files([("a.gpx", EARLY), ("b.gpx", LATE)], creator="merger")
    assert b'creator="merger"' in merged
    assert b'creator="device"' not in merged


def test_merge_without_files_fails():
    with pytest.raises(MergeError):
        merge_files([])


def test_merge_bad_fit_file_fails():
    with pytest.raises(FitError):
        merge_files([("ride.fit", b"not a fit file at all"), ("b.gpx", LATE)])


def test_store_counts_files_in_session():
    store = MergeSessionStore()
    sid, count = store.add_file(None, "a.gpx", EARLY)
    assert count == 1
    sid2, count2 = store.add_file(sid, "b.gpx", LATE)
    assert (sid2, count2) == (sid, 2)


def test_store_generates_distinct_ids():
    store = MergeSessionStore()
    first, _ = store.add_file(None, "a.gpx", EARLY)
    second, _ = store.add_file(None, "b.gpx", LATE)
    assert first != second
    assert len(store) == 2


def test_store_take_returns_and_removes():
    store = MergeSessionStore()
    sid, _ = store.add_file("s1", "a.gpx", EARLY)
    store.add_file(sid, None, LATE)
    assert store.take(sid) == [("a.gpx", EARLY), (None, LATE)]
    with pytest.raises(KeyError):
        store.take(sid)


def test_store_unknown_session():
    with pytest.raises(KeyError):
        MergeSessionStore().take("missing")


def test_store_limits_files():
    store = MergeSessionStore(max_files=2)
    store.add_file("s", "a.gpx", EARLY)
    store.add_file("s", "b.gpx", LATE)
    with pytest.raises(ValueError, match="Maximum 2 files per merge session."):
        store.add_file("s", "c.gpx", LATE)


def test_store_purges_expired_sessions():
    store = MergeSessionStore(ttl_seconds=0)
    store.add_file("s", "a.gpx", EARLY)
    _, count = store.add_file("s", "b.gpx", LATE)
    assert count == 1