import math

import pytest

from gpxtools.stats import haversine_km, stats_from_points
from gpxtools.trackpoints import TrackPoint


def test_haversine_zero_and_symmetric():
    assert haversine_km(45.0, 6.0, 45.0, 6.0) == 0.0
    assert haversine_km(45.0, 6.0, 46.0, 7.5) == pytest.approx(haversine_km(46.0, 7.5, 45.0, 6.0))


def test_haversine_equator_arc_length():
    assert haversine_km(0.0, 0.0, 0.0, 1.0) == pytest.approx(math.radians(1.0) * 6371.0)


def test_empty_points():
    stats = stats_from_points([])
    assert stats["total_km"] == 0.0
    assert stats["point_count"] == 0
    assert stats["elevation"] is None
    assert stats["hr"] is None
    assert stats["series"]["elevation"] == {"km": [], "value": []}


def _moving_track(n=4, step_s=10.0):
    return [
        TrackPoint(lat=0.0, lon=i * 0.001, ele=100.0 + (i % 2) * 20.0, time=1000.0 + i * step_s, hr=120.0 + i)
        for i in range(n)
    ]


def test_moving_track_totals():
    pts = _moving_track()
    stats = stats_from_points(pts)
    assert stats["point_count"] == 4
    assert stats["total_km"] == pytest.approx(haversine_km(0.0, 0.0, 0.0, 0.003))
    assert stats["total_time_s"] == pytest.approx(30.0)
    assert stats["moving_time_s"] == pytest.approx(30.0)
    assert stats["idle_time_s"] == 0.0
    assert stats["avg_moving_speed_kmh"] == pytest.approx(stats["avg_speed_kmh"])


def test_elevation_summary_invariants():
    stats = stats_from_points(_moving_track())
    elev = stats["elevation"]
    assert elev["min"] == 100.0
    assert elev["max"] == 120.0
    assert elev["samples"] == 4
    assert elev["gain"] - elev["loss"] == pytest.approx(120.0 - 100.0)


def test_hr_summary_and_series():
    stats = stats_from_points(_moving_track())
    assert stats["hr"]["min"] == 120.0
    assert stats["hr"]["max"] == 123.0
    km = stats["series"]["hr"]["km"]
    assert km == sorted(km)
    assert stats["series"]["hr"]["value"] == [120.0, 121.0, 122.0, 123.0]
    assert stats["power"] is None


def test_long_gap_is_not_moving():
    pts = [
        TrackPoint(lat=0.0, lon=0.0, time=0.0),
        TrackPoint(lat=0.0, lon=0.001, time=10.0),
        TrackPoint(lat=0.0, lon=0.002, time=1010.0),
    ]
    stats = stats_from_points(pts)
    assert stats["moving_time_s"] == pytest.approx(10.0)
    assert stats["total_time_s"] == pytest.approx(1010.0)
    assert stats["idle_time_s"] == pytest.approx(stats["total_time_s"] - stats["moving_time_s"])


def test_stationary_points_have_no_moving_time():
    pts = [TrackPoint(lat=1.0, lon=1.0, time=float(t)) for t in (0, 10, 20)]
    stats = stats_from_points(pts)
    assert stats["moving_time_s"] == 0.0
    assert stats["avg_moving_speed_kmh"] == 0.0
    assert stats["avg_speed_kmh"] == 0.0


def test_points_without_time():
    pts = [TrackPoint(lat=0.0, lon=0.0), TrackPoint(lat=0.0, lon=0.01)]
    stats = stats_from_points(pts)
    assert stats["total_time_s"] == 0.0
    assert stats["avg_speed_kmh"] == 0.0
    assert stats["total_km"] > 0.0