"""Distance, timing and sensor statistics for a list of track points."""

from __future__ import annotations

import math
from typing import Any, Dict, List, Optional, Sequence, Tuple

from gpxtools.trackpoints import TrackPoint

EARTH_RADIUS_KM = 6371.0
MOVING_SPEED_KMH = 1.5
# Intervals longer than this count as stops whatever the implied speed.
MAX_GAP_S = 300.0

Series = List[Tuple[float, float]]


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometres between two coordinates."""
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)
    a = (
        math.sin(dlat / 2.0) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(dlon / 2.0) ** 2
    )
    return 2.0 * EARTH_RADIUS_KM * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))


def _summary(series: Series) -> Optional[Dict[str, Any]]:
    if not series:
        return None
    values = [v for _, v in series]
    finite = [v for v in values if not math.isnan(v)]
    return {
        "avg": sum(values) / len(values),
        "min": min(finite, default=math.inf),
        "max": max(finite, default=-math.inf),
        "samples": len(values),
    }


def _series(series: Series) -> Dict[str, List[float]]:
    return {"km": [k for k, _ in series], "value": [v for _, v in series]}


def stats_from_points(points: Sequence[TrackPoint]) -> Dict[str, Any]:
    """Compute distance, time, elevation and sensor summaries for a track."""
    kms: List[float] = []
    total_km = 0.0
    previous: Optional[TrackPoint] = None
    for point in points:
        if previous is not None:
            total_km += haversine_km(previous.lat, previous.lon, point.lat, point.lon)
        kms.append(total_km)
        previous = point

    first_time = next((p.time for p in points if p.time is not None), None)
    last_time = next((p.time for p in reversed(points) if p.time is not None), None)
    if first_time is not None and last_time is not None and last_time > first_time:
        total_time_s = last_time - first_time
    else:
        total_time_s = 0.0

    moving_time_s = 0.0
    moving_distance_km = 0.0
    for a, b in zip(points, points[1:]):
        if a.time is None or b.time is None:
            continue
        dt = b.time - a.time
        if 0.0 < dt < MAX_GAP_S:
            dkm = haversine_km(a.lat, a.lon, b.lat, b.lon)
            if dkm / (dt / 3600.0) >= MOVING_SPEED_KMH:
                moving_time_s += dt
                moving_distance_km += dkm

    avg_speed_kmh = total_km / (total_time_s / 3600.0) if total_time_s > 0.0 else 0.0
    avg_moving_speed_kmh = (
        moving_distance_km / (moving_time_s / 3600.0) if moving_time_s > 0.0 else 0.0
    )

    channels: Dict[str, Series] = {name: [] for name in ("ele", "hr", "cad", "power", "temp")}
    for km, point in zip(kms, points):
        for name, series in channels.items():
            value = getattr(point, name)
            if value is not None:
                series.append((km, value))

    ele = channels["ele"]
    ele_gain = 0.0
    ele_loss = 0.0
    for (_, v0), (_, v1) in zip(ele, ele[1:]):
        delta = v1 - v0
        if delta > 0.0:
            ele_gain += delta
        else:
            ele_loss -= delta

    elevation = _summary(ele)
    if elevation is not None:
        elevation["gain"] = ele_gain
        elevation["loss"] = ele_loss

    return {
        "total_km": total_km,
        "point_count": len(points),
        "total_time_s": total_time_s,
        "moving_time_s": moving_time_s,
        "idle_time_s": max(total_time_s - moving_time_s, 0.0),
        "avg_speed_kmh": avg_speed_kmh,
        "avg_moving_speed_kmh": avg_moving_speed_kmh,
        "elevation": elevation,
        "hr": _summary(channels["hr"]),
        "cadence": _summary(channels["cad"]),
        "power": _summary(channels["power"]),
        "temperature": _summary(channels["temp"]),
        "series": {
            "elevation": _series(ele),
            "hr": _series(channels["hr"]),
            "cadence": _series(channels["cad"]),
            "power": _series(channels["power"]),
            "temperature": _series(channels["temp"]),
        },
    }