"""Douglas-Peucker simplification of track points to a target reduction."""

from __future__ import annotations

import math
from dataclasses import replace
from typing import Iterable, List, Optional, Sequence, Tuple

from gpxtools.trackpoints import TrackPoint

Coord = Tuple[float, float]

_SEARCH_STEPS = 50
_SENSOR_FIELDS = {"hr": "hr", "cad": "cad", "power": "power", "atemp": "temp"}


def perp_dist(p: Coord, a: Coord, b: Coord) -> float:
    """Distance from ``p`` to the segment ``a``-``b`` (planar, in coordinate units)."""
    dx = b[0] - a[0]
    dy = b[1] - a[1]
    len2 = dx * dx + dy * dy
    if len2 == 0.0:
        return math.sqrt((p[0] - a[0]) ** 2 + (p[1] - a[1]) ** 2)
    t = ((p[0] - a[0]) * dx + (p[1] - a[1]) * dy) / len2
    t = min(max(t, 0.0), 1.0)
    px = a[0] + t * dx
    py = a[1] + t * dy
    return math.sqrt((p[0] - px) ** 2 + (p[1] - py) ** 2)


def _farthest(coords: Sequence[Coord], start: int, end: int) -> Optional[Tuple[int, float]]:
    a, b = coords[start], coords[end]
    candidates = ((i, perp_dist(coords[i], a, b)) for i in range(start + 1, end))
    return max(candidates, key=lambda item: item[1], default=None)


def _kept_inner(coords: Sequence[Coord], tolerance: float) -> List[int]:
    """Indices, other than the two ends, that the simplification keeps."""
    kept: List[int] = []
    stack = [(0, len(coords) - 1)]
    while stack:
        start, end = stack.pop()
        found = _farthest(coords, start, end)
        if found is None:
            continue
        index, dist = found
        if dist > tolerance:
            kept.append(index)
            stack.append((start, index))
            stack.append((index, end))
    return kept


def douglas_peucker(coords: Sequence[Coord], tolerance: float) -> List[bool]:
    """Return a keep-flag for every coordinate."""
    n = len(coords)
    if n <= 2:
        return [True] * n
    keep = [False] * n
    keep[0] = keep[-1] = True
    for index in _kept_inner(coords, tolerance):
        keep[index] = True
    return keep


def dp_count(coords: Sequence[Coord], tolerance: float) -> int:
    """Number of coordinates that ``douglas_peucker`` would keep."""
    if len(coords) <= 2:
        return len(coords)
    return 2 + len(_kept_inner(coords, tolerance))


def find_tolerance_for_pct(coords: Sequence[Coord], target_pct: int) -> float:
    """Binary-search the tolerance that removes about ``target_pct`` percent of points."""
    if target_pct == 0 or len(coords) <= 2:
        return 0.0
    total = len(coords)
    target_keep = int(max(math.floor(total * (1.0 - target_pct / 100.0) + 0.5), 2.0))
    lo, hi = 0.0, 1.0
    for _ in range(_SEARCH_STEPS):
        mid = (lo + hi) / 2.0
        kept = dp_count(coords, mid)
        if kept == target_keep:
            return mid
        if kept < target_keep:
            hi = mid
        else:
            lo = mid
        if (hi - lo) / (hi + 1e-15) < 1e-6:
            break
    return lo


def _stripped(point: TrackPoint, strip: set) -> TrackPoint:
    changes = {}
    if "time" in strip:
        changes["time"] = None
    if "ele" in strip:
        changes["ele"] = None
    if "extensions" in strip:
        changes.update(hr=None, cad=None, power=None, temp=None)
    else:
        for tag, attr in _SENSOR_FIELDS.items():
            if tag in strip:
                changes[attr] = None
    return replace(point, **changes)


def simplify_trackpoints(
    points: Sequence[TrackPoint], target_pct: int, strip: Iterable[str] = ()
) -> Tuple[List[TrackPoint], int, int]:
    """Simplify a track and drop the requested data.

    ``strip`` may name ``time``, ``ele``, ``extensions`` or single sensor
    tags (``hr``, ``cad``, ``power``, ``atemp``). Returns the kept points
    (as copies) with the point counts before and after.
    """
    strip_set = set(strip)
    coords = [(p.lat, p.lon) for p in points]
    before = len(coords)
    tolerance = find_tolerance_for_pct(coords, target_pct)
    keep = [True] * before if tolerance == 0.0 else douglas_peucker(coords, tolerance)
    out = [_stripped(p, strip_set) for p, k in zip(points, keep) if k]
    return out, before, len(out)