"""Track point extraction from raw GPX bytes and GPX serialisation."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Union

from gpxtools.timeparse import parse_iso8601_epoch
from gpxtools.xmlscan import extract_tag_text, extract_tag_value, find_after, parse_attr_float

_TAG_NAME_END = b">/ \t\n\r"
_NAME_MAX_CHARS = 200

_GPX_HEADER = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<gpx version="1.1" creator="gpxtools"\n'
    '  xmlns="http://www.topografix.com/GPX/1/1"\n'
    '  xmlns:gpxtpx="http://www.garmin.com/xmlschemas/TrackPointExtension/v1"\n'
    '  xmlns:gpxpx="http://www.garmin.com/xmlschemas/PowerExtension/v1">\n'
    "<trk><trkseg>\n"
)
_GPX_FOOTER = "</trkseg></trk></gpx>\n"


@dataclass
class TrackPoint:
    """One track point with optional elevation, time and sensor readings."""

    lat: float = 0.0
    lon: float = 0.0
    ele: Optional[float] = None
    time: Optional[float] = None
    hr: Optional[float] = None
    cad: Optional[float] = None
    power: Optional[float] = None
    temp: Optional[float] = None


def _as_bytes(data: Union[bytes, bytearray, memoryview, str]) -> bytes:
    return data.encode("utf-8") if isinstance(data, str) else bytes(data)


def _ns_or_local(body: bytes, local: bytes) -> Optional[float]:
    for prefix in (b"gpxtpx:", b"gpxdata:", b""):
        value = extract_tag_value(body, prefix + local)
        if value is not None:
            return value
    return None


def _first_value(*candidates) -> Optional[float]:
    for candidate in candidates:
        value = candidate()
        if value is not None:
            return value
    return None


def parse_all_trkpts(data) -> List[TrackPoint]:
    """Scan raw GPX bytes for ``<trkpt>`` elements, keeping extension data."""
    data = _as_bytes(data)
    points: List[TrackPoint] = []
    pos = 0
    while (start := find_after(data, b"<trkpt", pos)) is not None:
        after_tag = start + len(b"<trkpt")
        if after_tag >= len(data) or data[after_tag] not in _TAG_NAME_END:
            pos = after_tag
            continue
        gt = find_after(data, b">", after_tag)
        if gt is None:
            break
        attrs = data[after_tag:gt]
        lat = parse_attr_float(attrs, b"lat")
        lon = parse_attr_float(attrs, b"lon")
        if lat is None or lon is None:
            pos = gt + 1
            continue

        if gt > 0 and data[gt - 1] == ord("/"):
            body = b""
            advance = gt + 1
        else:
            end = find_after(data, b"</trkpt>", gt)
            if end is None:
                break
            body = data[gt + 1:end]
            advance = end + len(b"</trkpt>")

        time_text = extract_tag_text(body, b"time")
        points.append(
            TrackPoint(
                lat=lat,
                lon=lon,
                ele=extract_tag_value(body, b"ele"),
                time=parse_iso8601_epoch(time_text) if time_text is not None else None,
                hr=_ns_or_local(body, b"hr"),
                cad=_ns_or_local(body, b"cad"),
                power=_first_value(
                    lambda: _ns_or_local(body, b"power"),
                    lambda: extract_tag_value(body, b"gpxpx:PowerInWatts"),
                    lambda: extract_tag_value(body, b"PowerInWatts"),
                ),
                temp=_ns_or_local(body, b"atemp"),
            )
        )
        pos = advance
    return points


def _clean_name(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    text = text.strip()
    return text[:_NAME_MAX_CHARS] if text else None


def extract_gpx_name(data) -> Optional[str]:
    """Best-effort route name: ``<metadata><name>`` first, then the first track name."""
    data = _as_bytes(data)
    start = find_after(data, b"<metadata", 0)
    end = find_after(data, b"</metadata>", 0)
    if start is not None and end is not None and end > start:
        name = _clean_name(extract_tag_text(data[start:end], b"name"))
        if name is not None:
            return name
    trk = find_after(data, b"<trk", 0)
    if trk is not None:
        gt = find_after(data, b">", trk)
        if gt is not None:
            return _clean_name(extract_tag_text(data[gt + 1:], b"name"))
    return None


def _saturating_int(value: float, low: int, high: int) -> int:
    if math.isnan(value):
        return 0
    if value <= low:
        return low
    if value >= high:
        return high
    return int(value)


def _format_time(epoch: float) -> Optional[str]:
    seconds = 0 if math.isnan(epoch) else epoch
    try:
        moment = datetime.fromtimestamp(int(seconds), tz=timezone.utc)
    except (OverflowError, ValueError, OSError):
        return None
    return (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
        f"T{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}Z"
    )


def _trkpt_xml(point: TrackPoint) -> str:
    parts = [f'<trkpt lat="{point.lat:.7f}" lon="{point.lon:.7f}">']
    if point.ele is not None:
        parts.append(f"<ele>{point.ele:.1f}</ele>")
    if point.time is not None:
        stamp = _format_time(point.time)
        if stamp is not None:
            parts.append(f"<time>{stamp}</time>")

    has_tpx = point.hr is not None or point.cad is not None or point.temp is not None
    if has_tpx or point.power is not None:
        parts.append("<extensions>")
        if has_tpx:
            parts.append("<gpxtpx:TrackPointExtension>")
            if point.hr is not None:
                parts.append(f"<gpxtpx:hr>{_saturating_int(point.hr, 0, 65535)}</gpxtpx:hr>")
            if point.cad is not None:
                parts.append(f"<gpxtpx:cad>{_saturating_int(point.cad, 0, 65535)}</gpxtpx:cad>")
            if point.temp is not None:
                parts.append(
                    f"<gpxtpx:atemp>{_saturating_int(point.temp, -32768, 32767)}</gpxtpx:atemp>"
                )
            parts.append("</gpxtpx:TrackPointExtension>")
        if point.power is not None:
            parts.append(
                "<gpxpx:PowerExtension><gpxpx:PowerInWatts>"
                f"{_saturating_int(point.power, 0, 65535)}"
                "</gpxpx:PowerInWatts></gpxpx:PowerExtension>"
            )
        parts.append("</extensions>")
    parts.append("</trkpt>\n")
    return "".join(parts)


def trackpoints_to_gpx_bytes(points: Iterable[TrackPoint]) -> bytes:
    """Serialise track points into a single-segment GPX 1.1 document."""
    body = "".join(_trkpt_xml(point) for point in points)
    return (_GPX_HEADER + body + _GPX_FOOTER).encode("utf-8")