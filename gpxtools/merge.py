"""Merge GPX files at the byte level so extension data survives untouched.

Whole ``<trkseg>`` blocks of the later files are spliced into the first
``<trk>`` of the earliest file; track point content is never re-serialised.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Union

from gpxtools.xmlscan import find_after

BytesLike = Union[bytes, bytearray, memoryview, str]

_TRKSEG_OPEN = b"<trkseg"
_TRKSEG_CLOSE = b"</trkseg>"
_TAG_NAME_END = b">/ \t\n\r"

_NAMESPACES = (
    (
        b"gpxtpx:",
        b"xmlns:gpxtpx=",
        ' xmlns:gpxtpx="http://www.garmin.com/xmlschemas/TrackPointExtension/v1"',
    ),
    (
        b"gpxpx:",
        b"xmlns:gpxpx=",
        ' xmlns:gpxpx="http://www.garmin.com/xmlschemas/PowerExtension/v1"',
    ),
)

_ATTR_ESCAPES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&apos;",
}


class MergeError(ValueError):
    """Raised when a set of GPX files cannot be merged."""


def _as_bytes(value: BytesLike) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else bytes(value)


def find_trkseg_open(data: BytesLike, start: int = 0) -> Optional[int]:
    """Return the index of the next ``<trkseg`` opening tag at or after ``start``."""
    data = _as_bytes(data)
    i = start
    while (pos := find_after(data, _TRKSEG_OPEN, i)) is not None:
        after = pos + len(_TRKSEG_OPEN)
        if after < len(data) and data[after] in _TAG_NAME_END:
            return pos
        i = after
    return None


def extract_trksegs(data: BytesLike) -> List[bytes]:
    """Return every ``<trkseg>`` element of the document, verbatim."""
    data = _as_bytes(data)
    segments: List[bytes] = []
    pos = 0
    while (start := find_trkseg_open(data, pos)) is not None:
        gt = find_after(data, b">", start)
        if gt is None:
            break
        if gt > 0 and data[gt - 1] == ord("/"):
            segments.append(data[start:gt + 1])
            pos = gt + 1
            continue
        close = find_after(data, _TRKSEG_CLOSE, gt)
        if close is None:
            break
        close_end = close + len(_TRKSEG_CLOSE)
        segments.append(data[start:close_end])
        pos = close_end
    return segments


def first_trkpt_time(data: BytesLike) -> Optional[str]:
    """Return the trimmed ``<time>`` text following the first ``<trkpt``."""
    data = _as_bytes(data)
    trkpt = find_after(data, b"<trkpt", 0)
    if trkpt is None:
        return None
    time_tag = find_after(data, b"<time>", trkpt)
    if time_tag is None:
        return None
    value_start = time_tag + len(b"<time>")
    time_end = find_after(data, b"</time>", value_start)
    if time_end is None:
        return None
    try:
        return data[value_start:time_end].decode("utf-8").strip()
    except UnicodeDecodeError:
        return None


def escape_xml_attr(text: str) -> str:
    """Escape a string for use inside an XML attribute value."""
    return "".join(_ATTR_ESCAPES.get(ch, ch) for ch in text)


def _gpx_header_bounds(data: bytes) -> Optional[tuple]:
    start = find_after(data, b"<gpx", 0)
    if start is None:
        return None
    end = find_after(data, b">", start)
    if end is None:
        return None
    return start, end


def _insert_into_tag(data: bytes, end: int, insertion: bytes) -> bytes:
    insert_at = end - 1 if end > 0 and data[end - 1] == ord("/") else end
    return data[:insert_at] + insertion + data[insert_at:]


def rewrite_gpx_creator(data: BytesLike, creator: str) -> bytes:
    """Set the ``creator`` attribute of the root ``<gpx>`` element."""
    data = _as_bytes(data)
    bounds = _gpx_header_bounds(data)
    if bounds is None:
        return data
    start, end = bounds
    escaped = escape_xml_attr(creator).encode("utf-8")

    rel = data[start:end + 1].find(b"creator=")
    if rel >= 0:
        after_eq = start + rel + len(b"creator=")
        if after_eq < len(data) and data[after_eq] in b"\"'":
            quote = data[after_eq]
            value_start = after_eq + 1
            rel_end = data[value_start:end + 1].find(bytes([quote]))
            if rel_end >= 0:
                value_end = value_start + rel_end
                return data[:value_start] + escaped + data[value_end:]

    return _insert_into_tag(data, end, b' creator="' + escaped + b'"')


def splice_trksegs_before_first_close_trk(base: BytesLike, extras: Sequence[BytesLike]) -> bytes:
    """Insert the given segments, each followed by a newline, before the first ``</trk>``."""
    base = _as_bytes(base)
    if not extras:
        return base
    close_pos = find_after(base, b"</trk>", 0)
    if close_pos is None:
        return base
    spliced = b"".join(_as_bytes(seg) + b"\n" for seg in extras)
    return base[:close_pos] + spliced + base[close_pos:]


def ensure_gpx_namespaces(data: BytesLike) -> bytes:
    """Declare the Garmin extension namespaces on ``<gpx>`` when they are used but missing."""
    data = _as_bytes(data)
    bounds = _gpx_header_bounds(data)
    if bounds is None:
        return data
    start, end = bounds
    header = data[start:end + 1]
    insertions = "".join(
        decl
        for prefix, key, decl in _NAMESPACES
        if prefix in data and key not in header
    )
    if not insertions:
        return data
    return _insert_into_tag(data, end, insertions.encode("utf-8"))


def _time_key(item: tuple) -> tuple:
    stamp = item[0]
    return (stamp is not None, stamp or "")


def merge_gpx_preserving_extensions(
    files: Iterable[BytesLike], creator: Optional[str] = None
) -> bytes:
    """Merge GPX documents in order of their first track point time.

    The earliest document is the base; the track segments of the others are
    appended to its first track. Raises MergeError when no file is given.
    """
    documents = [_as_bytes(f) for f in files]
    if not documents:
        raise MergeError("no files provided")

    indexed = sorted(((first_trkpt_time(doc), doc) for doc in documents), key=_time_key)
    base = indexed[0][1]
    extras = [seg for _, doc in indexed[1:] for seg in extract_trksegs(doc)]

    if creator is not None:
        base = rewrite_gpx_creator(base, creator)

    merged = splice_trksegs_before_first_close_trk(base, extras)
    return ensure_gpx_namespaces(merged)