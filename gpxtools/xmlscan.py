"""Byte-level helpers for scanning GPX/XML documents without a full parser."""

from __future__ import annotations

from typing import Optional, Union

BytesLike = Union[bytes, bytearray, memoryview, str]

_WHITESPACE = b" \t\n\r"
_TAG_NAME_END = b">/" + _WHITESPACE


def _as_bytes(value: BytesLike) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


def _parse_float(text: str) -> Optional[float]:
    """Parse a plain decimal/scientific number, rejecting Python-only syntax."""
    if not text or "_" in text or text != text.strip():
        return None
    try:
        return float(text)
    except ValueError:
        return None


def find_after(data: BytesLike, needle: BytesLike, start: int = 0) -> Optional[int]:
    """Return the absolute index of ``needle`` in ``data`` at or after ``start``."""
    data = _as_bytes(data)
    needle = _as_bytes(needle)
    if not needle or start > len(data):
        return None
    pos = data.find(needle, start)
    return None if pos < 0 else pos


def extract_tag_text(body: BytesLike, tag: BytesLike) -> Optional[str]:
    """Return the trimmed text of the first non-empty ``<tag>…</tag>`` element."""
    body = _as_bytes(body)
    tag = _as_bytes(tag)
    i = 0
    while True:
        open_pos = find_after(body, b"<", i)
        if open_pos is None:
            return None
        name_start = open_pos + 1
        if name_start + len(tag) > len(body):
            return None
        if body[name_start:name_start + len(tag)] != tag:
            i = open_pos + 1
            continue
        after_name = name_start + len(tag)
        if after_name >= len(body) or body[after_name] not in _TAG_NAME_END:
            i = open_pos + 1
            continue
        gt = find_after(body, b">", after_name)
        if gt is None:
            return None
        if gt > 0 and body[gt - 1] == ord("/"):
            i = gt + 1
            continue
        value_start = gt + 1
        close = find_after(body, b"</" + tag + b">", value_start)
        if close is None:
            return None
        try:
            return body[value_start:close].decode("utf-8").strip()
        except UnicodeDecodeError:
            return None


def extract_tag_value(body: BytesLike, tag: BytesLike) -> Optional[float]:
    """Return the text of ``<tag>`` parsed as a float, or None."""
    text = extract_tag_text(body, tag)
    if text is None:
        return None
    return _parse_float(text)


def parse_attr_float(attrs: BytesLike, name: BytesLike) -> Optional[float]:
    """Return the float value of attribute ``name`` within an attribute list."""
    attrs = _as_bytes(attrs)
    name = _as_bytes(name)
    size = len(attrs)
    i = 0
    while (pos := find_after(attrs, name, i)) is not None:
        if pos != 0 and attrs[pos - 1] not in _WHITESPACE:
            i = pos + len(name)
            continue
        j = pos + len(name)
        while j < size and attrs[j] in _WHITESPACE:
            j += 1
        if j >= size or attrs[j] != ord("="):
            i = pos + len(name)
            continue
        j += 1
        while j < size and attrs[j] in _WHITESPACE:
            j += 1
        if j >= size:
            return None
        quote = attrs[j]
        if quote not in b"\"'":
            return None
        j += 1
        end = attrs.find(bytes([quote]), j)
        if end < 0:
            return None
        try:
            text = attrs[j:end].decode("utf-8")
        except UnicodeDecodeError:
            return None
        return _parse_float(text.strip())
    return None