"""Reading track points from Garmin FIT activity files."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from gpxtools.trackpoints import TrackPoint

# Seconds between the Unix epoch and the FIT epoch (1989-12-31T00:00:00Z).
FIT_EPOCH_OFFSET = 631065600
SEMICIRCLE_TO_DEG = 180.0 / 2_147_483_648.0
RECORD_MESSAGE = 20
TIMESTAMP_FIELD = 253

_FIELD_NAMES = {
    253: "timestamp",
    0: "position_lat",
    1: "position_long",
    2: "altitude",
    78: "enhanced_altitude",
    3: "heart_rate",
    4: "cadence",
    7: "power",
    13: "temperature",
}

# base type number -> (struct code, size, invalid value or None for floats)
_BASE_TYPES = {
    0: ("B", 1, 0xFF),
    1: ("b", 1, 0x7F),
    2: ("B", 1, 0xFF),
    3: ("h", 2, 0x7FFF),
    4: ("H", 2, 0xFFFF),
    5: ("i", 4, 0x7FFFFFFF),
    6: ("I", 4, 0xFFFFFFFF),
    8: ("f", 4, None),
    9: ("d", 8, None),
    10: ("B", 1, 0),
    11: ("H", 2, 0),
    12: ("I", 4, 0),
    13: ("B", 1, 0xFF),
    14: ("q", 8, 0x7FFFFFFFFFFFFFFF),
    15: ("Q", 8, 0xFFFFFFFFFFFFFFFF),
    16: ("Q", 8, 0),
}
_SINT8, _UINT8, _UINT16, _SINT32, _UINT32 = 1, 2, 4, 5, 6
_FLOAT_TYPES = {8, 9}

_CRC_TABLE = (
    0x0000, 0xCC01, 0xD801, 0x1400, 0xF001, 0x3C00, 0x2800, 0xE401,
    0xA001, 0x6C00, 0x7800, 0xB401, 0x5000, 0x9C01, 0x8801, 0x4400,
)


class FitError(ValueError):
    """Raised when a FIT file cannot be decoded."""


def _fit_crc(data: bytes, crc: int = 0) -> int:
    for byte in data:
        tmp = _CRC_TABLE[crc & 0xF]
        crc = ((crc >> 4) & 0x0FFF) ^ tmp ^ _CRC_TABLE[byte & 0xF]
        tmp = _CRC_TABLE[crc & 0xF]
        crc = ((crc >> 4) & 0x0FFF) ^ tmp ^ _CRC_TABLE[(byte >> 4) & 0xF]
    return crc


def is_fit_file(filename: Optional[str], data: bytes) -> bool:
    """True when the name ends in ``.fit`` or the data carries a FIT header."""
    if filename is not None and filename.lower().endswith(".fit"):
        return True
    return len(data) >= 14 and bytes(data[8:12]) == b".FIT"


@dataclass
class _Definition:
    global_num: int
    endian: str
    fields: List[Tuple[int, int, int]] = field(default_factory=list)
    dev_size: int = 0

    @property
    def size(self) -> int:
        return sum(size for _, size, _ in self.fields) + self.dev_size


def _decode(raw: bytes, base: int, endian: str) -> Optional[Tuple[int, float]]:
    number = base & 0x1F
    spec = _BASE_TYPES.get(number)
    if spec is None:
        return None
    code, size, invalid = spec
    if len(raw) != size:
        return None
    (value,) = struct.unpack(endian + code, raw)
    if number in _FLOAT_TYPES:
        if value != value:
            return None
    elif value == invalid:
        return None
    return number, value


def _fail(message: str) -> FitError:
    return FitError(f"FIT parse: {message}")


def _point_from_fields(values: List[Tuple[str, int, float]]) -> Optional[TrackPoint]:
    lat = lon = None
    point = TrackPoint()
    for name, kind, value in values:
        if name == "position_lat" and kind == _SINT32:
            lat = value * SEMICIRCLE_TO_DEG
        elif name == "position_long" and kind == _SINT32:
            lon = value * SEMICIRCLE_TO_DEG
        elif name in ("enhanced_altitude", "altitude"):
            if point.ele is None:
                point.ele = value / 5.0 - 500.0
        elif name == "timestamp" and kind == _UINT32:
            point.time = float(value + FIT_EPOCH_OFFSET)
        elif name == "heart_rate" and kind == _UINT8:
            point.hr = float(value)
        elif name == "cadence" and kind == _UINT8:
            point.cad = float(value)
        elif name == "power" and kind == _UINT16:
            point.power = float(value)
        elif name == "temperature" and kind == _SINT8:
            point.temp = float(value)
    if lat is None or lon is None:
        return None
    point.lat = lat
    point.lon = lon
    return point


class _FileReader:
    def __init__(self, data: bytes, start: int, end: int) -> None:
        self.data = data
        self.pos = start
        self.end = end
        self.definitions: Dict[int, _Definition] = {}
        self.last_timestamp: Optional[int] = None

    def _take(self, count: int) -> bytes:
        if self.pos + count > self.end:
            raise _fail("record runs past the end of the data")
        chunk = self.data[self.pos:self.pos + count]
        self.pos += count
        return chunk

    def records(self):
        while self.pos < self.end:
            header = self._take(1)[0]
            if header & 0x80:
                local = (header >> 5) & 0x03
                offset = header & 0x1F
                if self.last_timestamp is None:
                    raise _fail("compressed timestamp without a reference time")
                stamp = (self.last_timestamp & ~0x1F) + offset
                if offset < (self.last_timestamp & 0x1F):
                    stamp += 0x20
                self.last_timestamp = stamp
                yield from self._data_message(local, stamp)
            elif header & 0x40:
                self._definition(header & 0x0F, bool(header & 0x20))
            else:
                yield from self._data_message(header & 0x0F, None)

    def _definition(self, local: int, has_dev: bool) -> None:
        _reserved, arch = self._take(2)
        if arch not in (0, 1):
            raise _fail(f"unknown architecture {arch}")
        endian = "<" if arch == 0 else ">"
        (global_num,) = struct.unpack(endian + "H", self._take(2))
        count = self._take(1)[0]
        fields = [tuple(self._take(3)) for _ in range(count)]
        dev_size = 0
        if has_dev:
            dev_count = self._take(1)[0]
            dev_size = sum(self._take(3)[1] for _ in range(dev_count))
        self.definitions[local] = _Definition(global_num, endian, fields, dev_size)

    def _data_message(self, local: int, compressed_time: Optional[int]):
        definition = self.definitions.get(local)
        if definition is None:
            raise _fail(f"data message for undefined local type {local}")
        values: List[Tuple[str, int, float]] = []
        for number, size, base in definition.fields:
            raw = self._take(size)
            decoded = _decode(raw, base, definition.endian)
            if decoded is None:
                continue
            kind, value = decoded
            if number == TIMESTAMP_FIELD and kind == _UINT32:
                self.last_timestamp = value
            name = _FIELD_NAMES.get(number)
            if name is not None:
                values.append((name, kind, value))
        self._take(definition.dev_size)
        if definition.global_num != RECORD_MESSAGE:
            return
        if compressed_time is not None:
            values.append(("timestamp", _UINT32, compressed_time))
        point = _point_from_fields(values)
        if point is not None:
            yield point


def _read_file(data: bytes, start: int, points: List[TrackPoint]) -> int:
    remaining = len(data) - start
    if remaining < 12:
        raise _fail("truncated file header")
    header_size = data[start]
    if header_size not in (12, 14) or remaining < header_size:
        raise _fail(f"invalid header size {header_size}")
    if data[start + 8:start + 12] != b".FIT":
        raise _fail("missing .FIT signature")
    (data_size,) = struct.unpack("<I", data[start + 4:start + 8])
    if header_size == 14:
        (header_crc,) = struct.unpack("<H", data[start + 12:start + 14])
        if header_crc != 0 and header_crc != _fit_crc(data[start:start + 12]):
            raise _fail("header CRC mismatch")
    end = start + header_size + data_size
    if end + 2 > len(data):
        raise _fail("file is shorter than its declared size")
    (file_crc,) = struct.unpack("<H", data[end:end + 2])
    if file_crc != _fit_crc(data[start:end]):
        raise _fail("file CRC mismatch")
    points.extend(_FileReader(data, start + header_size, end).records())
    return end + 2 - start


def parse_fit_trkpts(data: bytes) -> List[TrackPoint]:
    """Return the positioned record messages of a (possibly chained) FIT file.

    Raises FitError when the data is not a valid FIT file.
    """
    data = bytes(data)
    if not data:
        raise _fail("file is empty")
    points: List[TrackPoint] = []
    offset = 0
    while offset < len(data):
        offset += _read_file(data, offset, points)
    return points