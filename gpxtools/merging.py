"""Merge sessions and the merge of uploaded GPX or FIT activity files."""

from __future__ import annotations

import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from gpxtools.fit import is_fit_file, parse_fit_trkpts
from gpxtools.merge import merge_gpx_preserving_extensions
from gpxtools.stats import stats_from_points
from gpxtools.trackpoints import parse_all_trkpts, trackpoints_to_gpx_bytes

SESSION_TTL_SECS = 600
MAX_SESSION_FILES = 5
UNNAMED = "(unnamed)"

UploadedFile = Tuple[Optional[str], bytes]


@dataclass
class _Session:
    created: float
    files: List[UploadedFile] = field(default_factory=list)


class MergeSessionStore:
    """Thread-safe collection of files uploaded one by one for a later merge."""

    def __init__(self, ttl_seconds: float = SESSION_TTL_SECS, max_files: int = MAX_SESSION_FILES) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_files = max_files
        self._sessions: Dict[str, _Session] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def add_file(self, session_id: Optional[str], filename: Optional[str], data: bytes) -> Tuple[str, int]:
        """Add a file to a session, creating it when needed.

        Expired sessions are purged first. Returns the session id and the
        number of files it now holds; raises ValueError when it is full.
        """
        with self._lock:
            now = time.monotonic()
            self._sessions = {
                sid: session
                for sid, session in self._sessions.items()
                if now - session.created < self.ttl_seconds
            }
            sid = session_id or str(uuid.uuid4())
            session = self._sessions.setdefault(sid, _Session(created=now))
            if len(session.files) >= self.max_files:
                raise ValueError(f"Maximum {self.max_files} files per merge session.")
            session.files.append((filename, bytes(data)))
            return sid, len(session.files)

    def take(self, session_id: str) -> List[UploadedFile]:
        """Remove a session and return its files; KeyError when it is unknown."""
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            raise KeyError(session_id)
        return session.files


def merge_files(
    files: Iterable[UploadedFile], creator: Optional[str] = None
) -> Tuple[bytes, Dict[str, Any], List[Dict[str, Any]]]:
    """Merge GPX or FIT files into one GPX document.

    Returns the merged document, the statistics of the merged track and the
    statistics of every input file in input order. Raises MergeError or
    FitError when the files cannot be merged.
    """
    per_file: List[Dict[str, Any]] = []
    documents: List[bytes] = []
    for name, data in files:
        label = name if name is not None else UNNAMED
        if is_fit_file(name, data):
            points = parse_fit_trkpts(data)
            documents.append(trackpoints_to_gpx_bytes(points))
        else:
            points = parse_all_trkpts(data)
            documents.append(bytes(data))
        per_file.append({"name": label, "stats": stats_from_points(points)})

    merged = merge_gpx_preserving_extensions(documents, creator)
    stats = stats_from_points(parse_all_trkpts(merged))
    return merged, stats, per_file