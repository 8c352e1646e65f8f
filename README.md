# gpxtools

A small pure-Python library for working with GPS tracks in GPX and FIT
form. It has no dependencies outside the standard library.

- **Merge** GPX (or FIT) recordings into one track. The merge works on the
  raw XML: whole `<trkseg>` blocks of the later files are spliced into the
  first `<trk>` of the earliest file. Each track point's `<extensions>`
  (heart rate, cadence, power, temperature) therefore comes through
  unchanged. Files are ordered by the `<time>` text of their first track
  point. Files that have no such time come first.
- **Simplify** a track with Douglas–Peucker. The tolerance is found by binary
  search so that about a target percentage of the points is removed. Time,
  elevation or sensor fields can also be stripped.
- **Read FIT files**: the positioned record messages become track points,
  which can be written out as GPX 1.1.
- **Compute statistics** for a track:
  - distance;
  - total and moving time;
  - average speed and average moving speed;
  - elevation gain and loss;
  - avg/min/max summaries of heart rate, cadence, power and temperature;
  - series of each value against cumulative distance.

## Installation

```
pip install .
```

## Modules

| Module                | What it offers |
|-----------------------|----------------|
| `gpxtools.trackpoints` | `TrackPoint`, `parse_all_trkpts(data)`, `extract_gpx_name(data)`, `trackpoints_to_gpx_bytes(points)` |
| `gpxtools.merge`      | `merge_gpx_preserving_extensions(files, creator=None)` and the byte-level helpers it uses (`extract_trksegs`, `rewrite_gpx_creator`, `ensure_gpx_namespaces`, …); raises `MergeError` when given no file |
| `gpxtools.merging`    | `merge_files(files, creator=None)` for `(filename, bytes)` pairs of GPX or FIT data, and `MergeSessionStore` for collecting uploads one at a time |
| `gpxtools.simplify`   | `simplify_trackpoints(points, target_pct, strip=())`, `douglas_peucker`, `dp_count`, `find_tolerance_for_pct`, `perp_dist` |
| `gpxtools.fit`        | `is_fit_file(filename, data)`, `parse_fit_trkpts(data)`; raises `FitError` on data that is not a valid FIT file |
| `gpxtools.stats`      | `haversine_km(...)`, `stats_from_points(points)` |
| `gpxtools.timeparse`  | `parse_iso8601_epoch(text)`, `days_from_civil(year, month, day)` |
| `gpxtools.xmlscan`    | small byte-scanning helpers: `find_after`, `extract_tag_text`, `extract_tag_value`, `parse_attr_float` |

## Example

```python
from gpxtools.merging import merge_files
from gpxtools.trackpoints import parse_all_trkpts
from gpxtools.stats import stats_from_points
from gpxtools.simplify import simplify_trackpoints

with open("morning.gpx", "rb") as a, open("afternoon.fit", "rb") as b:
    merged, stats, per_file = merge_files(
        [("morning.gpx", a.read()), ("afternoon.fit", b.read())],
        creator="my-merge",
    )

print(stats["total_km"], stats["moving_time_s"])

points = parse_all_trkpts(merged)
simplified, before, after = simplify_trackpoints(points, 80, {"hr", "cad"})
print(f"{before} -> {after} points")
```

`strip` can name `time`, `ele` and `extensions`, or single sensor tags:
`hr`, `cad`, `power` and `atemp`.

`MergeSessionStore(ttl_seconds=600, max_files=5)` holds files by session id:

- `add_file(session_id, filename, data)` returns `(session_id, count)`. It
  creates a new id when none is given. Before adding, it purges expired
  sessions. It raises `ValueError` once a session is full.
- `take(session_id)` removes the session and returns its files. It raises
  `KeyError` for an unknown session.

## What this package does not do

This is a library only. It has:

- no web server and no command-line program;
- no HTML pages or share links;
- no rendering of elevation-profile images;
- no user accounts, login sessions or Strava token storage.

## Running the tests

```
pip install .[test]
pytest
```