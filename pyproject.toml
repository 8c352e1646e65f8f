[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gpxtools"
version = "0.1.0"
description = "GPX and FIT track tools: merging that keeps extension data intact, Douglas-Peucker simplification, FIT import and track statistics"
requires-python = ">=3.10"
keywords = ["gpx", "fit", "gps", "track", "merge", "simplify", "douglas-peucker", "cycling"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: GIS",
]
dependencies = []

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["gpxtools"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]
