"""GPX and FIT track tools: extension-preserving merge, simplification, FIT import and statistics."""

__version__ = "0.1.0"