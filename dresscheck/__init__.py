"""Product extraction and duplicate detection for shared event wardrobes."""

__version__ = "0.1.0"
