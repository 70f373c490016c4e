"""ClipTrail: clipboard history with a bounded in-memory window over a
file-per-record store."""

__version__ = "0.1.0"
