"""Monthly GitHub Sponsors snapshots and charts."""

__version__ = "1.0.0"
