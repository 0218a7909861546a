"""rdprune - surgical path removal for rdiff-backup archives."""

__version__ = "0.3.0"
