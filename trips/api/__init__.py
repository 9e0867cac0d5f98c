"""Trip API routes."""

from . import normalize, public_data, stats, sync

__all__ = ["normalize", "public_data", "stats", "sync"]
