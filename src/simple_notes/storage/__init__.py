"""Storage layer for Simple Notes."""

from simple_notes.storage.disk_mirror import DiskListing, DiskMirror
from simple_notes.storage.local_cache import LocalCache

__all__ = [
    "DiskListing",
    "DiskMirror",
    "LocalCache",
]
