"""
Storage package for ClipTrail.

Provides the file-per-record history store.
"""

from cliptrail.database.disk_store import DiskStore

__all__ = [
    'DiskStore',
]
