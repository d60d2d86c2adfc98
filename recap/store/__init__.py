"""
Storage clients: the relational record store and the blob object store.
"""

from recap.store.objects import LocalObjectStore, ObjectStore, S3ObjectStore, blob_path_for, get_object_store
from recap.store.records import RecordStore

__all__ = [
    "RecordStore",
    "ObjectStore",
    "S3ObjectStore",
    "LocalObjectStore",
    "blob_path_for",
    "get_object_store",
]
