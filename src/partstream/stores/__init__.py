"""Object store backends.

``S3ObjectStore`` lives in ``partstream.stores.s3`` and needs the ``s3`` extra.
"""

from .base import ObjectStore
from .http import AsyncHttpObjectStore, HttpObjectStore, SyncHttpObjectStore
from .memory import InMemoryObjectStore

__all__ = [
    "ObjectStore",
    "HttpObjectStore",
    "SyncHttpObjectStore",
    "AsyncHttpObjectStore",
    "InMemoryObjectStore",
]
