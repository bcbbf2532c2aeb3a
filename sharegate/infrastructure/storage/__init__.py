"""Storage: entry lifecycle over sql or memory metadata and local blobs.

Factory creates the backend from sharegate.core.config. The sql backend is
imported lazily inside StorageFactory.create_storage() so the memory
backend does not load SQLAlchemy models.
"""

from sharegate.infrastructure.storage.blob_store import LocalBlobStore
from sharegate.infrastructure.storage.entry import BaseStorage, StorageEntry
from sharegate.infrastructure.storage.factory import StorageFactory
from sharegate.infrastructure.storage.memory_storage import MemoryStorage

__all__ = [
    "BaseStorage",
    "LocalBlobStore",
    "MemoryStorage",
    "StorageEntry",
    "StorageFactory",
]
