"""Storage factory: creates the sql or memory metadata backend from settings."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sharegate.infrastructure.storage.blob_store import LocalBlobStore
from sharegate.infrastructure.storage.entry import BaseStorage

if TYPE_CHECKING:
    from sharegate.core.config import Settings


class StorageFactory:
    """Factory for storage instances based on configuration."""

    @staticmethod
    def create_storage(settings: "Settings | None" = None) -> BaseStorage:
        """Create storage from settings.

        Args:
            settings: Application settings; if None, uses get_settings().

        Returns:
            SqlStorage or MemoryStorage, both over a LocalBlobStore at blob_root.

        Raises:
            ValueError: Unknown backend or missing required config.
        """
        from sharegate.core.config import get_settings

        s = settings if settings is not None else get_settings()
        backend = s.metadata_backend.lower()
        blob_store = LocalBlobStore(s.blob_root)

        if backend == "memory":
            from sharegate.infrastructure.storage.memory_storage import MemoryStorage

            return MemoryStorage(blob_store, max_id_attempts=s.id_max_attempts)
        if backend == "sql":
            if not s.database_url:
                raise ValueError("DATABASE_URL required for sql backend")
            from sharegate.infrastructure.persistence.database import (
                create_engine_from_settings,
            )
            from sharegate.infrastructure.storage.sql_storage import SqlStorage

            return SqlStorage(
                create_engine_from_settings(s),
                blob_store,
                max_id_attempts=s.id_max_attempts,
                create_schema_on_connect=s.storage_create_schema,
            )
        raise ValueError(
            f"Unknown metadata backend: {backend}. Supported: 'sql', 'memory'"
        )
