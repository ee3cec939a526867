from narrator.core.config import Settings
from narrator.store.base import RecordStore


def build_store(settings: Settings) -> RecordStore:
    if settings.store_backend == 'memory':
        from narrator.store.memory import MemoryRecordStore
        return MemoryRecordStore()
    if settings.store_backend == 'sql':
        from narrator.store.sql import SqlRecordStore
        return SqlRecordStore(settings.database_url)
    raise ValueError(f"Unknown STORE_BACKEND: {settings.store_backend}")
