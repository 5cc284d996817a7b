"""Storage modules for visited-URL persistence."""

from pagewatch.storage.factory import AnyDedupStore, DedupStore, create_dedup_store
from pagewatch.storage.redis_store import RedisDedupStore
from pagewatch.storage.sqlite_store import SQLiteDedupStore

__all__ = [
    "AnyDedupStore",
    "DedupStore",
    "RedisDedupStore",
    "SQLiteDedupStore",
    "create_dedup_store",
]
