"""
Account document store.

Contract plus in-memory and SQLAlchemy implementations.
"""

from app.store.base import AccountStore, ChangeFeed, StoreTransaction
from app.store.memory import InMemoryAccountStore, MemoryStoreTransaction
from app.store.sql import SqlAlchemyAccountStore, SqlStoreTransaction


__all__ = [
    "AccountStore",
    "ChangeFeed",
    "InMemoryAccountStore",
    "MemoryStoreTransaction",
    "SqlAlchemyAccountStore",
    "SqlStoreTransaction",
    "StoreTransaction",
]
