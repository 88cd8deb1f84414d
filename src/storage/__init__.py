"""
Passenger Monitor - Storage Module

Durable snapshot storage: the persistence interface, the local SQLite store,
sequence allocation for record keys and the background snapshot writer.
"""

from .base import PersistenceClient
from .database import SnapshotDatabase
from .persister import SnapshotPersister
from .sequence import DEFAULT_KEY_WIDTH, SequenceAllocator, format_document_id

__all__ = [
    "PersistenceClient",
    "SnapshotDatabase",
    "SnapshotPersister",
    "SequenceAllocator",
    "DEFAULT_KEY_WIDTH",
    "format_document_id",
]
