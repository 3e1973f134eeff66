"""Storage module - record store interface and its implementations."""

from .interface import RecordStore
from .memory_store import InMemoryRecordStore
from .local_storage import LocalRecordStore
from .factory import create_record_store

__all__ = ['RecordStore', 'InMemoryRecordStore', 'LocalRecordStore', 'create_record_store']
