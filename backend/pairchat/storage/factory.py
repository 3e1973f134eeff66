"""
Record store factory - selects the backend named by settings.storage_type.
"""

import logging
from typing import Any

from .interface import RecordStore
from .memory_store import InMemoryRecordStore
from .local_storage import LocalRecordStore

logger = logging.getLogger(__name__)


def create_record_store(config: Any) -> RecordStore:
    """
    Create the record store configured in settings.

    Args:
        config: Settings object with storage_type and local_storage_path

    Returns:
        RecordStore: An unopened store; call ``await store.open()`` before use
    """
    storage_type = config.storage_type.lower()
    if storage_type == "memory":
        return InMemoryRecordStore()
    if storage_type == "local":
        return LocalRecordStore(config.local_storage_path)
    raise ValueError(f"Unknown storage type: {config.storage_type}. Use 'memory' or 'local'.")
