"""
Local Filesystem Record Store.
Serves reads and conditional writes from memory and mirrors every committed
change to JSON files under a base directory, so state survives a restart.

Layout:
    participants/<id>.json
    sessions/<id>.json
    messages/<session_id>.jsonl   (one message per line, append-only)
"""

import logging
from pathlib import Path

import aiofiles
import aiofiles.os

from ..core.errors import StoreUnavailable
from ..models import ChatSession, Message, Participant
from .memory_store import InMemoryRecordStore

logger = logging.getLogger(__name__)


class LocalRecordStore(InMemoryRecordStore):
    """
    Record store persisted on the server's local filesystem.
    """

    def __init__(self, base_dir: str = "./data"):
        """
        Initialize local storage with a base directory.

        Args:
            base_dir: Base directory for all stored records
        """
        super().__init__()
        self.base_dir = Path(base_dir).resolve()

    def _get_full_path(self, path: str) -> Path:
        """Convert relative path to full absolute path within base directory."""
        full_path = (self.base_dir / path).resolve()

        if not full_path.is_relative_to(self.base_dir):
            raise ValueError(f"Invalid path: {path} - path traversal detected")

        return full_path

    async def _write(self, path: str, content: str, mode: str = 'w') -> None:
        try:
            full_path = self._get_full_path(path)
            full_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(full_path, mode, encoding='utf-8') as f:
                await f.write(content)
        except OSError as e:
            logger.error(f"Error writing {path}: {e}")
            raise StoreUnavailable(f"Could not write {path}") from e

    async def _remove(self, path: str) -> None:
        full_path = self._get_full_path(path)
        try:
            if full_path.exists():
                await aiofiles.os.remove(full_path)
        except OSError as e:
            logger.error(f"Error deleting {path}: {e}")
            raise StoreUnavailable(f"Could not delete {path}") from e

    async def _read_lines(self, full_path: Path) -> list[str]:
        async with aiofiles.open(full_path, 'r', encoding='utf-8') as f:
            content = await f.read()
        return [line for line in content.splitlines() if line.strip()]

    async def open(self) -> None:
        """Load every persisted record into memory."""
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
            async with self._lock:
                for full_path in sorted(self._get_full_path("participants").glob("*.json")):
                    for line in await self._read_lines(full_path):
                        participant = Participant.model_validate_json(line)
                        self._participants[participant.id] = participant

                for full_path in sorted(self._get_full_path("sessions").glob("*.json")):
                    for line in await self._read_lines(full_path):
                        session = ChatSession.model_validate_json(line)
                        self._sessions[session.id] = session

                for full_path in sorted(self._get_full_path("messages").glob("*.jsonl")):
                    messages = [
                        Message.model_validate_json(line)
                        for line in await self._read_lines(full_path)
                    ]
                    if messages:
                        self._messages[messages[0].session_id] = messages
        except OSError as e:
            raise StoreUnavailable(f"Could not load records from {self.base_dir}") from e

        logger.info(
            f"Loaded {len(self._participants)} participants, "
            f"{len(self._sessions)} sessions from {self.base_dir}"
        )

    async def _participant_changed(self, participant: Participant) -> None:
        await self._write(f"participants/{participant.id}.json", participant.model_dump_json())

    async def _session_changed(self, session: ChatSession) -> None:
        await self._write(f"sessions/{session.id}.json", session.model_dump_json())

    async def _session_deleted(self, session_id: str) -> None:
        await self._remove(f"sessions/{session_id}.json")
        await self._remove(f"messages/{session_id}.jsonl")

    async def _message_added(self, message: Message) -> None:
        await self._write(
            f"messages/{message.session_id}.jsonl",
            message.model_dump_json() + "\n",
            mode='a'
        )
