"""
Bounded in-process conversation memory.
Keeps the most recent messages of a session and forgets the oldest first.
"""

import logging
import threading
from collections import deque
from typing import Deque, List, Optional, Tuple, Union

from .types import ConversationEntry, Role


logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 10


class ConversationMemory:
    """Thread-safe FIFO store of conversation entries with a fixed capacity."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError(f"Memory capacity must be at least 1, got {capacity}")
        self._capacity = capacity
        self._entries: Deque[ConversationEntry] = deque()
        self._lock = threading.Lock()
        self._evicted = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def evicted_count(self) -> int:
        """Entries dropped by eviction since the memory was created."""
        with self._lock:
            return self._evicted

    def _append(self, *entries: ConversationEntry) -> None:
        with self._lock:
            self._entries.extend(entries)
            while len(self._entries) > self._capacity:
                self._entries.popleft()
                self._evicted += 1
            size = len(self._entries)
        logger.debug(f"Memory size: {size}/{self._capacity}")

    def add_entry(self, role: Union[Role, str], content: str, model: Optional[str] = None) -> ConversationEntry:
        """Append a message, evicting the oldest ones if capacity is exceeded."""
        entry = ConversationEntry(role=Role(role), content=content, model=model)
        self._append(entry)
        return entry

    def add_exchange(self, user_content: str, assistant_content: str,
                     model: Optional[str] = None) -> Tuple[ConversationEntry, ConversationEntry]:
        """Append a user message and its reply as one adjacent pair."""
        user = ConversationEntry(role=Role.USER, content=user_content)
        assistant = ConversationEntry(role=Role.ASSISTANT, content=assistant_content, model=model)
        self._append(user, assistant)
        return user, assistant

    def get_recent(self, limit: int) -> List[ConversationEntry]:
        """The last min(limit, size()) entries, oldest first."""
        if limit <= 0:
            return []
        with self._lock:
            entries = list(self._entries)
        return entries[-limit:]

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def summary(self) -> str:
        size = self.size()
        percentage = int(size / self._capacity * 100)
        return f"{size}/{self._capacity} messages ({percentage}%)"

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.info("Conversation memory cleared")

    def __len__(self) -> int:
        return self.size()
