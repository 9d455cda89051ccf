"""
Value types shared across the orchestrator: configuration, conversation
entries, model descriptors and health reports.
"""

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, Optional


DEFAULT_BASE_URL = "http://localhost:11434"
DEFAULT_MODEL = "llama3.1:8b"


class Role(Enum):
    """Who sent a message in the conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ExecutorConfig:
    """
    Connection, timeout and retry settings for talking to the LLM server.
    Timeouts and delays are in seconds. A request_deadline of None leaves a
    chat call bounded only by its attempts and their timeouts.
    """

    base_url: str = DEFAULT_BASE_URL
    connect_timeout: float = 30.0
    request_timeout: float = 300.0
    download_timeout: float = 1800.0
    health_check_timeout: float = 10.0
    request_deadline: Optional[float] = None
    max_retries: int = 3
    retry_base_delay: float = 1.0
    retry_max_delay: float = 10.0
    username: Optional[str] = None
    password: Optional[str] = None
    verify_ssl: bool = True

    def __post_init__(self):
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if self.retry_base_delay < 0 or self.retry_max_delay < 0:
            raise ValueError("retry delays must not be negative")
        if self.request_deadline is not None and self.request_deadline <= 0:
            raise ValueError("request_deadline must be positive")


@dataclass(frozen=True)
class ConversationEntry:
    role: Role
    content: str
    model: Optional[str] = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = field(default_factory=datetime.now)

    def to_message(self) -> Dict[str, str]:
        """Message dict in the shape the chat endpoint expects."""
        return {'role': self.role.value, 'content': self.content}


@dataclass(frozen=True)
class ModelDescriptor:
    name: str
    size: str = ""
    parameters: str = ""
    quantization: str = ""
    downloaded: bool = False


@dataclass(frozen=True)
class ModelListing:
    """
    Result of listing models.

    `error` is None for a healthy listing. When a refresh failed it holds the
    failure message, and `stale` tells whether `models` is the last
    known-good cache (True) or empty (False).
    """

    models: FrozenSet[ModelDescriptor] = frozenset()
    fetched_at: Optional[datetime] = None
    stale: bool = False
    error: Optional[str] = None

    @property
    def names(self) -> FrozenSet[str]:
        return frozenset(model.name for model in self.models)

    def get(self, name: str) -> Optional[ModelDescriptor]:
        for model in self.models:
            if model.name == name:
                return model
        return None


@dataclass
class HealthStatus:
    healthy: bool
    elapsed: float
    model: str
    message: str = ""
    memory_summary: str = ""
    error: Optional[str] = None


class ActiveModel:
    """
    Holder for the name of the model that answers chat requests.

    Readers take a snapshot with get(); the swap in set() is a single
    assignment under the lock, so a reader sees either the old or the new
    name and never anything in between.
    """

    def __init__(self, name: str = DEFAULT_MODEL):
        self._lock = threading.Lock()
        self._name = name

    def get(self) -> str:
        with self._lock:
            return self._name

    def set(self, name: str) -> str:
        """Swap in a new model name and return the previous one."""
        with self._lock:
            previous = self._name
            self._name = name
            return previous

    def __repr__(self) -> str:
        return f"ActiveModel({self.get()!r})"
