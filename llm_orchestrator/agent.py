"""
The orchestrating agent: validates input, feeds recent conversation into the
chat executor, records the exchange in memory and keeps running metrics.
"""

import logging
import threading
import time
from typing import Any, Dict, List

from .errors import wrap_error
from .executor import ChatExecutor
from .memory import ConversationMemory
from .models import ModelManager
from .types import HealthStatus, ModelDescriptor, ModelListing
from .validation import is_valid_text, sanitize


logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful, intelligent, and friendly AI assistant. "
    "You provide clear, accurate, and engaging responses. "
    "You can help with various tasks including coding, writing, analysis, "
    "and general knowledge questions. Remember the conversation context and "
    "refer back to previous messages when relevant."
)

HEALTH_PROBE = "test"
HEALTH_SYSTEM_PROMPT = "You are a health check assistant. Respond with 'OK' if you receive this message."


class Agent:
    """Ties validation, memory, the chat executor and the model manager together."""

    def __init__(self, executor: ChatExecutor, model_manager: ModelManager,
                 memory: ConversationMemory, system_prompt: str = DEFAULT_SYSTEM_PROMPT):
        self.executor = executor
        self.model_manager = model_manager
        self.memory = memory
        self.system_prompt = system_prompt

        self._stats_lock = threading.Lock()
        self.session_start = time.time()
        self.last_activity = self.session_start
        self.total_requests = 0
        self.successful_requests = 0
        self.failed_requests = 0
        self.total_response_time = 0.0

    @property
    def current_model(self) -> str:
        return self.model_manager.current_model

    def run(self, user_input: str) -> str:
        """
        Answer one user message.

        The active model is read once up front; a concurrent switch_model does
        not affect this call. Both sides of the exchange are stored in memory
        only when the model answered.

        Raises:
            OrchestratorError: Any failure, typed and tagged with its operation
        """
        with self._stats_lock:
            self.total_requests += 1
            self.last_activity = time.time()

        started = time.monotonic()
        try:
            is_valid_text(user_input)
            model = self.model_manager.current_model
            history = self.memory.get_recent(self.memory.capacity)

            logger.info(f"Processing user input: {user_input.strip()[:50]}...")
            logger.debug(f"Memory size: {len(history)}/{self.memory.capacity}")

            response = self.executor.execute(user_input, self.system_prompt, history, model=model)

            self.memory.add_exchange(sanitize(user_input), response, model=model)
        except Exception as e:
            with self._stats_lock:
                self.failed_requests += 1
            error = wrap_error(e, 'run')
            logger.error(f"Request failed: {error}")
            if error is e:
                raise
            raise error from e

        elapsed = time.monotonic() - started
        with self._stats_lock:
            self.successful_requests += 1
            self.total_response_time += elapsed
        logger.info(f"Response generated in {elapsed:.2f}s with {model}")
        logger.debug(f"Average response time: {self.average_response_time():.2f}s")
        return response

    def check_health(self) -> HealthStatus:
        """Send a fixed probe to the current model. Never raises."""
        model = self.model_manager.current_model
        logger.info(f"Performing health check against {model}")
        started = time.monotonic()
        try:
            reply = self.executor.execute(
                HEALTH_PROBE,
                HEALTH_SYSTEM_PROMPT,
                model=model,
                timeout=self.executor.config.health_check_timeout,
            )
        except Exception as e:
            error = wrap_error(e, 'health_check')
            elapsed = time.monotonic() - started
            logger.error(f"Health check failed: {error}")
            return HealthStatus(
                healthy=False,
                elapsed=elapsed,
                model=model,
                message="Ollama is not responding",
                memory_summary=self.memory.summary(),
                error=str(error),
            )

        elapsed = time.monotonic() - started
        logger.info(f"Health check completed in {elapsed:.2f}s")
        return HealthStatus(
            healthy=True,
            elapsed=elapsed,
            model=model,
            message=f"Ollama is responding: {reply.strip()[:50]}",
            memory_summary=self.memory.summary(),
        )

    # Model lifecycle

    def list_models(self) -> ModelListing:
        return self.model_manager.list_models()

    def list_available_models(self) -> List[ModelDescriptor]:
        return self.model_manager.list_available_models()

    def pull_model(self, name: str) -> str:
        return self.model_manager.pull_model(name)

    def delete_model(self, name: str) -> str:
        return self.model_manager.delete_model(name)

    def switch_model(self, name: str) -> str:
        return self.model_manager.switch_model(name)

    # Memory

    def get_memory_size(self) -> int:
        return self.memory.size()

    def get_memory_summary(self) -> str:
        return self.memory.summary()

    def clear_memory(self) -> None:
        self.memory.clear()

    # Metrics

    def average_response_time(self) -> float:
        with self._stats_lock:
            if not self.successful_requests:
                return 0.0
            return self.total_response_time / self.successful_requests

    def get_system_stats(self) -> Dict[str, Any]:
        average = self.average_response_time()
        with self._stats_lock:
            total = self.total_requests
            success_rate = int(self.successful_requests / total * 100) if total else 0
            return {
                'uptime': time.time() - self.session_start,
                'total_requests': total,
                'successful_requests': self.successful_requests,
                'failed_requests': self.failed_requests,
                'success_rate': success_rate,
                'average_response_time': average,
                'memory_size': self.memory.size(),
                'max_memory_size': self.memory.capacity,
                'last_activity': self.last_activity,
                'current_model': self.model_manager.current_model,
            }
