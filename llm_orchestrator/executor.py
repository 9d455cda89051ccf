"""
Chat executor for the LLM server's chat endpoint.
Builds the message list, retries over a Transport and extracts the reply.
"""

import logging
import time
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from ollama import ChatResponse
from pydantic import ValidationError as SchemaError

from .errors import (
    ModelNotFoundError,
    NetworkError,
    OrchestratorError,
    RequestTimeoutError,
    ValidationError,
)
from .transport import Transport, TransportRequest, TransportResponse
from .types import ActiveModel, ConversationEntry, ExecutorConfig
from .validation import is_valid_model_name, is_valid_text, sanitize


logger = logging.getLogger(__name__)

CHAT_PATH = '/api/chat'

HistoryItem = Union[ConversationEntry, Mapping[str, str]]


def retry_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """
    Delay before the attempt following `attempt` (1-based).

    Linear backoff capped at max_delay: base_delay * attempt. This is not
    exponential backoff.
    """
    return min(base_delay * attempt, max_delay)


def extract_content(data: Any) -> str:
    """Pull the assistant content out of a chat response body, or '' if there is none."""
    try:
        response = ChatResponse.model_validate(data)
    except SchemaError as e:
        logger.warning(f"Unexpected chat response format: {e.error_count()} schema errors")
        return ''
    return response.message.content or ''


def error_detail(response: TransportResponse) -> str:
    """The server's 'error' field if the body has one, else the raw body."""
    try:
        data = response.json()
    except NetworkError:
        return response.body[:200]
    if isinstance(data, dict) and data.get('error'):
        return str(data['error'])
    return response.body[:200]


class ChatExecutor:
    """Stateless chat client; safe to share between threads."""

    def __init__(self, config: ExecutorConfig, transport: Transport, active_model: ActiveModel):
        """
        Args:
            config: Timeouts and retry settings
            transport: Transport used for every attempt
            active_model: Holder read once at the start of each call
        """
        self.config = config
        self.transport = transport
        self.active_model = active_model

    def _build_messages(self, prompt: str, system_prompt: str,
                        history: Iterable[HistoryItem]) -> List[Dict[str, str]]:
        """Optional system message, then history oldest-first, then the user message."""
        messages = []
        if system_prompt:
            messages.append({'role': 'system', 'content': system_prompt})
        for item in history:
            if isinstance(item, ConversationEntry):
                messages.append(item.to_message())
            else:
                messages.append({'role': item['role'], 'content': item['content']})
        messages.append({'role': 'user', 'content': prompt})
        return messages

    def execute(self, prompt: str, system_prompt: str = "",
                history: Iterable[HistoryItem] = (),
                model: Optional[str] = None,
                timeout: Optional[float] = None) -> str:
        """
        Run a chat completion and return the assistant's reply.

        Args:
            prompt: Raw user prompt; validated and sanitized here
            system_prompt: Optional system message
            history: Earlier messages, oldest first
            model: Model to use; defaults to the active model read at call start
            timeout: Per-attempt timeout; defaults to the configured request timeout

        Raises:
            ValidationError: Bad prompt or model name, before any network call
            ModelNotFoundError: The last attempt got no content or an unknown model
            NetworkError: All attempts failed on the transport
            RequestTimeoutError: The call deadline expired
        """
        try:
            is_valid_text(prompt)
            model = model or self.active_model.get()
            is_valid_model_name(model)
        except ValidationError as e:
            raise e.with_operation('chat')

        messages = self._build_messages(sanitize(prompt), system_prompt, history)
        logger.debug(f"Context: {len(messages) - 1} previous messages included")
        return self._execute_with_retry(model, messages, timeout or self.config.request_timeout)

    def _execute_with_retry(self, model: str, messages: List[Dict[str, str]], timeout: float) -> str:
        max_retries = self.config.max_retries
        payload = {'model': model, 'messages': messages, 'stream': False}
        started = time.monotonic()
        deadline = None
        if self.config.request_deadline is not None:
            deadline = started + self.config.request_deadline
        last_error: Optional[OrchestratorError] = None

        for attempt in range(1, max_retries + 1):
            attempt_timeout = timeout
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise RequestTimeoutError(
                        f"Deadline of {self.config.request_deadline}s exceeded after {attempt - 1} attempts", 'chat'
                    ) from last_error
                attempt_timeout = min(timeout, remaining)

            logger.info(f"Attempt {attempt}/{max_retries} with model {model}")
            try:
                request = TransportRequest('POST', CHAT_PATH, payload, attempt_timeout)
                content = self._process_response(self.transport.send(request), model)
                logger.info(f"Success on attempt {attempt} ({time.monotonic() - started:.2f}s)")
                return content
            except OrchestratorError as e:
                last_error = e
                logger.warning(f"Attempt {attempt} failed: {e}")

            if attempt < max_retries:
                delay = retry_delay(attempt, self.config.retry_base_delay, self.config.retry_max_delay)
                if deadline is not None:
                    # Wake at the deadline at the latest; the next check ends the call
                    delay = min(delay, max(deadline - time.monotonic(), 0.0))
                logger.debug(f"Waiting {delay:.1f}s before retry...")
                time.sleep(delay)

        if isinstance(last_error, ModelNotFoundError):
            raise last_error.with_operation('chat')
        message = last_error.message if last_error else "unknown error"
        raise NetworkError(f"All {max_retries} attempts failed: {message}", 'chat') from last_error

    def _process_response(self, response: TransportResponse, model: str) -> str:
        if response.status_code == 404:
            raise ModelNotFoundError(f"Model '{model}' not found: {error_detail(response)}")
        if not response.ok:
            raise NetworkError(f"HTTP {response.status_code}: {error_detail(response)}")

        content = extract_content(response.json())
        if not content.strip():
            raise ModelNotFoundError(f"No content found in response from model '{model}'")
        return content
