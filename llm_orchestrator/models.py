"""
Model lifecycle management: list, pull, delete and switch the active model.
"""

import json
import logging
import threading
import time
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from ollama import ListResponse, ProgressResponse
from pydantic import ValidationError as SchemaError

from .errors import (
    ModelDownloadError,
    ModelNotFoundError,
    NetworkError,
    OrchestratorError,
    ValidationError,
)
from .executor import error_detail
from .transport import Transport, TransportRequest, TransportResponse
from .types import ActiveModel, ExecutorConfig, ModelDescriptor, ModelListing
from .validation import is_valid_model_name


logger = logging.getLogger(__name__)

TAGS_PATH = '/api/tags'
PULL_PATH = '/api/pull'
DELETE_PATH = '/api/delete'

DEFAULT_CACHE_TTL = 30.0

MODEL_DOWNLOADED = "Model downloaded successfully"
MODEL_DELETED = "Model deleted successfully"
MODEL_SWITCHED = "Model switched successfully"

# Well-known models offered for download: (name, size, parameters, quantization)
MODEL_CATALOG = [
    ("llama3.1:8b", "4.6GB", "8B", "Q4_K_M"),
    ("llama3.1:70b", "39GB", "70B", "Q4_K_M"),
    ("llama3.2:1b", "1.2GB", "1.2B", "Q8_0"),
    ("llama3.2:3b", "1.9GB", "3.2B", "Q4_K_M"),
    ("codellama:7b", "3.6GB", "7B", "Q4_0"),
    ("codellama:13b", "7.3GB", "13B", "Q4_0"),
    ("codellama:34b", "19GB", "34B", "Q4_0"),
    ("mistral:7b", "4.1GB", "7B", "Q4_K_M"),
    ("mixtral:8x7b", "45GB", "8x7B", "Q4_K_M"),
    ("neural-chat:7b", "4.1GB", "7B", "Q4_K_M"),
    ("starling-lm:7b", "4.1GB", "7B", "Q4_K_M"),
    ("openchat:7b", "4.1GB", "7B", "Q4_K_M"),
    ("gemma:2b", "1.6GB", "2B", "Q4_K_M"),
    ("gemma:7b", "4.8GB", "7B", "Q4_K_M"),
    ("phi3:mini", "2.3GB", "3.8B", "Q4_K_M"),
    ("phi3:medium", "7.4GB", "14B", "Q4_K_M"),
    ("qwen2.5:7b", "4.4GB", "7B", "Q4_K_M"),
    ("qwen2.5:14b", "8.6GB", "14B", "Q4_K_M"),
    ("qwen2.5:32b", "19GB", "32B", "Q4_K_M"),
    ("deepseek-coder:6.7b", "3.8GB", "6.7B", "Q4_K_M"),
    ("deepseek-coder:33b", "19GB", "33B", "Q4_K_M"),
]


def parse_listing(data: Any) -> List[ModelDescriptor]:
    """
    Turn an /api/tags body into model descriptors.

    Raises:
        NetworkError: If the body does not look like a model listing
    """
    if not isinstance(data, dict) or 'models' not in data:
        raise NetworkError("Malformed model listing: no 'models' field")
    try:
        parsed = ListResponse.model_validate(data)
    except SchemaError as e:
        raise NetworkError(f"Malformed model listing: {e.error_count()} schema errors") from e

    raw_models = data['models'] if isinstance(data['models'], list) else []
    descriptors = []
    for index, model in enumerate(parsed.models):
        # Older servers only send 'name'
        raw = raw_models[index] if index < len(raw_models) and isinstance(raw_models[index], dict) else {}
        name = model.model or raw.get('name')
        if not name:
            continue
        details = model.details
        descriptors.append(ModelDescriptor(
            name=name,
            size=model.size.human_readable(decimal=True) if model.size is not None else "",
            parameters=(details.parameter_size or "") if details else "",
            quantization=(details.quantization_level or "") if details else "",
            downloaded=True,
        ))
    return descriptors


class ModelManager:
    """Lists, pulls, deletes and switches models on the LLM server."""

    def __init__(self, config: ExecutorConfig, transport: Transport, active_model: ActiveModel,
                 cache_ttl: float = DEFAULT_CACHE_TTL,
                 clock: Callable[[], float] = time.monotonic):
        """
        Args:
            config: Timeouts used for listing and download requests
            transport: Transport shared with the chat executor
            active_model: Holder swapped by switch_model
            cache_ttl: Seconds a listing stays fresh
            clock: Monotonic clock, replaceable in tests
        """
        self.config = config
        self.transport = transport
        self.active_model = active_model
        self.cache_ttl = cache_ttl
        self.clock = clock
        self._lock = threading.Lock()
        self._cache: Optional[ModelListing] = None
        self._cached_at: Optional[float] = None

    @property
    def current_model(self) -> str:
        return self.active_model.get()

    def invalidate_cache(self) -> None:
        with self._lock:
            self._cached_at = None

    def _fresh_cache(self) -> Optional[ModelListing]:
        with self._lock:
            if self._cache is None or self._cached_at is None:
                return None
            if self.clock() - self._cached_at >= self.cache_ttl:
                return None
            return self._cache

    def list_models(self) -> ModelListing:
        """
        List downloaded models.

        Returns the cached listing while it is younger than the TTL. A failed
        refresh does not raise: it returns the last known-good listing marked
        stale, or an empty listing, with `error` set.
        """
        cached = self._fresh_cache()
        if cached is not None:
            return cached

        logger.info("Refreshing model listing")
        try:
            response = self.transport.send(
                TransportRequest('GET', TAGS_PATH, None, self.config.request_timeout)
            )
            if not response.ok:
                raise NetworkError(f"HTTP {response.status_code}: {error_detail(response)}")
            models = parse_listing(response.json())
        except OrchestratorError as e:
            e.with_operation('list_models')
            with self._lock:
                last_good = self._cache
            if last_good is not None:
                logger.warning(f"Model listing refresh failed, serving cached listing: {e}")
                return replace(last_good, stale=True, error=str(e))
            logger.warning(f"Model listing refresh failed with no cached listing: {e}")
            return ModelListing(error=str(e))

        listing = ModelListing(models=frozenset(models), fetched_at=datetime.now())
        with self._lock:
            self._cache = listing
            self._cached_at = self.clock()
        logger.info(f"Retrieved {len(listing.models)} models")
        return listing

    def list_available_models(self) -> List[ModelDescriptor]:
        """Catalog models merged with the server listing, downloaded ones flagged."""
        listing = self.list_models()
        downloaded = {model.name: model for model in listing.models}

        available = []
        for name, size, parameters, quantization in MODEL_CATALOG:
            if name in downloaded:
                available.append(downloaded.pop(name))
            else:
                available.append(ModelDescriptor(name, size, parameters, quantization, downloaded=False))
        available.extend(sorted(downloaded.values(), key=lambda model: model.name))
        return available

    def _validate(self, name: str, operation: str) -> None:
        try:
            is_valid_model_name(name)
        except ValidationError as e:
            raise e.with_operation(operation)

    def _send_model_request(self, request: TransportRequest, name: str, operation: str) -> TransportResponse:
        try:
            response = self.transport.send(request)
        except OrchestratorError as e:
            raise ModelDownloadError(f"Request for model '{name}' failed: {e.message}", operation) from e
        if not response.ok:
            raise ModelDownloadError(
                f"Request for model '{name}' failed with HTTP {response.status_code}: {error_detail(response)}",
                operation,
            )
        return response

    def pull_model(self, name: str) -> str:
        """
        Download a model.

        Raises:
            ValidationError: Bad model name, before any network call
            ModelDownloadError: The pull failed on the transport or the server
        """
        self._validate(name, 'pull_model')
        logger.info(f"Pulling model: {name}")

        response = self._send_model_request(
            TransportRequest('POST', PULL_PATH, {'name': name, 'stream': False}, self.config.download_timeout),
            name,
            'pull_model',
        )
        status = self._final_status(response)
        if 'error' in status:
            raise ModelDownloadError(f"Failed to download model '{name}': {status['error']}", 'pull_model')

        self.invalidate_cache()
        logger.info(f"Model {name} pulled successfully ({status.get('status', 'no status')})")
        return MODEL_DOWNLOADED

    def _final_status(self, response: TransportResponse) -> Dict[str, Any]:
        """Last status object of a pull body; streamed bodies hold one JSON object per line."""
        lines = [line for line in response.body.splitlines() if line.strip()]
        if not lines:
            return {}
        try:
            data = json.loads(lines[-1])
        except json.JSONDecodeError:
            logger.warning(f"Pull returned a non-JSON body: {lines[-1][:200]!r}")
            return {}
        if not isinstance(data, dict):
            return {}
        if data.get('error'):
            return {'error': str(data['error'])}
        try:
            progress = ProgressResponse.model_validate(data)
        except SchemaError:
            return {}
        return {'status': progress.status} if progress.status else {}

    def delete_model(self, name: str) -> str:
        """
        Delete a downloaded model.

        Raises:
            ValidationError: Bad model name, before any network call
            ModelDownloadError: The delete failed on the transport or the server
        """
        self._validate(name, 'delete_model')
        logger.info(f"Deleting model: {name}")

        self._send_model_request(
            TransportRequest('DELETE', DELETE_PATH, {'name': name}, self.config.request_timeout),
            name,
            'delete_model',
        )
        self.invalidate_cache()
        logger.info(f"Model {name} deleted successfully")
        return MODEL_DELETED

    def switch_model(self, name: str) -> str:
        """
        Make `name` the active model.

        The active model changes only if the name is valid and the server
        lists the model. In-flight chats keep the model they started with.

        Raises:
            ValidationError: Bad model name
            ModelNotFoundError: The server does not list the model
            NetworkError: The listing could not be fetched to check the model
        """
        self._validate(name, 'switch_model')
        logger.info(f"Switching to model: {name}")

        listing = self.list_models()
        match = listing.get(name) or listing.get(f"{name}:latest")
        if match is None:
            if listing.error and not listing.models:
                raise NetworkError(f"Cannot verify model '{name}': {listing.error}", 'switch_model')
            raise ModelNotFoundError(f"Model '{name}' is not available on the server", 'switch_model')

        previous = self.active_model.set(name)
        logger.info(f"Model switched from {previous} to {name} ({match.size or 'unknown size'})")
        return MODEL_SWITCHED
