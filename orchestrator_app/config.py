import os
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from dotenv import load_dotenv

from llm_orchestrator.agent import DEFAULT_SYSTEM_PROMPT
from llm_orchestrator.errors import ValidationError
from llm_orchestrator.memory import DEFAULT_CAPACITY
from llm_orchestrator.models import DEFAULT_CACHE_TTL
from llm_orchestrator.types import DEFAULT_BASE_URL, DEFAULT_MODEL, ExecutorConfig
from llm_orchestrator.validation import is_valid_model_name, is_valid_url


logger = logging.getLogger(__name__)


@dataclass
class Config:
    base_url: str
    model_name: str
    username: Optional[str]
    password: Optional[str]
    log_level_str: str
    system_prompt: str
    max_memory_size: int
    model_cache_ttl: float
    executor: ExecutorConfig
    session_id: str


def setup_logging(log_level_str: str) -> None:
    level = getattr(logging, log_level_str.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger('httpx').setLevel(max(level, logging.WARNING))


def _parse_int_env(name: str, default: int) -> int:
    try:
        value = os.getenv(name)
        if value is None:
            return default
        return int(value.strip())
    except ValueError:
        logger.warning(f"Ignoring malformed {name}={os.getenv(name)!r}, using {default}")
        return default


def _parse_float_env(name: str, default: Optional[float]) -> Optional[float]:
    try:
        value = os.getenv(name)
        if value is None:
            return default
        return float(value.strip())
    except ValueError:
        logger.warning(f"Ignoring malformed {name}={os.getenv(name)!r}, using {default}")
        return default


def load_config() -> Config:
    load_dotenv()

    log_level_str = os.getenv('LOGGING_LEVEL', 'INFO').upper()
    if log_level_str.startswith('LOGGING.'):
        log_level_str = log_level_str.replace('LOGGING.', '')

    base_url = os.getenv('OLLAMA_BASE_URL') or DEFAULT_BASE_URL
    try:
        is_valid_url(base_url)
    except ValidationError as e:
        logger.warning(f"{e}, using {DEFAULT_BASE_URL}")
        base_url = DEFAULT_BASE_URL

    model_name = os.getenv('MODEL_NAME', DEFAULT_MODEL)
    try:
        is_valid_model_name(model_name)
    except ValidationError as e:
        logger.warning(f"{e}, using {DEFAULT_MODEL}")
        model_name = DEFAULT_MODEL

    username = os.getenv('OLLAMA_USERNAME')
    password = os.getenv('OLLAMA_PASSWORD')
    system_prompt = os.getenv('SYSTEM_PROMPT', DEFAULT_SYSTEM_PROMPT)

    max_memory_size = _parse_int_env('MAX_MEMORY_SIZE', DEFAULT_CAPACITY)
    if max_memory_size < 1:
        max_memory_size = DEFAULT_CAPACITY

    max_retries = _parse_int_env('MAX_RETRIES', 3)
    if max_retries < 1:
        max_retries = 3

    request_deadline = _parse_float_env('REQUEST_DEADLINE', None)
    if request_deadline is not None and request_deadline <= 0:
        request_deadline = None

    executor = ExecutorConfig(
        base_url=base_url,
        connect_timeout=_parse_float_env('CONNECT_TIMEOUT', 30.0),
        request_timeout=_parse_float_env('REQUEST_TIMEOUT', 300.0),
        download_timeout=_parse_float_env('DOWNLOAD_TIMEOUT', 1800.0),
        health_check_timeout=_parse_float_env('HEALTH_CHECK_TIMEOUT', 10.0),
        request_deadline=request_deadline,
        max_retries=max_retries,
        retry_base_delay=max(_parse_float_env('RETRY_BASE_DELAY', 1.0), 0.0),
        retry_max_delay=max(_parse_float_env('RETRY_MAX_DELAY', 10.0), 0.0),
        username=username,
        password=password,
        verify_ssl=os.getenv('VERIFY_SSL', 'true').lower() == 'true',
    )

    session_id = f"session_{datetime.now().strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:8]}"

    return Config(
        base_url=base_url,
        model_name=model_name,
        username=username,
        password=password,
        log_level_str=log_level_str,
        system_prompt=system_prompt,
        max_memory_size=max_memory_size,
        model_cache_ttl=_parse_float_env('MODEL_CACHE_TTL', DEFAULT_CACHE_TTL),
        executor=executor,
        session_id=session_id,
    )
