import logging
from unittest.mock import patch

import pytest

from orchestrator_app.config import load_config, setup_logging


ENV_VARS = [
    "OLLAMA_BASE_URL", "MODEL_NAME", "SYSTEM_PROMPT", "MAX_MEMORY_SIZE", "CONNECT_TIMEOUT",
    "REQUEST_TIMEOUT", "DOWNLOAD_TIMEOUT", "HEALTH_CHECK_TIMEOUT", "REQUEST_DEADLINE",
    "MAX_RETRIES", "RETRY_BASE_DELAY", "RETRY_MAX_DELAY", "MODEL_CACHE_TTL",
    "OLLAMA_USERNAME", "OLLAMA_PASSWORD", "VERIFY_SSL", "LOGGING_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    with patch("orchestrator_app.config.load_dotenv"):
        yield monkeypatch


def test_defaults():
    config = load_config()

    assert config.base_url == "http://localhost:11434"
    assert config.model_name == "llama3.1:8b"
    assert config.max_memory_size == 10
    assert config.model_cache_ttl == 30.0
    assert config.log_level_str == "INFO"
    assert config.session_id.startswith("session_")
    assert config.executor.max_retries == 3
    assert config.executor.retry_base_delay == 1.0
    assert config.executor.retry_max_delay == 10.0
    assert config.executor.download_timeout == 1800.0
    assert config.executor.verify_ssl
    assert config.executor.request_deadline is None


def test_environment_overrides(clean_env):
    clean_env.setenv("OLLAMA_BASE_URL", "http://gpu-box:11434")
    clean_env.setenv("MODEL_NAME", "mistral:7b")
    clean_env.setenv("MAX_MEMORY_SIZE", "20")
    clean_env.setenv("MAX_RETRIES", "5")
    clean_env.setenv("RETRY_BASE_DELAY", "0.5")
    clean_env.setenv("REQUEST_DEADLINE", "120")
    clean_env.setenv("OLLAMA_USERNAME", "me")
    clean_env.setenv("OLLAMA_PASSWORD", "secret")
    clean_env.setenv("VERIFY_SSL", "false")
    clean_env.setenv("LOGGING_LEVEL", "logging.debug")

    config = load_config()

    assert config.executor.base_url == "http://gpu-box:11434"
    assert config.model_name == "mistral:7b"
    assert config.max_memory_size == 20
    assert config.executor.max_retries == 5
    assert config.executor.retry_base_delay == 0.5
    assert config.executor.request_deadline == 120.0
    assert config.executor.username == "me"
    assert not config.executor.verify_ssl
    assert config.log_level_str == "DEBUG"


def test_malformed_values_fall_back_to_defaults(clean_env):
    clean_env.setenv("MAX_MEMORY_SIZE", "lots")
    clean_env.setenv("MAX_RETRIES", "0")
    clean_env.setenv("REQUEST_TIMEOUT", "soon")
    clean_env.setenv("REQUEST_DEADLINE", "-5")
    clean_env.setenv("MODEL_NAME", "../etc/passwd")
    clean_env.setenv("OLLAMA_BASE_URL", "not a url")

    config = load_config()

    assert config.max_memory_size == 10
    assert config.executor.max_retries == 3
    assert config.executor.request_timeout == 300.0
    assert config.executor.request_deadline is None
    assert config.model_name == "llama3.1:8b"
    assert config.base_url == "http://localhost:11434"


def test_executor_config_is_immutable():
    config = load_config()
    with pytest.raises(AttributeError):
        config.executor.max_retries = 10


def test_setup_logging_sets_level():
    setup_logging("debug")
    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.WARNING
    setup_logging("nonsense")
    assert logging.getLogger().level == logging.INFO
