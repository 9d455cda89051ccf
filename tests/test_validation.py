import pytest

from llm_orchestrator.errors import ValidationError
from llm_orchestrator.validation import (
    is_valid_model_name,
    is_valid_text,
    is_valid_url,
    sanitize,
)


def test_valid_text_passes():
    assert is_valid_text("What is the capital of France?") == "What is the capital of France?"


@pytest.mark.parametrize("text", ["", "   ", "\n\t"])
def test_blank_text_rejected(text):
    with pytest.raises(ValidationError) as exc_info:
        is_valid_text(text)
    assert "cannot be empty" in str(exc_info.value)


def test_text_too_long_rejected():
    with pytest.raises(ValidationError) as exc_info:
        is_valid_text("a" * 10001)
    assert "too long" in str(exc_info.value)


def test_text_length_limit_is_configurable():
    assert is_valid_text("a" * 20, max_length=20)
    with pytest.raises(ValidationError):
        is_valid_text("a" * 21, max_length=20)


@pytest.mark.parametrize("text", [
    "<script>alert(1)</script>",
    "click JavaScript:void(0)",
    "<img src=x ONERROR=alert(1)>",
    "please eval(this)",
    "steal document.cookie now",
])
def test_injection_patterns_rejected(text):
    with pytest.raises(ValidationError) as exc_info:
        is_valid_text(text)
    assert "harmful" in str(exc_info.value)


def test_sanitize_escapes_script_tag():
    assert sanitize("<script>") == "&lt;script&gt;"


def test_sanitize_trims_and_escapes_each_character_once():
    assert sanitize("  Tom & \"Jerry\" 'x'  ") == "Tom &amp; &quot;Jerry&quot; &#x27;x&#x27;"


def test_sanitize_leaves_plain_text_alone():
    assert sanitize("hello world") == "hello world"


@pytest.mark.parametrize("name", ["llama3.1:8b", "mistral", "deepseek-coder:6.7b", "my_model.v2"])
def test_valid_model_names(name):
    assert is_valid_model_name(name) == name


@pytest.mark.parametrize("name", ["../etc/passwd", "bad name!", "model;rm", "a/b", "", "  ", "x" * 101, "llama\n"])
def test_invalid_model_names(name):
    with pytest.raises(ValidationError):
        is_valid_model_name(name)


def test_model_name_at_length_limit_is_valid():
    assert is_valid_model_name("m" * 100)


@pytest.mark.parametrize("url", ["http://localhost:11434", "https://ollama.example.com", "http://127.0.0.1:11434/"])
def test_valid_urls(url):
    assert is_valid_url(url) == url


@pytest.mark.parametrize("url", ["", "localhost:11434", "ftp://host", "http://"])
def test_invalid_urls(url):
    with pytest.raises(ValidationError):
        is_valid_url(url)
