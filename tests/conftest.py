"""
Fixtures shared by the test suite.

FakeTransport replays scripted responses or errors and records every request
it receives, so executor and model manager behaviour can be checked without a
running LLM server.
"""

import json
from typing import Any, List, Union

import pytest

from llm_orchestrator.executor import ChatExecutor
from llm_orchestrator.memory import ConversationMemory
from llm_orchestrator.models import ModelManager
from llm_orchestrator.transport import Transport, TransportRequest, TransportResponse
from llm_orchestrator.types import ActiveModel, ExecutorConfig


def chat_body(content: str, model: str = "llama3.1:8b") -> str:
    return json.dumps({
        "model": model,
        "created_at": "2024-07-23T12:00:00Z",
        "message": {"role": "assistant", "content": content},
        "done": True,
    })


def tags_body(*names: str) -> str:
    return json.dumps({
        "models": [
            {
                "name": name,
                "model": name,
                "modified_at": "2024-07-23T12:00:00Z",
                "size": 4920753328,
                "digest": "abc123",
                "details": {
                    "format": "gguf",
                    "family": "llama",
                    "parameter_size": "8.0B",
                    "quantization_level": "Q4_K_M",
                },
            }
            for name in names
        ]
    })


class FakeTransport(Transport):
    name = "fake"

    def __init__(self, *script: Union[TransportResponse, Exception]):
        self.script: List[Union[TransportResponse, Exception]] = list(script)
        self.requests: List[TransportRequest] = []

    def queue(self, *items: Union[TransportResponse, Exception]) -> None:
        self.script.extend(items)

    def send(self, request: TransportRequest) -> TransportResponse:
        self.requests.append(request)
        if not self.script:
            raise AssertionError(f"Unexpected request: {request.method} {request.path}")
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def ok(body: Any = "", status_code: int = 200) -> TransportResponse:
    if not isinstance(body, str):
        body = json.dumps(body)
    return TransportResponse(status_code, body)


@pytest.fixture
def config():
    return ExecutorConfig(
        base_url="http://localhost:11434",
        max_retries=3,
        retry_base_delay=1.0,
        retry_max_delay=10.0,
    )


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def active_model():
    return ActiveModel("llama3.1:8b")


@pytest.fixture
def executor(config, transport, active_model):
    return ChatExecutor(config, transport, active_model)


@pytest.fixture
def model_manager(config, transport, active_model):
    return ModelManager(config, transport, active_model)


@pytest.fixture
def memory():
    return ConversationMemory(capacity=10)


@pytest.fixture
def no_sleep(monkeypatch):
    """Replace time.sleep in the executor and record the requested delays."""
    delays = []
    monkeypatch.setattr("llm_orchestrator.executor.time.sleep", delays.append)
    return delays


@pytest.fixture
def fake_curl(tmp_path):
    """Build an executable that ignores its arguments and prints `output` through printf."""
    def build(output: str) -> str:
        script = tmp_path / "curl"
        script.write_text(f"#!/bin/sh\nprintf '{output}'\n")
        script.chmod(0o755)
        return str(script)
    return build
