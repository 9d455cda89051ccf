from unittest.mock import MagicMock, patch

import pytest

from llm_orchestrator.errors import ModelNotFoundError
from llm_orchestrator.types import HealthStatus, ModelDescriptor, ModelListing
from orchestrator_app.session import ChatSession


@pytest.fixture
def agent():
    agent = MagicMock()
    agent.current_model = "llama3.1:8b"
    agent.get_memory_summary.return_value = "0/10 messages (0%)"
    return agent


@pytest.fixture
def session(agent):
    config = MagicMock(base_url="http://localhost:11434", session_id="session_test")
    return ChatSession(agent=agent, config=config)


def test_plain_text_goes_to_agent(session, agent, capsys):
    agent.run.return_value = "Hi!"
    session.handle("hello")
    agent.run.assert_called_once_with("hello")
    assert "Hi!" in capsys.readouterr().out


def test_commands_dispatch_with_argument(session, agent):
    agent.switch_model.return_value = "Model switched successfully"
    session.handle("/switch mistral:7b")
    agent.switch_model.assert_called_once_with("mistral:7b")
    agent.run.assert_not_called()


def test_errors_are_printed_not_raised(session, agent, capsys):
    agent.switch_model.side_effect = ModelNotFoundError("Model 'x' is not available", "switch_model")
    session.handle("/switch x")
    out = capsys.readouterr().out
    assert "Model not found" in out
    assert "switch_model" in out


def test_models_listing_shows_stale_warning(session, agent, capsys):
    agent.list_models.return_value = ModelListing(
        models=frozenset({ModelDescriptor("llama3.1:8b", "4.9GB", "8.0B", "Q4_K_M", True)}),
        stale=True,
        error="list_models: refused",
    )
    session.handle("/models")
    out = capsys.readouterr().out
    assert "cached listing" in out
    assert "→ llama3.1:8b (4.9GB, 8.0B, Q4_K_M)" in out


def test_health_command(session, agent, capsys):
    agent.check_health.return_value = HealthStatus(False, 0.25, "llama3.1:8b", "Ollama is not responding",
                                                   "0/10 messages (0%)", "chat: All 3 attempts failed")
    session.handle("/health")
    out = capsys.readouterr().out
    assert "Unhealthy" in out
    assert "250ms" in out


def test_delete_requires_confirmation(session, agent):
    with patch("orchestrator_app.session.get_user_confirmation", return_value=False):
        session.handle("/delete mistral:7b")
    agent.delete_model.assert_not_called()


def test_run_loop_handles_clear_and_exit(session, agent):
    with patch("builtins.input", side_effect=["clear", "", "exit"]):
        session.run()
    agent.clear_memory.assert_called_once()
    agent.run.assert_not_called()


def test_run_loop_stops_on_eof(session, agent):
    agent.run.return_value = "ok"
    with patch("builtins.input", side_effect=["hi", EOFError()]):
        session.run()
    agent.run.assert_called_once_with("hi")
