#!/usr/bin/env python3
"""
Local LLM Orchestrator - Main Application
A console chat front-end over a locally hosted Ollama server.
"""

import logging

from llm_orchestrator.agent import Agent
from llm_orchestrator.executor import ChatExecutor
from llm_orchestrator.memory import ConversationMemory
from llm_orchestrator.models import ModelManager
from llm_orchestrator.transport import build_transport
from llm_orchestrator.types import ActiveModel

from orchestrator_app.config import load_config, setup_logging
from orchestrator_app.session import ChatSession


def build_agent(config) -> Agent:
    """Wire transport, executor, model manager and memory into an Agent."""
    transport = build_transport(config.executor)
    active_model = ActiveModel(config.model_name)
    executor = ChatExecutor(config.executor, transport, active_model)
    model_manager = ModelManager(config.executor, transport, active_model, cache_ttl=config.model_cache_ttl)
    memory = ConversationMemory(config.max_memory_size)
    return Agent(executor, model_manager, memory, system_prompt=config.system_prompt)


def main():
    """Application entrypoint that wires up dependencies and runs the chat session."""
    config = load_config()

    # Configure logging
    setup_logging(config.log_level_str)
    logger = logging.getLogger(__name__)
    logger.info(f"Logging level set to: {config.log_level_str}")

    logger.info(f"Initializing orchestrator with URL: {config.base_url}")
    logger.info(f"Model: {config.model_name}")
    logger.info(f"Auth: {'Enabled' if config.username and config.password else 'Disabled'}")

    agent = build_agent(config)
    session = ChatSession(agent=agent, config=config)
    try:
        session.run()
    finally:
        agent.executor.transport.close()


if __name__ == "__main__":
    main()
