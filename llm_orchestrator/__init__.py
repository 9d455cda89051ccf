"""
Core package for the local LLM orchestrator.
Provides input validation, transports, the chat executor, model management,
bounded conversation memory and the orchestrating agent.
"""

__all__ = [
    "agent",
    "errors",
    "executor",
    "memory",
    "models",
    "transport",
    "types",
    "validation",
]
