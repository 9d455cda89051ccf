"""
Console application for the local LLM orchestrator.
Provides configuration loading, logging setup, console utilities and the
interactive chat session.
"""

__all__ = [
    "config",
    "console",
    "session",
]
