# app/commands.py
"""
app/commands.py

Small command helpers for the console chat loop.

These commands are handled locally (no LLM call) to:
- keep interactions fast
- avoid spending tokens on obvious control actions

This module focuses on:
- exit commands (end the program)
- reset/clear commands (reload the in-memory sales orders from the durable store)
- help commands (print example questions)
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

# Exact shortcuts (match-only, not substring) to avoid accidental exits.
_EXIT_COMMANDS = {"exit", "quit", "stop", "terminate"}
_RESET_COMMANDS = {"reset", "clear"}
_HELP_COMMANDS = {"help", "?"}


def _match(text: str, commands: set, name: str) -> bool:
    t = text.strip().lower()
    ok = t in commands
    if ok:
        logger.info("Console command detected: %s (%s)", name, t)
    return ok


def is_exit_command(text: str) -> bool:
    """
    Returns True only if the user input is exactly one of the allowed exit commands.
    """
    return _match(text, _EXIT_COMMANDS, "exit")


def is_reset_command(text: str) -> bool:
    return _match(text, _RESET_COMMANDS, "reset")


def is_help_command(text: str) -> bool:
    return _match(text, _HELP_COMMANDS, "help")
