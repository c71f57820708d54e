# app/chat_loop.py
"""
app/chat_loop.py

Interactive console over the same ChatService the HTTP API uses.

- reads user input
- handles local commands (exit | reset | help) without calling the LLM
- answers everything else through ChatService.ask()
- keeps running when a single question fails
"""

from __future__ import annotations

import logging

from app.chat_service import ChatService
from app.commands import is_exit_command, is_help_command, is_reset_command
from app.render import prompt_user_input, render_assistant_message, render_help

logger = logging.getLogger(__name__)


class ChatLoop:
    """
    Runs the interactive console conversation.
    """

    def __init__(self, service: ChatService) -> None:
        self.service = service

    def run(self) -> None:
        """
        Starts the blocking interactive loop.

        The loop ends when:
        - the user types a local exit command (exit/quit/stop/terminate)
        - the input stream is closed (EOF / Ctrl+D) or Ctrl+C
        """
        logger.info("ChatLoop started (records=%d)", len(self.service.memory))

        while True:
            user_text = prompt_user_input("Ask a question about sales orders")
            if user_text is None:
                render_assistant_message("Goodbye 👋")
                logger.info("ChatLoop ended (input interrupted)")
                return

            user_text = user_text.strip()
            if not user_text:
                continue

            if is_exit_command(user_text):
                render_assistant_message("Ok! Session closed. Come back anytime. 👋")
                logger.info("ChatLoop ended (local exit command)")
                return

            if is_help_command(user_text):
                render_help()
                continue

            if is_reset_command(user_text):
                count = self.service.reset_memory()
                render_assistant_message(f"Memory reloaded from the store ({count} sales orders).")
                continue

            render_assistant_message(self._safe_ask(user_text))

    def _safe_ask(self, user_text: str) -> str:
        """
        Wraps ChatService.ask so the loop keeps running if the LLM or the engine fails.
        """
        try:
            return self.service.ask(user_text)
        except Exception as e:
            logger.exception("Answer failed")
            return f"I couldn't answer that right now: {e}"
