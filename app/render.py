# app/render.py
"""
app/render.py

Terminal rendering utilities using rich (console mode only).

This module keeps all console presentation concerns in one place.

We render:
- header / session info panels
- assistant messages
- local help

All printing is done via Rich's Console.
"""

from __future__ import annotations

import logging
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table
from rich.text import Text

logger = logging.getLogger(__name__)
console = Console()


def render_header(title: str) -> None:
    """
    Prints a simple header panel at startup.
    """
    panel = Panel.fit(Text(title, style="bold"), title="Chatbot", border_style="cyan")
    console.print(panel)
    logger.info("Rendered header: %s", title)


def render_info_panel(*, records: int, db_path: str, erp_api: str, model_id: str, region: str) -> None:
    """
    Prints data + runtime information (useful for debugging and transparency).
    """
    info = (
        f"[bold]Sales orders[/bold]\n"
        f"- Records in memory: {records}\n"
        f"- Store: {db_path}\n"
        f"- ERP: {erp_api}\n\n"
        f"[bold]LLM[/bold]\n"
        f"- Model: {model_id}\n"
        f"- Region: {region}"
    )
    console.print(Panel(info, title="Session", border_style="green"))
    logger.info("Rendered info panel (records=%d)", records)


def prompt_user_input(prompt: str) -> Optional[str]:
    """
    Reads a user message from the terminal.

    Returns:
    - a string if the user typed something
    - None if input stream is closed (EOF / Ctrl+D)
    """
    try:
        return Prompt.ask(f"[bold blue]{prompt}[/bold blue]")
    except (EOFError, KeyboardInterrupt):
        logger.info("User input interrupted (EOF/KeyboardInterrupt)")
        return None


def render_assistant_message(text: str) -> None:
    """
    Prints assistant output as a magenta panel.
    """
    # LLM text may contain square brackets, so it is never parsed as markup
    console.print(Panel(Text(text), title="Assistant", border_style="magenta"))
    logger.info("Rendered assistant message (chars=%d)", len(text))


def render_help() -> None:
    table = Table(title="Try asking", show_lines=False)
    table.add_column("Question")
    table.add_column("Intent")
    for question, intent in (
        ("How many sales orders for Acme in 2024?", "count"),
        ("List the billed orders on 2025-03-01 with status and amount", "list"),
        ("Who are the top 3 customers this year?", "topCustomers"),
        ("Which division sold the most in 2024?", "topDivision"),
        ("Top 2 sales personnel with GP above 50%", "topSales"),
        ("Monthly sales of Juan Dela Cruz in 2025", "monthlyTotals"),
    ):
        table.add_row(question, intent)
    table.caption = "Local commands: reset, help, exit"
    console.print(table)
