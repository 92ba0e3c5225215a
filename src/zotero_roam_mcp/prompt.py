"""Yes/no prompts for ``Document.displayAlert``."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable

logger = logging.getLogger(__name__)

TTY_PATH = "/dev/tty"


class Choice(Enum):
    CONFIRM = "confirm"
    DENY = "deny"
    DISMISS = "dismiss"


ICON_LABELS = {
    0: "stop",
    1: "note",
    2: "warn",
    3: "hint",
}

# Button-set code -> reply code for each outcome
OK_TABLE = {Choice.CONFIRM: 1, Choice.DENY: 1, Choice.DISMISS: 1}
BUTTON_TABLES = {
    1: {Choice.CONFIRM: 1, Choice.DENY: 0, Choice.DISMISS: 0},  # OK / Cancel
    2: {Choice.CONFIRM: 1, Choice.DENY: 0, Choice.DISMISS: 0},  # Yes / No
    3: {Choice.CONFIRM: 2, Choice.DENY: 1, Choice.DISMISS: 0},  # Yes / No / Cancel
}


def ask_terminal(question: str) -> Choice:
    """Ask on the controlling terminal; stdio may belong to the MCP client."""
    try:
        with open(TTY_PATH, "r+", encoding="utf-8") as tty:
            tty.write(f"{question} (y/n) ")
            tty.flush()
            answer = tty.readline()
    except OSError as e:
        logger.warning("No terminal to prompt on (%s), dismissing", e)
        return Choice.DISMISS

    answer = answer.strip().lower()
    if answer in ("y", "yes"):
        return Choice.CONFIRM
    if answer in ("n", "no"):
        return Choice.DENY
    return Choice.DISMISS


class PromptAdapter:
    """Shows an alert and maps the user's answer to the wire reply code.

    Args:
        ask: Callable that presents a question and returns a Choice.
            Defaults to the controlling terminal.
    """

    def __init__(self, ask: Callable[[str], Choice] | None = None) -> None:
        self._ask = ask or ask_terminal

    def show(self, message: str, icon: int = 1, buttons: int = 0) -> int:
        label = ICON_LABELS.get(icon, "note")
        table = BUTTON_TABLES.get(buttons, OK_TABLE)
        try:
            choice = self._ask(f"[{label}] {message}")
        except KeyboardInterrupt:
            logger.info("Prompt interrupted, treating as dismissed")
            choice = Choice.DISMISS
        return table[choice]
