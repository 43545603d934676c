from __future__ import annotations

import sys
from typing import TYPE_CHECKING

import pyperclip

from code_combiner.config import Action, resolve_output_path
from code_combiner.exceptions import ClipboardError, NoActionError, UnknownActionError
from code_combiner.logging import logger

if TYPE_CHECKING:
    from pathlib import Path

    from code_combiner.config import UserConfig
    from code_combiner.settings import Settings


def copy_to_clipboard(document: str) -> str:
    """Copy the document to the system clipboard.

    Raises:
        ClipboardError: if no clipboard mechanism is available
    """
    try:
        pyperclip.copy(document)
    except pyperclip.PyperclipException as e:
        raise ClipboardError(message=f"Clipboard error: {e}") from e
    return "Combined code copied to clipboard."


def save_to_file(document: str, output_path: Path) -> str:
    """Write the document to `output_path`, creating parent directories."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(document, encoding="utf-8")
    return f"Combined code saved to file: {output_path}"


def write_stdout(document: str) -> str:
    sys.stdout.write(document)
    sys.stdout.flush()
    return "Combined code written to stdout."


def select_action(settings: Settings, config: UserConfig) -> Action:
    """Pick the action: command line flags first, then the configured default.

    Raises:
        UnknownActionError: if the configured action is not copy, save or stdout
        NoActionError: if nothing selects an action
    """
    if settings.copy_output:
        return Action.COPY
    if settings.save:
        return Action.SAVE
    if settings.stdout:
        return Action.STDOUT
    configured = (config.default.action or "").strip().lower()
    if not configured:
        raise NoActionError
    try:
        return Action(configured)
    except ValueError as e:
        raise UnknownActionError(action=configured, message=f"Unknown action: {configured}") from e


def execute_action(settings: Settings, config: UserConfig, document: str) -> str:
    """Deliver the combined document and return a one-line summary."""
    action = select_action(settings, config)
    logger.info("executing_action", action=action.value, chars=len(document))
    if action is Action.COPY:
        return copy_to_clipboard(document)
    if action is Action.SAVE:
        return save_to_file(document, resolve_output_path(settings, config))
    return write_stdout(document)
