"""Interactive per-target confirmation before cleaning."""

import inspect
import logging
import sys
from pathlib import Path
from typing import Awaitable, Callable, Optional, Sequence, TextIO, Union

from rich.console import Console
from rich.markup import escape

from dustbuster.display import console as default_console
from dustbuster.display import format_size
from dustbuster.errors import FilesystemError
from dustbuster.models import PreviewOutcome, RuntimeOptions
from dustbuster.scanner import inspect_path, lstat

logger = logging.getLogger(__name__)

AFFIRMATIVE_ANSWERS = frozenset({"y", "yes", "т", "так", "1"})
PROMPT_MESSAGE = "Clean this directory? [y/N]: "

ConfirmCallback = Callable[[str], Union[bool, Awaitable[bool]]]


def is_affirmative(answer: Optional[str]) -> bool:
    """Check if an answer means yes. Anything unrecognised means no."""
    if answer is None:
        return False
    return answer.strip().lower() in AFFIRMATIVE_ANSWERS


class TerminalPrompt:
    """Yes/no prompt on the terminal. Closed once the preview is over."""

    def __init__(self, console: Optional[Console] = None, stdin: Optional[TextIO] = None):
        self._console = console or default_console
        self._stdin = stdin or sys.stdin
        self.closed = False

    def ask(self, message: str) -> bool:
        if self.closed:
            raise RuntimeError("Prompt is closed")
        if not self._stdin.isatty():
            logger.warning("Preview needs an interactive terminal. The directory will be skipped.")
            return False
        try:
            answer = self._console.input(escape(message))
        except EOFError:
            return False
        return is_affirmative(answer)

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> "TerminalPrompt":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


async def _ask(message: str, confirm: Optional[ConfirmCallback], prompt: TerminalPrompt) -> bool:
    if confirm is not None:
        answer = confirm(message)
        if inspect.isawaitable(answer):
            answer = await answer
        return bool(answer)
    return prompt.ask(message)


async def confirm_targets(
    targets: Sequence[Path],
    options: RuntimeOptions,
    confirm: Optional[ConfirmCallback] = None,
    prompt: Optional[TerminalPrompt] = None,
) -> PreviewOutcome:
    """
    Ask for confirmation of each target, one at a time.

    Shows the file count, directory count and size of each target first.
    A confirm callback, when given, replaces the terminal prompt. The prompt
    is closed on every exit path.

    Args:
        targets: Targets to confirm, in order
        options: Runtime options (used for the dry-run note)
        confirm: Optional callback(message) -> bool or awaitable bool
        prompt: Terminal prompt to use when no callback is given

    Returns:
        PreviewOutcome with confirmed and skipped targets
    """
    outcome = PreviewOutcome()

    with prompt or TerminalPrompt() as session:
        for target in targets:
            try:
                target_stat = await lstat(target)
            except FilesystemError as e:
                logger.error(str(e))
                outcome.skipped.append(target)
                continue

            info = await inspect_path(target, target_stat)
            logger.info(f"[preview] {target}")
            logger.info(
                f"[preview] Files: {info.file_count}, directories: {info.dir_count}, "
                f"estimated size: {format_size(info.size_bytes)}"
            )
            if options.dry_run:
                logger.info("[preview] Dry run is active: confirming will not delete anything.")

            if await _ask(PROMPT_MESSAGE, confirm, session):
                outcome.confirmed.append(target)
            else:
                logger.info(f"[preview] Skipped {target}")
                outcome.skipped.append(target)

    return outcome
