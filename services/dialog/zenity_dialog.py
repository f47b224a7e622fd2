"""Native desktop dialogs: zenity on Linux, osascript on macOS."""

from __future__ import annotations

import asyncio
import logging
import math
import shutil
import sys
import time
from typing import List, Optional, Tuple

from services.dialog.provider import DialogProvider
from services.errors import (
    DependencyError,
    DialogError,
    PromptCancelledError,
    PromptTimedOutError,
    UserCancelledError,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_DIALOG_WIDTH = 400
MAX_LINE_LENGTH = 100
DEFAULT_LOCAL_TIMEOUT = 5 * 60.0

# zenity exit statuses
_EXIT_CANCELLED = 1
_EXIT_TIMEOUT = 5


def format_text_with_linebreaks(text: str, max_line_length: int = MAX_LINE_LENGTH) -> str:
    """Wrap each paragraph of `text` so no line exceeds `max_line_length` characters.

    Existing newlines are kept and runs of whitespace inside a paragraph
    collapse to single spaces. A single word longer than the limit stays whole.
    """
    if max_line_length <= 0:
        max_line_length = MAX_LINE_LENGTH

    lines: List[str] = []
    for paragraph in text.split("\n"):
        current = ""
        for word in paragraph.split():
            if current and len(current) + 1 + len(word) > max_line_length:
                lines.append(current)
                current = word
            else:
                current = f"{current} {word}" if current else word
        lines.append(current)
    return "\n".join(lines)


def escape_applescript_string(value: str) -> str:
    """Escape backslashes and double quotes for an AppleScript string literal."""
    return value.replace("\\", "\\\\").replace('"', '\\"')


class ZenityDialog(DialogProvider):
    """Show a blocking input dialog on the local desktop."""

    default_timeout = DEFAULT_LOCAL_TIMEOUT

    def __init__(self, width: int = DEFAULT_DIALOG_WIDTH, platform: Optional[str] = None) -> None:
        self.width = width if width > 0 else DEFAULT_DIALOG_WIDTH
        self.platform = platform or sys.platform

    def build_command(self, prompt: str, title: str, deadline: Optional[float] = None) -> List[str]:
        """Return the argv that displays the dialog on this platform.

        Raises:
            DialogError: If the platform has no supported dialog program.
        """
        text = format_text_with_linebreaks(prompt, MAX_LINE_LENGTH)
        if self.platform.startswith("linux"):
            command = [
                "zenity",
                "--entry",
                "--title",
                title,
                "--text",
                text,
                "--width",
                str(self.width),
            ]
            if deadline is not None:
                seconds = max(1, math.ceil(deadline - time.monotonic()))
                command.append(f"--timeout={seconds}")
            return command
        if self.platform == "darwin":
            script = (
                f'display dialog "{escape_applescript_string(text)}" '
                f'with title "{escape_applescript_string(title)}" '
                'default answer "" buttons {"Cancel", "OK"} default button "OK"'
            )
            return ["osascript", "-e", script, "-e", "text returned of result"]
        raise DialogError(f"unsupported operating system: {self.platform}")

    async def show_input_dialog(self, prompt: str, title: str, *, deadline: Optional[float] = None) -> str:
        """Run the dialog program and return the trimmed text it printed.

        Raises:
            UserCancelledError: If the human dismissed the dialog.
            PromptTimedOutError: If the dialog closed itself at the deadline.
            PromptCancelledError: If the dialog process was killed.
            DialogError: If the dialog could not be shown.
        """
        command = self.build_command(prompt, title, deadline)
        LOGGER.info("Showing %s dialog titled %r", command[0], title)
        returncode, stdout, stderr = await self._run(command)

        if returncode == 0:
            return stdout.strip()
        if returncode == _EXIT_CANCELLED:
            raise UserCancelledError("user cancelled input")
        if returncode == _EXIT_TIMEOUT and command[0] == "zenity":
            raise PromptTimedOutError("dialog closed at the prompt deadline")
        if returncode < 0:
            raise PromptCancelledError(f"dialog was terminated by signal {-returncode}")
        raise DialogError(f"error showing dialog: exit status {returncode}: {stderr.strip()}")

    async def _run(self, command: List[str]) -> Tuple[int, str, str]:
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise DialogError(f"error showing dialog: {exc}") from exc
        stdout, stderr = await process.communicate()
        return process.returncode, stdout.decode("utf-8", errors="replace"), stderr.decode("utf-8", errors="replace")

    def check_dependencies(self) -> None:
        """Make sure the dialog program for this platform is available."""
        if self.platform.startswith("linux"):
            if shutil.which("zenity") is None:
                raise DependencyError("zenity is not installed. Please install it using your package manager")
            return
        if self.platform == "darwin":
            return
        raise DependencyError(f"unsupported operating system: {self.platform}")
