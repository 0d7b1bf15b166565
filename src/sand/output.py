"""Where sand's output goes.

sand writes two kinds of output and keeps them on separate streams:

* **data** on stdout -- a bare access token (``sand token``) or a response
  body (``sand request``), so ``TOKEN=$(sand token)`` captures the token
  and nothing else;
* **diagnostics** on stderr -- retry notices from the broker, cache
  debug lines, and the CLI's status and error lines.

A :class:`~sand.client.Client` takes an :class:`OutputManager` as its
``output`` argument.  Without one it uses the process-wide manager from
:func:`get_output`, which the CLI replaces from its global flags.
"""

from __future__ import annotations

import enum
import json
import os
import sys
from typing import Any, Optional

from rich.console import Console
from rich.syntax import Syntax
from rich.text import Text

QUIET = 0
NORMAL = 1
VERBOSE = 2

# level -> (lowest verbosity that shows it, plain prefix, rich style)
_LEVELS: dict[str, tuple[int, str, str]] = {
    "error": (QUIET, "Error: ", "bold red"),
    "warning": (QUIET, "Warning: ", "yellow"),
    "info": (NORMAL, "", ""),
    "success": (NORMAL, "", "green"),
    "debug": (VERBOSE, "[debug] ", "dim"),
}


class OutputFormat(str, enum.Enum):
    """How response bodies are rendered.  ``AUTO`` means ``RICH`` on a colour TTY."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Routes tokens and bodies to stdout and diagnostics to stderr.

    Warnings and errors are shown at every verbosity, so a ``sand``
    invocation stuck in a backoff wait always says why.  ``quiet`` hides
    status lines; ``verbose`` adds cache debug lines.

    Args:
        format: Rendering of response bodies.
        no_color: Disable colour even on a terminal.
        quiet: Show only warnings and errors on stderr.
        verbose: Also show debug lines on stderr.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self.color = not (no_color or _color_disabled_by_env())
        self.verbosity = QUIET if quiet else VERBOSE if verbose else NORMAL
        if format == OutputFormat.AUTO:
            format = OutputFormat.RICH if self.color and _is_tty() else OutputFormat.PLAIN
        self.format = format
        self._stderr = Console(file=sys.stderr, no_color=not self.color, stderr=True)

    # stdout

    def emit(self, text: str) -> None:
        """Write one line of data, e.g. an access token, to stdout."""
        print(text, file=sys.stdout, flush=True)

    def render(self, payload: Any) -> None:
        """Write a response body or mapping to stdout in :attr:`format`.

        String payloads holding JSON are decoded first, so a JSON body is
        pretty-printed the same way as a dict.
        """
        if isinstance(payload, str):
            try:
                payload = json.loads(payload)
            except ValueError:
                self.emit(payload)
                return

        if self.format == OutputFormat.JSON:
            self.emit(json.dumps(payload, indent=2, ensure_ascii=False, default=str))
        elif self.format == OutputFormat.RICH and isinstance(payload, (dict, list)):
            body = json.dumps(payload, indent=2, ensure_ascii=False, default=str)
            Console(file=sys.stdout, force_terminal=True).print(
                Syntax(body, "json", theme="monokai", word_wrap=True)
            )
        elif isinstance(payload, dict):
            for key, value in payload.items():
                self.emit(f"{key}\t{value}")
        elif isinstance(payload, list):
            for item in payload:
                self.emit(str(item))
        else:
            self.emit(str(payload))

    # stderr

    def error(self, message: str) -> None:
        self._diagnose("error", message)

    def warning(self, message: str) -> None:
        self._diagnose("warning", message)

    def info(self, message: str) -> None:
        self._diagnose("info", message)

    def success(self, message: str) -> None:
        self._diagnose("success", message)

    def debug(self, message: str) -> None:
        self._diagnose("debug", message)

    def _diagnose(self, level: str, message: str) -> None:
        threshold, prefix, style = _LEVELS[level]
        if self.verbosity < threshold:
            return
        if self.color:
            # Text, not markup: messages carry URLs and server responses.
            self._stderr.print(Text(prefix + message, style=style))
        else:
            print(prefix + message, file=sys.stderr, flush=True)


def _is_tty() -> bool:
    return sys.stdout.isatty()


def _color_disabled_by_env() -> bool:
    """``NO_COLOR`` (any value, see no-color.org) or ``TERM=dumb``."""
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the process-wide manager, creating a default one on first use."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: Optional[OutputManager]) -> None:
    """Install *output* process-wide; ``None`` restores the lazy default."""
    global _output
    _output = output
