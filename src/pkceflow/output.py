"""Terminal output for pkceflow: token data on stdout, status on stderr.

The token endpoint's reply is the only thing ``pkceflow login`` writes to
stdout, so it can be piped straight into ``jq`` or a credentials helper.
Everything else (the authorization URL, listener status, warnings,
errors) goes to stderr.

* :class:`OutputManager` holds the format and verbosity chosen on the
  command line and two Rich consoles. It doubles as the display sink the
  flow orchestrator reports progress to.
* Module-level helpers (:func:`info`, :func:`error`, ...) forward to the
  global manager installed by :func:`~pkceflow.app.main_callback`.
* :func:`configure_logging` sends the package's stdlib log records to
  stderr through Rich when ``--verbose`` is given.

Colour follows ``NO_COLOR``, ``TERM=dumb`` and ``--no-color``.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.syntax import Syntax


class OutputFormat(str, Enum):
    """How response data is rendered.

    ``AUTO`` picks ``RICH`` for a colour-capable terminal and ``PLAIN``
    otherwise.
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


def _is_tty() -> bool:
    """Check if stdout is a TTY."""
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is set (to anything) or ``TERM=dumb``."""
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


def _decode_json(data: Any) -> Any:
    """Parse *data* if it is a string holding JSON; otherwise return it as is."""
    if not isinstance(data, str):
        return data
    try:
        return json.loads(data)
    except json.JSONDecodeError:
        return data


def _dump_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


class OutputManager:
    """Routes response data to stdout and status messages to stderr.

    Args:
        format: Rendering for response data. ``AUTO`` resolves from the
            terminal.
        no_color: Disable colour and styling.
        quiet: Hide ``info``/``success``/``suggest`` messages. Warnings,
            errors and response data are always shown.
        verbose: Show ``debug`` messages and attach the log handler.
        output_file: Write response data to this path instead of stdout.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
        output_file: Optional[str] = None,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose
        self._output_file = output_file

        if format is OutputFormat.AUTO:
            rich_ok = _is_tty() and not self._no_color
            format = OutputFormat.RICH if rich_ok else OutputFormat.PLAIN
        self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=format is OutputFormat.RICH,
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    @property
    def stderr_console(self) -> Console:
        """The stderr console log records are rendered on."""
        return self._stderr

    # --- response data (stdout or --output file) ---

    def format_response(self, data: Any) -> None:
        """Emit the token endpoint reply (or any other result) as data.

        A string body holding JSON is pretty-printed in ``json`` and
        ``rich`` modes. ``plain`` mode writes strings exactly as received
        and dicts as tab-separated ``key<TAB>value`` lines.
        """
        if self._output_file:
            text = data if isinstance(data, str) else _dump_json(data)
            with open(self._output_file, "w", encoding="utf-8") as f:
                f.write(text if text.endswith("\n") else text + "\n")
            return

        if self._format is OutputFormat.PLAIN:
            if isinstance(data, dict):
                for key, value in data.items():
                    self._write(f"{key}\t{value}")
            else:
                self._write(str(data))
            return

        decoded = _decode_json(data)
        if self._format is OutputFormat.JSON:
            self._write(decoded if isinstance(decoded, str) else _dump_json(decoded))
        elif isinstance(decoded, (dict, list)):
            syntax = Syntax(_dump_json(decoded), "json", theme="monokai", word_wrap=True)
            self._stdout.print(syntax)
        else:
            self._stdout.print(str(decoded), markup=False, highlight=False)

    def _write(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    # --- status (stderr) ---

    def _status(self, message: str, style: Optional[str] = None) -> None:
        # Long authorization URLs stay on one line.
        if self._no_color:
            print(message, file=sys.stderr, flush=True)
        else:
            self._stderr.print(
                message, style=style, markup=False, highlight=False, soft_wrap=True
            )

    def info(self, message: str) -> None:
        """Status line. Hidden by ``--quiet``."""
        if not self._quiet:
            self._status(message)

    def success(self, message: str) -> None:
        if not self._quiet:
            self._status(message, style="green")

    def suggest(self, message: str) -> None:
        """Next-step hint, prefixed with an arrow. Hidden by ``--quiet``."""
        if not self._quiet:
            self._status(f"→ {message}", style="dim")

    def debug(self, message: str) -> None:
        """Only shown with ``--verbose``."""
        if self._verbose:
            self._status(f"[debug] {message}", style="dim")

    def warning(self, message: str) -> None:
        """Always shown, even with ``--quiet``."""
        if self._no_color:
            print(f"Warning: {message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(f"[yellow]Warning:[/yellow] {escape(message)}", soft_wrap=True)

    def error(self, message: str) -> None:
        """Always shown, even with ``--quiet``."""
        if self._no_color:
            print(f"Error: {message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(f"[bold red]Error:[/bold red] {escape(message)}", soft_wrap=True)


def configure_logging(output: OutputManager) -> None:
    """Attach a stderr handler to the ``pkceflow`` logger when verbose.

    Outside ``--verbose`` the package loggers stay silent (warnings and
    above still reach Python's last-resort handler).
    """
    logger = logging.getLogger("pkceflow")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    if not output.is_verbose:
        logger.setLevel(logging.WARNING)
        return
    handler = RichHandler(
        console=output.stderr_console,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)


# --- global instance ---

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the global :class:`OutputManager`, creating a default one lazily."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the global manager so the next call builds a fresh one."""
    global _output
    _output = None


def format_response(data: Any) -> None:
    get_output().format_response(data)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def debug(message: str) -> None:
    get_output().debug(message)


def error(message: str) -> None:
    get_output().error(message)
