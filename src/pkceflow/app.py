"""Typer application and console-script entry point for pkceflow.

``app`` is the root Typer application; ``login`` and the ``config`` group
are registered on it below. :func:`main` is what the ``pkceflow`` console
script runs: it installs the Ctrl-C handler, invokes ``app``, turns any
escaped :class:`~pkceflow.exceptions.PkceFlowError` into its exit code and
writes a crash log for anything else.

See Also:
    :mod:`pkceflow.config`: Client settings resolution.
    :mod:`pkceflow.output`: Output manager built in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import typer

from pkceflow import __version__
from pkceflow.commands.config import config_app
from pkceflow.commands.login import login_command
from pkceflow.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INTERRUPTED

app = typer.Typer(
    name="pkceflow",
    help="Run an OAuth 2.0 Authorization Code flow with PKCE from the terminal.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)
app.command("login")(login_command)
app.add_typer(config_app, name="config", help="View or edit the stored client settings.")


def _show_version(value: bool) -> None:
    if value:
        typer.echo(f"pkceflow {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_show_version, is_eager=True, help="Show version and exit."
    ),
    json_output: bool = typer.Option(False, "--json", help="Print the token response as JSON."),
    plain_output: bool = typer.Option(
        False, "--plain", help="Print the token response exactly as received."
    ),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only print the token response and errors."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug messages and log records."),
    force: bool = typer.Option(False, "--force", "-f", help="Do not ask for confirmation."),
    no_input: bool = typer.Option(
        False, "--no-input", help="Never prompt for missing client settings."
    ),
    output_file: Optional[str] = typer.Option(
        None, "-o", "--output", help="Write the token response to this file."
    ),
) -> None:
    """Set up output and logging, and share root flags with sub-commands.

    The flags are stored in ``ctx.obj`` (``force``, ``no_input``,
    ``verbose``) for the commands to read.
    """
    from pkceflow.output import OutputFormat, OutputManager, configure_logging, set_output

    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN
    else:
        fmt = OutputFormat.AUTO

    output = OutputManager(
        format=fmt,
        no_color=no_color,
        quiet=quiet,
        verbose=verbose,
        output_file=output_file,
    )
    set_output(output)
    configure_logging(output)

    ctx.ensure_object(dict)
    ctx.obj.update(force=force, no_input=no_input, verbose=verbose)


def _install_interrupt_handler() -> None:
    """Make Ctrl-C exit with :data:`EXIT_INTERRUPTED`.

    ``sys.exit`` raises ``SystemExit`` in the main thread, so a pending
    callback wait unwinds through the listener's ``with`` block and the
    port is released.
    """

    def _on_sigint(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)

    signal.signal(signal.SIGINT, _on_sigint)


def _write_crash_log() -> Path:
    """Save the current traceback under ``<data dir>/logs`` and return the path."""
    from pkceflow.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_path = logs_dir / f"crash-{datetime.now():%Y%m%d-%H%M%S}.log"
    log_path.write_text(traceback.format_exc(), encoding="utf-8")
    return log_path


def main() -> None:
    """Console-script entry point.

    Raises:
        SystemExit: Always; with the error's ``exit_code`` for a
            :class:`~pkceflow.exceptions.PkceFlowError`, 1 for anything
            unexpected, 130 on Ctrl-C.
    """
    from pkceflow.exceptions import PkceFlowError
    from pkceflow.output import error

    _install_interrupt_handler()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)
    except PkceFlowError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception:
        log_path = _write_crash_log()
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
