"""
Console entry point: runs the Typer app and turns stray exceptions into a
readable error panel and an exit status.
"""

import asyncio
import logging
import sys

import typer
from rich.console import Console

from mediaconv_cli.cli.app import app
from mediaconv_cli.cli.formatters import format_error_with_suggestions
from mediaconv_cli.exceptions import MediaConvError

log = logging.getLogger("mediaconv_cli")
err_console = Console(stderr=True)


def _report(error: Exception) -> int:
    context = None if isinstance(error, MediaConvError) else {"type": "Unexpected"}
    err_console.print()
    err_console.print(format_error_with_suggestions(error, context))
    if context:
        log.debug("Unhandled error", exc_info=error)
    return 1


def main() -> None:
    try:
        app()
    except (typer.Exit, typer.Abort):
        return
    except (KeyboardInterrupt, asyncio.CancelledError):
        err_console.print("\n[yellow]⚠️  Conversion interrupted.[/yellow]")
        sys.exit(130)
    except Exception as e:
        sys.exit(_report(e))


if __name__ == "__main__":
    main()
