"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from mediaconv_cli.models.config import ClientConfig, get_quality_label
from mediaconv_cli.models.responses import VideoInfo
from mediaconv_cli.models.stats import SessionStats
from mediaconv_cli.utils.formatting import format_clock, format_duration, format_size


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "ValidationError": [
            "• Check that the URL is not empty.",
            "• Quality must be one of best, medium, worst.",
        ],
        "TransferError": [
            "• The backend rejected or could not finish the conversion.",
            "• Submit the URL again; failed jobs are never retried automatically.",
            "• Use --timeout to allow longer conversions.",
        ],
        "ConfigurationError": [
            "• Run `mediaconv-cli init <URL>` to create a configuration file.",
            "• Or set the MEDIACONV_API_BASE_URL environment variable.",
        ],
        "ClientConnectorError": [
            "• The backend could not be reached.",
            "• Check the configured base URL and your network connection.",
        ],
        "TimeoutError": [
            "• The backend took too long to answer.",
            "• Try again later or raise the request timeout.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    suggestion_text = Text("\n".join(suggestions))

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(suggestion_text)

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration."""
    console = Console()
    content = "\n".join(f"{key} = {value}" for key, value in config_data.items())
    console.print(
        Panel(
            content,
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_validation_table(config: ClientConfig):
    """Displays a summary of the current settings."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    timeout = (
        f"{config.request_timeout:.0f}s" if config.request_timeout else "[dim]none[/dim]"
    )
    table.add_row("Backend:", f"[green]{config.api_base_url}[/green]")
    table.add_row("Format:", config.output_format.upper())
    table.add_row(
        "Quality:",
        f"{config.quality} ({get_quality_label(config.output_format, config.quality)})",
    )
    table.add_row("Output Dir:", config.output_dir)
    table.add_row("Timeout:", timeout)

    console.print(
        Panel(
            table,
            title="[bold green]✓ Configuration Valid[/bold green]",
            border_style="green",
            expand=False,
        )
    )


def print_video_info(info: VideoInfo):
    """Displays the preview metadata of a video."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()
    table.add_row("Title:", f"[bold]{info.title}[/bold]")
    table.add_row("Duration:", format_clock(info.duration))
    if info.thumbnail:
        table.add_row("Thumbnail:", f"[dim]{info.thumbnail}[/dim]")
    console.print(Panel(table, title="[bold]🎬 Preview[/bold]", border_style="cyan"))


def print_summary_panel(stats: SessionStats, duration: float):
    """Prints the end-of-session summary."""
    console = Console()
    table = Table(box=box.SIMPLE, show_header=False, padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")

    table.add_row("Submitted:", str(stats.jobs_submitted))
    table.add_row("Completed:", f"[green]{stats.jobs_completed}[/green]")
    table.add_row("Failed:", f"[red]{stats.jobs_failed}[/red]")
    table.add_row("Files Saved:", str(stats.files_saved))
    table.add_row("Data Saved:", format_size(stats.bytes_saved))
    table.add_row("Duration:", format_duration(duration))

    border = "green" if stats.jobs_failed == 0 else "yellow"
    console.print(
        Panel(
            table,
            title="[bold]📊 Session Summary[/bold]",
            border_style=border,
            expand=False,
        )
    )
