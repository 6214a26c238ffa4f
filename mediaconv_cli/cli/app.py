"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from mediaconv_cli import __version__
from mediaconv_cli.api.client import ConverterAPIClient
from mediaconv_cli.core.orchestrator import DownloadOrchestrator
from mediaconv_cli.exceptions import MediaConvError, TransferError, ValidationError
from mediaconv_cli.media.saver import FileSaver, close_connection_pool
from mediaconv_cli.models.config import ClientConfig
from mediaconv_cli.models.job import JobStatus
from mediaconv_cli.models.stats import SessionStats
from mediaconv_cli.storage.config_manager import ConfigManager
from mediaconv_cli.utils.url import default_filename

from .formatters import (
    format_error_with_suggestions,
    print_config,
    print_summary_panel,
    print_validation_table,
    print_video_info,
)
from .progress_manager import ProgressManager

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("mediaconv_cli")

app = typer.Typer(
    name="mediaconv-cli",
    help=(
        "Submit videos to a conversion backend and follow each job's progress."
        " Use 'mediaconv-cli <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "mediaconv-cli"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


def _load_config(cli_options: dict | None = None) -> ClientConfig:
    return ConfigManager(CONFIG_FILE).load_config(cli_options)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """Media conversion CLI"""
    if version:
        console.print(f"[bold]mediaconv-cli[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "INFO"
    if verbose >= 2:
        log_level = "DEBUG"
    log.setLevel(log_level)

    if show_config:
        if not CONFIG_FILE.is_file():
            console.print(
                "[red]✗ Config file not found.[/] Run [cyan]mediaconv-cli init[/cyan]"
                " first."
            )
            raise typer.Exit(code=1)
        print_config(CONFIG_FILE, ConfigManager(CONFIG_FILE).get_config_as_dict())
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    base_url: str = typer.Argument(..., help="Root URL of the conversion backend."),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration without asking."
    ),
):
    """Initialize configuration with the backend URL."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    try:
        ClientConfig(api_base_url=base_url)
    except ValueError as e:
        console.print(f"[red]✗ Invalid backend URL: {base_url}[/red]")
        raise typer.Exit(code=1) from e

    ConfigManager(CONFIG_FILE).save_new_config({"api_base_url": base_url.rstrip("/")})
    console.print(f"\n[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")
    console.print("Ready to convert! Try: [cyan]mediaconv-cli convert <URL>[/cyan]")


@app.command(name="convert")
def convert_command(
    urls: list[str] = typer.Argument(..., help="One or more video URLs."),  # noqa: B008
    quality: str | None = typer.Option(
        None, "-q", "--quality", help="Quality tier: best, medium or worst."
    ),
    output_format: str | None = typer.Option(
        None, "-f", "--format", help="Output format: mp3 or mp4."
    ),
    output_dir: str | None = typer.Option(
        None, "-o", "--output", help="Directory the converted files are saved to."
    ),
    timeout: float | None = typer.Option(
        None, "--timeout", help="Seconds to wait for each conversion (0 = no limit)."
    ),
    title: str | None = typer.Option(
        None, "--title", help="Label shown for the job instead of the URL."
    ),
    preview: bool = typer.Option(
        True,
        "--preview/--no-preview",
        help="Look up the video title before converting a single URL.",
    ),
):
    """Convert videos and save the results."""
    cli_options = {
        key: value
        for key, value in {
            "quality": quality,
            "output_format": output_format,
            "output_dir": output_dir,
            "request_timeout": timeout,
            "source_urls": urls,
        }.items()
        if value is not None
    }

    try:
        config = _load_config(cli_options)
    except MediaConvError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e

    async def _convert_async() -> SessionStats:
        stats = SessionStats()
        api_client = ConverterAPIClient(config.api_base_url, config.request_timeout)
        saver = FileSaver(
            config.output_dir, default_filename(config.output_format), stats
        )

        async with ProgressManager(console=console) as progress_manager:
            orchestrator = DownloadOrchestrator(
                config,
                api_client,
                saver=saver,
                stats=stats,
                on_notify=progress_manager.print_notification,
            )
            progress_manager.attach(orchestrator.registry)
            try:
                if preview and len(config.source_urls) == 1:
                    info = await orchestrator.preview(config.source_urls[0])
                    if info:
                        log.info(f"[cyan]🎬 {info.title}[/cyan]")

                results = await asyncio.gather(
                    *(
                        orchestrator.submit(url, known_title=title)
                        for url in config.source_urls
                    ),
                    return_exceptions=True,
                )
                for url, result in zip(config.source_urls, results):
                    if isinstance(result, ValidationError):
                        console.print(f"[red]✗ {result}[/red] [dim]({url!r})[/dim]")
                        stats.jobs_failed += 1
                    elif isinstance(result, BaseException):
                        raise result

                await orchestrator.aclose()
            finally:
                await orchestrator.aclose(cancel_evictions=True)
                await close_connection_pool()
                await api_client.close()

        return stats

    stats = asyncio.run(_convert_async())
    print_summary_panel(stats, stats.elapsed)
    if stats.jobs_failed:
        raise typer.Exit(code=1)


@app.command(name="preview")
def preview_command(
    url: str = typer.Argument(..., help="A video URL."),
):
    """Show title and duration of a video without converting it."""
    try:
        config = _load_config()
    except MediaConvError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e

    async def _preview_async():
        async with ConverterAPIClient(
            config.api_base_url, config.request_timeout
        ) as api_client:
            orchestrator = DownloadOrchestrator(config, api_client)
            info = await orchestrator.preview(url)
            return info, orchestrator.preview_error

    info, error = asyncio.run(_preview_async())
    if info:
        print_video_info(info)
    elif error:
        console.print(f"[yellow]⚠️  {error}.[/yellow]")
        raise typer.Exit(code=1)
    else:
        console.print("[yellow]⚠️  Not a recognized video URL.[/yellow]")
        raise typer.Exit(code=1)


@app.command()
def validate():
    """Validate the current configuration."""
    try:
        config = _load_config()
        print_validation_table(config)
    except MediaConvError as e:
        console.print(f"[red]✗ Configuration is invalid: {e}[/red]")
        raise typer.Exit(code=1) from e


@app.command()
def diagnose():
    """Diagnose common configuration and connectivity issues."""
    console.print("\n[bold cyan]Running diagnostics...[/bold cyan]\n")
    if CONFIG_FILE.is_file():
        console.print(f"[green]✓[/] Config file exists at: [dim]{CONFIG_FILE}[/dim]")
    else:
        console.print("[yellow]•[/] No config file, relying on the environment.")

    try:
        config = _load_config()
        console.print("[green]✓[/] Configuration is valid and can be loaded.")
    except MediaConvError as e:
        console.print(f"[red]✗ Configuration validation failed: {e}[/red]")
        raise typer.Exit(code=1) from e

    console.print(f"\n[dim]Testing connectivity to {config.api_base_url}...[/dim]")

    async def test_connection() -> bool:
        async with ConverterAPIClient(config.api_base_url, request_timeout=10) as client:
            try:
                status = await client.ping()
            except TransferError as e:
                console.print(f"[red]✗ Connection test failed: {e}[/red]")
                return False
        if status < 500:
            console.print(f"[green]✓[/] Backend answered (Status: {status}).")
            return True
        console.print(f"[red]✗ Backend is unhealthy (Status: {status}).[/red]")
        return False

    if asyncio.run(test_connection()):
        console.print(
            "\n[bold green]✓ All checks passed! Your setup looks good.[/bold green]\n"
        )
    else:
        console.print(
            "\n[bold red]✗ Some issues were found. "
            "Please review the messages above.[/bold red]\n"
        )
        raise typer.Exit(code=1)
