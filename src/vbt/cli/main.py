"""CLI commands for Video Batch Transcoder.

Usage:
    vbt convert FILES... [--quality high|mid|low] [-o DIR] [--json]
    vbt presets [--json]
    vbt config [--json]
    vbt config set <key> <value>
"""

import asyncio
import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from vbt.cli.i18n import get_help, get_message
from vbt.config.manager import ConfigManager
from vbt.config.quality_config import QUALITY_PRESETS, get_encoding_parameters, list_presets
from vbt.errors import VBTError
from vbt.models.types import JobSnapshot, JobState
from vbt.services.convert import ConvertService
from vbt.services.error_handling import ErrorCategory, classify_error, exit_code_for
from vbt.services.queue import BatchConversionResult

console = Console()

engine_logger = logging.getLogger("vbt.engine.output")


def format_size(size_bytes: int) -> str:
    """Format bytes as human-readable size."""
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if abs(size_bytes) < 1024.0:
            return f"{size_bytes:.1f} {unit}"
        size_bytes /= 1024.0
    return f"{size_bytes:.1f} PB"


def format_bitrate(bits_per_second: int) -> str:
    """Format a bitrate as Mbps or kbps."""
    if bits_per_second >= 1_000_000:
        return f"{bits_per_second / 1_000_000:g} Mbps"
    return f"{bits_per_second / 1000:g} kbps"


def configure_logging(verbose: bool) -> None:
    """Route log records through rich; engine output is shown only when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=verbose)],
        force=True,
    )


@click.group()
@click.option("--verbose", "-v", is_flag=True, help=get_help("cli.verbose"))
@click.pass_context
def cli(ctx, verbose: bool):
    """Video Batch Transcoder - local WebM to MP4 video conversion"""
    ctx.ensure_object(dict)
    configure_logging(verbose)
    if "config" not in ctx.obj:
        ctx.obj["config"] = ConfigManager()


# Override help text dynamically based on locale
cli.help = get_help("cli.description")


@cli.command()
@click.argument(
    "files",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--quality",
    type=click.Choice(list(QUALITY_PRESETS)),
    default=None,
    help=get_help("convert.quality"),
)
@click.option(
    "--output",
    "-o",
    "output_dir",
    type=click.Path(file_okay=False, path_type=Path),
    help=get_help("convert.output"),
)
@click.option("--json", "output_json", is_flag=True, help=get_help("convert.json"))
@click.pass_context
def convert(
    ctx,
    files: tuple[Path, ...],
    quality: str | None,
    output_dir: Path | None,
    output_json: bool,
):
    """Convert video files to MP4 (H.264/AAC)."""
    config = ctx.obj["config"]

    quality = quality or config.get("conversion.quality_preset")
    output_dir = output_dir or config.config.conversion.output_folder_path

    if not output_json:
        total_size = sum(f.stat().st_size for f in files)
        console.print(f"[bold]{len(files)} files selected ({format_size(total_size)})[/bold]")
        console.print(f"Quality preset: {quality}")
        console.print()

    progress = Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.fields[filename]}"),
        BarColumn(),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
        TextColumn("{task.fields[state]}"),
        console=console,
        disable=output_json,
    )
    task_ids: dict[str, int] = {}

    def progress_callback(snapshot: JobSnapshot):
        if snapshot.job_id not in task_ids:
            task_ids[snapshot.job_id] = progress.add_task(
                "convert", filename=snapshot.name[:40], state="", total=100
            )
        progress.update(
            task_ids[snapshot.job_id],
            completed=snapshot.progress,
            state=_format_state(snapshot.state),
        )

    service = ConvertService.from_config(config, progress_callback=progress_callback)
    service.quality_preset = quality

    try:
        with progress:
            batch_result, exported = asyncio.run(
                _run_conversion(service, files, output_dir, output_json)
            )
    except VBTError as e:
        classification = classify_error(e)
        if output_json:
            click.echo(
                json.dumps(
                    {
                        "error": classification.message,
                        "category": classification.category,
                        "engine_status": service.engine_status.value,
                    }
                )
            )
        else:
            console.print(f"[red]✗ {_banner_for(classification.category)}[/red]")
            console.print(f"[red]Error: {classification.message}[/red]")
        sys.exit(exit_code_for(classification))

    if output_json:
        output = batch_result.to_dict()
        output["exported"] = [str(p) for p in exported]
        click.echo(json.dumps(output, indent=2))
        if batch_result.failed:
            sys.exit(1)
        return

    _print_batch_result(batch_result)

    if exported:
        console.print()
        console.print(f"[green]Converted files saved to: {output_dir}[/green]")
        for path in exported:
            console.print(f"  - {path.name}")

    if batch_result.failed:
        sys.exit(1)


# Override convert help text dynamically based on locale
convert.help = get_help("convert.description")


async def _run_conversion(
    service: ConvertService,
    files: tuple[Path, ...],
    output_dir: Path,
    output_json: bool,
) -> tuple[BatchConversionResult, list[Path]]:
    """Start the engine, convert every file and export the outputs."""
    if not output_json:
        console.print(f"[dim]{get_message('engine.loading')}[/dim]")
    await service.start(log_sink=engine_logger.debug)
    if not output_json:
        console.print(f"[green]✓ {get_message('engine.ready')}[/green]")

    try:
        service.add_files(files)
        batch_result = await service.convert_all()

        exported = []
        for snapshot in service.snapshot():
            if snapshot.state is JobState.COMPLETED:
                exported.append(service.export_output(snapshot.job_id, output_dir))
    finally:
        await service.shutdown()

    return batch_result, exported


def _print_batch_result(batch_result: BatchConversionResult) -> None:
    console.print()
    console.print("[bold]Conversion Complete[/bold]")
    console.print(f"  Total: {batch_result.total}")
    console.print(f"  Successful: [green]{batch_result.successful}[/green]")
    console.print(f"  Failed: [red]{batch_result.failed}[/red]")
    if batch_result.skipped:
        console.print(f"  Skipped: [yellow]{batch_result.skipped}[/yellow]")

    if batch_result.errors:
        console.print()
        console.print("[red]Errors:[/red]")
        for error in batch_result.errors:
            console.print(f"  - {error}")


def _banner_for(category: str) -> str:
    if category == ErrorCategory.FATAL.value:
        return get_message("engine.fatal")
    if category == ErrorCategory.RETRYABLE.value:
        return get_message("engine.load_failed")
    return "Conversion could not be started"


def _format_state(state: JobState) -> str:
    """Format job state with color."""
    state_colors = {
        JobState.IDLE: "[dim]IDLE[/dim]",
        JobState.QUEUED: "[yellow]QUEUED[/yellow]",
        JobState.CONVERTING: "[blue]CONVERTING[/blue]",
        JobState.COMPLETED: "[green]COMPLETED[/green]",
        JobState.ERROR: "[red]ERROR[/red]",
    }
    return state_colors.get(state, state.value)


@cli.command()
@click.option("--json", "output_json", is_flag=True, help=get_help("presets.json"))
def presets(output_json: bool):
    """List available quality presets."""
    items = []
    for preset in list_presets():
        params = get_encoding_parameters(preset)
        items.append(
            {
                "name": preset.name,
                "description": preset.description,
                "bitrate": params.bitrate,
                "max_bitrate": params.max_bitrate,
                "buffer_size": params.buffer_size,
                "speed_tier": params.speed_tier,
            }
        )

    if output_json:
        click.echo(json.dumps(items, indent=2))
        return

    table = Table(title="Quality Presets")
    table.add_column("Name", style="cyan")
    table.add_column("Bitrate")
    table.add_column("Max bitrate")
    table.add_column("Buffer")
    table.add_column("Speed", style="yellow")
    table.add_column("Description")

    for item in items:
        table.add_row(
            item["name"],
            format_bitrate(item["bitrate"]),
            format_bitrate(item["max_bitrate"]),
            format_bitrate(item["buffer_size"]),
            item["speed_tier"],
            item["description"],
        )

    console.print(table)


# Override presets help text dynamically based on locale
presets.help = get_help("presets.description")


@cli.group(invoke_without_command=True)
@click.option("--json", "output_json", is_flag=True, help=get_help("config.json"))
@click.pass_context
def config(ctx, output_json: bool):
    """Display or modify configuration."""
    if ctx.invoked_subcommand is not None:
        return

    config_manager = ctx.obj["config"]
    all_config = config_manager.get_all()

    if output_json:
        click.echo(json.dumps(all_config, indent=2))
        return

    console.print("[bold]Current Configuration[/bold]")
    console.print()

    console.print("[cyan]Engine Settings:[/cyan]")
    for key, value in all_config["engine"].items():
        console.print(f"  engine.{key}: {value}")
    console.print()

    console.print("[cyan]Conversion Settings:[/cyan]")
    for key, value in all_config["conversion"].items():
        console.print(f"  conversion.{key}: {value}")
    console.print()

    console.print("[dim]Use 'vbt config set <key> <value>' to change settings[/dim]")


# Override config help text dynamically based on locale
config.help = get_help("config.description")


@config.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def config_set(ctx, key: str, value: str):
    """Modify configuration value."""
    config_manager = ctx.obj["config"]

    try:
        config_manager.set(key, value)
        config_manager.save()
        console.print(f"[green]✓ Set {key} = {value}[/green]")
    except (KeyError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


# Override config_set help text dynamically based on locale
config_set.help = get_help("config.set.description")


def main():
    """Entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
