"""
Command-line interface for AVC Importer.

This module provides the main CLI entry point: running a synchronization
cycle, acknowledging a local X12 file, building the cost/inventory feed
and inspecting the checkpoint and configuration.
"""

from contextlib import ExitStack
from pathlib import Path
from typing import List, Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from avcimporter import __version__
from avcimporter.config import (
    DEFAULT_CONFIG_PATH,
    Settings,
    apply_env_overrides,
    apply_overrides,
    load_override_file,
    load_settings,
    non_empty_fields,
    parse_set_expressions,
    resolve_integration,
)
from avcimporter.edi.acknowledgment import AcknowledgmentBuilder, ack_filename
from avcimporter.edi.costinv import build_flat_cost_inv, read_items_csv
from avcimporter.edi.envelope import EnvelopeExtractor
from avcimporter.models import CycleReport, Integration
from avcimporter.sync.checkpoint import Checkpoint
from avcimporter.sync.orchestrator import TransferOrchestrator
from avcimporter.transport.sftp import SFTPTransport
from avcimporter.transport.spapi import VendorOrdersClient
from avcimporter.utils.errors import AVCImporterException, EDIParseError, MissingConfigurationError
from avcimporter.utils.fileutils import load_from_file, save_to_file
from avcimporter.utils.logging import setup_logging

# Initialize Typer app and Rich console
app = typer.Typer(
    name="avcimporter",
    help="Amazon Vendor Central importer: 997 acknowledgments and incremental order sync",
    add_completion=False,
)
console = Console()


def _load(
    config_path: Path,
    override: Optional[Path] = None,
    set_expressions: Optional[List[str]] = None,
) -> Settings:
    """Load settings and apply override file, --set expressions and environment."""
    settings = load_settings(config_path)
    if override:
        settings = apply_overrides(settings, load_override_file(override))
    if set_expressions:
        settings = apply_overrides(settings, parse_set_expressions(set_expressions))
    return apply_env_overrides(settings)


def _configure_logging(ctx: typer.Context, settings: Settings) -> None:
    """Re-apply logging with the config's level and file unless overridden on the command line."""
    verbose = ctx.obj["verbose"]
    setup_logging(
        log_level="DEBUG" if verbose else settings.logging.level.upper(),
        log_file_path=ctx.obj["log_file"] or settings.logging.file,
    )


def _print_settings(settings: Settings) -> None:
    table = Table(title="Effective Configuration")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key, value in non_empty_fields(settings):
        table.add_row(key, value)
    console.print(table)


def _print_report(report: CycleReport) -> None:
    table = Table(title="Sync Results")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Integration", report.integration.value)
    if report.integration.edi_enabled:
        table.add_row("Inbound documents", str(report.documents_seen))
        table.add_row("  - Acknowledged", str(len(report.acknowledged)))
        table.add_row("  - Skipped", str(len(report.skipped)))
    if report.integration.api_enabled:
        table.add_row("Orders fetched", str(report.orders_fetched))
        table.add_row("  - New (saved)", str(len(report.orders_saved)))
        table.add_row("Checkpoint", f"{report.watermark_before!r} -> {report.watermark_after!r}")

    console.print(table)

    for skipped in report.skipped:
        console.print(f"[yellow]Skipped[/yellow] {skipped.name}: {skipped.error}")


@app.command()
def run(
    ctx: typer.Context,
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config", "-c", help="Path to config file"),
    override: Optional[Path] = typer.Option(None, "--override", help="Partial JSON config applied on top"),
    set_: Optional[List[str]] = typer.Option(None, "--set", help="Override one value, e.g. edi.port=2222"),
    strict: bool = typer.Option(
        False,
        "--strict",
        help="Exit with status 2 when any inbound document was skipped",
    ),
):
    """Run one synchronization cycle."""
    verbose = ctx.obj["verbose"]
    console.print("[cyan]Starting AVC Importer![/cyan]")

    try:
        settings = _load(config, override, set_)
        _configure_logging(ctx, settings)
        if verbose:
            _print_settings(settings)

        integration = resolve_integration(settings)
        if integration is Integration.NONE:
            console.print("[red]Error:[/red] No valid API or EDI configuration found.")
            raise typer.Exit(1)

        with ExitStack() as stack:
            file_transport = None
            order_feed = None
            if integration.edi_enabled:
                file_transport = SFTPTransport.from_settings(settings.edi)
                stack.callback(file_transport.close)
            if integration.api_enabled:
                order_feed = VendorOrdersClient.from_settings(settings.api, verbose=verbose)
                stack.callback(order_feed.close)

            orchestrator = TransferOrchestrator(
                integration=integration,
                storage_dir=settings.storage.save_path,
                sender_id=settings.edi.sender_id,
                file_transport=file_transport,
                order_feed=order_feed,
                builder=AcknowledgmentBuilder(partner_id=settings.edi.partner_id),
                ordering=settings.api.ordering,
                file_name=settings.storage.file_name,
                output_format=settings.storage.output_format,
                delete_inbound=settings.edi.delete_inbound,
                keep_inbound=settings.edi.keep_inbound,
                verbose=verbose,
            )
            report = orchestrator.run_cycle()

    except AVCImporterException as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    _print_report(report)

    if strict and not report.clean:
        console.print(f"[yellow]{len(report.skipped)} inbound document(s) skipped[/yellow]")
        raise typer.Exit(2)

    console.print("[green]✓[/green] AVC Importer completed successfully.")


@app.command()
def ack(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Inbound X12 850 file"),
    sender_id: Optional[str] = typer.Option(None, "--sender-id", help="Our trading-partner ID"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Read sender and partner IDs from config"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the 997 here instead of stdout"),
):
    """Generate the 997 acknowledgment for a local purchase-order file."""
    try:
        settings = apply_env_overrides(load_settings(config) if config else Settings())
        sender = sender_id or settings.edi.sender_id
        if not sender:
            raise MissingConfigurationError("edi.senderId")

        ids = EnvelopeExtractor().extract(load_from_file(file), name=file.name)
        document = AcknowledgmentBuilder(partner_id=settings.edi.partner_id).build(ids, sender)

    except EDIParseError as e:
        console.print(f"[red]✗[/red] {file.name}: {e.message}")
        raise typer.Exit(1)
    except AVCImporterException as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if output:
        if output.is_dir():
            output = output / ack_filename(file.name)
        output.write_bytes(document)
        console.print(f"[green]✓[/green] Wrote 997: {output}")
    else:
        typer.echo(document.decode("ascii"))


@app.command()
def costinv(
    items_csv: Path = typer.Argument(..., exists=True, dir_okay=False, help="CSV with sku,cost,qty columns"),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config", "-c", help="Path to config file"),
    upload: bool = typer.Option(False, "--upload", help="Push the feed to the SFTP outbound directory"),
):
    """Build the flat cost/inventory feed."""
    try:
        settings = apply_env_overrides(load_settings(config))
        if not settings.edi.sender_id:
            raise MissingConfigurationError("edi.senderId")

        items = read_items_csv(items_csv)
        data, filename = build_flat_cost_inv(items, settings.edi.sender_id)
        path = save_to_file(settings.storage.save_path / "feeds", filename, data)
        console.print(f"[green]✓[/green] Built feed with {len(items)} items: {path}")

        if upload:
            settings = settings.model_copy(update={"edi": settings.edi.model_copy(update={"active": True})})
            resolve_integration(settings)
            with SFTPTransport.from_settings(settings.edi) as transport:
                transport.put_outbound_file(filename, data)
            console.print(f"[green]✓[/green] Uploaded feed: {filename}")

    except AVCImporterException as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


@app.command("checkpoint")
def checkpoint_command(
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config", "-c", help="Path to config file"),
    set_value: Optional[str] = typer.Option(None, "--set", help="Overwrite the watermark"),
    reset: bool = typer.Option(False, "--reset", help="Reset the watermark to empty"),
):
    """Show or change the order-feed checkpoint."""
    if set_value is not None and reset:
        console.print("[red]Error:[/red] --set and --reset are mutually exclusive")
        raise typer.Exit(1)

    try:
        settings = apply_env_overrides(load_settings(config))
        checkpoint = Checkpoint(settings.checkpoint_dir)

        if reset or set_value is not None:
            checkpoint.save("" if reset else set_value)
            console.print(f"[green]✓[/green] Checkpoint set to {checkpoint.load()!r}")
        else:
            console.print(f"Checkpoint ({checkpoint.path}): {checkpoint.load()!r}")

    except AVCImporterException as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


@app.command("show-config")
def show_config(
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config", "-c", help="Path to config file"),
    override: Optional[Path] = typer.Option(None, "--override", help="Partial JSON config applied on top"),
    set_: Optional[List[str]] = typer.Option(None, "--set", help="Override one value, e.g. edi.port=2222"),
):
    """Print the effective configuration and resolved integration."""
    try:
        settings = _load(config, override, set_)
        _print_settings(settings)
        console.print(f"Integration: [bold]{resolve_integration(settings).value}[/bold]")
    except AVCImporterException as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Also write JSON logs here"),
):
    """AVC Importer - EDI acknowledgments and vendor order sync."""
    load_dotenv()
    ctx.obj = {"verbose": verbose, "log_file": log_file}
    setup_logging(log_level="DEBUG" if verbose else "INFO", log_file_path=log_file)
    if verbose:
        console.print(f"[dim]avcimporter {__version__}[/dim]")


if __name__ == "__main__":
    app()
