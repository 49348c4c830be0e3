"""CLI for ownership snapshots."""

import json
import logging
from enum import StrEnum
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.traceback import install

# Import all resolvers to trigger auto-registration
from ownership_snapshot import protocols  # noqa: F401
from ownership_snapshot.core import SnapshotContext, SnapshotOrchestrator
from ownership_snapshot.core.errors import SnapshotError
from ownership_snapshot.core.models import SnapshotReport
from ownership_snapshot.core.registry import ResolverRegistry
from ownership_snapshot.data import load_config
from ownership_snapshot.rpc import LCDClient, load_state_file

# Install rich traceback handler
install(show_locals=True)

app = typer.Typer(
    name="ownership-snapshot",
    help="Compute point-in-time ownership snapshots of pooled assets from CosmWasm contract state",
    add_completion=False,
)

console = Console()
err_console = Console(stderr=True)


class OutputFormat(StrEnum):
    """Output format options."""

    TABLE = "table"
    JSON = "json"


def _setup_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=True, show_path=debug)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.WARNING)


@app.command()
def snapshot(
    lcd: str | None = typer.Option(None, "--lcd", help="LCD endpoint to read chain state from"),
    state_file: Path | None = typer.Option(
        None,
        "--state-file",
        "-s",
        help="JSON state dump to read instead of an LCD endpoint",
        exists=True,
        dir_okay=False,
    ),
    height: int | None = typer.Option(None, "--height", help="Block height to snapshot"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Snapshot configuration YAML"),
    resolver: list[str] | None = typer.Option(
        None,
        "--resolver",
        "-r",
        help="Resolver to run (repeatable); all configured resolvers by default",
    ),
    workers: int | None = typer.Option(None, "--workers", "-w", min=1, help="Resolvers to run in parallel"),
    format: OutputFormat = typer.Option(
        OutputFormat.TABLE,
        "--format",
        "-f",
        help="Output format",
    ),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write JSON report to this file"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug output"),
) -> None:
    """
    Compute the ownership snapshot of the configured target asset.

    Examples:

        # Snapshot from an LCD endpoint at a fixed height
        ownership-snapshot snapshot --lcd https://lcd.example.org --height 7544910

        # Replay an exported state dump
        ownership-snapshot snapshot --state-file state.json --format json

        # Run only some resolvers
        ownership-snapshot snapshot --state-file state.json -r apollo_vaults -r spec_farm
    """
    _setup_logging(debug)

    if (lcd is None) == (state_file is None):
        err_console.print("[bold red]Error:[/bold red] pass exactly one of --lcd or --state-file")
        raise typer.Exit(code=2)

    client: LCDClient | None = None
    try:
        snapshot_config = load_config(config, enabled_resolvers=resolver or None, max_workers=workers)

        if state_file is not None:
            chain = load_state_file(state_file)
            height = height if height is not None else chain.height
        else:
            balance_denoms = snapshot_config.native.balance_denoms if snapshot_config.native else []
            client = LCDClient(lcd, height=height, balance_denoms=balance_denoms)
            chain = client

        context = SnapshotContext.from_chain(chain, height)
        orchestrator = SnapshotOrchestrator(snapshot_config)
        names = ", ".join(r.name for r in orchestrator.resolvers)
        err_console.print(f"\n[bold cyan]Snapshot at height:[/bold cyan] {height if height is not None else 'latest'}")
        err_console.print(f"[bold cyan]Resolvers:[/bold cyan] {names}")

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=err_console,
        ) as progress:
            task = progress.add_task("Resolving holdings...", total=None)
            report = orchestrator.collect(context)
            progress.update(task, description=f"✓ Resolved {len(report.ledger)} addresses")

        if output is not None:
            output.write_text(json.dumps(report.model_dump(mode="json"), indent=2), encoding="utf-8")
            err_console.print(f"[green]Report written to {output}[/green]")

        if format == OutputFormat.JSON:
            _output_json(report)
        else:
            _output_table(report)

    except (SnapshotError, ValueError, KeyError) as e:
        err_console.print(f"[bold red]Error:[/bold red] {e}")
        if debug:
            # Rich traceback will automatically handle this
            raise
        raise typer.Exit(1)
    finally:
        if client is not None:
            client.close()


@app.command()
def list_resolvers() -> None:
    """List all registered source resolvers."""
    table = Table(title="Source Resolvers", show_header=True, header_style="bold magenta")
    table.add_column("Resolver", style="cyan")
    table.add_column("Config Section", style="yellow")
    table.add_column("Description", style="green")

    for resolver_class in ResolverRegistry.get_all_resolvers():
        table.add_row(resolver_class.name, resolver_class.config_section, resolver_class.description)

    console.print(table)


def _output_table(report: SnapshotReport) -> None:
    """Output snapshot as rich tables, one per denomination."""
    if not report.ledger:
        console.print("\n[yellow]No holdings found[/yellow]")
        return

    by_denom: dict[str, list[tuple[str, int]]] = {}
    for address, balances in report.ledger.items():
        for balance in balances:
            by_denom.setdefault(balance.denom, []).append((address, balance.amount))

    for denom, rows in sorted(by_denom.items()):
        table = Table(title=f"Holders of {denom}", show_header=True, header_style="bold magenta")
        table.add_column("Address", style="cyan")
        table.add_column("Amount", style="white", justify="right")
        for address, amount in sorted(rows, key=lambda row: row[1], reverse=True):
            table.add_row(address, f"{amount:,}")
        console.print("\n")
        console.print(table)

    summary_table = Table(show_header=False, box=None)
    summary_table.add_column("Label", style="bold")
    summary_table.add_column("Value", style="bold green")

    summary_table.add_row("Height:", str(report.height) if report.height is not None else "latest")
    summary_table.add_row("Addresses:", str(len(report.ledger)))
    summary_table.add_row("", "")
    summary_table.add_row("[bold]Totals:[/bold]", "")
    for denom, rows in sorted(by_denom.items()):
        summary_table.add_row(f"  {denom}", f"{sum(amount for _, amount in rows):,}")
    summary_table.add_row("", "")
    summary_table.add_row("[bold]Holdings by resolver:[/bold]", "")
    for name, holdings in report.holdings.items():
        summary_table.add_row(f"  {name}", str(len(holdings)))

    console.print("\n")
    console.print(summary_table)
    console.print("\n")


def _output_json(report: SnapshotReport) -> None:
    """Output snapshot as JSON."""
    # Amounts are serialized as strings; they exceed the float range of JSON consumers
    data = report.model_dump(mode="json")
    typer.echo(json.dumps(data, indent=2))


if __name__ == "__main__":
    app()
