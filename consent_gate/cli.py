"""CLI for the consent gate.

Commands:
    policy          Show the SDK policy registry in init order
    scenario        Run a diagnostic scenario against the vendor simulator
    inspect-cache   List vendor-named files under a storage root
    purge           Delete vendor-named files under a storage root
"""

import asyncio
import json
import tempfile
from enum import Enum
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from consent_gate import __version__
from consent_gate.bootstrap.gateway import load_policy
from consent_gate.bootstrap.logging import configure_structlog
from consent_gate.bootstrap.scenarios import ScenarioReport, run_scenario
from consent_gate.config.gate_config import load_config
from consent_gate.domain.errors import ConfigurationError, PolicyDecodeError
from consent_gate.domain.models.vendor_storage import (
    APPSFLYER_FILE_FILTER,
    format_cache_inventory,
)
from consent_gate.infrastructure.adapters.local_vendor_storage import LocalVendorStorage
from consent_gate.infrastructure.adapters.policy_file_loader import load_registry


class OutputFormat(str, Enum):
    """Output format options."""

    text = "text"
    json = "json"


class ScenarioName(str, Enum):
    """Diagnostic scenarios."""

    stopped_log = "stopped-log"
    denied_log = "denied-log"
    granted_log = "granted-log"
    rapid_withdrawal = "rapid-withdrawal"


app = typer.Typer(
    name="consent-gate",
    help="Consent-gated activation gateway for a third-party analytics SDK",
    add_completion=False,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"consent-gate version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Consent Gate.

    Never let data reach the vendor SDK before consent authorizes it, and
    scrub buffered vendor state when consent is withdrawn.
    """
    try:
        config = load_config()
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {e}", style="bold")
        raise typer.Exit(code=2) from e
    configure_structlog(config.environment)


@app.command()
def policy(
    file: Optional[Path] = typer.Option(
        None,
        "--file",
        "-f",
        help="Policy JSON file (default: configured or packaged policy)",
    ),
) -> None:
    """Show the SDK policy registry in init order."""
    try:
        registry = load_registry(file) if file is not None else load_policy(load_config())
    except PolicyDecodeError as e:
        console.print(f"[red]Error:[/red] {e}", style="bold")
        raise typer.Exit(code=1) from e

    table = Table(title=f"SDK policy (version {registry.version or '?'})")
    table.add_column("Init order", justify="right")
    table.add_column("Id")
    table.add_column("Required consent")
    table.add_column("Thread", style="dim")
    for config in registry:
        required = ", ".join(sorted(c.value for c in config.required_consent))
        table.add_row(
            str(config.init_order),
            config.id.value,
            required or "[yellow](none)[/yellow]",
            config.execution_context.value,
        )
    console.print(table)
    for config in registry:
        if not config.has_consent_requirements:
            console.print(
                f"[yellow]Warning:[/yellow] {config.id.value} requires no consent "
                "and will start unconditionally"
            )


@app.command()
def scenario(
    name: ScenarioName = typer.Argument(..., help="Scenario to run"),
    workdir: Optional[Path] = typer.Option(
        None,
        "--workdir",
        "-w",
        help="Vendor storage root to use (default: a temporary directory)",
    ),
    output_format: OutputFormat = typer.Option(
        OutputFormat.text,
        "--format",
        "-o",
        help="Output format: text or json",
    ),
) -> None:
    """Run a diagnostic scenario against the vendor simulator."""
    if workdir is not None:
        workdir.mkdir(parents=True, exist_ok=True)
        report = asyncio.run(run_scenario(name.value, workdir))
    else:
        with tempfile.TemporaryDirectory(prefix="consent-gate-") as tmp:
            report = asyncio.run(run_scenario(name.value, Path(tmp)))

    if output_format == OutputFormat.json:
        console.print_json(json.dumps(report.to_dict()))
    else:
        _print_report(report)
    if report.violations:
        raise typer.Exit(code=1)


def _print_report(report: ScenarioReport) -> None:
    console.print(f"[bold]Scenario {report.name}[/bold]")
    for step in report.steps:
        console.print(f"  → {step}", style="dim")

    state_style = "green" if report.is_started else "cyan"
    console.print(f"Final state: [{state_style}]{report.final_state}[/{state_style}]")
    console.print(f"Active sink: {report.sink}")
    console.print(f"Vendor calls: {', '.join(report.vendor_calls) or '(none)'}")
    console.print(f"Sent events: {', '.join(report.sent_events) or '(none)'}")
    if report.queued_events:
        console.print(
            f"[yellow]Queued while stopped:[/yellow] {', '.join(report.queued_events)}"
        )
    console.print(escape(report.cache_status))
    metrics = report.metrics
    console.print(
        f"Metrics: starts={metrics.get('starts', 0)} stops={metrics.get('stops', 0)} "
        f"failures={metrics.get('failures', 0)}"
    )
    if report.violations:
        console.print(f"[red]Tripwire violations ({len(report.violations)}):[/red]")
        for violation in report.violations:
            console.print(f"  • {escape(violation)}")

    table = Table(title="Diagnostic events")
    table.add_column("Event")
    for line in report.events:
        table.add_row(escape(line))
    console.print(table)


@app.command()
def inspect_cache(
    root: Path = typer.Option(
        ...,
        "--root",
        "-r",
        help="Vendor storage root holding cache/, files/ and shared_prefs/",
    ),
) -> None:
    """List vendor-named files under a storage root."""
    storage = LocalVendorStorage.from_root(root)
    try:
        files = storage.scan(APPSFLYER_FILE_FILTER)
    except OSError as e:
        console.print(f"Error checking cache: {e}")
        raise typer.Exit(code=1) from e
    console.print(escape(format_cache_inventory(files)))


@app.command()
def purge(
    root: Path = typer.Option(
        ...,
        "--root",
        "-r",
        help="Vendor storage root holding cache/, files/ and shared_prefs/",
    ),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Do not ask for confirmation",
    ),
) -> None:
    """Delete vendor-named files under a storage root."""
    if not yes:
        typer.confirm(f"Delete all vendor files under {root}?", abort=True)

    report = LocalVendorStorage.from_root(root).purge(APPSFLYER_FILE_FILTER)
    console.print(f"[green]Deleted {report.deleted_count} vendor files[/green]")
    if not report.is_complete:
        console.print(f"[red]{len(report.failures)} entries could not be deleted:[/red]")
        for failure in report.failures:
            console.print(f"  • {escape(failure)}")
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
