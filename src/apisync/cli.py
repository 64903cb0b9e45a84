from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

import typer
from rich.console import Console
from rich.table import Table

from apisync.config.settings import SyncSettings, load_settings
from apisync.domain.models import DriftReport
from apisync.errors import MissingArtifactError, SyncError
from apisync.logging_setup import configure_logging
from apisync.orchestrator.pipeline import run_bootstrap, run_diff, run_inventory, run_snapshot, run_sync
from apisync.sources.spec_source import DirectorySpecSource, GitHubSpecSource, SpecSource
from apisync.store.artifacts import ArtifactStore


app = typer.Typer(no_args_is_help=True, add_completion=False)

console = Console()


@dataclass
class _Context:
    store: ArtifactStore
    settings: SyncSettings
    spec_dir: Optional[Path]


@app.callback()
def _common(
    ctx: typer.Context,
    root: Optional[str] = typer.Option(None, "--root", help="Artifact directory (default: ./.apisync)"),
    config: Optional[str] = typer.Option(None, "--config", help="JSON config file"),
    spec_dir: Optional[str] = typer.Option(None, "--spec-dir", help="Read specs from a local directory instead of GitHub"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    configure_logging(logging.DEBUG if verbose else None)
    if ctx.invoked_subcommand == "ping":
        return

    root_path = Path(root).expanduser() if root else ArtifactStore.default_root(Path.cwd())
    with _sync_errors():
        settings = load_settings(Path(config).expanduser() if config else None)
    ctx.obj = _Context(
        store=ArtifactStore(root_path),
        settings=settings,
        spec_dir=Path(spec_dir).expanduser() if spec_dir else None,
    )


@contextmanager
def _sync_errors() -> Iterator[None]:
    try:
        yield
    except SyncError as e:
        console.print(f"[bold red]error:[/bold red] {e}")
        raise typer.Exit(code=1)


@contextmanager
def _open_source(c: _Context) -> Iterator[SpecSource]:
    if c.spec_dir is not None:
        if not c.spec_dir.is_dir():
            raise typer.BadParameter(f"Spec directory does not exist: {c.spec_dir}")
        yield DirectorySpecSource(c.spec_dir)
        return
    with GitHubSpecSource(c.settings.source) as source:
        yield source


def _tools_dir(tools_dir: str) -> Path:
    path = Path(tools_dir).expanduser().resolve()
    if not path.exists():
        raise typer.BadParameter(f"Tools path does not exist: {path}")
    if not path.is_dir():
        raise typer.BadParameter(f"Tools path is not a directory: {path}")
    return path


def _print_report(report: DriftReport, store: ArtifactStore) -> None:
    s = report.summary
    console.print(f"[bold green]apisync[/bold green] diff: {report.previous_version} -> {report.version}")
    console.print(f"Endpoints: {s.total_endpoints}")
    console.print(f"New: {s.new_count}  Removed: {s.removed_count}  Param changes: {s.param_changed_count}")
    console.print(f"Breaking changes: {s.breaking_count}")
    if report.coverage.analyzed:
        console.print(
            f"Coverage: {report.coverage.mapped_endpoints}/{report.coverage.total_endpoints} "
            f"({s.coverage_percent}%), tools with param drift: {len(report.coverage.tools_with_param_drift)}"
        )
    for note in report.notes:
        console.print(f"[yellow]note:[/yellow] {note}")
    console.print(f"Report: {store.report_path(report.version)}")


@app.command()
def snapshot(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", help="Regenerate even if the release is already synced"),
) -> None:
    """Fetch the latest release's specs and store a normalized snapshot."""
    c: _Context = ctx.obj
    with _sync_errors():
        state = c.store.load_sync_state()
        with _open_source(c) as source:
            result = run_snapshot(c.store, source, c.settings, state, force=force)

        snap = result.snapshot
        if result.up_to_date or snap is None:
            console.print(f"Already synced {result.release}. Use [bold]--force[/bold] to regenerate.")
            return

        c.store.save_sync_state(result.state)

    console.print(f"[bold green]apisync[/bold green] snapshot: {result.release} (was {result.previous_release or 'never'})")
    console.print(f"Endpoints: [bold]{snap.endpoint_count}[/bold] across {len(snap.domain_counts)} domains")
    if snap.skipped_domains:
        console.print(f"Not published: {', '.join(snap.skipped_domains)}")
    for role, stamp in sorted(result.state.packages.items()):
        console.print(f"  {role}: {stamp.version}")
    console.print(f"Snapshot: {result.snapshot_path}")


@app.command()
def inventory(
    ctx: typer.Context,
    tools_dir: str = typer.Argument(..., help="Directory holding the tool sources"),
) -> None:
    """Scan tool sources and write inventory.json."""
    c: _Context = ctx.obj
    path = _tools_dir(tools_dir)
    with _sync_errors():
        result = run_inventory(c.store, c.settings, path)

    console.print(f"[bold green]apisync[/bold green] inventory: {path}")
    console.print(f"Tools found: [bold]{len(result.inventory)}[/bold]")
    for t in result.inventory[:50]:
        console.print(f"  {t.name:<40} {len(t.sdk_calls)} call(s), {len(t.params)} param(s)  {t.file}")
    if len(result.inventory) > 50:
        console.print(f"  … and {len(result.inventory) - 50} more")
    console.print(f"Inventory: {result.inventory_path}")


@app.command("bootstrap-map")
def bootstrap_map_cmd(ctx: typer.Context) -> None:
    """Propose a tool -> endpoint map for human review."""
    c: _Context = ctx.obj
    with _sync_errors():
        result = run_bootstrap(c.store, c.settings, c.store.load_sync_state())

    stats = result.stats
    console.print(f"[bold green]apisync[/bold green] bootstrap-map: {result.version}")
    console.print(f"Mapped: {stats.mapped}/{stats.total}  Unmapped: {stats.unmapped}")

    if stats.low_confidence:
        table = Table(show_header=True, header_style="bold", title="Low confidence (review these)")
        table.add_column("TOOL")
        table.add_column("SCORE", no_wrap=True, justify="right")
        table.add_column("SDK PATH")
        for lc in stats.low_confidence:
            table.add_row(lc.tool, str(lc.score), lc.sdk_path)
        console.print(table)

    if stats.unmapped_tools:
        console.print("[bold]Unmapped tools:[/bold]")
        for name in stats.unmapped_tools:
            console.print(f"  {name}")
    console.print(f"Map: {result.map_path}")


@app.command()
def diff(ctx: typer.Context) -> None:
    """Diff the current snapshot against its predecessor and write a drift report."""
    c: _Context = ctx.obj
    with _sync_errors():
        report = run_diff(c.store, c.settings, c.store.load_sync_state())
    _print_report(report, c.store)


@app.command()
def sync(
    ctx: typer.Context,
    tools_dir: str = typer.Argument(..., help="Directory holding the tool sources"),
    force: bool = typer.Option(False, "--force", help="Regenerate even if the release is already synced"),
) -> None:
    """snapshot + inventory + diff in one run."""
    c: _Context = ctx.obj
    path = _tools_dir(tools_dir)
    with _sync_errors():
        with _open_source(c) as source:
            result = run_sync(c.store, source, c.settings, path, force=force)

    if result.inventory is None or result.report is None:
        console.print(f"Already synced {result.snapshot.release}. Use [bold]--force[/bold] to regenerate.")
        return
    console.print(f"Tools found: {len(result.inventory.inventory)}")
    _print_report(result.report, c.store)
    for note in result.notes:
        console.print(f"[yellow]note:[/yellow] {note}")


@app.command()
def coverage(ctx: typer.Context) -> None:
    """Per-domain coverage from the latest drift report."""
    c: _Context = ctx.obj
    with _sync_errors():
        report = c.store.load_latest_report()
        if report is None:
            raise MissingArtifactError("reports/latest.json", "run `apisync diff` first")

    cov = report.coverage
    console.print(f"[bold]Version:[/bold] {report.version}")
    if not cov.analyzed:
        console.print("[yellow]Coverage was not analyzed for this report.[/yellow]")
    console.print(
        f"[bold]Coverage:[/bold] {cov.mapped_endpoints}/{cov.total_endpoints} endpoints ({cov.coverage_percent}%)"
    )

    table = Table(show_header=True, header_style="bold")
    table.add_column("DOMAIN")
    table.add_column("MAPPED", no_wrap=True, justify="right")
    table.add_column("TOTAL", no_wrap=True, justify="right")
    table.add_column("%", no_wrap=True, justify="right")
    for domain, dc in cov.domain_coverage.items():
        table.add_row(domain, str(dc.mapped), str(dc.total), f"{dc.percent}")
    console.print(table)

    if cov.tools_with_param_drift:
        console.print("")
        console.print(f"[bold]Tools with param drift:[/bold] {len(cov.tools_with_param_drift)}")
        for d in cov.tools_with_param_drift:
            console.print(f"  {d.tool_name}: {d.suggested_action}")
    if cov.stale_mappings:
        console.print("")
        console.print(f"[bold]Stale mappings:[/bold] {len(cov.stale_mappings)}")
        for s in cov.stale_mappings:
            console.print(f"  {s}")


@app.command()
def ping() -> None:
    console.print("pong")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
