"""CLI interface for claude-status."""

import asyncio
import logging
import os

import click
import uvicorn
from rich.console import Console
from rich.live import Live
from rich.table import Table

from . import __version__
from .config import DASHBOARD_PORT, Settings
from .display import build_label, build_tooltip, format_duration, format_percent, format_tokens
from .heatmap import get_heatmap_data
from .manager import UsageManager
from .models import EPOCH

console = Console()

STATUS_STYLE = {"allowed": "green", "allowed_warning": "yellow", "denied": "red"}
SOURCE_STYLE = {"api": "green", "cache": "cyan", "stale": "yellow", "no-credentials": "red", "no-data": "dim"}


@click.group()
@click.version_option(__version__)
@click.option("--log-level", default="warning", type=click.Choice(["debug", "info", "warning", "error"]))
def cli(log_level):
    """claude-status - Claude Code rate-limit and cost tracker."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )


def _usage_table(data, projects, prediction) -> Table:
    table = Table(show_header=True, header_style="bold cyan", title=build_label(data, projects))
    table.add_column("Window", style="white")
    table.add_column("Utilization", justify="right")
    table.add_column("Resets in", justify="right")
    table.add_column("Est. Cost", justify="right", style="yellow")

    style = STATUS_STYLE.get(data.limit_status, "white")
    table.add_row("5h", f"[{style}]{format_percent(data.utilization_5h)}[/]", format_duration(data.reset_in_5h), f"${data.cost_5h:.2f}")
    table.add_row("today", "-", "-", f"${data.cost_day:.2f}")
    table.add_row("7d", f"[{style}]{format_percent(data.utilization_7d)}[/]", format_duration(data.reset_in_7d), f"${data.cost_7d:.2f}")

    source_style = SOURCE_STYLE.get(data.data_source, "white")
    table.caption = (
        f"5h tokens in:{format_tokens(data.tokens_in_5h)} out:{format_tokens(data.tokens_out_5h)} "
        f"cache r/w:{format_tokens(data.tokens_cache_read_5h)}/{format_tokens(data.tokens_cache_create_5h)}  "
        f"source: [{source_style}]{data.data_source}[/]"
    )
    if prediction is not None:
        table.caption += f"\n{prediction.recommendation}"
    return table


@cli.command()
@click.option("--refresh", "force", is_flag=True, help="Always call the quota endpoint")
@click.option("--plain", is_flag=True, help="Plain text summary instead of a table")
@click.option("--workspace", "-w", multiple=True, help="Workspace path for project costs (repeatable)")
def status(force, plain, workspace):
    """Show current rate-limit utilization and local cost."""
    asyncio.run(_status(force, plain, workspace))


async def _status(force, plain, workspaces):
    manager = UsageManager(Settings(), workspaces=workspaces)
    try:
        if force:
            await manager.force_refresh()
        else:
            await manager.refresh()
    finally:
        await manager.close()
    if manager.last_data is None:
        console.print("[red]No usage data available.[/]")
        return
    if plain:
        console.print(build_label(manager.last_data, manager.last_project_costs), markup=False, highlight=False)
        console.print(build_tooltip(manager.last_data, manager.last_project_costs), markup=False, highlight=False)
        return
    console.print()
    console.print(_usage_table(manager.last_data, manager.last_project_costs, manager.last_prediction))
    console.print()


@cli.command()
@click.option("--workspace", "-w", multiple=True, help="Workspace path (repeatable, default: current directory)")
def projects(workspace):
    """Show per-project cost for one or more workspaces."""
    asyncio.run(_projects(workspace or (os.getcwd(),)))


async def _projects(workspaces):
    manager = UsageManager(Settings(), workspaces=workspaces)
    try:
        costs = await manager.refresh_project_costs()
    finally:
        await manager.close()

    if not costs:
        console.print("[dim]No project data found.[/]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Project", style="white")
    table.add_column("Today", justify="right", style="yellow")
    table.add_column("7d", justify="right")
    table.add_column("30d", justify="right")
    table.add_column("Sessions", justify="right")
    table.add_column("Last active", style="dim")
    for p in costs:
        table.add_row(
            p.project_name,
            f"${p.cost_today:.2f}",
            f"${p.cost_7d:.2f}",
            f"${p.cost_30d:.2f}",
            str(p.session_count),
            p.last_active.astimezone().strftime("%Y-%m-%d %H:%M") if p.last_active > EPOCH else "-",
        )
    console.print(table)


@cli.command()
def predict():
    """Forecast when the 5h window or daily budget runs out."""
    asyncio.run(_predict())


async def _predict():
    manager = UsageManager(Settings())
    try:
        await manager.get_usage_data()
        prediction = await manager.get_prediction()
    finally:
        await manager.close()
    if prediction is None:
        console.print("[red]No usage data available.[/]")
        return

    console.print(f"\n[bold]Burn rate:[/] ${prediction.current_burn_rate:.2f}/h")
    if prediction.estimated_exhaustion_in is not None:
        console.print(f"[bold]5h limit in:[/] {format_duration(prediction.estimated_exhaustion_in)}")
    if prediction.budget_remaining is not None:
        console.print(f"[bold]Budget left:[/] ${prediction.budget_remaining:.2f}")
    if prediction.budget_exhaustion_time is not None:
        console.print(f"[bold]Budget out at:[/] {prediction.budget_exhaustion_time.astimezone():%H:%M}")
    style = "green" if prediction.safe_to_start_heavy_task else "yellow"
    console.print(f"[{style}]{prediction.recommendation}[/]\n")


@cli.command()
@click.option("--days", "-d", default=14, help="Number of days to show")
def heatmap(days):
    """Show daily cost for the last N days."""
    data = get_heatmap_data(Settings().projects_dir, days)

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Date", style="dim")
    table.add_column("Responses", justify="right")
    table.add_column("Tokens", justify="right")
    table.add_column("Cost", justify="right", style="yellow")
    for d in data.daily:
        table.add_row(d.date, str(d.session_count), format_tokens(d.tokens_total), f"${d.cost:.2f}" if d.cost else "-")
    console.print(table)

    busiest = max(data.hourly, key=lambda h: h.count)
    if busiest.count:
        console.print(f"[dim]Busiest hour (30d): {busiest.hour:02d}:00, {busiest.count} responses[/]")


@cli.command()
@click.option("--workspace", "-w", multiple=True, help="Workspace path for project costs (repeatable)")
def watch(workspace):
    """Live status, refreshed when session logs change."""
    asyncio.run(_watch(workspace))


async def _watch(workspaces):
    manager = UsageManager(Settings(), workspaces=workspaces)

    try:
        with Live(console=console, refresh_per_second=1) as live:
            def render(data):
                live.update(_usage_table(data, manager.last_project_costs, manager.last_prediction))

            manager.subscribe(render)
            await manager.refresh()
            manager.start()
            while True:
                await asyncio.sleep(3600)
    except (KeyboardInterrupt, asyncio.CancelledError):
        pass
    finally:
        await manager.close()


@cli.command()
@click.option("--port", default=DASHBOARD_PORT, help="Dashboard API port")
@click.option("--host", default="127.0.0.1", help="Bind address")
@click.option("--workspace", "-w", multiple=True, help="Workspace path for project costs (repeatable)")
def serve(port, host, workspace):
    """Serve usage data as a JSON API for dashboards."""
    from .dashboard_app import create_dashboard_app

    console.print(f"[bold green]claude-status v{__version__}[/]")
    console.print(f"  Dashboard API: http://{host}:{port}/api/usage")
    manager = UsageManager(Settings(), workspaces=workspace or (os.getcwd(),))
    uvicorn.run(create_dashboard_app(manager), host=host, port=port, log_level="warning")
