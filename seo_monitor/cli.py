"""Typer CLI application for seo-monitor.

Provides commands for scoring page SEO metadata, inspecting the site
overview, running the performance alert monitor and managing alerts.
"""

import json
import logging
import time
from typing import List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

console = Console()
app = typer.Typer(
    name="seo-monitor",
    help="SEO metadata scoring and performance alert monitoring.",
    add_completion=False,
    no_args_is_help=True,
)

_STATUS_STYLES = {
    "excellent": "green",
    "good": "cyan",
    "needs-improvement": "yellow",
    "poor": "red",
}

_SEVERITY_STYLES = {
    "warning": "yellow",
    "critical": "bold red",
}


def _setup_logging(verbose: bool = False) -> None:
    """Configure logging level and format."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _get_app(config: str):
    """Lazy-import, initialise and return the application."""
    from seo_monitor.app import SEOMonitorApp
    application = SEOMonitorApp(config_path=config)
    try:
        application.initialize()
    except Exception as exc:
        console.print("[red]✘ Initialisation failed:[/red] " + str(exc))
        raise typer.Exit(code=1)
    return application


def _parse_value(raw: str):
    """Parse a ``key=value`` value into a number, bool or string."""
    lowered = raw.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        return float(raw)
    except ValueError:
        return raw


def _print_alerts(alerts, title: str) -> None:
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("ID", style="cyan")
    table.add_column("Severity")
    table.add_column("Type")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_column("Threshold", justify="right")
    table.add_column("Message", max_width=60)
    for alert in alerts:
        style = _SEVERITY_STYLES.get(alert.severity, "white")
        table.add_row(
            str(alert.id) if alert.id is not None else "-",
            f"[{style}]{alert.severity}[/{style}]",
            alert.type,
            alert.metric,
            str(alert.current_value),
            str(alert.threshold),
            alert.message,
        )
    console.print(table)


# ------------------------------------------------------------------
# init
# ------------------------------------------------------------------
@app.command()
def init(
    config: str = typer.Option("config/settings.yaml", "--config", "-c", help="Path to settings.yaml."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Create database tables."""
    _setup_logging(verbose)
    _get_app(config)
    console.print("[green]✔[/green] Database initialised.")


# ------------------------------------------------------------------
# score
# ------------------------------------------------------------------
@app.command()
def score(
    search: str = typer.Option("", "--search", "-s", help="Filter by title, page type or URL."),
    status: Optional[str] = typer.Option(None, "--status", help="Only pages in this score band."),
    attention: str = typer.Option("all", "--attention", help="all, optimized or needs-attention."),
    descending: bool = typer.Option(False, "--desc", help="Sort best score first."),
    show_issues: bool = typer.Option(False, "--issues", help="List issues and suggestions."),
    as_json: bool = typer.Option(False, "--json", help="Print results as JSON."),
    config: str = typer.Option("config/settings.yaml", "--config", "-c", help="Path to settings.yaml."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Score the SEO metadata of every page."""
    _setup_logging(verbose)
    from seo_monitor.scoring import filter_pages, sort_by_score
    from seo_monitor.store import StoreError

    application = _get_app(config)
    try:
        pages, results = application.score_pages()
        pairs = sort_by_score(
            filter_pages(pages, results, search=search, attention=attention, status=status),
            descending=descending,
        )
    except (StoreError, ValueError) as exc:
        console.print("[red]✘[/red] " + str(exc))
        raise typer.Exit(code=1)

    if as_json:
        console.print_json(json.dumps([result.to_dict() for _, result in pairs]))
        return

    table = Table(title="SEO Scores", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="cyan")
    table.add_column("Type")
    table.add_column("Title", max_width=45)
    table.add_column("Score", justify="right")
    table.add_column("Status")
    table.add_column("Issues", justify="right")
    for page, result in pairs:
        style = _STATUS_STYLES.get(result.status, "white")
        table.add_row(
            str(page.id),
            page.page_type or "-",
            (page.title or "").strip() or "[dim](no title)[/dim]",
            str(result.score),
            f"[{style}]{result.status}[/{style}]",
            str(len(result.issues)),
        )
    console.print(table)
    console.print(f"{len(pairs)} of {len(pages)} pages shown.")

    if show_issues:
        for page, result in pairs:
            if not result.issues:
                continue
            console.print(f"\n[bold]#{page.id} {(page.title or '').strip()}[/bold]")
            for issue, suggestion in zip(result.issues, result.suggestions):
                console.print(f"  [red]✘[/red] {issue}\n    [dim]→ {suggestion}[/dim]")


# ------------------------------------------------------------------
# stats
# ------------------------------------------------------------------
@app.command()
def stats(
    config: str = typer.Option("config/settings.yaml", "--config", "-c", help="Path to settings.yaml."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Show the site-wide SEO overview."""
    _setup_logging(verbose)
    from seo_monitor.store import StoreError

    application = _get_app(config)
    try:
        overview = application.seo_overview()
    except StoreError as exc:
        console.print("[red]✘[/red] " + str(exc))
        raise typer.Exit(code=1)

    table = Table(title="SEO Overview", show_header=True, header_style="bold magenta")
    table.add_column("Metric", style="cyan", min_width=28)
    table.add_column("Value", justify="right")
    table.add_row("Total pages", str(overview.total_pages))
    table.add_row("Optimized pages", str(overview.optimized_pages))
    table.add_row("Missing / short descriptions", str(overview.missing_descriptions))
    table.add_row("Missing keywords", str(overview.missing_keywords))
    table.add_row("Missing OG images", str(overview.missing_og_images))
    table.add_row("Avg. description length", str(overview.average_description_length))
    table.add_row("Avg. keywords per page", str(overview.average_keywords_count))
    table.add_row("Avg. SEO score", str(overview.average_score))
    for band, count in overview.status_counts.items():
        style = _STATUS_STYLES.get(band, "white")
        table.add_row(f"[{style}]{band}[/{style}]", str(count))
    console.print(table)


# ------------------------------------------------------------------
# check
# ------------------------------------------------------------------
@app.command()
def check(
    config: str = typer.Option("config/settings.yaml", "--config", "-c", help="Path to settings.yaml."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Run a single performance check now."""
    _setup_logging(verbose)
    application = _get_app(config)
    emitted = application.monitor.run_check()
    if emitted:
        _print_alerts(emitted, title="New Alerts")
    else:
        console.print("[green]✔[/green] No new alerts.")


# ------------------------------------------------------------------
# monitor
# ------------------------------------------------------------------
@app.command()
def monitor(
    interval: Optional[float] = typer.Option(None, "--interval", "-i", help="Minutes between checks."),
    duration: Optional[float] = typer.Option(None, "--duration", "-d", help="Stop after N minutes."),
    config: str = typer.Option("config/settings.yaml", "--config", "-c", help="Path to settings.yaml."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Run the performance alert monitor until interrupted."""
    _setup_logging(verbose)
    application = _get_app(config)
    minutes = interval or application.monitor.config.interval_minutes
    console.print(Panel(f"[bold cyan]Performance monitoring every {minutes} min[/bold cyan]"))

    application.start_monitoring(minutes)
    deadline = time.monotonic() + duration * 60 if duration else None
    try:
        while deadline is None or time.monotonic() < deadline:
            time.sleep(1)
    except KeyboardInterrupt:
        console.print("\nInterrupted.")
    finally:
        application.stop_monitoring()
    console.print("[green]✔[/green] Monitoring stopped.")


# ------------------------------------------------------------------
# alerts
# ------------------------------------------------------------------
@app.command()
def alerts(
    limit: int = typer.Option(10, "--limit", "-n", help="Maximum alerts to show."),
    config: str = typer.Option("config/settings.yaml", "--config", "-c", help="Path to settings.yaml."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """List unacknowledged performance alerts."""
    _setup_logging(verbose)
    application = _get_app(config)
    pending = application.monitor.get_unacknowledged_alerts(limit=limit)
    if not pending:
        console.print("[green]✔[/green] No unacknowledged alerts.")
        return
    _print_alerts(pending, title="Unacknowledged Alerts")


# ------------------------------------------------------------------
# ack
# ------------------------------------------------------------------
@app.command()
def ack(
    alert_id: int = typer.Argument(..., help="ID of the alert to acknowledge."),
    config: str = typer.Option("config/settings.yaml", "--config", "-c", help="Path to settings.yaml."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Acknowledge a performance alert."""
    _setup_logging(verbose)
    application = _get_app(config)
    if not application.monitor.acknowledge_alert(alert_id):
        console.print(f"[red]✘[/red] Alert {alert_id} not found.")
        raise typer.Exit(code=1)
    console.print(f"[green]✔[/green] Alert {alert_id} acknowledged.")


# ------------------------------------------------------------------
# log-metric
# ------------------------------------------------------------------
@app.command("log-metric")
def log_metric(
    metric_type: str = typer.Argument(..., help="performance_audit, query_performance, cache_hit or cache_miss."),
    values: Optional[List[str]] = typer.Argument(None, help="key=value context pairs."),
    config: str = typer.Option("config/settings.yaml", "--config", "-c", help="Path to settings.yaml."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Record a metric-log entry."""
    _setup_logging(verbose)
    context = {}
    for pair in values or []:
        key, sep, raw = pair.partition("=")
        if not sep or not key:
            console.print(f"[red]✘[/red] Expected key=value, got {pair!r}")
            raise typer.Exit(code=1)
        context[key] = _parse_value(raw)

    from seo_monitor.store import StoreError

    application = _get_app(config)
    try:
        record_id = application.metric_store.record_metric(metric_type, context)
    except StoreError as exc:
        console.print("[red]✘[/red] " + str(exc))
        raise typer.Exit(code=1)
    console.print(f"[green]✔[/green] Recorded {metric_type} #{record_id}.")


# ------------------------------------------------------------------
# status
# ------------------------------------------------------------------
@app.command()
def status(
    config: str = typer.Option("config/settings.yaml", "--config", "-c", help="Path to settings.yaml."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Show project status: database, pages, monitoring, configuration."""
    _setup_logging(verbose)
    console.print(Panel("[bold cyan]System Status[/bold cyan]"))
    application = _get_app(config)

    table = Table(title="Component Status", show_header=True, header_style="bold magenta")
    table.add_column("Component", style="cyan", min_width=20)
    table.add_column("Status", min_width=10)
    table.add_column("Details", max_width=50)
    for component, info in application.get_status().items():
        state = info.get("status")
        if state == "ok":
            display = "[green]✔ OK[/green]"
        elif state == "warning":
            display = "[yellow]⚠ Warning[/yellow]"
        else:
            display = "[red]✘ Error[/red]"
        table.add_row(component.title(), display, str(info.get("details", ""))[:50])
    console.print(table)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
