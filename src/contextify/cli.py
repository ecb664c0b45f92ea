"""Command-line interface using Typer."""

import asyncio
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from contextify import __version__
from contextify.config import get_settings
from contextify.db.store import ContentStore
from contextify.domain import StageStatus
from contextify.logging import setup_logging


app = typer.Typer(
    name="contextify",
    help="Contextify - topic extraction over ingested social content",
    add_completion=False,
)

console = Console()

QUEUE_POLL_SECONDS = 1.0


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"Contextify v{__version__}")
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
    log_level: Optional[str] = typer.Option(
        None, "--log-level", "-l", help="Override LOG_LEVEL (debug, info, warning...)"
    ),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit logs as JSON lines."),
) -> None:
    """Contextify - ingest content, extract topics, serve them over HTTP."""
    setup_logging(level=log_level, log_format="json" if json_logs else None)


def _open_store() -> ContentStore:
    settings = get_settings()
    return ContentStore(settings.database_url, busy_timeout=settings.database_busy_timeout)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload"),
) -> None:
    """Run the API server together with the background pipeline."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "contextify.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=reload or settings.api_reload,
    )


@app.command()
def ingest() -> None:
    """Run one ingestion cycle over all configured sources and exit."""
    from contextify.services.ingestion import IngestionScheduler, sources_from_settings

    settings = get_settings()
    store = _open_store()
    try:
        store.create_tables()
        adapters = sources_from_settings(settings, store)
        if not adapters:
            console.print("[yellow]No sources configured[/yellow]")
            raise typer.Exit(1)

        scheduler = IngestionScheduler(
            store=store,
            adapters=adapters,
            initial_date=settings.ingestion_initial_date,
        )
        cycle = asyncio.run(scheduler.run_cycle())
    finally:
        store.close()

    table = Table(title="Ingestion Cycle")
    table.add_column("Source", style="cyan")
    table.add_column("Since")
    table.add_column("Duration", justify="right")
    table.add_column("Result")
    for result in cycle.results:
        table.add_row(
            result.label,
            result.since.isoformat() if result.since else "-",
            f"{result.duration_seconds:.1f}s",
            "[green]ok[/green]" if result.succeeded else f"[red]{result.error}[/red]",
        )
    console.print(table)

    if cycle.failed:
        raise typer.Exit(1)


async def _drain(once: bool) -> None:
    from contextify.services.pipeline import PipelineService

    pipeline = PipelineService.from_settings()
    try:
        recovered = await asyncio.to_thread(pipeline.initialize)
        if recovered:
            console.print(f"[dim]Reset {recovered} item(s) to pending[/dim]")
        pipeline.start(ingestion=False)

        if not once:
            await pipeline.pool.wait()
            return

        while True:
            await asyncio.sleep(QUEUE_POLL_SECONDS)
            counts = await asyncio.to_thread(pipeline.store.status_counts)
            if counts[StageStatus.PENDING] == 0 and counts[StageStatus.PROCESSING] == 0:
                break
        await pipeline.stop()
    finally:
        pipeline.close()


@app.command()
def process(
    once: bool = typer.Option(
        False, "--once", help="Exit when no pending or processing items remain"
    ),
) -> None:
    """Run the topic extraction workers."""
    console.print("[bold blue]Starting topic extraction workers...[/bold blue]")
    try:
        asyncio.run(_drain(once))
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted[/yellow]")
        raise typer.Exit(130)
    status()


@app.command()
def status() -> None:
    """Show how many items are in each stage status."""
    store = _open_store()
    try:
        store.create_tables()
        counts = store.status_counts()
    finally:
        store.close()

    styles = {
        StageStatus.PENDING: "yellow",
        StageStatus.PROCESSING: "blue",
        StageStatus.DONE: "green",
        StageStatus.ERROR: "red",
    }
    table = Table(title="Content Status")
    table.add_column("Status", style="cyan")
    table.add_column("Items", justify="right")
    for stage_status, count in counts.items():
        table.add_row(stage_status.value, f"[{styles[stage_status]}]{count}[/]")
    console.print(table)


@app.command()
def topics(
    days: int = typer.Option(7, "--days", "-d", min=1, help="Trailing window in days"),
    account: Optional[str] = typer.Option(None, "--account", "-a", help="Account handle"),
) -> None:
    """List extracted topics of recent content."""
    store = _open_store()
    try:
        store.create_tables()
        mentions = store.topics_by_date_range(days, account)
    finally:
        store.close()

    if not mentions:
        console.print("[dim]No topics found[/dim]")
        return

    table = Table(title=f"Topics (last {days} days)")
    table.add_column("ID", style="dim", justify="right")
    table.add_column("Topic", style="cyan")
    table.add_column("Account")
    table.add_column("Published")
    table.add_column("Subscribers", justify="right")
    for m in mentions:
        table.add_row(
            str(m.topic_id),
            m.topic_name,
            m.account,
            m.publish_date.strftime("%Y-%m-%d %H:%M"),
            f"{m.subscriber_count:,}" if m.subscriber_count is not None else "-",
        )
    console.print(table)


if __name__ == "__main__":
    app()
