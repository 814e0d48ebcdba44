"""CLI entry point replaying recorded executor events into the store."""

import asyncio
import json
import logging
import os
import sys
from collections.abc import Sequence
from pathlib import Path

import typer

from bug0.studio_reporter.event_loader import load_events
from bug0.studio_reporter.models.config import ReporterConfig
from bug0.studio_reporter.models.events import ReporterEvent
from bug0.studio_reporter.models.records import RunSummary
from bug0.studio_reporter.reporter import StudioReporter
from bug0.studio_reporter.store.base import DocumentStore
from bug0.studio_reporter.store.factory import open_store

# Configure logging - force reconfiguration
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stderr,
    force=True,  # Force reconfiguration even if already set up
)
logger = logging.getLogger(__name__)

app = typer.Typer()


async def replay_events(
    store: DocumentStore,
    config: ReporterConfig,
    events: Sequence[ReporterEvent],
) -> RunSummary | None:
    """Feed events to a reporter in order and return the run summary."""
    summary: RunSummary | None = None
    async with store:
        reporter = StudioReporter(store, config)
        for event in events:
            result = await reporter.handle(event)
            if result is not None:
                summary = result
    return summary


@app.command()
def main(
    events: Path = typer.Option(..., help="Recorded executor event stream file"),  # noqa: B008
) -> None:
    """Record a test run from an executor event stream."""
    logger.info("=" * 80)
    logger.info("Studio Reporter - Starting")
    logger.info("=" * 80)
    logger.info(f"Event file: {events}")

    try:
        config = ReporterConfig.from_env(os.environ)
        store = open_store(config.store_url)
        logger.info(f"Store created: {type(store).__name__}")
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    logger.info(f"Execution: {config.execution_id}")

    try:
        loaded = load_events(events)
        logger.info(f"Loaded {len(loaded)} events")
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Failed to load events: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    try:
        summary = asyncio.run(replay_events(store, config, loaded))
    except Exception as e:
        logger.exception("Recording failed")
        typer.echo(f"Error recording run: {e}", err=True)
        raise typer.Exit(code=1)

    if summary is None:
        typer.echo("Error: run was not finalized", err=True)
        raise typer.Exit(code=1)

    logger.info("=" * 80)
    logger.info(f"Run {summary.run_id}: {summary.status}")
    logger.info("=" * 80)

    typer.echo(json.dumps(summary.model_dump(), indent=2))


if __name__ == "__main__":  # pragma: no cover
    app()
