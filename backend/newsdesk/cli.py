#!/usr/bin/env python3
"""
CLI tool for news ingestion.

Usage:
    # Run one ingestion pass over all configured sources
    newsdesk-ingest fetch

    # Require at least two delivering sources
    newsdesk-ingest fetch --min-sources 2

    # Show circuit breaker and rate limit state per source
    newsdesk-ingest status

    # Run the scheduler (continuous)
    newsdesk-ingest serve
"""

import argparse
import asyncio
import json
import sys

import httpx
import structlog
from sqlalchemy.exc import InterfaceError, OperationalError

from newsdesk.config import get_settings
from newsdesk.core.logging import configure_logging
from newsdesk.models.database import Database
from newsdesk.services.ingestion.circuit_breaker import CircuitBreaker
from newsdesk.services.ingestion.errors import StorageUnavailableError
from newsdesk.services.ingestion.factory import build_aggregator
from newsdesk.services.ingestion.rate_gate import RateGate
from newsdesk.services.ingestion.repository import ArticleRepository
from newsdesk.services.ingestion.scheduler import IngestionScheduler
from newsdesk.services.ingestion.state_store import create_state_store
from newsdesk.sources import PROVIDERS

logger = structlog.get_logger(__name__)


async def _prepare_database(database: Database) -> None:
    """Create tables, reporting an unreachable store as StorageUnavailableError."""
    try:
        await database.create_tables()
    except (OperationalError, InterfaceError) as e:
        raise StorageUnavailableError(str(e)) from e


async def cmd_fetch(args) -> int:
    """Fetch articles from all sources once."""
    settings = get_settings()
    database = Database(settings.database_url)
    store = create_state_store(settings.state_backend, settings.redis_url)

    try:
        await _prepare_database(database)
        async with httpx.AsyncClient(timeout=settings.request_timeout_seconds) as http_client:
            aggregator = build_aggregator(
                settings, ArticleRepository(database), store, http_client
            )
            print("Fetching news...")
            report = await aggregator.run(args.min_sources)
    except StorageUnavailableError as e:
        print(f"Ingestion aborted, article store unavailable: {e}", file=sys.stderr)
        return 1
    finally:
        await store.close()
        await database.dispose()

    print("\n" + "=" * 60)
    print("INGESTION RESULTS")
    print("=" * 60)
    for outcome in report.outcomes:
        print(outcome)
    print("-" * 60)
    print(
        f"Sources delivering: {report.successful_sources}"
        f"/{report.minimum_sources_required} required"
    )
    print(f"Articles persisted: {len(report.articles)}")

    if args.verbose:
        for article in report.articles[:10]:
            print(f"\n[{article.source}] {article.title}")
            print(f"  URL: {article.url}")
            print(f"  Date: {article.published_at}")
            if article.authors:
                print(f"  Authors: {', '.join(article.authors)}")

    print("News fetched successfully!")
    return 0


async def cmd_status(args) -> int:
    """Show resilience state of each source."""
    settings = get_settings()
    store = create_state_store(settings.state_backend, settings.redis_url)
    rate_gate = RateGate(store)

    try:
        status = []
        for name in PROVIDERS:
            circuit = await CircuitBreaker(name, store).state()
            window = await rate_gate.status(name)
            status.append({
                "source": name,
                "configured": bool(settings.source(name).api_key),
                "circuit": circuit.model_dump(mode="json"),
                "rate_window": window.model_dump(mode="json") if window else None,
            })
    finally:
        await store.close()

    print(json.dumps(status, indent=2))
    return 0


async def cmd_serve(args) -> int:
    """Run the continuous scheduler."""
    settings = get_settings()
    database = Database(settings.database_url)
    try:
        await _prepare_database(database)
    except StorageUnavailableError as e:
        print(f"Cannot start, article store unavailable: {e}", file=sys.stderr)
        await database.dispose()
        return 1

    store = create_state_store(settings.state_backend, settings.redis_url)

    async with httpx.AsyncClient(timeout=settings.request_timeout_seconds) as http_client:
        aggregator = build_aggregator(settings, ArticleRepository(database), store, http_client)
        scheduler = IngestionScheduler(aggregator, cron=args.cron or settings.fetch_cron)

        print(f"Starting scheduler ({scheduler.cron})")
        print("Press Ctrl+C to stop")

        scheduler.start()
        try:
            if args.run_now:
                await scheduler.run_once()
            while scheduler.is_running:
                await asyncio.sleep(60)
                logger.debug("Scheduler status", **scheduler.get_status())
        finally:
            scheduler.stop()
            await store.close()
            await database.dispose()

    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Newsdesk - News Ingestion CLI"
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Fetch command
    fetch_parser = subparsers.add_parser("fetch", help="Fetch news from all configured sources")
    fetch_parser.add_argument(
        "--min-sources", "-m",
        type=int,
        default=None,
        help="Sources that must deliver articles (default: from settings)"
    )
    fetch_parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show article previews"
    )

    # Status command
    subparsers.add_parser("status", help="Show circuit breaker and rate limit state")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run continuous scheduler")
    serve_parser.add_argument(
        "--cron", "-c",
        help="Crontab schedule (default: from settings, hourly)"
    )
    serve_parser.add_argument(
        "--run-now",
        action="store_true",
        help="Run one ingestion pass before waiting for the schedule"
    )

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    settings = get_settings()
    configure_logging(settings.log_level, settings.json_logs)

    commands = {
        "fetch": cmd_fetch,
        "status": cmd_status,
        "serve": cmd_serve,
    }
    try:
        return asyncio.run(commands[args.command](args))
    except KeyboardInterrupt:
        print("\nShutting down...")
        return 0


if __name__ == "__main__":
    sys.exit(main())
