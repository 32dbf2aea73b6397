#!/usr/bin/env python3
"""
Fetch Companies Script

Runs one aggregator fetch against the configured document store and prints
the merged company view, followed by a per-collection summary.

Usage:
    python -m services.company_directory.scripts.fetch_companies
    python -m services.company_directory.scripts.fetch_companies --online
    python -m services.company_directory.scripts.fetch_companies --search acme
    python -m services.company_directory.scripts.fetch_companies --seed 7 --output views.json

Requires APPWRITE_PROJECT_ID and DATABASE_ID (environment or .env);
APPWRITE_API_KEY for collections without public read access.
"""

import argparse
import asyncio
import json
import random
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from services.company_directory.app.config import Settings
from services.company_directory.app.main import build_aggregator, build_store
from services.company_directory.aggregator import CompanyAggregator


async def run_fetch(config: Settings, seed: Optional[int]) -> CompanyAggregator:
    """Fetch once and return the populated aggregator."""
    store = build_store(config)
    aggregator = build_aggregator(
        config,
        store,
        rng=random.Random(seed) if seed is not None else None,
    )
    try:
        await aggregator.fetch_all(force_refresh=True)
    finally:
        await store.close()
    return aggregator


def print_summary(aggregator: CompanyAggregator, view_count: int) -> None:
    """Print per-collection counts and errors to stderr."""
    diagnostics = aggregator.last_diagnostics
    print("=" * 60, file=sys.stderr)
    print(f"Merged views: {view_count}", file=sys.stderr)

    if aggregator.last_failure is not None:
        print(f"FETCH FAILED: {aggregator.last_failure}", file=sys.stderr)
        return
    if diagnostics is None:
        return

    for collection, count in diagnostics.record_counts.items():
        error = diagnostics.errors.get(collection)
        status = f"ERROR: {error}" if error else "ok"
        print(f"  {collection.value:<15} {count:>6}  {status}", file=sys.stderr)


def main():
    parser = argparse.ArgumentParser(
        description="Fetch and print the merged company view",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--env-file",
        type=str,
        default=".env",
        help="Environment file to load (default: .env)",
    )
    parser.add_argument(
        "--online",
        action="store_true",
        help="Only branches that are online",
    )
    parser.add_argument(
        "--search",
        type=str,
        help="Print companies matching this name/email substring instead of views",
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Seed for placeholder coordinates and travel times",
    )
    parser.add_argument(
        "--output",
        type=str,
        help="Write JSON to this file instead of stdout",
    )

    args = parser.parse_args()

    load_dotenv(args.env_file)
    config = Settings()

    if not config.appwrite_project_id or not config.database_id:
        print("ERROR: APPWRITE_PROJECT_ID and DATABASE_ID must be set", file=sys.stderr)
        sys.exit(1)

    aggregator = asyncio.run(run_fetch(config, args.seed))

    if args.search:
        items = [c.model_dump(mode="json", by_alias=True) for c in aggregator.search_companies(args.search)]
        view_count = len(aggregator.merge())
    else:
        views = aggregator.get_online_companies() if args.online else aggregator.merge()
        items = [v.model_dump(mode="json", by_alias=True) for v in views]
        view_count = len(views)

    output = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "count": len(items),
        "items": items,
    }
    text = json.dumps(output, indent=2)

    if args.output:
        Path(args.output).write_text(text)
        print(f"Wrote {len(items)} items to {args.output}", file=sys.stderr)
    else:
        print(text)

    print_summary(aggregator, view_count)


if __name__ == "__main__":
    main()
