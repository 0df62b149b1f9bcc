#!/usr/bin/env python3
"""Generate an RSS feed for one edition's analyzed articles.

The feed lists the published, analyzed articles of the edition in their
display order. It can be served from any static host.

Usage:
    python generate_rss_feed.py [--date 2026-10-19] [--output data/edition.xml]
"""

import argparse
from datetime import date, datetime, timezone
from pathlib import Path

from policybrief.config import load_config
from policybrief.edition_feed import save_edition_feed
from policybrief.storage.database import Database


def main():
    cfg = load_config()

    parser = argparse.ArgumentParser(description="Generate RSS feed for a policy edition")
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=None,
        help="Edition date as YYYY-MM-DD (default: today, UTC)"
    )
    parser.add_argument(
        "--output",
        type=str,
        default=cfg["rss_output_path"],
        help=f"Output path for RSS XML file (default: {cfg['rss_output_path']})"
    )
    args = parser.parse_args()

    edition_date = args.date or datetime.now(timezone.utc).date()
    Path(args.output).parent.mkdir(parents=True, exist_ok=True)

    with Database(cfg["db_path"]) as db:
        print(f"Generating RSS feed for {edition_date}...")
        item_count = save_edition_feed(db, edition_date, args.output)

    if item_count:
        print(f"✓ RSS feed generated: {args.output}")
        print(f"  Items included: {item_count}")
    else:
        print(f"No analyzed articles found for {edition_date}.")


if __name__ == "__main__":
    main()
