#!/usr/bin/env python3
"""Policy Brief daily edition pipeline: fetch, select, analyze, persist, publish."""

import argparse
import sys
import logging
from logging.handlers import TimedRotatingFileHandler
from datetime import date, datetime
from pathlib import Path

from policybrief.analysis.generator import GenerationError
from policybrief.config import load_config
from policybrief.curator import build_curator
from policybrief.storage.database import Database


def setup_logging(log_path: Path):
    """Set up rotating file handler for pipeline logs."""
    log_path.parent.mkdir(parents=True, exist_ok=True)

    # Rotates at midnight, keeps 7 days
    handler = TimedRotatingFileHandler(
        filename=log_path,
        when='midnight',
        interval=1,
        backupCount=7,
        encoding='utf-8'
    )
    handler.suffix = '%Y-%m-%d'

    logging.basicConfig(
        level=logging.INFO,
        format='%(message)s',
        handlers=[handler, logging.StreamHandler(sys.stdout)]
    )

    return logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Create today's policy edition")
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=None,
        help="Edition date as YYYY-MM-DD (default: today, UTC)"
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Delete an existing edition for the date and curate it again"
    )
    parser.add_argument(
        "--no-publish",
        action="store_true",
        help="Only curate; skip the publish and mark-sent steps"
    )
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    cfg = load_config()
    data_dir = Path(cfg["db_path"]).parent

    logger = setup_logging(data_dir / "pipeline.log")

    start_time = datetime.now()
    logger.info("\n" + "=" * 60)
    logger.info("Policy Brief - Daily Edition Pipeline")
    logger.info(f"Started: {start_time.strftime('%Y-%m-%d %H:%M:%S')}")
    logger.info("=" * 60)

    logger.info("\n[1/3] Loading configuration...")
    if not cfg["anthropic_api_key"]:
        logger.error("ERROR: No Anthropic API key found.")
        logger.error("Set ANTHROPIC_API_KEY env var or add to config.yaml")
        sys.exit(1)
    if not cfg["gnews_api_key"] and not cfg["feeds"]:
        logger.warning("WARNING: No GNEWS_API_KEY and no feeds configured; the edition will be empty.")

    logger.info("[2/3] Curating edition...")
    with Database(cfg["db_path"]) as db:
        curator = build_curator(cfg, db)
        try:
            if args.no_publish:
                edition = curator.curate(args.date, force=args.force)
            else:
                edition = curator.run_daily(args.date, force=args.force)
        except GenerationError as e:
            logger.error(f"ERROR: Generation aborted [{e.kind.value}]: {e}")
            sys.exit(1)

        stats = curator.stats
        logger.info("[3/3] Done.")

    end_time = datetime.now()
    duration = (end_time - start_time).total_seconds()

    logger.info("\n" + "=" * 60)
    logger.info("Pipeline Complete!" if not stats.reused_existing else "Pipeline Complete (existing edition)")
    logger.info(f"  Started:     {start_time.strftime('%Y-%m-%d %H:%M:%S')}")
    logger.info(f"  Finished:    {end_time.strftime('%Y-%m-%d %H:%M:%S')}")
    logger.info(f"  Duration:    {duration:.1f}s")
    logger.info(f"  Edition:     #{edition.issue_number} ({edition.edition_date}, {edition.status.value})")
    logger.info(f"  Fetched:     {stats.fetched} candidates")
    logger.info(f"  Selected:    {stats.selected}")
    logger.info(f"  Analyzed:    {stats.analyzed} ({stats.fallbacks} fallback)")
    logger.info(f"  Articles:    {len(edition.articles)}")
    logger.info("=" * 60)


if __name__ == "__main__":
    main()
