#!/usr/bin/env python3
"""Editorial actions on stored editions.

Usage:
    python manage_edition.py list [--date 2026-10-19]
    python manage_edition.py status ARTICLE_ID {published,draft,queue,rejected}
    python manage_edition.py edit ARTICLE_ID --file analysis.txt
    python manage_edition.py remove ARTICLE_ID
    python manage_edition.py regenerate [--date 2026-10-19]
    python manage_edition.py clear [--date 2026-10-19]
    python manage_edition.py stats [--days 7]
"""

import argparse
import logging
import sys
from datetime import date, datetime, timezone
from pathlib import Path

from policybrief import editorial
from policybrief.analysis.generator import GenerationError
from policybrief.config import load_config
from policybrief.curator import build_curator
from policybrief.models import ArticleStatus
from policybrief.storage.database import Database


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage policy editions")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("list", help="Show an edition's articles grouped by status")
    p.add_argument("--date", type=date.fromisoformat, default=None)

    p = sub.add_parser("status", help="Promote or demote an article")
    p.add_argument("article_id", type=int)
    p.add_argument("status", choices=[s.value for s in ArticleStatus])

    p = sub.add_parser("edit", help="Replace an article's analysis")
    p.add_argument("article_id", type=int)
    p.add_argument("--file", type=Path, required=True, help="Text file holding the new analysis")

    p = sub.add_parser("remove", help="Delete an article")
    p.add_argument("article_id", type=int)

    p = sub.add_parser("regenerate", help="Delete and re-curate an edition")
    p.add_argument("--date", type=date.fromisoformat, default=None)

    p = sub.add_parser("clear", help="Delete an edition and its articles")
    p.add_argument("--date", type=date.fromisoformat, default=None)

    p = sub.add_parser("stats", help="Summary of recent editions")
    p.add_argument("--days", type=int, default=7)

    return parser


def run(args, cfg: dict, db: Database):
    edition_date = getattr(args, "date", None) or datetime.now(timezone.utc).date()

    if args.command == "list":
        grouped = editorial.articles_by_status(db, edition_date)
        for status, articles in grouped.items():
            print(f"{status.upper()} ({len(articles)})")
            for a in articles:
                order = f"{a.ordinal:>2}." if a.ordinal else "  -"
                print(f"  {order} [{a.id}] {a.title[:70]} ({a.source}, score {a.score}, {a.word_count} words)")

    elif args.command == "status":
        editorial.set_article_status(db, args.article_id, args.status)
        print(f"Article {args.article_id} is now {args.status}")

    elif args.command == "edit":
        wc = editorial.replace_analysis(db, args.article_id, args.file.read_text(encoding="utf-8"))
        print(f"Article {args.article_id} analysis updated ({wc} words)")

    elif args.command == "remove":
        editorial.remove_article(db, args.article_id)
        print(f"Article {args.article_id} removed")

    elif args.command == "regenerate":
        curator = build_curator(cfg, db)
        edition = curator.curate(edition_date, force=True)
        print(f"Edition #{edition.issue_number} regenerated with {len(edition.articles)} articles")

    elif args.command == "clear":
        curator = build_curator(cfg, db)
        if curator.reset(edition_date):
            print(f"Cleared edition for {edition_date}")
        else:
            print(f"No edition for {edition_date}")

    elif args.command == "stats":
        stats = editorial.get_stats(db, days=args.days)
        print(f"Editions (last {args.days} days): {stats['editions']}")
        print(f"  Articles:   {stats['articles']}")
        print(f"  Analyzed:   {stats['analyzed']} ({stats['fallbacks']} fallback)")
        print(f"  Avg words:  {stats['avg_word_count']}")
        print(f"  Sources:    {stats['sources']}")
        for e in stats["recent"]:
            print(f"  #{e['issue_number']} {e['date']} {e['status']} ({e['articles']} articles)")


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    cfg = load_config()
    with Database(cfg["db_path"]) as db:
        try:
            run(args, cfg, db)
        except (ValueError, LookupError) as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        except GenerationError as e:
            print(f"Error: generation aborted [{e.kind.value}]: {e}", file=sys.stderr)
            sys.exit(1)


if __name__ == "__main__":
    main()
