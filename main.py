#!/usr/bin/env python3
"""
versebot - main entry point

Runs the per-minute delivery scheduler, or one-off maintenance commands
(single tick, corpus search, topic listing, citation check).
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from versebot.app import build_app
from versebot.catalog import CatalogError
from versebot.config import AppConfig, load_config
from versebot.corpus import CorpusError
from versebot.live import verify_citations
from versebot.notifier import NotificationError
from versebot.secrets import SecretError


def setup_logging(config: AppConfig) -> None:
    """Configure logging based on config."""
    log_config = config.logging

    log_file = log_config.get("log_file", "logs/versebot.log")
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    level = getattr(logging, str(log_config.get("level", "INFO")).upper(), logging.INFO)
    handlers = []

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(level)
    handlers.append(file_handler)

    if log_config.get("console_output", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        handlers.append(console_handler)

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="versebot passage delivery service")
    parser.add_argument("--config", default="config/config.yaml", help="Path to YAML config")
    parser.add_argument("--timezone", default="", help="IANA timezone (overrides config and $TZ)")
    parser.add_argument("--once", action="store_true", help="Run a single scheduler tick and exit")
    parser.add_argument("--search", default="", help="Search the corpus and print the results")
    parser.add_argument("--limit", type=int, default=15, help="Result limit for --search (default: 15)")
    parser.add_argument("--list-topics", action="store_true", help="Print the curated topic labels")
    parser.add_argument("--verify-text", default="", help="Check the references cited in a text")
    return parser


def main(argv: Optional[list] = None) -> int:
    """Main execution function."""
    args = build_parser().parse_args(argv)

    config = load_config(args.config, timezone=args.timezone or None)
    setup_logging(config)
    logger = logging.getLogger(__name__)

    try:
        app = build_app(config)
    except (CorpusError, CatalogError) as e:
        logger.error(f"[FATAL] {e}")
        return 1
    except (SecretError, NotificationError) as e:
        logger.error(f"[FATAL] Transport misconfigured: {e}")
        return 1

    if args.list_topics:
        print("\n".join(app.catalog.list_topics()))
        return 0

    if args.search:
        for passage in app.search_engine.search(args.search, limit=args.limit):
            print(f"{passage.ref}\n{passage.text}\n")
        return 0

    if args.verify_text:
        report = verify_citations(app.index, args.verify_text)
        for citation in report.verified:
            print(f"ok       {citation.raw}")
        for citation in report.unverified:
            print(f"missing  {citation.raw}")
        return 0 if report.ok else 2

    if args.once:
        result = app.scheduler.tick()
        return 1 if result.failed else 0

    logger.info("=" * 60)
    logger.info(f"versebot starting ({len(app.index):,} passages, {len(app.catalog.list_topics())} topics)")
    logger.info("=" * 60)

    try:
        app.scheduler.run_forever()
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    return 0


if __name__ == "__main__":
    sys.exit(main())
