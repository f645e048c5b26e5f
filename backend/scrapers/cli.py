#!/usr/bin/env python3
"""
Command line entry point for the storefront scrapers.

Usage:
    cd backend
    python -m scrapers <site> <url> [<url> ...]

Examples:
    python -m scrapers --list
    python -m scrapers gratis https://www.gratis.com/makyaj/c/501
    python -m scrapers missha https://missha.com.tr/kategori/cilt "Cilt Bakımı"
    python -m scrapers farmasi --product "https://www.farmasi.com.tr/urun?pid=1000123"

Exit codes: 0 when every base URL finished (or the run was cancelled with
Ctrl+C), 1 on usage errors and fatal failures. A second Ctrl+C aborts
immediately.
"""

import argparse
import asyncio
import json
import logging
import re
import signal
import sys
from pathlib import Path
from typing import List, Optional

from .base import Colors, ListingStrategy, ScrapeTarget, is_cancelled, request_cancel, reset_cancel
from .config import get_site_config, get_site_summary
from .manager import SCRAPER_REGISTRY, ScraperManager
from .settings import settings

logger = logging.getLogger('scraper.cli')


class ColorStripFormatter(logging.Formatter):
    """Formatter that strips ANSI color codes from log messages."""
    ansi_escape = re.compile(r'\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])')

    def format(self, record):
        message = super().format(record)
        return self.ansi_escape.sub('', message)


class UsageError(ValueError):
    """Bad command line arguments."""


def setup_logging(level: Optional[str] = None, log_to_file: Optional[bool] = None):
    """
    Colored console logs, plus a color-stripped log file.

    Scraper loggers (`scraper.*`) get their own handlers and do not
    propagate, so every message appears once.
    """
    level_value = getattr(logging, (level or settings.log_level).upper())
    if log_to_file is None:
        log_to_file = settings.log_to_file

    def build_handlers() -> List[logging.Handler]:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(settings.log_format))
        handlers: List[logging.Handler] = [console_handler]
        if log_to_file:
            settings.log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(settings.log_file, encoding='utf-8')
            file_handler.setFormatter(ColorStripFormatter(settings.log_format))
            handlers.append(file_handler)
        return handlers

    logging.basicConfig(level=level_value, handlers=build_handlers(), force=True)

    scraper_logger = logging.getLogger('scraper')
    scraper_logger.propagate = False
    for handler in list(scraper_logger.handlers):
        scraper_logger.removeHandler(handler)
        handler.close()
    for handler in build_handlers():
        scraper_logger.addHandler(handler)
    scraper_logger.setLevel(level_value)


def parse_targets(site_key: str, args: List[str]) -> List[ScrapeTarget]:
    """
    Turn positional arguments into scrape targets.

    Sites that need a category take `<url> <category>` pairs.

    Raises:
        UsageError: On an odd number of arguments for a paired site
    """
    config = get_site_config(site_key)
    if not config.requires_category:
        return [ScrapeTarget(url) for url in args]

    if len(args) % 2 != 0:
        raise UsageError(f"{site_key} expects <url> <category> pairs, got {len(args)} argument(s)")
    return [ScrapeTarget(args[i], args[i + 1]) for i in range(0, len(args), 2)]


def list_scrapers():
    """Print all configured scrapers."""
    print(f"\n{'='*60}")
    print("Available Scrapers")
    print(f"{'='*60}\n")

    for site in get_site_summary():
        impl = "IMPL" if site['key'] in SCRAPER_REGISTRY else "TODO"
        print(f"[{impl}] {site['key']:15} - {site['name']}")
        print(f"                  Type: {site['type']}, listing: {site['listing']}")
        print(f"                  URL: {site['url']}")
        print()


def install_sigint_handler():
    """First Ctrl+C asks scrapers to stop after the current item; the second aborts."""
    def handle(signum, frame):
        if is_cancelled():
            raise KeyboardInterrupt
        request_cancel()
        logger.warning(f"{Colors.yellow('Received SIGINT')}. Finishing current item, press Ctrl+C again to abort.")

    signal.signal(signal.SIGINT, handle)


async def scrape_one_product(manager: ScraperManager, site_key: str, url: str) -> int:
    """Scrape a single product page and print the record."""
    scraper = manager.get_scraper(site_key)
    target = ScrapeTarget(url)
    await scraper.setup()
    try:
        record = await scraper.scrape_product_with_retry(url, target)
    finally:
        await scraper.teardown()

    print(json.dumps(record.to_dict(), indent=2, ensure_ascii=False))
    return 1 if record.is_placeholder else 0


async def run(args: argparse.Namespace) -> int:
    site_key = args.site.lower()
    manager = ScraperManager(output_dir=args.output_dir, headless=args.headless)

    if args.product:
        if get_site_config(site_key).listing_strategy == ListingStrategy.COMMENTS:
            raise UsageError(f"--product is not supported for {site_key}")
        return await scrape_one_product(manager, site_key, args.product)

    targets = parse_targets(site_key, args.urls)
    results = await manager.scrape_site(site_key, targets or None)

    summary = manager.get_results_summary()
    logger.info(
        f"{Colors.bold('Summary')}: {summary['total_targets']} URL(s), "
        f"{Colors.green(str(summary['scraped']) + ' scraped')}, "
        f"{Colors.blue(str(summary['skipped']) + ' skipped')}, "
        f"{Colors.red(str(summary['placeholders']) + ' placeholders')}"
    )
    for result in results:
        if result.output_file:
            logger.info(f"   {result.base_url} -> {result.output_file}")

    if is_cancelled():
        return 0
    return 0 if results and all(r.success for r in results) else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='storefront-scrapers',
        description='Scrape Turkish e-commerce listings into JSON files',
    )
    parser.add_argument('site', nargs='?', help='Site key (see --list)')
    parser.add_argument('urls', nargs='*', help='Base URLs (missha: <url> <category> pairs)')
    parser.add_argument('--list', action='store_true', help='List all scrapers')
    parser.add_argument('--product', type=str, help='Scrape a single product URL and print it')
    parser.add_argument('--output-dir', type=Path, default=None, help='Root output directory')
    parser.add_argument('--headed', dest='headless', action='store_false', default=None,
                        help='Show the browser window')
    parser.add_argument('--log-level', type=str, default=None, help='Logging level (default from settings)')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.list:
        list_scrapers()
        return 0

    if not args.site:
        parser.print_help()
        print("\nExample: python -m scrapers gratis https://www.gratis.com/makyaj/c/501")
        return 1

    setup_logging(args.log_level)

    if args.site.lower() not in SCRAPER_REGISTRY:
        logger.error(f"Unknown site: '{args.site}'. Valid sites: {', '.join(sorted(SCRAPER_REGISTRY))}")
        return 1

    reset_cancel()
    install_sigint_handler()
    try:
        return asyncio.run(run(args))
    except UsageError as e:
        logger.error(str(e))
        parser.print_usage(sys.stderr)
        return 1
    except KeyboardInterrupt:
        logger.warning("Aborted")
        return 1
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        return 1
    finally:
        signal.signal(signal.SIGINT, signal.default_int_handler)


if __name__ == '__main__':
    sys.exit(main())
