"""
Base classes for the storefront scraper system.

This module defines the data structures, the cancellation flag and the
abstract base classes used by all site-specific scrapers. The shared product
loop lives in ProductScraper.scrape_target():

1. Load URLs already saved for the base URL (resume)
2. Walk the listing pages, yielding batches of product URLs
3. Scrape each new product with retries, falling back to a placeholder
4. Rewrite the output file after every product
"""

from abc import ABC, abstractmethod
from typing import List, Dict, Optional, Any, AsyncIterator
from dataclasses import dataclass, field
from enum import Enum
from datetime import datetime, timezone
from pathlib import Path
import asyncio
import logging
import random
import threading

from bs4 import BeautifulSoup
from playwright.async_api import Page

from .settings import settings
from .storage import ProductStore
from .crawlers.browser import BrowserCrawler

logger = logging.getLogger(__name__)

# ANSI color codes for terminal output
class Colors:
    """ANSI color codes for colorized logging."""
    RESET = '\033[0m'
    BOLD = '\033[1m'
    DIM = '\033[2m'

    # Colors
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    BLUE = '\033[94m'
    CYAN = '\033[96m'
    GRAY = '\033[90m'

    @staticmethod
    def green(text):
        return f"{Colors.GREEN}{text}{Colors.RESET}"

    @staticmethod
    def yellow(text):
        return f"{Colors.YELLOW}{text}{Colors.RESET}"

    @staticmethod
    def red(text):
        return f"{Colors.RED}{text}{Colors.RESET}"

    @staticmethod
    def blue(text):
        return f"{Colors.BLUE}{text}{Colors.RESET}"

    @staticmethod
    def cyan(text):
        return f"{Colors.CYAN}{text}{Colors.RESET}"

    @staticmethod
    def gray(text):
        return f"{Colors.GRAY}{text}{Colors.RESET}"

    @staticmethod
    def bold(text):
        return f"{Colors.BOLD}{text}{Colors.RESET}"


class ScraperType(Enum):
    """Types of scrapers based on site requirements."""
    STATIC = "static"           # httpx + BeautifulSoup (fast)
    JAVASCRIPT = "javascript"   # Playwright (JS rendering)
    STEALTH = "stealth"         # Playwright with automation markers hidden


class ListingStrategy(Enum):
    """How a site's listing pages are traversed."""
    PAGINATION = "pagination"           # numbered pages or a "next" link/button
    INFINITE_SCROLL = "infinite_scroll" # scroll until the page height settles
    LOAD_MORE = "load_more"             # click a "show more" button
    DIRECT = "direct"                   # targets are product pages
    COMMENTS = "comments"               # social post comment polling


@dataclass
class SiteConfig:
    """Configuration for a scraping source."""
    name: str                           # Full display name
    short_name: str                     # Site key, also used in logger names
    base_url: str                       # Base URL for resolving relative links
    scraper_type: ScraperType           # Which crawler to use
    listing_strategy: ListingStrategy   # How listing pages are walked
    output_subdir: str                  # Directory under settings.output_dir
    default_urls: List[str] = field(default_factory=list)  # Used when no URL is given
    rate_limit_seconds: float = 1.0     # Delay between products
    rate_limit_jitter: float = 2.0      # Random extra delay between products
    page_delay_seconds: float = 2.0     # Delay between listing pages
    page_delay_jitter: float = 0.0      # Random extra delay between listing pages
    max_pages: Optional[int] = None     # Listing page cap
    max_retries: Optional[int] = None   # Falls back to settings.max_retries
    retry_delay: float = 2.0            # Seconds between detail retries
    restart_every: Optional[int] = None # Relaunch browser after N products
    required_fields: List[str] = field(default_factory=list)
    default_currency: Optional[str] = None
    requires_category: bool = False     # CLI takes url/category pairs
    referer: Optional[str] = None       # Defaults to base_url
    headless: Optional[bool] = None     # Overrides settings.headless


@dataclass
class ScrapeTarget:
    """A base URL to scrape, with the category label some sites take."""
    url: str
    category: Optional[str] = None


# Fields stored on ProductRecord directly; anything else goes to `extra`
RECORD_FIELDS = (
    'product_id', 'brand', 'title', 'price', 'currency', 'images',
    'rating', 'description', 'categories', 'specifications',
)


@dataclass
class ProductRecord:
    """Standardized product data after scraping."""
    url: str
    product_id: Optional[str] = None
    brand: Optional[str] = None
    title: Optional[str] = None
    price: Optional[float] = None
    currency: Optional[str] = None
    images: List[str] = field(default_factory=list)
    rating: Optional[float] = None
    description: Optional[str] = None
    categories: Optional[str] = None
    specifications: List[Dict[str, str]] = field(default_factory=list)

    # Site-specific fields (shipping_fee, returnable, variation...)
    extra: Dict[str, Any] = field(default_factory=dict)

    # Set on placeholder records only
    error: Optional[str] = None

    @classmethod
    def from_data(cls, url: str, data: Dict[str, Any]) -> 'ProductRecord':
        """Build a record from a parsed dict, routing unknown keys to `extra`."""
        known = {k: v for k, v in data.items() if k in RECORD_FIELDS}
        extra = {k: v for k, v in data.items() if k not in RECORD_FIELDS and k not in ('url', 'error')}
        known['images'] = list(known.get('images') or [])
        known['specifications'] = list(known.get('specifications') or [])
        return cls(url=url, extra=extra, **known)

    @classmethod
    def placeholder(cls, url: str, error: Optional[str] = None, **fields) -> 'ProductRecord':
        """Record saved when every attempt for a product failed."""
        return cls(url=url, error=error or 'Unknown error', **fields)

    @property
    def is_placeholder(self) -> bool:
        return self.error is not None

    def missing_fields(self, names: List[str]) -> List[str]:
        """Names from `names` whose value is empty."""
        return [n for n in names if not getattr(self, n, None) and not self.extra.get(n)]

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'url': self.url,
            'product_id': self.product_id,
            'brand': self.brand,
            'title': self.title,
            'price': self.price,
            'currency': self.currency,
            'images': self.images,
            'rating': self.rating,
            'description': self.description,
            'categories': self.categories,
            'specifications': self.specifications,
        }
        data.update(self.extra)
        if self.error is not None:
            data['error'] = self.error
        return data


@dataclass
class ScrapeResult:
    """Result of scraping one base URL."""
    source: str
    base_url: str
    started_at: datetime
    output_file: Optional[str] = None
    completed_at: Optional[datetime] = None
    total: int = 0          # products attempted this run
    scraped: int = 0        # products saved with data
    skipped: int = 0        # products already in earlier output
    placeholders: int = 0   # products saved as placeholders
    errors: int = 0         # fatal failures of the whole target
    cancelled: bool = False
    error_details: List[Dict] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.errors == 0

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.completed_at and self.started_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> Dict:
        return {
            'source': self.source,
            'base_url': self.base_url,
            'output_file': self.output_file,
            'started_at': self.started_at.isoformat(),
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'duration_seconds': self.duration_seconds,
            'total': self.total,
            'scraped': self.scraped,
            'skipped': self.skipped,
            'placeholders': self.placeholders,
            'errors': self.errors,
            'cancelled': self.cancelled,
            'error_details': self.error_details[:10],  # Limit error details
            'success': self.success,
        }


class ScrapeCancelledException(Exception):
    """Raised inside a scrape when the user asked it to stop."""


class IncompleteProductError(Exception):
    """Raised when a parsed product lacks a required field."""


_cancel_event = threading.Event()


def request_cancel():
    """Ask running scrapers to stop before their next item."""
    _cancel_event.set()


def is_cancelled() -> bool:
    return _cancel_event.is_set()


def reset_cancel():
    _cancel_event.clear()


class BaseScraper(ABC):
    """
    Abstract base class for all scrapers.

    Subclasses must implement:
    - scrape_target(): Scrape one base URL into one output file

    Optional overrides:
    - setup() / teardown(): crawler lifecycle hooks
    """

    def __init__(self, config: SiteConfig, output_dir: Optional[Path] = None):
        """
        Initialize the scraper.

        Args:
            config: Site configuration
            output_dir: Root output directory (defaults to settings.output_dir)
        """
        self.config = config
        self.output_dir = Path(output_dir or settings.output_dir) / config.output_subdir
        self.max_retries = config.max_retries or settings.max_retries
        self.logger = logging.getLogger(f"scraper.{config.short_name}")
        self.results: List[ScrapeResult] = []

    @abstractmethod
    async def scrape_target(self, target: ScrapeTarget) -> ScrapeResult:
        """
        Scrape one base URL.

        Args:
            target: Base URL (and optional category label)

        Returns:
            ScrapeResult with statistics
        """

    async def setup(self):
        """Acquire crawler resources before the first target."""

    async def teardown(self):
        """Release crawler resources after the last target."""

    async def pause(self):
        """Human-like delay between products."""
        await self._sleep(self.config.rate_limit_seconds, self.config.rate_limit_jitter)

    async def page_pause(self):
        """Human-like delay between listing pages."""
        await self._sleep(self.config.page_delay_seconds, self.config.page_delay_jitter)

    async def _sleep(self, base: float, jitter: float):
        delay = base + (random.uniform(0, jitter) if jitter else 0)
        if delay > 0 and not is_cancelled():
            await asyncio.sleep(delay)

    async def run(self, targets: Optional[List[ScrapeTarget]] = None) -> List[ScrapeResult]:
        """
        Main entry point - scrape each target in turn.

        Args:
            targets: Base URLs to scrape (defaults to the site's default URLs)

        Returns:
            One ScrapeResult per target that was started
        """
        if not targets:
            targets = [ScrapeTarget(url) for url in self.config.default_urls]
        if not targets:
            raise ValueError(f"No URLs given for {self.config.name}")

        self.logger.info(f"Starting scrape for {self.config.name} ({len(targets)} URL(s))")
        await self.setup()
        try:
            for target in targets:
                if is_cancelled():
                    break
                self.results.append(await self.scrape_target(target))
        finally:
            await self.teardown()

        return self.results


class ProductScraper(BaseScraper):
    """
    Base class for storefront scrapers.

    The shared loop lives in scrape_target():

    1. Load URLs already saved for the base URL (resume)
    2. Walk the listing pages, yielding batches of product URLs
    3. Scrape each new product with retries, falling back to a placeholder
    4. Rewrite the output file after every product

    Subclasses must implement:
    - iter_product_urls(): Walk listing pages, yielding batches of product URLs
    - scrape_product(): Extract one product page into a dict

    Optional overrides:
    - product_id_from_url(): Id derivable without loading the page
    - make_placeholder(): Custom placeholder records
    - recover() / after_product(): crawler repair and periodic restarts
    """

    # Log a progress line every N products
    PROGRESS_EVERY = 10

    # Fields reported by log_product_extraction
    TRACKED_FIELDS = ['product_id', 'brand', 'title', 'price', 'currency', 'images',
                      'rating', 'description', 'categories', 'specifications']

    def __init__(self, config: SiteConfig, output_dir: Optional[Path] = None):
        super().__init__(config, output_dir)
        # Data seen on listing cards, merged into the product record
        self.listing_hints: Dict[str, Dict[str, Any]] = {}
        self._products_done = 0

    @abstractmethod
    def iter_product_urls(self, target: ScrapeTarget) -> AsyncIterator[List[str]]:
        """
        Walk the listing pages of a target.

        Yields:
            Batches of absolute product URLs (one batch per listing page,
            or a single batch for scroll-based listings)
        """

    @abstractmethod
    async def scrape_product(self, url: str, target: ScrapeTarget) -> Dict[str, Any]:
        """
        Scrape an individual product page.

        Args:
            url: Product URL
            target: The target the URL was found under

        Returns:
            Dictionary of product data
        """

    def product_id_from_url(self, url: str) -> Optional[str]:
        """Product id derivable from the URL alone, if the site has one."""
        return None

    async def recover(self, error: Exception):
        """Called between failed attempts so the crawler can repair itself."""

    async def after_product(self, count: int):
        """Called after every product with the running product count."""

    def build_record(self, url: str, data: Dict[str, Any], target: ScrapeTarget) -> ProductRecord:
        """
        Merge listing hints, parsed data and site defaults into a record.

        Raises:
            IncompleteProductError: If a required field is empty
        """
        merged = dict(self.listing_hints.get(url, {}))
        merged.update({k: v for k, v in data.items() if v not in (None, '', [])})

        if target.category and not merged.get('categories'):
            merged['categories'] = target.category
        if not merged.get('product_id'):
            merged['product_id'] = self.product_id_from_url(url)
        if not merged.get('currency') and self.config.default_currency:
            merged['currency'] = self.config.default_currency

        record = ProductRecord.from_data(url, merged)
        missing = record.missing_fields(self.config.required_fields)
        if missing:
            raise IncompleteProductError(f"Missing required fields: {', '.join(missing)}")
        return record

    def make_placeholder(self, url: str, error: Optional[Exception]) -> ProductRecord:
        """Placeholder saved when all attempts for a product failed."""
        return ProductRecord.placeholder(
            url,
            error=str(error) if error else None,
            product_id=self.product_id_from_url(url),
            currency=self.config.default_currency,
        )

    async def scrape_product_with_retry(self, url: str, target: ScrapeTarget) -> ProductRecord:
        """
        Scrape a product, retrying on failure.

        Returns a placeholder record instead of raising when every attempt fails.
        """
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_retries + 1):
            if is_cancelled():
                raise ScrapeCancelledException("Scrape cancelled by user")
            try:
                data = await self.scrape_product(url, target)
                return self.build_record(url, data, target)
            except ScrapeCancelledException:
                raise
            except Exception as e:
                last_error = e
                self.logger.warning(f"   Attempt {attempt}/{self.max_retries} failed for {url}: {e}")
                if attempt < self.max_retries:
                    await self.recover(e)
                    await asyncio.sleep(self.config.retry_delay)

        self.logger.error(f"   {Colors.red('[ERR]')} giving up on {url}, saving placeholder")
        return self.make_placeholder(url, last_error)

    def log_product_extraction(self, url: str, record: ProductRecord):
        """
        Log extracted product fields.

        Args:
            url: Product URL
            record: The record that was saved
        """
        captured = [f for f in self.TRACKED_FIELDS if getattr(record, f, None)]
        captured += [k for k, v in record.extra.items() if v not in (None, '', [])]
        missing = [f for f in self.TRACKED_FIELDS if not getattr(record, f, None)]

        if captured:
            self.logger.info(f"   ➤ {url}: {', '.join(captured)}")
        else:
            self.logger.info(f"   ➤ {url}: no data captured")

        if missing:
            self.logger.info(f"   ✘ missing: {', '.join(missing)}")

    async def listing_batches(self, target: ScrapeTarget, result: ScrapeResult) -> AsyncIterator[List[str]]:
        """
        iter_product_urls() with listing failures contained.

        A listing error ends the traversal of this target only. Batches
        already yielded have been scraped by the time the error surfaces.
        """
        try:
            async for batch in self.iter_product_urls(target):
                yield batch
        except ScrapeCancelledException:
            raise
        except Exception as e:
            self.logger.error(f"Listing failed for {target.url}, moving on: {e}")
            result.error_details.append({'url': target.url, 'error': f"Listing: {e}"})

    async def scrape_target(self, target: ScrapeTarget) -> ScrapeResult:
        """
        Scrape every product reachable from one base URL into one output file.

        Args:
            target: Base URL (and optional category label)

        Returns:
            ScrapeResult with statistics
        """
        store = ProductStore(self.output_dir, target.url)
        result = ScrapeResult(
            source=self.config.short_name,
            base_url=target.url,
            started_at=datetime.now(timezone.utc),
            output_file=str(store.path),
        )

        processed = store.load_existing_urls()
        if processed:
            self.logger.info(f"Loaded {len(processed)} previously scraped URLs, they will be skipped")

        try:
            async for batch in self.listing_batches(target, result):
                for url in batch:
                    if is_cancelled():
                        raise ScrapeCancelledException("Scrape cancelled by user")
                    if url in processed:
                        result.skipped += 1
                        continue
                    processed.add(url)
                    result.total += 1

                    self.logger.info(f"\n{Colors.cyan('❯❯❯')}")
                    self.logger.info(f"{Colors.bold(f'[{result.total}]')} Scraping {Colors.gray(url)}")

                    record = await self.scrape_product_with_retry(url, target)
                    store.append(record)

                    if record.is_placeholder:
                        result.placeholders += 1
                        result.error_details.append({'url': url, 'error': record.error})
                    else:
                        result.scraped += 1
                        self.log_product_extraction(url, record)

                    self._products_done += 1
                    await self.after_product(self._products_done)

                    if result.total % self.PROGRESS_EVERY == 0:
                        self.logger.info(
                            f"\n{Colors.bold('Progress')}: {result.total} products "
                            f"({Colors.green(f'{result.scraped} scraped')}, "
                            f"{Colors.blue(f'{result.skipped} skipped')}, "
                            f"{Colors.red(f'{result.placeholders} failed')})"
                        )

                    await self.pause()

        except ScrapeCancelledException:
            result.cancelled = True
            self.logger.warning(f"{Colors.yellow('Cancelled')}: {len(store.records)} products saved to {store.path}")

        except Exception as e:
            result.errors += 1
            result.error_details.append({'url': target.url, 'error': str(e)})
            result.completed_at = datetime.now(timezone.utc)
            # Keep the partial counts for the summary
            self.results.append(result)
            self.logger.error(f"Scrape failed for {target.url}: {e}")
            raise

        result.completed_at = datetime.now(timezone.utc)
        duration = result.duration_seconds or 0
        self.logger.info(
            f"✅ {target.url} done in {duration:.1f}s: {result.scraped} scraped, "
            f"{result.skipped} skipped, {result.placeholders} placeholders -> {store.path}"
        )
        return result


def build_browser_crawler(config: SiteConfig, headless: Optional[bool] = None) -> BrowserCrawler:
    """Browser crawler configured from site config and settings."""
    if headless is None:
        headless = config.headless if config.headless is not None else settings.headless
    return BrowserCrawler(
        headless=headless,
        timeout=settings.navigation_timeout,
        launch_retries=settings.browser_launch_retries,
        relaunch_delay=settings.browser_relaunch_delay,
        stealth=config.scraper_type == ScraperType.STEALTH,
        referer=config.referer or config.base_url,
        rotate_user_agents=settings.rotate_user_agents,
        locale=settings.locale,
    )


class BrowserScraper(ProductScraper):
    """
    Base class for Playwright-driven storefronts.

    Keeps one listing page open while walking a listing and opens a fresh
    page (with a freshly rotated user agent) for every product. Subclasses
    implement iter_product_urls() and parse_product(); prepare_product_page()
    handles clicks and waits needed before the HTML snapshot is taken.
    """

    # Selector that marks a loaded product page
    detail_wait_selector: Optional[str] = None
    wait_until = 'domcontentloaded'

    def __init__(self, config: SiteConfig, output_dir: Optional[Path] = None, headless: Optional[bool] = None):
        super().__init__(config, output_dir)
        self.crawler = build_browser_crawler(config, headless)
        self._listing_page: Optional[Page] = None

    @property
    def selector_timeout_ms(self) -> int:
        return settings.selector_timeout * 1000

    async def setup(self):
        await self.crawler.start()

    async def teardown(self):
        self._listing_page = None
        try:
            await self.crawler.close()
        except Exception as e:
            self.logger.warning(f"Error during crawler cleanup: {e}")

    async def recover(self, error: Exception):
        if not self.crawler.is_alive():
            self.logger.warning("Browser is gone, relaunching...")
            await self.relaunch()

    async def after_product(self, count: int):
        every = self.config.restart_every
        if every and count % every == 0:
            self.logger.info(f"Restarting browser after {count} products")
            await self.relaunch()

    async def relaunch(self):
        self._listing_page = None
        await self.crawler.restart()

    async def listing_page(self) -> Page:
        """The page used for walking listings, reopened if it was closed."""
        if self._listing_page is None or self._listing_page.is_closed() or not self.crawler.is_alive():
            self._listing_page = await self.crawler.new_page()
        return self._listing_page

    async def open_listing(self, url: str, wait_selector: Optional[str] = None) -> Optional[Page]:
        """
        Load a listing page with retries.

        Returns:
            The page, or None when every attempt failed (ends the traversal)
        """
        for attempt in range(1, self.max_retries + 1):
            if is_cancelled():
                return None
            try:
                page = await self.listing_page()
                self.logger.info(f"Loading listing page {Colors.gray(url)}")
                await self.crawler.goto(page, url, wait_until=self.wait_until)
                if wait_selector:
                    await page.wait_for_selector(wait_selector, timeout=self.selector_timeout_ms)
                return page
            except Exception as e:
                self.logger.warning(f"Listing attempt {attempt}/{self.max_retries} failed for {url}: {e}")
                if attempt < self.max_retries:
                    await self.recover(e)
                    await asyncio.sleep(self.config.retry_delay)

        self.logger.error(f"Giving up on listing page {url}")
        return None

    async def ensure_listing(self, page: Page, url: str, wait_selector: Optional[str] = None) -> Optional[Page]:
        """
        The listing page, reloaded at url if a browser restart closed it.

        Returns:
            A live page, or None when reloading failed
        """
        if not page.is_closed() and self.crawler.is_alive():
            return page
        self.logger.warning(f"Listing page was closed by a browser restart, reopening {url}")
        return await self.open_listing(url, wait_selector)

    async def scrape_product(self, url: str, target: ScrapeTarget) -> Dict[str, Any]:
        page = await self.crawler.new_page()
        try:
            await self.crawler.goto(page, url, wait_until=self.wait_until)
            if self.detail_wait_selector:
                await page.wait_for_selector(self.detail_wait_selector, timeout=self.selector_timeout_ms)
            await self.prepare_product_page(page)
            soup = await self.crawler.soup(page)
            return self.parse_product(soup, url)
        finally:
            await self.crawler.close_page(page)

    async def prepare_product_page(self, page: Page):
        """Interact with the product page before its HTML is captured."""

    @abstractmethod
    def parse_product(self, soup: BeautifulSoup, url: str) -> Dict[str, Any]:
        """Parse product page HTML."""
