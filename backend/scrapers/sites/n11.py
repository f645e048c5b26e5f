"""
n11 scraper.

n11 renders listings and product pages on the server, so this scraper uses
the static crawler (httpx + BeautifulSoup) instead of a browser. Listing
pages are addressed with `?pg=N`.

Site structure:
- Listing: `.columnContent .pro a`, total in `.listOptionHolder .resultText strong`
- Product: `.unf-p-title .proName`, property list `.unf-prop-list-item`, price `.newPrice ins[content]`
"""

import re
from typing import Any, AsyncIterator, Dict, List, Optional
from bs4 import BeautifulSoup
import httpx

from ..base import ProductScraper, ScrapeTarget, is_cancelled
from ..config import get_site_config
from ..crawlers.static import StaticCrawler
from ..listing import LinkCollector
from ..settings import settings
from ..utils.extractors import extract_id, extract_links, extract_table_specs, select_all_attr, select_attr, select_text
from ..utils.normalizers import parse_count, parse_price, parse_rating

PRODUCT_LINK_SELECTOR = '.columnContent .pro a[href]'
TOTAL_SELECTOR = '.listOptionHolder .resultText strong'
NEXT_PAGE_SELECTOR = '.pagination a.next:not(.disabled)'
PROPERTY_SELECTOR = '.unf-prop-list-item'
PRODUCT_ID_PATTERN = r'-(\d+)(?:[?/#]|$)'

# Listing re-walks while products are still missing
MAX_EXTRA_PASSES = 3


def page_url(base_url: str, page_number: int) -> str:
    """
    Listing page URL; any existing query string is replaced.

    Examples:
        ("https://www.n11.com/kozmetik?srt=PRICE", 2) -> "https://www.n11.com/kozmetik?pg=2"
    """
    return f"{base_url.split('?')[0]}?pg={page_number}"


def parse_listing(soup: BeautifulSoup, base_url: str) -> Dict[str, Any]:
    """Product URLs, total count and whether a next page exists."""
    return {
        'urls': extract_links(soup, PRODUCT_LINK_SELECTOR, base_url),
        'total': parse_count(select_text(soup, TOTAL_SELECTOR)) or 0,
        'has_next': soup.select_one(NEXT_PAGE_SELECTOR) is not None,
    }


def breadcrumb_categories(soup: BeautifulSoup) -> Optional[str]:
    """Breadcrumb words joined with '>'."""
    text = ' '.join(el.get_text(' ') for el in soup.select('.breadcrumb, .breadcrumbs')).strip()
    return re.sub(r'\s+', '>', text) or None


def parse_n11_product(soup: BeautifulSoup, url: str) -> Dict[str, Any]:
    """Parse an n11 product page."""
    specs = extract_table_specs(soup, PROPERTY_SELECTOR, '.unf-prop-list-title', '.unf-prop-list-prop')
    brand = next((s['value'] for s in specs if s['name'] == 'Marka'), None)

    price_content = select_attr(soup, '.newPrice ins', 'content')
    currency = select_attr(soup, '.newPrice ins span', 'content') or select_text(soup, '.newPrice ins span')

    return {
        'product_id': extract_id(PRODUCT_ID_PATTERN, url),
        'title': select_text(soup, '.unf-p-title .proName'),
        'brand': brand,
        'price': parse_price(price_content),
        'currency': currency,
        'images': select_all_attr(soup, '.unf-p-thumbs .unf-p-thumbs-item img', 'src'),
        'rating': parse_rating(select_text(soup, '.ratingCont .ratingScore')) or None,
        'shipping_fee': parse_price(select_text(soup, '.shipping-fee, .delivery-cost')),
        'description': select_text(soup, '.unf-info-desc'),
        'specifications': specs,
        'categories': breadcrumb_categories(soup),
    }


class N11Scraper(ProductScraper):
    """
    Scraper for n11.

    HTTP retries (with exponential backoff) happen inside StaticCrawler,
    so the product loop makes a single attempt per URL.
    """

    def __init__(self, output_dir=None, crawler: Optional[StaticCrawler] = None):
        super().__init__(get_site_config('n11'), output_dir)
        self.crawler = crawler or StaticCrawler(
            rate_limit=self.config.rate_limit_seconds,
            timeout=settings.navigation_timeout,
            max_retries=settings.max_retries,
            retry_delay=self.config.retry_delay,
            referer=self.config.base_url + '/',
            rotate_user_agents=settings.rotate_user_agents,
        )
        self.max_retries = 1
        self.expected_total = 0

    def product_id_from_url(self, url: str) -> Optional[str]:
        return extract_id(PRODUCT_ID_PATTERN, url)

    async def teardown(self):
        await self.crawler.close()

    async def iter_product_urls(self, target: ScrapeTarget) -> AsyncIterator[List[str]]:
        """
        Walk the listing, then re-walk it while products are still missing.

        n11 reshuffles listings between requests, so one pass can miss
        products. Extra passes stop once a pass finds nothing new.
        """
        found = LinkCollector()
        self.expected_total = 0
        async for batch in self.walk_listing(target, found):
            yield batch

        passes = 0
        while (not is_cancelled() and self.expected_total
               and len(found) < self.expected_total - 1 and passes < MAX_EXTRA_PASSES):
            passes += 1
            self.logger.info(
                f"Retrying listing (pass {passes}/{MAX_EXTRA_PASSES}): "
                f"{len(found)}/{self.expected_total} collected"
            )
            before = len(found)
            async for batch in self.walk_listing(target, found):
                yield batch
            if len(found) == before:
                self.logger.info("No new products on this pass")
                return

    async def walk_listing(self, target: ScrapeTarget, found: LinkCollector) -> AsyncIterator[List[str]]:
        """One pass over the `?pg=N` pages, yielding URLs not in found."""
        page_number = 1

        while not is_cancelled():
            url = page_url(target.url, page_number)
            self.logger.info(f"Scraping page {page_number}: {url}")
            try:
                soup = await self.crawler.fetch_soup(url)
            except httpx.HTTPError as e:
                self.logger.error(f"Error on page {page_number}: {e}")
                return

            listing = parse_listing(soup, self.config.base_url)
            if page_number == 1 and listing['total']:
                self.expected_total = listing['total']
                self.logger.info(f"Total products expected: {self.expected_total}")

            new_urls = found.add(listing['urls'])
            self.logger.info(f"Page {page_number}: found {len(listing['urls'])} URLs, {len(new_urls)} new")
            if new_urls:
                yield new_urls

            if self.expected_total and len(found) >= self.expected_total:
                self.logger.info(f"Collected all {self.expected_total} products")
                return
            if not listing['has_next']:
                self.logger.info(f"No next page found after page {page_number}")
                return

            page_number += 1
            await self.page_pause()

    async def scrape_product(self, url: str, target: ScrapeTarget) -> Dict[str, Any]:
        soup = await self.crawler.fetch_soup(url)
        return parse_n11_product(soup, url)
