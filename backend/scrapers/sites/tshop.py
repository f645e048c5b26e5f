"""
TShop scraper.

An ikas storefront: category pages grow while scrolled, product images are
served from the myikas.com CDN, and the product code sits at the end of the
category details line.
"""

import asyncio
import copy
from typing import Any, AsyncIterator, Dict, List, Optional
from bs4 import BeautifulSoup
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..base import BrowserScraper, ScrapeTarget, is_cancelled
from ..config import get_site_config
from ..listing import LinkCollector, collect_links, read_total, slow_scroll
from ..utils.extractors import select_all_attr, select_text
from ..utils.normalizers import normalize_whitespace, parse_price

TOTAL_SELECTOR = '.scrolled_list-main span.text-xs'
PRODUCT_LINK_SELECTOR = 'div[data-id] > a[href]'
IMAGE_HOST = 'myikas.com'
MAX_NO_NEW_URLS = 3


def description_text(soup: BeautifulSoup) -> Optional[str]:
    """Text of the description tab without its heading."""
    tab = soup.select_one('.tab-content')
    if tab is None:
        return None
    tab = copy.copy(tab)
    heading = tab.find('h2')
    if heading is not None:
        heading.decompose()
    return normalize_whitespace(tab.get_text(' '))


def parse_tshop_product(soup: BeautifulSoup, url: str) -> Dict[str, Any]:
    """Parse a TShop product page."""
    return {
        'brand': select_text(soup, '.brand-name'),
        'title': select_text(soup, '.product-name'),
        'price': parse_price(select_text(soup, '.discount-price span:last-child')),
        'images': [src for src in select_all_attr(soup, '.image-slider .slide img', 'src') if IMAGE_HOST in src],
        'description': description_text(soup),
        'product_id': select_text(soup, '.categories-detail.mt-4 span:last-child'),
    }


class TshopScraper(BrowserScraper):
    """Scraper for TShop."""

    wait_until = 'networkidle'

    def __init__(self, output_dir=None, headless=None):
        super().__init__(get_site_config('tshop'), output_dir, headless)

    async def iter_product_urls(self, target: ScrapeTarget) -> AsyncIterator[List[str]]:
        page = await self.open_listing(target.url)
        if page is None:
            return

        expected_total = await read_total(page, TOTAL_SELECTOR, default=0)
        self.logger.info(f"Total products expected: {expected_total}")

        found = LinkCollector()
        no_new = 0
        while not is_cancelled() and len(found) < expected_total:
            await slow_scroll(page, step=500, delay_ms=500)
            try:
                await page.wait_for_selector(PRODUCT_LINK_SELECTOR, timeout=10000)
            except PlaywrightTimeoutError:
                self.logger.warning("No product links appeared, ending scroll")
                break

            before = len(found)
            found.add(await collect_links(page, PRODUCT_LINK_SELECTOR, self.config.base_url))
            self.logger.info(f"Collected {len(found)}/{expected_total} unique URLs")

            if len(found) == before:
                no_new += 1
                self.logger.info(f"No new URLs found (streak: {no_new}/{MAX_NO_NEW_URLS})")
                if no_new >= MAX_NO_NEW_URLS:
                    break
            else:
                no_new = 0
            await asyncio.sleep(1)

        yield found.urls

    def parse_product(self, soup: BeautifulSoup, url: str) -> Dict[str, Any]:
        return parse_tshop_product(soup, url)
