"""
Rossmann scraper.

A Magento storefront with an infinite-scroll category grid. The description
lives in a tab that has to be opened before the page is captured.
"""

import asyncio
import re
from typing import Any, AsyncIterator, Dict, List, Optional
from bs4 import BeautifulSoup
from playwright.async_api import Page

from ..base import BrowserScraper, ScrapeTarget
from ..config import get_site_config
from ..listing import LinkCollector, collect_links, read_total, scroll_until_stable
from ..utils.extractors import (
    extract_breadcrumbs, extract_id, inner_html, own_text, select_all_attr, select_text,
)
from ..utils.normalizers import join_categories, parse_price

TOTAL_SELECTOR = '#product-amount .toolbar-amount'
PRODUCT_LINK_SELECTOR = '.product-item-detail-link'
DESCRIPTION_TAB_SELECTOR = 'a[data-toggle="trigger"][href="#description"]'
PRODUCT_ID_PATTERN = r'p-([a-z]{2}\d+)'
PRICE_RE = re.compile(r'([\d.,]+)\s*(\w+)')


def parse_price_and_currency(text: Optional[str]) -> Dict[str, Any]:
    """
    Split a "249,90 TL" style price.

    Examples:
        "249,90 TL" -> {'price': 249.9, 'currency': 'TL'}
        None -> {'price': None, 'currency': 'TL'}
    """
    match = PRICE_RE.search(text or '')
    if not match:
        return {'price': None, 'currency': 'TL'}
    return {'price': parse_price(match.group(1)), 'currency': match.group(2)}


def parse_rossmann_product(soup: BeautifulSoup, url: str) -> Dict[str, Any]:
    """Parse a Rossmann product page."""
    data = {
        'product_id': extract_id(PRODUCT_ID_PATTERN, url),
        'title': select_text(soup, '.product-name1'),
        'brand': own_text(soup.select_one('.product-brand-name')),
        'images': select_all_attr(soup, '.gallery-placeholder a[data-fancybox="gallery"]', 'href'),
        'description': inner_html(soup, '.product.attribute.description .value'),
        'categories': join_categories(extract_breadcrumbs(soup, '.breadcrumbs .items .item:not(:last-child) a')),
    }
    data.update(parse_price_and_currency(select_text(soup, '.final-price')))
    return data


class RossmannScraper(BrowserScraper):
    """Scraper for Rossmann."""

    wait_until = 'networkidle'

    def __init__(self, output_dir=None, headless=None):
        super().__init__(get_site_config('rossmann'), output_dir, headless)

    def product_id_from_url(self, url: str) -> Optional[str]:
        return extract_id(PRODUCT_ID_PATTERN, url)

    async def iter_product_urls(self, target: ScrapeTarget) -> AsyncIterator[List[str]]:
        page = await self.open_listing(target.url)
        if page is None:
            return

        expected_total = await read_total(page, TOTAL_SELECTOR, default=0)
        self.logger.info(f"Total products expected: {expected_total}")

        found = LinkCollector()

        async def collect(current: Page):
            found.add(await collect_links(current, PRODUCT_LINK_SELECTOR, target.url))
            self.logger.info(f"Found {len(found)} unique URLs so far...")

        async def loaded() -> int:
            return len(found)

        await collect(page)
        await scroll_until_stable(
            page,
            count=loaded,
            expected_total=expected_total,
            pause=3.0,
            after_scroll=collect,
        )
        yield found.urls

    async def prepare_product_page(self, page: Page):
        await asyncio.sleep(3)
        tab = page.locator(DESCRIPTION_TAB_SELECTOR).first
        if await tab.count():
            await tab.click()
            await asyncio.sleep(1)

    def parse_product(self, soup: BeautifulSoup, url: str) -> Dict[str, Any]:
        return parse_rossmann_product(soup, url)
