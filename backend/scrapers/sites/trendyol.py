"""
Trendyol scraper.

Search and category pages scroll infinitely. The result header reads
"1.234 sonuç" or, for large sets, "10.000+ sonuç"; in the second case the
count is only a lower bound and scrolling runs until the page stops growing.
"""

import asyncio
import re
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple
from bs4 import BeautifulSoup
from playwright.async_api import Page

from ..base import BrowserScraper, ScrapeTarget
from ..config import get_site_config
from ..listing import LinkCollector, click_if_visible, collect_links, scroll_until_stable
from ..utils.extractors import extract_id, extract_table_specs, select_all_attr, select_attr, select_text
from ..utils.normalizers import join_categories, parse_price, parse_rating, unique

TOTAL_SELECTOR = '.dscrptn.dscrptn-V2 h2'
TOTAL_RE = re.compile(r'([\d.]+)(\+)?\s+sonuç')
PRODUCT_LINK_SELECTOR = '.p-card-chldrn-cntnr.card-border a'
THUMBNAIL_SELECTOR = '.product-slide.thumbnail-feature img'
PRICE_RE = re.compile(r'([\d.,]+)\s*(\w+)')
SIZE_RE = re.compile(r'\d+x\d+')
PRODUCT_ID_PATTERN = r'p-(\d+)'
EXCLUDED_CRUMBS = ('Trendyol', 'Baby Turco')
MAX_STAGNANT = 5


def parse_total(text: Optional[str]) -> Tuple[int, bool]:
    """
    Result count and whether it is only a lower bound.

    Examples:
        "Ruj araması için 1.234 sonuç listeleniyor" -> (1234, False)
        "10.000+ sonuç" -> (10000, True)
    """
    match = TOTAL_RE.search(text or '')
    if not match:
        return 0, False
    return int(match.group(1).replace('.', '')), bool(match.group(2))


def full_size(src: str) -> str:
    """Drop the WxH size segment so the CDN serves the original image."""
    return SIZE_RE.sub('', src, count=1)


def parse_trendyol_product(soup: BeautifulSoup, url: str) -> Dict[str, Any]:
    """Parse a Trendyol product page."""
    images = []
    main = select_attr(soup, '.base-product-image img', 'src')
    if main:
        images.append(full_size(main) if '800x800' in main else main)
    images += [src.replace('thumbnail', '') for src in select_all_attr(soup, '.gallery-modal img', 'src')]
    images += [full_size(src) for src in select_all_attr(soup, THUMBNAIL_SELECTOR, 'src')]

    price_match = PRICE_RE.search(select_text(soup, 'span.prc-dsc') or '')
    crumbs = [
        c for c in unique(el.get_text(strip=True) for el in soup.select('.product-detail-breadcrumb-item span'))
        if c != EXCLUDED_CRUMBS[0] and EXCLUDED_CRUMBS[1] not in c
    ]
    description = soup.select_one('.detail-border')

    return {
        'product_id': extract_id(PRODUCT_ID_PATTERN, url),
        'brand': select_text(soup, 'span.product-description-market-place'),
        'title': select_text(soup, 'h3.detail-name'),
        'price': parse_price(price_match.group(1)) if price_match else None,
        'currency': price_match.group(2) if price_match else None,
        'images': unique(images),
        'rating': parse_rating(select_text(soup, '.product-rating-score .value')),
        'specifications': extract_table_specs(
            soup, '.detail-attr-container .detail-attr-item', '.attr-key-name-w', '.attr-value-name-w'
        ),
        'categories': join_categories(crumbs),
        'description': str(description) if description is not None else None,
    }


class TrendyolScraper(BrowserScraper):
    """Scraper for Trendyol."""

    wait_until = 'networkidle'

    def __init__(self, output_dir=None, headless=None):
        super().__init__(get_site_config('trendyol'), output_dir, headless)

    def product_id_from_url(self, url: str) -> Optional[str]:
        return extract_id(PRODUCT_ID_PATTERN, url)

    async def iter_product_urls(self, target: ScrapeTarget) -> AsyncIterator[List[str]]:
        page = await self.open_listing(target.url)
        if page is None:
            return

        total, lower_bound = parse_total(select_text(await self.crawler.soup(page), TOTAL_SELECTOR))
        self.logger.info(f"Total products expected: {total}{'+' if lower_bound else ''}")

        found = LinkCollector()

        async def collect(current: Page):
            found.add(await collect_links(current, PRODUCT_LINK_SELECTOR, self.config.base_url))
            self.logger.info(f"Found {len(found)} unique URLs so far...")

        async def loaded() -> int:
            return len(found)

        await collect(page)
        await scroll_until_stable(
            page,
            count=loaded,
            expected_total=None if lower_bound else total,
            step=1000,
            pause=2.0,
            max_stagnant=MAX_STAGNANT,
            after_scroll=collect,
        )
        yield found.urls

    async def prepare_product_page(self, page: Page):
        # Opening the first thumbnail renders the gallery modal
        if await click_if_visible(page, THUMBNAIL_SELECTOR):
            await asyncio.sleep(1)

    def parse_product(self, soup: BeautifulSoup, url: str) -> Dict[str, Any]:
        return parse_trendyol_product(soup, url)
