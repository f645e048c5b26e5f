"""
Sephora Türkiye scraper.

The category grid shows a "see more" button once, then keeps loading tiles
while scrolling. Collection stops when the expected count is reached or the
footer stays in view after a few scroll resets.

Product pages embed a `data-tcproduct` JSON blob (id, brand, name, breadcrumb)
on the product tile, which is preferred over scraping visible text.
"""

import asyncio
import json
import re
from typing import Any, AsyncIterator, Dict, List, Optional
from bs4 import BeautifulSoup
from playwright.async_api import Page

from ..base import BrowserScraper, ScrapeTarget, is_cancelled
from ..config import get_site_config
from ..listing import LinkCollector, click_if_visible, collect_links, read_total, slow_scroll
from ..utils.extractors import select_all_attr, select_text
from ..utils.normalizers import parse_price

TOTAL_SELECTOR = '.results-hits span'
SEE_MORE_SELECTOR = 'button.see-more-button[data-js-infinitescroll-see-more]'
FOOTER_SELECTOR = '.content-asset.footer-reinssurance'
PRODUCT_LINK_SELECTOR = '.product-tile.clickable .product-tile-link'
PRICE_RE = re.compile(r'([\d.,]+)\s*TL')

SCROLL_STEP = 500
MAX_RESETS = 3
# Seconds without new tiles before a scroll reset
MAX_IDLE_SECONDS = 5

FOOTER_VISIBLE_SCRIPT = """
    (selector) => {
        const footer = document.querySelector(selector);
        if (!footer) return false;
        const rect = footer.getBoundingClientRect();
        return rect.top >= 0 && rect.bottom <= (window.innerHeight || document.documentElement.clientHeight);
    }
"""


def parse_tc_product(soup: BeautifulSoup) -> Dict[str, Any]:
    """The tracking JSON attached to the product tile, or {}."""
    tile = soup.select_one('.product-tile.clickable[data-tcproduct]')
    if tile is None:
        return {}
    try:
        data = json.loads(tile['data-tcproduct'])
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def star_rating(soup: BeautifulSoup) -> Optional[float]:
    """Full star images count 1, half stars (inline svg) count 0.5."""
    rating = 0.0
    for icon in soup.select('.product-rating-icon'):
        if 'rating-star-full-icon' in (icon.get('src') or ''):
            rating += 1
        elif icon.name == 'svg':
            rating += 0.5
    return rating or None


def parse_sephora_product(soup: BeautifulSoup, url: str) -> Dict[str, Any]:
    """Parse a Sephora product page."""
    tc = parse_tc_product(soup)
    price_match = PRICE_RE.search(select_text(soup, '.price-sales-standard') or '')
    variation = select_text(soup, '.product-variation-name')

    return {
        'product_id': tc.get('product_pid'),
        'brand': select_text(soup, '.product-brand') or tc.get('product_brand'),
        'title': select_text(soup, '.product-title') or tc.get('product_pid_name'),
        'price': parse_price(price_match.group(1)) if price_match else None,
        'currency': 'TRY',
        'images': select_all_attr(soup, '.product-imgs img', 'src'),
        'rating': star_rating(soup),
        'specifications': [{'name': 'Variation', 'value': variation}] if variation else [],
        'categories': tc.get('product_breadcrumb_label'),
    }


class SephoraScraper(BrowserScraper):
    """Scraper for Sephora Türkiye."""

    wait_until = 'networkidle'

    def __init__(self, output_dir=None, headless=None):
        super().__init__(get_site_config('sephora'), output_dir, headless)

    async def footer_visible(self, page: Page) -> bool:
        return await page.evaluate(FOOTER_VISIBLE_SCRIPT, FOOTER_SELECTOR)

    async def collect_all_links(self, page: Page, expected_total: int) -> List[str]:
        """Scroll the grid in steps, resetting to the top when it stalls."""
        found = LinkCollector()
        target = max(expected_total - 1, 0)
        resets = 0
        idle = 0
        last_count = 0

        while not is_cancelled() and resets < MAX_RESETS:
            if target and len(found) >= target:
                self.logger.info(f"Reached target of {target} products")
                break

            if await self.footer_visible(page):
                if target and len(found) < target:
                    resets += 1
                    self.logger.info(
                        f"Footer reached with {len(found)}/{expected_total} products, reset {resets}/{MAX_RESETS}"
                    )
                    await page.evaluate("window.scrollTo({top: 0, behavior: 'smooth'})")
                    await asyncio.sleep(2)
                    await slow_scroll(page, step=SCROLL_STEP, delay_ms=200)
                    continue
                self.logger.info("Footer reached")
                break

            found.add(await collect_links(page, PRODUCT_LINK_SELECTOR, self.config.base_url))
            self.logger.info(f"Progress: {len(found)}/{expected_total} unique URLs collected")

            if len(found) == last_count:
                idle += 1
                if idle >= MAX_IDLE_SECONDS:
                    if target and len(found) < target:
                        resets += 1
                        self.logger.info(f"No new products, reset {resets}/{MAX_RESETS}")
                        await page.evaluate("window.scrollTo({top: 0, behavior: 'smooth'})")
                        idle = 0
                    else:
                        break
            else:
                idle = 0
                last_count = len(found)

            await page.evaluate(f"window.scrollBy(0, {SCROLL_STEP})")
            await asyncio.sleep(1)

        if target and len(found) < target:
            self.logger.warning(f"Only collected {len(found)} out of {expected_total} expected products")
        return found.urls

    async def iter_product_urls(self, target: ScrapeTarget) -> AsyncIterator[List[str]]:
        page = await self.open_listing(target.url)
        if page is None:
            return

        expected_total = await read_total(page, TOTAL_SELECTOR, default=0)
        self.logger.info(f"Total products expected: {expected_total}")

        if await click_if_visible(page, SEE_MORE_SELECTOR):
            self.logger.info("Clicked 'see more'")
            await asyncio.sleep(3)

        yield await self.collect_all_links(page, expected_total)

    def parse_product(self, soup: BeautifulSoup, url: str) -> Dict[str, Any]:
        return parse_sephora_product(soup, url)
