"""
Dermokozmetika scraper.

Targets are product pages. A newsletter modal has to be closed before the
page can be read; the brand is only available as the slug of the brand link.
"""

import asyncio
from typing import Any, AsyncIterator, Dict, List
from bs4 import BeautifulSoup
from playwright.async_api import Page, TimeoutError as PlaywrightTimeoutError

from ..base import BrowserScraper, ScrapeTarget
from ..config import get_site_config
from ..listing import simulate_human
from ..utils.extractors import inner_html, select_all_attr, select_attr, select_text
from ..utils.normalizers import capitalize_first, parse_price, parse_rating


def brand_from_href(href: str) -> str:
    """
    Brand name from the brand page link.

    Examples:
        "/bioderma" -> "Bioderma"
        "/la-roche-posay" -> "La-roche-posay"
    """
    return capitalize_first(href.replace('/', '', 1))


def parse_dermokozmetika_product(soup: BeautifulSoup, url: str) -> Dict[str, Any]:
    """Parse a Dermokozmetika product page."""
    brand_href = select_attr(soup, "#product-right .w-100 a[href^='/']", 'href')
    images = select_all_attr(soup, '.product-images-gallery .image-inner img', 'src', 'data-src')

    return {
        'title': select_text(soup, '#product-title'),
        'brand': brand_from_href(brand_href) if brand_href else None,
        'price': parse_price(select_text(soup, '.product-current-price .product-price')),
        'images': [src for src in images if 'placeholder' not in src],
        'rating': parse_rating(select_text(soup, '#ortalamaPuan')) or None,
        'description': inner_html(soup, '#product-fullbody'),
    }


class DermokozmetikaScraper(BrowserScraper):
    """Scraper for Dermokozmetika product pages."""

    def __init__(self, output_dir=None, headless=None):
        super().__init__(get_site_config('dermokozmetika'), output_dir, headless)

    async def iter_product_urls(self, target: ScrapeTarget) -> AsyncIterator[List[str]]:
        yield [target.url]

    async def prepare_product_page(self, page: Page):
        try:
            await page.wait_for_selector('#closeModalButton', timeout=5000)
            await page.click('#closeModalButton')
            self.logger.debug("Closed modal popup")
            await asyncio.sleep(1)
        except PlaywrightTimeoutError:
            self.logger.debug("No modal found")

        await page.wait_for_selector('#product-title', timeout=self.selector_timeout_ms)
        await simulate_human(page)

    def parse_product(self, soup: BeautifulSoup, url: str) -> Dict[str, Any]:
        return parse_dermokozmetika_product(soup, url)
