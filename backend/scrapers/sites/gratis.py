"""
Gratis scraper.

Gratis runs on SAP Spartacus: listing pages are Angular grids walked with the
pagination "next" button, product pages share the Spartacus detail layout.

Site structure:
- Listing: `app-custom-product-grid-item` cards, total in `.sorting-header .info`
- Product: `.manufacturer`, `.product-title` (brand + title), `.price .discounted` / `.price .sm`
"""

import asyncio
import re
from typing import Any, AsyncIterator, Dict, List, Optional
from bs4 import BeautifulSoup
from playwright.async_api import Page

from ..base import BrowserScraper, ScrapeTarget, is_cancelled
from ..config import get_site_config
from ..listing import read_total
from ..utils.extractors import (
    extract_breadcrumbs, extract_id, extract_links, extract_table_specs,
    inner_html, select_all_attr, select_text,
)
from ..utils.normalizers import join_categories, parse_price_parts, parse_rating

PRODUCT_LINK_SELECTOR = 'app-custom-product-grid-item .infos .cx-product-name'
TOTAL_SELECTOR = '.sorting-header .info'
PLACEHOLDER_IMAGE = 'gratis-placeholder.svg'
PRODUCT_ID_PATTERN = r'-p-(\d+)$'

LEADING_TITLE_RE = re.compile(r'^<b>.*?</b>', re.IGNORECASE | re.DOTALL)
LEADING_BREAKS_RE = re.compile(r'^(\s*<br\s*/?>\s*)+', re.IGNORECASE)


def title_without_brand(text: Optional[str]) -> Optional[str]:
    """
    The product title repeats the brand as its first word.

    Examples:
        "Maybelline Sky High Maskara" -> "Sky High Maskara"
        "Maskara" -> None
    """
    if not text:
        return None
    return ' '.join(text.split(' ')[1:]) or None


def clean_description(html: Optional[str]) -> Optional[str]:
    """Drop the bold heading and the line breaks that follow it."""
    if not html:
        return None
    match = LEADING_TITLE_RE.match(html)
    if match:
        html = LEADING_BREAKS_RE.sub('', html[match.end():]).strip()
    return html or None


def parse_spartacus_product(soup: BeautifulSoup, url: str) -> Dict[str, Any]:
    """Brand, title and price from a Spartacus product page."""
    return {
        'product_id': extract_id(PRODUCT_ID_PATTERN, url),
        'brand': select_text(soup, '.manufacturer'),
        'title': title_without_brand(select_text(soup, '.product-title')),
        'price': parse_price_parts(select_text(soup, '.price .discounted'), select_text(soup, '.price .sm')),
        'currency': select_text(soup, '.price .thin'),
    }


def parse_gratis_product(soup: BeautifulSoup, url: str) -> Dict[str, Any]:
    """Parse a Gratis product page."""
    data = parse_spartacus_product(soup, url)

    rating_text = select_text(soup, '.JetR-inline-ratingOrCount')
    crumbs = extract_breadcrumbs(soup, '.breadcrumb .breadcrumb-item a', drop_last=True)
    specs = extract_table_specs(soup, '.specs-table tbody tr', 'td:nth-of-type(1)', 'td:nth-of-type(2)')

    data.update({
        'images': [
            src for src in select_all_attr(soup, '.swiper-slide img', 'src')
            if PLACEHOLDER_IMAGE not in src
        ],
        'rating': parse_rating(rating_text.replace('(', '').replace(')', '')) if rating_text else None,
        'description': clean_description(inner_html(soup, '.pdp-detail-tab-content')),
        'specifications': specs,
        'categories': join_categories(crumbs),
    })
    return data


class GratisScraper(BrowserScraper):
    """Scraper for Gratis."""

    site_key = 'gratis'
    wait_until = 'networkidle'
    next_button_selector = '.pagination .type-next'

    def __init__(self, output_dir=None, headless=None):
        super().__init__(get_site_config(self.site_key), output_dir, headless)

    def product_id_from_url(self, url: str) -> Optional[str]:
        return extract_id(PRODUCT_ID_PATTERN, url)

    async def has_next_page(self, page: Page) -> bool:
        return await page.locator(f"{self.next_button_selector}:not(.disabled)").count() > 0

    async def go_to_next_page(self, page: Page) -> bool:
        """Click "next" and wait for the grid to reload. Returns False on failure."""
        button = page.locator(self.next_button_selector).first
        try:
            await button.scroll_into_view_if_needed(timeout=self.selector_timeout_ms)
            async with page.expect_navigation(wait_until=self.wait_until, timeout=30000):
                await button.click()
        except Exception as e:
            self.logger.error(f"Error navigating to next page: {e}")
            return False
        await asyncio.sleep(3)
        return True

    async def iter_product_urls(self, target: ScrapeTarget) -> AsyncIterator[List[str]]:
        page = await self.open_listing(target.url)
        if page is None:
            return
        await asyncio.sleep(3)

        total = await read_total(page, TOTAL_SELECTOR, default=0)
        self.logger.info(f"Total products to scrape: {total}")

        page_number = 1
        seen = 0
        while not is_cancelled():
            current_url = page.url
            soup = await self.crawler.soup(page)
            urls = extract_links(soup, PRODUCT_LINK_SELECTOR, self.config.base_url)
            self.logger.info(f"Found {len(urls)} product URLs on page {page_number}")
            seen += len(urls)
            yield urls

            # Periodic restarts and relaunches close the listing page
            page = await self.ensure_listing(page, current_url)
            if page is None:
                return

            if total and seen >= total:
                self.logger.info(f"Reached total product count ({total})")
                return
            if not await self.has_next_page(page):
                self.logger.info("No enabled 'Next' button found. Stopping.")
                return
            if not await self.go_to_next_page(page):
                return
            page_number += 1

    async def prepare_product_page(self, page: Page):
        await asyncio.sleep(2)
        await page.evaluate("window.scrollBy(0, window.innerHeight)")
        await asyncio.sleep(2)

    def parse_product(self, soup: BeautifulSoup, url: str) -> Dict[str, Any]:
        return parse_gratis_product(soup, url)
