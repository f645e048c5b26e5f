"""
Cosmetica scraper.

A Tailwind storefront paginated with `?page=N`; the traversal stops when
the "next page" button is disabled. Ratings are drawn as amber star icons.
"""

from typing import Any, AsyncIterator, Dict, List, Optional
from bs4 import BeautifulSoup

from ..base import BrowserScraper, ScrapeTarget, is_cancelled
from ..config import get_site_config
from ..utils.extractors import extract_links, select_all_attr, select_text
from ..utils.normalizers import join_categories, parse_price

PRODUCT_LINK_SELECTOR = (
    r'a.flex.h-full.w-full.grow.flex-col.overflow-hidden.rounded.rounded-b-none'
    r'.border.border-b-0.border-neutral-300\/70'
)
NEXT_BUTTON_SELECTOR = 'button.next-page:not(.disabled)'
BRAND_SELECTOR = r'a.-mb-px.text-sm.font-bold.text-button-01\/70'
TITLE_SELECTOR = 'h1.mb-2.text-left.text-lg'
PRICE_SELECTOR = r'div.text-base.font-semibold.\!leading-none.text-button-01.md\:text-lg'

SITE_ROOT = 'https://www.cosmetica.com.tr/'


def page_url(base_url: str, page_number: int) -> str:
    """
    URL of a numbered listing page.

    Examples:
        ("https://www.cosmetica.com.tr/makyaj", 1) -> "https://www.cosmetica.com.tr/makyaj"
        ("https://www.cosmetica.com.tr/makyaj", 3) -> "https://www.cosmetica.com.tr/makyaj?page=3"
    """
    if page_number == 1:
        return base_url
    separator = '&' if '?' in base_url else '?'
    return f"{base_url}{separator}page={page_number}"


def product_id_from_url(url: str) -> Optional[str]:
    """The path after the domain identifies a product."""
    if not url.startswith(SITE_ROOT):
        return None
    return url[len(SITE_ROOT):] or None


def parse_cosmetica_product(soup: BeautifulSoup, url: str) -> Dict[str, Any]:
    """Parse a Cosmetica product page."""
    price_text = select_text(soup, PRICE_SELECTOR)
    crumbs = [
        li.select_one('a').get_text(strip=True)
        for li in soup.select("nav[aria-label='breadcrumb'] ul li")[:-1]
        if li.select_one('a')
    ]

    return {
        'product_id': product_id_from_url(url),
        'brand': select_text(soup, BRAND_SELECTOR),
        'title': select_text(soup, TITLE_SELECTOR),
        'price': parse_price(price_text),
        'currency': 'TRY' if price_text and '₺' in price_text else None,
        'rating': float(len(soup.select('svg.text-amber-500'))),
        'images': [src for src in select_all_attr(soup, 'img', 'src') if src.startswith('http')],
        'description': select_text(soup, 'div.prose.prose-sm.mt-6.max-w-none > div'),
        'categories': join_categories(crumbs),
    }


class CosmeticaScraper(BrowserScraper):
    """Scraper for Cosmetica."""

    wait_until = 'networkidle'

    def __init__(self, output_dir=None, headless=None):
        super().__init__(get_site_config('cosmetica'), output_dir, headless)

    def product_id_from_url(self, url: str) -> Optional[str]:
        return product_id_from_url(url)

    async def iter_product_urls(self, target: ScrapeTarget) -> AsyncIterator[List[str]]:
        page_number = 1
        while not is_cancelled():
            page = await self.open_listing(page_url(target.url, page_number))
            if page is None:
                return

            soup = await self.crawler.soup(page)
            urls = extract_links(soup, PRODUCT_LINK_SELECTOR, self.config.base_url)
            self.logger.info(f"Found {len(urls)} product URLs on page {page_number}")
            yield urls

            if soup.select_one(NEXT_BUTTON_SELECTOR) is None:
                self.logger.info("No enabled 'Next' button found. Stopping.")
                return
            page_number += 1
            await self.page_pause()

    def parse_product(self, soup: BeautifulSoup, url: str) -> Dict[str, Any]:
        return parse_cosmetica_product(soup, url)
