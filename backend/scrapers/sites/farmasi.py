"""
Farmasi scraper.

The listing is an infinite scroll with a `.loading` layer shown while the
next batch is fetched. Farmasi blocks obvious automation, so this site runs
with the stealth browser profile and slower pacing.
"""

from typing import Any, AsyncIterator, Dict, List, Optional
from bs4 import BeautifulSoup
from playwright.async_api import Page

from ..base import BrowserScraper, ProductRecord, ScrapeTarget
from ..config import get_site_config
from ..listing import accept_cookies, collect_links, scroll_until_stable, simulate_human
from ..utils.extractors import inner_html, query_param, select_attr, select_text
from ..utils.normalizers import normalize_whitespace, parse_price

COOKIE_BUTTON_SELECTOR = '.cc-nb-okagree'
PRODUCT_CARD_SELECTOR = '.col-lg-3.col-xs-6'
PRODUCT_LINK_SELECTOR = '.col-lg-3.col-xs-6 a.detaillink'
LOADER_SELECTOR = '.loading'
TITLE_SELECTOR = '.LongName.ProductNameDesktop'
IMAGE_SELECTOR = '.appendProductImages img.zoomImage-1.controlZoom.lazyImage'

MAX_SCROLLS = 50
FAILED_TITLE = 'Failed to scrape'


def parse_farmasi_product(soup: BeautifulSoup, url: str) -> Dict[str, Any]:
    """Parse a Farmasi product page."""
    price = None
    currency = None
    container = soup.select_one('.ProductActualPrice')
    if container is not None:
        price_text = select_text(container, '.MinPrice')
        price = parse_price(price_text)
        # Whatever is left next to the amount is the currency label
        full_text = normalize_whitespace(container.get_text(' ')) or ''
        if price_text:
            full_text = full_text.replace(price_text, '', 1)
        currency = normalize_whitespace(full_text)

    image = select_attr(soup, IMAGE_SELECTOR, 'src', 'data-src')

    return {
        'product_id': query_param(url, 'pid'),
        'title': select_text(soup, TITLE_SELECTOR),
        'price': price,
        'currency': currency,
        'images': [image] if image else [],
        'description': inner_html(soup, '#ProductDescription.Description'),
    }


class FarmasiScraper(BrowserScraper):
    """Scraper for Farmasi."""

    detail_wait_selector = TITLE_SELECTOR

    def __init__(self, output_dir=None, headless=None):
        super().__init__(get_site_config('farmasi'), output_dir, headless)

    def product_id_from_url(self, url: str) -> Optional[str]:
        return query_param(url, 'pid')

    def make_placeholder(self, url: str, error: Optional[Exception]) -> ProductRecord:
        record = super().make_placeholder(url, error)
        record.title = FAILED_TITLE
        record.description = FAILED_TITLE
        return record

    async def iter_product_urls(self, target: ScrapeTarget) -> AsyncIterator[List[str]]:
        page = await self.open_listing(target.url)
        if page is None:
            return

        await accept_cookies(page, COOKIE_BUTTON_SELECTOR)
        await page.wait_for_selector(PRODUCT_CARD_SELECTOR, timeout=self.selector_timeout_ms)
        await simulate_human(page)

        await scroll_until_stable(
            page,
            step=1000,
            pause=2.0,
            max_scrolls=MAX_SCROLLS,
            loader_selector=LOADER_SELECTOR,
        )

        urls = await collect_links(page, PRODUCT_LINK_SELECTOR, self.config.base_url)
        self.logger.info(f"Found {len(urls)} product URLs")
        yield urls

    async def prepare_product_page(self, page: Page):
        await accept_cookies(page, COOKIE_BUTTON_SELECTOR)
        await simulate_human(page)

    def parse_product(self, soup: BeautifulSoup, url: str) -> Dict[str, Any]:
        return parse_farmasi_product(soup, url)
