"""
Eveshop scraper.

Category pages use infinite scroll behind a cookie banner. Brand and title
share the product heading: the brand is its link, the title its span.
"""

from typing import Any, AsyncIterator, Dict, List
from bs4 import BeautifulSoup
from playwright.async_api import Page

from ..base import BrowserScraper, ScrapeTarget
from ..config import get_site_config
from ..listing import LinkCollector, accept_cookies, collect_links, read_total, scroll_until_stable
from ..utils.extractors import extract_breadcrumbs, select_all_attr, select_attr, select_text
from ..utils.normalizers import join_categories, parse_price, unique

COOKIE_BUTTON_SELECTOR = '#471ec3c7-64ab-4e76-8eb2-3881b0c27953'
TOTAL_SELECTOR = '#filter-section .mr-4.font-500.d-md-block'
PRODUCT_LINK_SELECTOR = ".product--item .thumbnail-container a[data-discover='true']"
LOADER_SELECTOR = ".loading, .spinner, [class*='loader']"


def parse_eveshop_product(soup: BeautifulSoup, url: str) -> Dict[str, Any]:
    """Parse an Eveshop product page."""
    heading = soup.select_one('.product-single__title.mb-0')
    brand = select_text(heading, 'a') if heading else None
    title = select_text(heading, 'span') if heading else None

    price_text = select_text(soup, '.evecard-text-color span[content]')
    price = parse_price(price_text)
    if price is None:
        price = parse_price(select_attr(soup, '.evecard-text-color span[content]', 'content'))
    price_block = select_text(soup, '.evecard-text-color') or ''

    images = select_all_attr(soup, '.product-detail-badge-image img', 'src')[:1]
    images += select_all_attr(soup, '.swiper-slide[data-image_src]', 'data-image_src')

    crumbs = extract_breadcrumbs(
        soup, ".breadcrumb li span[itemprop='name']", exclude=['Anasayfa'], drop_last=True
    )

    return {
        'brand': brand,
        'title': title,
        'price': price,
        'currency': 'TRY' if '₺' in price_block else None,
        'description': select_text(soup, '.tab-content .tab-pane.active .pl-4.pr-4'),
        'product_id': select_text(soup, '.product-single__sku .label-sku.variant-sku'),
        'images': unique(images),
        'categories': join_categories(crumbs),
    }


class EveshopScraper(BrowserScraper):
    """Scraper for Eveshop."""

    wait_until = 'networkidle'

    def __init__(self, output_dir=None, headless=None):
        super().__init__(get_site_config('eveshop'), output_dir, headless)

    async def iter_product_urls(self, target: ScrapeTarget) -> AsyncIterator[List[str]]:
        page = await self.open_listing(target.url)
        if page is None:
            return

        await accept_cookies(page, COOKIE_BUTTON_SELECTOR, timeout_ms=10000)
        expected_total = await read_total(page, TOTAL_SELECTOR, default=0)
        self.logger.info(f"Total products expected: {expected_total}")

        found = LinkCollector()

        async def collect(current: Page):
            found.add(await collect_links(current, PRODUCT_LINK_SELECTOR, self.config.base_url))
            self.logger.info(f"Collected {len(found)}/{expected_total} unique URLs")

        async def loaded() -> int:
            return len(found)

        await collect(page)
        await scroll_until_stable(
            page,
            count=loaded,
            expected_total=expected_total,
            pause=2.0,
            loader_selector=LOADER_SELECTOR,
            after_scroll=collect,
        )
        await collect(page)
        yield found.urls

    def parse_product(self, soup: BeautifulSoup, url: str) -> Dict[str, Any]:
        return parse_eveshop_product(soup, url)
