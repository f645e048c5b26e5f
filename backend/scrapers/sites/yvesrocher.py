"""
Yves Rocher scraper.

Category pages grow while scrolled behind a `.loading-spinner`. On product
pages each colour variant swaps the slider image, so variants are clicked one
by one to collect their pictures, and the Bazaarvoice review accordion is
opened to render the rating.
"""

import asyncio
from typing import Any, AsyncIterator, Dict, List, Optional
from bs4 import BeautifulSoup
from playwright.async_api import Page, TimeoutError as PlaywrightTimeoutError

from ..base import BrowserScraper, ScrapeTarget, is_cancelled
from ..config import get_site_config
from ..listing import LinkCollector, collect_links, read_total, slow_scroll
from ..utils.extractors import extract_breadcrumbs, extract_id, inner_html, select_attr, select_text
from ..utils.normalizers import join_categories, parse_price, parse_rating, unique

TOTAL_SELECTOR = '.products-length strong'
PRODUCT_LINK_SELECTOR = '.product-card_container a.product-card_header'
LOADER_SELECTOR = '.loading-spinner'
VARIANT_SELECTOR = ".slider_pagination-color-variant .pagination_content-unit [data-js='img-selector']"
SLIDER_IMAGE_SELECTOR = '.slider-single .picture_image'
REVIEWS_SELECTOR = '#BVRRSection'
REVIEWS_SUMMARY_SELECTOR = "#BVRRSection summary[data-js-summary-accordeon='summary']"
RATING_SELECTOR = ".bv-rating-ratio-number .bv-rating span[aria-hidden='true']"
PRODUCT_ID_PATTERN = r'/p/(\d+)/?$'
BRAND = 'Yves Rocher'
MAX_NO_NEW_URLS = 3


def parse_yvesrocher_product(soup: BeautifulSoup, url: str, variant_images: Optional[List[str]] = None) -> Dict[str, Any]:
    """
    Parse a Yves Rocher product page.

    Args:
        soup: Product page captured after the variant clicks
        url: Product URL
        variant_images: Slider images seen while clicking colour variants
    """
    images = list(variant_images or [])
    if not images:
        images.append(select_attr(soup, SLIDER_IMAGE_SELECTOR, 'src'))

    crumbs = extract_breadcrumbs(soup, '#breadcrumbs li a.link', exclude=['Anasayfa'])

    return {
        'brand': BRAND,
        'title': select_text(soup, 'h1.text_XXXL'),
        'price': parse_price(select_text(soup, '.product-card_price-block .bold')),
        'images': unique(images),
        'rating': parse_rating(select_text(soup, RATING_SELECTOR)),
        'description': inner_html(soup, '.custom-summary-description .text_S p'),
        'product_id': extract_id(PRODUCT_ID_PATTERN, url),
        'categories': join_categories(crumbs),
    }


class YvesRocherScraper(BrowserScraper):
    """Scraper for Yves Rocher."""

    wait_until = 'networkidle'

    def __init__(self, output_dir=None, headless=None):
        super().__init__(get_site_config('yvesrocher'), output_dir, headless)
        self._variant_images: List[str] = []

    def product_id_from_url(self, url: str) -> Optional[str]:
        return extract_id(PRODUCT_ID_PATTERN, url)

    async def iter_product_urls(self, target: ScrapeTarget) -> AsyncIterator[List[str]]:
        page = await self.open_listing(target.url)
        if page is None:
            return

        expected_total = await read_total(page, TOTAL_SELECTOR, default=0)
        self.logger.info(f"Total products expected: {expected_total}")

        found = LinkCollector()
        no_new = 0
        while not is_cancelled() and len(found) < expected_total:
            await slow_scroll(page, step=250, delay_ms=1000)
            try:
                await page.wait_for_selector(PRODUCT_LINK_SELECTOR, timeout=10000)
            except PlaywrightTimeoutError:
                pass

            before = len(found)
            found.add(await collect_links(page, PRODUCT_LINK_SELECTOR, self.config.base_url))
            self.logger.info(f"Collected {len(found)}/{expected_total} unique URLs")

            if len(found) == before:
                if await page.locator(LOADER_SELECTOR).first.is_visible():
                    self.logger.info("Loader visible, waiting for new products...")
                    await asyncio.sleep(5)
                    no_new = 0
                else:
                    no_new += 1
                    self.logger.info(f"No new URLs or loader found (streak: {no_new}/{MAX_NO_NEW_URLS})")
                    if no_new >= MAX_NO_NEW_URLS:
                        break
            else:
                no_new = 0
            await asyncio.sleep(1)

        yield found.urls

    async def collect_variant_images(self, page: Page) -> List[str]:
        """Click each colour variant and record the slider image it shows."""
        images: List[str] = []
        variants = page.locator(VARIANT_SELECTOR)
        for i in range(await variants.count()):
            await variants.nth(i).click()
            await asyncio.sleep(1)
            src = await page.locator(SLIDER_IMAGE_SELECTOR).first.get_attribute('src')
            if src and src not in images:
                images.append(src)
        return images

    async def open_reviews(self, page: Page):
        """Expand the review accordion so the rating gets rendered."""
        try:
            await page.wait_for_selector(REVIEWS_SELECTOR, timeout=10000)
            await page.locator(REVIEWS_SELECTOR).scroll_into_view_if_needed()
            await asyncio.sleep(2)

            summary = page.locator(REVIEWS_SUMMARY_SELECTOR).first
            if await summary.count():
                is_open = await summary.evaluate("el => el.parentElement.classList.contains('open')")
                if not is_open:
                    await summary.click()
                    await asyncio.sleep(3)

            await page.wait_for_selector('.bv-rating-ratio-number .bv-rating', timeout=10000)
        except PlaywrightTimeoutError as e:
            self.logger.debug(f"Failed to extract rating: {e}")

    async def prepare_product_page(self, page: Page):
        self._variant_images = await self.collect_variant_images(page)
        await self.open_reviews(page)

    def parse_product(self, soup: BeautifulSoup, url: str) -> Dict[str, Any]:
        return parse_yvesrocher_product(soup, url, self._variant_images)
