"""
Boyner scraper.

Category pages load products while scrolling and behind a "show more"
button. The listing cards already carry title, brand and price; product
pages add images, shipping fee, return policy, description and breadcrumb.

Site structure:
- Listing: `.listProductItem` cards, total in `.product-list_total__TvMCW`
- Product: Next.js image layout (`.product-image-layout_*`), tabs (`.tabs_title__gO9Hr`)
"""

import asyncio
import re
from typing import Any, AsyncIterator, Dict, List
from bs4 import BeautifulSoup
from playwright.async_api import Page, TimeoutError as PlaywrightTimeoutError

from ..base import BrowserScraper, ScrapeTarget, is_cancelled
from ..config import get_site_config
from ..listing import click_if_visible, count_elements, read_total, slow_scroll
from ..utils.extractors import absolute_url, inner_html, select_all_attr, select_all_text, select_attr, select_text
from ..utils.normalizers import join_categories, parse_price, unique

PRODUCT_ITEM_SELECTOR = '.listProductItem'
TOTAL_SELECTOR = '.product-list_total__TvMCW'
SHOW_MORE_SELECTOR = '.product-list_showMoreButton__eS2_Z'
BIG_IMAGE_SELECTOR = ".product-image-layout_imageBig__8TB1z span img[data-nimg='intrinsic']"
OTHER_IMAGES_SELECTOR = ".product-image-layout_otherImages__KwpFh div span img[data-nimg='intrinsic']"
IMAGE_HOST = 'https://statics-mp.boyner.com.tr'

DEFAULT_EXPECTED_TOTAL = 500
MAX_NO_CHANGE = 3
MAX_RELOADS = 3


def parse_listing_cards(soup: BeautifulSoup, base_url: str) -> Dict[str, Dict[str, Any]]:
    """
    Parse product cards into {url: hints}.

    Hints hold the title, brand, price and currency shown on the card.
    """
    cards: Dict[str, Dict[str, Any]] = {}
    for card in soup.select(PRODUCT_ITEM_SELECTOR):
        url = absolute_url(select_attr(card, '.product-item_image__IxD4T a', 'href'), base_url)
        if not url or url in cards:
            continue
        price_text = select_text(card, '.product-price_checkPrice__NMY9e strong')
        currency_match = re.search(r'[^\d\s.,]+', price_text or '')
        cards[url] = {
            'title': select_text(card, '.product-item_name__HVuFo'),
            'brand': select_text(card, '.product-item_brand__LFImW'),
            'price': parse_price(price_text),
            'currency': currency_match.group(0) if currency_match else None,
        }
    return cards


def _is_real_image(src: str) -> bool:
    return src.startswith(IMAGE_HOST) and 'data:image/svg+xml' not in src


def parse_boyner_product(soup: BeautifulSoup, url: str) -> Dict[str, Any]:
    """Parse a Boyner product page."""
    images = select_all_attr(soup, BIG_IMAGE_SELECTOR, 'src')[:1]
    images += select_all_attr(soup, OTHER_IMAGES_SELECTOR, 'src')

    returnable = any('İade' in text for text in select_all_text(soup, '.cargo-status_item__PdgOr span'))

    return {
        'images': unique(src for src in images if _is_real_image(src)),
        'shipping_fee': parse_price(select_text(soup, '.delivery-information_wrapper__Ek_Uy div span strong')),
        'returnable': returnable,
        'description': inner_html(soup, '.product-information-card_content__Nf_Hn'),
        'categories': join_categories(select_all_text(soup, '.breadcrumb_itemLists__O62id ul li')),
    }


class BoynerScraper(BrowserScraper):
    """Scraper for Boyner."""

    wait_until = 'networkidle'

    def __init__(self, output_dir=None, headless=None):
        super().__init__(get_site_config('boyner'), output_dir, headless)

    async def load_all_products(self, page: Page, expected_total: int):
        """Scroll and press "show more" until every product is loaded."""
        last_count = 0
        no_change = 0
        reloads = 0

        while not is_cancelled():
            await slow_scroll(page, step=100, delay_ms=200)
            await asyncio.sleep(2)

            if await click_if_visible(page, SHOW_MORE_SELECTOR):
                self.logger.info("Clicked 'Show More' button")
                await asyncio.sleep(4)

            current = await count_elements(page, PRODUCT_ITEM_SELECTOR)
            self.logger.info(f"Found {current} / {expected_total} products")
            if current >= expected_total:
                break

            if current == last_count:
                no_change += 1
                self.logger.info(f"No new products loaded. Retry {no_change}/{MAX_NO_CHANGE}")
                if no_change >= MAX_NO_CHANGE:
                    if reloads >= MAX_RELOADS:
                        self.logger.warning("Listing stuck after reloads, continuing with what is loaded")
                        break
                    self.logger.info("Page might be stuck. Reloading...")
                    await page.reload(wait_until='networkidle')
                    await asyncio.sleep(5)
                    reloads += 1
                    no_change = 0
                else:
                    await page.evaluate("window.scrollBy(0, -200)")
                    await asyncio.sleep(0.5)
                    await page.evaluate("window.scrollBy(0, 200)")
                    await asyncio.sleep(2)
            else:
                no_change = 0

            last_count = current

    async def iter_product_urls(self, target: ScrapeTarget) -> AsyncIterator[List[str]]:
        page = await self.open_listing(target.url)
        if page is None:
            return

        expected_total = await read_total(page, TOTAL_SELECTOR, default=DEFAULT_EXPECTED_TOTAL)
        self.logger.info(f"Expected total products: {expected_total}")
        await self.load_all_products(page, expected_total)

        cards = parse_listing_cards(await self.crawler.soup(page), self.config.base_url)
        self.listing_hints.update(cards)
        self.logger.info(f"Collected {len(cards)} product URLs")
        yield list(cards.keys())

    async def prepare_product_page(self, page: Page):
        try:
            await page.wait_for_function(
                """([selector, host]) => {
                    const img = document.querySelector(selector);
                    return img && img.src.startsWith(host) && !img.src.includes('data:image/svg+xml');
                }""",
                arg=[BIG_IMAGE_SELECTOR, IMAGE_HOST],
                timeout=self.selector_timeout_ms,
            )
        except PlaywrightTimeoutError:
            self.logger.debug("Main image did not load in time")

        await page.evaluate("window.scrollBy(0, 700)")
        await asyncio.sleep(1)

        delivery_tab = page.locator('.tabs_title__gO9Hr', has_text='Teslimat Bilgileri').first
        if await delivery_tab.count():
            await delivery_tab.click()
            await asyncio.sleep(2)

        await click_if_visible(page, '.product-information-card_showButton__cho9w')

    def parse_product(self, soup: BeautifulSoup, url: str) -> Dict[str, Any]:
        return parse_boyner_product(soup, url)
