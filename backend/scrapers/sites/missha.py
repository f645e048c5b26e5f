"""
Missha Türkiye scraper.

The store is an older table-based layout. Category pages render every product
after one slow scroll; cards carry the title and price, so product pages are
only read for description, product code and images. Each base URL is paired
with a category label given on the command line.
"""

import re
from typing import Any, AsyncIterator, Dict, List, Optional
from bs4 import BeautifulSoup
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..base import BrowserScraper, ScrapeTarget
from ..config import get_site_config
from ..listing import slow_scroll
from ..utils.extractors import absolute_url, inner_html, select_attr, select_text
from ..utils.normalizers import normalize_whitespace, parse_price, unique

PRODUCT_CARD_SELECTOR = 'div.prd'
DETAIL_LINK_MARKER = 'urunDetay'
BRAND = 'Missha'
PRODUCT_CODE_LABEL = 'Ürün Kodu'
PRODUCT_CODE_RE = re.compile(r'.*Ürün Kodu\s*:\s*', re.DOTALL)


def parse_listing_cards(soup: BeautifulSoup, base_url: str) -> Dict[str, Dict[str, Any]]:
    """
    Parse category cards into {url: hints}.

    Only cards that link to a product detail page and show a title are kept.
    """
    cards: Dict[str, Dict[str, Any]] = {}
    for card in soup.select(PRODUCT_CARD_SELECTOR):
        href = select_attr(card, 'a', 'href')
        title = select_text(card, "td[height='42'] a")
        if not href or not title or DETAIL_LINK_MARKER not in href:
            continue
        url = absolute_url(href, base_url)
        if url in cards:
            continue
        cards[url] = {
            'title': title,
            'price': parse_price(select_text(card, "td[background*='mbg.jpg'] div")),
        }
    return cards


def parse_product_code(soup: BeautifulSoup) -> Optional[str]:
    """Product code from the "Ürün Kodu : XXX" cell."""
    label = soup.select_one("td[bgcolor='#F6F6F6'] strong")
    if label is None or PRODUCT_CODE_LABEL not in label.get_text():
        return None
    return normalize_whitespace(PRODUCT_CODE_RE.sub('', label.parent.get_text()))


def parse_missha_product(soup: BeautifulSoup, url: str, base_url: str = 'https://missha.com.tr') -> Dict[str, Any]:
    """Parse a Missha product page."""
    images = [absolute_url(select_attr(soup, 'td#pimage img#prdimg', 'src'), base_url)]
    for link in soup.select('#gallery_09 a.elevatezoom-gallery'):
        images.append(absolute_url(link.get('data-image'), base_url))

    return {
        'brand': BRAND,
        'product_id': parse_product_code(soup),
        'description': inner_html(soup, '#ozetDiv.icerik'),
        'images': unique(images),
    }


class MisshaScraper(BrowserScraper):
    """Scraper for Missha Türkiye."""

    wait_until = 'networkidle'

    def __init__(self, output_dir=None, headless=None):
        super().__init__(get_site_config('missha'), output_dir, headless)

    async def iter_product_urls(self, target: ScrapeTarget) -> AsyncIterator[List[str]]:
        page = await self.open_listing(target.url)
        if page is None:
            return

        await slow_scroll(page, step=250, delay_ms=1000)
        try:
            await page.wait_for_selector(PRODUCT_CARD_SELECTOR, timeout=10000)
        except PlaywrightTimeoutError:
            self.logger.warning(f"No product cards on {target.url}")

        cards = parse_listing_cards(await self.crawler.soup(page), self.config.base_url)
        self.listing_hints.update(cards)
        self.logger.info(f"Total unique products collected: {len(cards)}")
        yield list(cards.keys())

    def parse_product(self, soup: BeautifulSoup, url: str) -> Dict[str, Any]:
        return parse_missha_product(soup, url, self.config.base_url)
