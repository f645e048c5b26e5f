"""
Amazon Türkiye scraper.

Search/category result pages are paginated through the "next page" link.
Product pages carry the brand and specifications in the technical details
table and the description in the feature bullet list.

Site structure:
- Listing: `.puis-card-container` cards linking to `/dp/<ASIN>` pages
- Next page: `a.s-pagination-next` (aria-label "Sonraki sayfaya git...")
- Product: `#productTitle`, `span.a-price-*`, `#productDetails_techSpec_section_1`
"""

from typing import Any, AsyncIterator, Dict, List, Optional
from bs4 import BeautifulSoup

from ..base import BrowserScraper, ScrapeTarget
from ..config import get_site_config
from ..utils.extractors import (
    absolute_url,
    extract_id,
    extract_links,
    extract_table_specs,
    select_all_attr,
    select_all_text,
    select_attr,
    select_text,
)
from ..utils.normalizers import join_categories, parse_price_parts, parse_rating, unique

CARD_SELECTOR = '.puis-card-container'
CARD_LINK_SELECTOR = '.puis-card-container a.a-link-normal.s-no-outline'
NEXT_PAGE_SELECTOR = 'a.s-pagination-item.s-pagination-next[aria-label^="Sonraki sayfaya git"]'
SPEC_ROWS_SELECTOR = '#productDetails_techSpec_section_1 tr'

ASIN_PATTERN = r'/dp/([A-Z0-9]{10})'

# Amazon pads table values with a left-to-right mark
LRM = '\u200e'


def parse_listing(soup: BeautifulSoup, base_url: str) -> Dict[str, Any]:
    """
    Parse a search result page.

    Returns:
        Dict with 'urls' (product links) and 'next_url' (or None)
    """
    urls = extract_links(soup, CARD_LINK_SELECTOR, base_url, contains='/dp/')
    next_url = absolute_url(select_attr(soup, NEXT_PAGE_SELECTOR, 'href'), base_url)
    return {'urls': urls, 'next_url': next_url}


def parse_amazon_product(soup: BeautifulSoup, url: str) -> Dict[str, Any]:
    """Parse an Amazon product page."""
    product: Dict[str, Any] = {'product_id': extract_id(ASIN_PATTERN, url)}

    whole = select_text(soup, 'span.a-price-whole')
    fraction = select_text(soup, 'span.a-price-fraction')
    symbol = select_text(soup, 'span.a-price-symbol')
    if whole and symbol:
        product['price'] = parse_price_parts(whole, fraction)
        product['currency'] = symbol

    specs = [
        {'name': s['name'].replace(LRM, '').strip(), 'value': s['value'].replace(LRM, '').strip()}
        for s in extract_table_specs(soup, SPEC_ROWS_SELECTOR)
    ]
    product['specifications'] = specs
    for spec in specs:
        if spec['name'] == 'Marka Adı':
            product['brand'] = spec['value']
            break

    product['title'] = select_text(soup, '#productTitle')

    product['images'] = unique(
        select_all_attr(soup, '#altImages .imageThumbnail img', 'src')
        + select_all_attr(soup, '#altImages .videoThumbnail img', 'src')
    )

    product['rating'] = parse_rating(select_text(soup, '#acrPopover .a-size-base.a-color-base'))

    product['categories'] = join_categories(
        select_all_text(soup, 'ul.a-unordered-list.a-horizontal .a-list-item a.a-link-normal')
    )

    bullets = select_all_text(
        soup, '#feature-bullets ul.a-unordered-list.a-vertical.a-spacing-mini li span.a-list-item'
    )
    product['description'] = '\n'.join(bullets) or None

    return product


class AmazonScraper(BrowserScraper):
    """
    Scraper for Amazon Türkiye.

    Walks up to `max_pages` result pages and scrapes the products of each
    page before moving to the next one.
    """

    detail_wait_selector = '#productTitle'

    def __init__(self, output_dir=None, headless=None):
        super().__init__(get_site_config('amazon'), output_dir, headless)

    def product_id_from_url(self, url: str) -> Optional[str]:
        return extract_id(ASIN_PATTERN, url)

    async def iter_product_urls(self, target: ScrapeTarget) -> AsyncIterator[List[str]]:
        current_url: Optional[str] = target.url
        page_number = 1
        max_pages = self.config.max_pages or 1

        while current_url and page_number <= max_pages:
            page = await self.open_listing(current_url, wait_selector=CARD_SELECTOR)
            if page is None:
                return

            listing = parse_listing(await self.crawler.soup(page), self.config.base_url)
            self.logger.info(f"Found {len(listing['urls'])} product URLs on page {page_number}")
            yield listing['urls']

            current_url = listing['next_url']
            page_number += 1
            if current_url:
                await self.page_pause()

    def parse_product(self, soup: BeautifulSoup, url: str) -> Dict[str, Any]:
        return parse_amazon_product(soup, url)
