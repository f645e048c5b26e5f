"""
Watsons scraper.

Watsons uses the same Spartacus storefront as Gratis; only the pagination
markup differs (the last `li` of `.pagination` is the "next" item and gets
`.disabled` on the last page).
"""

from typing import Any, Dict
from bs4 import BeautifulSoup
from playwright.async_api import Page

from .gratis import GratisScraper, parse_spartacus_product

NEXT_ITEM_SELECTOR = '.pagination li:last-child'


class WatsonsScraper(GratisScraper):
    """Scraper for Watsons."""

    site_key = 'watsons'
    next_button_selector = f'{NEXT_ITEM_SELECTOR} a'

    async def has_next_page(self, page: Page) -> bool:
        item = page.locator(NEXT_ITEM_SELECTOR).first
        if await item.count() == 0 or await page.locator(self.next_button_selector).count() == 0:
            return False
        classes = await item.get_attribute('class') or ''
        return 'disabled' not in classes.split()

    async def prepare_product_page(self, page: Page):
        await page.wait_for_timeout(2000)

    def parse_product(self, soup: BeautifulSoup, url: str) -> Dict[str, Any]:
        return parse_spartacus_product(soup, url)
