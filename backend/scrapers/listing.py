"""
Listing traversal helpers for Playwright pages.

Infinite-scroll and "load more" listings share the same moves: scroll, wait
for a loader to disappear, click a button if one is visible, and stop once
the page height settles or the expected number of products is on screen.
"""

import asyncio
import logging
import random
from typing import Awaitable, Callable, Iterable, List, Optional, Set

from playwright.async_api import Page, TimeoutError as PlaywrightTimeoutError

from .base import is_cancelled
from .utils.extractors import extract_links, parse_html, select_text
from .utils.normalizers import parse_count

logger = logging.getLogger(__name__)


class LinkCollector:
    """
    Unique product URLs in discovery order.

    Usage:
        found = LinkCollector()
        new = found.add(await collect_links(page, selector, base_url))
        yield found.urls
    """

    def __init__(self):
        self.urls: List[str] = []
        self._seen: Set[str] = set()

    def __len__(self) -> int:
        return len(self.urls)

    def __contains__(self, url: str) -> bool:
        return url in self._seen

    def add(self, urls: Iterable[str]) -> List[str]:
        """Append unseen URLs and return them."""
        new = []
        for url in urls:
            if url not in self._seen:
                self._seen.add(url)
                new.append(url)
        self.urls.extend(new)
        return new


SLOW_SCROLL_SCRIPT = """
    async ([step, delay]) => {
        await new Promise((resolve) => {
            let total = 0;
            const timer = setInterval(() => {
                window.scrollBy(0, step);
                total += step;
                if (total >= document.body.scrollHeight - window.innerHeight) {
                    clearInterval(timer);
                    resolve();
                }
            }, delay);
        });
    }
"""


async def page_height(page: Page) -> int:
    return await page.evaluate("document.body.scrollHeight")


async def scroll_to_bottom(page: Page):
    await page.evaluate("window.scrollTo(0, document.body.scrollHeight)")


async def slow_scroll(page: Page, step: int = 500, delay_ms: int = 100):
    """Scroll down in small steps until the bottom, giving lazy content time to load."""
    await page.evaluate(SLOW_SCROLL_SCRIPT, [step, delay_ms])


async def count_elements(page: Page, selector: str) -> int:
    return await page.locator(selector).count()


async def wait_for_loader(page: Page, selector: str, timeout_ms: int = 15000):
    """Wait for a loading indicator to go away; a loader that never shows is fine."""
    try:
        await page.wait_for_selector(selector, state='hidden', timeout=timeout_ms)
    except PlaywrightTimeoutError:
        logger.debug(f"Loader {selector} still visible after {timeout_ms}ms")


async def click_if_visible(page: Page, selector: str, timeout_ms: int = 5000) -> bool:
    """Click the first match of selector if it is visible. Returns True on click."""
    locator = page.locator(selector).first
    try:
        if await locator.count() == 0 or not await locator.is_visible():
            return False
        await locator.scroll_into_view_if_needed(timeout=timeout_ms)
        await locator.click(timeout=timeout_ms)
        return True
    except PlaywrightTimeoutError:
        return False


async def accept_cookies(page: Page, selector: str, timeout_ms: int = 5000) -> bool:
    """Dismiss a cookie banner if it shows up."""
    try:
        await page.wait_for_selector(selector, state='visible', timeout=timeout_ms)
    except PlaywrightTimeoutError:
        return False
    clicked = await click_if_visible(page, selector)
    if clicked:
        logger.info("Cookie banner accepted")
    return clicked


async def simulate_human(page: Page):
    """A few mouse moves and a short scroll before reading the page."""
    viewport = page.viewport_size or {'width': 1366, 'height': 768}
    for _ in range(3):
        await page.mouse.move(
            random.randint(0, viewport['width'] - 1),
            random.randint(0, viewport['height'] - 1),
            steps=random.randint(5, 15),
        )
        await asyncio.sleep(random.uniform(0.2, 0.6))
    await page.mouse.wheel(0, random.randint(200, 600))
    await asyncio.sleep(random.uniform(0.5, 1.5))


async def read_total(page: Page, selector: str, default: Optional[int] = None) -> Optional[int]:
    """Expected product count shown on the listing page."""
    soup = parse_html(await page.content())
    total = parse_count(select_text(soup, selector))
    return total if total is not None else default


async def collect_links(page: Page, selector: str, base_url: str, contains: Optional[str] = None) -> List[str]:
    """Unique absolute product links currently in the page."""
    soup = parse_html(await page.content())
    return extract_links(soup, selector, base_url, contains=contains)


async def scroll_until_stable(
    page: Page,
    count: Optional[Callable[[], Awaitable[int]]] = None,
    expected_total: Optional[int] = None,
    step: Optional[int] = None,
    pause: float = 2.0,
    max_stagnant: int = 1,
    max_scrolls: Optional[int] = None,
    loader_selector: Optional[str] = None,
    after_scroll: Optional[Callable[[Page], Awaitable[None]]] = None,
) -> int:
    """
    Scroll an infinite listing until it stops growing.

    Args:
        page: Listing page
        count: Returns how many products are loaded so far
        expected_total: Stop once count() reaches this
        step: Scroll by this many pixels; None jumps to the bottom
        pause: Seconds to wait after each scroll
        max_stagnant: Unchanged-height rounds (at the bottom) before stopping
        max_scrolls: Hard cap on scroll rounds
        loader_selector: Loading indicator to wait out after each scroll
        after_scroll: Extra action per round (e.g. clicking "show more")

    Returns:
        Number of scroll rounds performed
    """
    scrolls = 0
    stagnant = 0
    last_height = await page_height(page)

    while not is_cancelled():
        if max_scrolls is not None and scrolls >= max_scrolls:
            logger.info(f"Reached scroll limit ({max_scrolls})")
            break

        if count is not None and expected_total:
            loaded = await count()
            if loaded >= expected_total:
                logger.info(f"All {expected_total} products loaded")
                break

        if step:
            await page.evaluate(f"window.scrollBy(0, {int(step)})")
        else:
            await scroll_to_bottom(page)
        scrolls += 1
        await asyncio.sleep(pause)

        if loader_selector:
            await wait_for_loader(page, loader_selector)
        if after_scroll is not None:
            await after_scroll(page)

        height = await page_height(page)
        if height != last_height:
            last_height = height
            stagnant = 0
            continue

        at_bottom = await page.evaluate(
            "window.innerHeight + window.scrollY >= document.body.scrollHeight - 10"
        )
        if step and not at_bottom:
            continue

        stagnant += 1
        logger.debug(f"Page height unchanged ({stagnant}/{max_stagnant})")
        if stagnant >= max_stagnant:
            break

    return scrolls
