"""
Instagram comment collector.

Instagram only renders comments as the user scrolls the post, so this
scraper opens a visible browser, logs in, and snapshots the loaded comments
once a second while the user scrolls by hand. Typing `q` (then Enter) in the
terminal ends collection for the current post.

Only long comments (more than 10 words) are kept. They are deduplicated on
author + text and saved sorted by word count, longest first.
"""

import asyncio
import getpass
import random
import sys
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from bs4 import BeautifulSoup
from playwright.async_api import Page

from ..base import BaseScraper, Colors, ScrapeResult, ScrapeTarget, build_browser_crawler, is_cancelled
from ..config import get_site_config
from ..settings import settings
from ..storage import ProductStore

LOGIN_URL = 'https://www.instagram.com/accounts/login/'

# Instagram ships atomic CSS class names; these match the comment layout
COMMENT_NODE_SELECTOR = (
    'div.x9f619.xjbqb8w.x78zum5.x168nmei.x13lgxp2.x5pf9jr.xo71vjh.x1uhb9sk.x1plvlek'
    '.xryxfnj.x1c4vz4f.x2lah0s.xdt5ytf.xqjyukv.x1cy8zhl.x1oa3qoh.x1nhvcw1'
)
COMMENT_TEXT_SELECTOR = 'span.x1lliihq.x1plvlek.xryxfnj.x1n2onr6.x1ji0vk5.x18bv5gf'
COMMENT_USER_SELECTOR = 'span._ap3a._aaco._aacw._aacx._aad7._aade'
CAPTION_SELECTOR = (
    'span.x193iq5w.xeuugli.x1fj9vlw.x13faqbe.x1vvkbs.xt0psk2.x1i0vuye.xvs91rp'
    '.xo1l8bm.x5n08af.x10wh9bi.x1wdrske.x8viiok.x18hxmgj'
)

MIN_WORDS = 10
POLL_INTERVAL = 1.0
QUIT_KEY = 'q'


@dataclass
class CommentRecord:
    """One collected comment."""
    id: str
    words: int
    comment: str

    @property
    def key(self) -> Tuple[str, str]:
        return (self.id, self.comment)

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'words': self.words, 'comment': self.comment}


def count_words(text: str) -> int:
    return len(text.split())


def parse_comments(soup: BeautifulSoup, min_words: int = MIN_WORDS) -> List[CommentRecord]:
    """Comments currently rendered on a post page, longer than min_words."""
    comments = []
    for node in soup.select(COMMENT_NODE_SELECTOR):
        text_el = node.select_one(COMMENT_TEXT_SELECTOR)
        user_el = node.parent.select_one(COMMENT_USER_SELECTOR) if node.parent else None
        if text_el is None or user_el is None:
            continue
        text = text_el.get_text().strip()
        words = count_words(text)
        if words > min_words:
            comments.append(CommentRecord(id=user_el.get_text().strip(), words=words, comment=text))
    return comments


def sort_comments(comments: List[CommentRecord]) -> List[CommentRecord]:
    return sorted(comments, key=lambda c: c.words, reverse=True)


def start_quit_watcher(loop: asyncio.AbstractEventLoop, quit_event: asyncio.Event) -> threading.Thread:
    """
    Read stdin lines in a daemon thread and set quit_event on `q`.

    Stops quietly at end of input, leaving SIGINT as the only way out.
    """
    def watch():
        for line in sys.stdin:
            if line.strip().lower() == QUIT_KEY:
                loop.call_soon_threadsafe(quit_event.set)
                return

    thread = threading.Thread(target=watch, name='instagram-quit-watcher', daemon=True)
    thread.start()
    return thread


class InstagramScraper(BaseScraper):
    """
    Collects long comments from Instagram posts.

    Each target is a post URL. There is no listing or product page, so
    this scraper drives a single browser page itself instead of using the
    product loop.
    """

    wait_until = 'networkidle'
    poll_interval = POLL_INTERVAL

    def __init__(self, output_dir=None, headless=None, username: Optional[str] = None, password: Optional[str] = None):
        super().__init__(get_site_config('instagram'), output_dir)
        self.crawler = build_browser_crawler(self.config, headless)
        self.username = username or settings.instagram_username
        self.password = password or settings.instagram_password
        self._page: Optional[Page] = None

    async def setup(self):
        await self.crawler.start()
        await self.login()

    async def teardown(self):
        self._page = None
        try:
            await self.crawler.close()
        except Exception as e:
            self.logger.warning(f"Error during crawler cleanup: {e}")

    async def page(self) -> Page:
        """The single browser page, reopened if it was closed."""
        if self._page is None or self._page.is_closed():
            self._page = await self.crawler.new_page()
        return self._page

    async def ask_credentials(self) -> Tuple[str, str]:
        """Credentials from settings, or prompted for in the terminal."""
        loop = asyncio.get_running_loop()
        username = self.username
        password = self.password
        if not username:
            username = await loop.run_in_executor(None, input, 'Enter Instagram username: ')
        if not password:
            password = await loop.run_in_executor(None, getpass.getpass, 'Enter Instagram password: ')
        return username.strip(), password

    async def login(self):
        username, password = await self.ask_credentials()
        page = await self.page()
        self.logger.info(f"Logging in as {username}")
        await self.crawler.goto(page, LOGIN_URL, wait_until=self.wait_until)
        await page.wait_for_selector('input[name="username"]', timeout=10000)
        await page.type('input[name="username"]', username, delay=100)
        await page.type('input[name="password"]', password, delay=100)
        await page.click('button[type="submit"]')
        await asyncio.sleep(5 + random.uniform(0, 2))

    async def open_post(self, url: str) -> Page:
        page = await self.page()
        await self.crawler.goto(page, url, wait_until=self.wait_until)
        await asyncio.sleep(3 + random.uniform(0, 2))
        caption = page.locator(CAPTION_SELECTOR).first
        if await caption.count():
            await caption.scroll_into_view_if_needed()
        return page

    async def collect_comments(
        self,
        page: Page,
        store: ProductStore,
        quit_event: Optional[asyncio.Event] = None,
    ) -> List[CommentRecord]:
        """Poll the page until `q` or cancellation, checkpointing new comments."""
        collected: Dict[Tuple[str, str], CommentRecord] = {}
        if quit_event is None:
            quit_event = asyncio.Event()
            start_quit_watcher(asyncio.get_running_loop(), quit_event)

        self.logger.info(
            f"Scroll manually in the browser. Type '{Colors.bold(QUIT_KEY)}' and Enter in the terminal to finish."
        )

        while True:
            new = [c for c in parse_comments(await self.crawler.soup(page)) if c.key not in collected]
            for comment in new:
                collected[comment.key] = comment
            self.logger.info(f"New comments collected: {len(new)} (total {len(collected)})")
            if new:
                store.save(sort_comments(list(collected.values())))

            if quit_event.is_set() or is_cancelled():
                break
            try:
                await asyncio.wait_for(quit_event.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                pass

        return sort_comments(list(collected.values()))

    async def scrape_target(self, target: ScrapeTarget) -> ScrapeResult:
        store = ProductStore(self.output_dir, target.url, prefix='comments')
        result = ScrapeResult(
            source=self.config.short_name,
            base_url=target.url,
            started_at=datetime.now(timezone.utc),
            output_file=str(store.path),
        )

        page = await self.open_post(target.url)
        comments = await self.collect_comments(page, store)

        store.save(comments)
        result.total = result.scraped = len(comments)
        result.cancelled = is_cancelled()
        result.completed_at = datetime.now(timezone.utc)
        self.logger.info(f"✅ Total comments saved: {len(comments)} -> {store.path}")
        return result
