"""
Tests for the browser lifecycle of BrowserScraper and the Instagram poller.

A FakeCrawler stands in for Playwright: pages are plain objects whose HTML
comes from a URL map, and restarting the fake browser closes every page the
way a real relaunch does.
"""

import asyncio
import dataclasses
import json
import signal

import pytest
from bs4 import BeautifulSoup


class FakePage:
    """Just enough of a Playwright page for the scrapers."""

    def __init__(self, crawler):
        self.crawler = crawler
        self.url = 'about:blank'
        self.closed = False

    def is_closed(self):
        return self.closed

    async def content(self):
        if self.closed:
            raise RuntimeError("Target page, context or browser has been closed")
        return self.crawler.html.get(self.url, '')


class FakeCrawler:
    """In-memory stand-in for BrowserCrawler."""

    def __init__(self, html=None, fail_urls=None, disconnect_urls=None):
        self.html = html or {}
        # url -> number of loads that fail before one succeeds
        self.fail_urls = dict(fail_urls or {})
        self.disconnect_urls = set(disconnect_urls or ())
        self.alive = True
        self.restarts = 0
        self.visits = []
        self.pages = []

    def is_alive(self):
        return self.alive

    async def start(self):
        self.alive = True

    async def close(self):
        await self._close_pages()

    async def restart(self):
        self.restarts += 1
        await self._close_pages()
        self.alive = True

    async def _close_pages(self):
        for page in self.pages:
            page.closed = True

    async def new_page(self):
        page = FakePage(self)
        self.pages.append(page)
        return page

    async def close_page(self, page):
        page.closed = True

    async def goto(self, page, url, wait_until='domcontentloaded'):
        self.visits.append(url)
        if url in self.disconnect_urls:
            self.disconnect_urls.discard(url)
            self.alive = False
            raise RuntimeError("Target page, context or browser has been closed")
        if self.fail_urls.get(url):
            self.fail_urls[url] -= 1
            raise RuntimeError(f"Timeout 30000ms exceeded loading {url}")
        page.url = url

    async def soup(self, page):
        return BeautifulSoup(await page.content(), 'html.parser')


def links_html(urls):
    return ''.join(f'<a class="product" href="{u}">x</a>' for u in urls)


def build_scraper(config, output_dir, crawler):
    """A BrowserScraper over one listing page of `a.product` links."""
    from scrapers.base import BrowserScraper

    class _Scraper(BrowserScraper):
        async def iter_product_urls(self, target):
            page = await self.open_listing(target.url)
            if page is None:
                return
            soup = await self.crawler.soup(page)
            yield [a['href'] for a in soup.select('a.product')]

        def parse_product(self, soup, url):
            return {'title': soup.get_text().strip() or None}

    scraper = _Scraper(config, output_dir)
    scraper.crawler = crawler
    return scraper


class TestBrowserLifecycle:
    """Test restarts, relaunches and listing retries."""

    LISTING = 'https://shop.example.com/makyaj'

    def test_restart_every_n_products(self, fast_config, output_dir):
        from scrapers.base import ScrapeTarget

        products = [f'https://shop.example.com/p-{i}' for i in range(5)]
        html = {self.LISTING: links_html(products)}
        html.update({u: f'<h1>Ürün {u[-1]}</h1>' for u in products})
        crawler = FakeCrawler(html)
        fast_config.restart_every = 2

        result = asyncio.run(build_scraper(fast_config, output_dir, crawler).run([ScrapeTarget(self.LISTING)]))[0]

        assert result.scraped == 5
        assert crawler.restarts == 2

    def test_relaunch_after_disconnect(self, fast_config, output_dir):
        from scrapers.base import ScrapeTarget

        product = 'https://shop.example.com/p-1'
        crawler = FakeCrawler(
            {self.LISTING: links_html([product]), product: '<h1>Ruj</h1>'},
            disconnect_urls={product},
        )

        result = asyncio.run(build_scraper(fast_config, output_dir, crawler).run([ScrapeTarget(self.LISTING)]))[0]

        assert crawler.restarts == 1
        assert crawler.visits.count(product) == 2
        assert result.scraped == 1
        assert result.placeholders == 0

    def test_listing_retried_then_succeeds(self, fast_config, output_dir):
        from scrapers.base import ScrapeTarget

        product = 'https://shop.example.com/p-1'
        crawler = FakeCrawler(
            {self.LISTING: links_html([product]), product: '<h1>Ruj</h1>'},
            fail_urls={self.LISTING: 2},
        )

        result = asyncio.run(build_scraper(fast_config, output_dir, crawler).run([ScrapeTarget(self.LISTING)]))[0]

        assert crawler.visits.count(self.LISTING) == 3
        assert result.scraped == 1

    def test_listing_gives_up(self, fast_config, output_dir):
        from scrapers.base import ScrapeTarget

        crawler = FakeCrawler(fail_urls={self.LISTING: 99})
        scraper = build_scraper(fast_config, output_dir, crawler)

        assert asyncio.run(scraper.open_listing(self.LISTING)) is None
        assert crawler.visits == [self.LISTING] * 3

        result = asyncio.run(scraper.run([ScrapeTarget(self.LISTING)]))[0]
        assert result.total == 0
        assert result.success


class TestClickPaginatedListing:
    """Test that a browser restart mid-listing does not end the run."""

    def test_listing_page_reopened_after_relaunch(self, output_dir, monkeypatch):
        from scrapers.base import ScrapeTarget
        from scrapers.sites import gratis as gratis_module
        from scrapers.sites.gratis import GratisScraper

        async def no_sleep(seconds):
            pass

        monkeypatch.setattr(gratis_module, 'asyncio', type('FastAsyncio', (), {'sleep': staticmethod(no_sleep)}))

        first = 'https://www.gratis.com/makyaj/c/1'
        second = 'https://www.gratis.com/cilt/c/2'
        ruj = 'https://www.gratis.com/ruj-p-111'
        krem = 'https://www.gratis.com/krem-p-222'

        def grid(url):
            return (
                '<app-custom-product-grid-item><div class="infos">'
                f'<a class="cx-product-name" href="{url}">x</a></div></app-custom-product-grid-item>'
            )

        def product(brand, title):
            return f'<div class="manufacturer">{brand}</div><div class="product-title">{brand} {title}</div>'

        crawler = FakeCrawler(
            {
                first: grid(ruj),
                second: grid(krem),
                ruj: product('Flormar', 'Mat Ruj'),
                krem: product('Nivea', 'Nemlendirici Krem'),
            },
            disconnect_urls={ruj},
        )

        scraper = GratisScraper(output_dir=output_dir)
        scraper.crawler = crawler
        scraper.config = dataclasses.replace(
            scraper.config, rate_limit_seconds=0, rate_limit_jitter=0, page_delay_seconds=0,
            retry_delay=0, restart_every=None,
        )

        async def has_next_page(page):
            # Playwright raises on a closed page
            await page.content()
            return False

        async def prepare_product_page(page):
            pass

        scraper.has_next_page = has_next_page
        scraper.prepare_product_page = prepare_product_page

        results = asyncio.run(scraper.run([ScrapeTarget(first), ScrapeTarget(second)]))

        assert [r.base_url for r in results] == [first, second]
        assert all(r.success for r in results)
        assert [r.scraped for r in results] == [1, 1]
        assert crawler.restarts == 1
        # The closed listing page was loaded again at its last URL
        assert crawler.visits.count(first) == 2


class TestSigintHandler:
    """Test the two-stage Ctrl+C handler."""

    def test_first_cancels_second_aborts(self):
        from scrapers.base import is_cancelled
        from scrapers.cli import install_sigint_handler

        install_sigint_handler()
        try:
            handler = signal.getsignal(signal.SIGINT)

            handler(signal.SIGINT, None)
            assert is_cancelled()

            with pytest.raises(KeyboardInterrupt):
                handler(signal.SIGINT, None)
        finally:
            signal.signal(signal.SIGINT, signal.default_int_handler)


class TestInstagramPolling:
    """Test comment polling, de-duplication and checkpointing."""

    def comment(self, user, text):
        from scrapers.sites.instagram import COMMENT_NODE_SELECTOR, COMMENT_TEXT_SELECTOR, COMMENT_USER_SELECTOR

        def classes(selector):
            return ' '.join(selector.split('.')[1:])

        return (
            f'<div><span class="{classes(COMMENT_USER_SELECTOR)}">{user}</span>'
            f'<div class="{classes(COMMENT_NODE_SELECTOR)}">'
            f'<span class="{classes(COMMENT_TEXT_SELECTOR)}">{text}</span></div></div>'
        )

    def test_collect_comments(self, output_dir):
        from scrapers.sites.instagram import InstagramScraper
        from scrapers.storage import ProductStore

        post = 'https://www.instagram.com/p/ABC123/'
        first = 'bu serumu iki aydır kullanıyorum ve lekelerim gözle görülür şekilde azaldı'
        second = (
            'kuru ciltler için biraz ağır gelebilir ama kışın gece kremi olarak '
            'kullanınca sabah cildim çok yumuşak oluyor'
        )
        snapshots = [
            self.comment('ayse', first),
            self.comment('ayse', first) + self.comment('zeynep', second),
            self.comment('ayse', first) + self.comment('zeynep', second) + self.comment('ali', 'harika'),
        ]

        class SnapshotCrawler(FakeCrawler):
            quit_event = None

            async def soup(self, page):
                html = snapshots.pop(0)
                if not snapshots:
                    # The user typed `q` while the last snapshot was taken
                    self.quit_event.set()
                return BeautifulSoup(html, 'html.parser')

        scraper = InstagramScraper(output_dir=output_dir, username='u', password='p')
        scraper.crawler = SnapshotCrawler()
        scraper.poll_interval = 0
        store = ProductStore(scraper.output_dir, post, prefix='comments')

        async def collect():
            scraper.crawler.quit_event = asyncio.Event()
            page = await scraper.crawler.new_page()
            return await scraper.collect_comments(page, store, scraper.crawler.quit_event)

        comments = asyncio.run(collect())

        assert [c.id for c in comments] == ['zeynep', 'ayse']
        assert snapshots == []

        with open(store.path, encoding='utf-8') as f:
            saved = json.load(f)
        assert [c['id'] for c in saved] == ['zeynep', 'ayse']
        assert saved[1] == {'id': 'ayse', 'words': 11, 'comment': first}
