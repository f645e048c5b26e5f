"""
Tests for the shared scrape loop: checkpointing, resume, retries and placeholders.
"""

import asyncio
import json
import time

import pytest


class FakeScraper:
    """Factory for an in-memory scraper over a fixed listing."""

    @staticmethod
    def build(config, output_dir, pages, products, fail_urls=(), cancel_after=None):
        from scrapers.base import ProductScraper, request_cancel

        class _Scraper(ProductScraper):
            def __init__(self):
                super().__init__(config, output_dir)
                self.calls = []

            async def iter_product_urls(self, target):
                for batch in pages:
                    yield batch

            async def scrape_product(self, url, target):
                self.calls.append(url)
                if url in fail_urls:
                    raise RuntimeError("Timeout 90000ms exceeded")
                if cancel_after is not None and len(self.calls) >= cancel_after:
                    request_cancel()
                return dict(products.get(url, {}))

            def product_id_from_url(self, url):
                return url.rsplit('-', 1)[-1]

        return _Scraper()


def read_output(result):
    with open(result.output_file, encoding='utf-8') as f:
        return json.load(f)


class TestProductRecord:
    """Test record construction and serialization."""

    def test_from_data_routes_extra_fields(self):
        from scrapers.base import ProductRecord

        record = ProductRecord.from_data('https://x.com/p-1', {
            'title': 'Krem',
            'price': 99.9,
            'shipping_fee': 'Ücretsiz',
            'error': 'ignored',
        })

        assert record.title == 'Krem'
        assert record.extra == {'shipping_fee': 'Ücretsiz'}
        assert record.error is None
        data = record.to_dict()
        assert data['shipping_fee'] == 'Ücretsiz'
        assert data['images'] == []
        assert 'error' not in data

    def test_placeholder(self):
        from scrapers.base import ProductRecord

        record = ProductRecord.placeholder('https://x.com/p-1')
        assert record.is_placeholder
        assert record.to_dict()['error'] == 'Unknown error'

    def test_scrape_result_success(self):
        from datetime import datetime, timezone
        from scrapers.base import ScrapeResult

        result = ScrapeResult(source='gratis', base_url='https://x.com', started_at=datetime.now(timezone.utc))
        result.placeholders = 2
        assert result.success is True
        assert result.to_dict()['placeholders'] == 2

        result.errors = 1
        assert result.success is False


class TestScrapeLoop:
    """Test ProductScraper.run end to end."""

    def test_products_are_checkpointed(self, fast_config, output_dir):
        from scrapers.base import ScrapeTarget

        products = {
            'https://shop.example.com/ruj-1': {'title': 'Ruj', 'price': 49.9},
            'https://shop.example.com/krem-2': {'title': 'Krem', 'price': 129.0, 'currency': 'TRY'},
        }
        scraper = FakeScraper.build(fast_config, output_dir, [list(products)], products)

        results = asyncio.run(scraper.run([ScrapeTarget('https://shop.example.com/makyaj')]))

        assert len(results) == 1
        result = results[0]
        assert result.scraped == 2
        assert result.success

        saved = read_output(result)
        assert [p['title'] for p in saved] == ['Ruj', 'Krem']
        assert saved[0]['product_id'] == '1'
        assert saved[0]['currency'] == 'TL'
        assert saved[1]['currency'] == 'TRY'
        assert str(output_dir / 'teststore') in result.output_file

    def test_rerun_skips_saved_urls(self, fast_config, output_dir):
        from scrapers.base import ScrapeTarget

        urls = ['https://shop.example.com/a-1', 'https://shop.example.com/b-2']
        products = {u: {'title': 'x'} for u in urls}
        target = ScrapeTarget('https://shop.example.com/makyaj')

        first = FakeScraper.build(fast_config, output_dir, [urls[:1]], products)
        asyncio.run(first.run([target]))
        # Output file names carry a millisecond timestamp
        time.sleep(0.01)

        second = FakeScraper.build(fast_config, output_dir, [urls], products)
        result = asyncio.run(second.run([target]))[0]

        assert second.calls == [urls[1]]
        assert result.skipped == 1
        assert result.scraped == 1

    def test_failed_product_becomes_placeholder(self, fast_config, output_dir):
        from scrapers.base import ScrapeTarget

        url = 'https://shop.example.com/bozuk-7'
        scraper = FakeScraper.build(fast_config, output_dir, [[url]], {}, fail_urls={url})

        result = asyncio.run(scraper.run([ScrapeTarget('https://shop.example.com/makyaj')]))[0]

        assert scraper.calls == [url] * 3
        assert result.placeholders == 1
        assert result.success

        saved = read_output(result)
        assert saved == [{
            'url': url,
            'product_id': '7',
            'brand': None,
            'title': None,
            'price': None,
            'currency': 'TL',
            'images': [],
            'rating': None,
            'description': None,
            'categories': None,
            'specifications': [],
            'error': 'Timeout 90000ms exceeded',
        }]

    def test_required_fields(self, fast_config, output_dir):
        from scrapers.base import ScrapeTarget

        fast_config.required_fields = ['title']
        url = 'https://shop.example.com/eksik-3'
        scraper = FakeScraper.build(fast_config, output_dir, [[url]], {url: {'price': 10.0}})

        result = asyncio.run(scraper.run([ScrapeTarget('https://shop.example.com/makyaj')]))[0]

        assert result.placeholders == 1
        assert 'title' in read_output(result)[0]['error']

    def test_hints_and_category(self, fast_config, output_dir):
        from scrapers.base import ScrapeTarget

        url = 'https://shop.example.com/bb-krem-4'
        scraper = FakeScraper.build(fast_config, output_dir, [[url]], {url: {'description': 'Hafif doku'}})
        scraper.listing_hints[url] = {'title': 'BB Krem', 'price': 300.0}

        result = asyncio.run(scraper.run([ScrapeTarget('https://shop.example.com/yuz', category='Yüz')]))[0]

        saved = read_output(result)[0]
        assert saved['title'] == 'BB Krem'
        assert saved['price'] == 300.0
        assert saved['description'] == 'Hafif doku'
        assert saved['categories'] == 'Yüz'

    def test_cancel_stops_before_next_product(self, fast_config, output_dir):
        from scrapers.base import ScrapeTarget

        urls = [f'https://shop.example.com/p-{i}' for i in range(5)]
        scraper = FakeScraper.build(
            fast_config, output_dir, [urls], {u: {'title': 'x'} for u in urls}, cancel_after=2,
        )

        results = asyncio.run(scraper.run([
            ScrapeTarget('https://shop.example.com/a'),
            ScrapeTarget('https://shop.example.com/b'),
        ]))

        # The second target is never started
        assert len(results) == 1
        assert results[0].cancelled
        assert len(read_output(results[0])) == 2

    def test_listing_failure_moves_on_to_next_target(self, fast_config, output_dir):
        from scrapers.base import ProductScraper, ScrapeTarget

        class BrokenListing(ProductScraper):
            visited = []

            async def iter_product_urls(self, target):
                self.visited.append(target.url)
                yield [f'{target.url}/ruj-1']
                if target.url.endswith('/a'):
                    raise RuntimeError("Timeout 30000ms exceeded")
                yield [f'{target.url}/krem-2']

            async def scrape_product(self, url, target):
                return {'title': 'x'}

        scraper = BrokenListing(fast_config, output_dir)
        results = asyncio.run(scraper.run([
            ScrapeTarget('https://shop.example.com/a'),
            ScrapeTarget('https://shop.example.com/b'),
        ]))

        assert BrokenListing.visited == ['https://shop.example.com/a', 'https://shop.example.com/b']
        assert [r.scraped for r in results] == [1, 2]
        assert all(r.success for r in results)
        # The listing error is reported but does not fail the target
        assert 'Timeout 30000ms exceeded' in results[0].error_details[0]['error']

    def test_fatal_error_keeps_partial_result(self, fast_config, output_dir, monkeypatch):
        from scrapers.base import ScrapeTarget
        from scrapers.storage import ProductStore

        urls = ['https://shop.example.com/a-1', 'https://shop.example.com/b-2']
        scraper = FakeScraper.build(fast_config, output_dir, [urls], {u: {'title': 'x'} for u in urls})
        original_append = ProductStore.append

        def append_then_fail(store, record):
            if len(store.records) == 1:
                raise OSError("No space left on device")
            original_append(store, record)

        monkeypatch.setattr(ProductStore, 'append', append_then_fail)

        with pytest.raises(OSError):
            asyncio.run(scraper.run([ScrapeTarget('https://shop.example.com/makyaj')]))

        assert len(scraper.results) == 1
        assert scraper.results[0].scraped == 1
        assert scraper.results[0].errors == 1

    def test_run_without_targets(self, fast_config, output_dir):
        scraper = FakeScraper.build(fast_config, output_dir, [], {})

        with pytest.raises(ValueError):
            asyncio.run(scraper.run())
