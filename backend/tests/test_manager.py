"""
Tests for the scraper registry and ScraperManager.
"""

import asyncio


class TestRegistry:
    """Test that every configured site has a scraper."""

    def test_registry_matches_sites(self):
        from scrapers.config import SITES
        from scrapers.manager import SCRAPER_REGISTRY

        assert set(SCRAPER_REGISTRY) == set(SITES)

    def test_get_scraper(self, output_dir):
        from scrapers.manager import ScraperManager
        from scrapers.sites.gratis import GratisScraper
        from scrapers.sites.n11 import N11Scraper

        manager = ScraperManager(output_dir=output_dir, headless=False)

        n11 = manager.get_scraper('n11')
        assert isinstance(n11, N11Scraper)
        assert n11.output_dir == output_dir / 'n11'

        gratis = manager.get_scraper('gratis')
        assert isinstance(gratis, GratisScraper)
        assert gratis.crawler.headless is False

        assert manager.get_scraper('hepsiburada') is None

    def test_instagram_is_headed_by_default(self, output_dir):
        from scrapers.manager import ScraperManager

        scraper = ScraperManager(output_dir=output_dir).get_scraper('instagram')
        assert scraper.crawler.headless is False

    def test_farmasi_uses_stealth(self, output_dir):
        from scrapers.manager import ScraperManager

        scraper = ScraperManager(output_dir=output_dir).get_scraper('farmasi')
        assert scraper.crawler.stealth is True

    def test_list_scrapers(self):
        from scrapers.manager import ScraperManager

        listed = ScraperManager().list_scrapers()
        assert len(listed) == 16
        assert all(s['implemented'] for s in listed)
        n11 = next(s for s in listed if s['key'] == 'n11')
        assert n11['type'] == 'static'


class TestScrapeSite:
    """Test result handling when a scraper fails."""

    def test_fatal_error_gives_failed_result(self, monkeypatch, output_dir):
        from scrapers import manager as manager_module
        from scrapers.base import ScrapeTarget

        class ExplodingScraper:
            def __init__(self, output_dir=None, headless=None):
                self.results = []

            async def run(self, targets=None):
                raise RuntimeError("browser crashed")

        monkeypatch.setitem(manager_module.SCRAPER_REGISTRY, 'gratis', ExplodingScraper)

        manager = manager_module.ScraperManager(output_dir=output_dir)
        results = asyncio.run(manager.scrape_site('gratis', [ScrapeTarget('https://www.gratis.com/makyaj')]))

        assert len(results) == 1
        assert results[0].success is False
        assert results[0].base_url == 'https://www.gratis.com/makyaj'
        assert results[0].error_details[0]['error'] == 'browser crashed'

        summary = manager.get_results_summary()
        assert summary['total_targets'] == 1
        assert summary['failed'] == 1

    def test_empty_summary(self):
        from scrapers.manager import ScraperManager

        summary = ScraperManager().get_results_summary()
        assert summary['total_targets'] == 0
        assert summary['placeholders'] == 0

    def test_partial_result_is_not_duplicated(self, monkeypatch, output_dir):
        from datetime import datetime, timezone
        from scrapers import manager as manager_module
        from scrapers.base import ScrapeResult, ScrapeTarget

        class DiskFullScraper:
            def __init__(self, output_dir=None, headless=None):
                self.results = []

            async def run(self, targets=None):
                self.results.append(ScrapeResult(
                    source='gratis', base_url=targets[0].url, started_at=datetime.now(timezone.utc),
                    scraped=4, errors=1,
                ))
                raise OSError("No space left on device")

        monkeypatch.setitem(manager_module.SCRAPER_REGISTRY, 'gratis', DiskFullScraper)

        manager = manager_module.ScraperManager(output_dir=output_dir)
        results = asyncio.run(manager.scrape_site('gratis', [
            ScrapeTarget('https://www.gratis.com/makyaj'),
            ScrapeTarget('https://www.gratis.com/cilt'),
        ]))

        assert len(results) == 1
        assert results[0].scraped == 4
        assert results[0].success is False
