"""
Tests for the command line entry point.
"""

from datetime import datetime, timezone

import pytest


@pytest.fixture
def quiet_logging(monkeypatch):
    """Keep CLI runs from writing log files."""
    from scrapers.settings import settings

    monkeypatch.setattr(settings, 'log_to_file', False)


def fake_scrape_site(**fields):
    """A ScraperManager.scrape_site replacement returning one result."""
    from scrapers.base import ScrapeResult

    async def scrape_site(self, site_key, targets=None):
        result = ScrapeResult(
            source=site_key,
            base_url=targets[0].url,
            started_at=datetime.now(timezone.utc),
            **fields,
        )
        self.results[site_key] = [result]
        return [result]

    return scrape_site


class TestParseTargets:
    """Test positional argument handling."""

    def test_plain_urls(self):
        from scrapers.cli import parse_targets

        targets = parse_targets('gratis', ['https://www.gratis.com/a', 'https://www.gratis.com/b'])
        assert [t.url for t in targets] == ['https://www.gratis.com/a', 'https://www.gratis.com/b']
        assert all(t.category is None for t in targets)

    def test_missha_pairs(self):
        from scrapers.cli import parse_targets

        targets = parse_targets('missha', ['https://missha.com.tr/cilt', 'Cilt Bakımı'])
        assert targets[0].url == 'https://missha.com.tr/cilt'
        assert targets[0].category == 'Cilt Bakımı'

    def test_missha_odd_arguments(self):
        from scrapers.cli import UsageError, parse_targets

        with pytest.raises(UsageError):
            parse_targets('missha', ['https://missha.com.tr/cilt'])


class TestMain:
    """Test exit codes."""

    def test_list(self, capsys):
        from scrapers.cli import main

        assert main(['--list']) == 0
        assert 'gratis' in capsys.readouterr().out

    def test_no_site(self, capsys):
        from scrapers.cli import main

        assert main([]) == 1

    def test_unknown_site(self, quiet_logging):
        from scrapers.cli import main

        assert main(['hepsiburada', 'https://www.hepsiburada.com']) == 1

    def test_missha_needs_pairs(self, quiet_logging):
        from scrapers.cli import main

        assert main(['missha', 'https://missha.com.tr/cilt']) == 1

    def test_product_flag_rejected_for_instagram(self, quiet_logging):
        from scrapers.cli import main

        assert main(['instagram', '--product', 'https://www.instagram.com/p/X/']) == 1

    def test_successful_run(self, monkeypatch, quiet_logging, output_dir):
        from scrapers import cli

        monkeypatch.setattr(cli.ScraperManager, 'scrape_site', fake_scrape_site(scraped=3, placeholders=1))

        assert cli.main(['gratis', 'https://www.gratis.com/makyaj', '--output-dir', str(output_dir)]) == 0

    def test_fatal_failure(self, monkeypatch, quiet_logging, output_dir):
        from scrapers import cli

        monkeypatch.setattr(cli.ScraperManager, 'scrape_site', fake_scrape_site(errors=1))

        assert cli.main(['gratis', 'https://www.gratis.com/makyaj', '--output-dir', str(output_dir)]) == 1


class TestColorStripFormatter:
    """Test ANSI stripping for the log file."""

    def test_strips_colors(self):
        import logging
        from scrapers.base import Colors
        from scrapers.cli import ColorStripFormatter

        record = logging.LogRecord('scraper.gratis', logging.INFO, __file__, 1, Colors.green('done'), None, None)
        assert ColorStripFormatter('%(message)s').format(record) == 'done'
