"""
Pytest configuration and fixtures for the scraper tests.
"""

import pytest
from bs4 import BeautifulSoup


@pytest.fixture(autouse=True)
def clear_cancel_flag():
    """Every test starts (and ends) with the cancellation flag cleared."""
    from scrapers.base import reset_cancel

    reset_cancel()
    yield
    reset_cancel()


@pytest.fixture
def output_dir(tmp_path):
    """Root output directory for a scrape."""
    path = tmp_path / "output"
    path.mkdir()
    return path


@pytest.fixture
def make_soup():
    """Parse an HTML snippet the same way the scrapers do."""
    def _make(html: str) -> BeautifulSoup:
        return BeautifulSoup(html, 'html.parser')
    return _make


@pytest.fixture
def fast_config():
    """A site configuration with every delay set to zero."""
    from scrapers.base import SiteConfig, ScraperType, ListingStrategy

    return SiteConfig(
        name='Test Store',
        short_name='teststore',
        base_url='https://shop.example.com',
        scraper_type=ScraperType.STATIC,
        listing_strategy=ListingStrategy.PAGINATION,
        output_subdir='teststore',
        rate_limit_seconds=0,
        rate_limit_jitter=0,
        page_delay_seconds=0,
        retry_delay=0,
        max_retries=3,
        default_currency='TL',
    )
