"""
Storefront scraper system.

This module provides one scraper per Turkish e-commerce site (plus an
Instagram comment collector) on a shared framework:
- Static HTML sites (httpx + BeautifulSoup)
- JavaScript-rendered sites (Playwright)
- Bot-protected sites (Playwright with a stealth profile)
"""

from .base import BaseScraper, ProductScraper, BrowserScraper, ScraperType, ListingStrategy, SiteConfig, ScrapeTarget, ProductRecord, ScrapeResult
from .config import SITES, get_site_config
from .manager import ScraperManager, SCRAPER_REGISTRY

__all__ = [
    'BaseScraper',
    'ProductScraper',
    'BrowserScraper',
    'ScraperType',
    'ListingStrategy',
    'SiteConfig',
    'ScrapeTarget',
    'ProductRecord',
    'ScrapeResult',
    'SITES',
    'get_site_config',
    'ScraperManager',
    'SCRAPER_REGISTRY',
]
