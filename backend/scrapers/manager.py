"""
Scraper Manager - orchestrates all site scrapers.

Provides a unified interface for running a site scraper against a list of
base URLs and aggregating the results.
"""

from typing import Dict, List, Optional, Type
from datetime import datetime, timezone
import logging

from .base import BaseScraper, ScrapeResult, ScrapeTarget, ScraperType
from .config import SITES, get_site_config

from .sites.amazon import AmazonScraper
from .sites.boyner import BoynerScraper
from .sites.cosmetica import CosmeticaScraper
from .sites.dermokozmetika import DermokozmetikaScraper
from .sites.eveshop import EveshopScraper
from .sites.farmasi import FarmasiScraper
from .sites.gratis import GratisScraper
from .sites.instagram import InstagramScraper
from .sites.missha import MisshaScraper
from .sites.n11 import N11Scraper
from .sites.rossmann import RossmannScraper
from .sites.sephora import SephoraScraper
from .sites.trendyol import TrendyolScraper
from .sites.tshop import TshopScraper
from .sites.watsons import WatsonsScraper
from .sites.yvesrocher import YvesRocherScraper

logger = logging.getLogger(__name__)


# Registry of implemented scrapers
SCRAPER_REGISTRY: Dict[str, Type[BaseScraper]] = {
    'amazon': AmazonScraper,
    'boyner': BoynerScraper,
    'cosmetica': CosmeticaScraper,
    'dermokozmetika': DermokozmetikaScraper,
    'eveshop': EveshopScraper,
    'farmasi': FarmasiScraper,
    'gratis': GratisScraper,
    'instagram': InstagramScraper,
    'missha': MisshaScraper,
    'n11': N11Scraper,
    'rossmann': RossmannScraper,
    'sephora': SephoraScraper,
    'trendyol': TrendyolScraper,
    'tshop': TshopScraper,
    'watsons': WatsonsScraper,
    'yvesrocher': YvesRocherScraper,
}


class ScraperManager:
    """
    Manages and orchestrates all site scrapers.

    Usage:
        manager = ScraperManager(output_dir=Path('output'))

        # Run one site against its base URLs
        results = await manager.scrape_site('gratis', [ScrapeTarget(url)])

        # Check status
        status = manager.list_scrapers()
    """

    def __init__(self, output_dir=None, headless: Optional[bool] = None):
        """
        Initialize the scraper manager.

        Args:
            output_dir: Root output directory (defaults to settings.output_dir)
            headless: Override the browser headless setting
        """
        self.output_dir = output_dir
        self.headless = headless
        self.results: Dict[str, List[ScrapeResult]] = {}

    def get_scraper(self, site_key: str, **kwargs) -> Optional[BaseScraper]:
        """
        Get a scraper instance for a site.

        Args:
            site_key: Site identifier (e.g., 'gratis')
            **kwargs: Extra constructor arguments for the scraper

        Returns:
            Scraper instance or None if not implemented
        """
        if site_key not in SCRAPER_REGISTRY:
            logger.warning(f"Scraper not implemented for site: {site_key}")
            return None

        config = get_site_config(site_key)
        kwargs.setdefault('output_dir', self.output_dir)
        if config.scraper_type != ScraperType.STATIC:
            kwargs.setdefault('headless', self.headless)

        scraper_class = SCRAPER_REGISTRY[site_key]
        return scraper_class(**kwargs)

    def _failed_result(self, site_key: str, base_url: str, error: str) -> ScrapeResult:
        now = datetime.now(timezone.utc)
        return ScrapeResult(
            source=site_key,
            base_url=base_url,
            started_at=now,
            completed_at=now,
            errors=1,
            error_details=[{'url': base_url, 'error': error}],
        )

    async def scrape_site(self, site_key: str, targets: Optional[List[ScrapeTarget]] = None) -> List[ScrapeResult]:
        """
        Run the scraper for one site.

        Args:
            site_key: Site identifier
            targets: Base URLs (defaults to the site's default URLs)

        Returns:
            One ScrapeResult per base URL; a failed run ends with an error result
        """
        config = get_site_config(site_key)
        logger.info(f"Starting scrape for {config.name} ({site_key})")

        first_url = targets[0].url if targets else (config.default_urls[0] if config.default_urls else config.base_url)

        scraper = self.get_scraper(site_key)
        if not scraper:
            results = [self._failed_result(site_key, first_url, f'Scraper not implemented for {site_key}')]
            self.results[site_key] = results
            return results

        try:
            results = await scraper.run(targets)
        except Exception as e:
            logger.error(f"Scraper failed for {site_key}: {e}")
            results = list(scraper.results)
            # A target that failed mid-run has already recorded its partial result
            if not results or results[-1].success:
                failed_url = targets[len(results)].url if targets and len(results) < len(targets) else first_url
                results.append(self._failed_result(site_key, failed_url, str(e)))

        self.results[site_key] = results
        return results

    def list_scrapers(self) -> List[Dict]:
        """
        List all configured sites and their implementation status.

        Returns:
            List of site info dictionaries
        """
        scrapers = []
        for key, config in SITES.items():
            scrapers.append({
                'key': key,
                'name': config.name,
                'short_name': config.short_name,
                'type': config.scraper_type.value,
                'listing': config.listing_strategy.value,
                'implemented': key in SCRAPER_REGISTRY,
                'url': config.base_url,
            })
        return scrapers

    def get_implemented_scrapers(self) -> List[str]:
        """Get list of implemented scraper keys."""
        return list(SCRAPER_REGISTRY.keys())

    def get_results_summary(self) -> Dict:
        """
        Get summary of all scrape results.

        Returns:
            Summary dictionary with totals
        """
        all_results = [r for results in self.results.values() for r in results]
        if not all_results:
            return {
                'total_targets': 0,
                'successful': 0,
                'failed': 0,
                'scraped': 0,
                'skipped': 0,
                'placeholders': 0,
            }

        successful = sum(1 for r in all_results if r.success)

        return {
            'total_targets': len(all_results),
            'successful': successful,
            'failed': len(all_results) - successful,
            'scraped': sum(r.scraped for r in all_results),
            'skipped': sum(r.skipped for r in all_results),
            'placeholders': sum(r.placeholders for r in all_results),
            'sites': {k: [r.to_dict() for r in v] for k, v in self.results.items()},
        }


# Convenience function for standalone usage

async def scrape_site(site_key: str, targets: Optional[List[ScrapeTarget]] = None, output_dir=None) -> List[ScrapeResult]:
    """
    Scrape a single site.

    Args:
        site_key: Site identifier
        targets: Base URLs to scrape
        output_dir: Root output directory

    Returns:
        List of ScrapeResult
    """
    manager = ScraperManager(output_dir)
    return await manager.scrape_site(site_key, targets)
