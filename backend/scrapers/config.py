"""
Site configurations for all storefront sources.

Each site has a SiteConfig that defines:
- Base URL and output subdirectory
- Scraper type (static, javascript, stealth) and listing strategy
- Pacing, retry and browser restart settings
"""

from .base import SiteConfig, ScraperType, ListingStrategy


# ============================================================
# SITE CONFIGURATIONS
# ============================================================

SITES = {
    # ========== PAGINATION ==========

    'amazon': SiteConfig(
        name='Amazon Türkiye',
        short_name='amazon',
        base_url='https://www.amazon.com.tr',
        scraper_type=ScraperType.JAVASCRIPT,
        listing_strategy=ListingStrategy.PAGINATION,
        output_subdir='amazon',
        rate_limit_seconds=1.0,
        rate_limit_jitter=2.0,
        page_delay_seconds=2.0,
        page_delay_jitter=3.0,
        max_pages=10,
        referer='https://www.amazon.com.tr/',
    ),

    'cosmetica': SiteConfig(
        name='Cosmetica',
        short_name='cosmetica',
        base_url='https://www.cosmetica.com.tr',
        scraper_type=ScraperType.JAVASCRIPT,
        listing_strategy=ListingStrategy.PAGINATION,
        output_subdir='cosmetica',
        default_currency='TRY',
    ),

    'gratis': SiteConfig(
        name='Gratis',
        short_name='gratis',
        base_url='https://www.gratis.com',
        scraper_type=ScraperType.JAVASCRIPT,
        listing_strategy=ListingStrategy.PAGINATION,
        output_subdir='gratis',
    ),

    'n11': SiteConfig(
        name='n11',
        short_name='n11',
        base_url='https://www.n11.com',
        scraper_type=ScraperType.STATIC,
        listing_strategy=ListingStrategy.PAGINATION,
        output_subdir='n11',
        page_delay_seconds=5.0,
        retry_delay=5.0,
    ),

    'watsons': SiteConfig(
        name='Watsons',
        short_name='watsons',
        base_url='https://www.watsons.com.tr',
        scraper_type=ScraperType.JAVASCRIPT,
        listing_strategy=ListingStrategy.PAGINATION,
        output_subdir='watsons',
        default_urls=['https://www.watsons.com.tr/makyaj/goz-makyaji/far-ve-paletler/c/1013'],
    ),

    # ========== INFINITE SCROLL / LOAD MORE ==========

    'boyner': SiteConfig(
        name='Boyner',
        short_name='boyner',
        base_url='https://www.boyner.com.tr',
        scraper_type=ScraperType.JAVASCRIPT,
        listing_strategy=ListingStrategy.LOAD_MORE,
        output_subdir='boyner',
    ),

    'eveshop': SiteConfig(
        name='Eveshop',
        short_name='eveshop',
        base_url='https://www.eveshop.com.tr',
        scraper_type=ScraperType.JAVASCRIPT,
        listing_strategy=ListingStrategy.INFINITE_SCROLL,
        output_subdir='eveshop',
        restart_every=100,
        required_fields=['title', 'brand'],
    ),

    'farmasi': SiteConfig(
        name='Farmasi',
        short_name='farmasi',
        base_url='https://www.farmasi.com.tr',
        scraper_type=ScraperType.STEALTH,
        listing_strategy=ListingStrategy.INFINITE_SCROLL,
        output_subdir='farmasi',
        rate_limit_seconds=3.0,
        rate_limit_jitter=4.0,
        default_currency='TL',
        referer='https://www.farmasi.com.tr/',
    ),

    'missha': SiteConfig(
        name='Missha Türkiye',
        short_name='missha',
        base_url='https://missha.com.tr',
        scraper_type=ScraperType.JAVASCRIPT,
        listing_strategy=ListingStrategy.INFINITE_SCROLL,
        output_subdir='missha',
        restart_every=50,
        required_fields=['title'],
        default_currency='₺',
        requires_category=True,
    ),

    'rossmann': SiteConfig(
        name='Rossmann',
        short_name='rossmann',
        base_url='https://www.rossmann.com.tr',
        scraper_type=ScraperType.JAVASCRIPT,
        listing_strategy=ListingStrategy.INFINITE_SCROLL,
        output_subdir='rossmann',
    ),

    'sephora': SiteConfig(
        name='Sephora Türkiye',
        short_name='sephora',
        base_url='https://www.sephora.com.tr',
        scraper_type=ScraperType.JAVASCRIPT,
        listing_strategy=ListingStrategy.LOAD_MORE,
        output_subdir='sephora',
        default_currency='TRY',
    ),

    'trendyol': SiteConfig(
        name='Trendyol',
        short_name='trendyol',
        base_url='https://www.trendyol.com',
        scraper_type=ScraperType.JAVASCRIPT,
        listing_strategy=ListingStrategy.INFINITE_SCROLL,
        output_subdir='trendyol',
    ),

    'tshop': SiteConfig(
        name='TShop',
        short_name='tshop',
        base_url='https://tshop.com.tr',
        scraper_type=ScraperType.JAVASCRIPT,
        listing_strategy=ListingStrategy.INFINITE_SCROLL,
        output_subdir='tshop',
        restart_every=50,
        required_fields=['title', 'brand'],
        default_currency='TRY',
    ),

    'yvesrocher': SiteConfig(
        name='Yves Rocher',
        short_name='yvesrocher',
        base_url='https://www.yvesrocher.com.tr',
        scraper_type=ScraperType.JAVASCRIPT,
        listing_strategy=ListingStrategy.INFINITE_SCROLL,
        output_subdir='yvesrocher',
        restart_every=50,
        required_fields=['title'],
        default_currency='TL',
    ),

    # ========== DIRECT / SOCIAL ==========

    'dermokozmetika': SiteConfig(
        name='Dermokozmetika',
        short_name='dermokozmetika',
        base_url='https://www.dermokozmetika.com.tr',
        scraper_type=ScraperType.JAVASCRIPT,
        listing_strategy=ListingStrategy.DIRECT,
        output_subdir='dermokozmetika',
        retry_delay=5.0,
        default_currency='TL',
        referer='https://www.dermokozmetika.com.tr/',
    ),

    'instagram': SiteConfig(
        name='Instagram',
        short_name='instagram',
        base_url='https://www.instagram.com',
        scraper_type=ScraperType.JAVASCRIPT,
        listing_strategy=ListingStrategy.COMMENTS,
        output_subdir='instagram',
        default_urls=['https://www.instagram.com/p/DIO4oIaC975/'],
        headless=False,  # comments are loaded by the user scrolling
    ),
}


# ============================================================
# HELPER FUNCTIONS
# ============================================================

def get_site_config(site_key: str) -> SiteConfig:
    """
    Get configuration for a site by its key.

    Args:
        site_key: Site identifier (e.g., 'gratis', 'n11')

    Returns:
        SiteConfig for the site

    Raises:
        ValueError: If site_key is not found
    """
    if site_key not in SITES:
        valid_keys = ', '.join(sorted(SITES.keys()))
        raise ValueError(f"Unknown site: '{site_key}'. Valid sites: {valid_keys}")
    return SITES[site_key]


def get_sites_by_type(scraper_type: ScraperType) -> dict:
    """Get all sites of a specific scraper type."""
    return {k: v for k, v in SITES.items() if v.scraper_type == scraper_type}


def list_sites() -> list:
    """List all site keys."""
    return list(SITES.keys())


def get_site_summary() -> list:
    """Get a summary of all sites for display."""
    summary = []
    for key, config in SITES.items():
        summary.append({
            'key': key,
            'name': config.name,
            'type': config.scraper_type.value,
            'listing': config.listing_strategy.value,
            'url': config.base_url,
        })
    return summary
