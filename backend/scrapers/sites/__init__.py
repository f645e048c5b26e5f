"""Per-site scraper implementations."""

from .amazon import AmazonScraper
from .boyner import BoynerScraper
from .cosmetica import CosmeticaScraper
from .dermokozmetika import DermokozmetikaScraper
from .eveshop import EveshopScraper
from .farmasi import FarmasiScraper
from .gratis import GratisScraper
from .instagram import InstagramScraper
from .missha import MisshaScraper
from .n11 import N11Scraper
from .rossmann import RossmannScraper
from .sephora import SephoraScraper
from .trendyol import TrendyolScraper
from .tshop import TshopScraper
from .watsons import WatsonsScraper
from .yvesrocher import YvesRocherScraper

__all__ = [
    'AmazonScraper', 'BoynerScraper', 'CosmeticaScraper', 'DermokozmetikaScraper',
    'EveshopScraper', 'FarmasiScraper', 'GratisScraper', 'InstagramScraper',
    'MisshaScraper', 'N11Scraper', 'RossmannScraper', 'SephoraScraper',
    'TrendyolScraper', 'TshopScraper', 'WatsonsScraper', 'YvesRocherScraper',
]
