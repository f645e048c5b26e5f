"""Crawler implementations for different site types."""

from .browser import BrowserCrawler, BrowserLaunchError
from .static import StaticCrawler

__all__ = ['BrowserCrawler', 'BrowserLaunchError', 'StaticCrawler']
