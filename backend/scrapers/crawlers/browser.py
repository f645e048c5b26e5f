"""
Browser crawler for JavaScript-rendered storefronts.

Wraps a single Playwright Chromium instance. Every page gets its own context
so that the user agent and Referer can rotate per page, and stealth sites get
an init script that hides the usual automation markers.
"""

import asyncio
from typing import Optional, Dict, List
from bs4 import BeautifulSoup
from playwright.async_api import async_playwright, Browser, BrowserContext, Page, Response
import logging

from .headers import default_headers, random_user_agent, DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)


STEALTH_INIT_SCRIPT = """
    Object.defineProperty(navigator, 'webdriver', {
        get: () => undefined
    });

    Object.defineProperty(navigator, 'plugins', {
        get: () => [1, 2, 3, 4, 5]
    });

    Object.defineProperty(navigator, 'languages', {
        get: () => ['tr-TR', 'tr', 'en-US', 'en']
    });

    const originalQuery = window.navigator.permissions.query;
    window.navigator.permissions.query = (parameters) => (
        parameters.name === 'notifications' ?
            Promise.resolve({ state: Notification.permission }) :
            originalQuery(parameters)
    );
"""

LAUNCH_ARGS = [
    '--disable-blink-features=AutomationControlled',
    '--disable-dev-shm-usage',
    '--no-sandbox',
    '--disable-setuid-sandbox',
    '--disable-background-timer-throttling',
    '--disable-backgrounding-occluded-windows',
    '--disable-renderer-backgrounding',
]


class BrowserLaunchError(Exception):
    """Raised when the browser cannot be started after all attempts."""


class BrowserCrawler:
    """
    Playwright crawler with launch retries and relaunch support.

    Features:
    - Launch retried a fixed number of times with a delay between attempts
    - Fresh context per page with a rotating user agent and Referer header
    - Optional stealth init script
    - Full relaunch when the browser disconnects
    """

    def __init__(
        self,
        headless: bool = True,
        timeout: float = 90.0,
        launch_retries: int = 3,
        relaunch_delay: float = 2.0,
        stealth: bool = False,
        referer: Optional[str] = None,
        rotate_user_agents: bool = True,
        locale: str = 'tr-TR',
        viewport: Optional[Dict[str, int]] = None,
    ):
        """
        Initialize the browser crawler.

        Args:
            headless: Run browser in headless mode
            timeout: Navigation timeout in seconds
            launch_retries: Number of launch attempts before giving up
            relaunch_delay: Seconds to wait between launch attempts and before a relaunch
            stealth: Hide automation indicators with an init script
            referer: Referer header for every page
            rotate_user_agents: Pick a random user agent for every page
            locale: Browser locale
            viewport: Viewport size, defaults to 1366x768
        """
        self.headless = headless
        self.timeout = timeout
        self.launch_retries = launch_retries
        self.relaunch_delay = relaunch_delay
        self.stealth = stealth
        self.referer = referer
        self.rotate_user_agents = rotate_user_agents
        self.locale = locale
        self.viewport = viewport or {'width': 1366, 'height': 768}
        self._playwright = None
        self._browser: Optional[Browser] = None
        self._contexts: List[BrowserContext] = []
        self.launch_count = 0

    @property
    def timeout_ms(self) -> int:
        return int(self.timeout * 1000)

    def is_alive(self) -> bool:
        """Check if the browser is still connected."""
        try:
            return self._browser is not None and self._browser.is_connected()
        except Exception:
            return False

    async def start(self):
        """Launch the browser, retrying on failure."""
        if self.is_alive():
            return

        last_error = None
        for attempt in range(1, self.launch_retries + 1):
            try:
                await self._launch()
                self.launch_count += 1
                logger.info(f"Browser launched (attempt {attempt}/{self.launch_retries})")
                return
            except Exception as e:
                last_error = e
                logger.warning(f"Browser launch attempt {attempt}/{self.launch_retries} failed: {e}")
                await self._cleanup()
                if attempt < self.launch_retries:
                    await asyncio.sleep(self.relaunch_delay)

        raise BrowserLaunchError(f"Failed to launch browser after {self.launch_retries} attempts: {last_error}")

    async def _launch(self):
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self.headless,
            args=LAUNCH_ARGS,
            handle_sigint=False,
            handle_sigterm=False,
            handle_sighup=False,
        )
        if not self._browser.is_connected():
            raise BrowserLaunchError("Browser launched but not connected")

    async def restart(self):
        """Close everything and launch a fresh browser."""
        logger.info("Restarting browser...")
        await self._cleanup()
        await asyncio.sleep(self.relaunch_delay)
        await self.start()

    async def new_page(self) -> Page:
        """
        Open a page in its own context.

        Relaunches the browser first if it is no longer connected.
        """
        if not self.is_alive():
            if self._browser is not None:
                logger.warning("Browser disconnected, relaunching...")
                await self.restart()
            else:
                await self.start()

        user_agent = random_user_agent() if self.rotate_user_agents else DEFAULT_USER_AGENT
        context = await self._browser.new_context(
            viewport=self.viewport,
            user_agent=user_agent,
            locale=self.locale,
            ignore_https_errors=True,
            extra_http_headers=default_headers(referer=self.referer),
        )
        if self.stealth:
            await context.add_init_script(STEALTH_INIT_SCRIPT)
        self._contexts.append(context)

        page = await context.new_page()
        page.set_default_timeout(self.timeout_ms)
        page.set_default_navigation_timeout(self.timeout_ms)
        return page

    async def close_page(self, page: Optional[Page]):
        """Close a page together with its context."""
        if page is None:
            return
        context = page.context
        try:
            await asyncio.wait_for(context.close(), timeout=5.0)
        except asyncio.TimeoutError:
            logger.warning("Context close timed out")
        except Exception as e:
            logger.debug(f"Error closing context: {e}")
        if context in self._contexts:
            self._contexts.remove(context)

    async def goto(self, page: Page, url: str, wait_until: str = 'domcontentloaded') -> Optional[Response]:
        """
        Navigate page to url.

        Raises:
            Exception: On HTTP error status or navigation failure
        """
        response = await page.goto(url, wait_until=wait_until, timeout=self.timeout_ms)
        if response is not None and response.status >= 400:
            raise Exception(f"HTTP {response.status} for {url}")
        return response

    async def soup(self, page: Page) -> BeautifulSoup:
        """Parse the current page content."""
        html = await page.content()
        return BeautifulSoup(html, 'html.parser')

    async def _cleanup(self):
        """Clean up browser resources with timeouts to prevent hanging."""
        cleanup_timeout = 2.0

        for context in list(self._contexts):
            try:
                await asyncio.wait_for(context.close(), timeout=cleanup_timeout)
            except asyncio.TimeoutError:
                logger.warning("Context close timed out, forcing cleanup")
            except Exception as e:
                logger.debug(f"Error closing context: {e}")
        self._contexts = []

        if self._browser:
            try:
                await asyncio.wait_for(self._browser.close(), timeout=cleanup_timeout)
            except asyncio.TimeoutError:
                logger.warning("Browser close timed out, forcing cleanup")
            except Exception as e:
                logger.warning(f"Error closing browser: {e}")
            self._browser = None

        if self._playwright:
            try:
                await asyncio.wait_for(self._playwright.stop(), timeout=cleanup_timeout)
            except asyncio.TimeoutError:
                logger.warning("Playwright stop timed out, forcing cleanup")
            except Exception as e:
                logger.warning(f"Error stopping playwright: {e}")
            self._playwright = None

    async def close(self):
        """Close the browser and cleanup resources."""
        await self._cleanup()

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self._cleanup()
