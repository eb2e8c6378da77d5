import asyncio
import logging
import uuid
from typing import Any, Awaitable, Callable, Dict, List, Optional

from playwright.async_api import ConsoleMessage, Page, Response

from ensure_ui.browser.config import DEFAULT_CONFIG
from ensure_ui.browser.driver import Driver


class BrowserSession:
    """One browser, one context and one main page, owned by a single page test or flow."""

    def __init__(
        self,
        session_id: str = None,
        browser_config: Dict[str, Any] = None,
        driver_factory: Callable[[Dict[str, Any]], Awaitable[Driver]] = None,
    ):
        self.session_id = session_id or str(uuid.uuid4())
        self.browser_config = {**DEFAULT_CONFIG, **(browser_config or {})}
        self.driver: Optional[Driver] = None
        self.console_errors: List[str] = []
        self._driver_factory = driver_factory or Driver.getInstance
        self._is_closed = False
        self._lock = asyncio.Lock()

    @property
    def timeout(self) -> int:
        return self.browser_config["timeout"]

    async def initialize(self):
        """Initialize browser session."""
        async with self._lock:
            if self._is_closed:
                raise RuntimeError("Browser session is closed")

            logging.debug(f"Initializing browser session {self.session_id} with config: {self.browser_config}")

            try:
                self.driver = await self._driver_factory(self.browser_config)
                self.driver.get_page().on("console", self._on_console)
                logging.debug(f"Browser session {self.session_id} initialized successfully via Driver")
            except Exception as e:
                logging.error(f"Failed to initialize browser session {self.session_id}: {e}")
                await self._cleanup()
                raise

    def _on_console(self, msg: ConsoleMessage):
        if msg.type == "error":
            self.console_errors.append(msg.text)

    async def navigate_to(self, url: str, **kwargs) -> Optional[Response]:
        """Navigate the main page and return the main document response."""
        if self._is_closed or not self.driver:
            raise RuntimeError("Browser session not initialized or closed")

        logging.debug(f"Session {self.session_id} navigating to: {url}")
        kwargs.setdefault("timeout", self.timeout)
        kwargs.setdefault("wait_until", "networkidle")

        page = self.driver.get_page()
        return await page.goto(url, **kwargs)

    def get_page(self) -> Page:
        """Return current page via Driver."""
        if self._is_closed or not self.driver:
            raise RuntimeError("Browser session not initialized or closed")
        return self.driver.get_page()

    def is_closed(self) -> bool:
        """Check if session is closed."""
        return self._is_closed

    async def _cleanup(self):
        """Internal cleanup method."""
        try:
            if self.driver and not self.driver.is_closed():
                await self.driver.close_browser()
        except Exception as e:
            logging.error(f"Error during cleanup: {e}")
        finally:
            self.driver = None

    async def close(self):
        """Close browser session."""
        async with self._lock:
            if self._is_closed:
                return

            logging.debug(f"Closing browser session {self.session_id}")
            self._is_closed = True
            await self._cleanup()

    async def __aenter__(self):
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
