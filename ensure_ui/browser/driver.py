import asyncio
import logging

from playwright.async_api import async_playwright

from ensure_ui.browser.config import DEFAULT_CONFIG


class Driver:
    # Serializes browser launches when several coroutines create drivers
    __lock = asyncio.Lock()

    @staticmethod
    async def getInstance(browser_config=None, *args, **kwargs):
        """Launch a new browser and return a Driver owning it.

        Args:
            browser_config (dict, optional): Browser configuration options.
        """
        browser_config = {**DEFAULT_CONFIG, **(browser_config or {})}
        logging.debug(f"Driver.getInstance called with browser_config: {browser_config}")

        async with Driver.__lock:
            driver = Driver(browser_config=browser_config)
            await driver.create_browser(browser_config=browser_config)
            return driver

    def __init__(self, browser_config=None, *args, **kwargs):
        self._is_closed = False
        self.page = None
        self.browser = None
        self.context = None
        self.playwright = None
        self.config = browser_config or dict(DEFAULT_CONFIG)

    def is_closed(self):
        """Check if the browser instance is closed."""
        return getattr(self, "_is_closed", True)

    async def create_browser(self, browser_config):
        """Creates a new browser instance and sets up the context and page.

        Args:
            browser_config (dict): Browser configuration containing:
                - headless (bool): Whether to run browser in headless mode
                - viewport (dict): Browser viewport width and height
                - language (str): Browser locale
                - timeout (int): Default navigation and action timeout in milliseconds

        Returns:
            Page: the initial page of the new context
        """
        try:
            self.playwright = await async_playwright().start()
            self.browser = await self.playwright.chromium.launch(
                headless=browser_config["headless"],
                args=[
                    "--disable-dev-shm-usage",  # Mitigate shared memory issues in Docker
                    "--no-sandbox",
                    "--disable-setuid-sandbox",
                    "--disable-gpu",
                    "--force-device-scale-factor=1",
                    f'--window-size={browser_config["viewport"]["width"]},{browser_config["viewport"]["height"]}',
                ],
            )

            self.context = await self.browser.new_context(
                viewport={"width": browser_config["viewport"]["width"], "height": browser_config["viewport"]["height"]},
                device_scale_factor=1,
                is_mobile=False,
                locale=browser_config["language"],
            )
            self.context.set_default_timeout(browser_config["timeout"])
            self.context.set_default_navigation_timeout(browser_config["timeout"])
            self.page = await self.context.new_page()
            browser_config["browser"] = "Chromium"
            self.config = browser_config

            logging.debug(f"Browser instance created successfully with config: {browser_config}")
            return self.page

        except Exception as e:
            logging.error("Failed to create browser instance.", exc_info=True)
            # A partially started playwright must not leak
            await self._stop_quietly()
            raise e

    def get_page(self):
        """Returns the current page instance.

        Returns:
            Page: The current page instance.
        """
        return self.page

    async def _stop_quietly(self):
        try:
            if self.browser:
                await self.browser.close()
            if self.playwright:
                await self.playwright.stop()
        except Exception as e:
            logging.warning(f"Error while stopping partially created browser: {e}")
        finally:
            self._is_closed = True

    async def close_browser(self):
        """Closes the browser instance and stops Playwright."""
        try:
            if not self.is_closed():
                await self.browser.close()
                await self.playwright.stop()
                self._is_closed = True
                logging.debug("Browser instance closed successfully.")
        except Exception as e:
            logging.error("Failed to close browser instance.", exc_info=True)
            raise e
