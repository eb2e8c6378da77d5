import logging
import os
import re
import uuid
from typing import Any, Dict, List, Optional

from playwright.async_api import Locator, Page

from ensure_ui.exceptions import ExecutionError

LOCATOR_KEYS = ("role", "text", "label", "placeholder", "test_id", "selector")


class ActionHandler:
    """Page-level primitives shared by the check interpreter and the testers."""

    def __init__(self, screenshot_dir: str = "screenshots"):
        self.screenshot_dir = screenshot_dir

    @staticmethod
    def locate(page: Page, locate: Optional[Dict[str, Any]]) -> Locator:
        """Build a Playwright locator from an instruction ``locate`` object."""
        if not locate or not isinstance(locate, dict):
            raise ExecutionError("Instruction requires a 'locate' object")

        if locate.get("role"):
            kwargs = {}
            if locate.get("name") is not None:
                kwargs["name"] = str(locate["name"])
                kwargs["exact"] = bool(locate.get("exact", False))
            locator = page.get_by_role(locate["role"], **kwargs)
        elif locate.get("text") is not None:
            locator = page.get_by_text(str(locate["text"]), exact=bool(locate.get("exact", False)))
        elif locate.get("label") is not None:
            locator = page.get_by_label(str(locate["label"]), exact=bool(locate.get("exact", False)))
        elif locate.get("placeholder") is not None:
            locator = page.get_by_placeholder(str(locate["placeholder"]), exact=bool(locate.get("exact", False)))
        elif locate.get("test_id") is not None:
            locator = page.get_by_test_id(str(locate["test_id"]))
        elif locate.get("selector"):
            locator = page.locator(str(locate["selector"]))
        else:
            raise ExecutionError(f"Locator must define one of {', '.join(LOCATOR_KEYS)}: {locate}")

        nth = locate.get("nth")
        if nth is not None:
            try:
                locator = locator.nth(int(nth))
            except (TypeError, ValueError):
                raise ExecutionError(f"Locator 'nth' must be an integer: {nth}")
        return locator

    async def take_screenshot(self, page: Page, route: str) -> Optional[str]:
        """Save a full-page screenshot and return its path, or None if capture failed."""
        if page is None:
            return None
        safe_route = re.sub(r"[^\w.-]", "_", route or "/")
        filename = f"{safe_route}_{uuid.uuid4().hex[:8]}.png"
        path = os.path.join(self.screenshot_dir, filename)
        try:
            os.makedirs(self.screenshot_dir, exist_ok=True)
            await page.screenshot(path=path, full_page=True)
            logging.debug(f"Screenshot saved: {path}")
            return path
        except Exception as e:
            logging.warning(f"Failed to capture screenshot for {route}: {e}")
            return None

    @staticmethod
    async def read_local_storage(page: Page) -> Dict[str, str]:
        data = await page.evaluate(
            """() => {
                const items = {};
                for (let i = 0; i < window.localStorage.length; i++) {
                    const key = window.localStorage.key(i);
                    items[key] = window.localStorage.getItem(key);
                }
                return items;
            }"""
        )
        return data or {}

    @staticmethod
    async def write_local_storage(page: Page, items: Dict[str, str]):
        if not items:
            return
        await page.evaluate(
            """(items) => {
                for (const [key, value] of Object.entries(items)) {
                    window.localStorage.setItem(key, value);
                }
            }""",
            items,
        )

    @staticmethod
    async def read_cookies(page: Page) -> List[Dict[str, Any]]:
        return await page.context.cookies()
