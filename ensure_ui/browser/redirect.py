import logging
from typing import List

from playwright.async_api import Page, Response

from ensure_ui.data import RedirectRecord


class RedirectChainTracker:
    """Records every network response seen by one page, in arrival order.

    The chain is append-only. A new browser session gets a new tracker.
    """

    def __init__(self):
        self._records: List[RedirectRecord] = []
        self._page = None

    @property
    def records(self) -> List[RedirectRecord]:
        return self._records

    def attach(self, page: Page):
        if self._page is not None:
            raise RuntimeError("RedirectChainTracker is already attached to a page")
        self._page = page
        page.on("response", self.record)
        return self

    def record(self, response: Response):
        try:
            headers = response.headers or {}
            record = RedirectRecord(
                url=response.url,
                status=response.status,
                location=headers.get("location") or None,
            )
        except Exception as e:
            logging.warning(f"Could not record response: {e}")
            return
        self._records.append(record)

    def has_redirects(self) -> bool:
        return any(300 <= r.status < 400 for r in self._records)

    def describe(self) -> str:
        lines = []
        for index, r in enumerate(self._records, 1):
            line = f"{index}. {r.url} -> Status: {r.status}"
            if r.location:
                line += f" -> Location: {r.location}"
            lines.append(line)
        return "\n".join(lines)
