import logging
from typing import Callable, List, Optional

from playwright.async_api import Page, expect as playwright_expect

from ensure_ui.actions.action_executor import ActionExecutor
from ensure_ui.actions.action_handler import ActionHandler
from ensure_ui.actions.program import CheckProgram, parse_program
from ensure_ui.browser.config import DEFAULT_TIMEOUT_MS
from ensure_ui.data import ExecutionResult, RedirectRecord
from ensure_ui.utils.log_icon import icon


def describe_error(error: Exception) -> str:
    message = str(error).strip()
    if not message:
        return f"{type(error).__name__}: Assertion failed"
    # Playwright assertion messages carry a long call log after the first lines
    return message.split("\nCall log:")[0].strip()


class IsolatedExecutor:
    """Runs check programs against a fresh page, or in place for flows."""

    def __init__(
        self,
        timeout: int = DEFAULT_TIMEOUT_MS,
        action_handler: Optional[ActionHandler] = None,
        expect: Callable = playwright_expect,
        allow_static_interactions: bool = True,
    ):
        self.timeout = timeout
        self.action_handler = action_handler or ActionHandler()
        self.expect = expect
        self.allow_static_interactions = allow_static_interactions

    def _interpreter(self, page: Page, redirect_chain: List[RedirectRecord]) -> ActionExecutor:
        return ActionExecutor(
            page,
            self.expect,
            redirect_chain,
            timeout=self.timeout,
            allow_static_interactions=self.allow_static_interactions,
        )

    @staticmethod
    def _log_redirect_chain(program: Optional[CheckProgram], redirect_chain: List[RedirectRecord]):
        if program is None or not program.uses_redirect_chain or not redirect_chain:
            return
        logging.error("Redirect chain details:")
        for index, r in enumerate(redirect_chain, 1):
            location = f" -> Location: {r.location}" if r.location else ""
            logging.error(f"{index}. {r.url} -> Status: {r.status}{location}")

    async def execute(
        self,
        page: Page,
        code: str,
        redirect_chain: List[RedirectRecord],
        target_url: str,
        route: str = "/",
    ) -> ExecutionResult:
        """Run ``code`` on a new page of ``page``'s context with cookies cleared.

        Never raises: every failure becomes ``passed=False`` with an error message.
        """
        isolated_page = None
        program = None
        try:
            context = page.context
            isolated_page = await context.new_page()
            await context.clear_cookies()

            program = parse_program(code)
            if not program.navigates:
                await isolated_page.goto(target_url, wait_until="networkidle", timeout=self.timeout)

            await self._interpreter(isolated_page, redirect_chain).run(program)
            return ExecutionResult(passed=True)

        except Exception as e:
            error = describe_error(e)
            logging.error(f"{icon['cross']} Check failed: {error}")
            self._log_redirect_chain(program, redirect_chain)
            screenshot = await self.action_handler.take_screenshot(isolated_page, route)
            return ExecutionResult(passed=False, error=error, screenshot=screenshot)

        finally:
            if isolated_page is not None:
                try:
                    await isolated_page.close()
                except Exception as close_error:
                    logging.warning(f"Failed to close isolated page: {close_error}")

    async def run_in_place(
        self,
        page: Page,
        code: str,
        redirect_chain: List[RedirectRecord],
        route: str = "/",
    ) -> ExecutionResult:
        """Run ``code`` directly on ``page`` so its state carries over."""
        program = None
        try:
            program = parse_program(code)
            await self._interpreter(page, redirect_chain).run(program)
            return ExecutionResult(passed=True)
        except Exception as e:
            error = describe_error(e)
            logging.error(f"{icon['cross']} Step failed: {error}")
            self._log_redirect_chain(program, redirect_chain)
            screenshot = await self.action_handler.take_screenshot(page, route)
            return ExecutionResult(passed=False, error=error, screenshot=screenshot)
