import asyncio
import logging
import re
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urljoin

from ensure_ui.actions.action_handler import ActionHandler
from ensure_ui.actions.program import Category, CheckProgram, Instruction
from ensure_ui.browser.config import DEFAULT_TIMEOUT_MS
from ensure_ui.data import RedirectRecord
from ensure_ui.exceptions import ExecutionError

MAX_WAIT_MS = 10000


class ActionExecutor:
    """Interprets a check program against a page.

    The interpreter only ever touches the three objects it is bound to: the
    page, the ``expect`` matcher surface and the redirect chain.
    """

    def __init__(
        self,
        page,
        expect: Callable,
        redirect_chain: List[RedirectRecord],
        timeout: int = DEFAULT_TIMEOUT_MS,
        allow_static_interactions: bool = True,
    ):
        self.page = page
        self.expect = expect
        self.redirect_chain = redirect_chain
        self.timeout = timeout
        self.allow_static_interactions = allow_static_interactions
        self._action_map = {
            "Navigate": self._execute_navigate,
            "Click": self._execute_click,
            "Fill": self._execute_fill,
            "Select": self._execute_select,
            "Hover": self._execute_hover,
            "Check": self._execute_check,
            "Press": self._execute_press,
            "Wait": self._execute_wait,
            "AssertURL": self._assert_url,
            "AssertTitle": self._assert_title,
            "AssertTextVisible": self._assert_text_visible,
            "AssertVisible": self._assert_visible,
            "AssertHidden": self._assert_hidden,
            "AssertText": self._assert_text,
            "AssertValue": self._assert_value,
            "AssertCount": self._assert_count,
            "AssertCSS": self._assert_css,
            "AssertRedirect": self._assert_redirect,
        }

    async def run(self, program: CheckProgram):
        """Execute every instruction in order; the first failure raises."""
        self._check_policy(program)
        total = len(program.instructions)
        for index, instruction in enumerate(program.instructions, 1):
            execute_func = self._action_map.get(instruction.type)
            if not execute_func:
                raise ExecutionError(f"Unknown instruction type: {instruction.type}")
            logging.debug(f"Executing instruction {index}/{total}: {instruction.type}")
            await execute_func(instruction)
        return True

    def _check_policy(self, program: CheckProgram):
        # Uncategorized programs count as static
        if self.allow_static_interactions or program.category == Category.INTERACTION:
            return
        blocked = program.interaction_instructions
        if blocked:
            label = program.category.value if program.category else "Uncategorized"
            raise ExecutionError(
                f"{label} check may not perform interactions "
                f"({', '.join(i.type for i in blocked)})"
            )

    @staticmethod
    def _require_param(instruction: Instruction, *names: str) -> Any:
        for name in names:
            if instruction.param.get(name) is not None:
                return instruction.param[name]
        raise ExecutionError(f"Missing param.{' or param.'.join(names)} for {instruction.type}")

    def _locator(self, instruction: Instruction):
        return ActionHandler.locate(self.page, instruction.locate)

    # Navigation and interactions

    async def _execute_navigate(self, instruction: Instruction):
        url = str(self._require_param(instruction, "url"))
        if not re.match(r"^[a-zA-Z][a-zA-Z0-9+.-]*://", url):
            url = urljoin(self.page.url, url)
        await self.page.goto(url, wait_until="networkidle", timeout=self.timeout)

    async def _execute_click(self, instruction: Instruction):
        await self._locator(instruction).click(timeout=self.timeout)

    async def _execute_fill(self, instruction: Instruction):
        value = self._require_param(instruction, "value")
        await self._locator(instruction).fill(str(value), timeout=self.timeout)

    async def _execute_select(self, instruction: Instruction):
        value = str(self._require_param(instruction, "value", "label"))
        locator = self._locator(instruction)
        try:
            await locator.select_option(label=value, timeout=self.timeout)
        except Exception as e:
            logging.debug(f"Select by label '{value}' failed ({e}), retrying by value")
            await locator.select_option(value=value, timeout=self.timeout)

    async def _execute_hover(self, instruction: Instruction):
        await self._locator(instruction).hover(timeout=self.timeout)

    async def _execute_check(self, instruction: Instruction):
        await self._locator(instruction).check(timeout=self.timeout)

    async def _execute_press(self, instruction: Instruction):
        key = str(self._require_param(instruction, "key", "value"))
        if instruction.locate:
            await self._locator(instruction).press(key, timeout=self.timeout)
        else:
            await self.page.keyboard.press(key)

    async def _execute_wait(self, instruction: Instruction):
        time_ms = self._require_param(instruction, "timeMs")
        try:
            time_ms = min(float(time_ms), MAX_WAIT_MS)
        except (TypeError, ValueError):
            raise ExecutionError(f"param.timeMs must be a number: {time_ms}")
        await asyncio.sleep(time_ms / 1000)

    # Assertions

    async def _assert_url(self, instruction: Instruction):
        if instruction.param.get("contains") is not None:
            pattern = re.compile(re.escape(str(instruction.param["contains"])))
            await self.expect(self.page).to_have_url(pattern, timeout=self.timeout)
        else:
            url = str(self._require_param(instruction, "url"))
            await self.expect(self.page).to_have_url(url, timeout=self.timeout)

    async def _assert_title(self, instruction: Instruction):
        if instruction.param.get("contains") is not None:
            pattern = re.compile(re.escape(str(instruction.param["contains"])))
            await self.expect(self.page).to_have_title(pattern, timeout=self.timeout)
        else:
            title = str(self._require_param(instruction, "title"))
            await self.expect(self.page).to_have_title(title, timeout=self.timeout)

    async def _assert_text_visible(self, instruction: Instruction):
        text = str(self._require_param(instruction, "text"))
        locator = self.page.get_by_text(text, exact=bool(instruction.param.get("exact", False))).first
        await self.expect(locator).to_be_visible(timeout=self.timeout)

    async def _assert_visible(self, instruction: Instruction):
        locator = self._locator(instruction)
        if instruction.locate.get("nth") is None:
            locator = locator.first
        await self.expect(locator).to_be_visible(timeout=self.timeout)

    async def _assert_hidden(self, instruction: Instruction):
        await self.expect(self._locator(instruction)).to_be_hidden(timeout=self.timeout)

    async def _assert_text(self, instruction: Instruction):
        text = str(self._require_param(instruction, "text"))
        await self.expect(self._locator(instruction)).to_contain_text(text, timeout=self.timeout)

    async def _assert_value(self, instruction: Instruction):
        value = str(self._require_param(instruction, "value"))
        await self.expect(self._locator(instruction)).to_have_value(value, timeout=self.timeout)

    async def _assert_count(self, instruction: Instruction):
        count = self._require_param(instruction, "count")
        try:
            count = int(count)
        except (TypeError, ValueError):
            raise ExecutionError(f"param.count must be an integer: {count}")
        await self.expect(self._locator(instruction)).to_have_count(count, timeout=self.timeout)

    async def _assert_css(self, instruction: Instruction):
        prop = str(self._require_param(instruction, "property"))
        value = str(self._require_param(instruction, "value"))
        locator = self._locator(instruction)
        if instruction.locate.get("nth") is None:
            locator = locator.first
        await self.expect(locator).to_have_css(prop, value, timeout=self.timeout)

    async def _assert_redirect(self, instruction: Instruction):
        status = instruction.param.get("status")
        location_contains = instruction.param.get("location_contains")
        min_count = instruction.param.get("min_count")
        chain = self.redirect_chain

        if status is not None:
            try:
                status = int(status)
            except (TypeError, ValueError):
                raise ExecutionError(f"param.status must be an integer: {status}")
            if not any(r.status == status for r in chain):
                raise AssertionError(f"No response with status {status} in redirect chain")

        if location_contains is not None:
            needle = str(location_contains)
            if not any(r.location and needle in r.location for r in chain):
                raise AssertionError(f"No redirect to a location containing '{needle}' in redirect chain")

        if min_count is not None or (status is None and location_contains is None):
            wanted = int(min_count) if min_count is not None else 1
            redirects = [r for r in chain if 300 <= r.status < 400]
            if len(redirects) < wanted:
                raise AssertionError(f"Expected at least {wanted} redirect(s), found {len(redirects)}")
