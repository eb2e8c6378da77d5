import logging
from typing import Any, Callable, Dict, Optional
from urllib.parse import urljoin, urlparse

from ensure_ui.actions.action_handler import ActionHandler
from ensure_ui.browser.redirect import RedirectChainTracker
from ensure_ui.browser.session import BrowserSession
from ensure_ui.data import FlowDefinition, FlowResult, FlowSession, FlowState, FlowStep
from ensure_ui.exceptions import NavigationError
from ensure_ui.executor.isolated_executor import IsolatedExecutor, describe_error
from ensure_ui.testers.synthesizer import FLOW_MODE, TestCodeSynthesizer
from ensure_ui.utils.log_icon import icon


def origin_of(url: str) -> str:
    parsed = urlparse(url or "")
    return f"{parsed.scheme}://{parsed.netloc}"


class FlowTester:
    """Drives the steps of one flow, in order, over a single persistent browser session.

    State machine: IDLE -> RUNNING(step) -> COMPLETED | FAILED. The first
    failing step stops the flow; later steps are never attempted.
    """

    def __init__(
        self,
        synthesizer: TestCodeSynthesizer,
        executor: IsolatedExecutor,
        deployment_url: str,
        browser_config: Optional[Dict[str, Any]] = None,
        session_factory: Callable[..., BrowserSession] = BrowserSession,
        action_handler: Optional[ActionHandler] = None,
    ):
        self.synthesizer = synthesizer
        self.executor = executor
        self.deployment_url = deployment_url
        self.browser_config = browser_config or {}
        self.session_factory = session_factory
        self.action_handler = action_handler or executor.action_handler

    def resolve_url(self, url: str) -> str:
        if url.startswith(("http://", "https://")):
            return url
        return urljoin(self.deployment_url.rstrip("/") + "/", url.lstrip("/"))

    async def run(self, flow: FlowDefinition, file_path: Optional[str] = None) -> FlowResult:
        flow_session = FlowSession.start(flow)
        result = FlowResult(
            name=flow.name,
            description=flow.description,
            file_path=file_path,
            steps=flow.steps,
            session=flow_session,
            state=FlowState.IDLE,
        )
        tracker = RedirectChainTracker()
        browser = self.session_factory(browser_config=self.browser_config)

        logging.info(f"{icon['flow']} Flow: {flow.name}")
        try:
            await browser.initialize()
            page = browser.get_page()
            tracker.attach(page)
            result.state = FlowState.RUNNING

            for step in flow.steps:
                flow_session.current_step = step.index
                passed = await self._run_step(step, browser, tracker, flow_session, flow.name)
                if not passed:
                    result.state = FlowState.FAILED
                    result.error = f"Step {step.index} failed: {step.error}"
                    break
            else:
                result.state = FlowState.COMPLETED

        except Exception as e:
            logging.error(f"Flow '{flow.name}' aborted: {e}", exc_info=True)
            result.state = FlowState.FAILED
            result.error = str(e)
        finally:
            await browser.close()

        attempted = [s for s in flow.steps if s.generated_code is not None or s.error is not None]
        result.passed = result.state == FlowState.COMPLETED and all(s.passed for s in attempted)
        status = icon["check"] + " PASSED" if result.passed else icon["cross"] + " FAILED"
        logging.info(f"Flow '{flow.name}': {status}")
        return result

    async def _run_step(
        self,
        step: FlowStep,
        browser: BrowserSession,
        tracker: RedirectChainTracker,
        flow_session: FlowSession,
        flow_name: str,
    ) -> bool:
        page = browser.get_page()
        route = f"/flow_{flow_name}_step{step.index}"
        logging.info(f"{step.index}. {step.description}")

        try:
            if step.url:
                url = self.resolve_url(step.url)
                response = await browser.navigate_to(url)
                if response is None or not response.ok:
                    raise NavigationError(url, status=response.status if response is not None else None)
                await self._restore_local_storage(page, flow_session)

            html = await page.content()
            code = await self.synthesizer.synthesize(html, step.description, page.url, tracker.records, mode=FLOW_MODE)
            step.generated_code = code
            logging.debug(f"Program:\n{code}")
        except Exception as e:
            step.passed = False
            step.error = describe_error(e)
            step.screenshot = await self.action_handler.take_screenshot(page, route)
            logging.info(f"{icon['cross']} FAILED - {step.error}")
            return False

        outcome = await self.executor.run_in_place(page, code, tracker.records, route=route)
        if not outcome.passed:
            step.passed = False
            step.error = outcome.error
            step.screenshot = outcome.screenshot
            logging.info(f"{icon['cross']} FAILED - {step.error}")
            return False

        step.passed = True
        step.error = None
        try:
            flow_session.snapshot(
                await self.action_handler.read_cookies(page),
                await self.action_handler.read_local_storage(page),
                origin=origin_of(page.url),
            )
        except Exception as e:
            logging.warning(f"Could not snapshot browser state after step {step.index}: {e}")
        step.screenshot = await self.action_handler.take_screenshot(page, route)
        logging.info(f"{icon['check']} PASSED")
        return True

    async def _restore_local_storage(self, page, flow_session: FlowSession):
        """Put back snapshot keys the freshly loaded page does not have."""
        if not flow_session.local_storage or flow_session.storage_origin != origin_of(page.url):
            return
        try:
            current = await self.action_handler.read_local_storage(page)
            missing = {k: v for k, v in flow_session.local_storage.items() if k not in current}
            await self.action_handler.write_local_storage(page, missing)
        except Exception as e:
            logging.debug(f"Local storage restore skipped: {e}")
