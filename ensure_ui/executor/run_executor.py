import logging
import os
from typing import Any, Callable, Dict, List, Optional, Union

from ensure_ui.actions.action_handler import ActionHandler
from ensure_ui.browser.config import DEFAULT_TIMEOUT_MS
from ensure_ui.browser.session import BrowserSession
from ensure_ui.data import (
    DiscoveredFlow,
    DiscoveredPage,
    FlowResult,
    FlowState,
    PageResult,
    PageTarget,
    RunResults,
)
from ensure_ui.exceptions import FlowParseError, RouteParameterError
from ensure_ui.executor.isolated_executor import IsolatedExecutor
from ensure_ui.expectations.extractor import ExpectationExtractor
from ensure_ui.expectations.routes import resolve_route
from ensure_ui.llm.llm_api import LLMAPI
from ensure_ui.testers.flow_parser import FlowParser
from ensure_ui.testers.flow_tester import FlowTester
from ensure_ui.testers.page_tester import PageTester
from ensure_ui.testers.synthesizer import TestCodeSynthesizer
from ensure_ui.utils.log_icon import icon


class EnsureUIRunner:
    """Runs every discovered page and flow against a deployment, one at a time.

    A failing page or flow never stops the run: every failure ends up as a
    failed entry in the returned :class:`RunResults`.
    """

    def __init__(
        self,
        llm_config: Dict[str, Any],
        deployment_url: str,
        browser_config: Optional[Dict[str, Any]] = None,
        timeout: int = DEFAULT_TIMEOUT_MS,
        project_root: Optional[str] = None,
        screenshot_dir: str = "screenshots",
        allow_static_interactions: bool = True,
        max_page_chars: int = 6000,
        session_factory: Callable[..., BrowserSession] = BrowserSession,
        llm: Optional[LLMAPI] = None,
    ):
        self.deployment_url = deployment_url.rstrip("/")
        self.project_root = project_root
        self.timeout = timeout
        self.browser_config = {**(browser_config or {}), "timeout": timeout}

        self.llm = llm or LLMAPI(llm_config)
        self.extractor = ExpectationExtractor(self.llm)
        self.synthesizer = TestCodeSynthesizer(
            self.llm, max_page_chars=max_page_chars, allow_static_interactions=allow_static_interactions
        )
        self.action_handler = ActionHandler(screenshot_dir=screenshot_dir)
        self.executor = IsolatedExecutor(
            timeout=timeout,
            action_handler=self.action_handler,
            allow_static_interactions=allow_static_interactions,
        )
        self.page_tester = PageTester(
            self.synthesizer, self.executor, browser_config=self.browser_config, session_factory=session_factory
        )
        self.flow_tester = FlowTester(
            self.synthesizer,
            self.executor,
            self.deployment_url,
            browser_config=self.browser_config,
            session_factory=session_factory,
            action_handler=self.action_handler,
        )
        self.flow_parser = FlowParser()

    def page_url(self, route: str) -> str:
        return f"{self.deployment_url}{route}"

    async def run(
        self,
        pages: List[DiscoveredPage],
        flows: Optional[List[DiscoveredFlow]] = None,
    ) -> RunResults:
        results = RunResults()
        try:
            logging.info(f"{icon['running']} Found {len(pages)} pages with ensureUI comments")
            for page in pages:
                await self._run_page(page, results)

            flows = flows or []
            if flows:
                logging.info(f"{icon['flow']} Found {len(flows)} flow documents")
            for flow_doc in flows:
                await self._run_flow_document(flow_doc, results)
        finally:
            await self.close()

        self.log_results(results)
        return results

    async def run_single_page(self, route: str, pages: List[DiscoveredPage]) -> RunResults:
        """Run only the page whose resolved route equals ``route``."""
        results = RunResults()
        wanted = "/" + route.strip().strip("/") if route.strip("/ ") else "/"
        try:
            for page in pages:
                prepared = await self.prepare_page(page)
                # pages without expectations or with unresolved routes cannot match
                if prepared is None or isinstance(prepared, PageResult):
                    continue
                if prepared.route == wanted:
                    results.add_page(await self._test_target(prepared))
                    break
            else:
                logging.error(f"{icon['cross']} No page with ensureUI comments found for route {wanted}")
        finally:
            await self.close()

        self.log_results(results)
        return results

    async def prepare_page(self, page: DiscoveredPage) -> Union[PageTarget, PageResult, None]:
        """Extract expectations and resolve the route of one discovered page.

        Returns None for a page without expectations and a failed PageResult
        when its route cannot be resolved.
        """
        if page.source_text is None:
            extraction = await self.extractor.extract_file(page.file_path)
        else:
            extraction = await self.extractor.extract(page.source_text)

        if not extraction.expectations:
            logging.debug(f"No expectations in {page.file_path}, skipped")
            return None

        try:
            route = resolve_route(page.file_path, extraction.url_params, project_root=self.project_root)
        except RouteParameterError as e:
            logging.error(f"{icon['cross']} {page.file_path}: {e}")
            result = PageResult(
                file_path=page.file_path,
                route=page.file_path,
                url="",
                raw_expectations=extraction.raw_expectations,
                expectations=extraction.expectations,
            )
            result.fail_all(str(e))
            return result

        return PageTarget(
            file_path=page.file_path,
            route=route,
            url=self.page_url(route),
            raw_expectations=extraction.raw_expectations,
            expectations=extraction.expectations,
        )

    async def _run_page(self, page: DiscoveredPage, results: RunResults):
        try:
            prepared = await self.prepare_page(page)
        except Exception as e:
            logging.error(f"Error preparing {page.file_path}: {e}", exc_info=True)
            prepared = PageResult(file_path=page.file_path, route=page.file_path, url="")
            prepared.fail_all(str(e))

        if prepared is None:
            return
        if isinstance(prepared, PageResult):
            results.add_page(prepared)
            return
        results.add_page(await self._test_target(prepared))

    async def _test_target(self, target: PageTarget) -> PageResult:
        logging.info(f"{icon['page']} Testing: {target.route}")
        logging.info(f"Expectations: {len(target.expectations)}")
        try:
            return await self.page_tester.run(target)
        except Exception as e:
            logging.error(f"Error testing {target.url}: {e}", exc_info=True)
            result = PageResult.from_target(target)
            result.fail_all(str(e))
            return result

    async def _run_flow_document(self, flow_doc: DiscoveredFlow, results: RunResults):
        try:
            text = flow_doc.source_text
            if text is None:
                with open(flow_doc.file_path, "r", encoding="utf-8") as f:
                    text = f.read()
            flows = self.flow_parser.parse(text)
        except (FlowParseError, OSError, UnicodeDecodeError) as e:
            logging.error(f"{icon['cross']} Could not parse flow document {flow_doc.file_path}: {e}")
            results.add_flow(self._failed_flow(flow_doc.file_path, str(e)))
            return

        if not flows:
            logging.warning(f"{icon['warning']} No flows with steps in {flow_doc.file_path}")
        for flow in flows:
            try:
                results.add_flow(await self.flow_tester.run(flow, file_path=flow_doc.file_path))
            except Exception as e:
                logging.error(f"Flow '{flow.name}' crashed: {e}", exc_info=True)
                results.add_flow(
                    FlowResult(
                        name=flow.name,
                        description=flow.description,
                        file_path=flow_doc.file_path,
                        state=FlowState.FAILED,
                        steps=flow.steps,
                        error=str(e),
                    )
                )

    @staticmethod
    def _failed_flow(file_path: str, error: str) -> FlowResult:
        name = os.path.basename(file_path)
        if name.endswith(".flow.md"):
            name = name[: -len(".flow.md")]
        return FlowResult(name=name, file_path=file_path, state=FlowState.FAILED, error=error)

    @staticmethod
    def log_results(results: RunResults):
        logging.info(f"{icon['finish']} Final Results:")
        logging.info(f"Pages: {results.passed_pages}/{results.total_pages} passed")
        for page in results.pages:
            mark = icon["check"] if page.passed else icon["cross"]
            logging.info(f"  {mark} {page.route}")
        if results.total_flows:
            logging.info(f"Flows: {results.passed_flows}/{results.total_flows} passed")
            for flow in results.flows:
                mark = icon["check"] if flow.passed else icon["cross"]
                logging.info(f"  {mark} {flow.name}")

    async def close(self):
        try:
            await self.llm.close()
        except Exception as e:
            logging.warning(f"Error closing LLM client: {e}")
