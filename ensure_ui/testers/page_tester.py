import logging
from typing import Any, Callable, Dict, Optional

from ensure_ui.browser.redirect import RedirectChainTracker
from ensure_ui.browser.session import BrowserSession
from ensure_ui.data import PageResult, PageTarget
from ensure_ui.exceptions import GenerationError, NavigationError
from ensure_ui.executor.isolated_executor import IsolatedExecutor
from ensure_ui.testers.synthesizer import PAGE_MODE, TestCodeSynthesizer
from ensure_ui.utils.log_icon import icon


class PageTester:
    """Tests every expectation of one page inside a dedicated browser."""

    def __init__(
        self,
        synthesizer: TestCodeSynthesizer,
        executor: IsolatedExecutor,
        browser_config: Optional[Dict[str, Any]] = None,
        session_factory: Callable[..., BrowserSession] = BrowserSession,
    ):
        self.synthesizer = synthesizer
        self.executor = executor
        self.browser_config = browser_config or {}
        self.session_factory = session_factory

    async def run(self, target: PageTarget) -> PageResult:
        result = PageResult.from_target(target)
        tracker = RedirectChainTracker()
        session = self.session_factory(browser_config=self.browser_config)

        try:
            await session.initialize()
            tracker.attach(session.get_page())

            try:
                response = await session.navigate_to(target.url)
            except Exception as e:
                raise NavigationError(target.url, reason=str(e).split("\n")[0]) from e

            status = response.status if response is not None else None
            result.basic_checks.status = status
            result.basic_checks.page_loaded = response is not None and response.ok
            if not result.basic_checks.page_loaded:
                raise NavigationError(target.url, status=status)

            html = await session.get_page().content()

            for index, expectation in enumerate(result.expectations, 1):
                logging.info(f'{index}. Testing: "{expectation.text}"')
                try:
                    code = await self.synthesizer.synthesize(
                        html, expectation.text, target.url, tracker.records, mode=PAGE_MODE
                    )
                except GenerationError as e:
                    expectation.mark_failed(f"Test generation failed: {e}")
                    logging.info(f"{icon['cross']} FAILED - {expectation.error}")
                    continue

                expectation.generated_code = code
                logging.debug(f"Program:\n{code}")

                outcome = await self.executor.execute(
                    session.get_page(), code, tracker.records, target.url, route=target.route
                )
                if outcome.passed:
                    expectation.mark_passed()
                    logging.info(f"{icon['check']} PASSED")
                else:
                    expectation.mark_failed(outcome.error)
                    logging.info(f"{icon['cross']} FAILED - {outcome.error}")

            result.passed = result.basic_checks.page_loaded and all(e.passed for e in result.expectations)

        except NavigationError as e:
            logging.error(f"Error testing {target.url}: {e}")
            result.fail_all(str(e))
        except Exception as e:
            logging.error(f"Error testing {target.url}: {e}", exc_info=True)
            result.fail_all(str(e))
        finally:
            result.console_errors = list(session.console_errors)
            await session.close()

        return result
