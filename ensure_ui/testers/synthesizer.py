import logging
from typing import List, Optional

from html2text import HTML2Text

from ensure_ui.actions.program import strip_code_fences
from ensure_ui.data import RedirectRecord
from ensure_ui.exceptions import GenerationError
from ensure_ui.llm.llm_api import LLMAPI
from ensure_ui.llm.prompt import LLMPrompt

PAGE_MODE = "page"
FLOW_MODE = "flow"


class TestCodeSynthesizer:
    """Builds the categorized prompt for one expectation and returns the generated check program."""

    # Not a pytest test class
    __test__ = False

    def __init__(self, llm: LLMAPI, max_page_chars: int = 6000, allow_static_interactions: bool = True):
        self.llm = llm
        self.max_page_chars = max_page_chars
        self.allow_static_interactions = allow_static_interactions

    def page_text(self, html: Optional[str]) -> str:
        if not html:
            return "(not available)"
        converter = HTML2Text()
        converter.ignore_images = True
        converter.body_width = 0
        text = converter.handle(html).strip()
        if len(text) > self.max_page_chars:
            text = text[: self.max_page_chars] + "..."
        return text or "(empty page)"

    @staticmethod
    def _redirect_summary(redirect_chain: List[RedirectRecord]) -> str:
        entries = [
            f"{{url: {r.url}, status: {r.status}, location: {r.location}}}"
            for r in redirect_chain[:20]
        ]
        return "[" + ", ".join(entries) + "]"

    def build_prompt(
        self,
        html: Optional[str],
        expectation: str,
        current_url: str,
        redirect_chain: Optional[List[RedirectRecord]] = None,
        mode: str = PAGE_MODE,
    ) -> str:
        redirect_info = ""
        if redirect_chain:
            redirect_info = LLMPrompt.redirect_info.format(redirect_summary=self._redirect_summary(redirect_chain))
        categories = LLMPrompt.categories.format(current_url=current_url, redirect_info=redirect_info)

        extra_rules = []
        if mode == FLOW_MODE:
            extra_rules.append(LLMPrompt.flow_rules)
        elif not self.allow_static_interactions:
            extra_rules.append(LLMPrompt.static_rule)

        return LLMPrompt.synthesis_prompt_template.format(
            categories=categories,
            rules=LLMPrompt.rules,
            extra_rules="\n".join(extra_rules) + ("\n" if extra_rules else ""),
            current_url=current_url,
            page_text=self.page_text(html),
            expectation=expectation,
        )

    async def synthesize(
        self,
        html: Optional[str],
        expectation: str,
        current_url: str,
        redirect_chain: Optional[List[RedirectRecord]] = None,
        mode: str = PAGE_MODE,
    ) -> str:
        """Return the generated check program text for one expectation.

        Raises:
            GenerationError: the LLM call failed or produced nothing usable
        """
        prompt = self.build_prompt(html, expectation, current_url, redirect_chain, mode=mode)
        try:
            response = await self.llm.generate_text(
                prompt, LLMPrompt.synthesis_system_prompt, max_tokens=500, temperature=0.1
            )
        except GenerationError:
            raise
        except Exception as e:
            logging.error(f"LLM API call failed: {e}")
            raise GenerationError(str(e)) from e

        code = strip_code_fences(response)
        if not code:
            raise GenerationError("LLM returned an empty check program")
        return code
