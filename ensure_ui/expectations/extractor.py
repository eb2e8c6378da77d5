import json
import logging
import re
from typing import Dict, List, Tuple

from ensure_ui.actions.program import strip_code_fences
from ensure_ui.data import Expectation, ExtractionResult, RawComment
from ensure_ui.llm.llm_api import LLMAPI
from ensure_ui.llm.prompt import LLMPrompt

MARKER_RE = re.compile(r"//\s*ensureUI\b:?\s*(.*)$", re.IGNORECASE)
COMMENT_RE = re.compile(r"^//\s*(.*)$")


def merge_comments(source_text: str) -> List[RawComment]:
    """Merge ``// ensureUI`` blocks and their ``//`` continuation lines.

    Single forward scan: once a block's extent is known, scanning resumes after
    its last continuation line.
    """
    comments = []
    lines = source_text.splitlines()
    i = 0
    while i < len(lines):
        match = MARKER_RE.search(lines[i])
        if not match:
            i += 1
            continue

        start_line = i + 1
        parts = [match.group(1).strip()] if match.group(1).strip() else []
        i += 1
        while i < len(lines):
            line = lines[i].strip()
            if MARKER_RE.search(line):
                break
            continuation = COMMENT_RE.match(line)
            if not continuation:
                break
            if continuation.group(1).strip():
                parts.append(continuation.group(1).strip())
            i += 1

        if parts:
            comments.append(RawComment(text=" ".join(parts), line_number=start_line))
        else:
            logging.debug(f"Empty ensureUI block at line {start_line} ignored")
    return comments


class ExpectationExtractor:
    """Turns page source text into ordered expectations plus route parameters."""

    def __init__(self, llm: LLMAPI, extract_url_params: bool = True):
        self.llm = llm
        self.extract_url_params = extract_url_params

    async def split_expectations(self, comment_text: str) -> Tuple[List[str], Dict[str, str]]:
        """Ask the LLM to split one comment into independent expectations.

        Falls back to the whole comment as a single expectation with no route
        parameters whenever the call or its response is unusable.
        """
        if self.extract_url_params:
            prompt = LLMPrompt.split_prompt_template.format(
                split_rules=LLMPrompt.split_rules,
                url_param_rules=LLMPrompt.url_param_rules,
                comment=comment_text,
            )
            system_prompt = LLMPrompt.split_system_prompt
        else:
            prompt = LLMPrompt.split_plain_prompt_template.format(
                split_rules=LLMPrompt.split_rules, comment=comment_text
            )
            system_prompt = LLMPrompt.split_plain_system_prompt

        try:
            response = await self.llm.generate_text(prompt, system_prompt, max_tokens=300, temperature=0.1)
            return self._parse_split_response(response)
        except Exception as e:
            logging.warning(f"LLM expectation splitting failed, using the comment as one expectation: {e}")
            return [comment_text], {}

    def _parse_split_response(self, response: str) -> Tuple[List[str], Dict[str, str]]:
        parsed = json.loads(strip_code_fences(response))

        if isinstance(parsed, list):
            expectations, url_params = parsed, {}
        elif isinstance(parsed, dict):
            expectations = parsed.get("expectations")
            url_params = parsed.get("urlParams", {})
            if url_params is None:
                url_params = {}
        else:
            raise ValueError("Invalid response format from LLM")

        if (
            not isinstance(expectations, list)
            or not expectations
            or not all(isinstance(e, str) for e in expectations)
            or not isinstance(url_params, dict)
        ):
            raise ValueError("Invalid response format from LLM")

        expectations = [e.strip() for e in expectations if e.strip()]
        if not expectations:
            raise ValueError("LLM returned no expectations")
        return expectations, {str(k): str(v) for k, v in url_params.items() if v is not None}

    async def extract(self, source_text: str) -> ExtractionResult:
        raw_comments = merge_comments(source_text)
        expectations = []
        url_params: Dict[str, str] = {}

        for comment in raw_comments:
            texts, params = await self.split_expectations(comment.text)
            url_params.update(params)
            for text in texts:
                expectations.append(
                    Expectation(text=text, line_number=comment.line_number, original_comment=comment.text)
                )

        return ExtractionResult(
            expectations=expectations,
            raw_expectations="\n".join(c.text for c in raw_comments),
            url_params=url_params,
        )

    async def extract_file(self, file_path: str) -> ExtractionResult:
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                source_text = f.read()
        except (OSError, UnicodeDecodeError) as e:
            logging.error(f"Error reading file {file_path}: {e}")
            return ExtractionResult()
        return await self.extract(source_text)
