import logging
import re
from typing import Dict, List, Optional

from ensure_ui.data import FlowDefinition, FlowStep
from ensure_ui.exceptions import FlowParseError

HEADING_RE = re.compile(r"^#\s+(.+?)\s*#*$")
DESCRIPTION_RE = re.compile(r"^>\s?(.*)$")
VARIABLE_RE = re.compile(r"^@([A-Za-z_][\w-]*)\s*=\s*(.*)$")
STEP_RE = re.compile(r"^\d+[.)]\s+(.+)$")
FENCE_RE = re.compile(r"^(```|~~~)")
# "@name" not preceded by a word character or dot, so e-mail addresses stay intact
REFERENCE_RE = re.compile(r"(?<![\w.])@([A-Za-z_][\w-]*)")
NAVIGATION_RE = re.compile(
    r"\b(?:navigate to|go to|goes to|visit|visits|open|opens|on page|on the page)\s+"
    r"(?:the\s+)?(?:page\s+)?[\"'`]?((?:https?://|/)[^\s\"'`]*)",
    re.IGNORECASE,
)


def strip_quotes(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'`":
        return value[1:-1]
    return value


def substitute_variables(text: str, variables: Dict[str, str]) -> str:
    """Replace ``@name`` references with their values; unknown names are left as-is."""
    if not variables:
        return text
    return REFERENCE_RE.sub(lambda m: variables.get(m.group(1), m.group(0)), text)


def extract_navigation_url(text: str) -> Optional[str]:
    match = NAVIGATION_RE.search(text)
    if not match:
        return None
    url = match.group(1).rstrip(".,;:!?)")
    return url or None


class FlowParser:
    """Line-based parser for flow documents.

    ``# Name`` starts a flow, ``> text`` extends its description,
    ``@name = value`` declares a variable and ``N. text`` adds a step.
    Fenced code blocks are skipped.
    """

    def parse(self, text: str) -> List[FlowDefinition]:
        flows: List[FlowDefinition] = []
        current: Optional[FlowDefinition] = None
        fence_start = None

        for line_number, raw_line in enumerate(text.splitlines(), 1):
            line = raw_line.strip()

            if fence_start is not None:
                if FENCE_RE.match(line):
                    fence_start = None
                continue
            if FENCE_RE.match(line):
                fence_start = line_number
                continue
            if not line:
                continue

            heading = HEADING_RE.match(line)
            if heading:
                self._close(current, flows)
                current = FlowDefinition(name=heading.group(1).strip())
                continue

            if line.startswith("#"):
                # Sub-headings are decoration
                continue

            description = DESCRIPTION_RE.match(line)
            variable = VARIABLE_RE.match(line)
            step = STEP_RE.match(line)
            if not (description or variable or step):
                continue

            if current is None:
                raise FlowParseError("content found before the first '# Flow name' heading", line_number)

            if description:
                current.description = " ".join(p for p in (current.description, description.group(1).strip()) if p)
            elif variable:
                current.variables[variable.group(1)] = strip_quotes(variable.group(2))
            else:
                current.steps.append(FlowStep(index=len(current.steps) + 1, description=step.group(1).strip()))

        if fence_start is not None:
            raise FlowParseError("unterminated code block", fence_start)

        self._close(current, flows)
        return flows

    @staticmethod
    def _close(flow: Optional[FlowDefinition], flows: List[FlowDefinition]):
        if flow is None:
            return
        if not flow.steps:
            logging.warning(f"Flow '{flow.name}' has no steps and was skipped")
            return
        for step in flow.steps:
            step.description = substitute_variables(step.description, flow.variables)
            step.url = extract_navigation_url(step.description)
        flows.append(flow)


def parse_flows(text: str) -> List[FlowDefinition]:
    return FlowParser().parse(text)
