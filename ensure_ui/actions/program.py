import json
import re
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from ensure_ui.exceptions import ExecutionError

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*\n?|\n?```\s*$")


class Category(str, Enum):
    PAGE_LOAD = "PAGE_LOAD"
    CONTENT_PRESENCE = "CONTENT_PRESENCE"
    INTERACTION = "INTERACTION"
    REDIRECT = "REDIRECT"
    VISUAL = "VISUAL"


INTERACTION_TYPES = {"Click", "Fill", "Select", "Hover", "Check", "Press"}


class Instruction(BaseModel):
    type: str
    locate: Optional[Dict[str, Any]] = None
    param: Dict[str, Any] = Field(default_factory=dict)


class CheckProgram(BaseModel):
    category: Optional[Category] = None
    instructions: List[Instruction] = Field(default_factory=list)

    @property
    def navigates(self) -> bool:
        return any(i.type == "Navigate" for i in self.instructions)

    @property
    def uses_redirect_chain(self) -> bool:
        return any(i.type == "AssertRedirect" for i in self.instructions)

    @property
    def interaction_instructions(self) -> List[Instruction]:
        return [i for i in self.instructions if i.type in INTERACTION_TYPES]


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code fence, if any."""
    if text is None:
        return ""
    text = text.strip()
    if text.startswith("```"):
        text = _FENCE_RE.sub("", text)
    return text.replace("```", "").strip()


def parse_program(code: str) -> CheckProgram:
    """Parse generated check-program text.

    Accepts a ``{"category": ..., "instructions": [...]}`` object or a bare
    instruction array.
    """
    text = strip_code_fences(code)
    if not text:
        raise ExecutionError("Generated program is empty")

    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        # Tolerate prose around the JSON body
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            raise ExecutionError(f"Generated program is not valid JSON: {text[:200]}")
        try:
            data = json.loads(text[start:end + 1])
        except json.JSONDecodeError as e:
            raise ExecutionError(f"Generated program is not valid JSON: {e}")

    if isinstance(data, list):
        data = {"instructions": data}
    if not isinstance(data, dict):
        raise ExecutionError("Generated program must be a JSON object or array")

    category = data.get("category")
    if isinstance(category, str):
        category = category.strip().upper()
        data["category"] = category if category in Category.__members__ else None

    try:
        program = CheckProgram.model_validate(data)
    except ValidationError as e:
        raise ExecutionError(f"Generated program has an invalid structure: {e.errors()[0].get('msg')}")

    if not program.instructions:
        raise ExecutionError("Generated program contains no instructions")
    return program
