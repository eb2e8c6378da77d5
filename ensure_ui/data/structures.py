from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class RawComment(BaseModel):
    """One merged ``ensureUI`` comment block before semantic splitting."""

    text: str
    line_number: int


class Expectation(BaseModel):
    """A single natural-language check extracted from a comment block."""

    text: str
    line_number: int
    original_comment: str
    generated_code: Optional[str] = None
    passed: bool = False
    error: Optional[str] = None

    def mark_passed(self):
        self.passed = True
        self.error = None

    def mark_failed(self, error: str):
        self.passed = False
        self.error = error or "Unknown error"


class ExtractionResult(BaseModel):
    expectations: List[Expectation] = Field(default_factory=list)
    raw_expectations: str = ""
    url_params: Dict[str, str] = Field(default_factory=dict)


class DiscoveredPage(BaseModel):
    file_path: str
    source_text: Optional[str] = None


class DiscoveredFlow(BaseModel):
    file_path: str
    source_text: Optional[str] = None


class PageTarget(BaseModel):
    file_path: str
    route: str
    url: str
    raw_expectations: str = ""
    expectations: List[Expectation] = Field(default_factory=list)


class RedirectRecord(BaseModel):
    url: str
    status: int
    location: Optional[str] = None


class ExecutionResult(BaseModel):
    passed: bool
    error: Optional[str] = None
    screenshot: Optional[str] = None


class BasicChecks(BaseModel):
    page_loaded: bool = False
    status: Optional[int] = None


class PageResult(BaseModel):
    file_path: str
    route: str
    url: str
    raw_expectations: str = ""
    passed: bool = False
    basic_checks: BasicChecks = Field(default_factory=BasicChecks)
    expectations: List[Expectation] = Field(default_factory=list)
    console_errors: List[str] = Field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def from_target(cls, target: PageTarget) -> "PageResult":
        return cls(
            file_path=target.file_path,
            route=target.route,
            url=target.url,
            raw_expectations=target.raw_expectations,
            expectations=target.expectations,
        )

    def fail_all(self, error: str):
        """Mark the page and every expectation that has not passed as failed."""
        self.passed = False
        self.error = error
        for expectation in self.expectations:
            if not expectation.passed:
                expectation.mark_failed(error)


class FlowStep(BaseModel):
    index: int
    description: str
    url: Optional[str] = None
    passed: bool = False
    error: Optional[str] = None
    generated_code: Optional[str] = None
    screenshot: Optional[str] = None


class FlowDefinition(BaseModel):
    name: str
    description: str = ""
    variables: Dict[str, str] = Field(default_factory=dict)
    steps: List[FlowStep] = Field(default_factory=list)


class FlowState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class FlowSession(BaseModel):
    """Browser state carried across the steps of one flow run."""

    flow_name: str
    current_step: int = 0
    variables: Dict[str, str] = Field(default_factory=dict)
    cookies: List[Dict[str, Any]] = Field(default_factory=list)
    local_storage: Dict[str, str] = Field(default_factory=dict)
    storage_origin: Optional[str] = None

    @classmethod
    def start(cls, flow: FlowDefinition) -> "FlowSession":
        return cls(flow_name=flow.name, variables=dict(flow.variables))

    def snapshot(self, cookies: List[Dict[str, Any]], local_storage: Dict[str, str], origin: Optional[str] = None):
        self.cookies = list(cookies or [])
        self.local_storage = dict(local_storage or {})
        self.storage_origin = origin


class FlowResult(BaseModel):
    name: str
    description: str = ""
    file_path: Optional[str] = None
    state: FlowState = FlowState.IDLE
    passed: bool = False
    steps: List[FlowStep] = Field(default_factory=list)
    session: Optional[FlowSession] = None
    error: Optional[str] = None


class RunResults(BaseModel):
    total_pages: int = 0
    passed_pages: int = 0
    failed_pages: int = 0
    pages: List[PageResult] = Field(default_factory=list)
    total_flows: int = 0
    passed_flows: int = 0
    failed_flows: int = 0
    flows: List[FlowResult] = Field(default_factory=list)

    def add_page(self, result: PageResult):
        self.pages.append(result)
        self.total_pages += 1
        if result.passed:
            self.passed_pages += 1
        else:
            self.failed_pages += 1

    def add_flow(self, result: FlowResult):
        self.flows.append(result)
        self.total_flows += 1
        if result.passed:
            self.passed_flows += 1
        else:
            self.failed_flows += 1

    @property
    def exit_code(self) -> int:
        return 1 if (self.failed_pages or self.failed_flows) else 0
