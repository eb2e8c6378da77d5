from .structures import (
    BasicChecks,
    DiscoveredFlow,
    DiscoveredPage,
    ExecutionResult,
    Expectation,
    ExtractionResult,
    FlowDefinition,
    FlowResult,
    FlowSession,
    FlowState,
    FlowStep,
    PageResult,
    PageTarget,
    RawComment,
    RedirectRecord,
    RunResults,
)

__all__ = [
    "RawComment",
    "Expectation",
    "ExtractionResult",
    "DiscoveredPage",
    "DiscoveredFlow",
    "PageTarget",
    "RedirectRecord",
    "ExecutionResult",
    "BasicChecks",
    "PageResult",
    "FlowStep",
    "FlowDefinition",
    "FlowState",
    "FlowSession",
    "FlowResult",
    "RunResults",
]
