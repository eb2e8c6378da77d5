from .isolated_executor import IsolatedExecutor
from .result_aggregator import ResultAggregator

__all__ = ["IsolatedExecutor", "ResultAggregator"]
