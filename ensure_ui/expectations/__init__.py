from .extractor import ExpectationExtractor, merge_comments
from .routes import resolve_route

__all__ = ["ExpectationExtractor", "merge_comments", "resolve_route"]
