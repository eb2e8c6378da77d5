class EnsureUIError(Exception):
    """Base exception for ensure-ui failures."""


class ParseError(EnsureUIError):
    """Raised when an input document or route cannot be interpreted."""


class RouteParameterError(ParseError):
    """Raised when a dynamic route segment has no supplied value."""

    def __init__(self, param: str, clean_param: str):
        self.param = param
        self.clean_param = clean_param
        super().__init__(
            f"Route parameter '[{param}]' required but not specified in test expectations.\n"
            f'Example: "// ensureUI: test page with {clean_param} 123"'
        )


class FlowParseError(ParseError):
    """Raised when a flow document is malformed."""

    def __init__(self, message: str, line_number: int | None = None):
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


class GenerationError(EnsureUIError):
    """Raised when the text-generation backend is unreachable or returns unusable content."""


class ExecutionError(EnsureUIError):
    """Raised when a check program cannot be executed."""


class NavigationError(EnsureUIError):
    """Raised when a page does not load with a success status."""

    def __init__(self, url: str, status: int | None = None, reason: str | None = None):
        self.url = url
        self.status = status
        if reason:
            message = f"Page failed to load: {url} ({reason})"
        elif status is None:
            message = f"Page failed to load: {url} (no response)"
        else:
            message = f"Page failed to load: {status}"
        super().__init__(message)
