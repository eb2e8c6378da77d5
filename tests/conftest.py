import json
from typing import Any, Callable, Dict, List, Optional, Union

import pytest


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        '--url',
        action='store',
        default=None,
        help='Deployment URL used by tests that build page URLs (overrides default)',
    )


@pytest.fixture
def test_url(request: pytest.FixtureRequest) -> str:
    # Priority: CLI --url > default local dev server
    return request.config.getoption('--url') or 'http://localhost:3000'


class FakeLLM:
    """Stands in for LLMAPI: answers from a list of replies or a callable."""

    def __init__(self, replies: Union[List[Any], Callable[[str, str], str], None] = None):
        self.replies = replies if replies is not None else []
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    async def generate_text(self, prompt, system_prompt, max_tokens=500, temperature=None):
        self.calls.append({"prompt": prompt, "system_prompt": system_prompt, "max_tokens": max_tokens})
        if callable(self.replies):
            reply = self.replies(prompt, system_prompt)
        else:
            reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def close(self):
        self.closed = True


class FakeResponse:
    def __init__(self, url: str = "", status: int = 200, headers: Optional[Dict[str, str]] = None):
        self.url = url
        self.status = status
        self.headers = headers or {}

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 400


class FakeLocator:
    def __init__(self, page: "FakePage", how: str, value: Any):
        self.page = page
        self.how = how
        self.value = value

    @property
    def first(self):
        return self

    def nth(self, index):
        return self

    async def click(self, **kwargs):
        self.page.actions.append(("click", self.value))

    async def fill(self, value, **kwargs):
        self.page.actions.append(("fill", self.value, value))

    async def hover(self, **kwargs):
        self.page.actions.append(("hover", self.value))

    async def check(self, **kwargs):
        self.page.actions.append(("check", self.value))

    async def press(self, key, **kwargs):
        self.page.actions.append(("press", self.value, key))

    async def select_option(self, **kwargs):
        self.page.actions.append(("select", self.value, kwargs))


class FakeKeyboard:
    def __init__(self, page: "FakePage"):
        self.page = page

    async def press(self, key):
        self.page.actions.append(("keyboard", key))


class FakeContext:
    def __init__(self, page_factory: Optional[Callable[["FakeContext"], "FakePage"]] = None):
        self.pages: List["FakePage"] = []
        self.cookie_jar: List[Dict[str, Any]] = []
        self.clear_cookies_calls = 0
        self._page_factory = page_factory

    async def new_page(self):
        page = self._page_factory(self) if self._page_factory else FakePage(context=self)
        self.pages.append(page)
        return page

    async def clear_cookies(self):
        self.clear_cookies_calls += 1
        self.cookie_jar = []

    async def cookies(self):
        return list(self.cookie_jar)


class FakePage:
    """Minimal async Page: records navigation and actions, serves canned responses."""

    def __init__(
        self,
        context: Optional[FakeContext] = None,
        html: str = "<html><body><h1>Welcome</h1></body></html>",
        status: int = 200,
        goto_error: Optional[Exception] = None,
    ):
        self.context = context or FakeContext()
        self.html = html
        self.status = status
        self.goto_error = goto_error
        self.url = "about:blank"
        self.visited: List[str] = []
        self.actions: List[Any] = []
        self.handlers: Dict[str, List[Callable]] = {}
        self.storage: Dict[str, str] = {}
        self.closed = False
        self.screenshots: List[str] = []
        self.keyboard = FakeKeyboard(self)

    def on(self, event, handler):
        self.handlers.setdefault(event, []).append(handler)

    def emit(self, event, payload):
        for handler in self.handlers.get(event, []):
            handler(payload)

    async def goto(self, url, **kwargs):
        if self.goto_error:
            raise self.goto_error
        self.url = url
        self.visited.append(url)
        response = FakeResponse(url=url, status=self.status)
        self.emit("response", response)
        return response

    async def content(self):
        return self.html

    async def screenshot(self, path=None, full_page=False):
        self.screenshots.append(path)

    async def close(self):
        self.closed = True

    async def evaluate(self, script, arg=None):
        if arg is not None:
            self.storage.update(arg)
            return None
        return dict(self.storage)

    def get_by_role(self, role, **kwargs):
        return FakeLocator(self, "role", (role, kwargs.get("name")))

    def get_by_text(self, text, **kwargs):
        return FakeLocator(self, "text", text)

    def get_by_label(self, text, **kwargs):
        return FakeLocator(self, "label", text)

    def get_by_placeholder(self, text, **kwargs):
        return FakeLocator(self, "placeholder", text)

    def get_by_test_id(self, test_id):
        return FakeLocator(self, "test_id", test_id)

    def locator(self, selector):
        return FakeLocator(self, "selector", selector)


class FakeAssertions:
    def __init__(self, expect: "FakeExpect", target):
        self.expect = expect
        self.target = target

    def __getattr__(self, name):
        async def matcher(*args, **kwargs):
            self.expect.calls.append((name, self.target, args))
            if name in self.expect.failing:
                raise AssertionError(f"{name} failed\nCall log:\n  - waiting for locator")
        return matcher


class FakeExpect:
    """Replacement for playwright ``expect``; matchers named in ``failing`` raise."""

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.calls: List[Any] = []

    def __call__(self, target):
        return FakeAssertions(self, target)


class FakeBrowserSession:
    """Replacement for BrowserSession that never launches a browser."""

    instances: List["FakeBrowserSession"] = []

    def __init__(self, browser_config=None, page: Optional[FakePage] = None, **kwargs):
        self.browser_config = browser_config or {}
        self.page = page or FakePage()
        self.console_errors: List[str] = []
        self.initialized = False
        self.closed = False
        FakeBrowserSession.instances.append(self)

    async def initialize(self):
        self.initialized = True
        return self

    def get_page(self):
        return self.page

    async def navigate_to(self, url, **kwargs):
        return await self.page.goto(url, **kwargs)

    async def close(self):
        self.closed = True


def session_factory_for(page_builder: Callable[[], FakePage]):
    def factory(browser_config=None, **kwargs):
        return FakeBrowserSession(browser_config=browser_config, page=page_builder())
    return factory


def program(*instructions, category="CONTENT_PRESENCE") -> str:
    return json.dumps({"category": category, "instructions": list(instructions)})


@pytest.fixture
def fake_llm_factory():
    return FakeLLM


@pytest.fixture(autouse=True)
def reset_fake_sessions():
    FakeBrowserSession.instances = []
    yield
    FakeBrowserSession.instances = []
