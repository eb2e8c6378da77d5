import pytest

from conftest import FakeBrowserSession, FakeExpect, FakeLLM, FakePage, program, session_factory_for
from ensure_ui.actions import ActionHandler
from ensure_ui.data import FlowState
from ensure_ui.executor import IsolatedExecutor
from ensure_ui.testers import FlowTester, TestCodeSynthesizer, parse_flows

FLOW = """# Checkout
> Buy one item
1. Navigate to /shop
2. Click Add to cart and check the cart shows 1 item
3. Go to /checkout and check the total is visible
"""

PASSING = program({"type": "AssertTextVisible", "param": {"text": "Shop"}})
FAILING = program(
    {"type": "Click", "locate": {"role": "button", "name": "Add to cart"}},
    {"type": "AssertText", "locate": {"test_id": "cart-count"}, "param": {"text": "1"}},
    category="INTERACTION",
)


def make_tester(tmp_path, replies, page_builder=FakePage, failing=()):
    llm = FakeLLM(replies)
    handler = ActionHandler(screenshot_dir=str(tmp_path))
    executor = IsolatedExecutor(timeout=1000, action_handler=handler, expect=FakeExpect(failing))
    tester = FlowTester(
        TestCodeSynthesizer(llm),
        executor,
        "http://localhost:3000",
        session_factory=session_factory_for(page_builder),
    )
    return tester, llm


@pytest.mark.asyncio
async def test_first_failing_step_stops_the_flow(tmp_path):
    tester, llm = make_tester(tmp_path, [PASSING, FAILING, PASSING], failing={"to_contain_text"})
    flow = parse_flows(FLOW)[0]

    result = await tester.run(flow, file_path="flows/checkout.flow.md")

    assert result.state == FlowState.FAILED
    assert not result.passed
    s1, s2, s3 = result.steps
    assert s1.passed and s1.generated_code == PASSING
    assert not s2.passed and s2.error == "to_contain_text failed"
    assert s2.generated_code == FAILING
    assert s3.generated_code is None and s3.error is None and not s3.passed
    assert len(llm.calls) == 2
    assert result.error.startswith("Step 2 failed")
    assert FakeBrowserSession.instances[0].closed


@pytest.mark.asyncio
async def test_completed_flow_snapshots_browser_state(tmp_path):
    def page_builder():
        page = FakePage()
        page.storage = {"cart": "[1]"}
        page.context.cookie_jar = [{"name": "sid", "value": "abc"}]
        return page

    tester, llm = make_tester(tmp_path, [PASSING, PASSING, PASSING], page_builder=page_builder)
    flow = parse_flows(FLOW)[0]

    result = await tester.run(flow)

    assert result.state == FlowState.COMPLETED
    assert result.passed
    assert all(step.passed for step in result.steps)
    assert result.session.current_step == 3
    assert result.session.local_storage == {"cart": "[1]"}
    assert result.session.cookies == [{"name": "sid", "value": "abc"}]
    assert result.session.storage_origin == "http://localhost:3000"
    session = FakeBrowserSession.instances[0]
    assert session.page.visited == ["http://localhost:3000/shop", "http://localhost:3000/checkout"]
    assert "FLOW CONTEXT" in llm.calls[0]["prompt"]


@pytest.mark.asyncio
async def test_step_navigation_failure_fails_the_step(tmp_path):
    tester, llm = make_tester(tmp_path, [PASSING], page_builder=lambda: FakePage(status=500))
    flow = parse_flows(FLOW)[0]

    result = await tester.run(flow)

    assert not result.passed
    assert result.steps[0].error == "Page failed to load: 500"
    assert result.steps[0].generated_code is None
    assert llm.calls == []


def test_resolve_url(tmp_path):
    tester, _ = make_tester(tmp_path, [])

    assert tester.resolve_url("/login") == "http://localhost:3000/login"
    assert tester.resolve_url("https://other.example/x") == "https://other.example/x"
