import pytest

from conftest import FakeBrowserSession, FakeExpect, FakeLLM, FakePage, program, session_factory_for
from ensure_ui.actions import ActionHandler
from ensure_ui.data import Expectation, PageTarget
from ensure_ui.exceptions import GenerationError
from ensure_ui.executor import IsolatedExecutor
from ensure_ui.testers import PageTester, TestCodeSynthesizer

CHECK = program({"type": "AssertTextVisible", "param": {"text": "About Us"}})


def make_target(*texts):
    return PageTarget(
        file_path="pages/about.tsx",
        route="/about",
        url="http://localhost:3000/about",
        raw_expectations=" ".join(texts),
        expectations=[Expectation(text=t, line_number=1, original_comment=" ".join(texts)) for t in texts],
    )


def make_tester(tmp_path, replies, page_builder=FakePage, failing=()):
    llm = FakeLLM(replies)
    executor = IsolatedExecutor(
        timeout=1000, action_handler=ActionHandler(screenshot_dir=str(tmp_path)), expect=FakeExpect(failing)
    )
    tester = PageTester(TestCodeSynthesizer(llm), executor, session_factory=session_factory_for(page_builder))
    return tester, llm


@pytest.mark.asyncio
async def test_all_expectations_pass(tmp_path):
    tester, llm = make_tester(tmp_path, [CHECK, CHECK])

    result = await tester.run(make_target("shows About Us", "has a team section"))

    assert result.passed
    assert result.basic_checks.page_loaded
    assert result.basic_checks.status == 200
    assert [e.generated_code for e in result.expectations] == [CHECK, CHECK]
    assert len(llm.calls) == 2
    assert FakeBrowserSession.instances[0].closed


@pytest.mark.asyncio
async def test_server_error_fails_every_expectation_without_generation(tmp_path):
    tester, llm = make_tester(tmp_path, [CHECK], page_builder=lambda: FakePage(status=500))

    result = await tester.run(make_target("shows About Us", "has a team section"))

    assert not result.passed
    assert not result.basic_checks.page_loaded
    assert result.basic_checks.status == 500
    assert llm.calls == []
    for expectation in result.expectations:
        assert not expectation.passed
        assert expectation.error == "Page failed to load: 500"
        assert expectation.generated_code is None
    assert FakeBrowserSession.instances[0].closed


@pytest.mark.asyncio
async def test_unreachable_page(tmp_path):
    tester, llm = make_tester(
        tmp_path, [], page_builder=lambda: FakePage(goto_error=RuntimeError("net::ERR_CONNECTION_REFUSED"))
    )

    result = await tester.run(make_target("shows About Us"))

    assert not result.basic_checks.page_loaded
    assert "ERR_CONNECTION_REFUSED" in result.expectations[0].error


@pytest.mark.asyncio
async def test_generation_failure_is_recorded_and_next_expectation_runs(tmp_path):
    tester, _ = make_tester(tmp_path, [GenerationError("rate limited"), CHECK])

    result = await tester.run(make_target("shows About Us", "has a team section"))

    first, second = result.expectations
    assert first.error == "Test generation failed: rate limited"
    assert first.generated_code is None
    assert second.passed
    assert not result.passed


@pytest.mark.asyncio
async def test_failing_check_records_error(tmp_path):
    tester, _ = make_tester(tmp_path, [CHECK], failing={"to_be_visible"})

    result = await tester.run(make_target("shows About Us"))

    assert not result.passed
    assert result.basic_checks.page_loaded
    assert result.expectations[0].error == "to_be_visible failed"
