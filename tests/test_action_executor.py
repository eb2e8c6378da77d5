import json

import pytest

from conftest import FakeExpect, FakePage, program
from ensure_ui.actions import ActionExecutor
from ensure_ui.actions.program import Category, parse_program
from ensure_ui.data import RedirectRecord
from ensure_ui.exceptions import ExecutionError

REDIRECT_CHAIN = [
    RedirectRecord(url="http://localhost:3000/old", status=301, location="/new"),
    RedirectRecord(url="http://localhost:3000/new", status=200),
]


def make_executor(chain=None, failing=(), allow_static_interactions=True):
    page = FakePage()
    page.url = "http://localhost:3000/start"
    expect = FakeExpect(failing)
    executor = ActionExecutor(page, expect, chain or [], timeout=1000, allow_static_interactions=allow_static_interactions)
    return executor, page, expect


def test_parse_program_variants():
    bare = parse_program('[{"type": "AssertTitle", "param": {"title": "Home"}}]')
    wrapped = parse_program('Here you go:\n{"category": "page_load", "instructions": [{"type": "AssertTitle", "param": {"title": "Home"}}]}')

    assert bare.category is None
    assert wrapped.category == Category.PAGE_LOAD
    assert wrapped.instructions[0].param == {"title": "Home"}

    with pytest.raises(ExecutionError):
        parse_program("expect(page).toHaveTitle('Home')")
    with pytest.raises(ExecutionError):
        parse_program('{"instructions": []}')


@pytest.mark.asyncio
async def test_assertions_go_through_expect():
    executor, page, expect = make_executor()

    await executor.run(parse_program(program(
        {"type": "AssertTextVisible", "param": {"text": "Welcome"}},
        {"type": "AssertVisible", "locate": {"role": "button", "name": "Sign in"}},
        {"type": "AssertCount", "locate": {"selector": "li.item"}, "param": {"count": 3}},
    )))

    assert [name for name, _, _ in expect.calls] == ["to_be_visible", "to_be_visible", "to_have_count"]
    assert expect.calls[2][2] == (3,)


@pytest.mark.asyncio
async def test_failing_assertion_raises():
    executor, _, _ = make_executor(failing={"to_have_title"})

    with pytest.raises(AssertionError):
        await executor.run(parse_program(program({"type": "AssertTitle", "param": {"contains": "Home"}})))


@pytest.mark.asyncio
async def test_interactions_and_relative_navigation():
    executor, page, _ = make_executor()

    await executor.run(parse_program(program(
        {"type": "Navigate", "param": {"url": "/login"}},
        {"type": "Fill", "locate": {"label": "Email"}, "param": {"value": "a@b.com"}},
        {"type": "Click", "locate": {"role": "button", "name": "Sign in"}},
        {"type": "Press", "param": {"key": "Enter"}},
        category="INTERACTION",
    )))

    assert page.visited == ["http://localhost:3000/login"]
    assert page.actions == [
        ("fill", "Email", "a@b.com"),
        ("click", ("button", "Sign in")),
        ("keyboard", "Enter"),
    ]


@pytest.mark.parametrize(
    "param",
    [{"status": 301}, {"location_contains": "/new"}, {"min_count": 1}, {}],
)
@pytest.mark.asyncio
async def test_assert_redirect_passes(param):
    executor, _, _ = make_executor(REDIRECT_CHAIN)

    await executor.run(parse_program(program({"type": "AssertRedirect", "param": param}, category="REDIRECT")))


@pytest.mark.parametrize(
    "chain, param",
    [
        (REDIRECT_CHAIN, {"status": 302}),
        (REDIRECT_CHAIN, {"location_contains": "/elsewhere"}),
        (REDIRECT_CHAIN, {"min_count": 2}),
        ([RedirectRecord(url="http://localhost:3000/", status=200)], {}),
    ],
)
@pytest.mark.asyncio
async def test_assert_redirect_fails(chain, param):
    executor, _, _ = make_executor(chain)

    with pytest.raises(AssertionError):
        await executor.run(parse_program(program({"type": "AssertRedirect", "param": param}, category="REDIRECT")))


@pytest.mark.asyncio
async def test_unknown_instruction_type():
    executor, _, _ = make_executor()

    with pytest.raises(ExecutionError, match="Unknown instruction type: Eval"):
        await executor.run(parse_program(program({"type": "Eval", "param": {"code": "1"}})))


@pytest.mark.asyncio
async def test_missing_locator_is_execution_error():
    executor, _, _ = make_executor()

    with pytest.raises(ExecutionError):
        await executor.run(parse_program(program({"type": "Click"}, category="INTERACTION")))


@pytest.mark.asyncio
async def test_static_checks_may_not_interact_when_restricted():
    executor, page, _ = make_executor(allow_static_interactions=False)
    clicking = program(
        {"type": "Click", "locate": {"text": "Menu"}},
        {"type": "AssertTextVisible", "param": {"text": "Settings"}},
    )

    with pytest.raises(ExecutionError, match="may not perform interactions"):
        await executor.run(parse_program(clicking))
    assert page.actions == []

    await executor.run(parse_program(clicking.replace("CONTENT_PRESENCE", "INTERACTION")))
    assert page.actions == [("click", "Menu")]


@pytest.mark.asyncio
async def test_unknown_category_may_not_interact_when_restricted():
    executor, page, _ = make_executor(allow_static_interactions=False)
    check = parse_program(json.dumps({
        "category": "CONTENT",
        "instructions": [{"type": "Click", "locate": {"text": "Buy"}}],
    }))

    assert check.category is None
    with pytest.raises(ExecutionError, match="Uncategorized check may not perform interactions"):
        await executor.run(check)
    assert page.actions == []
