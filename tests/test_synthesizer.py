import pytest

from conftest import FakeLLM, program
from ensure_ui.data import RedirectRecord
from ensure_ui.exceptions import GenerationError
from ensure_ui.llm.prompt import LLMPrompt
from ensure_ui.testers.synthesizer import FLOW_MODE, PAGE_MODE, TestCodeSynthesizer

HTML = "<html><head><title>Home</title></head><body><h1>Welcome back</h1><p>Latest news</p></body></html>"
CHECK = program({"type": "AssertTextVisible", "param": {"text": "Welcome back"}})


@pytest.mark.asyncio
async def test_synthesize_strips_code_fences():
    llm = FakeLLM([f"```json\n{CHECK}\n```"])

    code = await TestCodeSynthesizer(llm).synthesize(HTML, "shows a welcome message", "http://localhost:3000/")

    assert code == CHECK
    assert llm.calls[0]["system_prompt"] == LLMPrompt.synthesis_system_prompt
    assert "shows a welcome message" in llm.calls[0]["prompt"]
    assert "Welcome back" in llm.calls[0]["prompt"]


@pytest.mark.asyncio
async def test_generation_error_propagates():
    synthesizer = TestCodeSynthesizer(FakeLLM([GenerationError("backend down")]))

    with pytest.raises(GenerationError, match="backend down"):
        await synthesizer.synthesize(HTML, "anything", "http://localhost:3000/")


@pytest.mark.asyncio
async def test_unexpected_llm_failure_becomes_generation_error():
    synthesizer = TestCodeSynthesizer(FakeLLM([RuntimeError("socket closed")]))

    with pytest.raises(GenerationError):
        await synthesizer.synthesize(HTML, "anything", "http://localhost:3000/")


@pytest.mark.asyncio
async def test_empty_output_is_a_generation_error():
    synthesizer = TestCodeSynthesizer(FakeLLM(["```\n```"]))

    with pytest.raises(GenerationError):
        await synthesizer.synthesize(HTML, "anything", "http://localhost:3000/")


def test_redirect_info_only_with_recorded_chain():
    synthesizer = TestCodeSynthesizer(FakeLLM())
    chain = [RedirectRecord(url="http://localhost:3000/old", status=301, location="/new")]

    without = synthesizer.build_prompt(HTML, "redirects", "http://localhost:3000/old", [])
    with_chain = synthesizer.build_prompt(HTML, "redirects", "http://localhost:3000/old", chain)

    assert "REDIRECT CHAIN AVAILABLE" not in without
    assert "REDIRECT CHAIN AVAILABLE" in with_chain
    assert "status: 301" in with_chain


def test_mode_specific_rules():
    page_prompt = TestCodeSynthesizer(FakeLLM()).build_prompt(HTML, "x", "http://h/", mode=PAGE_MODE)
    flow_prompt = TestCodeSynthesizer(FakeLLM()).build_prompt(HTML, "x", "http://h/", mode=FLOW_MODE)
    static_prompt = TestCodeSynthesizer(FakeLLM(), allow_static_interactions=False).build_prompt(HTML, "x", "http://h/")

    assert "FLOW CONTEXT" not in page_prompt
    assert "FLOW CONTEXT" in flow_prompt
    assert LLMPrompt.static_rule in static_prompt
    assert LLMPrompt.static_rule not in page_prompt


def test_page_text_is_truncated():
    synthesizer = TestCodeSynthesizer(FakeLLM(), max_page_chars=20)

    text = synthesizer.page_text("<p>" + "word " * 100 + "</p>")

    assert len(text) == 23
    assert text.endswith("...")
    assert synthesizer.page_text(None) == "(not available)"
