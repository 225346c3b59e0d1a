import asyncio
import json
from datetime import timedelta

import pytest

from contentforge.domains.project.domain.entities import ProjectStrategy, SeoMetadata, WritingTone
from contentforge.infrastructure.resilience import CircuitBreaker
from contentforge.services.content_generator import ContentGenerator, slugify, strip_code_fence
from contentforge.services.prompts import GenerationRequest, Operation, build_prompt
from contentforge.shared_kernel.exceptions import GenerationError


class DummyLLM:
    def __init__(self, responses=None, exc=None, delay=0.0):
        self.responses = list(responses or [])
        self.exc = exc
        self.delay = delay
        self.calls = []

    async def chat(self, messages, temperature=0.7, max_tokens=2000, model=None, response_format=None):
        self.calls.append({"messages": messages, "response_format": response_format})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.exc:
            raise self.exc
        return self.responses.pop(0)


def _strategy(**overrides):
    values = {"topic": "Remote Work", "audience": "HR Managers", "keywords": "remote,engagement"}
    values.update(overrides)
    return ProjectStrategy(**values)


def _generator(llm, **kwargs):
    breaker = kwargs.pop("breaker", None) or CircuitBreaker(name="test-llm", failure_threshold=5)
    return ContentGenerator(llm_client=llm, breaker=breaker, timeout=kwargs.pop("timeout", 5), **kwargs)


@pytest.mark.asyncio
async def test_generate_titles_parses_json_object():
    llm = DummyLLM([json.dumps({"titles": ["  Title one ", "Title two", "title ONE", "", 3]})])
    titles = await _generator(llm).generate_titles(_strategy())

    assert titles == ["Title one", "Title two"]
    assert llm.calls[0]["response_format"] == {"type": "json_object"}
    assert "SEO" in llm.calls[0]["messages"][0]["content"]


@pytest.mark.asyncio
async def test_generate_titles_accepts_fenced_bare_list():
    llm = DummyLLM(['```json\n["A", "B", "C"]\n```'])
    assert await _generator(llm).generate_titles(_strategy()) == ["A", "B", "C"]


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", ["not json", json.dumps({"titles": []}), json.dumps({"other": 1}), ""])
async def test_generate_titles_rejects_unusable_output(payload):
    with pytest.raises(GenerationError):
        await _generator(DummyLLM([payload])).generate_titles(_strategy())


@pytest.mark.asyncio
async def test_outline_and_draft_return_text():
    llm = DummyLLM(["## Outline\n- point", "```markdown\n# Draft\nBody\n```"])
    generator = _generator(llm)

    outline = await generator.generate_outline("Remote Work Guide", _strategy())
    draft = await generator.generate_draft("Remote Work Guide", outline, _strategy())

    assert outline == "## Outline\n- point"
    assert draft == "# Draft\nBody"
    assert 'title: "Remote Work Guide"' in llm.calls[0]["messages"][1]["content"]
    assert llm.calls[1]["response_format"] is None


@pytest.mark.asyncio
async def test_empty_text_raises_generation_error():
    with pytest.raises(GenerationError) as exc_info:
        await _generator(DummyLLM(["   "])).generate_outline("T", _strategy())
    assert exc_info.value.code == "GENERATION_EMPTY"


@pytest.mark.asyncio
async def test_transport_failure_becomes_generation_error():
    with pytest.raises(GenerationError) as exc_info:
        await _generator(DummyLLM(exc=RuntimeError("LLM API error (500)"))).generate_draft("T", "O", _strategy())
    assert exc_info.value.code == "GENERATION_FAILED"
    assert exc_info.value.message == "Failed to generate draft."


@pytest.mark.asyncio
async def test_timeout_becomes_generation_error():
    generator = _generator(DummyLLM(["late"], delay=0.2), timeout=0.01)
    with pytest.raises(GenerationError):
        await generator.generate_outline("T", _strategy())


@pytest.mark.asyncio
async def test_open_circuit_fails_fast():
    llm = DummyLLM(exc=RuntimeError("down"))
    breaker = CircuitBreaker(name="test-open", failure_threshold=1, recovery_timeout=timedelta(minutes=5))
    generator = _generator(llm, breaker=breaker)

    with pytest.raises(GenerationError):
        await generator.generate_outline("T", _strategy())
    with pytest.raises(GenerationError):
        await generator.generate_outline("T", _strategy())
    assert len(llm.calls) == 1


@pytest.mark.asyncio
async def test_revision_prompt_carries_draft_and_instruction():
    llm = DummyLLM(["Revised body"])
    result = await _generator(llm).revise_draft("Old body", "Add a table", _strategy())

    assert result == "Revised body"
    prompt = llm.calls[0]["messages"][1]["content"]
    assert "Old body" in prompt
    assert '"Add a table"' in prompt


@pytest.mark.asyncio
async def test_seo_metadata_truncates_draft_and_normalizes_slug():
    llm = DummyLLM([
        json.dumps({"slug": "Remote Work: The Guide!", "shortText": "Short.", "introText": " Hook. "})
    ])
    metadata = await _generator(llm, seo_draft_max_chars=10).generate_seo_metadata("x" * 50, _strategy())

    assert metadata == SeoMetadata(slug="remote-work-the-guide", short_text="Short.", intro_text="Hook.")
    prompt = llm.calls[0]["messages"][1]["content"]
    assert "x" * 10 in prompt
    assert "x" * 11 not in prompt


@pytest.mark.asyncio
async def test_seo_metadata_missing_keys_become_empty():
    metadata = await _generator(DummyLLM([json.dumps({"slug": "only-slug"})])).generate_seo_metadata(
        "Body", _strategy()
    )
    assert metadata == SeoMetadata(slug="only-slug", short_text="", intro_text="")


def test_prompts_include_custom_rules_and_tone():
    strategy = _strategy(tone=WritingTone.CUSTOM, custom_tone="Witty", custom_rules="Never use jargon")
    prompt = build_prompt(GenerationRequest(operation=Operation.TITLES, strategy=strategy))
    assert "IMPORTANT - STRICTLY FOLLOW THESE CUSTOM RULES:\nNever use jargon" in prompt
    assert "Tone: Witty" in prompt

    plain = build_prompt(GenerationRequest(operation=Operation.OUTLINE, strategy=_strategy(), title="T"))
    assert "CUSTOM RULES" not in plain


def test_helpers():
    assert strip_code_fence("```\nbody\n```") == "body"
    assert strip_code_fence("plain") == "plain"
    assert slugify("  Héllo, World -- 2025 ") == "héllo-world-2025"
