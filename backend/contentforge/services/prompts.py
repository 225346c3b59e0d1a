"""Prompt construction for content generation requests."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from contentforge.domains.project.domain.entities import ProjectStrategy

SYSTEM_INSTRUCTION = (
    "You are an expert SEO and GEO (Generative Engine Optimization) Content Strategist.\n"
    "Your goal is to create high-ranking content that appeals to both human readers "
    "and AI search snapshots (like Google SGE).\n"
    "Always prioritize:\n"
    "1. Direct Answers: Provide clear, concise definitions or answers early in the text.\n"
    "2. Structure: Use clear H2/H3 hierarchies.\n"
    "3. Data: Include lists, tables, or statistical references where appropriate.\n"
    "4. Keywords: Integrate provided keywords naturally but effectively.\n"
)


class Operation(str, Enum):
    TITLES = "titles"
    OUTLINE = "outline"
    DRAFT = "draft"
    REVISION = "revision"
    SEO_METADATA = "seo_metadata"


@dataclass(frozen=True)
class GenerationRequest:
    operation: Operation
    strategy: ProjectStrategy
    title: Optional[str] = None
    outline: Optional[str] = None
    draft: Optional[str] = None
    instruction: Optional[str] = None

    @property
    def expects_json(self) -> bool:
        return self.operation in (Operation.TITLES, Operation.SEO_METADATA)


def _rules_block(strategy: ProjectStrategy) -> str:
    if not strategy.rules:
        return ""
    return f"\nIMPORTANT - STRICTLY FOLLOW THESE CUSTOM RULES:\n{strategy.rules}\n"


def _titles_prompt(request: GenerationRequest) -> str:
    strategy = request.strategy
    return (
        "Generate 5 to 10 high-impact blog post titles based on the following strategy.\n"
        f"Topic: {strategy.topic}\n"
        f"Target Audience: {strategy.audience}\n"
        f"Primary Keywords: {strategy.keywords}\n"
        f"Language: {strategy.language.value}\n"
        f"Tone: {strategy.effective_tone}\n"
        f"{_rules_block(strategy)}\n"
        "The titles should be optimized for high CTR (Click Through Rate) and SEO.\n"
        'Respond with a JSON object of the form {"titles": ["..."]}.'
    )


def _outline_prompt(request: GenerationRequest) -> str:
    strategy = request.strategy
    return (
        f'Create a comprehensive and detailed blog post outline for the title: "{request.title}".\n\n'
        "Context:\n"
        f"- Topic: {strategy.topic}\n"
        f"- Audience: {strategy.audience}\n"
        f"- Keywords: {strategy.keywords}\n"
        f"- Language: {strategy.language.value}\n"
        f"- Tone: {strategy.effective_tone}\n"
        f"{_rules_block(strategy)}\n"
        "Requirements:\n"
        "- Use Markdown format.\n"
        "- Include H2 and H3 headers.\n"
        "- Under each header, add bullet points explaining the key talking points.\n"
        "- Plan a \"Key Takeaways\" section or early definitions for Generative Engine Optimization."
    )


def _draft_prompt(request: GenerationRequest) -> str:
    strategy = request.strategy
    return (
        "Write the full blog post based on the provided outline.\n\n"
        f"Title: {request.title}\n\n"
        f"Outline:\n{request.outline}\n\n"
        "Strategy Details:\n"
        f"- Language: {strategy.language.value}\n"
        f"- Tone: {strategy.effective_tone}\n"
        f"- Keywords to include: {strategy.keywords}\n"
        f"{_rules_block(strategy)}\n"
        "GEO Guidelines:\n"
        "- Ensure the content is authoritative and in-depth.\n"
        "- Use formatting (bold, lists, tables) to make it scannable.\n"
        "- Where it fits, include a comparison table or a pros and cons list in Markdown.\n"
        "- Output strictly in Markdown format."
    )


def _revision_prompt(request: GenerationRequest) -> str:
    strategy = request.strategy
    return (
        "You are editing an existing blog post draft.\n\n"
        f"Original Draft:\n{request.draft}\n\n"
        f'User Revision Request:\n"{request.instruction}"\n\n'
        "Strategy Context:\n"
        f"- Language: {strategy.language.value}\n"
        f"{_rules_block(strategy)}\n"
        "Rewrite the necessary sections of the draft to accommodate the request while "
        "keeping the original tone and SEO optimization.\n"
        "Return the FULL revised article in Markdown."
    )


def _seo_prompt(request: GenerationRequest) -> str:
    strategy = request.strategy
    return (
        "Analyze the following blog post draft and generate SEO metadata.\n\n"
        f"Draft Content:\n{request.draft}\n\n"
        "Strategy Context:\n"
        f"- Language: {strategy.language.value}\n"
        f"- Keywords: {strategy.keywords}\n\n"
        "Output Requirements:\n"
        "1. slug: URL-friendly version of the title/topic.\n"
        "2. shortText: a compelling 1-2 sentence summary for blog cards.\n"
        "3. introText: a powerful opening paragraph or social media hook (about 50 words).\n"
        'Respond with a JSON object with the keys "slug", "shortText" and "introText".'
    )


_BUILDERS = {
    Operation.TITLES: _titles_prompt,
    Operation.OUTLINE: _outline_prompt,
    Operation.DRAFT: _draft_prompt,
    Operation.REVISION: _revision_prompt,
    Operation.SEO_METADATA: _seo_prompt,
}


def build_prompt(request: GenerationRequest) -> str:
    return _BUILDERS[request.operation](request)
