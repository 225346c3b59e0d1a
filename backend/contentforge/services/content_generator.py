"""Content generator: turns a project strategy into titles, outline, draft and SEO metadata."""
from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from datetime import timedelta
from typing import Any, Dict, List, Optional

import httpx

from contentforge.core.config import settings
from contentforge.domains.project.domain.entities import ProjectStrategy, SeoMetadata
from contentforge.infrastructure.observability.metrics import GENERATION_DURATION, GENERATION_TOTAL
from contentforge.infrastructure.resilience import CircuitBreaker, with_timeout
from contentforge.services.llm_client import LLMClient
from contentforge.services.prompts import (
    SYSTEM_INSTRUCTION,
    GenerationRequest,
    Operation,
    build_prompt,
)
from contentforge.shared_kernel.exceptions import CircuitOpenError, GenerationError

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```(?:json|markdown|md)?\s*\n?(.*?)\n?```$", re.DOTALL | re.IGNORECASE)

_FAILURE_MESSAGES = {
    Operation.TITLES: "Failed to generate titles. Please check your input and try again.",
    Operation.OUTLINE: "Failed to generate outline.",
    Operation.DRAFT: "Failed to generate draft.",
    Operation.REVISION: "Failed to revise draft.",
    Operation.SEO_METADATA: "Failed to generate metadata.",
}


def strip_code_fence(text: str) -> str:
    stripped = (text or "").strip()
    match = _FENCE_RE.match(stripped)
    return match.group(1).strip() if match else stripped


def slugify(value: str) -> str:
    slug = re.sub(r"[^\w\s-]", "", (value or "").strip().lower())
    slug = re.sub(r"[\s_-]+", "-", slug)
    return slug.strip("-")


class ContentGenerator:
    """Generation collaborator backed by an LLM chat client."""

    def __init__(
        self,
        llm_client: Optional[LLMClient] = None,
        breaker: Optional[CircuitBreaker] = None,
        timeout: Optional[float] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        seo_draft_max_chars: Optional[int] = None,
    ) -> None:
        self.llm_client = llm_client or LLMClient()
        self.breaker = breaker or CircuitBreaker(
            name="llm",
            failure_threshold=settings.LLM_CIRCUIT_FAILURE_THRESHOLD,
            recovery_timeout=timedelta(seconds=settings.LLM_CIRCUIT_RECOVERY_SECONDS),
        )
        self.timeout = timeout or settings.GENERATION_TIMEOUT
        self.temperature = settings.LLM_TEMPERATURE if temperature is None else temperature
        self.max_tokens = max_tokens or settings.LLM_MAX_TOKENS
        self.seo_draft_max_chars = seo_draft_max_chars or settings.SEO_DRAFT_MAX_CHARS

    async def _chat(self, request: GenerationRequest) -> str:
        messages = [
            {"role": "system", "content": SYSTEM_INSTRUCTION},
            {"role": "user", "content": build_prompt(request)},
        ]
        return await with_timeout(
            self.llm_client.chat(
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                response_format={"type": "json_object"} if request.expects_json else None,
            ),
            self.timeout,
            name=f"generate.{request.operation.value}",
        )

    async def _complete(self, request: GenerationRequest) -> str:
        operation = request.operation
        start = time.perf_counter()
        try:
            text = await self.breaker.execute(self._chat, request)
        except (RuntimeError, httpx.HTTPError, asyncio.TimeoutError, CircuitOpenError) as exc:
            GENERATION_TOTAL.labels(operation.value, "failure").inc()
            logger.error("Error generating %s: %s", operation.value, exc)
            raise GenerationError(
                _FAILURE_MESSAGES[operation],
                code="GENERATION_FAILED",
                details={"operation": operation.value},
            ) from exc
        finally:
            GENERATION_DURATION.labels(operation.value).observe(time.perf_counter() - start)

        text = strip_code_fence(text)
        if not text:
            GENERATION_TOTAL.labels(operation.value, "empty").inc()
            raise GenerationError(
                _FAILURE_MESSAGES[operation],
                code="GENERATION_EMPTY",
                details={"operation": operation.value},
            )
        GENERATION_TOTAL.labels(operation.value, "success").inc()
        return text

    def _parse_json(self, text: str, operation: Operation) -> Any:
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            GENERATION_TOTAL.labels(operation.value, "malformed").inc()
            raise GenerationError(
                _FAILURE_MESSAGES[operation],
                code="GENERATION_MALFORMED",
                details={"operation": operation.value},
            ) from exc

    async def generate_titles(self, strategy: ProjectStrategy) -> List[str]:
        request = GenerationRequest(operation=Operation.TITLES, strategy=strategy)
        payload = self._parse_json(await self._complete(request), Operation.TITLES)
        raw_titles = payload.get("titles") if isinstance(payload, dict) else payload
        if not isinstance(raw_titles, list):
            raise GenerationError(
                _FAILURE_MESSAGES[Operation.TITLES],
                code="GENERATION_MALFORMED",
                details={"operation": Operation.TITLES.value},
            )
        titles: List[str] = []
        seen = set()
        for item in raw_titles:
            if not isinstance(item, str):
                continue
            title = " ".join(item.split())
            if title and title.casefold() not in seen:
                seen.add(title.casefold())
                titles.append(title)
        if not titles:
            raise GenerationError(
                _FAILURE_MESSAGES[Operation.TITLES],
                code="GENERATION_EMPTY",
                details={"operation": Operation.TITLES.value},
            )
        return titles

    async def generate_outline(self, title: str, strategy: ProjectStrategy) -> str:
        request = GenerationRequest(operation=Operation.OUTLINE, strategy=strategy, title=title)
        return await self._complete(request)

    async def generate_draft(self, title: str, outline: str, strategy: ProjectStrategy) -> str:
        request = GenerationRequest(
            operation=Operation.DRAFT,
            strategy=strategy,
            title=title,
            outline=outline,
        )
        return await self._complete(request)

    async def revise_draft(self, current_draft: str, instruction: str, strategy: ProjectStrategy) -> str:
        """Return the full revised document, not a diff."""
        request = GenerationRequest(
            operation=Operation.REVISION,
            strategy=strategy,
            draft=current_draft,
            instruction=instruction,
        )
        return await self._complete(request)

    async def generate_seo_metadata(self, draft: str, strategy: ProjectStrategy) -> SeoMetadata:
        request = GenerationRequest(
            operation=Operation.SEO_METADATA,
            strategy=strategy,
            draft=draft[: self.seo_draft_max_chars],
        )
        payload = self._parse_json(await self._complete(request), Operation.SEO_METADATA)
        if not isinstance(payload, dict):
            raise GenerationError(
                _FAILURE_MESSAGES[Operation.SEO_METADATA],
                code="GENERATION_MALFORMED",
                details={"operation": Operation.SEO_METADATA.value},
            )
        return SeoMetadata(
            slug=slugify(_first_str(payload, "slug")),
            short_text=_first_str(payload, "shortText", "short_text"),
            intro_text=_first_str(payload, "introText", "intro_text"),
        )


def _first_str(payload: Dict[str, Any], *keys: str) -> str:
    for key in keys:
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""
