"""LLM client wrapper for OpenAI-compatible chat completion APIs."""
from typing import List, Dict, Optional, Any

import httpx
from httpx import ReadTimeout

from contentforge.core.config import settings


class LLMClient:
    """Async client for chat completions."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.LLM_API_KEY
        self.base_url = (base_url or settings.LLM_API_BASE).rstrip("/")
        self.model = model or settings.LLM_MODEL
        self.timeout = timeout or settings.LLM_TIMEOUT

    async def chat(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.7,
        max_tokens: int = 2000,
        model: Optional[str] = None,
        response_format: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Call chat completions and return the assistant content."""
        payload = {
            "model": model or self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if response_format:
            payload["response_format"] = response_format
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        timeout = httpx.Timeout(self.timeout, read=self.timeout)
        async with httpx.AsyncClient(timeout=timeout) as client:
            try:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    headers=headers,
                    json=payload,
                )
                if response.status_code != 200:
                    raise RuntimeError(f"LLM API error ({response.status_code}): {response.text}")
            except ReadTimeout:
                raise
            except httpx.HTTPError as exc:
                raise RuntimeError(
                    "LLM connection error. Please retry in a moment."
                ) from exc

            try:
                result = response.json()
                message = result["choices"][0]["message"]
            except (ValueError, KeyError, IndexError, TypeError) as exc:
                raise RuntimeError("LLM API returned an unexpected payload") from exc
            return message.get("content") or ""
