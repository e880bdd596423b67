from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from app_config import AppSettings

logger = logging.getLogger("uvicorn.error")

GEMINI_OPENAI_BASE = "https://generativelanguage.googleapis.com/v1beta/openai"


def _provider_base_url(provider: str, base_url: str = "") -> str:
    provider = (provider or "").strip().lower()
    if provider == "gemini":
        # Gemini's OpenAI-compatible surface is not versioned under /v1.
        return (base_url or GEMINI_OPENAI_BASE).rstrip("/")
    if provider == "groq":
        base = base_url or "https://api.groq.com/openai"
    elif provider == "openrouter":
        base = base_url or "https://openrouter.ai/api"
    elif provider == "ollama":
        base = base_url or "http://127.0.0.1:11434"
    else:
        base = base_url or "https://api.openai.com"
    base = base.rstrip("/")
    if base.endswith("/v1"):
        return base
    return f"{base}/v1"


def _extract_output_text_from_response(payload: Dict[str, Any]) -> str:
    if not payload:
        return ""
    choices = payload.get("choices")
    if isinstance(choices, list) and choices:
        choice = choices[0] if isinstance(choices[0], dict) else None
        if choice:
            message = choice.get("message") or {}
            content = message.get("content")
            if isinstance(content, str) and content.strip():
                return content
            if isinstance(content, list):
                for part in content:
                    if not isinstance(part, dict):
                        continue
                    if part.get("type") in {"text", "output_text"} and isinstance(part.get("text"), str):
                        return part.get("text") or ""
            text = choice.get("text")
            if isinstance(text, str) and text.strip():
                return text
    output_text = payload.get("output_text")
    if isinstance(output_text, str) and output_text.strip():
        return output_text
    return ""


class GenerationClient:
    """Single-prompt text generation against an OpenAI-compatible chat endpoint."""

    def __init__(
        self,
        provider: str,
        model: str,
        api_key: str = "",
        base_url: str = "",
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.provider = (provider or "").strip().lower()
        self.model = model
        self.api_base = _provider_base_url(self.provider, base_url)
        headers = {"Authorization": f"Bearer {api_key}"} if api_key and self.provider != "ollama" else {}
        self._client = httpx.AsyncClient(
            base_url=self.api_base,
            headers=headers,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: AppSettings, **kwargs: Any) -> "GenerationClient":
        return cls(
            provider=settings.provider,
            model=settings.model,
            api_key=settings.api_key,
            base_url=settings.base_url,
            timeout=settings.request_timeout,
            **kwargs,
        )

    async def generate(self, prompt: str) -> str:
        body = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
        }
        logger.debug("Generation request: provider=%s model=%s base_url=%s", self.provider, self.model, self.api_base)
        resp = await self._client.post("/chat/completions", json=body)
        resp.raise_for_status()
        data = resp.json()
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected response payload of type {type(data).__name__}")
        return _extract_output_text_from_response(data)

    async def aclose(self) -> None:
        await self._client.aclose()
