# src/llm/adapters/google_adapter.py - v2
"""Google Gemini adapter implementing BaseLLMClient.

Uses the google-generativeai SDK in JSON response mode. SDK exceptions are
left untouched; llm.errors.parse_provider_error classifies them.
"""

from __future__ import annotations

import time
from typing import Any

from matrixmint.llm.base_client import BaseLLMClient
from matrixmint.llm.models import LLMResponse


class GoogleAdapter(BaseLLMClient):
    """Google Gemini adapter."""

    def __init__(self, model: str = "gemini-3-flash-preview", api_key: str = "", **kwargs: Any):
        self._model = model
        self._api_key = api_key

    async def generate_json(
        self,
        prompt: str,
        response_schema: dict[str, Any] | None = None,
        max_tokens: int = 8192,
        temperature: float = 0.2,
    ) -> LLMResponse:
        import google.generativeai as genai

        genai.configure(api_key=self._api_key)
        model = genai.GenerativeModel(self._model)

        gen_config: dict[str, Any] = {
            "max_output_tokens": max_tokens,
            "temperature": temperature,
            "response_mime_type": "application/json",
        }
        if response_schema is not None:
            gen_config["response_schema"] = response_schema

        t0 = time.monotonic()
        resp = await model.generate_content_async(prompt, generation_config=gen_config)
        latency = int((time.monotonic() - t0) * 1000)

        usage = getattr(resp, "usage_metadata", None)
        return LLMResponse(
            content=resp.text or "",
            input_tokens=getattr(usage, "prompt_token_count", 0) if usage else 0,
            output_tokens=getattr(usage, "candidates_token_count", 0) if usage else 0,
            model=self._model,
            provider="google",
            latency_ms=latency,
            raw_response=resp,
        )

    @property
    def model_name(self) -> str:
        return self._model

    @property
    def provider_name(self) -> str:
        return "google"
