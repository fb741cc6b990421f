# src/llm/base_client.py - v2
"""Abstract LLM client interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from matrixmint.llm.models import LLMResponse


class BaseLLMClient(ABC):
    """Unified interface for generative providers. One instance per model."""

    @abstractmethod
    async def generate_json(
        self,
        prompt: str,
        response_schema: dict[str, Any] | None = None,
        max_tokens: int = 8192,
        temperature: float = 0.2,
    ) -> LLMResponse:
        """Generate a JSON document for *prompt*."""

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Model this client is bound to."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (google)."""
