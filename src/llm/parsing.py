# src/llm/parsing.py - v1
"""Tolerant JSON extraction and schema validation of model output."""

from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError

from matrixmint.core.models import AnalysisResult
from matrixmint.llm.errors import MalformedOutputError


def safe_json_parse(raw: str | None) -> Any:
    """Parse model output, falling back to the outermost ``{...}`` slice.

    Raises:
        MalformedOutputError: If no JSON object can be recovered.
    """
    trimmed = (raw or "").strip()
    if not trimmed:
        raise MalformedOutputError("Empty model response")

    try:
        return json.loads(trimmed)
    except json.JSONDecodeError:
        pass

    first = trimmed.find("{")
    last = trimmed.rfind("}")
    if first != -1 and last > first:
        try:
            return json.loads(trimmed[first : last + 1])
        except json.JSONDecodeError as e:
            raise MalformedOutputError(f"Model response is not valid JSON: {e}") from e
    raise MalformedOutputError("Model response contains no JSON object")


def parse_analysis_result(raw: str | None) -> AnalysisResult:
    """Parse and validate model output into an AnalysisResult.

    Raises:
        MalformedOutputError: On invalid JSON or schema mismatch.
    """
    payload = safe_json_parse(raw)
    if not isinstance(payload, dict):
        raise MalformedOutputError("Model response is not a JSON object")
    try:
        return AnalysisResult.model_validate(payload)
    except ValidationError as e:
        raise MalformedOutputError(
            f"Model response failed schema validation ({e.error_count()} errors)"
        ) from e
