# src/llm/prompts.py - v1
"""Prompt construction for the compliance-matrix call."""

from __future__ import annotations

import json

from matrixmint.core.models import AnalysisResult

_INSTRUCTIONS = """\
You are MatrixMint, an RFP compliance analyst.

Given (A) an RFP and (B) a Capability Brief of CB-xx statements, produce a
compliance matrix and proposal outline as STRICT JSON matching the schema below.

Rules:
1) The Capability Brief is the only source of truth. Never invent capabilities.
2) "Covered" requires non-empty evidenceIds and evidenceQuotes copied verbatim
   from the Capability Brief (use "..." to elide, never paraphrase).
3) Extract every requirement. Prefer explicit IDs (FR-01, NFR-01); otherwise
   generate GEN-01, GEN-02, ...
4) For Partial or Missing rows include 1-3 gapsOrQuestions.
5) responseSummary: 1-3 short, business-readable sentences.
6) When unclear, choose Partial with a question.
"""


def result_json_schema() -> dict:
    """JSON schema of the expected response (camelCase keys)."""
    return AnalysisResult.model_json_schema(by_alias=True)


def build_prompt(rfp_text: str, capability_text: str) -> str:
    """Assemble the full prompt for one analysis call."""
    schema = json.dumps(result_json_schema(), indent=2)
    return (
        f"{_INSTRUCTIONS}\n"
        f"=== JSON SCHEMA ===\n{schema}\n\n"
        f"=== RFP TEXT ===\n{rfp_text}\n\n"
        f"=== CAPABILITY BRIEF (Evidence Only) ===\n{capability_text}\n"
    )
