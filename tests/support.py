# tests/support.py - v1
"""Test helpers importable from any test module (tests/ is on pythonpath).

Sample texts, a model-shaped result, a fake millisecond clock, fake
provider errors and mock LLM clients.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

from matrixmint.core.models import (
    AnalysisResult,
    ProposalOutline,
    RequirementRow,
    ResultSummary,
)
from matrixmint.llm.models import LLMResponse

PRIMARY_MODEL = "gemini-3-flash-preview"
SECONDARY_MODEL = "gemini-3-pro-preview"
T0_MS = 1_760_000_000_000

RFP_TEXT = """RapidRelief Volunteer Coordination RFP
FR-01: The system must send SMS alerts to volunteers within 5 minutes of an incident.
FR-02: The system must export shift rosters to CSV for county auditors.
NFR-01: The platform must keep 99.9% monthly uptime.
FR-03: The system must integrate with the state third-party payroll vendor.
"""

CAPABILITY_TEXT = """ReliefRoster Capability Brief
CB-01: ReliefRoster sends SMS and email alerts to volunteers within 2 minutes of dispatch.
CB-02: Shift rosters can be exported to CSV and PDF at any time.
CB-03: Hosted on redundant cloud infrastructure with a 99.9% uptime SLA.
"""


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start_ms: int = T0_MS) -> None:
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


def make_result() -> AnalysisResult:
    """Model-shaped result whose Covered quotes all appear in CAPABILITY_TEXT."""
    return AnalysisResult(
        summary=ResultSummary(
            total_requirements=3,
            covered_count=2,
            partial_count=0,
            missing_count=1,
            coverage_percent=66.7,
            top_risks=["FR-03 depends on a payroll vendor"],
            next_actions=[
                "Confirm SMS provider",
                "Share CSV sample",
                "Ask about payroll vendor",
                "Plan uptime report",
                "Schedule demo",
            ],
        ),
        requirements=[
            RequirementRow(
                id="FR-01",
                text="Send SMS alerts to volunteers within 5 minutes.",
                status="Covered",
                response_summary="SMS alerts within 2 minutes.",
                evidence_ids=["CB-01"],
                evidence_quotes=[
                    "ReliefRoster sends SMS and email alerts to volunteers within 2 minutes of dispatch."
                ],
            ),
            RequirementRow(
                id="FR-02",
                text="Export shift rosters to CSV.",
                status="Covered",
                response_summary="CSV export available.",
                evidence_ids=["CB-02"],
                evidence_quotes=["Shift rosters can be exported ... CSV"],
            ),
            RequirementRow(
                id="FR-03",
                text="Integrate with the state payroll vendor.",
                status="Missing",
                gaps_or_questions=["Which payroll vendor API is in use?"],
                risk_flags=["Third-party dependency"],
            ),
        ],
        proposal_outline=ProposalOutline(
            executive_summary="ReliefRoster meets the core alerting and reporting needs.",
            sections=["Overview", "Compliance Matrix"],
        ),
    )


class FakeQuotaError(Exception):
    """Looks like a google.api_core ResourceExhausted carrying RetryInfo."""

    def __init__(self, retry_delay: str | None = "33s") -> None:
        super().__init__("429 RESOURCE_EXHAUSTED: Quota exceeded for generate_content")
        self.code = 429
        self.details = (
            [{"@type": "type.googleapis.com/google.rpc.RetryInfo", "retryDelay": retry_delay}]
            if retry_delay
            else []
        )


class FakeUnavailableError(Exception):
    def __init__(self) -> None:
        super().__init__("503 UNAVAILABLE: The model is overloaded")
        self.code = 503


def llm_response(content: str, model: str = PRIMARY_MODEL) -> LLMResponse:
    return LLMResponse(
        content=content,
        input_tokens=100,
        output_tokens=50,
        model=model,
        provider="google",
        latency_ms=500,
    )


def mock_client(
    model: str = PRIMARY_MODEL, content: str | None = None, error: Exception | None = None
) -> AsyncMock:
    """Mock BaseLLMClient returning *content* or raising *error*."""
    client = AsyncMock()
    if error is not None:
        client.generate_json = AsyncMock(side_effect=error)
    else:
        client.generate_json = AsyncMock(return_value=llm_response(content or "{}", model))
    client.model_name = model
    client.provider_name = "mock"
    return client
