# src/exports/bundle.py - v1
"""Export registry: render one format, or the full bundle attached to a run."""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Callable

from matrixmint.core.models import AnalysisResult
from matrixmint.exports.formatters import (
    format_bid_packet,
    format_clarifications_email,
    format_json,
    format_proof_pack,
    format_proposal_draft,
    format_risks_csv,
)


class ExportFormat(str, Enum):
    PROOFPACK_MD = "proofpack_md"
    BIDPACKET_MD = "bidpacket_md"
    CLARIFICATIONS_EMAIL_MD = "clarifications_email_md"
    RISKS_CSV = "risks_csv"
    PROPOSAL_DRAFT_MD = "proposal_draft_md"
    JSON = "json"


class UnknownExportFormatError(ValueError):
    """Raised for a format name outside ExportFormat."""


_RENDERERS: dict[ExportFormat, Callable[[AnalysisResult, date | None], str]] = {
    ExportFormat.PROOFPACK_MD: format_proof_pack,
    ExportFormat.BIDPACKET_MD: format_bid_packet,
    ExportFormat.CLARIFICATIONS_EMAIL_MD: format_clarifications_email,
    ExportFormat.RISKS_CSV: lambda result, _today: format_risks_csv(result),
    ExportFormat.PROPOSAL_DRAFT_MD: format_proposal_draft,
    ExportFormat.JSON: lambda result, _today: format_json(result),
}

# Keys of the exports block in a run bundle.
BUNDLE_KEYS: dict[str, ExportFormat] = {
    "proofpack": ExportFormat.PROOFPACK_MD,
    "bidpacket": ExportFormat.BIDPACKET_MD,
    "clarificationsEmail": ExportFormat.CLARIFICATIONS_EMAIL_MD,
    "risksCsv": ExportFormat.RISKS_CSV,
    "proposalDraft": ExportFormat.PROPOSAL_DRAFT_MD,
}

_EXTENSIONS = {ExportFormat.RISKS_CSV: "csv", ExportFormat.JSON: "json"}


def parse_export_format(value: str | ExportFormat) -> ExportFormat:
    if isinstance(value, ExportFormat):
        return value
    try:
        return ExportFormat(value.strip().lower())
    except ValueError:
        allowed = ", ".join(f.value for f in ExportFormat)
        raise UnknownExportFormatError(
            f"Unknown export format {value!r}; expected one of: {allowed}"
        ) from None


def render_export(
    result: AnalysisResult, fmt: str | ExportFormat, today: date | None = None
) -> str:
    """Render a single export format.

    Raises:
        UnknownExportFormatError: If *fmt* is not a known format.
    """
    return _RENDERERS[parse_export_format(fmt)](result, today)


def build_export_bundle(result: AnalysisResult, today: date | None = None) -> dict[str, str]:
    """All five run artifacts keyed as they appear in a run bundle."""
    return {key: _RENDERERS[fmt](result, today) for key, fmt in BUNDLE_KEYS.items()}


def export_filename(fmt: str | ExportFormat, today: date) -> str:
    """Download file name, e.g. ``matrixmint-risks_csv-2026-01-31.csv``."""
    f = parse_export_format(fmt)
    return f"matrixmint-{f.value}-{today.isoformat()}.{_EXTENSIONS.get(f, 'md')}"
