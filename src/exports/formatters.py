# src/exports/formatters.py - v1
"""Human-facing artifacts rendered from a verified AnalysisResult.

Formatters read ``risk_flags`` as-is. "Evidence mismatch" is never
recomputed here; the proof verifier is its single source of truth.
"""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from datetime import date, datetime, timezone

from matrixmint.core.models import EVIDENCE_MISMATCH_FLAG, AnalysisResult, RequirementRow

DEFAULT_BID_SECTIONS = [
    "Solution Overview",
    "Compliance Matrix & Technical Specifications",
    "Implementation Roadmap (30/60/90)",
    "Pricing & Licensing",
    "Risk Management & Mitigations",
    "Support, Training, and Adoption",
]

DEFAULT_DRAFT_SECTIONS = [
    "Solution Overview",
    "Compliance Matrix & Technical Specifications",
    "Implementation Plan (30/60/90)",
    "Pricing & Licensing",
    "Risks & Mitigations",
    "Support & Training",
]

DEFAULT_EXEC_SUMMARY = (
    "MatrixMint Solutions proposes a proof-locked delivery approach that produces "
    "bid-ready compliance artifacts with verifiable evidence quotes, reducing "
    "procurement risk and accelerating submission turnaround."
)

RISKS_CSV_HEADER = ["RequirementID", "Status", "RiskFlags", "GapsOrQuestions", "EvidenceIDs"]

_EMPTY = "—"
_APPENDIX_ROWS_PER_REQ = 2
_LIST_LIMIT = 10


@dataclass(frozen=True)
class ExportStats:
    total: int
    covered: int
    partial: int
    missing: int
    coverage_percent: float
    proof_label: str | None


def proof_label(verified: int, total: int, percent: float) -> str:
    """Format proof counters as ``"83% (5/6)"``."""
    return f"{round(percent)}% ({verified}/{total})"


def compute_stats(result: AnalysisResult) -> ExportStats:
    """Counts from the rows; proof label from the verified summary counters."""
    rows = result.requirements
    total = len(rows) or result.summary.total_requirements
    covered = sum(1 for r in rows if r.status == "Covered")
    partial = sum(1 for r in rows if r.status == "Partial")
    missing = sum(1 for r in rows if r.status == "Missing")
    coverage = covered / total * 100 if rows else result.summary.coverage_percent
    s = result.summary
    return ExportStats(
        total=total,
        covered=covered,
        partial=partial,
        missing=missing,
        coverage_percent=coverage,
        proof_label=proof_label(s.proof_verified_count, s.proof_total_evidence_refs, s.proof_percent),
    )


def risk_severity(flags: list[str]) -> str:
    """Deterministic severity for a risk register entry."""
    if EVIDENCE_MISMATCH_FLAG in flags:
        return "High"
    if "Third-party dependency" in flags or "Ambiguity" in flags:
        return "Medium"
    return "Low"


def _today(today: date | None) -> str:
    return (today or datetime.now(timezone.utc).date()).isoformat()


def _cell(text: str) -> str:
    return text.replace("|", "\\|")


def _md_list(items: list[str]) -> list[str]:
    if not items:
        return [f"- {_EMPTY}"]
    return [f"- {item}" for item in items]


def _numbered(items: list[str]) -> list[str]:
    return [f"{i}. {item}" for i, item in enumerate(items, start=1)]


def _clarifications(rows: list[RequirementRow]) -> list[tuple[RequirementRow, str]]:
    return [(r, q) for r in rows for q in r.gaps_or_questions]


def format_proof_pack(result: AnalysisResult, today: date | None = None) -> str:
    """Compliance proof pack: summary, risks, actions and the full matrix."""
    stats = compute_stats(result)
    s = result.summary

    lines = [
        "# MatrixMint - Compliance Proof Pack",
        "",
        "## Summary",
        f"- **Date:** {_today(today)}",
        f"- **Coverage:** {stats.coverage_percent:.0f}%",
        f"- **Total:** {stats.total}",
        f"- **Covered:** {stats.covered}",
        f"- **Partial:** {stats.partial}",
        f"- **Missing:** {stats.missing}",
        f"- **Proof:** {stats.proof_label or _EMPTY}",
    ]
    if s.proof_notes:
        lines.append("- **Proof Notes:**")
        lines.extend(f"  - {note}" for note in s.proof_notes)

    lines += ["", "## Top Risks", *_md_list(s.top_risks[:_LIST_LIMIT])]
    lines += ["", "## Next Actions", *_md_list(s.next_actions[:_LIST_LIMIT])]
    lines += [
        "",
        "## Compliance Matrix",
        "| ID | Category | Status | Requirement | Response Summary | Evidence IDs | Gaps / Questions | Risk Flags |",
        "|---|---|---|---|---|---|---|---|",
    ]
    for r in result.requirements:
        gaps = _cell("<br/>".join(r.gaps_or_questions)) or _EMPTY
        risks = _cell("<br/>".join(r.risk_flags)) or _EMPTY
        lines.append(
            f"| {r.id} | {r.category} | {r.status} | {_cell(r.text)} | {_cell(r.response_summary)} "
            f"| {', '.join(r.evidence_ids) or _EMPTY} | {gaps} | {risks} |"
        )
    return "\n".join(lines) + "\n\n"


def format_bid_packet(result: AnalysisResult, today: date | None = None) -> str:
    """Bid-ready packet with risk register and a 30/60/90 plan."""
    stats = compute_stats(result)
    rows = result.requirements
    outline = result.proposal_outline

    lines = [
        "# MatrixMint - Bid-Ready Packet",
        f"_Date: {_today(today)}_",
        "",
        "## 1) Executive Snapshot",
        f"**Coverage:** {stats.coverage_percent:.0f}% - Covered {stats.covered} / "
        f"Partial {stats.partial} / Missing {stats.missing} (Total {stats.total})  ",
        f"**Proof:** {stats.proof_label or _EMPTY}",
        "",
        "## 2) Proposal Executive Summary (Draft)",
        outline.executive_summary or DEFAULT_EXEC_SUMMARY,
        "",
        "## 3) Compliance Highlights (Non-Covered / Risk Areas)",
    ]
    non_covered = [r for r in rows if r.status != "Covered"]
    lines += [f"- **{r.id}** ({r.status}): {r.text}" for r in non_covered] or [f"- {_EMPTY}"]

    lines += ["", "## 4) Clarifications & Questions Log"]
    lines += [f"- **{r.id}** - {q}" for r, q in _clarifications(rows)] or [f"- {_EMPTY}"]

    lines += ["", "## 5) Risk Register"]
    flagged = [r for r in rows if r.risk_flags]
    lines += [
        f"- **{risk_severity(r.risk_flags)}** - {', '.join(r.risk_flags)} _(Req: {r.id})_"
        for r in flagged
    ] or [f"- {_EMPTY}"]

    lines += ["", "## 6) 30 / 60 / 90 Day Plan (Derived from Next Actions)"]
    actions = result.summary.next_actions
    if not actions:
        lines.append(f"- {_EMPTY}")
    else:
        lines += ["### Days 0-30", *_md_list(actions[0:2])]
        lines += ["", "### Days 31-60", *_md_list(actions[2:4])]
        lines += ["", "### Days 61-90", *_md_list(actions[4:])]

    lines += ["", "## 7) RFP Response Section Skeleton"]
    if outline.sections:
        lines += _numbered(outline.sections)
    else:
        lines += _md_list(DEFAULT_BID_SECTIONS)

    lines += [
        "",
        "## 8) Proof Appendix (Requirement -> Evidence)",
        "| Requirement | Evidence ID | Evidence Quote |",
        "|---|---|---|",
    ]
    for r in rows:
        if not r.evidence_ids or not r.evidence_quotes:
            continue
        count = min(_APPENDIX_ROWS_PER_REQ, max(len(r.evidence_ids), len(r.evidence_quotes)))
        for i in range(count):
            eid = r.evidence_ids[i] if i < len(r.evidence_ids) else r.evidence_ids[0]
            quote = r.evidence_quotes[i] if i < len(r.evidence_quotes) else r.evidence_quotes[0]
            lines.append(f"| {r.id} | {eid} | {_cell(quote)} |")

    return "\n".join(lines) + "\n\n"


def format_clarifications_email(result: AnalysisResult, today: date | None = None) -> str:
    """Clarification questions as a ready-to-send email body."""
    items = _clarifications(result.requirements)
    lines = [
        "# Clarifications Email",
        f"_Date: {_today(today)}_",
        "",
        "Subject: Clarifications for RFP - Requirements & Integration Details",
        "",
        "Hello Procurement Team,",
        "",
        "Thank you for the opportunity to respond. To ensure our proposal is fully aligned "
        "and implementation-ready, we would appreciate clarification on the items below:",
        "",
    ]
    if items:
        lines += [f"- **{r.id}** ({r.status}) - {q}" for r, q in items]
    else:
        lines.append("- No clarification questions at this time.")
    lines += ["", "Thank you,", "MatrixMint Solutions"]
    return "\n".join(lines) + "\n"


def format_risks_csv(result: AnalysisResult) -> str:
    """One CSV row per requirement carrying a risk flag or an open question."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(RISKS_CSV_HEADER)
    for r in result.requirements:
        flags = "; ".join(r.risk_flags)
        gaps = "; ".join(r.gaps_or_questions)
        if not flags and not gaps:
            continue
        writer.writerow([r.id, r.status, flags, gaps, "; ".join(r.evidence_ids)])
    return buf.getvalue()


def format_proposal_draft(result: AnalysisResult, today: date | None = None) -> str:
    """Proposal draft: executive summary and section list."""
    outline = result.proposal_outline
    lines = [
        "# MatrixMint - Proposal Draft",
        f"_Date: {_today(today)}_",
        "",
        "## Executive Summary",
        outline.executive_summary or _EMPTY,
        "",
        "## Sections",
        *_numbered(outline.sections or DEFAULT_DRAFT_SECTIONS),
        "",
        "## Notes",
        "- This draft is generated from the analyzed compliance result and is intended to be "
        "refined with customer-specific context (pricing, deployment, SLAs).",
        "- All capability statements should remain evidence-anchored.",
    ]
    return "\n".join(lines) + "\n\n"


def format_json(result: AnalysisResult) -> str:
    """Result as pretty-printed camelCase JSON."""
    return result.model_dump_json(by_alias=True, indent=2)
