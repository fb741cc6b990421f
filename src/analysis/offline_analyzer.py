# src/analysis/offline_analyzer.py - v1
"""Deterministic offline analysis: no external calls, same inputs, same output.

Requirements are read from the RFP as ``FR-xx`` / ``NFR-xx`` lines (falling
back to "must/shall/should" sentences, numbered ``GEN-xx``). Capability
statements are read from the brief as ``CB-xx`` lines (falling back to
non-empty lines, numbered ``CB-xx``). Each requirement is matched to the
capability statements by keyword overlap:

- overlap >= COVERED_THRESHOLD: Covered, quoting the best statements;
- overlap >= PARTIAL_THRESHOLD: Partial, quoting the best statement;
- otherwise: Missing.

Quotes are copied verbatim from the brief so the proof check can locate them.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from matrixmint.core.models import (
    AnalysisResult,
    ProposalOutline,
    RequirementRow,
    ResultSummary,
)

logger = logging.getLogger(__name__)

COVERED_THRESHOLD = 0.5
PARTIAL_THRESHOLD = 0.2
MAX_EVIDENCE_PER_ROW = 2
MAX_TOP_RISKS = 5

DEFAULT_SECTIONS = [
    "Solution Overview",
    "Compliance Matrix & Technical Specifications",
    "Implementation Roadmap (30/60/90)",
    "Pricing & Licensing",
    "Risk Management & Mitigations",
    "Support, Training, and Adoption",
]

_REQ_LINE_RE = re.compile(
    r"^\s*(?:[-*•]\s*)?(?P<id>(?:NFR|FR)-?\d+)\s*[:.)\-–—]?\s*(?P<text>.+?)\s*$",
    re.IGNORECASE,
)
_CAP_LINE_RE = re.compile(
    r"^\s*(?:[-*•]\s*)?(?P<id>CB-?\d+)\s*[:.)\-–—]?\s*(?P<text>.+?)\s*$",
    re.IGNORECASE,
)
_MODAL_RE = re.compile(r"\b(must|shall|should|required|requires)\b", re.IGNORECASE)
_BULLET_RE = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s*")
_WORD_RE = re.compile(r"[a-z0-9]+")
_THIRD_PARTY_RE = re.compile(r"\b(third[- ]party|partner|vendor|integrat\w*|external)\b", re.IGNORECASE)

_STOPWORDS = frozenset(
    """
    a an and are as at be by can for from has have in into is it its of on or
    our shall should must that the their them this to via we will with within
    all any each per such than then these those system solution platform
    provide provides support supports able ability required requires use used
    """.split()
)


@dataclass(frozen=True)
class _Statement:
    id: str
    text: str
    tokens: frozenset[str]


def _tokens(text: str) -> frozenset[str]:
    words = _WORD_RE.findall(text.lower())
    return frozenset(w for w in words if len(w) > 2 and w not in _STOPWORDS)


def _canonical_id(raw: str) -> str:
    upper = raw.upper()
    if "-" not in upper:
        upper = re.sub(r"^([A-Z]+)(\d+)$", r"\1-\2", upper)
    return upper


def parse_requirements(rfp_text: str) -> list[tuple[str, str]]:
    """Extract ``(id, text)`` pairs from the RFP, in document order."""
    lines = [ln for ln in rfp_text.replace("\r", "").split("\n") if ln.strip()]

    found: list[tuple[str, str]] = []
    seen: set[str] = set()
    for line in lines:
        m = _REQ_LINE_RE.match(line)
        if m is None:
            continue
        req_id = _canonical_id(m.group("id"))
        if req_id in seen:
            continue
        seen.add(req_id)
        found.append((req_id, m.group("text")))
    if found:
        return found

    generic = [_BULLET_RE.sub("", ln).strip() for ln in lines if _MODAL_RE.search(ln)]
    return [(f"GEN-{i:02d}", text) for i, text in enumerate(generic, start=1) if text]


def parse_capabilities(capability_text: str) -> list[_Statement]:
    """Extract capability statements from the brief, in document order."""
    lines = [ln for ln in capability_text.replace("\r", "").split("\n") if ln.strip()]

    found: list[_Statement] = []
    for line in lines:
        m = _CAP_LINE_RE.match(line)
        if m is not None:
            text = m.group("text")
            found.append(_Statement(_canonical_id(m.group("id")), text, _tokens(text)))
    if found:
        return found

    statements = []
    for i, line in enumerate(lines, start=1):
        text = _BULLET_RE.sub("", line).strip()
        if text:
            statements.append(_Statement(f"CB-{i:02d}", text, _tokens(text)))
    return statements


def _category_for(req_id: str) -> str:
    return "NonFunctional" if req_id.startswith("NFR") else "Functional"


def _rank(req_tokens: frozenset[str], capabilities: list[_Statement]) -> list[tuple[float, _Statement]]:
    if not req_tokens:
        return []
    scored = []
    for cap in capabilities:
        overlap = len(req_tokens & cap.tokens)
        if overlap:
            scored.append((overlap / len(req_tokens), cap))
    # Stable on ties: document order wins.
    scored.sort(key=lambda pair: pair[0], reverse=True)
    return scored


def _analyze_row(req_id: str, text: str, capabilities: list[_Statement]) -> RequirementRow:
    ranked = _rank(_tokens(text), capabilities)
    best_score = ranked[0][0] if ranked else 0.0

    risk_flags: list[str] = []
    if _THIRD_PARTY_RE.search(text):
        risk_flags.append("Third-party dependency")

    if best_score >= COVERED_THRESHOLD:
        evidence = [cap for score, cap in ranked[:MAX_EVIDENCE_PER_ROW] if score >= PARTIAL_THRESHOLD]
        return RequirementRow(
            id=req_id,
            category=_category_for(req_id),
            text=text,
            status="Covered",
            response_summary=f"Addressed by {', '.join(c.id for c in evidence)}.",
            evidence_ids=[c.id for c in evidence],
            evidence_quotes=[c.text for c in evidence],
            risk_flags=risk_flags,
        )

    if best_score >= PARTIAL_THRESHOLD:
        cap = ranked[0][1]
        return RequirementRow(
            id=req_id,
            category=_category_for(req_id),
            text=text,
            status="Partial",
            response_summary=f"Partially addressed by {cap.id}.",
            evidence_ids=[cap.id],
            evidence_quotes=[cap.text],
            gaps_or_questions=[f"Confirm the full scope expected for {req_id} beyond {cap.id}."],
            risk_flags=risk_flags + ["Weak evidence"],
        )

    return RequirementRow(
        id=req_id,
        category=_category_for(req_id),
        text=text,
        status="Missing",
        response_summary="No matching capability statement found.",
        gaps_or_questions=[f"No capability statement addresses {req_id}; clarify scope or plan delivery."],
        risk_flags=risk_flags + ["Ambiguity"],
    )


def _next_actions(rows: list[RequirementRow]) -> list[str]:
    actions: list[str] = []
    missing = [r.id for r in rows if r.status == "Missing"]
    partial = [r.id for r in rows if r.status == "Partial"]
    third_party = [r.id for r in rows if "Third-party dependency" in r.risk_flags]
    if missing:
        actions.append(f"Send clarification questions for {', '.join(missing)}.")
    if partial:
        actions.append(f"Strengthen capability evidence for {', '.join(partial)}.")
    if third_party:
        actions.append(f"Confirm partner and integration commitments for {', '.join(third_party)}.")
    actions.append("Review the compliance matrix with the delivery lead.")
    actions.append("Re-run the analysis live once quota allows to refine responses.")
    return actions


def analyze_offline(rfp_text: str, capability_text: str) -> AnalysisResult:
    """Build a compliance matrix from the two texts without any external call.

    Args:
        rfp_text: Requirements document.
        capability_text: Capability brief the evidence must come from.

    Returns:
        AnalysisResult with summary counters filled in. Proof counters are
        left for the verifier.
    """
    requirements = parse_requirements(rfp_text)
    capabilities = parse_capabilities(capability_text)
    rows = [_analyze_row(req_id, text, capabilities) for req_id, text in requirements]

    total = len(rows)
    covered = sum(1 for r in rows if r.status == "Covered")
    partial = sum(1 for r in rows if r.status == "Partial")
    missing = total - covered - partial
    coverage = round(covered / total * 100, 1) if total else 0.0

    top_risks = [
        f"{r.id} ({r.status}): {r.text[:80]}" for r in rows if r.status != "Covered"
    ][:MAX_TOP_RISKS]

    logger.info(
        "Offline analysis: %d requirements, %d capability statements, %d covered",
        total, len(capabilities), covered,
    )

    return AnalysisResult(
        summary=ResultSummary(
            total_requirements=total,
            covered_count=covered,
            partial_count=partial,
            missing_count=missing,
            coverage_percent=coverage,
            top_risks=top_risks,
            next_actions=_next_actions(rows),
        ),
        requirements=rows,
        proposal_outline=ProposalOutline(
            executive_summary=(
                f"Our response covers {covered} of {total} requirements outright "
                f"and {partial} partially, each anchored to quoted capability statements."
            ),
            sections=list(DEFAULT_SECTIONS),
        ),
    )
