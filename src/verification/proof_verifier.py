# src/verification/proof_verifier.py - v1
"""Grounding check for evidence quotes against the capability brief.

Every quote on a Covered row must be locatable in the capability text after
normalization. Matching rules, in order:

  1. exact substring of the normalized text;
  2. for quotes elided with ``...`` or ``…``, every fragment found in strictly
     increasing, non-overlapping order;
  3. one retry of rules 1-2 with a single trailing period removed.

Rows with an unlocatable quote get the "Evidence mismatch" risk flag. This
module is the only place that flag is added; exports read it as-is.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from matrixmint.core.models import (
    EVIDENCE_MISMATCH_FLAG,
    AnalysisResult,
    RequirementRow,
    ResultSummary,
)

logger = logging.getLogger(__name__)

_CHAR_MAP = str.maketrans(
    {
        "‘": "'", "’": "'", "‚": "'", "‛": "'", "′": "'",
        "“": '"', "”": '"', "„": '"', "‟": '"', "″": '"',
        "‐": "-", "‑": "-", "‒": "-", "–": "-", "—": "-",
        "―": "-", "−": "-",
        " ": " ",
    }
)
_WHITESPACE_RE = re.compile(r"\s+")
_ELLIPSIS_RE = re.compile(r"\.\.\.|…")
_NOTE_QUOTE_CHARS = 80


def normalize_for_proof(text: str | None) -> str:
    """Strip CR, unify quotes/dashes, collapse whitespace, case-fold, trim."""
    value = (text or "").replace("\r", "").translate(_CHAR_MAP)
    value = _WHITESPACE_RE.sub(" ", value)
    return value.casefold().strip()


def _fragments_in_order(fragments: list[str], source: str) -> bool:
    pos = 0
    for fragment in fragments:
        idx = source.find(fragment, pos)
        if idx < 0:
            return False
        pos = idx + len(fragment)
    return True


def _matches(quote: str, source: str) -> bool:
    if quote in source:
        return True
    if _ELLIPSIS_RE.search(quote):
        fragments = [f.strip() for f in _ELLIPSIS_RE.split(quote)]
        fragments = [f for f in fragments if f]
        return bool(fragments) and _fragments_in_order(fragments, source)
    return False


def quote_is_grounded(quote: str, normalized_source: str) -> bool:
    """Whether *quote* is locatable in an already-normalized source text."""
    q = normalize_for_proof(quote)
    if not q:
        return False
    if _matches(q, normalized_source):
        return True
    if q.endswith(".") and not q.endswith(".."):
        stripped = q[:-1].rstrip()
        return bool(stripped) and _matches(stripped, normalized_source)
    return False


@dataclass
class ProofReport:
    """Aggregate outcome of one verification pass."""

    verified_count: int = 0
    total_evidence_refs: int = 0
    notes: list[str] = field(default_factory=list)
    mismatched_ids: list[str] = field(default_factory=list)

    @property
    def percent(self) -> float:
        if not self.total_evidence_refs:
            return 0.0
        return round(self.verified_count / self.total_evidence_refs * 100, 1)

    @property
    def all_verified(self) -> bool:
        return self.total_evidence_refs > 0 and self.verified_count == self.total_evidence_refs


class ProofVerifier:
    """Verifies evidence quotes and stamps proof counters onto a result."""

    def verify(self, result: AnalysisResult, evidence_text: str) -> tuple[AnalysisResult, ProofReport]:
        """Return a verified copy of *result* and the proof report.

        Incoming "Evidence mismatch" flags are discarded and recomputed, so
        verifying an already-verified result is idempotent.
        """
        source = normalize_for_proof(evidence_text)
        report = ProofReport()
        rows: list[RequirementRow] = []

        for row in result.requirements:
            flags = [f for f in row.risk_flags if f != EVIDENCE_MISMATCH_FLAG]
            if row.status == "Covered":
                if not row.evidence_quotes:
                    report.notes.append(f"{row.id}: Covered without evidence quotes.")
                missing = self._check_row(row, source, report)
                if missing:
                    flags.append(EVIDENCE_MISMATCH_FLAG)
                    report.mismatched_ids.append(row.id)
                    for quote in missing:
                        report.notes.append(
                            f'{row.id}: quote not found in capability brief: "{quote[:_NOTE_QUOTE_CHARS]}"'
                        )
            rows.append(row.model_copy(update={"risk_flags": flags}))

        if not report.total_evidence_refs:
            report.notes.append("No evidence references to verify.")

        summary = _recompute_summary(result.summary, rows, report)
        outline = result.proposal_outline.model_copy(
            update={
                "evidence_verified": report.all_verified,
                "evidence_verification_notes": list(report.notes),
            }
        )

        if report.mismatched_ids:
            logger.info(
                "Proof check: %d/%d quotes verified, mismatches on %s",
                report.verified_count, report.total_evidence_refs,
                ", ".join(report.mismatched_ids),
            )

        verified = result.model_copy(
            update={"summary": summary, "requirements": rows, "proposal_outline": outline}
        )
        return verified, report

    @staticmethod
    def _check_row(row: RequirementRow, source: str, report: ProofReport) -> list[str]:
        missing: list[str] = []
        for quote in row.evidence_quotes:
            report.total_evidence_refs += 1
            if quote_is_grounded(quote, source):
                report.verified_count += 1
            else:
                missing.append(quote)
        return missing


def _recompute_summary(
    summary: ResultSummary, rows: list[RequirementRow], report: ProofReport
) -> ResultSummary:
    total = len(rows)
    covered = sum(1 for r in rows if r.status == "Covered")
    partial = sum(1 for r in rows if r.status == "Partial")
    missing = sum(1 for r in rows if r.status == "Missing")
    coverage = round(covered / total * 100, 1) if total else 0.0
    return summary.model_copy(
        update={
            "total_requirements": total,
            "covered_count": covered,
            "partial_count": partial,
            "missing_count": missing,
            "coverage_percent": coverage,
            "proof_verified_count": report.verified_count,
            "proof_total_evidence_refs": report.total_evidence_refs,
            "proof_percent": report.percent,
            "proof_notes": list(report.notes),
        }
    )
