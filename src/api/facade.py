# src/api/facade.py - v2
"""Public API facade: analyze, run, get_run, list_runs, export.

Usage:
    from matrixmint.api.facade import analyze, build_services
    services = build_services()
    response = await analyze(AnalyzeInput(rfp_text=..., capability_text=...), services)

Every call returns a transport-neutral envelope (status code, headers, body)
that an HTTP layer can serve as-is.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable

from matrixmint.api.models import AnalyzeInput, AnalyzeResponse, ExportResponse, RunResponse
from matrixmint.cache.base_cache_store import BaseCacheStore
from matrixmint.cache.cache_factory import create_cache_store
from matrixmint.config.settings import Settings, load_settings
from matrixmint.core.clock import Clock, now_ms
from matrixmint.core.models import AnalysisRequest, AnalysisResult, InvalidModeError, parse_mode
from matrixmint.exports.bundle import (
    ExportFormat,
    UnknownExportFormatError,
    export_filename,
    parse_export_format,
    render_export,
)
from matrixmint.llm.base_client import BaseLLMClient
from matrixmint.llm.client_factory import create_llm_client
from matrixmint.llm.live_gate import AsyncLiveGate, BaseLiveGate
from matrixmint.llm.quota_tracker import BaseQuotaTracker, InMemoryQuotaTracker
from matrixmint.logging.context import log_context
from matrixmint.pipeline.orchestrator import ExecutionOrchestrator
from matrixmint.storage.local_writer import LocalWriter
from matrixmint.storage.models import RunBundle, RunListing
from matrixmint.storage.run_manager import (
    build_orchestrator_block,
    create_run_bundle,
    generate_run_id,
)
from matrixmint.storage.run_store import BaseRunStore, LocalRunStore

logger = logging.getLogger(__name__)

RUN_ID_HEADER = "x-matrixmint-run-id"

_CONTENT_TYPES = {
    ExportFormat.RISKS_CSV: "text/csv; charset=utf-8",
    ExportFormat.JSON: "application/json; charset=utf-8",
}


class InvalidInputError(ValueError):
    """Caller input rejected before any lane runs (HTTP 400)."""


class RunNotFoundError(LookupError):
    """No run with the given id in memory or on disk."""

    def __init__(self, run_id: str) -> None:
        self.run_id = run_id
        super().__init__(f"Run not found: {run_id}")


@dataclass
class Services:
    """Process-wide collaborators, built once and passed by reference."""

    settings: Settings
    cache: BaseCacheStore
    quota: BaseQuotaTracker
    gate: BaseLiveGate
    orchestrator: ExecutionOrchestrator
    run_store: BaseRunStore
    clock: Clock


def build_services(
    settings: Settings | None = None,
    client_factory: Callable[[str], BaseLLMClient] | None = None,
    clock: Clock | None = None,
    cache: BaseCacheStore | None = None,
    quota: BaseQuotaTracker | None = None,
    gate: BaseLiveGate | None = None,
    run_store: BaseRunStore | None = None,
) -> Services:
    """Wire the default implementations from settings.

    Args:
        settings: Application settings. Loaded from .env if None.
        client_factory: Model name -> client. Defaults to the configured provider.
        clock: Wall clock in ms (tests inject a fake).
        cache, quota, gate, run_store: Override individual backends.
    """
    settings = settings or load_settings()
    clock = clock or now_ms

    factory = client_factory or _provider_client_factory(settings)
    cache = cache or create_cache_store(settings, clock=clock)
    quota = quota or InMemoryQuotaTracker(clock=clock)
    gate = gate or AsyncLiveGate(min_gap_ms=settings.live_min_gap_ms)
    if run_store is None:
        writer = LocalWriter(settings.runs_root) if settings.runs_disk_enabled else None
        run_store = LocalRunStore(writer, memory_limit=settings.runs_memory_limit)

    orchestrator = ExecutionOrchestrator(
        settings=settings,
        cache=cache,
        quota=quota,
        gate=gate,
        client_factory=factory,
        clock=clock,
    )
    return Services(
        settings=settings,
        cache=cache,
        quota=quota,
        gate=gate,
        orchestrator=orchestrator,
        run_store=run_store,
        clock=clock,
    )


def to_request(payload: AnalyzeInput, settings: Settings) -> AnalysisRequest:
    """Validate caller input into an AnalysisRequest.

    Raises:
        InvalidInputError: Empty texts, unknown mode, or a model outside the allowed list.
    """
    if not payload.rfp_text.strip():
        raise InvalidInputError("rfpText is required")
    if not payload.capability_text.strip():
        raise InvalidInputError("capabilityText is required")

    model = (payload.model or "").strip() or settings.llm_default_model
    if model not in settings.allowed_models_list:
        raise InvalidInputError(
            f"Model {model!r} is not allowed; expected one of: {', '.join(settings.allowed_models_list)}"
        )
    try:
        mode = parse_mode(payload.mode)
    except InvalidModeError as e:
        raise InvalidInputError(str(e)) from e

    return AnalysisRequest(
        source_text=payload.rfp_text,
        evidence_text=payload.capability_text,
        model_requested=model,
        mode=mode,
        bust_cache=payload.bust_cache,
        clear_cache=payload.clear_cache,
    )


async def analyze(payload: AnalyzeInput, services: Services) -> AnalyzeResponse:
    """Run one analysis through the lane ladder.

    Returns:
        200 with data (live, cache or offline), 400 invalid input,
        429 + Retry-After when live is quota-blocked, 502/503 other live
        failures, 500 unexpected errors.
    """
    try:
        request = to_request(payload, services.settings)
    except InvalidInputError as e:
        return AnalyzeResponse(status_code=400, body=_error_body(str(e)))

    try:
        outcome = await services.orchestrator.execute(request)
    except Exception:
        logger.exception("Analyze failed unexpectedly")
        return AnalyzeResponse(status_code=500, body=_error_body("Internal error"))

    body: dict[str, Any] = {
        "ok": outcome.ok,
        "data": outcome.data.to_wire() if outcome.data is not None else None,
        "meta": outcome.meta.to_wire(),
        "error": outcome.error,
    }
    return AnalyzeResponse(status_code=outcome.status_code, headers=outcome.headers, body=body)


async def run(payload: AnalyzeInput, services: Services) -> RunResponse:
    """Analyze, build all exports, and persist the run for replay."""
    run_id = generate_run_id(services.clock())
    headers = {RUN_ID_HEADER: run_id}

    try:
        request = to_request(payload, services.settings)
    except InvalidInputError as e:
        return RunResponse(status_code=400, headers=headers, body={**_error_body(str(e)), "runId": run_id})

    with log_context(run_id=run_id):
        started_at = _utc(services.clock())
        try:
            outcome = await services.orchestrator.execute(request)
        except Exception:
            logger.exception("Run failed unexpectedly")
            return RunResponse(
                status_code=500, headers=headers, body={**_error_body("Internal error"), "runId": run_id}
            )
        finished_at = _utc(services.clock())

        if not outcome.ok:
            headers.update(outcome.headers)
            block = build_orchestrator_block(run_id, outcome, started_at, finished_at)
            body = {
                "ok": False,
                "error": outcome.error,
                "runId": run_id,
                "orchestrator": block.to_wire(),
                "meta": outcome.meta.to_wire(),
            }
            return RunResponse(status_code=outcome.status_code, headers=headers, body=body)

        bundle = create_run_bundle(run_id, outcome, started_at, finished_at)
        await services.run_store.save_run(bundle)
        logger.info(
            "Run stored: ladder=%s, coverage=%s%%, proof=%s",
            bundle.orchestrator.ladder_used,
            bundle.run_summary.coverage_percent,
            bundle.run_summary.proof_label,
        )
        return RunResponse(status_code=200, headers=headers, body={"ok": True, **bundle.to_wire()})


async def get_run(run_id: str, services: Services) -> RunBundle:
    """Fetch a stored run.

    Raises:
        RunNotFoundError: If the run is unknown (or the id is malformed).
    """
    bundle = await services.run_store.get_run(run_id)
    if bundle is None:
        raise RunNotFoundError(run_id)
    return bundle


async def list_runs(services: Services, limit: int | None = None) -> list[RunListing]:
    """Newest-first run summaries."""
    n = limit if limit is not None else services.settings.runs_list_limit
    return await services.run_store.list_runs(max(1, n))


def export_result(
    result: AnalysisResult | dict[str, Any],
    fmt: str | ExportFormat,
    today: date | None = None,
) -> ExportResponse:
    """Render one export format for a result (camelCase dict accepted)."""
    try:
        export_format = parse_export_format(fmt)
        parsed = result if isinstance(result, AnalysisResult) else AnalysisResult.model_validate(result)
    except (UnknownExportFormatError, ValueError) as e:
        return ExportResponse(status_code=400, body=str(e))

    day = today or datetime.now(timezone.utc).date()
    return ExportResponse(
        status_code=200,
        headers={
            "Content-Type": _CONTENT_TYPES.get(export_format, "text/markdown; charset=utf-8"),
            "Content-Disposition": f'attachment; filename="{export_filename(export_format, day)}"',
        },
        body=render_export(parsed, export_format, day),
    )


def _provider_client_factory(settings: Settings) -> Callable[[str], BaseLLMClient]:
    def factory(model: str) -> BaseLLMClient:
        return create_llm_client(settings.llm_provider, model, settings)

    return factory


def _error_body(message: str) -> dict[str, Any]:
    return {"ok": False, "data": None, "meta": None, "error": message}


def _utc(unix_ms: int) -> datetime:
    return datetime.fromtimestamp(unix_ms / 1000, tz=timezone.utc)
