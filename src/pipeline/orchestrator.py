# src/pipeline/orchestrator.py - v2
"""Execution orchestrator: picks the lane that produces a compliance result.

Lanes, per requested mode:
  offline: deterministic analyzer, no cache, no external call.
  cache:   cache hit, else upgrade to live; a failed upgrade degrades offline.
  live:    skip the cache read, call the requested model through the live
           gate, then the secondary model once; failure is reported with a
           429/502/503 status and no data.
  auto:    cache, then live, then offline.

``bust_cache`` skips the cache read and ``clear_cache`` empties both cache
tiers in every non-offline mode; offline never touches the cache. Every result,
whatever its lane, passes through the proof verifier before it is returned,
and live successes are written through to the cache.
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from matrixmint.analysis.offline_analyzer import analyze_offline
from matrixmint.cache.base_cache_store import BaseCacheStore
from matrixmint.cache.fingerprint import derive_cache_key
from matrixmint.cache.models import CacheEnvelope
from matrixmint.config.settings import Settings
from matrixmint.core.clock import Clock, now_ms
from matrixmint.core.models import AnalysisRequest, AnalysisResult, ExecutionMode, InvalidModeError
from matrixmint.llm.base_client import BaseLLMClient
from matrixmint.llm.errors import ProviderError, parse_provider_error
from matrixmint.llm.live_gate import BaseLiveGate
from matrixmint.llm.parsing import parse_analysis_result
from matrixmint.llm.prompts import build_prompt
from matrixmint.llm.quota_tracker import BaseQuotaTracker
from matrixmint.llm.retry import LLMRetryExhausted, RetryConfig, quota_delay_ms, with_retry
from matrixmint.logging.context import log_context, set_lane
from matrixmint.pipeline.models import (
    OFFLINE_MODEL,
    AttemptRecord,
    CacheMeta,
    OrchestrationOutcome,
    OrchestratorMeta,
    QuotaMeta,
)
from matrixmint.verification.proof_verifier import ProofVerifier

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], BaseLLMClient]

_STATUS_BY_KIND = {
    "quota_exceeded": 429,
    "transient": 503,
    "malformed_output": 502,
    "fatal": 502,
}


@dataclass
class _RunState:
    """Mutable accumulator for one request. Attempts are append-only."""

    request: AnalysisRequest
    key: str
    started_ms: int
    attempts: list[AttemptRecord] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    cache: CacheMeta = field(default_factory=CacheMeta)
    blocked_models: list[str] = field(default_factory=list)

    def warn(self, message: str) -> None:
        self.warnings.append(message)
        logger.warning(message)


class ExecutionOrchestrator:
    """Runs an AnalysisRequest through the lane ladder.

    Args:
        settings: Application settings.
        cache: Result cache (memory + disk).
        quota: Per-model quota breaker.
        gate: Serializing, spacing gate around live calls.
        client_factory: Returns the generative client for a model name.
        verifier: Proof verifier (default instance if omitted).
        clock: Wall clock in ms (tests inject a fake).
        sleep: Sleep used between retries (tests inject a no-op).
    """

    def __init__(
        self,
        settings: Settings,
        cache: BaseCacheStore,
        quota: BaseQuotaTracker,
        gate: BaseLiveGate,
        client_factory: ClientFactory,
        verifier: ProofVerifier | None = None,
        clock: Clock | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self._cache = cache
        self._quota = quota
        self._gate = gate
        self._client_factory = client_factory
        self._verifier = verifier or ProofVerifier()
        self._clock = clock or now_ms
        self._sleep = sleep
        self._retry_config = RetryConfig.from_settings(settings)
        self._clients: dict[str, BaseLLMClient] = {}

    async def execute(self, request: AnalysisRequest) -> OrchestrationOutcome:
        """Produce a verified result (or a reported failure) for *request*."""
        key = derive_cache_key(
            request.source_text,
            request.evidence_text,
            request.model_requested,
            self._settings.logic_version,
        )
        run = _RunState(request=request, key=key, started_ms=self._clock())
        run.cache = CacheMeta(key=key)

        with log_context(cache_key=key[:16], lane=None, model=request.model_requested):
            mode = request.mode
            match mode:
                case ExecutionMode.OFFLINE:
                    if request.clear_cache:
                        run.warn("clear_cache ignored in offline mode; cache untouched.")
                    return await self._offline(run, fallback=False)
                case ExecutionMode.LIVE:
                    await self._clear_cache_if_requested(run)
                    return await self._live(run, strict=True)
                case ExecutionMode.CACHE | ExecutionMode.AUTO:
                    await self._clear_cache_if_requested(run)
                    if request.bust_cache:
                        run.warnings.append("Cache read skipped (bust_cache).")
                    else:
                        hit = await self._from_cache(run)
                        if hit is not None:
                            return hit
                        if mode is ExecutionMode.CACHE:
                            run.warn("Cache miss in cache mode; upgrading to live.")
                        else:
                            logger.info("Cache miss; trying live lane")
                    return await self._live(run, strict=False)
                case _:
                    raise InvalidModeError(f"Unhandled execution mode: {mode!r}")

    # ------------------------------------------------------------------
    # Cache lane
    # ------------------------------------------------------------------

    async def _from_cache(self, run: _RunState) -> OrchestrationOutcome | None:
        set_lane("cache")
        t0 = self._clock()
        lookup = await self._cache.lookup(run.key)
        run.cache = CacheMeta(
            hit=lookup.hit, key=run.key, age_seconds=lookup.age_seconds, source=lookup.source
        )
        if not lookup.hit or lookup.entry is None:
            run.attempts.append(
                AttemptRecord(
                    name="cache", ok=False, elapsed_ms=self._clock() - t0, error_preview="cache miss"
                )
            )
            return None

        model_used = lookup.entry.model_used or run.request.model_requested
        run.attempts.append(
            AttemptRecord(
                name="cache", ok=True, http_status=200,
                elapsed_ms=self._clock() - t0, model_used=model_used,
            )
        )
        logger.info("Cache hit (%s, age %ss)", lookup.source, lookup.age_seconds)
        data, _ = self._verifier.verify(lookup.entry.data, run.request.evidence_text)
        return await self._success(run, data, ladder="cache", model_used=model_used)

    # ------------------------------------------------------------------
    # Live lane
    # ------------------------------------------------------------------

    async def _live(self, run: _RunState, strict: bool) -> OrchestrationOutcome:
        primary = run.request.model_requested

        if await self._quota.is_blocked(primary):
            wait_s = await self._quota.retry_after_seconds(primary)
            run.blocked_models.append(primary)
            run.warn(f"Model {primary} is quota-blocked for {wait_s}s; live call skipped.")
            error = ProviderError("quota_exceeded", f"{primary} quota-blocked", http_status=429)
        else:
            try:
                result = await self._call_model(run, primary, "live", self._retry_config)
            except LLMRetryExhausted as e:
                error = e.last_error
                await self._note_failure(run, primary, error)
            else:
                return await self._live_success(run, result, primary, fallback=None)

        if not strict:
            run.warn(f"Live lane failed ({error.kind}); serving offline result.")
            return await self._offline(run, fallback=True)

        secondary = self._settings.secondary_model_for(primary)
        if error.kind != "fatal" and secondary is not None:
            if await self._quota.is_blocked(secondary):
                if secondary not in run.blocked_models:
                    run.blocked_models.append(secondary)
                run.warn(f"Secondary model {secondary} is quota-blocked too; not tried.")
            else:
                single = RetryConfig(max_attempts=1, jitter=False)
                try:
                    result = await self._call_model(run, secondary, "live_secondary", single)
                except LLMRetryExhausted as e:
                    await self._note_failure(run, secondary, e.last_error)
                    if error.kind != "quota_exceeded":
                        error = e.last_error
                else:
                    run.warn(f"Primary model {primary} failed ({error.kind}); served by {secondary}.")
                    return await self._live_success(run, result, secondary, fallback=secondary)

        return await self._live_failure(run, error)

    async def _call_model(
        self, run: _RunState, model: str, name: str, config: RetryConfig
    ) -> AnalysisResult:
        """Call *model* through the gate with retries, recording every attempt.

        Raises:
            LLMRetryExhausted: When the model could not produce a valid result.
        """
        set_lane("live", model)
        client = self._client_for(model)
        prompt = build_prompt(run.request.source_text, run.request.evidence_text)

        async def attempt(n: int) -> AnalysisResult:
            t0 = self._clock()
            try:
                response = await self._gate.run(
                    lambda: client.generate_json(
                        prompt,
                        max_tokens=self._settings.llm_max_output_tokens,
                        temperature=self._settings.llm_temperature,
                    ),
                    timeout_s=self._settings.live_timeout_s,
                )
                result = parse_analysis_result(response.content)
            except Exception as e:  # noqa: BLE001
                err = parse_provider_error(e)
                run.attempts.append(
                    AttemptRecord(
                        name=f"{name}#{n}", ok=False, http_status=err.http_status,
                        elapsed_ms=self._clock() - t0, aborted=err.aborted,
                        model_used=model, error_preview=err.preview,
                    )
                )
                raise err from e
            run.attempts.append(
                AttemptRecord(
                    name=f"{name}#{n}", ok=True, http_status=200,
                    elapsed_ms=self._clock() - t0, model_used=model,
                )
            )
            return result

        return await with_retry(attempt, model=model, config=config, sleep=self._sleep)

    async def _note_failure(self, run: _RunState, model: str, error: ProviderError) -> None:
        if error.kind == "quota_exceeded":
            strikes = await self._quota.record_strike(model)
            await self._quota.block(model, quota_delay_ms(error, strikes, self._settings), error.preview)
            if model not in run.blocked_models:
                run.blocked_models.append(model)
        run.warn(f"Model {model} failed: {error.kind}.")

    async def _live_success(
        self, run: _RunState, result: AnalysisResult, model: str, fallback: str | None
    ) -> OrchestrationOutcome:
        await self._quota.clear_strikes(model)
        data, _ = self._verifier.verify(result, run.request.evidence_text)
        await self._cache.put(
            run.key, CacheEnvelope(saved_at_unix_ms=self._clock(), data=data, model_used=model)
        )
        return await self._success(run, data, ladder="live", model_used=model, fallback=fallback)

    async def _live_failure(self, run: _RunState, error: ProviderError) -> OrchestrationOutcome:
        if run.blocked_models:
            status = 429
            waits = [await self._quota.retry_after_seconds(m) for m in run.blocked_models]
            positive = [w for w in waits if w > 0]
            retry_after = min(positive) if positive else 1
        else:
            status = _STATUS_BY_KIND[error.kind]
            retry_after = None
            if status == 503:
                hint_s = math.ceil(error.retry_delay_ms / 1000) if error.retry_delay_ms else 0
                retry_after = max(1, hint_s, math.ceil(self._settings.retry_max_delay_s))

        message = f"Live analysis failed ({'quota_exceeded' if status == 429 else error.kind})"
        logger.error("%s; status %d", message, status)
        meta = await self._meta(run, ladder="none", model_used=None)
        return OrchestrationOutcome(
            ok=False, status_code=status, meta=meta, error=message, retry_after_seconds=retry_after
        )

    # ------------------------------------------------------------------
    # Offline lane
    # ------------------------------------------------------------------

    async def _offline(self, run: _RunState, fallback: bool) -> OrchestrationOutcome:
        set_lane("offline", OFFLINE_MODEL)
        t0 = self._clock()
        result = analyze_offline(run.request.source_text, run.request.evidence_text)
        data, _ = self._verifier.verify(result, run.request.evidence_text)
        run.attempts.append(
            AttemptRecord(
                name="offline_fallback" if fallback else "offline",
                ok=True, http_status=200,
                elapsed_ms=self._clock() - t0, model_used=OFFLINE_MODEL,
            )
        )

        if fallback and self._settings.cache_offline_fallback:
            existing = await self._cache.lookup(run.key)
            if not existing.hit:
                await self._cache.put(
                    run.key,
                    CacheEnvelope(saved_at_unix_ms=self._clock(), data=data, model_used=OFFLINE_MODEL),
                )
                logger.info("Offline fallback result cached")

        return await self._success(
            run, data, ladder="offline", model_used=OFFLINE_MODEL,
            fallback=OFFLINE_MODEL if fallback else None,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _clear_cache_if_requested(self, run: _RunState) -> None:
        if run.request.clear_cache:
            removed = await self._cache.clear()
            run.warnings.append(f"Cache cleared before run ({removed} disk entries removed).")

    def _client_for(self, model: str) -> BaseLLMClient:
        client = self._clients.get(model)
        if client is None:
            client = self._client_factory(model)
            self._clients[model] = client
        return client

    async def _success(
        self,
        run: _RunState,
        data: AnalysisResult,
        ladder: str,
        model_used: str,
        fallback: str | None = None,
    ) -> OrchestrationOutcome:
        meta = await self._meta(run, ladder=ladder, model_used=model_used, fallback=fallback)
        logger.info("Request served by %s lane (model %s) in %dms", ladder, model_used, meta.elapsed_ms)
        return OrchestrationOutcome(ok=True, status_code=200, data=data, meta=meta)

    async def _meta(
        self, run: _RunState, ladder: str, model_used: str | None, fallback: str | None = None
    ) -> OrchestratorMeta:
        snap = await self._quota.snapshot(run.request.model_requested)
        return OrchestratorMeta(
            mode_requested=run.request.mode,
            ladder_used=ladder,  # type: ignore[arg-type]
            model_used=model_used,
            model_requested=run.request.model_requested,
            fallback_used=fallback,
            elapsed_ms=self._clock() - run.started_ms,
            attempts=list(run.attempts),
            warnings=list(run.warnings),
            cache=run.cache,
            quota=QuotaMeta(
                blocked=snap.blocked,
                blocked_until_unix_ms=snap.blocked_until_unix_ms,
                retry_after_seconds=snap.retry_after_seconds,
                last_error=snap.last_error,
            ),
        )
