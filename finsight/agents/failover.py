"""Sequential failover across interchangeable backends, with cache and metrics."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence, Set, Union

from ..cache import ChartCache, cache_key
from ..metrics import (
    CACHE_HITS,
    CACHE_MISSES,
    ERRORS_TOTAL,
    REQUEST_DURATION,
    REQUESTS_TOTAL,
    MetricsSink,
    NullMetrics,
)
from .base import Backend, error_code

logger = logging.getLogger(__name__)

FALLBACK_SOURCE = "fallback"

Fallback = Union[Any, Callable[[Any], Any]]


@dataclass
class GenerationAttemptResult:
    backend_name: str
    succeeded: bool
    duration_ms: float
    error_code: Optional[str] = None


@dataclass
class FailoverOutcome:
    value: Any
    source: str
    attempts: List[GenerationAttemptResult] = field(default_factory=list)
    from_cache: bool = False
    used_fallback: bool = False


class FailoverRunner:
    """Tries backends one at a time until one delivers.

    Successful values are cached under ``namespace:sha256(payload)``; the
    write is scheduled and never awaited by the caller. When every backend
    fails the deterministic ``fallback`` is returned instead of an error.
    """

    def __init__(
        self,
        *,
        cache: Optional[ChartCache] = None,
        metrics: Optional[MetricsSink] = None,
        namespace: str = "ai_response",
        ttl: int = 3600,
    ) -> None:
        self.cache = cache
        self.metrics = metrics or NullMetrics()
        self.namespace = namespace
        self.ttl = ttl
        self._pending: Set[asyncio.Task] = set()

    # -----------------------------
    # Cache
    # -----------------------------
    async def _cache_get(self, key: str) -> Optional[Any]:
        if self.cache is None:
            return None
        try:
            return await self.cache.get(key)
        except Exception as exc:
            logger.warning("Leitura do cache falhou para %s: %s", key, exc)
            return None

    async def _cache_set(self, key: str, value: Any) -> None:
        try:
            await self.cache.set(key, value, self.ttl)
        except Exception as exc:
            logger.warning("Escrita no cache falhou para %s: %s", key, exc)

    def _schedule_write(self, key: str, value: Any) -> None:
        if self.cache is None:
            return
        task = asyncio.create_task(self._cache_set(key, value))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for scheduled cache writes (tests and shutdown)."""

        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # -----------------------------
    # Attempts
    # -----------------------------
    def _record(self, attempt: GenerationAttemptResult) -> None:
        status = "success" if attempt.succeeded else "failure"
        self.metrics.increment(REQUESTS_TOTAL, {"service": attempt.backend_name, "status": status})
        self.metrics.observe(REQUEST_DURATION, {"service": attempt.backend_name}, attempt.duration_ms)
        if not attempt.succeeded:
            self.metrics.increment(ERRORS_TOTAL, {"type": "ai_service", "code": attempt.error_code or "unknown"})

    async def run(self, payload: Any, backends: Sequence[Backend], fallback: Fallback) -> FailoverOutcome:
        key = cache_key(self.namespace, payload)
        cached = await self._cache_get(key)
        if isinstance(cached, dict) and "value" in cached:
            self.metrics.increment(CACHE_HITS, {"type": self.namespace})
            return FailoverOutcome(value=cached["value"], source=cached.get("source", "cache"), from_cache=True)
        self.metrics.increment(CACHE_MISSES, {"type": self.namespace})

        attempts: List[GenerationAttemptResult] = []
        for backend in backends:
            started = time.perf_counter()
            try:
                value = await backend.attempt(payload)
            except Exception as exc:
                attempt = GenerationAttemptResult(
                    backend_name=backend.name,
                    succeeded=False,
                    duration_ms=(time.perf_counter() - started) * 1000,
                    error_code=error_code(exc),
                )
                attempts.append(attempt)
                self._record(attempt)
                logger.warning("Backend %s falhou (%s): %s", backend.name, attempt.error_code, exc)
                continue
            attempt = GenerationAttemptResult(
                backend_name=backend.name,
                succeeded=True,
                duration_ms=(time.perf_counter() - started) * 1000,
            )
            attempts.append(attempt)
            self._record(attempt)
            self._schedule_write(key, {"value": value, "source": backend.name})
            return FailoverOutcome(value=value, source=backend.name, attempts=attempts)

        logger.error("Todos os backends (%d) falharam; usando resposta local.", len(attempts))
        value = fallback(payload) if callable(fallback) else fallback
        return FailoverOutcome(value=value, source=FALLBACK_SOURCE, attempts=attempts, used_fallback=True)


async def run_with_failover(
    payload: Any,
    backends: Sequence[Backend],
    fallback: Fallback,
    *,
    cache: Optional[ChartCache] = None,
    metrics: Optional[MetricsSink] = None,
    namespace: str = "ai_response",
    ttl: int = 3600,
) -> FailoverOutcome:
    runner = FailoverRunner(cache=cache, metrics=metrics, namespace=namespace, ttl=ttl)
    return await runner.run(payload, backends, fallback)
