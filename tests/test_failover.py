from unittest.mock import AsyncMock, MagicMock

import pytest

from finsight.agents.base import EmptyResponseError, error_code
from finsight.agents.failover import FALLBACK_SOURCE, FailoverRunner, run_with_failover
from finsight.cache import cache_key
from finsight.metrics import CACHE_HITS, CACHE_MISSES, ERRORS_TOTAL, REQUEST_DURATION, REQUESTS_TOTAL


class RateLimited(Exception):
    status_code = 429


@pytest.mark.asyncio
async def test_first_success_wins_and_later_backends_are_skipped(scripted_backend, metrics, cache):
    a = scripted_backend("A", TimeoutError("timeout"))
    b = scripted_backend("B", "answer from B")
    c = scripted_backend("C", "answer from C")
    runner = FailoverRunner(cache=cache, metrics=metrics, namespace="aiResponse")

    outcome = await runner.run({"prompt": "q"}, [a, b, c], "fallback text")

    assert outcome.value == "answer from B"
    assert outcome.source == "B"
    assert not outcome.used_fallback
    assert [(x.backend_name, x.succeeded) for x in outcome.attempts] == [("A", False), ("B", True)]
    assert outcome.attempts[0].error_code == "TimeoutError"
    assert c.calls == 0
    assert metrics.count(REQUESTS_TOTAL, service="A", status="failure") == 1
    assert metrics.count(REQUESTS_TOTAL, service="B", status="success") == 1
    assert metrics.count(REQUESTS_TOTAL, service="C") == 0
    assert metrics.count(ERRORS_TOTAL, type="ai_service") == 1
    assert len(metrics.samples(REQUEST_DURATION)) == 2


@pytest.mark.asyncio
async def test_all_backends_failing_returns_fallback(scripted_backend, metrics):
    a = scripted_backend("A", RuntimeError("boom"))
    b = scripted_backend("B", EmptyResponseError("empty"))

    outcome = await run_with_failover({"prompt": "q"}, [a, b], lambda payload: f"local:{payload['prompt']}", metrics=metrics)

    assert outcome.value == "local:q"
    assert outcome.source == FALLBACK_SOURCE
    assert outcome.used_fallback
    assert metrics.count(ERRORS_TOTAL, code="empty_response") == 1
    assert metrics.count(ERRORS_TOTAL) == 2


@pytest.mark.asyncio
async def test_no_backends_goes_straight_to_fallback(metrics):
    outcome = await run_with_failover("payload", [], "static", metrics=metrics)
    assert outcome.value == "static"
    assert outcome.attempts == []


@pytest.mark.asyncio
async def test_successful_value_is_served_from_cache(scripted_backend, metrics, cache):
    runner = FailoverRunner(cache=cache, metrics=metrics, namespace="visualization", ttl=60)
    backend = scripted_backend("B", {"markup": "<x/>"})

    first = await runner.run({"title": "T"}, [backend], None)
    await runner.drain()
    second = await runner.run({"title": "T"}, [backend], None)

    assert first.from_cache is False
    assert second.from_cache is True
    assert second.value == {"markup": "<x/>"}
    assert second.source == "B"
    assert backend.calls == 1
    assert metrics.count(CACHE_MISSES, type="visualization") == 1
    assert metrics.count(CACHE_HITS, type="visualization") == 1
    assert await cache.get(cache_key("visualization", {"title": "T"})) == {"value": {"markup": "<x/>"}, "source": "B"}


@pytest.mark.asyncio
async def test_cache_errors_never_fail_the_request(scripted_backend, metrics):
    broken = MagicMock()
    broken.get = AsyncMock(side_effect=ConnectionError("down"))
    broken.set = AsyncMock(side_effect=ConnectionError("down"))
    runner = FailoverRunner(cache=broken, metrics=metrics)

    outcome = await runner.run("q", [scripted_backend("A", "ok")], "fallback")
    await runner.drain()

    assert outcome.value == "ok"
    broken.set.assert_awaited_once()


@pytest.mark.asyncio
async def test_http_status_is_used_as_error_code(scripted_backend, metrics):
    await run_with_failover("q", [scripted_backend("A", RateLimited())], "x", metrics=metrics)
    assert metrics.count(ERRORS_TOTAL, code="429") == 1


def test_error_code_prefers_explicit_code():
    assert error_code(EmptyResponseError("x")) == "empty_response"
    assert error_code(RateLimited()) == "429"
    assert error_code(ValueError("x")) == "ValueError"
