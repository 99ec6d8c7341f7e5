"""
Pytest fixtures for the chart recovery pipeline tests.
"""

from typing import Any, List

import pytest
from langchain_core.language_models import FakeListChatModel

from finsight.cache import InMemoryCache
from finsight.metrics import InMemoryMetrics


# End-to-end sample: one bar block between two lines of prose
SCENARIO_TEXT = (
    "Расходы по месяцам\n"
    "---VISUALIZATION---\n"
    "Тип: столбчатая диаграмма\n"
    "Заголовок: Расходы\n"
    "Данные:\n"
    "- Январь: 1000\n"
    "- Февраль: 2000\n"
    "---ENDVISUALIZATION---\n"
    "Итог."
)

VALID_MARKUP = (
    '<ResponsiveContainer width="100%" height={300}>'
    "<BarChart data={[{name: 'Январь', value: 1000}]}>"
    '<XAxis dataKey="name" /><YAxis />'
    "<Tooltip formatter={(value) => value.toLocaleString()} />"
    '<Bar dataKey="value" fill="#8884d8" />'
    "</BarChart></ResponsiveContainer>"
)


class ScriptedBackend:
    """Backend that replays a list of outcomes; exceptions are raised, anything else returned."""

    def __init__(self, name: str, outcomes: List[Any]):
        self.name = name
        self.outcomes = list(outcomes)
        self.calls = 0

    async def attempt(self, payload: Any) -> Any:
        self.calls += 1
        outcome = self.outcomes.pop(0) if self.outcomes else RuntimeError("no more outcomes")
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def scenario_text() -> str:
    return SCENARIO_TEXT


@pytest.fixture
def valid_markup() -> str:
    return VALID_MARKUP


@pytest.fixture
def metrics() -> InMemoryMetrics:
    return InMemoryMetrics()


@pytest.fixture
def cache() -> InMemoryCache:
    return InMemoryCache()


@pytest.fixture
def scripted_backend():
    """Factory for :class:`ScriptedBackend`."""

    def _make(name: str, *outcomes: Any) -> ScriptedBackend:
        return ScriptedBackend(name, list(outcomes))

    return _make


@pytest.fixture
def fake_chat():
    """Factory for a LangChain fake chat model answering with the given replies in order."""

    def _make(*responses: str) -> FakeListChatModel:
        return FakeListChatModel(responses=list(responses))

    return _make
