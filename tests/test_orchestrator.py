import json

import pytest

from finsight.agents.context import AnalysisRequest, AnalysisResponse
from finsight.agents.orchestrator import VisualizationOrchestrator
from finsight.agents.prompts import FALLBACK_MESSAGE
from finsight.agents.visualization import ChartCodeBackend
from finsight.cache import InMemoryCache
from finsight.config import Settings
from finsight.domain.files import UploadedFile
from finsight.metrics import VISUALIZATIONS_TOTAL


@pytest.mark.asyncio
async def test_scenario_without_markup(scenario_text):
    orchestrator = VisualizationOrchestrator(generate_markup=False)
    response = await orchestrator.build_response(scenario_text)

    assert response.response_text == "Расходы по месяцам\n---VISUALIZATION_PLACEHOLDER_0---\nИтог."
    assert len(response.charts) == 1
    chart = response.charts[0]
    assert chart.type == "bar"
    assert chart.title == "Расходы"
    assert chart.data == [{"name": "Январь", "value": 1000}, {"name": "Февраль", "value": 2000}]
    assert chart.placeholder_token == "---VISUALIZATION_PLACEHOLDER_0---"
    assert chart.markup is None


@pytest.mark.asyncio
async def test_local_markup_when_no_chart_backend(scenario_text, metrics):
    orchestrator = VisualizationOrchestrator(metrics=metrics)
    response = await orchestrator.build_response(scenario_text)

    chart = response.charts[0]
    assert chart.valid is True
    assert "<BarChart" in chart.markup
    assert metrics.count(VISUALIZATIONS_TOTAL, type="bar", status="fallback") == 1


@pytest.mark.asyncio
async def test_chart_backend_markup_is_cached(scenario_text, fake_chat, valid_markup, metrics, cache):
    backend = ChartCodeBackend(name="chart", llm=fake_chat(json.dumps({"jsx": valid_markup})))
    orchestrator = VisualizationOrchestrator(chart_backends=[backend], cache=cache, metrics=metrics)

    first = await orchestrator.build_response(scenario_text)
    await orchestrator.drain()
    second = await orchestrator.build_response(scenario_text)

    assert first.charts[0].markup == valid_markup
    assert second.charts[0].markup == valid_markup
    assert metrics.count(VISUALIZATIONS_TOTAL, status="generated") == 1
    assert metrics.count(VISUALIZATIONS_TOTAL, status="cached") == 1


@pytest.mark.asyncio
async def test_sections_are_classified_when_there_are_no_blocks():
    text = "Динамика выручки по месяцам\nВ январе выручка составила 100, в феврале 150, в марте 130."
    response = await VisualizationOrchestrator(generate_markup=False).build_response(text)

    assert response.response_text == text
    assert len(response.charts) == 1
    chart = response.charts[0]
    assert chart.type == "line"
    assert chart.title == "Динамика выручки по месяцам"
    assert chart.data == [
        {"name": "Январь", "value": 100},
        {"name": "Февраль", "value": 150},
        {"name": "Март", "value": 130},
    ]
    assert chart.placeholder_token is None


@pytest.mark.asyncio
async def test_uploaded_spreadsheet_is_the_last_resort():
    upload = UploadedFile(
        name="sales.xlsx",
        type="excel",
        extracted_data={
            "summary": {"sheets": 1},
            "Лист1": {"headers": ["Товар", "Сумма"], "data": [["Чай", "120,5"], ["Кофе", "300"]]},
        },
    )
    response = await VisualizationOrchestrator(generate_markup=False).build_response("Анализ без чисел", [upload])

    assert len(response.charts) == 1
    chart = response.charts[0]
    assert chart.title == "Сумма по Товар"
    assert chart.data == [{"name": "Чай", "value": 120.5}, {"name": "Кофе", "value": 300}]


@pytest.mark.asyncio
async def test_analyze_fails_over_to_second_backend(scripted_backend, scenario_text, metrics):
    a = scripted_backend("A", TimeoutError("slow"))
    b = scripted_backend("B", scenario_text)
    orchestrator = VisualizationOrchestrator(analysis_backends=[a, b], metrics=metrics, generate_markup=False)

    response = await orchestrator.analyze(AnalysisRequest(query="Проанализируй расходы"))

    assert response.source == "B"
    assert response.response_text.count("---VISUALIZATION_PLACEHOLDER_0---") == 1
    assert len(response.charts) == 1
    assert metrics.count("ai_service_requests_total", service="A", status="failure") == 1


@pytest.mark.asyncio
async def test_analyze_returns_fallback_message_when_every_backend_fails(scripted_backend):
    orchestrator = VisualizationOrchestrator(analysis_backends=[scripted_backend("A", RuntimeError("down"))])
    response = await orchestrator.analyze(AnalysisRequest(query="Что с продажами?"))

    assert response.source == "fallback"
    assert response.response_text == FALLBACK_MESSAGE
    assert response.charts == []


@pytest.mark.asyncio
async def test_empty_query_is_rejected_without_calling_backends(scripted_backend):
    backend = scripted_backend("A", "never")
    response = await VisualizationOrchestrator(analysis_backends=[backend]).analyze(AnalysisRequest(query="   "))

    assert response.source == "error"
    assert response.response_text.startswith("Пустой запрос")
    assert backend.calls == 0


@pytest.mark.asyncio
async def test_build_response_degrades_to_plain_text(monkeypatch, scenario_text):
    orchestrator = VisualizationOrchestrator()

    def explode(*args, **kwargs):
        raise ValueError("parser bug")

    monkeypatch.setattr(orchestrator, "extract_specifications", explode)
    response = await orchestrator.build_response(scenario_text)

    assert response.response_text == scenario_text
    assert response.charts == []


@pytest.mark.asyncio
async def test_response_serializes_to_camel_case(scenario_text):
    response = await VisualizationOrchestrator(generate_markup=False).build_response(scenario_text)
    payload = response.to_dict()

    assert set(payload) == {"responseText", "charts", "source"}
    assert payload["charts"][0]["placeholderToken"] == "---VISUALIZATION_PLACEHOLDER_0---"
    assert payload["charts"][0]["xAxisLabel"] == "Категория"


@pytest.mark.asyncio
async def test_response_figures(scenario_text):
    response = await VisualizationOrchestrator(generate_markup=False).build_response(scenario_text)
    assert len(response.figures()) == 1
    assert AnalysisResponse(response_text="", charts=[]).figures() == []


def test_from_settings_skips_models_without_keys():
    settings = Settings(
        openai_api_key="sk-test",
        analysis_models=["gpt-4o", "qwen/qwen3-30b-a3b:free"],
        chart_models=["gpt-4o-mini"],
    )
    orchestrator = VisualizationOrchestrator.from_settings(settings)

    assert [backend.name for backend in orchestrator.analysis_backends] == ["gpt-4o"]
    assert [backend.name for backend in orchestrator.chart_backends] == ["gpt-4o-mini"]
    assert isinstance(orchestrator.analysis_runner.cache, InMemoryCache)
