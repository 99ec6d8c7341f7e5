"""High-level orchestrator: analysis text -> chart specs -> markup -> placeholder-spliced response."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import List, Optional, Sequence

from ..cache import ChartCache, build_cache
from ..config import Settings, load_settings
from ..domain.blocks import parse_blocks
from ..domain.charts import ChartSpecification, has_data, normalize
from ..domain.files import UploadedFile, charts_from_files
from ..domain.sections import classify_sections
from ..domain.splice import splice
from ..metrics import VISUALIZATIONS_TOTAL, MetricsSink, NullMetrics
from .base import Backend, build_analysis_backends
from .context import AnalysisRequest, AnalysisResponse
from .failover import FALLBACK_SOURCE, FailoverRunner
from .prompts import FALLBACK_MESSAGE, SYSTEM_MESSAGE, build_analysis_prompt
from .visualization import GenerationResult, build_chart_backends, chart_payload, local_generation

logger = logging.getLogger(__name__)


class VisualizationOrchestrator:
    """Coordena análise narrativa, extração de gráficos e geração de markup."""

    def __init__(
        self,
        *,
        analysis_backends: Sequence[Backend] = (),
        chart_backends: Sequence[Backend] = (),
        cache: Optional[ChartCache] = None,
        metrics: Optional[MetricsSink] = None,
        generate_markup: bool = True,
        analysis_ttl: int = 3600,
        chart_ttl: int = 7200,
    ) -> None:
        self.analysis_backends = list(analysis_backends)
        self.chart_backends = list(chart_backends)
        self.metrics = metrics or NullMetrics()
        self.generate_markup = generate_markup
        self.analysis_runner = FailoverRunner(cache=cache, metrics=self.metrics, namespace="aiResponse", ttl=analysis_ttl)
        self.chart_runner = FailoverRunner(cache=cache, metrics=self.metrics, namespace="visualization", ttl=chart_ttl)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, *, metrics: Optional[MetricsSink] = None) -> "VisualizationOrchestrator":
        settings = settings or load_settings()
        return cls(
            analysis_backends=build_analysis_backends(settings, system_message=SYSTEM_MESSAGE),
            chart_backends=build_chart_backends(settings),
            cache=build_cache(settings.redis_url),
            metrics=metrics,
            generate_markup=settings.generate_markup,
            analysis_ttl=settings.analysis_cache_ttl,
            chart_ttl=settings.chart_cache_ttl,
        )

    # -----------------------------
    # Chart recovery
    # -----------------------------
    def extract_specifications(self, text: str, files: Sequence[UploadedFile] = ()) -> List[ChartSpecification]:
        """Blocks first, then section classification, then uploaded files; all normalized, empty ones dropped."""

        specs = parse_blocks(text)
        if not specs:
            specs = classify_sections(text)
        if not specs and files:
            specs = charts_from_files(files)
        normalized = [normalize(spec) for spec in specs]
        return [spec for spec in normalized if has_data(spec)]

    async def _markup_for(self, spec: ChartSpecification) -> ChartSpecification:
        outcome = await self.chart_runner.run(
            chart_payload(spec),
            self.chart_backends,
            lambda _payload: local_generation(spec).to_dict(),
        )
        result = GenerationResult.from_dict(outcome.value)
        status = "fallback" if outcome.source == FALLBACK_SOURCE else ("cached" if outcome.from_cache else "generated")
        self.metrics.increment(VISUALIZATIONS_TOTAL, {"type": spec.type, "status": status if result.valid else "invalid"})
        return replace(spec, markup=result.markup, valid=result.valid)

    async def attach_markup(self, specs: Sequence[ChartSpecification]) -> List[ChartSpecification]:
        """Generate markup for every spec concurrently; results keep the request order."""

        if not specs:
            return []
        return list(await asyncio.gather(*(self._markup_for(spec) for spec in specs)))

    # -----------------------------
    # Public API
    # -----------------------------
    async def build_response(self, text: str, files: Sequence[UploadedFile] = ()) -> AnalysisResponse:
        text = text or ""
        try:
            specs = self.extract_specifications(text, files)
            if self.generate_markup:
                specs = await self.attach_markup(specs)
            result = splice(text, specs)
        except Exception:
            logger.exception("Falha ao montar visualizações; devolvendo apenas o texto.")
            return AnalysisResponse(response_text=text, charts=[])
        logger.info("Resposta com %d gráfico(s).", len(result.ordered_specs))
        return AnalysisResponse(response_text=result.text, charts=result.ordered_specs)

    async def analyze(self, request: AnalysisRequest) -> AnalysisResponse:
        try:
            query = request.require_query()
        except ValueError as exc:
            return AnalysisResponse(response_text=str(exc), charts=[], source="error")

        prompt = build_analysis_prompt(query, request.history, request.files)
        outcome = await self.analysis_runner.run({"prompt": prompt}, self.analysis_backends, FALLBACK_MESSAGE)
        response = await self.build_response(outcome.value, request.files)
        response.source = outcome.source
        return response

    async def drain(self) -> None:
        await self.analysis_runner.drain()
        await self.chart_runner.drain()
