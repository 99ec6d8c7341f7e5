"""LangChain backends and the visualization pipeline orchestrator."""

from .base import Backend, GenerationError, LLMBackend, MarkupValidationError, build_analysis_backends
from .context import AnalysisRequest, AnalysisResponse
from .failover import FailoverOutcome, FailoverRunner, GenerationAttemptResult, run_with_failover
from .orchestrator import VisualizationOrchestrator
from .visualization import ChartCodeBackend, GenerationResult, build_visual_tools, generate

__all__ = [
    "Backend",
    "GenerationError",
    "LLMBackend",
    "MarkupValidationError",
    "build_analysis_backends",
    "AnalysisRequest",
    "AnalysisResponse",
    "FailoverOutcome",
    "FailoverRunner",
    "GenerationAttemptResult",
    "run_with_failover",
    "VisualizationOrchestrator",
    "ChartCodeBackend",
    "GenerationResult",
    "build_visual_tools",
    "generate",
]
