"""Runtime settings lidas do ambiente e configuração de logging."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"

DEFAULT_ANALYSIS_MODELS = (
    "qwen/qwen3-30b-a3b:free",
    "deepseek/deepseek-coder:33b",
    "gpt-4o",
    "anthropic/claude-3-opus",
    "google/gemini-pro",
)
DEFAULT_CHART_MODELS = (
    "deepseek/deepseek-v3-base:free",
    "gpt-4o-mini",
)


# -----------------------------
# Env helpers
# -----------------------------

def require(env_key: str) -> str:
    val = os.getenv(env_key)
    if not val:
        raise RuntimeError(f"Missing required environment variable: {env_key}")
    return val


def as_bool(s: Optional[str], default: bool = False) -> bool:
    if s is None:
        return default
    return str(s).strip().lower() in ("1", "true", "t", "yes", "y", "да", "on")


def as_float(raw: Optional[str], default: float, *, low: float, high: float) -> float:
    """Parse a float setting, clamping to ``[low, high]`` and falling back on garbage."""

    if raw in (None, ""):
        return default
    try:
        value = float(raw)
    except (TypeError, ValueError):
        logger.warning("Valor numérico inválido %r; usando padrão %s.", raw, default)
        return default
    return max(low, min(value, high))


def as_list(raw: Optional[str], default: tuple) -> List[str]:
    if not raw:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


# -----------------------------
# Settings
# -----------------------------

@dataclass
class Settings:
    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    openai_api_key: str = ""
    analysis_models: List[str] = field(default_factory=lambda: list(DEFAULT_ANALYSIS_MODELS))
    chart_models: List[str] = field(default_factory=lambda: list(DEFAULT_CHART_MODELS))
    temperature: float = 0.7
    chart_temperature: float = 0.5
    request_timeout: float = 60.0
    analysis_cache_ttl: int = 3600
    chart_cache_ttl: int = 7200
    generate_markup: bool = True
    redis_url: Optional[str] = None
    log_level: str = "INFO"


def load_settings() -> Settings:
    return Settings(
        openrouter_api_key=os.getenv("OPENROUTER_API_KEY", ""),
        openrouter_base_url=os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1").rstrip("/"),
        openai_api_key=os.getenv("OPENAI_API_KEY", ""),
        analysis_models=as_list(os.getenv("FINSIGHT_ANALYSIS_MODELS"), DEFAULT_ANALYSIS_MODELS),
        chart_models=as_list(os.getenv("FINSIGHT_CHART_MODELS"), DEFAULT_CHART_MODELS),
        temperature=as_float(os.getenv("FINSIGHT_TEMPERATURE"), 0.7, low=0.0, high=2.0),
        chart_temperature=as_float(os.getenv("FINSIGHT_CHART_TEMPERATURE"), 0.5, low=0.0, high=2.0),
        request_timeout=as_float(os.getenv("FINSIGHT_REQUEST_TIMEOUT"), 60.0, low=1.0, high=600.0),
        analysis_cache_ttl=int(os.getenv("FINSIGHT_ANALYSIS_CACHE_TTL", "3600")),
        chart_cache_ttl=int(os.getenv("FINSIGHT_CHART_CACHE_TTL", "7200")),
        generate_markup=as_bool(os.getenv("FINSIGHT_GENERATE_MARKUP"), default=True),
        redis_url=os.getenv("REDIS_URL") or None,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
