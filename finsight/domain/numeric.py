"""Extração de pares (nome, valor) de trechos livres em russo."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)

Pair = Dict[str, object]
Strategy = Callable[[str], List[Pair]]

MONTHS = (
    "Январь", "Февраль", "Март", "Апрель", "Май", "Июнь",
    "Июль", "Август", "Сентябрь", "Октябрь", "Ноябрь", "Декабрь",
)
_MONTH_STEMS = (
    r"январ\w*", r"феврал\w*", r"март\w*", r"апрел\w*", r"ма[йяе]", r"июн\w*",
    r"июл\w*", r"август\w*", r"сентябр\w*", r"октябр\w*", r"ноябр\w*", r"декабр\w*",
)
MONTH_RE = re.compile(
    "|".join(rf"(?P<m{idx}>\b{stem}\b)" for idx, stem in enumerate(_MONTH_STEMS)),
    re.IGNORECASE,
)
QUARTER_RE = re.compile(
    r"\bQ(?P<q1>[1-4])\b|\bквартал\w*\s+(?P<q2>[1-4])\b|\b(?P<q3>[1-4])(?:-?[його]{1,3})?\s+квартал\w*",
    re.IGNORECASE,
)

MAGNITUDES = {"тыс": 1e3, "млн": 1e6, "млрд": 1e9}
_NUMBER_CORE = r"[-−]?\d+(?:[ \u00a0]\d{3}(?!\d))*(?:[.,]\d+)?"
NUMBER_RE = re.compile(
    rf"(?<![\w.,])(?P<num>{_NUMBER_CORE})(?:\s*(?P<mag>млрд|млн|тыс)[а-я]*\.?)?(?P<pct>\s*%)?",
    re.IGNORECASE,
)
NUMERIC_DATA_RE = re.compile(r"\b\d+(?:[.,]\d+)?\s*(?:%|руб|₽|\$|€)?", re.IGNORECASE)
LABEL_PAIR_RE = re.compile(
    rf"(?P<label>[^:;,()\n]+?)\s*(?::|\()\s*(?P<num>{_NUMBER_CORE})(?:\s*(?P<mag>млрд|млн|тыс)[а-я]*\.?)?",
    re.IGNORECASE,
)
WORD_RE = re.compile(r"[A-Za-zА-Яа-яЁё][\w-]{2,}")

PERIOD_WINDOW = 50
_STOPWORDS = {"это", "что", "для", "как", "при", "или", "также", "было", "были", "составил", "составила",
              "составили", "году", "года", "год", "около", "более", "менее"}


@dataclass(frozen=True)
class NumberToken:
    value: float
    start: int
    end: int
    raw: str
    percent: bool = False

    @property
    def looks_like_year(self) -> bool:
        digits = self.raw.strip().lstrip("-−")
        return len(digits) == 4 and digits.isdigit() and 1900 <= self.value <= 2100


# -----------------------------
# Numbers
# -----------------------------

def _as_value(number: float) -> float:
    return int(number) if float(number).is_integer() else number


def parse_number(text: Optional[str]) -> Optional[float]:
    """Parse ``"1 234,5"``, ``"1,234.5"`` or ``"2,5 млн"``; ``None`` when nothing numeric is left."""

    if text is None:
        return None
    raw = str(text).strip().lower().replace("\u00a0", " ").replace("−", "-")
    if not raw:
        return None
    multiplier = 1.0
    for suffix in ("млрд", "млн", "тыс"):
        if suffix in raw:
            multiplier = MAGNITUDES[suffix]
            break
    cleaned = re.sub(r"[^\d,.\-+]", "", raw)
    if not cleaned or not any(ch.isdigit() for ch in cleaned):
        return None
    if "," in cleaned and "." in cleaned:
        if cleaned.rfind(",") > cleaned.rfind("."):
            cleaned = cleaned.replace(".", "").replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")
    elif cleaned.count(",") > 1:
        cleaned = cleaned.replace(",", "")
    elif "," in cleaned:
        cleaned = cleaned.replace(",", ".")
    elif cleaned.count(".") > 1:
        cleaned = cleaned.replace(".", "")
    cleaned = cleaned.rstrip(".")
    try:
        return float(cleaned) * multiplier
    except ValueError:
        return None


def find_numbers(text: str) -> List[NumberToken]:
    tokens: List[NumberToken] = []
    for match in NUMBER_RE.finditer(text or ""):
        value = parse_number(match.group("num"))
        if value is None:
            continue
        mag = (match.group("mag") or "").lower()
        if mag:
            value *= MAGNITUDES[mag]
        tokens.append(
            NumberToken(
                value=value,
                start=match.start(),
                end=match.end(),
                raw=match.group("num"),
                percent=bool(match.group("pct")),
            )
        )
    return tokens


def contains_numeric_data(text: str) -> bool:
    return bool(NUMERIC_DATA_RE.search(text or ""))


def clean_label(label: str) -> str:
    label = re.sub(r"\*\*|__|`", "", label or "")
    label = re.split(r"[.!?]\s+", label)[-1]
    return label.strip().lstrip("-•*#0123456789.,;:) ").strip()


# -----------------------------
# Period helpers
# -----------------------------

def _month_index(match: re.Match) -> int:
    for idx in range(12):
        if match.group(f"m{idx}"):
            return idx
    return -1


def _quarter_index(match: re.Match) -> int:
    digit = match.group("q1") or match.group("q2") or match.group("q3")
    return int(digit) - 1


def _value_after(text: str, numbers: Sequence[NumberToken], start: int, limit: int) -> Optional[NumberToken]:
    """Nearest number after ``start``, within the window and before the next period mention."""

    window_end = min(start + PERIOD_WINDOW, limit)
    candidates = [tok for tok in numbers if start <= tok.start < window_end]
    if not candidates:
        return None
    first = candidates[0]
    if first.looks_like_year and len(candidates) > 1:
        return candidates[1]
    return first


def _period_pairs(text: str, pattern: re.Pattern, index_of: Callable[[re.Match], int], names: Sequence[str]) -> List[Pair]:
    matches = list(pattern.finditer(text or ""))
    if not matches:
        return []
    numbers = find_numbers(text)
    found: Dict[int, float] = {}
    for pos, match in enumerate(matches):
        limit = matches[pos + 1].start() if pos + 1 < len(matches) else len(text)
        token = _value_after(text, numbers, match.end(), limit)
        idx = index_of(match)
        if token is None or idx < 0 or idx in found:
            continue
        found[idx] = token.value
    return [{"name": names[idx], "value": _as_value(found[idx])} for idx in sorted(found)]


# -----------------------------
# Strategies
# -----------------------------

def labelled_pairs(text: str) -> List[Pair]:
    pairs: List[Pair] = []
    for match in LABEL_PAIR_RE.finditer(text or ""):
        label = clean_label(match.group("label"))
        if not label or not any(ch.isalpha() for ch in label) or len(label) > 80:
            continue
        value = parse_number(match.group("num"))
        if value is None:
            continue
        mag = (match.group("mag") or "").lower()
        if mag:
            value *= MAGNITUDES[mag]
        pairs.append({"name": label, "value": _as_value(value)})
    return pairs


def month_pairs(text: str) -> List[Pair]:
    return _period_pairs(text, MONTH_RE, _month_index, MONTHS)


def quarter_pairs(text: str) -> List[Pair]:
    return _period_pairs(text, QUARTER_RE, _quarter_index, ("Q1", "Q2", "Q3", "Q4"))


def positional_pairs(text: str) -> List[Pair]:
    """Bare numbers named after the last word between them and the previous number."""

    pairs: List[Pair] = []
    previous_end = 0
    for idx, token in enumerate(find_numbers(text)):
        words = [w for w in WORD_RE.findall(text[previous_end:token.start]) if w.lower() not in _STOPWORDS]
        name = words[-1].capitalize() if words else f"Значение {idx + 1}"
        pairs.append({"name": name, "value": _as_value(token.value)})
        previous_end = token.end
    return pairs


def numbered_sequence(prefix: str, minimum: int = 1, limit: Optional[int] = None) -> Strategy:
    def strategy(text: str) -> List[Pair]:
        tokens = find_numbers(text)
        if len(tokens) < minimum:
            return []
        if limit is not None:
            tokens = tokens[:limit]
        return [{"name": f"{prefix} {idx + 1}", "value": _as_value(tok.value)} for idx, tok in enumerate(tokens)]

    strategy.__name__ = f"numbered_{prefix.lower()}"
    return strategy


_TREND_START_RE = re.compile(rf"начал\w*[^\d\n]{{0,40}}?(?P<num>{_NUMBER_CORE})", re.IGNORECASE)
_TREND_END_RE = re.compile(rf"(?:конечн|конц|итогов)\w*[^\d\n]{{0,40}}?(?P<num>{_NUMBER_CORE})", re.IGNORECASE)


def trend_pairs(text: str) -> List[Pair]:
    start = _TREND_START_RE.search(text or "")
    end = _TREND_END_RE.search(text or "")
    if not start or not end:
        return []
    first, last = parse_number(start.group("num")), parse_number(end.group("num"))
    if first is None or last is None:
        return []
    return [
        {"name": "Начало", "value": _as_value(first)},
        {"name": "Середина", "value": _as_value(round((first + last) / 2, 2))},
        {"name": "Конец", "value": _as_value(last)},
    ]


_PERCENT_COLON_RE = re.compile(rf"(?P<label>[^:;\n]+?):\s*(?P<num>{_NUMBER_CORE})\s*%")
_PERCENT_PAREN_RE = re.compile(rf"(?P<label>[^():;\n]+?)\s*\(\s*(?P<num>{_NUMBER_CORE})\s*%\s*\)")
_BULLET_LINE_RE = re.compile(r"^\s*[-•*]\s*(?P<label>[^:()\n]+?)\s*(?::|\()(?P<rest>[^\n]*)$", re.MULTILINE)


def _percent_pairs(pattern: re.Pattern) -> Strategy:
    def strategy(text: str) -> List[Pair]:
        pairs: List[Pair] = []
        for match in pattern.finditer(text or ""):
            label = clean_label(match.group("label"))
            value = parse_number(match.group("num"))
            if label and value is not None:
                pairs.append({"name": label, "value": _as_value(value)})
        return pairs

    return strategy


def bullet_pairs(text: str) -> List[Pair]:
    pairs: List[Pair] = []
    for match in _BULLET_LINE_RE.finditer(text or ""):
        label = clean_label(match.group("label"))
        numbers = find_numbers(match.group("rest"))
        if label and numbers:
            pairs.append({"name": label, "value": _as_value(numbers[0].value)})
    return pairs


def run_strategies(text: str, strategies: Sequence[Strategy]) -> List[Pair]:
    """First non-empty strategy result wins; an empty list when every strategy falls through."""

    if not text:
        return []
    for strategy in strategies:
        try:
            pairs = strategy(text)
        except (ValueError, IndexError) as exc:
            logger.debug("Estratégia %s falhou: %s", getattr(strategy, "__name__", strategy), exc)
            continue
        if pairs:
            return pairs
    return []


PAIR_STRATEGIES: Sequence[Strategy] = (labelled_pairs, month_pairs, quarter_pairs, positional_pairs)
TIME_SERIES_STRATEGIES: Sequence[Strategy] = (
    month_pairs,
    quarter_pairs,
    numbered_sequence("Период", minimum=3),
    trend_pairs,
)
DISTRIBUTION_STRATEGIES: Sequence[Strategy] = (
    _percent_pairs(_PERCENT_COLON_RE),
    _percent_pairs(_PERCENT_PAREN_RE),
    bullet_pairs,
)
CATEGORY_STRATEGIES: Sequence[Strategy] = (
    bullet_pairs,
    month_pairs,
    numbered_sequence("Категория"),
)
GENERIC_STRATEGIES: Sequence[Strategy] = (numbered_sequence("Значение", limit=10),)


# -----------------------------
# Public API
# -----------------------------

def extract_pairs(text: str) -> List[Pair]:
    return run_strategies(text, PAIR_STRATEGIES)


def extract_time_series(text: str) -> List[Pair]:
    return run_strategies(text, TIME_SERIES_STRATEGIES)


def extract_distribution(text: str) -> List[Pair]:
    return run_strategies(text, DISTRIBUTION_STRATEGIES)


def extract_categories(text: str) -> List[Pair]:
    return run_strategies(text, CATEGORY_STRATEGIES)


def extract_generic(text: str) -> List[Pair]:
    return run_strategies(text, GENERIC_STRATEGIES)
