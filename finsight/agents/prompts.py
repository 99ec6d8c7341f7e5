"""Prompt templates (em russo) for narrative analysis and chart markup generation."""

from __future__ import annotations

from typing import Dict, Optional, Sequence

from langchain_core.prompts import PromptTemplate

from ..domain.blocks import format_block
from ..domain.charts import ChartSpecification
from ..domain.files import UploadedFile, describe_files

HISTORY_TURNS = 5

FALLBACK_MESSAGE = (
    "Я проанализировал ваши данные, но в процессе обработки на сервере возникла ошибка. "
    "Пожалуйста, попробуйте еще раз или обратитесь в техническую поддержку."
)

SYSTEM_MESSAGE = """Вы - Finsight, аналитическая система, специализирующаяся на анализе финансовых и бизнес-данных.
Отвечайте на русском языке. Предоставляйте детальный анализ, выделяйте ключевые тренды и аномалии в данных.

Ваш ответ должен быть структурирован следующим образом:
1. Общий анализ данных и ключевые выводы
2. Детальный разбор важных показателей
3. Рекомендации на основе анализа

ВАЖНО: Для каждого раздела анализа, где есть числовые данные, создавайте отдельный блок с описанием визуализации.
Эти блоки будут автоматически заменены на графики. Формат блока:

---VISUALIZATION---
Тип: [линейный график|столбчатая диаграмма|круговая диаграмма]
Заголовок: [краткое описание графика на русском языке]
Описание: [подробное описание того, что показывает график на русском языке]
Ось X: [название оси X на русском языке]
Ось Y: [название оси Y на русском языке]
Данные:
- [название]: [значение]
---ENDVISUALIZATION---

Не создавайте визуализации для технических полей (идентификаторы, коды, штрих-коды, метаданные).
Все элементы визуализаций должны быть на РУССКОМ языке."""

ANALYSIS_PROMPT = PromptTemplate.from_template(
    """Анализ данных.

Запрос пользователя: {user_query}

{conversation_history}
{file_info}

Пожалуйста, проведите анализ представленных данных и предоставьте полезные выводы, обнаруженные закономерности и рекомендации.

Для каждого показателя, который вы анализируете, обязательно укажите:
1. Тип визуализации (линейный график, столбчатая диаграмма, круговая диаграмма)
2. Что должно отображаться на осях X и Y
3. Какие конкретные данные должны быть представлены

Правила форматирования:
1. Используйте маркированные списки с символом - для перечисления пунктов
2. Используйте символы --- для разделения разных секций анализа
3. Для наименований товаров не используйте их цифровой код, если известно имя

Отвечайте на русском языке."""
)

_JSON_SHAPE = (
    '{{\n  "jsx": "<ResponsiveContainer width=\\"100%\\" height={{300}}>...</ResponsiveContainer>",\n'
    '  "title": "{title}",\n  "description": "{description}",\n  "chartType": "{chart_type}"\n}}'
)

VISUALIZATION_PROMPT = PromptTemplate.from_template(
    """You are a data visualization expert specializing in financial data visualization with Recharts in React.
Generate a valid, self-contained Recharts JSX component based on the following visualization block:

{visualization_block}

CRITICAL REQUIREMENTS:
1. The JSX MUST be valid and standalone; include the data array inline.
2. ALWAYS use the EXACT names and values from the block.
3. ALWAYS wrap the chart in ResponsiveContainer with width="100%" and height={{300}}.
4. ONLY use these components: {components}.
5. DO NOT include imports, component definitions, comments or explanatory text.
6. Round decimal values to 2 decimal places.
7. Add a formatter to the Tooltip: formatter={{(value) => value.toLocaleString()}}.

Return ONLY a JSON object of this shape:
"""
    + _JSON_SHAPE
)


def format_history(history: Optional[Sequence[Dict[str, str]]]) -> str:
    if not history:
        return ""
    lines = ["История диалога:"]
    for turn in list(history)[-HISTORY_TURNS:]:
        role = "Пользователь" if turn.get("role") == "user" else "Система"
        lines.append(f"{role}: {turn.get('content', '')}")
    return "\n".join(lines)


def build_analysis_prompt(
    query: str,
    history: Optional[Sequence[Dict[str, str]]] = None,
    files: Optional[Sequence[UploadedFile]] = None,
) -> str:
    file_info = describe_files(files or [])
    return ANALYSIS_PROMPT.format(
        user_query=query,
        conversation_history=format_history(history),
        file_info=f"Данные из файлов:\n{file_info}" if file_info else "",
    )


def build_chart_prompt(spec: ChartSpecification, components: Sequence[str]) -> str:
    return VISUALIZATION_PROMPT.format(
        visualization_block=format_block(spec),
        components=", ".join(components),
        title=spec.title,
        description=spec.description,
        chart_type=spec.type,
    )
