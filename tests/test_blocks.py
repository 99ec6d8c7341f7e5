from finsight.domain.blocks import (
    END_MARKER,
    START_MARKER,
    extract_blocks,
    format_block,
    parse_block,
    parse_blocks,
)
from finsight.domain.charts import ChartSpecification, SourceSpan


def test_extract_blocks_reports_full_span(scenario_text):
    blocks = extract_blocks(scenario_text)
    assert len(blocks) == 1
    block = blocks[0]
    start = scenario_text.index(START_MARKER)
    stop = scenario_text.index(END_MARKER) + len(END_MARKER)
    assert block.start_offset == start
    assert block.length == stop - start
    assert block.content.startswith("Тип: столбчатая диаграмма")
    assert block.content.endswith("- Февраль: 2000")


def test_unterminated_block_is_dropped():
    text = f"Текст\n{START_MARKER}\nТип: bar\nДанные:\n- A: 1\n"
    assert extract_blocks(text) == []


def test_start_without_end_before_next_start_keeps_the_later_block():
    text = f"{START_MARKER}\nмусор\n{START_MARKER}\nТип: bar\nДанные:\n- A: 1\n{END_MARKER}"
    blocks = extract_blocks(text)
    assert len(blocks) == 1
    assert blocks[0].start_offset == text.index(START_MARKER, 1)


def test_empty_block_is_skipped():
    text = f"{START_MARKER}\n   \n{END_MARKER}\n{START_MARKER}\nТип: bar\nДанные:\n- A: 1\n{END_MARKER}"
    blocks = extract_blocks(text)
    assert len(blocks) == 1
    assert "Тип: bar" in blocks[0].content


def test_parse_block_keeps_verbatim_title_and_axes():
    spec = parse_block(
        "Тип: линейный график\n"
        "Заголовок: Выручка 2024\n"
        "Описание: Помесячно\n"
        "Ось X: Месяц\n"
        "Ось Y: Рубли\n"
        "Данные:\n"
        "- Январь: 100\n"
        "- Февраль: 150,5\n"
    )
    assert spec.type == "line"
    assert spec.title == "Выручка 2024"
    assert spec.description == "Помесячно"
    assert spec.x_axis_label == "Месяц"
    assert spec.y_axis_label == "Рубли"
    assert spec.data == [{"name": "Январь", "value": 100}, {"name": "Февраль", "value": 150.5}]


def test_pie_block_prefers_percentages():
    spec = parse_block("Тип: круговая диаграмма\nДанные:\n- Доля А: 500 (40%)\n- Доля Б: 750 (60%)")
    assert spec.type == "pie"
    assert spec.data == [{"name": "Доля А", "value": 40}, {"name": "Доля Б", "value": 60}]
    assert spec.x_axis_label is None and spec.y_axis_label is None


def test_pie_loss_rows_are_labelled():
    spec = parse_block("Тип: круговая диаграмма\nДанные:\n- Филиал Б: -200 (15% убытка)")
    assert spec.data == [{"name": "Филиал Б (убыток)", "value": 15}]


def test_bar_block_ignores_percent_notes():
    spec = parse_block("Тип: столбчатая диаграмма\nДанные:\n- Доля А: 500 (40%)")
    assert spec.data == [{"name": "Доля А", "value": 500}]


def test_block_without_type_or_data_is_rejected():
    assert parse_block("Заголовок: X\nДанные:\n- A: 1") is None
    assert parse_block("Тип: bar\nЗаголовок: X") is None


def test_block_defaults():
    spec = parse_block("Тип: что-то странное\nДанные:\n- A: 1")
    assert spec.type == "bar"
    assert spec.title == "Визуализация данных"
    assert spec.description == ""
    assert (spec.x_axis_label, spec.y_axis_label) == ("Категория", "Значение")


def test_inline_data_line_is_parsed():
    spec = parse_block("Тип: bar\nДанные: Москва: 500, Казань: 300")
    assert spec.data == [{"name": "Москва", "value": 500}, {"name": "Казань", "value": 300}]


def test_parse_blocks_anchors_each_spec(scenario_text):
    specs = parse_blocks(scenario_text)
    assert len(specs) == 1
    block = extract_blocks(scenario_text)[0]
    assert specs[0].source_span == SourceSpan(block.start_offset, block.length)
    assert specs[0].title == "Расходы"
    assert specs[0].data == [{"name": "Январь", "value": 1000}, {"name": "Февраль", "value": 2000}]


def test_format_block_is_read_back_by_parser():
    spec = ChartSpecification(
        type="line",
        title="Прибыль",
        description="По кварталам",
        data=[{"name": "Q1", "value": 10}, {"name": "Q2", "value": 12.5}],
        x_axis_label="Квартал",
        y_axis_label="Млн",
    )
    parsed = parse_blocks(format_block(spec))[0]
    assert parsed.type == "line"
    assert parsed.title == "Прибыль"
    assert parsed.data == spec.data
    assert parsed.x_axis_label == "Квартал"


def test_block_types_outside_bar_line_pie_become_bar():
    spec = parse_block("Тип: диаграмма рассеяния\nДанные:\n- A: 5\n- B: 7")
    assert spec.type == "bar"
    assert spec.data == [{"name": "A", "value": 5}, {"name": "B", "value": 7}]
    assert (spec.x_axis_label, spec.y_axis_label) == ("Категория", "Значение")
