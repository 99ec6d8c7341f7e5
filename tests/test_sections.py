from finsight.domain.sections import classify_section, classify_sections, is_opportunity, split_sections


def test_split_sections_on_blank_lines_and_rules():
    text = "Первый\n\nВторой\n---\nТретий"
    assert split_sections(text) == ["Первый", "Второй", "Третий"]


def test_opportunity_paragraph_is_read_directly():
    section = (
        "1. **Структура расходов**\n"
        "• Тип визуализации: круговая диаграмма\n"
        "• Данные: Аренда: 40, Зарплаты: 60\n"
        "• Вывод: зарплаты доминируют"
    )
    spec = classify_section(section)
    assert spec.type == "pie"
    assert spec.title == "Структура расходов"
    assert spec.description == "зарплаты доминируют"
    assert spec.data == [{"name": "Аренда", "value": 40}, {"name": "Зарплаты", "value": 60}]
    assert spec.x_axis_label is None


def test_opportunity_axes_are_picked_up():
    section = (
        "Выручка по регионам\n"
        "• Визуализация: столбчатая диаграмма\n"
        "• Оси X и Y: X — регион, Y — выручка\n"
        "• Данные: Север: 10, Юг: 20"
    )
    spec = classify_section(section)
    assert spec.type == "bar"
    assert spec.title == "Выручка по регионам"
    assert (spec.x_axis_label, spec.y_axis_label) == ("регион", "выручка")


def test_trend_keywords_give_a_line_chart_with_description():
    section = "Динамика продаж\nГрафик показывает рост выручки в каждом месяце.\nЯнварь: 10, Февраль: 20"
    spec = classify_section(section)
    assert spec.type == "line"
    assert spec.title == "Динамика продаж"
    assert spec.description == "График показывает рост выручки в каждом месяце."
    assert spec.data == [{"name": "Январь", "value": 10}, {"name": "Февраль", "value": 20}]


def test_distribution_keywords_give_a_pie_chart():
    spec = classify_section("Распределение продаж по каналам\nРозница: 55%, опт: 45%")
    assert spec.type == "pie"
    assert spec.data == [{"name": "Розница", "value": 55}, {"name": "опт", "value": 45}]


def test_unmatched_sections_fall_back_to_generic_values():
    spec = classify_section("Итоги\nПоказатели составили 5, 7 и 9.")
    assert spec.type == "bar"
    assert spec.title == "Итоги"
    assert spec.x_axis_label == "Показатель"
    assert [p["name"] for p in spec.data] == ["Значение 1", "Значение 2", "Значение 3"]


def test_sections_without_numbers_are_skipped():
    text = "Просто вывод без цифр.\n\nИтоги\nПоказатели составили 5, 7 и 9."
    specs = classify_sections(text)
    assert len(specs) == 1
    assert specs[0].title == "Итоги"


def test_axes_word_must_stand_alone():
    assert not is_opportunity("Клиентов спросили, нужна ли диаграмма")
    assert is_opportunity("Столбчатая диаграмма, оси: месяц и выручка")
