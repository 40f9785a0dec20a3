from __future__ import annotations

from io import BytesIO

import pytest
from pypdf import PdfReader

from evidencereport.engine.serializer import save_report
from evidencereport.engine.table import TableColumn, TableSpec, draw_table, resolve_column_widths


def _column(key: str, **kwargs) -> TableColumn[dict]:
    return TableColumn(key=key, header=key.title(), value=lambda row, key=key: str(row.get(key, '')), **kwargs)


def test_flex_columns_share_remaining_width() -> None:
    widths = resolve_column_widths([_column('a'), _column('b')], 200)

    assert widths == pytest.approx([100, 100])


def test_fixed_columns_take_requested_width_first() -> None:
    widths = resolve_column_widths([_column('id', width=80), _column('name'), _column('note')], 300)

    assert widths[0] == pytest.approx(80)
    assert widths[1] == pytest.approx(110)
    assert sum(widths) == pytest.approx(300)


def test_minimums_scale_down_when_they_do_not_fit() -> None:
    widths = resolve_column_widths([_column('a', min_width=100), _column('b', min_width=300)], 200)

    assert widths == pytest.approx([50, 150])


def test_small_minimums_are_raised_to_floor() -> None:
    widths = resolve_column_widths([_column('a', min_width=4, mode='fixed'), _column('b')], 100)

    assert widths == pytest.approx([24, 76])


def test_empty_column_list() -> None:
    assert resolve_column_widths([], 100) == []


def test_table_repeats_header_on_each_page(ctx) -> None:
    rows = [{'name': f'Recipient {index}', 'email': f'user{index}@example.com'} for index in range(120)]
    spec = TableSpec(columns=[_column('name'), _column('email', align='right')], rows=rows)

    draw_table(ctx, spec)
    payload = save_report(ctx)

    reader = PdfReader(BytesIO(payload))
    assert len(reader.pages) > 1
    for page in reader.pages:
        assert 'Email' in page.extract_text()
    assert 'Recipient 119' in reader.pages[-1].extract_text()
    assert ctx.cursor.y >= ctx.cursor.min_y - 6


def test_cell_line_limit_truncates_long_values(ctx) -> None:
    long_value = 'word ' * 200
    spec = TableSpec(columns=[_column('body')], rows=[{'body': long_value}], max_cell_lines=2)
    start = ctx.cursor.y

    draw_table(ctx, spec)

    used = start - ctx.cursor.y
    assert ctx.page_count == 1
    # header + one row of at most two lines, plus padding and the trailing gap
    assert used < 100


def test_table_without_columns_draws_nothing(ctx) -> None:
    start = ctx.cursor.y

    draw_table(ctx, TableSpec(columns=[]))

    assert ctx.cursor.y == start


def test_right_aligned_truncated_cell_ends_at_column_edge(ctx) -> None:
    right_edges: dict[str, float] = {}
    real_draw_text = ctx.draw_text

    def recording_draw_text(text, **kwargs):
        right_edges[text] = kwargs['x'] + kwargs['font'].width_of(text, kwargs['size'])
        return real_draw_text(text, **kwargs)

    ctx.draw_text = recording_draw_text
    rows = [{'amount': '12.00'}, {'amount': 'Wolfeschlegelsteinhausen ' * 12}]
    spec = TableSpec(columns=[_column('amount', align='right', max_lines=1)], rows=rows, max_width=200)

    draw_table(ctx, spec)

    truncated = [text for text in right_edges if text.endswith('…')]
    assert len(truncated) == 1
    assert right_edges[truncated[0]] == pytest.approx(right_edges['12.00'])
