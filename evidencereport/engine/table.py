from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Callable, Generic, Sequence, TypeVar

from .core import ReportContext
from .fonts import FontFamily, normalize_font_family
from .text import TextBlockOptions, draw_text_block, text_block_lines, wrap_text_to_lines


RowT = TypeVar('RowT')

MIN_COLUMN_WIDTH = 24.0
MIN_CELL_TEXT_WIDTH = 8.0


@dataclass
class TableColumn(Generic[RowT]):
    key: str
    header: str
    value: Callable[[RowT], str]
    width: float | None = None
    min_width: float | None = None
    # 'fixed' or 'flex'; a column with an explicit width is always fixed.
    mode: str = 'flex'
    align: str = 'left'
    max_lines: int | None = None
    font: FontFamily | str = FontFamily.regular

    @property
    def fixed(self) -> bool:
        return self.mode == 'fixed' or self.width is not None


@dataclass
class TableSpec(Generic[RowT]):
    columns: Sequence[TableColumn[RowT]]
    rows: Sequence[RowT] = field(default_factory=list)
    x: float | None = None
    max_width: float | None = None
    font_size: float | None = None
    header_font_size: float | None = None
    line_height: float | None = None
    cell_padding_x: float | None = None
    cell_padding_y: float | None = None
    repeat_header: bool = True
    max_cell_lines: int | None = None
    striped_rows: bool | None = None


def resolve_column_widths(columns: Sequence[TableColumn], max_width: float) -> list[float]:
    """Distribute ``max_width`` across columns.

    Every column gets its minimum first. Fixed columns then take what they
    asked for, flex columns share the rest, and the last column absorbs any
    rounding so the widths always sum to ``max_width``.
    """
    if not columns:
        return []
    min_widths = [max(MIN_COLUMN_WIDTH, float(col.min_width or MIN_COLUMN_WIDTH)) for col in columns]
    min_total = sum(min_widths)
    if min_total > max_width:
        scaled = [value / min_total * max_width for value in min_widths]
        scaled[-1] += max_width - sum(scaled)
        return scaled

    widths = list(min_widths)
    remaining = max_width - min_total
    for index, col in enumerate(columns):
        if not col.fixed:
            continue
        requested = max(min_widths[index], float(col.width if col.width is not None else min_widths[index]))
        consume = min(max(0.0, requested - min_widths[index]), remaining)
        widths[index] += consume
        remaining -= consume

    flex_indexes = [index for index, col in enumerate(columns) if not col.fixed]
    if remaining > 0 and flex_indexes:
        each = remaining / len(flex_indexes)
        for index in flex_indexes:
            widths[index] += each

    widths[-1] += max_width - sum(widths)
    return widths


def _draw_row_border(ctx: ReportContext, x: float, y: float, width: float) -> None:
    ctx.draw_line((x, y), (x + width, y), color=ctx.theme.colors.border)


def draw_table(ctx: ReportContext, spec: TableSpec[RowT]) -> None:
    if not spec.columns:
        return
    theme = ctx.theme
    defaults = theme.table
    x = ctx.cursor.min_x if spec.x is None else float(spec.x)
    max_width = float(spec.max_width) if spec.max_width is not None else ctx.cursor.max_x - x
    font_size = float(spec.font_size if spec.font_size is not None else defaults.font_size)
    header_font_size = float(
        spec.header_font_size if spec.header_font_size is not None else max(font_size, defaults.header_font_size)
    )
    line_height = (
        float(spec.line_height) if spec.line_height is not None else max(font_size + 1.4, defaults.line_height)
    )
    padding_x = float(spec.cell_padding_x if spec.cell_padding_x is not None else defaults.cell_padding_x)
    padding_y = float(spec.cell_padding_y if spec.cell_padding_y is not None else defaults.cell_padding_y)
    striped = defaults.striped_rows if spec.striped_rows is None else bool(spec.striped_rows)
    widths = resolve_column_widths(spec.columns, max_width)
    text_widths = [max(MIN_CELL_TEXT_WIDTH, width - padding_x * 2) for width in widths]

    def draw_header() -> None:
        header_lines = [
            wrap_text_to_lines(ctx, col.header, text_widths[i], header_font_size, FontFamily.bold)
            for i, col in enumerate(spec.columns)
        ]
        row_height = max(1, *(len(lines) for lines in header_lines)) * line_height + padding_y * 2
        ctx.ensure_space(row_height + 1)
        ctx.draw_rect(
            x=x,
            y=ctx.cursor.y - row_height,
            width=max_width,
            height=row_height,
            fill=theme.colors.panel,
            border=theme.colors.strong_border,
        )
        col_x = x
        for i, col in enumerate(spec.columns):
            draw_text_block(
                ctx,
                text=col.header,
                x=col_x + padding_x,
                y=ctx.cursor.y - padding_y - header_font_size,
                max_width=text_widths[i],
                font=FontFamily.bold,
                size=header_font_size,
                line_height=line_height,
            )
            col_x += widths[i]
        ctx.cursor.y -= row_height
        _draw_row_border(ctx, x, ctx.cursor.y, max_width)

    draw_header()

    for row_index, row in enumerate(spec.rows):
        cell_lines: list[list[str]] = []
        cell_limits: list[int | None] = []
        for i, col in enumerate(spec.columns):
            lines = wrap_text_to_lines(ctx, col.value(row), text_widths[i], font_size, col.font)
            limit = col.max_lines if col.max_lines is not None else spec.max_cell_lines
            limit = limit if limit and limit > 0 else None
            cell_lines.append(lines)
            cell_limits.append(limit)

        shown = [len(lines) if limit is None else min(len(lines), limit) for lines, limit in zip(cell_lines, cell_limits)]
        row_height = max(1, *shown) * line_height + padding_y * 2

        if ctx.cursor.y - row_height < ctx.cursor.min_y:
            ctx.add_page()
            if spec.repeat_header:
                draw_header()

        if striped and row_index % 2 == 1:
            ctx.draw_rect(
                x=x,
                y=ctx.cursor.y - row_height,
                width=max_width,
                height=row_height,
                fill=theme.colors.panel_alt,
            )

        col_x = x
        for i, col in enumerate(spec.columns):
            lines = cell_lines[i]
            limit = cell_limits[i]
            cell = TextBlockOptions(
                text='\n'.join(lines),
                x=col_x + padding_x,
                y=ctx.cursor.y - padding_y - font_size,
                max_width=text_widths[i],
                font=col.font,
                size=font_size,
                line_height=line_height,
                max_lines=limit,
            )
            if col.align == 'right':
                # Align on what is drawn, ellipsis included.
                font = ctx.fonts.for_family(normalize_font_family(col.font))
                drawn = text_block_lines(ctx, cell)
                widest = max([0.0, *(font.width_of(line, font_size) for line in drawn)])
                cell = replace(cell, x=col_x + widths[i] - padding_x - widest)

            draw_text_block(ctx, cell)
            col_x += widths[i]

        ctx.cursor.y -= row_height
        _draw_row_border(ctx, x, ctx.cursor.y, max_width)

    ctx.cursor.y -= 6
