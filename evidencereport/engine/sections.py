from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Sequence

from .core import ReportContext, render_block
from .fonts import FontFamily
from .images import EmbeddedImage
from .text import TextBlock, TextBlockOptions, draw_text_block, measure_text_block_height


logger = logging.getLogger(__name__)

LOGO_HEIGHT = 18.0
BRAND_NAME_SIZE = 12.0


@dataclass(frozen=True)
class KeyValue:
    key: str
    value: str
    value_font: FontFamily | str = FontFamily.regular


@dataclass(frozen=True)
class MetricCard:
    label: str
    value: str


def _key_value_line_height(ctx: ReportContext) -> float:
    return max(ctx.theme.line_height, ctx.theme.body_size + 3.4)


def draw_report_header(
    ctx: ReportContext,
    *,
    title: str,
    subtitle: str | None = None,
    eyebrow: str | None = None,
    right_meta: str | None = None,
    logo: EmbeddedImage | None = None,
    brand_name: str | None = None,
) -> None:
    """Draw the top band, title block and rule, then move the cursor below them."""
    theme = ctx.theme
    top = theme.page_height
    band_height = theme.header_band_height
    content_width = theme.content_width

    ctx.draw_rect(x=0, y=top - band_height, width=theme.page_width, height=band_height, fill=theme.colors.panel)

    logo_top = top - 18
    if logo is not None:
        logo_width, logo_height = logo.scaled_to_height(LOGO_HEIGHT)
        ctx.draw_image(logo, x=theme.margin_left, y=logo_top - logo_height, width=logo_width, height=logo_height)
    elif brand_name:
        ctx.draw_text(
            brand_name,
            x=theme.margin_left,
            y=logo_top - 12,
            font=ctx.fonts.bold,
            size=BRAND_NAME_SIZE,
            color=theme.colors.text,
        )

    if right_meta:
        meta_width = ctx.fonts.regular.width_of(right_meta, theme.small_size)
        ctx.draw_text(
            right_meta,
            x=theme.page_width - theme.margin_right - meta_width,
            y=top - 44,
            font=ctx.fonts.regular,
            size=theme.small_size,
            color=theme.colors.muted,
        )

    title_y = top - band_height - 24
    if eyebrow:
        ctx.draw_text(
            eyebrow,
            x=theme.margin_left,
            y=title_y + 18,
            font=ctx.fonts.bold,
            size=theme.small_size,
            color=theme.colors.accent,
        )

    title_result = draw_text_block(
        ctx,
        text=title,
        x=theme.margin_left,
        y=title_y,
        max_width=content_width,
        font=FontFamily.bold,
        size=theme.title_size,
        line_height=theme.title_size + 4,
        max_lines=3,
    )

    y = title_result.next_y - 2
    if subtitle:
        subtitle_result = draw_text_block(
            ctx,
            text=subtitle,
            x=theme.margin_left,
            y=y,
            max_width=content_width,
            size=theme.body_size,
            line_height=theme.body_size + 3,
            color=theme.colors.muted,
        )
        y = subtitle_result.next_y

    ctx.draw_line((theme.margin_left, y - 4), (theme.page_width - theme.margin_right, y - 4))
    ctx.cursor.y = y - 16


def draw_section_heading(ctx: ReportContext, label: str, subtitle: str | None = None) -> None:
    theme = ctx.theme
    width = ctx.cursor.width
    subtitle_height = 0.0
    if subtitle:
        subtitle_height = measure_text_block_height(
            ctx,
            text=subtitle,
            max_width=width,
            size=theme.small_size,
            line_height=theme.small_size + 3,
        )
    ctx.ensure_space(theme.heading_size + 6 + subtitle_height + 10)

    draw_text_block(
        ctx,
        text=label,
        x=ctx.cursor.min_x,
        y=ctx.cursor.y,
        max_width=width,
        font=FontFamily.bold,
        size=theme.heading_size,
        line_height=theme.heading_size + 3,
        max_lines=1,
    )
    ctx.cursor.y -= theme.heading_size + 6

    if subtitle:
        result = draw_text_block(
            ctx,
            text=subtitle,
            x=ctx.cursor.min_x,
            y=ctx.cursor.y,
            max_width=width,
            size=theme.small_size,
            line_height=theme.small_size + 3,
            color=theme.colors.muted,
        )
        ctx.cursor.y = result.next_y - 2

    ctx.draw_line((ctx.cursor.min_x, ctx.cursor.y), (ctx.cursor.max_x, ctx.cursor.y))
    ctx.cursor.y -= 10 + theme.baseline


def draw_paragraph(
    ctx: ReportContext,
    text: str,
    *,
    muted: bool = False,
    size: float | None = None,
    max_width: float | None = None,
) -> None:
    """Draw body text at the cursor; long paragraphs continue on following pages."""
    theme = ctx.theme
    font_size = size if size is not None else theme.body_size
    block = TextBlock(
        TextBlockOptions(
            text=text,
            max_width=max_width if max_width is not None else ctx.cursor.width,
            size=font_size,
            line_height=max(font_size + 2, theme.line_height),
            color=theme.colors.muted if muted else theme.colors.text,
        ),
        gap_after=2,
    )
    render_block(ctx, block)


def estimate_key_value_height(
    ctx: ReportContext,
    key: str,
    value: str,
    *,
    label_width: float | None = None,
    value_font: FontFamily | str = FontFamily.regular,
) -> float:
    theme = ctx.theme
    label_width = theme.key_value_label_width if label_width is None else float(label_width)
    line_height = _key_value_line_height(ctx)
    label_height = measure_text_block_height(
        ctx,
        text=key,
        max_width=max(72.0, label_width - 8),
        size=theme.body_size,
        line_height=line_height,
        font=FontFamily.bold,
    )
    value_height = measure_text_block_height(
        ctx,
        text=value,
        max_width=max(120.0, ctx.cursor.width - label_width),
        size=theme.body_size,
        line_height=line_height,
        font=value_font,
    )
    return max(label_height, value_height) + 6


def draw_key_value_row(
    ctx: ReportContext,
    key: str,
    value: str,
    *,
    label_width: float | None = None,
    value_font: FontFamily | str = FontFamily.regular,
) -> None:
    theme = ctx.theme
    label_width = theme.key_value_label_width if label_width is None else float(label_width)
    line_height = _key_value_line_height(ctx)
    needed = estimate_key_value_height(ctx, key, value, label_width=label_width, value_font=value_font)
    ctx.ensure_space(needed)

    label_result = draw_text_block(
        ctx,
        text=key,
        x=ctx.cursor.min_x,
        y=ctx.cursor.y,
        max_width=max(72.0, label_width - 8),
        size=theme.body_size,
        font=FontFamily.bold,
        line_height=line_height,
        color=theme.colors.muted,
    )
    value_result = draw_text_block(
        ctx,
        text=value,
        x=ctx.cursor.min_x + label_width,
        y=ctx.cursor.y,
        max_width=max(120.0, ctx.cursor.width - label_width),
        size=theme.body_size,
        font=value_font,
        line_height=line_height,
    )
    ctx.cursor.y = min(label_result.next_y, value_result.next_y) - 6


def draw_key_value_list(ctx: ReportContext, rows: Iterable[KeyValue], *, gap_after: float = 0.0) -> None:
    for row in rows:
        draw_key_value_row(ctx, row.key, row.value, value_font=row.value_font)
    ctx.cursor.y -= gap_after


def draw_metric_cards(ctx: ReportContext, metrics: Sequence[MetricCard], *, columns: int | None = None) -> None:
    if not metrics:
        return
    theme = ctx.theme
    columns = max(1, min(columns or len(metrics), len(metrics)))
    gap = theme.gutter
    card_width = (ctx.cursor.width - gap * (columns - 1)) / columns
    card_height = theme.metric_card_min_height
    rows = -(-len(metrics) // columns)
    ctx.ensure_space(rows * (card_height + gap))

    for index, metric in enumerate(metrics):
        row, column = divmod(index, columns)
        top = ctx.cursor.y - row * (card_height + gap)
        x = ctx.cursor.min_x + column * (card_width + gap)
        ctx.draw_rect(
            x=x,
            y=top - card_height,
            width=card_width,
            height=card_height,
            fill=theme.colors.white,
            border=theme.colors.border,
        )
        draw_text_block(
            ctx,
            text=metric.label,
            x=x + 10,
            y=top - 15,
            max_width=card_width - 20,
            font=FontFamily.bold,
            size=theme.small_size,
            color=theme.colors.muted,
            max_lines=1,
        )
        draw_text_block(
            ctx,
            text=metric.value,
            x=x + 10,
            y=top - 34,
            max_width=card_width - 20,
            font=FontFamily.bold,
            size=theme.body_size + 1,
            line_height=theme.body_size + 2,
            max_lines=2,
        )
    ctx.cursor.y -= rows * (card_height + gap)


def draw_watermark(ctx: ReportContext, *, text: str, enabled: bool = True) -> None:
    if not enabled or not text:
        return
    theme = ctx.theme
    style = theme.watermark
    width = ctx.fonts.bold.width_of(text, style.text_size)
    ctx.draw_text(
        text,
        x=(theme.page_width - width) / 2,
        y=theme.page_height / 2,
        font=ctx.fonts.bold,
        size=style.text_size,
        color=theme.colors.subtle,
        opacity=style.text_opacity,
        rotate=style.angle_deg,
    )


def finalize_footers(ctx: ReportContext, label: str) -> None:
    """Stamp the footer rule, ``label`` and "Page i of N" on every page."""
    theme = ctx.theme
    total = ctx.page_count
    rule_y = theme.margin_bottom - 8
    text_y = rule_y - 13
    for index, page in enumerate(ctx.pages()):
        page_label = f'Page {index + 1} of {total}'
        page_label_width = ctx.fonts.regular.width_of(page_label, theme.small_size)
        ctx.draw_line(
            (theme.margin_left, rule_y),
            (theme.page_width - theme.margin_right, rule_y),
            page=page,
        )
        ctx.draw_text(
            label,
            x=theme.margin_left,
            y=text_y,
            font=ctx.fonts.regular,
            size=theme.small_size,
            color=theme.colors.muted,
            page=page,
        )
        ctx.draw_text(
            page_label,
            x=theme.page_width - theme.margin_right - page_label_width,
            y=text_y,
            font=ctx.fonts.regular,
            size=theme.small_size,
            color=theme.colors.muted,
            page=page,
        )
    logger.debug('Stamped footers on %s pages', total)
