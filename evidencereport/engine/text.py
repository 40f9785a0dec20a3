from __future__ import annotations

import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Iterable

from .core import RenderableBlock, ReportContext
from .fonts import FontFamily, ReportFont, normalize_font_family
from .theme import DEFAULT_REPORT_WORD_BREAKS, RGB


ELLIPSIS = '…'

Measure = Callable[[str], float]


class TruncateMode(str, Enum):
    ellipsis = 'ellipsis'
    clip = 'clip'


@dataclass
class TextBlockOptions:
    text: str
    x: float | None = None
    y: float | None = None
    max_width: float | None = None
    size: float | None = None
    font: FontFamily | str | None = None
    # Legacy alias for ``font='bold'``.
    bold: bool | None = None
    color: RGB | None = None
    line_height: float | None = None
    word_breaks: Iterable[str] | None = None
    max_lines: int | None = None
    truncate_mode: TruncateMode | str = TruncateMode.ellipsis
    min_last_line_chars: int | None = None

    @property
    def family(self) -> FontFamily:
        return normalize_font_family(self.font, self.bold)


@dataclass(frozen=True)
class TextBlockResult:
    lines: list[str]
    consumed_height: float
    next_y: float


def _normalize_newlines(value: str) -> str:
    return value.replace('\r\n', '\n').replace('\r', '\n')


def _token_pattern(word_breaks: Iterable[str] | None) -> re.Pattern[str]:
    tokens = DEFAULT_REPORT_WORD_BREAKS if word_breaks is None else tuple(word_breaks)
    break_chars = ''.join(
        re.escape(token) for token in dict.fromkeys(tokens) if len(token) == 1 and not token.isspace()
    )
    return re.compile(rf'([\s{break_chars}]+)')


def tokenize_paragraph(paragraph: str, pattern: re.Pattern[str]) -> list[str]:
    """Split a paragraph into words and separator runs, keeping the separators."""
    return [token for token in pattern.split(paragraph) if token]


def split_oversized_token(token: str, max_width: float, measure: Measure) -> list[str]:
    """Hard-split ``token`` into the longest leading chunks that fit ``max_width``.

    A single glyph wider than ``max_width`` becomes a chunk of its own.
    """
    chunks: list[str] = []
    chunk = ''
    for char in token:
        candidate = f'{chunk}{char}'
        if not chunk or measure(candidate) <= max_width:
            chunk = candidate
            continue
        chunks.append(chunk)
        chunk = char
    if chunk:
        chunks.append(chunk)
    return chunks


def wrap_paragraph(paragraph: str, max_width: float, measure: Measure, pattern: re.Pattern[str]) -> list[str]:
    lines: list[str] = []
    line = ''

    for token in tokenize_paragraph(paragraph, pattern):
        candidate = f'{line}{token}'
        if measure(candidate) <= max_width:
            line = candidate
            continue

        clean = token.strip()
        if clean and measure(clean) > max_width:
            chunks = split_oversized_token(clean, max_width, measure)
            if line.strip():
                lines.append(line.rstrip())
            lines.extend(chunks[:-1])
            line = chunks[-1]
            continue

        if line.strip():
            lines.append(line.rstrip())
        line = token.lstrip()

    lines.append(line.rstrip())
    return lines


def wrap_text_to_lines(
    ctx: ReportContext,
    text: str | None,
    max_width: float,
    size: float,
    font_family: FontFamily | str | None = FontFamily.regular,
    word_breaks: Iterable[str] | None = None,
) -> list[str]:
    """Greedily wrap ``text`` into lines no wider than ``max_width`` points.

    Paragraphs (explicit newlines) wrap independently. Words wider than the
    column are hard-split. Blank lines come back as ``' '`` so they still take
    vertical space when drawn.
    """
    value = str(text or '')
    if max_width <= 1:
        return [value]

    font = ctx.fonts.for_family(font_family)
    pattern = _token_pattern(ctx.theme.word_breaks if word_breaks is None else word_breaks)

    def measure(candidate: str) -> float:
        return font.width_of(candidate, size)

    lines: list[str] = []
    for paragraph in _normalize_newlines(value).split('\n'):
        lines.extend(wrap_paragraph(paragraph, max_width, measure, pattern))
    return [line if line else ' ' for line in lines]


def fit_with_ellipsis(line: str, max_width: float, measure: Measure) -> str:
    """Drop trailing characters until ``line + ELLIPSIS`` fits; never below one character."""
    trimmed = line.rstrip()
    while len(trimmed) > 1 and measure(f'{trimmed}{ELLIPSIS}') > max_width:
        trimmed = trimmed[:-1].rstrip() or trimmed[:1]
    return trimmed


def pull_words_back(
    previous: str,
    last: str,
    *,
    min_chars: int,
    max_width: float,
    measure: Measure,
) -> tuple[str, str]:
    """Move whole words from the end of ``previous`` to the front of ``last``.

    Stops once ``last`` reaches ``min_chars`` characters, when ``previous`` is
    down to one word, or when the next move would push ``last`` plus the
    ellipsis past ``max_width``.
    """
    head = previous.rstrip()
    tail = last.strip()
    while len(tail) < min_chars:
        split_at = head.rfind(' ')
        if split_at <= 0:
            break
        word = head[split_at + 1 :]
        candidate = f'{word} {tail}' if tail else word
        if measure(f'{candidate}{ELLIPSIS}') > max_width:
            break
        head = head[:split_at].rstrip()
        tail = candidate
    return head, tail


def truncate_lines(
    lines: list[str],
    *,
    max_width: float,
    measure: Measure,
    min_last_line_chars: int,
) -> list[str]:
    """Append an ellipsis to the last line, avoiding a near-empty final fragment."""
    kept = list(lines)
    if not kept:
        return kept

    last = fit_with_ellipsis(kept[-1], max_width, measure)
    if len(last.strip()) < min_last_line_chars and len(kept) > 1:
        previous, last = pull_words_back(
            kept[-2],
            last,
            min_chars=min_last_line_chars,
            max_width=max_width,
            measure=measure,
        )
        kept[-2] = previous or ' '
    kept[-1] = f'{last.strip()}{ELLIPSIS}'
    return kept


@dataclass(frozen=True)
class _BlockLayout:
    x: float
    y: float
    size: float
    max_width: float
    line_height: float
    family: FontFamily
    word_breaks: tuple[str, ...]
    max_lines: int | None


def _layout(ctx: ReportContext, options: TextBlockOptions) -> _BlockLayout:
    x = ctx.cursor.x if options.x is None else float(options.x)
    size = float(options.size if options.size is not None else ctx.theme.body_size)
    return _BlockLayout(
        x=x,
        y=ctx.cursor.y if options.y is None else float(options.y),
        size=size,
        max_width=float(options.max_width) if options.max_width is not None else ctx.cursor.max_x - x,
        line_height=(
            float(options.line_height) if options.line_height is not None else max(size + 2, ctx.theme.line_height)
        ),
        family=options.family,
        word_breaks=ctx.theme.word_breaks if options.word_breaks is None else tuple(options.word_breaks),
        max_lines=options.max_lines if options.max_lines and options.max_lines > 0 else None,
    )


def _coerce_options(options: TextBlockOptions | None, overrides: dict[str, Any]) -> TextBlockOptions:
    if options is None:
        return TextBlockOptions(**overrides)
    if overrides:
        return replace(options, **overrides)
    return options


def _wrap(ctx: ReportContext, text: str, layout: _BlockLayout) -> list[str]:
    return wrap_text_to_lines(ctx, text, layout.max_width, layout.size, layout.family, layout.word_breaks)


def measure_text_block_height(ctx: ReportContext, options: TextBlockOptions | None = None, /, **overrides: Any) -> float:
    opts = _coerce_options(options, overrides)
    layout = _layout(ctx, opts)
    line_count = len(_wrap(ctx, opts.text, layout))
    if layout.max_lines is not None:
        line_count = min(line_count, layout.max_lines)
    return line_count * layout.line_height


def draw_lines(
    ctx: ReportContext,
    lines: list[str],
    *,
    x: float,
    y: float,
    font: ReportFont,
    size: float,
    line_height: float,
    color: RGB | None = None,
) -> TextBlockResult:
    if lines:
        ctx.draw_text('\n'.join(lines), x=x, y=y, font=font, size=size, color=color, line_height=line_height)
    consumed = len(lines) * line_height
    return TextBlockResult(lines=list(lines), consumed_height=consumed, next_y=y - consumed)


def _final_lines(ctx: ReportContext, opts: TextBlockOptions, layout: _BlockLayout, font: ReportFont) -> list[str]:
    wrapped = _wrap(ctx, opts.text, layout)
    max_lines = layout.max_lines
    lines = wrapped[:max_lines] if max_lines is not None else wrapped

    truncated = max_lines is not None and len(wrapped) > max_lines
    if truncated and TruncateMode(opts.truncate_mode) is TruncateMode.ellipsis:
        min_chars = opts.min_last_line_chars
        if min_chars is None:
            min_chars = ctx.theme.min_last_line_chars
        lines = truncate_lines(
            lines,
            max_width=layout.max_width,
            measure=lambda candidate: font.width_of(candidate, layout.size),
            min_last_line_chars=max(0, int(min_chars)),
        )
    return lines


def text_block_lines(ctx: ReportContext, options: TextBlockOptions | None = None, /, **overrides: Any) -> list[str]:
    """Lines exactly as ``draw_text_block`` would draw them, after wrapping and truncation."""
    opts = _coerce_options(options, overrides)
    layout = _layout(ctx, opts)
    return _final_lines(ctx, opts, layout, ctx.fonts.for_family(layout.family))


def draw_text_block(ctx: ReportContext, options: TextBlockOptions | None = None, /, **overrides: Any) -> TextBlockResult:
    """Wrap, optionally truncate, and draw a block of text with one draw call.

    ``y`` is the baseline of the first line. The shared cursor is not moved;
    callers use ``next_y`` from the result.
    """
    opts = _coerce_options(options, overrides)
    layout = _layout(ctx, opts)
    font = ctx.fonts.for_family(layout.family)
    lines = _final_lines(ctx, opts, layout, font)
    return draw_lines(
        ctx,
        lines,
        x=layout.x,
        y=layout.y,
        font=font,
        size=layout.size,
        line_height=layout.line_height,
        color=opts.color,
    )


class TextBlock(RenderableBlock[list[str]]):
    """Plain wrapped text that flows across pages line by line.

    The state is the list of lines still to draw; ``None`` means the whole
    text. Rendering starts at the cursor's left edge and moves the cursor
    below the drawn lines.
    """

    def __init__(self, options: TextBlockOptions, *, gap_after: float = 0.0):
        self.options = options
        self.gap_after = float(gap_after)

    def _block_layout(self, ctx: ReportContext) -> _BlockLayout:
        x = ctx.cursor.min_x if self.options.x is None else float(self.options.x)
        return _layout(ctx, replace(self.options, x=x, y=None))

    def lines(self, ctx: ReportContext, state: list[str] | None = None) -> list[str]:
        if state is not None:
            return state
        return _wrap(ctx, self.options.text, self._block_layout(ctx))

    def measure(self, ctx: ReportContext, state: list[str] | None = None) -> float:
        return len(self.lines(ctx, state)) * self._block_layout(ctx).line_height + self.gap_after

    def render(self, ctx: ReportContext, state: list[str] | None = None) -> None:
        layout = self._block_layout(ctx)
        result = draw_lines(
            ctx,
            self.lines(ctx, state),
            x=layout.x,
            y=ctx.cursor.y,
            font=ctx.fonts.for_family(layout.family),
            size=layout.size,
            line_height=layout.line_height,
            color=self.options.color,
        )
        ctx.cursor.y = result.next_y - self.gap_after

    def split(self, ctx: ReportContext, state: list[str] | None = None) -> tuple[list[str], list[str]] | None:
        lines = self.lines(ctx, state)
        line_height = self._block_layout(ctx).line_height
        fits = int(ctx.remaining_height() // line_height) if line_height > 0 else 0
        if fits < 1 or fits >= len(lines):
            return None
        return lines[:fits], lines[fits:]
