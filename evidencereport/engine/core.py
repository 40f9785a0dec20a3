from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Generic, Iterator, Mapping, TypeVar

import pymupdf as fitz

from .fonts import ReportFont, ReportFonts, resolve_fonts
from .theme import RGB, Theme, merge_theme, theme_for_style

if TYPE_CHECKING:
    from .images import EmbeddedImage


logger = logging.getLogger(__name__)

StateT = TypeVar('StateT')
PageHook = Callable[['ReportContext'], None]


@dataclass
class LayoutCursor:
    """Current writable point and the margin box, in PDF user space (y grows upward)."""

    x: float
    y: float
    min_x: float
    max_x: float
    min_y: float
    max_y: float

    @classmethod
    def for_theme(cls, theme: Theme) -> LayoutCursor:
        top = theme.page_height - theme.margin_top
        return cls(
            x=theme.margin_left,
            y=top,
            min_x=theme.margin_left,
            max_x=theme.page_width - theme.margin_right,
            min_y=theme.margin_bottom,
            max_y=top,
        )

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    def reset(self) -> None:
        self.x = self.min_x
        self.y = self.max_y


class ReportContext:
    """Owns one output document plus the fonts, theme and cursor used to lay it out.

    A context is created per render and never shared. Drawing helpers take
    coordinates with the origin at the bottom-left corner of the page and
    translate them to pymupdf's top-left page space.
    """

    def __init__(
        self,
        *,
        document: fitz.Document,
        theme: Theme,
        fonts: ReportFonts,
        on_page_added: PageHook | None = None,
    ):
        self.document = document
        self.theme = theme
        self.fonts = fonts
        self.cursor = LayoutCursor.for_theme(theme)
        self.on_page_added = on_page_added
        self._page_fonts: dict[int, set[str]] = {}
        # Image streams already written into this document, keyed by their bytes.
        self._image_xrefs: dict[bytes, int] = {}
        self.page = self._new_page()

    def __enter__(self) -> ReportContext:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        if not self.document.is_closed:
            self.document.close()

    @property
    def page_count(self) -> int:
        return int(self.document.page_count)

    def pages(self) -> Iterator[fitz.Page]:
        for index in range(self.document.page_count):
            yield self.document[index]

    def _new_page(self) -> fitz.Page:
        return self.document.new_page(width=self.theme.page_width, height=self.theme.page_height)

    def _notify_page_added(self) -> None:
        if self.on_page_added is not None:
            self.on_page_added(self)

    def add_page(self) -> None:
        self.page = self._new_page()
        self.cursor.reset()
        self._notify_page_added()

    def ensure_space(self, needed_height: float) -> None:
        if self.cursor.y - float(needed_height) < self.cursor.min_y:
            self.add_page()

    def remaining_height(self) -> float:
        return self.cursor.y - self.cursor.min_y

    # Drawing primitives

    def _target(self, page: fitz.Page | None) -> fitz.Page:
        return page if page is not None else self.page

    def _point(self, page: fitz.Page, x: float, y: float) -> fitz.Point:
        return fitz.Point(float(x), float(page.rect.height) - float(y))

    def _rect(self, page: fitz.Page, x: float, y: float, width: float, height: float) -> fitz.Rect:
        page_height = float(page.rect.height)
        return fitz.Rect(
            float(x),
            page_height - float(y) - float(height),
            float(x) + float(width),
            page_height - float(y),
        )

    def use_font(self, font: ReportFont, page: fitz.Page | None = None) -> str:
        """Return the resource name for ``font`` on ``page``, embedding it on first use."""
        target = self._target(page)
        if font.builtin:
            return font.name
        installed = self._page_fonts.setdefault(target.number, set())
        if font.name not in installed:
            target.insert_font(fontname=font.name, fontbuffer=font.buffer)
            installed.add(font.name)
        return font.name

    def draw_text(
        self,
        text: str,
        *,
        x: float,
        y: float,
        font: ReportFont,
        size: float,
        color: RGB | None = None,
        line_height: float | None = None,
        opacity: float | None = None,
        rotate: float | None = None,
        page: fitz.Page | None = None,
    ) -> None:
        """Draw ``text`` with its first baseline at ``(x, y)``; ``\\n`` starts a new line."""
        target = self._target(page)
        point = self._point(target, x, y)
        options: dict[str, Any] = {
            'fontsize': float(size),
            'fontname': self.use_font(font, target),
            'color': color or self.theme.colors.text,
        }
        if line_height is not None and size > 0:
            options['lineheight'] = float(line_height) / float(size)
        if opacity is not None:
            options['fill_opacity'] = float(opacity)
            options['stroke_opacity'] = float(opacity)
        if rotate:
            options['morph'] = (point, fitz.Matrix(float(rotate)))
        target.insert_text(point, text, **options)

    def draw_line(
        self,
        start: tuple[float, float],
        end: tuple[float, float],
        *,
        color: RGB | None = None,
        width: float = 1.0,
        page: fitz.Page | None = None,
    ) -> None:
        target = self._target(page)
        target.draw_line(
            self._point(target, *start),
            self._point(target, *end),
            color=color or self.theme.colors.border,
            width=float(width),
        )

    def draw_rect(
        self,
        *,
        x: float,
        y: float,
        width: float,
        height: float,
        fill: RGB | None = None,
        border: RGB | None = None,
        border_width: float = 1.0,
        page: fitz.Page | None = None,
    ) -> None:
        """Draw a rectangle whose bottom-left corner is ``(x, y)``."""
        target = self._target(page)
        target.draw_rect(
            self._rect(target, x, y, width, height),
            color=border,
            fill=fill,
            width=float(border_width) if border is not None else 0,
        )

    def draw_image(
        self,
        image: EmbeddedImage,
        *,
        x: float,
        y: float,
        width: float,
        height: float,
        page: fitz.Page | None = None,
    ) -> None:
        target = self._target(page)
        rect = self._rect(target, x, y, width, height)
        xref = self._image_xrefs.get(image.data)
        if xref:
            target.insert_image(rect, xref=xref)
            return
        self._image_xrefs[image.data] = int(target.insert_image(rect, stream=image.data))

    def set_metadata(self, **fields: str) -> None:
        metadata = {
            key: value
            for key, value in (self.document.metadata or {}).items()
            if key not in ('format', 'encryption') and value
        }
        metadata.update({key: value for key, value in fields.items() if value is not None})
        self.document.set_metadata(metadata)


def create_report_context(
    *,
    theme: Mapping[str, Any] | Theme | None = None,
    style_version: str | None = None,
    on_page_added: PageHook | None = None,
    font_root: Path | None = None,
) -> ReportContext:
    resolved_theme = merge_theme(theme, base=theme_for_style(style_version))
    document = fitz.open()
    fonts = resolve_fonts(root=font_root)
    ctx = ReportContext(document=document, theme=resolved_theme, fonts=fonts, on_page_added=on_page_added)
    logger.debug(
        'Report context ready: theme=%s regular=%s bold=%s mono=%s',
        resolved_theme.id,
        fonts.regular.name,
        fonts.bold.name,
        fonts.mono.name,
    )
    # The hook fires for page 1 exactly as it will for every later page.
    ctx._notify_page_added()
    return ctx


class RenderableBlock(ABC, Generic[StateT]):
    """A unit of content that can measure itself, render at the cursor and optionally split."""

    @abstractmethod
    def measure(self, ctx: ReportContext, state: StateT | None = None) -> float:
        ...

    @abstractmethod
    def render(self, ctx: ReportContext, state: StateT | None = None) -> None:
        ...

    def split(self, ctx: ReportContext, state: StateT | None = None) -> tuple[StateT, StateT] | None:
        return None


def render_block(ctx: ReportContext, block: RenderableBlock[StateT], state: StateT | None = None) -> None:
    """Render ``block`` at the cursor, splitting it across pages when it supports splitting."""
    pending = state
    fresh_page = False
    while True:
        needed = block.measure(ctx, pending)
        if needed <= ctx.remaining_height():
            break
        parts = block.split(ctx, pending)
        if parts is None:
            # Unsplittable and taller than a fresh page: draw it there once.
            if fresh_page or ctx.cursor.y >= ctx.cursor.max_y:
                break
            ctx.add_page()
            fresh_page = True
            continue
        first, pending = parts
        block.render(ctx, first)
        ctx.add_page()
        fresh_page = True
    block.render(ctx, pending)
