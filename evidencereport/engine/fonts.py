from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable

import pymupdf as fitz
from fontTools.ttLib import TTFont as FontToolsTTFont


logger = logging.getLogger(__name__)

REPORT_REGULAR_CANDIDATES: tuple[Path, ...] = (
    Path('public/fonts/reports/NotoSans-Regular.ttf'),
    Path('public/fonts/reports/LiberationSans-Regular.ttf'),
    Path('public/fonts/Inter-Regular.ttf'),
    Path('public/fonts/Inter-Regular.otf'),
    Path('public/fonts/InterVariable.ttf'),
    Path('public/fonts/Inter-Regular.woff2'),
)
REPORT_BOLD_CANDIDATES: tuple[Path, ...] = (
    Path('public/fonts/reports/NotoSans-SemiBold.ttf'),
    Path('public/fonts/reports/NotoSans-Bold.ttf'),
    Path('public/fonts/reports/LiberationSans-Bold.ttf'),
    Path('public/fonts/Inter-SemiBold.ttf'),
    Path('public/fonts/Inter-Bold.ttf'),
    Path('public/fonts/Inter-SemiBold.otf'),
    Path('public/fonts/Inter-Bold.otf'),
)
REPORT_MONO_CANDIDATES: tuple[Path, ...] = (
    Path('public/fonts/reports/NotoSansMono-Regular.ttf'),
    Path('public/fonts/reports/LiberationMono-Regular.ttf'),
)

# Base-14 resource names understood by pymupdf without embedding.
BUILTIN_REGULAR = 'helv'
BUILTIN_BOLD = 'hebo'
BUILTIN_MONO = 'cour'

_SLOT_RESOURCE_NAMES = {
    'regular': 'RptRegular',
    'bold': 'RptBold',
    'mono': 'RptMono',
}
_WOFF_SUFFIXES = {'.woff', '.woff2'}


class FontFamily(str, Enum):
    regular = 'regular'
    bold = 'bold'
    mono = 'mono'


def normalize_font_family(font: FontFamily | str | None = None, bold: bool | None = None) -> FontFamily:
    """Map the ``font`` selector and the legacy ``bold`` flag onto one family."""
    if isinstance(font, FontFamily):
        return font
    if font is not None:
        token = str(font).strip().lower()
        try:
            return FontFamily(token)
        except ValueError as exc:
            raise ValueError(f'unknown font family: {font!r}') from exc
    if bold is True:
        return FontFamily.bold
    return FontFamily.regular


@dataclass(frozen=True)
class ReportFont:
    name: str
    font: fitz.Font
    buffer: bytes | None = None
    source: Path | None = None

    @property
    def builtin(self) -> bool:
        return self.buffer is None

    def width_of(self, text: str, size: float) -> float:
        if not text:
            return 0.0
        return float(self.font.text_length(text, fontsize=float(size)))


@dataclass(frozen=True)
class ReportFonts:
    regular: ReportFont
    bold: ReportFont
    mono: ReportFont

    def for_family(self, family: FontFamily | str | None) -> ReportFont:
        resolved = normalize_font_family(family)
        if resolved is FontFamily.bold:
            return self.bold
        if resolved is FontFamily.mono:
            return self.mono
        return self.regular


def builtin_fonts() -> ReportFonts:
    return ReportFonts(
        regular=ReportFont(name=BUILTIN_REGULAR, font=fitz.Font(BUILTIN_REGULAR)),
        bold=ReportFont(name=BUILTIN_BOLD, font=fitz.Font(BUILTIN_BOLD)),
        mono=ReportFont(name=BUILTIN_MONO, font=fitz.Font(BUILTIN_MONO)),
    )


def _decode_woff(data: bytes) -> bytes:
    font = FontToolsTTFont(io.BytesIO(data))
    font.flavor = None
    output = io.BytesIO()
    font.save(output)
    return output.getvalue()


def _read_font_bytes(path: Path) -> bytes | None:
    if not path.exists() or not path.is_file():
        return None
    try:
        data = path.read_bytes()
    except OSError as exc:
        logger.info('Skipped report font %s: %s', path, exc)
        return None
    if not data:
        return None
    if path.suffix.lower() in _WOFF_SUFFIXES:
        try:
            return _decode_woff(data)
        except Exception as exc:
            logger.info('Failed to decode web font %s: %s', path, exc)
            return None
    return data


def _load_custom_font(slot: str, data: bytes, source: Path) -> ReportFont | None:
    try:
        font = fitz.Font(fontbuffer=data)
    except Exception as exc:
        logger.warning('Rejected report font %s for %s slot: %s', source, slot, exc)
        return None
    if int(getattr(font, 'glyph_count', 0) or 0) <= 0:
        logger.warning('Rejected report font %s for %s slot: no glyphs', source, slot)
        return None
    return ReportFont(name=_SLOT_RESOURCE_NAMES[slot], font=font, buffer=data, source=source)


def _first_loadable(slot: str, root: Path, candidates: Iterable[Path]) -> ReportFont | None:
    for relative in candidates:
        path = root / relative
        data = _read_font_bytes(path)
        if data is None:
            continue
        loaded = _load_custom_font(slot, data, path)
        if loaded is not None:
            return loaded
    return None


def resolve_fonts(
    *,
    root: Path | None = None,
    regular_candidates: Iterable[Path] = REPORT_REGULAR_CANDIDATES,
    bold_candidates: Iterable[Path] = REPORT_BOLD_CANDIDATES,
    mono_candidates: Iterable[Path] = REPORT_MONO_CANDIDATES,
) -> ReportFonts:
    """Resolve the regular/bold/mono triplet; every slot degrades to a Base-14 font."""
    fallback = builtin_fonts()
    search_root = Path(root) if root is not None else Path.cwd()

    try:
        regular = _first_loadable('regular', search_root, regular_candidates)
        bold = _first_loadable('bold', search_root, bold_candidates)
        if bold is None and regular is not None:
            bold = _load_custom_font('bold', regular.buffer or b'', regular.source or search_root)
        mono = _first_loadable('mono', search_root, mono_candidates)
    except Exception as exc:
        logger.warning('Custom report fonts unavailable, using built-in fonts: %s', exc)
        return fallback

    return ReportFonts(
        regular=regular or fallback.regular,
        bold=bold or fallback.bold,
        mono=mono or fallback.mono,
    )
