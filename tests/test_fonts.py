from __future__ import annotations

from pathlib import Path

import pymupdf as fitz
import pytest

from evidencereport.engine.fonts import (
    BUILTIN_BOLD,
    BUILTIN_MONO,
    BUILTIN_REGULAR,
    REPORT_MONO_CANDIDATES,
    REPORT_REGULAR_CANDIDATES,
    FontFamily,
    normalize_font_family,
    resolve_fonts,
)
from evidencereport.engine.core import create_report_context
from evidencereport.engine.serializer import save_report


def _write(root: Path, relative: Path, data: bytes) -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


def test_missing_candidates_fall_back_to_builtins(font_root: Path) -> None:
    fonts = resolve_fonts(root=font_root)

    assert (fonts.regular.name, fonts.bold.name, fonts.mono.name) == (BUILTIN_REGULAR, BUILTIN_BOLD, BUILTIN_MONO)
    assert fonts.regular.builtin and fonts.bold.builtin and fonts.mono.builtin


def test_corrupt_candidates_fall_back_to_builtins(font_root: Path) -> None:
    for relative in REPORT_REGULAR_CANDIDATES + REPORT_MONO_CANDIDATES:
        _write(font_root, relative, b'not a font file at all')

    fonts = resolve_fonts(root=font_root)

    assert fonts.regular.name == BUILTIN_REGULAR
    assert fonts.mono.name == BUILTIN_MONO
    assert fonts.regular.width_of('abc', 10) > 0


def test_first_valid_candidate_wins_and_bold_reuses_regular(font_root: Path) -> None:
    _write(font_root, REPORT_REGULAR_CANDIDATES[0], b'broken')
    source = _write(font_root, REPORT_REGULAR_CANDIDATES[1], fitz.Font('helv').buffer)

    fonts = resolve_fonts(root=font_root)

    assert not fonts.regular.builtin
    assert fonts.regular.source == source
    assert not fonts.bold.builtin
    assert fonts.bold.buffer == fonts.regular.buffer
    assert fonts.mono.name == BUILTIN_MONO


def test_custom_font_is_embedded_when_drawn(font_root: Path) -> None:
    _write(font_root, REPORT_REGULAR_CANDIDATES[0], fitz.Font('helv').buffer)

    with create_report_context(font_root=font_root) as ctx:
        ctx.draw_text('Embedded', x=60, y=700, font=ctx.fonts.regular, size=12)
        ctx.add_page()
        ctx.draw_text('Again', x=60, y=700, font=ctx.fonts.regular, size=12)
        payload = save_report(ctx)

    with fitz.open(stream=payload, filetype='pdf') as document:
        assert document.page_count == 2
        assert 'Embedded' in document[0].get_text()
        assert 'Again' in document[1].get_text()


def test_builtin_mono_advances_are_uniform(ctx) -> None:
    mono = ctx.fonts.mono

    assert mono.width_of('iiii', 12) == pytest.approx(mono.width_of('MMMM', 12))
    assert mono.width_of('abc', 12) == pytest.approx(21.6)
    assert mono.width_of('', 12) == 0


@pytest.mark.parametrize(
    ('font', 'bold', 'expected'),
    [
        (None, None, FontFamily.regular),
        (None, True, FontFamily.bold),
        ('bold', None, FontFamily.bold),
        ('MONO', None, FontFamily.mono),
        ('mono', True, FontFamily.mono),
        (FontFamily.regular, True, FontFamily.regular),
    ],
)
def test_normalize_font_family(font, bold, expected) -> None:
    assert normalize_font_family(font, bold) is expected


def test_unknown_font_family_raises() -> None:
    with pytest.raises(ValueError):
        normalize_font_family('fancy')
