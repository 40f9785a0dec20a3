"""Shared pytest fixtures for the evidence report engine."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from evidencereport.config import get_settings
from evidencereport.engine.core import ReportContext, create_report_context

# Courier advances every glyph by 0.6 em.
MONO_SIZE = 12.0
MONO_ADVANCE = 7.2


def mono_width(chars: int) -> float:
    """A column that fits exactly ``chars`` Courier glyphs at ``MONO_SIZE``."""
    return chars * MONO_ADVANCE + 0.5


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Run every test from an empty directory so no fonts, logos or .env leak in."""
    monkeypatch.chdir(tmp_path)
    for name in ('REPORT_FONT_ROOT', 'FONT_ROOT', 'PDF_DETERMINISTIC', 'PDF_STYLE_DEFAULT'):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def font_root(tmp_path: Path) -> Path:
    root = tmp_path / 'fonts-root'
    root.mkdir()
    return root


@pytest.fixture
def ctx(font_root: Path) -> Iterator[ReportContext]:
    with create_report_context(font_root=font_root) as context:
        yield context
