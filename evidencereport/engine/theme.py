from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, Mapping

from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import A4


RGB = tuple[float, float, float]

PAGE_WIDTH, PAGE_HEIGHT = A4

DEFAULT_REPORT_WORD_BREAKS: tuple[str, ...] = (' ', '/', '-', '_', '|', ':')
DEFAULT_STYLE_VERSION = 'v3'
STYLE_VERSIONS = ('v2', 'v3')


def _rgb(value: Any) -> RGB:
    if isinstance(value, str):
        return tuple(float(channel) for channel in HexColor(value).rgb())  # type: ignore[return-value]
    if isinstance(value, (tuple, list)) and len(value) == 3:
        return (float(value[0]), float(value[1]), float(value[2]))
    raise ValueError(f'unsupported color value: {value!r}')


@dataclass(frozen=True)
class ThemeColors:
    text: RGB
    muted: RGB
    subtle: RGB
    border: RGB
    strong_border: RGB
    panel: RGB
    panel_alt: RGB
    footer_panel: RGB
    accent: RGB
    white: RGB = (1.0, 1.0, 1.0)

    @classmethod
    def from_hex(cls, **values: str) -> ThemeColors:
        return cls(**{key: _rgb(value) for key, value in values.items()})


@dataclass(frozen=True)
class TableDefaults:
    font_size: float = 8.7
    header_font_size: float = 8.95
    line_height: float = 10.1
    cell_padding_x: float = 5.5
    cell_padding_y: float = 4.0
    max_cell_lines: int = 2
    striped_rows: bool = True


@dataclass(frozen=True)
class WatermarkStyle:
    angle_deg: float = 31.0
    text_size: float = 29.0
    text_opacity: float = 0.042


@dataclass(frozen=True)
class Theme:
    """Immutable page geometry, typography and palette for one report."""

    id: str
    colors: ThemeColors
    page_width: float = PAGE_WIDTH
    page_height: float = PAGE_HEIGHT
    margin_top: float = 52.0
    margin_right: float = 38.0
    margin_bottom: float = 40.0
    margin_left: float = 38.0
    baseline: float = 4.0
    gutter: float = 10.0
    title_size: float = 20.0
    heading_size: float = 12.2
    body_size: float = 10.2
    small_size: float = 8.6
    line_height: float = 14.2
    word_breaks: tuple[str, ...] = DEFAULT_REPORT_WORD_BREAKS
    section_gap: float = 9.0
    key_value_label_width: float = 174.0
    header_band_height: float = 74.0
    footer_band_height: float = 22.0
    metric_card_min_height: float = 60.0
    # Shortest acceptable final line (before the ellipsis) after truncation.
    min_last_line_chars: int = 6
    table: TableDefaults = field(default_factory=TableDefaults)
    watermark: WatermarkStyle = field(default_factory=WatermarkStyle)

    @property
    def content_width(self) -> float:
        return self.page_width - self.margin_left - self.margin_right


REPORT_THEME_V2 = Theme(
    id='v2',
    margin_top=54.0,
    margin_right=42.0,
    margin_bottom=42.0,
    margin_left=42.0,
    title_size=21.0,
    heading_size=12.6,
    body_size=10.35,
    small_size=8.7,
    line_height=14.6,
    key_value_label_width=180.0,
    header_band_height=78.0,
    footer_band_height=24.0,
    metric_card_min_height=62.0,
    table=TableDefaults(
        font_size=8.8,
        header_font_size=9.1,
        line_height=10.2,
        cell_padding_x=6.0,
    ),
    watermark=WatermarkStyle(text_size=30.0, text_opacity=0.045),
    colors=ThemeColors.from_hex(
        text='#1B1F26',
        muted='#464F5C',
        subtle='#737D8F',
        border='#D6DBE6',
        strong_border='#BAC4D1',
        panel='#F5F8FC',
        panel_alt='#FAFBFE',
        footer_panel='#F3F6FA',
        accent='#154186',
        white='#FFFFFF',
    ),
)

REPORT_THEME_V3 = Theme(
    id='v3',
    colors=ThemeColors.from_hex(
        text='#1A1E25',
        muted='#454D59',
        subtle='#70798A',
        border='#D5DAE4',
        strong_border='#B5BFCF',
        panel='#F4F7FB',
        panel_alt='#FAFBFE',
        footer_panel='#F2F5FA',
        accent='#143E81',
        white='#FFFFFF',
    ),
)

DEFAULT_REPORT_THEME = REPORT_THEME_V3


def parse_style_version(value: object) -> str | None:
    token = str(value or '').strip().lower()
    if token in STYLE_VERSIONS:
        return token
    return None


def theme_for_style(style_version: str | None) -> Theme:
    token = parse_style_version(style_version) or DEFAULT_STYLE_VERSION
    return REPORT_THEME_V2 if token == 'v2' else REPORT_THEME_V3


def _merge_nested(current: Any, override: Any, label: str) -> Any:
    if override is None:
        return current
    if isinstance(override, type(current)):
        return override
    if not isinstance(override, Mapping):
        raise ValueError(f'theme override for {label} must be a mapping')
    known = {item.name for item in fields(current)}
    unknown = sorted(set(override) - known)
    if unknown:
        raise ValueError(f'unknown {label} theme keys: {", ".join(unknown)}')
    values = dict(override)
    if isinstance(current, ThemeColors):
        values = {key: _rgb(value) for key, value in values.items()}
    return replace(current, **values)


def merge_theme(overrides: Mapping[str, Any] | Theme | None = None, *, base: Theme | None = None) -> Theme:
    """Return ``base`` with a partial override applied; nested groups merge key-wise."""
    base_theme = base or DEFAULT_REPORT_THEME
    if overrides is None:
        return base_theme
    if isinstance(overrides, Theme):
        return overrides

    known = {item.name for item in fields(Theme)}
    unknown = sorted(set(overrides) - known)
    if unknown:
        raise ValueError(f'unknown theme keys: {", ".join(unknown)}')

    values: dict[str, Any] = {}
    for key, value in overrides.items():
        if key in {'colors', 'table', 'watermark'}:
            values[key] = _merge_nested(getattr(base_theme, key), value, key)
        elif key == 'word_breaks':
            values[key] = tuple(str(token) for token in value or ())
        else:
            values[key] = value
    return replace(base_theme, **values)
