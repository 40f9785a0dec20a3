from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from evidencereport.engine.theme import DEFAULT_STYLE_VERSION, parse_style_version


logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
        populate_by_name=True,
    )

    app_name: str = 'Receipt Evidence Reports'

    # Fonts: candidate paths are resolved relative to this directory.
    font_root: Path = Field(
        default=Path('.'),
        validation_alias=AliasChoices('REPORT_FONT_ROOT', 'FONT_ROOT', 'font_root'),
    )

    # PDF output
    pdf_deterministic: bool = Field(
        default=False,
        validation_alias=AliasChoices('PDF_DETERMINISTIC', 'pdf_deterministic'),
    )
    pdf_style_default: str = Field(
        default=DEFAULT_STYLE_VERSION,
        validation_alias=AliasChoices('PDF_STYLE_DEFAULT', 'pdf_style_default'),
    )

    # Branding
    receipt_logo_path: Path | None = Path('public/receipt-logo.png')
    brand_name: str = 'Receipt'
    watermark_enabled: bool = False

    log_level: str = 'INFO'

    @field_validator('pdf_style_default', mode='before')
    @classmethod
    def _fallback_style(cls, value: object) -> str:
        style = parse_style_version(value)
        if style is not None:
            return style
        if value:
            logger.warning('Unknown PDF_STYLE_DEFAULT %r, using %s', value, DEFAULT_STYLE_VERSION)
        return DEFAULT_STYLE_VERSION

    def read_receipt_logo(self) -> bytes | None:
        path = self.receipt_logo_path
        if path is None or not path.is_file():
            return None
        try:
            return path.read_bytes()
        except OSError as exc:
            logger.info('Could not read receipt logo %s: %s', path, exc)
            return None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
