from __future__ import annotations

import math
import re
from datetime import datetime

from evidencereport.types import as_utc


PLACEHOLDER = '--'


def _finite(value: float | None) -> bool:
    return value is not None and math.isfinite(float(value))


def fmt_utc(value: datetime | None) -> str:
    """Format a timestamp as ``18 Oct 2026 14:05 UTC``."""
    stamp = as_utc(value)
    if stamp is None:
        return PLACEHOLDER
    return stamp.strftime('%d %b %Y %H:%M UTC')


def fmt_duration(seconds: float | None) -> str:
    if not _finite(seconds):
        return PLACEHOLDER
    total = max(0, math.floor(float(seconds)))
    minutes, rest = divmod(total, 60)
    return f'{minutes}m {rest:02d}s'


def fmt_scroll(percent: float | None) -> str:
    if not _finite(percent):
        return PLACEHOLDER
    return f'{max(0, min(100, math.floor(float(percent) + 0.5)))}%'


def safe_filename(value: str, limit: int = 80) -> str:
    slug = re.sub(r'[^a-z0-9]+', '-', value.lower()).strip('-')
    return slug[:limit]


def pdf_date(value: datetime) -> str:
    """PDF info-dictionary date string in UTC, e.g. ``D:20261018140500+00'00'``."""
    return as_utc(value).strftime("D:%Y%m%d%H%M%S+00'00'")
