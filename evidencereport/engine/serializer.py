from __future__ import annotations

import logging

from .core import ReportContext


logger = logging.getLogger(__name__)


def save_report(ctx: ReportContext, deterministic: bool = False) -> bytes:
    """Serialize the context's document.

    Deterministic mode writes plain (non object-stream) output and keeps the
    file identifier fixed, so identical inputs give identical bytes. Invalid
    document state (for example zero pages) raises.
    """
    if deterministic:
        payload = ctx.document.tobytes(garbage=3, deflate=True, use_objstms=0, no_new_id=True)
    else:
        payload = ctx.document.tobytes(garbage=3, deflate=True, use_objstms=1)
    logger.debug('Serialized report: pages=%s bytes=%s deterministic=%s', ctx.page_count, len(payload), deterministic)
    return payload
