from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import pymupdf as fitz

if TYPE_CHECKING:
    from .core import ReportContext


logger = logging.getLogger(__name__)

PNG_SIGNATURE = b'\x89PNG\r\n\x1a\n'
JPEG_SOI = b'\xff\xd8\xff'


@dataclass
class EmbeddedImage:
    kind: str
    data: bytes
    width: int
    height: int

    def scaled_to_height(self, target_height: float) -> tuple[float, float]:
        if self.height <= 0:
            return 0.0, 0.0
        scale = float(target_height) / float(self.height)
        return float(self.width) * scale, float(target_height)


def detect_image_type(data: bytes) -> str | None:
    if len(data) >= len(PNG_SIGNATURE) and data[: len(PNG_SIGNATURE)] == PNG_SIGNATURE:
        return 'png'
    if len(data) >= len(JPEG_SOI) and data[: len(JPEG_SOI)] == JPEG_SOI:
        return 'jpg'
    return None


def _decode(kind: str, data: bytes) -> EmbeddedImage:
    pixmap = fitz.Pixmap(data)
    if pixmap.width <= 0 or pixmap.height <= 0:
        raise ValueError(f'{kind} image has no pixels')
    return EmbeddedImage(kind=kind, data=data, width=int(pixmap.width), height=int(pixmap.height))


def embed_image_if_present(ctx: ReportContext, data: bytes | bytearray | None) -> EmbeddedImage | None:
    """Return an image handle for PNG/JPEG bytes, or ``None`` when absent, unsupported or corrupt.

    The image stream is written into a context's document the first time it is
    drawn there; later draws in the same document reuse it.
    """
    if not data:
        return None
    payload = bytes(data)
    kind = detect_image_type(payload)
    if kind is None:
        logger.info('Skipped report image: unsupported signature %r', payload[:8])
        return None
    try:
        return _decode(kind, payload)
    except Exception as exc:
        logger.info('Skipped report image: failed to decode %s bytes: %s', kind, exc)
        return None
