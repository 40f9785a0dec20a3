from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated

from pydantic import AfterValidator, BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive timestamps as UTC and convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


class EvidenceCompletion(BaseModel):
    acknowledged: bool = False
    submitted_at: UtcDatetime | None = None
    max_scroll_percent: float | None = None
    time_on_page_seconds: float | None = None
    active_seconds: float | None = None
    ip: str | None = None
    user_agent: str | None = None
    recipient_name: str | None = None
    recipient_email: str | None = None


class DocumentInfo(BaseModel):
    id: str
    title: str
    public_id: str
    created_at: UtcDatetime | None = None
    sha256: str | None = None
    public_url: str


class DocumentEvidenceInput(BaseModel):
    report_style_version: str | None = None
    generated_at: UtcDatetime = Field(default_factory=utcnow)
    watermark_enabled: bool = False
    workspace_name: str
    brand_name: str = 'Receipt'
    # Raw PNG/JPEG bytes; the CLI fills these from files.
    brand_logo: bytes | None = Field(default=None, exclude=True)
    receipt_logo: bytes | None = Field(default=None, exclude=True)
    document: DocumentInfo
    completions: list[EvidenceCompletion] = Field(default_factory=list)

    @property
    def acknowledgement_count(self) -> int:
        return sum(1 for row in self.completions if row.acknowledged)

    def latest_acknowledgement(self) -> datetime | None:
        stamps = [row.submitted_at for row in self.completions if row.acknowledged and row.submitted_at is not None]
        return max(stamps, default=None)
