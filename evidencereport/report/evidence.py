from __future__ import annotations

import logging
from pathlib import Path

from evidencereport.config import get_settings
from evidencereport.engine.core import ReportContext, create_report_context
from evidencereport.engine.fonts import FontFamily
from evidencereport.engine.images import embed_image_if_present
from evidencereport.engine.sections import (
    KeyValue,
    MetricCard,
    draw_key_value_list,
    draw_metric_cards,
    draw_paragraph,
    draw_report_header,
    draw_section_heading,
    draw_watermark,
    estimate_key_value_height,
    finalize_footers,
)
from evidencereport.engine.serializer import save_report
from evidencereport.report.formatting import (
    PLACEHOLDER,
    fmt_duration,
    fmt_scroll,
    fmt_utc,
    pdf_date,
    safe_filename,
)
from evidencereport.types import DocumentEvidenceInput, EvidenceCompletion


logger = logging.getLogger(__name__)

FOOTER_LABEL = 'Receipt Evidence Document'
METADATA_TITLE = 'Receipt Evidence Record'


def evidence_filename(title: str, record_id: str) -> str:
    return f'receipt-record-{safe_filename(title or "document")}-{record_id}.pdf'


def sort_completions(completions: list[EvidenceCompletion]) -> list[EvidenceCompletion]:
    """Newest submission first; ties (and unsubmitted rows) ordered by recipient email."""
    by_email = sorted(completions, key=lambda row: row.recipient_email or '')
    return sorted(
        by_email,
        key=lambda row: row.submitted_at.timestamp() if row.submitted_at is not None else float('-inf'),
        reverse=True,
    )


def _recipient_label(completion: EvidenceCompletion) -> tuple[str, str | None]:
    name = (completion.recipient_name or '').strip()
    email = (completion.recipient_email or '').strip()
    secondary = email if name and email else None
    return name or email or 'Recipient', secondary


def _engagement(completion: EvidenceCompletion) -> str:
    return (
        f'Scroll {fmt_scroll(completion.max_scroll_percent)} | '
        f'Active {fmt_duration(completion.active_seconds)} | '
        f'Time on page {fmt_duration(completion.time_on_page_seconds)}'
    )


def _draw_completion(ctx: ReportContext, completion: EvidenceCompletion) -> None:
    status = 'Acknowledged' if completion.acknowledged else 'Not acknowledged'
    submitted = fmt_utc(completion.submitted_at)
    engagement = _engagement(completion)

    # Keep the recipient heading together with its first rows.
    opening_height = (
        estimate_key_value_height(ctx, 'Status', status)
        + estimate_key_value_height(ctx, 'Submitted', submitted)
        + estimate_key_value_height(ctx, 'Engagement', engagement)
    )
    ctx.ensure_space(opening_height + 28)

    label, secondary = _recipient_label(completion)
    draw_section_heading(ctx, label, secondary)
    draw_key_value_list(
        ctx,
        [
            KeyValue('Status', status),
            KeyValue('Submitted', submitted),
            KeyValue('Engagement', engagement),
            KeyValue('IP address', completion.ip or PLACEHOLDER, FontFamily.mono),
            KeyValue('User agent', completion.user_agent or PLACEHOLDER),
        ],
        gap_after=max(5, ctx.theme.section_gap - 2),
    )


def build_document_evidence_pdf(
    data: DocumentEvidenceInput,
    *,
    deterministic: bool | None = None,
    font_root: Path | None = None,
) -> bytes:
    """Render the evidence record for one document and return the PDF bytes."""
    settings = get_settings()
    if deterministic is None:
        deterministic = settings.pdf_deterministic
    style_version = data.report_style_version or settings.pdf_style_default
    watermark_text = data.brand_name or settings.brand_name

    def on_page_added(page_ctx: ReportContext) -> None:
        draw_watermark(page_ctx, text=watermark_text, enabled=data.watermark_enabled)

    ctx = create_report_context(
        style_version=style_version,
        on_page_added=on_page_added,
        font_root=font_root if font_root is not None else settings.font_root,
    )
    with ctx:
        workspace_logo = embed_image_if_present(ctx, data.brand_logo)
        receipt_logo = embed_image_if_present(ctx, data.receipt_logo)

        generated_label = fmt_utc(data.generated_at)
        acknowledgements = data.acknowledgement_count

        draw_report_header(
            ctx,
            title=data.document.title,
            subtitle=f'{data.workspace_name} delivery evidence and acknowledgement record.',
            eyebrow='EVIDENCE RECORD',
            right_meta=f'Generated {generated_label}',
            logo=workspace_logo or receipt_logo,
            brand_name=data.brand_name,
        )

        draw_metric_cards(
            ctx,
            [
                MetricCard('STATUS', 'Acknowledged' if acknowledgements > 0 else 'Pending'),
                MetricCard('ACKNOWLEDGEMENTS', str(acknowledgements)),
                MetricCard('LATEST ACK', fmt_utc(data.latest_acknowledgement())),
            ],
            columns=3,
        )

        document = data.document
        draw_section_heading(ctx, 'Document details', 'Reference and integrity fields')
        draw_key_value_list(
            ctx,
            [
                KeyValue('Public link', document.public_url, FontFamily.mono),
                KeyValue('Record ID', document.id, FontFamily.mono),
                KeyValue('Public ID', document.public_id, FontFamily.mono),
                KeyValue('Created', fmt_utc(document.created_at)),
                KeyValue('Document hash (SHA-256)', document.sha256 or PLACEHOLDER, FontFamily.mono),
            ],
            gap_after=ctx.theme.section_gap,
        )

        total = len(data.completions)
        draw_section_heading(ctx, 'Completions', f'{total} total submission{"" if total == 1 else "s"}')
        completions = sort_completions(data.completions)
        if not completions:
            draw_paragraph(ctx, 'No completions recorded yet.', muted=True)
        for completion in completions:
            _draw_completion(ctx, completion)

        finalize_footers(ctx, FOOTER_LABEL)

        stamp = pdf_date(data.generated_at)
        ctx.set_metadata(
            title=METADATA_TITLE,
            producer=data.brand_name,
            creator=data.brand_name,
            creationDate=stamp,
            modDate=stamp,
        )
        payload = save_report(ctx, deterministic=deterministic)
        pages = ctx.page_count

    logger.info(
        'Built evidence record: document=%s completions=%s pages=%s bytes=%s',
        document.id,
        total,
        pages,
        len(payload),
    )
    return payload
