from __future__ import annotations

from datetime import datetime, timezone
from io import BytesIO

import pytest
from pypdf import PdfReader

from evidencereport.report.evidence import build_document_evidence_pdf, evidence_filename, sort_completions
from evidencereport.report.formatting import fmt_duration, fmt_scroll, fmt_utc, pdf_date, safe_filename
from evidencereport.types import DocumentEvidenceInput, EvidenceCompletion


def _payload(**overrides) -> DocumentEvidenceInput:
    data = {
        'generated_at': '2026-10-18T14:05:00Z',
        'workspace_name': 'Acme Ltd',
        'document': {
            'id': 'doc_8f2c',
            'title': 'Information Security Policy',
            'public_id': 'pub_91aa',
            'created_at': '2026-09-01T08:00:00Z',
            'sha256': 'ab' * 32,
            'public_url': 'https://receipt.example/d/pub_91aa',
        },
        'completions': [
            {
                'acknowledged': True,
                'submitted_at': '2026-10-02T09:30:00Z',
                'max_scroll_percent': 100,
                'time_on_page_seconds': 187,
                'active_seconds': 95.6,
                'ip': '203.0.113.7',
                'user_agent': 'Mozilla/5.0',
                'recipient_name': 'Ada Lovelace',
                'recipient_email': 'ada@example.com',
            },
            {
                'acknowledged': False,
                'submitted_at': None,
                'recipient_email': 'grace@example.com',
            },
        ],
    }
    data.update(overrides)
    return DocumentEvidenceInput.model_validate(data)


def _pages(payload: bytes) -> list[str]:
    return [page.extract_text() for page in PdfReader(BytesIO(payload)).pages]


def test_fmt_utc() -> None:
    assert fmt_utc(datetime(2026, 10, 18, 14, 5, tzinfo=timezone.utc)) == '18 Oct 2026 14:05 UTC'
    assert fmt_utc(datetime(2026, 10, 18, 14, 5)) == '18 Oct 2026 14:05 UTC'
    assert fmt_utc(None) == '--'


@pytest.mark.parametrize(('seconds', 'expected'), [(187, '3m 07s'), (59.9, '0m 59s'), (-4, '0m 00s'), (None, '--')])
def test_fmt_duration(seconds, expected) -> None:
    assert fmt_duration(seconds) == expected


@pytest.mark.parametrize(('value', 'expected'), [(99.5, '100%'), (140, '100%'), (-3, '0%'), (float('nan'), '--')])
def test_fmt_scroll(value, expected) -> None:
    assert fmt_scroll(value) == expected


def test_pdf_date_is_utc() -> None:
    assert pdf_date(datetime(2026, 10, 18, 14, 5, tzinfo=timezone.utc)) == "D:20261018140500+00'00'"


def test_evidence_filename_is_safe() -> None:
    assert safe_filename('  Q3: Policy / Update!! ') == 'q3-policy-update'
    assert evidence_filename('Q3: Policy', 'doc_1') == 'receipt-record-q3-policy-doc_1.pdf'
    assert evidence_filename('', 'doc_1') == 'receipt-record-document-doc_1.pdf'


def test_completions_sorted_newest_first_then_by_email() -> None:
    rows = [
        EvidenceCompletion(recipient_email='b@x.io', submitted_at=datetime(2026, 1, 1, tzinfo=timezone.utc)),
        EvidenceCompletion(recipient_email='z@x.io'),
        EvidenceCompletion(recipient_email='a@x.io', submitted_at=datetime(2026, 1, 1, tzinfo=timezone.utc)),
        EvidenceCompletion(recipient_email='c@x.io', submitted_at=datetime(2026, 3, 1, tzinfo=timezone.utc)),
        EvidenceCompletion(recipient_email='y@x.io'),
    ]

    ordered = [row.recipient_email for row in sort_completions(rows)]

    assert ordered == ['c@x.io', 'a@x.io', 'b@x.io', 'y@x.io', 'z@x.io']


def test_latest_acknowledgement_ignores_unacknowledged_rows() -> None:
    data = _payload(
        completions=[
            {'acknowledged': True, 'submitted_at': '2026-10-01T00:00:00Z'},
            {'acknowledged': False, 'submitted_at': '2026-10-05T00:00:00Z'},
        ]
    )

    assert data.acknowledgement_count == 1
    assert data.latest_acknowledgement() == datetime(2026, 10, 1, tzinfo=timezone.utc)


def test_evidence_record_contents(font_root) -> None:
    payload = build_document_evidence_pdf(_payload(), font_root=font_root)
    text = '\n'.join(_pages(payload))

    assert 'Information Security Policy' in text
    assert 'EVIDENCE RECORD' in text
    assert 'Generated 18 Oct 2026 14:05 UTC' in text
    assert 'Acknowledged' in text
    assert 'Ada Lovelace' in text
    assert 'ada@example.com' in text
    assert 'Scroll 100% | Active 1m 35s | Time on page 3m 07s' in text
    assert '2 total submissions' in text
    assert 'Page 1 of' in text


def test_evidence_record_metadata(font_root) -> None:
    reader = PdfReader(BytesIO(build_document_evidence_pdf(_payload(), font_root=font_root)))

    assert reader.metadata.title == 'Receipt Evidence Record'
    assert reader.metadata.creator == 'Receipt'
    assert reader.metadata.creation_date == datetime(2026, 10, 18, 14, 5, tzinfo=timezone.utc)


def test_empty_completions_note(font_root) -> None:
    text = '\n'.join(_pages(build_document_evidence_pdf(_payload(completions=[]), font_root=font_root)))

    assert 'No completions recorded yet.' in text
    assert 'Pending' in text
    assert '0 total submissions' in text


def test_many_completions_paginate_with_footers(font_root) -> None:
    completions = [
        {
            'acknowledged': index % 2 == 0,
            'submitted_at': f'2026-10-{(index % 28) + 1:02d}T10:00:00Z',
            'recipient_email': f'user{index:02d}@example.com',
            'user_agent': 'Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/129.0',
        }
        for index in range(40)
    ]
    pages = _pages(build_document_evidence_pdf(_payload(completions=completions), font_root=font_root))

    assert len(pages) > 2
    for index, text in enumerate(pages, start=1):
        assert f'Page {index} of {len(pages)}' in text


def test_deterministic_builds_match(font_root) -> None:
    data = _payload()

    first = build_document_evidence_pdf(data, deterministic=True, font_root=font_root)
    second = build_document_evidence_pdf(data, deterministic=True, font_root=font_root)

    assert first == second


def test_deterministic_flag_defaults_from_settings(font_root, monkeypatch) -> None:
    from evidencereport.config import get_settings

    monkeypatch.setenv('PDF_DETERMINISTIC', '1')
    get_settings.cache_clear()
    data = _payload()

    assert build_document_evidence_pdf(data, font_root=font_root) == build_document_evidence_pdf(
        data, font_root=font_root
    )


def test_watermark_and_v2_style(font_root) -> None:
    payload = build_document_evidence_pdf(
        _payload(watermark_enabled=True, report_style_version='v2'),
        font_root=font_root,
    )

    assert PdfReader(BytesIO(payload)).pages
