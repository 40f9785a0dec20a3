from __future__ import annotations

import json
from contextlib import redirect_stdout
from io import StringIO
from pathlib import Path

from main import main


def _run(argv: list[str]) -> tuple[int, dict]:
    stdout = StringIO()
    with redirect_stdout(stdout):
        code = main(argv)
    return code, json.loads(stdout.getvalue())


def _write_input(tmp_path: Path) -> Path:
    path = tmp_path / 'evidence.json'
    path.write_text(
        json.dumps(
            {
                'generated_at': '2026-10-18T14:05:00Z',
                'workspace_name': 'Acme Ltd',
                'document': {
                    'id': 'doc_8f2c',
                    'title': 'Remote Work Policy',
                    'public_id': 'pub_91aa',
                    'public_url': 'https://receipt.example/d/pub_91aa',
                },
                'completions': [],
            }
        ),
        encoding='utf-8',
    )
    return path


def test_render_writes_pdf(tmp_path: Path) -> None:
    output = tmp_path / 'out' / 'record.pdf'

    code, payload = _run(['render', '--input', str(_write_input(tmp_path)), '--output', str(output), '--deterministic'])

    assert code == 0
    assert payload['status'] == 'ok'
    assert payload['filename'] == 'receipt-record-remote-work-policy-doc_8f2c.pdf'
    assert output.read_bytes().startswith(b'%PDF')


def test_render_missing_input(tmp_path: Path) -> None:
    code, payload = _run(['render', '--input', str(tmp_path / 'nope.json'), '--output', str(tmp_path / 'x.pdf')])

    assert code == 2
    assert payload['status'] == 'error'


def test_render_invalid_input(tmp_path: Path) -> None:
    path = tmp_path / 'bad.json'
    path.write_text('{"workspace_name": "Acme"}', encoding='utf-8')

    code, payload = _run(['render', '--input', str(path), '--output', str(tmp_path / 'x.pdf')])

    assert code == 2
    assert payload['errors']


def test_fonts_reports_builtins(tmp_path: Path) -> None:
    code, payload = _run(['--font-root', str(tmp_path), 'fonts'])

    assert code == 0
    assert payload['mono'] == {'name': 'cour', 'builtin': True, 'source': None}


def test_wrap_prints_lines() -> None:
    code, payload = _run(['wrap', '--text', 'The quick brown fox jumps', '--width', '137.3', '--size', '12', '--font', 'mono'])

    assert code == 0
    assert payload['lines'] == ['The quick brown fox', 'jumps']
