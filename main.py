from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from pydantic import ValidationError

from evidencereport.config import get_settings
from evidencereport.engine.core import create_report_context
from evidencereport.engine.fonts import FontFamily
from evidencereport.engine.theme import STYLE_VERSIONS
from evidencereport.engine.text import wrap_text_to_lines
from evidencereport.report.evidence import build_document_evidence_pdf, evidence_filename
from evidencereport.types import DocumentEvidenceInput


logger = logging.getLogger(__name__)


def _print_json(payload: dict) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _font_root(args: argparse.Namespace) -> Path:
    if getattr(args, 'font_root', None):
        return Path(args.font_root).expanduser()
    return get_settings().font_root


def _load_input(path: Path) -> DocumentEvidenceInput:
    return DocumentEvidenceInput.model_validate_json(path.read_text(encoding='utf-8'))


def cmd_render(args: argparse.Namespace) -> int:
    settings = get_settings()
    input_path = Path(args.input).expanduser().resolve()
    if not input_path.is_file():
        _print_json({'status': 'error', 'message': f'Input not found: {input_path}'})
        return 2
    try:
        data = _load_input(input_path)
    except ValidationError as exc:
        _print_json(
            {
                'status': 'error',
                'message': f'Invalid evidence input: {input_path}',
                'errors': json.loads(exc.json(include_url=False)),
            }
        )
        return 2

    updates: dict = {}
    if args.style:
        updates['report_style_version'] = args.style
    if args.logo:
        logo_path = Path(args.logo).expanduser()
        if not logo_path.is_file():
            _print_json({'status': 'error', 'message': f'Logo not found: {logo_path}'})
            return 2
        updates['brand_logo'] = logo_path.read_bytes()
    if data.receipt_logo is None:
        updates['receipt_logo'] = settings.read_receipt_logo()
    if settings.watermark_enabled and not data.watermark_enabled:
        updates['watermark_enabled'] = True
    if updates:
        data = data.model_copy(update=updates)

    payload = build_document_evidence_pdf(
        data,
        deterministic=True if args.deterministic else None,
        font_root=_font_root(args),
    )

    output_path = Path(args.output).expanduser().resolve()
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(payload)
    logger.info('Wrote %s (%s bytes)', output_path, len(payload))
    _print_json(
        {
            'status': 'ok',
            'output': str(output_path),
            'bytes': len(payload),
            'filename': evidence_filename(data.document.title, data.document.id),
            'content_type': 'application/pdf',
        }
    )
    return 0


def cmd_fonts(args: argparse.Namespace) -> int:
    with create_report_context(font_root=_font_root(args)) as ctx:
        fonts = ctx.fonts
        _print_json(
            {
                family.value: {
                    'name': font.name,
                    'builtin': font.builtin,
                    'source': str(font.source) if font.source else None,
                }
                for family, font in (
                    (FontFamily.regular, fonts.regular),
                    (FontFamily.bold, fonts.bold),
                    (FontFamily.mono, fonts.mono),
                )
            }
        )
    return 0


def cmd_wrap(args: argparse.Namespace) -> int:
    with create_report_context(font_root=_font_root(args)) as ctx:
        size = float(args.size) if args.size is not None else ctx.theme.body_size
        lines = wrap_text_to_lines(ctx, args.text, float(args.width), size, args.font)
    _print_json({'width': float(args.width), 'size': size, 'font': args.font, 'lines': lines})
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Receipt evidence record PDF renderer')
    parser.add_argument('--font-root', required=False, help='Directory that font candidate paths are relative to')
    sub = parser.add_subparsers(dest='command', required=True)

    render = sub.add_parser('render', help='Render an evidence record PDF from a JSON payload')
    render.add_argument('--input', required=True, help='Path to the evidence JSON payload')
    render.add_argument('--output', required=True, help='Where to write the PDF')
    render.add_argument('--deterministic', action='store_true', help='Byte-stable output for identical input')
    render.add_argument('--style', choices=list(STYLE_VERSIONS), required=False, help='Format preset')
    render.add_argument('--logo', required=False, help='Workspace logo (PNG or JPEG)')
    render.set_defaults(func=cmd_render)

    fonts = sub.add_parser('fonts', help='Show which fonts the report would use')
    fonts.set_defaults(func=cmd_fonts)

    wrap = sub.add_parser('wrap', help='Wrap text the way the report engine does')
    wrap.add_argument('--text', required=True)
    wrap.add_argument('--width', type=float, required=True, help='Column width in points')
    wrap.add_argument('--size', type=float, required=False, help='Font size in points')
    wrap.add_argument('--font', choices=[family.value for family in FontFamily], default=FontFamily.regular.value)
    wrap.set_defaults(func=cmd_wrap)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(get_settings().log_level).upper(), logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    return int(args.func(args))


if __name__ == '__main__':
    raise SystemExit(main())
