"""
Word Report Module
Renders a generated analysis report to a .docx document with python-docx.
"""

import io
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Pt, RGBColor

from finclick.i18n import translate

logger = logging.getLogger(__name__)

GOLD = RGBColor(0xD4, 0xAF, 0x37)
GREY = RGBColor(0x80, 0x80, 0x80)


def _format(value: Any) -> str:
    if value is None:
        return '-'
    if isinstance(value, float):
        return f"{value:,.4f}".rstrip('0').rstrip('.')
    return str(value)


def _paragraph(doc, text: str, rtl: bool, style: Optional[str] = None, size: int = 11,
               bold: bool = False, color: Optional[RGBColor] = None, center: bool = False):
    p = doc.add_paragraph(style=style) if style else doc.add_paragraph()
    run = p.add_run(text)
    run.bold = bold
    run.font.size = Pt(size)
    if color is not None:
        run.font.color.rgb = color
    if center:
        p.alignment = WD_ALIGN_PARAGRAPH.CENTER
    elif rtl:
        p.alignment = WD_ALIGN_PARAGRAPH.RIGHT
    return p


def _heading(doc, text: str, level: int, rtl: bool):
    heading = doc.add_heading(text, level=level)
    if rtl:
        heading.alignment = WD_ALIGN_PARAGRAPH.RIGHT
    return heading


def _summary_table(doc, rows, language: str):
    headers = [translate(k, language) for k in
               ('table.index', 'table.name', 'table.value', 'table.benchmark', 'table.evaluation')]
    table = doc.add_table(rows=1, cols=len(headers))
    table.style = 'Table Grid'
    for cell, header in zip(table.rows[0].cells, headers):
        cell.text = header
        for run in cell.paragraphs[0].runs:
            run.bold = True
    for row in rows:
        cells = table.add_row().cells
        values = (row.get('index'), row.get('name'), row.get('value'), row.get('benchmark'),
                  row.get('rating') or row.get('evaluation'))
        for cell, value in zip(cells, values):
            cell.text = _format(value)
    return table


def _bullets(doc, items, rtl: bool, numbered: bool = False):
    for i, item in enumerate(items, start=1):
        text = f"{i}. {item}" if numbered else f"• {item}"
        _paragraph(doc, text, rtl)


def generate_word_report(report: Dict[str, Any], path: Optional[Union[str, Path]] = None) -> bytes:
    """
    Render a report (output of generate_analysis_report) as a Word document.

    Args:
        report: Generated report dictionary
        path: Also write the document to this path when given

    Returns:
        The .docx file content
    """
    language = report.get('language', 'ar')
    rtl = language == 'ar'
    company = report.get('company', {})
    summary = report.get('executiveSummary', {})

    doc = Document()
    doc.core_properties.title = f"{report.get('title', '')} - {company.get('name', '')}".strip(' -')
    doc.core_properties.author = 'FinClick'

    header = doc.sections[0].header.paragraphs[0]
    header.text = 'FinClick - ' + translate('report.title', language)
    header.alignment = WD_ALIGN_PARAGRAPH.CENTER

    # Cover
    _paragraph(doc, report.get('title', translate('report.title', language)), rtl, size=24, bold=True,
               color=GOLD, center=True)
    if company.get('name'):
        _paragraph(doc, company['name'], rtl, size=20, bold=True, center=True)
    if company.get('sector'):
        _paragraph(doc, f"{translate('report.sector', language)}: {company['sector']}", rtl, size=13, center=True)
    _paragraph(doc, report.get('createdAt', '')[:10], rtl, size=10, color=GREY, center=True)

    # Executive summary
    _heading(doc, translate('report.executive_summary', language), 1, rtl)
    if summary.get('overall_score') is not None:
        _paragraph(doc, f"{translate('report.overall_score', language)}: {summary['overall_score']}"
                        f" ({summary.get('overall_rating') or '-'})", rtl, bold=True)
    table_rows = summary.get('table', [])
    if table_rows:
        _heading(doc, translate('report.summary_table', language), 2, rtl)
        _summary_table(doc, table_rows, language)

    swot = summary.get('swot', {})
    _heading(doc, translate('report.swot', language), 2, rtl)
    for key in ('strengths', 'weaknesses', 'opportunities', 'threats'):
        if swot.get(key):
            _heading(doc, translate(f'report.{key}', language), 3, rtl)
            _bullets(doc, swot[key], rtl)
    for key in ('risks', 'forecasts'):
        if summary.get(key):
            _heading(doc, translate(f'report.{key}', language), 2, rtl)
            _bullets(doc, summary[key], rtl)

    # Detailed analyses
    _heading(doc, translate('report.analyses', language), 1, rtl)
    for group in report.get('categories', []):
        _heading(doc, group.get('label', group.get('category', '')), 2, rtl)
        for analysis in group.get('analyses', []):
            _heading(doc, analysis.get('name', analysis.get('id', '')), 3, rtl)
            if analysis.get('value') is not None:
                _paragraph(doc, f"{translate('table.value', language)}: {_format(analysis['value'])}"
                                f"  |  {translate('table.benchmark', language)}: {_format(analysis.get('benchmark'))}",
                           rtl)
            if analysis.get('interpretation'):
                _paragraph(doc, analysis['interpretation'], rtl)
            if analysis.get('recommendations'):
                _bullets(doc, analysis['recommendations'], rtl)

    if report.get('skipped'):
        _heading(doc, translate('report.skipped', language), 2, rtl)
        _bullets(doc, [f"{s['name']}: {s.get('reason') or s['status']}" for s in report['skipped']], rtl)

    # Recommendations
    _heading(doc, translate('report.recommendations', language), 1, rtl)
    _bullets(doc, summary.get('recommendations', []), rtl, numbered=True)

    _paragraph(doc, translate('report.disclaimer', language), rtl, size=9, color=GREY)

    buffer = io.BytesIO()
    doc.save(buffer)
    content = buffer.getvalue()
    if path is not None:
        Path(path).write_bytes(content)
        logger.info(f"Word report written to {path}")
    return content
