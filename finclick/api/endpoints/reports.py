import re

from fastapi import APIRouter
from fastapi.responses import Response

from finclick.api.endpoints.analysis import process_inputs
from finclick.api.schemas import WordReportRequest
from finclick.reports.word import generate_word_report

router = APIRouter()

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


def _filename(report: dict) -> str:
    name = (report.get("company") or {}).get("name") or "company"
    slug = re.sub(r"[^A-Za-z0-9_-]+", "_", name).strip("_") or "company"
    return f"finclick_report_{slug}.docx"


@router.post("/reports/word")
def word_report(body: WordReportRequest):
    """
    Word (.docx) download of an analysis report.

    Posts either a report returned by /analysis/process or the inputs to
    generate one.
    """
    report = body.report
    if report is None:
        report = process_inputs(body.statements, body.options, body.market, body.benchmarks,
                                body.inputs)["report"]
    content = generate_word_report(report)
    return Response(
        content=content,
        media_type=DOCX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{_filename(report)}"'},
    )
