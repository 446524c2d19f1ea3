import json
import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile
from starlette.concurrency import run_in_threadpool

from finclick.analysis.analyzer import run_comprehensive_analysis
from finclick.api.schemas import AnalysisInputs, OptionsModel
from finclick.core.utils import sanitize_for_json
from finclick.data.parser import extract_financial_data
from finclick.reports.generator import generate_analysis_report

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_MAX_UPLOAD_MB = 20


def process_inputs(statements, options: OptionsModel, market=None, benchmarks=None, inputs=None) -> dict:
    """Run the comprehensive analysis and build its report."""
    analysis_options = options.to_options()
    results = run_comprehensive_analysis(statements, analysis_options, benchmarks=benchmarks,
                                         market=market, extra=inputs)
    report = generate_analysis_report(results, analysis_options)
    return {
        "status": "success",
        "results": sanitize_for_json(results),
        "report": sanitize_for_json(report),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.post("/analysis/process")
def process_analysis(body: AnalysisInputs):
    """Comprehensive analysis of posted statements, with executive summary and report."""
    return process_inputs(body.statements, body.options, body.market, body.benchmarks, body.inputs)


def _json_field(raw: Optional[str], name: str):
    if not raw:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise HTTPException(status_code=422, detail=f"Form field '{name}' is not valid JSON: {e.msg}")


@router.post("/analysis/upload")
async def upload_statements(
    request: Request,
    files: List[UploadFile] = File(...),
    options: Optional[str] = Form(None),
    market: Optional[str] = Form(None),
    inputs: Optional[str] = Form(None),
):
    """
    Parse uploaded statement files (xlsx, xls, csv, json) and run the
    comprehensive analysis on them.

    `options`, `market` and `inputs` are JSON-encoded form fields.
    """
    options_model = OptionsModel.model_validate(_json_field(options, 'options') or {})
    max_bytes = getattr(request.app.state, "max_upload_mb", DEFAULT_MAX_UPLOAD_MB) * 1024 * 1024

    statements = []
    for upload in files:
        raw = await upload.read()
        if len(raw) > max_bytes:
            raise HTTPException(status_code=413, detail=f"{upload.filename} exceeds the upload limit")
        statements.extend(extract_financial_data(raw, filename=upload.filename))
    logger.info(f"Upload parsed: {len(files)} file(s), {len(statements)} statement(s)")

    return await run_in_threadpool(process_inputs, statements, options_model, _json_field(market, "market"),
                                   inputs=_json_field(inputs, "inputs"))
