from typing import Optional

from fastapi import APIRouter, Query

from finclick.analysis.analyzer import AnalysisContext, run_analysis
from finclick.analysis.catalog import CATEGORIES, get_analysis, list_analyses
from finclick.api.schemas import RunRequest
from finclick.core.utils import sanitize_for_json
from finclick.data.benchmarks import get_industry_benchmarks

router = APIRouter()


@router.get("/analyses")
async def get_catalogue(
    category: Optional[str] = None,
    level: Optional[str] = Query(None, pattern="^(basic|intermediate|advanced|comprehensive)$"),
    language: Optional[str] = Query(None, pattern="^(ar|en)$"),
):
    """List catalogue analyses, optionally filtered by category and level."""
    definitions = list_analyses(category=category, level=level)
    return {
        "status": "success",
        "count": len(definitions),
        "categories": CATEGORIES,
        "analyses": [d.to_dict(language) for d in definitions],
    }


@router.get("/analyses/{analysis_id}")
async def get_definition(analysis_id: str, language: Optional[str] = Query(None, pattern="^(ar|en)$")):
    """Catalogue entry of one analysis, including the inputs it needs."""
    return {"status": "success", "analysis": get_analysis(analysis_id).to_dict(language)}


@router.post("/analyses/{analysis_id}/run")
def run_single_analysis(analysis_id: str, body: RunRequest):
    """
    Run one analysis on posted statements and market data.

    Missing or unusable inputs are answered with 422, unknown ids with 404.
    """
    get_analysis(analysis_id)
    options = body.options
    benchmarks = body.benchmarks or get_industry_benchmarks(
        options.sector, options.legal_entity, options.comparison_level)
    context = AnalysisContext.from_inputs(body.statements, benchmarks, body.market, body.inputs)
    result = run_analysis(analysis_id, context, options.language, **body.params)
    return {"status": "success", "result": sanitize_for_json(result.to_dict())}
