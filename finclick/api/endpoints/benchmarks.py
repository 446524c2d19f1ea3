from fastapi import APIRouter, Query

from finclick.data.benchmarks import get_industry_benchmarks

router = APIRouter()


@router.get("/benchmarks/{sector}")
async def get_benchmarks(
    sector: str,
    legal_entity: str = Query("", alias="legalEntity"),
    comparison_level: str = Query("local", alias="comparisonLevel"),
):
    """Industry benchmark ratios for a sector; unknown sectors fall back to general averages."""
    benchmarks = get_industry_benchmarks(sector, legal_entity, comparison_level)
    return {"status": "success", "benchmarks": benchmarks.to_dict()}
