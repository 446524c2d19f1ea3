"""
API Endpoint Tests
Catalogue, analysis runs, uploads, reports and authentication.
"""

import os

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

# The shared app runs without authentication; auth is tested on its own app below
os.environ['API_KEYS'] = ''
os.environ['ENVIRONMENT'] = 'development'

from main import app  # noqa: E402
from finclick.core.auth_middleware import APIKeyManager, AuthMiddleware  # noqa: E402
from finclick.core.error_handlers import register_exception_handlers  # noqa: E402

from sample_data import make_statements  # noqa: E402


STATEMENT_CSV = (
    "Item,2022,2023\n"
    "Revenue,1500,1650\n"
    "Net income,200,230\n"
    "Total current assets,560,600\n"
    "Total assets,1400,1500\n"
    "Total current liabilities,240,250\n"
    "Total liabilities,620,650\n"
    "Total equity,780,850\n"
)


@pytest.fixture
def client():
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def statements():
    return [s.to_dict() for s in make_statements()]


@pytest.mark.api
def test_health_endpoint(client):
    response = client.get("/health")
    assert response.status_code == 200

    data = response.json()
    assert data["status"] == "healthy"
    assert data["analyses"] == 183


@pytest.mark.api
def test_catalogue_listing(client):
    response = client.get("/api/analyses", params={"level": "basic", "language": "en"})
    assert response.status_code == 200

    data = response.json()
    assert data["count"] == 55
    assert {a["level"] for a in data["analyses"]} == {"basic"}
    assert "basic.ratios" in data["categories"]


@pytest.mark.api
def test_catalogue_rejects_unknown_level(client):
    response = client.get("/api/analyses", params={"level": "expert"})
    assert response.status_code == 422
    assert response.json()["error"] == "Validation Error"


@pytest.mark.api
def test_definition_lookup(client):
    response = client.get("/api/analyses/ratio.current", params={"language": "en"})
    assert response.status_code == 200
    assert response.json()["analysis"]["required_inputs"] == ["statement"]

    missing = client.get("/api/analyses/ratio.imaginary")
    assert missing.status_code == 404
    assert "ratio.imaginary" in missing.json()["message"]


@pytest.mark.api
def test_run_single_analysis(client, statements):
    response = client.post("/api/analyses/ratio.current/run",
                           json={"financialData": statements, "options": {"language": "en"}})
    assert response.status_code == 200

    result = response.json()["result"]
    assert result["id"] == "ratio.current"
    assert result["status"] == "success"
    assert result["value"] == 2.4
    assert result["benchmark"] == 1.5


@pytest.mark.api
def test_run_without_inputs_is_unprocessable(client):
    response = client.post("/api/analyses/ratio.current/run", json={})
    assert response.status_code == 422

    data = response.json()
    assert data["error"] == "Insufficient Data"
    assert data["analysis_id"] == "ratio.current"


@pytest.mark.api
def test_run_with_extra_inputs(client):
    response = client.post("/api/analyses/adv.ml.sentiment/run",
                           json={"inputs": {"texts": ["Record profit and strong growth"]}})
    assert response.status_code == 200
    assert response.json()["result"]["data"]["overall_sentiment"] == "bullish"


@pytest.mark.api
def test_process_analysis(client, statements):
    response = client.post("/api/analysis/process", json={
        "financialData": statements,
        "options": {"companyName": "Acme", "sector": "retail", "language": "en",
                    "analyses": ["ratio.current", "ratio.quick", "adv.stat.garch"]},
    })
    assert response.status_code == 200

    data = response.json()
    assert data["status"] == "success"
    assert data["results"]["counts"]["total"] == 3
    assert data["results"]["counts"]["skipped"] == 1
    report = data["report"]
    assert report["company"]["name"] == "Acme"
    assert report["bilingualReport"]["direction"] == "ltr"
    assert report["downloads"]["docx"] == "/api/reports/word"


@pytest.mark.api
def test_process_rejects_bad_options(client, statements):
    response = client.post("/api/analysis/process",
                           json={"financialData": statements, "options": {"analysisType": "everything"}})
    assert response.status_code == 422


@pytest.mark.api
def test_csv_upload(client):
    response = client.post(
        "/api/analysis/upload",
        files=[("files", ("statements.csv", STATEMENT_CSV.encode(), "text/csv"))],
        data={"options": '{"language": "en", "analyses": ["ratio.current"]}'},
    )
    assert response.status_code == 200

    results = response.json()["results"]
    assert results["years"] == [2022, 2023]
    assert results["analyses"][0]["value"] == 2.4


@pytest.mark.api
def test_upload_errors(client):
    unsupported = client.post("/api/analysis/upload",
                              files=[("files", ("statements.pdf", b"%PDF-1.4", "application/pdf"))])
    assert unsupported.status_code == 422
    assert unsupported.json()["error"] == "Unreadable Statement"

    bad_options = client.post("/api/analysis/upload",
                              files=[("files", ("statements.csv", STATEMENT_CSV.encode(), "text/csv"))],
                              data={"options": "{not json"})
    assert bad_options.status_code == 422


@pytest.mark.api
def test_word_report_download(client, statements):
    response = client.post("/api/reports/word", json={
        "financialData": statements,
        "options": {"companyName": "Acme Trading", "language": "ar", "analyses": ["ratio.current"]},
    })
    assert response.status_code == 200
    assert response.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document")
    assert 'finclick_report_Acme_Trading.docx' in response.headers["content-disposition"]
    assert response.content.startswith(b"PK")


@pytest.mark.api
def test_benchmarks(client):
    response = client.get("/api/benchmarks/retail")
    assert response.status_code == 200
    assert response.json()["benchmarks"]["ratios"]["current_ratio"] == 1.2

    fallback = client.get("/api/benchmarks/unheard-of", params={"comparisonLevel": "global"})
    assert fallback.status_code == 200
    assert fallback.json()["benchmarks"]["sector"] == "general"


@pytest.fixture
def secured_client():
    secured = FastAPI()
    register_exception_handlers(secured)
    secured.add_middleware(AuthMiddleware, key_manager=APIKeyManager(["test_endpoint_key"]))

    @secured.get("/health")
    async def health():
        return {"status": "healthy"}

    @secured.get("/api/analyses")
    async def analyses():
        return {"status": "success"}

    return TestClient(secured)


@pytest.mark.api
def test_missing_api_key(secured_client):
    response = secured_client.get("/api/analyses")
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "ApiKey"


@pytest.mark.api
def test_invalid_api_key(secured_client):
    response = secured_client.get("/api/analyses", headers={"X-API-Key": "wrong"})
    assert response.status_code == 403


@pytest.mark.api
def test_valid_api_key_and_public_paths(secured_client):
    assert secured_client.get("/api/analyses", headers={"X-API-Key": "test_endpoint_key"}).status_code == 200
    assert secured_client.get("/health").status_code == 200


@pytest.mark.unit
def test_key_manager_ignores_empty_keys():
    manager = APIKeyManager(["", "abc"])
    assert manager.validate_key("abc")
    assert not manager.validate_key("")
    assert not manager.validate_key("abd")
