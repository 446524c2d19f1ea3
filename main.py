"""
FinClick Analysis - API Server
Financial analysis catalogue, comprehensive runs and report export over HTTP.
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from finclick.analysis.catalog import ANALYSES
from finclick.api.endpoints import analysis, benchmarks, catalogue, reports
from finclick.core.auth_middleware import APIKeyManager, AuthMiddleware
from finclick.core.config_validator import load_config, print_config_summary
from finclick.core.error_handlers import register_exception_handlers
from finclick.core.logging_config import setup_logging

app_config = load_config()
setup_logging(app_config.LOG_LEVEL, app_config.LOG_FILE_PATH or None, app_config.ENVIRONMENT)
logger = logging.getLogger(__name__)


# ============================================
# FASTAPI APPLICATION
# ============================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("FinClick Analysis API starting up...")
    logger.info(f"Environment: {app_config.ENVIRONMENT}, catalogue: {len(ANALYSES)} analyses")
    if app_config.auth_enabled:
        logger.info(f"API key authentication enabled ({len(app_config.api_keys_list)} key(s))")
    else:
        logger.warning("API_KEYS not set; the API is running without authentication")
    yield
    logger.info("Shutting down...")


app = FastAPI(
    title="FinClick Analysis API",
    description="Financial statement, risk and quantitative analysis catalogue",
    version="1.0.0",
    lifespan=lifespan
)
app.state.environment = app_config.ENVIRONMENT
app.state.max_upload_mb = app_config.MAX_UPLOAD_MB

register_exception_handlers(app)

if app_config.auth_enabled:
    app.add_middleware(AuthMiddleware, key_manager=APIKeyManager(app_config.api_keys_list),
                       api_key_header=app_config.API_KEY_HEADER)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=app_config.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

# Include Routers
app.include_router(catalogue.router, prefix="/api", tags=["Catalogue"])
app.include_router(analysis.router, prefix="/api", tags=["Analysis"])
app.include_router(reports.router, prefix="/api", tags=["Reports"])
app.include_router(benchmarks.router, prefix="/api", tags=["Benchmarks"])


@app.get("/health")
async def health_check():
    return {"status": "healthy", "analyses": len(ANALYSES)}


if __name__ == "__main__":
    print_config_summary(app_config)
    uvicorn.run(app, host=app_config.HOST, port=app_config.PORT)
