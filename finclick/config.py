"""
FinClick Analysis - Configuration
"""

import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Market Defaults
RISK_FREE_RATE = float(os.getenv("FINCLICK_RISK_FREE_RATE", "0.02"))
MARKET_RISK_PREMIUM = float(os.getenv("FINCLICK_MARKET_RISK_PREMIUM", "0.06"))
TRADING_DAYS = 252
DEFAULT_TAX_RATE = float(os.getenv("FINCLICK_TAX_RATE", "0.20"))
DEFAULT_DISCOUNT_RATE = 0.10
DEFAULT_TERMINAL_GROWTH = 0.025

# Risk Defaults
VAR_CONFIDENCE = 0.95
VAR_HORIZON_DAYS = 1
EWMA_LAMBDA = 0.94
STRESS_SHOCKS = {
    'market_crash': -0.30,
    'rate_shock': -0.10,
    'recession': -0.20,
    'liquidity_freeze': -0.15,
}

# Simulation Defaults
MONTE_CARLO_SIMULATIONS = int(os.getenv("FINCLICK_MC_SIMULATIONS", "10000"))
BOOTSTRAP_SAMPLES = 2000
RANDOM_SEED = 42

# Time Series Defaults
GARCH_MIN_OBSERVATIONS = 100
ARIMA_MAX_ORDER = 2
FORECAST_HORIZON = 5

# Report Defaults
DEFAULT_LANGUAGE = os.getenv("FINCLICK_LANGUAGE", "ar")
SUPPORTED_LANGUAGES = ("ar", "en")
DEFAULT_CURRENCY = "SAR"

# Server Configuration
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))
