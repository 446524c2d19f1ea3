# Advanced Analysis Module
from .portfolio import (
    modern_portfolio_theory_analysis, capm_analysis, apt_analysis, fama_french_analysis,
    systematic_risk_analysis, abnormal_returns_analysis, concentration_analysis,
    dynamic_correlation_analysis, risk_parity_analysis, drawdown_analysis
)
from .market_risk import (
    ewma_historical_var, component_var, value_at_risk_analysis, expected_shortfall_analysis,
    stress_testing_analysis, catastrophic_scenario_analysis, market_risk_analysis,
    backtesting_validation_analysis
)
from .enterprise_risk import (
    altman_default_probability, liquidity_profile, merton_model,
    operational_risk_analysis, credit_risk_analysis, liquidity_risk_analysis, cyber_risk_analysis,
    geopolitical_risk_analysis, environmental_climate_risk_analysis, governance_analysis,
    social_responsibility_analysis, credit_risk_models_analysis, icaap_ilaap_analysis,
    basel_iii_analysis
)
from .corporate_events import (
    forensic_valuation_analysis, merger_acquisition_analysis, lbo_analysis, ipo_analysis,
    spinoff_analysis, restructuring_analysis, bankruptcy_workout_analysis,
    forensic_financial_analysis
)
from .detection import (
    ratio_features, feature_frame,
    ai_fraud_detection_analysis, money_laundering_detection_analysis,
    market_manipulation_detection_analysis, advanced_bankruptcy_prediction_analysis,
    financial_crisis_prediction_analysis, realtime_anomaly_detection_analysis,
    volatility_prediction_analysis, early_warning_system_analysis,
    intelligent_behavioral_analysis, explainable_ai_analysis, benford_law_analysis,
    earnings_quality_analysis
)
from .machine_learning import (
    neural_network_forecast_analysis, lstm_time_series_analysis, random_forest_credit_analysis,
    gradient_boosting_forecast_analysis, clustering_classification_analysis,
    autoencoder_anomaly_analysis, ai_sentiment_analysis, blockchain_analytics_analysis
)
from .modeling import (
    black_scholes, binomial_option,
    advanced_scenario_analysis, monte_carlo_analysis, complex_financial_modeling_analysis,
    multivariate_sensitivity_analysis, decision_tree_analysis, real_options_analysis,
    financial_forecasting_models_analysis, what_if_analysis, stochastic_simulation_analysis,
    optimization_models_analysis, financial_linear_programming_analysis,
    dynamic_programming_analysis, optimal_allocation_analysis, financial_game_theory_analysis,
    financial_network_analysis
)
from .statistical import (
    kaplan_meier, largest_lyapunov, correlation_dimension,
    multiple_regression_analysis, advanced_time_series_analysis, arima_analysis, garch_analysis,
    pca_statistical_analysis, factor_analysis, variance_anova_analysis, cointegration_analysis,
    var_model_analysis, vecm_analysis, copula_analysis, extreme_value_analysis, survival_analysis,
    markov_model_analysis, threshold_model_analysis, regime_switching_analysis,
    chaos_theory_analysis, fractal_analysis, bootstrap_analysis, wavelet_analysis
)

__all__ = [
    # Portfolio
    'modern_portfolio_theory_analysis', 'capm_analysis', 'apt_analysis', 'fama_french_analysis',
    'systematic_risk_analysis', 'abnormal_returns_analysis', 'concentration_analysis',
    'dynamic_correlation_analysis', 'risk_parity_analysis', 'drawdown_analysis',
    # Market risk
    'ewma_historical_var', 'component_var', 'value_at_risk_analysis', 'expected_shortfall_analysis',
    'stress_testing_analysis', 'catastrophic_scenario_analysis', 'market_risk_analysis',
    'backtesting_validation_analysis',
    # Enterprise risk
    'altman_default_probability', 'liquidity_profile', 'merton_model',
    'operational_risk_analysis', 'credit_risk_analysis', 'liquidity_risk_analysis', 'cyber_risk_analysis',
    'geopolitical_risk_analysis', 'environmental_climate_risk_analysis', 'governance_analysis',
    'social_responsibility_analysis', 'credit_risk_models_analysis', 'icaap_ilaap_analysis',
    'basel_iii_analysis',
    # Corporate events
    'forensic_valuation_analysis', 'merger_acquisition_analysis', 'lbo_analysis', 'ipo_analysis',
    'spinoff_analysis', 'restructuring_analysis', 'bankruptcy_workout_analysis',
    'forensic_financial_analysis',
    # Detection
    'ratio_features', 'feature_frame',
    'ai_fraud_detection_analysis', 'money_laundering_detection_analysis',
    'market_manipulation_detection_analysis', 'advanced_bankruptcy_prediction_analysis',
    'financial_crisis_prediction_analysis', 'realtime_anomaly_detection_analysis',
    'volatility_prediction_analysis', 'early_warning_system_analysis',
    'intelligent_behavioral_analysis', 'explainable_ai_analysis', 'benford_law_analysis',
    'earnings_quality_analysis',
    # Machine learning
    'neural_network_forecast_analysis', 'lstm_time_series_analysis', 'random_forest_credit_analysis',
    'gradient_boosting_forecast_analysis', 'clustering_classification_analysis',
    'autoencoder_anomaly_analysis', 'ai_sentiment_analysis', 'blockchain_analytics_analysis',
    # Modeling
    'black_scholes', 'binomial_option',
    'advanced_scenario_analysis', 'monte_carlo_analysis', 'complex_financial_modeling_analysis',
    'multivariate_sensitivity_analysis', 'decision_tree_analysis', 'real_options_analysis',
    'financial_forecasting_models_analysis', 'what_if_analysis', 'stochastic_simulation_analysis',
    'optimization_models_analysis', 'financial_linear_programming_analysis',
    'dynamic_programming_analysis', 'optimal_allocation_analysis', 'financial_game_theory_analysis',
    'financial_network_analysis',
    # Statistical
    'kaplan_meier', 'largest_lyapunov', 'correlation_dimension',
    'multiple_regression_analysis', 'advanced_time_series_analysis', 'arima_analysis', 'garch_analysis',
    'pca_statistical_analysis', 'factor_analysis', 'variance_anova_analysis', 'cointegration_analysis',
    'var_model_analysis', 'vecm_analysis', 'copula_analysis', 'extreme_value_analysis', 'survival_analysis',
    'markov_model_analysis', 'threshold_model_analysis', 'regime_switching_analysis',
    'chaos_theory_analysis', 'fractal_analysis', 'bootstrap_analysis', 'wavelet_analysis'
]
