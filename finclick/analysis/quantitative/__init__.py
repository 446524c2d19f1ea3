# Quantitative Analysis Module
from .monte_carlo import (
    geometric_brownian_motion, monte_carlo_simulation,
    value_at_risk, expected_shortfall, historical_var, parametric_var,
    cornish_fisher_var, monte_carlo_var, parametric_expected_shortfall
)
from .backtesting import (
    VaRBacktest, count_exceptions, kupiec_test, christoffersen_test,
    traffic_light_zone, backtest_var
)
from .correlation import (
    calculate_correlation_matrix, rolling_correlation, ewma_correlation,
    beta_calculation, rolling_beta, portfolio_correlation_risk,
    average_pairwise_correlation
)
from .risk_metrics import (
    sharpe_ratio, sortino_ratio, calmar_ratio, maximum_drawdown,
    treynor_ratio, information_ratio, beta, comprehensive_risk_analysis,
    annualized_return, annualized_volatility, downside_deviation,
    omega_ratio, tracking_error
)
from .portfolio_optimization import (
    calculate_portfolio_returns, calculate_portfolio_volatility,
    mean_variance_optimization, max_sharpe_portfolio, min_variance_portfolio,
    efficient_frontier, risk_parity, risk_contributions, diversification_ratio,
    kelly_criterion, black_litterman_returns, portfolio_rebalance_signals
)
from .ml_models import (
    pca_analysis, kmeans_clustering, regime_detection,
    feature_importance_analysis, lag_matrix
)
from .time_series import (
    arima_forecast, select_arima_order, check_cointegration, stationarity_test,
    garch_volatility_forecast, gjr_garch_volatility_forecast,
    ewma_volatility, classify_volatility_regime
)
from .statistics import (
    distribution_moments, jarque_bera_test, ljung_box_test,
    autocorrelation, hurst_exponent, dfa_exponent
)
from .anomaly_detection import (
    zscore_anomalies, iqr_anomalies, isolation_forest_anomalies,
    detect_volume_spikes, detect_volatility_cluster, detect_spikes
)
from .wavelet_denoising import (
    wavelet_decompose, wavelet_reconstruct, multiresolution_energy, denoise_series
)
from .model_accuracy import (
    calculate_mape, calculate_rmse, calculate_mae, calculate_directional_accuracy,
    forecast_accuracy, calculate_confidence_interval, calculate_price_confidence_interval
)
from .recurrent import (
    SimpleLSTMCell, LSTMReservoirForecaster, lstm_forecast
)

__all__ = [
    # Monte Carlo / VaR
    'geometric_brownian_motion', 'monte_carlo_simulation',
    'value_at_risk', 'expected_shortfall', 'historical_var', 'parametric_var',
    'cornish_fisher_var', 'monte_carlo_var', 'parametric_expected_shortfall',
    # Backtesting
    'VaRBacktest', 'count_exceptions', 'kupiec_test', 'christoffersen_test',
    'traffic_light_zone', 'backtest_var',
    # Correlation
    'calculate_correlation_matrix', 'rolling_correlation', 'ewma_correlation',
    'beta_calculation', 'rolling_beta', 'portfolio_correlation_risk',
    'average_pairwise_correlation',
    # Risk Metrics
    'sharpe_ratio', 'sortino_ratio', 'calmar_ratio', 'maximum_drawdown',
    'treynor_ratio', 'information_ratio', 'beta', 'comprehensive_risk_analysis',
    'annualized_return', 'annualized_volatility', 'downside_deviation',
    'omega_ratio', 'tracking_error',
    # Portfolio Optimization
    'calculate_portfolio_returns', 'calculate_portfolio_volatility',
    'mean_variance_optimization', 'max_sharpe_portfolio', 'min_variance_portfolio',
    'efficient_frontier', 'risk_parity', 'risk_contributions', 'diversification_ratio',
    'kelly_criterion', 'black_litterman_returns', 'portfolio_rebalance_signals',
    # ML Models
    'pca_analysis', 'kmeans_clustering', 'regime_detection',
    'feature_importance_analysis', 'lag_matrix',
    # Time Series / GARCH
    'arima_forecast', 'select_arima_order', 'check_cointegration', 'stationarity_test',
    'garch_volatility_forecast', 'gjr_garch_volatility_forecast',
    'ewma_volatility', 'classify_volatility_regime',
    # Statistics
    'distribution_moments', 'jarque_bera_test', 'ljung_box_test',
    'autocorrelation', 'hurst_exponent', 'dfa_exponent',
    # Anomaly Detection
    'zscore_anomalies', 'iqr_anomalies', 'isolation_forest_anomalies',
    'detect_volume_spikes', 'detect_volatility_cluster', 'detect_spikes',
    # Wavelets
    'wavelet_decompose', 'wavelet_reconstruct', 'multiresolution_energy', 'denoise_series',
    # Model Accuracy
    'calculate_mape', 'calculate_rmse', 'calculate_mae', 'calculate_directional_accuracy',
    'forecast_accuracy', 'calculate_confidence_interval', 'calculate_price_confidence_interval',
    # LSTM reservoir
    'SimpleLSTMCell', 'LSTMReservoirForecaster', 'lstm_forecast'
]
