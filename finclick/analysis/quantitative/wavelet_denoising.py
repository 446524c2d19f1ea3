"""
Wavelet Analysis for Financial Series

Discrete wavelet transform (PyWavelets) to split a series into a
low-frequency trend (approximation) and high-frequency detail bands:
- multiresolution energy shows which time scales drive variance
- thresholding the detail bands removes noise while keeping the trend
"""

import logging
from typing import Dict, Any, List, Optional

import numpy as np
import pywt

from finclick.core.exceptions import InsufficientDataError

logger = logging.getLogger(__name__)


def _soft_threshold(data: np.ndarray, threshold: float) -> np.ndarray:
    """
    Soft thresholding: sign(x) * max(|x| - threshold, 0)
    """
    return pywt.threshold(data, threshold, mode='soft')


def _hard_threshold(data: np.ndarray, threshold: float) -> np.ndarray:
    """
    Hard thresholding keeps large coefficients unchanged and zeroes the rest.
    """
    return pywt.threshold(data, threshold, mode='hard')


def _calculate_universal_threshold(coefficients: np.ndarray, n: int) -> float:
    """
    Donoho-Johnstone universal threshold: sigma * sqrt(2 log n), with sigma
    estimated from the median absolute deviation of the finest details.
    """
    sigma = np.median(np.abs(coefficients)) / 0.6745
    return float(sigma * np.sqrt(2 * np.log(n)))


def _max_level(n: int, wavelet: str, level: Optional[int]) -> int:
    max_level = pywt.dwt_max_level(n, pywt.Wavelet(wavelet).dec_len)
    if max_level < 1:
        raise InsufficientDataError(f"Series too short for a {wavelet} wavelet decomposition")
    return max_level if level is None else max(1, min(level, max_level))


def wavelet_decompose(data: np.ndarray, wavelet: str = 'db4', level: Optional[int] = 4) -> Dict[str, Any]:
    """
    Multilevel discrete wavelet decomposition.

    Args:
        data: 1D array
        wavelet: Wavelet type ('db4', 'haar', 'sym4', ...)
        level: Decomposition level, capped at the maximum useful level

    Returns:
        Dictionary with coefficients and metadata
    """
    data = np.array(data, dtype=float)
    level = _max_level(len(data), wavelet, level)
    coeffs = pywt.wavedec(data, wavelet, level=level)
    return {
        'coefficients': coeffs,
        'wavelet': wavelet,
        'level': level,
        'original_length': len(data)
    }


def wavelet_reconstruct(decomposition: Dict[str, Any], coeffs: List[np.ndarray]) -> np.ndarray:
    """Inverse transform trimmed to the original length."""
    return pywt.waverec(coeffs, decomposition['wavelet'])[:decomposition['original_length']]


def multiresolution_energy(data: np.ndarray, wavelet: str = 'db4', level: Optional[int] = None) -> Dict[str, Any]:
    """
    Share of signal energy in each band.

    Band D1 is the finest scale (period 2-4 observations); the approximation
    holds the trend.
    """
    decomposition = wavelet_decompose(data, wavelet, level)
    coeffs = decomposition['coefficients']
    energies = [float(np.sum(c ** 2)) for c in coeffs]
    total = sum(energies) or 1.0
    lvl = decomposition['level']
    names = [f'A{lvl}'] + [f'D{lvl - i}' for i in range(lvl)]
    shares = {name: round(e / total * 100, 2) for name, e in zip(names, energies)}
    detail_shares = {k: v for k, v in shares.items() if k.startswith('D')}
    dominant = max(detail_shares, key=detail_shares.get) if detail_shares else None
    return {
        'wavelet': wavelet,
        'level': lvl,
        'energy_pct': shares,
        'trend_energy_pct': shares[f'A{lvl}'],
        'dominant_detail_band': dominant
    }


def denoise_series(
    values: np.ndarray,
    wavelet: str = 'db4',
    level: Optional[int] = 4,
    threshold_type: str = 'soft',
    threshold_mode: str = 'universal'
) -> Dict[str, Any]:
    """
    Denoise a series using wavelet thresholding.

    Args:
        values: 1D array
        wavelet: Wavelet type ('db4', 'db6', 'sym4', 'sym6')
        level: Decomposition level (higher = more smoothing)
        threshold_type: 'soft' (smoother) or 'hard' (preserves peaks)
        threshold_mode: 'universal' (conservative) or 'adaptive' (level dependent)

    Returns:
        Dictionary with denoised data and noise statistics
    """
    values = np.array(values, dtype=float)
    if len(values) < 16:
        raise InsufficientDataError("Wavelet denoising needs at least 16 observations")

    decomposition = wavelet_decompose(values, wavelet, level)
    coeffs = decomposition['coefficients']
    threshold_fn = _soft_threshold if threshold_type == 'soft' else _hard_threshold

    # Noise scale from the finest detail band
    base = _calculate_universal_threshold(coeffs[-1], len(values))
    denoised_coeffs = [coeffs[0]]
    for i, detail in enumerate(coeffs[1:], 1):
        threshold = base if threshold_mode == 'universal' else base / (2 ** (len(coeffs) - 1 - i))
        denoised_coeffs.append(threshold_fn(detail, threshold))

    denoised = wavelet_reconstruct(decomposition, denoised_coeffs)
    noise = values - denoised
    signal_energy = float(np.sum(values ** 2))
    noise_var = float(np.var(noise))

    return {
        'denoised': np.round(denoised, 6).tolist(),
        'noise_removed_pct': round(float(np.sum(noise ** 2)) / signal_energy * 100, 4) if signal_energy > 0 else 0.0,
        'snr_db': round(10 * np.log10(np.var(denoised) / noise_var), 2) if noise_var > 0 else None,
        'wavelet': wavelet,
        'level': decomposition['level'],
        'threshold_type': threshold_type
    }
