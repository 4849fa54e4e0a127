from __future__ import annotations

import numpy as np

__all__ = ['false_alarm_probability', 'false_alarm_level']


def _check_params(npts, nfreqs, oversampling):
    if not npts > 3:
        raise ValueError(f'npts must be greater than 3, got {npts}')
    if not nfreqs > 0:
        raise ValueError(f'nfreqs must be positive, got {nfreqs}')
    if not oversampling > 0:
        raise ValueError(f'oversampling must be positive, got {oversampling}')


def false_alarm_probability(power, npts, nfreqs, oversampling):
    """
    Probability that noise alone produces a peak of at least `power`.

    With ``M = 2 * nfreqs / oversampling`` effective independent frequencies (a heuristic),
    ``Ix = 1 - (1 - 2 * power / npts) ** (0.5 * (npts - 3))`` and the result is
    ``1 - Ix ** M``. A power of 0 gives 1, and the probability falls as power grows.

    Parameters
    ----------
    power : float or array-like
        Periodogram power, with ``0 <= 2 * power / npts <= 1``.
    npts : int
        The number of samples in the time series, greater than 3.
    nfreqs : int
        The number of frequency bins searched.
    oversampling : float
        The oversampling factor of the frequency grid.

    Returns
    -------
    probability : float or ndarray
    """
    _check_params(npts, nfreqs, oversampling)

    power = np.asarray(power, dtype=np.float64)
    x = 2 * power / npts
    if not np.all((x >= 0) & (x <= 1)):
        raise ValueError(
            f'power must lie in [0, npts/2] = [0, {npts / 2}] for the false alarm probability'
        )

    effm = 2 * nfreqs / oversampling

    with np.errstate(divide='ignore'):
        # 1 - Ix**effm through log(Ix) = log1p(-(1 - x)**e), which keeps tiny probabilities
        log_Ix = np.log1p(-np.exp(0.5 * (npts - 3) * np.log1p(-x)))
        probability = -np.expm1(effm * log_Ix)

    if probability.ndim == 0:
        return float(probability)
    return probability


def false_alarm_level(probability, npts, nfreqs, oversampling):
    """
    The power at which `false_alarm_probability` equals `probability`.
    """
    _check_params(npts, nfreqs, oversampling)

    probability = np.asarray(probability, dtype=np.float64)
    if not np.all((probability >= 0) & (probability <= 1)):
        raise ValueError('probability must lie in [0, 1]')

    effm = 2 * nfreqs / oversampling

    with np.errstate(divide='ignore'):
        log_Ix = np.log1p(-probability) / effm
        x = -np.expm1(np.log(-np.expm1(log_Ix)) / (0.5 * (npts - 3)))

    power = 0.5 * npts * x

    if power.ndim == 0:
        return float(power)
    return power
