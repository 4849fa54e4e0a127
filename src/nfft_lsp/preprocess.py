"""
Host-side preparation of the observations before they are handed to a transform backend.
"""

from __future__ import annotations

import numpy as np
import numpy.typing as npt

__all__ = ['scale_times', 'center_values', 'frequency_spacing', 'EPS', 'HALF_WIDTH']

# Keeps the scaled samples off the +/-0.5 boundary of the transform domain
EPS = 1e-5
HALF_WIDTH = 0.5 - EPS


def scale_times(t: npt.NDArray[np.floating], oversampling: float) -> npt.NDArray[np.floating]:
    """
    Map sorted times affinely onto ``[-a*k, a*k)`` with ``a = 0.5 - EPS`` and
    ``k = 1 / oversampling``. The first sample maps to ``-a*k`` and the last to the
    largest value of the dtype below ``+a*k``, so for ``oversampling >= 1`` every sample
    lies strictly inside ``[-0.5, 0.5)``.

    Shrinking the mapped range by the oversampling factor is what makes the frequency
    grid of the transform denser.
    """
    t = np.asarray(t)
    if len(t) < 2:
        raise ValueError(f'At least 2 samples are required, got {len(t)}')
    if not oversampling > 0:
        raise ValueError(f'oversampling must be positive, got {oversampling}')

    baseline = t[-1] - t[0]
    if baseline <= 0.0:
        raise ValueError('Time samples must be sorted and span a positive baseline')

    k = 1.0 / oversampling
    x = HALF_WIDTH * k * (2 * (t - t[0]) / baseline - 1)
    x = x.astype(t.dtype, copy=False)

    # half-open range: the last sample stays below +a*k
    upper = np.nextafter(x.dtype.type(HALF_WIDTH * k), x.dtype.type(0))
    x = np.minimum(x, upper)

    return x


def frequency_spacing(baseline: float, oversampling: float) -> float:
    """Frequency step between adjacent modes for times scaled by `scale_times`."""
    return 2 * HALF_WIDTH / (oversampling * baseline)


def center_values(y: npt.NDArray[np.floating]):
    """
    Subtract the sample mean from `y` (along the last axis).

    Returns
    -------
    yc : ndarray
        The centered values, same shape and dtype as `y`.
    variance : ndarray or float
        The population variance (divided by N, not N-1) of the original values.
        A float for 1-D input, an array of shape ``(N_y,)`` for 2-D input.
    """
    y = np.asarray(y)

    mean = y.mean(axis=-1, keepdims=True, dtype=y.dtype)
    yc = y - mean
    variance = (yc * yc).mean(axis=-1, dtype=y.dtype)

    if y.ndim == 1:
        variance = variance.item()

    return yc, variance
