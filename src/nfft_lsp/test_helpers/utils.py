"""nfft-lsp test helpers"""

from __future__ import annotations

import numpy as np

from ..kernel import lsp_power
from ..preprocess import scale_times, center_values
from ..utils import resolve_grid_size


def gen_data(N=100, Nbatch=None, seed=5043, dtype=np.float64, freq=None, noise=0.1):
    """
    Sinusoids of random (or given) frequency in cycles per unit time, sampled at
    sorted random times on [0, 10), with an offset and Gaussian noise.
    """
    rng = np.random.default_rng(seed)

    t = np.sort(rng.random(N, dtype=dtype)) * 10
    if freq is None:
        freq = rng.random((Nbatch, 1) if Nbatch else 1, dtype=dtype) * 1.5 + 0.5
    y = np.sin(2 * np.pi * freq * t) + 1.23
    y += rng.normal(0, noise, y.shape)

    t = t.astype(dtype, copy=False)
    y = y.astype(dtype, copy=False)

    t.setflags(write=False)
    y.setflags(write=False)

    return dict(t=t, y=y)


def direct_spectra(x, y, n_modes):
    """
    Brute-force adjoint transform of `y` at scaled times `x` on modes 0..n_modes-1,
    and of unit strengths (the window). O(N * n_modes).
    """
    x = np.asarray(x, dtype=np.float64)
    y = np.atleast_2d(np.asarray(y, dtype=np.float64))

    k = np.arange(n_modes)
    phase = np.exp(2j * np.pi * k[:, None] * x[None, :])

    signal = y @ phase[: n_modes // 2].T
    window = phase.sum(axis=1)

    return signal, window


def lsp_direct(t, y, oversampling=4.0, hifac=1.0):
    """Reference periodogram with the transform replaced by `direct_spectra`."""
    t = np.asarray(t, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)

    ng, _, over_eff = resolve_grid_size(len(t), oversampling, hifac)
    x = scale_times(t, over_eff)
    yc, variance = center_values(y)

    signal, window = direct_spectra(x, yc, 2 * ng)
    power = lsp_power(signal, window, variance)
    if y.ndim == 1:
        power = power.squeeze(0)

    return power
