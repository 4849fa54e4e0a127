"""
Conversion of the signal and window spectra into Lomb-Scargle power.

Every frequency bin is independent of every other, so the conversion is written as
whole-array operations on the array module of the spectra (numpy on the host, cupy on
the device) rather than an explicit per-bin kernel.
"""

from __future__ import annotations

import numpy as np

__all__ = ['lsp_power']


def lsp_power(signal, window, variance, xp=np, return_tau=False):
    """
    Compute the periodogram from the adjoint NFFT spectra.

    Bin ``j`` of the output uses ``z1 = signal[..., j+1]`` and ``z2 = window[2*(j+1)]``.
    The last bin, ``j = ng - 1``, has no partner in the signal spectrum and is always 0.
    Bins where either normalization sum is zero or negative are not guarded and come
    out as inf or nan.

    Parameters
    ----------
    signal : array
        Complex, shape (ng,) or (N_y, ng). Mode k of the transform of the centered values.
    window : array
        Complex, shape (2*ng,). Mode k of the transform of unit strengths.
    variance : float or array
        The population variance of the values, scalar or shape (N_y,).
    xp : module, optional
        The array module of `signal` and `window`.
    return_tau : bool, optional
        Also return ``cos(w tau)`` and ``sin(w tau)`` of the phase rotation per bin.

    Returns
    -------
    power : array
        Real, same shape as `signal`, in the real precision of `signal`.
    cwtau, swtau : array
        Only if `return_tau`. Shape (ng,), 0 at the last bin.
    """
    ng = signal.shape[-1]
    if window.shape[-1] != 2 * ng:
        raise ValueError(
            f'The window spectrum must have twice the length of the signal spectrum, '
            f'got {window.shape[-1]} and {ng}'
        )

    rdtype = signal.real.dtype
    window = window.astype(signal.dtype, copy=False)

    variance = xp.asarray(variance, dtype=rdtype)
    if variance.ndim:
        variance = variance[:, None]

    z1 = signal[..., 1:]
    z2 = window[2 : 2 * ng : 2]

    with np.errstate(divide='ignore', invalid='ignore'):
        invhypo = 1 / xp.abs(z2)
        hc2wtau = 0.5 * z2.real * invhypo
        hs2wtau = 0.5 * z2.imag * invhypo

        cos2wttau = 0.5 * ng + hc2wtau * z2.real + hs2wtau * z2.imag
        sin2wttau = 0.5 * ng - hc2wtau * z2.real - hs2wtau * z2.imag

        cterm = z1.real * z1.real / cos2wttau
        sterm = z1.imag * z1.imag / sin2wttau

    power = xp.zeros(signal.shape, dtype=rdtype)
    power[..., :-1] = (cterm + sterm) / (2 * variance)

    if return_tau:
        with np.errstate(invalid='ignore'):
            cwtau = xp.sqrt(0.5 + hc2wtau)
            # the sine follows the sign of the imaginary part of the window
            swtau = xp.copysign(xp.sqrt(0.5 - hc2wtau), z2.imag)

        cw = xp.zeros(ng, dtype=rdtype)
        sw = xp.zeros(ng, dtype=rdtype)
        cw[:-1] = cwtau
        sw[:-1] = swtau
        return power, cw, sw

    return power
