from __future__ import annotations

from dataclasses import dataclass
import importlib
import logging
from timeit import default_timer as timer
from typing import Optional, Union

import numpy as np
import numpy.typing as npt

from . import utils
from .backends import available_backends, BACKEND_TYPE
from .kernel import lsp_power
from .nfft import LSPFlags, TransformConfig
from .preprocess import scale_times, center_values, frequency_spacing
from .significance import false_alarm_probability

__all__ = [
    'lombscargle',
    'LSPResult',
    'AVAILABLE_BACKENDS',
]


AVAILABLE_BACKENDS = available_backends()


def lombscargle(
    t: npt.NDArray[np.floating],
    y: npt.NDArray[np.floating],
    oversampling: float = 4.0,
    hifac: float = 1.0,
    flags: LSPFlags = LSPFlags.NONE,
    backend: BACKEND_TYPE = 'auto',
    assume_sorted_t: bool = True,
    **backend_kwargs: Optional[dict],
) -> LSPResult:
    """
    Compute a Lomb-Scargle periodogram with an adjoint NFFT, or a batch of periodograms
    if `y` is a 2D array.

    The times are scaled onto the transform domain, the values are centered, and two
    spectra are computed in one batched transform: the values at twice the periodogram
    length, and the window (unit strengths) at the same size for its second harmonic.
    The spectra are then converted into power bin by bin.

    The periodogram has ``ng`` bins, where ``ng`` is ``floor(0.5 * N * oversampling * hifac)``
    rounded up to a power of two. Bin ``j`` holds frequency ``(j + 1) * df``; the last bin
    is always 0. Use `LSPResult.freq()` for the frequency grid.

    Parameters
    ----------
    t : array-like
        The time values, shape (N,), sorted unless `assume_sorted_t` is False.
    y : array-like
        The data values, shape (N,) or (N_y, N). Same dtype as `t`.
    oversampling : float, optional
        The density of the frequency grid relative to 1 / baseline. Default is 4.
    hifac : float, optional
        The highest frequency as a multiple of the average Nyquist frequency N / (2 * baseline).
        Default is 1.
    flags : LSPFlags, optional
        RETAIN_ON_DEVICE to leave the power on the device (GPU backends),
        TIMING to print the time spent in each stage. The window transform is always computed.
    backend : str, optional
        The NFFT backend. Default is 'auto' which selects the best available backend.
    assume_sorted_t : bool, optional
        Whether the time values are sorted in ascending order. If False, they are sorted here.
    backend_kwargs : dict, optional
        Additional keyword arguments to pass to the backend's `prepare_transform`.

    Returns
    -------
    result : LSPResult
        `result.power` has shape (ng,) or (N_y, ng) if `y` is 2D.
    """
    t, y = utils.validate_series(t, y, assume_sorted_t=assume_sorted_t)
    npts = len(t)

    ng, NG, over_eff = utils.resolve_grid_size(npts, oversampling, hifac)

    # Backend selection
    if backend == 'auto':
        if 'cufinufft' in AVAILABLE_BACKENDS:
            backend = 'cufinufft'
        elif 'finufft' in AVAILABLE_BACKENDS:
            backend = 'finufft'
        else:
            raise ValueError(
                f'No valid backends available. AVAILABLE_BACKENDS = {AVAILABLE_BACKENDS}'
            )
    if backend not in AVAILABLE_BACKENDS:
        raise ValueError(
            f'Unknown or unavailable backend: {backend}. Available backends are: {AVAILABLE_BACKENDS}'
        )

    backend_module = importlib.import_module(f'.{backend}', __package__)
    config = TransformConfig.from_flags(flags)

    t_prep = -timer()

    x = scale_times(t, over_eff)
    yc, variance = center_values(y)

    if np.any(np.asarray(variance) == 0):
        raise ValueError('The data values must not be constant')

    t_prep += timer()

    t_nfft = -timer()

    plan = backend_module.prepare_transform(x, yc, 2 * ng, config, **backend_kwargs)
    signal, window = backend_module.execute_transform(plan)

    t_nfft += timer()

    t_kernel = -timer()

    xp = backend_module.xp
    power = lsp_power(signal, window, variance, xp=xp)
    if y.ndim == 1:
        power = power.squeeze(0)

    t_kernel += timer()

    nbad = int(xp.count_nonzero(~xp.isfinite(power)))
    if nbad:
        logging.warning(
            f'{nbad} periodogram bins are not finite; '
            'the window spectrum is degenerate at those frequencies'
        )

    t_copy = 0.0
    if not flags & LSPFlags.RETAIN_ON_DEVICE:
        t_copy -= timer()
        power = backend_module.asnumpy(power)
        t_copy += timer()

    if config.timing:
        print(f'nfft-lsp {backend}: preprocess = {t_prep:.4g} sec')
        print(f'nfft-lsp {backend}: nfft = {t_nfft:.4g} sec')
        print(f'nfft-lsp {backend}: power kernel = {t_kernel:.4g} sec')
        print(f'nfft-lsp {backend}: DtoH = {t_copy:.4g} sec')

    return LSPResult(
        power=power,
        ng=ng,
        NG=NG,
        df=frequency_spacing(float(t[-1] - t[0]), over_eff),
        oversampling=over_eff,
        requested_oversampling=float(oversampling),
        hifac=float(hifac),
        npts=npts,
        variance=variance,
        flags=flags,
        backend=backend,
        backend_kwargs=backend_kwargs,
    )


@dataclass
class LSPResult:
    power: npt.NDArray[np.floating]
    ng: int
    NG: int
    df: float
    oversampling: float
    requested_oversampling: float
    hifac: float
    npts: int
    variance: Union[float, npt.NDArray[np.floating]]
    flags: LSPFlags
    backend: BACKEND_TYPE
    backend_kwargs: Optional[dict]

    def freq(self) -> npt.NDArray[np.floating]:
        return self.df * np.arange(1, self.ng + 1)

    def false_alarm_probability(self, power):
        """
        False alarm probability of `power`, using the grid length and effective oversampling
        of this result. Usually called on a peak value; powers above ``npts / 2`` and
        non-finite powers raise `ValueError`, so it is not meant for a whole periodogram.
        """
        return false_alarm_probability(power, self.npts, self.ng, self.oversampling)
