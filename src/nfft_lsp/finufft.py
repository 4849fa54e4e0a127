from __future__ import annotations

import os

import finufft
import numpy as np

from .nfft import TransformPlan, shifted_strengths

FFTW_MEASURE = 0
FFTW_ESTIMATE = 64

MAX_THREADS = len(os.sched_getaffinity(0))

xp = np
asnumpy = np.asarray

__all__ = [
    'prepare_transform',
    'execute_transform',
    'xp',
    'asnumpy',
    'FFTW_MEASURE',
    'FFTW_ESTIMATE',
    'MAX_THREADS',
]


def prepare_transform(
    x,
    y,
    n_modes,
    config,
    nthreads=None,
    verbose=False,
    finufft_kwargs=None,
):
    """
    Plan the adjoint NFFT of `y` (and the window) at scaled times `x` with FINUFFT.

    Performance Tuning
    ------------------
    The performance of this backend depends almost entirely on the performance of finufft,
    which can vary significantly depending on tuning parameters like the number of threads.
    For nthreads, start with 1 and increase until performance stops improving.

    See the finufft documentation for the full list of tuning parameters:
    https://finufft.readthedocs.io/en/latest/opts.html

    Parameters
    ----------
    x : array-like
        The scaled times, shape (N,), in [-0.5, 0.5)
    y : array-like
        The centered values, shape (N,) or (N_y, N)
    n_modes : int
        The number of non-negative modes of the window transform.
    config : TransformConfig
        The transform behaviour.
    nthreads : int, optional
        The number of threads to use. The default behavior is to use (N_y / 4) * (n_modes / 2^15) threads,
        capped to the number of available CPUs.
    verbose : bool, optional
        Whether to print additional information about the finufft computation.
    finufft_kwargs : dict, optional
        Additional keyword arguments to pass to the `finufft.Plan()` constructor.
        Particular finufft parameters of interest may be:
        - `eps`: the requested precision [1e-9 for double precision and 1e-5 for single precision]
        - `upsampfac`: the upsampling factor [1.25]
        - `fftw`: the FFTW planner flags [FFTW_ESTIMATE]
    """

    default_finufft_kwargs = dict(
        eps='default',
        upsampfac=1.25,
        fftw=FFTW_ESTIMATE,
        debug=int(verbose),
    )

    finufft_kwargs = {**default_finufft_kwargs, **(finufft_kwargs or {})}

    x = np.asarray(x)
    y = np.asarray(y)
    dtype = x.dtype

    if finufft_kwargs['eps'] == 'default':
        if dtype == np.float32:
            finufft_kwargs['eps'] = 1e-5
        else:
            finufft_kwargs['eps'] = 1e-9
    if 'isign' in finufft_kwargs:
        raise ValueError('isign is fixed by the transform contract and may not be passed')

    cdtype = np.complex128 if dtype == np.float64 else np.complex64

    nbatch = 1 if y.ndim == 1 else y.shape[0]

    if nthreads is None:
        nthreads = max(1, nbatch // 4) * max(1, n_modes // (1 << 15))
        nthreads = min(nthreads, MAX_THREADS)

    if verbose:
        print(
            f'nfft-lsp finufft: Using {nthreads} {"thread" if nthreads == 1 else "threads"}'
        )

    theta, strengths = shifted_strengths(x, y, n_modes, config, np, cdtype)

    plan = finufft.Plan(
        nufft_type=1,
        n_modes_or_dim=(n_modes,),
        n_trans=strengths.shape[0],
        isign=1,
        dtype=cdtype,
        nthreads=nthreads,
        **finufft_kwargs,
    )
    plan.setpts(theta)

    return TransformPlan(
        engine_plan=plan,
        strengths=strengths,
        n_modes=n_modes,
        nbatch=nbatch,
        config=config,
    )


def execute_transform(plan):
    """
    Run a prepared transform.

    Returns
    -------
    signal : ndarray
        Shape (N_y, n_modes // 2), the transform of the values.
    window : ndarray or None
        Shape (n_modes,), the transform of unit strengths, or None if the plan
        was prepared without the window.
    """
    spectra = plan.engine_plan.execute(plan.strengths)
    spectra = spectra.reshape(-1, plan.n_modes)

    signal = spectra[: plan.nbatch, : plan.n_modes // 2]
    window = spectra[plan.nbatch] if plan.config.window else None

    return signal, window
