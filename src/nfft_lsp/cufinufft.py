"""
This module provides a CUDA-accelerated NFFT backend via cufinufft and cupy.
"""

from __future__ import annotations

try:
    import cupy as cp
    import cufinufft
except ImportError as e:
    raise ImportError(
        'cufinufft and cupy are required for this module. Did you install with "pip install nfft-lsp[cuda]"?'
    ) from e


if not cp.is_available():
    raise ImportError('CUDA is not available, cannot use cufinufft backend.')

from .nfft import TransformPlan, shifted_strengths

xp = cp
asnumpy = cp.asnumpy

__all__ = ['prepare_transform', 'execute_transform', 'xp', 'asnumpy']


def prepare_transform(
    x,
    y,
    n_modes,
    config,
    cufinufft_kwargs=None,
):
    """
    Plan the adjoint NFFT of `y` (and the window) at scaled times `x` with cufinufft.

    The inputs may live on the host or the device; they are moved to the device here
    and everything downstream stays there.

    Performance Tuning
    ------------------
    cufinufft is not as finicky to tune as finufft. The default parameters are probably
    fine for most cases, but you may want to experiment with the `eps` and `gpu_method`.

    https://finufft.readthedocs.io/en/latest/c_gpu.html#non-standard-options

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
    cufinufft_kwargs : dict, optional
        Additional keyword arguments to pass to the `cufinufft.Plan()` constructor.
        Particular cufinufft parameters of interest are:
        - `eps`: the requested precision [1e-9 for double precision and 1e-5 for single precision]
        - `gpu_method`: the method to use on the GPU [1]
    """

    default_cufinufft_kwargs = dict(eps='default', gpu_method=1)

    cufinufft_kwargs = {**default_cufinufft_kwargs, **(cufinufft_kwargs or {})}

    x = cp.asarray(x)
    y = cp.asarray(y)
    dtype = x.dtype

    if cufinufft_kwargs['eps'] == 'default':
        if dtype == cp.float32:
            cufinufft_kwargs['eps'] = 1e-5
        else:
            cufinufft_kwargs['eps'] = 1e-9
    if 'isign' in cufinufft_kwargs:
        raise ValueError('isign is fixed by the transform contract and may not be passed')

    cdtype = cp.complex128 if dtype == cp.float64 else cp.complex64

    nbatch = 1 if y.ndim == 1 else y.shape[0]

    theta, strengths = shifted_strengths(x, y, n_modes, config, cp, cdtype)

    plan = cufinufft.Plan(
        nufft_type=1,
        n_modes=(n_modes,),
        n_trans=strengths.shape[0],
        isign=1,
        dtype=cdtype,
        **cufinufft_kwargs,
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
    Run a prepared transform. The spectra are device-resident cupy arrays unless the
    plan's configuration asks for them on the host.
    """
    spectra = plan.engine_plan.execute(plan.strengths)
    spectra = spectra.reshape(-1, plan.n_modes)

    if not plan.config.retain_on_device:
        spectra = spectra.get()

    signal = spectra[: plan.nbatch, : plan.n_modes // 2]
    window = spectra[plan.nbatch] if plan.config.window else None

    return signal, window
