from __future__ import annotations

import numpy as np

__all__ = [
    'next_power_of_two',
    'resolve_grid_size',
    'validate_series',
    'same_dtype_or_raise',
]


def next_power_of_two(n):
    """Smallest power of two that is >= n, for n >= 1."""
    n = int(n)
    if n < 1:
        raise ValueError(f'n must be a positive integer, got {n}')
    return 1 << (n - 1).bit_length()


def resolve_grid_size(npts, oversampling, hifac):
    """
    Resolve the periodogram length for `npts` samples.

    The target length is ``NG = floor(0.5 * npts * oversampling * hifac)``, which is
    rounded up to the next power of two ``ng``. The oversampling factor is scaled by
    ``ng / NG`` so that the highest frequency of the grid stays where the caller put it.

    Returns
    -------
    ng : int
        The periodogram length (a power of two).
    NG : int
        The unrounded target length.
    oversampling : float
        The effective oversampling factor.
    """
    npts = int(npts)
    oversampling = float(oversampling)
    hifac = float(hifac)

    if npts < 2:
        raise ValueError(f'At least 2 samples are required, got {npts}')
    if not oversampling > 0:
        raise ValueError(f'oversampling must be positive, got {oversampling}')
    if not hifac > 0:
        raise ValueError(f'hifac must be positive, got {hifac}')

    NG = int(np.floor(0.5 * npts * oversampling * hifac))
    if NG < 1:
        raise ValueError(
            f'npts={npts}, oversampling={oversampling} and hifac={hifac} '
            'give an empty frequency grid'
        )

    ng = next_power_of_two(NG)
    oversampling = oversampling * (ng / NG)

    # the scaled times span 2*(0.5 - eps)/oversampling of the unit torus
    if oversampling < 1:
        raise ValueError(
            f'Effective oversampling {oversampling:.4g} is below 1; '
            'the scaled time samples would wrap around the transform domain'
        )

    return ng, NG, oversampling


def validate_series(t, y, assume_sorted_t=True):
    """
    Check the observation arrays and return them as arrays of a common float dtype,
    sorted by time if `assume_sorted_t` is False.
    """
    same_dtype_or_raise(t=t, y=y)

    t = np.asarray(t)
    y = np.asarray(y)

    if t.dtype not in (np.float32, np.float64):
        raise TypeError(f't and y must be float32 or float64, got {t.dtype}')
    if t.ndim != 1:
        raise ValueError(f't must be 1-D, got shape {t.shape}')
    if y.ndim not in (1, 2):
        raise ValueError(f'y must be 1-D or 2-D, got shape {y.shape}')
    if y.shape[-1] != len(t):
        raise ValueError(
            f't and y must have the same number of samples, got {len(t)} and {y.shape[-1]}'
        )
    if len(t) < 2:
        raise ValueError(f'At least 2 samples are required, got {len(t)}')

    if not assume_sorted_t:
        order = np.argsort(t, kind='stable')
        t = t[order]
        y = y[..., order]

    if t[-1] - t[0] <= 0.0:
        raise ValueError(
            'The input time array must be non-degenerate, '
            'and sorted if assume_sorted_t=True.'
        )

    return t, y


def same_dtype_or_raise(**arrays):
    """
    Check if all arrays have the same dtype, raise ValueError if not.
    """
    dtypes = {n: np.asarray(a).dtype for (n, a) in arrays.items() if a is not None}
    names = list(dtypes.keys())

    for n in names[1:]:
        if dtypes[n] != dtypes[names[0]]:
            raise ValueError(
                f'Arrays {names[0]} and {n} have different dtypes: '
                f'{dtypes[names[0]]} and {dtypes[n]}'
            )
