"""
The contract between the periodogram pipeline and the NFFT backends.

A backend module provides two transform operations:

- ``prepare_transform(x, y, n_modes, config, **kwargs) -> TransformPlan``
- ``execute_transform(plan) -> (signal, window)``

which together evaluate the adjoint NFFT on the non-negative modes

    F[k] = sum_j c_j exp(+2 pi i k x_j),    k = 0, ..., n_modes - 1

for scaled times ``x_j`` in ``[-0.5, 0.5)``. ``signal`` is the transform of the values
truncated to the first ``n_modes // 2`` modes, ``window`` is the transform of unit
strengths over all ``n_modes`` modes. A backend also exports its array module as ``xp``
and an ``asnumpy`` function to copy results to the host.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

__all__ = ['LSPFlags', 'TransformConfig', 'TransformPlan', 'shifted_strengths']


class LSPFlags(enum.Flag):
    NONE = 0
    # leave the periodogram in device memory instead of copying it to the host
    RETAIN_ON_DEVICE = enum.auto()
    # compute the window transform alongside the signal transform
    WINDOW = enum.auto()
    # print the time spent in each stage
    TIMING = enum.auto()


@dataclass(frozen=True)
class TransformConfig:
    """Transform behaviour, fixed for the lifetime of a plan."""

    flags: LSPFlags

    @classmethod
    def from_flags(cls, flags: LSPFlags = LSPFlags.NONE) -> TransformConfig:
        # The power kernel needs the window spectrum and runs where the spectra live
        return cls(flags | LSPFlags.WINDOW | LSPFlags.RETAIN_ON_DEVICE)

    @property
    def window(self) -> bool:
        return bool(self.flags & LSPFlags.WINDOW)

    @property
    def retain_on_device(self) -> bool:
        return bool(self.flags & LSPFlags.RETAIN_ON_DEVICE)

    @property
    def timing(self) -> bool:
        return bool(self.flags & LSPFlags.TIMING)


@dataclass
class TransformPlan:
    """A prepared transform. `engine_plan` is owned by the backend and opaque here."""

    engine_plan: Any
    strengths: Any
    n_modes: int
    nbatch: int
    config: TransformConfig


def shifted_strengths(x, y, n_modes, config, xp, cdtype):
    """
    Build the NUFFT nonuniform points and strengths for the transform of `y` at `x`.

    Type-1 NUFFT libraries return modes ``-n_modes/2 .. n_modes/2 - 1``; multiplying the
    strengths by ``exp(i (n_modes/2) theta_j)`` moves these to ``0 .. n_modes - 1`` so
    that output index ``k`` is mode ``k``. When `config.window` is set, a row of unit
    strengths is appended after the rows of `y`.

    Returns
    -------
    theta : array
        The points ``2 pi x`` in ``[-pi, pi)``, in the real dtype of `x`.
    strengths : array
        Shape ``(nrows, N)`` of dtype `cdtype`.
    """
    theta = (2 * xp.pi) * x
    theta = theta.astype(x.dtype, copy=False)

    y = xp.atleast_2d(y)
    nbatch, N = y.shape
    nrows = nbatch + 1 if config.window else nbatch

    strengths = xp.empty((nrows, N), dtype=cdtype)
    strengths[:nbatch] = y
    if config.window:
        strengths[nbatch:] = 1

    strengths *= xp.exp(1j * (n_modes // 2) * theta).astype(cdtype, copy=False)

    return theta, strengths
