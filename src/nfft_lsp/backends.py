from __future__ import annotations

from importlib import import_module
from typing import Literal, get_args

__all__ = [
    'available_backends',
    'BACKEND_TYPE',
    'BACKEND_NAMES',
]

BACKEND_TYPE = Literal['auto', 'finufft', 'cufinufft']
BACKEND_NAMES = list(get_args(BACKEND_TYPE))


def _probe(backend: str) -> str | None:
    """Import a transform backend module; return why it failed, or None."""
    try:
        import_module(f'.{backend}', __package__)
    except ImportError as e:
        return str(e)
    return None


def available_backends(verbose: bool = False) -> list[str]:
    """
    The backend names that `lombscargle` accepts in this environment. 'auto' is always
    present; a transform backend is listed when its module (and so its engine library)
    imports.
    """
    backends = ['auto']

    for backend in BACKEND_NAMES[1:]:
        reason = _probe(backend)
        if reason is None:
            backends.append(backend)
        elif verbose:
            print(f'[nfft-lsp] Backend {backend} is unavailable: {reason}')

    return backends
