from .core import lombscargle
from .core import LSPResult
from .nfft import LSPFlags
from .significance import false_alarm_probability, false_alarm_level
from .backends import available_backends, BACKEND_NAMES

from .version import __version__

__all__ = [
    'lombscargle',
    'LSPResult',
    'LSPFlags',
    'false_alarm_probability',
    'false_alarm_level',
    'available_backends',
    'BACKEND_NAMES',
    '__version__',
]
