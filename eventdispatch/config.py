import os
from typing import Optional


class Config:
    # How many nested levels of 'error' re-emission one listener fault may
    # trigger. 1: faults raised while an 'error' event is being delivered
    # are logged and dropped. 0: faults are only logged.
    DEFAULT_MAX_ERROR_HOPS = 1
    DEFAULT_LOG_LEVEL = 'INFO'

    def __init__(self):
        self.MAX_ERROR_HOPS = _non_negative_int('EVENTDISPATCH_MAX_ERROR_HOPS', self.DEFAULT_MAX_ERROR_HOPS)
        # only used by the demo; the library never configures logging itself
        self.LOG_LEVEL = (os.getenv('EVENTDISPATCH_LOG_LEVEL') or self.DEFAULT_LOG_LEVEL).upper()


def _non_negative_int(name: str, default: int) -> int:
    raw: Optional[str] = os.getenv(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f'{name} must be an integer, got {raw!r}')
    if value < 0:
        raise ValueError(f'{name} must be >= 0, got {value}')
    return value


def get_config() -> Config:
    return Config()
