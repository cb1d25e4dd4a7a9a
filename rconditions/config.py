# -*- coding: utf-8 -*-
"""Global settings for the condition runtime."""

__all__ = ["Config", "options"]

from contextlib import contextmanager

from .channel import StreamChannel

class Config:
    """Global settings for the condition runtime.

    This is just a bunch of constants.

    If you want to change the settings, just assign new values to the attributes
    (the new values take effect from that point forward), or use `with options(...)`
    to change them temporarily.

    `channel`:             The observation channel used when no unit of work is
                           active, and by units of work that are not given one.
                           Default is a `StreamChannel` writing to `sys.stderr`.
    `warn`:                What to do with unhandled warnings. Like R's `options(warn=...)`:
                             < 0   ignore them,
                             0     defer them to the end of the unit of work (default),
                             1     report each one immediately,
                             >= 2  escalate them into errors.
    `nwarnings`:           How many warnings a unit of work buffers. Further warnings are
                           only counted, and reported as dropped. Default 50, as in R.
    `show_error_messages`: Whether `try_` reports the error it suppresses, when
                           not told otherwise. Default `True`.
    """
    channel = StreamChannel()
    warn = 0
    nwarnings = 50
    show_error_messages = True

@contextmanager
def options(**settings):
    """Temporarily override attributes of `Config`.

    Usage::

        with options(warn=2):
            ...  # warnings are now errors

    The old values are restored when the block exits, also when it exits by
    an exception. Unknown setting names raise `AttributeError`.
    """
    for name in settings:
        if name.startswith("_") or not hasattr(Config, name):
            raise AttributeError(f"Unknown setting {repr(name)}")
    old = {name: getattr(Config, name) for name in settings}
    for name, value in settings.items():
        setattr(Config, name, value)
    try:
        yield
    finally:
        for name, value in old.items():
            setattr(Config, name, value)
