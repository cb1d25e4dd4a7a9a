# -*- coding: utf-8 -*-
"""Units of work: the scope of deferred warnings and fatal errors.

A unit of work is what R calls a top-level call: the thing an unhandled error
aborts, and at whose end the unhandled warnings are reported, all together,
in the order they were signaled::

    channel = CollectingChannel()
    with unit(channel):
        warning("first")
        warning("second")
        ...  # nothing reported yet
    channel.texts()  # ["first", "second"]

Units nest; an inner unit joins the outermost one, so the warnings are
reported only when the outermost unit finishes.
"""

__all__ = ["unit", "run", "current_channel", "last_warnings"]

from contextlib import contextmanager
from contextvars import ContextVar

from .condition import from_exception
from .config import Config
from .errors import UnhandledError

class _UnitOfWork:
    def __init__(self, channel):
        self.channel = channel
        self.buffer = []
        self.dropped = 0

    def defer(self, condition):
        if len(self.buffer) < Config.nwarnings:
            self.buffer.append(condition)
        else:
            self.dropped += 1

    def flush(self):
        conditions, dropped = self.buffer, self.dropped
        self.buffer, self.dropped = [], 0
        _last_warnings.set(tuple(conditions))
        if conditions or dropped:
            self.channel.warnings(conditions, dropped)

_active = ContextVar("rconditions_unit", default=None)
_last_warnings = ContextVar("rconditions_last_warnings", default=())

def current_channel():
    """Return the observation channel in effect.

    This is the channel of the active unit of work, or `Config.channel`
    if no unit is active.
    """
    u = _active.get()
    return u.channel if u is not None else Config.channel

def defer_warning(condition):
    """Buffer an unhandled warning until the end of the active unit of work.

    With no active unit, the signal is its own unit of work, so the warning
    is reported immediately.
    """
    u = _active.get()
    if u is None:
        u = _UnitOfWork(Config.channel)
        u.defer(condition)
        u.flush()
    else:
        u.defer(condition)

def last_warnings():
    """Return the warnings reported at the end of the most recent unit of work.

    A tuple of conditions, in signal order. Like `warnings()` in R.
    """
    return _last_warnings.get()

@contextmanager
def unit(channel=None):
    """Run the block as a unit of work.

    `channel`: the observation channel for conditions that go unhandled in
               this unit. Default `Config.channel`.

    When the block exits, any deferred warnings are reported to `channel`.
    If an unhandled error aborts the block, it is first reported to `channel`,
    then the warnings, and then the error propagates (as `UnhandledError`).
    Native Python exceptions that escape the block are reported the same way,
    and then propagate as they are.

    If a unit of work is already active, the block joins it. Joining cannot
    change the channel, so then `channel` must be `None` (`ValueError` otherwise).

    The `as` part of the `with` binds the channel.
    """
    outer = _active.get()
    if outer is not None:
        if channel is not None:
            raise ValueError("A nested unit of work joins the outermost one, and cannot set its own channel.")
        yield outer.channel
        return

    u = _UnitOfWork(channel if channel is not None else Config.channel)
    token = _active.set(u)
    try:
        yield u.channel
    except UnhandledError as err:
        u.channel.error(err.condition)
        raise
    except Exception as err:
        u.channel.error(from_exception(err))
        raise
    finally:
        _active.reset(token)
        u.flush()

def run(thunk, channel=None):
    """Call `thunk` as a unit of work. Return its return value.

    See `unit`.
    """
    with unit(channel):
        return thunk()
