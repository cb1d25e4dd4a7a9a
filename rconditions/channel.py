# -*- coding: utf-8 -*-
"""Observation channels: where unhandled conditions are reported.

The runtime does not print anything by itself. Default behavior for an
unhandled condition is to report it to an observation channel, which the
calling code supplies (see `rconditions.unit.unit` and `Config.channel`).

A channel is any object with these three methods:

    `message(condition)`: an unhandled message, reported immediately.
    `warnings(conditions, dropped=0)`: the unhandled warnings of a unit of work,
        in signal order, reported when the unit finishes. `dropped` is how
        many further warnings did not fit into the buffer (see `Config.nwarnings`).
    `error(condition)`: an unhandled error, reported just before the unit of
        work is aborted.

`Channel` is a convenience base class that does nothing.
"""

__all__ = ["Channel", "StreamChannel", "CollectingChannel",
           "LoggingChannel", "WarningsChannel", "ConditionWarning",
           "describe"]

import contextlib
import logging
import os
import sys
import warnings as pywarnings

def describe(condition, prefix=None):
    """Return a one-line, R console style description of `condition`.

    With `prefix`, e.g. `"Error"`::

        Error in f() : something went wrong    # origin known
        Error: something went wrong            # no origin

    Without `prefix`, like the entries of a warning listing::

        In f() : something went wrong
        something went wrong
    """
    if prefix is None:
        if condition.origin is not None:
            return f"In {condition.origin} : {condition.text}"
        return condition.text
    if condition.origin is not None:
        return f"{prefix} in {condition.origin} : {condition.text}"
    return f"{prefix}: {condition.text}"

def _describe_warnings(conditions, dropped):
    if not conditions:
        return ""
    if len(conditions) == 1:
        lines = ["Warning message:", describe(conditions[0])]
    else:
        lines = ["Warning messages:"]
        lines.extend(f"{k}: {describe(c)}" for k, c in enumerate(conditions, start=1))
    if dropped:
        lines.append(f"[... {dropped} more warnings dropped; see Config.nwarnings]")
    return "\n".join(lines)

class Channel:
    """Base class for observation channels. Discards everything."""
    def message(self, condition):
        pass
    def warnings(self, conditions, dropped=0):
        pass
    def error(self, condition):
        pass

class StreamChannel(Channel):
    """Write reports as text to a stream, like the R console does.

    `stream`: a text stream, or `None` to use whatever `sys.stderr` is at the
              time of writing (so that redirections of `sys.stderr` are honored).
    """
    def __init__(self, stream=None):
        self.stream = stream
    def _write(self, s):
        stream = self.stream if self.stream is not None else sys.stderr
        stream.write(s + "\n")
        stream.flush()
    def message(self, condition):
        self._write(condition.text)
    def warnings(self, conditions, dropped=0):
        if conditions or dropped:
            self._write(_describe_warnings(conditions, dropped))
    def error(self, condition):
        self._write(describe(condition, "Error"))

class CollectingChannel(Channel):
    """Record the reports in memory, in the order they arrive.

    `events` is a list of `(kind, condition)`, where `kind` is the base tag
    `"message"`, `"warning"` or `"error"`. A flush of several warnings
    produces one event per warning. The number of dropped warnings is
    accumulated into `dropped`.
    """
    def __init__(self):
        self.events = []
        self.dropped = 0
    def message(self, condition):
        self.events.append(("message", condition))
    def warnings(self, conditions, dropped=0):
        self.events.extend(("warning", c) for c in conditions)
        self.dropped += dropped
    def error(self, condition):
        self.events.append(("error", condition))

    def texts(self, kind=None):
        """Return the texts of the recorded conditions, optionally only of one `kind`."""
        return [c.text for k, c in self.events if kind is None or k == kind]
    def clear(self):
        self.events.clear()
        self.dropped = 0

class LoggingChannel(Channel):
    """Report to a `logging.Logger`.

    Messages are logged at `INFO`, warnings at `WARNING` (one record each),
    errors at `ERROR`. Each record carries the condition in `extra` as
    `record.condition`.

    `logger`: a `logging.Logger`, or a logger name. Default `"rconditions"`.
    """
    def __init__(self, logger=None):
        if logger is None or isinstance(logger, str):
            logger = logging.getLogger(logger or "rconditions")
        self.logger = logger
    def message(self, condition):
        self.logger.info("%s", condition.text, extra={"condition": condition})
    def warnings(self, conditions, dropped=0):
        for c in conditions:
            self.logger.warning("%s", describe(c), extra={"condition": c})
        if dropped:
            self.logger.warning("%d more warnings dropped", dropped)
    def error(self, condition):
        self.logger.error("%s", describe(condition, "Error"), extra={"condition": condition})

_here = os.path.dirname(__file__)

def _user_stacklevel():
    # `stacklevel` for `warnings.warn`, as counted from the caller of this function,
    # pointing at the first frame outside the runtime modules and `contextlib`.
    level = 1
    frame = sys._getframe(1)
    while frame is not None and (os.path.dirname(frame.f_code.co_filename) == _here or
                                 frame.f_code.co_filename == contextlib.__file__):
        frame = frame.f_back
        level += 1
    return level

class ConditionWarning(UserWarning):
    """Python warning category for warning conditions passed on by `WarningsChannel`.

    The original condition is available as the `condition` attribute.
    """
    def __init__(self, condition):
        super().__init__(describe(condition))
        self.condition = condition

class WarningsChannel(StreamChannel):
    """Pass warnings on to Python's standard `warnings` mechanism.

    Each warning condition becomes a `ConditionWarning`, so the usual warning
    filters apply. The warning is attributed to the first frame outside the
    condition runtime, typically the `with unit(...)` that reports it; the
    signal site is in the condition's `origin`.

    Messages and errors are written to `stream` as in `StreamChannel`.
    """
    def warnings(self, conditions, dropped=0):
        for c in conditions:
            pywarnings.warn(ConditionWarning(c), stacklevel=_user_stacklevel())
        if dropped:
            pywarnings.warn(f"{dropped} more warnings dropped", category=UserWarning, stacklevel=_user_stacklevel())
