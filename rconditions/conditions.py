# -*- coding: utf-8 -*-
"""R's condition system for Python: signaling and handling errors, warnings and messages.

A condition is signaled with `signal`, or with one of the protocols built on
top of it: `stop` (error), `warning` and `message`. Signaling searches the
dynamically enclosing handler scopes, innermost first, for a handler bound to
one of the condition's class tags.

There are two handler disciplines:

  - **Exiting** handlers, `with exiting_handlers(...)` (known as `tryCatch` in R).
    When one matches, the code between the handler scope and the signal site
    is abandoned, and the handler's return value becomes the result of the
    whole scope. Execution resumes after the scope. This is `try`/`except`.

  - **Calling** handlers, `with calling_handlers(...)` (known as
    `withCallingHandlers` in R). The handler is called right there at the
    signal site, and when it returns, the search continues outward, and
    finally the signaling code resumes from just after the `signal`. A calling
    handler can `muffle` a warning or a message to stop the search and
    suppress the default behavior.

If no handler takes a condition, the default behavior depends on its kind:

  - Error: abort the current unit of work (`UnhandledError` is raised).
  - Warning: deferred; reported at the end of the unit of work (see `rconditions.unit`).
  - Message: reported immediately to the observation channel.

Example::

    def parse(s):
        if not s.isdigit():
            stop(error_cnd("error_bad_argument", f"`s` must be digits, not {repr(s)}", arg="s"))
        if s.startswith("0"):
            warning("leading zeros in ", repr(s))
        return int(s)

    with exiting_handlers(error_bad_argument=lambda c: -1) as result:
        with calling_handlers(warning=lambda c: muffle(c)):
            result << parse("042")      # 42, warning muffled
    print(unbox(result))

Native Python exceptions that escape the body of a handler scope are adopted
as error conditions (see `rconditions.condition.from_exception`) and signaled
from that scope, so `error` handlers catch them too.

**Notes**

Within one scope, the most specific class tag of the condition wins, no matter
in which order the handlers were bound. Across scopes, the innermost scope wins.

The handler stack is kept in a `contextvars.ContextVar`, so each thread and
each asyncio task has its own stack.
"""

__all__ = ["Discipline", "Outcome", "HandlerFrame",
           "signal", "stop", "warning", "message",
           "calling_handlers", "with_calling_handlers",
           "exiting_handlers", "try_catch",
           "try_", "TryError",
           "muffle", "muffle_warning", "muffle_message",
           "suppress_warnings", "suppress_messages",
           "available_handlers"]

from contextlib import contextmanager
from contextvars import ContextVar
from enum import Enum
from types import MappingProxyType
import sys

from .box import box, unbox
from .condition import (Condition, Kind, simple_error, simple_warning, simple_message,
                        condition as make_condition, from_exception)
from .config import Config
from .errors import ControlError, UnhandledError
from .restarts import _establish, _scopes, invoke_restart, Restart
from .unit import current_channel, defer_warning

class Discipline(Enum):
    """How control flows when a handler of a frame matches."""
    EXITING = "exiting"
    CALLING = "calling"

class Outcome(Enum):
    """What `signal` did, when it returns normally."""
    MUFFLED = "muffled"      # a calling handler muffled the condition
    DEFAULTED = "defaulted"  # no handler took it; the default behavior was applied

class HandlerFrame:
    """One handler scope on the handler stack.

    `bindings`: read-only mapping of class tag -> handler
    `discipline`: `Discipline`
    `parent`: the enclosing frame; `None` only for the root frame.

    Frames are immutable. The chain of parents forms the stack.
    """
    __slots__ = ("bindings", "discipline", "parent")
    def __init__(self, bindings, discipline, parent):
        self.bindings = MappingProxyType(dict(bindings))
        self.discipline = discipline
        self.parent = parent

    def lookup(self, condition):
        """Return the handler of this frame for `condition`, or `None`.

        The condition's tags are tried in order, most specific first.
        """
        for tag in condition.tags:
            handler = self.bindings.get(tag)
            if handler is not None:
                return handler
        return None

    def __repr__(self):  # pragma: no cover
        return f"<HandlerFrame {self.discipline.value} {list(self.bindings)}>"

# The top-level frame. Never popped.
_root = HandlerFrame({}, Discipline.CALLING, None)
_innermost = ContextVar("rconditions_handlers", default=_root)

def _frames():
    frame = _innermost.get()
    while frame is not None:
        yield frame
        frame = frame.parent

class _Installed:  # push on enter, pop on any exit
    def __init__(self, frame):
        self.frame = frame
    def __enter__(self):
        self.token = _innermost.set(self.frame)
        return self.frame
    def __exit__(self, exctype, excvalue, traceback):
        _innermost.reset(self.token)

def _collect(pairs, bindings):
    out = {}
    for item in list(pairs) + list(bindings.items()):
        try:
            tags, handler = item
        except (TypeError, ValueError):
            raise TypeError(f"Expected a (tag, handler) pair, got {type(item)} with value {repr(item)}") from None
        tags = tags if isinstance(tags, tuple) else (tags,)
        if not (tags and all(isinstance(t, str) and t for t in tags) and callable(handler)):
            raise TypeError("Each binding must be of the form tag=callable, (tag, callable) or ((tag0, ..., tagn), callable)")
        for t in tags:
            out.setdefault(t, handler)  # first binding of a tag wins
    return out

class _Unwind(BaseException):
    # Transfer of control to an exiting frame. A `BaseException`, so that
    # `except Exception` in the code being abandoned does not intercept it.
    def __init__(self, frame, handler, condition):
        self.frame, self.handler, self.condition = frame, handler, condition
        # message when uncaught
        self.args = ("rconditions.conditions: internal error: uncaught _Unwind",)

def _dispatch(condition):
    frame = _innermost.get()
    while frame is not None:
        handler = frame.lookup(condition)
        if handler is not None:
            if frame.discipline is Discipline.EXITING:
                raise _Unwind(frame, handler, condition)
            # A condition signaled by the handler itself is seen only by the outer frames.
            # So is a native exception the handler raises; it is adopted right here.
            token = _innermost.set(frame.parent)
            try:
                handler(condition)
            except Exception as exc:
                _adopt(exc)
                raise
            finally:
                _innermost.reset(token)
        frame = frame.parent

def _default(condition):
    if condition.kind is Kind.ERROR:
        cause = condition.fields.get("exception")
        if isinstance(cause, BaseException):
            raise UnhandledError(condition) from cause
        raise UnhandledError(condition)
    if condition.kind is Kind.WARNING:
        if Config.warn < 0:
            pass
        elif Config.warn == 0:
            defer_warning(condition)
        elif Config.warn == 1:
            current_channel().warnings([condition])
        else:
            signal(simple_error(f"(converted from warning) {condition.text}", condition.origin))
    else:
        current_channel().message(condition)
    return Outcome.DEFAULTED

def signal(condition):
    """Signal a condition.

    Walk the handler stack from the innermost frame outward. In each frame,
    the first of the condition's class tags (most specific first) that has a
    handler bound selects that handler:

      - In an exiting frame, control transfers to the frame's scope, and this
        function does not return.
      - In a calling frame, the handler is called with the condition, and then
        the search continues with the next frame out.

    If a calling handler muffles the condition (see `muffle`), the search stops,
    and `Outcome.MUFFLED` is returned. If the search runs out of frames, the
    default behavior for the condition's kind is applied, and `Outcome.DEFAULTED`
    is returned. For an error, the default behavior is to raise `UnhandledError`,
    so for an error, this function never returns normally.
    """
    if not isinstance(condition, Condition):
        raise TypeError(f"Expected a Condition, got {type(condition)} with value {repr(condition)}")
    if condition.kind is Kind.ERROR:
        _dispatch(condition)
        _default(condition)
    # The "muffle" restart is associated with this condition, so it can't be
    # found while handling any other condition.
    with _establish({"muffle": (lambda: Outcome.MUFFLED)}, condition) as outcome:
        _dispatch(condition)
        outcome << _default(condition)
    return unbox(outcome)

def _caller_origin(stacklevel):
    try:
        frame = sys._getframe(stacklevel)
    except ValueError:  # pragma: no cover, call stack not that deep
        return None
    name = frame.f_code.co_name
    if name.startswith("<"):  # <module>, <lambda>, <listcomp>, ...
        return None
    return f"{name}()"

def _make(kind, simple, args, call, classes, fields):
    if len(args) == 1 and isinstance(args[0], Condition):
        cnd = args[0]
        if classes or fields:
            raise TypeError("Cannot give classes or fields when signaling an existing Condition")
        if cnd.kind is not kind:
            raise TypeError(f"Expected a {kind.value} condition, got a {cnd.kind.value} condition")
        return cnd
    text = "".join(str(x) for x in args)
    if call is True:
        origin = _caller_origin(3)  # _caller_origin <- _make <- stop/warning/message <- caller
    elif call:
        origin = str(call)
    else:
        origin = None
    if classes or fields:
        return make_condition(kind, text, classes, origin, **fields)
    return simple(text, origin)

def stop(*args, call=True, classes=(), **fields):
    """Signal an error. Known as `stop` in R. Never returns normally.

    Either pass a single error `Condition`, or text pieces, which are joined
    into the condition's text (converting each with `str`).

    `call`: `True` to record the calling function as the origin of the
            condition, a string to use as the origin, or `False` for no origin.
    `classes`: custom class tags for the new condition, most specific first.
    `**fields`: the payload for the new condition.

    If no exiting handler takes the error, `UnhandledError` is raised.
    """
    signal(_make(Kind.ERROR, simple_error, args, call, classes, fields))
    raise AssertionError("unreachable: signal() returned from an error")  # pragma: no cover

def warning(*args, call=True, classes=(), **fields):
    """Signal a warning. Known as `warning` in R. Return the `Outcome`.

    Arguments as in `stop`. An unhandled warning is deferred to the end of the
    unit of work; see `Config.warn` for other options.
    """
    return signal(_make(Kind.WARNING, simple_warning, args, call, classes, fields))

def message(*args, call=False, classes=(), **fields):
    """Signal a message. Known as `message` in R. Return the `Outcome`.

    Arguments as in `stop`, but `call` defaults to `False`. An unhandled
    message is reported immediately to the observation channel.
    """
    return signal(_make(Kind.MESSAGE, simple_message, args, call, classes, fields))

def muffle(condition):
    """Muffle `condition`. For use inside a calling handler.

    Stops the search for further handlers, and suppresses the default behavior.
    The signaling code resumes from just after its `signal` (or `warning`, or
    `message`), which returns `Outcome.MUFFLED`.

    Like invoking a restart, this exits the handler immediately; this function
    never returns normally.

    Only warnings and messages can be muffled. Raises `ControlError` if
    `condition` is an error, or is not being signaled right now.
    """
    if not isinstance(condition, Condition):
        raise TypeError(f"Expected a Condition, got {type(condition)} with value {repr(condition)}")
    for scope in _scopes():
        if scope.condition is condition and "muffle" in scope.bindings:
            invoke_restart(Restart("muffle", scope.bindings["muffle"], scope))
    if condition.kind is Kind.ERROR:
        raise ControlError(f"An error cannot be muffled; use an exiting handler to catch it: {condition.text}")
    raise ControlError(f"Cannot muffle a condition that is not being signaled: {condition.text}")

# Handler-ready aliases, like `muffleWarning` and `muffleMessage` in R.
muffle_warning = muffle
muffle_message = muffle

def _adopt(exc):
    # Signal a native exception, that escaped a handler scope, as an error condition.
    if isinstance(exc, UnhandledError):
        raise exc  # already went through the handler stack
    signal(from_exception(exc))

@contextmanager
def calling_handlers(*pairs, **bindings):
    """Set up calling handlers. Known as `withCallingHandlers` in R, `HANDLER-BIND` in Common Lisp.

    Usage::

        with calling_handlers(warning=log_it, my_class=other_handler):
            ...
        with calling_handlers(("my.dotted.class", handler), (("a", "b"), handler)):
            ...

    Each binding maps a condition class tag (or a tuple of tags) to a handler,
    which is called with the condition instance.

    A matching handler runs at the signal site. When it returns normally, the
    search continues with the next enclosing handler scope, and eventually the
    default behavior for the condition applies, unless some handler muffles
    the condition (see `muffle`) or transfers control elsewhere (an exiting
    handler further out, or a restart).

    While a handler runs, only the handler scopes outside this one are in effect.
    """
    frame = HandlerFrame(_collect(pairs, bindings), Discipline.CALLING, _innermost.get())
    with _Installed(frame):
        try:
            yield
        except Exception as exc:
            _adopt(exc)
            raise

def with_calling_handlers(thunk, *pairs, **bindings):
    """Call `thunk` with the given calling handlers in effect. Return its return value.

    See `calling_handlers`.
    """
    with calling_handlers(*pairs, **bindings):
        return thunk()

@contextmanager
def exiting_handlers(*pairs, finally_=None, **bindings):
    """Set up exiting handlers. Known as `tryCatch` in R, `HANDLER-CASE` in Common Lisp.

    Usage::

        with exiting_handlers(error=(lambda c: None), finally_=cleanup) as result:
            ...
            result << normal_value
        value = unbox(result)

    Bindings as in `calling_handlers`.

    The `with` binds a `box` to hold the result of the block. When a handler
    bound here matches a signaled condition, all code between this scope and
    the signal site is abandoned (`finally` blocks on the way run as usual),
    this scope is exited, and then the handler is called with the condition.
    Its return value goes into the box, and execution resumes after the block.

    `finally_`: optional thunk, run exactly once when the scope exits: after
                the block completes normally, after the handler ran, or while an
                error not handled here (or any exception) propagates outward.

    If you'd like to use a function instead of a `with`, see `try_catch`.
    """
    if finally_ is not None and not callable(finally_):
        raise TypeError(f"finally_ must be callable or None, got {type(finally_)} with value {repr(finally_)}")
    frame = HandlerFrame(_collect(pairs, bindings), Discipline.EXITING, _innermost.get())
    b = box(None)
    try:
        caught = None
        try:
            with _Installed(frame):
                try:
                    yield b
                except Exception as exc:
                    _adopt(exc)
                    raise
        except _Unwind as unwind:
            if unwind.frame is not frame:
                raise  # meant for a scope further out
            caught = unwind
        if caught is not None:
            b << caught.handler(caught.condition)
    finally:
        if finally_ is not None:
            finally_()

def try_catch(thunk, *pairs, finally_=None, **bindings):
    """Call `thunk` with the given exiting handlers in effect.

    Return the thunk's return value, or if a handler took over, the return
    value of the handler. See `exiting_handlers`.
    """
    with exiting_handlers(*pairs, finally_=finally_, **bindings) as result:
        result << thunk()
    return unbox(result)

class TryError:
    """What `try_` returns by default when it catches an error. Known as `try-error` in R.

    Falsy. The caught condition is available as the `condition` attribute.
    """
    __slots__ = ("condition",)
    def __init__(self, condition):
        self.condition = condition
    def __bool__(self):
        return False
    def __repr__(self):
        return f"TryError({repr(self.condition.text)})"

_nodefault = object()
def try_(thunk, default=_nodefault, silent=None, channel=None):
    """Call `thunk`; if it errors, report the error and return `default`. Known as `try` in R.

    "Log and continue": an exiting handler for all errors, which reports the
    error to the observation channel before discarding it.

    `default`: the value to return when an error was caught. If not given,
               a `TryError` wrapping the condition is returned.
    `silent`: if true, don't report the error. Default is `not Config.show_error_messages`.
    `channel`: where to report. Default is the channel currently in effect.

    Return the thunk's return value if it completed normally.
    """
    if silent is None:
        silent = not Config.show_error_messages
    def report(condition):
        if not silent:
            (channel if channel is not None else current_channel()).error(condition)
        return TryError(condition) if default is _nodefault else default
    return try_catch(thunk, error=report)

@contextmanager
def suppress_warnings(*classes):
    """Muffle warnings signaled in the block. Known as `suppressWarnings` in R.

    `classes`: warning class tags to suppress. Default: all warnings.
    Conditions of other kinds that happen to carry these tags are left alone.
    """
    def muffle_if_warning(condition):
        if condition.kind is Kind.WARNING:
            muffle(condition)
    with calling_handlers((tuple(classes) or ("warning",), muffle_if_warning)):
        yield

@contextmanager
def suppress_messages(*classes):
    """Muffle messages signaled in the block. Known as `suppressMessages` in R.

    `classes`: message class tags to suppress. Default: all messages.
    """
    def muffle_if_message(condition):
        if condition.kind is Kind.MESSAGE:
            muffle(condition)
    with calling_handlers((tuple(classes) or ("message",), muffle_if_message)):
        yield

def available_handlers():
    """Return the handlers currently in scope, innermost first.

    The format is `[(tag, discipline, handler), ...]`. Shadowing is respected:
    for each tag, only the innermost binding is listed.
    """
    out = []
    seen = set()
    for frame in _frames():
        for tag, handler in frame.bindings.items():
            if tag not in seen:
                seen.add(tag)
                out.append((tag, frame.discipline, handler))
    return out
