# -*- coding: utf-8 -*-
"""Restarts: named recovery points, invoked by name from condition handlers.

A restart is established by a scope (`with restarts(...)`), and invoked from
anywhere in the dynamic extent of that scope, typically from a calling handler
further out on the call stack::

    def lowlevel(x):
        with restarts(use_value=(lambda v: v)) as result:
            if x < 0:
                stop(error_cnd("negative", f"got {x}", value=x))
            result << x
        return unbox(result)

    def highlevel():
        with calling_handlers(negative=lambda c: invoke_restart("use_value", -c.value)):
            return [lowlevel(x) for x in (1, -2, 3)]   # [1, 2, 3]

Invoking a restart unwinds the call stack up to the scope that established
it, runs the restart function there, and sends its return value into the box
bound by the `with`. Execution then resumes after that `with` block.

The low level decides *how* to recover; the high level decides *which*
recovery to use. This is how `muffle` works, too: signaling a warning or a
message establishes a restart named `"muffle"`, associated with that
particular condition.
"""

__all__ = ["Restart", "restarts", "with_restarts",
           "invoke_restart", "find_restart", "compute_restarts",
           "invoker"]

from collections import namedtuple
from contextlib import contextmanager
from contextvars import ContextVar

from .box import box, unbox
from .errors import ControlError

Restart = namedtuple("Restart", ["name", "function", "scope"])
Restart.__doc__ = """A restart currently in scope, as returned by `find_restart`.

`name`: str
`function`: the restart function.
`scope`: opaque; identifies the `with restarts` block that established it.
"""

class _RestartScope:
    __slots__ = ("bindings", "condition", "parent")
    def __init__(self, bindings, condition, parent):
        self.bindings = bindings
        self.condition = condition  # restarts associated with a condition are only visible to it
        self.parent = parent

_innermost = ContextVar("rconditions_restarts", default=None)

def _scopes():
    scope = _innermost.get()
    while scope is not None:
        yield scope
        scope = scope.parent

class _InvokeRestart(BaseException):
    # A `BaseException`, so that an `except Exception` between the invoker and the
    # target scope does not intercept the transfer of control.
    def __init__(self, restart, args, kwargs):
        self.restart, self.a, self.kw = restart, args, kwargs
        # message when uncaught
        self.args = ("rconditions.restarts: internal error: uncaught _InvokeRestart",)

@contextmanager
def _establish(bindings, condition=None):
    for name, function in bindings.items():
        if not (isinstance(name, str) and callable(function)):
            raise TypeError("Each binding must be of the form name=callable")
    scope = _RestartScope(bindings, condition, _innermost.get())
    b = box(None)
    invoked = None
    token = _innermost.set(scope)
    try:
        yield b
    except _InvokeRestart as exc:
        if exc.restart.scope is not scope:
            raise  # not ours; unwind this level, propagate outwards
        invoked = exc
    finally:
        _innermost.reset(token)
    # The restart function runs after the unwinding, in the context of the `with`.
    if invoked is not None:
        b << invoked.restart.function(*invoked.a, **invoked.kw)

def restarts(**bindings):
    """Establish restarts. Known as `withRestarts` in R, `RESTART-CASE` in Common Lisp.

    Usage::

        with restarts(use_value=(lambda x: x), skip=(lambda: None)) as result:
            ...
            result << normal_value

    Binds a `box` to hold the result of the block. If a restart established
    here is invoked, the box gets the return value of the restart function,
    and execution continues after the block.

    A restart can take any args and kwargs; its call signature depends only on
    how it is intended to be invoked.
    """
    return _establish(bindings)

def with_restarts(**bindings):
    """Alternate syntax. Use restarts with a `def` instead of a `with`.

    Parametric decorator. Returns a `call_with_restarts` function that calls its
    argument (a thunk) with the restarts specified here, and returns either the
    thunk's return value, or the return value of the invoked restart::

        @with_restarts(use_value=(lambda x: x))
        def result():
            ...
            return 42
        # now `result` is either 42 or the return value of a restart
    """
    def call_with_restarts(f):
        with _establish(bindings) as result:
            result << f()
        return unbox(result)
    return call_with_restarts

def find_restart(name, condition=None):
    """Look up a restart by name. Known as `findRestart` in R.

    The most recently established (dynamically innermost) matching restart
    wins. Restarts associated with some other condition than `condition`
    (such as the `"muffle"` restart of a warning being signaled) are skipped.

    Return a `Restart`, or `None` if there is no such restart in scope.
    """
    for scope in _scopes():
        if scope.condition is not None and scope.condition is not condition:
            continue
        if name in scope.bindings:
            return Restart(name, scope.bindings[name], scope)
    return None

def compute_restarts(condition=None):
    """Return a list of all restarts in scope, innermost first. Known as `computeRestarts` in R.

    Shadowed restarts are included, too. Association with conditions is
    respected as in `find_restart`.
    """
    return [Restart(name, function, scope)
            for scope in _scopes()
            if scope.condition is None or scope.condition is condition
            for name, function in scope.bindings.items()]

def invoke_restart(name_or_restart, *args, **kwargs):
    """Invoke a restart currently in scope. Known as `invokeRestart` in R.

    `name_or_restart` is a restart name, or a `Restart` returned by `find_restart`.

    The args and kwargs are passed through to the restart function.

    This function never returns normally; the call stack unwinds up to the
    `with restarts` block that established the restart.

    Raises `ControlError` if there is no such restart in scope.
    """
    if isinstance(name_or_restart, str):
        restart = find_restart(name_or_restart)
        if restart is None:
            available = sorted({r.name for r in compute_restarts()})
            raise ControlError(f"No restart {repr(name_or_restart)} in scope; available restarts: {available}")
    elif isinstance(name_or_restart, Restart):
        restart = name_or_restart
        if not any(scope is restart.scope for scope in _scopes()):
            raise ControlError(f"Restart {repr(restart.name)} is no longer in scope")
    else:
        raise TypeError(f"Expected str or a Restart, got {type(name_or_restart)} with value {repr(name_or_restart)}")
    raise _InvokeRestart(restart, args, kwargs)

def invoker(name, *args, **kwargs):
    """Create a handler that just invokes the named restart.

    The args and kwargs are frozen into the handler by closure, and passed
    to the restart when the handler fires. The handler ignores the condition::

        with calling_handlers(negative=invoker("use_value", 0)):
            ...
    """
    def the_invoker(condition):
        invoke_restart(name, *args, **kwargs)
    the_invoker.__name__ = name
    the_invoker.__qualname__ = name
    the_invoker.__doc__ = f"Invoke the {repr(name)} restart."
    return the_invoker
