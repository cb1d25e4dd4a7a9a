# -*- coding: utf-8 -*-
"""Testing tools: test sessions and testsets.

The tests of `rconditions` are plain functions that `assert`. They can be run
by any test runner that collects `test_*` functions, or by `runtests.py`, which
uses the tools here to run them in a session, grouped into testsets, with a
summary of passes, fails and errors::

    from rconditions.test.fixtures import session, testset, test, collect

    def runtests():
        with testset("my feature"):
            for testfunc in collect(globals()):
                with test(testfunc.__name__):
                    testfunc()

    if __name__ == '__main__':
        with session(__file__):
            runtests()

A `test` block counts as failed if it raises `AssertionError`, and as errored
if it raises anything else. Either way, execution resumes after the block.

A `testset` observes, with a calling handler, any warnings signaled inside it
that reach it unmuffled, and tallies them. With nested testsets, a warning is
counted once, by the innermost one. It does not muffle them, so the
default behavior of warnings is not affected by running inside a testset.
"""

__all__ = ["session", "testset", "test", "test_raises", "collect",
           "TestConfig", "summarize", "describe_exception",
           "tests_run", "tests_failed", "tests_errored", "tests_warned"]

from contextlib import contextmanager
from functools import partial
from threading import Lock
from traceback import format_exception
import inspect
import sys

from ..box import box, unbox
from ..conditions import calling_handlers

# Global counts (since Python last started), so that the client code can easily
# calculate the percentage of tests passed.
tests_run = box(0)
tests_failed = box(0)
tests_errored = box(0)
tests_warned = box(0)

_counter_update_lock = Lock()
def _update(counter, delta):
    with _counter_update_lock:
        counter << unbox(counter) + delta

class TestConfig:
    """Global settings for the testing utilities.

    This is just a bunch of constants.

    `printer`:          str -> None; side effect should be to display the string in some
                        appropriate way. Default is to `print` to `sys.stderr`.
    `indent_per_level`: How many characters to indent per nesting level of `testset`.
    `show_traceback`:   Whether to show the traceback of errored tests.
    """
    printer = partial(print, file=sys.stderr)
    indent_per_level = 2
    show_traceback = True

def describe_exception(exc):
    """Return a human-readable (possibly multi-line) description of exception `exc`.

    With `TestConfig.show_traceback`, as Python itself formats uncaught
    exceptions, including chained ones. Otherwise just the last line.
    """
    lines = format_exception(type(exc), exc, exc.__traceback__)
    if not TestConfig.show_traceback:
        lines = lines[-1:]
    return "".join(lines).rstrip()

def summarize(runs, fails, errors, warns):
    """Return a human-readable summary.

    How many tests ran, passed, failed, errored, or warned.
    """
    assert isinstance(runs, int) and runs >= 0
    assert isinstance(fails, int) and fails >= 0
    assert isinstance(errors, int) and errors >= 0
    assert isinstance(warns, int) and warns >= 0

    passes = runs - fails - errors
    pass_percentage = int(100 * passes / runs) if runs else 100
    summary = f"Pass {passes}, Fail {fails}, Error {errors}, Total {runs} ({pass_percentage}% pass)"
    if warns > 0:
        summary += f" + {warns} Warn"
    return summary

def collect(namespace, prefix="test_"):
    """Return the test functions in `namespace` (e.g. `globals()`), in definition order.

    Test functions are functions named `prefix...`, taking no arguments.
    """
    return [f for name, f in namespace.items()
            if name.startswith(prefix) and inspect.isfunction(f) and
            not inspect.signature(f).parameters]

_nesting_level = 0
def _indent(level):
    indent = "*" * (TestConfig.indent_per_level * level)
    if indent:
        indent += " "
    return indent

@contextmanager
def test(name):
    """Run the block as one test, named `name`.

    A raised `AssertionError` fails the test, any other exception errors it.
    Either way, the exception does not propagate.
    """
    _update(tests_run, +1)
    try:
        yield
    except AssertionError as err:
        _update(tests_failed, +1)
        TestConfig.printer(f"{_indent(_nesting_level)}FAIL: {name}: {describe_exception(err)}")
    except Exception as err:
        _update(tests_errored, +1)
        TestConfig.printer(f"{_indent(_nesting_level)}ERROR: {name}: {describe_exception(err)}")

@contextmanager
def test_raises(exctype, message=None):
    """Assert that the block raises `exctype` (a type, or a tuple of types).

    Usage::

        with test_raises(ControlError, "should not be able to muffle an error") as caught:
            ...
        assert "muffled" in str(unbox(caught))

    The `with` binds a box, which receives the exception. If the block
    completes normally, `AssertionError` is raised, which fails the enclosing
    `test`. Exceptions of other types propagate as usual.
    """
    b = box(None)
    try:
        yield b
    except exctype as err:
        b << err
        return
    if message is None:
        name = (exctype.__name__ if isinstance(exctype, type) else
                " or ".join(t.__name__ for t in exctype))
        message = f"Expected the block to raise {name}"
    raise AssertionError(message)

@contextmanager
def testset(name=None):
    """Context manager representing a test set.

    Prints a summary of the passes, fails, errors and warnings of the tests
    that ran inside it. Can be nested.

    An exception that escapes the testset (i.e. raised outside any `test`) is
    counted as an error, and does not propagate.
    """
    global _nesting_level
    def counters():
        return tuple(unbox(b) for b in (tests_run, tests_failed, tests_errored, tests_warned))
    r1, f1, e1, w1 = counters()

    title = f"{_indent(_nesting_level)}Testset"
    if name is not None:
        title += f" '{name}'"
    TestConfig.printer(f"{title} BEGIN")
    _nesting_level += 1

    level = _nesting_level
    def tally_warning(condition):
        if level == _nesting_level:  # only the innermost testset counts it
            _update(tests_warned, +1)
        # and return normally, leaving it alone

    try:
        with calling_handlers(warning=tally_warning):
            yield
    except Exception as err:
        _update(tests_run, +1)
        _update(tests_errored, +1)
        TestConfig.printer(f"{_indent(_nesting_level)}Testset terminated by exception outside test: "
                           f"{describe_exception(err)}")
    finally:
        _nesting_level -= 1

    r2, f2, e2, w2 = counters()
    TestConfig.printer(f"{title} END: {summarize(r2 - r1, f2 - f1, e2 - e1, w2 - w1)}")

@contextmanager
def session(name=None):
    """Context manager representing a test session: a top-level testset."""
    if _nesting_level > 0:
        raise RuntimeError("A test `session` cannot be nested inside a `testset`.")
    title = "SESSION" if name is None else f"SESSION '{name}'"
    TestConfig.printer(f"{title} BEGIN")
    with testset("top level"):
        yield
    TestConfig.printer(f"{title} END")
