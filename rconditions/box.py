# -*- coding: utf-8 -*-
"""A single-item container, for passing a `with` block's result out of the block."""

__all__ = ["box", "unbox"]

class box:
    """Minimalistic, mutable single-item container à la Racket.

    A `with` statement cannot return a value, so `with exiting_handlers(...) as
    result:` binds a box instead. The block sends its normal result into the
    box, and if an exiting handler takes over, its return value replaces the
    contents::

        with exiting_handlers(error=lambda c: "recovered") as result:
            result << compute()
        print(unbox(result))

    If you like OOP, you can `b.set(23)` instead of `b << 23`, and `b.get()`
    instead of `unbox(b)`.
    """
    def __init__(self, x=None):
        self.x = x
    def __repr__(self):  # pragma: no cover
        return f"box({repr(self.x)})"
    def __eq__(self, other):
        return other == self.x
    def set(self, x):
        """Store a new value in the box, replacing the old one.

        As a convenience, returns the new value.
        """
        self.x = x
        return x
    def __lshift__(self, x):
        """Syntactic sugar for storing a new value.

        `b << 42` is the same as `b.set(42)`.
        """
        return self.set(x)
    def get(self):
        """Return the value currently in the box.

        The syntactic sugar for `b.get()` is `unbox(b)`.
        """
        return self.x

def unbox(b):
    """Return the value from inside the box b.

    Syntactic sugar for `b.get()`.

    If `b` is not a `box`, raises `TypeError`.
    """
    if not isinstance(b, box):
        raise TypeError(f"Expected box, got {type(b)} with value {repr(b)}")
    return b.get()
