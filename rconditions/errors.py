# -*- coding: utf-8 -*-
"""Python exceptions raised by the condition runtime."""

__all__ = ["UnhandledError", "ControlError"]

from .channel import describe

class ControlError(Exception):
    """An error detected by the condition runtime itself.

    Known in Common Lisp as `CONTROL-ERROR`. Raised e.g. when trying to invoke
    a restart that is not in scope, or to muffle a condition that is not
    currently being signaled as a warning or a message.
    """

class UnhandledError(Exception):
    """An error condition was signaled, and no exiting handler took it.

    This aborts the current unit of work. The condition is available as the
    `condition` attribute. The message is the condition described the way
    R reports errors::

        Error in f() : something went wrong
    """
    def __init__(self, condition):
        super().__init__(describe(condition, "Error"))
        self.condition = condition
