# -*- coding: utf-8 -*-
"""Condition objects: the things that get signaled.

A condition is an immutable record. Its `kind` is one of the three base kinds
of R's condition system (error, warning, message), and its `classes` is an
ordered tuple of string tags, most specific first, always ending with the
base tag of its kind. Handlers are matched against these tags, so a custom
condition "subclasses" a base kind just by listing more specific tags in
front::

    cnd = error_cnd("error_bad_argument", "`x` must be numeric",
                    arg="x", must="numeric", not_="character")
    cnd.classes  # ("error_bad_argument", "error")
    cnd.arg      # "x"

There are no real inheritance hierarchies here; matching is a linear scan
over the tags.
"""

__all__ = ["Kind", "Condition",
           "condition", "error_cnd", "warning_cnd", "message_cnd",
           "simple_error", "simple_warning", "simple_message",
           "from_exception", "ANY_CONDITION"]

from enum import Enum
from types import MappingProxyType

class Kind(Enum):
    """The closed set of base condition kinds. The value is the base tag."""
    ERROR = "error"
    WARNING = "warning"
    MESSAGE = "message"

_base_tags = frozenset(k.value for k in Kind)

# Every condition implicitly inherits this tag, after its base tag.
# Binding a handler to it catches any condition (R's `condition = function(c) ...`).
ANY_CONDITION = "condition"

class Condition:
    """An immutable signal describing an error, warning or message.

    Do not instantiate directly; use `condition` or one of its sisters, which
    validate and normalize the class tags.

    Attributes:

        `kind`: `Kind`
        `classes`: tuple of str, most specific first, base tag last
        `text`: str, the human-readable description
        `origin`: optional description of the call that produced the condition.
                  Informational only.
        `fields`: read-only mapping, the condition-specific payload.
                  Fields are also accessible as attributes, if they don't
                  collide with the names above.
    """
    __slots__ = ("kind", "classes", "text", "origin", "fields")

    def __init__(self, kind, classes, text, origin, fields):
        for name, value in (("kind", kind), ("classes", classes), ("text", text),
                            ("origin", origin), ("fields", MappingProxyType(dict(fields)))):
            object.__setattr__(self, name, value)

    def __setattr__(self, name, value):
        raise AttributeError(f"Condition is immutable; cannot set {repr(name)}")
    def __delattr__(self, name):
        raise AttributeError(f"Condition is immutable; cannot delete {repr(name)}")

    def __reduce__(self):  # copy, deepcopy and pickle bypass __init__ otherwise
        return (Condition, (self.kind, self.classes, self.text, self.origin, dict(self.fields)))

    def __getattr__(self, name):  # only called when normal lookup fails
        try:
            return object.__getattribute__(self, "fields")[name]
        except KeyError:
            raise AttributeError(f"Condition has no field {repr(name)}") from None

    def inherits(self, tag):
        """Return whether this condition carries the class tag `tag`."""
        return tag == ANY_CONDITION or tag in self.classes

    @property
    def tags(self):
        """The tags handlers are matched against, in match order.

        This is `classes`, followed by the implicit `ANY_CONDITION` tag.
        """
        return self.classes + (ANY_CONDITION,)

    def __str__(self):
        return self.text

    def __repr__(self):
        fields = "".join(f", {k}={repr(v)}" for k, v in self.fields.items())
        origin = f", origin={repr(self.origin)}" if self.origin is not None else ""
        return f"<Condition {self.kind.value} {list(self.classes)}: {repr(self.text)}{origin}{fields}>"

def _canonize_classes(kind, classes):
    if isinstance(classes, str):
        classes = (classes,)
    out = []
    for tag in classes:
        if not isinstance(tag, str) or not tag:
            raise TypeError(f"Condition class tags must be non-empty strings; got {type(tag)} with value {repr(tag)}")
        if tag == ANY_CONDITION:
            raise ValueError(f"{repr(ANY_CONDITION)} is implicit, and cannot be listed as a condition class")
        if tag in _base_tags and tag != kind.value:
            raise ValueError(f"A {kind.value} condition cannot carry the base tag {repr(tag)}")
        if tag not in out:
            out.append(tag)
    # The base tag always goes last, even if listed earlier.
    if kind.value in out:
        out.remove(kind.value)
    out.append(kind.value)
    return tuple(out)

def condition(kind, text, classes=(), origin=None, **fields):
    """Create a condition of the given `kind`.

    `kind`: a `Kind`, or its base tag as a string (e.g. `"warning"`).
    `text`: the human-readable description. Converted with `str`.
    `classes`: str, or sequence of str. Custom class tags, most specific first.
               The base tag of `kind` is appended automatically if missing.
    `origin`: optional description of the producing call.
    `**fields`: the payload.

    Raises `ValueError` if `classes` contains the base tag of another kind.
    """
    if not isinstance(kind, Kind):
        try:
            kind = Kind(kind)
        except ValueError:
            raise ValueError(f"Unknown condition kind {repr(kind)}; expected one of {sorted(_base_tags)}") from None
    return Condition(kind, _canonize_classes(kind, classes), str(text), origin, fields)

def error_cnd(cls, text, origin=None, **fields):
    """Create an error condition whose most specific class is `cls` (str or sequence of str)."""
    return condition(Kind.ERROR, text, cls, origin, **fields)

def warning_cnd(cls, text, origin=None, **fields):
    """Create a warning condition whose most specific class is `cls` (str or sequence of str)."""
    return condition(Kind.WARNING, text, cls, origin, **fields)

def message_cnd(cls, text, origin=None, **fields):
    """Create a message condition whose most specific class is `cls` (str or sequence of str)."""
    return condition(Kind.MESSAGE, text, cls, origin, **fields)

# What `stop`, `warning` and `message` create when given just text.
def simple_error(text, origin=None):
    return condition(Kind.ERROR, text, "simpleError", origin)

def simple_warning(text, origin=None):
    return condition(Kind.WARNING, text, "simpleWarning", origin)

def simple_message(text, origin=None):
    return condition(Kind.MESSAGE, text, "simpleMessage", origin)

def from_exception(exc, origin=None):
    """Adopt a native Python exception as an error condition.

    The classes are the names of the exception's type and its bases, most
    specific first, up to but not including `BaseException`, followed by
    `"python_error"` and `"error"`. So a `ZeroDivisionError` can be handled
    as `"ZeroDivisionError"`, `"ArithmeticError"`, `"Exception"`,
    `"python_error"` or `"error"`.

    The exception instance is stored in the field `exception`.
    """
    if not isinstance(exc, BaseException):
        raise TypeError(f"Expected an exception instance, got {type(exc)} with value {repr(exc)}")
    names = [t.__name__ for t in type(exc).__mro__ if t not in (BaseException, object)]
    names = [name for name in names if name not in _base_tags and name != ANY_CONDITION]  # e.g. `re.error`
    text = str(exc) or type(exc).__name__
    return condition(Kind.ERROR, text, names + ["python_error"], origin, exception=exc)
