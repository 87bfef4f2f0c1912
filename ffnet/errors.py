"""
errors.py
~~~~~~~~~

Exception types raised by the network engine.

Every failure in the numerical core is fatal for the call that triggered
it: nothing is retried and no default value is substituted.
"""


class FFNetError(Exception):
    """Base class for all errors raised by this package."""


class ShapeMismatchError(FFNetError, ValueError):
    """Operand dimensions disagree in an arithmetic or layer operation."""


class IndexOutOfRangeError(FFNetError, IndexError):
    """An element was addressed outside the container's bounds."""


class ModelFormatError(FFNetError, ValueError):
    """Serialized network or dataset text could not be parsed or validated."""


class ModelIOError(FFNetError, OSError):
    """A model or dataset file could not be created, read or written."""
