"""
Copyright © 2023 Howard Hughes Medical Institute, Authored by Carsen Stringer and Marius Pachitariu.
"""


class AlignmentError(Exception):
    """Base class for errors raised while computing a stack alignment."""


class ConfigurationError(AlignmentError, ValueError):
    """Options that cannot be used together, or an option with an invalid value."""


class SizeMismatchError(AlignmentError, ValueError):
    """An image or array does not match the frame size of the stack."""


class BoundsError(AlignmentError, IndexError):
    """A trial range or averaging window refers to frames outside the stack."""
