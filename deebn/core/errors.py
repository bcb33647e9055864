"""Exceptions raised by the deebn models."""


class DeebnError(Exception):
    """Base class of every deebn exception."""


class InvalidDimension(DeebnError, ValueError):
    """A layer, visible or hidden size is not a positive integer,
    or two sizes that must agree do not."""


class ShapeMismatch(DeebnError, ValueError):
    """The column count of a dataset does not fit the model it is fed to."""

    def __init__(self, expected, got, what='dataset'):
        self.expected = expected
        self.got = got
        super(ShapeMismatch, self).__init__(
            '{} has {} columns, expected {}'.format(what, got, expected))


class NumericInstability(DeebnError, ArithmeticError):
    """A computation produced NaN or infinite values."""
