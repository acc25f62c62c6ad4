"""Exception types raised by SurfStack.

All three derive from the built-in exception a caller would otherwise expect
(``ValueError`` for bad arguments, ``RuntimeError`` for calls made out of
order), so ``except ValueError`` keeps working for generic callers.

Classes
-------
InvalidInputError
    Malformed construction arguments: empty palettes, mismatched array
    lengths, face lists whose length is not divisible by 3, non-positive
    vertex counts.
InvalidParameterError
    Numeric arguments outside their valid domain (``q``, ``alpha``, ``df``,
    ``p``).
MissingPrerequisiteError
    An operation invoked before a required setup step, e.g. cluster
    thresholding without mesh adjacency or FDR without p-values.
"""


class InvalidInputError(ValueError):
    """Raised for malformed construction arguments."""


class InvalidParameterError(ValueError):
    """Raised for numeric arguments outside their valid domain."""


class MissingPrerequisiteError(RuntimeError):
    """Raised when a required setup step has not been performed."""
