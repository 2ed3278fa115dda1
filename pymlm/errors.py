"""
Exceptions raised by pymlm.

All errors are local computation failures on in-memory inputs.
"""


class PyMLMError(ValueError):
    """Base class for pymlm errors."""


class SingularDesignError(PyMLMError):
    """Design matrix is not full column rank (X'X is not invertible)."""

    def __init__(self, rank: int, n_coef: int, aliased=None):
        self.rank = rank
        self.n_coef = n_coef
        self.aliased = list(aliased) if aliased is not None else []
        msg = f"Singular design: rank {rank} < {n_coef} columns"
        if self.aliased:
            msg += f" (aliased: {', '.join(map(str, self.aliased))})"
        super().__init__(msg)


class InvalidResponseError(PyMLMError):
    """One or more response columns contain NaN or Inf."""

    def __init__(self, columns):
        self.columns = list(columns)
        shown = ', '.join(map(str, self.columns[:10]))
        if len(self.columns) > 10:
            shown += f", ... ({len(self.columns) - 10} more)"
        super().__init__(
            f"{len(self.columns)} response column(s) contain NaN or Inf: {shown}"
        )


class DimensionMismatchError(PyMLMError):
    """Inputs that must agree in shape do not."""


class ShrinkageError(PyMLMError):
    """Empirical Bayes shrinkage cannot be computed."""


__all__ = [
    "PyMLMError",
    "SingularDesignError",
    "InvalidResponseError",
    "DimensionMismatchError",
    "ShrinkageError",
]
