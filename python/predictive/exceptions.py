"""
predictive Exception Classes
============================

Custom exceptions for predictive error handling.

Configuration and usage errors (``DimensionError``, ``InvalidInputError``,
``NotInitializedError``, ``UnavailableFeatureError``) surface immediately.
Solver-side errors (``BindError``, ``SolverError``, ``InfeasibleError``)
are raised by the solver backends and handled by the optimizers.
"""

from typing import Optional


class PredictiveError(Exception):
    """Base exception for all predictive errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class DimensionError(PredictiveError):
    """
    Raised when matrix/vector dimensions are incompatible with the
    dimensions the controller was initialized with.
    """

    def __init__(self, message: str) -> None:
        super().__init__(f"Dimension mismatch: {message}")


class InvalidInputError(PredictiveError):
    """
    Raised when input data is invalid.

    Examples: zero scaling factors, control horizon longer than the
    prediction horizon, NaN values.
    """

    def __init__(self, message: str) -> None:
        super().__init__(f"Invalid input: {message}")


class NotInitializedError(PredictiveError):
    """Raised when a component is used before ``initialize`` was called."""

    def __init__(self, component: str) -> None:
        super().__init__(f"{component} used before initialization")


class UnavailableFeatureError(PredictiveError):
    """
    Raised when an operation is not supported by the front-end it was
    called on (e.g. continuous-time models on the linear MPC).
    """


class BindError(PredictiveError):
    """Raised by a solver backend that rejects a callback registration."""


class SolverError(PredictiveError):
    """
    Raised when the solver stops without a usable solution.

    Attributes:
        code: Solver return code, if one is available
    """

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        self.code = code
        super().__init__(message)


class InfeasibleError(SolverError):
    """
    Raised when the problem is infeasible.

    This means no point satisfies all the constraints within tolerance.
    """

    def __init__(
        self,
        message: str = "Problem is infeasible",
        code: Optional[int] = None,
    ) -> None:
        super().__init__(message, code)
