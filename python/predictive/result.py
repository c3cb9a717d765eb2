"""
predictive Result Classes
=========================

Data classes for solver results, controller results and return codes.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

import numpy as np


class Status(Enum):
    """
    Solver return codes.

    Positive values are successful terminations, negative values are
    failures. The controllers report ``FAILURE`` whenever they had to fall
    back to the previous command.

    Attributes:
        SUCCESS: Generic success
        STOPVAL_REACHED: Objective reached the requested stop value
        FTOL_REACHED: Relative function tolerance reached
        XTOL_REACHED: Relative variable tolerance reached
        MAXEVAL_REACHED: Evaluation budget exhausted
        FAILURE: Generic failure, no usable solution
        INVALID_ARGS: Problem data rejected by the solver
        ROUNDOFF_LIMITED: Progress halted by roundoff errors
        INFEASIBLE: No feasible point found
    """
    SUCCESS = 1
    STOPVAL_REACHED = 2
    FTOL_REACHED = 3
    XTOL_REACHED = 4
    MAXEVAL_REACHED = 5
    FAILURE = -1
    INVALID_ARGS = -2
    ROUNDOFF_LIMITED = -4
    INFEASIBLE = -6

    def __str__(self) -> str:
        return self.name.lower()

    def __int__(self) -> int:
        return self.value

    @property
    def is_successful(self) -> bool:
        """True if the solver terminated with a usable solution."""
        return self.value > 0


@dataclass
class SolveResult:
    """
    Raw result of one call to a solver backend.

    Attributes:
        status: Solver return code
        objective: Objective value at ``x``
        x: Solution vector
        iterations: Number of iterations (or evaluations) performed
        solve_time: Wall clock time in seconds
    """

    status: Status
    objective: float
    x: np.ndarray
    iterations: int = 0
    solve_time: float = 0.0
    info: Dict[str, Any] = field(default_factory=dict)

    def __repr__(self) -> str:
        return (
            f"SolveResult(status={self.status}, "
            f"objective={self.objective:.6g}, "
            f"iterations={self.iterations}, "
            f"time={self.solve_time:.4f}s)"
        )


@dataclass
class Result:
    """
    Outcome of one control cycle.

    Attributes:
        cmd: First-step control command (nu,)
        cost: Optimal cost value
        retcode: Solver return code, negative on failure

    Example:
        >>> result = optimizer.run(x0, u0)
        >>> if result.retcode > 0:
        ...     apply(result.cmd)
    """

    cmd: np.ndarray
    cost: float = float("nan")
    retcode: int = 0

    @property
    def status(self) -> Status:
        """Return code as a :class:`Status`, ``FAILURE`` for unknown codes."""
        try:
            return Status(self.retcode)
        except ValueError:
            return Status.FAILURE

    @property
    def is_successful(self) -> bool:
        """Whether the command comes from a successful solve."""
        return self.retcode > 0

    def copy(self) -> "Result":
        return Result(cmd=np.array(self.cmd, copy=True), cost=self.cost, retcode=self.retcode)

    def __repr__(self) -> str:
        return (
            f"Result(cmd={np.array2string(np.asarray(self.cmd), precision=4)}, "
            f"cost={self.cost:.6g}, retcode={self.retcode})"
        )
