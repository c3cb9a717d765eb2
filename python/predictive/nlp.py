"""
predictive NLP Solver
=====================

Derivative-based local optimizer used by the nonlinear MPC.

``SLSQPSolver`` owns a fixed-size problem (bounds, tolerances, evaluation
budget, one objective and any number of vector-valued constraints) and runs
SciPy's SLSQP on it. Callbacks follow a flat, row-major convention:

* objective: ``f(x, grad) -> float``; ``grad`` is an ``(n,)`` buffer to
  fill in place, or an empty array when no gradient is needed;
* constraints: ``f(result, x, grad)``; ``result`` is an ``(m,)`` buffer and
  ``grad`` an ``(m, n)`` buffer (row ``i`` is the gradient of constraint
  ``i``) or ``None``. Inequalities follow ``c(x) <= 0``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional

import numpy as np
from scipy.optimize import minimize

from .exceptions import BindError, DimensionError, InfeasibleError, SolverError
from .logger import get_logger
from .result import Status
from .utils.validation import as_vector

logger = get_logger(__name__)

ObjectiveCallback = Callable[[np.ndarray, np.ndarray], float]
ConstraintCallback = Callable[[np.ndarray, np.ndarray, Optional[np.ndarray]], None]


class _StopSolve(Exception):
    """Internal early termination (evaluation budget, x tolerance)."""

    def __init__(self, status: Status) -> None:
        self.status = status
        super().__init__(str(status))


@dataclass
class _VectorConstraint:
    func: ConstraintCallback
    tol: np.ndarray

    @property
    def size(self) -> int:
        return len(self.tol)


class SLSQPSolver:
    """
    Sequential least-squares quadratic programming solver.

    Args:
        n: Number of decision variables

    Example:
        >>> opt = SLSQPSolver(2)
        >>> def f(x, grad):
        ...     if grad.size:
        ...         grad[:] = 2 * x
        ...     return float(x @ x)
        >>> opt.set_min_objective(f)
        >>> x = opt.optimize(np.array([1.0, -1.0]))
    """

    def __init__(self, n: int) -> None:
        if n <= 0:
            raise DimensionError(f"solver needs at least one variable, got {n}")
        self.n = int(n)
        self._lb = np.full(self.n, -np.inf)
        self._ub = np.full(self.n, np.inf)
        self._ftol_rel = 1e-10
        self._xtol_rel = 0.0
        self._maxeval = 0
        self.feasibility_tolerance = 1e-6

        self._objective: Optional[ObjectiveCallback] = None
        self._eq: List[_VectorConstraint] = []
        self._ineq: List[_VectorConstraint] = []

        self._numevals = 0
        self._last_value = float("nan")
        self._last_result = Status.FAILURE

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def set_lower_bounds(self, lb) -> None:
        self._lb = as_vector(lb, self.n, "lower bounds")

    def set_upper_bounds(self, ub) -> None:
        self._ub = as_vector(ub, self.n, "upper bounds")

    @property
    def lower_bounds(self) -> np.ndarray:
        return self._lb.copy()

    @property
    def upper_bounds(self) -> np.ndarray:
        return self._ub.copy()

    def set_ftol_rel(self, tol: float) -> None:
        self._ftol_rel = float(tol)

    def set_xtol_rel(self, tol: float) -> None:
        self._xtol_rel = float(tol)

    def set_maxeval(self, maxeval: int) -> None:
        """Evaluation budget; zero or negative means unlimited."""
        self._maxeval = int(maxeval)

    @property
    def ftol_rel(self) -> float:
        return self._ftol_rel

    @property
    def xtol_rel(self) -> float:
        return self._xtol_rel

    @property
    def maxeval(self) -> int:
        return self._maxeval

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def set_min_objective(self, func: ObjectiveCallback) -> None:
        if not callable(func):
            raise BindError("objective must be callable")
        self._objective = func

    def add_equality_mconstraint(self, func: ConstraintCallback, tol) -> None:
        constraint = self._make_constraint(func, tol)
        n_eq = sum(c.size for c in self._eq) + constraint.size
        if n_eq > self.n:
            raise BindError(f"too many equality constraints ({n_eq} > {self.n} variables)")
        self._eq.append(constraint)

    def add_inequality_mconstraint(self, func: ConstraintCallback, tol) -> None:
        self._ineq.append(self._make_constraint(func, tol))

    def remove_constraints(self) -> None:
        self._eq.clear()
        self._ineq.clear()

    @property
    def n_equality(self) -> int:
        return sum(c.size for c in self._eq)

    @property
    def n_inequality(self) -> int:
        return sum(c.size for c in self._ineq)

    @staticmethod
    def _make_constraint(func, tol) -> _VectorConstraint:
        if not callable(func):
            raise BindError("constraint must be callable")
        tol = np.atleast_1d(np.asarray(tol, dtype=np.float64)).ravel()
        if tol.size == 0:
            raise BindError("constraint tolerance vector is empty")
        if np.any(np.isnan(tol)) or np.any(tol < 0):
            raise BindError("constraint tolerances must be non-negative")
        return _VectorConstraint(func, tol.copy())

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    @property
    def num_evals(self) -> int:
        return self._numevals

    @property
    def last_optimum_value(self) -> float:
        return self._last_value

    @property
    def last_optimize_result(self) -> Status:
        return self._last_result

    # ------------------------------------------------------------------
    # Solve
    # ------------------------------------------------------------------

    def optimize(self, x0) -> np.ndarray:
        """
        Run the optimizer from ``x0``.

        Returns:
            Optimal decision vector

        Raises:
            InfeasibleError: if the constraints cannot be satisfied
            SolverError: on any other failure
        """
        if self._objective is None:
            raise SolverError("no objective function bound", int(Status.INVALID_ARGS))
        if np.any(self._lb > self._ub):
            raise SolverError("lower bounds exceed upper bounds", int(Status.INVALID_ARGS))

        x0 = np.clip(as_vector(x0, self.n, "initial guess"), self._lb, self._ub)
        self._numevals = 0
        self._last_value = float("nan")
        self._last_result = Status.FAILURE

        objective = self._objective
        iterate = {"x": x0.copy(), "prev": None}

        def fun(x):
            self._numevals += 1
            if self._maxeval > 0 and self._numevals > self._maxeval:
                raise _StopSolve(Status.MAXEVAL_REACHED)
            grad = np.zeros(self.n)
            value = float(objective(np.array(x), grad))
            return value, grad

        def callback(xk):
            prev = iterate["prev"]
            iterate["x"] = np.array(xk)
            iterate["prev"] = np.array(xk)
            if self._xtol_rel > 0 and prev is not None:
                if np.all(np.abs(xk - prev) <= self._xtol_rel * np.abs(xk)):
                    raise _StopSolve(Status.XTOL_REACHED)

        bounds = [
            (None if np.isinf(lo) else lo, None if np.isinf(hi) else hi)
            for lo, hi in zip(self._lb, self._ub)
        ]
        ftol = self._ftol_rel if self._ftol_rel > 0 else 1e-12
        maxiter = self._maxeval if self._maxeval > 0 else 1000

        stop = None
        try:
            res = minimize(fun, x0, method="SLSQP", jac=True, bounds=bounds,
                           constraints=self._scipy_constraints(), callback=callback,
                           options={"maxiter": maxiter, "ftol": ftol})
        except _StopSolve as e:
            stop = e.status
        except SolverError:
            raise
        except Exception as e:
            raise SolverError(f"SLSQP failed: {e}", int(Status.FAILURE)) from e

        if stop is not None:
            x = iterate["x"]
            logger.debug(f"SLSQP stopped early: {stop}")
            try:
                value = float(objective(np.array(x), np.zeros(0)))
            except Exception as e:
                raise SolverError(f"objective evaluation failed: {e}", int(Status.FAILURE)) from e
        else:
            if res.status == 4:
                raise InfeasibleError(f"SLSQP: {res.message}", int(Status.INFEASIBLE))
            if res.status == 8:
                raise SolverError(f"SLSQP: {res.message}", int(Status.ROUNDOFF_LIMITED))
            if res.status not in (0, 9):
                raise SolverError(f"SLSQP: {res.message}", int(Status.FAILURE))
            x = np.array(res.x)
            value = float(res.fun)
            stop = Status.FTOL_REACHED if res.status == 0 else Status.MAXEVAL_REACHED

        self._check_feasibility(x)
        self._last_value = value
        self._last_result = stop
        return x

    def _scipy_constraints(self) -> list:
        n = self.n
        constraints = []

        def value(c, x):
            result = np.zeros(c.size)
            c.func(result, np.array(x), None)
            return result

        def jacobian(c, x):
            result = np.zeros(c.size)
            grad = np.zeros((c.size, n))
            c.func(result, np.array(x), grad)
            return grad

        for c in self._eq:
            constraints.append({"type": "eq",
                                "fun": lambda x, c=c: value(c, x),
                                "jac": lambda x, c=c: jacobian(c, x)})
        # scipy expects g(x) >= 0
        for c in self._ineq:
            constraints.append({"type": "ineq",
                                "fun": lambda x, c=c: -value(c, x),
                                "jac": lambda x, c=c: -jacobian(c, x)})
        return constraints

    @staticmethod
    def _evaluate(c: _VectorConstraint, x: np.ndarray) -> np.ndarray:
        result = np.zeros(c.size)
        try:
            c.func(result, np.array(x), None)
        except Exception as e:
            raise SolverError(f"constraint evaluation failed: {e}", int(Status.FAILURE)) from e
        return result

    def _check_feasibility(self, x: np.ndarray) -> None:
        for c in self._eq:
            result = self._evaluate(c, x)
            if np.any(np.abs(result) > c.tol + self.feasibility_tolerance):
                raise InfeasibleError("equality constraints violated at solution",
                                      int(Status.INFEASIBLE))
        for c in self._ineq:
            result = self._evaluate(c, x)
            if np.any(result > c.tol + self.feasibility_tolerance):
                raise InfeasibleError("inequality constraints violated at solution",
                                      int(Status.INFEASIBLE))
