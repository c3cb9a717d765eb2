"""
Nonlinear MPC Optimizer
=======================

Adapter between the objective/constraint evaluators of the nonlinear MPC
and the SLSQP solver.

Decision vector (``ph*nx + ch*nu + 1`` entries):

    [x_1, …, x_ph, z_0, …, z_{ch-1}, slack]

where ``x_k`` are the (scaled) predicted states, ``z_i`` the blocked inputs
(see :class:`Mapping`) and ``slack`` the soft-constraint slack variable.
"""

from __future__ import annotations

from typing import Callable, Optional

import numpy as np

from ..dimensions import Common
from ..exceptions import BindError, DimensionError, InvalidInputError, SolverError
from ..logger import get_logger
from ..nlp import SLSQPSolver
from ..parameters import NLParameters
from ..result import Result, Status
from ..utils.validation import as_vector
from .evaluators import ConstraintEvaluation, ConstraintsEvaluator, ObjectiveEvaluator
from .mapping import Mapping

logger = get_logger(__name__)


def _constraint_adapter(evaluate: Callable[[np.ndarray, bool], ConstraintEvaluation]):
    """Wrap an evaluator method into the solver's vector-constraint callback."""

    def adapter(result: np.ndarray, x: np.ndarray, grad: Optional[np.ndarray]) -> None:
        need_gradient = grad is not None
        res = evaluate(x, need_gradient)
        result[:] = np.asarray(res.value, dtype=np.float64).reshape(-1)
        if need_gradient:
            # evaluators return (n, m) column gradients, the solver wants an (m, n) Jacobian
            grad[:] = np.asarray(res.grad, dtype=np.float64).T

    return adapter


class NLOptimizer(Common):
    """
    Nonlinear MPC optimizer.

    Owns one :class:`SLSQPSolver` sized for the decision vector and keeps
    the previous result and the slack value as warm-start and fallback
    state between control cycles.

    Example:
        >>> mapping = Mapping()
        >>> mapping.initialize(nx=2, nu=1, ny=2, ph=10, ch=3)
        >>> opt = NLOptimizer()
        >>> opt.initialize(nx=2, nu=1, ny=2, ph=10, ch=3)
        >>> opt.set_mapping(mapping)
        >>> opt.bind(objective)
        True
        >>> opt.bind_eq(constraints, np.full(20, 1e-6))
        True
        >>> result = opt.run(x0, u0)
    """

    def on_init(self) -> None:
        dim = self._dim
        self._solver = SLSQPSolver(dim.n_opt)
        self._mapping: Optional[Mapping] = None
        self._last_result = Result(cmd=np.zeros(dim.nu), cost=float("nan"), retcode=0)
        self._current_slack = 0.0
        self.set_parameters(NLParameters())

    @property
    def solver(self) -> SLSQPSolver:
        self.check_or_quit()
        return self._solver

    @property
    def current_slack(self) -> float:
        return self._current_slack

    def set_mapping(self, mapping: Mapping) -> None:
        self.check_or_quit()
        dim = self._dim
        other = mapping.dim
        if (other.nx, other.nu, other.ph, other.ch) != (dim.nx, dim.nu, dim.ph, dim.ch):
            raise DimensionError(
                f"mapping sized for nx={other.nx}, nu={other.nu}, ph={other.ph}, ch={other.ch}"
            )
        self._mapping = mapping

    def set_parameters(self, param: NLParameters) -> None:
        self.check_or_quit()
        if not isinstance(param, NLParameters):
            raise InvalidInputError(f"expected NLParameters, got {type(param).__name__}")

        self._solver.set_ftol_rel(param.relative_ftol)
        self._solver.set_maxeval(param.maximum_iteration)
        self._solver.set_xtol_rel(param.relative_xtol)

        n = self._dim.n_opt
        lb = np.full(n, -np.inf)
        ub = np.full(n, np.inf)
        # hard constraints forbid a negative slack
        if param.hard_constraints:
            lb[-1] = 0.0
        self._solver.set_lower_bounds(lb)
        self._solver.set_upper_bounds(ub)

        logger.debug("Setting tolerances and stopping criteria")

    # ------------------------------------------------------------------
    # Binding
    # ------------------------------------------------------------------

    def bind(self, objective: ObjectiveEvaluator) -> bool:
        """Register the objective; returns False if the solver rejects it."""
        self.check_or_quit()

        def adapter(x: np.ndarray, grad: np.ndarray) -> float:
            need_gradient = grad.size > 0
            res = objective.evaluate(x, need_gradient)
            if need_gradient:
                grad[:] = np.asarray(res.grad, dtype=np.float64).T.reshape(-1)
            return float(res.value)

        try:
            self._solver.set_min_objective(adapter)
        except BindError as e:
            logger.error(f"Unable to bind objective function: {e}")
            return False
        return True

    def bind_eq(self, constraints: ConstraintsEvaluator, tol) -> bool:
        """Register the system dynamics equality constraints (ph*nx,)."""
        self.check_or_quit()
        dim = self._dim
        tol = as_vector(tol, dim.ph * dim.nx, "dynamics constraint tolerances")
        if self._add(self._solver.add_equality_mconstraint,
                     _constraint_adapter(constraints.evaluate_state_model_eq), tol):
            logger.debug("Adding state defined equality constraints")
            return True
        return False

    def bind_user_ineq(self, constraints: ConstraintsEvaluator, tol) -> bool:
        """Register the user inequality constraints (ineq,)."""
        self.check_or_quit()
        tol = as_vector(tol, self._dim.ineq, "inequality constraint tolerances")
        if self._add(self._solver.add_inequality_mconstraint,
                     _constraint_adapter(constraints.evaluate_ineq), tol):
            logger.debug("Adding user inequality constraints")
            return True
        return False

    def bind_user_eq(self, constraints: ConstraintsEvaluator, tol) -> bool:
        """Register the user equality constraints (eq,)."""
        self.check_or_quit()
        tol = as_vector(tol, self._dim.eq, "equality constraint tolerances")
        if self._add(self._solver.add_equality_mconstraint,
                     _constraint_adapter(constraints.evaluate_eq), tol):
            logger.debug("Adding user equality constraints")
            return True
        return False

    @staticmethod
    def _add(register, adapter, tol: np.ndarray) -> bool:
        try:
            register(adapter, tol)
        except BindError as e:
            logger.error(f"Unable to bind constraints function: {e}")
            return False
        return True

    # ------------------------------------------------------------------
    # Optimization
    # ------------------------------------------------------------------

    def run(self, x0, u0) -> Result:
        """
        Solve one control cycle.

        The solver is warm started with ``x0`` repeated along the horizon,
        the blocked projection of a constant ``u0`` trajectory and the
        slack of the previous cycle.

        Args:
            x0: Current state (nx,)
            u0: Previous command (nu,)

        Returns:
            Result with the first-step command. When the solver fails the
            previous command is returned with ``retcode == Status.FAILURE``.
        """
        self.check_or_quit()
        dim = self._dim
        if self._mapping is None:
            raise InvalidInputError("mapping not set, call set_mapping() first")
        mapping = self._mapping

        x0 = as_vector(x0, dim.nx, "x0")
        u0 = as_vector(u0, dim.nu, "u0")

        n_states = dim.ph * dim.nx
        opt_x0 = np.zeros(dim.n_opt)
        opt_x0[:n_states] = np.tile(x0 * mapping.inverse_state_scaling, dim.ph)
        opt_x0[n_states:-1] = mapping.Iu2z @ np.tile(u0, dim.ph)
        opt_x0[-1] = self._current_slack

        try:
            x = self._solver.optimize(opt_x0)
        except SolverError as e:
            logger.warning(f"No optimal solution found: {e}")
            r = Result(
                cmd=self._last_result.cmd.copy(),
                cost=float("nan"),
                retcode=int(Status.FAILURE),
            )
        else:
            cost = self._solver.last_optimum_value
            retcode = int(self._solver.last_optimize_result)
            logger.info(f"Optimization end after: {self._solver.num_evals} evaluation steps")
            logger.info(f"Optimization end with code: {retcode}")
            logger.info(f"Optimization end with cost: {cost}")

            Xmat, Umat, self._current_slack = mapping.unwrap_vector(x, x0)
            logger.debug(f"Optimal predicted state vector\n{Xmat}")
            logger.debug(f"Optimal predicted input vector\n{Umat}")
            r = Result(cmd=Umat[0].copy(), cost=cost, retcode=retcode)

        self._last_result = r.copy()
        return r

    def get_last_result(self) -> Result:
        self.check_or_quit()
        return self._last_result.copy()
