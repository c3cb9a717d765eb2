"""
Linear MPC Optimizer
====================

Solves the QP assembled by :class:`ProblemBuilder` and extracts the
first-step command.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from ..dimensions import Common
from ..exceptions import InvalidInputError
from ..logger import get_logger
from ..parameters import LParameters
from ..result import Result, Status
from ..solver import solve_qp
from ..utils.validation import as_vector
from .builder import ProblemBuilder

logger = get_logger(__name__)


class LOptimizer(Common):
    """
    QP-based optimizer for the linear MPC.

    Holds the references and the measured exogenous inputs used to refresh
    the time-varying terms of the problem at every cycle.
    """

    def on_init(self) -> None:
        dim = self._dim
        self._builder: Optional[ProblemBuilder] = None
        self._params = LParameters()
        self._y_ref = np.zeros(dim.ny)
        self._u_ref = np.zeros(dim.nu)
        self._delta_u_ref = np.zeros(dim.nu)
        self._u_meas = np.zeros(dim.ndu)
        self._warm_start: Optional[np.ndarray] = None
        self._last_result = Result(cmd=np.zeros(dim.nu), cost=float("nan"), retcode=0)

    def set_builder(self, builder: ProblemBuilder) -> None:
        self.check_or_quit()
        if builder.dim != self._dim:
            raise InvalidInputError("builder and optimizer dimensions differ")
        self._builder = builder

    def set_parameters(self, param: LParameters) -> None:
        self.check_or_quit()
        if not isinstance(param, LParameters):
            raise InvalidInputError(f"expected LParameters, got {type(param).__name__}")
        self._params = param
        logger.debug("Setting tolerances and stopping criteria")

    def set_references(self, out_ref, cmd_ref, delta_cmd_ref) -> bool:
        self.check_or_quit()
        dim = self._dim
        self._y_ref = as_vector(out_ref, dim.ny, "output reference")
        self._u_ref = as_vector(cmd_ref, dim.nu, "command reference")
        self._delta_u_ref = as_vector(delta_cmd_ref, dim.nu, "command increment reference")
        return True

    def set_exogenous_inputs(self, u_meas) -> bool:
        self.check_or_quit()
        self._u_meas = as_vector(u_meas, self._dim.ndu, "exogenous inputs")
        return True

    def run(self, x0, u0) -> Result:
        """
        Solve one control cycle.

        Args:
            x0: Current state (nx,)
            u0: Command applied at the previous step (nu,)

        Returns:
            Result with the command of the first prediction step; on
            failure the previous command and ``retcode == Status.FAILURE``.
        """
        self.check_or_quit()
        if self._builder is None:
            raise InvalidInputError("problem builder not set, call set_builder() first")
        dim = self._dim
        n_aug = dim.nx + dim.nu

        problem = self._builder.get(
            x0, u0, self._y_ref, self._u_ref, self._delta_u_ref, self._u_meas
        )
        res = solve_qp(
            problem.P, problem.q, problem.A, problem.l, problem.u,
            params={
                "max_iterations": self._params.maximum_iteration,
                "tolerance": self._params.tolerance,
                "verbose": self._params.verbose,
                "warm_start": self._warm_start,
            },
        )

        if res.status.is_successful:
            logger.info(f"Optimization end after: {res.iterations} iterations")
            logger.info(f"Optimization end with code: {int(res.status)}")
            logger.info(f"Optimization end with cost: {res.objective}")
            # the command applied now is stored in the augmented state of step 1
            cmd = res.x[n_aug + dim.nx:2 * n_aug].copy()
            r = Result(cmd=cmd, cost=res.objective, retcode=int(res.status))
            self._warm_start = res.x
        else:
            logger.warning(f"No optimal solution found: {res.status}")
            r = Result(
                cmd=self._last_result.cmd.copy(),
                cost=float("nan"),
                retcode=int(Status.FAILURE),
            )
            self._warm_start = None

        self._last_result = r.copy()
        return r

    def get_last_result(self) -> Result:
        self.check_or_quit()
        return self._last_result.copy()
