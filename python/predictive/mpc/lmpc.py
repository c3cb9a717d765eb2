"""
Linear MPC Front-End
====================

User-facing linear MPC. Weights and constraints given as single vectors
are replicated along the prediction horizon before being handed to the
:class:`ProblemBuilder`.
"""

from __future__ import annotations

from typing import Dict, Optional, Union

import numpy as np

from .. import logger as _logging
from ..dimensions import Dimensions
from ..exceptions import DimensionError, UnavailableFeatureError
from ..logger import get_logger
from ..parameters import LParameters
from ..result import Result
from ..utils.validation import as_vector
from .builder import ProblemBuilder
from .dynamics import StateSpaceModel
from .l_optimizer import LOptimizer

logger = get_logger(__name__)


class LinearMPC:
    """
    Linear Model Predictive Controller.

    Solves at each step

        minimize    Σ_k |y_k - y_ref|²_Wy + |u_k - u_ref|²_Wu + |Δu_k - Δu_ref|²_WΔu
        subject to  x_{k+1} = A x_k + B u_k + Bd d
                    y_k = C x_k + Dd d
                    box constraints on x, u, y
                    Δu_k = 0 for k >= ch

    Args:
        nx: Number of states
        nu: Number of inputs
        ndu: Number of measured disturbances
        ny: Number of outputs
        ph: Prediction horizon
        ch: Control horizon

    Example:
        >>> mpc = LinearMPC(nx=2, nu=1, ndu=0, ny=2, ph=10, ch=3)
        >>> mpc.set_state_space_model(A, B, C)
        >>> mpc.set_objective_weights(np.ones(2), np.zeros(1), np.full(1, 0.1))
        >>> mpc.set_references(np.array([1.0, 0.0]), np.zeros(1), np.zeros(1))
        >>> result = mpc.step(x0, u_prev)
        >>> u_apply = result.cmd
    """

    def __init__(self, nx: int, nu: int, ndu: int, ny: int, ph: int, ch: int) -> None:
        self.builder = ProblemBuilder()
        self.builder.initialize(nx=nx, nu=nu, ndu=ndu, ny=ny, ph=ph, ch=ch)

        self.optimizer = LOptimizer()
        self.optimizer.initialize(nx=nx, nu=nu, ndu=ndu, ny=ny, ph=ph, ch=ch)
        self.optimizer.set_builder(self.builder)

        # unconstrained, output tracking only
        self.set_constraints(
            np.full(nx, -np.inf), np.full(nu, -np.inf), np.full(ny, -np.inf),
            np.full(nx, np.inf), np.full(nu, np.inf), np.full(ny, np.inf),
        )
        self.set_objective_weights(np.ones(ny), np.zeros(nu), np.zeros(nu))

    @property
    def dim(self) -> Dimensions:
        return self.builder.dim

    # ------------------------------------------------------------------
    # Model
    # ------------------------------------------------------------------

    def set_state_space_model(self, A, B, C) -> bool:
        """
        Set the model ``x(k+1) = A x(k) + B u(k)``, ``y(k) = C x(k)``.
        """
        logger.debug("Setting state space model")
        return self.builder.set_state_model(A, B, C)

    def set_model(self, system: StateSpaceModel) -> bool:
        """Set model and disturbance matrices from a :class:`StateSpaceModel`."""
        ok = self.set_state_space_model(system.A, system.B, system.C)
        if self.dim.ndu > 0:
            ok = self.set_disturbances(system.Bd, system.Dd) and ok
        return ok

    def set_disturbances(self, Bd, Dd) -> bool:
        """
        Set the disturbance matrices of
        ``x(k+1) = A x(k) + B u(k) + Bd d(k)``, ``y(k) = C x(k) + Dd d(k)``.
        """
        logger.debug("Setting disturbances matrices")
        return self.builder.set_exogenous_input(Bd, Dd)

    def set_continuous_time_model(self, ts: float) -> bool:
        raise UnavailableFeatureError("Linear MPC supports only discrete time systems")

    def set_input_scale(self, scaling) -> None:
        raise UnavailableFeatureError("Linear MPC does not support input scaling")

    def set_state_scale(self, scaling) -> None:
        raise UnavailableFeatureError("Linear MPC does not support state scaling")

    # ------------------------------------------------------------------
    # Objective and constraints
    # ------------------------------------------------------------------

    def _along_horizon(self, value, size: int, steps: int, name: str) -> np.ndarray:
        return np.tile(as_vector(value, size, name)[:, None], (1, steps))

    def set_constraints(self, XMin, UMin, YMin, XMax, UMax, YMax) -> bool:
        """
        Set box constraints on states, inputs and outputs, applied equally
        along the prediction horizon.
        """
        dim = self.dim
        ph = dim.ph
        logger.debug("Setting constraints")
        return self.builder.set_constraints(
            self._along_horizon(XMin, dim.nx, ph, "XMin"),
            self._along_horizon(UMin, dim.nu, ph, "UMin"),
            self._along_horizon(YMin, dim.ny, ph, "YMin"),
            self._along_horizon(XMax, dim.nx, ph, "XMax"),
            self._along_horizon(UMax, dim.nu, ph, "UMax"),
            self._along_horizon(YMax, dim.ny, ph, "YMax"),
        )

    def set_objective_weights(self, OWeight, UWeight, DeltaUWeight) -> bool:
        """
        Set output, input and input-rate weights, applied equally along the
        prediction horizon.
        """
        dim = self.dim
        logger.debug("Setting weights")
        return self.builder.set_objective(
            self._along_horizon(OWeight, dim.ny, dim.ph + 1, "OWeight"),
            self._along_horizon(UWeight, dim.nu, dim.ph + 1, "UWeight"),
            self._along_horizon(DeltaUWeight, dim.nu, dim.ph, "DeltaUWeight"),
        )

    # ------------------------------------------------------------------
    # Runtime
    # ------------------------------------------------------------------

    def set_exogenous_inputs(self, u_meas) -> bool:
        return self.optimizer.set_exogenous_inputs(u_meas)

    def set_references(self, out_ref, cmd_ref, delta_cmd_ref) -> bool:
        return self.optimizer.set_references(out_ref, cmd_ref, delta_cmd_ref)

    def set_optimizer_parameters(self, param: LParameters) -> None:
        self.optimizer.set_parameters(param)

    def optimize(self, x0, u_prev) -> Result:
        """
        Compute the command for the current state.

        Args:
            x0: Current state (nx,)
            u_prev: Command applied at the previous step (nu,)
        """
        return self.optimizer.run(x0, u_prev)

    step = optimize

    def get_last_result(self) -> Result:
        return self.optimizer.get_last_result()

    @staticmethod
    def set_logger_level(level: Union[int, str]) -> None:
        _logging.set_level(level)

    @staticmethod
    def set_logger_prefix(prefix: str) -> None:
        _logging.set_prefix(prefix)

    def simulate(
        self,
        system: StateSpaceModel,
        x0: np.ndarray,
        n_steps: int,
        u0: Optional[np.ndarray] = None,
        disturbance: Optional[np.ndarray] = None,
    ) -> Dict[str, np.ndarray]:
        """
        Simulate the closed loop.

        Args:
            system: Plant model
            x0: Initial state
            n_steps: Number of simulation steps
            u0: Command applied before the first step (default: zero)
            disturbance: Measured disturbances (n_steps, ndu)

        Returns:
            Dictionary with 'x' (states), 'u' (inputs), 'cost' and
            'retcode' (per step)
        """
        dim = self.dim
        if system.n_states != dim.nx or system.n_inputs != dim.nu:
            raise DimensionError(
                f"system is ({system.n_states}, {system.n_inputs}), "
                f"controller expects ({dim.nx}, {dim.nu})"
            )

        x = np.zeros((n_steps + 1, dim.nx))
        u = np.zeros((n_steps, dim.nu))
        costs = np.zeros(n_steps)
        retcodes = np.zeros(n_steps, dtype=int)

        x[0] = x0
        u_prev = np.zeros(dim.nu) if u0 is None else as_vector(u0, dim.nu, "u0")

        for k in range(n_steps):
            d = None
            if disturbance is not None:
                d = np.asarray(disturbance[k], dtype=np.float64)
                self.set_exogenous_inputs(d)

            result = self.step(x[k], u_prev)

            u[k] = result.cmd
            costs[k] = result.cost
            retcodes[k] = result.retcode

            x[k + 1] = system.step(x[k], u[k], d)
            u_prev = u[k]

        return {"x": x, "u": u, "cost": costs, "retcode": retcodes}
