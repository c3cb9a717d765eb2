"""
Linear MPC Problem Builder
==========================

Builds the dense QP solved at every step of the linear MPC:

    minimize    (1/2) z' P z + q' z
    subject to  l <= A z <= u

The system is augmented to carry the previous command in the state,

    [x_{k+1}]   [A  B] [x_k    ]   [B]          [Bd]
    [u_k    ] = [0  I] [u_{k-1}] + [I] du_k  +  [0 ] d_k

so the decision vector is ``z = [s_0, …, s_ph, du_0, …, du_{ph-1}]`` with
``s_k = [x_k; u_{k-1}]``. The first ``(ph+1)(nx+nu)`` rows of ``A`` encode
the dynamics as equalities (``l == u``); the remaining rows bound the
augmented states, the outputs and the command increments.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np
from scipy import sparse

from ..dimensions import Common
from ..exceptions import InvalidInputError
from ..logger import get_logger
from ..utils.validation import as_matrix, as_vector, check_finite

logger = get_logger(__name__)


@dataclass
class Problem:
    """
    QP data in the ``l <= A z <= u`` form.

    Attributes:
        P: Hessian (nvar, nvar), symmetric positive semi-definite
        q: Linear cost (nvar,)
        A: Constraint matrix, equality rows first (ncon, nvar)
        l: Lower bounds (ncon,)
        u: Upper bounds (ncon,)
    """
    P: np.ndarray
    q: np.ndarray
    A: np.ndarray
    l: np.ndarray
    u: np.ndarray

    @property
    def n_variables(self) -> int:
        return self.P.shape[0]

    @property
    def n_constraints(self) -> int:
        return self.A.shape[0]

    def get_sparse(self) -> Tuple[sparse.csc_matrix, sparse.csc_matrix]:
        """
        Export ``P`` (upper triangle) and ``A`` as compressed sparse matrices.

        Returns:
            (P_upper, A) in CSC format
        """
        P_upper = sparse.triu(sparse.csc_matrix(self.P), format="csc")
        A_sparse = sparse.csc_matrix(self.A)
        P_upper.eliminate_zeros()
        A_sparse.eliminate_zeros()
        return P_upper, A_sparse

    def copy(self) -> "Problem":
        """Independent snapshot of the current buffers."""
        return Problem(self.P.copy(), self.q.copy(), self.A.copy(), self.l.copy(), self.u.copy())


class ProblemBuilder(Common):
    """
    Assembles the linear MPC QP.

    Time-invariant terms (``P``, ``A`` and the static bounds) are rebuilt
    by every setter; :meth:`get` only refreshes ``q``, ``l`` and ``u``.
    Terms that have not been set yet are zero.

    Example:
        >>> builder = ProblemBuilder()
        >>> builder.initialize(nx=2, nu=1, ndu=0, ny=2, ph=3, ch=1)
        >>> builder.set_state_model(np.eye(2), [[0], [1]], np.eye(2))
        True
        >>> problem = builder.get(x0, u0, y_ref, u_ref, du_ref, np.zeros(0))
    """

    def on_init(self) -> None:
        dim = self._dim
        nx, nu, ndu, ny, ph = dim.nx, dim.nu, dim.ndu, dim.ny, dim.ph
        if ph < 1:
            raise InvalidInputError(f"prediction horizon must be at least 1, got {ph}")
        n_aug = nx + nu

        self.ssA = np.zeros((n_aug, n_aug))
        self.ssB = np.zeros((n_aug, nu))
        self.ssC = np.zeros((ny + nu, n_aug))
        self.ssBv = np.zeros((n_aug, ndu))
        self.ssDv = np.zeros((ny + nu, ndu))

        self.wOutput = np.zeros((ny, ph + 1))
        self.wU = np.zeros((nu, ph + 1))
        self.wDeltaU = np.zeros((nu, ph))

        self.minX = np.zeros((nx, ph + 1))
        self.maxX = np.zeros((nx, ph + 1))
        self.minY = np.zeros((ny, ph + 1))
        self.maxY = np.zeros((ny, ph + 1))
        self.minU = np.zeros((nu, ph))
        self.maxU = np.zeros((nu, ph))

        self._n_eq = (ph + 1) * n_aug
        self._n_ineq = (ph + 1) * n_aug + (ph + 1) * ny + ph * nu
        self._n_var = (ph + 1) * n_aug + ph * nu

        self._lineq = np.zeros(self._n_ineq)
        self._uineq = np.zeros(self._n_ineq)

        self._problem = Problem(
            P=np.zeros((self._n_var, self._n_var)),
            q=np.zeros(self._n_var),
            A=np.zeros((self._n_eq + self._n_ineq, self._n_var)),
            l=np.zeros(self._n_eq + self._n_ineq),
            u=np.zeros(self._n_eq + self._n_ineq),
        )
        self.build_ti_terms()

    # ------------------------------------------------------------------
    # Setters (time-invariant terms)
    # ------------------------------------------------------------------

    def set_state_model(self, A, B, C) -> bool:
        """
        Set ``x_{k+1} = A x_k + B u_k`` and ``y_k = C x_k``.

        Raises:
            DimensionError: on shape mismatch
        """
        self.check_or_quit()
        dim = self._dim
        nx, nu, ny = dim.nx, dim.nu, dim.ny
        A = as_matrix(A, (nx, nx), "A")
        B = as_matrix(B, (nx, nu), "B")
        C = as_matrix(C, (ny, nx), "C")

        # carry the current command in the state
        self.ssA[:nx, :nx] = A
        self.ssA[:nx, nx:] = B
        self.ssA[nx:, :nx] = 0.0
        self.ssA[nx:, nx:] = np.eye(nu)

        self.ssB[:nx, :] = B
        self.ssB[nx:, :] = np.eye(nu)

        # the command is also an output so it can be weighted
        self.ssC[:ny, :nx] = C
        self.ssC[ny:, nx:] = np.eye(nu)

        return self.build_ti_terms()

    def set_exogenous_input(self, Bd, Dd) -> bool:
        """
        Set the measured disturbance matrices.

        ``x_{k+1} = A x_k + B u_k + Bd d_k``, ``y_k = C x_k + Dd d_k``
        """
        self.check_or_quit()
        dim = self._dim
        Bd = as_matrix(Bd, (dim.nx, dim.ndu), "Bd")
        Dd = as_matrix(Dd, (dim.ny, dim.ndu), "Dd")

        # disturbances act on states and outputs only
        self.ssBv[:] = 0.0
        self.ssBv[:dim.nx, :] = Bd
        self.ssDv[:] = 0.0
        self.ssDv[:dim.ny, :] = Dd

        return self.build_ti_terms()

    set_exogenuos_input = set_exogenous_input

    def set_objective(self, OWeight, UWeight, DeltaUWeight) -> bool:
        """
        Set per-step diagonal weights.

        Args:
            OWeight: Output weights (ny, ph+1)
            UWeight: Command weights (nu, ph+1)
            DeltaUWeight: Command increment weights (nu, ph)
        """
        self.check_or_quit()
        dim = self._dim
        wOutput = as_matrix(OWeight, (dim.ny, dim.ph + 1), "output weights")
        wU = as_matrix(UWeight, (dim.nu, dim.ph + 1), "input weights")
        wDeltaU = as_matrix(DeltaUWeight, (dim.nu, dim.ph), "input rate weights")
        for name, w in (("output weights", wOutput), ("input weights", wU),
                        ("input rate weights", wDeltaU)):
            check_finite(w, name)

        self.wOutput, self.wU, self.wDeltaU = wOutput, wU, wDeltaU
        return self.build_ti_terms()

    def set_constraints(self, XMin, UMin, YMin, XMax, UMax, YMax) -> bool:
        """
        Set per-step box constraints.

        Each argument has one column per prediction step (``ph`` columns);
        the bounds of step 1 are also applied to the initial step.
        """
        self.check_or_quit()
        dim = self._dim
        nx, nu, ny, ph = dim.nx, dim.nu, dim.ny, dim.ph
        XMin = as_matrix(XMin, (nx, ph), "XMin")
        XMax = as_matrix(XMax, (nx, ph), "XMax")
        UMin = as_matrix(UMin, (nu, ph), "UMin")
        UMax = as_matrix(UMax, (nu, ph), "UMax")
        YMin = as_matrix(YMin, (ny, ph), "YMin")
        YMax = as_matrix(YMax, (ny, ph), "YMax")
        for name, b in (("XMin", XMin), ("XMax", XMax), ("UMin", UMin),
                        ("UMax", UMax), ("YMin", YMin), ("YMax", YMax)):
            check_finite(b, name)

        self.minX = np.hstack([XMin[:, :1], XMin])
        self.maxX = np.hstack([XMax[:, :1], XMax])
        self.minY = np.hstack([YMin[:, :1], YMin])
        self.maxY = np.hstack([YMax[:, :1], YMax])
        self.minU = UMin
        self.maxU = UMax

        return self.build_ti_terms()

    # ------------------------------------------------------------------
    # Time-varying terms
    # ------------------------------------------------------------------

    def get(self, x0, u0, y_ref, u_ref, delta_u_ref, u_meas) -> Problem:
        """
        Refresh the reference and measurement dependent terms.

        Args:
            x0: Current state (nx,)
            u0: Command applied at the previous step (nu,); validated only,
                the command slot of the initial augmented state stays zero
            y_ref: Output reference (ny,)
            u_ref: Command reference (nu,)
            delta_u_ref: Command increment reference (nu,)
            u_meas: Measured disturbances (ndu,)

        Returns:
            The builder's ``Problem``. It is overwritten by the next call to
            ``get`` or to any setter; use ``Problem.copy()`` to keep it.
        """
        self.check_or_quit()
        dim = self._dim
        nx, nu, ny, ph = dim.nx, dim.nu, dim.ny, dim.ph
        n_aug = nx + nu

        x0 = as_vector(x0, nx, "x0")
        as_vector(u0, nu, "u0")
        e_ref = np.concatenate([as_vector(y_ref, ny, "y_ref"), as_vector(u_ref, nu, "u_ref")])
        delta_u_ref = as_vector(delta_u_ref, nu, "delta_u_ref")
        u_meas = as_vector(u_meas, dim.ndu, "u_meas")

        q = self._problem.q
        q[:] = 0.0
        leq = np.zeros(self._n_eq)
        lineq = self._lineq.copy()
        uineq = self._uineq.copy()

        offset = self.ssDv @ u_meas
        feedforward = self.ssBv @ u_meas
        y_offset = offset[:ny]
        u_start = (ph + 1) * n_aug

        for i in range(ph + 1):
            w = np.concatenate([self.wOutput[:, i], self.wU[:, i]])
            q[i * n_aug:(i + 1) * n_aug] = self.ssC.T @ (w * (offset - e_ref))

            # increments stop at the last prediction step
            if i < ph:
                q[u_start + i * nu:u_start + (i + 1) * nu] = -(self.wDeltaU[:, i] * delta_u_ref)

            if i > 0:
                leq[i * n_aug:(i + 1) * n_aug] = -feedforward

            # disturbance contribution on the outputs is an offset on the bounds
            row = (ph + 1) * n_aug + i * ny
            lineq[row:row + ny] -= y_offset
            uineq[row:row + ny] -= y_offset

        # initial condition of the augmented state, command slot left at zero
        leq[:nx] = -x0

        self._problem.l[:self._n_eq] = leq
        self._problem.u[:self._n_eq] = leq
        self._problem.l[self._n_eq:] = lineq
        self._problem.u[self._n_eq:] = uineq

        return self._problem

    @property
    def problem(self) -> Problem:
        self.check_or_quit()
        return self._problem

    # ------------------------------------------------------------------
    # Time-invariant terms
    # ------------------------------------------------------------------

    def build_ti_terms(self) -> bool:
        self.check_or_quit()
        dim = self._dim
        nx, nu, ny, ph, ch = dim.nx, dim.nu, dim.ny, dim.ph, dim.ch
        n_aug = nx + nu
        u_start = (ph + 1) * n_aug

        # quadratic objective
        P = self._problem.P
        P[:] = 0.0
        for i in range(ph + 1):
            w = np.concatenate([self.wOutput[:, i], self.wU[:, i]])
            P[i * n_aug:(i + 1) * n_aug, i * n_aug:(i + 1) * n_aug] = self.ssC.T @ (w[:, None] * self.ssC)
            if i < ph:
                k = u_start + i * nu
                P[k:k + nu, k:k + nu] = np.diag(self.wDeltaU[:, i])

        # dynamics: -s_k + ssA s_{k-1} + ssB du_{k-1} = -ssBv d
        shift = np.eye(ph + 1, k=-1)
        Aeq = np.zeros((self._n_eq, self._n_var))
        Aeq[:, :u_start] = np.kron(np.eye(ph + 1), -np.eye(n_aug)) + np.kron(shift, self.ssA)
        Aeq[:, u_start:] = np.kron(shift[:, :ph], self.ssB)

        # state, output and increment constraints
        Aineq = np.zeros((self._n_ineq, self._n_var))
        Aineq[:u_start, :u_start] = np.eye(u_start)
        y_start = u_start
        du_start = u_start + (ph + 1) * ny
        Aineq[y_start:du_start, :u_start] = np.kron(np.eye(ph + 1), self.ssC[:ny])
        Aineq[du_start:, u_start:] = np.eye(ph * nu)

        # the command box of the last step reuses the previous one
        min_u = np.hstack([self.minU, self.minU[:, -1:]])
        max_u = np.hstack([self.maxU, self.maxU[:, -1:]])
        lineq = self._lineq
        uineq = self._uineq
        lineq[:u_start] = np.vstack([self.minX, min_u]).ravel(order="F")
        uineq[:u_start] = np.vstack([self.maxX, max_u]).ravel(order="F")
        lineq[y_start:du_start] = self.minY.ravel(order="F")
        uineq[y_start:du_start] = self.maxY.ravel(order="F")

        # no command moves after the end of the control horizon
        for i in range(ph):
            rows = slice(du_start + i * nu, du_start + (i + 1) * nu)
            lineq[rows] = 0.0 if i >= ch else -np.inf
            uineq[rows] = 0.0 if i >= ch else np.inf

        self._problem.A[:self._n_eq] = Aeq
        self._problem.A[self._n_eq:] = Aineq

        # bounds are stale until the next get()
        self._problem.l[self._n_eq:] = lineq
        self._problem.u[self._n_eq:] = uineq

        logger.debug(
            f"Rebuilt time-invariant terms: {self._n_var} variables, "
            f"{self._n_eq} equalities, {self._n_ineq} inequalities"
        )
        return True
