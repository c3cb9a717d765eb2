"""
Move Blocking
=============

Mapping between the compressed decision vector of the nonlinear MPC
(one input per control-horizon block) and the full per-step input
trajectory over the prediction horizon.

With ``ch`` blocks over ``ph`` steps every block but the last covers a
single step; the last one is held for the remaining ``ph - ch + 1`` steps
(zero-order hold up to the end of the horizon).
"""

from __future__ import annotations

from typing import Tuple

import numpy as np

from ..dimensions import Common
from ..exceptions import DimensionError, InvalidInputError
from ..utils.validation import as_vector


class Mapping(Common):
    """
    Move-blocking mapper with input and state scaling.

    Attributes (after ``initialize``):
        Iz2u: Expansion operator (ph*nu, ch*nu)
        Iu2z: Reduction operator (ch*nu, ph*nu); each block takes the first
            full-trajectory step it covers
        Sz2u: Input scaling ``diag(s)`` (nu, nu)
        Su2z: Inverse input scaling ``diag(1/s)`` (nu, nu)

    Example:
        >>> mapping = Mapping()
        >>> mapping.initialize(nx=2, nu=1, ny=2, ph=3, ch=1)
        >>> mapping.Iz2u
        array([[1.],
               [1.],
               [1.]])
    """

    def on_init(self) -> None:
        dim = self._dim
        if dim.ph < 1 or dim.ch < 1:
            raise InvalidInputError(
                f"move blocking needs ph >= 1 and ch >= 1, got ph={dim.ph}, ch={dim.ch}"
            )
        self._input_scaling = np.ones(dim.nu)
        self._state_scaling = np.ones(dim.nx)
        self._inverse_state_scaling = np.ones(dim.nx)
        self.compute_mapping()

    def set_input_scaling(self, scaling) -> None:
        self.check_or_quit()
        scaling = as_vector(scaling, self._dim.nu, "input scaling")
        if np.any(scaling == 0):
            raise InvalidInputError("input scaling factors must be non-zero")
        self._input_scaling = scaling
        self.compute_mapping()

    def set_state_scaling(self, scaling) -> None:
        self.check_or_quit()
        scaling = as_vector(scaling, self._dim.nx, "state scaling")
        if np.any(scaling == 0):
            raise InvalidInputError("state scaling factors must be non-zero")
        self._state_scaling = scaling
        self._inverse_state_scaling = 1.0 / scaling

    @property
    def Iz2u(self) -> np.ndarray:
        self.check_or_quit()
        return self._Iz2u.copy()

    @property
    def Iu2z(self) -> np.ndarray:
        self.check_or_quit()
        return self._Iu2z.copy()

    @property
    def Sz2u(self) -> np.ndarray:
        self.check_or_quit()
        return self._Sz2u.copy()

    @property
    def Su2z(self) -> np.ndarray:
        self.check_or_quit()
        return self._Su2z.copy()

    @property
    def input_scaling(self) -> np.ndarray:
        self.check_or_quit()
        return self._input_scaling.copy()

    @property
    def state_scaling(self) -> np.ndarray:
        self.check_or_quit()
        return self._state_scaling.copy()

    @property
    def inverse_state_scaling(self) -> np.ndarray:
        self.check_or_quit()
        return self._inverse_state_scaling.copy()

    def block_lengths(self) -> np.ndarray:
        """Number of prediction steps covered by each control-horizon block."""
        dim = self.dim
        m = np.ones(dim.ch, dtype=int)
        m[-1] = dim.ph - dim.ch + 1
        return m

    def compute_mapping(self) -> None:
        self.check_or_quit()
        dim = self._dim
        nu = dim.nu

        self._Sz2u = np.diag(self._input_scaling)
        self._Su2z = np.diag(1.0 / self._input_scaling)

        Iz2u = np.zeros((dim.ph * nu, dim.ch * nu))
        Iu2z = np.zeros((dim.ch * nu, dim.ph * nu))

        # TODO linear interpolation between blocks instead of zero-order hold
        ix = 0
        jx = 0
        for length in self.block_lengths():
            Iu2z[ix:ix + nu, jx:jx + nu] = self._Su2z
            for _ in range(length):
                Iz2u[jx:jx + nu, ix:ix + nu] = self._Sz2u
                jx += nu
            ix += nu

        self._Iz2u = Iz2u
        self._Iu2z = Iu2z

    def expand(self, z: np.ndarray) -> np.ndarray:
        """Compressed input vector (ch*nu,) to per-step trajectory (ph, nu)."""
        dim = self.dim
        z = as_vector(z, dim.ch * dim.nu, "compressed input")
        return (self._Iz2u @ z).reshape(dim.ph, dim.nu)

    def reduce(self, u: np.ndarray) -> np.ndarray:
        """Per-step trajectory (ph, nu) to compressed input vector (ch*nu,)."""
        dim = self.dim
        u = as_vector(np.asarray(u, dtype=np.float64).reshape(-1), dim.ph * dim.nu, "input trajectory")
        return self._Iu2z @ u

    def unwrap_vector(self, x, x0) -> Tuple[np.ndarray, np.ndarray, float]:
        """
        Split a flat optimizer solution into trajectories.

        Args:
            x: Solution vector ``[x_1 … x_ph, z_0 … z_{ch-1}, slack]`` of
                length ``ph*nx + ch*nu + 1``
            x0: Current state (nx,), used as the first row of the states

        Returns:
            ``(Xmat, Umat, slack)`` with ``Xmat`` of shape (ph+1, nx) and
            ``Umat`` of shape (ph+1, nu); the last input row repeats the
            previous one so both trajectories have the same length.

        Raises:
            DimensionError: if ``x`` does not have ``ph*nx + ch*nu + 1``
                entries
        """
        self.check_or_quit()
        dim = self._dim

        x = np.asarray(x, dtype=np.float64).ravel()
        if x.size != dim.n_opt:
            raise DimensionError(
                f"optimization vector must have {dim.n_opt} elements, got {x.size}"
            )
        x0 = as_vector(x0, dim.nx, "x0")

        n_states = dim.ph * dim.nx
        u_vec = x[n_states:n_states + dim.ch * dim.nu]

        Umv = np.zeros((dim.ph + 1, dim.nu))
        Umv[:dim.ph] = (self._Iz2u @ u_vec).reshape(dim.ph, dim.nu)
        Umv[dim.ph] = Umv[dim.ph - 1]

        # decision variables hold scaled states
        Xmat = np.zeros((dim.ph + 1, dim.nx))
        Xmat[0] = x0
        Xmat[1:] = x[:n_states].reshape(dim.ph, dim.nx) * self._state_scaling

        slack = float(x[-1])
        return Xmat, Umv, slack
