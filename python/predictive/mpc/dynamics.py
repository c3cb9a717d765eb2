"""
System Dynamics Models
======================

Discrete-time state-space model used to simulate the closed loop of the
linear MPC:

    x_{k+1} = A x_k + B u_k + Bd d_k
    y_k     = C x_k + Dd d_k
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np


@dataclass
class StateSpaceModel:
    """
    Linear time-invariant discrete-time system with measured disturbances.

    Args:
        A: State transition matrix (n_x, n_x)
        B: Input matrix (n_x, n_u)
        C: Output matrix (n_y, n_x), identity if omitted
        Bd: Disturbance-to-state matrix (n_x, n_d), optional
        Dd: Disturbance-to-output matrix (n_y, n_d), optional
        dt: Sampling time (for reference only)

    Example:
        >>> dt = 0.1
        >>> A = np.array([[1, dt], [0, 1]])
        >>> B = np.array([[0.5*dt**2], [dt]])
        >>> model = StateSpaceModel(A, B, dt=dt)
        >>> x_next = model.step(np.array([0, 1]), np.array([0.5]))
    """
    A: np.ndarray
    B: np.ndarray
    C: Optional[np.ndarray] = None
    Bd: Optional[np.ndarray] = None
    Dd: Optional[np.ndarray] = None
    dt: float = 1.0

    def __post_init__(self):
        """Validate dimensions."""
        self.A = np.asarray(self.A, dtype=np.float64)
        self.B = np.asarray(self.B, dtype=np.float64)

        if self.A.ndim != 2:
            raise ValueError(f"A must be 2D, got shape {self.A.shape}")
        if self.B.ndim != 2:
            raise ValueError(f"B must be 2D, got shape {self.B.shape}")

        n_x = self.A.shape[0]
        if self.A.shape != (n_x, n_x):
            raise ValueError(f"A must be square, got shape {self.A.shape}")
        if self.B.shape[0] != n_x:
            raise ValueError(f"B rows ({self.B.shape[0]}) must match A ({n_x})")

        if self.C is None:
            self.C = np.eye(n_x)
        self.C = np.asarray(self.C, dtype=np.float64)
        if self.C.ndim != 2 or self.C.shape[1] != n_x:
            raise ValueError(f"C columns must match state dim {n_x}")

        n_d = 0
        if self.Bd is not None:
            self.Bd = np.asarray(self.Bd, dtype=np.float64)
            n_d = self.Bd.shape[1]
        if self.Dd is not None:
            self.Dd = np.asarray(self.Dd, dtype=np.float64)
            n_d = self.Dd.shape[1]
        if self.Bd is None:
            self.Bd = np.zeros((n_x, n_d))
        if self.Dd is None:
            self.Dd = np.zeros((self.C.shape[0], n_d))
        if self.Bd.shape != (n_x, n_d):
            raise ValueError(f"Bd must be ({n_x}, {n_d}), got {self.Bd.shape}")
        if self.Dd.shape != (self.C.shape[0], n_d):
            raise ValueError(f"Dd must be ({self.C.shape[0]}, {n_d}), got {self.Dd.shape}")

    @property
    def n_states(self) -> int:
        return self.A.shape[0]

    @property
    def n_inputs(self) -> int:
        return self.B.shape[1]

    @property
    def n_outputs(self) -> int:
        return self.C.shape[0]

    @property
    def n_disturbances(self) -> int:
        return self.Bd.shape[1]

    def _disturbance(self, d: Optional[np.ndarray]) -> np.ndarray:
        if d is None:
            return np.zeros(self.n_disturbances)
        return np.asarray(d, dtype=np.float64)

    def step(self, x: np.ndarray, u: np.ndarray, d: Optional[np.ndarray] = None) -> np.ndarray:
        """Next state (n_x,)."""
        return self.A @ x + self.B @ u + self.Bd @ self._disturbance(d)

    def output(self, x: np.ndarray, d: Optional[np.ndarray] = None) -> np.ndarray:
        """Output (n_y,)."""
        return self.C @ x + self.Dd @ self._disturbance(d)

    def simulate(self, x0: np.ndarray, u_sequence: np.ndarray) -> np.ndarray:
        """
        Simulate the system over a sequence of inputs.

        Args:
            x0: Initial state (n_x,)
            u_sequence: Control sequence (N, n_u)

        Returns:
            State trajectory (N+1, n_x) including initial state
        """
        u_sequence = np.asarray(u_sequence)

        N = len(u_sequence)
        trajectory = np.zeros((N + 1, self.n_states))
        trajectory[0] = x0

        for k in range(N):
            trajectory[k + 1] = self.step(trajectory[k], u_sequence[k])

        return trajectory
