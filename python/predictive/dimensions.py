"""
Problem Dimensions
==================

Dimension descriptor shared by every controller component, and the
``Common`` base class that guards each public operation behind a single
initialization check.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .exceptions import InvalidInputError, NotInitializedError


@dataclass(frozen=True)
class Dimensions:
    """
    Fixed sizes of an MPC problem.

    Attributes:
        nx: Number of states
        nu: Number of manipulated inputs
        ndu: Number of measured disturbances (0 disables them)
        ny: Number of outputs
        ph: Prediction horizon length
        ch: Control horizon length (``ch <= ph``)
        ineq: Number of user inequality constraints
        eq: Number of user equality constraints

    Example:
        >>> dim = Dimensions(nx=2, nu=1, ny=2, ph=10, ch=3)
        >>> dim.n_opt
        24
    """
    nx: int = 0
    nu: int = 0
    ndu: int = 0
    ny: int = 0
    ph: int = 0
    ch: int = 0
    ineq: int = 0
    eq: int = 0

    def __post_init__(self):
        for name in ("nx", "nu", "ndu", "ny", "ph", "ch", "ineq", "eq"):
            value = getattr(self, name)
            if int(value) != value or value < 0:
                raise InvalidInputError(f"{name} must be a non-negative integer, got {value}")
            object.__setattr__(self, name, int(value))
        if self.ch > self.ph:
            raise InvalidInputError(
                f"control horizon ({self.ch}) longer than prediction horizon ({self.ph})"
            )

    @property
    def n_aug(self) -> int:
        """Size of the augmented state ``[x; u_prev]``."""
        return self.nx + self.nu

    @property
    def n_opt(self) -> int:
        """Size of the nonlinear decision vector (states, blocked inputs, slack)."""
        return self.ph * self.nx + self.ch * self.nu + 1


class Common:
    """
    Base class for components sized by a :class:`Dimensions` set.

    Dimensions are assigned once through :meth:`initialize`; subclasses
    allocate their buffers in :meth:`on_init`. Every public operation calls
    :meth:`check_or_quit` first.
    """

    def __init__(self) -> None:
        self._dim: Optional[Dimensions] = None

    def initialize(
        self,
        nx: int = 0,
        nu: int = 0,
        ndu: int = 0,
        ny: int = 0,
        ph: int = 0,
        ch: int = 0,
        ineq: int = 0,
        eq: int = 0,
    ) -> None:
        if self._dim is not None:
            raise InvalidInputError(f"{type(self).__name__} is already initialized")
        self._dim = Dimensions(nx, nu, ndu, ny, ph, ch, ineq, eq)
        try:
            self.on_init()
        except Exception:
            self._dim = None
            raise

    def on_init(self) -> None:
        """Allocation hook, called once dimensions are known."""

    @property
    def is_initialized(self) -> bool:
        return self._dim is not None

    @property
    def dim(self) -> Dimensions:
        self.check_or_quit()
        return self._dim

    def check_or_quit(self) -> None:
        if self._dim is None:
            raise NotInitializedError(type(self).__name__)
