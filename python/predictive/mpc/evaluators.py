"""
Evaluator Interfaces
====================

Objective and constraint evaluators consumed by :class:`NLOptimizer`.

Gradients use a column convention: an objective gradient is ``(n,)`` or
``(n, 1)`` and the gradient of an ``m``-vector of constraints is an
``(n, m)`` matrix whose column ``j`` is the gradient of constraint ``j``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

import numpy as np


@dataclass
class ObjectiveEvaluation:
    """Objective value and gradient (n,) or (n, 1); ``grad`` may be empty."""
    value: float
    grad: np.ndarray = field(default_factory=lambda: np.zeros(0))


@dataclass
class ConstraintEvaluation:
    """Constraint values (m,) and gradient (n, m); ``grad`` may be empty."""
    value: np.ndarray
    grad: np.ndarray = field(default_factory=lambda: np.zeros((0, 0)))


class ObjectiveEvaluator(Protocol):
    def evaluate(self, x: np.ndarray, need_gradient: bool) -> ObjectiveEvaluation:
        ...


class ConstraintsEvaluator(Protocol):
    def evaluate_state_model_eq(self, x: np.ndarray, need_gradient: bool) -> ConstraintEvaluation:
        """System dynamics residuals (ph*nx,)."""
        ...

    def evaluate_ineq(self, x: np.ndarray, need_gradient: bool) -> ConstraintEvaluation:
        """User inequality constraints, ``<= 0`` when satisfied."""
        ...

    def evaluate_eq(self, x: np.ndarray, need_gradient: bool) -> ConstraintEvaluation:
        """User equality constraints, ``== 0`` when satisfied."""
        ...
