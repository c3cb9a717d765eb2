"""
Optimizer Parameters
====================

Configuration dataclasses passed to ``set_parameters`` on the optimizers.
"""

from dataclasses import dataclass


@dataclass
class Parameters:
    """
    Settings shared by every optimizer.

    Attributes:
        maximum_iteration: Iteration / evaluation budget of one solve
    """
    maximum_iteration: int = 100


@dataclass
class NLParameters(Parameters):
    """
    Nonlinear optimizer settings.

    Attributes:
        relative_ftol: Relative tolerance on the objective value
        relative_xtol: Relative tolerance on the decision vector
        maximum_iteration: Maximum number of objective evaluations
        hard_constraints: Keep the slack variable non-negative, which
            forbids any violation of the user constraints
    """
    relative_ftol: float = 1e-10
    relative_xtol: float = 1e-10
    maximum_iteration: int = 50
    hard_constraints: bool = True


@dataclass
class LParameters(Parameters):
    """
    Linear (QP) optimizer settings.

    Attributes:
        tolerance: Convergence tolerance forwarded to the QP solver
        maximum_iteration: Maximum QP solver iterations
        verbose: Print solver failures
    """
    tolerance: float = 1e-6
    maximum_iteration: int = 1000
    verbose: bool = False
