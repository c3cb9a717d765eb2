"""
predictive: MPC Problem Building and Solver Binding
===================================================

predictive builds the optimization problems of Model Predictive Control
(dense QPs for linear models, SLSQP-ready NLPs for nonlinear ones) and
extracts the command to apply at each control cycle.

Quick Start
-----------
>>> import numpy as np
>>> from predictive.mpc import LinearMPC
>>>
>>> mpc = LinearMPC(nx=2, nu=1, ndu=0, ny=2, ph=10, ch=3)
>>> mpc.set_state_space_model(np.eye(2), [[0.0], [1.0]], np.eye(2))
>>> mpc.set_references(np.array([1.0, 0.0]), np.zeros(1), np.zeros(1))
>>> result = mpc.step(np.zeros(2), np.zeros(1))
>>> print(result.cmd, result.retcode)
"""

__version__ = "0.1.0"
__author__ = "predictive Contributors"

from .dimensions import Dimensions
from .parameters import Parameters, NLParameters, LParameters
from .result import Result, SolveResult, Status
from .solver import solve_qp
from .nlp import SLSQPSolver
from .exceptions import (
    PredictiveError,
    DimensionError,
    InvalidInputError,
    NotInitializedError,
    UnavailableFeatureError,
    BindError,
    SolverError,
    InfeasibleError,
)

__all__ = [
    # Version
    "__version__",

    # Dimensions and settings
    "Dimensions",
    "Parameters",
    "NLParameters",
    "LParameters",

    # Solving
    "solve_qp",
    "SLSQPSolver",

    # Results
    "Result",
    "SolveResult",
    "Status",

    # Exceptions
    "PredictiveError",
    "DimensionError",
    "InvalidInputError",
    "NotInitializedError",
    "UnavailableFeatureError",
    "BindError",
    "SolverError",
    "InfeasibleError",
]


def info() -> str:
    """Return information about the predictive installation."""
    import platform

    import numpy
    import scipy

    lines = [
        f"predictive version: {__version__}",
        f"Python version: {platform.python_version()}",
        f"Platform: {platform.platform()}",
        f"NumPy version: {numpy.__version__}",
        f"SciPy version: {scipy.__version__}",
    ]
    return "\n".join(lines)
