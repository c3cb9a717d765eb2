"""
predictive Model Predictive Control
===================================

Problem building and solver binding for linear and nonlinear MPC.

Linear MPC
----------
>>> from predictive.mpc import LinearMPC
>>>
>>> mpc = LinearMPC(nx=2, nu=1, ndu=0, ny=2, ph=10, ch=3)
>>> mpc.set_state_space_model(A, B, C)
>>> mpc.set_objective_weights(np.ones(2), np.zeros(1), np.full(1, 0.1))
>>> result = mpc.step(x0, u_prev)
>>> u_apply = result.cmd

Nonlinear MPC
-------------
>>> from predictive.mpc import Mapping, NLOptimizer
>>>
>>> mapping = Mapping()
>>> mapping.initialize(nx=2, nu=1, ny=2, ph=10, ch=3)
>>> opt = NLOptimizer()
>>> opt.initialize(nx=2, nu=1, ny=2, ph=10, ch=3)
>>> opt.set_mapping(mapping)
>>> opt.bind(objective)              # evaluate(x, need_gradient)
>>> opt.bind_eq(constraints, tol)    # evaluate_state_model_eq(x, need_gradient)
>>> result = opt.run(x0, u_prev)

Classes
-------
ProblemBuilder
    Dense QP assembly for the linear MPC
Problem
    QP data ``P, q, A, l, u``
Mapping
    Move blocking between the compressed and full input trajectories
NLOptimizer
    Evaluator / solver adapter for the nonlinear MPC
LOptimizer
    QP optimizer for the linear MPC
LinearMPC
    Linear MPC front-end
StateSpaceModel
    Discrete-time linear plant model
"""

from .builder import Problem, ProblemBuilder
from .dynamics import StateSpaceModel
from .evaluators import (
    ConstraintEvaluation,
    ConstraintsEvaluator,
    ObjectiveEvaluation,
    ObjectiveEvaluator,
)
from .l_optimizer import LOptimizer
from .lmpc import LinearMPC
from .mapping import Mapping
from .nl_optimizer import NLOptimizer

__all__ = [
    # Problem building
    "Problem",
    "ProblemBuilder",
    "Mapping",
    # Optimizers
    "LOptimizer",
    "NLOptimizer",
    # Evaluators
    "ObjectiveEvaluation",
    "ConstraintEvaluation",
    "ObjectiveEvaluator",
    "ConstraintsEvaluator",
    # Front-end
    "LinearMPC",
    "StateSpaceModel",
]
