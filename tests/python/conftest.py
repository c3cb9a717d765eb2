"""
pytest configuration and fixtures for predictive tests.
"""

import numpy as np
import pytest

from predictive.mpc import ConstraintEvaluation, Mapping, ObjectiveEvaluation


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def scenario_dims():
    """
    Reference scenario.

    nx=2, nu=1, ny=2, ph=3, ch=1; A = I, B = [0; 1], C = I.
    """
    return {"nx": 2, "nu": 1, "ndu": 0, "ny": 2, "ph": 3, "ch": 1}


@pytest.fixture
def scenario_builder(scenario_dims):
    """ProblemBuilder for the reference scenario, unit weights, zero constraints."""
    from predictive.mpc import ProblemBuilder

    d = scenario_dims
    builder = ProblemBuilder()
    builder.initialize(**d)
    builder.set_state_model(np.eye(2), np.array([[0.0], [1.0]]), np.eye(2))
    builder.set_objective(
        np.ones((d["ny"], d["ph"] + 1)),
        np.ones((d["nu"], d["ph"] + 1)),
        np.ones((d["nu"], d["ph"])),
    )
    return builder


@pytest.fixture
def scenario_mapping(scenario_dims):
    """Mapping for the reference scenario."""
    d = scenario_dims
    mapping = Mapping()
    mapping.initialize(nx=d["nx"], nu=d["nu"], ny=d["ny"], ph=d["ph"], ch=d["ch"])
    return mapping


class LinearEvaluators:
    """
    Objective and dynamics constraints of a linear system written over the
    nonlinear decision vector ``[x_1 … x_ph, z_0 … z_{ch-1}, slack]``.

    Objective: ``Σ |x_k|² + r Σ |u_k|² + w slack²`` with ``u = Iz2u z``.
    Dynamics residual: ``x_{k+1} - A x_k - B u_k`` for ``k = 0 … ph-1``.
    Gradients are returned in the column convention.
    """

    def __init__(self, A, B, mapping, r=0.1, w=10.0):
        self.A = np.atleast_2d(np.asarray(A, dtype=float))
        self.B = np.atleast_2d(np.asarray(B, dtype=float))
        self.mapping = mapping
        self.r = r
        self.w = w
        self.x0 = np.zeros(self.A.shape[0])

        dim = mapping.dim
        nx, nu, ph, ch = dim.nx, dim.nu, dim.ph, dim.ch
        self.n = dim.n_opt
        self.n_states = ph * nx
        Iz2u = mapping.Iz2u

        # residual = M @ x - c(x0)
        M = np.zeros((ph * nx, self.n))
        for k in range(ph):
            rows = slice(k * nx, (k + 1) * nx)
            M[rows, k * nx:(k + 1) * nx] = np.eye(nx)
            if k > 0:
                M[rows, (k - 1) * nx:k * nx] = -self.A
            M[rows, self.n_states:self.n_states + ch * nu] = -self.B @ Iz2u[k * nu:(k + 1) * nu]
        self.M = M
        self.Iz2u = Iz2u

    def offset(self):
        c = np.zeros(self.n_states)
        c[:self.A.shape[0]] = self.A @ self.x0
        return c

    def evaluate(self, x, need_gradient):
        states = x[:self.n_states]
        z = x[self.n_states:-1]
        u = self.Iz2u @ z
        slack = x[-1]
        value = states @ states + self.r * u @ u + self.w * slack ** 2
        grad = np.zeros(0)
        if need_gradient:
            grad = np.zeros((self.n, 1))
            grad[:self.n_states, 0] = 2 * states
            grad[self.n_states:-1, 0] = 2 * self.r * self.Iz2u.T @ u
            grad[-1, 0] = 2 * self.w * slack
        return ObjectiveEvaluation(value=value, grad=grad)

    def evaluate_state_model_eq(self, x, need_gradient):
        value = self.M @ x - self.offset()
        grad = self.M.T if need_gradient else np.zeros((0, 0))
        return ConstraintEvaluation(value=value, grad=grad)

    def evaluate_ineq(self, x, need_gradient):
        return ConstraintEvaluation(value=np.zeros(0))

    def evaluate_eq(self, x, need_gradient):
        return ConstraintEvaluation(value=np.zeros(0))

    def expected_command(self):
        """Closed-form optimum of the unconstrained problem."""
        dim = self.mapping.dim
        nz = dim.ch * dim.nu
        # states = F z + g, from M_x states + M_z z = c
        M_x = self.M[:, :self.n_states]
        M_z = self.M[:, self.n_states:self.n_states + nz]
        F = -np.linalg.solve(M_x, M_z)
        g = np.linalg.solve(M_x, self.offset())
        H = np.vstack([F, np.sqrt(self.r) * self.Iz2u])
        rhs = -np.concatenate([g, np.zeros(self.Iz2u.shape[0])])
        z, *_ = np.linalg.lstsq(H, rhs, rcond=None)
        return (self.Iz2u @ z)[:dim.nu]


@pytest.fixture
def integrator_problem():
    """
    Scalar integrator ``x+ = x + u`` with ph=4, ch=2 for the nonlinear path.
    """
    mapping = Mapping()
    mapping.initialize(nx=1, nu=1, ny=1, ph=4, ch=2)
    evaluators = LinearEvaluators(np.eye(1), np.eye(1), mapping)
    return mapping, evaluators


# ============================================================================
# Markers
# ============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "integration: marks integration tests")
