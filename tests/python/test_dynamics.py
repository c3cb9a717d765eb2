"""
Tests for the state-space plant model.
"""

import numpy as np
import pytest


class TestStateSpaceModel:
    """Test StateSpaceModel class."""

    def test_basic_creation(self):
        """Create basic linear system."""
        from predictive.mpc import StateSpaceModel

        A = np.array([[1, 0.1], [0, 1]])
        B = np.array([[0.005], [0.1]])

        system = StateSpaceModel(A, B)

        assert system.n_states == 2
        assert system.n_inputs == 1
        assert system.n_outputs == 2  # Default: outputs = states
        assert system.n_disturbances == 0

    def test_step(self):
        from predictive.mpc import StateSpaceModel

        A = np.array([[1, 0.1], [0, 1]])
        B = np.array([[0.005], [0.1]])
        system = StateSpaceModel(A, B)

        x = np.array([0, 1])
        u = np.array([2.0])

        np.testing.assert_allclose(system.step(x, u), A @ x + B @ u)

    def test_step_with_disturbance(self):
        from predictive.mpc import StateSpaceModel

        system = StateSpaceModel(np.eye(2), np.zeros((2, 1)),
                                 Bd=np.array([[1.0], [0.5]]), Dd=np.array([[0.0], [3.0]]))
        x = np.array([1.0, 2.0])
        d = np.array([2.0])

        np.testing.assert_allclose(system.step(x, np.zeros(1), d), [3.0, 3.0])
        np.testing.assert_allclose(system.output(x, d), [1.0, 8.0])
        # missing disturbance is zero
        np.testing.assert_allclose(system.output(x), x)

    def test_simulate(self):
        """Simulate trajectory."""
        from predictive.mpc import StateSpaceModel

        A = np.array([[1, 0.1], [0, 1]])
        B = np.array([[0.005], [0.1]])
        system = StateSpaceModel(A, B)

        x0 = np.array([0, 1])
        traj = system.simulate(x0, np.zeros((10, 1)))

        assert traj.shape == (11, 2)  # 10 steps + initial
        np.testing.assert_allclose(traj[0], x0)
        np.testing.assert_allclose(traj[-1], [1.0, 1.0])

    def test_output(self):
        from predictive.mpc import StateSpaceModel

        C = np.array([[1, 2]])
        system = StateSpaceModel(np.eye(2), np.zeros((2, 1)), C=C)

        np.testing.assert_allclose(system.output(np.array([1, 2])), [5.0])

    def test_invalid_dimensions(self):
        """Error on invalid dimensions."""
        from predictive.mpc import StateSpaceModel

        A = np.array([[1, 0], [0, 1]])
        B = np.array([[1], [1], [1]])  # Wrong rows

        with pytest.raises(ValueError, match="B rows"):
            StateSpaceModel(A, B)

    def test_non_square_state_matrix(self):
        from predictive.mpc import StateSpaceModel

        with pytest.raises(ValueError, match="square"):
            StateSpaceModel(np.ones((2, 3)), np.ones((2, 1)))

    def test_disturbance_shape_mismatch(self):
        from predictive.mpc import StateSpaceModel

        with pytest.raises(ValueError, match="Bd must be"):
            StateSpaceModel(np.eye(2), np.ones((2, 1)), Bd=np.ones((2, 1)), Dd=np.ones((2, 2)))
