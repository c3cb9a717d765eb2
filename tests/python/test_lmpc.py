"""
Tests for the linear MPC front-end.

Most cases use the scalar integrator x+ = x + u, y = x, starting at x0 = 0
with output reference 1, output weight 1 and no input weights.
"""

import logging

import numpy as np
import pytest


def _integrator_mpc(ph=5, ch=5):
    from predictive import LParameters
    from predictive.mpc import LinearMPC

    mpc = LinearMPC(nx=1, nu=1, ndu=0, ny=1, ph=ph, ch=ch)
    mpc.set_state_space_model([[1.0]], [[1.0]], [[1.0]])
    mpc.set_references(np.ones(1), np.zeros(1), np.zeros(1))
    mpc.set_optimizer_parameters(LParameters(tolerance=1e-9))
    return mpc


class TestStep:
    """Single control cycles with known optima."""

    def test_reaches_reference_in_one_move(self):
        mpc = _integrator_mpc(ph=5, ch=5)
        result = mpc.step(np.zeros(1), np.zeros(1))

        assert result.retcode > 0
        np.testing.assert_allclose(result.cmd, [1.0], atol=1e-3)

    def test_single_block_constant_command(self):
        # x_k = k u, minimize sum_k (k u - 1)^2
        mpc = _integrator_mpc(ph=5, ch=1)
        result = mpc.step(np.zeros(1), np.zeros(1))

        assert result.retcode > 0
        np.testing.assert_allclose(result.cmd, [15.0 / 55.0], atol=1e-3)

    def test_input_bound_active(self):
        mpc = _integrator_mpc(ph=5, ch=5)
        inf = np.full(1, np.inf)
        mpc.set_constraints(-inf, -inf, -inf, inf, np.full(1, 0.5), inf)
        result = mpc.step(np.zeros(1), np.zeros(1))

        assert result.retcode > 0
        np.testing.assert_allclose(result.cmd, [0.5], atol=1e-3)

    def test_infeasible_keeps_previous_command(self):
        mpc = _integrator_mpc(ph=5, ch=5)
        first = mpc.step(np.zeros(1), np.zeros(1))
        assert first.retcode > 0

        inf = np.full(1, np.inf)
        mpc.set_constraints(np.ones(1), -inf, -inf, inf, inf, inf)
        second = mpc.step(np.zeros(1), first.cmd)

        assert second.retcode == -1
        np.testing.assert_array_equal(second.cmd, first.cmd)
        assert mpc.get_last_result().retcode == -1

    def test_previous_command_outside_input_box(self):
        mpc = _integrator_mpc(ph=5, ch=5)
        inf = np.full(1, np.inf)
        mpc.set_constraints(-inf, np.full(1, -0.5), -inf, inf, np.full(1, 0.5), inf)
        result = mpc.step(np.zeros(1), np.full(1, 2.0))

        assert result.retcode > 0
        np.testing.assert_allclose(result.cmd, [0.5], atol=1e-3)

    def test_optimize_matches_step(self):
        a = _integrator_mpc(ph=5, ch=1).optimize(np.zeros(1), np.zeros(1))
        b = _integrator_mpc(ph=5, ch=1).step(np.zeros(1), np.zeros(1))
        np.testing.assert_allclose(a.cmd, b.cmd, atol=1e-6)

    def test_wrong_state_size(self):
        from predictive import DimensionError

        mpc = _integrator_mpc()
        with pytest.raises(DimensionError):
            mpc.step(np.zeros(2), np.zeros(1))


class TestConfiguration:

    def test_weights_replicated_along_horizon(self):
        from predictive.mpc import LinearMPC

        mpc = LinearMPC(nx=2, nu=1, ndu=0, ny=2, ph=4, ch=2)
        mpc.set_objective_weights([1.0, 2.0], [0.5], [0.1])

        np.testing.assert_array_equal(mpc.builder.wOutput, np.tile([[1.0], [2.0]], (1, 5)))
        np.testing.assert_array_equal(mpc.builder.wU, np.full((1, 5), 0.5))
        np.testing.assert_array_equal(mpc.builder.wDeltaU, np.full((1, 4), 0.1))

    def test_set_model_with_disturbances(self):
        from predictive.mpc import LinearMPC, StateSpaceModel

        system = StateSpaceModel(
            A=np.eye(2), B=[[0.0], [1.0]], Bd=[[1.0], [0.0]], Dd=[[0.0], [2.0]],
        )
        mpc = LinearMPC(nx=2, nu=1, ndu=1, ny=2, ph=3, ch=1)
        assert mpc.set_model(system)

        np.testing.assert_array_equal(mpc.builder.ssBv[:2], system.Bd)
        np.testing.assert_array_equal(mpc.builder.ssDv[:2], system.Dd)

    @pytest.mark.parametrize("method, arg", [
        ("set_continuous_time_model", 0.1),
        ("set_input_scale", np.ones(1)),
        ("set_state_scale", np.ones(1)),
    ])
    def test_unavailable_features(self, method, arg):
        from predictive import UnavailableFeatureError

        mpc = _integrator_mpc()
        with pytest.raises(UnavailableFeatureError):
            getattr(mpc, method)(arg)

    def test_logger_prefix(self, caplog):
        from predictive.mpc import LinearMPC

        mpc = _integrator_mpc()
        LinearMPC.set_logger_prefix("ctrl-1")
        LinearMPC.set_logger_level(logging.INFO)
        try:
            with caplog.at_level(logging.INFO, logger="predictive"):
                mpc.step(np.zeros(1), np.zeros(1))
        finally:
            LinearMPC.set_logger_prefix("")
            LinearMPC.set_logger_level(logging.NOTSET)

        assert "[ctrl-1] Optimization end with code" in caplog.text


@pytest.mark.integration
class TestClosedLoop:

    def test_simulate_integrator(self):
        from predictive.mpc import StateSpaceModel

        mpc = _integrator_mpc(ph=5, ch=5)
        system = StateSpaceModel(A=[[1.0]], B=[[1.0]])
        traj = mpc.simulate(system, np.zeros(1), n_steps=6)

        assert traj["x"].shape == (7, 1)
        assert traj["u"].shape == (6, 1)
        assert traj["cost"].shape == (6,)
        assert np.all(traj["retcode"] > 0)
        np.testing.assert_allclose(traj["x"][-1], [1.0], atol=1e-2)

    def test_simulate_rejects_wrong_system(self):
        from predictive import DimensionError
        from predictive.mpc import StateSpaceModel

        mpc = _integrator_mpc()
        system = StateSpaceModel(A=np.eye(2), B=np.ones((2, 1)))
        with pytest.raises(DimensionError):
            mpc.simulate(system, np.zeros(2), n_steps=2)

    def test_double_integrator_respects_input_bounds(self):
        from predictive.mpc import LinearMPC, StateSpaceModel

        dt = 0.1
        system = StateSpaceModel(A=[[1.0, dt], [0.0, 1.0]], B=[[0.5 * dt ** 2], [dt]],
                                 C=[[1.0, 0.0]], dt=dt)
        mpc = LinearMPC(nx=2, nu=1, ndu=0, ny=1, ph=10, ch=3)
        mpc.set_model(system)
        mpc.set_objective_weights(np.ones(1), np.zeros(1), np.full(1, 1e-3))
        mpc.set_constraints(np.full(2, -np.inf), np.full(1, -5.0), np.full(1, -np.inf),
                            np.full(2, np.inf), np.full(1, 5.0), np.full(1, np.inf))
        mpc.set_references(np.ones(1), np.zeros(1), np.zeros(1))

        traj = mpc.simulate(system, np.zeros(2), n_steps=10)

        assert np.all(traj["retcode"] > 0)
        assert np.all(np.abs(traj["u"]) <= 5.0 + 1e-4)
        assert traj["u"][0, 0] > 0
        assert traj["x"][-1, 0] > 0


class TestLOptimizer:

    def test_builder_dimensions_checked(self, scenario_builder):
        from predictive import InvalidInputError
        from predictive.mpc import LOptimizer

        opt = LOptimizer()
        opt.initialize(nx=2, nu=1, ny=2, ph=4, ch=1)
        with pytest.raises(InvalidInputError):
            opt.set_builder(scenario_builder)

    def test_missing_builder(self):
        from predictive import InvalidInputError
        from predictive.mpc import LOptimizer

        opt = LOptimizer()
        opt.initialize(nx=1, nu=1, ny=1, ph=2, ch=1)
        with pytest.raises(InvalidInputError):
            opt.run(np.zeros(1), np.zeros(1))

    def test_command_read_from_first_step(self, scenario_builder):
        from predictive.mpc import LOptimizer

        inf = np.inf
        scenario_builder.set_constraints(
            np.full((2, 3), -inf), np.full((1, 3), -inf), np.full((2, 3), -inf),
            np.full((2, 3), inf), np.full((1, 3), inf), np.full((2, 3), inf),
        )
        opt = LOptimizer()
        opt.initialize(nx=2, nu=1, ny=2, ph=3, ch=1)
        opt.set_builder(scenario_builder)
        assert opt.set_references(np.zeros(2), np.zeros(1), np.zeros(1))

        # already at the origin with u_prev = 0: nothing to do
        result = opt.run(np.zeros(2), np.zeros(1))
        assert result.retcode > 0
        np.testing.assert_allclose(result.cmd, [0.0], atol=1e-4)
        assert result.cost == pytest.approx(0.0, abs=1e-6)
