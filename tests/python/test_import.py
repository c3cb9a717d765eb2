"""
Test that predictive can be imported and basic functionality works.
"""

import pytest


def test_import_predictive():
    """Verify predictive package can be imported."""
    import predictive
    assert hasattr(predictive, "__version__")


def test_version_format():
    """Verify version string is properly formatted."""
    import predictive
    version = predictive.__version__

    parts = version.split(".")
    assert len(parts) >= 2
    assert all(p.isdigit() or "-" in p for p in parts)


def test_import_solvers():
    """Verify solver entry points can be imported."""
    from predictive import SLSQPSolver, solve_qp
    assert callable(solve_qp)
    assert SLSQPSolver is not None


def test_import_mpc_components():
    """Verify MPC components can be imported."""
    from predictive.mpc import (
        LinearMPC,
        LOptimizer,
        Mapping,
        NLOptimizer,
        ProblemBuilder,
        StateSpaceModel,
    )
    for cls in (LinearMPC, LOptimizer, Mapping, NLOptimizer, ProblemBuilder, StateSpaceModel):
        assert cls is not None


def test_import_result():
    """Verify result classes can be imported."""
    from predictive import Result, SolveResult, Status
    assert SolveResult is not None
    assert Result is not None
    assert Status.SUCCESS.is_successful
    assert not Status.FAILURE.is_successful


def test_import_exceptions():
    """Verify exception classes can be imported."""
    from predictive import (
        BindError,
        DimensionError,
        InfeasibleError,
        InvalidInputError,
        NotInitializedError,
        PredictiveError,
        SolverError,
        UnavailableFeatureError,
    )

    for exc in (BindError, DimensionError, InvalidInputError, NotInitializedError,
                SolverError, UnavailableFeatureError):
        assert issubclass(exc, PredictiveError)
    assert issubclass(InfeasibleError, SolverError)


def test_info_function():
    """Verify info() function works."""
    import predictive
    info = predictive.info()

    assert isinstance(info, str)
    assert "predictive version" in info
    assert "SciPy version" in info


def test_result_copy_is_independent():
    import numpy as np

    from predictive import Result

    r = Result(cmd=np.array([1.0, 2.0]), cost=3.0, retcode=1)
    c = r.copy()
    c.cmd[0] = 10.0
    assert r.cmd[0] == 1.0
    assert r.is_successful


@pytest.mark.parametrize("kwargs", [{"nx": -1}, {"ph": 2, "ch": 3}, {"nx": 1.5}])
def test_invalid_dimensions(kwargs):
    from predictive import Dimensions, InvalidInputError

    with pytest.raises(InvalidInputError):
        Dimensions(**kwargs)
