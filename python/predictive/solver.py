"""predictive QP Solver Interface."""

from __future__ import annotations

import time
from typing import Any, Dict, Optional, Union

import numpy as np
from scipy import sparse
from scipy.optimize import minimize

from .exceptions import DimensionError
from .logger import get_logger
from .result import SolveResult, Status

logger = get_logger(__name__)

ArrayLike = Union[np.ndarray, sparse.spmatrix]

# SLSQP exit modes
_SLSQP_STATUS = {
    0: Status.SUCCESS,
    4: Status.INFEASIBLE,
    8: Status.ROUNDOFF_LIMITED,
    9: Status.MAXEVAL_REACHED,
}


def _dense(M: ArrayLike) -> np.ndarray:
    return M.toarray() if sparse.issparse(M) else np.asarray(M, dtype=np.float64)


def solve_qp(
    P: ArrayLike,
    q: np.ndarray,
    A: ArrayLike,
    l: np.ndarray,
    u: np.ndarray,
    params: Optional[Dict[str, Any]] = None,
) -> SolveResult:
    """
    Solve ``min 0.5 x'Px + q'x  s.t.  l <= Ax <= u``.

    Rows with ``l[i] == u[i]`` are treated as equality constraints, rows
    bounded by ``-inf``/``inf`` on both sides are dropped.

    Args:
        P: Symmetric Hessian (n, n); only the upper triangle is required
            when ``params["upper"]`` is set
        q: Linear cost (n,)
        A: Constraint matrix (m, n)
        l: Lower bounds (m,)
        u: Upper bounds (m,)
        params: Optional settings: ``max_iterations``, ``tolerance``,
            ``warm_start`` (initial x), ``upper`` and ``verbose``

    Returns:
        SolveResult; failures are reported through ``status``
    """
    start_time = time.perf_counter()
    params = params or {}
    max_iters = params.get("max_iterations", params.get("max_iters", 1000))
    tol = params.get("tolerance", params.get("tol", 1e-6))
    verbose = params.get("verbose", False)

    q = np.asarray(q, dtype=np.float64).ravel()
    n = len(q)
    P = _dense(P)
    if P.shape != (n, n):
        raise DimensionError(f"P must be ({n},{n}), got {P.shape}")
    if params.get("upper", False):
        P = P + np.triu(P, 1).T

    A = _dense(A)
    if A.ndim == 1:
        A = A.reshape(1, -1)
    m = A.shape[0]
    if A.shape[1] != n:
        raise DimensionError(f"A columns {A.shape[1]} != n={n}")
    l = np.asarray(l, dtype=np.float64).ravel()
    u = np.asarray(u, dtype=np.float64).ravel()
    if len(l) != m or len(u) != m:
        raise DimensionError(f"Bounds mismatch: l={len(l)}, u={len(u)}, m={m}")

    constraints = []
    eq_mask = np.isfinite(l) & (np.abs(l - u) < 1e-10)
    if eq_mask.any():
        A_eq, b_eq = A[eq_mask], l[eq_mask]
        constraints.append({"type": "eq", "fun": lambda x, A=A_eq, b=b_eq: A @ x - b,
                            "jac": lambda x, A=A_eq: A})
    lower_mask = ~eq_mask & np.isfinite(l)
    if lower_mask.any():
        A_lo, b_lo = A[lower_mask], l[lower_mask]
        constraints.append({"type": "ineq", "fun": lambda x, A=A_lo, b=b_lo: A @ x - b,
                            "jac": lambda x, A=A_lo: A})
    upper_mask = ~eq_mask & np.isfinite(u)
    if upper_mask.any():
        A_up, b_up = A[upper_mask], u[upper_mask]
        constraints.append({"type": "ineq", "fun": lambda x, A=A_up, b=b_up: b - A @ x,
                            "jac": lambda x, A=A_up: -A})

    x0 = params.get("warm_start")
    x0 = np.zeros(n) if x0 is None else np.asarray(x0, dtype=np.float64).ravel()

    try:
        res = minimize(lambda x: 0.5 * x @ P @ x + q @ x, x0, method="SLSQP",
                       jac=lambda x: P @ x + q, constraints=constraints,
                       options={"maxiter": max_iters, "ftol": tol})
    except (ValueError, np.linalg.LinAlgError) as e:
        if verbose:
            print(f"scipy QP failed: {e}")
        logger.warning(f"QP solver exception: {e}")
        return SolveResult(status=Status.FAILURE, objective=float("nan"), x=np.zeros(n),
                           solve_time=time.perf_counter() - start_time)

    status = _SLSQP_STATUS.get(res.status, Status.FAILURE)
    if status.is_successful and m > 0:
        Ax = A @ res.x
        violation = max(np.max(l - Ax, initial=0.0), np.max(Ax - u, initial=0.0))
        if violation > max(1e-6, 10 * tol):
            logger.debug(f"QP solution violates constraints by {violation:.3e}")
            status = Status.INFEASIBLE
    if verbose and not status.is_successful:
        print(f"scipy QP stopped: {res.message}")

    return SolveResult(
        status=status,
        objective=float(res.fun),
        x=res.x,
        iterations=int(getattr(res, "nit", 0)),
        solve_time=time.perf_counter() - start_time,
        info={"message": res.message},
    )
