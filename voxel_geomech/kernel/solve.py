# voxel_geomech/kernel/solve.py
"""Jacobi-preconditioned conjugate gradient over the assembled CSR system."""

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from ..cancel import CancellationToken, ProgressCallback, check_cancel
from .assemble import csr_diagonal
from .backend import BackendError, ComputeBackend, REMEDIATION_HINTS

logger = logging.getLogger(__name__)

# Diagonal entries at or below this use a unit preconditioner
PIVOT_EPS = 1e-12
# |pᵀq| at or below this fraction of ρ ends the iteration (search direction exhausted)
BREAKDOWN_RTOL = 1e-30

PROGRESS_START = 0.35
PROGRESS_SPAN = 0.40


@dataclass
class PCGResult:
    """Outcome of one PCG solve. Non-convergence is reported, not raised."""
    displacement: np.ndarray
    converged: bool
    iterations: int
    relative_residual: float
    residual_history: List[float] = field(default_factory=list)


def jacobi_preconditioner(row_ptr, col_idx, values) -> np.ndarray:
    """
    Inverse diagonal of K, falling back to 1.0 on degenerate pivots.

    Args:
        row_ptr, col_idx, values: CSR arrays

    Returns:
        M_inv: (ndof,) preconditioner
    """
    diag = csr_diagonal(row_ptr, col_idx, values)
    m_inv = np.ones_like(diag)
    good = diag > PIVOT_EPS
    m_inv[good] = 1.0 / diag[good]
    return m_inv


def pcg_solve(
    row_ptr: np.ndarray,
    col_idx: np.ndarray,
    values: np.ndarray,
    force: np.ndarray,
    is_dirichlet: np.ndarray,
    dirichlet_value: np.ndarray,
    max_iterations: int,
    tolerance: float,
    backend: Optional[ComputeBackend] = None,
    progress: Optional[ProgressCallback] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> PCGResult:
    """
    Solve K·u = f with Jacobi-preconditioned conjugate gradients.

    Dirichlet DOFs start at their prescribed value and are never updated;
    the matrix-vector product treats their rows as identity and drops their
    columns, so the free block is solved as an SPD system.

    Args:
        row_ptr, col_idx, values: CSR stiffness
        force: (ndof,) load vector, equal to the prescribed value on Dirichlet DOFs
        is_dirichlet: (ndof,) bool mask
        dirichlet_value: (ndof,) prescribed displacements
        max_iterations: iteration cap
        tolerance: stop once ‖r‖ / √ρ₀ < tolerance
        backend: kernels to run on (CPU when omitted)
        progress: receives 0.35..0.75 every 10 iterations
        cancel_token: polled every iteration

    Returns:
        PCGResult (converged=False when the cap is reached)

    Raises:
        SimulationCancelled: if the token is cancelled mid-solve
        BackendError: on device out-of-memory
    """
    backend = backend or ComputeBackend()
    xp = backend.xp
    ndof = force.shape[0]

    try:
        system = backend.system(row_ptr, col_idx, values, is_dirichlet)
        m_inv = backend.asarray(jacobi_preconditioner(row_ptr, col_idx, values))
        u = backend.asarray(np.where(is_dirichlet, dirichlet_value, 0.0))
        f = backend.asarray(force)
        r = xp.empty_like(u)
        q = xp.empty_like(u)
    except MemoryError as exc:
        raise BackendError(f"Out of memory allocating solver vectors ({exc}); {REMEDIATION_HINTS}") from exc

    # r = f - K·u
    backend.spmv(system, u, q)
    r[...] = f - q
    z = m_inv * r
    p = z.copy()
    rho = backend.dot(r, z)
    rho0 = rho
    history = []

    if rho0 <= 0.0:
        logger.info("Zero load vector; displacement is the prescribed field")
        return PCGResult(backend.to_host(u), True, 0, 0.0, history)

    norm0 = math.sqrt(rho0)
    free = system.free
    rel = math.sqrt(backend.dot(r, r)) / norm0
    converged = rel < tolerance
    iteration = 0

    while not converged and iteration < max_iterations:
        check_cancel(cancel_token, "linear solve")
        iteration += 1

        backend.spmv(system, p, q)
        pq = backend.dot(p, q)
        if abs(pq) <= BREAKDOWN_RTOL * abs(rho):
            logger.warning("PCG breakdown at iteration %d (|pᵀq| = %.3e, ρ = %.3e)", iteration, pq, rho)
            break
        alpha = rho / pq

        backend.axpy(alpha, p * free, u)
        backend.axpy(-alpha, q, r)

        rel = math.sqrt(backend.dot(r, r)) / norm0
        history.append(rel)
        if rel < tolerance:
            converged = True
            break

        z = m_inv * r
        rho_new = backend.dot(r, z)
        beta = rho_new / rho
        rho = rho_new
        backend.xpby(z, beta, p)

        if iteration % 10 == 0 and progress is not None:
            progress(PROGRESS_START + PROGRESS_SPAN * iteration / max_iterations)
        if iteration % 100 == 0:
            logger.debug("PCG iteration %d, relative residual %.3e", iteration, rel)

    if converged:
        logger.info("PCG converged in %d iterations (residual %.3e)", iteration, rel)
    else:
        logger.warning(
            "PCG did not converge after %d iterations (residual %.3e); "
            "results may be approximate", iteration, rel,
        )
    if progress is not None:
        progress(PROGRESS_START + PROGRESS_SPAN)
    return PCGResult(backend.to_host(u), converged, iteration, rel, history)
