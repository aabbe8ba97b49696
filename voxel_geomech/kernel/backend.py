# voxel_geomech/kernel/backend.py
"""
COMPUTE BACKEND: CPU (numpy / scipy.sparse) or GPU (cupy)
=========================================================

The PCG solver is written once against a small kernel interface:

    spmv(system, x, out)      out = K·x, Dirichlet rows as identity
    dot(a, b) -> float        reduced on the device, one scalar read back
    axpy(alpha, x, y)         y += α·x
    xpby(x, beta, y)          y = x + β·y
    scale(alpha, y)           y *= α

The CPU backend uses numpy arrays and a scipy CSR matrix; the GPU backend
uses cupy arrays and a cupyx CSR matrix with the same calls. Requesting the
GPU when cupy or a device is missing raises BackendError; there is no
silent fallback.
"""

import logging
from dataclasses import dataclass

import numpy as np
import scipy.sparse as sp

from ..params import GeomechanicsError

logger = logging.getLogger(__name__)

try:
    import cupy as cp
    import cupyx.scipy.sparse as cpsparse
    HAS_CUPY = True
except ImportError:
    cp = None
    cpsparse = None
    HAS_CUPY = False

REMEDIATION_HINTS = (
    "reduce the simulated domain, enable offloading to disk, "
    "or set use_gpu=False to run on the CPU"
)


class BackendError(GeomechanicsError, RuntimeError):
    """No usable compute device, or the device ran out of memory."""


@dataclass
class CSRSystem:
    """
    Device-resident linear system handed to every solver kernel.

    Attributes:
    -----------
    matrix : CSR matrix (scipy or cupyx) of the full stiffness
    free : float mask, 1.0 on unconstrained DOFs and 0.0 on Dirichlet DOFs
    is_dirichlet : bool mask of constrained DOFs
    """
    matrix: object
    free: object
    is_dirichlet: object

    @property
    def size(self) -> int:
        return self.matrix.shape[0]


class ComputeBackend:
    """Vector kernels for one device. Use ComputeBackend.create(use_gpu)."""

    name = "cpu"

    def __init__(self):
        self.xp = np

    @staticmethod
    def create(use_gpu: bool = False) -> "ComputeBackend":
        if not use_gpu:
            return ComputeBackend()
        return GPUBackend()

    # --- transfers ----------------------------------------------------
    def asarray(self, arr, dtype=np.float64):
        return np.ascontiguousarray(arr, dtype=dtype)

    def to_host(self, arr) -> np.ndarray:
        return np.asarray(arr)

    def system(self, row_ptr, col_idx, values, is_dirichlet) -> CSRSystem:
        n = row_ptr.shape[0] - 1
        matrix = sp.csr_matrix((values, col_idx, row_ptr), shape=(n, n))
        mask = np.asarray(is_dirichlet, dtype=bool)
        return CSRSystem(matrix, (~mask).astype(np.float64), mask)

    # --- kernels ------------------------------------------------------
    def spmv(self, system: CSRSystem, x, out):
        # Dirichlet columns drop out, Dirichlet rows copy x through
        out[...] = system.matrix @ (x * system.free)
        out[system.is_dirichlet] = x[system.is_dirichlet]
        return out

    def dot(self, a, b) -> float:
        return float(self.xp.dot(a, b))

    def axpy(self, alpha: float, x, y):
        y += alpha * x
        return y

    def xpby(self, x, beta: float, y):
        y *= beta
        y += x
        return y

    def scale(self, alpha: float, y):
        y *= alpha
        return y


class GPUBackend(ComputeBackend):
    """cupy-backed kernels. Construction fails loudly without a usable device."""

    name = "gpu"

    def __init__(self):
        if not HAS_CUPY:
            raise BackendError(
                f"GPU requested but cupy is not installed; {REMEDIATION_HINTS}"
            )
        try:
            n_devices = cp.cuda.runtime.getDeviceCount()
        except cp.cuda.runtime.CUDARuntimeError as exc:
            raise BackendError(
                f"GPU requested but no CUDA device is usable ({exc}); {REMEDIATION_HINTS}"
            ) from exc
        if n_devices < 1:
            raise BackendError(f"GPU requested but no CUDA device found; {REMEDIATION_HINTS}")
        self.xp = cp
        logger.info("Using GPU backend (%d device(s))", n_devices)

    def asarray(self, arr, dtype=np.float64):
        try:
            return cp.asarray(arr, dtype=dtype)
        except cp.cuda.memory.OutOfMemoryError as exc:
            raise BackendError(f"GPU out of memory ({exc}); {REMEDIATION_HINTS}") from exc

    def to_host(self, arr) -> np.ndarray:
        return cp.asnumpy(arr)

    def system(self, row_ptr, col_idx, values, is_dirichlet) -> CSRSystem:
        n = row_ptr.shape[0] - 1
        try:
            matrix = cpsparse.csr_matrix(
                (cp.asarray(values), cp.asarray(col_idx), cp.asarray(row_ptr)),
                shape=(n, n),
            )
            mask = cp.asarray(is_dirichlet, dtype=bool)
        except cp.cuda.memory.OutOfMemoryError as exc:
            raise BackendError(f"GPU out of memory ({exc}); {REMEDIATION_HINTS}") from exc
        return CSRSystem(matrix, (~mask).astype(cp.float64), mask)
