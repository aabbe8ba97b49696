# voxel_geomech/kernel/assemble.py
"""
ASSEMBLY: Element Stiffness → Global CSR Values
===============================================

PURPOSE:
--------
Scatter-add of element contributions into the global system, working
directly on the CSR arrays produced by the mesh builder.

Two stages per batch of elements:

    1. compute   Ke for every element of the batch in parallel (numba prange)
    2. scatter   add each Ke into the CSR values, one element after another

Stage 2 is the gather-reduce form of an atomic scatter-add: shared DOFs are
accumulated in a fixed order, so assembling twice from zeroed values gives
bit-identical results.

USAGE:
------
    values = assemble_stiffness(mesh)                 # fresh zeros
    assemble_stiffness(mesh, out=values)              # re-assembly, zeroes first
    F = assemble_nodal_forces(mesh.num_dofs, node_ids, loads)
"""

import logging

import numpy as np
from numba import njit, prange

from .dof import DOFManager
from .hex8 import element_stiffness
from .mesh import HexMesh

logger = logging.getLogger(__name__)

# Contributions smaller than this are not scattered
SCATTER_THRESHOLD = 1e-12


@njit(parallel=True, cache=True)
def _batch_stiffness(coords, E, nu):
    n = coords.shape[0]
    Ke = np.empty((n, 24, 24))
    skipped = np.zeros(n, dtype=np.int64)
    for e in prange(n):
        k, s = element_stiffness(coords[e], E[e], nu[e])
        Ke[e] = k
        skipped[e] = s
    return Ke, skipped


@njit(cache=True)
def _scatter_batch(Ke, elements, block_slots, row_ptr, values, threshold):
    for e in range(Ke.shape[0]):
        for i in range(8):
            ni = elements[e, i]
            for a in range(3):
                row_start = row_ptr[3 * ni + a]
                for j in range(8):
                    base = row_start + 3 * block_slots[e, i, j]
                    for b in range(3):
                        v = Ke[e, 3 * i + a, 3 * j + b]
                        if abs(v) >= threshold:
                            values[base + b] += v


def assemble_stiffness(
    mesh: HexMesh,
    out: np.ndarray = None,
    batch_size: int = 4096,
) -> np.ndarray:
    """
    Assemble the global stiffness values for the mesh's CSR pattern.

    Parameters:
    -----------
    mesh : HexMesh
        Mesh with pattern and per-element E, ν
    out : np.ndarray, optional
        Existing values array of length nnz. It is zeroed before
        accumulation; the pattern itself never changes.
    batch_size : int
        Elements per parallel compute batch (bounds the Ke scratch memory)

    Returns:
    --------
    np.ndarray
        CSR values, shape (nnz,)
    """
    if out is None:
        values = np.zeros(mesh.nnz, dtype=np.float64)
    else:
        if out.shape != (mesh.nnz,):
            raise ValueError(f"values must have shape ({mesh.nnz},), got {out.shape}")
        values = out
        values[:] = 0.0

    total_skipped = 0
    for start in range(0, mesh.num_elements, batch_size):
        stop = min(start + batch_size, mesh.num_elements)
        coords = np.ascontiguousarray(mesh.element_coords(start, stop))
        Ke, skipped = _batch_stiffness(
            coords, mesh.youngs_modulus[start:stop], mesh.poisson_ratio[start:stop]
        )
        total_skipped += int(skipped.sum())
        _scatter_batch(
            Ke, mesh.elements[start:stop], mesh.block_slots[start:stop],
            mesh.row_ptr, values, SCATTER_THRESHOLD,
        )
        logger.debug("Assembled elements %d-%d", start, stop)

    if total_skipped:
        logger.warning(
            "Skipped %d Gauss points with non-positive Jacobian determinant", total_skipped
        )
    return values


def csr_diagonal(row_ptr: np.ndarray, col_idx: np.ndarray, values: np.ndarray) -> np.ndarray:
    """Diagonal of a CSR matrix (zero where a row has no diagonal entry)."""
    n = row_ptr.shape[0] - 1
    rows = np.repeat(np.arange(n, dtype=np.int64), np.diff(row_ptr))
    on_diag = rows == col_idx
    diag = np.zeros(n, dtype=np.float64)
    diag[rows[on_diag]] = values[on_diag]
    return diag


def assemble_nodal_forces(
    ndof: int,
    node_ids: np.ndarray,
    loads: np.ndarray,
    dof_per_node: int = 3,
) -> np.ndarray:
    """
    Global load vector from nodal point loads.

    Repeated node ids accumulate, which is how face tractions shared by
    neighbouring face quads add up at common nodes.

    Parameters:
    -----------
    ndof : int
        Total number of DOFs
    node_ids : np.ndarray
        (M,) node of each load
    loads : np.ndarray
        (M, dof_per_node) load components

    Returns:
    --------
    np.ndarray
        F, shape (ndof,)
    """
    F = np.zeros(ndof, dtype=np.float64)
    node_ids = np.asarray(node_ids, dtype=np.int64)
    loads = np.asarray(loads, dtype=np.float64).reshape(-1, dof_per_node)
    dof = DOFManager(dof_per_node)
    for comp in range(dof_per_node):
        np.add.at(F, dof.idx(node_ids, comp), loads[:, comp])
    return F
