# voxel_geomech/post.py
"""
STRESS / STRAIN RECOVERY
========================

Element strain ε = B·u_e and stress σ = D·ε at the element centroid
(ξ = η = ζ = 0), then mapped onto the voxel grid.

Two mappings:

    CENTROID        each element paints the voxel nearest its centroid
                    (round half up of centroid / pitch); later elements
                    overwrite earlier ones (last write wins)
    NODAL_AVERAGE   each voxel receives the mean of the centroid values of
                    all elements sharing it as a corner node

Stored stresses follow the solid-mechanics sign convention: compression is
negative. Voxels outside the material mask stay zero.
"""

import logging

import numpy as np
from numba import njit, prange

from .kernel.dof import DOF_3D_SOLID
from .kernel.hex8 import b_matrix_at, elasticity_matrix
from .kernel.mesh import HexMesh
from .params import StressMapping

logger = logging.getLogger(__name__)


@njit(parallel=True, cache=True)
def element_centroid_response(coords, element_u, E, nu):
    """
    Centroid strain and stress of every element.

    Args:
        coords: (E, 8, 3) element node coordinates
        element_u: (E, 24) element displacement vectors, node by node
        E, nu: (E,) per-element elastic constants

    Returns:
        strain: (E, 6) engineering strains
        stress: (E, 6) stresses
    """
    n = coords.shape[0]
    strain = np.zeros((n, 6))
    stress = np.zeros((n, 6))
    for e in prange(n):
        B, det = b_matrix_at(coords[e], 0.0, 0.0, 0.0)
        if det <= 0.0:
            continue
        ue = element_u[e]
        for k in range(6):
            s = 0.0
            for a in range(24):
                s += B[k, a] * ue[a]
            strain[e, k] = s
        D = elasticity_matrix(E[e], nu[e])
        for k in range(6):
            s = 0.0
            for m in range(6):
                s += D[k, m] * strain[e, m]
            stress[e, k] = s
    return strain, stress


@njit(cache=True)
def _paint_centroids(cells, values, mask, out):
    nx, ny, nz = mask.shape
    for e in range(cells.shape[0]):
        # centroid / pitch = cell + 0.5, rounded half up
        x = min(cells[e, 0] + 1, nx - 1)
        y = min(cells[e, 1] + 1, ny - 1)
        z = min(cells[e, 2] + 1, nz - 1)
        if mask[x, y, z]:
            for k in range(values.shape[1]):
                out[x, y, z, k] = values[e, k]


@njit(cache=True)
def _accumulate_nodal(elements, values, num_nodes):
    sums = np.zeros((num_nodes, values.shape[1]))
    counts = np.zeros(num_nodes)
    for e in range(elements.shape[0]):
        for i in range(8):
            n = elements[e, i]
            counts[n] += 1.0
            for k in range(values.shape[1]):
                sums[n, k] += values[e, k]
    return sums, counts


def map_to_voxels(
    mesh: HexMesh,
    element_values: np.ndarray,
    mask: np.ndarray,
    mapping: StressMapping = StressMapping.NODAL_AVERAGE,
    out: np.ndarray = None,
) -> np.ndarray:
    """
    Write per-element values (E, k) into a (nx, ny, nz, k) voxel field.

    Only voxels inside mask are written; the rest keep their value (zero for
    a fresh field).
    """
    ncomp = element_values.shape[1]
    if out is None:
        out = np.zeros(mesh.grid_shape + (ncomp,))

    if StressMapping(mapping) == StressMapping.CENTROID:
        _paint_centroids(mesh.element_cells, element_values, mask, np.asarray(out))
        return out

    sums, counts = _accumulate_nodal(mesh.elements, element_values, mesh.num_nodes)
    grid = mesh.node_grid_coords()
    inside = mask[grid[:, 0], grid[:, 1], grid[:, 2]] & (counts > 0)
    g = grid[inside]
    out[g[:, 0], g[:, 1], g[:, 2]] = sums[inside] / counts[inside, None]
    return out


def recover_stress_strain(
    mesh: HexMesh,
    displacement: np.ndarray,
    mask: np.ndarray,
    mapping: StressMapping = StressMapping.NODAL_AVERAGE,
    stress_out: np.ndarray = None,
    strain_out: np.ndarray = None,
):
    """
    Voxel stress and strain fields from a displacement solution.

    Returns:
    --------
    stress : np.ndarray (nx, ny, nz, 6) [MPa]
    strain : np.ndarray (nx, ny, nz, 6)
    element_stress : np.ndarray (E, 6)
    """
    coords = np.ascontiguousarray(mesh.element_coords())
    displacement = np.asarray(displacement, dtype=np.float64)
    element_u = np.ascontiguousarray(displacement[DOF_3D_SOLID.element_dofs(mesh.elements)])
    strain_e, stress_e = element_centroid_response(
        coords, element_u,
        mesh.youngs_modulus, mesh.poisson_ratio,
    )
    stress = map_to_voxels(mesh, stress_e, mask, mapping, stress_out)
    strain = map_to_voxels(mesh, strain_e, mask, mapping, strain_out)
    logger.info("Recovered stress/strain for %d elements (%s mapping)",
                mesh.num_elements, StressMapping(mapping).value)
    return stress, strain, stress_e
