# voxel_geomech/kernel/mesh.py
"""
MESH BUILDER: Voxel Grid → Hexahedral Mesh + CSR Sparsity Pattern
=================================================================

PURPOSE:
--------
Every voxel is a mesh node candidate. Every cell of 2×2×2 neighbouring
voxels becomes one 8-node hexahedron if at least one of its corner voxels
belongs to the selected material. Only nodes touched by some element are
kept (compact numbering), so void regions cost nothing.

The global stiffness matrix pattern is the union of the element-local 3×3
DOF blocks. It is built here once, from connectivity alone: element node
pairs are enumerated, deduplicated by sorting, and expanded into CSR rows.
The same pass records, for every element and local node pair, where that
block lives inside its CSR row, so the assembler can scatter without any
searching.

LAYOUT:
-------
    grid index      (x, y, z), C-order:  lin = (x * ny + y) * nz + z
    node position   (x, y, z) * voxel_size  [m]
    element cell    lower corner (i, j, k); nodes in hex8 reference order
"""

import logging
from dataclasses import dataclass

import numpy as np
from numba import njit

from ..params import ConfigurationError
from .dof import DOF_3D_SOLID
from .hex8 import NATURAL_COORDS

logger = logging.getLogger(__name__)

# Grid offsets of the 8 reference nodes relative to the cell's lower corner
CORNER_OFFSETS = ((NATURAL_COORDS + 1.0) / 2.0).astype(np.int64)

PAIR_CHUNK = 131072


class InvalidMeshError(ConfigurationError):
    """The material selection produced no elements."""


@dataclass(frozen=True)
class HexMesh:
    """
    Immutable voxel hexahedral mesh with its CSR sparsity pattern.

    Attributes:
    -----------
    grid_shape : tuple
        (nx, ny, nz) of the voxel / node grid
    voxel_size : float
        Voxel pitch in metres
    nodes : np.ndarray
        (N, 3) node coordinates
    node_grid_index : np.ndarray
        (N,) sorted linear grid index of every node
    elements : np.ndarray
        (E, 8) compact node indices in hex8 reference order
    element_cells : np.ndarray
        (E, 3) lower-corner grid index of every element
    youngs_modulus, poisson_ratio : np.ndarray
        (E,) per-element elastic constants
    row_ptr, col_idx : np.ndarray
        CSR structure of the 3N × 3N stiffness matrix
    block_slots : np.ndarray
        (E, 8, 8) position of node j inside node i's neighbour list; DOF
        (3i+a, 3j+b) sits at row_ptr[3i+a] + 3*slot + b
    """
    grid_shape: tuple
    voxel_size: float
    nodes: np.ndarray
    node_grid_index: np.ndarray
    elements: np.ndarray
    element_cells: np.ndarray
    youngs_modulus: np.ndarray
    poisson_ratio: np.ndarray
    row_ptr: np.ndarray
    col_idx: np.ndarray
    block_slots: np.ndarray

    @property
    def num_nodes(self) -> int:
        return self.nodes.shape[0]

    @property
    def num_elements(self) -> int:
        return self.elements.shape[0]

    @property
    def num_dofs(self) -> int:
        return DOF_3D_SOLID.ndof(self.num_nodes)

    @property
    def nnz(self) -> int:
        return self.col_idx.shape[0]

    def node_grid_coords(self) -> np.ndarray:
        """(N, 3) integer (x, y, z) grid position of every node."""
        return np.stack(np.unravel_index(self.node_grid_index, self.grid_shape), axis=1)

    def element_coords(self, start: int = 0, stop: int = None) -> np.ndarray:
        """(B, 8, 3) nodal coordinates for elements start..stop."""
        return self.nodes[self.elements[start:stop]]

    def with_moduli(self, youngs_modulus: np.ndarray) -> "HexMesh":
        """Same mesh and pattern with new per-element Young's moduli."""
        youngs_modulus = np.asarray(youngs_modulus, dtype=np.float64)
        if youngs_modulus.shape != (self.num_elements,):
            raise ValueError(
                f"Expected {self.num_elements} moduli, got shape {youngs_modulus.shape}"
            )
        return HexMesh(
            self.grid_shape, self.voxel_size, self.nodes, self.node_grid_index,
            self.elements, self.element_cells, youngs_modulus, self.poisson_ratio,
            self.row_ptr, self.col_idx, self.block_slots,
        )


def material_mask(labels: np.ndarray, selected_ids=None) -> np.ndarray:
    """
    Boolean mask of voxels taking part in the simulation.

    Label 0 is always background; with selected_ids only those labels count.
    """
    labels = np.asarray(labels)
    if labels.ndim != 3:
        raise ConfigurationError(f"Label volume must be 3-D, got shape {labels.shape}")
    if selected_ids is None:
        return labels != 0
    ids = np.array(sorted(selected_ids), dtype=labels.dtype)
    return np.isin(labels, ids) & (labels != 0)


def active_cells(mask: np.ndarray) -> np.ndarray:
    """(E, 3) lower corners of cells with at least one material corner."""
    m = mask
    any_corner = np.zeros(tuple(s - 1 for s in m.shape), dtype=bool)
    for ox, oy, oz in CORNER_OFFSETS:
        any_corner |= m[ox:ox + m.shape[0] - 1, oy:oy + m.shape[1] - 1, oz:oz + m.shape[2] - 1]
    return np.argwhere(any_corner).astype(np.int64)


def build_hex_mesh(
    mask: np.ndarray,
    voxel_size: float,
    youngs_modulus: float,
    poisson_ratio: float,
) -> HexMesh:
    """
    Build the hexahedral mesh and CSR pattern for a material mask.

    Parameters:
    -----------
    mask : np.ndarray
        (nx, ny, nz) boolean material mask
    voxel_size : float
        Voxel pitch [m]
    youngs_modulus, poisson_ratio : float
        Uniform elastic constants assigned to every element

    Returns:
    --------
    HexMesh

    Raises:
    -------
    ConfigurationError
        If any grid extent is below 2 voxels
    InvalidMeshError
        If no cell touches the material
    """
    mask = np.asarray(mask, dtype=bool)
    if mask.ndim != 3 or min(mask.shape) < 2:
        raise ConfigurationError(
            f"Voxel grid must be 3-D with at least 2 voxels per axis, got {mask.shape}"
        )
    shape = tuple(int(s) for s in mask.shape)

    cells = active_cells(mask)
    if cells.shape[0] == 0:
        raise InvalidMeshError(
            "Material selection produced zero elements; check labels and selected_material_ids"
        )

    corners = cells[:, None, :] + CORNER_OFFSETS[None, :, :]
    corner_lin = (corners[..., 0] * shape[1] + corners[..., 1]) * shape[2] + corners[..., 2]

    node_grid_index = np.unique(corner_lin)
    elements = np.searchsorted(node_grid_index, corner_lin).astype(np.int64)
    grid_xyz = np.stack(np.unravel_index(node_grid_index, shape), axis=1)
    nodes = grid_xyz.astype(np.float64) * float(voxel_size)

    n_elem = elements.shape[0]
    row_ptr, col_idx, block_slots = build_csr_pattern(elements, node_grid_index.shape[0])

    logger.info(
        "Mesh: grid %s, %d elements, %d nodes, %d DOFs, nnz=%d",
        shape, n_elem, nodes.shape[0], DOF_3D_SOLID.ndof(nodes.shape[0]), col_idx.shape[0],
    )
    return HexMesh(
        grid_shape=shape,
        voxel_size=float(voxel_size),
        nodes=nodes,
        node_grid_index=node_grid_index,
        elements=elements,
        element_cells=cells,
        youngs_modulus=np.full(n_elem, float(youngs_modulus)),
        poisson_ratio=np.full(n_elem, float(poisson_ratio)),
        row_ptr=row_ptr,
        col_idx=col_idx,
        block_slots=block_slots,
    )


def build_csr_pattern(elements: np.ndarray, num_nodes: int):
    """
    CSR structure of the 3N × 3N matrix from element connectivity.

    Node pairs (i, j) of every element are collected as sorted unique keys
    i * N + j; each pair expands to a dense 3×3 DOF block. Every node pairs
    with itself, so every row carries its diagonal.

    Returns:
    --------
    row_ptr : np.ndarray (3N + 1,)
    col_idx : np.ndarray (9P,)  sorted within each row
    block_slots : np.ndarray (E, 8, 8)
    """
    n = np.int64(num_nodes)
    keys = []
    for start in range(0, elements.shape[0], PAIR_CHUNK):
        chunk = elements[start:start + PAIR_CHUNK]
        pair_keys = chunk[:, :, None] * n + chunk[:, None, :]
        keys.append(np.unique(pair_keys.ravel()))
    keys = np.unique(np.concatenate(keys)) if len(keys) > 1 else keys[0]

    pair_row = keys // n
    pair_col = keys % n
    counts = np.bincount(pair_row, minlength=num_nodes)
    pair_ptr = np.zeros(num_nodes + 1, dtype=np.int64)
    np.cumsum(counts, out=pair_ptr[1:])

    row_len = np.repeat(3 * counts, 3)
    row_ptr = np.zeros(3 * num_nodes + 1, dtype=np.int64)
    np.cumsum(row_len, out=row_ptr[1:])

    col_idx = _expand_blocks(pair_ptr, pair_col, row_ptr)
    block_slots = _locate_blocks(elements, pair_ptr, pair_col)
    return row_ptr, col_idx, block_slots


@njit(cache=True)
def _expand_blocks(pair_ptr, pair_col, row_ptr):
    n_nodes = pair_ptr.shape[0] - 1
    col_idx = np.empty(row_ptr[-1], dtype=np.int64)
    for a in range(n_nodes):
        for da in range(3):
            pos = row_ptr[3 * a + da]
            for p in range(pair_ptr[a], pair_ptr[a + 1]):
                b = pair_col[p]
                for db in range(3):
                    col_idx[pos] = 3 * b + db
                    pos += 1
    return col_idx


@njit(cache=True)
def _locate_blocks(elements, pair_ptr, pair_col):
    n_elem = elements.shape[0]
    slots = np.empty((n_elem, 8, 8), dtype=np.int64)
    for e in range(n_elem):
        for i in range(8):
            a = elements[e, i]
            lo0 = pair_ptr[a]
            for j in range(8):
                b = elements[e, j]
                lo = lo0
                hi = pair_ptr[a + 1]
                while lo < hi:
                    mid = (lo + hi) // 2
                    if pair_col[mid] < b:
                        lo = mid + 1
                    else:
                        hi = mid
                slots[e, i, j] = lo - lo0
    return slots
