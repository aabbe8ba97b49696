# voxel_geomech/loads.py
"""
BOUNDARY CONDITIONS AND LOADS
=============================

Rollers on the three reference faces, tractions on the three opposite faces:

    face x = 0     u_x = 0          face x = max   σx traction (σ3 in triaxial)
    face y = 0     u_y = 0          face y = max   σy traction (σ2)
    face z = 0     u_z = 0          face z = max   σz traction (σ1, axial)

The rollers remove all six rigid-body modes without restraining lateral
expansion. A traction σ on a face is turned into equivalent nodal forces
per element face quad: σ·A/4 to each of its four nodes, A = voxel_size².
Applied compressive magnitudes push inward, i.e. along -x / -y / -z.

The load vector is finally synchronised with the constraints:
force[dof] = dirichlet_value[dof] wherever a DOF is fixed, which is what the
PCG solver's identity rows expect.
"""

import logging
from dataclasses import dataclass

import numpy as np

from .kernel.assemble import assemble_nodal_forces
from .kernel.dof import DOF_3D_SOLID
from .kernel.hex8 import POSITIVE_FACE_NODES
from .kernel.mesh import HexMesh
from .params import GeomechanicalParameters

logger = logging.getLogger(__name__)


@dataclass
class BoundaryConditions:
    """
    Constraint and load state of the linear system.

    Attributes:
    -----------
    is_dirichlet : np.ndarray
        (ndof,) bool, True for fixed DOFs
    dirichlet_value : np.ndarray
        (ndof,) prescribed displacement [m]
    force : np.ndarray
        (ndof,) nodal load [MPa·m²]; equals dirichlet_value on fixed DOFs
    tractions : tuple
        (σx, σy, σz) compressive magnitudes actually applied [MPa]
    """
    is_dirichlet: np.ndarray
    dirichlet_value: np.ndarray
    force: np.ndarray
    tractions: tuple

    @property
    def num_fixed(self) -> int:
        return int(self.is_dirichlet.sum())

    def synchronize(self) -> None:
        """Copy prescribed values into the load vector on every fixed DOF."""
        self.force[self.is_dirichlet] = self.dirichlet_value[self.is_dirichlet]


def roller_constraints(mesh: HexMesh):
    """
    Fixed DOFs for rollers on the x=0, y=0 and z=0 faces.

    Returns:
    --------
    is_dirichlet : np.ndarray (ndof,) bool
    dirichlet_value : np.ndarray (ndof,) zeros
    """
    grid = mesh.node_grid_coords()
    is_dirichlet = np.zeros(mesh.num_dofs, dtype=bool)
    for axis in range(3):
        on_face = np.nonzero(grid[:, axis] == 0)[0]
        is_dirichlet[DOF_3D_SOLID.idx(on_face, axis)] = True
    return is_dirichlet, np.zeros(mesh.num_dofs, dtype=np.float64)


def face_traction_forces(mesh: HexMesh, tractions) -> np.ndarray:
    """
    Equivalent nodal forces of compressive tractions on the +x, +y, +z faces.

    Parameters:
    -----------
    mesh : HexMesh
    tractions : sequence of 3 floats
        Compressive magnitude on each +face [MPa]; negative values pull

    Returns:
    --------
    np.ndarray
        (ndof,) force vector
    """
    quad_force = mesh.voxel_size ** 2 / 4.0
    node_ids = []
    loads = []
    for axis in range(3):
        sigma = float(tractions[axis])
        if sigma == 0.0:
            continue
        on_face = mesh.element_cells[:, axis] == mesh.grid_shape[axis] - 2
        face_nodes = mesh.elements[on_face][:, POSITIVE_FACE_NODES[axis]].ravel()
        load = np.zeros((face_nodes.shape[0], 3))
        load[:, axis] = -sigma * quad_force
        node_ids.append(face_nodes)
        loads.append(load)

    if not node_ids:
        return np.zeros(mesh.num_dofs)
    return assemble_nodal_forces(mesh.num_dofs, np.concatenate(node_ids), np.concatenate(loads))


def apply_boundary_conditions(
    mesh: HexMesh,
    params: GeomechanicalParameters,
) -> BoundaryConditions:
    """
    Build constraints and loads for the configured loading mode.

    Pore pressure, when enabled, reduces every face traction by α·Pp before
    the nodal forces are computed.
    """
    tractions = params.applied_tractions()
    is_dirichlet, dirichlet_value = roller_constraints(mesh)
    force = face_traction_forces(mesh, tractions)

    bc = BoundaryConditions(is_dirichlet, dirichlet_value, force, tuple(tractions))
    bc.synchronize()
    logger.info(
        "Boundary conditions: %d fixed DOFs, tractions x/y/z = %.2f/%.2f/%.2f MPa",
        bc.num_fixed, *tractions,
    )
    return bc
