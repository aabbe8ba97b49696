# voxel_geomech/kernel - Hexahedral FEM core on voxel grids
"""
KERNEL: MESH, ASSEMBLY AND SOLVE
================================

The numerical core that knows nothing about rock, loading or fluids:

- DOF indexing for 3 translations per node
- trilinear hexahedron math (B, D, Gauss-integrated Ke)
- voxel → mesh conversion and the CSR sparsity pattern
- deterministic scatter-add assembly into CSR values
- Jacobi-preconditioned CG on a CPU (numpy/scipy) or GPU (cupy) backend
"""

from .dof import DOFManager
from .mesh import HexMesh, InvalidMeshError, build_hex_mesh, material_mask
from .assemble import assemble_stiffness, assemble_nodal_forces
from .backend import BackendError, ComputeBackend
from .solve import PCGResult, pcg_solve

__all__ = [
    'DOFManager', 'HexMesh', 'InvalidMeshError', 'build_hex_mesh', 'material_mask',
    'assemble_stiffness', 'assemble_nodal_forces', 'BackendError', 'ComputeBackend',
    'PCGResult', 'pcg_solve',
]
