# voxel_geomech/kernel/dof.py
"""
DOF MANAGER: Node / Component to Global DOF Indexing
====================================================

PURPOSE:
--------
Maps (node_id, component) to a global DOF index for the voxel hexahedral
mesh. Every node carries three translations (ux, uy, uz), so node n owns
DOFs 3n, 3n+1, 3n+2. The mesh builder, assembler, load applicator and
stress recovery all go through this one mapping.

USAGE:
------
    dof = DOFManager()
    dof.idx(node_id=2, local_dof=1)           # → 7
    dof.idx(face_nodes, 2)                    # uz DOFs of a node array
    dof.element_dofs(mesh.elements)           # (E, 24) scatter/gather map
"""

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class DOFManager:
    """
    Degree-of-freedom indexing for a 3-D solid mesh.

    Attributes:
    -----------
    dof_per_node : int
        3 for solid hexahedra (ux, uy, uz)

    Examples:
    ---------
    >>> dof = DOFManager()
    >>> dof.idx(1, 0)
    3
    >>> dof.ndof(8)
    24
    """
    dof_per_node: int = 3

    def idx(self, node_id, local_dof: int):
        """Global DOF of one component; node_id may be an int or an index array."""
        return self.dof_per_node * node_id + local_dof

    def ndof(self, n_nodes: int) -> int:
        return self.dof_per_node * n_nodes

    def element_dofs(self, elements: np.ndarray) -> np.ndarray:
        """
        Vectorised DOF map for a batch of elements.

        Parameters:
        -----------
        elements : np.ndarray
            (E, nodes_per_element) node indices

        Returns:
        --------
        np.ndarray
            (E, nodes_per_element * dof_per_node) global DOF indices, ordered
            node by node: [3n0, 3n0+1, 3n0+2, 3n1, ...]
        """
        elements = np.asarray(elements, dtype=np.int64)
        comps = np.arange(self.dof_per_node, dtype=np.int64)
        dofs = self.dof_per_node * elements[:, :, None] + comps[None, None, :]
        return dofs.reshape(elements.shape[0], -1)


DOF_3D_SOLID = DOFManager(dof_per_node=3)
