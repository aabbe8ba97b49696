# tests/test_assembly.py
"""
Element stiffness and global assembly.

WHY THESE TESTS?
---------------
1. Ke must be symmetric and have the six rigid-body modes in its null space
2. The assembled CSR matrix must be symmetric
3. Re-assembly from zeroed values must be bit-identical
4. Degenerate elements are skipped, not fatal
"""

import numpy as np
import pytest
import scipy.sparse as sp

from voxel_geomech.kernel.assemble import (
    assemble_nodal_forces, assemble_stiffness, csr_diagonal,
)
from voxel_geomech.kernel.hex8 import (
    NATURAL_COORDS, b_matrix_at, elasticity_matrix, element_stiffness,
)
from voxel_geomech.kernel.mesh import build_hex_mesh

E = 30000.0
NU = 0.25


def unit_cube(size=1.0):
    return np.ascontiguousarray((NATURAL_COORDS + 1.0) / 2.0 * size)


def as_matrix(mesh, values):
    n = mesh.num_dofs
    return sp.csr_matrix((values, mesh.col_idx, mesh.row_ptr), shape=(n, n))


class TestElement:
    def test_elasticity_matrix_entries(self):
        D = elasticity_matrix(E, NU)
        lam = E * NU / ((1 + NU) * (1 - 2 * NU))
        mu = E / (2 * (1 + NU))
        assert D[0, 0] == pytest.approx(lam + 2 * mu)
        assert D[0, 1] == pytest.approx(lam)
        assert D[3, 3] == pytest.approx(mu)
        assert D[0, 3] == 0.0

    def test_centroid_jacobian_is_volume_scale(self):
        h = 0.2
        _, det = b_matrix_at(unit_cube(h), 0.0, 0.0, 0.0)
        assert det == pytest.approx((h / 2) ** 3)

    def test_stiffness_symmetric(self):
        Ke, skipped = element_stiffness(unit_cube(), E, NU)
        assert skipped == 0
        np.testing.assert_allclose(Ke, Ke.T, rtol=1e-10, atol=1e-8)

    def test_rigid_body_modes_in_null_space(self):
        coords = unit_cube()
        Ke, _ = element_stiffness(coords, E, NU)
        modes = []
        for axis in range(3):
            t = np.zeros((8, 3))
            t[:, axis] = 1.0
            modes.append(t.ravel())
        x, y, z = coords[:, 0], coords[:, 1], coords[:, 2]
        zeros = np.zeros(8)
        modes.append(np.stack([-y, x, zeros], axis=1).ravel())
        modes.append(np.stack([zeros, -z, y], axis=1).ravel())
        modes.append(np.stack([z, zeros, -x], axis=1).ravel())
        scale = np.abs(Ke).max()
        for mode in modes:
            assert np.abs(Ke @ mode).max() < 1e-10 * scale

    def test_positive_diagonal(self):
        Ke, _ = element_stiffness(unit_cube(), E, NU)
        assert np.all(np.diag(Ke) > 0.0)

    def test_inverted_element_skips_every_gauss_point(self):
        coords = unit_cube()
        coords[:, 2] *= -1.0  # mirror: negative Jacobian everywhere
        Ke, skipped = element_stiffness(np.ascontiguousarray(coords), E, NU)
        assert skipped == 8
        assert np.all(Ke == 0.0)


class TestGlobalAssembly:
    @pytest.fixture
    def mesh(self):
        mask = np.ones((4, 3, 3), dtype=bool)
        mask[3, 2, 2] = False
        return build_hex_mesh(mask, 0.01, E, NU)

    def test_global_matrix_symmetric(self, mesh):
        K = as_matrix(mesh, assemble_stiffness(mesh))
        diff = abs(K - K.T).max()
        assert diff < 1e-9 * abs(K).max()

    def test_translation_produces_no_force(self, mesh):
        K = as_matrix(mesh, assemble_stiffness(mesh))
        for axis in range(3):
            u = np.zeros(mesh.num_dofs)
            u[axis::3] = 1.0
            assert np.abs(K @ u).max() < 1e-8 * abs(K).max()

    def test_reassembly_is_bit_identical(self, mesh):
        first = assemble_stiffness(mesh)
        reused = np.full(mesh.nnz, 123.0)
        second = assemble_stiffness(mesh, out=reused)
        assert second is reused
        assert np.array_equal(first, second), "Re-assembly changed CSR values"

    def test_batch_size_does_not_change_values(self, mesh):
        a = assemble_stiffness(mesh, batch_size=1)
        b = assemble_stiffness(mesh, batch_size=1000)
        assert np.array_equal(a, b)

    def test_diagonal_positive(self, mesh):
        diag = csr_diagonal(mesh.row_ptr, mesh.col_idx, assemble_stiffness(mesh))
        assert np.all(diag > 0.0)

    def test_scaled_modulus_scales_matrix(self, mesh):
        base = assemble_stiffness(mesh)
        half = assemble_stiffness(mesh.with_moduli(mesh.youngs_modulus * 0.5))
        np.testing.assert_allclose(half, 0.5 * base, rtol=1e-12, atol=1e-12)

    def test_wrong_output_length(self, mesh):
        with pytest.raises(ValueError):
            assemble_stiffness(mesh, out=np.zeros(3))


def test_nodal_forces_accumulate_repeated_nodes():
    F = assemble_nodal_forces(9, np.array([0, 2, 0]), np.array([
        [1.0, 0.0, 0.0],
        [0.0, 0.0, -2.0],
        [0.5, 1.0, 0.0],
    ]))
    np.testing.assert_allclose(F, [1.5, 1.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, -2.0])
