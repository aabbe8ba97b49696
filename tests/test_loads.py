# tests/test_loads.py
"""
Boundary conditions, face tractions and the analytic uniaxial check.

A rollered cube under a uniform face traction has an exact homogeneous
solution that trilinear hexahedra reproduce, so strains can be compared
against Hooke's law directly:

    εzz = -σ/E,   εxx = εyy = νσ/E
"""

import numpy as np
import pytest

from voxel_geomech.kernel.assemble import assemble_stiffness
from voxel_geomech.kernel.mesh import build_hex_mesh
from voxel_geomech.kernel.solve import pcg_solve
from voxel_geomech.loads import (
    apply_boundary_conditions, face_traction_forces, roller_constraints,
)
from voxel_geomech.params import GeomechanicalParameters, StressMapping
from voxel_geomech.post import recover_stress_strain


def cube_mesh(n=5, dx=0.01, E=30000.0, nu=0.25):
    mask = np.ones((n, n, n), dtype=bool)
    return build_hex_mesh(mask, dx, E, nu), mask


class TestConstraints:
    def test_rollers_fix_one_component_per_face(self):
        mesh, _ = cube_mesh(3)
        fixed, values = roller_constraints(mesh)
        grid = mesh.node_grid_coords()
        for axis in range(3):
            on_face = grid[:, axis] == 0
            assert np.all(fixed[3 * np.nonzero(on_face)[0] + axis])
            assert not np.any(fixed[3 * np.nonzero(~on_face)[0] + axis])
        assert np.all(values == 0.0)

    def test_force_synchronised_on_fixed_dofs(self):
        mesh, _ = cube_mesh(4)
        bc = apply_boundary_conditions(mesh, GeomechanicalParameters(voxel_size=0.01))
        assert np.all(bc.force[bc.is_dirichlet] == bc.dirichlet_value[bc.is_dirichlet])


class TestTractions:
    @pytest.mark.parametrize("axis", [0, 1, 2])
    def test_total_force_equals_traction_times_area(self, axis):
        n, dx, sigma = 5, 0.01, 40.0
        mesh, _ = cube_mesh(n, dx)
        tractions = [0.0, 0.0, 0.0]
        tractions[axis] = sigma
        F = face_traction_forces(mesh, tractions)
        area = ((n - 1) * dx) ** 2
        assert F[axis::3].sum() == pytest.approx(-sigma * area)
        for other in {0, 1, 2} - {axis}:
            assert np.all(F[other::3] == 0.0)

    def test_corner_and_interior_face_nodes(self):
        mesh, _ = cube_mesh(3, 1.0)
        F = face_traction_forces(mesh, (0.0, 0.0, 4.0))
        grid = mesh.node_grid_coords()
        fz = F[2::3]
        corner = np.nonzero((grid == [0, 0, 2]).all(axis=1))[0][0]
        middle = np.nonzero((grid == [1, 1, 2]).all(axis=1))[0][0]
        assert fz[corner] == pytest.approx(-1.0), "Corner node belongs to one face quad"
        assert fz[middle] == pytest.approx(-4.0), "Centre node is shared by four face quads"

    def test_uniaxial_loads_only_top_face(self):
        mesh, _ = cube_mesh(4)
        params = GeomechanicalParameters(voxel_size=0.01, loading_mode="uniaxial")
        bc = apply_boundary_conditions(mesh, params)
        assert bc.tractions == (0.0, 0.0, 100.0)
        free = ~bc.is_dirichlet
        assert np.all(bc.force[0::3][free[0::3]] == 0.0)


class TestAnalytic:
    @pytest.mark.parametrize("mapping", [StressMapping.NODAL_AVERAGE, StressMapping.CENTROID])
    def test_uniaxial_strain_matches_hooke(self, mapping):
        E, nu, sigma = 30000.0, 0.25, 60.0
        mesh, mask = cube_mesh(5, 0.01, E, nu)
        params = GeomechanicalParameters(
            youngs_modulus=E, poisson_ratio=nu, voxel_size=0.01,
            loading_mode="uniaxial", sigma1=sigma, sigma2=0.0, sigma3=0.0,
        )
        values = assemble_stiffness(mesh)
        bc = apply_boundary_conditions(mesh, params)
        result = pcg_solve(
            mesh.row_ptr, mesh.col_idx, values, bc.force,
            bc.is_dirichlet, bc.dirichlet_value, 2000, 1e-10,
        )
        assert result.converged
        stress, strain, stress_e = recover_stress_strain(mesh, result.displacement, mask, mapping)

        np.testing.assert_allclose(stress_e[:, 2], -sigma, rtol=1e-5)
        np.testing.assert_allclose(stress_e[:, :2], 0.0, atol=1e-5 * sigma)

        inside = strain[1:-1, 1:-1, 1:-1] if mapping == StressMapping.CENTROID else strain
        assert np.allclose(inside[..., 2], -sigma / E, rtol=1e-5)
        assert np.allclose(inside[..., 0], nu * sigma / E, rtol=1e-5)
        assert np.allclose(inside[..., 1], nu * sigma / E, rtol=1e-5)
        assert np.allclose(inside[..., 3:], 0.0, atol=1e-9)
