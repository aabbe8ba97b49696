# tests/test_plasticity.py
"""Von Mises equivalent stress and the radial-return correction."""

import math

import numpy as np
import pytest

from voxel_geomech.params import GeomechanicalParameters
from voxel_geomech.plasticity import apply_plastic_correction, von_mises, von_mises_field


def test_uniaxial_equivalent_stress():
    assert von_mises(-80.0, 0.0, 0.0, 0.0, 0.0, 0.0) == pytest.approx(80.0)


def test_pure_shear_equivalent_stress():
    assert von_mises(0.0, 0.0, 0.0, 10.0, 0.0, 0.0) == pytest.approx(10.0 * math.sqrt(3.0))


def test_hydrostatic_state_has_no_equivalent_stress():
    assert von_mises_field(np.array([[-50.0, -50.0, -50.0, 0.0, 0.0, 0.0]]))[0] == pytest.approx(0.0)


class TestRadialReturn:
    def test_stress_returned_to_yield_surface(self):
        params = GeomechanicalParameters(yield_stress=100.0)
        stress = np.array([[-250.0, -50.0, -50.0, 20.0, 0.0, 0.0]])
        mean_before = stress[0, :3].mean()
        plastic = np.zeros(1)
        count = apply_plastic_correction(stress, plastic, params)
        assert count == 1
        assert von_mises_field(stress)[0] == pytest.approx(100.0)
        assert stress[0, :3].mean() == pytest.approx(mean_before)

    def test_plastic_strain_increment(self):
        params = GeomechanicalParameters(yield_stress=100.0, hardening_ratio=0.01)
        stress = np.array([[-200.0, 0.0, 0.0, 0.0, 0.0, 0.0]])
        plastic = np.full(1, 1e-4)
        apply_plastic_correction(stress, plastic, params)
        H = 0.01 * params.youngs_modulus
        assert plastic[0] == pytest.approx(1e-4 + 100.0 / (3 * params.shear_modulus + H))

    def test_elastic_state_untouched(self):
        params = GeomechanicalParameters()  # yield = 2c = 100 MPa
        stress = np.array([[-60.0, -20.0, -20.0, 0.0, 0.0, 0.0]])
        before = stress.copy()
        plastic = np.zeros(1)
        assert apply_plastic_correction(stress, plastic, params) == 0
        np.testing.assert_array_equal(stress, before)
        assert plastic[0] == 0.0
