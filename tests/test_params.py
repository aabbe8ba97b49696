# tests/test_params.py
"""
Configuration validation and derived quantities.

Bad configurations must fail before any compute, with a ConfigurationError
that is also a ValueError so callers can catch either.
"""

import pytest

from voxel_geomech.params import (
    ConfigurationError, FailureCriterion, GeomechanicalParameters, LoadingMode,
)


class TestValidation:
    def test_defaults_are_valid(self):
        params = GeomechanicalParameters()
        assert params.validate() is params

    def test_stress_ordering(self):
        with pytest.raises(ConfigurationError, match="sigma1 >= sigma2 >= sigma3"):
            GeomechanicalParameters(sigma1=20.0, sigma2=50.0, sigma3=10.0).validate()
        with pytest.raises(ConfigurationError):
            GeomechanicalParameters(sigma1=100.0, sigma2=10.0, sigma3=20.0).validate()

    @pytest.mark.parametrize("nu", [0.0, 0.5, -0.1, 0.6])
    def test_poisson_ratio_range(self, nu):
        with pytest.raises(ConfigurationError, match="Poisson"):
            GeomechanicalParameters(poisson_ratio=nu).validate()

    def test_youngs_modulus_positive(self):
        with pytest.raises(ConfigurationError, match="Young"):
            GeomechanicalParameters(youngs_modulus=0.0).validate()

    def test_strength_parameters(self):
        with pytest.raises(ConfigurationError):
            GeomechanicalParameters(cohesion=-1.0).validate()
        with pytest.raises(ConfigurationError):
            GeomechanicalParameters(friction_angle=75.0).validate()
        with pytest.raises(ConfigurationError):
            GeomechanicalParameters(tensile_strength=-0.5).validate()
        with pytest.raises(ConfigurationError):
            GeomechanicalParameters(density=0.0).validate()

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            GeomechanicalParameters(youngs_modulus=-5.0).validate()

    def test_fluid_parameters_checked_only_when_enabled(self):
        GeomechanicalParameters(fluid_time_step=0.0).validate()
        with pytest.raises(ConfigurationError, match="fluid_time_step"):
            GeomechanicalParameters(enable_fluid_injection=True, fluid_time_step=0.0).validate()
        with pytest.raises(ConfigurationError, match="injection_location"):
            GeomechanicalParameters(
                enable_fluid_injection=True, injection_location=(0.5, 1.5, 0.5)
            ).validate()

    def test_offloading_requires_directory(self):
        with pytest.raises(ConfigurationError, match="offload_directory"):
            GeomechanicalParameters(enable_offloading=True).validate()

    def test_string_enums_are_coerced(self):
        params = GeomechanicalParameters(failure_criterion="hoek_brown", loading_mode="uniaxial")
        assert params.failure_criterion is FailureCriterion.HOEK_BROWN
        assert params.loading_mode is LoadingMode.UNIAXIAL

    def test_unknown_enum_value(self):
        with pytest.raises(ConfigurationError, match="failure_criterion"):
            GeomechanicalParameters(failure_criterion="tresca")


class TestDerived:
    def test_loose_tolerance_is_tightened(self):
        assert GeomechanicalParameters(tolerance=1e-3).effective_tolerance == 1e-6
        assert GeomechanicalParameters(tolerance=1e-5).effective_tolerance == 1e-5

    def test_tractions_per_loading_mode(self):
        base = GeomechanicalParameters(sigma1=100.0, sigma2=50.0, sigma3=20.0)
        assert base.with_changes(loading_mode="uniaxial").applied_tractions() == (0.0, 0.0, 100.0)
        assert base.with_changes(loading_mode="biaxial").applied_tractions() == (0.0, 50.0, 100.0)
        assert base.with_changes(loading_mode="triaxial").applied_tractions() == (20.0, 50.0, 100.0)
        custom = base.with_changes(loading_mode="custom", sigma1_axis="x")
        assert custom.applied_tractions() == (100.0, 50.0, 20.0)

    def test_pore_pressure_reduces_every_traction(self):
        params = GeomechanicalParameters(
            use_pore_pressure=True, pore_pressure=10.0, biot_coefficient=0.8,
        )
        tx, ty, tz = params.applied_tractions()
        assert (tx, ty, tz) == pytest.approx((12.0, 42.0, 92.0))

    def test_with_changes_keeps_original(self):
        params = GeomechanicalParameters()
        changed = params.with_changes(cohesion=10.0)
        assert params.cohesion == 50.0
        assert changed.cohesion == 10.0

    def test_moduli(self):
        params = GeomechanicalParameters(youngs_modulus=30000.0, poisson_ratio=0.25)
        assert params.shear_modulus == pytest.approx(12000.0)
        assert params.bulk_modulus == pytest.approx(20000.0)
        assert params.effective_yield_stress == pytest.approx(2.0 * params.cohesion)

    def test_skempton_b_between_zero_and_one(self):
        b = GeomechanicalParameters().skempton_b()
        assert 0.0 < b < 1.0

    def test_to_dict_is_plain(self):
        d = GeomechanicalParameters(selected_material_ids={2, 1}).to_dict()
        assert d["failure_criterion"] == "mohr_coulomb"
        assert d["selected_material_ids"] == [1, 2]
