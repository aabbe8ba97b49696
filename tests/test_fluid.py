# tests/test_fluid.py
"""
Fluid injection / fracture engine.

WHY THESE TESTS?
---------------
1. Mass bookkeeping: injected volume = rate × elapsed time
2. Breakdown is detected once, at the first nucleation, and drives the state
3. A hydrostatic field must not move under pure diffusion
4. Cancellation leaves a consistent, partially filled record
"""

import numpy as np
import pytest

from voxel_geomech.cancel import CancellationToken
from voxel_geomech.fluid import (
    FluidFractureEngine, FluidState, connected_region, diffuse_pressure,
)
from voxel_geomech.params import GeomechanicalParameters
from voxel_geomech.results import GeomechanicalResults

TRIAXIAL = np.array([-20.0, -50.0, -100.0, 0.0, 0.0, 0.0])


def loaded_results(shape=(8, 8, 8)):
    """Mechanical record of a uniform triaxial state (σ = 100/50/20 MPa)."""
    mask = np.ones(shape, dtype=bool)
    results = GeomechanicalResults.allocate(mask)
    results.stress[...] = TRIAXIAL
    results.principal[...] = TRIAXIAL[:3]
    return results


def fluid_params(**changes):
    base = dict(
        enable_fluid_injection=True,
        max_simulation_time=20.0,
        fluid_time_step=1.0,
        fluid_iterations_per_step=2,
    )
    base.update(changes)
    return GeomechanicalParameters(**base).validate()


class TestInjection:
    def test_injected_volume_bookkeeping(self):
        params = fluid_params(injection_rate=0.02)
        engine = FluidFractureEngine(params, loaded_results())
        engine.run()
        assert engine.step_count == 20
        assert engine.injected_volume == pytest.approx(0.02 * 20 * 1.0)
        assert engine.results.injected_volume == pytest.approx(engine.injected_volume)

    def test_injection_voxel_from_fractions(self):
        engine = FluidFractureEngine(fluid_params(injection_location=(0.0, 0.5, 1.0)),
                                     loaded_results())
        assert engine.injection_voxel == (0, 4, 7)

    def test_initial_field_is_hydrostatic(self):
        params = fluid_params(initial_pore_pressure=10.0)
        engine = FluidFractureEngine(params, loaded_results())
        column = engine.pressure[0, 0, :]
        assert column[0] == pytest.approx(10.0)
        assert np.all(np.diff(column) > 0.0), "Pressure must grow with depth"


class TestBreakdown:
    def test_breakdown_detected_and_propagates(self):
        engine = FluidFractureEngine(fluid_params(), loaded_results())
        results = engine.run()
        assert results.breakdown_time == pytest.approx(0.0), "first step starts at t = 0"
        assert results.breakdown_pressure == pytest.approx(50.0)
        assert results.propagation_pressure == pytest.approx(50.0)
        assert results.fluid_state == FluidState.COMPLETED.value
        assert results.fractured.any()
        assert results.damage[engine.injection_voxel] == pytest.approx(0.95)

    def test_state_passes_through_breakdown(self):
        engine = FluidFractureEngine(fluid_params(), loaded_results())
        assert engine.state == FluidState.IDLE
        engine.step()
        assert engine.state == FluidState.BREAKDOWN
        assert engine.breakdown_step == 0
        engine.step()
        assert engine.state == FluidState.PROPAGATING

    def test_no_breakdown_keeps_injecting(self):
        engine = FluidFractureEngine(fluid_params(injection_pressure=15.0), loaded_results())
        engine.step()
        engine.step()
        assert engine.state == FluidState.INJECTING

    def test_no_breakdown_below_closure(self):
        engine = FluidFractureEngine(fluid_params(injection_pressure=15.0), loaded_results())
        results = engine.run()
        assert results.breakdown_time is None
        assert results.breakdown_pressure is None
        assert not results.fractured.any()
        assert results.fluid_state == FluidState.COMPLETED.value

    def test_apertures_stay_in_bounds(self):
        engine = FluidFractureEngine(fluid_params(), loaded_results())
        results = engine.run()
        w = results.aperture[results.fractured]
        dx = engine.params.voxel_size
        assert w.size > 0
        assert np.all(w >= engine.params.minimum_fracture_aperture)
        assert np.all(w <= dx / 10.0 + 1e-15)

    def test_fracture_network_links_neighbours(self):
        engine = FluidFractureEngine(fluid_params(), loaded_results())
        results = engine.run()
        assert results.fracture_network
        seg = results.fracture_network[0]
        length = np.linalg.norm(np.subtract(seg.end, seg.start))
        assert length == pytest.approx(engine.params.voxel_size)
        assert any(s.connected_to_injection for s in results.fracture_network)
        assert results.total_fracture_volume > 0.0


class TestRecording:
    def test_time_series_every_ten_steps(self):
        engine = FluidFractureEngine(fluid_params(max_simulation_time=35.0), loaded_results())
        results = engine.run()
        ts = results.time_series
        assert len(ts) == 4
        assert ts.time == pytest.approx([0.0, 10.0, 20.0, 30.0])
        assert len(ts.injection_pressure) == len(ts.flow_rate) == len(ts.injected_volume) == 4
        assert len(engine.injection_history) == 35

    def test_time_series_frame_columns(self):
        engine = FluidFractureEngine(fluid_params(), loaded_results())
        frame = engine.run().time_series_frame()
        assert list(frame.columns)[:2] == ["time_s", "injection_pressure_mpa"]
        assert len(frame) == 2

    def test_cancellation_keeps_partial_record(self):
        token = CancellationToken()
        token.cancel()
        engine = FluidFractureEngine(fluid_params(), loaded_results())
        results = engine.run(cancel_token=token)
        assert engine.state == FluidState.CANCELLED
        assert results.fluid_state == "cancelled"
        assert engine.step_count == 0
        assert results.pressure is engine.pressure

    def test_progress_in_fluid_window(self):
        seen = []
        FluidFractureEngine(fluid_params(), loaded_results()).run(progress=seen.append)
        assert seen and all(0.92 <= f <= 1.0 for f in seen)


class TestPressureField:
    def test_hydrostatic_field_is_stationary(self):
        nz = 6
        gdp = 0.05
        p = np.broadcast_to(10.0 + gdp * np.arange(nz), (4, 4, nz)).copy()
        mask = np.ones(p.shape, dtype=bool)
        out = diffuse_pressure(p, mask, 1.0 / 6.0, gdp, False, 0.0)
        np.testing.assert_allclose(out, p, rtol=0.0, atol=1e-12)

    def test_aquifer_boundary_feeds_faces(self):
        p = np.full((5, 5, 5), 10.0)
        mask = np.ones(p.shape, dtype=bool)
        out = diffuse_pressure(p, mask, 0.1, 0.0, True, 30.0)
        assert out[0, 2, 2] > 10.0
        assert out[2, 2, 2] == pytest.approx(10.0)

    def test_undrained_skips_diffusion(self):
        params = fluid_params(drainage="undrained", injection_pressure=15.0)
        engine = FluidFractureEngine(params, loaded_results())
        before = engine.pressure.copy()
        engine.run()
        far = (0, 0, 0)
        assert engine.pressure[far] == before[far]
        assert engine.pressure[engine.injection_voxel] == pytest.approx(15.0)

    def test_effective_stress_shift(self):
        engine = FluidFractureEngine(fluid_params(), loaded_results())
        engine.pressure[...] = 20.0
        sigma = engine.effective_stress()
        np.testing.assert_allclose(sigma[1, 1, 1, :3], TRIAXIAL[:3] + 0.8 * 20.0)
        np.testing.assert_allclose(sigma[1, 1, 1, 3:], 0.0)


class TestConnectivity:
    def _line(self, n=6):
        mask = np.ones((n, 3, 3), dtype=bool)
        fractured = np.zeros_like(mask)
        fractured[:, 1, 1] = True
        pressure = np.full(mask.shape, 10.0)
        return mask, fractured, pressure

    def test_follows_fractured_voxels(self):
        mask, fractured, pressure = self._line()
        visited, truncated = connected_region(
            np.array([0, 1, 1]), mask, fractured, pressure, 1.0, 1000)
        assert not truncated
        assert visited.sum() == 6
        assert visited[:, 1, 1].all()

    def test_high_gradient_links_unfractured_voxels(self):
        mask, fractured, pressure = self._line()
        pressure[0, 0, 1] = 30.0
        visited, _ = connected_region(np.array([0, 1, 1]), mask, fractured, pressure, 1.0, 1000)
        assert visited[0, 0, 1]

    def test_visit_cap_truncates(self):
        mask, fractured, pressure = self._line()
        visited, truncated = connected_region(
            np.array([0, 1, 1]), mask, fractured, pressure, 1.0, 3)
        assert truncated
        assert visited.sum() == 3


class TestGeothermal:
    def test_gradient_and_energy(self):
        params = fluid_params(enable_geothermal=True, geothermal_gradient=30.0,
                              voxel_size=1.0, max_simulation_time=10.0)
        engine = FluidFractureEngine(params, loaded_results())
        results = engine.run()
        assert results.average_thermal_gradient == pytest.approx(30.0)
        assert results.geothermal_energy_potential > 0.0

    def test_disabled_geothermal_reports_zero(self):
        results = FluidFractureEngine(fluid_params(), loaded_results()).run()
        assert results.geothermal_energy_potential == 0.0
        assert results.average_thermal_gradient == 0.0
