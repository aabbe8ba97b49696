# voxel_geomech/fluid.py
"""
FLUID INJECTION AND FRACTURE PROPAGATION
========================================

PURPOSE:
--------
Explicit time stepping of pore pressure on the voxel grid, driven by an
injection source, coupled to the mechanical stress field of a finished
mechanical run. Each time step:

    1. injection      pressure = P_inj inside a sphere around the injection voxel
    2. diffusion      explicit 7-point finite differences, gravity-corrected
                      along z, CFL-limited, optional aquifer boundary
    3. effective σ    σ'_normal = σ_normal - α·ΔP (compression positive)
    4. nucleation     failure index on effective principal stresses, or
                      LEFM: K_I = ΔP·√(π·a) > K_Ic; initial Sneddon aperture
    5. apertures      elastic opening + stress-dependent term, clamped to
                      [w_min, pitch/10]; w_min under net compression
    6. fracture flow  cubic-law diffusion through fractured voxels
                      (k = w²/12), per-step pressure change clamped
    7. connectivity   bounded breadth-first search from the injection voxel
    8. time series    every 10 steps, stamped with the step start time (0, 10·dt, ...)

STATES:
-------
    IDLE → INJECTING → BREAKDOWN (step of first nucleation) → PROPAGATING → COMPLETED
    Cancellation at any step boundary → CANCELLED, with all fields holding
    the last completed step.

UNITS:
------
Pressures and stresses in MPa, lengths in m, permeability in m², viscosity
in Pa·s, compressibility in 1/Pa. Pressure differences are converted to Pa
only inside the diffusivity and Darcy-flux formulas.
"""

import logging
import math
from enum import Enum
from typing import Optional

import numpy as np
from numba import njit, prange

from .cancel import CancellationToken, ProgressCallback
from .failure import failure_index
from .params import CRITERION_CODES, DrainageCondition, GeomechanicalParameters
from .results import FractureSegment, GeomechanicalResults

logger = logging.getLogger(__name__)

GRAVITY = 9.81
GRAIN_BULK_MODULUS = 36e9
FLUID_BULK_MODULUS = 2.2e9
MAX_DIFFUSION_NUMBER = 1.0 / 6.0

APERTURE_STRESS_SENSITIVITY = 0.5   # 1/MPa
MAX_FRACTURE_PRESSURE_STEP = 10.0   # MPa
HIGH_GRADIENT = 1.0                 # MPa between neighbours
CONNECTIVITY_VISIT_CAP = 1_000_000
RECORD_INTERVAL = 10
PROPAGATION_SAMPLES = 20

HEAT_TRANSFER_COEFFICIENT = 1000.0  # W/(m²·K)
ROCK_HEAT_CAPACITY = 1000.0         # J/(kg·K)
RECOVERY_FACTOR = 0.1
JOULES_PER_MWH = 3.6e9

PROGRESS_START = 0.92
PROGRESS_SPAN = 0.08

NEIGHBOURS = np.array([
    [1, 0, 0], [-1, 0, 0],
    [0, 1, 0], [0, -1, 0],
    [0, 0, 1], [0, 0, -1],
], dtype=np.int64)


class FluidState(str, Enum):
    IDLE = "idle"
    INJECTING = "injecting"
    BREAKDOWN = "breakdown"
    PROPAGATING = "propagating"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# ----------------------------------------------------------------------
# Kernels
# ----------------------------------------------------------------------
@njit(parallel=True, cache=True)
def diffuse_pressure(p, mask, alpha, gravity_dp, use_aquifer, aquifer_pressure):
    """
    One explicit diffusion sub-step, returns the new pressure field.

    Missing neighbours (outside the grid or the material) act as aquifer
    pressure when use_aquifer is set, otherwise as a hydrostatic ghost value
    that makes the face flux vanish.
    """
    nx, ny, nz = p.shape
    out = p.copy()
    for x in prange(nx):
        for y in range(ny):
            for z in range(nz):
                if not mask[x, y, z]:
                    continue
                pc = p[x, y, z]
                total = 0.0
                for k in range(6):
                    ox = NEIGHBOURS[k, 0]
                    oy = NEIGHBOURS[k, 1]
                    oz = NEIGHBOURS[k, 2]
                    xn = x + ox
                    yn = y + oy
                    zn = z + oz
                    # z grows with depth: hydrostatic pressure rises by gravity_dp per voxel
                    g = gravity_dp * oz
                    inside = 0 <= xn < nx and 0 <= yn < ny and 0 <= zn < nz
                    if inside and mask[xn, yn, zn]:
                        pn = p[xn, yn, zn]
                    elif use_aquifer:
                        pn = aquifer_pressure
                    else:
                        pn = pc + g
                    total += pn - g - pc
                value = pc + alpha * total
                out[x, y, z] = value if value > 0.0 else 0.0
    return out


@njit(parallel=True, cache=True)
def nucleate_fractures(principal, pressure, mask, fractured, aperture, damage,
                       failure_field, biot, reference_pressure, criterion,
                       cohesion, phi, tensile, hb_mb, hb_s, hb_a,
                       toughness, half_length, compliance, min_aperture,
                       damage_value):
    """
    Mark newly failed voxels; returns a bool field of the new fractures.

    compliance = 4/π·(1 - ν²)/E [1/MPa] (Sneddon penny crack).
    """
    nx, ny, nz = mask.shape
    new = np.zeros((nx, ny, nz), dtype=np.bool_)
    root = math.sqrt(math.pi * half_length)
    for x in prange(nx):
        for y in range(ny):
            for z in range(nz):
                if not mask[x, y, z] or fractured[x, y, z]:
                    continue
                P = pressure[x, y, z]
                shift = biot * (P - reference_pressure)
                c1 = -principal[x, y, z, 2] - shift
                c2 = -principal[x, y, z, 1] - shift
                c3 = -principal[x, y, z, 0] - shift
                fi = failure_index(c1, c2, c3, criterion, cohesion, phi, tensile,
                                   hb_mb, hb_s, hb_a)
                if fi > failure_field[x, y, z]:
                    failure_field[x, y, z] = fi
                net = P + principal[x, y, z, 0]
                if net < 0.0:
                    net = 0.0
                k_i = net * root
                if fi >= 1.0 or k_i > toughness:
                    fractured[x, y, z] = True
                    new[x, y, z] = True
                    w = compliance * net * half_length
                    aperture[x, y, z] = w if w > min_aperture else min_aperture
                    if damage[x, y, z] < damage_value:
                        damage[x, y, z] = damage_value
    return new


@njit(parallel=True, cache=True)
def evolve_apertures(principal, pressure, fractured, aperture, compliance,
                     half_length, min_aperture, max_aperture, sensitivity):
    nx, ny, nz = fractured.shape
    for x in prange(nx):
        for y in range(ny):
            for z in range(nz):
                if not fractured[x, y, z]:
                    continue
                net = pressure[x, y, z] + principal[x, y, z, 0]
                if net > 0.0:
                    w = compliance * net * half_length
                    w += min_aperture * math.exp(sensitivity * net)
                else:
                    w = min_aperture
                if w < min_aperture:
                    w = min_aperture
                if w > max_aperture:
                    w = max_aperture
                aperture[x, y, z] = w


@njit(parallel=True, cache=True)
def fracture_flow_step(p, mask, fractured, aperture, min_aperture, viscosity,
                       compressibility, dt_over_dx2, max_change):
    """
    Cubic-law pressure exchange across faces touching a fractured voxel.

    The face aperture is the harmonic mean of both sides (unfractured
    voxels count with the minimum aperture); k = w²/12 and each face weight
    is capped at the explicit stability limit.
    """
    nx, ny, nz = p.shape
    out = p.copy()
    for x in prange(nx):
        for y in range(ny):
            for z in range(nz):
                if not mask[x, y, z]:
                    continue
                wc = aperture[x, y, z] if fractured[x, y, z] else min_aperture
                pc = p[x, y, z]
                delta = 0.0
                for k in range(6):
                    xn = x + NEIGHBOURS[k, 0]
                    yn = y + NEIGHBOURS[k, 1]
                    zn = z + NEIGHBOURS[k, 2]
                    if not (0 <= xn < nx and 0 <= yn < ny and 0 <= zn < nz):
                        continue
                    if not mask[xn, yn, zn]:
                        continue
                    if not (fractured[x, y, z] or fractured[xn, yn, zn]):
                        continue
                    wn = aperture[xn, yn, zn] if fractured[xn, yn, zn] else min_aperture
                    w = 2.0 * wc * wn / (wc + wn)
                    diffusivity = w * w / 12.0 / (viscosity * compressibility)
                    weight = diffusivity * dt_over_dx2
                    if weight > MAX_DIFFUSION_NUMBER:
                        weight = MAX_DIFFUSION_NUMBER
                    delta += weight * (p[xn, yn, zn] - pc)
                if delta > max_change:
                    delta = max_change
                elif delta < -max_change:
                    delta = -max_change
                value = pc + delta
                out[x, y, z] = value if value > 0.0 else 0.0
    return out


@njit(cache=True)
def connected_region(start, mask, fractured, pressure, gradient_threshold, cap):
    """
    Breadth-first search from start through fractured or high-gradient links.

    Returns the visited field and whether the search stopped at the cap.
    """
    nx, ny, nz = mask.shape
    visited = np.zeros((nx, ny, nz), dtype=np.bool_)
    sx = start[0]
    sy = start[1]
    sz = start[2]
    if not mask[sx, sy, sz]:
        return visited, False
    size = min(cap, nx * ny * nz)
    queue = np.empty((size, 3), dtype=np.int64)
    queue[0, 0] = sx
    queue[0, 1] = sy
    queue[0, 2] = sz
    visited[sx, sy, sz] = True
    head = 0
    tail = 1
    truncated = False
    while head < tail:
        x = queue[head, 0]
        y = queue[head, 1]
        z = queue[head, 2]
        head += 1
        pc = pressure[x, y, z]
        for k in range(6):
            xn = x + NEIGHBOURS[k, 0]
            yn = y + NEIGHBOURS[k, 1]
            zn = z + NEIGHBOURS[k, 2]
            if not (0 <= xn < nx and 0 <= yn < ny and 0 <= zn < nz):
                continue
            if visited[xn, yn, zn] or not mask[xn, yn, zn]:
                continue
            if not (fractured[xn, yn, zn] or abs(pressure[xn, yn, zn] - pc) > gradient_threshold):
                continue
            if tail >= size:
                truncated = True
                continue
            visited[xn, yn, zn] = True
            queue[tail, 0] = xn
            queue[tail, 1] = yn
            queue[tail, 2] = zn
            tail += 1
    return visited, truncated


# ----------------------------------------------------------------------
# Engine
# ----------------------------------------------------------------------
class FluidFractureEngine:
    """
    Time-stepping fluid/fracture model sharing state with a mechanical result.

    The engine reads the stress and principal-stress fields of `results`,
    and writes back fracture flags, damage, failure index and its own
    fluid fields (pressure, temperature, aperture, saturation, connectivity).

    Example:
    --------
    >>> engine = FluidFractureEngine(params, results)
    >>> engine.run()
    >>> results.breakdown_pressure
    """

    def __init__(
        self,
        params: GeomechanicalParameters,
        results: GeomechanicalResults,
        density: Optional[np.ndarray] = None,
    ):
        self.params = params
        self.results = results
        self.mask = results.mask
        self.dx = params.voxel_size
        self.density = density
        self.state = FluidState.IDLE

        shape = self.mask.shape
        self.injection_voxel = tuple(
            min(int(frac * n), n - 1) for frac, n in zip(params.injection_location, shape)
        )
        self.reference_pressure = params.pore_pressure if params.use_pore_pressure else 0.0

        self.time = 0.0
        self.step_count = 0
        self.injected_volume = 0.0
        self.breakdown_time = None
        self.breakdown_pressure = None
        self.breakdown_step = None
        self.injection_history = []
        self._cfl_warned = False

        self.pressure = np.zeros(shape)
        self.temperature = np.zeros(shape)
        self.aperture = np.zeros(shape)
        self.saturation = np.zeros(shape)
        self.connectivity = np.zeros(shape, dtype=bool)
        self._source = self._injection_region()
        self.initialize_fields()

    # --- setup --------------------------------------------------------
    def _injection_region(self):
        nx, ny, nz = self.mask.shape
        cx, cy, cz = self.injection_voxel
        r = self.params.injection_radius
        x, y, z = np.ogrid[0:nx, 0:ny, 0:nz]
        sphere = (x - cx) ** 2 + (y - cy) ** 2 + (z - cz) ** 2 <= r * r
        region = sphere & self.mask
        if not region.any():
            logger.warning("Injection region at %s contains no material voxels",
                           self.injection_voxel)
        return np.nonzero(region)

    def _depth(self) -> np.ndarray:
        nz = self.mask.shape[2]
        return (np.arange(nz) * self.dx)[None, None, :]

    def initialize_fields(self) -> None:
        """Hydrostatic pressure, geothermal temperature, initial saturation."""
        p = self.params
        depth = np.broadcast_to(self._depth(), self.mask.shape)
        hydrostatic = p.initial_pore_pressure + p.fluid_density * GRAVITY * depth * 1e-6
        self.pressure[...] = np.where(self.mask, hydrostatic, 0.0)
        geotherm = p.surface_temperature + p.geothermal_gradient / 1000.0 * depth
        self.temperature[...] = np.where(self.mask, geotherm, 0.0)
        self.saturation[...] = np.where(self.mask, p.porosity, 0.0)
        self.aperture[...] = np.where(self.results.fractured & self.mask,
                                      p.minimum_fracture_aperture, 0.0)

    # --- per-step physics ---------------------------------------------
    def storage_coefficient(self) -> float:
        """Specific storage S = φ/K_f + (α - φ)/K_s  [1/Pa]."""
        p = self.params
        s = p.porosity / FLUID_BULK_MODULUS + (p.biot_coefficient - p.porosity) / GRAIN_BULK_MODULUS
        if s <= 0.0:
            s = p.porosity / FLUID_BULK_MODULUS
        return s

    def diffusion_number(self, dt: float) -> float:
        p = self.params
        diffusivity = p.rock_permeability / (p.fluid_viscosity * self.storage_coefficient())
        alpha = diffusivity * dt / self.dx ** 2
        if alpha > MAX_DIFFUSION_NUMBER:
            if not self._cfl_warned:
                logger.warning("Diffusion number %.3g exceeds the stability limit; clamped to 1/6", alpha)
                self._cfl_warned = True
            alpha = MAX_DIFFUSION_NUMBER
        return alpha

    def apply_injection(self) -> None:
        self.pressure[self._source] = self.params.injection_pressure
        self.injected_volume += self.params.injection_rate * self.params.fluid_time_step

    def diffuse(self) -> None:
        p = self.params
        if p.drainage == DrainageCondition.UNDRAINED:
            return
        n_sub = p.fluid_iterations_per_step
        alpha = self.diffusion_number(p.fluid_time_step / n_sub)
        gravity_dp = p.fluid_density * GRAVITY * self.dx * 1e-6
        for _ in range(n_sub):
            self.pressure = diffuse_pressure(
                self.pressure, self.mask, alpha, gravity_dp,
                p.enable_aquifer, p.aquifer_pressure,
            )
            self.pressure[self._source] = p.injection_pressure

    def effective_stress(self) -> np.ndarray:
        """
        Stress with the pore-pressure change folded into the normal components.

        Stored stresses are compression-negative, so removing α·ΔP from the
        compressive normal stress means adding it here. Shear is unchanged.
        """
        sigma = np.array(self.results.stress, copy=True)
        shift = self.params.biot_coefficient * (self.pressure - self.reference_pressure)
        sigma[..., :3] += np.where(self.mask, shift, 0.0)[..., None]
        return sigma

    def detect_nucleation(self) -> int:
        p = self.params
        r = self.results
        compliance = 4.0 / math.pi * (1.0 - p.poisson_ratio ** 2) / p.youngs_modulus
        new = nucleate_fractures(
            np.asarray(r.principal), self.pressure, self.mask, np.asarray(r.fractured),
            self.aperture, np.asarray(r.damage), np.asarray(r.failure_index),
            p.biot_coefficient, self.reference_pressure,
            CRITERION_CODES[p.failure_criterion], p.cohesion, p.friction_angle_rad,
            p.tensile_strength, p.hoek_brown_mb, p.hoek_brown_s, p.hoek_brown_a,
            p.fracture_toughness, self.dx / 2.0, compliance,
            p.minimum_fracture_aperture, 1.0 - p.residual_strength,
        )
        count = int(new.sum())
        if count and self.breakdown_time is None:
            self.breakdown_time = self.time
            self.breakdown_pressure = self.injection_pressure()
            self.breakdown_step = self.step_count
            self.state = FluidState.BREAKDOWN
            logger.info("Breakdown at t=%.3f s, injection pressure %.2f MPa (%d voxels)",
                        self.time, self.breakdown_pressure, count)
        return count

    def update_apertures(self) -> None:
        p = self.params
        compliance = 4.0 * (1.0 - p.poisson_ratio ** 2) / p.youngs_modulus
        evolve_apertures(
            np.asarray(self.results.principal), self.pressure,
            np.asarray(self.results.fractured), self.aperture, compliance,
            self.dx / 2.0, p.minimum_fracture_aperture, self.dx / 10.0,
            APERTURE_STRESS_SENSITIVITY,
        )

    def fracture_flow(self) -> None:
        p = self.params
        if not p.enable_fracture_flow or self.breakdown_time is None:
            return
        self.pressure = fracture_flow_step(
            self.pressure, self.mask, np.asarray(self.results.fractured), self.aperture,
            p.minimum_fracture_aperture, p.fluid_viscosity, p.fracture_compressibility,
            p.fluid_time_step / self.dx ** 2, MAX_FRACTURE_PRESSURE_STEP,
        )
        self.pressure[self._source] = p.injection_pressure

    def update_connectivity(self) -> int:
        visited, truncated = connected_region(
            np.array(self.injection_voxel, dtype=np.int64), self.mask,
            np.asarray(self.results.fractured), self.pressure,
            HIGH_GRADIENT, CONNECTIVITY_VISIT_CAP,
        )
        if truncated:
            logger.warning("Connectivity search stopped at %d voxels", CONNECTIVITY_VISIT_CAP)
        self.connectivity[...] = visited
        self.saturation[visited] = 1.0
        return int(visited.sum())

    # --- diagnostics --------------------------------------------------
    def injection_pressure(self) -> float:
        return float(self.pressure[self.injection_voxel])

    def fracture_volume(self) -> float:
        fractured = np.asarray(self.results.fractured) & self.mask
        return float(self.aperture[fractured].sum() * self.dx ** 2)

    def flow_rate(self) -> float:
        """Darcy flux through the injection zone [m³/s]."""
        p = self.params
        r = p.injection_radius + 1
        lo = [max(c - r, 0) for c in self.injection_voxel]
        hi = [min(c + r + 1, n) for c, n in zip(self.injection_voxel, self.mask.shape)]
        window = tuple(slice(a, b) for a, b in zip(lo, hi))
        pressure = self.pressure[window]
        if min(pressure.shape) < 2:
            return 0.0
        grads = np.gradient(pressure * 1e6, self.dx)
        grad_mag = np.sqrt(sum(g * g for g in grads))
        fractured = np.asarray(self.results.fractured)[window]
        permeability = np.where(fractured, self.aperture[window] ** 2 / 12.0, p.rock_permeability)
        velocity = permeability / p.fluid_viscosity * grad_mag
        return float(velocity[self.mask[window]].sum() * self.dx ** 2)

    def energy_extraction_rate(self) -> float:
        """Heat drawn by injected fluid from connected rock [MW]."""
        p = self.params
        if not p.enable_geothermal:
            return 0.0
        hot = self.connectivity & self.mask & (self.temperature > p.injection_temperature)
        delta_t = self.temperature[hot] - p.injection_temperature
        area = 6.0 * self.dx ** 2
        return float((HEAT_TRANSFER_COEFFICIENT * area * delta_t).sum() / 1e6)

    def energy_potential(self) -> float:
        """Recoverable heat in place [MWh]."""
        p = self.params
        if not (p.enable_geothermal and p.calculate_energy_potential):
            return 0.0
        rho = np.full(self.mask.shape, p.density)
        if self.density is not None:
            rho = np.where(self.density > 0.0, self.density, rho)
        delta_t = np.maximum(self.temperature - p.surface_temperature, 0.0)
        volume = self.dx ** 3
        joules = (rho * ROCK_HEAT_CAPACITY * delta_t * volume)[self.mask].sum() * RECOVERY_FACTOR
        return float(joules / JOULES_PER_MWH)

    def average_thermal_gradient(self) -> float:
        """Mean temperature increase with depth over the material [°C/km]."""
        nz = self.mask.shape[2]
        layers = [z for z in range(nz) if self.mask[:, :, z].any()]
        if len(layers) < 2:
            return 0.0
        top, bottom = layers[0], layers[-1]
        t_top = self.temperature[:, :, top][self.mask[:, :, top]].mean()
        t_bottom = self.temperature[:, :, bottom][self.mask[:, :, bottom]].mean()
        return float((t_bottom - t_top) / ((bottom - top) * self.dx) * 1000.0)

    def propagation_pressure(self) -> Optional[float]:
        if self.breakdown_step is None:
            return None
        after = self.injection_history[self.breakdown_step:][:PROPAGATION_SAMPLES]
        if not after:
            return None
        return float(np.mean(after))

    # --- loop ---------------------------------------------------------
    def num_steps(self) -> int:
        p = self.params
        return max(1, int(math.ceil(p.max_simulation_time / p.fluid_time_step - 1e-9)))

    def step(self) -> None:
        """Advance one fluid time step (all sub-passes, in order)."""
        if self.state == FluidState.IDLE:
            self.state = FluidState.INJECTING
        elif self.state == FluidState.BREAKDOWN:
            self.state = FluidState.PROPAGATING
        # Steps are stamped with their start time: 0, dt, 2·dt, ...
        self.time = self.step_count * self.params.fluid_time_step
        self.apply_injection()
        self.diffuse()
        self.detect_nucleation()
        self.update_apertures()
        self.fracture_flow()

        self.injection_history.append(self.injection_pressure())
        if self.step_count % RECORD_INTERVAL == 0:
            self.update_connectivity()
            self.record()
        self.step_count += 1

    def record(self) -> None:
        self.results.time_series.append(
            time=self.time,
            injection_pressure=self.injection_pressure(),
            flow_rate=self.flow_rate(),
            fracture_volume=self.fracture_volume(),
            energy_extraction_rate=self.energy_extraction_rate(),
            injected_volume=self.injected_volume,
        )

    def run(
        self,
        progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> GeomechanicalResults:
        """
        Step until the configured end time or cancellation.

        Always returns the shared results record, filled with the state of
        the last completed step.
        """
        total = self.num_steps()
        logger.info("Fluid injection: %d steps of %.3g s at %.2f MPa from voxel %s",
                    total, self.params.fluid_time_step, self.params.injection_pressure,
                    self.injection_voxel)
        while self.step_count < total:
            if cancel_token is not None and cancel_token.cancelled:
                self.state = FluidState.CANCELLED
                logger.info("Fluid loop cancelled after %d steps", self.step_count)
                break
            self.step()
            if progress is not None and self.step_count % RECORD_INTERVAL == 0:
                progress(PROGRESS_START + PROGRESS_SPAN * self.step_count / total)
            if self.step_count % 100 == 0:
                logger.debug("Fluid step %d/%d, P_inj=%.2f MPa", self.step_count, total,
                             self.injection_pressure())

        if self.state != FluidState.CANCELLED:
            self.state = FluidState.COMPLETED
        self.update_connectivity()
        self.populate_results()
        return self.results

    def fracture_network(self):
        """Segments between adjacent fractured voxels along +x, +y and +z."""
        fractured = np.asarray(self.results.fractured) & self.mask
        segments = []
        shape = self.mask.shape
        for axis in range(3):
            step = [0, 0, 0]
            step[axis] = 1
            a = tuple(slice(0, n - s) for n, s in zip(shape, step))
            b = tuple(slice(s, n) for n, s in zip(shape, step))
            linked = np.argwhere(fractured[a] & fractured[b])
            for start in linked:
                end = start + np.array(step)
                s, e = tuple(start), tuple(end)
                w = 0.5 * (self.aperture[s] + self.aperture[e])
                segments.append(FractureSegment(
                    start=tuple(float(v) * self.dx for v in start),
                    end=tuple(float(v) * self.dx for v in end),
                    aperture=float(w),
                    permeability=float(w * w / 12.0),
                    pressure=float(0.5 * (self.pressure[s] + self.pressure[e])),
                    temperature=float(0.5 * (self.temperature[s] + self.temperature[e])),
                    connected_to_injection=bool(self.connectivity[s] and self.connectivity[e]),
                ))
        return segments

    def populate_results(self) -> None:
        r = self.results
        r.pressure = self.pressure
        r.temperature = self.temperature
        r.aperture = self.aperture
        r.saturation = self.saturation
        r.connectivity = self.connectivity
        r.effective_stress = self.effective_stress()
        r.fluid_state = self.state.value
        r.breakdown_time = self.breakdown_time
        r.breakdown_pressure = self.breakdown_pressure
        r.propagation_pressure = self.propagation_pressure()
        r.peak_injection_pressure = max(self.injection_history, default=0.0)
        material = self.pressure[self.mask]
        r.min_pressure = float(material.min()) if material.size else 0.0
        r.max_pressure = float(material.max()) if material.size else 0.0
        r.total_fracture_volume = self.fracture_volume()
        r.injected_volume = self.injected_volume
        r.geothermal_energy_potential = self.energy_potential()
        r.average_thermal_gradient = self.average_thermal_gradient() if self.params.enable_geothermal else 0.0
        r.fracture_network = self.fracture_network()
