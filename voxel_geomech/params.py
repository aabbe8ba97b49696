# voxel_geomech/params.py
"""
PARAMETERS: Loading, Material, Failure and Fluid Configuration
==============================================================

PURPOSE:
--------
One immutable value object (GeomechanicalParameters) carries everything a run
needs: elastic moduli, the principal loads, pore pressure / Biot settings, the
failure criterion and its constants, damage / plasticity switches, solver
controls and the fluid-injection setup. Every component reads from it; none
writes to it.

UNITS:
------
    stress, moduli, pressure   MPa
    length, voxel pitch        m
    density                    kg/m³
    permeability               m²
    viscosity                  Pa·s
    time                       s
    temperature                °C   (gradient in °C/km)
    fracture toughness         MPa·√m

USAGE:
------
    params = GeomechanicalParameters(sigma1=100.0, sigma2=50.0, sigma3=20.0)
    params.validate()                        # raises ConfigurationError
    stronger = params.with_changes(cohesion=80.0)
"""

import logging
import math
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import FrozenSet, Optional, Tuple

logger = logging.getLogger(__name__)


class GeomechanicsError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(GeomechanicsError, ValueError):
    """Invalid parameters or input arrays. Raised before any computation."""


class LoadingMode(str, Enum):
    UNIAXIAL = "uniaxial"
    BIAXIAL = "biaxial"
    TRIAXIAL = "triaxial"
    CUSTOM = "custom"


class FailureCriterion(str, Enum):
    MOHR_COULOMB = "mohr_coulomb"
    DRUCKER_PRAGER = "drucker_prager"
    HOEK_BROWN = "hoek_brown"
    GRIFFITH = "griffith"


class DamageModel(str, Enum):
    EXPONENTIAL = "exponential"
    LINEAR = "linear"


class DrainageCondition(str, Enum):
    DRAINED = "drained"
    UNDRAINED = "undrained"


class StressMapping(str, Enum):
    NODAL_AVERAGE = "nodal_average"
    CENTROID = "centroid"


# Integer codes handed to the numba kernels
CRITERION_CODES = {
    FailureCriterion.MOHR_COULOMB: 0,
    FailureCriterion.DRUCKER_PRAGER: 1,
    FailureCriterion.HOEK_BROWN: 2,
    FailureCriterion.GRIFFITH: 3,
}

AXES = ("x", "y", "z")

# Strictest tolerance used when a loose one is requested
STRICT_TOLERANCE = 1e-6
LOOSEST_TOLERANCE = 1e-4

_ENUM_FIELDS = {
    "loading_mode": LoadingMode,
    "failure_criterion": FailureCriterion,
    "damage_model": DamageModel,
    "drainage": DrainageCondition,
    "stress_mapping": StressMapping,
}


@dataclass(frozen=True)
class GeomechanicalParameters:
    """
    Immutable configuration for one simulation run.

    Principal loads are given as positive compressive magnitudes with
    sigma1 >= sigma2 >= sigma3. Stored stress fields use the
    compression-negative sign convention; failure criteria are evaluated on
    compression-positive principal values.
    """
    # Elastic / strength properties
    youngs_modulus: float = 30000.0
    poisson_ratio: float = 0.25
    density: float = 2700.0
    cohesion: float = 50.0
    friction_angle: float = 30.0
    tensile_strength: float = 5.0
    dilation_angle: float = 10.0

    # Geometry
    voxel_size: float = 1e-3
    selected_material_ids: Optional[FrozenSet[int]] = None

    # Loading
    loading_mode: LoadingMode = LoadingMode.TRIAXIAL
    sigma1: float = 100.0
    sigma2: float = 50.0
    sigma3: float = 20.0
    sigma1_axis: str = "z"

    # Pore pressure
    use_pore_pressure: bool = False
    pore_pressure: float = 10.0
    biot_coefficient: float = 0.8
    drainage: DrainageCondition = DrainageCondition.DRAINED

    # Failure
    failure_criterion: FailureCriterion = FailureCriterion.MOHR_COULOMB
    hoek_brown_mi: float = 10.0
    hoek_brown_mb: float = 1.5
    hoek_brown_s: float = 0.004
    hoek_brown_a: float = 0.5

    # Damage
    enable_damage_evolution: bool = True
    damage_model: DamageModel = DamageModel.EXPONENTIAL
    damage_initiation: float = 0.7
    damage_exponent: float = 2.0
    residual_strength: float = 0.05
    damage_iterations: int = 0

    # Plasticity
    enable_plasticity: bool = False
    yield_stress: Optional[float] = None
    hardening_ratio: float = 0.01

    # Solver
    max_iterations: int = 1000
    tolerance: float = 1e-6
    element_batch_size: int = 4096
    stress_mapping: StressMapping = StressMapping.NODAL_AVERAGE

    # Backend / storage
    use_gpu: bool = False
    enable_offloading: bool = False
    offload_directory: Optional[str] = None
    offload_threshold_mb: float = 256.0

    # Fluid injection
    enable_fluid_injection: bool = False
    injection_location: Tuple[float, float, float] = (0.5, 0.5, 0.5)
    injection_pressure: float = 50.0
    injection_rate: float = 0.01
    injection_radius: int = 2
    fluid_time_step: float = 1.0
    max_simulation_time: float = 100.0
    fluid_iterations_per_step: int = 5
    initial_pore_pressure: float = 10.0
    porosity: float = 0.1
    rock_permeability: float = 1e-18
    fluid_viscosity: float = 1e-3
    fluid_density: float = 1000.0
    fracture_compressibility: float = 1e-9
    fracture_toughness: float = 1.0
    minimum_fracture_aperture: float = 1e-6
    enable_fracture_flow: bool = True
    enable_aquifer: bool = False
    aquifer_pressure: float = 10.0

    # Geothermal
    enable_geothermal: bool = False
    surface_temperature: float = 20.0
    geothermal_gradient: float = 30.0
    injection_temperature: float = 20.0
    calculate_energy_potential: bool = True

    def __post_init__(self):
        # Accept plain strings for enum-valued options
        for name, enum_cls in _ENUM_FIELDS.items():
            value = getattr(self, name)
            if not isinstance(value, enum_cls):
                try:
                    object.__setattr__(self, name, enum_cls(value))
                except ValueError as exc:
                    options = ", ".join(m.value for m in enum_cls)
                    raise ConfigurationError(
                        f"{name}={value!r} is not one of: {options}"
                    ) from exc
        if self.selected_material_ids is not None:
            object.__setattr__(
                self, "selected_material_ids",
                frozenset(int(m) for m in self.selected_material_ids),
            )
        object.__setattr__(
            self, "injection_location",
            tuple(float(v) for v in self.injection_location),
        )

    def with_changes(self, **changes) -> "GeomechanicalParameters":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> dict:
        out = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, frozenset):
                value = sorted(value)
            out[f.name] = value
        return out

    # ------------------------------------------------------------------
    # Derived quantities
    # ------------------------------------------------------------------
    @property
    def friction_angle_rad(self) -> float:
        return math.radians(self.friction_angle)

    @property
    def shear_modulus(self) -> float:
        return self.youngs_modulus / (2.0 * (1.0 + self.poisson_ratio))

    @property
    def bulk_modulus(self) -> float:
        return self.youngs_modulus / (3.0 * (1.0 - 2.0 * self.poisson_ratio))

    @property
    def effective_yield_stress(self) -> float:
        if self.yield_stress is not None:
            return self.yield_stress
        return 2.0 * self.cohesion

    @property
    def effective_tolerance(self) -> float:
        """Solver tolerance, with loose requests tightened to 1e-6."""
        if self.tolerance > LOOSEST_TOLERANCE:
            logger.warning(
                "Tolerance %.1e is looser than %.0e; using %.0e instead",
                self.tolerance, LOOSEST_TOLERANCE, STRICT_TOLERANCE,
            )
            return STRICT_TOLERANCE
        return self.tolerance

    def applied_tractions(self) -> Tuple[float, float, float]:
        """
        Compressive traction magnitudes (MPa) on the x-max, y-max and z-max faces.

        Pore pressure, when enabled, is removed from every face through the
        Biot coefficient (Terzaghi effective stress).
        """
        mode = self.loading_mode
        if mode == LoadingMode.UNIAXIAL:
            tx, ty, tz = 0.0, 0.0, self.sigma1
        elif mode == LoadingMode.BIAXIAL:
            tx, ty, tz = 0.0, self.sigma2, self.sigma1
        elif mode == LoadingMode.TRIAXIAL:
            tx, ty, tz = self.sigma3, self.sigma2, self.sigma1
        else:
            axis = AXES.index(self.sigma1_axis)
            t = [0.0, 0.0, 0.0]
            t[axis] = self.sigma1
            t[(axis + 1) % 3] = self.sigma2
            t[(axis + 2) % 3] = self.sigma3
            tx, ty, tz = t

        if self.use_pore_pressure:
            shift = self.biot_coefficient * self.pore_pressure
            tx, ty, tz = tx - shift, ty - shift, tz - shift
        return tx, ty, tz

    def skempton_b(self) -> float:
        """Skempton's pore-pressure coefficient for undrained loading."""
        grain_modulus = 36000.0
        fluid_modulus = 2200.0
        drained = 1.0 / self.bulk_modulus - 1.0 / grain_modulus
        pore = self.porosity * (1.0 / fluid_modulus - 1.0 / grain_modulus)
        if drained + pore <= 0.0:
            return 0.0
        return drained / (drained + pore)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------
    def validate(self) -> "GeomechanicalParameters":
        """
        Check the configuration and raise ConfigurationError on the first problem.

        Returns self so calls can be chained.
        """
        if self.sigma1 < self.sigma2 or self.sigma2 < self.sigma3:
            raise ConfigurationError(
                f"Principal stresses must satisfy sigma1 >= sigma2 >= sigma3, "
                f"got {self.sigma1}/{self.sigma2}/{self.sigma3}"
            )
        if not 0.0 < self.poisson_ratio < 0.5:
            raise ConfigurationError(
                f"Poisson ratio must lie in (0, 0.5), got {self.poisson_ratio}"
            )
        if self.youngs_modulus <= 0.0:
            raise ConfigurationError(
                f"Young's modulus must be positive, got {self.youngs_modulus}"
            )
        if self.cohesion < 0.0:
            raise ConfigurationError(f"Cohesion must be >= 0, got {self.cohesion}")
        if not 0.0 <= self.friction_angle <= 70.0:
            raise ConfigurationError(
                f"Friction angle must lie in [0, 70] degrees, got {self.friction_angle}"
            )
        if self.tensile_strength < 0.0:
            raise ConfigurationError(
                f"Tensile strength must be >= 0, got {self.tensile_strength}"
            )
        if self.density <= 0.0:
            raise ConfigurationError(f"Density must be positive, got {self.density}")
        if not 0.0 <= self.biot_coefficient <= 1.0:
            raise ConfigurationError(
                f"Biot coefficient must lie in [0, 1], got {self.biot_coefficient}"
            )
        if self.voxel_size <= 0.0:
            raise ConfigurationError(f"Voxel size must be positive, got {self.voxel_size}")
        if self.max_iterations < 1:
            raise ConfigurationError(
                f"max_iterations must be >= 1, got {self.max_iterations}"
            )
        if self.tolerance <= 0.0:
            raise ConfigurationError(f"Tolerance must be positive, got {self.tolerance}")
        if self.element_batch_size < 1:
            raise ConfigurationError("element_batch_size must be >= 1")
        if self.sigma1_axis not in AXES:
            raise ConfigurationError(
                f"sigma1_axis must be one of {AXES}, got {self.sigma1_axis!r}"
            )
        if not 0.0 < self.hoek_brown_a <= 1.0:
            raise ConfigurationError(
                f"Hoek-Brown exponent a must lie in (0, 1], got {self.hoek_brown_a}"
            )
        if not 0.0 < self.damage_initiation < 1.0:
            raise ConfigurationError("damage_initiation must lie in (0, 1)")
        if not 0.0 <= self.residual_strength < 1.0:
            raise ConfigurationError("residual_strength must lie in [0, 1)")
        if self.damage_iterations < 0:
            raise ConfigurationError("damage_iterations must be >= 0")
        if not 0.0 < self.porosity < 1.0:
            raise ConfigurationError(f"Porosity must lie in (0, 1), got {self.porosity}")
        if self.enable_offloading and not self.offload_directory:
            raise ConfigurationError("Offloading is enabled but no offload_directory is set")

        if self.enable_fluid_injection:
            positive = {
                "fluid_time_step": self.fluid_time_step,
                "max_simulation_time": self.max_simulation_time,
                "fluid_viscosity": self.fluid_viscosity,
                "rock_permeability": self.rock_permeability,
                "fluid_density": self.fluid_density,
                "fracture_toughness": self.fracture_toughness,
                "minimum_fracture_aperture": self.minimum_fracture_aperture,
            }
            for name, value in positive.items():
                if value <= 0.0:
                    raise ConfigurationError(f"{name} must be positive, got {value}")
            if self.fluid_iterations_per_step < 1:
                raise ConfigurationError("fluid_iterations_per_step must be >= 1")
            if self.injection_radius < 0:
                raise ConfigurationError("injection_radius must be >= 0")
            if self.injection_rate < 0.0:
                raise ConfigurationError("injection_rate must be >= 0")
            if len(self.injection_location) != 3 or not all(
                0.0 <= v <= 1.0 for v in self.injection_location
            ):
                raise ConfigurationError(
                    "injection_location must be three fractions in [0, 1], "
                    f"got {self.injection_location}"
                )
        return self
