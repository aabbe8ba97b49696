# voxel_geomech/results.py
"""
RESULTS: Output Record, Statistics and Mohr Circles
===================================================

GeomechanicalResults collects every per-voxel field and scalar a run
produces. The fluid engine writes its fields into the same record.

Field shapes (nx, ny, nz are the label grid extents):

    stress, strain           (nx, ny, nz, 6)   xx, yy, zz, xy, xz, yz
    principal                (nx, ny, nz, 3)   σ1 >= σ2 >= σ3 (compression negative)
    failure_index, damage,
    plastic_strain,
    crack_density            (nx, ny, nz)
    fractured                (nx, ny, nz) bool
    pressure, temperature,
    aperture, saturation     (nx, ny, nz)      fluid mode only
    connectivity             (nx, ny, nz) bool fluid mode only
"""

import math
from dataclasses import dataclass, field, fields
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from .params import GeomechanicalParameters
from .plasticity import von_mises_field


@dataclass
class MohrCircleData:
    """
    Principal stress state at one sample location, compression positive [MPa].
    """
    location: str
    position: Tuple[int, int, int]
    sigma1: float
    sigma2: float
    sigma3: float
    max_shear: float
    has_failed: bool
    failure_angle: float
    normal_stress_at_failure: float
    shear_stress_at_failure: float

    def circles(self) -> List[Tuple[float, float]]:
        """(center, radius) of the three Mohr circles, largest first."""
        pairs = [(self.sigma1, self.sigma3), (self.sigma1, self.sigma2), (self.sigma2, self.sigma3)]
        return [((a + b) / 2.0, (a - b) / 2.0) for a, b in pairs]


@dataclass
class FractureSegment:
    """Link between two adjacent fractured voxels. Positions in metres."""
    start: Tuple[float, float, float]
    end: Tuple[float, float, float]
    aperture: float
    permeability: float
    pressure: float
    temperature: float
    connected_to_injection: bool


@dataclass
class TimeSeries:
    """Fluid-loop samples, one entry per recorded step (all lists equal length)."""
    time: List[float] = field(default_factory=list)
    injection_pressure: List[float] = field(default_factory=list)
    flow_rate: List[float] = field(default_factory=list)
    fracture_volume: List[float] = field(default_factory=list)
    energy_extraction_rate: List[float] = field(default_factory=list)
    injected_volume: List[float] = field(default_factory=list)

    def append(self, time, injection_pressure, flow_rate, fracture_volume,
               energy_extraction_rate, injected_volume) -> None:
        self.time.append(float(time))
        self.injection_pressure.append(float(injection_pressure))
        self.flow_rate.append(float(flow_rate))
        self.fracture_volume.append(float(fracture_volume))
        self.energy_extraction_rate.append(float(energy_extraction_rate))
        self.injected_volume.append(float(injected_volume))

    def __len__(self) -> int:
        return len(self.time)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({
            "time_s": self.time,
            "injection_pressure_mpa": self.injection_pressure,
            "flow_rate_m3_s": self.flow_rate,
            "fracture_volume_m3": self.fracture_volume,
            "energy_extraction_rate_mw": self.energy_extraction_rate,
            "injected_volume_m3": self.injected_volume,
        })


@dataclass
class GeomechanicalResults:
    """Everything one simulation run produced."""
    mask: np.ndarray
    stress: np.ndarray
    strain: np.ndarray
    principal: np.ndarray
    failure_index: np.ndarray
    damage: np.ndarray
    fractured: np.ndarray
    plastic_strain: np.ndarray
    crack_density: np.ndarray

    converged: bool = False
    iterations: int = 0
    relative_residual: float = float("nan")
    computation_time: float = 0.0

    mean_stress: float = 0.0
    max_shear_stress: float = 0.0
    von_mises_mean: float = 0.0
    von_mises_max: float = 0.0
    failed_voxel_count: int = 0
    total_voxels: int = 0
    failed_voxel_percentage: float = 0.0
    yielded_voxel_count: int = 0

    mohr_circles: List[MohrCircleData] = field(default_factory=list)

    # Fluid / geothermal
    pressure: Optional[np.ndarray] = None
    temperature: Optional[np.ndarray] = None
    aperture: Optional[np.ndarray] = None
    saturation: Optional[np.ndarray] = None
    connectivity: Optional[np.ndarray] = None
    effective_stress: Optional[np.ndarray] = None
    fluid_state: Optional[str] = None
    breakdown_pressure: Optional[float] = None
    breakdown_time: Optional[float] = None
    propagation_pressure: Optional[float] = None
    peak_injection_pressure: float = 0.0
    min_pressure: float = 0.0
    max_pressure: float = 0.0
    total_fracture_volume: float = 0.0
    injected_volume: float = 0.0
    geothermal_energy_potential: float = 0.0
    average_thermal_gradient: float = 0.0
    time_series: TimeSeries = field(default_factory=TimeSeries)
    fracture_network: List[FractureSegment] = field(default_factory=list)

    @classmethod
    def allocate(cls, mask: np.ndarray, store=None) -> "GeomechanicalResults":
        """Zeroed fields for a mask; store (FieldStore) may disk-back them."""
        shape = mask.shape
        zeros = store.zeros if store is not None else (
            lambda s, dtype=np.float64, name="": np.zeros(s, dtype=dtype))
        return cls(
            mask=mask,
            stress=zeros(shape + (6,), name="stress"),
            strain=zeros(shape + (6,), name="strain"),
            principal=zeros(shape + (3,), name="principal"),
            failure_index=zeros(shape, name="failure_index"),
            damage=zeros(shape, name="damage"),
            fractured=zeros(shape, dtype=bool, name="fractured"),
            plastic_strain=zeros(shape, name="plastic_strain"),
            crack_density=zeros(shape, name="crack_density"),
        )

    @property
    def shape(self) -> Tuple[int, int, int]:
        return self.mask.shape

    @property
    def has_fluid(self) -> bool:
        return self.pressure is not None

    def von_mises(self) -> np.ndarray:
        """Equivalent stress field (zero outside the material)."""
        out = np.zeros(self.shape)
        out[self.mask] = von_mises_field(np.ascontiguousarray(self.stress[self.mask]))
        return out

    def summary(self) -> Dict[str, object]:
        skip = _ARRAY_FIELDS | {"mohr_circles", "time_series", "fracture_network"}
        out = {}
        for f in fields(self):
            if f.name in skip:
                continue
            value = getattr(self, f.name)
            if isinstance(value, (np.floating, np.integer, np.bool_)):
                value = value.item()
            out[f.name] = value
        out["time_series_length"] = len(self.time_series)
        out["fracture_segments"] = len(self.fracture_network)
        return out

    def summary_frame(self) -> pd.DataFrame:
        return pd.DataFrame([self.summary()])

    def time_series_frame(self) -> pd.DataFrame:
        return self.time_series.to_frame()

    def mohr_frame(self) -> pd.DataFrame:
        return pd.DataFrame([vars(m) for m in self.mohr_circles])


_ARRAY_FIELDS = {
    "mask", "stress", "strain", "principal", "failure_index", "damage", "fractured",
    "plastic_strain", "crack_density", "pressure", "temperature", "aperture",
    "saturation", "connectivity", "effective_stress",
}


def compute_global_statistics(results: GeomechanicalResults) -> None:
    """Fill the scalar statistics of results from its fields (in place)."""
    mask = results.mask
    n = int(mask.sum())
    results.total_voxels = n
    if n == 0:
        return

    stress = results.stress[mask]
    principal = results.principal[mask]
    results.mean_stress = float(stress[:, :3].sum(axis=1).mean() / 3.0)
    results.max_shear_stress = float(((principal[:, 0] - principal[:, 2]) / 2.0).max())

    vm = von_mises_field(np.ascontiguousarray(stress))
    results.von_mises_mean = float(vm.mean())
    results.von_mises_max = float(vm.max())

    results.failed_voxel_count = int(results.fractured[mask].sum())
    results.failed_voxel_percentage = 100.0 * results.failed_voxel_count / n


def mohr_circle_at(
    results: GeomechanicalResults,
    params: GeomechanicalParameters,
    location: str,
    position: Tuple[int, int, int],
) -> MohrCircleData:
    """Mohr-circle sample at one voxel (must be a material voxel)."""
    x, y, z = position
    p = results.principal[x, y, z]
    s1, s2, s3 = -float(p[2]), -float(p[1]), -float(p[0])
    phi = params.friction_angle_rad
    center = (s1 + s3) / 2.0
    radius = (s1 - s3) / 2.0
    return MohrCircleData(
        location=location,
        position=(int(x), int(y), int(z)),
        sigma1=s1,
        sigma2=s2,
        sigma3=s3,
        max_shear=radius,
        has_failed=bool(results.fractured[x, y, z]),
        failure_angle=45.0 + params.friction_angle / 2.0,
        normal_stress_at_failure=center - radius * math.sin(phi),
        shear_stress_at_failure=radius * math.cos(phi),
    )


def generate_mohr_circles(
    results: GeomechanicalResults,
    params: GeomechanicalParameters,
) -> List[MohrCircleData]:
    """
    Samples at the center, top and bottom of the volume and at the most
    compressive voxel. Locations outside the material are skipped.
    """
    nx, ny, nz = results.shape
    mask = results.mask
    candidates = [
        ("Center", (nx // 2, ny // 2, nz // 2)),
        ("Top", (nx // 2, ny // 2, nz - 1)),
        ("Bottom", (nx // 2, ny // 2, 0)),
    ]
    if mask.any():
        most_compressive = np.where(mask, -results.principal[..., 2], -np.inf)
        idx = np.unravel_index(int(np.argmax(most_compressive)), mask.shape)
        candidates.append(("Max Stress", tuple(int(i) for i in idx)))

    circles = []
    for name, pos in candidates:
        if mask[pos]:
            circles.append(mohr_circle_at(results, params, name, pos))
    results.mohr_circles = circles
    return circles
