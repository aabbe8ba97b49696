# voxel_geomech - Rock-mass stress, failure and hydraulic fracturing on voxel volumes
"""
VOXEL-GEOMECH: Geomechanical Simulation on Labeled Voxel Volumes
================================================================

This package provides:
- Linear-elastic stress analysis of CT-derived rock volumes (hex8 FEM)
- Principal stresses, four failure criteria, progressive damage, plasticity
- Poroelastic fluid injection with fracture nucleation and propagation
- Geothermal temperature and energy bookkeeping

ARCHITECTURE:
-------------
    kernel/         Mesh, CSR assembly, PCG solver, CPU/GPU backends
    params.py       Configuration value object and validation
    loads.py        Boundary conditions and face tractions
    post.py         Stress / strain recovery onto voxels
    failure.py      Principal stresses, failure index, damage
    plasticity.py   Von Mises return mapping
    fluid.py        Fluid-injection / fracture engine
    results.py      Output record, statistics, Mohr circles
    simulator.py    End-to-end pipeline
    export.py       CSV / JSON / NPZ export
"""

from .params import (
    ConfigurationError, DamageModel, DrainageCondition, FailureCriterion,
    GeomechanicalParameters, GeomechanicsError, LoadingMode, StressMapping,
)
from .cancel import CancellationToken, SimulationCancelled
from .kernel import BackendError, InvalidMeshError
from .results import GeomechanicalResults, MohrCircleData, FractureSegment
from .fluid import FluidFractureEngine, FluidState
from .simulator import GeomechanicalSimulator, simulate

__all__ = [
    'GeomechanicalParameters', 'LoadingMode', 'FailureCriterion', 'DamageModel',
    'DrainageCondition', 'StressMapping',
    'GeomechanicsError', 'ConfigurationError', 'InvalidMeshError', 'BackendError',
    'SimulationCancelled', 'CancellationToken',
    'GeomechanicalResults', 'MohrCircleData', 'FractureSegment',
    'FluidFractureEngine', 'FluidState',
    'GeomechanicalSimulator', 'simulate',
]

__version__ = "0.1.0"
