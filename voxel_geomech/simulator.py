# voxel_geomech/simulator.py
"""
SIMULATOR: The Full Mechanical (+ Fluid) Pipeline
=================================================

    labels (+ density)
        → material mask → hexahedral mesh + CSR pattern        5 %
        → stiffness assembly                                  15-25 %
        → boundary conditions and loads                       25 %
        → PCG solve                                           35-75 %
        → stress recovery, principal stresses, failure,
          damage, optional plastic correction                 75-95 %
        → optional fluid injection / fracture loop            92-100 %

USAGE:
------
    sim = GeomechanicalSimulator(GeomechanicalParameters(sigma1=100, sigma2=50, sigma3=20))
    results = sim.run(labels, progress=print)
    results.mean_stress, results.failed_voxel_percentage
"""

import logging
import time
from typing import Optional

import numpy as np

from .cancel import (
    CancellationToken, ProgressCallback, ProgressReporter, SimulationCancelled, check_cancel,
)
from .failure import (
    compute_failure_index, principal_stresses, undrained_excess_pressure, update_damage,
)
from .fluid import FluidFractureEngine
from .kernel.assemble import assemble_stiffness
from .kernel.backend import BackendError, ComputeBackend
from .kernel.mesh import HexMesh, build_hex_mesh, material_mask
from .kernel.solve import PCGResult, pcg_solve
from .loads import apply_boundary_conditions
from .params import ConfigurationError, DrainageCondition, GeomechanicalParameters
from .plasticity import apply_plastic_correction
from .post import recover_stress_strain
from .results import GeomechanicalResults, compute_global_statistics, generate_mohr_circles
from .storage import FieldStore

logger = logging.getLogger(__name__)


class GeomechanicalSimulator:
    """
    Runs one configuration against label volumes.

    Parameters are validated on construction, so a bad configuration fails
    before any array is touched.
    """

    def __init__(self, params: Optional[GeomechanicalParameters] = None):
        self.params = (params or GeomechanicalParameters()).validate()
        self.mesh: Optional[HexMesh] = None
        self.solution: Optional[PCGResult] = None

    def run(
        self,
        labels: np.ndarray,
        density: Optional[np.ndarray] = None,
        progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> GeomechanicalResults:
        """
        Simulate one label volume.

        Args:
            labels: (nx, ny, nz) integer material ids, 0 = background
            density: optional (nx, ny, nz) densities [kg/m³] for energy bookkeeping
            progress: callback receiving fractions in [0, 1]
            cancel_token: cooperative cancellation

        Returns:
            GeomechanicalResults

        Raises:
            ConfigurationError / InvalidMeshError: bad inputs, before any compute
            BackendError: GPU unavailable or out of memory
            SimulationCancelled: cancelled before the mechanical solve finished
        """
        started = time.perf_counter()
        try:
            results = self._run(labels, density, ProgressReporter(progress), cancel_token)
        except SimulationCancelled:
            logger.info("Simulation cancelled after %.2f s", time.perf_counter() - started)
            raise
        except BackendError:
            logger.error("Compute backend failure", exc_info=True)
            raise
        results.computation_time = time.perf_counter() - started
        logger.info("Simulation finished in %.2f s", results.computation_time)
        return results

    # ------------------------------------------------------------------
    def _run(self, labels, density, progress: ProgressReporter, cancel_token):
        p = self.params
        labels = np.asarray(labels)
        if density is not None:
            density = np.asarray(density, dtype=np.float64)
            if density.shape != labels.shape:
                raise ConfigurationError(
                    f"Density shape {density.shape} does not match labels {labels.shape}"
                )

        mask = material_mask(labels, p.selected_material_ids)
        backend = ComputeBackend.create(p.use_gpu)

        mesh = build_hex_mesh(mask, p.voxel_size, p.youngs_modulus, p.poisson_ratio)
        self.mesh = mesh
        progress(0.05)
        check_cancel(cancel_token, "mesh generation")

        progress(0.15)
        values = assemble_stiffness(mesh, batch_size=p.element_batch_size)
        progress(0.20)
        check_cancel(cancel_token, "assembly")

        bc = apply_boundary_conditions(mesh, p)
        progress(0.25)

        tolerance = p.effective_tolerance
        solution = pcg_solve(
            mesh.row_ptr, mesh.col_idx, values, bc.force, bc.is_dirichlet,
            bc.dirichlet_value, p.max_iterations, tolerance,
            backend=backend, progress=progress, cancel_token=cancel_token,
        )
        progress(0.75)

        results = GeomechanicalResults.allocate(mask, FieldStore.from_params(p))
        self._evaluate(mesh, solution.displacement, results)
        progress(0.85)

        for i in range(p.damage_iterations):
            check_cancel(cancel_token, "damage re-solve")
            if not np.asarray(results.damage).any():
                break
            degraded = mesh.with_moduli(self._degraded_moduli(mesh, results))
            assemble_stiffness(degraded, out=values, batch_size=p.element_batch_size)
            solution = pcg_solve(
                mesh.row_ptr, mesh.col_idx, values, bc.force, bc.is_dirichlet,
                bc.dirichlet_value, p.max_iterations, tolerance,
                backend=backend, cancel_token=cancel_token,
            )
            self._evaluate(degraded, solution.displacement, results)
            logger.info("Damage pass %d: %d fractured voxels", i + 1,
                        int(np.asarray(results.fractured).sum()))

        self.solution = solution
        results.converged = solution.converged
        results.iterations = solution.iterations
        results.relative_residual = solution.relative_residual

        compute_global_statistics(results)
        generate_mohr_circles(results, p)
        progress(0.92 if p.enable_fluid_injection else 0.95)
        logger.info(
            "Mean stress %.2f MPa, max shear %.2f MPa, failed voxels %d (%.2f %%)",
            results.mean_stress, results.max_shear_stress,
            results.failed_voxel_count, results.failed_voxel_percentage,
        )

        if p.enable_fluid_injection:
            check_cancel(cancel_token, "fluid setup")
            engine = FluidFractureEngine(p, results, density)
            engine.run(progress=progress, cancel_token=cancel_token)
            compute_global_statistics(results)

        progress(1.0)
        return results

    def _evaluate(self, mesh: HexMesh, displacement: np.ndarray,
                  results: GeomechanicalResults) -> None:
        """Stress recovery → principal stresses → failure → damage → plasticity."""
        p = self.params
        mask = results.mask
        results.stress[...] = 0.0
        results.strain[...] = 0.0
        recover_stress_strain(mesh, displacement, mask, p.stress_mapping,
                              stress_out=results.stress, strain_out=results.strain)

        stress = np.ascontiguousarray(results.stress[mask])
        principal = principal_stresses(stress)

        pore = 0.0
        if p.drainage == DrainageCondition.UNDRAINED:
            pore = undrained_excess_pressure(principal, p)
        fi = compute_failure_index(principal, p, pore)

        damage = np.ascontiguousarray(results.damage[mask])
        fractured = np.ascontiguousarray(results.fractured[mask])
        crack = np.ascontiguousarray(results.crack_density[mask])
        update_damage(fi, damage, fractured, stress, principal, crack, p)

        if p.enable_plasticity:
            plastic = np.ascontiguousarray(results.plastic_strain[mask])
            results.yielded_voxel_count = apply_plastic_correction(stress, plastic, p)
            results.plastic_strain[mask] = plastic
            principal = principal_stresses(stress)

        results.stress[mask] = stress
        results.principal[mask] = principal
        results.failure_index[mask] = fi
        results.damage[mask] = damage
        results.fractured[mask] = fractured
        results.crack_density[mask] = crack

    @staticmethod
    def _degraded_moduli(mesh: HexMesh, results: GeomechanicalResults) -> np.ndarray:
        """Element Young's modulus scaled by (1 - mean damage of its corner voxels)."""
        damage = np.asarray(results.damage).ravel()
        corner_damage = damage[mesh.node_grid_index[mesh.elements]].mean(axis=1)
        return mesh.youngs_modulus * (1.0 - corner_damage)


def simulate(
    labels: np.ndarray,
    params: Optional[GeomechanicalParameters] = None,
    density: Optional[np.ndarray] = None,
    progress: Optional[ProgressCallback] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> GeomechanicalResults:
    """One-call convenience wrapper around GeomechanicalSimulator.run."""
    return GeomechanicalSimulator(params).run(labels, density, progress, cancel_token)
