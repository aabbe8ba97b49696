# voxel_geomech/plasticity.py
"""
Von Mises radial return applied to recovered voxel stresses.

The stress is split into its hydrostatic and deviatoric parts. Where the
equivalent stress √(3·J2) exceeds the yield stress, the deviatoric part is
scaled back onto the yield surface and the equivalent plastic strain grows by

    Δεp = (σ_vm - σ_y) / (3G + H)

with G the shear modulus and H the linear hardening modulus.
"""

import logging
import math

import numpy as np
from numba import njit, prange

from .params import GeomechanicalParameters

logger = logging.getLogger(__name__)


@njit(cache=True)
def von_mises(sxx, syy, szz, sxy, sxz, syz):
    mean = (sxx + syy + szz) / 3.0
    dx = sxx - mean
    dy = syy - mean
    dz = szz - mean
    j2 = 0.5 * (dx * dx + dy * dy + dz * dz) + sxy * sxy + sxz * sxz + syz * syz
    return math.sqrt(3.0 * j2)


@njit(parallel=True, cache=True)
def von_mises_field(stress):
    """(n, 6) → (n,) equivalent stress."""
    n = stress.shape[0]
    out = np.empty(n)
    for i in prange(n):
        out[i] = von_mises(stress[i, 0], stress[i, 1], stress[i, 2],
                           stress[i, 3], stress[i, 4], stress[i, 5])
    return out


@njit(parallel=True, cache=True)
def _radial_return(stress, plastic_strain, yield_stress, shear_modulus, hardening):
    n = stress.shape[0]
    yielded = np.zeros(n, dtype=np.bool_)
    for i in prange(n):
        svm = von_mises(stress[i, 0], stress[i, 1], stress[i, 2],
                        stress[i, 3], stress[i, 4], stress[i, 5])
        if svm <= yield_stress or svm <= 0.0:
            continue
        factor = yield_stress / svm
        mean = (stress[i, 0] + stress[i, 1] + stress[i, 2]) / 3.0
        for k in range(3):
            stress[i, k] = mean + (stress[i, k] - mean) * factor
        for k in range(3, 6):
            stress[i, k] *= factor
        plastic_strain[i] += (svm - yield_stress) / (3.0 * shear_modulus + hardening)
        yielded[i] = True
    return yielded


def apply_plastic_correction(
    stress: np.ndarray,
    plastic_strain: np.ndarray,
    params: GeomechanicalParameters,
) -> int:
    """
    Return-map an (n, 6) stress array in place.

    Args:
        stress: (n, 6) voxel stresses [MPa]
        plastic_strain: (n,) accumulated equivalent plastic strain, updated in place
        params: yield stress (default 2·cohesion) and hardening ratio (H = ratio·E)

    Returns:
        Number of voxels that yielded
    """
    sigma_y = params.effective_yield_stress
    hardening = params.hardening_ratio * params.youngs_modulus
    yielded = _radial_return(stress, plastic_strain, sigma_y, params.shear_modulus, hardening)
    count = int(yielded.sum())
    logger.info("Plastic correction: %d voxels yielded (σy = %.2f MPa)", count, sigma_y)
    return count
