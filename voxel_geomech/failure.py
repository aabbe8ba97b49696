# voxel_geomech/failure.py
"""
PRINCIPAL STRESSES, FAILURE CRITERIA AND DAMAGE
===============================================

PURPOSE:
--------
Per material voxel:

    1. principal stresses from the stress invariants (trigonometric solution
       of the characteristic cubic), sorted σ1 >= σ2 >= σ3
    2. a failure index (>= 1 means failure) from the selected criterion
    3. progressive damage from the failure index, monotonic in time, and
       degradation of the stress by (1 - damage)

SIGN CONVENTIONS:
-----------------
Stored stresses are compression-negative, so the stored σ3 is the most
compressive value. Criteria are written for compression-positive principal
stresses, obtained as

    σ1c = -σ3,   σ2c = -σ2,   σ3c = -σ1

and reduced by α·P when a pore pressure acts (effective stress).

CRITERIA (c = cohesion, φ = friction angle, T0 = tensile strength):
-------------------------------------------------------------------
    Mohr-Coulomb     (σ1 - σ3) / (2c·cosφ + (σ1 + σ3)·sinφ)
    Drucker-Prager   (√J2 - α·I1/3) / k,
                     α = 2 sinφ / (√3 (3 - sinφ)),  k = 6c cosφ / (√3 (3 - sinφ))
    Hoek-Brown       σ1 / (σ3 + UCS·(mb·σ3/UCS + s)^a),  UCS = 2c cosφ / (1 - sinφ)
    Griffith         -σ3 / T0 if σ3 < 0, else (σ1 - σ3) / (8·T0)
"""

import logging
import math

import numpy as np
from numba import njit, prange

from .params import CRITERION_CODES, DamageModel, GeomechanicalParameters

logger = logging.getLogger(__name__)

EPS = 1e-9
MAX_CRACK_DENSITY = 5.0
PRE_PEAK_DAMAGE_CAP = 0.8


@njit(cache=True)
def principal_values(sxx, syy, szz, sxy, sxz, syz):
    """Eigenvalues of a symmetric stress tensor, sorted descending."""
    i1 = sxx + syy + szz
    i2 = sxx * syy + syy * szz + szz * sxx - sxy * sxy - sxz * sxz - syz * syz
    i3 = (sxx * syy * szz + 2.0 * sxy * sxz * syz
          - sxx * syz * syz - syy * sxz * sxz - szz * sxy * sxy)
    p = i2 - i1 * i1 / 3.0
    q = i3 + (2.0 * i1 * i1 * i1 - 9.0 * i1 * i2) / 27.0
    mean = i1 / 3.0

    scale = abs(i1 * i1) + abs(i2)
    if abs(p) <= 1e-12 * scale or abs(p) < 1e-30:
        return mean, mean, mean

    r = math.sqrt(max(0.0, -p * p * p / 27.0))
    if r < 1e-300:
        return mean, mean, mean
    cos_phi = -q / (2.0 * r)
    cos_phi = min(1.0, max(-1.0, cos_phi))
    phi = math.acos(cos_phi)
    amp = 2.0 * math.sqrt(max(0.0, -p / 3.0))

    a = mean + amp * math.cos(phi / 3.0)
    b = mean + amp * math.cos((phi + 2.0 * math.pi) / 3.0)
    c = mean + amp * math.cos((phi + 4.0 * math.pi) / 3.0)

    # Explicit sort so the ordering holds bit-for-bit
    if a < b:
        a, b = b, a
    if b < c:
        b, c = c, b
    if a < b:
        a, b = b, a
    return a, b, c


@njit(parallel=True, cache=True)
def principal_stresses(stress):
    """(n, 6) stresses → (n, 3) principal stresses, σ1 >= σ2 >= σ3."""
    n = stress.shape[0]
    out = np.empty((n, 3))
    for i in prange(n):
        s1, s2, s3 = principal_values(
            stress[i, 0], stress[i, 1], stress[i, 2],
            stress[i, 3], stress[i, 4], stress[i, 5],
        )
        out[i, 0] = s1
        out[i, 1] = s2
        out[i, 2] = s3
    return out


@njit(cache=True)
def failure_index(s1, s2, s3, criterion, cohesion, phi, tensile,
                  hb_mb, hb_s, hb_a):
    """
    Failure index for compression-positive principal stresses s1 >= s2 >= s3.

    Args:
        criterion: 0 Mohr-Coulomb, 1 Drucker-Prager, 2 Hoek-Brown, 3 Griffith
        phi: friction angle in radians
    """
    sin_phi = math.sin(phi)
    cos_phi = math.cos(phi)

    if criterion == 0:
        left = s1 - s3
        right = 2.0 * cohesion * cos_phi + (s1 + s3) * sin_phi
        if right > EPS:
            return left / right
        return left

    if criterion == 1:
        i1 = s1 + s2 + s3
        j2 = ((s1 - s2) ** 2 + (s2 - s3) ** 2 + (s3 - s1) ** 2) / 6.0
        denom = math.sqrt(3.0) * (3.0 - sin_phi)
        alpha = 2.0 * sin_phi / denom
        k = 6.0 * cohesion * cos_phi / denom
        num = math.sqrt(j2) - alpha * i1 / 3.0
        if k > EPS:
            return num / k
        return num

    if criterion == 2:
        ucs = 2.0 * cohesion * cos_phi / max(1.0 - sin_phi, EPS)
        if ucs <= EPS:
            return s1
        term = max(hb_mb * s3 / ucs + hb_s, 0.0)
        strength = s3 + ucs * term ** hb_a
        if strength > EPS:
            return s1 / strength
        return s1

    if tensile <= EPS:
        return s1 - s3
    if s3 < 0.0:
        return -s3 / tensile
    return (s1 - s3) / (8.0 * tensile)


@njit(parallel=True, cache=True)
def _failure_kernel(principal, pore, biot, criterion, cohesion, phi, tensile,
                    hb_mb, hb_s, hb_a):
    n = principal.shape[0]
    out = np.empty(n)
    for i in prange(n):
        shift = biot * pore[i]
        c1 = -principal[i, 2] - shift
        c2 = -principal[i, 1] - shift
        c3 = -principal[i, 0] - shift
        out[i] = failure_index(c1, c2, c3, criterion, cohesion, phi, tensile,
                               hb_mb, hb_s, hb_a)
    return out


def compute_failure_index(
    principal: np.ndarray,
    params: GeomechanicalParameters,
    pore_pressure=0.0,
) -> np.ndarray:
    """
    Failure index of every row of an (n, 3) stored principal-stress array.

    Parameters:
    -----------
    principal : np.ndarray
        (n, 3) compression-negative principal stresses
    params : GeomechanicalParameters
        Criterion and strength constants
    pore_pressure : float or np.ndarray
        Pore pressure acting on each row [MPa]; its Biot fraction is
        removed from every compressive principal stress
    """
    principal = np.ascontiguousarray(principal, dtype=np.float64)
    pore = np.broadcast_to(np.asarray(pore_pressure, dtype=np.float64),
                           (principal.shape[0],)).copy()
    return _failure_kernel(
        principal, pore, params.biot_coefficient,
        CRITERION_CODES[params.failure_criterion],
        params.cohesion, params.friction_angle_rad, params.tensile_strength,
        params.hoek_brown_mb, params.hoek_brown_s, params.hoek_brown_a,
    )


@njit(cache=True)
def damage_from_index(fi, linear, initiation, exponent, residual):
    """Damage for one failure index. Failure (fi >= 1) leaves only the residual strength."""
    if fi < initiation:
        return 0.0
    ceiling = 1.0 - residual
    if fi < 1.0:
        ratio = (fi - initiation) / (1.0 - initiation)
        if linear:
            return PRE_PEAK_DAMAGE_CAP * ratio
        return min(ratio ** exponent, PRE_PEAK_DAMAGE_CAP)
    if linear:
        return ceiling
    # Exponential softening, clamped at the residual-strength floor
    d = 1.0 - residual * math.exp(-exponent * (fi - 1.0))
    return min(max(d, 0.0), ceiling)


@njit(parallel=True, cache=True)
def _damage_kernel(fi, damage, fractured, stress, principal, crack_density,
                   linear, initiation, exponent, residual, cohesion, track_cracks):
    n = fi.shape[0]
    for i in prange(n):
        d = damage_from_index(fi[i], linear, initiation, exponent, residual)
        if d > damage[i]:
            damage[i] = d
        if fi[i] >= 1.0:
            fractured[i] = True
        keep = 1.0 - damage[i]
        for k in range(6):
            stress[i, k] *= keep
        for k in range(3):
            principal[i, k] *= keep
        if track_cracks and fractured[i]:
            spread = principal[i, 0] - principal[i, 2]
            rho = spread / cohesion if cohesion > EPS else MAX_CRACK_DENSITY
            crack_density[i] = min(max(rho, 0.0), MAX_CRACK_DENSITY)


def update_damage(
    fi: np.ndarray,
    damage: np.ndarray,
    fractured: np.ndarray,
    stress: np.ndarray,
    principal: np.ndarray,
    crack_density: np.ndarray,
    params: GeomechanicalParameters,
) -> int:
    """
    Progressive damage for n voxels, all arrays updated in place.

    Damage only grows (max of old and new), fracture flags are only ever
    set, and stress / principal stress are scaled by (1 - damage). With
    damage evolution enabled, fractured voxels also get a microcrack
    density (σ1 - σ3) / c clamped to [0, 5].

    Returns:
    --------
    int
        Number of fractured voxels after the update
    """
    _damage_kernel(
        fi, damage, fractured, stress, principal, crack_density,
        params.damage_model == DamageModel.LINEAR,
        params.damage_initiation, params.damage_exponent, params.residual_strength,
        params.cohesion, params.enable_damage_evolution,
    )
    return int(fractured.sum())


def undrained_excess_pressure(principal: np.ndarray, params: GeomechanicalParameters) -> np.ndarray:
    """Pore pressure generated by undrained loading: B · mean compressive stress."""
    mean_c = -principal.mean(axis=1)
    return params.skempton_b() * np.maximum(mean_c, 0.0)
