# voxel_geomech/kernel/hex8.py
"""
HEX8: Trilinear 8-Node Hexahedron
=================================

Element-level math for the voxel mesh: shape-function derivatives, the
Jacobian, the strain-displacement matrix B (6×24), the isotropic elasticity
matrix D (6×6) and the 2×2×2 Gauss-integrated stiffness Ke = ∫ BᵀDB dV.

Node order in natural coordinates (ξ, η, ζ):

    0 (-1,-1,-1)   1 (+1,-1,-1)   2 (+1,+1,-1)   3 (-1,+1,-1)
    4 (-1,-1,+1)   5 (+1,-1,+1)   6 (+1,+1,+1)   7 (-1,+1,+1)

Voigt order for stress and strain: xx, yy, zz, xy, xz, yz (engineering
shear strains).

All functions are numba-compiled so the assembler and the stress recovery
can call them from parallel loops.
"""

import math

import numpy as np
from numba import njit

NATURAL_COORDS = np.array([
    [-1.0, -1.0, -1.0],
    [1.0, -1.0, -1.0],
    [1.0, 1.0, -1.0],
    [-1.0, 1.0, -1.0],
    [-1.0, -1.0, 1.0],
    [1.0, -1.0, 1.0],
    [1.0, 1.0, 1.0],
    [-1.0, 1.0, 1.0],
])

GAUSS_POINT = 1.0 / math.sqrt(3.0)
GAUSS_WEIGHT = 1.0

VOIGT_COMPONENTS = ("xx", "yy", "zz", "xy", "xz", "yz")

# Local nodes lying on each +face (ξ=+1, η=+1, ζ=+1)
POSITIVE_FACE_NODES = np.array([
    [1, 2, 5, 6],
    [2, 3, 6, 7],
    [4, 5, 6, 7],
], dtype=np.int64)


@njit(cache=True)
def shape_derivatives(xi, eta, zeta):
    """dN/dξ, dN/dη, dN/dζ at one point, shape (3, 8)."""
    dN = np.empty((3, 8))
    for i in range(8):
        xi_i = NATURAL_COORDS[i, 0]
        eta_i = NATURAL_COORDS[i, 1]
        zeta_i = NATURAL_COORDS[i, 2]
        dN[0, i] = 0.125 * xi_i * (1.0 + eta_i * eta) * (1.0 + zeta_i * zeta)
        dN[1, i] = 0.125 * eta_i * (1.0 + xi_i * xi) * (1.0 + zeta_i * zeta)
        dN[2, i] = 0.125 * zeta_i * (1.0 + xi_i * xi) * (1.0 + eta_i * eta)
    return dN


@njit(cache=True)
def elasticity_matrix(E, nu):
    """Isotropic 6×6 constitutive matrix (engineering shear strains)."""
    lam = E * nu / ((1.0 + nu) * (1.0 - 2.0 * nu))
    mu = E / (2.0 * (1.0 + nu))
    D = np.zeros((6, 6))
    for i in range(3):
        for j in range(3):
            D[i, j] = lam
        D[i, i] = lam + 2.0 * mu
        D[3 + i, 3 + i] = mu
    return D


@njit(cache=True)
def jacobian(dN, coords):
    """J[a, b] = Σ_i dN[a, i] · coords[i, b]."""
    J = np.zeros((3, 3))
    for a in range(3):
        for b in range(3):
            s = 0.0
            for i in range(8):
                s += dN[a, i] * coords[i, b]
            J[a, b] = s
    return J


@njit(cache=True)
def det3(J):
    return (J[0, 0] * (J[1, 1] * J[2, 2] - J[1, 2] * J[2, 1])
            - J[0, 1] * (J[1, 0] * J[2, 2] - J[1, 2] * J[2, 0])
            + J[0, 2] * (J[1, 0] * J[2, 1] - J[1, 1] * J[2, 0]))


@njit(cache=True)
def inv3(J, det):
    inv = np.empty((3, 3))
    inv[0, 0] = (J[1, 1] * J[2, 2] - J[1, 2] * J[2, 1]) / det
    inv[0, 1] = (J[0, 2] * J[2, 1] - J[0, 1] * J[2, 2]) / det
    inv[0, 2] = (J[0, 1] * J[1, 2] - J[0, 2] * J[1, 1]) / det
    inv[1, 0] = (J[1, 2] * J[2, 0] - J[1, 0] * J[2, 2]) / det
    inv[1, 1] = (J[0, 0] * J[2, 2] - J[0, 2] * J[2, 0]) / det
    inv[1, 2] = (J[0, 2] * J[1, 0] - J[0, 0] * J[1, 2]) / det
    inv[2, 0] = (J[1, 0] * J[2, 1] - J[1, 1] * J[2, 0]) / det
    inv[2, 1] = (J[0, 1] * J[2, 0] - J[0, 0] * J[2, 1]) / det
    inv[2, 2] = (J[0, 0] * J[1, 1] - J[0, 1] * J[1, 0]) / det
    return inv


@njit(cache=True)
def strain_displacement(dN_dx):
    """B matrix (6×24) from physical shape derivatives (3, 8)."""
    B = np.zeros((6, 24))
    for i in range(8):
        c = 3 * i
        dx = dN_dx[0, i]
        dy = dN_dx[1, i]
        dz = dN_dx[2, i]
        B[0, c] = dx
        B[1, c + 1] = dy
        B[2, c + 2] = dz
        B[3, c] = dy
        B[3, c + 1] = dx
        B[4, c] = dz
        B[4, c + 2] = dx
        B[5, c + 1] = dz
        B[5, c + 2] = dy
    return B


@njit(cache=True)
def b_matrix_at(coords, xi, eta, zeta):
    """
    B and det(J) at one natural point.

    A non-positive determinant means a degenerate or inverted element; B is
    returned as zeros in that case and the caller decides what to skip.
    """
    dN = shape_derivatives(xi, eta, zeta)
    J = jacobian(dN, coords)
    det = det3(J)
    if det <= 0.0:
        return np.zeros((6, 24)), det
    Jinv = inv3(J, det)
    dN_dx = np.zeros((3, 8))
    for a in range(3):
        for i in range(8):
            s = 0.0
            for b in range(3):
                s += Jinv[a, b] * dN[b, i]
            dN_dx[a, i] = s
    return strain_displacement(dN_dx), det


@njit(cache=True)
def element_stiffness(coords, E, nu):
    """
    24×24 stiffness of one hexahedron by 2×2×2 Gauss quadrature.

    Args:
        coords: (8, 3) nodal coordinates in the reference order
        E: Young's modulus
        nu: Poisson ratio

    Returns:
        Ke: (24, 24) element stiffness
        skipped: number of Gauss points dropped for det(J) <= 0
    """
    D = elasticity_matrix(E, nu)
    Ke = np.zeros((24, 24))
    skipped = 0
    for gi in range(8):
        xi = GAUSS_POINT * NATURAL_COORDS[gi, 0]
        eta = GAUSS_POINT * NATURAL_COORDS[gi, 1]
        zeta = GAUSS_POINT * NATURAL_COORDS[gi, 2]
        B, det = b_matrix_at(coords, xi, eta, zeta)
        if det <= 0.0:
            skipped += 1
            continue
        DB = np.zeros((6, 24))
        for k in range(6):
            for m in range(6):
                dkm = D[k, m]
                if dkm != 0.0:
                    for b in range(24):
                        DB[k, b] += dkm * B[m, b]
        scale = det * GAUSS_WEIGHT
        for a in range(24):
            for b in range(24):
                s = 0.0
                for k in range(6):
                    s += B[k, a] * DB[k, b]
                Ke[a, b] += s * scale
    return Ke, skipped
