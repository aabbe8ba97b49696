# File: demos/run_triaxial_cube.py
"""
DEMO: TRIAXIAL COMPRESSION OF A ROCK CUBE
=========================================

PURPOSE:
--------
Load a synthetic porous rock sample (a solid matrix around one spherical
pore) in true-triaxial compression and look at where it fails.

PHYSICAL PROBLEM:
-----------------
A cube of rock sits in a loading frame:
- Rollers on the three back faces (x=0, y=0, z=0)
- σ1 pushes on the top face, σ2 and σ3 on the two side faces

A homogeneous cube would carry exactly (σ3, σ2, σ1) everywhere. The pore
concentrates stress along its rim, so failure starts there first.

WHAT TO LOOK FOR:
-----------------
- Failure index well below 1 far from the pore
- Failed voxels along the pore wall, on the sides facing σ3
- Mohr circles: the sample at maximum stress reaches furthest to the right
"""

import argparse

import numpy as np
import matplotlib.pyplot as plt

from voxel_geomech import GeomechanicalParameters, simulate


def build_sample(n: int, pore_radius: float) -> np.ndarray:
    """Label 1 = rock matrix, label 0 = spherical pore in the centre."""
    labels = np.ones((n, n, n), dtype=np.int32)
    x, y, z = np.ogrid[0:n, 0:n, 0:n]
    c = (n - 1) / 2.0
    inside = (x - c) ** 2 + (y - c) ** 2 + (z - c) ** 2 <= pore_radius ** 2
    labels[inside] = 0
    return labels


def main():
    parser = argparse.ArgumentParser(description="Triaxial compression of a voxel rock cube")
    parser.add_argument("--size", type=int, default=16, help="voxels per side")
    parser.add_argument("--sigma1", type=float, default=180.0, help="axial stress [MPa]")
    parser.add_argument("--cohesion", type=float, default=30.0, help="cohesion [MPa]")
    parser.add_argument("--criterion", default="mohr_coulomb",
                        choices=["mohr_coulomb", "drucker_prager", "hoek_brown", "griffith"])
    parser.add_argument("--no-plot", action="store_true")
    args = parser.parse_args()

    print("=" * 70)
    print("DEMO: TRIAXIAL COMPRESSION OF A ROCK CUBE")
    print("=" * 70)
    print()

    # ========================================================================
    # STEP 1: SAMPLE AND LOADING
    # ========================================================================
    labels = build_sample(args.size, args.size / 5.0)
    params = GeomechanicalParameters(
        voxel_size=1e-3,
        sigma1=args.sigma1, sigma2=60.0, sigma3=20.0,
        cohesion=args.cohesion,
        failure_criterion=args.criterion,
        damage_iterations=1,
    )

    print("STEP 1: Sample and loading")
    print("-" * 70)
    print(f"  Grid: {labels.shape}, voxel {params.voxel_size * 1e3:.1f} mm")
    print(f"  Pore voxels: {(labels == 0).sum()}")
    print(f"  σ1/σ2/σ3: {params.sigma1:.0f}/{params.sigma2:.0f}/{params.sigma3:.0f} MPa")
    print(f"  Criterion: {params.failure_criterion.value}, c = {params.cohesion:.0f} MPa")
    print()

    # ========================================================================
    # STEP 2: SOLVE
    # ========================================================================
    def report(fraction):
        print(f"\r  progress {fraction * 100:5.1f} %", end="", flush=True)

    print("STEP 2: Solving")
    print("-" * 70)
    results = simulate(labels, params, progress=report)
    print()
    print(f"  Converged: {results.converged} after {results.iterations} iterations")
    print(f"  Wall time: {results.computation_time:.2f} s")
    print()

    # ========================================================================
    # STEP 3: RESULTS
    # ========================================================================
    print("STEP 3: Results")
    print("-" * 70)
    print(f"  Mean stress:       {results.mean_stress:8.2f} MPa")
    print(f"  Max shear:         {results.max_shear_stress:8.2f} MPa")
    print(f"  Von Mises (max):   {results.von_mises_max:8.2f} MPa")
    print(f"  Failed voxels:     {results.failed_voxel_count} "
          f"({results.failed_voxel_percentage:.2f} %)")
    print()
    print(results.mohr_frame()[["location", "sigma1", "sigma3", "max_shear", "has_failed"]]
          .to_string(index=False))
    print()

    if args.no_plot:
        return

    # ========================================================================
    # STEP 4: VISUALISE
    # ========================================================================
    mid = args.size // 2
    fig, (ax1, ax2, ax3) = plt.subplots(1, 3, figsize=(15, 5))

    im = ax1.imshow(results.failure_index[:, mid, :].T, origin="lower", cmap="magma")
    ax1.set_title("Failure index (y = mid)")
    ax1.set_xlabel("x (voxel)")
    ax1.set_ylabel("z (voxel)")
    fig.colorbar(im, ax=ax1)

    im = ax2.imshow(results.damage[:, mid, :].T, origin="lower", cmap="viridis", vmin=0, vmax=1)
    ax2.set_title("Damage (y = mid)")
    ax2.set_xlabel("x (voxel)")
    fig.colorbar(im, ax=ax2)

    theta = np.linspace(0.0, np.pi, 200)
    for circle in results.mohr_circles:
        center, radius = circle.circles()[0]
        ax3.plot(center + radius * np.cos(theta), radius * np.sin(theta), label=circle.location)
    sigma_n = np.linspace(0.0, max(c.sigma1 for c in results.mohr_circles) * 1.1, 50)
    phi = params.friction_angle_rad
    ax3.plot(sigma_n, params.cohesion + sigma_n * np.tan(phi), "k--", label="Mohr-Coulomb")
    ax3.set_title("Mohr circles")
    ax3.set_xlabel("σn (MPa)")
    ax3.set_ylabel("τ (MPa)")
    ax3.set_aspect("equal")
    ax3.legend()

    plt.tight_layout()
    plt.show()


if __name__ == "__main__":
    main()
