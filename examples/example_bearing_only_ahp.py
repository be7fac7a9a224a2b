"""Bearing-Only Landmark Demo: AHP Initialization -> EKF Updates -> Reparametrization.

This example follows one landmark through its life in a bearing-only EKF:
    1. INITIALIZATION: the first bearing creates an AHP landmark anchored at
       the sensor, with an inverse-distance prior covering up to infinity
    2. UPDATE: each new bearing corrects the map state x and covariance P
       through the Jacobians of ahp.to_bearing_only_frame
    3. REPARAMETRIZATION: once the inverse distance is well observed, the
       landmark is converted to a 3-scalar Euclidean point and the update
       loop continues unchanged through the same Landmark interface

The sensor is a pinhole camera looking along +z, translating along +x with
known poses, so only the landmark is estimated.

Usage:
    python examples/example_bearing_only_ahp.py
    python examples/example_bearing_only_ahp.py --steps 80 --no-plot
"""

import argparse
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np

from ahpslam.slam import (
    AHPInitConfig,
    LandmarkMap,
    LandmarkType,
    ahp,
    initialize_ahp_landmark,
    reparametrize_to_euclidean,
)


def sensor_frame(x: float) -> np.ndarray:
    """Camera frame [t, q] at position (x, 0, 0), identity orientation."""
    return np.array([x, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0])


def project(v: np.ndarray):
    """Pinhole projection of a sensor-frame direction to normalized coordinates.

    Returns:
        Tuple (z, Z_v) with z = [vx / vz, vy / vz] and its 2x3 Jacobian.
    """
    z = v[:2] / v[2]
    Z_v = np.array([
        [1.0 / v[2], 0.0, -v[0] / v[2] ** 2],
        [0.0, 1.0 / v[2], -v[1] / v[2] ** 2],
    ])
    return z, Z_v


def observe(s: np.ndarray, p_true: np.ndarray, noise_std: float, rng) -> np.ndarray:
    """Simulate a noisy bearing of the true landmark, as a retro-projectable v."""
    v = p_true - s[:3]
    z = v[:2] / v[2] + rng.normal(0.0, noise_std, 2)
    return np.array([z[0], z[1], 1.0])


def ekf_update(lmk_map: LandmarkMap, lmk, s: np.ndarray, v_meas: np.ndarray, R: np.ndarray) -> None:
    """
    Correct the map with one bearing of a landmark.

    Uses the Joseph form over every allocated state scalar, so the landmark's
    cross-covariances with the rest of the map are kept consistent.
    """
    used = lmk_map.used_indices()
    cols = np.searchsorted(used, lmk.indices)

    v_pred, _, V_l = lmk.to_bearing_only_frame_jac(s)
    z_pred, Z_v = project(v_pred)

    H = np.zeros((2, used.size))
    H[:, cols] = Z_v @ V_l

    P = lmk_map.P[np.ix_(used, used)]
    innovation = v_meas[:2] - z_pred
    S = H @ P @ H.T + R
    K = P @ H.T @ np.linalg.inv(S)

    lmk_map.x[used] += K @ innovation
    I_KH = np.eye(used.size) - K @ H
    lmk_map.P[np.ix_(used, used)] = I_KH @ P @ I_KH.T + K @ R @ K.T


def inverse_depth_ratio(lmk) -> float:
    """Standard deviation of rho relative to rho for an AHP landmark."""
    rho = lmk.state[ahp.RHO_INDEX]
    sigma = np.sqrt(lmk.covariance[ahp.RHO_INDEX, ahp.RHO_INDEX])
    return sigma / abs(rho) if rho != 0.0 else np.inf


def run(args) -> dict:
    """Run the estimation and return its history."""
    rng = np.random.default_rng(args.seed)
    p_true = np.array([1.0, 0.5, 6.0])
    positions = np.linspace(0.0, args.baseline, args.steps)

    config = AHPInitConfig(
        rho_prior=args.rho_prior, rho_std=args.rho_std, bearing_std=args.pixel_noise
    )
    R = args.pixel_noise ** 2 * np.eye(2)

    lmk_map = LandmarkMap(capacity=10)
    s0 = sensor_frame(positions[0])
    lmk = initialize_ahp_landmark(lmk_map, s0, observe(s0, p_true, args.pixel_noise, rng), config)

    print(f"   Initialized {lmk} at {np.round(lmk.to_euclidean(), 3)}")
    print(f"   True landmark: {p_true}")

    history = {"step": [], "estimate": [], "error": [], "ratio": [], "reparam_step": None}
    for k, x in enumerate(positions[1:], start=1):
        s = sensor_frame(x)
        ekf_update(lmk_map, lmk, s, observe(s, p_true, args.pixel_noise, rng), R)

        if lmk.kind is LandmarkType.AHP:
            ratio = inverse_depth_ratio(lmk)
            if ratio < args.reparam_ratio and lmk.state[ahp.RHO_INDEX] > 0.0:
                lmk = reparametrize_to_euclidean(lmk)
                history["reparam_step"] = k
                print(f"   Step {k}: sigma_rho / rho = {ratio:.3f}, reparametrized to {lmk}")
        else:
            ratio = np.nan

        # Early AHP estimates may sit behind the sensor or at infinity
        if lmk.kind is LandmarkType.AHP and lmk.state[ahp.RHO_INDEX] <= 0.0:
            continue

        p_est = lmk.to_euclidean()
        history["step"].append(k)
        history["estimate"].append(p_est)
        history["error"].append(np.linalg.norm(p_est - p_true))
        history["ratio"].append(ratio)

    history["positions"] = positions
    history["p_true"] = p_true
    history["landmark"] = lmk
    return history


def plot_history(history: dict, output_file: Path) -> None:
    """Plot the estimate track and the error over time."""
    estimates = np.array(history["estimate"])
    positions = history["positions"]
    p_true = history["p_true"]

    fig, axes = plt.subplots(1, 2, figsize=(14, 6))

    # Plot 1: top view (x-z plane)
    ax1 = axes[0]
    ax1.plot(positions, np.zeros_like(positions), "k-", linewidth=2, label="Sensor Path")
    ax1.plot(estimates[:, 0], estimates[:, 2], "b.-", alpha=0.6, label="Landmark Estimate")
    ax1.scatter(p_true[0], p_true[2], c="green", marker="*", s=250, zorder=5, label="True Landmark")
    ax1.set_xlabel("X [m]", fontsize=12)
    ax1.set_ylabel("Z [m]", fontsize=12)
    ax1.set_title("Bearing-Only Landmark: Top View", fontsize=14, fontweight="bold")
    ax1.legend(fontsize=10)
    ax1.grid(True, alpha=0.3)
    ax1.axis("equal")

    # Plot 2: error
    ax2 = axes[1]
    ax2.semilogy(history["step"], history["error"], "b-", linewidth=2, label="Position Error")
    if history["reparam_step"] is not None:
        ax2.axvline(history["reparam_step"], color="r", linestyle="--", label="AHP -> Euclidean")
    ax2.set_xlabel("Step Index", fontsize=12)
    ax2.set_ylabel("Position Error [m]", fontsize=12)
    ax2.set_title("Landmark Error Over Time", fontsize=14, fontweight="bold")
    ax2.legend(fontsize=10)
    ax2.grid(True, alpha=0.3)

    plt.tight_layout()
    output_file.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(output_file, dpi=150, bbox_inches="tight")
    print(f"\n[OK] Saved figure: {output_file}")


def main():
    """Main entry point with CLI argument parsing."""
    parser = argparse.ArgumentParser(
        description="Bearing-only AHP landmark initialization and reparametrization",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Default run with figure
  python examples/example_bearing_only_ahp.py

  # Noisier camera, no figure
  python examples/example_bearing_only_ahp.py --pixel-noise 0.005 --no-plot
        """,
    )
    parser.add_argument("--steps", type=int, default=60, help="Number of bearings")
    parser.add_argument("--baseline", type=float, default=3.0, help="Sensor travel along x [m]")
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("--rho-prior", type=float, default=0.5, help="Inverse-distance prior [1/m]")
    parser.add_argument("--rho-std", type=float, default=0.5, help="Inverse-distance prior std [1/m]")
    parser.add_argument(
        "--pixel-noise", type=float, default=1e-3,
        help="Bearing noise in normalized image coordinates",
    )
    parser.add_argument(
        "--reparam-ratio", type=float, default=0.1,
        help="Reparametrize once sigma_rho / rho falls below this value",
    )
    parser.add_argument("--no-plot", action="store_true", help="Skip the figure")
    args = parser.parse_args()

    if args.steps < 2:
        parser.error("--steps must be at least 2")

    print("=" * 80)
    print("BEARING-ONLY LANDMARK DEMO: AHP -> EKF -> Euclidean")
    print("=" * 80)
    print()

    print("1. Running estimation...")
    history = run(args)

    print()
    print("2. Results")
    if history["error"]:
        print(f"   Final estimate: {np.round(history['estimate'][-1], 3)}")
        print(f"   Final error: {history['error'][-1]:.4f} m")
    if history["reparam_step"] is None:
        print("   Landmark stayed in AHP form (depth never well observed)")

    if not args.no_plot and history["error"]:
        print()
        print("3. Visualizing results...")
        plot_history(history, Path("examples/figs") / "bearing_only_ahp.png")


if __name__ == "__main__":
    main()
