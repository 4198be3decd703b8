import numpy as np

from stitchcv.estimate import (
    DofConfig,
    apply_T, apply_homography, as_homogeneous, residuals_L2,
    stitch_affine_2d_3points, stitch_projective_2d_4points,
    stitch_rotation_common_focal_length_3points, stitch_similarity_2d_raw,
)


def main() -> None:
    rng = np.random.default_rng(0)

    # ---------- Similarity from noisy matches ----------
    theta = 0.05
    T_true = np.array(
        [[1.02 * np.cos(theta), -1.02 * np.sin(theta), 15.0],
         [1.02 * np.sin(theta),  1.02 * np.cos(theta), -8.0],
         [0.0, 0.0, 1.0]],
        dtype=np.float64,
    )

    n = 200
    pts0 = rng.uniform([0, 0], [640, 480], size=(n, 2)).astype(np.float64)
    pts1 = apply_T(T_true, pts0) + rng.normal(0.0, 0.8, size=(n, 2))

    sim = stitch_similarity_2d_raw(pts0, pts1, DofConfig())
    print("T_true:\n", T_true)
    print("similarity T_est:\n", sim.as_mat3x3())
    print("scale:", sim.scale, " rms:", float(np.sqrt(np.mean(residuals_L2(sim.as_mat3x3(), pts0, pts1) ** 2))))

    # ---------- Minimal solvers ----------
    x = as_homogeneous(pts0[:4])
    H = stitch_projective_2d_4points(x, as_homogeneous(apply_T(T_true, pts0[:4])))
    print("4-point H:\n", H)

    A = stitch_affine_2d_3points(x[:3], as_homogeneous(apply_T(T_true, pts0[:3])))
    print("3-point affine:\n", A)

    # ---------- Rotating camera, unknown focal ----------
    f = 700.0
    K = np.diag([f, f, 1.0])
    c, s = np.cos(0.08), np.sin(0.08)
    R = np.array([[c, 0.0, s], [0.0, 1.0, 0.0], [-s, 0.0, c]])
    H_rot = K @ R @ np.linalg.inv(K)

    centered = pts0[:3] - np.array([320.0, 240.0])
    xc = as_homogeneous(centered)
    res = stitch_rotation_common_focal_length_3points(xc, as_homogeneous(apply_homography(H_rot, centered)))
    if res is None:
        print("common focal length: no solution")
        return
    print("focal true / est:", f, res.focal)


if __name__ == "__main__":
    main()
