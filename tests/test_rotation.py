"""Tests for the rotation-constrained estimators."""

import numpy as np
import pytest

from conftest import rotation_3d
from stitchcv.estimate.rotation import camera_rotation_2points, rotation_common_focal_length_3points
from stitchcv.estimate.types import FocalSolverParams, is_rotation


class TestCameraRotation2Points:

    @pytest.mark.parametrize("seed", range(5))
    def test_recovers_rotation(self, seed):
        rng = np.random.default_rng(seed)
        R_true = rotation_3d(rng.normal(size=3), rng.uniform(0.1, 2.5))
        x = rng.normal(size=(2, 3))
        x /= np.linalg.norm(x, axis=1, keepdims=True)
        xp = x @ R_true.T

        R = camera_rotation_2points(x, xp)

        assert is_rotation(R)
        np.testing.assert_allclose(R, R_true, atol=1e-9)

    def test_non_unit_input_still_returns_rotation(self):
        x = np.array([[3.0, 0.0, 0.0], [0.0, 0.5, 0.0]])
        xp = np.array([[0.0, 1.0, 0.0], [0.0, 0.0, 7.0]])
        assert is_rotation(camera_rotation_2points(x, xp))

    def test_wrong_shape(self):
        with pytest.raises(ValueError, match=r"\(2,3\)"):
            camera_rotation_2points(np.ones((3, 3)), np.ones((3, 3)))


class TestRotationCommonFocalLength:

    FOCAL = 800.0

    @pytest.fixture
    def R_true(self):
        return rotation_3d([1.0, 0.0, 0.0], 0.03) @ rotation_3d([0.0, 1.0, 0.0], 0.05) @ rotation_3d([0.0, 0.0, 1.0], 0.07)

    @pytest.fixture
    def H_true(self, R_true):
        K = np.diag([self.FOCAL, self.FOCAL, 1.0])
        H = K @ R_true @ np.linalg.inv(K)
        return H / H[2, 2]

    @pytest.fixture
    def x(self):
        return np.array([[120.0, 150.0, 1.0], [260.0, 110.0, 1.0], [180.0, 280.0, 1.0]])

    @pytest.fixture
    def xp(self, H_true, x):
        # Positive, uneven per-point scales: still in front of the camera.
        return (x @ H_true.T) * np.array([[2.0], [0.5], [1.3]])

    def test_recovers_focal_and_rotation(self, x, xp, R_true, H_true):
        res = rotation_common_focal_length_3points(x, xp)

        assert res is not None
        assert res.focal == pytest.approx(self.FOCAL, rel=1e-6)
        np.testing.assert_allclose(res.R, R_true, atol=1e-8)
        np.testing.assert_allclose(res.H, H_true, rtol=1e-6, atol=1e-9)
        assert res.residual < 1e-12

    def test_output_maps_points(self, x, xp):
        res = rotation_common_focal_length_3points(x, xp)

        assert res is not None
        mapped = x @ res.H.T
        np.testing.assert_allclose(mapped[:, :2] / mapped[:, 2:], xp[:, :2] / xp[:, 2:], atol=1e-6)

    def test_point_behind_camera_fails_with_sign_disambiguation(self, x, xp):
        flipped = xp.copy()
        flipped[2] *= -1.0

        assert rotation_common_focal_length_3points(x, flipped, signed_disambiguation=True) is None

    def test_point_behind_camera_accepted_without_sign_disambiguation(self, x, xp):
        flipped = xp.copy()
        flipped[2] *= -1.0

        res = rotation_common_focal_length_3points(x, flipped, signed_disambiguation=False)

        assert res is not None
        assert res.focal == pytest.approx(self.FOCAL, rel=1e-6)

    def test_input_units_do_not_matter(self, x, xp):
        a = rotation_common_focal_length_3points(x, xp)
        b = rotation_common_focal_length_3points(x * np.array([0.01, 0.01, 1.0]), xp * np.array([0.01, 0.01, 1.0]))

        assert a is not None and b is not None
        assert b.focal == pytest.approx(a.focal * 0.01, rel=1e-6)
        np.testing.assert_allclose(b.R, a.R, atol=1e-8)

    def test_deterministic(self, x, xp):
        a = rotation_common_focal_length_3points(x, xp)
        b = rotation_common_focal_length_3points(x, xp)
        assert a is not None and b is not None
        np.testing.assert_array_equal(a.H, b.H)
        assert a.focal == b.focal

    def test_rotation_about_optical_axis_has_no_focal(self, x):
        R = rotation_3d([0.0, 0.0, 1.0], 0.2)
        # K R K^-1 = R for a rotation about z, whatever f is.
        assert rotation_common_focal_length_3points(x, x @ R.T) is None

    def test_all_points_at_principal_point(self):
        x = np.array([[0.0, 0.0, 1.0], [0.0, 0.0, 2.0], [0.0, 0.0, 3.0]])
        assert rotation_common_focal_length_3points(x, x) is None

    @pytest.mark.parametrize("signed", [True, False])
    def test_zoom_is_not_a_rotation(self, signed):
        # Same triangle 3x larger, all in front of the camera. Only f^2 = 100 * 300
        # matches the pair (0, 1) angle, and there it is 60 degrees in one view
        # and 120 in the other, so no rotation fits.
        x = np.array([[100.0, 0.0, 1.0], [-100.0, 0.0, 1.0], [0.0, 100.0, 1.0]])
        xp = x * np.array([3.0, 3.0, 1.0])

        assert rotation_common_focal_length_3points(x, xp, signed_disambiguation=signed) is None

    def test_residual_tolerance_bounds_noisy_fit(self):
        f = 600.0
        K = np.diag([f, f, 1.0])
        R = rotation_3d([0.0, 1.0, 0.0], 0.25) @ rotation_3d([1.0, 0.0, 0.0], 0.15)
        x = np.array([[-300.0, -200.0, 1.0], [280.0, -120.0, 1.0], [-40.0, 260.0, 1.0]])
        xp = x @ (K @ R @ np.linalg.inv(K)).T
        xp = xp / xp[:, 2:]
        xp[:, :2] += np.array([[0.3, -0.2], [-0.25, 0.3], [0.2, 0.1]])

        res = rotation_common_focal_length_3points(x, xp)

        assert res is not None
        assert 0.0 < res.residual <= FocalSolverParams().residual_tol

        tight = FocalSolverParams(residual_tol=0.5 * res.residual)
        assert rotation_common_focal_length_3points(x, xp, params=tight) is None

    def test_zero_point_rejected(self, x):
        bad = x.copy()
        bad[1] = 0.0
        with pytest.raises(ValueError, match="all zero"):
            rotation_common_focal_length_3points(bad, x)

    def test_params_validated(self):
        with pytest.raises(ValueError, match="residual_tol"):
            FocalSolverParams(residual_tol=0.0)
