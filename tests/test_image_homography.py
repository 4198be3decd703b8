"""Tests for the public dispatch layer."""

import numpy as np
import pytest

from conftest import project, rotation_2d, rotation_3d
from stitchcv.estimate import (
    DofConfig,
    stitch_projective_2d_4points, stitch_affine_2d_3points,
    stitch_camera_rotation_2points, stitch_rotation_common_focal_length_3points,
    stitch_similarity_2d_raw, stitch_similarity_2d,
)


def test_projective(H_true, corners_h):
    H = stitch_projective_2d_4points(corners_h, project(H_true, corners_h))
    np.testing.assert_allclose(H, H_true, rtol=1e-8, atol=1e-10)


def test_affine(T_affine, corners_h):
    T = stitch_affine_2d_3points(corners_h[:3], project(T_affine, corners_h[:3]))
    np.testing.assert_allclose(T, T_affine, atol=1e-10)


def test_camera_rotation():
    R_true = rotation_3d([0.2, 1.0, 0.1], 0.4)
    x = np.array([[0.0, 0.0, 1.0], [0.6, 0.0, 0.8]])
    R = stitch_camera_rotation_2points(x, x @ R_true.T)
    np.testing.assert_allclose(R, R_true, atol=1e-10)


def test_common_focal_length_optional_focal():
    f = 500.0
    K = np.diag([f, f, 1.0])
    H_true = K @ rotation_3d([0.0, 1.0, 0.2], 0.1) @ np.linalg.inv(K)
    x = np.array([[50.0, 40.0, 1.0], [-80.0, 60.0, 1.0], [30.0, -90.0, 1.0]])

    res = stitch_rotation_common_focal_length_3points(x, x @ H_true.T)

    assert res is not None
    assert res.focal == pytest.approx(f, rel=1e-6)
    np.testing.assert_allclose(res.H, H_true / H_true[2, 2], rtol=1e-6, atol=1e-9)


def test_similarity_raw_and_packed_agree(rng):
    pts0 = rng.uniform(-20.0, 20.0, size=(5, 2))
    pts1 = 3.0 * pts0 @ rotation_2d(-0.7).T + np.array([2.0, 1.0])

    raw = stitch_similarity_2d_raw(pts0, pts1)
    H = stitch_similarity_2d(pts0, pts1)

    np.testing.assert_allclose(H[:2, :2], raw.scale * raw.R)
    np.testing.assert_allclose(H[:2, 2], raw.t)
    np.testing.assert_array_equal(H[2], [0.0, 0.0, 1.0])
    assert raw.scale == pytest.approx(3.0)


def test_similarity_dof_passthrough(rng):
    pts0 = rng.uniform(-20.0, 20.0, size=(5, 2))
    H = stitch_similarity_2d(pts0, pts0 + 1.0, DofConfig(allow_translation=False))
    np.testing.assert_array_equal(H[:2, 2], [0.0, 0.0])
