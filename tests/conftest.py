"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import numpy as np
import pytest


def rotation_2d(theta: float) -> np.ndarray:
    c, s = np.cos(theta), np.sin(theta)
    return np.array([[c, -s], [s, c]], dtype=np.float64)


def rotation_3d(axis, angle: float) -> np.ndarray:
    """Rodrigues: rotation by `angle` radians about `axis`."""
    k = np.asarray(axis, dtype=np.float64)
    k = k / np.linalg.norm(k)
    K = np.array(
        [
            [0.0, -k[2], k[1]],
            [k[2], 0.0, -k[0]],
            [-k[1], k[0], 0.0],
        ]
    )
    return np.eye(3) + np.sin(angle) * K + (1.0 - np.cos(angle)) * (K @ K)


def project(H: np.ndarray, x: np.ndarray) -> np.ndarray:
    """Apply H to (N,3) homogeneous rows."""
    return x @ H.T


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded generator so every run sees the same points."""

    return np.random.default_rng(1234)


@pytest.fixture
def H_true() -> np.ndarray:
    """A mild projective warp, H[2,2] = 1."""

    return np.array(
        [
            [1.10, 0.05, 30.0],
            [-0.02, 0.95, -12.0],
            [1.0e-4, -2.0e-4, 1.0],
        ],
        dtype=np.float64,
    )


@pytest.fixture
def T_affine() -> np.ndarray:
    return np.array(
        [
            [1.05, 0.02, 15.0],
            [-0.01, 0.98, -8.0],
            [0.0, 0.0, 1.0],
        ],
        dtype=np.float64,
    )


@pytest.fixture
def corners_h() -> np.ndarray:
    """Image corners of a 640x480 frame, homogeneous."""

    return np.array(
        [
            [0.0, 0.0, 1.0],
            [640.0, 0.0, 1.0],
            [640.0, 480.0, 1.0],
            [0.0, 480.0, 1.0],
        ],
        dtype=np.float64,
    )
