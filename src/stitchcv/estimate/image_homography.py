# Andy Zhao
"""
Public entry points for image transform estimation.

Thin wrappers: they take the point arrays in the calling convention of each
model, call the solver and hand back the matrix the caller expects.

    image points     -> (N,3) homogeneous [x, y, w]
    raw similarity   -> (N,2) planar [x, y]

Direction is always pts0 / x (image 1) -> pts1 / xp (image 2).
"""
from __future__ import annotations

from typing import Optional

from .types import (
    PointsHomog, Points2D, Mat3x3,
    DofConfig, FocalSolverParams, FocalHomography, SimilarityTransform)
from .affine import fit_affine_3points
from .projective import fit_homography_4points
from .rotation import camera_rotation_2points, rotation_common_focal_length_3points
from .similarity import similarity_2d_raw

_DEFAULT_DOF = DofConfig()


def stitch_projective_2d_4points(x: PointsHomog, xp: PointsHomog) -> Optional[Mat3x3]:
    """
    Projective H with xp_i ~ H x_i from 4 homogeneous correspondences.
    None if the points are degenerate (three collinear).
    """
    return fit_homography_4points(x, xp)


def stitch_affine_2d_3points(x: PointsHomog, xp: PointsHomog) -> Optional[Mat3x3]:
    """
    Affine H (bottom row [0,0,1]) with xp_i ~ H x_i from 3 homogeneous correspondences.
    None if the source points are collinear.
    """
    return fit_affine_3points(x, xp)


def stitch_camera_rotation_2points(x: PointsHomog, xp: PointsHomog) -> Mat3x3:
    """
    Rotation R with xp_i ~ R x_i. Points have to be of unit norm.
    """
    return camera_rotation_2points(x, xp)


def stitch_rotation_common_focal_length_3points(
        x: PointsHomog,
        xp: PointsHomog,
        *,
        signed_disambiguation: bool = True,
        params: FocalSolverParams = FocalSolverParams(),
) -> Optional[FocalHomography]:
    """
    H = diag(f,f,1) R diag(1/f,1/f,1) with xp_i ~ H x_i.

    Returns None when no solution exists. On success the focal length is
    result.focal; callers that only want H read result.H.
    """
    return rotation_common_focal_length_3points(
        x, xp, signed_disambiguation=signed_disambiguation, params=params)


def stitch_similarity_2d_raw(
        pts0: Points2D,
        pts1: Points2D,
        dof: DofConfig = _DEFAULT_DOF,
) -> SimilarityTransform:
    """
    Scale, 2x2 rotation and translation taking pts0 to pts1.
    See similarity_2d_raw for the minimal point counts per DofConfig.
    """
    return similarity_2d_raw(pts0, pts1, dof)


def stitch_similarity_2d(
        pts0: Points2D,
        pts1: Points2D,
        dof: DofConfig = _DEFAULT_DOF,
) -> Mat3x3:
    """
    Same as stitch_similarity_2d_raw, packed as

        [ s*R  t ]
        [  0   1 ]
    """
    return similarity_2d_raw(pts0, pts1, dof).as_mat3x3()
