# Andy Zhao
"""
Transform estimation package

This module provides:
- Typed geometry primitives and small fixed-size vector helpers
- Closed-form similarity (2D / 3D) with selectable degrees of freedom
- Minimal and least-squares solvers for homography and affine models
- Rotation-only and common-focal-length homography estimators
- ModelFitter adapters for an external robust estimator
"""

from .types import (
    FloatArray, BoolArray, Points2D, Points3D, PointsHomog, Vec2, Vec3, Mat2x2, Mat3x3,
    DofConfig, FocalSolverParams, SimilarityTransform, FocalHomography, ModelFitter,
    as_homogeneous, from_homogeneous, is_valid_mat3x3, is_rotation,
)

from .primitives import (
    zero2, dot3, cross3, sqr_norm3, norm3, normalize3, det3_rows,
    identity3x3, mat3x3_from_flat, normalize_h22,
)

from .similarity import similarity_2d_raw, similarity_3d_raw, minimal_point_count

from .projective import (
    fit_homography_4points, fit_homography_least_squares,
    apply_homography, residuals_homography_L2, normalization_transform,
)

from .affine import (
    fit_affine_3points, fit_affine_minimal, fit_affine_least_squares, apply_T, residuals_L2,
)

from .rotation import camera_rotation_2points, rotation_common_focal_length_3points

from .fitters import AffineFitter, HomographyFitter, SimilarityFitter

from .image_homography import (
    stitch_projective_2d_4points, stitch_affine_2d_3points,
    stitch_camera_rotation_2points, stitch_rotation_common_focal_length_3points,
    stitch_similarity_2d_raw, stitch_similarity_2d,
)

__all__ = [
    "FloatArray", "BoolArray", "Points2D", "Points3D", "PointsHomog", "Vec2", "Vec3", "Mat2x2", "Mat3x3",
    "DofConfig", "FocalSolverParams", "SimilarityTransform", "FocalHomography", "ModelFitter",
    "as_homogeneous", "from_homogeneous", "is_valid_mat3x3", "is_rotation",
    "zero2", "dot3", "cross3", "sqr_norm3", "norm3", "normalize3", "det3_rows",
    "identity3x3", "mat3x3_from_flat", "normalize_h22",
    "similarity_2d_raw", "similarity_3d_raw", "minimal_point_count",
    "fit_homography_4points", "fit_homography_least_squares",
    "apply_homography", "residuals_homography_L2", "normalization_transform",
    "fit_affine_3points", "fit_affine_minimal", "fit_affine_least_squares", "apply_T", "residuals_L2",
    "camera_rotation_2points", "rotation_common_focal_length_3points",
    "AffineFitter", "HomographyFitter", "SimilarityFitter",
    "stitch_projective_2d_4points", "stitch_affine_2d_3points",
    "stitch_camera_rotation_2points", "stitch_rotation_common_focal_length_3points",
    "stitch_similarity_2d_raw", "stitch_similarity_2d",
]
