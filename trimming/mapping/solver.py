"""
Solves the pixel-space crop rectangle from matched words.

Each match gives ``pixel = relative * size + origin`` on both axes.  The
two axes are independent straight-line fits, solved through the normal
equations.  A single match cannot fix both size and origin, so it falls
back to a sweep over widths held to the reference aspect ratio.
"""

import logging
import math
from typing import List, Optional, Tuple

import numpy as np

from core.page.models import Rect
from trimming.marks.models import TrimError

from .models import CropSolution, MappingConfig, MatchedPair, SolveMethod

logger = logging.getLogger(__name__)

# Determinants at or below this mean all matches share one coordinate.
_SINGULAR_EPSILON = 1e-10


def _fit_axis(rel: np.ndarray, px: np.ndarray) -> Optional[Tuple[float, float]]:
    """
    Least-squares fit of ``px = rel * scale + offset``.

    Returns:
        ``(scale, offset)``, or ``None`` when the system is singular.
    """
    n = float(len(rel))
    sum_r = rel.sum()
    sum_r2 = (rel * rel).sum()
    sum_p = px.sum()
    sum_rp = (rel * px).sum()

    det = sum_r2 * n - sum_r * sum_r
    if not abs(det) > _SINGULAR_EPSILON:
        return None

    scale = (sum_rp * n - sum_r * sum_p) / det
    offset = (sum_r2 * sum_p - sum_r * sum_rp) / det
    return float(scale), float(offset)


def solve_crop_rect(
    matches: List[MatchedPair],
    config: Optional[MappingConfig] = None,
) -> CropSolution:
    """
    Solve the crop rectangle from two or more matches.

    Args:
        matches: Matched pairs from :func:`match_words`.
        config:  Provides ``min_solved_side`` (defaults if ``None``).

    Returns:
        :class:`CropSolution`; on failure ``error`` is
        ``SINGULAR_LINEAR_SYSTEM`` or ``SOLVED_BOX_TOO_SMALL``.
    """
    cfg = config or MappingConfig()
    solution = CropSolution(method=SolveMethod.LEAST_SQUARES)

    if len(matches) < 2:
        solution.error = TrimError.SINGULAR_LINEAR_SYSTEM
        solution.message = f"Need at least 2 matches, got {len(matches)}"
        return solution

    rel_x = np.array([m.relative_x for m in matches], dtype=float)
    rel_y = np.array([m.relative_y for m in matches], dtype=float)
    px_x = np.array([m.pixel_x for m in matches], dtype=float)
    px_y = np.array([m.pixel_y for m in matches], dtype=float)

    fit_x = _fit_axis(rel_x, px_x)
    if fit_x is None:
        solution.error = TrimError.SINGULAR_LINEAR_SYSTEM
        solution.message = "X system is singular (all matches at same relative X?)"
        return solution

    fit_y = _fit_axis(rel_y, px_y)
    if fit_y is None:
        solution.error = TrimError.SINGULAR_LINEAR_SYSTEM
        solution.message = "Y system is singular (all matches at same relative Y?)"
        return solution

    width, x = fit_x
    height, y = fit_y
    logger.debug(
        "Solved crop from %d matches: x=%.1f y=%.1f w=%.1f h=%.1f",
        len(matches),
        x,
        y,
        width,
        height,
    )

    if width < cfg.min_solved_side or height < cfg.min_solved_side:
        solution.error = TrimError.SOLVED_BOX_TOO_SMALL
        solution.message = f"Solved crop {width:.1f}x{height:.1f} px is too small"
        return solution

    pred_x = rel_x * width + x
    pred_y = rel_y * height + y
    residuals = np.hypot(pred_x - px_x, pred_y - px_y)

    solution.success = True
    solution.x, solution.y = x, y
    solution.width, solution.height = width, height
    solution.residuals = [float(r) for r in residuals]
    logger.debug("Mean residual %.2f px", solution.mean_residual)
    return solution


def sweep_single_match(
    match: MatchedPair,
    image_size: Tuple[int, int],
    aspect_ratio: float,
    config: Optional[MappingConfig] = None,
) -> CropSolution:
    """
    Place the crop from one match by sweeping candidate widths.

    Each candidate width (a fraction of the image width) fixes the height
    through *aspect_ratio* and the origin through the match.  Candidates
    taller than the image, or out of bounds by more than
    ``config.out_of_bounds`` of their size, are skipped.  The score is
    the in-image area fraction times ``edge_penalty`` per crossed edge.

    Args:
        match:        The single matched pair.
        image_size:   ``(width, height)`` of the target image in pixels.
        aspect_ratio: Reference bounds width / height.
        config:       Sweep parameters (defaults if ``None``).
    """
    cfg = config or MappingConfig()
    solution = CropSolution(method=SolveMethod.SINGLE_MATCH_SWEEP)
    img_w, img_h = image_size

    if aspect_ratio <= 0 or img_w <= 0 or img_h <= 0:
        solution.error = TrimError.INVALID_BOUNDS
        solution.message = "Aspect ratio and image size must be positive"
        return solution

    best_score = -1.0
    best: Tuple[float, float, float, float] = (0.0, 0.0, 0.0, 0.0)
    steps = int(round((cfg.sweep_stop - cfg.sweep_start) / cfg.sweep_step))
    oob = cfg.out_of_bounds

    for frac in np.linspace(cfg.sweep_start, cfg.sweep_stop, steps + 1):
        try_w = img_w * frac
        try_h = try_w / aspect_ratio
        if try_h > img_h:
            continue

        try_x = match.pixel_x - match.relative_x * try_w
        try_y = match.pixel_y - match.relative_y * try_h

        if (
            try_x < -try_w * oob
            or try_y < -try_h * oob
            or try_x + try_w > img_w * (1 + oob)
            or try_y + try_h > img_h * (1 + oob)
        ):
            continue

        cl_x = max(0.0, try_x)
        cl_y = max(0.0, try_y)
        cl_w = min(try_w, img_w - cl_x)
        cl_h = min(try_h, img_h - cl_y)
        area_frac = (cl_w * cl_h) / (img_w * img_h)

        penalty = 1.0
        for crossed in (
            try_x < 0,
            try_y < 0,
            try_x + try_w > img_w,
            try_y + try_h > img_h,
        ):
            if crossed:
                penalty *= cfg.edge_penalty

        score = area_frac * penalty
        if score > best_score:
            best_score = score
            best = (float(try_x), float(try_y), float(try_w), float(try_h))

    if best_score <= 0:
        solution.error = TrimError.NO_MATCHES
        solution.message = "Single-match sweep found no in-bounds candidate"
        return solution

    solution.success = True
    solution.x, solution.y, solution.width, solution.height = best
    solution.residuals = [0.0]
    logger.debug(
        "Single-match sweep: (%.1f, %.1f) %.1fx%.1f score=%.3f",
        solution.x,
        solution.y,
        solution.width,
        solution.height,
        best_score,
    )
    return solution


def clamp_to_image(
    solution: CropSolution,
    image_size: Tuple[int, int],
    min_side: float = 10.0,
) -> Optional[Rect]:
    """
    Clip a solved crop to the image and round to whole pixels.

    Returns:
        The clipped rectangle, or ``None`` when a side is not larger
        than *min_side* after clipping.
    """
    values = (solution.x, solution.y, solution.width, solution.height)
    if not all(math.isfinite(v) for v in values):
        return None
    img_w, img_h = image_size
    x = max(0, int(round(solution.x)))
    y = max(0, int(round(solution.y)))
    w = min(int(round(solution.width)), img_w - x)
    h = min(int(round(solution.height)), img_h - y)
    if w <= min_side or h <= min_side:
        return None
    return Rect(float(x), float(y), float(w), float(h))
