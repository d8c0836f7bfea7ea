"""Flyrock Bounded Context - Envelope Grid.

Places a regular XY lattice over the padded hole pattern and evaluates the
max-union heightfield of every hole's Chernigovskii envelope on it.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

import numpy as np

from domain.flyrock.ballistics import envelope_altitude, envelope_radius_at_depth
from domain.flyrock.value_objects import (
    MAX_GRID_CELLS,
    EnvelopeGrid,
    GridSpec,
    SourcePoint,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
DEFAULT_MAX_GRID_CELLS = MAX_GRID_CELLS  # Per dimension
MIN_GRID_SPACING_M = 1e-3


def source_padding(source: SourcePoint, extend_below_collar: float = 0.0) -> float:
    """Planar radius the grid must cover around one source.

    The larger of max_distance and the radius where the envelope reaches
    its floor (collar level, or -extend_below_collar). For Richards & Moore
    the floor radius V^2/g exceeds max_distance, so the grid must reach it
    for the envelope edge to close inside the grid.
    """
    depth = max(extend_below_collar, 0.0)
    return max(
        source.max_distance, envelope_radius_at_depth(source.max_velocity, depth)
    )


def _grid_shape(width: float, height: float, spacing: float) -> tuple[int, int]:
    cols = int(math.ceil(width / spacing)) + 1
    rows = int(math.ceil(height / spacing)) + 1
    return cols, rows


def build_grid_spec(
    sources: Sequence[SourcePoint],
    iterations: int,
    extend_below_collar: float = 0.0,
    max_cells: int = DEFAULT_MAX_GRID_CELLS,
) -> GridSpec:
    """Compute grid bounds and spacing for a set of envelope sources.

    Spacing is the largest padding divided by iterations / 2, so the widest
    envelope diameter spans roughly `iterations` cells. If either dimension
    would exceed max_cells the spacing is coarsened until both fit.

    Args:
        sources: Envelope sources (at least one)
        iterations: Target cell count across the largest envelope diameter
        extend_below_collar: Depth below collar the envelope is continued to (m)
        max_cells: Ceiling on nodes per row and per column

    Returns:
        GridSpec with cols <= max_cells and rows <= max_cells

    Raises:
        ValueError: If sources is empty, iterations < 2 or max_cells < 2
    """
    if not sources:
        raise ValueError("At least one source is required to build a grid")
    if iterations < 2:
        raise ValueError(f"iterations must be >= 2, got {iterations}")
    if max_cells < 2:
        raise ValueError(f"max_cells must be >= 2, got {max_cells}")

    min_x = min_y = math.inf
    max_x = max_y = -math.inf
    max_padding = 0.0
    for source in sources:
        padding = source_padding(source, extend_below_collar)
        max_padding = max(max_padding, padding)
        min_x = min(min_x, source.cx - padding)
        max_x = max(max_x, source.cx + padding)
        min_y = min(min_y, source.cy - padding)
        max_y = max(max_y, source.cy + padding)

    width = max_x - min_x
    height = max_y - min_y
    spacing = max(max_padding / (iterations / 2.0), MIN_GRID_SPACING_M)
    cols, rows = _grid_shape(width, height, spacing)

    if cols > max_cells or rows > max_cells:
        naive = (cols, rows)
        spacing = max(width, height) / (max_cells - 1)
        cols, rows = _grid_shape(width, height, spacing)
        # Rounding in ceil() can leave one node too many
        while cols > max_cells or rows > max_cells:
            spacing *= 1.0 + 1e-9
            cols, rows = _grid_shape(width, height, spacing)
        logger.warning(
            "Envelope grid %dx%d exceeds %d cells per side; spacing coarsened to %.3fm (%dx%d)",
            naive[0],
            naive[1],
            max_cells,
            spacing,
            cols,
            rows,
        )

    return GridSpec(
        min_x=min_x,
        min_y=min_y,
        max_x=max_x,
        max_y=max_y,
        spacing=spacing,
        cols=cols,
        rows=rows,
        max_padding=max_padding,
    )


def evaluate_heightfield(
    sources: Sequence[SourcePoint],
    spec: GridSpec,
    extend_below_collar: float = 0.0,
) -> EnvelopeGrid:
    """Evaluate the max-union envelope heightfield on every grid node.

    A node is inside a source's envelope when its altitude is at least the
    floor (0, or -extend_below_collar). Its elevation is the highest
    collar-relative envelope over the sources that contain it; sources that
    do not contain the node contribute nothing.

    Args:
        sources: Envelope sources
        spec: Grid placement from build_grid_spec
        extend_below_collar: Depth below collar the envelope is continued to (m)

    Returns:
        EnvelopeGrid with absolute elevations and inside flags
    """
    min_alt = -extend_below_collar if extend_below_collar > 0 else 0.0

    xs = spec.min_x + np.arange(spec.cols, dtype=np.float64) * spec.spacing
    ys = spec.min_y + np.arange(spec.rows, dtype=np.float64) * spec.spacing
    gx, gy = np.meshgrid(xs, ys)  # (rows, cols)

    best = np.full((spec.rows, spec.cols), -np.inf, dtype=np.float64)
    inside = np.zeros((spec.rows, spec.cols), dtype=np.bool_)

    for source in sources:
        dx = gx - source.cx
        dy = gy - source.cy
        alt = envelope_altitude(np.hypot(dx, dy), source.max_velocity)
        contains = alt >= min_alt
        np.maximum(best, np.where(contains, source.cz + alt, -np.inf), out=best)
        inside |= contains

    z = np.where(inside, best, 0.0)
    logger.debug(
        "Heightfield %s: %d of %d nodes inside envelope",
        spec.size_label,
        int(np.count_nonzero(inside)),
        inside.size,
    )
    return EnvelopeGrid(spec=spec, z=z, inside=inside)
