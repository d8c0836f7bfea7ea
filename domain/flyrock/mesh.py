"""Flyrock Bounded Context - Mesh Triangulation.

Converts an EnvelopeGrid into a deduplicated triangle mesh. Each grid quad
(r, c)-(r+1, c+1) is split into

    T1 = (r, c), (r+1, c), (r, c+1)
    T2 = (r+1, c), (r+1, c+1), (r, c+1)

and a triangle is emitted only when all three corners are inside the
envelope, so the mesh edge follows the envelope boundary instead of being
extrapolated past it. Triangles steeper than the end angle, or with zero
area, are dropped.
"""

from __future__ import annotations

import logging
import math

from domain.flyrock.value_objects import (
    EnvelopeGrid,
    SurfacePoint,
    SurfaceTriangle,
    Triangulation,
)

logger = logging.getLogger(__name__)

DEGENERATE_NORMAL_EPS = 1e-10

Vertex = tuple[float, float, float]


def face_vertical_ratio(v0: Vertex, v1: Vertex, v2: Vertex) -> float | None:
    """Return |n_z| / |n| for the triangle's face normal.

    This is the cosine of the face slope from horizontal: 1 for a flat
    triangle, 0 for a vertical one.

    Returns:
        The ratio, or None for a degenerate (zero-area) triangle
    """
    e1x, e1y, e1z = v1[0] - v0[0], v1[1] - v0[1], v1[2] - v0[2]
    e2x, e2y, e2z = v2[0] - v0[0], v2[1] - v0[1], v2[2] - v0[2]

    nx = e1y * e2z - e1z * e2y
    ny = e1z * e2x - e1x * e2z
    nz = e1x * e2y - e1y * e2x

    length = math.sqrt(nx * nx + ny * ny + nz * nz)
    if length < DEGENERATE_NORMAL_EPS:
        return None
    return abs(nz) / length


def triangulate(grid: EnvelopeGrid, end_angle_deg: float = 85.0) -> Triangulation:
    """Triangulate the inside region of an envelope grid.

    Vertices are deduplicated by (row, col): the first reference creates the
    point and every later reference reuses its index.

    Args:
        grid: Max-union heightfield
        end_angle_deg: Steepest face slope kept, in degrees from horizontal

    Returns:
        Triangulation with points, index triangles and cull counts
    """
    spec = grid.spec
    rows, cols = spec.rows, spec.cols
    inside = grid.inside.tolist()
    z = grid.z.tolist()
    cos_end_angle = math.cos(math.radians(end_angle_deg))

    # Flat (row * cols + col) -> point index, -1 until first referenced
    index_of = [-1] * (rows * cols)
    vertices: list[Vertex] = []
    triangles: list[tuple[int, int, int]] = []
    culled_steep = 0
    degenerate = 0

    def point_index(row: int, col: int) -> int:
        key = row * cols + col
        idx = index_of[key]
        if idx < 0:
            idx = len(vertices)
            x, y = spec.node_xy(row, col)
            vertices.append((x, y, z[row][col]))
            index_of[key] = idx
        return idx

    def emit(corners: tuple[tuple[int, int], ...]) -> None:
        nonlocal culled_steep, degenerate
        i0, i1, i2 = (point_index(r, c) for r, c in corners)
        ratio = face_vertical_ratio(vertices[i0], vertices[i1], vertices[i2])
        if ratio is None:
            degenerate += 1
        elif ratio < cos_end_angle:
            culled_steep += 1
        else:
            triangles.append((i0, i1, i2))

    for r in range(rows - 1):
        row_in, next_in = inside[r], inside[r + 1]
        for c in range(cols - 1):
            in00 = row_in[c]
            in10 = next_in[c]
            in01 = row_in[c + 1]
            in11 = next_in[c + 1]

            if in00 and in10 and in01:
                emit(((r, c), (r + 1, c), (r, c + 1)))
            if in10 and in11 and in01:
                emit(((r + 1, c), (r + 1, c + 1), (r, c + 1)))

    logger.debug(
        "Triangulated %s grid: %d points, %d triangles (%d steep, %d degenerate culled)",
        spec.size_label,
        len(vertices),
        len(triangles),
        culled_steep,
        degenerate,
    )
    return Triangulation(
        points=tuple(SurfacePoint(x=x, y=y, z=zz) for x, y, zz in vertices),
        triangles=tuple(SurfaceTriangle(a=a, b=b, c=c) for a, b, c in triangles),
        culled_steep=culled_steep,
        degenerate=degenerate,
    )
