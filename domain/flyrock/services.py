"""Flyrock Bounded Context - Domain Services.

Pure shroud generation pipeline:

    holes + charging -> extract_hole_params -> ballistic model -> SourcePoint
    -> build_grid_spec -> evaluate_heightfield -> triangulate -> ShroudSurface

NO I/O operations. Holes and charging are passed in explicitly; loading
them is the job of infrastructure adapters implementing the ports in
`domain/flyrock/repositories.py`.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from domain.flyrock.ballistics import (
    BallisticModel,
    envelope_apex_height,
    envelope_radius_at_depth,
    model_for,
)
from domain.flyrock.errors import (
    AllHolesSkippedError,
    HoleSkippedError,
    NoChargingAnywhereError,
    NoInputHolesError,
    NoTrianglesError,
    SkipReason,
    ZeroEnvelopeError,
)
from domain.flyrock.grid import build_grid_spec, evaluate_heightfield
from domain.flyrock.hole_params import extract_hole_params, select_holes
from domain.flyrock.mesh import triangulate
from domain.flyrock.value_objects import (
    BlastHole,
    ChargeDeck,
    FlyrockConfig,
    GridSpec,
    HoleBallisticParams,
    LaunchEnvelope,
    ShroudMetadata,
    ShroudSurface,
    SourcePoint,
    Triangulation,
)

logger = logging.getLogger(__name__)

SURFACE_ID_PREFIX = "flyrock_shroud_"


class SourceExtraction(BaseModel):
    """Envelope sources for a run plus per-reason skip counts."""

    sources: tuple[SourcePoint, ...]
    total: int = Field(ge=0)
    skipped_by_reason: dict[SkipReason, int] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    @property
    def skipped(self) -> int:
        return sum(self.skipped_by_reason.values())


# ---------------------------------------------------------------------------
# Step 1: per-hole envelopes
# ---------------------------------------------------------------------------
def _describe(params: HoleBallisticParams, envelope: LaunchEnvelope) -> str:
    detail = " ".join(
        f"{name}={value:.1f}"
        for name, value in envelope.model_dump().items()
        if name not in ("max_distance", "max_velocity")
    )
    return (
        f"diam={params.hole_diameter_mm:.0f}mm burden={params.burden:.1f}m "
        f"stemming={params.stemming_length:.1f}m chgLen={params.charge_length:.1f}m "
        f"density={params.inhole_density:.2f}g/cc {detail}"
    ).rstrip()


def source_for_hole(
    hole: BlastHole,
    decks: Sequence[ChargeDeck] | None,
    config: FlyrockConfig,
    model: BallisticModel,
) -> SourcePoint:
    """Compute the envelope source for one hole.

    Args:
        hole: Hole geometry
        decks: Charging decks for the hole
        config: Run configuration
        model: Ballistic model resolved from config.algorithm

    Raises:
        HoleSkippedError: Subclass describing why the hole has no envelope
    """
    params = extract_hole_params(hole, decks, config)
    envelope = model(params)
    if envelope.is_zero:
        raise ZeroEnvelopeError(
            hole.label,
            f"distance={envelope.max_distance:.3f} velocity={envelope.max_velocity:.3f}",
        )

    logger.debug(
        "Flyrock [%s] %s V=%.1fm/s H=%.0fm",
        hole.label,
        _describe(params, envelope),
        envelope.max_velocity,
        envelope_apex_height(envelope.max_velocity),
    )
    return SourcePoint(
        cx=hole.x,
        cy=hole.y,
        cz=hole.z,
        max_distance=envelope.max_distance,
        max_velocity=envelope.max_velocity,
        label=hole.label,
    )


def compute_sources(
    holes: Sequence[BlastHole],
    charging: Mapping[str, Sequence[ChargeDeck]],
    config: FlyrockConfig,
) -> SourceExtraction:
    """Compute envelope sources for every hole, absorbing per-hole skips.

    Args:
        holes: Holes to evaluate (already filtered to the blast selection)
        charging: Charging decks keyed by hole_id
        config: Run configuration

    Returns:
        SourceExtraction; sources keep the input hole order
    """
    sources: list[SourcePoint] = []
    skipped: Counter[SkipReason] = Counter()
    model = model_for(config.algorithm)

    for hole in holes:
        try:
            source = source_for_hole(hole, charging.get(hole.hole_id), config, model)
            sources.append(source)
        except HoleSkippedError as e:
            skipped[e.reason] += 1
            if e.reason is SkipReason.NO_CHARGING:
                logger.debug("%s", e)
            else:
                logger.warning("Flyrock: %s", e)

    if skipped[SkipReason.NO_CHARGING]:
        logger.warning(
            "Flyrock: skipped %d of %d hole(s) with no charging data",
            skipped[SkipReason.NO_CHARGING],
            len(holes),
        )

    if sources:
        worst = max(sources, key=lambda s: s.max_velocity)
        logger.info(
            "Flyrock worst case [%s]: V=%.1f m/s, envelope height=%.0fm, envelope radius=%.0fm",
            worst.label,
            worst.max_velocity,
            envelope_apex_height(worst.max_velocity),
            envelope_radius_at_depth(worst.max_velocity, 0.0),
        )

    return SourceExtraction(
        sources=tuple(sources),
        total=len(holes),
        skipped_by_reason={reason: n for reason, n in skipped.items() if n},
    )


# ---------------------------------------------------------------------------
# Final step: surface packaging
# ---------------------------------------------------------------------------
def assemble_surface(
    mesh: Triangulation,
    spec: GridSpec,
    config: FlyrockConfig,
    extraction: SourceExtraction,
    created_at: datetime | None = None,
) -> ShroudSurface:
    """Package a triangulation with provenance metadata.

    Args:
        mesh: Triangulated envelope
        spec: Grid the mesh was built on
        config: Run configuration (recorded as a parameter snapshot)
        extraction: Source extraction counts
        created_at: Creation time; defaults to now (UTC)

    Returns:
        ShroudSurface ready for the rendering/persistence layer
    """
    created_at = created_at or datetime.now(timezone.utc)
    timestamp = created_at.strftime("%Y-%m-%dT%H-%M-%S")
    metadata = ShroudMetadata(
        algorithm=config.algorithm,
        parameters=config.parameter_snapshot(),
        hole_count=len(extraction.sources),
        holes_skipped=extraction.skipped,
        skipped_by_reason={r.value: n for r, n in extraction.skipped_by_reason.items()},
        grid_spacing=spec.spacing,
        grid_cols=spec.cols,
        grid_rows=spec.rows,
        end_angle_deg=config.end_angle_deg,
        triangles_culled_steep=mesh.culled_steep,
        triangles_degenerate=mesh.degenerate,
        created_at=created_at,
    )
    return ShroudSurface(
        id=f"{SURFACE_ID_PREFIX}{timestamp}",
        name=f"Flyrock Shroud ({config.algorithm.value})",
        points=mesh.points,
        triangles=mesh.triangles,
        transparency=config.transparency,
        metadata=metadata,
    )


# ---------------------------------------------------------------------------
# Main Service: generate_shroud
# ---------------------------------------------------------------------------
def generate_shroud(
    holes: Iterable[BlastHole],
    charging: Mapping[str, Sequence[ChargeDeck]],
    config: FlyrockConfig | None = None,
    created_at: datetime | None = None,
) -> ShroudSurface:
    """Generate a flyrock shroud surface for a set of blast holes.

    Args:
        holes: Blast holes (filtered by config.blast_name)
        charging: Charging decks keyed by hole_id; holes without an entry are skipped
        config: Run configuration; defaults to FlyrockConfig()
        created_at: Creation time for the surface id and metadata

    Returns:
        ShroudSurface

    Raises:
        NoInputHolesError: No holes supplied or none in the selected blast
        NoChargingAnywhereError: Every hole lacks charging data
        AllHolesSkippedError: Every hole was skipped for any other mix of reasons
        NoTrianglesError: The envelope produced no triangles

    Example:
        >>> surface = generate_shroud(holes, charging, FlyrockConfig(algorithm="lundborg"))
        >>> print(surface.metadata.grid_dimensions, len(surface.triangles))
    """
    config = config or FlyrockConfig()

    selected = select_holes(holes, config.blast_name)
    if not selected:
        raise NoInputHolesError(
            "No blast holes found"
            + (f" for blast {config.blast_name!r}" if config.blast_name else "")
        )
    logger.info(
        "Generating flyrock shroud for %d hole(s) using %s",
        len(selected),
        config.algorithm.value,
    )

    extraction = compute_sources(selected, charging, config)
    if not extraction.sources:
        reasons = extraction.skipped_by_reason
        error_cls = AllHolesSkippedError
        if set(reasons) == {SkipReason.NO_CHARGING}:
            error_cls = NoChargingAnywhereError
        raise error_cls(extraction.skipped, extraction.total, reasons)

    spec = build_grid_spec(
        extraction.sources,
        config.iterations,
        extend_below_collar=config.extend_below_collar,
        max_cells=config.max_grid_cells,
    )
    grid = evaluate_heightfield(
        extraction.sources, spec, extend_below_collar=config.extend_below_collar
    )
    mesh = triangulate(grid, config.end_angle_deg)
    if not mesh.triangles:
        raise NoTrianglesError(
            f"No triangles generated on {spec.size_label} grid "
            f"({grid.inside_count()} inside nodes)"
        )

    surface = assemble_surface(mesh, spec, config, extraction, created_at)
    logger.info(
        "Flyrock shroud %s: %d points, %d triangles, grid %s (%d hole(s) used, %d skipped)",
        surface.id,
        len(surface.points),
        len(surface.triangles),
        spec.size_label,
        surface.metadata.hole_count,
        surface.metadata.holes_skipped,
    )
    return surface
