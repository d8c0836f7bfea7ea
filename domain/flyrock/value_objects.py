"""Flyrock Bounded Context - Value Objects.

Immutable data structures for blast holes, explosive charging, ballistic
launch parameters, the envelope heightfield and the produced shroud surface.
All validation occurs at construction time via Pydantic.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict, Field, model_validator

# ---------------------------------------------------------------------------
# Numeric Constants
# ---------------------------------------------------------------------------
DEFAULT_HOLE_DIAMETER_MM = 115.0  # Used when a hole has no usable diameter
DEFAULT_DECK_DENSITY_GCC = 1.2  # Used when a deck has no effective density
ALL_BLASTS = "__ALL__"  # blast_name sentinel selecting every hole
MAX_GRID_CELLS = 500  # Per-side ceiling on envelope grid nodes


class DeckType(str, Enum):
    """Charging deck classification."""

    INERT = "INERT"
    COUPLED = "COUPLED"
    DECOUPLED = "DECOUPLED"

    @property
    def is_explosive(self) -> bool:
        return self in (DeckType.COUPLED, DeckType.DECOUPLED)


class Algorithm(str, Enum):
    """Flyrock range model, selected once per run."""

    RICHARDS_MOORE = "richardsMoore"
    LUNDBORG = "lundborg"
    MCKENZIE = "mckenzie"


# ---------------------------------------------------------------------------
# Input records
# ---------------------------------------------------------------------------
class BlastHole(BaseModel):
    """Blast hole collar and design geometry (Value Object).

    Geometry fields are optional because partially specified designs are
    common; the extractor substitutes domain defaults for missing values.
    """

    hole_id: str
    entity_name: str = ""  # Blast pattern the hole belongs to
    x: float
    y: float
    z: float = 0.0
    diameter: float | None = None  # mm
    burden: float | None = None  # m
    bench_height: float | None = None  # m
    subdrill_amount: float | None = None  # m

    model_config = ConfigDict(frozen=True)

    @property
    def label(self) -> str:
        return f"{self.entity_name}:{self.hole_id}"


class ChargeDeck(BaseModel):
    """One charging interval along a hole (Value Object).

    Depths are measured from the collar. They may be given in either order;
    use `interval` for the normalized (top, base) pair.
    """

    deck_type: DeckType
    top_depth: float
    base_depth: float
    effective_density: float | None = None  # g/cc

    model_config = ConfigDict(frozen=True)

    @property
    def interval(self) -> tuple[float, float]:
        return (
            min(self.top_depth, self.base_depth),
            max(self.top_depth, self.base_depth),
        )

    @property
    def density(self) -> float:
        """Effective density in g/cc, falling back to a bulk emulsion value."""
        if self.effective_density:
            return self.effective_density
        return DEFAULT_DECK_DENSITY_GCC


class FlyrockConfig(BaseModel):
    """Algorithm parameters for one shroud generation run (Value Object).

    Ranges mirror what the parameter dialog accepts.
    """

    algorithm: Algorithm = Algorithm.RICHARDS_MOORE
    K: float = Field(default=20.0, ge=5, le=50)  # Flyrock constant
    factor_of_safety: float = Field(default=2.0, ge=1, le=5)
    stem_eject_angle_deg: float = Field(default=80.0, ge=30, le=90)
    rock_density: float = Field(default=2600.0, ge=1500, le=4000)  # kg/m3
    iterations: int = Field(default=40, ge=2)  # Grid cells across largest envelope
    end_angle_deg: float = Field(default=85.0, ge=0, le=90)  # From horizontal
    transparency: float = Field(default=0.5, ge=0, le=1)
    extend_below_collar: float = Field(default=0.0, ge=0, le=500)  # m
    blast_name: str | None = None  # None or ALL_BLASTS selects every hole
    min_stemming_m: float = Field(default=0.5, gt=0)
    max_grid_cells: int = Field(default=MAX_GRID_CELLS, ge=2, le=MAX_GRID_CELLS)

    model_config = ConfigDict(frozen=True)

    def parameter_snapshot(self) -> dict[str, Any]:
        """Return the user-facing parameters recorded with the surface."""
        return {
            "algorithm": self.algorithm.value,
            "K": self.K,
            "factorOfSafety": self.factor_of_safety,
            "stemEjectAngleDeg": self.stem_eject_angle_deg,
            "rockDensity": self.rock_density,
            "iterations": self.iterations,
            "endAngleDeg": self.end_angle_deg,
            "transparency": self.transparency,
            "extendBelowCollar": self.extend_below_collar,
        }


# ---------------------------------------------------------------------------
# Ballistic parameters and results
# ---------------------------------------------------------------------------
class HoleBallisticParams(BaseModel):
    """Per-hole scalar bundle consumed by the ballistic models (Value Object)."""

    hole_diameter_mm: float = Field(gt=0)
    stemming_length: float = Field(ge=0)  # Depth to first explosive interval
    charge_length: float = Field(ge=0)  # Span of explosive intervals
    burden: float = Field(gt=0)
    subdrill: float = Field(gt=0)
    bench_height: float = Field(gt=0)
    inhole_density: float = Field(gt=0)  # g/cc, volume-weighted
    rock_density: float = Field(gt=0)  # kg/m3
    K: float
    factor_of_safety: float
    stem_eject_angle_deg: float

    model_config = ConfigDict(frozen=True)


class LaunchEnvelope(BaseModel):
    """Maximum horizontal distance and equivalent launch velocity."""

    max_distance: float = 0.0  # m
    max_velocity: float = 0.0  # m/s

    model_config = ConfigDict(frozen=True)

    @property
    def is_zero(self) -> bool:
        return not (self.max_distance > 0 and self.max_velocity > 0)


class RichardsMooreResult(LaunchEnvelope):
    """Richards & Moore envelope with the three mechanism distances."""

    face_burst: float = 0.0
    cratering: float = 0.0
    stem_eject: float = 0.0
    mass_per_metre: float = 0.0  # kg/m
    charge_length: float = 0.0  # bench + subdrill - stemming


class LundborgResult(LaunchEnvelope):
    """Lundborg envelope; range_base is the unscaled range."""

    range_base: float = 0.0


class McKenzieResult(LaunchEnvelope):
    """McKenzie envelope with scaled depth of burial detail."""

    sdob: float = 0.0
    kv: float = 0.0  # Velocity coefficient
    range_max: float = 0.0
    clearance: float = 0.0
    contributing_mass: float = 0.0  # kg
    mass_per_metre: float = 0.0  # kg/m


class SourcePoint(BaseModel):
    """Ballistic envelope for one hole, centred on its collar.

    Invariants:
        max_distance > 0 and max_velocity > 0
    """

    cx: float
    cy: float
    cz: float
    max_distance: float = Field(gt=0)
    max_velocity: float = Field(gt=0)
    label: str

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Envelope grid
# ---------------------------------------------------------------------------
class GridSpec(BaseModel):
    """Regular lattice placement over the padded hole bounds."""

    min_x: float
    min_y: float
    max_x: float
    max_y: float
    spacing: float = Field(gt=0)
    cols: int = Field(ge=1)
    rows: int = Field(ge=1)
    max_padding: float = Field(ge=0)

    model_config = ConfigDict(frozen=True)

    @property
    def size_label(self) -> str:
        return f"{self.cols}x{self.rows}"

    def node_xy(self, row: int, col: int) -> tuple[float, float]:
        return (self.min_x + col * self.spacing, self.min_y + row * self.spacing)


class EnvelopeGrid(BaseModel):
    """Max-union heightfield over a GridSpec (Value Object).

    Both arrays are row-major (rows x cols) and made read-only at
    construction. `z` holds absolute elevations and is 0 wherever
    `inside` is False.
    """

    spec: GridSpec
    z: NDArray[np.float64]
    inside: NDArray[np.bool_]

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @model_validator(mode="after")
    def validate_grid(self) -> "EnvelopeGrid":
        expected = (self.spec.rows, self.spec.cols)
        if self.z.shape != expected:
            raise ValueError(f"z must have shape {expected}, got {self.z.shape}")
        if self.inside.shape != expected:
            raise ValueError(
                f"inside must have shape {expected}, got {self.inside.shape}"
            )

        # Owned, frozen copies so the grid never aliases caller arrays
        z = np.array(self.z, dtype=np.float64, copy=True, order="C")
        inside = np.array(self.inside, dtype=np.bool_, copy=True, order="C")
        if not np.all(np.isfinite(z[inside])):
            raise ValueError("Inside nodes must have finite elevations")
        z.flags.writeable = False
        inside.flags.writeable = False
        object.__setattr__(self, "z", z)
        object.__setattr__(self, "inside", inside)
        return self

    def inside_count(self) -> int:
        return int(np.count_nonzero(self.inside))


# ---------------------------------------------------------------------------
# Shroud surface
# ---------------------------------------------------------------------------
class SurfacePoint(BaseModel):
    x: float
    y: float
    z: float

    model_config = ConfigDict(frozen=True)

    def as_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "z": self.z}


class SurfaceTriangle(BaseModel):
    """Triangle as three indices into the surface point list."""

    a: int = Field(ge=0)
    b: int = Field(ge=0)
    c: int = Field(ge=0)

    model_config = ConfigDict(frozen=True)

    @property
    def indices(self) -> tuple[int, int, int]:
        return (self.a, self.b, self.c)


class ShroudMetadata(BaseModel):
    """Provenance recorded with a generated shroud."""

    algorithm: Algorithm
    parameters: dict[str, Any]
    hole_count: int = Field(ge=0)
    holes_skipped: int = Field(ge=0)
    skipped_by_reason: dict[str, int] = Field(default_factory=dict)
    grid_spacing: float = Field(gt=0)
    grid_cols: int = Field(ge=1)
    grid_rows: int = Field(ge=1)
    end_angle_deg: float
    triangles_culled_steep: int = Field(default=0, ge=0)
    triangles_degenerate: int = Field(default=0, ge=0)
    created_at: datetime

    model_config = ConfigDict(frozen=True)

    @property
    def grid_dimensions(self) -> str:
        return f"{self.grid_cols}x{self.grid_rows}"


class ShroudSurface(BaseModel):
    """Triangulated flyrock shroud handed to the rendering/persistence layer.

    Invariants:
        Every triangle index refers to an existing point.
    """

    id: str
    name: str
    type: str = "triangulated"
    points: tuple[SurfacePoint, ...]
    triangles: tuple[SurfaceTriangle, ...]
    visible: bool = True
    gradient: str = "default"
    transparency: float = Field(default=0.5, ge=0, le=1)
    is_flyrock_shroud: bool = True
    metadata: ShroudMetadata

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_indices(self) -> "ShroudSurface":
        n_points = len(self.points)
        for tri in self.triangles:
            if max(tri.indices) >= n_points:
                raise ValueError(
                    f"Triangle {tri.indices} references missing point (n={n_points})"
                )
        return self

    def to_record(self) -> dict[str, Any]:
        """Return the plain mapping consumed by surface storage.

        Triangles are expanded to their vertex coordinates.
        """
        points = [p.as_dict() for p in self.points]
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "points": points,
            "triangles": [
                {"vertices": [points[i] for i in tri.indices]}
                for tri in self.triangles
            ],
            "visible": self.visible,
            "gradient": self.gradient,
            "transparency": self.transparency,
            "isFlyrockShroud": self.is_flyrock_shroud,
            "metadata": {
                "algorithm": self.metadata.algorithm.value,
                "parameters": dict(self.metadata.parameters),
                "holeCount": self.metadata.hole_count,
                "holesSkipped": self.metadata.holes_skipped,
                "skippedByReason": dict(self.metadata.skipped_by_reason),
                "gridSpacing": self.metadata.grid_spacing,
                "gridDimensions": self.metadata.grid_dimensions,
                "endAngleDeg": self.metadata.end_angle_deg,
                "trianglesCulledSteep": self.metadata.triangles_culled_steep,
                "trianglesDegenerate": self.metadata.triangles_degenerate,
                "createdAt": self.metadata.created_at.isoformat(),
            },
        }


class Triangulation(BaseModel):
    """Mesh produced from an EnvelopeGrid, before surface packaging.

    Points are ordered by first reference; a point may be left unreferenced
    when every triangle using it was culled.
    """

    points: tuple[SurfacePoint, ...]
    triangles: tuple[SurfaceTriangle, ...]
    culled_steep: int = Field(default=0, ge=0)
    degenerate: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)
