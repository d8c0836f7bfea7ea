"""Tests for flyrock Value Object validation."""

from __future__ import annotations

from datetime import datetime, timezone

import numpy as np
import pytest
from pydantic import ValidationError

from domain.flyrock.value_objects import (
    Algorithm,
    ChargeDeck,
    DeckType,
    EnvelopeGrid,
    FlyrockConfig,
    GridSpec,
    ShroudMetadata,
    ShroudSurface,
    SourcePoint,
    SurfacePoint,
    SurfaceTriangle,
)
from tests.conftest_utils import make_hole


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------
def test_hole_label():
    assert make_hole("12", entity_name="North").label == "North:12"


def test_deck_interval_is_normalized():
    deck = ChargeDeck(deck_type=DeckType.COUPLED, top_depth=9.0, base_depth=4.0)
    assert deck.interval == (4.0, 9.0)


@pytest.mark.parametrize(("density", "expected"), [(None, 1.2), (0.0, 1.2), (0.85, 0.85)])
def test_deck_density_fallback(density, expected):
    deck = ChargeDeck(
        deck_type=DeckType.DECOUPLED, top_depth=0, base_depth=1, effective_density=density
    )
    assert deck.density == expected


def test_deck_type_explosive_flag():
    assert not DeckType.INERT.is_explosive
    assert DeckType.COUPLED.is_explosive
    assert DeckType.DECOUPLED.is_explosive


def test_deck_rejects_unknown_type():
    with pytest.raises(ValidationError):
        ChargeDeck(deck_type="AIR", top_depth=0, base_depth=1)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------
def test_config_defaults():
    config = FlyrockConfig()
    assert config.algorithm is Algorithm.RICHARDS_MOORE
    assert config.K == 20.0
    assert config.factor_of_safety == 2.0
    assert config.stem_eject_angle_deg == 80.0
    assert config.rock_density == 2600.0
    assert config.iterations == 40
    assert config.end_angle_deg == 85.0
    assert config.transparency == 0.5
    assert config.extend_below_collar == 0.0
    assert config.blast_name is None


def test_config_parses_algorithm_name():
    assert FlyrockConfig(algorithm="mckenzie").algorithm is Algorithm.MCKENZIE


@pytest.mark.parametrize(
    ("field", "value"),
    [
        ("algorithm", "chernigovskii"),
        ("K", 4.0),
        ("K", 51.0),
        ("factor_of_safety", 0.5),
        ("stem_eject_angle_deg", 20.0),
        ("rock_density", 5000.0),
        ("iterations", 1),
        ("end_angle_deg", 95.0),
        ("transparency", 1.5),
        ("extend_below_collar", -1.0),
        ("max_grid_cells", 1),
        ("max_grid_cells", 501),
    ],
)
def test_config_rejects_out_of_range(field, value):
    with pytest.raises(ValidationError):
        FlyrockConfig(**{field: value})


def test_config_snapshot_keys():
    snapshot = FlyrockConfig(algorithm="lundborg", K=30).parameter_snapshot()
    assert snapshot["algorithm"] == "lundborg"
    assert snapshot["K"] == 30
    assert set(snapshot) == {
        "algorithm",
        "K",
        "factorOfSafety",
        "stemEjectAngleDeg",
        "rockDensity",
        "iterations",
        "endAngleDeg",
        "transparency",
        "extendBelowCollar",
    }


def test_source_point_requires_positive_envelope():
    with pytest.raises(ValidationError):
        SourcePoint(cx=0, cy=0, cz=0, max_distance=0.0, max_velocity=10.0, label="x")
    with pytest.raises(ValidationError):
        SourcePoint(cx=0, cy=0, cz=0, max_distance=10.0, max_velocity=-1.0, label="x")


# ---------------------------------------------------------------------------
# EnvelopeGrid
# ---------------------------------------------------------------------------
def _spec(rows: int = 2, cols: int = 3) -> GridSpec:
    return GridSpec(
        min_x=0.0,
        min_y=0.0,
        max_x=float(cols - 1),
        max_y=float(rows - 1),
        spacing=1.0,
        cols=cols,
        rows=rows,
        max_padding=1.0,
    )


def test_envelope_grid_is_read_only_copy():
    z = np.zeros((2, 3))
    inside = np.ones((2, 3), dtype=bool)
    grid = EnvelopeGrid(spec=_spec(), z=z, inside=inside)

    z[0, 0] = 99.0
    assert grid.z[0, 0] == 0.0
    with pytest.raises(ValueError):
        grid.z[0, 0] = 1.0
    with pytest.raises(ValueError):
        grid.inside[0, 0] = False


def test_envelope_grid_rejects_shape_mismatch():
    with pytest.raises(ValidationError):
        EnvelopeGrid(spec=_spec(), z=np.zeros((3, 2)), inside=np.ones((2, 3), dtype=bool))


def test_envelope_grid_rejects_non_finite_inside():
    z = np.zeros((2, 3))
    z[1, 1] = np.nan
    with pytest.raises(ValidationError):
        EnvelopeGrid(spec=_spec(), z=z, inside=np.ones((2, 3), dtype=bool))


def test_envelope_grid_inside_count():
    inside = np.array([[True, False, True], [False, False, True]])
    grid = EnvelopeGrid(spec=_spec(), z=np.zeros((2, 3)), inside=inside)
    assert grid.inside_count() == 3


# ---------------------------------------------------------------------------
# ShroudSurface
# ---------------------------------------------------------------------------
def _metadata() -> ShroudMetadata:
    return ShroudMetadata(
        algorithm=Algorithm.LUNDBORG,
        parameters={},
        hole_count=1,
        holes_skipped=0,
        grid_spacing=1.0,
        grid_cols=2,
        grid_rows=2,
        end_angle_deg=85.0,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


def test_surface_rejects_dangling_index():
    points = (SurfacePoint(x=0, y=0, z=0), SurfacePoint(x=1, y=0, z=0))
    with pytest.raises(ValidationError):
        ShroudSurface(
            id="s",
            name="s",
            points=points,
            triangles=(SurfaceTriangle(a=0, b=1, c=2),),
            metadata=_metadata(),
        )


def test_surface_record_uses_point_coordinates():
    points = (
        SurfacePoint(x=0, y=0, z=1),
        SurfacePoint(x=1, y=0, z=2),
        SurfacePoint(x=0, y=1, z=3),
    )
    surface = ShroudSurface(
        id="s",
        name="s",
        points=points,
        triangles=(SurfaceTriangle(a=2, b=0, c=1),),
        metadata=_metadata(),
    )
    record = surface.to_record()
    assert record["triangles"] == [
        {
            "vertices": [
                {"x": 0.0, "y": 1.0, "z": 3.0},
                {"x": 0.0, "y": 0.0, "z": 1.0},
                {"x": 1.0, "y": 0.0, "z": 2.0},
            ]
        }
    ]
    assert record["metadata"]["gridDimensions"] == "2x2"
    assert record["metadata"]["algorithm"] == "lundborg"
