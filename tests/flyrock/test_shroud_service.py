"""Tests for the shroud generation pipeline.

Covers source extraction with skip accounting, the run-level failures and
the packaged surface with its metadata.
"""

from __future__ import annotations

import logging
import math

import pytest

from domain.flyrock.ballistics import GRAVITY, lundborg_range, model_for
from domain.flyrock.errors import (
    AllHolesSkippedError,
    NoChargingAnywhereError,
    NoInputHolesError,
    NoTrianglesError,
    SkipReason,
)
from domain.flyrock.services import compute_sources, generate_shroud
from domain.flyrock.value_objects import (
    Algorithm,
    FlyrockConfig,
    LaunchEnvelope,
    Triangulation,
)
from tests.conftest_utils import FIXED_CREATED_AT, make_decks, make_hole


# ===========================================================================
# compute_sources
# ===========================================================================
def test_compute_sources_lundborg_envelope():
    config = FlyrockConfig(algorithm=Algorithm.LUNDBORG, factor_of_safety=2.0)
    holes = [make_hole("1", x=10.0, y=20.0, z=95.0)]
    extraction = compute_sources(holes, {"1": make_decks()}, config)

    base = lundborg_range(115.0)
    (source,) = extraction.sources
    assert (source.cx, source.cy, source.cz) == (10.0, 20.0, 95.0)
    assert source.max_distance == pytest.approx(2.0 * base)
    assert source.max_velocity == pytest.approx(math.sqrt(base * GRAVITY))
    assert source.label == "B1:1"
    assert extraction.skipped == 0


def test_compute_sources_keeps_hole_order(charged_pattern, default_config):
    holes, charging = charged_pattern
    extraction = compute_sources(holes, charging, default_config)
    assert [s.label for s in extraction.sources] == ["B1:0", "B1:1", "B1:2"]
    assert extraction.total == 3


def test_compute_sources_counts_skips_by_reason(default_config):
    holes = [make_hole("1"), make_hole("2"), make_hole("3", x=5.0)]
    charging = {"2": make_decks(stemming=0.1), "3": make_decks()}
    extraction = compute_sources(holes, charging, default_config)

    assert len(extraction.sources) == 1
    assert extraction.skipped == 2
    assert extraction.skipped_by_reason == {
        SkipReason.NO_CHARGING: 1,
        SkipReason.DEGENERATE_STEMMING: 1,
    }


def test_compute_sources_zero_envelope_is_counted(monkeypatch, charged_pattern, default_config):
    holes, charging = charged_pattern
    monkeypatch.setattr(
        "domain.flyrock.services.model_for", lambda algorithm: lambda params: LaunchEnvelope()
    )
    extraction = compute_sources(holes, charging, default_config)
    assert extraction.sources == ()
    assert extraction.skipped_by_reason == {SkipReason.ZERO_ENVELOPE: 3}


def test_compute_sources_resolves_model_once(monkeypatch, charged_pattern, default_config):
    holes, charging = charged_pattern
    resolved = []

    def counting_model_for(algorithm):
        resolved.append(algorithm)
        return model_for(algorithm)

    monkeypatch.setattr("domain.flyrock.services.model_for", counting_model_for)
    extraction = compute_sources(holes, charging, default_config)

    assert len(extraction.sources) == 3
    assert resolved == [Algorithm.RICHARDS_MOORE]


def test_compute_sources_logs_missing_charging_summary(caplog, default_config):
    holes = [make_hole("1"), make_hole("2")]
    with caplog.at_level(logging.WARNING, logger="domain.flyrock.services"):
        compute_sources(holes, {"1": make_decks()}, default_config)
    assert "skipped 1 of 2 hole(s) with no charging data" in caplog.text


# ===========================================================================
# generate_shroud failures
# ===========================================================================
def test_generate_shroud_no_holes():
    with pytest.raises(NoInputHolesError):
        generate_shroud([], {})


def test_generate_shroud_unknown_blast(charged_pattern):
    holes, charging = charged_pattern
    with pytest.raises(NoInputHolesError, match="'B9'"):
        generate_shroud(holes, charging, FlyrockConfig(blast_name="B9"))


def test_generate_shroud_no_charging_anywhere(charged_pattern):
    holes, _ = charged_pattern
    with pytest.raises(NoChargingAnywhereError) as exc_info:
        generate_shroud(holes, {})

    error = exc_info.value
    assert error.skipped == 3
    assert error.total == 3
    assert error.code == "NO_CHARGING"
    assert error.reasons == {SkipReason.NO_CHARGING: 3}


def test_generate_shroud_mixed_skips_are_not_no_charging():
    holes = [make_hole("1"), make_hole("2")]
    charging = {"2": make_decks(stemming=0.2)}
    with pytest.raises(AllHolesSkippedError) as exc_info:
        generate_shroud(holes, charging)

    assert not isinstance(exc_info.value, NoChargingAnywhereError)
    assert exc_info.value.code == "NO_USABLE_HOLES"
    assert "degenerateStemming=1" in str(exc_info.value)
    assert "noCharging=1" in str(exc_info.value)


def test_generate_shroud_empty_mesh_raises(monkeypatch, charged_pattern):
    holes, charging = charged_pattern
    monkeypatch.setattr(
        "domain.flyrock.services.triangulate",
        lambda grid, end_angle_deg: Triangulation(points=(), triangles=()),
    )
    with pytest.raises(NoTrianglesError):
        generate_shroud(holes, charging)


# ===========================================================================
# generate_shroud surface
# ===========================================================================
def test_generate_shroud_surface_and_metadata(charged_pattern):
    holes, charging = charged_pattern
    config = FlyrockConfig(transparency=0.3)
    surface = generate_shroud(holes, charging, config, created_at=FIXED_CREATED_AT)

    assert surface.id == "flyrock_shroud_2024-05-01T08-30-00"
    assert surface.name == "Flyrock Shroud (richardsMoore)"
    assert surface.type == "triangulated"
    assert surface.is_flyrock_shroud
    assert surface.transparency == 0.3
    assert surface.points
    assert surface.triangles

    meta = surface.metadata
    assert meta.algorithm is Algorithm.RICHARDS_MOORE
    assert meta.hole_count == 3
    assert meta.holes_skipped == 0
    assert meta.skipped_by_reason == {}
    assert meta.end_angle_deg == 85.0
    assert meta.parameters["K"] == 20.0
    assert meta.parameters["factorOfSafety"] == 2.0
    assert meta.created_at == FIXED_CREATED_AT


def test_generate_shroud_records_skips(charged_pattern):
    holes, charging = charged_pattern
    charging = dict(charging)
    charging["1"] = make_decks(stemming=0.1)
    surface = generate_shroud(holes, charging, created_at=FIXED_CREATED_AT)

    assert surface.metadata.hole_count == 2
    assert surface.metadata.holes_skipped == 1
    assert surface.metadata.skipped_by_reason == {"degenerateStemming": 1}


def test_generate_shroud_blast_filter():
    holes = [
        make_hole("1", entity_name="A"),
        make_hole("2", x=500.0, entity_name="B"),
    ]
    charging = {"1": make_decks(), "2": make_decks()}
    surface = generate_shroud(
        holes, charging, FlyrockConfig(blast_name="A"), created_at=FIXED_CREATED_AT
    )
    assert surface.metadata.hole_count == 1
    assert max(p.x for p in surface.points) < 500.0


def test_generate_shroud_points_lie_under_apex(charged_pattern):
    holes, charging = charged_pattern
    surface = generate_shroud(holes, charging, created_at=FIXED_CREATED_AT)
    extraction = compute_sources(holes, charging, FlyrockConfig())
    top = max(s.cz + s.max_velocity**2 / (2 * GRAVITY) for s in extraction.sources)
    assert max(p.z for p in surface.points) <= top + 1e-9
    assert min(p.z for p in surface.points) >= 100.0 - 1e-9


@pytest.mark.parametrize("algorithm", list(Algorithm))
def test_generate_shroud_every_algorithm(algorithm, charged_pattern):
    holes, charging = charged_pattern
    surface = generate_shroud(
        holes, charging, FlyrockConfig(algorithm=algorithm), created_at=FIXED_CREATED_AT
    )
    assert surface.metadata.algorithm is algorithm
    assert surface.name == f"Flyrock Shroud ({algorithm.value})"
    assert surface.triangles


def test_generate_shroud_is_deterministic(charged_pattern):
    holes, charging = charged_pattern
    first = generate_shroud(holes, charging, created_at=FIXED_CREATED_AT)
    second = generate_shroud(holes, charging, created_at=FIXED_CREATED_AT)
    assert first.to_record() == second.to_record()


def test_surface_record_expands_triangles(charged_pattern):
    holes, charging = charged_pattern
    record = generate_shroud(holes, charging, created_at=FIXED_CREATED_AT).to_record()

    assert record["isFlyrockShroud"] is True
    assert record["metadata"]["createdAt"] == "2024-05-01T08:30:00+00:00"
    assert record["metadata"]["gridDimensions"].count("x") == 1
    first = record["triangles"][0]["vertices"]
    assert len(first) == 3
    assert all(set(v) == {"x", "y", "z"} for v in first)
