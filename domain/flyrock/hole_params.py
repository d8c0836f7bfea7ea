"""Flyrock Bounded Context - Hole Parameter Extraction.

Derives HoleBallisticParams from a hole's geometry and its charging decks.
Charging is mandatory: it provides stemming, charge column and explosive
density. Holes that cannot be parameterized raise a HoleSkippedError
subclass, which the shroud pipeline counts rather than propagates.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence

from domain.flyrock.errors import DegenerateStemmingError, NoChargingDataError
from domain.flyrock.value_objects import (
    ALL_BLASTS,
    DEFAULT_HOLE_DIAMETER_MM,
    BlastHole,
    ChargeDeck,
    FlyrockConfig,
    HoleBallisticParams,
)

# ---------------------------------------------------------------------------
# Geometry defaults
# ---------------------------------------------------------------------------
# Placeholder geometry (e.g. burden = 1, the hole editor default) must not
# reach the ballistic formulas; values at or below the floor are replaced.
MIN_BURDEN_M = 1.5
MIN_BENCH_HEIGHT_M = 1.0
MIN_SUBDRILL_M = 0.0
DEFAULT_BURDEN_M = 4.5
DEFAULT_BENCH_HEIGHT_M = 12.0
DEFAULT_SUBDRILL_M = 1.5


def _value_or_default(value: float | None, floor: float, default: float) -> float:
    if value is not None and value > floor:
        return float(value)
    return default


def select_holes(holes: Iterable[BlastHole], blast_name: str | None) -> list[BlastHole]:
    """Filter holes to one blast pattern.

    Args:
        holes: Candidate holes
        blast_name: Pattern (entity) name; None or "__ALL__" keeps every hole

    Returns:
        Holes in input order
    """
    if blast_name is None or blast_name == ALL_BLASTS:
        return list(holes)
    return [hole for hole in holes if hole.entity_name == blast_name]


def extract_hole_params(
    hole: BlastHole,
    decks: Sequence[ChargeDeck] | None,
    config: FlyrockConfig,
) -> HoleBallisticParams:
    """Build the ballistic parameter bundle for one hole.

    Stemming is the depth of the shallowest explosive deck, charge length
    the span down to the deepest explosive deck base, and in-hole density
    the volume-weighted mean over explosive decks.

    Args:
        hole: Hole geometry
        decks: Charging decks for the hole (None or empty if uncharged)
        config: Run configuration (rock density, K, FoS, stem angle, minimum stemming)

    Returns:
        HoleBallisticParams

    Raises:
        NoChargingDataError: No decks, or no coupled/decoupled explosive deck
        DegenerateStemmingError: Stemming below config.min_stemming_m
    """
    if not decks:
        raise NoChargingDataError(hole.label, "no charging decks")

    diameter_mm = _value_or_default(hole.diameter, 0.0, DEFAULT_HOLE_DIAMETER_MM)
    radius_m = (diameter_mm / 1000.0) / 2.0
    hole_area = math.pi * radius_m * radius_m  # m^2

    top_explosive: float | None = None
    bottom_explosive = 0.0
    total_volume = 0.0
    density_weighted = 0.0

    for deck in decks:
        if not deck.deck_type.is_explosive:
            continue
        top, base = deck.interval
        if top_explosive is None or top < top_explosive:
            top_explosive = top
        bottom_explosive = max(bottom_explosive, base)

        volume = hole_area * (base - top)
        total_volume += volume
        density_weighted += volume * deck.density

    if top_explosive is None or total_volume <= 0:
        raise NoChargingDataError(hole.label, "no explosive decks")

    stemming = top_explosive
    if stemming < config.min_stemming_m:
        raise DegenerateStemmingError(hole.label, stemming, config.min_stemming_m)

    return HoleBallisticParams(
        hole_diameter_mm=diameter_mm,
        stemming_length=stemming,
        charge_length=bottom_explosive - top_explosive,
        burden=_value_or_default(hole.burden, MIN_BURDEN_M, DEFAULT_BURDEN_M),
        subdrill=_value_or_default(
            hole.subdrill_amount, MIN_SUBDRILL_M, DEFAULT_SUBDRILL_M
        ),
        bench_height=_value_or_default(
            hole.bench_height, MIN_BENCH_HEIGHT_M, DEFAULT_BENCH_HEIGHT_M
        ),
        inhole_density=density_weighted / total_volume,
        rock_density=config.rock_density,
        K=config.K,
        factor_of_safety=config.factor_of_safety,
        stem_eject_angle_deg=config.stem_eject_angle_deg,
    )
