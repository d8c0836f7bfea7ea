"""Flyrock Bounded Context - Ballistic Models.

Pure functions mapping per-hole charge parameters to a maximum horizontal
flyrock distance and an equivalent launch velocity, plus the Chernigovskii
envelope altitude shared by every model.

Models:
    Richards & Moore (2004): empirical face burst / cratering / stem eject
    Lundborg (1981): hole-diameter-only maximum range
    McKenzie (2009/2022): scaled depth of burial (SDoB) range

Every model returns a zero envelope for degenerate input so the caller can
drop the hole.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from typing import TypeVar

import numpy as np
from numpy.typing import NDArray

from domain.flyrock.value_objects import (
    Algorithm,
    HoleBallisticParams,
    LaunchEnvelope,
    LundborgResult,
    McKenzieResult,
    RichardsMooreResult,
)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
GRAVITY = 9.80665  # m/s^2, standard gravity
RM_EXPONENT = 2.6  # Richards & Moore power law exponent
LUNDBORG_COEFF = 260.0
MM_PER_INCH = 25.4
MCKENZIE_RANGE_COEFF = 9.74
MCKENZIE_SDOB_EXPONENT = 2.167
MCKENZIE_KV_COEFF = 0.0728
MCKENZIE_KV_EXPONENT = -3.251
MCKENZIE_LARGE_BORE_MM = 100.0  # Bores at or above use 10 contributing diameters
SIN_EPS = 1e-9

_Distance = TypeVar("_Distance", float, NDArray[np.float64])


def mass_per_metre(hole_diameter_mm: float, inhole_density: float) -> float:
    """Explosive mass per metre of charge column in kg/m.

    Args:
        hole_diameter_mm: Hole diameter in millimetres
        inhole_density: Explosive density in g/cc (numerically kg/L)
    """
    radius_m = (hole_diameter_mm / 2.0) / 1000.0
    return math.pi * radius_m * radius_m * inhole_density * 1000.0


# ---------------------------------------------------------------------------
# Envelope geometry
# ---------------------------------------------------------------------------
def envelope_altitude(distance: _Distance, max_velocity: float) -> _Distance:
    """Chernigovskii envelope altitude above the collar.

        alt = (V^4 - g^2 d^2) / (2 g V^2)

    The value is not clamped: it goes negative beyond the ballistic range,
    which lets callers extend the envelope below collar level. Accepts a
    scalar distance or a numpy array of distances.

    Raises:
        ValueError: If max_velocity is not positive
    """
    if max_velocity <= 0:
        raise ValueError(f"max_velocity must be positive, got {max_velocity}")
    v2 = max_velocity * max_velocity
    return (v2 * v2 - GRAVITY * GRAVITY * distance * distance) / (2.0 * GRAVITY * v2)


def envelope_radius_at_depth(max_velocity: float, depth_below_collar: float) -> float:
    """Horizontal radius where the envelope altitude equals -depth_below_collar.

        d = (V / g) * sqrt(V^2 + 2 g E)

    With depth 0 this is the 45 degree range V^2 / g.
    """
    v = max_velocity
    return (v / GRAVITY) * math.sqrt(v * v + 2.0 * GRAVITY * depth_below_collar)


def envelope_apex_height(max_velocity: float) -> float:
    """Maximum envelope height V^2 / 2g above the collar."""
    return (max_velocity * max_velocity) / (2.0 * GRAVITY)


# ---------------------------------------------------------------------------
# Richards & Moore
# ---------------------------------------------------------------------------
def richards_moore(params: HoleBallisticParams) -> RichardsMooreResult:
    """Richards & Moore (2004) flyrock distances.

        faceBurst = (K^2/g) * (sqrt(m)/burden)^2.6 * FoS
        cratering = (K^2/g) * (sqrt(m)/stemming)^2.6 * FoS
        stemEject = cratering * sin(2 * stemAngle) * FoS

    Launch velocities are back-derived from each distance with the
    projectile range relation R = V^2 sin(2a) / g, using 45 degrees for face
    burst and cratering and the stem eject angle for stem ejection.
    """
    mpm = mass_per_metre(params.hole_diameter_mm, params.inhole_density)
    charge_length = params.bench_height + params.subdrill - params.stemming_length
    if params.stemming_length <= 0 or params.burden <= 0 or mpm <= 0:
        return RichardsMooreResult(mass_per_metre=mpm, charge_length=charge_length)

    fos = params.factor_of_safety
    coeff = (params.K**2) / GRAVITY
    face_burst = coeff * (math.sqrt(mpm) / params.burden) ** RM_EXPONENT * fos
    cratering = coeff * (math.sqrt(mpm) / params.stemming_length) ** RM_EXPONENT * fos
    sin_two_angle = math.sin(2.0 * math.radians(params.stem_eject_angle_deg))
    stem_eject = cratering * sin_two_angle * fos

    velocities = [
        math.sqrt(face_burst * GRAVITY),
        math.sqrt((cratering * GRAVITY) / math.sin(math.radians(2 * 45))),
    ]
    # At a 90 degree stem angle sin(2a) vanishes and stem eject has no range
    if sin_two_angle > SIN_EPS and stem_eject > 0:
        velocities.append(math.sqrt((stem_eject * GRAVITY) / sin_two_angle))

    return RichardsMooreResult(
        max_distance=max(face_burst, cratering, stem_eject),
        max_velocity=max(velocities),
        face_burst=face_burst,
        cratering=cratering,
        stem_eject=stem_eject,
        mass_per_metre=mpm,
        charge_length=charge_length,
    )


# ---------------------------------------------------------------------------
# Lundborg
# ---------------------------------------------------------------------------
def lundborg_range(hole_diameter_mm: float) -> float:
    """Lundborg (1981) maximum range in metres: 260 * d_inches^(2/3)."""
    if hole_diameter_mm <= 0:
        return 0.0
    return LUNDBORG_COEFF * (hole_diameter_mm / MM_PER_INCH) ** (2.0 / 3.0)


def lundborg(params: HoleBallisticParams) -> LundborgResult:
    """Lundborg envelope.

    The factor of safety scales the clearance distance only. Launch velocity
    comes from the unscaled range so the trajectory shape stays physical.
    """
    range_base = lundborg_range(params.hole_diameter_mm)
    if range_base <= 0:
        return LundborgResult()
    return LundborgResult(
        max_distance=range_base * params.factor_of_safety,
        max_velocity=math.sqrt(range_base * GRAVITY),
        range_base=range_base,
    )


# ---------------------------------------------------------------------------
# McKenzie
# ---------------------------------------------------------------------------
def mckenzie(params: HoleBallisticParams) -> McKenzieResult:
    """McKenzie (2009/2022) SDoB-based envelope.

        SDoB = St / Wt_m^(1/3)
        Kv = 0.0728 * SDoB^-3.251
        Rangemax = 9.74 * (d_mm / SDoB^2.167)^(2/3)
        clearance = Rangemax * FoS
        V = sqrt(clearance * g)

    Wt_m is the explosive mass in the first m hole diameters of charge
    (m = 10 for bores of 100 mm and above, 8 below).
    """
    diameter_mm = params.hole_diameter_mm
    diameter_m = diameter_mm / 1000.0
    contributing_diameters = 10 if diameter_mm >= MCKENZIE_LARGE_BORE_MM else 8
    contributing_length = min(params.charge_length, contributing_diameters * diameter_m)

    mpm = mass_per_metre(diameter_mm, params.inhole_density)
    contributing_mass = mpm * contributing_length
    if contributing_mass <= 0:
        return McKenzieResult(mass_per_metre=mpm)

    sdob = params.stemming_length / contributing_mass ** (1.0 / 3.0)
    if sdob <= 0:
        return McKenzieResult(contributing_mass=contributing_mass, mass_per_metre=mpm)

    kv = MCKENZIE_KV_COEFF * sdob**MCKENZIE_KV_EXPONENT
    range_max = MCKENZIE_RANGE_COEFF * (
        diameter_mm / sdob**MCKENZIE_SDOB_EXPONENT
    ) ** (2.0 / 3.0)
    clearance = range_max * params.factor_of_safety

    return McKenzieResult(
        max_distance=clearance,
        max_velocity=math.sqrt(clearance * GRAVITY),
        sdob=sdob,
        kv=kv,
        range_max=range_max,
        clearance=clearance,
        contributing_mass=contributing_mass,
        mass_per_metre=mpm,
    )


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------
BallisticModel = Callable[[HoleBallisticParams], LaunchEnvelope]

MODELS: dict[Algorithm, BallisticModel] = {
    Algorithm.RICHARDS_MOORE: richards_moore,
    Algorithm.LUNDBORG: lundborg,
    Algorithm.MCKENZIE: mckenzie,
}


def model_for(algorithm: Algorithm) -> BallisticModel:
    """Return the ballistic model function for an algorithm."""
    return MODELS[Algorithm(algorithm)]
