"""Flyrock Bounded Context - Error Hierarchy.

Per-hole errors (HoleSkippedError subclasses) are absorbed by the shroud
pipeline and reflected in summary counts. The remaining errors are fatal to
a generation run and surface to the caller.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum


class SkipReason(str, Enum):
    """Why a hole contributed no envelope."""

    NO_CHARGING = "noCharging"
    DEGENERATE_STEMMING = "degenerateStemming"
    ZERO_ENVELOPE = "zeroEnvelope"


class FlyrockError(Exception):
    """Base error for flyrock shroud operations."""


# ---------------------------------------------------------------------------
# Per-hole skips (non-fatal)
# ---------------------------------------------------------------------------
class HoleSkippedError(FlyrockError):
    """A hole cannot contribute a ballistic envelope.

    Attributes:
        hole_id: Label of the skipped hole
        reason: Machine-readable SkipReason
    """

    reason: SkipReason

    def __init__(self, hole_id: str, detail: str = "") -> None:
        self.hole_id = hole_id
        message = f"Hole {hole_id} skipped ({self.reason.value})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class NoChargingDataError(HoleSkippedError):
    """Hole has no charging decks, or none containing explosive."""

    reason = SkipReason.NO_CHARGING


class DegenerateStemmingError(HoleSkippedError):
    """Stemming is below the minimum for the empirical models.

    Unstemmed and presplit holes carry explosive to the collar; the
    cratering law divides by stemming^2.6 and does not apply to them.
    """

    reason = SkipReason.DEGENERATE_STEMMING

    def __init__(self, hole_id: str, stemming: float, minimum: float) -> None:
        self.stemming = stemming
        self.minimum = minimum
        super().__init__(hole_id, f"stemming {stemming:.2f}m < {minimum}m")


class ZeroEnvelopeError(HoleSkippedError):
    """Ballistic model returned a zero distance or velocity."""

    reason = SkipReason.ZERO_ENVELOPE


# ---------------------------------------------------------------------------
# Run-level failures (fatal)
# ---------------------------------------------------------------------------
class NoInputHolesError(FlyrockError):
    """No blast holes were supplied, or none matched the blast selection."""


class AllHolesSkippedError(FlyrockError):
    """Every hole was skipped; no envelope sources remain.

    Attributes:
        skipped: Number of skipped holes
        total: Number of holes considered
        reasons: Skip count per SkipReason
        code: "NO_USABLE_HOLES" (see NoChargingAnywhereError)
    """

    code = "NO_USABLE_HOLES"

    def __init__(
        self, skipped: int, total: int, reasons: Mapping[SkipReason, int]
    ) -> None:
        self.skipped = skipped
        self.total = total
        self.reasons = dict(reasons)
        ordered = sorted(self.reasons.items(), key=lambda item: item[0].value)
        breakdown = ", ".join(f"{r.value}={n}" for r, n in ordered)
        super().__init__(f"All {skipped} of {total} hole(s) skipped [{breakdown}]")


class NoChargingAnywhereError(AllHolesSkippedError):
    """Every hole was skipped for lack of charging data.

    Callers should prompt for explosive products to be assigned rather
    than report a computation failure.
    """

    code = "NO_CHARGING"


class NoTrianglesError(FlyrockError):
    """Triangulation produced no triangles (envelope too small or too steep)."""


# ---------------------------------------------------------------------------
# Input data errors (raised by infrastructure adapters)
# ---------------------------------------------------------------------------
class InvalidBlastDataError(FlyrockError):
    """Blast data file is unreadable, empty, or not a valid blast document."""
