"""Domain Port(s) for Flyrock I/O.

Defines interfaces (Protocols) that infrastructure adapters must implement.
No concrete I/O here.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from .value_objects import BlastHole, ChargeDeck, ShroudSurface


class BlastDataRepository(Protocol):
    """Port for obtaining blast holes and their charging.

    Implementations live in infrastructure (e.g., JSON adapter).
    """

    def load_holes(self) -> list[BlastHole]:
        """Return every blast hole in the source."""
        ...

    def load_charging(self) -> dict[str, list[ChargeDeck]]:
        """Return charging decks keyed by hole_id."""
        ...


class SurfaceRepository(Protocol):
    """Port for persisting a generated shroud surface."""

    def save_surface(self, surface: ShroudSurface) -> Path | None:
        """Store the surface; return its location when file-backed."""
        ...
