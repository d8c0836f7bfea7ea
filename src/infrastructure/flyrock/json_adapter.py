"""JSON adapters for the flyrock repositories.

Blast document layout::

    {
        "holes": [{"hole_id": "1", "entity_name": "B1", "x": 0, "y": 0, ...}],
        "charging": {"1": [{"deck_type": "COUPLED", "top_depth": 3, ...}]}
    }

Holes and decks are validated into domain Value Objects on load. Surfaces
are written as `<surface id>.json` containing ShroudSurface.to_record().
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter, ValidationError

from domain.flyrock.errors import InvalidBlastDataError
from domain.flyrock.value_objects import BlastHole, ChargeDeck, ShroudSurface

# Module-level logger (reused across all calls)
logger = logging.getLogger(__name__)

_HOLES = TypeAdapter(list[BlastHole])
_CHARGING = TypeAdapter(dict[str, list[ChargeDeck]])


class JsonBlastDataAdapter:
    """Infrastructure adapter reading holes and charging from one JSON file.

    The document is read and validated once, on first access.
    """

    def __init__(self, file_path: Path | str) -> None:
        self.path = Path(file_path)
        self._loaded: tuple[list[BlastHole], dict[str, list[ChargeDeck]]] | None = None

    def load_holes(self) -> list[BlastHole]:
        holes, _ = self._document()
        return list(holes)

    def load_charging(self) -> dict[str, list[ChargeDeck]]:
        _, charging = self._document()
        return {hole_id: list(decks) for hole_id, decks in charging.items()}

    def _document(self) -> tuple[list[BlastHole], dict[str, list[ChargeDeck]]]:
        if self._loaded is None:
            self._loaded = self._load()
        return self._loaded

    def _read_document(self) -> dict[str, Any]:
        path = self.path
        if not path.exists():
            raise FileNotFoundError(str(path))
        if path.suffix.lower() != ".json":
            raise InvalidBlastDataError(f"Unsupported file extension: {path.suffix}")

        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            # Log only the file name, not the full path
            logger.error(
                "Failed to read %s (errno=%s, strerror=%s)",
                path.name,
                getattr(e, "errno", "unknown"),
                getattr(e, "strerror", "unknown"),
            )
            raise

        if not text.strip():
            raise InvalidBlastDataError("Empty file")
        try:
            document = json.loads(text)
        except json.JSONDecodeError as e:
            raise InvalidBlastDataError(f"Malformed JSON: {e}") from e
        if not isinstance(document, dict):
            raise InvalidBlastDataError("Blast document must be a JSON object")
        return document

    def _load(self) -> tuple[list[BlastHole], dict[str, list[ChargeDeck]]]:
        document = self._read_document()
        try:
            holes = _HOLES.validate_python(document.get("holes", []))
            charging = _CHARGING.validate_python(document.get("charging", {}))
        except ValidationError as e:
            raise InvalidBlastDataError(f"Invalid blast data: {e}") from e

        unknown = set(charging) - {hole.hole_id for hole in holes}
        if unknown:
            logger.warning(
                "Blast %s: charging for %d unknown hole(s) ignored",
                self.path.name,
                len(unknown),
            )
        logger.debug(
            "Blast %s: loaded %d hole(s), %d charged",
            self.path.name,
            len(holes),
            len(charging) - len(unknown),
        )
        return holes, charging


class JsonSurfaceWriter:
    """Infrastructure adapter writing shroud surfaces as JSON files."""

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)

    def save_surface(self, surface: ShroudSurface) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / f"{surface.id}.json"
        path.write_text(json.dumps(surface.to_record(), indent=2), encoding="utf-8")
        logger.info(
            "Surface %s: wrote %d points, %d triangles to %s",
            surface.id,
            len(surface.points),
            len(surface.triangles),
            path.name,
        )
        return path
