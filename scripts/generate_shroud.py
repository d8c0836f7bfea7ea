#!/usr/bin/env python3
"""Generate a flyrock shroud surface from a JSON blast document.

Usage:
    PYTHONPATH=src:. python scripts/generate_shroud.py blast.json
    PYTHONPATH=src:. python scripts/generate_shroud.py blast.json \\
        --config flyrock.json --algorithm mckenzie --fos 2.5 --output surfaces/

The optional --config file holds FlyrockConfig fields as JSON; command-line
flags override it.

Exit codes:
    0  Surface written
    1  Generation failed (no usable holes, no triangles)
    2  Invalid input file or configuration
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from domain.flyrock.errors import (
    AllHolesSkippedError,
    FlyrockError,
    InvalidBlastDataError,
)
from domain.flyrock.repositories import BlastDataRepository, SurfaceRepository
from domain.flyrock.services import generate_shroud
from domain.flyrock.value_objects import Algorithm, FlyrockConfig
from infrastructure.flyrock import JsonBlastDataAdapter, JsonSurfaceWriter

logger = logging.getLogger("generate_shroud")

# Command-line flag -> FlyrockConfig field
FLAG_FIELDS = {
    "algorithm": "algorithm",
    "k": "K",
    "fos": "factor_of_safety",
    "stem_angle": "stem_eject_angle_deg",
    "rock_density": "rock_density",
    "iterations": "iterations",
    "end_angle": "end_angle_deg",
    "transparency": "transparency",
    "extend_below_collar": "extend_below_collar",
    "blast": "blast_name",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate a flyrock shroud surface from blast holes and charging."
    )
    parser.add_argument("blast", type=Path, help="JSON blast document")
    parser.add_argument("--config", type=Path, help="JSON FlyrockConfig file")
    parser.add_argument(
        "--output", type=Path, default=Path("."), help="Output directory"
    )
    parser.add_argument(
        "--algorithm", choices=[a.value for a in Algorithm], help="Flyrock model"
    )
    parser.add_argument("--k", type=float, help="Flyrock constant K")
    parser.add_argument("--fos", type=float, help="Factor of safety")
    parser.add_argument("--stem-angle", type=float, help="Stem eject angle (deg)")
    parser.add_argument("--rock-density", type=float, help="Rock density (kg/m3)")
    parser.add_argument("--iterations", type=int, help="Grid resolution factor")
    parser.add_argument(
        "--end-angle", type=float, help="Face angle culling threshold (deg)"
    )
    parser.add_argument("--transparency", type=float, help="Surface transparency")
    parser.add_argument(
        "--extend-below-collar", type=float, help="Envelope extension below collar (m)"
    )
    parser.add_argument("--blast", help='Blast pattern name (default: "__ALL__")')
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def load_config(args: argparse.Namespace) -> FlyrockConfig:
    """Build FlyrockConfig from the optional file plus flag overrides.

    Raises:
        ValidationError: If the merged configuration is invalid
        OSError: If the config file cannot be read
    """
    values: dict[str, Any] = {}
    if args.config is not None:
        base = FlyrockConfig.model_validate_json(args.config.read_text(encoding="utf-8"))
        values = base.model_dump()
    for flag, field_name in FLAG_FIELDS.items():
        value = getattr(args, flag)
        if value is not None:
            values[field_name] = value
    return FlyrockConfig.model_validate(values)


def main(argv: list[str] | None = None) -> int:
    """Generate and write one shroud surface.

    Returns:
        Process exit code
    """
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(args)
        source: BlastDataRepository = JsonBlastDataAdapter(args.blast)
        holes = source.load_holes()
        charging = source.load_charging()
    except (ValidationError, InvalidBlastDataError, OSError) as e:
        logger.error("%s", e)
        return 2

    try:
        surface = generate_shroud(holes, charging, config)
    except AllHolesSkippedError as e:
        logger.error("%s (%s)", e, e.code)
        return 1
    except FlyrockError as e:
        logger.error("%s", e)
        return 1

    writer: SurfaceRepository = JsonSurfaceWriter(args.output)
    path = writer.save_surface(surface)
    print(
        f"{surface.name}: {len(surface.points)} points, "
        f"{len(surface.triangles)} triangles, grid {surface.metadata.grid_dimensions}, "
        f"{surface.metadata.hole_count} hole(s) used, "
        f"{surface.metadata.holes_skipped} skipped -> {path}"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
