"""Blast Design Domain Layer.

This package contains the core business logic organized by bounded contexts:
- flyrock: Ballistic flyrock models and hazard envelope (shroud) surfaces
"""

# Imports alphabetized per project style (isort)
from domain import flyrock

__all__ = ["flyrock"]
