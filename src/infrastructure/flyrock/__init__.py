"""Infrastructure adapters for the flyrock bounded context.

This module provides the infrastructure layer implementations for flyrock
operations: reading holes/charging from JSON and writing shroud surfaces.
"""

from .json_adapter import JsonBlastDataAdapter, JsonSurfaceWriter

__all__ = ["JsonBlastDataAdapter", "JsonSurfaceWriter"]
