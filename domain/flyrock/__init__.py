"""Flyrock Bounded Context.

Responsible for flyrock hazard envelopes around blast holes:
- Value Objects: BlastHole, ChargeDeck, FlyrockConfig, SourcePoint, EnvelopeGrid, ShroudSurface
- Services: ballistic models, generate_shroud (heightfield max-union shroud)
"""
