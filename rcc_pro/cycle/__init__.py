"""Refrigeration cycle analysis for RCC Pro.

Provides component models (compressor, expansion valve, economizers,
suction-line heat exchanger), the shared efficiency models, one solver per
cycle topology, and the ``calculate`` orchestrator in ``solver``.
"""
