"""Cycle component models: compressor, valve, economizer, heat exchanger."""
