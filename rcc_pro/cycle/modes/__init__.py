"""Cycle solvers, one module per topology. Each exposes ``solve(config, provider)``."""
