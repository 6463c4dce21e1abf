"""Regulatory computation core: rounding, %DV, RACC and compliance validation."""
