"""Packaged reference tables (Daily Values, rounding bands, RACC, rule catalog)."""
