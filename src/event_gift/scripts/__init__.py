"""Operational scripts (migrations, scheduled sweeps, admin bootstrap)."""
