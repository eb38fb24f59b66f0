"""Operational entry points (database migrations)."""
