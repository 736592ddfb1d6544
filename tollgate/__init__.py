"""Tollgate: permission registry, grant storage and access checks."""
