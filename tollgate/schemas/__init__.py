"""Schemas for the application."""

from .access_grant import AccessGrant, AccessGrantCreate

__all__ = ["AccessGrant", "AccessGrantCreate"]
