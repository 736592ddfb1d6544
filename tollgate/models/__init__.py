"""Models for the application."""

from ._base import Base, ReferenceMixin
from .access_grant import AccessGrant

__all__ = ["AccessGrant", "Base", "ReferenceMixin"]
