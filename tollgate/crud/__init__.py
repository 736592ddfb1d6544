"""CRUD singletons."""

from .crud_access_grant import access_grant

__all__ = ["access_grant"]
