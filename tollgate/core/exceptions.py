"""Shared exceptions module."""

from typing import Optional


class TollgateException(Exception):
    """Base exception for Tollgate services."""

    pass

    """Raised when an actor lacks the permission needed for an action."""
class PermissionException(TollgateException):
    """Exception raised when an actor does not have the necessary permissions to perform an action."""

    def __init__(
        self,
        message: Optional[str] = "Actor does not have the right to perform this action",
    ):
        """Create a new PermissionException instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


class NotFoundException(TollgateException):
    """Exception raised when an object is not found."""

    def __init__(self, message: Optional[str] = "Object not found"):
        """Create a new NotFoundException instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


class ImmutableFieldError(TollgateException):
    """Exception raised for attempts to modify immutable fields in a database model."""

    def __init__(self, field_name: str, message: str = "Cannot modify immutable field"):
        """Create a new ImmutableFieldError instance.

        Args:
        ----
            field_name (str): The name of the immutable field.
            message (str, optional): The error message. Has default message.

        """
        self.field_name = field_name
        self.message = message
        super().__init__(f"{message}: {field_name}")


class ConfigurationError(TollgateException):
    """Raised at startup when wiring or static configuration is invalid."""

    pass
