"""
Custom Exception Classes for CMS Subsites

This module defines custom exceptions for better error handling and
consistent error responses across the application.
"""

from typing import Any

from fastapi import status


class CMSException(Exception):
    """Base exception class for all CMS-related exceptions"""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


# ============================================================================
# Tenant Resolution Exceptions
# ============================================================================


class AmbiguousDomainError(CMSException):
    """Raised when a host matches domains owned by more than one subsite.

    This is a configuration error and is never resolved by picking a match.
    """

    def __init__(self, host: str, domains: list[str]):
        self.host = host
        self.domains = list(domains)
        super().__init__(
            message=f"Multiple subsites match on '{host}': {','.join(self.domains)}",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details={"host": host, "domains": self.domains},
        )


# ============================================================================
# Authorization Exceptions
# ============================================================================


class AuthorizationError(CMSException):
    """Raised when user lacks permission for an action"""

    def __init__(
        self, message: str = "You do not have permission to perform this action", required_permission: str | None = None
    ):
        details = {"required_permission": required_permission} if required_permission else {}
        super().__init__(message=message, status_code=status.HTTP_403_FORBIDDEN, details=details)


# ============================================================================
# Resource Not Found Exceptions
# ============================================================================


class ResourceNotFoundError(CMSException):
    """Base class for resource not found errors"""

    def __init__(self, resource_type: str, resource_id: Any | None = None):
        message = f"{resource_type} not found"
        if resource_id is not None:
            message = f"{resource_type} with id '{resource_id}' not found"
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class TenantNotFoundError(ResourceNotFoundError):
    """Raised when a subsite is not found"""

    def __init__(self, tenant_id: Any | None = None):
        super().__init__(resource_type="Subsite", resource_id=tenant_id)


# ============================================================================
# Validation & Business Logic Exceptions
# ============================================================================


class ValidationError(CMSException):
    """Raised when input validation fails"""

    def __init__(self, message: str, field: str | None = None, details: dict[str, Any] | None = None):
        error_details = details or {}
        if field:
            error_details["field"] = field
        super().__init__(message=message, status_code=status.HTTP_400_BAD_REQUEST, details=error_details)


class InvalidOperationError(CMSException):
    """Raised when an operation is invalid in the current context"""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message=message, status_code=status.HTTP_400_BAD_REQUEST, details=details or {})
