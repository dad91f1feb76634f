"""Custom exception classes for the application."""
from typing import Any, Dict, Optional
from fastapi import status


class MedAidException(Exception):
    """Base exception class for the MedAid claims application."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize exception.

        Args:
            message: Error message
            status_code: HTTP status code
            details: Additional error details
        """
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class DuplicateResourceException(MedAidException):
    """Exception raised when trying to create a duplicate resource."""

    def __init__(self, resource_type: str, identifier: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize duplicate resource exception.

        Args:
            resource_type: Type of resource (e.g., "Provider", "Claim")
            identifier: Unique identifier that already exists
            details: Additional error details
        """
        message = f"{resource_type} with identifier '{identifier}' already exists"
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            details=details or {"resource_type": resource_type, "identifier": identifier},
        )


class ResourceNotFoundException(MedAidException):
    """Exception raised when a requested resource is not found."""

    def __init__(self, resource_type: str, identifier: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize resource not found exception.

        Args:
            resource_type: Type of resource (e.g., "Provider", "Claim")
            identifier: Identifier that was not found
            details: Additional error details
        """
        message = f"{resource_type} with identifier '{identifier}' not found"
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details=details or {"resource_type": resource_type, "identifier": identifier},
        )


class ValidationException(MedAidException):
    """Exception raised when input validation fails."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        error_details = details or {}
        if field:
            error_details["field"] = field

        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=error_details,
        )


class InvalidStateTransitionException(MedAidException):
    """Exception raised when a claim status change violates the lifecycle."""

    def __init__(self, current_status: str, target_status: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize invalid state transition exception.

        Args:
            current_status: Status the claim is in
            target_status: Status that was requested
            details: Additional error details
        """
        message = f"Cannot move claim from {current_status} to {target_status}"
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            details=details or {"current_status": current_status, "target_status": target_status},
        )


class ConcurrencyConflictException(MedAidException):
    """Exception raised when a claim was modified since it was read."""

    def __init__(
        self,
        claim_number: str,
        expected_version: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {"claim_number": claim_number}
        if expected_version is not None:
            error_details["expected_version"] = expected_version

        super().__init__(
            message=f"Claim '{claim_number}' was modified concurrently. Reload and retry.",
            status_code=status.HTTP_409_CONFLICT,
            details=error_details,
        )


class WebhookAuthenticationException(MedAidException):
    """Exception raised when a provider webhook cannot be authenticated."""

    def __init__(self, message: str = "Invalid webhook signature", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            details=details,
        )


class ExternalServiceException(MedAidException):
    """Exception raised when an external service call fails."""

    def __init__(
        self,
        message: str,
        service_name: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize external service exception.

        Args:
            message: External service error message
            service_name: Name of external service
            details: Additional error details
        """
        error_details = details or {}
        if service_name:
            error_details["service_name"] = service_name

        super().__init__(
            message=message,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details=error_details,
        )


class ProviderUnavailableException(ExternalServiceException):
    """Raised when a medical aid provider stays unreachable after retries."""

    def __init__(self, provider_code: str, attempts: int, last_error: str):
        """
        Initialize provider unavailable exception.

        Args:
            provider_code: Code of the provider that failed
            attempts: Number of attempts made
            last_error: Description of the final failure
        """
        self.provider_code = provider_code
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            message=f"Provider {provider_code} unavailable after {attempts} attempt(s): {last_error}",
            service_name=f"provider:{provider_code}",
            details={"attempts": attempts},
        )
