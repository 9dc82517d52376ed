"""Custom exception classes and error handling utilities."""
from typing import Any, Dict, Optional
from fastapi import HTTPException, status
from loguru import logger


class EchoLingoException(Exception):
    """Base exception for the application."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class StoreError(EchoLingoException):
    """JSON store read/write errors."""
    pass


class InvalidRequestError(EchoLingoException):
    """Input that fails a business rule (account format, password length...)."""
    pass


class AuthenticationError(EchoLingoException):
    """Missing, unknown or expired credentials."""
    pass


class PermissionDeniedError(EchoLingoException):
    """Authenticated caller is not allowed to perform the operation."""
    pass


class AccountError(EchoLingoException):
    """Account administration errors."""
    pass


class AccountNotFoundError(AccountError):
    """Raised when an account lookup fails."""
    pass


class AccountExistsError(AccountError):
    """Raised when creating an account that already exists."""
    pass


class ProviderError(EchoLingoException):
    """Outbound provider (news, translation, text-to-speech) failures."""
    pass


class ProviderUnavailableError(ProviderError):
    """Provider is not configured for this deployment."""
    pass


class NewsProviderError(ProviderError):
    """Headline feeds or news APIs failed."""
    pass


class TranslationError(ProviderError):
    """Translation provider failed."""
    pass


class SpeechProviderError(ProviderError):
    """Hosted text-to-speech request failed."""
    pass


class SpeechBackendError(EchoLingoException):
    """A speech backend could not narrate a segment."""
    pass


def handle_invalid_request(error: InvalidRequestError) -> HTTPException:
    """Handle business-rule violations."""
    logger.warning(f"Invalid request: {error.message}")
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=error.message,
    )


def handle_authentication_error(error: AuthenticationError) -> HTTPException:
    """Handle authentication errors."""
    logger.warning(f"Authentication error: {error.message}")
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=error.message,
        headers={"WWW-Authenticate": "Bearer"},
    )


def handle_permission_denied(error: PermissionDeniedError) -> HTTPException:
    """Handle authorization errors."""
    logger.warning(f"Permission denied: {error.message}")
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail=error.message,
    )


def handle_account_not_found(error: AccountNotFoundError) -> HTTPException:
    """Handle missing accounts."""
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=error.message,
    )


def handle_account_exists(error: AccountExistsError) -> HTTPException:
    """Handle duplicate account creation."""
    logger.warning(f"Account conflict: {error.message}")
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=error.message,
    )


def handle_provider_error(error: ProviderError) -> HTTPException:
    """Handle outbound provider errors."""
    if isinstance(error, ProviderUnavailableError):
        logger.warning(f"Provider unavailable: {error.message}")
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=error.message,
        )
    logger.error(f"Provider error: {error.message}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=error.message,
    )


def handle_store_error(error: StoreError) -> HTTPException:
    """Handle store errors and return appropriate HTTP response."""
    logger.error(f"Store error: {error}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Storage operation failed. Please try again later.",
    )
