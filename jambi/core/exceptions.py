from typing import Dict, Optional
from fastapi import status


class ApiError(Exception):
    """Base error for everything the API reports as {"success": false, "error": ...}."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Bad request"

    def __init__(self, message: Optional[str] = None, headers: Optional[Dict[str, str]] = None):
        self.message = message or self.default_message
        self.headers = headers
        super().__init__(self.message)


class Unauthenticated(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Missing or invalid Authorization header"


class InvalidCredential(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid API key"


class MerchantInactive(ApiError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Merchant account not found or inactive"


class ValidationError(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request body"


class NotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class InvalidTransition(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid status transition"


class AlreadyConfirmed(InvalidTransition):
    default_message = "Payment is already confirmed"


class AlreadyRejected(InvalidTransition):
    default_message = "Payment is already rejected"


class RateLimited(ApiError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many requests. Please try again later."


class InternalError(ApiError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"
