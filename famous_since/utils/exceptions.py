# famous_since/utils/exceptions.py
"""
Central place for all application-specific exceptions.
Makes error handling predictable and testable.
"""
from __future__ import annotations

class FamousSinceError(Exception):
    """Base exception for all app errors. Unclassified failures surface as 500."""
    status_code = 500
    message = "An unexpected error occurred"

    def __init__(self, message: str | None = None, **payload):
        self.message = message or self.message
        super().__init__(self.message)
        self.payload = payload

class AuthorizationError(FamousSinceError):
    status_code = 403
    message = "You do not have permission to perform this action"

class NotFoundError(FamousSinceError):
    status_code = 404
    message = "The requested resource was not found"

class ValidationError(FamousSinceError):
    status_code = 400
    message = "Invalid input"

class PaymentError(FamousSinceError):
    status_code = 402
    message = "Payment failed"

class UploadError(FamousSinceError):
    status_code = 502
    message = "Failed to upload image"

class ForbiddenWordError(ValidationError):
    message = (
        "We're all about positive vibes! Please choose words that inspire and "
        "uplift. Let's keep Famous Since a place for good energy."
    )

class ConflictError(FamousSinceError):
    status_code = 409
    message = "This entry already exists"

class DuplicateProductError(ConflictError):
    message = "A product with this description already exists. Please use a unique description."

class DeploymentBlockedError(ConflictError):
    message = "Cannot deploy site. Requirements not met."
