"""
Error taxonomy for the Tripboard backend.

Every error carries the HTTP status it maps to and a message that is safe to
return to clients. The API layer renders them as {"error": message}.
"""


class TripboardError(Exception):
    """Base exception for all expected application errors."""
    status_code = 500
    default_message = "Unexpected server error."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(TripboardError):
    """Malformed or missing input."""
    status_code = 400
    default_message = "Request is invalid."


class AuthenticationError(TripboardError):
    """Missing, invalid or expired bearer token."""
    status_code = 401
    default_message = "Invalid or expired access token."


class AuthorizationError(TripboardError):
    """Authenticated but not permitted."""
    status_code = 403
    default_message = "You are not allowed to do that."


class NotFoundError(TripboardError):
    """Referenced entity is absent, soft-deleted or archived."""
    status_code = 404
    default_message = "Not found."


class ConflictError(TripboardError):
    """Unique constraint collision."""
    status_code = 409
    default_message = "Conflicting record already exists."


class JoinCodeCollision(ConflictError):
    """Generated join code is already used by another trip."""
    default_message = "Join code is already in use."


class JoinCodeExhaustedError(TripboardError):
    """Every join code attempt collided."""
    status_code = 500
    default_message = "Unable to generate a unique join code."


class InfrastructureError(TripboardError):
    """Database unreachable or failing."""
    status_code = 500
    default_message = "Database connection failed."
