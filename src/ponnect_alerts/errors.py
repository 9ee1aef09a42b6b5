class PonnectAlertsError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500
    public_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.public_message)
        self.message = message or self.public_message


class ValidationError(PonnectAlertsError):
    status_code = 400
    public_message = "Invalid request"


class AuthenticationError(PonnectAlertsError):
    status_code = 401
    public_message = "Not authenticated"


class AuthorizationError(PonnectAlertsError):
    status_code = 403
    public_message = "Admin access required"


class NotFoundError(PonnectAlertsError):
    status_code = 404
    public_message = "Alert not found"


class StoreFailure(PonnectAlertsError):
    """Persistence layer failed; the cause is logged, never returned."""

    status_code = 500
    public_message = "Failed to access alert store"


class AggregationError(PonnectAlertsError):
    status_code = 500
    public_message = "Failed to fetch alerts"
