class BookingError(Exception):
    status_code = 400
    code = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(BookingError):
    status_code = 404
    code = "not_found"


class InvalidState(BookingError):
    status_code = 409
    code = "invalid_state"


class Conflict(BookingError):
    """Seat already held for the dates, or a structural edit would orphan active bookings."""

    status_code = 409
    code = "conflict"


class ValidationError(BookingError):
    status_code = 422
    code = "validation_error"


class UpstreamUnavailable(BookingError):
    """Backing store or an external API failed or timed out; safe to retry."""

    status_code = 503
    code = "upstream_unavailable"


class MaintenanceMode(BookingError):
    status_code = 503
    code = "maintenance_mode"
