class BookingError(Exception):
    """Base class for errors raised by the booking core.

    ``status_code`` is the HTTP status the API layer answers with.
    """

    status_code = 400

    def __init__(self, message: str | None = None):
        super().__init__(message or self.__class__.__doc__)


class InvalidBookingRequest(BookingError):
    """The booking request is invalid."""


class VehicleNotFound(BookingError):
    """Vehicle not found."""

    status_code = 404


class VehicleUnavailable(BookingError):
    """Vehicle is not available for booking."""

    status_code = 409


class BookingNotFound(BookingError):
    """Booking not found."""

    status_code = 404


class InvalidBookingState(BookingError):
    """The booking cannot make this transition from its current state."""

    status_code = 409


class BookingAlreadyPaid(InvalidBookingState):
    """This booking has already been paid."""


# ---------------- GATEWAY ----------------
class GatewayError(BookingError):
    """The payment gateway request failed."""

    status_code = 502


class InvalidGatewayCredentials(GatewayError):
    """Payment gateway credentials are missing or invalid."""

    status_code = 500


class InvalidSession(GatewayError):
    """Checkout session not found."""

    status_code = 404


class WebhookSignatureError(GatewayError):
    """Webhook signature verification failed."""

    status_code = 400


class InvalidWebhookEvent(GatewayError):
    """Webhook event is missing required data."""

    status_code = 400
