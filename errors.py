"""
Validation errors raised by the booking core.

All of them mean the request was malformed, so none are retried. The API layer
turns them into a 400 response.
"""


class BookingValidationError(ValueError):
    """Base class for request validation failures."""


class InvalidCoordinate(BookingValidationError):
    """Latitude/longitude is missing, non-numeric or outside the valid range."""


class InvalidDistance(BookingValidationError):
    """A distance metric returned a negative or non-finite value."""


class MissingRequiredField(BookingValidationError):
    """A booking request is missing pickup, dropoff or rider coordinate."""

    def __init__(self, fields):
        self.fields = list(fields)
        super().__init__(f"Missing required fields: {', '.join(self.fields)}")
