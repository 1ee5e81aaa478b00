"""Error types for the volunteer alert pipeline.

Each error carries the HTTP status code the entry point answers with.
"""


class VolunteerAlertsError(Exception):
    """Base exception for all volunteer alert errors."""
    status_code = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict[str, object]:
        return {
            "error": self.message,
            "error_type": self.__class__.__name__,
        }


class ValidationError(VolunteerAlertsError):
    """A submitted message failed input validation.

    Attributes:
        field: Name of the offending field (None if not field-specific)
    """
    status_code = 400

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict[str, object]:
        data = super().to_dict()
        if self.field:
            data["field"] = self.field
        return data


class MissingLocation(ValidationError):
    """A help request was submitted without a location."""
    status_code = 422

    def __init__(self, message: str = "Help requests must include a location") -> None:
        super().__init__(message, field="location")


class InvalidRequestLocation(VolunteerAlertsError):
    """The proximity matcher was invoked without a request location."""
    status_code = 500


class DeliveryFailure(VolunteerAlertsError):
    """A notification could not be handed to the delivery channel.

    Never propagates past the dispatcher.
    """
    status_code = 502
