"""
Error types raised by the queue engine and its HTTP layer.

Every error carries the HTTP status it maps to; the DRF exception handler
turns ``to_dict()`` into the response body.
"""

from django.utils.translation import gettext_lazy as _
from rest_framework import status


class APIException(Exception):
    """Root of the waitly error hierarchy."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = _("Something went wrong while handling the queue request.")

    def __init__(self, message=None, errors=None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)

    def to_dict(self):
        body = {
            "code": type(self).__name__,
            "message": str(self.message),
            "status_code": self.status_code,
        }
        if self.errors:
            body["errors"] = self.errors
        return body


class InvalidDataException(APIException):
    """Unknown category, unknown action or a booked slot already past its grace."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = _("The queue request contains invalid values.")


class InvalidOperationException(APIException):
    """The ticket or counter is not in a state that allows the operation."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = _("The ticket is not in a state that allows this operation.")


class ResourceNotFoundException(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = _("No such place, counter or ticket.")


class PermissionDeniedException(APIException):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = _("This ticket belongs to another user.")


class ConcurrencyConflictException(APIException):
    """A conditional update lost a race, or the counter lock was busy.

    The Next-Ticket Selector raises this when the ticket it picked changed
    between selection and promotion. Callers retry the whole selection once.
    """

    status_code = status.HTTP_409_CONFLICT
    default_message = _("The queue was modified concurrently. Please try again.")
