from rest_framework.views import exception_handler as drf_exception_handler
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework import status
import logging

logger = logging.getLogger("hackreg")


class HackregError(APIException):
    """Base class for domain errors. Always carries a short human readable reason."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Request could not be completed."
    default_code = "error"


class InvalidInput(HackregError):
    """Bad input shape, rejected before touching the database."""
    default_code = "invalid_input"


class PreconditionFailed(HackregError):
    """A state-machine guard failed or a conditional update matched nothing."""
    default_detail = "This action is not allowed right now."
    default_code = "precondition_failed"


class NotFound(HackregError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found."
    default_code = "not_found"


class ExternalServiceError(HackregError):
    """A synchronous call to an outside system (e.g. the judging platform) failed."""
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "An external service is unavailable, please try again later."
    default_code = "external_service_error"


def custom_exception_handler(exc, context):
    """
    Wrap DRF + Django exceptions into a consistent response format.

    Success responses (2xx) are not touched.
    Only errors come through here.
    """
    response = drf_exception_handler(exc, context)

    # If DRF handled it, wrap it
    if response is not None:
        return Response(
            {
                "success": False,
                "status_code": response.status_code,
                "errors": response.data,
            },
            status=response.status_code,
        )

    # Unhandled exceptions -> 500
    logger.exception("Unhandled API exception", exc_info=exc)

    return Response(
        {
            "success": False,
            "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR,
            "errors": {"detail": "Internal server error."},
        },
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
