"""
Errors raised by the refresh pipeline and the country endpoints.

API-facing errors subclass DRF's ``APIException`` so views can simply let them
propagate; ``api_exception_handler`` renders every one of them as
``{"error": ..., "details": ...}``.
"""
import logging

from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class SourceError(Exception):
    """An external data source could not be fetched or parsed."""


class RenderError(Exception):
    """The summary image could not be generated or stored."""


class CountriesAPIException(APIException):
    """Base for errors that carry an optional ``details`` payload."""

    def __init__(self, detail=None, code=None, details=None):
        super().__init__(detail=detail, code=code)
        self.details = details


class SourceUnavailable(CountriesAPIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "External data source unavailable"
    default_code = "source_unavailable"


class PersistenceUnavailable(CountriesAPIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Database unavailable"
    default_code = "persistence_unavailable"


class CountryNotFound(CountriesAPIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Country not found"
    default_code = "not_found"


def api_exception_handler(exc, context):
    """Flatten DRF error bodies into the ``{"error", "details"}`` shape."""
    response = exception_handler(exc, context)
    if response is None:
        # Not an API error; Django's handler500 takes over.
        return None

    if isinstance(exc, ValidationError):
        response.data = {"error": "Validation failed", "details": response.data}
        return response

    body = {"error": str(getattr(exc, "detail", exc))}
    details = getattr(exc, "details", None)
    if details is not None:
        body["details"] = details
    if response.status_code >= 500:
        logger.warning("%s: %s", body["error"], details or "")
    response.data = body
    return response
