from rest_framework.views import exception_handler as drf_exception_handler
from rest_framework.response import Response
from rest_framework import status
import logging

logger = logging.getLogger(__name__)


def _error_body(exc, data):
    """
    Domain errors carry a single detail + code; field validation errors
    keep DRF's per-field dict.
    """
    if isinstance(data, dict):
        body = dict(data)
    else:
        body = {"detail": data}

    codes = exc.get_codes() if hasattr(exc, "get_codes") else None
    if isinstance(codes, str):
        body.setdefault("code", codes)
    return body


PASSTHROUGH_HEADERS = ("WWW-Authenticate", "Retry-After")


def _passthrough_headers(response):
    return {name: response[name] for name in PASSTHROUGH_HEADERS if response.has_header(name)}


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
                "errors": _error_body(exc, response.data),
            },
            status=response.status_code,
            headers=_passthrough_headers(response),
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
