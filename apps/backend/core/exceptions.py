import logging

from django.core.exceptions import ObjectDoesNotExist, ValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def _validation_payload(exc: ValidationError):
    if hasattr(exc, "error_dict"):
        return exc.message_dict
    return {"detail": exc.messages}


def api_exception_handler(exc, context):
    """DRF exception handler that also maps Django model-layer errors.

    Service functions raise ``django.core.exceptions.ValidationError`` for
    rejected input and ``DoesNotExist`` for ids outside the caller's
    organization; both are translated here instead of surfacing as 500s.
    """
    if isinstance(exc, ValidationError):
        return Response(_validation_payload(exc), status=status.HTTP_400_BAD_REQUEST)
    if isinstance(exc, ObjectDoesNotExist):
        logger.info("Lookup failed in %s: %s", context.get("view").__class__.__name__, exc)
        return Response({"detail": "Not found."}, status=status.HTTP_404_NOT_FOUND)
    return exception_handler(exc, context)
