import logging

from django.db import IntegrityError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def api_exception_handler(exc, context):
    """DRF exception handler that also maps database uniqueness violations to 409."""
    response = exception_handler(exc, context)
    if response is not None:
        return response

    if isinstance(exc, IntegrityError):
        view = context.get("view")
        logger.warning("Integrity error in %s: %s", view.__class__.__name__ if view else "unknown view", exc)
        return Response(
            {"detail": "A record with the same unique value already exists.", "code": "duplicate"},
            status=status.HTTP_409_CONFLICT,
        )
    return None
