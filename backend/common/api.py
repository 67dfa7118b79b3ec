"""REST framework integration of the panel error hierarchy."""
from __future__ import annotations

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from .exceptions import (
    AccountNotFound,
    ConfigurationError,
    HistoryError,
    InvalidTransition,
    MeterAlreadyLinked,
    OperationNotAllowed,
    PanelError,
    ReadFailure,
)

logger = logging.getLogger(__name__)

# First match wins
STATUS_BY_ERROR = (
    (AccountNotFound, status.HTTP_404_NOT_FOUND),
    (InvalidTransition, status.HTTP_409_CONFLICT),
    (OperationNotAllowed, status.HTTP_409_CONFLICT),
    (MeterAlreadyLinked, status.HTTP_409_CONFLICT),
    (HistoryError, status.HTTP_409_CONFLICT),
    (ReadFailure, status.HTTP_503_SERVICE_UNAVAILABLE),
    (ConfigurationError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def status_for(exc: PanelError) -> int:
    for error_class, code in STATUS_BY_ERROR:
        if isinstance(exc, error_class):
            return code
    return status.HTTP_400_BAD_REQUEST


def panel_exception_handler(exc, context):
    """DRF exception handler that also renders PanelError subclasses."""
    response = exception_handler(exc, context)
    if response is not None or not isinstance(exc, PanelError):
        return response

    code = status_for(exc)
    view = context.get("view")
    logger.warning(f"{view.__class__.__name__ if view else 'API'}: {exc.__class__.__name__}: {exc}")
    return Response({"error": str(exc), "type": exc.__class__.__name__}, status=code)
