# api/v1/utils.py
import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from utils.exceptions import TrainingOpsError

logger = logging.getLogger(__name__)


def custom_exception_handler(exc, context):
    """
    Wrap DRF's default exception handler so that
    * TrainingOpsError subclasses render with their own status code
    * every error payload carries its HTTP status code
    """
    if isinstance(exc, TrainingOpsError):
        data = {"detail": str(exc.message), "status_code": exc.status_code}
        if exc.detail is not None:
            data["errors"] = exc.detail
        if exc.status_code >= 500:
            logger.error(f"{exc.__class__.__name__}: {exc.message}", extra={"view": context.get("view")})
        else:
            logger.warning(f"{exc.__class__.__name__}: {exc.message}")
        return Response(data, status=exc.status_code)

    response = drf_exception_handler(exc, context)

    if response is not None and isinstance(response.data, dict):
        response.data["status_code"] = response.status_code

    if response is None:
        logger.exception("Unhandled API exception", exc_info=exc, extra={"view": context.get("view")})

    return response
