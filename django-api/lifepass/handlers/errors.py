"""Mapping of domain errors to HTTP responses.

Registered as the DRF ``EXCEPTION_HANDLER``. Only the error code and the
user-safe message leave the process.
"""

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from lifepass.domain.errors import DomainError, ErrorCode

logger = logging.getLogger(__name__)

STATUS_BY_CODE = {
    ErrorCode.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCode.LINE_INELIGIBLE: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.RESORT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.ORDER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.DEVICE_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.KIOSK_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.DEVICE_UNAVAILABLE: status.HTTP_409_CONFLICT,
    ErrorCode.INVALID_STATE_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorCode.PRICING_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def domain_exception_handler(exc, context):
    if isinstance(exc, DomainError):
        http_status = STATUS_BY_CODE.get(exc.code, status.HTTP_400_BAD_REQUEST)
        logger.info("Request failed with %s", exc)
        return Response({"code": exc.code.value, "message": exc.message}, status=http_status)
    return exception_handler(exc, context)
