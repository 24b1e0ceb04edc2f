"""
HTTP mapping for domain errors

Installed as DRF's ``EXCEPTION_HANDLER``. Views let domain errors
propagate; this handler turns them into JSON responses with a stable
error code. Failures that touched storage never expose their details.
"""

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from shared.domain.errors import DomainError, ErrorCode

logger = logging.getLogger(__name__)

STATUS_BY_CODE = {
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCode.INVALID_STATE: status.HTTP_400_BAD_REQUEST,
    ErrorCode.GUARD_VIOLATION: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INSUFFICIENT_FUNDS: status.HTTP_400_BAD_REQUEST,
    ErrorCode.VALIDATION_FAILURE: status.HTTP_400_BAD_REQUEST,
    ErrorCode.LEDGER_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.INTERNAL_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

# Context is safe to show for these; the rest only get the message
PUBLIC_CONTEXT_CODES = {ErrorCode.INSUFFICIENT_FUNDS, ErrorCode.CONFLICT}


def domain_error_response(exc: DomainError) -> Response:
    http_status = STATUS_BY_CODE.get(exc.code, status.HTTP_500_INTERNAL_SERVER_ERROR)
    body = {
        'success': False,
        'code': exc.code.value,
        'message': exc.message,
    }
    if exc.code in PUBLIC_CONTEXT_CODES and exc.context:
        body['details'] = exc.context
    return Response(body, status=http_status)


def domain_exception_handler(exc, context):
    """DRF exception handler aware of domain errors"""
    response = exception_handler(exc, context)
    if response is not None:
        return response

    if isinstance(exc, DomainError):
        view = context.get('view')
        log = logger.error if exc.code in (ErrorCode.LEDGER_FAILURE, ErrorCode.INTERNAL_ERROR) else logger.info
        log(f"{view.__class__.__name__ if view else 'view'} returned {exc.code.value}: {exc.message} {exc.context}")
        return domain_error_response(exc)

    return None
