from rest_framework.views import exception_handler
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.response import Response
from rest_framework import status
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError
import logging

logger = logging.getLogger(__name__)


class NotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Resource not found'
    default_code = 'not_found'


class InvalidRequest(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid request'
    default_code = 'invalid_request'


class Conflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Request conflicts with the current state'
    default_code = 'conflict'


class UpstreamFailure(APIException):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = 'Payment provider unavailable'
    default_code = 'upstream_failure'


class PaymentDeclined(APIException):
    status_code = status.HTTP_402_PAYMENT_REQUIRED
    default_detail = 'Payment failed'
    default_code = 'payment_declined'

    def __init__(self, reason, detail=None):
        super().__init__(detail)
        self.reason = reason


def _first_message(data):
    """Dig the first human readable message out of DRF error data"""
    if isinstance(data, dict):
        values = data.values()
    elif isinstance(data, (list, tuple)):
        values = data
    else:
        return str(data)
    for value in values:
        message = _first_message(value)
        if message:
            return message
    return ''


def api_exception_handler(exc, context):
    """
    Render every API error as {"error": "<message>"}.

    Validation failures also carry the field errors under "details";
    anything REST framework does not know about becomes a 500.
    """
    if isinstance(exc, DjangoValidationError):
        exc = ValidationError(exc.messages)

    response = exception_handler(exc, context)

    if response is not None:
        if isinstance(exc, ValidationError):
            response.data = {
                'error': _first_message(exc.detail),
                'details': exc.detail,
            }
        else:
            response.data = {'error': _first_message(response.data)}
            if isinstance(exc, PaymentDeclined):
                response.data['reason'] = exc.reason
        if response.status_code >= 500:
            logger.error(f"API error in {context.get('view').__class__.__name__}: {exc}")
        return response

    if isinstance(exc, DatabaseError):
        logger.exception(f"Database error: {exc}")
    else:
        logger.exception(f"Unexpected error: {exc}")
    return Response({
        'error': 'Internal server error',
        'details': str(exc),
    }, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
