"""
Error taxonomy for the chat core and the DRF exception handler that renders it.

Every failure leaves the API as ``{"error": <message>}``. Authorization and
ownership failures all map to 403 so a caller cannot tell a missing
participant from a foreign message.
"""

import logging

from django.db import DatabaseError
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ChatError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Request could not be processed.'
    default_code = 'chat_error'


class NotFound(ChatError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Not found.'
    default_code = 'not_found'


class Forbidden(ChatError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'You do not have permission to perform this action.'
    default_code = 'forbidden'


class ValidationError(ChatError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid input.'
    default_code = 'invalid'


class StoreFailure(ChatError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = 'Server error'
    default_code = 'store_failure'


def _flatten_detail(detail):
    if isinstance(detail, list):
        return ' '.join(_flatten_detail(item) for item in detail)
    if isinstance(detail, dict):
        return ' '.join(f"{key}: {_flatten_detail(value)}" for key, value in detail.items())
    return str(detail)


def chat_exception_handler(exc, context):
    """
    Render API errors as ``{"error": ...}``.

    Database errors that reach the view are logged and surfaced as a 500
    ``StoreFailure``; they are never retried here.
    """
    if isinstance(exc, DatabaseError):
        view = context.get('view')
        logger.error(
            f"Store failure in {view.__class__.__name__ if view else 'unknown view'}: {exc}",
            exc_info=exc,
        )
        exc = StoreFailure()

    response = exception_handler(exc, context)
    if response is None:
        return None

    data = response.data
    if isinstance(data, dict) and 'detail' in data:
        data = data['detail']
    response.data = {'error': _flatten_detail(data)}
    return response
