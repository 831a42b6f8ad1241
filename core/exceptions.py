"""
Error types and the project-wide DRF exception handler.

Every error leaves the API as ``{"success": false, "message": ..., "error": ...}``
with the status code DRF assigned; anything DRF does not know about
becomes a 500.
"""
import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)

PASSTHROUGH_HEADERS = ('WWW-Authenticate', 'Retry-After', 'Allow')


class IntegrationError(Exception):
    """An external service (object storage or SMS) failed."""


class StorageError(IntegrationError):
    pass


class SmsError(IntegrationError):
    pass


def _first_message(detail) -> str:
    if isinstance(detail, dict):
        if 'detail' in detail:
            return str(detail['detail'])
        for field, value in detail.items():
            msg = _first_message(value)
            return msg if field == 'non_field_errors' else f'{field}: {msg}'
        return 'Invalid request'
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else 'Invalid request'
    return str(detail)


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        view = context.get('view')
        logger.exception('unhandled error in %s', getattr(view, '__name__', view), exc_info=exc)
        return Response(
            {'success': False, 'message': 'Internal server error', 'error': str(exc)},
            status=500,
        )
    if resp.status_code >= 500:
        logger.error('server error %s: %s', resp.status_code, resp.data)
    data = resp.data
    return Response(
        {'success': False, 'message': _first_message(data), 'error': data},
        status=resp.status_code,
        headers={h: resp[h] for h in PASSTHROUGH_HEADERS if resp.has_header(h)},
    )
