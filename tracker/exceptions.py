import logging

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class StateConflict(APIException):
    """The target is not in a state that allows the requested transition."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Operation not allowed in the current state.'
    default_code = 'state_conflict'


def _first_message(detail) -> str:
    """Flatten DRF error detail into one human readable line."""
    if isinstance(detail, dict):
        if 'detail' in detail:
            return _first_message(detail['detail'])
        for field, value in detail.items():
            msg = _first_message(value)
            if field == 'non_field_errors':
                return msg
            return f"{field}: {msg}"
        return ''
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else ''
    return str(detail)


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception('Unhandled API error: %s', exc)
        return Response({'success': False, 'error': 'Server Error'}, status=500)
    message = _first_message(resp.data)
    if resp.status_code >= 500:
        logger.error('API error %s: %s', resp.status_code, message)
    # keep headers such as WWW-Authenticate set by DRF
    resp.data = {'success': False, 'error': message}
    return resp
