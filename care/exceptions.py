import logging

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class Conflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Conflict with the current state of the resource.'
    default_code = 'conflict'


def _message(data):
    if isinstance(data, dict):
        return data.get('detail') or data
    if isinstance(data, list) and len(data) == 1:
        return data[0]
    return data


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        view = context.get('view')
        logger.exception("Unhandled error in %s", view.__class__.__name__ if view else '?')
        return Response(
            {'ok': False, 'error': {'code': 'server_error', 'message': 'Internal server error'}},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    code = getattr(exc, 'default_code', None) or 'api_error'
    # keep DRF's headers (WWW-Authenticate, Retry-After)
    resp.data = {'ok': False, 'error': {'code': code, 'message': _message(resp.data)}}
    return resp
