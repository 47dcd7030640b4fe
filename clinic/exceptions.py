import logging

from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class ClinicError(APIException):
    """Base class for domain errors; the error code ends up in the response body."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'The request could not be processed.'
    default_code = 'clinic_error'


class NoActionToUndo(ClinicError):
    default_detail = 'No recent action to undo.'
    default_code = 'NO_LOG'


class NoBackupFound(ClinicError):
    default_detail = 'No backup found for the last action.'
    default_code = 'NO_BACKUP'


class UnsupportedUndoAction(ClinicError):
    default_detail = 'This action cannot be undone.'
    default_code = 'UNSUPPORTED_ACTION'


class AlreadyProcessed(ClinicError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'This action has already been redone.'
    default_code = 'ALREADY_PROCESSED'


class ToothAlreadyDisabled(ClinicError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'This tooth is already disabled.'
    default_code = 'TOOTH_ALREADY_DISABLED'


class OrganizationMissing(ClinicError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = 'User is not bound to an organization.'
    default_code = 'NO_ORGANIZATION'


class EmailDeliveryFailed(ClinicError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = 'The email could not be delivered.'
    default_code = 'EMAIL_FAILED'


def _error_code(exc) -> str:
    if isinstance(exc, ClinicError):
        return getattr(exc.detail, 'code', None) or exc.default_code
    if isinstance(exc, Http404):
        return 'not_found'
    if isinstance(exc, APIException):
        return exc.default_code
    return 'api_error'


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception('unhandled error in %s', context.get('view'), exc_info=exc)
        return Response({'ok': False, 'error': {'code': 'server_error', 'message': str(exc)}}, status=500)
    # normalize response
    detail = None
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = resp.data
    return Response(
        {'ok': False, 'error': {'code': _error_code(exc), 'message': detail}},
        status=resp.status_code,
        headers={k: v for k, v in resp.items() if k in ('WWW-Authenticate', 'Retry-After')},
    )
