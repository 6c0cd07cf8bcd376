"""
Error taxonomy shared by every POS service.

Services raise these exceptions; ``pos_exception_handler`` turns them into
``{"error": ..., "code": ...}`` responses with the matching status code.
"""
import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class POSError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = 'error'
    default_message = 'Request could not be processed'

    def __init__(self, message=None, **extra):
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)

    def as_payload(self):
        payload = {'error': self.message, 'code': self.default_code}
        payload.update(self.extra)
        return payload


class ValidationError(POSError):
    default_code = 'validation_error'
    default_message = 'Invalid request'


class PreconditionError(POSError):
    default_code = 'precondition_failed'
    default_message = 'The system is not in a state that allows this action'


class AuthorizationError(POSError):
    status_code = status.HTTP_403_FORBIDDEN
    default_code = 'not_authorized'
    default_message = 'You are not allowed to perform this action'


class NotFoundError(POSError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = 'not_found'
    default_message = 'Not found'


class ConflictError(POSError):
    status_code = status.HTTP_409_CONFLICT
    default_code = 'conflict'
    default_message = 'Conflicting state'


class DuplicateError(POSError):
    status_code = status.HTTP_409_CONFLICT
    default_code = 'duplicate_request'
    default_message = 'Duplicate request'


class RateLimitError(POSError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_code = 'rate_limited'
    default_message = 'Rate limit exceeded. Please wait before submitting another order.'


class PersistenceError(POSError):
    """A step of a multi-write operation failed. ``step`` names it."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = 'persistence_failed'
    default_message = 'Internal server error'


def pos_exception_handler(exc, context):
    """
    DRF exception handler that renders ``POSError`` subclasses.

    Anything else goes through DRF's default handler.
    """
    if not isinstance(exc, POSError):
        return exception_handler(exc, context)

    request = context.get('request')
    view = context.get('view')
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "%s in %s: %s",
        exc.__class__.__name__,
        view.__class__.__name__ if view else 'unknown view',
        exc.message,
        extra={
            'status_code': exc.status_code,
            'path': getattr(request, 'path', None),
            'method': getattr(request, 'method', None),
        },
    )
    return Response(exc.as_payload(), status=exc.status_code)
