"""Base utilities, decorators, and helper functions for the JSON views."""
import json
import logging
from datetime import date as date_cls
from functools import wraps

from django.core.exceptions import PermissionDenied
from django.http import JsonResponse
from django.utils import timezone

from accounts.context import ActingContext

logger = logging.getLogger(__name__)


def json_error(code, message, status=400):
    return JsonResponse({'error': code, 'message': message}, status=status)


def is_school_admin(user):
    """Check if user is a school admin or superuser."""
    return user.is_superuser or getattr(user, 'is_school_admin', False)


def is_teacher_or_admin(user):
    """Check if user is a teacher, school admin, or superuser."""
    return (user.is_superuser or
            getattr(user, 'is_school_admin', False) or
            getattr(user, 'is_teacher', False))


def _guard(check):
    """
    Build a view decorator that authenticates, checks the role and attaches
    the explicit ActingContext as ``request.acting``.
    """
    def decorator(view_func):
        @wraps(view_func)
        def _wrapped_view(request, *args, **kwargs):
            if not request.user.is_authenticated:
                return json_error('not_authenticated', 'Authentication required.', status=401)
            if not check(request.user):
                return json_error('forbidden', "You don't have permission to access this resource.", status=403)
            try:
                request.acting = ActingContext.from_request(request)
            except PermissionDenied as e:
                logger.warning(f"Rejected impersonation by {request.user}: {e}")
                return json_error('forbidden', str(e), status=403)
            return view_func(request, *args, **kwargs)
        return _wrapped_view
    return decorator


admin_required = _guard(is_school_admin)
admin_required.__doc__ = "Require school admin or superuser access."

teacher_or_admin_required = _guard(is_teacher_or_admin)
teacher_or_admin_required.__doc__ = "Require teacher or admin access."


def json_body(request):
    """
    Decode a JSON request body.

    Raises:
        ValueError: the body is not a JSON object
    """
    try:
        data = json.loads(request.body or b'{}')
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ValueError(f'Invalid JSON body: {e}')
    if not isinstance(data, dict):
        raise ValueError('JSON body must be an object.')
    return data


def parse_date(value, default_today=True):
    """
    Parse an ISO date (YYYY-MM-DD).

    Raises:
        ValueError: the value is not a valid date
    """
    if value in (None, ''):
        if default_today:
            return timezone.localdate()
        raise ValueError('A date is required.')
    if isinstance(value, date_cls):
        return value
    return date_cls.fromisoformat(str(value))


def parse_optional_int(value, name):
    if value in (None, ''):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f'{name} must be an integer.')
