import logging

from django.db import connection
from django.http import JsonResponse
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def health_check(request):
    """Liveness probe for the hosting platform."""
    try:
        with connection.cursor() as cursor:
            cursor.execute('SELECT 1')
    except Exception:
        logger.exception("Health check database query failed")
        return JsonResponse({'status': 'error', 'database': 'unavailable'}, status=503)

    return JsonResponse({'status': 'ok'})


def _first_message(data):
    """Dig the first human readable message out of DRF error data."""
    if isinstance(data, dict):
        for value in data.values():
            message = _first_message(value)
            if message:
                return message
        return None
    if isinstance(data, (list, tuple)):
        for item in data:
            message = _first_message(item)
            if message:
                return message
        return None
    return str(data) if data else None


def api_exception_handler(exc, context):
    """
    Render DRF errors with the same ``{'error': ...}`` envelope the views use.

    ``{'detail': msg}`` becomes ``{'error': msg}``. Validation errors keep
    their field map and gain an ``error`` summary taken from the first
    message.
    """
    response = exception_handler(exc, context)
    if response is None:
        return None

    data = response.data
    if isinstance(data, dict) and set(data.keys()) == {'detail'}:
        response.data = {'error': str(data['detail'])}
    elif isinstance(data, dict):
        response.data = {'error': _first_message(data) or 'Invalid input', **data}
    elif isinstance(data, list):
        response.data = {'error': ' '.join(str(item) for item in data)}

    return response


def error_404(request, exception):
    """Custom 404 handler."""
    return JsonResponse({
        'error': 'Not found',
        'status': 404
    }, status=404)


def error_500(request):
    """Custom 500 handler."""
    return JsonResponse({
        'error': 'Internal server error',
        'status': 500
    }, status=500)
