import json
import logging
from functools import wraps

from django.http import JsonResponse

from . import exceptions

logger = logging.getLogger(__name__)


def json_body(request) -> dict:
    """Decode a JSON request body, falling back to form data."""
    if request.content_type == "application/json":
        if not request.body:
            return {}
        try:
            data = json.loads(request.body.decode())
        except (UnicodeDecodeError, json.JSONDecodeError):
            raise exceptions.ValidationError("Invalid JSON payload")
        if not isinstance(data, dict):
            raise exceptions.ValidationError("JSON payload must be an object")
        return data
    return request.POST.dict()


def handles_nda_errors(view_func):
    """Translate the NDA error taxonomy into JSON error responses."""
    @wraps(view_func)
    def _wrapped_view(request, *args, **kwargs):
        try:
            return view_func(request, *args, **kwargs)
        except exceptions.NdaError as exc:
            if isinstance(exc, exceptions.ProviderError):
                logger.warning("Provider error on %s: %s", request.path, exc.message)
            return JsonResponse(exc.as_dict(), status=exc.http_status)
    return _wrapped_view
