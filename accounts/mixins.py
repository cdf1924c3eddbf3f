from functools import wraps

from django.http import JsonResponse


def role_required(required_roles):
    """
    Decorator to require one of the given role groups on a JSON endpoint.

    Administrators pass every role check. Anonymous users get 401, users
    without a matching role get 403.
    """
    def decorator(view_func):
        @wraps(view_func)
        def _wrapped_view(request, *args, **kwargs):
            user = request.user
            if not user.is_authenticated:
                return JsonResponse(
                    {'error': 'authentication_required', 'message': 'Please log in to continue.'},
                    status=401,
                )
            if not user.is_app_admin:
                user_roles = user.get_role_names()
                if not any(role in user_roles for role in required_roles):
                    return JsonResponse(
                        {'error': 'forbidden', 'message': "You don't have permission to access this resource."},
                        status=403,
                    )
            return view_func(request, *args, **kwargs)
        return _wrapped_view
    return decorator


def api_login_required(view_func):
    """login_required for JSON endpoints: answers 401 instead of redirecting."""
    @wraps(view_func)
    def _wrapped_view(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return JsonResponse(
                {'error': 'authentication_required', 'message': 'Please log in to continue.'},
                status=401,
            )
        return view_func(request, *args, **kwargs)
    return _wrapped_view
