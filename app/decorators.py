"""
Route decorators for tenant resolution and role checks.

They are stacked under Flask-Login's ``@login_required``::

    @bp.route('/settings', methods=['PATCH'])
    @login_required
    @organization_required
    @role_required('admin')
    def update_settings(organization_id, profile):
        ...

``organization_required`` resolves the signed-in user's organization
once and passes it to the view as ``organization_id`` and ``profile``
keyword arguments, so views never look the tenant up themselves.
"""

import logging
from functools import wraps

from flask import request
from flask_login import current_user

from app.exceptions import AuthorizationError
from app.services import tenant_service

logger = logging.getLogger(__name__)


def organization_required(func):
    """
    Inject ``organization_id`` and ``profile`` for the current user.

    Raises AuthenticationError (401) or ProfileNotFoundError (403) via
    the tenant resolver; the app factory renders both as JSON.
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        profile = tenant_service.resolve_profile(current_user)
        kwargs["organization_id"] = profile.organization_id
        kwargs["profile"] = profile
        return func(*args, **kwargs)

    return wrapper


def role_required(*role_names: str):
    """
    Restrict a view to profiles holding one of ``role_names``.

    Must sit below ``organization_required`` so ``profile`` is present.

    Usage::

        @role_required('admin', 'manager')
        def protected_view(organization_id, profile):
            ...
    """

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            profile = kwargs.get("profile")
            if profile is None:
                profile = tenant_service.resolve_profile(current_user)
            if profile.role not in role_names:
                logger.warning(
                    "Access denied: user %s with role '%s' attempted %s %s "
                    "(requires one of: %s)",
                    profile.user_id,
                    profile.role,
                    request.method,
                    request.path,
                    ", ".join(role_names),
                )
                raise AuthorizationError(
                    "You do not have permission to perform this action."
                )
            return func(*args, **kwargs)

        return wrapper

    return decorator
