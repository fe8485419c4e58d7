"""
Tenant service — resolve which organization a request acts for.

Every other service takes ``organization_id`` as an explicit argument.
This module is the only place that turns "the signed-in user" into an
organization, so routes, the CLI and tests all reach the core through
the same narrow door.
"""

import logging

from app.exceptions import AuthenticationError, AuthorizationError, ProfileNotFoundError
from app.models.user import User, UserProfile

logger = logging.getLogger(__name__)


def resolve_profile(user: User | None) -> UserProfile:
    """
    Return the active organization profile of ``user``.

    Raises:
        AuthenticationError:  If ``user`` is missing or anonymous.
        ProfileNotFoundError: If the user has no active profile.
    """
    if user is None or not getattr(user, "is_authenticated", False):
        raise AuthenticationError("Not authenticated.")

    profile = user.active_profile
    if profile is None:
        logger.info("User %s has no organization profile", user.id)
        raise ProfileNotFoundError("User profile not found.")
    return profile


def resolve_organization_id(user: User | None) -> int:
    """Return the organization ID the user acts for (see ``resolve_profile``)."""
    return resolve_profile(user).organization_id


def require_admin(profile: UserProfile) -> None:
    """
    Raise ``AuthorizationError`` unless the profile has the admin role.
    """
    if not profile.is_admin:
        logger.warning(
            "Admin access denied: user %s has role '%s' in org %s",
            profile.user_id,
            profile.role,
            profile.organization_id,
        )
        raise AuthorizationError("Admin access required.")
