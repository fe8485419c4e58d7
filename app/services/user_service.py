"""
User service — local user records behind Entra ID sign-in.

Authentication is handled by Entra ID; this service keeps the matching
``User`` rows and their organization memberships.
"""

import logging

from app.exceptions import ConflictError, NotFoundError, ValidationError
from app.extensions import db
from app.models.user import PROFILE_ROLES, User, UserProfile
from app.services import audit_service
from app.utils import utcnow

logger = logging.getLogger(__name__)


# -- User lookup -----------------------------------------------------------


def get_user_by_id(user_id: int) -> User | None:
    """Return a user by primary key, or None if not found."""
    return db.session.get(User, user_id)


def get_user_by_email(email: str) -> User | None:
    """Return a user by email address (case-insensitive)."""
    return User.query.filter(User.email.ilike(email)).first()


def get_user_by_entra_id(entra_object_id: str) -> User | None:
    """Return a user by their Entra ID (Azure AD) object ID."""
    return User.query.filter_by(entra_object_id=entra_object_id).first()


# -- User creation ---------------------------------------------------------


def provision_user(
    email: str,
    first_name: str,
    last_name: str = "",
    entra_object_id: str | None = None,
) -> User:
    """
    Create a user with no organization membership.

    The user can sign in straight away; tenant routes answer 403 until
    they create or join an organization.
    """
    user = User(
        email=email,
        first_name=first_name,
        last_name=last_name,
        entra_object_id=entra_object_id,
        is_active=True,
    )
    db.session.add(user)
    db.session.flush()

    audit_service.log_change(
        user_id=None,
        action_type="CREATE",
        entity_type="user",
        entity_id=user.id,
        new_value={"email": email, "entra_object_id": entra_object_id},
    )
    db.session.commit()

    logger.info("Provisioned user %s", email)
    return user


def add_profile(
    user_id: int,
    organization_id: int,
    role: str = "user",
    department: str | None = None,
    changed_by: int | None = None,
) -> UserProfile:
    """
    Add a user to an organization.

    Raises:
        ValidationError: For an unknown role.
        NotFoundError:   If the user does not exist.
        ConflictError:   If the user already has an active profile.
    """
    if role not in PROFILE_ROLES:
        raise ValidationError(
            f"Invalid role '{role}'. Valid options: {', '.join(PROFILE_ROLES)}"
        )
    user = get_user_by_id(user_id)
    if user is None:
        raise NotFoundError(f"User ID {user_id} not found.")
    if user.active_profile is not None:
        raise ConflictError("User already belongs to an organization.")

    profile = UserProfile(
        user_id=user_id,
        organization_id=organization_id,
        role=role,
        department=department,
        is_active=True,
    )
    db.session.add(profile)
    db.session.flush()

    audit_service.log_change(
        user_id=changed_by,
        action_type="CREATE",
        entity_type="user_profile",
        entity_id=profile.id,
        new_value={"user_id": user_id, "role": role, "department": department},
        organization_id=organization_id,
    )
    db.session.commit()
    return profile


def record_login(user: User) -> None:
    """
    Update the user's last_login timestamp and record first_login_at
    on their first sign-in.
    """
    now = utcnow()
    if user.first_login_at is None:
        user.first_login_at = now
    user.last_login = now
    db.session.commit()
