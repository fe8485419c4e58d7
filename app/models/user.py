"""
Authentication and membership models.

Authentication is handled by Entra ID (OAuth2/OIDC); no passwords are
stored.  ``User`` is the signed-in identity, ``UserProfile`` is that
identity's membership in one organization.

User = who you are.  Profile = which tenant you act for, and as what.
"""

from flask_login import UserMixin

from app.extensions import db
from app.utils import utcnow

# Profile roles, most privileged first.
PROFILE_ROLES = ("admin", "manager", "user")


class User(UserMixin, db.Model):
    """
    Application user authenticated via Entra ID.

    Auto-created on first OAuth login.  A user without an active
    profile can sign in but cannot reach any tenant data until they
    create or join an organization.

    Inherits from ``UserMixin`` to satisfy Flask-Login
    (``is_authenticated``, ``is_active``, ``get_id``).
    """

    __tablename__ = "user"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    entra_object_id = db.Column(db.String(100), nullable=True, unique=True)
    email = db.Column(db.String(200), unique=True, nullable=False)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False, default="")
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    first_login_at = db.Column(db.DateTime, nullable=True)
    last_login = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    # -- Relationships -----------------------------------------------------
    profiles = db.relationship("UserProfile", back_populates="user", lazy="joined")

    # ---- Convenience properties ------------------------------------------

    @property
    def full_name(self) -> str:
        """Return the user's full display name."""
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def active_profile(self) -> "UserProfile | None":
        """
        Return the user's first active organization profile, if any.

        A user belongs to at most one organization in practice; the
        first active profile wins if data ever says otherwise.
        """
        for profile in self.profiles:
            if profile.is_active:
                return profile
        return None

    def has_role(self, *role_names: str) -> bool:
        """Check if the user's active profile has any of the given roles."""
        profile = self.active_profile
        return profile is not None and profile.role in role_names

    def to_dict(self) -> dict:
        profile = self.active_profile
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "organization_id": profile.organization_id if profile else None,
            "role": profile.role if profile else None,
        }

    def __repr__(self) -> str:
        return f"<User {self.email}>"


class UserProfile(db.Model):
    """
    Membership of a user in an organization.

    ``role`` values: ``admin``, ``manager``, ``user``.  Only admins may
    change organization settings.  ``department`` is a free-text label
    shown on the dashboard, not a foreign key.
    """

    __tablename__ = "user_profile"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("user.id"), nullable=False, index=True
    )
    organization_id = db.Column(
        db.Integer, db.ForeignKey("organization.id"), nullable=False, index=True
    )
    role = db.Column(db.String(20), nullable=False, default="user")
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    department = db.Column(db.String(200), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    # -- Relationships -----------------------------------------------------
    user = db.relationship("User", back_populates="profiles")
    organization = db.relationship("Organization", back_populates="profiles")

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def __repr__(self) -> str:
        return (
            f"<UserProfile user={self.user_id} "
            f"org={self.organization_id} role={self.role}>"
        )
