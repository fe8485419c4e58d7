"""
Tests for tenant onboarding, tenant resolution and user membership.
"""

from decimal import Decimal

import pytest

from app.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ProfileNotFoundError,
    ValidationError,
)
from app.models.organization import DEFAULT_SETTINGS
from app.models.user import User, UserProfile
from app.services import organization_service, tenant_service, user_service
from tests.helpers import make_user


class TestCreateOrganization:
    """Tests for organization_service.create_organization()."""

    @pytest.fixture(autouse=True)
    def _setup(self, db_session, admin_user):
        self.session = db_session
        self.user = admin_user

    def test_creator_becomes_admin(self):
        org = organization_service.create_organization(
            self.user.id, "Acme", "Acme.Test", industry="Retail"
        )

        profile = UserProfile.query.filter_by(user_id=self.user.id).one()
        assert profile.organization_id == org.id
        assert profile.role == "admin"
        assert org.domain == "acme.test"
        assert org.settings == DEFAULT_SETTINGS

    def test_sample_departments_seeded(self):
        org = organization_service.create_organization(self.user.id, "Acme", "acme.test")

        departments = organization_service.get_departments(org.id)

        assert [d.name for d in departments] == [
            "Engineering",
            "Marketing",
            "Sales",
            "HR",
            "Finance",
        ]
        assert departments[0].budget == Decimal("50000.00")

    def test_duplicate_domain_conflicts(self):
        organization_service.create_organization(self.user.id, "Acme", "acme.test")
        other = make_user(self.session, email="second@acme.test")

        with pytest.raises(ConflictError):
            organization_service.create_organization(other.id, "Acme 2", "ACME.test")

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError):
            organization_service.create_organization(self.user.id, "  ", "acme.test")

    def test_unknown_user_rejected(self):
        with pytest.raises(NotFoundError):
            organization_service.create_organization(9999, "Acme", "acme.test")


class TestOrganizationSettings:
    """Tests for settings updates and departments."""

    @pytest.fixture(autouse=True)
    def _setup(self, db_session, organization, admin_user, member_user):
        self.session = db_session
        self.org = organization
        self.admin_profile = admin_user.active_profile
        self.member_profile = member_user.active_profile

    def test_admin_merges_settings(self):
        org = organization_service.update_organization_settings(
            self.org.id, self.admin_profile, {"currency": "EUR"}
        )

        assert org.settings["currency"] == "EUR"
        assert org.settings["timezone"] == "UTC"

    def test_non_admin_is_forbidden(self):
        with pytest.raises(AuthorizationError):
            organization_service.update_organization_settings(
                self.org.id, self.member_profile, {"currency": "EUR"}
            )

    def test_unknown_setting_rejected(self):
        with pytest.raises(ValidationError):
            organization_service.update_organization_settings(
                self.org.id, self.admin_profile, {"theme": "dark"}
            )

    def test_create_department(self):
        dept = organization_service.create_department(
            self.org.id, "Legal", budget="12000.50"
        )
        assert dept.budget == Decimal("12000.50")

    def test_negative_budget_rejected(self):
        with pytest.raises(ValidationError):
            organization_service.create_department(self.org.id, "Legal", budget=-1)

    def test_non_numeric_budget_rejected(self):
        with pytest.raises(ValidationError):
            organization_service.create_department(self.org.id, "Legal", budget="lots")

    def test_current_organization_includes_role(self, member_user):
        current = organization_service.get_current_organization(member_user)
        assert current["id"] == self.org.id
        assert current["user_role"] == "user"


class TestTenantResolution:
    """Tests for tenant_service."""

    def test_anonymous_user_is_unauthenticated(self):
        with pytest.raises(AuthenticationError):
            tenant_service.resolve_profile(None)

    def test_user_without_profile(self, db_session):
        user = make_user(db_session, email="loner@nowhere.test")
        with pytest.raises(ProfileNotFoundError):
            tenant_service.resolve_profile(user)

    def test_member_resolves_to_organization(self, organization, member_user):
        assert tenant_service.resolve_organization_id(member_user) == organization.id


class TestUserMembership:
    """Tests for user_service provisioning and profiles."""

    def test_add_profile(self, db_session, organization):
        user = user_service.provision_user("new@acme.test", "New")

        profile = user_service.add_profile(user.id, organization.id, role="manager")

        assert profile.role == "manager"
        assert db_session.get(User, user.id).active_profile.id == profile.id

    def test_second_profile_conflicts(self, organization, member_user):
        with pytest.raises(ConflictError):
            user_service.add_profile(member_user.id, organization.id)

    def test_unknown_role_rejected(self, organization, db_session):
        user = make_user(db_session, email="x@acme.test")
        with pytest.raises(ValidationError):
            user_service.add_profile(user.id, organization.id, role="owner")
