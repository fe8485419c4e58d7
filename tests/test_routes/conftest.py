"""
Fixtures for request tests.

No application context stays pushed while these tests run, so every
client request gets its own context (and its own ``g``) the way it
would under a real server.  Rows are built inside short-lived contexts
and handed back detached, with their columns already loaded.
"""

import pytest

from app.extensions import db
from app.models.user import UserProfile
from app.services import organization_service
from tests.helpers import make_user


def _loaded(row):
    """Reload ``row`` so its columns stay readable after the context closes."""
    db.session.refresh(row)
    return row


@pytest.fixture(scope="function")
def admin_user(app):
    """A user who created the ``acme.test`` organization (admin role)."""
    with app.app_context():
        return _loaded(make_user(db.session))


@pytest.fixture(scope="function")
def organization(app, admin_user):  # pylint: disable=redefined-outer-name
    """The ``acme.test`` organization with the five sample departments."""
    with app.app_context():
        return _loaded(
            organization_service.create_organization(
                user_id=admin_user.id, name="Acme", domain="acme.test"
            )
        )


@pytest.fixture(scope="function")
def departments(app, organization):  # pylint: disable=redefined-outer-name
    """The organization's departments keyed by name."""
    with app.app_context():
        return {
            dept.name: dept
            for dept in organization_service.get_departments(organization.id)
        }


@pytest.fixture(scope="function")
def member_user(app, organization):  # pylint: disable=redefined-outer-name
    """A plain ``user``-role member of the organization."""
    with app.app_context():
        user = make_user(db.session, email="member@acme.test", first_name="Max")
        db.session.add(
            UserProfile(user_id=user.id, organization_id=organization.id, role="user")
        )
        db.session.commit()
        return _loaded(user)
