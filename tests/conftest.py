"""
Pytest configuration and shared fixtures.

Provides a test application, database session, and test clients that
all test modules can use.  The ``testing`` configuration points at an
in-memory SQLite database, so every test builds and drops its own
schema and no external server is needed.

Service tests run inside the application context pushed by
``db_session``.  Request tests override the data fixtures in
``tests/test_routes/conftest.py`` so that no context is pushed while a
client request runs.
"""

import pytest
from flask_login import FlaskLoginClient

from app import create_app
from app.extensions import db as _db
from app.models.user import UserProfile
from app.services import organization_service
from tests.helpers import make_user


@pytest.fixture(scope="function")
def app():
    """
    Create a Flask application configured for testing.

    The schema is created before and dropped after the test, each in a
    short application context; none stays pushed in between.
    """
    app = create_app("testing")
    app.test_client_class = FlaskLoginClient

    with app.app_context():
        _db.create_all()

    yield app

    with app.app_context():
        _db.drop_all()


@pytest.fixture(scope="function")
def db_session(app):  # pylint: disable=redefined-outer-name
    """Push an application context for the test and yield its session."""
    with app.app_context():
        yield _db.session


@pytest.fixture(scope="function")
def client(app):  # pylint: disable=redefined-outer-name
    """
    Provide an anonymous Flask test client.

    Usage in tests::

        def test_health(client):
            response = client.get("/health")
            assert response.status_code == 200
    """
    return app.test_client()


@pytest.fixture(scope="function")
def admin_user(db_session):  # pylint: disable=redefined-outer-name
    """A user who created the ``acme.test`` organization (admin role)."""
    return make_user(db_session)


@pytest.fixture(scope="function")
def organization(admin_user):  # pylint: disable=redefined-outer-name
    """
    The ``acme.test`` organization with the five sample departments.

    Creation also gives ``admin_user`` an admin profile.
    """
    return organization_service.create_organization(
        user_id=admin_user.id, name="Acme", domain="acme.test"
    )


@pytest.fixture(scope="function")
def departments(organization):  # pylint: disable=redefined-outer-name
    """The organization's departments keyed by name."""
    return {
        dept.name: dept
        for dept in organization_service.get_departments(organization.id)
    }


@pytest.fixture(scope="function")
def member_user(db_session, organization):  # pylint: disable=redefined-outer-name
    """A plain ``user``-role member of the organization."""
    user = make_user(db_session, email="member@acme.test", first_name="Max")
    db_session.add(
        UserProfile(user_id=user.id, organization_id=organization.id, role="user")
    )
    db_session.commit()
    return user


@pytest.fixture(scope="function")
def auth_client(app, admin_user, organization):  # pylint: disable=redefined-outer-name,unused-argument
    """A test client signed in as the organization's admin."""
    return app.test_client(user=admin_user)
