"""
Routes for the auth blueprint — login, logout, and OAuth2 callback.

The login flow redirects to Microsoft Entra ID.  The callback redeems
the authorization code and signs the user in via Flask-Login.

``/dev-login`` bypasses OAuth2 and signs in as a seeded user.  It only
answers when ``DEV_LOGIN_ENABLED`` is set.
"""

import uuid

from flask import abort, current_app, jsonify, redirect, request, session, url_for
from flask_login import current_user, login_required, login_user, logout_user
from flask_wtf.csrf import generate_csrf

from app.blueprints.auth import bp
from app.exceptions import AuthenticationError
from app.extensions import db
from app.models.user import User, UserProfile
from app.services import audit_service, auth_service, organization_service


@bp.route("/login")
def login():
    """
    Start the OAuth2 login flow.

    Already signed-in users go straight to the dashboard.
    """
    if current_user.is_authenticated:
        return redirect(url_for("main.dashboard"))

    # Random state token, checked again in the callback.
    state = str(uuid.uuid4())
    session["auth_state"] = state
    return redirect(auth_service.get_auth_url(state=state))


@bp.route("/callback")
def callback():
    """
    Handle the OAuth2 redirect from Microsoft Entra ID.

    Raises AuthenticationError (rendered as 401) for a state mismatch,
    an error reported by Entra ID, or a missing code.
    """
    if request.args.get("state") != session.pop("auth_state", None):
        raise AuthenticationError("Authentication failed: invalid state parameter.")

    if "error" in request.args:
        error_desc = request.args.get("error_description", "Unknown error")
        raise AuthenticationError(f"Authentication failed: {error_desc}")

    auth_code = request.args.get("code")
    if not auth_code:
        raise AuthenticationError(
            "Authentication failed: no authorization code received."
        )

    token_result = auth_service.acquire_token_by_code(auth_code)
    user = auth_service.process_login(token_result)
    login_user(user)
    return redirect(url_for("main.dashboard"))


@bp.route("/logout", methods=["GET", "POST"])
@login_required
def logout():
    """Sign the user out and clear the session."""
    audit_service.log_logout(current_user.id)
    # log_logout only flushes.
    db.session.commit()
    auth_service.clear_session()
    logout_user()
    return jsonify(status="signed_out")


@bp.route("/me")
@login_required
def me():
    """
    The signed-in user and their organization.

    ``organization`` is null until the user creates or joins one.
    """
    return jsonify(
        user=current_user.to_dict(),
        organization=organization_service.get_current_organization(current_user),
    )


@bp.route("/csrf-token")
def csrf_token():
    """
    Issue a CSRF token for API clients.

    Send it back in the ``X-CSRFToken`` header on POST, PATCH and
    DELETE requests.
    """
    return jsonify(csrf_token=generate_csrf())


# =========================================================================
# Development-Only Routes
# =========================================================================


@bp.route("/dev-login")
def dev_login():
    """
    Development-only login bypass.

    Query Parameters:
        user_id (int): Sign in as this user.
        email (str):   Sign in as the user with this email.

    With neither, signs in as the first active user holding an admin
    profile (run ``flask seed-dev-org`` first).

    Examples::

        /auth/dev-login                        → first admin
        /auth/dev-login?email=user@localhost   → that user
        /auth/dev-login?user_id=7              → user with id=7
    """
    if not current_app.config.get("DEV_LOGIN_ENABLED"):
        abort(404)

    user_id_param = request.args.get("user_id", type=int)
    email_param = request.args.get("email", "").strip()

    query = User.query.filter(User.is_active.is_(True))
    if user_id_param is not None:
        target_user = query.filter(User.id == user_id_param).first()
    elif email_param:
        target_user = query.filter(User.email.ilike(email_param)).first()
    else:
        target_user = (
            query.join(UserProfile, UserProfile.user_id == User.id)
            .filter(UserProfile.role == "admin", UserProfile.is_active.is_(True))
            .order_by(User.id)
            .first()
        )

    if target_user is None:
        raise AuthenticationError(
            "No matching active user. Run the seed command first: "
            "flask seed-dev-org"
        )

    login_user(target_user)
    auth_service.start_session(target_user)
    return jsonify(user=target_user.to_dict())
