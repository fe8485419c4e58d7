"""
Auth service — Entra ID sign-in through MSAL.

Builds the authorization URL, redeems the returned code for tokens, and
maps the ID token onto a local ``User`` (creating one on first sign-in).
Organization membership is not granted here; a new user lands on the
onboarding flow and creates or joins an organization.
"""

import logging

import msal
from flask import current_app, session

from app.exceptions import AuthenticationError
from app.models.user import User
from app.services import audit_service, user_service

logger = logging.getLogger(__name__)

# Session keys owned by this module.
_SESSION_KEYS = ("user_id", "user_email", "organization_id", "auth_state")


def _build_msal_app(cache=None) -> msal.ConfidentialClientApplication:
    return msal.ConfidentialClientApplication(
        client_id=current_app.config["AZURE_CLIENT_ID"],
        client_credential=current_app.config["AZURE_CLIENT_SECRET"],
        authority=current_app.config["AZURE_AUTHORITY"],
        token_cache=cache,
    )


def get_auth_url(state: str | None = None) -> str:
    """Return the Microsoft authorization URL for the code flow."""
    return _build_msal_app().get_authorization_request_url(
        scopes=current_app.config["AZURE_SCOPES"],
        redirect_uri=current_app.config["AZURE_REDIRECT_URI"],
        state=state,
    )


def acquire_token_by_code(auth_code: str) -> dict:
    """
    Redeem an authorization code for ID and access tokens.

    Raises:
        AuthenticationError: If Entra ID rejects the code.
    """
    result = _build_msal_app().acquire_token_by_authorization_code(
        code=auth_code,
        scopes=current_app.config["AZURE_SCOPES"],
        redirect_uri=current_app.config["AZURE_REDIRECT_URI"],
    )

    if "error" in result:
        error_desc = result.get("error_description", result["error"])
        logger.error("Token acquisition failed: %s", error_desc)
        raise AuthenticationError(f"Authentication failed: {error_desc}")

    return result


def process_login(token_result: dict) -> User:
    """
    Resolve the signed-in identity to a local user and record the login.

    Lookup order: Entra object ID, then email (linking a pre-created
    user to their Entra ID), then a new user.

    Raises:
        AuthenticationError: If the ID token lacks ``oid`` or an email.
    """
    claims = token_result.get("id_token_claims", {})
    entra_object_id = claims.get("oid")
    email = claims.get("preferred_username") or claims.get("email")

    if not entra_object_id or not email:
        raise AuthenticationError(
            "ID token missing required claims (oid, preferred_username)."
        )

    user = user_service.get_user_by_entra_id(entra_object_id)
    if user is None:
        user = user_service.get_user_by_email(email)
        if user is not None:
            user.entra_object_id = entra_object_id
            logger.info("Linked existing user %s to Entra ID", email)
        else:
            user = user_service.provision_user(
                email=email,
                first_name=claims.get("given_name") or email.split("@")[0],
                last_name=claims.get("family_name") or "",
                entra_object_id=entra_object_id,
            )

    start_session(user)
    return user


def start_session(user: User) -> None:
    """Record the login and cache the user's identity in the session."""
    audit_service.log_login(user.id)
    # Commits the audit entry too.
    user_service.record_login(user)
    profile = user.active_profile

    session["user_id"] = user.id
    session["user_email"] = user.email
    session["organization_id"] = profile.organization_id if profile else None


def clear_session() -> None:
    """Remove this module's keys from the Flask session on logout."""
    for key in _SESSION_KEYS:
        session.pop(key, None)
