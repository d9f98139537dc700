"""
Identity & role provider.

Turns a bearer token into an ``Actor`` snapshot.  Roles and contact details
come from the user row at request time, not from the token claims, so a
role revoked by an admin takes effect on the next request.
"""

from __future__ import annotations

import logging

import jwt as pyjwt
from sqlalchemy import func, select

from traveldesk.models import db
from traveldesk.models.auth import User
from traveldesk.services.jwt_service import decode_access_token, user_id_from_payload
from traveldesk.services.payloads import Actor
from traveldesk.utils.crypto import verify_password

logger = logging.getLogger(__name__)


def resolve_actor(token: str | None) -> Actor | None:
    """Decode ``token`` and snapshot its ACTIVE user; None when unusable."""
    if not token:
        return None
    try:
        user_id = user_id_from_payload(decode_access_token(token))
    except pyjwt.ExpiredSignatureError:
        logger.debug("Expired access token")
        return None
    except pyjwt.InvalidTokenError as exc:
        logger.debug("Rejected access token: %s", exc)
        return None

    user = db.session.get(User, user_id)
    if user is None or not user.is_active:
        return None
    return Actor.from_user(user)


def find_user_by_email(email: str) -> User | None:
    if not email:
        return None
    return db.session.scalar(select(User).where(func.lower(User.email) == email.strip().lower()))


def authenticate(email: str, password: str) -> User | None:
    """Return the ACTIVE user matching the credentials, else None."""
    user = find_user_by_email(email)
    if user is None or not verify_password(password or "", user.password_hash):
        logger.info("Failed login for %s", email)
        return None
    if not user.is_active:
        logger.info("Login refused for %s user %s", user.status, email)
        return None
    return user
