"""
Seed data loader.

Reads departments (and optional bootstrap users) from the JSON file named by
``SEED_DATA_PATH`` and upserts them into the database.  Runs once per process
start when ``SEED_ON_STARTUP`` is set, or on demand via ``flask seed``.
Idempotent: existing department profiles keep any contact details an admin
has filled in, and existing users are never modified.

File shape:
    {
      "departments": [{"code": "11", "name": "Finance Secretariat",
                       "head_name": "...", "head_email": "..."}],
      "users": [{"email": "...", "first_name": "...", "last_name": "...",
                 "roles": ["ADMIN"], "password": "..."}]
    }
"""

from __future__ import annotations

import json
import logging

from traveldesk.models import db
from traveldesk.models.auth import VALID_ROLES, User
from traveldesk.models.department import DepartmentProfile
from traveldesk.services.identity_service import find_user_by_email
from traveldesk.utils.crypto import hash_password

logger = logging.getLogger(__name__)


def read_seed_file(path: str) -> dict:
    with open(path, encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, dict):
        raise ValueError(f"Seed file {path} must contain a JSON object")
    return data


def seed_departments(departments: list[dict]) -> int:
    """Insert missing department profiles; fill blanks on existing ones. Returns inserted count."""
    created = 0
    for item in departments or []:
        code = str(item.get("code") or "").strip()
        name = str(item.get("name") or "").strip()
        if not code or not name:
            logger.warning("Skipping department seed row without code/name: %r", item)
            continue

        profile = db.session.get(DepartmentProfile, code)
        if profile is None:
            db.session.add(DepartmentProfile(
                code=code,
                name=name,
                head_name=item.get("head_name") or "",
                head_email=item.get("head_email") or "",
                secretary_name=item.get("secretary_name"),
                secretary_email=item.get("secretary_email"),
                updated_by="seed",
            ))
            created += 1
            continue

        for field in ("head_name", "head_email", "secretary_name", "secretary_email"):
            if not getattr(profile, field) and item.get(field):
                setattr(profile, field, item[field])
    return created


def seed_users(users: list[dict]) -> int:
    """Create users that do not exist yet. Returns created count."""
    created = 0
    for item in users or []:
        email = str(item.get("email") or "").strip().lower()
        if not email or find_user_by_email(email) is not None:
            continue
        roles = [r for r in (item.get("roles") or ["USER"]) if r in VALID_ROLES] or ["USER"]
        db.session.add(User(
            email=email,
            first_name=item.get("first_name") or "",
            last_name=item.get("last_name") or "",
            department=item.get("department") or "",
            department_head_code=item.get("department_head_code"),
            roles=roles,
            status="ACTIVE",
            password_hash=hash_password(item["password"]) if item.get("password") else None,
        ))
        created += 1
    return created


def load_seed_data(path: str) -> dict:
    """Load the seed file at ``path`` and commit. Returns counts of created rows."""
    data = read_seed_file(path)
    result = {
        "departments": seed_departments(data.get("departments") or []),
        "users": seed_users(data.get("users") or []),
    }
    db.session.commit()
    logger.info(
        "Seed data loaded from %s: %d departments, %d users",
        path, result["departments"], result["users"],
    )
    return result
