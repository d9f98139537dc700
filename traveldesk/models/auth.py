"""
Auth Models - users and their workflow roles.

Roles are a small fixed set, stored as a JSON list on the user row:
    USER      files travel applications
    REVIEWER  decides submitted applications
    MINISTER  decides applications referred to the minister
    ADMIN     reviewer powers plus system settings
"""

from datetime import datetime, timezone

from traveldesk.models import db

ROLE_USER = "USER"
ROLE_REVIEWER = "REVIEWER"
ROLE_MINISTER = "MINISTER"
ROLE_ADMIN = "ADMIN"

VALID_ROLES = frozenset({ROLE_USER, ROLE_REVIEWER, ROLE_MINISTER, ROLE_ADMIN})

USER_STATUSES = frozenset({"PENDING", "ACTIVE", "SUSPENDED", "ARCHIVED"})


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(200), nullable=False, unique=True, index=True)
    password_hash = db.Column(db.String(256))
    first_name = db.Column(db.String(100), default="")
    last_name = db.Column(db.String(100), default="")
    department = db.Column(db.String(200), default="")
    department_head_code = db.Column(db.String(10), nullable=True)
    roles = db.Column(db.JSON, default=lambda: [ROLE_USER])
    status = db.Column(db.String(20), default="ACTIVE")  # PENDING, ACTIVE, SUSPENDED, ARCHIVED
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    @property
    def full_name(self):
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    @property
    def is_active(self):
        return self.status == "ACTIVE"

    def has_any_role(self, *roles):
        return any(r in (self.roles or []) for r in roles)

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "full_name": self.full_name,
            "department": self.department,
            "department_head_code": self.department_head_code,
            "roles": list(self.roles or []),
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<User {self.id}: {self.email}>"
