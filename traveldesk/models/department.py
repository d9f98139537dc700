"""
Department profiles - head-of-department and secretary contacts per
department code.  Populated from seed data at startup; editable afterwards.
"""

from datetime import datetime, timezone

from traveldesk.models import db


class DepartmentProfile(db.Model):
    __tablename__ = "department_profiles"

    code = db.Column(db.String(10), primary_key=True, comment="Department head code, e.g. '11'")
    name = db.Column(db.String(200), nullable=False)
    head_name = db.Column(db.String(200), default="")
    head_email = db.Column(db.String(200), default="")
    secretary_name = db.Column(db.String(200), nullable=True)
    secretary_email = db.Column(db.String(200), nullable=True)
    updated_by = db.Column(db.String(100), default="system")
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self):
        return {
            "code": self.code,
            "name": self.name,
            "head_name": self.head_name,
            "head_email": self.head_email,
            "secretary_name": self.secretary_name,
            "secretary_email": self.secretary_email,
            "updated_by": self.updated_by,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
