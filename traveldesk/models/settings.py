"""System settings - one JSON document per key."""

from datetime import datetime, timezone

from traveldesk.models import db


class SystemSetting(db.Model):
    __tablename__ = "system_settings"

    key = db.Column(db.String(100), primary_key=True)
    value = db.Column(db.JSON, nullable=False, default=dict)
    updated_by = db.Column(db.String(100), default="system")
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
