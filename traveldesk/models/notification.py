"""
Travel Desk
Notification delivery model.

Models:
    - EmailLog: one row per delivery attempt target; failed rows are the
      dead-letter log that ``flask retry-failed-emails`` drains.
"""

from datetime import datetime, timezone

from traveldesk.models import db

EMAIL_STATUSES = {"queued", "sent", "failed"}


class EmailLog(db.Model):
    """
    Outbound email audit log.

    Every notification the workflow emits is logged here, whether or not
    SMTP is configured.
    """

    __tablename__ = "email_logs"

    id = db.Column(db.Integer, primary_key=True)
    recipient_email = db.Column(db.String(255), nullable=False, index=True)
    recipient_name = db.Column(db.String(150), nullable=True)
    subject = db.Column(db.String(500), nullable=False)
    html_body = db.Column(db.Text, default="")
    template_key = db.Column(db.String(100), nullable=True, comment="Email template used")
    status = db.Column(db.String(20), default="queued", comment="queued, sent, failed")
    attempts = db.Column(db.Integer, default=0)
    error_message = db.Column(db.Text, nullable=True)

    application_id = db.Column(db.String(36), nullable=True, index=True)

    sent_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True),
                           default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "recipient_email": self.recipient_email,
            "recipient_name": self.recipient_name,
            "subject": self.subject,
            "template_key": self.template_key,
            "status": self.status,
            "attempts": self.attempts,
            "error_message": self.error_message,
            "application_id": self.application_id,
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<EmailLog {self.id}: {self.recipient_email} {self.status}>"
