"""
Travel Desk
Travel application domain model.

Models:
    - TravelApplication: the unit of work routed through the approval workflow
    - ApprovalLogEntry: immutable, append-only audit record per transition
    - Attachment: stored-file metadata, looked up by application_id
    - ApplicationNumberSequence: per-department, per-year counter for
      human-readable application numbers (``11-2026-004``)

Travellers, expense rows and the "attachments provided" checklist are
embedded JSON owned by the application.  Attachments are weakly referenced:
their file lifetime belongs to the storage layer, so there is no FK cascade.
"""

import uuid
from datetime import datetime, timezone

from traveldesk.models import db

# ── Statuses ─────────────────────────────────────────────────────────────────

STATUS_DRAFT = "DRAFT"
STATUS_SUBMITTED = "SUBMITTED"
STATUS_IN_REVIEW = "IN_REVIEW"
STATUS_REJECTED = "REJECTED"
STATUS_REFERRED_TO_MINISTER = "REFERRED_TO_MINISTER"
# Alias of REFERRED_TO_MINISTER: accepted on read and by the minister's
# transitions, never written by the engine.
STATUS_PENDING_MINISTER_APPROVAL = "PENDING_MINISTER_APPROVAL"
# Reserved: direct approval archives immediately, so nothing lands here today.
STATUS_APPROVED = "APPROVED"
STATUS_ARCHIVED = "ARCHIVED"

APPLICATION_STATUSES = frozenset({
    STATUS_DRAFT,
    STATUS_SUBMITTED,
    STATUS_IN_REVIEW,
    STATUS_REJECTED,
    STATUS_REFERRED_TO_MINISTER,
    STATUS_PENDING_MINISTER_APPROVAL,
    STATUS_APPROVED,
    STATUS_ARCHIVED,
})

# Statuses in which the requester may still edit content and upload files
EDITABLE_STATUSES = frozenset({STATUS_DRAFT, STATUS_SUBMITTED, STATUS_IN_REVIEW, STATUS_REJECTED})

REVIEWER_QUEUE_STATUSES = (STATUS_SUBMITTED, STATUS_IN_REVIEW)
MINISTER_QUEUE_STATUSES = (STATUS_REFERRED_TO_MINISTER, STATUS_PENDING_MINISTER_APPROVAL)

# ── Actions & transitions ────────────────────────────────────────────────────

ACTION_SUBMIT = "submit"
ACTION_RESUBMIT = "resubmit"
ACTION_REJECT = "reject"
ACTION_REQUEST_INFO = "request_info"
ACTION_REFER_TO_MINISTER = "refer_to_minister"
ACTION_APPROVE = "approve"
ACTION_MINISTER_APPROVE = "minister_approve"
ACTION_MINISTER_REJECT = "minister_reject"

# Log actions recorded on ApprovalLogEntry.action
LOG_SUBMITTED = "SUBMITTED"
LOG_APPROVED = "APPROVED"
LOG_REJECTED = "REJECTED"
LOG_REQUEST_INFO = "REQUEST_INFO"
LOG_REFERRED_TO_MINISTER = "REFERRED_TO_MINISTER"
LOG_MINISTER_APPROVED = "MINISTER_APPROVED"
LOG_MINISTER_REJECTED = "MINISTER_REJECTED"

LOG_ACTIONS = frozenset({
    LOG_SUBMITTED,
    LOG_APPROVED,
    LOG_REJECTED,
    LOG_REQUEST_INFO,
    LOG_REFERRED_TO_MINISTER,
    LOG_MINISTER_APPROVED,
    LOG_MINISTER_REJECTED,
})

_REVIEW_STATES = [STATUS_SUBMITTED, STATUS_IN_REVIEW]
_MINISTER_STATES = [STATUS_REFERRED_TO_MINISTER, STATUS_PENDING_MINISTER_APPROVAL]

WORKFLOW_TRANSITIONS = {
    ACTION_SUBMIT: {"from": [STATUS_DRAFT], "to": STATUS_SUBMITTED, "log": LOG_SUBMITTED},
    ACTION_REJECT: {"from": _REVIEW_STATES, "to": STATUS_REJECTED, "log": LOG_REJECTED},
    ACTION_REQUEST_INFO: {"from": _REVIEW_STATES, "to": STATUS_IN_REVIEW, "log": LOG_REQUEST_INFO},
    ACTION_REFER_TO_MINISTER: {
        "from": _REVIEW_STATES, "to": STATUS_REFERRED_TO_MINISTER, "log": LOG_REFERRED_TO_MINISTER,
    },
    ACTION_APPROVE: {"from": _REVIEW_STATES, "to": STATUS_ARCHIVED, "log": LOG_APPROVED},
    ACTION_MINISTER_APPROVE: {"from": _MINISTER_STATES, "to": STATUS_ARCHIVED, "log": LOG_MINISTER_APPROVED},
    ACTION_MINISTER_REJECT: {"from": _MINISTER_STATES, "to": STATUS_REJECTED, "log": LOG_MINISTER_REJECTED},
    ACTION_RESUBMIT: {"from": [STATUS_REJECTED], "to": STATUS_SUBMITTED, "log": LOG_SUBMITTED},
}

RESUBMIT_NOTE = "resubmitted by user"


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


class TravelApplication(db.Model):
    """
    A travel-expense request.

    ``total_cost`` is always the sum of the expense rows' government-funded
    cost and is recomputed by the application service; it is never taken
    from client input.  ``version`` is the optimistic concurrency token the
    repository's compare-and-swap checks.
    """

    __tablename__ = "travel_applications"
    __table_args__ = (
        db.Index("idx_tapp_status", "status"),
        db.Index("idx_tapp_requester", "requester_id"),
    )

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    application_number = db.Column(db.String(30), unique=True, nullable=True)
    version = db.Column(db.Integer, nullable=False, default=1)

    # Requester (snapshot at creation; live profile lives on User)
    requester_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    requester_email = db.Column(db.String(200), nullable=False)
    requester_first_name = db.Column(db.String(100), default="")
    requester_last_name = db.Column(db.String(100), default="")
    phone_number = db.Column(db.String(50), default="")

    # Department
    department = db.Column(db.String(200), nullable=False)
    division = db.Column(db.String(200), default="")
    department_code = db.Column(db.String(10), default="00")
    head_of_department = db.Column(db.String(200), default="")
    head_of_department_email = db.Column(db.String(200), default="")
    hod_email = db.Column(db.String(200), default="")
    minister_name = db.Column(db.String(200), default="")
    minister_email = db.Column(db.String(200), default="")

    # Event
    event_title = db.Column(db.String(300), nullable=False)
    reason_for_participation = db.Column(db.Text, default="")
    start_date = db.Column(db.Date, nullable=True)
    end_date = db.Column(db.Date, nullable=True)
    duration_days = db.Column(db.Integer, default=0)
    number_of_travellers = db.Column(db.Integer, default=0)

    travellers = db.Column(db.JSON, default=list)
    expenses = db.Column(db.JSON, default=list)
    attachments_provided = db.Column(db.JSON, default=list)
    total_cost = db.Column(db.Float, nullable=False, default=0.0)

    # Workflow
    status = db.Column(db.String(40), nullable=False, default=STATUS_DRAFT)
    current_reviewer_id = db.Column(db.Integer, nullable=True)
    submitted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    decided_at = db.Column(db.DateTime(timezone=True), nullable=True)
    archived_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    approval_log = db.relationship(
        "ApprovalLogEntry",
        order_by="ApprovalLogEntry.sequence",
        lazy="selectin",
        viewonly=True,
    )

    @property
    def is_editable(self):
        return self.status in EDITABLE_STATUSES

    def to_dict(self, include_log=True):
        d = {
            "id": self.id,
            "application_number": self.application_number,
            "version": self.version,
            "requester_id": self.requester_id,
            "requester_email": self.requester_email,
            "requester_first_name": self.requester_first_name,
            "requester_last_name": self.requester_last_name,
            "phone_number": self.phone_number,
            "department": self.department,
            "division": self.division,
            "department_code": self.department_code,
            "head_of_department": self.head_of_department,
            "head_of_department_email": self.head_of_department_email,
            "hod_email": self.hod_email,
            "minister_name": self.minister_name,
            "minister_email": self.minister_email,
            "event_title": self.event_title,
            "reason_for_participation": self.reason_for_participation,
            "start_date": _iso(self.start_date),
            "end_date": _iso(self.end_date),
            "duration_days": self.duration_days,
            "number_of_travellers": self.number_of_travellers,
            "travellers": list(self.travellers or []),
            "expenses": list(self.expenses or []),
            "attachments_provided": list(self.attachments_provided or []),
            "total_cost": self.total_cost,
            "status": self.status,
            "current_reviewer_id": self.current_reviewer_id,
            "submitted_at": _iso(self.submitted_at),
            "decided_at": _iso(self.decided_at),
            "archived_at": _iso(self.archived_at),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if include_log:
            d["approval_log"] = [e.to_dict() for e in self.approval_log]
        return d

    def __repr__(self):
        return f"<TravelApplication {self.application_number or self.id}: {self.status}>"


class ApprovalLogEntry(db.Model):
    """
    Immutable audit record of one workflow transition.

    Business rules:
    - Rows are NEVER updated or deleted - append-only.
    - ``sequence`` is 1..n per application; timestamps strictly increase
      along it.
    - actor name/email are snapshots taken at decision time, so history
      survives later profile changes.
    """

    __tablename__ = "approval_log_entries"
    __table_args__ = (
        db.UniqueConstraint("application_id", "sequence", name="uq_approval_log_app_seq"),
        db.Index("idx_approval_log_actor", "actor_id"),
    )

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    application_id = db.Column(
        db.String(36), db.ForeignKey("travel_applications.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    sequence = db.Column(db.Integer, nullable=False)
    action = db.Column(
        db.String(40), nullable=False,
        comment="SUBMITTED | APPROVED | REJECTED | REQUEST_INFO | REFERRED_TO_MINISTER | "
                "MINISTER_APPROVED | MINISTER_REJECTED",
    )
    actor_id = db.Column(db.Integer, nullable=False)
    actor_name = db.Column(db.String(200), default="")
    actor_email = db.Column(db.String(200), default="")
    note = db.Column(db.Text, nullable=True)
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "sequence": self.sequence,
            "action": self.action,
            "actor_id": self.actor_id,
            "actor_name": self.actor_name,
            "actor_email": self.actor_email,
            "note": self.note,
            "timestamp": _iso(self.timestamp),
        }

    def __repr__(self):
        return f"<ApprovalLogEntry {self.application_id}#{self.sequence}: {self.action}>"


class Attachment(db.Model):
    """Stored-file metadata. Created while the application is editable, never mutated."""

    __tablename__ = "attachments"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    application_id = db.Column(db.String(36), nullable=False, index=True)
    file_name = db.Column(db.String(300), nullable=False)
    attachment_type = db.Column(db.String(100), nullable=True)
    mime_type = db.Column(db.String(100), default="application/octet-stream")
    size = db.Column(db.Integer, default=0)
    storage_path = db.Column(db.String(500), default="")
    uploaded_by = db.Column(db.Integer, nullable=False)
    uploaded_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "application_id": self.application_id,
            "file_name": self.file_name,
            "attachment_type": self.attachment_type,
            "mime_type": self.mime_type,
            "size": self.size,
            "storage_path": self.storage_path,
            "uploaded_by": self.uploaded_by,
            "uploaded_at": _iso(self.uploaded_at),
        }


class ApplicationNumberSequence(db.Model):
    """Per (department_code, year) counter backing application numbers."""

    __tablename__ = "application_number_sequences"

    department_code = db.Column(db.String(10), primary_key=True)
    year = db.Column(db.Integer, primary_key=True)
    sequence = db.Column(db.Integer, nullable=False, default=0)
