"""
Application Repository - load and compare-and-swap persistence.

The only module that writes workflow state.  A transition is persisted as a
single DB transaction:

    UPDATE travel_applications SET ..., version = version + 1
     WHERE id = :id AND version = :expected
    INSERT INTO approval_log_entries (...)

If the UPDATE matches no row (someone else moved the application first) or
the log insert collides on (application_id, sequence), the whole unit is
rolled back and ``compare_and_swap`` returns False.  The caller decides
whether to reload and retry.

Queue and archive reads are plain unlocked selects.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from traveldesk.core.exceptions import NotFoundError
from traveldesk.models import db
from traveldesk.models.application import (
    EDITABLE_STATUSES,
    STATUS_IN_REVIEW,
    STATUS_SUBMITTED,
    ApprovalLogEntry,
    TravelApplication,
)
from traveldesk.services.workflow_engine import LogEntryDraft, WorkflowSnapshot
from traveldesk.utils.helpers import ensure_utc

logger = logging.getLogger(__name__)

# Columns a transition may write; anything else in ``changes`` is a bug
_TRANSITION_COLUMNS = frozenset({
    "status",
    "submitted_at",
    "decided_at",
    "archived_at",
    "minister_email",
    "current_reviewer_id",
})


def load(application_id: str) -> TravelApplication:
    """Return the application with fresh column values.

    Raises:
        NotFoundError: no application with that id.
    """
    app = db.session.get(TravelApplication, application_id, populate_existing=True)
    if app is None:
        raise NotFoundError(resource="Application", resource_id=application_id)
    return app


def to_snapshot(app: TravelApplication) -> WorkflowSnapshot:
    """Project an ORM row onto the engine's immutable snapshot."""
    last = db.session.execute(
        select(ApprovalLogEntry.sequence, ApprovalLogEntry.timestamp)
        .where(ApprovalLogEntry.application_id == app.id)
        .order_by(ApprovalLogEntry.sequence.desc())
        .limit(1)
    ).first()

    return WorkflowSnapshot(
        id=app.id,
        version=app.version,
        status=app.status,
        requester_id=app.requester_id,
        minister_email=app.minister_email,
        hod_email=app.hod_email,
        start_date=app.start_date,
        end_date=app.end_date,
        current_reviewer_id=app.current_reviewer_id,
        submitted_at=ensure_utc(app.submitted_at),
        decided_at=ensure_utc(app.decided_at),
        archived_at=ensure_utc(app.archived_at),
        last_log_timestamp=ensure_utc(last.timestamp) if last else None,
        log_length=last.sequence if last else 0,
    )


def load_snapshot(application_id: str) -> WorkflowSnapshot:
    return to_snapshot(load(application_id))


def compare_and_swap(
    application_id: str,
    expected_version: int,
    changes: dict,
    log_entry: LogEntryDraft,
) -> bool:
    """Persist one transition iff the stored version still equals ``expected_version``.

    Args:
        application_id: Application to update.
        expected_version: Version the transition was computed against.
        changes: Column -> value map from the engine's TransitionResult.
        log_entry: The single approval-log entry the transition appends.

    Returns:
        True when the update and the log insert committed together,
        False when another writer got there first (nothing is written).
    """
    unknown = set(changes) - _TRANSITION_COLUMNS
    if unknown:
        raise ValueError(f"Unexpected transition columns: {sorted(unknown)}")

    stmt = (
        update(TravelApplication)
        .where(
            TravelApplication.id == application_id,
            TravelApplication.version == expected_version,
        )
        .values(
            **changes,
            version=expected_version + 1,
            updated_at=datetime.now(timezone.utc),
        )
        .execution_options(synchronize_session=False)
    )

    try:
        result = db.session.execute(stmt)
        if result.rowcount != 1:
            db.session.rollback()
            logger.info(
                "Compare-and-swap lost for application %s at version %s",
                application_id, expected_version,
                extra={"application_id": application_id},
            )
            return False

        db.session.add(ApprovalLogEntry(
            application_id=application_id,
            sequence=log_entry.sequence,
            action=log_entry.action,
            actor_id=log_entry.actor_id,
            actor_name=log_entry.actor_name,
            actor_email=log_entry.actor_email,
            note=log_entry.note,
            timestamp=log_entry.timestamp,
        ))
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        logger.info(
            "Approval log sequence %s already taken for application %s",
            log_entry.sequence, application_id,
            extra={"application_id": application_id},
        )
        return False

    # The UPDATE bypassed the identity map
    db.session.expire_all()
    return True


def claim_for_review(application_id: str, expected_version: int, reviewer_id: int) -> bool:
    """Move a SUBMITTED application to IN_REVIEW and assign the reviewer.

    An assignment, not a decision: no approval-log entry is written.
    Returns False when the application is no longer SUBMITTED at
    ``expected_version``.
    """
    result = db.session.execute(
        update(TravelApplication)
        .where(
            TravelApplication.id == application_id,
            TravelApplication.version == expected_version,
            TravelApplication.status == STATUS_SUBMITTED,
        )
        .values(
            status=STATUS_IN_REVIEW,
            current_reviewer_id=reviewer_id,
            version=expected_version + 1,
            updated_at=datetime.now(timezone.utc),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.session.rollback()
        return False
    db.session.commit()
    db.session.expire_all()
    return True


def update_content(application_id: str, expected_version: int, values: dict) -> bool:
    """Write requester-editable fields iff the version matches and the status is still editable."""
    result = db.session.execute(
        update(TravelApplication)
        .where(
            TravelApplication.id == application_id,
            TravelApplication.version == expected_version,
            TravelApplication.status.in_(list(EDITABLE_STATUSES)),
        )
        .values(
            **values,
            version=expected_version + 1,
            updated_at=datetime.now(timezone.utc),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.session.rollback()
        return False
    db.session.commit()
    db.session.expire_all()
    return True


def list_by_status(statuses, *, order_by=None) -> list[TravelApplication]:
    """Applications in any of ``statuses``, newest submission first by default."""
    order = order_by if order_by is not None else TravelApplication.submitted_at.desc()
    stmt = (
        select(TravelApplication)
        .where(TravelApplication.status.in_(list(statuses)))
        .order_by(order, TravelApplication.created_at.desc())
    )
    return list(db.session.scalars(stmt))


def list_by_requester(requester_id: int) -> list[TravelApplication]:
    stmt = (
        select(TravelApplication)
        .where(TravelApplication.requester_id == requester_id)
        .order_by(TravelApplication.created_at.desc())
    )
    return list(db.session.scalars(stmt))


def list_decided_by(actor_id: int) -> list[TravelApplication]:
    """Applications carrying at least one approval-log entry by ``actor_id``."""
    touched = (
        select(ApprovalLogEntry.application_id)
        .where(ApprovalLogEntry.actor_id == actor_id)
        .distinct()
    )
    stmt = (
        select(TravelApplication)
        .where(TravelApplication.id.in_(touched))
        .order_by(TravelApplication.updated_at.desc())
    )
    return list(db.session.scalars(stmt))
