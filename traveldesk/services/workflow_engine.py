"""
Travel Application Workflow Engine.

Validates and computes workflow transitions over an in-memory snapshot of one
application.  Pure computation: no database, no clock, no mail.  The caller
supplies ``now`` and persists the result; notifications are returned as
intent, never sent here.

Transition table (WORKFLOW_TRANSITIONS in models.application):

    DRAFT                      submit             -> SUBMITTED             log SUBMITTED
    SUBMITTED | IN_REVIEW      reject             -> REJECTED              log REJECTED
    SUBMITTED | IN_REVIEW      request_info       -> IN_REVIEW             log REQUEST_INFO
    SUBMITTED | IN_REVIEW      refer_to_minister  -> REFERRED_TO_MINISTER  log REFERRED_TO_MINISTER
    SUBMITTED | IN_REVIEW      approve            -> ARCHIVED              log APPROVED
    REFERRED_TO_MINISTER |
    PENDING_MINISTER_APPROVAL  minister_approve   -> ARCHIVED              log MINISTER_APPROVED
                               minister_reject    -> REJECTED              log MINISTER_REJECTED
    REJECTED                   resubmit           -> SUBMITTED             log SUBMITTED

Direct approval and minister approval both archive; their log actions differ
so the trail shows which path approved the trip.

Guards run before any result is built.  A failed guard raises and leaves
nothing behind: no log entry, no notification.

Usage:
    result = apply_transition(snapshot, payload, actor, now)
    result.new_status, result.changes, result.log_entry, result.notifications
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from traveldesk.core.exceptions import ForbiddenError, InvalidTransitionError, ValidationError
from traveldesk.models.application import (
    ACTION_APPROVE,
    ACTION_MINISTER_APPROVE,
    ACTION_MINISTER_REJECT,
    ACTION_REFER_TO_MINISTER,
    ACTION_REJECT,
    ACTION_REQUEST_INFO,
    ACTION_RESUBMIT,
    ACTION_SUBMIT,
    WORKFLOW_TRANSITIONS,
)
from traveldesk.services.notification_rules import NotificationIntent, fan_out
from traveldesk.services.payloads import Actor, DecisionPayload
from traveldesk.utils.helpers import ensure_utc, is_valid_email

_REVIEWER_ACTIONS = frozenset({ACTION_REJECT, ACTION_REQUEST_INFO, ACTION_REFER_TO_MINISTER, ACTION_APPROVE})


@dataclass(frozen=True)
class WorkflowSnapshot:
    """The slice of an application the engine reads."""

    id: str
    version: int
    status: str
    requester_id: int
    minister_email: str | None = None
    hod_email: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    current_reviewer_id: int | None = None
    submitted_at: datetime | None = None
    decided_at: datetime | None = None
    archived_at: datetime | None = None
    last_log_timestamp: datetime | None = None
    log_length: int = 0


@dataclass(frozen=True)
class LogEntryDraft:
    sequence: int
    action: str
    actor_id: int
    actor_name: str
    actor_email: str
    note: str | None
    timestamp: datetime


@dataclass(frozen=True)
class TransitionResult:
    action: str
    previous_status: str
    new_status: str
    changes: dict
    log_entry: LogEntryDraft
    notifications: tuple[NotificationIntent, ...]
    snapshot: WorkflowSnapshot


# ── Queries ──────────────────────────────────────────────────────────────────


def validate_transition(status: str, action: str) -> dict:
    """
    Validate whether an action is legal from ``status``.

    Returns:
        {"valid": bool, "from": str, "to": str|None, "reason": str|None}
    """
    rule = WORKFLOW_TRANSITIONS.get(action)
    if not rule:
        return {"valid": False, "from": status, "to": None, "reason": f"Unknown action: {action}"}

    if status not in rule["from"]:
        return {"valid": False, "from": status, "to": rule["to"],
                "reason": f"Cannot '{action}' from status '{status}'"}

    return {"valid": True, "from": status, "to": rule["to"], "reason": None}


def get_available_actions(status: str) -> list[str]:
    """List of actions legal from ``status``."""
    return [action for action, rule in WORKFLOW_TRANSITIONS.items() if status in rule["from"]]


def check_submission_data(snapshot: WorkflowSnapshot) -> dict[str, str]:
    """Return field errors that block submission (empty dict when submittable)."""
    errors: dict[str, str] = {}
    if snapshot.start_date is None:
        errors["start_date"] = "start date is required"
    if snapshot.end_date is None:
        errors["end_date"] = "end date is required"
    if snapshot.start_date and snapshot.end_date and snapshot.end_date < snapshot.start_date:
        errors["end_date"] = "end date must not be before start date"
    if not (snapshot.minister_email or "").strip():
        errors["minister_email"] = "minister email is required"
    elif not is_valid_email(snapshot.minister_email):
        errors["minister_email"] = "invalid minister email format"
    if not (snapshot.hod_email or "").strip():
        errors["hod_email"] = "head of department email is required"
    elif not is_valid_email(snapshot.hod_email):
        errors["hod_email"] = "invalid head of department email format"
    return errors


# ── Transition ───────────────────────────────────────────────────────────────


def _log_timestamp(now: datetime, previous: datetime | None) -> datetime:
    """``now`` in UTC, nudged past the previous entry so log order never regresses."""
    now = ensure_utc(now)
    previous = ensure_utc(previous)
    if previous is not None and now <= previous:
        return previous + timedelta(microseconds=1)
    return now


def _check_guards(snapshot: WorkflowSnapshot, payload: DecisionPayload, actor: Actor) -> None:
    action = payload.action

    if action in (ACTION_SUBMIT, ACTION_RESUBMIT):
        if actor.id != snapshot.requester_id:
            raise ForbiddenError("Only the original requester may submit this application")
    if action == ACTION_SUBMIT:
        errors = check_submission_data(snapshot)
        if errors:
            raise ValidationError("Application is not ready for submission", details=errors)
    elif action == ACTION_REFER_TO_MINISTER:
        if not is_valid_email(payload.minister_email):
            raise ValidationError(
                "Minister email is required for referral",
                details={"note": "a valid minister email is required"},
            )
    elif action == ACTION_APPROVE:
        if not (payload.justification or "").strip():
            raise ValidationError(
                "A justification note is required to approve directly",
                details={"note": "justification is required"},
            )


def apply_transition(
    snapshot: WorkflowSnapshot,
    payload: DecisionPayload,
    actor: Actor,
    now: datetime,
    notification_settings: dict | None = None,
) -> TransitionResult:
    """
    Compute one workflow transition.

    Args:
        snapshot: Current application state.
        payload: Typed decision payload (its class names the action).
        actor: Caller snapshot, copied into the log entry.
        now: Transition time.
        notification_settings: ``email.notifications`` settings section.

    Returns:
        TransitionResult with the field changes, the log entry to append,
        and the notification intents.

    Raises:
        InvalidTransitionError, ValidationError, ForbiddenError
    """
    action = payload.action
    validation = validate_transition(snapshot.status, action)
    if not validation["valid"]:
        raise InvalidTransitionError(action, snapshot.status, validation["reason"])

    _check_guards(snapshot, payload, actor)

    ts = _log_timestamp(now, snapshot.last_log_timestamp)
    new_status = validation["to"]
    changes: dict = {"status": new_status}

    if action == ACTION_SUBMIT:
        changes["submitted_at"] = ts
    elif action == ACTION_RESUBMIT:
        changes["submitted_at"] = ts
        changes["decided_at"] = None
    elif action in (ACTION_REJECT, ACTION_MINISTER_REJECT):
        changes["decided_at"] = ts
    elif action in (ACTION_APPROVE, ACTION_MINISTER_APPROVE):
        changes["decided_at"] = ts
        changes["archived_at"] = ts
    elif action == ACTION_REFER_TO_MINISTER:
        changes["minister_email"] = payload.minister_email

    if action in _REVIEWER_ACTIONS:
        changes["current_reviewer_id"] = actor.id

    log_entry = LogEntryDraft(
        sequence=snapshot.log_length + 1,
        action=WORKFLOW_TRANSITIONS[action]["log"],
        actor_id=actor.id,
        actor_name=actor.name,
        actor_email=actor.email,
        note=payload.log_note,
        timestamp=ts,
    )

    updated = dataclasses.replace(
        snapshot,
        **changes,
        version=snapshot.version + 1,
        last_log_timestamp=ts,
        log_length=log_entry.sequence,
    )

    notifications = fan_out(
        snapshot.status,
        new_status,
        action,
        updated,
        notification_settings,
        actor=actor,
        note=payload.log_note,
    )

    return TransitionResult(
        action=action,
        previous_status=snapshot.status,
        new_status=new_status,
        changes=changes,
        log_entry=log_entry,
        notifications=tuple(notifications),
        snapshot=updated,
    )
