"""
Workflow engine unit tests - pure computation, no database.

Tests cover:
  - Transition table: every legal (status, action) pair and its target
  - Illegal pairs raise InvalidTransitionError
  - Guards: submission data, referral email, direct-approval justification,
    resubmit ownership
  - Timestamps: decided_at / archived_at, log ordering never regresses
  - Notification intents returned with each result
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from traveldesk.core.exceptions import ForbiddenError, InvalidTransitionError, ValidationError
from traveldesk.models.application import (
    APPLICATION_STATUSES,
    WORKFLOW_TRANSITIONS,
)
from traveldesk.services.notification_rules import RECIPIENT_MINISTER, RECIPIENT_REQUESTER, RECIPIENT_REVIEWERS
from traveldesk.services.payloads import Actor, parse_payload
from traveldesk.services.workflow_engine import (
    WorkflowSnapshot,
    apply_transition,
    check_submission_data,
    get_available_actions,
    validate_transition,
)

NOW = datetime(2026, 10, 1, 9, 30, tzinfo=timezone.utc)

REQUESTER = Actor(id=1, roles=("USER",), email="requester@finance.gov.nr", name="Ana Detenamo")
REVIEWER = Actor(id=2, roles=("USER", "REVIEWER"), email="reviewer@pmo.gov.nr", name="Rita Review")
MINISTER = Actor(id=3, roles=("USER", "MINISTER"), email="minister@x.gov", name="Milo Minister")

NOTES = {
    "refer_to_minister": "minister@x.gov",
    "approve": "Approved by the minister by phone on 30/09",
}


def _snapshot(status="DRAFT", **overrides):
    values = dict(
        id="app-1",
        version=3,
        status=status,
        requester_id=REQUESTER.id,
        minister_email="m@x.gov",
        hod_email="h@x.gov",
        start_date=date(2026, 11, 2),
        end_date=date(2026, 11, 6),
    )
    values.update(overrides)
    return WorkflowSnapshot(**values)


def _actor_for(action):
    if action in ("submit", "resubmit"):
        return REQUESTER
    if action.startswith("minister_"):
        return MINISTER
    return REVIEWER


def _apply(status, action, note=None, **overrides):
    payload = parse_payload(action, note if note is not None else NOTES.get(action))
    return apply_transition(_snapshot(status, **overrides), payload, _actor_for(action), NOW)


# ═════════════════════════════════════════════════════════════════════════
# TRANSITION TABLE
# ═════════════════════════════════════════════════════════════════════════

LEGAL = [
    ("DRAFT", "submit", "SUBMITTED", "SUBMITTED"),
    ("SUBMITTED", "reject", "REJECTED", "REJECTED"),
    ("IN_REVIEW", "reject", "REJECTED", "REJECTED"),
    ("SUBMITTED", "request_info", "IN_REVIEW", "REQUEST_INFO"),
    ("IN_REVIEW", "request_info", "IN_REVIEW", "REQUEST_INFO"),
    ("SUBMITTED", "refer_to_minister", "REFERRED_TO_MINISTER", "REFERRED_TO_MINISTER"),
    ("IN_REVIEW", "refer_to_minister", "REFERRED_TO_MINISTER", "REFERRED_TO_MINISTER"),
    ("SUBMITTED", "approve", "ARCHIVED", "APPROVED"),
    ("IN_REVIEW", "approve", "ARCHIVED", "APPROVED"),
    ("REFERRED_TO_MINISTER", "minister_approve", "ARCHIVED", "MINISTER_APPROVED"),
    ("PENDING_MINISTER_APPROVAL", "minister_approve", "ARCHIVED", "MINISTER_APPROVED"),
    ("REFERRED_TO_MINISTER", "minister_reject", "REJECTED", "MINISTER_REJECTED"),
    ("PENDING_MINISTER_APPROVAL", "minister_reject", "REJECTED", "MINISTER_REJECTED"),
    ("REJECTED", "resubmit", "SUBMITTED", "SUBMITTED"),
]


class TestTransitionTable:
    @pytest.mark.parametrize("status,action,expected,log_action", LEGAL)
    def test_legal_transition(self, status, action, expected, log_action):
        result = _apply(status, action)
        assert result.previous_status == status
        assert result.new_status == expected
        assert result.changes["status"] == expected
        assert result.log_entry.action == log_action
        assert result.snapshot.version == 4

    def test_illegal_pairs_raise(self):
        legal = {(s, a) for s, a, _, _ in LEGAL}
        for status in APPLICATION_STATUSES:
            for action in WORKFLOW_TRANSITIONS:
                if (status, action) in legal:
                    continue
                with pytest.raises(InvalidTransitionError) as exc:
                    _apply(status, action)
                assert exc.value.current_status == status
                assert exc.value.action == action

    def test_approved_status_has_no_outgoing_actions(self):
        assert get_available_actions("APPROVED") == []
        assert get_available_actions("ARCHIVED") == []

    def test_available_actions_for_review(self):
        assert set(get_available_actions("IN_REVIEW")) == {
            "reject", "request_info", "refer_to_minister", "approve",
        }

    def test_validate_transition_unknown_action(self):
        result = validate_transition("DRAFT", "teleport")
        assert result["valid"] is False
        assert "Unknown action" in result["reason"]


# ═════════════════════════════════════════════════════════════════════════
# GUARDS
# ═════════════════════════════════════════════════════════════════════════

class TestGuards:
    def test_submit_requires_dates_and_emails(self):
        with pytest.raises(ValidationError) as exc:
            _apply("DRAFT", "submit", start_date=None, minister_email="", hod_email="not-an-email")
        assert set(exc.value.details) == {"start_date", "minister_email", "hod_email"}

    def test_submit_rejects_end_before_start(self):
        with pytest.raises(ValidationError) as exc:
            _apply("DRAFT", "submit", end_date=date(2026, 11, 1))
        assert "end_date" in exc.value.details

    def test_check_submission_data_clean(self):
        assert check_submission_data(_snapshot()) == {}

    def test_submit_by_someone_else_is_forbidden(self):
        payload = parse_payload("submit")
        with pytest.raises(ForbiddenError):
            apply_transition(_snapshot("DRAFT"), payload, REVIEWER, NOW)

    def test_resubmit_by_someone_else_is_forbidden(self):
        payload = parse_payload("resubmit")
        with pytest.raises(ForbiddenError):
            apply_transition(_snapshot("REJECTED"), payload, REVIEWER, NOW)

    def test_resubmit_checks_ownership_only(self):
        result = _apply("REJECTED", "resubmit", minister_email="", end_date=None)
        assert result.new_status == "SUBMITTED"

    def test_invalid_transition_checked_before_guards(self):
        # An ARCHIVED application with broken data still reports the state problem
        with pytest.raises(InvalidTransitionError):
            _apply("ARCHIVED", "submit", start_date=None)


# ═════════════════════════════════════════════════════════════════════════
# FIELD CHANGES & LOG
# ═════════════════════════════════════════════════════════════════════════

class TestChanges:
    def test_submit_sets_submitted_at(self):
        result = _apply("DRAFT", "submit")
        assert result.changes["submitted_at"] == NOW
        assert result.log_entry.sequence == 1
        assert result.log_entry.note is None

    def test_reject_sets_decided_at(self):
        result = _apply("IN_REVIEW", "reject", "Budget exhausted")
        assert result.changes["decided_at"] == NOW
        assert "archived_at" not in result.changes
        assert result.log_entry.note == "Budget exhausted"
        assert result.changes["current_reviewer_id"] == REVIEWER.id

    def test_minister_approve_sets_equal_decided_and_archived(self):
        result = _apply("REFERRED_TO_MINISTER", "minister_approve")
        assert result.changes["decided_at"] == result.changes["archived_at"] == NOW

    def test_direct_approve_logs_justification(self):
        result = _apply("SUBMITTED", "approve", "Minister approved verbally")
        assert result.new_status == "ARCHIVED"
        assert result.log_entry.action == "APPROVED"
        assert result.log_entry.note == "Minister approved verbally"

    def test_refer_records_minister_email(self):
        result = _apply("IN_REVIEW", "refer_to_minister", "other.minister@x.gov")
        assert result.changes["minister_email"] == "other.minister@x.gov"
        assert result.log_entry.note == "other.minister@x.gov"

    def test_resubmit_clears_decided_at(self):
        result = _apply("REJECTED", "resubmit", decided_at=NOW - timedelta(days=2))
        assert result.changes["decided_at"] is None
        assert result.snapshot.decided_at is None
        assert result.log_entry.note == "resubmitted by user"

    def test_log_sequence_follows_existing_entries(self):
        result = _apply("IN_REVIEW", "request_info", "Need the agenda", log_length=4)
        assert result.log_entry.sequence == 5

    def test_log_timestamp_never_regresses(self):
        later = NOW + timedelta(minutes=5)
        result = _apply("IN_REVIEW", "reject", last_log_timestamp=later)
        assert result.log_entry.timestamp > later

    def test_naive_now_treated_as_utc(self):
        payload = parse_payload("submit")
        result = apply_transition(_snapshot(), payload, REQUESTER, datetime(2026, 10, 1, 9, 30))
        assert result.log_entry.timestamp == NOW

    def test_actor_snapshot_copied_into_log(self):
        result = _apply("SUBMITTED", "reject")
        assert result.log_entry.actor_id == REVIEWER.id
        assert result.log_entry.actor_name == "Rita Review"
        assert result.log_entry.actor_email == "reviewer@pmo.gov.nr"


class TestIntents:
    def test_submit_notifies_requester_and_reviewers(self):
        roles = [n.recipient_role for n in _apply("DRAFT", "submit").notifications]
        assert roles == [RECIPIENT_REQUESTER, RECIPIENT_REVIEWERS]

    def test_refer_notifies_the_referred_minister(self):
        (intent,) = _apply("SUBMITTED", "refer_to_minister", "minister@x.gov").notifications
        assert intent.recipient_role == RECIPIENT_MINISTER
        assert intent.recipient_email == "minister@x.gov"
        assert intent.include_review_link is True

    def test_disabled_notifications_yield_none(self):
        payload = parse_payload("reject", "no")
        result = apply_transition(_snapshot("IN_REVIEW"), payload, REVIEWER, NOW, {"enabled": False})
        assert result.notifications == ()
