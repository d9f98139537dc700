"""
Decision payloads - one typed variant per workflow action.

The decision router turns the inbound ``(action, note)`` pair into exactly
one of these, validating required fields once.  The workflow engine only
ever sees these well-typed values, never a raw request body.

Also home of ``Actor``, the immutable caller snapshot the router hands to
the engine (and the engine copies into the approval log).

Usage:
    from traveldesk.services.payloads import parse_payload

    payload = parse_payload("refer_to_minister", "minister@gov.nr")
    payload.minister_email   # "minister@gov.nr"
    payload.log_note         # what the approval log records
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from traveldesk.core.exceptions import ValidationError
from traveldesk.models.application import (
    ACTION_APPROVE,
    ACTION_MINISTER_APPROVE,
    ACTION_MINISTER_REJECT,
    ACTION_REFER_TO_MINISTER,
    ACTION_REJECT,
    ACTION_REQUEST_INFO,
    ACTION_RESUBMIT,
    ACTION_SUBMIT,
    RESUBMIT_NOTE,
)
from traveldesk.models.auth import ROLE_ADMIN, ROLE_MINISTER, ROLE_REVIEWER
from traveldesk.utils.helpers import is_valid_email


@dataclass(frozen=True)
class Actor:
    """Snapshot of the caller at decision time."""

    id: int
    roles: tuple[str, ...]
    email: str
    name: str

    def has_any_role(self, *roles: str) -> bool:
        return any(r in self.roles for r in roles)

    @classmethod
    def from_user(cls, user) -> Actor:
        return cls(
            id=user.id,
            roles=tuple(user.roles or ()),
            email=user.email,
            name=user.full_name or user.email,
        )


# ── Payload variants ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class SubmitPayload:
    action: ClassVar[str] = ACTION_SUBMIT

    @property
    def log_note(self) -> str | None:
        return None


@dataclass(frozen=True)
class ResubmitPayload:
    action: ClassVar[str] = ACTION_RESUBMIT

    @property
    def log_note(self) -> str:
        return RESUBMIT_NOTE


@dataclass(frozen=True)
class ReferPayload:
    minister_email: str
    action: ClassVar[str] = ACTION_REFER_TO_MINISTER

    @property
    def log_note(self) -> str:
        return self.minister_email


@dataclass(frozen=True)
class ApprovePayload:
    """Direct approval; the justification documents the out-of-band minister approval."""

    justification: str
    action: ClassVar[str] = ACTION_APPROVE

    @property
    def log_note(self) -> str:
        return self.justification


@dataclass(frozen=True)
class RejectPayload:
    reason: str | None = None
    action: ClassVar[str] = ACTION_REJECT

    @property
    def log_note(self) -> str | None:
        return self.reason


@dataclass(frozen=True)
class RequestInfoPayload:
    question: str | None = None
    action: ClassVar[str] = ACTION_REQUEST_INFO

    @property
    def log_note(self) -> str | None:
        return self.question


@dataclass(frozen=True)
class MinisterApprovePayload:
    note: str | None = None
    action: ClassVar[str] = ACTION_MINISTER_APPROVE

    @property
    def log_note(self) -> str | None:
        return self.note


@dataclass(frozen=True)
class MinisterRejectPayload:
    reason: str | None = None
    action: ClassVar[str] = ACTION_MINISTER_REJECT

    @property
    def log_note(self) -> str | None:
        return self.reason


DecisionPayload = (
    SubmitPayload
    | ResubmitPayload
    | ReferPayload
    | ApprovePayload
    | RejectPayload
    | RequestInfoPayload
    | MinisterApprovePayload
    | MinisterRejectPayload
)


# ── Role gates ───────────────────────────────────────────────────────────────

_REVIEWER_ROLES = (ROLE_REVIEWER, ROLE_ADMIN)
_MINISTER_ROLES = (ROLE_MINISTER, ROLE_ADMIN)

# Roles allowed to perform each action.  An empty tuple means "the original
# requester only" and is enforced by ownership, not role.
ACTION_ROLES: dict[str, tuple[str, ...]] = {
    ACTION_SUBMIT: (),
    ACTION_RESUBMIT: (),
    ACTION_REJECT: _REVIEWER_ROLES,
    ACTION_REQUEST_INFO: _REVIEWER_ROLES,
    ACTION_REFER_TO_MINISTER: _REVIEWER_ROLES,
    ACTION_APPROVE: _REVIEWER_ROLES,
    ACTION_MINISTER_APPROVE: _MINISTER_ROLES,
    ACTION_MINISTER_REJECT: _MINISTER_ROLES,
}

REQUESTER_ACTIONS = frozenset({ACTION_SUBMIT, ACTION_RESUBMIT})

# Labels the web client posts to the reviewer / minister decision endpoints
REVIEWER_ACTION_LABELS = {
    "APPROVED": ACTION_APPROVE,
    "REJECTED": ACTION_REJECT,
    "REQUEST_INFO": ACTION_REQUEST_INFO,
    "REFERRED_TO_MINISTER": ACTION_REFER_TO_MINISTER,
}
MINISTER_ACTION_LABELS = {
    "MINISTER_APPROVED": ACTION_MINISTER_APPROVE,
    "MINISTER_REJECTED": ACTION_MINISTER_REJECT,
}


def normalize_action(raw: str | None, labels: dict[str, str] | None = None) -> str:
    """Map an inbound action name (engine name or UI label) to the engine action.

    Raises ValidationError for unknown names.
    """
    action = (raw or "").strip()
    if labels and action in labels:
        return labels[action]
    if labels is not None and action not in labels.values():
        allowed = sorted(set(labels) | set(labels.values()))
        raise ValidationError(f"Invalid action '{action}'", details={"action": allowed})
    if action not in ACTION_ROLES:
        raise ValidationError(f"Invalid action '{action}'", details={"action": sorted(ACTION_ROLES)})
    return action


def _clean(note) -> str | None:
    if note is None:
        return None
    text = str(note).strip()
    return text or None


def parse_payload(action: str, note=None) -> DecisionPayload:
    """Build the typed payload for ``action``, validating required fields.

    Raises:
        ValidationError: unknown action, or a required note missing/malformed.
    """
    text = _clean(note)

    if action == ACTION_SUBMIT:
        return SubmitPayload()
    if action == ACTION_RESUBMIT:
        return ResubmitPayload()
    if action == ACTION_REFER_TO_MINISTER:
        if not text:
            raise ValidationError(
                "Minister email is required for referral",
                details={"note": "minister email is required"},
            )
        if not is_valid_email(text):
            raise ValidationError(
                "Invalid minister email format",
                details={"note": f"'{text}' is not a valid email address"},
            )
        return ReferPayload(minister_email=text)
    if action == ACTION_APPROVE:
        if not text:
            raise ValidationError(
                "A justification note is required to approve directly",
                details={"note": "justification is required"},
            )
        return ApprovePayload(justification=text)
    if action == ACTION_REJECT:
        return RejectPayload(reason=text)
    if action == ACTION_REQUEST_INFO:
        return RequestInfoPayload(question=text)
    if action == ACTION_MINISTER_APPROVE:
        return MinisterApprovePayload(note=text)
    if action == ACTION_MINISTER_REJECT:
        return MinisterRejectPayload(reason=text)

    raise ValidationError(f"Invalid action '{action}'", details={"action": sorted(ACTION_ROLES)})
