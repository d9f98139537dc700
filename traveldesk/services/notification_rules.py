"""
Notification fan-out rules.

Pure mapping from one workflow transition to the notifications it implies.
Nothing here sends mail or reads the database: recipients are described by
role ("requester", "reviewers", "minister") and resolved to addresses by the
dispatcher at send time, because role membership and emails may change
between the transition and delivery.

Rules:
    submit / resubmit      requester  -> applicationSubmitted (if notifyApplicantOnSubmission)
                           reviewers  -> applicationSubmittedReviewer
    refer_to_minister      minister   -> ministerReferral (carries a review link)
    approve / minister_*   requester  -> applicationApproved (actor name, email, note)
    reject / minister_*    requester  -> applicationRejected (reason if given)
    request_info           requester  -> informationRequested (question)

The ``notifications`` settings section can switch groups off; see
``DEFAULT_NOTIFICATION_SETTINGS``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from traveldesk.models.application import (
    ACTION_APPROVE,
    ACTION_MINISTER_APPROVE,
    ACTION_MINISTER_REJECT,
    ACTION_REFER_TO_MINISTER,
    ACTION_REJECT,
    ACTION_REQUEST_INFO,
    ACTION_RESUBMIT,
    ACTION_SUBMIT,
)

RECIPIENT_REQUESTER = "requester"
RECIPIENT_REVIEWERS = "reviewers"
RECIPIENT_MINISTER = "minister"

TEMPLATE_SUBMITTED = "applicationSubmitted"
TEMPLATE_SUBMITTED_REVIEWER = "applicationSubmittedReviewer"
TEMPLATE_APPROVED = "applicationApproved"
TEMPLATE_REJECTED = "applicationRejected"
TEMPLATE_INFO_REQUESTED = "informationRequested"
TEMPLATE_MINISTER_REFERRAL = "ministerReferral"

DEFAULT_NOTIFICATION_SETTINGS = {
    "enabled": True,
    "applicationSubmitted": True,
    "applicationApproved": True,
    "applicationRejected": True,
    "notifyApplicantOnSubmission": True,
}


@dataclass(frozen=True)
class NotificationIntent:
    """One templated message for one recipient role."""

    recipient_role: str
    template_key: str
    recipient_email: str | None = None   # only for RECIPIENT_MINISTER
    context: dict[str, Any] = field(default_factory=dict)
    include_review_link: bool = False


def _flag(settings: dict, key: str) -> bool:
    return bool(settings.get(key, DEFAULT_NOTIFICATION_SETTINGS[key]))


def fan_out(
    old_status: str,
    new_status: str,
    action: str,
    application,
    notification_settings: dict | None = None,
    *,
    actor=None,
    note: str | None = None,
) -> list[NotificationIntent]:
    """Return the notifications implied by one transition.

    Args:
        old_status / new_status: the transition's endpoints.
        action: engine action name.
        application: post-transition snapshot (needs ``minister_email``).
        notification_settings: the ``email.notifications`` settings section.
        actor: the deciding Actor, copied into approval/rejection context.
        note: the payload's log note.
    """
    settings = notification_settings or DEFAULT_NOTIFICATION_SETTINGS
    if not _flag(settings, "enabled"):
        return []

    actor_context = {}
    if actor is not None:
        actor_context = {"reviewer_name": actor.name, "reviewer_email": actor.email}

    if action in (ACTION_SUBMIT, ACTION_RESUBMIT):
        if not _flag(settings, "applicationSubmitted"):
            return []
        intents = []
        if _flag(settings, "notifyApplicantOnSubmission"):
            intents.append(NotificationIntent(RECIPIENT_REQUESTER, TEMPLATE_SUBMITTED))
        intents.append(NotificationIntent(
            RECIPIENT_REVIEWERS, TEMPLATE_SUBMITTED_REVIEWER, include_review_link=True,
        ))
        return intents

    if action == ACTION_REFER_TO_MINISTER:
        return [NotificationIntent(
            RECIPIENT_MINISTER,
            TEMPLATE_MINISTER_REFERRAL,
            recipient_email=application.minister_email,
            context={**actor_context, "note": note},
            include_review_link=True,
        )]

    if action in (ACTION_APPROVE, ACTION_MINISTER_APPROVE):
        if not _flag(settings, "applicationApproved"):
            return []
        return [NotificationIntent(
            RECIPIENT_REQUESTER, TEMPLATE_APPROVED, context={**actor_context, "note": note},
        )]

    if action in (ACTION_REJECT, ACTION_MINISTER_REJECT):
        if not _flag(settings, "applicationRejected"):
            return []
        return [NotificationIntent(
            RECIPIENT_REQUESTER,
            TEMPLATE_REJECTED,
            context={**actor_context, "note": note, "reason": note},
        )]

    if action == ACTION_REQUEST_INFO:
        return [NotificationIntent(
            RECIPIENT_REQUESTER, TEMPLATE_INFO_REQUESTED, context={**actor_context, "note": note},
        )]

    return []
