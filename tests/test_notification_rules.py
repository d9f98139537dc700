"""
Notification fan-out rule tests (pure).
"""

from types import SimpleNamespace

from traveldesk.services.notification_rules import (
    RECIPIENT_MINISTER,
    RECIPIENT_REQUESTER,
    RECIPIENT_REVIEWERS,
    TEMPLATE_APPROVED,
    TEMPLATE_INFO_REQUESTED,
    TEMPLATE_MINISTER_REFERRAL,
    TEMPLATE_REJECTED,
    TEMPLATE_SUBMITTED,
    TEMPLATE_SUBMITTED_REVIEWER,
    fan_out,
)
from traveldesk.services.payloads import Actor

APP = SimpleNamespace(minister_email="minister@x.gov")
REVIEWER = Actor(id=2, roles=("REVIEWER",), email="reviewer@pmo.gov.nr", name="Rita Review")


def _pairs(intents):
    return [(i.recipient_role, i.template_key) for i in intents]


class TestSubmission:
    def test_submit(self):
        intents = fan_out("DRAFT", "SUBMITTED", "submit", APP)
        assert _pairs(intents) == [
            (RECIPIENT_REQUESTER, TEMPLATE_SUBMITTED),
            (RECIPIENT_REVIEWERS, TEMPLATE_SUBMITTED_REVIEWER),
        ]
        assert intents[1].include_review_link is True

    def test_resubmit_matches_submit(self):
        assert _pairs(fan_out("REJECTED", "SUBMITTED", "resubmit", APP)) == _pairs(
            fan_out("DRAFT", "SUBMITTED", "submit", APP)
        )

    def test_applicant_copy_can_be_switched_off(self):
        intents = fan_out("DRAFT", "SUBMITTED", "submit", APP, {"notifyApplicantOnSubmission": False})
        assert _pairs(intents) == [(RECIPIENT_REVIEWERS, TEMPLATE_SUBMITTED_REVIEWER)]

    def test_submission_group_switched_off(self):
        assert fan_out("DRAFT", "SUBMITTED", "submit", APP, {"applicationSubmitted": False}) == []


class TestDecisions:
    def test_referral_goes_to_minister_email(self):
        (intent,) = fan_out("IN_REVIEW", "REFERRED_TO_MINISTER", "refer_to_minister", APP,
                            actor=REVIEWER, note="minister@x.gov")
        assert (intent.recipient_role, intent.template_key) == (RECIPIENT_MINISTER, TEMPLATE_MINISTER_REFERRAL)
        assert intent.recipient_email == "minister@x.gov"
        assert intent.context["reviewer_name"] == "Rita Review"

    def test_direct_and_minister_approval_notify_requester(self):
        for action, old in (("approve", "IN_REVIEW"), ("minister_approve", "REFERRED_TO_MINISTER")):
            (intent,) = fan_out(old, "ARCHIVED", action, APP, actor=REVIEWER, note="ok")
            assert (intent.recipient_role, intent.template_key) == (RECIPIENT_REQUESTER, TEMPLATE_APPROVED)
            assert intent.context == {
                "reviewer_name": "Rita Review",
                "reviewer_email": "reviewer@pmo.gov.nr",
                "note": "ok",
            }

    def test_rejection_carries_reason(self):
        (intent,) = fan_out("IN_REVIEW", "REJECTED", "reject", APP, actor=REVIEWER, note="Over budget")
        assert intent.template_key == TEMPLATE_REJECTED
        assert intent.context["reason"] == "Over budget"

    def test_minister_rejection_without_reason(self):
        (intent,) = fan_out("REFERRED_TO_MINISTER", "REJECTED", "minister_reject", APP)
        assert intent.template_key == TEMPLATE_REJECTED
        assert intent.context["reason"] is None

    def test_request_info(self):
        (intent,) = fan_out("IN_REVIEW", "IN_REVIEW", "request_info", APP, note="Send agenda")
        assert intent.template_key == TEMPLATE_INFO_REQUESTED
        assert intent.context["note"] == "Send agenda"

    def test_approval_group_switched_off(self):
        assert fan_out("IN_REVIEW", "ARCHIVED", "approve", APP, {"applicationApproved": False}) == []

    def test_master_switch(self):
        assert fan_out("IN_REVIEW", "REJECTED", "reject", APP, {"enabled": False}) == []
