"""
Reviewer API tests - queue, open/claim, decisions over HTTP.

Tests cover:
  - Queue contents and role gate
  - Opening a SUBMITTED application claims it (no log, no email)
  - APPROVED / REJECTED / REQUEST_INFO / REFERRED_TO_MINISTER labels
  - Refusals leave the application untouched
"""

import pytest
from sqlalchemy import select

from traveldesk.models import db
from traveldesk.models.notification import EmailLog


@pytest.fixture()
def reviewer_headers(reviewer, auth_headers):
    return auth_headers(reviewer)


def _decide(client, headers, app_id, action, note=None):
    body = {"action": action}
    if note is not None:
        body["note"] = note
    return client.post(f"/api/v1/reviewer/{app_id}/decision", json=body, headers=headers)


def _emails(application_id):
    return list(db.session.scalars(
        select(EmailLog).where(EmailLog.application_id == application_id).order_by(EmailLog.id)
    ))


class TestQueue:
    def test_queue_lists_pending(self, client, reviewer_headers, draft, submitted):
        res = client.get("/api/v1/reviewer/queue", headers=reviewer_headers)
        assert res.status_code == 200
        assert [a["id"] for a in res.get_json()] == [submitted["id"]]

    def test_requester_cannot_see_queue(self, client, requester, auth_headers):
        res = client.get("/api/v1/reviewer/queue", headers=auth_headers(requester))
        assert res.status_code == 403
        assert res.get_json()["details"]["required_roles"] == ["REVIEWER", "ADMIN"]

    def test_admin_can_see_queue(self, client, admin, auth_headers, submitted):
        res = client.get("/api/v1/reviewer/queue", headers=auth_headers(admin))
        assert res.status_code == 200

    def test_archived_list(self, client, reviewer_headers, submitted):
        _decide(client, reviewer_headers, submitted["id"], "APPROVED", "Cleared by cabinet")
        res = client.get("/api/v1/reviewer/archived", headers=reviewer_headers)
        assert [a["status"] for a in res.get_json()] == ["ARCHIVED"]


class TestOpen:
    def test_open_claims_submitted(self, client, reviewer_headers, reviewer, submitted):
        emails_before = len(_emails(submitted["id"]))
        res = client.get(f"/api/v1/reviewer/{submitted['id']}", headers=reviewer_headers)
        assert res.status_code == 200
        data = res.get_json()
        assert data["status"] == "IN_REVIEW"
        assert data["current_reviewer_id"] == reviewer.id
        assert [e["action"] for e in data["approval_log"]] == ["SUBMITTED"]
        assert len(_emails(submitted["id"])) == emails_before

    def test_open_missing(self, client, reviewer_headers):
        assert client.get("/api/v1/reviewer/missing", headers=reviewer_headers).status_code == 404


class TestDecision:
    def test_submit_notifies_requester_and_reviewers(self, client, reviewer, second_reviewer,
                                                     requester, draft, auth_headers):
        """Scenario A."""
        res = client.post(f"/api/v1/applications/{draft['id']}/submit", headers=auth_headers(requester))
        assert res.status_code == 200
        sent = {(e.recipient_email, e.template_key, e.status) for e in _emails(draft["id"])}
        assert sent == {
            ("requester@finance.gov.nr", "applicationSubmitted", "sent"),
            ("reviewer@pmo.gov.nr", "applicationSubmittedReviewer", "sent"),
            ("reviewer2@pmo.gov.nr", "applicationSubmittedReviewer", "sent"),
        }

    def test_refer_to_minister(self, client, reviewer_headers, submitted):
        """Scenario B."""
        res = _decide(client, reviewer_headers, submitted["id"], "REFERRED_TO_MINISTER", "minister@x.gov")
        assert res.status_code == 200
        data = res.get_json()
        assert data["status"] == "REFERRED_TO_MINISTER"
        assert data["minister_email"] == "minister@x.gov"
        entry = data["approval_log"][-1]
        assert (entry["action"], entry["note"], entry["actor_name"]) == (
            "REFERRED_TO_MINISTER", "minister@x.gov", "Rita Review",
        )

        referral = [e for e in _emails(submitted["id"]) if e.template_key == "ministerReferral"]
        assert [e.recipient_email for e in referral] == ["minister@x.gov"]
        assert "http://travel.test/#/minister" in referral[0].html_body

    def test_refer_without_email(self, client, reviewer_headers, submitted):
        res = _decide(client, reviewer_headers, submitted["id"], "REFERRED_TO_MINISTER", "")
        assert res.status_code == 422
        assert "note" in res.get_json()["details"]

    def test_direct_approve_without_justification(self, client, reviewer_headers, submitted):
        """Scenario E."""
        res = _decide(client, reviewer_headers, submitted["id"], "APPROVED")
        assert res.status_code == 422
        after = client.get(f"/api/v1/applications/{submitted['id']}", headers=reviewer_headers).get_json()
        assert after["status"] == "SUBMITTED"
        assert after["version"] == submitted["version"]
        assert len(after["approval_log"]) == 1

    def test_direct_approve_archives(self, client, reviewer_headers, submitted):
        res = _decide(client, reviewer_headers, submitted["id"], "APPROVED", "Signed memo 12/10")
        data = res.get_json()
        assert data["status"] == "ARCHIVED"
        assert data["decided_at"] == data["archived_at"]
        approved = [e for e in _emails(submitted["id"]) if e.template_key == "applicationApproved"]
        assert [e.recipient_email for e in approved] == ["requester@finance.gov.nr"]
        assert "Signed memo 12/10" in approved[0].html_body

    def test_reject_with_reason(self, client, reviewer_headers, submitted):
        res = _decide(client, reviewer_headers, submitted["id"], "REJECTED", "Over budget")
        assert res.get_json()["status"] == "REJECTED"
        (rejected,) = [e for e in _emails(submitted["id"]) if e.template_key == "applicationRejected"]
        assert "Over budget" in rejected.html_body

    def test_request_info_keeps_in_review(self, client, reviewer_headers, submitted):
        res = _decide(client, reviewer_headers, submitted["id"], "REQUEST_INFO", "Send the agenda")
        assert res.get_json()["status"] == "IN_REVIEW"
        assert res.get_json()["approval_log"][-1]["action"] == "REQUEST_INFO"

    def test_decide_twice(self, client, reviewer_headers, submitted):
        _decide(client, reviewer_headers, submitted["id"], "REJECTED", "No")
        res = _decide(client, reviewer_headers, submitted["id"], "APPROVED", "Changed my mind")
        assert res.status_code == 409
        assert res.get_json()["details"] == {"action": "approve", "current_status": "REJECTED"}

    def test_missing_justification_on_rejected_application(self, client, reviewer_headers, submitted):
        _decide(client, reviewer_headers, submitted["id"], "REJECTED", "No")
        res = _decide(client, reviewer_headers, submitted["id"], "APPROVED")
        assert res.status_code == 409
        assert res.get_json()["details"] == {"action": "approve", "current_status": "REJECTED"}

    def test_decide_on_draft(self, client, reviewer_headers, draft):
        res = _decide(client, reviewer_headers, draft["id"], "REJECTED")
        assert res.status_code == 409

    def test_unknown_action(self, client, reviewer_headers, submitted):
        res = _decide(client, reviewer_headers, submitted["id"], "FAST_TRACK")
        assert res.status_code == 422

    def test_minister_label_refused_here(self, client, reviewer_headers, submitted):
        res = _decide(client, reviewer_headers, submitted["id"], "MINISTER_APPROVED")
        assert res.status_code == 422

    def test_missing_application(self, client, reviewer_headers):
        assert _decide(client, reviewer_headers, "missing", "REJECTED").status_code == 404

    def test_requester_blocked_by_role_gate(self, client, requester, auth_headers, submitted):
        res = _decide(client, auth_headers(requester), submitted["id"], "REJECTED")
        assert res.status_code == 403
