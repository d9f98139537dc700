"""
Minister API tests - referral queue and final decisions.
"""

import pytest
from sqlalchemy import select

from traveldesk.models import db
from traveldesk.models.application import TravelApplication
from traveldesk.models.notification import EmailLog


@pytest.fixture()
def minister_headers(minister, auth_headers):
    return auth_headers(minister)


@pytest.fixture()
def referred(client, submitted, reviewer, auth_headers):
    res = client.post(
        f"/api/v1/reviewer/{submitted['id']}/decision",
        json={"action": "REFERRED_TO_MINISTER", "note": "minister@x.gov"},
        headers=auth_headers(reviewer),
    )
    assert res.status_code == 200
    return res.get_json()


def _decide(client, headers, app_id, action, note=None):
    return client.post(
        f"/api/v1/minister/{app_id}/decision",
        json={"action": action, "note": note},
        headers=headers,
    )


def _emails(application_id, template_key):
    return list(db.session.scalars(
        select(EmailLog)
        .where(EmailLog.application_id == application_id, EmailLog.template_key == template_key)
    ))


class TestQueue:
    def test_queue_has_referrals_only(self, client, minister_headers, referred, application_data,
                                      requester, auth_headers):
        client.post("/api/v1/applications", json={**application_data, "submit": True},
                    headers=auth_headers(requester))
        res = client.get("/api/v1/minister/queue", headers=minister_headers)
        assert res.status_code == 200
        assert [a["id"] for a in res.get_json()] == [referred["id"]]

    def test_pending_alias_is_listed(self, client, minister_headers, referred):
        app = db.session.get(TravelApplication, referred["id"])
        app.status = "PENDING_MINISTER_APPROVAL"
        db.session.commit()
        res = client.get("/api/v1/minister/queue", headers=minister_headers)
        assert [a["status"] for a in res.get_json()] == ["PENDING_MINISTER_APPROVAL"]

    def test_reviewer_cannot_see_minister_queue(self, client, reviewer, auth_headers):
        assert client.get("/api/v1/minister/queue", headers=auth_headers(reviewer)).status_code == 403


class TestDecision:
    def test_minister_approves(self, client, minister_headers, referred):
        """Scenario C."""
        res = _decide(client, minister_headers, referred["id"], "MINISTER_APPROVED")
        assert res.status_code == 200
        data = res.get_json()
        assert data["status"] == "ARCHIVED"
        assert data["decided_at"] is not None
        assert data["decided_at"] == data["archived_at"]
        assert data["approval_log"][-1]["action"] == "MINISTER_APPROVED"
        assert data["approval_log"][-1]["actor_name"] == "Milo Minister"

        approved = _emails(referred["id"], "applicationApproved")
        assert [e.recipient_email for e in approved] == ["requester@finance.gov.nr"]

    def test_minister_rejects(self, client, minister_headers, referred):
        res = _decide(client, minister_headers, referred["id"], "MINISTER_REJECTED", "Not a priority")
        data = res.get_json()
        assert data["status"] == "REJECTED"
        assert data["approval_log"][-1]["note"] == "Not a priority"
        assert len(_emails(referred["id"], "applicationRejected")) == 1

    def test_decides_pending_alias(self, client, minister_headers, referred):
        app = db.session.get(TravelApplication, referred["id"])
        app.status = "PENDING_MINISTER_APPROVAL"
        db.session.commit()
        res = _decide(client, minister_headers, referred["id"], "MINISTER_APPROVED")
        assert res.get_json()["status"] == "ARCHIVED"

    def test_cannot_decide_before_referral(self, client, minister_headers, submitted):
        res = _decide(client, minister_headers, submitted["id"], "MINISTER_APPROVED")
        assert res.status_code == 409
        assert res.get_json()["details"]["current_status"] == "SUBMITTED"

    def test_reviewer_label_refused_here(self, client, minister_headers, referred):
        assert _decide(client, minister_headers, referred["id"], "APPROVED", "ok").status_code == 422

    def test_history_lists_decided(self, client, minister_headers, referred):
        _decide(client, minister_headers, referred["id"], "MINISTER_APPROVED")
        res = client.get("/api/v1/minister/archived", headers=minister_headers)
        assert [a["id"] for a in res.get_json()] == [referred["id"]]
