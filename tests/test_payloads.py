"""
Decision payload parsing and action-name normalisation.
"""

import pytest

from traveldesk.core.exceptions import ValidationError
from traveldesk.services.payloads import (
    MINISTER_ACTION_LABELS,
    REVIEWER_ACTION_LABELS,
    ApprovePayload,
    ReferPayload,
    RejectPayload,
    normalize_action,
    parse_payload,
)


class TestNormalizeAction:
    def test_engine_name_passes_through(self):
        assert normalize_action("refer_to_minister") == "refer_to_minister"

    def test_reviewer_labels(self):
        assert normalize_action("APPROVED", REVIEWER_ACTION_LABELS) == "approve"
        assert normalize_action("REFERRED_TO_MINISTER", REVIEWER_ACTION_LABELS) == "refer_to_minister"
        assert normalize_action("reject", REVIEWER_ACTION_LABELS) == "reject"

    def test_minister_label_not_accepted_by_reviewer_endpoint(self):
        with pytest.raises(ValidationError):
            normalize_action("MINISTER_APPROVED", REVIEWER_ACTION_LABELS)

    def test_submit_not_accepted_by_minister_endpoint(self):
        with pytest.raises(ValidationError):
            normalize_action("submit", MINISTER_ACTION_LABELS)

    @pytest.mark.parametrize("raw", [None, "", "delete", "APPROVED"])
    def test_unknown(self, raw):
        with pytest.raises(ValidationError):
            normalize_action(raw)


class TestParsePayload:
    def test_refer_requires_email(self):
        with pytest.raises(ValidationError) as exc:
            parse_payload("refer_to_minister", "   ")
        assert "note" in exc.value.details

    def test_refer_rejects_malformed_email(self):
        with pytest.raises(ValidationError):
            parse_payload("refer_to_minister", "the minister")

    def test_refer(self):
        payload = parse_payload("refer_to_minister", " minister@x.gov ")
        assert payload == ReferPayload(minister_email="minister@x.gov")
        assert payload.log_note == "minister@x.gov"

    def test_direct_approve_requires_justification(self):
        with pytest.raises(ValidationError):
            parse_payload("approve", "")
        assert parse_payload("approve", "Signed memo 12/10") == ApprovePayload(justification="Signed memo 12/10")

    def test_reject_note_optional(self):
        assert parse_payload("reject") == RejectPayload(reason=None)
        assert parse_payload("reject", "Over budget").log_note == "Over budget"

    def test_resubmit_note_is_fixed(self):
        assert parse_payload("resubmit", "ignored").log_note == "resubmitted by user"
