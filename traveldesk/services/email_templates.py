"""
Notification email templates and their renderer.

Templates live in the settings document (``email.templates``) so admins can
edit them; the defaults below seed it.  Syntax:

    {{variable}}                 replaced by the variable's value
    {{#if name}} ... {{/if}}     kept only when ``name`` is non-empty

Supported conditionals are ``reason``, ``note`` and ``reviewerName``; unknown
placeholders are left as-is so a typo is visible in the delivered mail.

Variables are built by ``build_context`` from the application row, the
requester and the intent context.  Dates are shown as dd/mm/yyyy in the
configured display offset (UTC+12 by default).
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone

_FRAME_OPEN = """
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; color: #333;">
    <div style="background: {color}; color: white; padding: 16px 24px; border-radius: 8px 8px 0 0;">
        <h2 style="margin: 0; font-size: 18px;">{title}</h2>
    </div>
    <div style="background: #fafafa; padding: 24px; border: 1px solid #e5e7eb; border-top: none;">
"""

_FRAME_CLOSE = """
    </div>
    <div style="background: #f1f5f9; padding: 12px 24px; border-radius: 0 0 8px 8px;
                border: 1px solid #e5e7eb; border-top: none; text-align: center;">
        <p style="color: #94a3b8; font-size: 12px; margin: 0;">Travel Desk - Automated notification</p>
    </div>
</div>
"""

_DETAILS = """
        <div style="background: white; padding: 16px; margin: 16px 0; border-left: 3px solid {color};">
            <p style="margin: 4px 0;"><strong>Application Number:</strong>
                <a href="{{{{applicationLink}}}}">{{{{applicationNumber}}}}</a></p>
            <p style="margin: 4px 0;"><strong>Event:</strong> {{{{eventTitle}}}}</p>
            <p style="margin: 4px 0;"><strong>Department:</strong> {{{{department}}}}</p>
            <p style="margin: 4px 0;"><strong>Travel Dates:</strong>
                {{{{startDate}}}} to {{{{endDate}}}} ({{{{durationDays}}}} days)</p>
            <p style="margin: 4px 0;"><strong>Travellers:</strong> {{{{numberOfTravellers}}}}</p>
            <p style="margin: 4px 0;"><strong>Total Cost:</strong> {{{{totalCost}}}}</p>
        </div>
"""


def _frame(color: str, title: str, inner: str) -> str:
    return (
        _FRAME_OPEN.format(color=color, title=title)
        + inner
        + _FRAME_CLOSE
    ).strip()


def _details(color: str) -> str:
    return _DETAILS.format(color=color)


DEFAULT_TEMPLATES: dict[str, dict[str, str]] = {
    "applicationSubmitted": {
        "subject": "Travel Application Submitted - {{applicationNumber}}",
        "body": _frame("#f97316", "Travel Application Submitted", """
        <p>Dear {{applicantName}},</p>
        <p>Your travel application has been submitted successfully and is now pending review.</p>
""" + _details("#f97316") + """
        <p>You will be notified once your application has been reviewed.</p>
        <p><a href="{{statusLink}}">Check Application Status</a></p>
"""),
    },
    "applicationSubmittedReviewer": {
        "subject": "New Travel Application Submitted: {{eventTitle}}",
        "body": _frame("#f97316", "New Travel Application Submitted", """
        <p>A new travel application has been submitted by {{applicantName}} ({{applicantEmail}})
           and requires your review.</p>
""" + _details("#f97316") + """
        <p>Please log in to the system to review this application.</p>
"""),
    },
    "applicationApproved": {
        "subject": "Travel Application Approved: {{eventTitle}}",
        "body": _frame("#059669", "Travel Application Approved", """
        <p><strong>Date:</strong> {{currentDate}}</p>
        <p>Dear {{applicantName}},</p>
        <p style="color: #059669; font-weight: bold;">Your travel application has been approved!</p>
""" + _details("#059669") + """
        <p><strong>Reason for Participation:</strong> {{reasonForParticipation}}</p>
        {{#if note}}<p><strong>Note:</strong><br>{{note}}</p>{{/if}}
        {{#if reviewerName}}<p><strong>Approved by:</strong> {{reviewerName}} ({{reviewerEmail}})</p>{{/if}}
        <p>Please proceed with your travel arrangements. This approval may be attached to payment instructions.</p>
        <p><a href="{{statusLink}}">View Application Details Online</a></p>
"""),
    },
    "applicationRejected": {
        "subject": "Travel Application Rejected: {{eventTitle}}",
        "body": _frame("#dc2626", "Travel Application Rejected", """
        <p>Dear {{applicantName}},</p>
        <p>We regret to inform you that your travel application has been rejected.</p>
""" + _details("#dc2626") + """
        {{#if reason}}<p><strong>Reason for Rejection:</strong><br>{{reason}}</p>{{/if}}
        {{#if reviewerName}}<p><strong>Reviewed by:</strong> {{reviewerName}}</p>{{/if}}
        <p>If you have questions about this decision, please contact the reviewer.</p>
        <p><a href="{{statusLink}}">View Application Details</a></p>
"""),
    },
    "informationRequested": {
        "subject": "Additional Information Required: {{eventTitle}}",
        "body": _frame("#f59e0b", "Additional Information Required", """
        <p>Dear {{applicantName}},</p>
        <p>The reviewer has requested additional information for your travel application.</p>
""" + _details("#f59e0b") + """
        {{#if note}}<p><strong>Information Requested:</strong><br>{{note}}</p>{{/if}}
        {{#if reviewerName}}<p><strong>Reviewed by:</strong> {{reviewerName}} ({{reviewerEmail}})</p>{{/if}}
        <p><a href="{{statusLink}}">Provide Additional Information</a></p>
"""),
    },
    "ministerReferral": {
        "subject": "Travel Application Referred for Review: {{eventTitle}}",
        "body": _frame("#1e293b", "Travel Application Referred for Your Approval", """
        <p>A travel application from {{applicantName}} ({{applicantEmail}}) has been referred to you
           for approval.</p>
""" + _details("#1e293b") + """
        {{#if reviewerName}}<p><strong>Referred by:</strong> {{reviewerName}} ({{reviewerEmail}})</p>{{/if}}
        <p>Please log in to the system to review this application.</p>
"""),
    },
}

_CONDITIONAL_RE = re.compile(r"\{\{#if (\w+)\}\}(.*?)\{\{/if\}\}", re.DOTALL)
_VARIABLE_RE = re.compile(r"\{\{(\w+)\}\}")
_REVIEW_PROMPT_RE = re.compile(r"(Please log in to the system to review this application\.)", re.IGNORECASE)

_REVIEW_BUTTON = (
    '<br><br><div style="text-align: center;"><a href="{link}" style="display: inline-block; '
    "padding: 12px 24px; background-color: #dc2626; color: white; text-decoration: none; "
    'border-radius: 5px;">Review Application</a></div>'
)


def render(template: str, variables: dict) -> str:
    """Expand conditionals, then placeholders."""

    def _conditional(match):
        return match.group(2) if variables.get(match.group(1)) else ""

    def _variable(match):
        key = match.group(1)
        if key not in variables:
            return match.group(0)
        value = variables[key]
        return "" if value is None else str(value)

    text = _CONDITIONAL_RE.sub(_conditional, template)
    return _VARIABLE_RE.sub(_variable, text)


def inject_review_link(body: str, review_link: str) -> str:
    """Add a "Review Application" button unless the body already links to ``review_link``."""
    if f'href="{review_link}"' in body:
        return body
    button = _REVIEW_BUTTON.format(link=review_link)
    if _REVIEW_PROMPT_RE.search(body):
        return _REVIEW_PROMPT_RE.sub(lambda m: m.group(1) + button, body, count=1)
    return body + button


def format_display_date(value, utc_offset_hours: int = 12) -> str:
    """dd/mm/yyyy in the display timezone; calendar dates are shown as-is."""
    if value is None:
        return "N/A"
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.astimezone(timezone(timedelta(hours=utc_offset_hours)))
    elif not isinstance(value, date):
        return "Invalid date"
    return value.strftime("%d/%m/%Y")


def format_cost(value) -> str:
    return f"${float(value or 0):,.2f}"


def build_context(
    application,
    *,
    applicant=None,
    client_url: str = "",
    review_link: str | None = None,
    utc_offset_hours: int = 12,
    extra: dict | None = None,
    now: datetime | None = None,
) -> dict:
    """
    Template variables for one application.

    Args:
        application: TravelApplication row (read at send time).
        applicant: The requester's User row; falls back to the snapshot on
            the application when missing.
        client_url: Base URL of the web client.
        review_link: Reviewer / minister page, when the recipient decides.
        extra: Intent context (reviewer_name, reviewer_email, note, reason).
    """
    extra = extra or {}
    now = now or datetime.now(timezone.utc)
    my_applications = f"{client_url}/#/my-applications"

    if applicant is not None:
        applicant_name = applicant.full_name
        applicant_email = applicant.email
    else:
        applicant_name = f"{application.requester_first_name or ''} {application.requester_last_name or ''}".strip()
        applicant_email = application.requester_email

    return {
        "applicationNumber": application.application_number or application.id[:8],
        "applicationLink": my_applications,
        "statusLink": my_applications,
        "reviewLink": review_link or "",
        "eventTitle": application.event_title or "",
        "applicantName": applicant_name,
        "applicantEmail": applicant_email or "",
        "department": application.department or "",
        "startDate": format_display_date(application.start_date, utc_offset_hours),
        "endDate": format_display_date(application.end_date, utc_offset_hours),
        "durationDays": application.duration_days or 0,
        "numberOfTravellers": application.number_of_travellers or 0,
        "totalCost": format_cost(application.total_cost),
        "reasonForParticipation": application.reason_for_participation or "",
        "reviewerName": extra.get("reviewer_name") or "",
        "reviewerEmail": extra.get("reviewer_email") or "",
        "note": extra.get("note") or "",
        "reason": extra.get("reason") or "",
        "currentDate": format_display_date(now, utc_offset_hours),
    }
