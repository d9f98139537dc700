"""
Notification Dispatcher - delivers fan-out intents after a transition commits.

Deliveries run on a bounded ThreadPoolExecutor (``NOTIFY_MAX_WORKERS``), each
batch inside its own application context, so the HTTP response never waits
on SMTP.  ``NOTIFY_SYNC=True`` runs the same code inline (used in tests).

Recipients are resolved when the batch runs, not when the transition was
computed:
    requester   current email of the requester's User row (snapshot fallback)
    reviewers   ACTIVE users holding REVIEWER or ADMIN
    minister    the address carried by the intent

A failed delivery is logged (NotificationDeliveryFailed, ERROR) and its
EmailLog row stays 'failed'; nothing is raised to the caller.
``flask retry-failed-emails`` drains those rows via ``retry_failed``.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

from flask import current_app
from sqlalchemy import select

from traveldesk.core.exceptions import NotificationDeliveryFailed
from traveldesk.models import db
from traveldesk.models.application import TravelApplication
from traveldesk.models.auth import ROLE_ADMIN, ROLE_REVIEWER, User
from traveldesk.models.notification import EmailLog
from traveldesk.services import settings_service
from traveldesk.services.email_service import EmailService
from traveldesk.services.email_templates import build_context, inject_review_link, render
from traveldesk.services.notification_rules import (
    RECIPIENT_MINISTER,
    RECIPIENT_REQUESTER,
    RECIPIENT_REVIEWERS,
    NotificationIntent,
)

logger = logging.getLogger(__name__)

_EXTENSION_KEY = "notification_executor"

_REVIEW_PAGES = {
    RECIPIENT_REVIEWERS: "/#/reviewer",
    RECIPIENT_MINISTER: "/#/minister",
}


def init_app(app) -> None:
    """Create the app's delivery pool."""
    app.extensions[_EXTENSION_KEY] = ThreadPoolExecutor(
        max_workers=app.config.get("NOTIFY_MAX_WORKERS", 4),
        thread_name_prefix="notify",
    )


def dispatch(application_id: str, intents) -> None:
    """Queue delivery of ``intents`` for one application. Never raises."""
    intents = tuple(intents)
    if not intents:
        return

    app = current_app._get_current_object()
    executor = app.extensions.get(_EXTENSION_KEY)
    if app.config.get("NOTIFY_SYNC") or executor is None:
        _deliver_safely(application_id, intents)
        return

    executor.submit(_run, app, application_id, intents)


# ── Delivery ─────────────────────────────────────────────────────────────────


def _run(app, application_id: str, intents: tuple[NotificationIntent, ...]) -> None:
    """Worker entry point: deliver one batch inside a fresh application context."""
    with app.app_context():
        _deliver_safely(application_id, intents)


def _deliver_safely(application_id: str, intents) -> None:
    try:
        _deliver_batch(application_id, intents)
    except Exception:
        db.session.rollback()
        logger.exception(
            "Notification batch for application %s aborted", application_id,
            extra={"application_id": application_id},
        )


def _deliver_batch(application_id: str, intents) -> None:
    application = db.session.get(TravelApplication, application_id)
    if application is None:
        logger.warning("Notification skipped: application %s no longer exists", application_id)
        return

    applicant = db.session.get(User, application.requester_id)
    templates = settings_service.get_settings()["email"]["templates"]
    cfg = current_app.config

    for intent in intents:
        template = templates.get(intent.template_key)
        if not template:
            logger.warning("Email template not found: %s", intent.template_key)
            continue

        review_link = None
        if intent.include_review_link:
            review_link = cfg.get("CLIENT_URL", "") + _REVIEW_PAGES.get(intent.recipient_role, "/")

        context = build_context(
            application,
            applicant=applicant,
            client_url=cfg.get("CLIENT_URL", ""),
            review_link=review_link,
            utc_offset_hours=cfg.get("DISPLAY_UTC_OFFSET_HOURS", 12),
            extra=intent.context,
        )
        subject = render(template.get("subject", ""), context)
        body = render(template.get("body", ""), context)
        if review_link:
            body = inject_review_link(body, review_link)

        for email, name in resolve_recipients(intent, application, applicant):
            _deliver_one(
                to_email=email,
                to_name=name,
                subject=subject,
                html_body=body,
                template_key=intent.template_key,
                application_id=application_id,
            )


def _deliver_one(**kwargs) -> None:
    try:
        EmailService.send(**kwargs)
    except NotificationDeliveryFailed as exc:
        logger.error(
            "%s", exc,
            extra={"application_id": kwargs.get("application_id"), "recipient": exc.recipient},
        )
    db.session.commit()


def resolve_recipients(intent: NotificationIntent, application, applicant=None) -> list[tuple[str, str | None]]:
    """(email, name) pairs for one intent, read from current user data."""
    if intent.recipient_role == RECIPIENT_REQUESTER:
        if applicant is not None:
            if not applicant.is_active:
                logger.info("Requester %s is %s; notification skipped", applicant.email, applicant.status)
                return []
            return [(applicant.email, applicant.full_name or None)]
        if application.requester_email:
            return [(application.requester_email, None)]
        return []

    if intent.recipient_role == RECIPIENT_REVIEWERS:
        users = db.session.scalars(select(User).where(User.status == "ACTIVE").order_by(User.id))
        seen: set[str] = set()
        recipients = []
        for user in users:
            if not user.has_any_role(ROLE_REVIEWER, ROLE_ADMIN):
                continue
            key = user.email.lower()
            if key in seen:
                continue
            seen.add(key)
            recipients.append((user.email, user.full_name or None))
        return recipients

    if intent.recipient_role == RECIPIENT_MINISTER:
        return [(intent.recipient_email, None)] if intent.recipient_email else []

    logger.warning("Unknown recipient role: %s", intent.recipient_role)
    return []


# ── Dead letters ─────────────────────────────────────────────────────────────


def retry_failed(max_attempts: int | None = None) -> dict:
    """Retry every failed EmailLog row that has attempts left.

    Returns:
        {"retried": int, "sent": int, "failed": int}
    """
    if max_attempts is None:
        max_attempts = current_app.config.get("NOTIFY_MAX_ATTEMPTS", 3)

    rows = list(db.session.scalars(
        select(EmailLog)
        .where(EmailLog.status == "failed", EmailLog.attempts < max_attempts)
        .order_by(EmailLog.id)
    ))

    sent = failed = 0
    for log in rows:
        try:
            EmailService.deliver(log)
            sent += 1
        except NotificationDeliveryFailed as exc:
            failed += 1
            logger.error(
                "Retry %d/%d failed: %s", log.attempts, max_attempts, exc,
                extra={"application_id": log.application_id, "recipient": log.recipient_email},
            )
        db.session.commit()

    return {"retried": len(rows), "sent": sent, "failed": failed}
