"""
Travel Desk
Email Service.

Sends one HTML email and records it in EmailLog.
When SMTP is not configured, emails are logged but not sent (dev/test mode).

Configuration (env vars):
    MAIL_SERVER          SMTP host (default: None -> log-only mode)
    MAIL_PORT            SMTP port (default: 587)
    MAIL_USE_TLS         STARTTLS after connect (default: true)
    MAIL_USE_SSL         Implicit TLS, e.g. port 465 (default: false)
    MAIL_USERNAME        SMTP username
    MAIL_PASSWORD        SMTP password
    MAIL_DEFAULT_SENDER  Default from address
    MAIL_REPLY_TO        Reply-To header (optional)
    NOTIFY_TIMEOUT_SECONDS  Per-recipient SMTP timeout
"""

from __future__ import annotations

import logging
import smtplib
from datetime import datetime, timezone
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from flask import current_app

from traveldesk.core.exceptions import NotificationDeliveryFailed
from traveldesk.models import db
from traveldesk.models.notification import EmailLog

logger = logging.getLogger(__name__)


class EmailService:
    """
    Email sending service.

    In development/test mode (no MAIL_SERVER configured), emails are
    logged to the database but not actually sent via SMTP.
    """

    @staticmethod
    def is_configured() -> bool:
        """Check if SMTP is configured."""
        return bool(current_app.config.get("MAIL_SERVER"))

    @classmethod
    def send(
        cls,
        *,
        to_email: str,
        to_name: str | None = None,
        subject: str,
        html_body: str,
        template_key: str | None = None,
        application_id: str | None = None,
    ) -> EmailLog:
        """
        Send an email and log it.

        If SMTP is not configured, the email is logged with status='sent'
        to simulate sending without actual delivery.

        Returns:
            The EmailLog record for this email (flushed, not committed).

        Raises:
            NotificationDeliveryFailed: SMTP refused or timed out.  The
                EmailLog row is left in status 'failed'.
        """
        log = EmailLog(
            recipient_email=to_email,
            recipient_name=to_name,
            subject=subject,
            html_body=html_body,
            template_key=template_key,
            status="queued",
            attempts=0,
            application_id=application_id,
        )
        db.session.add(log)
        db.session.flush()

        cls.deliver(log)
        return log

    @classmethod
    def deliver(cls, log: EmailLog) -> EmailLog:
        """(Re)try delivery of an existing EmailLog row."""
        log.attempts = (log.attempts or 0) + 1

        if not cls.is_configured():
            # Dev/test mode - log only
            log.status = "sent"
            log.sent_at = datetime.now(timezone.utc)
            log.error_message = None
            logger.info(
                "Email (dev mode): to=%s subject='%s' template=%s",
                log.recipient_email, log.subject, log.template_key,
                extra={"recipient": log.recipient_email, "application_id": log.application_id},
            )
            return log

        try:
            cls._send_smtp(to_email=log.recipient_email, to_name=log.recipient_name,
                           subject=log.subject, html_body=log.html_body or "")
        except (smtplib.SMTPException, OSError) as exc:
            log.status = "failed"
            log.error_message = str(exc)[:1000]
            raise NotificationDeliveryFailed(log.recipient_email, log.template_key or "", exc) from exc

        log.status = "sent"
        log.sent_at = datetime.now(timezone.utc)
        log.error_message = None
        logger.info(
            "Email sent: to=%s subject='%s'", log.recipient_email, log.subject,
            extra={"recipient": log.recipient_email, "application_id": log.application_id},
        )
        return log

    @staticmethod
    def _send_smtp(*, to_email: str, to_name: str | None,
                   subject: str, html_body: str) -> None:
        """Actually send via SMTP."""
        cfg = current_app.config
        server = cfg.get("MAIL_SERVER")
        port = cfg.get("MAIL_PORT", 587)
        use_ssl = cfg.get("MAIL_USE_SSL", False) or port == 465
        use_tls = cfg.get("MAIL_USE_TLS", True) and not use_ssl
        username = cfg.get("MAIL_USERNAME")
        password = cfg.get("MAIL_PASSWORD")
        sender = cfg.get("MAIL_DEFAULT_SENDER", f"noreply@{server}")
        reply_to = cfg.get("MAIL_REPLY_TO")
        timeout = cfg.get("NOTIFY_TIMEOUT_SECONDS", 15)

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = sender
        msg["To"] = f"{to_name} <{to_email}>" if to_name else to_email
        if reply_to:
            msg["Reply-To"] = reply_to
        msg.attach(MIMEText(html_body, "html"))

        smtp_cls = smtplib.SMTP_SSL if use_ssl else smtplib.SMTP
        with smtp_cls(server, port, timeout=timeout) as smtp:
            if use_tls:
                smtp.starttls()
            if username and password:
                smtp.login(username, password)
            smtp.send_message(msg)
