"""
System settings service.

One JSON document stored under ``system_settings``.  Reads always return the
defaults deep-merged with whatever is stored, so a partially saved document
(or one written by an older release) still yields every key.

Sections:
    email.notifications   fan-out switches (see notification_rules)
    email.templates       {key: {subject, body}} notification templates
    workflow              limits enforced on create / update
    uploads               attachment size and extension limits
    application           expense-type picklist
"""

from __future__ import annotations

import copy
import logging

from traveldesk.core.exceptions import ValidationError
from traveldesk.models import db
from traveldesk.models.settings import SystemSetting
from traveldesk.services.email_templates import DEFAULT_TEMPLATES
from traveldesk.services.notification_rules import DEFAULT_NOTIFICATION_SETTINGS

logger = logging.getLogger(__name__)

SETTINGS_KEY = "system_settings"

DEFAULT_EXPENSE_TYPES = [
    "Airfare",
    "Accommodation",
    "Meals",
    "Transportation",
    "Registration Fee",
    "Visa",
    "Insurance",
    "Other",
]

DEFAULT_SETTINGS = {
    "email": {
        "notifications": dict(DEFAULT_NOTIFICATION_SETTINGS),
        "templates": DEFAULT_TEMPLATES,
    },
    "workflow": {
        "defaultReviewDeadlineDays": 7,
        "minCostForAdditionalApproval": 5000,
        "maxTravellersPerApplication": 10,
        "maxTravelDurationDays": 30,
    },
    "uploads": {
        "maxFileSizeMB": 10,
        "allowedFileTypes": ["pdf", "doc", "docx", "xls", "xlsx", "jpg", "jpeg", "png"],
    },
    "application": {
        "expenseTypes": DEFAULT_EXPENSE_TYPES,
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    """Return ``base`` updated recursively with ``override`` (inputs untouched)."""
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _stored() -> dict:
    row = db.session.get(SystemSetting, SETTINGS_KEY)
    return dict(row.value or {}) if row else {}


def get_settings() -> dict:
    settings = _deep_merge(DEFAULT_SETTINGS, _stored())
    if not settings["application"].get("expenseTypes"):
        settings["application"]["expenseTypes"] = list(DEFAULT_EXPENSE_TYPES)
    return settings


def get_notification_settings() -> dict:
    return get_settings()["email"]["notifications"]


def get_template(template_key: str) -> dict | None:
    return get_settings()["email"]["templates"].get(template_key)


def get_expense_types() -> list[str]:
    return list(get_settings()["application"]["expenseTypes"])


def _validate(updates: dict) -> None:
    if not isinstance(updates, dict):
        raise ValidationError("Settings payload must be an object")

    errors: dict[str, str] = {}
    email = updates.get("email") or {}
    for key, value in (email.get("notifications") or {}).items():
        if not isinstance(value, bool):
            errors[f"email.notifications.{key}"] = "must be true or false"
    for key, template in (email.get("templates") or {}).items():
        if not isinstance(template, dict):
            errors[f"email.templates.{key}"] = "must be an object with subject and body"
            continue
        for part in ("subject", "body"):
            if part in template and not isinstance(template[part], str):
                errors[f"email.templates.{key}.{part}"] = "must be a string"

    for key, value in (updates.get("workflow") or {}).items():
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
            errors[f"workflow.{key}"] = "must be a non-negative number"

    uploads = updates.get("uploads") or {}
    if "maxFileSizeMB" in uploads:
        size = uploads["maxFileSizeMB"]
        if isinstance(size, bool) or not isinstance(size, (int, float)) or size <= 0:
            errors["uploads.maxFileSizeMB"] = "must be a positive number"
    if "allowedFileTypes" in uploads and not isinstance(uploads["allowedFileTypes"], list):
        errors["uploads.allowedFileTypes"] = "must be a list"

    expense_types = (updates.get("application") or {}).get("expenseTypes")
    if expense_types is not None and (
        not isinstance(expense_types, list) or not all(isinstance(t, str) for t in expense_types)
    ):
        errors["application.expenseTypes"] = "must be a list of strings"

    if errors:
        raise ValidationError("Invalid settings", details=errors)


def save_settings(updates: dict, updated_by: str = "system") -> dict:
    """Merge ``updates`` into the stored document and return the effective settings.

    Raises:
        ValidationError: a section has the wrong shape.
    """
    _validate(updates)

    row = db.session.get(SystemSetting, SETTINGS_KEY)
    if row is None:
        row = SystemSetting(key=SETTINGS_KEY, value={})
        db.session.add(row)

    row.value = _deep_merge(row.value or {}, updates)
    row.updated_by = updated_by
    db.session.commit()

    logger.info("Settings updated by %s: %s", updated_by, ", ".join(sorted(updates)))
    return get_settings()
