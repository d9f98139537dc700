"""
Travel application service - content CRUD around the workflow.

Creates drafts, edits content while the application is editable, and serves
the requester, reviewer, minister and admin listings.  Status changes never
happen here: create-and-submit hands over to ``decision_service.decide`` so
the submission is guarded, logged and fanned out like any other.

Derived fields are always recomputed server-side:
    expense row total_cost = cost_per_person x persons_or_days
    application total_cost = sum of the rows' gov_cost
    duration_days          = inclusive day count (0 when dates are unusable)
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select

from traveldesk.core.exceptions import (
    ForbiddenError,
    InvalidTransitionError,
    PersistenceConflictError,
    ValidationError,
)
from traveldesk.models import db
from traveldesk.models.application import (
    ACTION_SUBMIT,
    STATUS_ARCHIVED,
    STATUS_DRAFT,
    STATUS_REJECTED,
    ApplicationNumberSequence,
    TravelApplication,
)
from traveldesk.models.auth import User
from traveldesk.models.department import DepartmentProfile
from traveldesk.services import application_repository, decision_service, settings_service
from traveldesk.services.payloads import Actor
from traveldesk.services.workflow_engine import WorkflowSnapshot, check_submission_data
from traveldesk.utils.helpers import inclusive_day_count, is_valid_email, parse_date_input

logger = logging.getLogger(__name__)

DEFAULT_DEPARTMENT_CODE = "00"
DONOR_FUNDING_VALUES = ("Yes", "No")

# Requester-editable text fields and their maximum lengths
_TEXT_FIELDS = {
    "department": 200,
    "division": 200,
    "head_of_department": 200,
    "head_of_department_email": 200,
    "event_title": 300,
    "reason_for_participation": 10000,
    "hod_email": 200,
    "minister_name": 200,
    "minister_email": 200,
    "phone_number": 50,
}


# ── Normalisation ────────────────────────────────────────────────────────────


def _number(value, field: str, errors: dict) -> float:
    if value in (None, ""):
        return 0.0
    if isinstance(value, bool):
        errors[field] = "must be a number"
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        errors[field] = "must be a number"
        return 0.0
    if number < 0:
        errors[field] = "must not be negative"
        return 0.0
    return number


def normalize_travellers(items) -> list[dict]:
    """Keep ``{name, role}`` pairs, dropping rows without a name."""
    if not isinstance(items, list):
        return []
    travellers = []
    for item in items:
        if not isinstance(item, dict):
            continue
        name = item.get("name") if isinstance(item.get("name"), str) else ""
        role = item.get("role") if isinstance(item.get("role"), str) else ""
        if name.strip():
            travellers.append({"name": name.strip(), "role": role.strip()})
    return travellers


def normalize_expenses(items) -> list[dict]:
    """Validate expense rows and recompute each row's total.

    ``gov_cost`` is the government-funded part of the row.  When omitted it
    defaults to the full row total, or 0 for donor-funded rows.

    Raises:
        ValidationError: a numeric field is not a non-negative number.
    """
    if items in (None, ""):
        return []
    if not isinstance(items, list):
        raise ValidationError("expenses must be a list", details={"expenses": "must be a list"})

    rows, errors = [], {}
    for idx, item in enumerate(items):
        if not isinstance(item, dict):
            errors[f"expenses[{idx}]"] = "must be an object"
            continue
        cost_per_person = _number(item.get("cost_per_person"), f"expenses[{idx}].cost_per_person", errors)
        persons_or_days = _number(item.get("persons_or_days"), f"expenses[{idx}].persons_or_days", errors)
        donor = item.get("donor_funding") if item.get("donor_funding") in DONOR_FUNDING_VALUES else ""
        total = round(cost_per_person * persons_or_days, 2)

        if item.get("gov_cost") in (None, ""):
            gov_cost = 0.0 if donor == "Yes" else total
        else:
            gov_cost = _number(item.get("gov_cost"), f"expenses[{idx}].gov_cost", errors)

        rows.append({
            "expense_type": str(item.get("expense_type") or ""),
            "details": str(item.get("details") or ""),
            "cost_per_person": cost_per_person,
            "persons_or_days": persons_or_days,
            "total_cost": total,
            "donor_funding": donor,
            "gov_cost": round(gov_cost, 2),
        })

    if errors:
        raise ValidationError("Invalid expense rows", details=errors)
    return rows


def total_gov_cost(expenses: list[dict]) -> float:
    return round(sum(float(row.get("gov_cost") or 0) for row in expenses), 2)


def _attachment_labels(items) -> list[str]:
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, str)]


def _clean_fields(data: dict, *, partial: bool) -> dict:
    """Validate and normalise the content fields present in ``data``."""
    values: dict = {}
    errors: dict[str, str] = {}

    for key, max_len in _TEXT_FIELDS.items():
        if key not in data:
            continue
        raw = data[key]
        text = "" if raw is None else str(raw).strip()
        if len(text) > max_len:
            errors[key] = f"must be at most {max_len} characters"
        values[key] = text

    if not partial:
        for key in ("department", "event_title"):
            if not values.get(key):
                errors[key] = f"{key} is required"
    else:
        for key in ("department", "event_title"):
            if key in values and not values[key]:
                errors[key] = f"{key} must not be empty"

    for key in ("minister_email", "hod_email", "head_of_department_email"):
        if values.get(key) and not is_valid_email(values[key]):
            errors[key] = "invalid email format"

    for key in ("start_date", "end_date"):
        if key in data:
            try:
                values[key] = parse_date_input(data[key])
            except ValueError:
                errors[key] = "invalid date"

    if "travellers" in data:
        values["travellers"] = normalize_travellers(data["travellers"])
    if "expenses" in data:
        try:
            values["expenses"] = normalize_expenses(data["expenses"])
        except ValidationError as exc:
            errors.update(exc.details)
    if "attachments_provided" in data:
        values["attachments_provided"] = _attachment_labels(data["attachments_provided"])
    if "number_of_travellers" in data and data["number_of_travellers"] not in (None, ""):
        count = data["number_of_travellers"]
        if isinstance(count, bool) or not str(count).isdigit():
            errors["number_of_travellers"] = "must be a non-negative integer"
        else:
            values["number_of_travellers"] = int(count)

    if errors:
        raise ValidationError("Invalid application data", details=errors)
    return values


def _derive(values: dict, current: TravelApplication | None = None) -> dict:
    """Recompute duration, traveller count and total cost into ``values``."""
    start = values.get("start_date", current.start_date if current else None)
    end = values.get("end_date", current.end_date if current else None)
    if "start_date" in values or "end_date" in values or current is None:
        values["duration_days"] = inclusive_day_count(start, end)

    if "number_of_travellers" not in values and "travellers" in values:
        values["number_of_travellers"] = len(values["travellers"])

    if "expenses" in values:
        values["total_cost"] = total_gov_cost(values["expenses"])
    elif current is None:
        values["expenses"] = []
        values["total_cost"] = 0.0
    return values


def _check_limits(values: dict) -> None:
    limits = settings_service.get_settings()["workflow"]
    errors = {}
    max_travellers = limits.get("maxTravellersPerApplication")
    if max_travellers and values.get("number_of_travellers", 0) > max_travellers:
        errors["number_of_travellers"] = f"at most {max_travellers} travellers per application"
    max_days = limits.get("maxTravelDurationDays")
    if max_days and values.get("duration_days", 0) > max_days:
        errors["end_date"] = f"travel may last at most {max_days} days"
    if errors:
        raise ValidationError("Application exceeds workflow limits", details=errors)


# ── Application numbers ──────────────────────────────────────────────────────


def resolve_department_code(actor_user_code: str | None, head_of_department: str | None) -> str:
    """The requester's department head code, else a matching department profile, else '00'."""
    if actor_user_code:
        return actor_user_code
    if head_of_department:
        profile = db.session.get(DepartmentProfile, head_of_department)
        if profile is not None:
            return profile.code
    return DEFAULT_DEPARTMENT_CODE


def next_application_number(department_code: str, year: int | None = None) -> str:
    """Allocate ``<deptCode>-<year>-<seq:03d>`` within the caller's transaction."""
    year = year or datetime.now(timezone.utc).year
    row = db.session.execute(
        select(ApplicationNumberSequence)
        .where(
            ApplicationNumberSequence.department_code == department_code,
            ApplicationNumberSequence.year == year,
        )
        .with_for_update()
    ).scalar_one_or_none()

    if row is None:
        row = ApplicationNumberSequence(department_code=department_code, year=year, sequence=1)
        db.session.add(row)
    else:
        row.sequence += 1
    db.session.flush()
    return f"{department_code}-{year}-{row.sequence:03d}"


# ── Commands ─────────────────────────────────────────────────────────────────


def create_application(actor: Actor, data: dict) -> dict:
    """
    Create a DRAFT application owned by ``actor``.

    With ``data["submit"] is True`` the draft is submitted straight away
    through the decision router.  Submission data is checked before the
    draft is written, so a refused submission leaves nothing behind.

    Raises:
        ValidationError: invalid content, limits exceeded, or (when
            submitting) data the submit guard refuses.
    """
    values = _derive(_clean_fields(data or {}, partial=False))
    _check_limits(values)

    submit = data.get("submit") is True
    if submit:
        errors = check_submission_data(WorkflowSnapshot(
            id="",
            version=0,
            status=STATUS_DRAFT,
            requester_id=actor.id,
            minister_email=values.get("minister_email"),
            hod_email=values.get("hod_email"),
            start_date=values.get("start_date"),
            end_date=values.get("end_date"),
        ))
        if errors:
            raise ValidationError("Application is not ready for submission", details=errors)

    user = db.session.get(User, actor.id)
    department_code = resolve_department_code(
        user.department_head_code if user else None, values.get("head_of_department"),
    )

    app = TravelApplication(
        requester_id=actor.id,
        requester_email=data.get("requester_email") or actor.email,
        requester_first_name=data.get("requester_first_name") or (user.first_name if user else ""),
        requester_last_name=data.get("requester_last_name") or (user.last_name if user else ""),
        department_code=department_code,
        application_number=next_application_number(department_code),
        status=STATUS_DRAFT,
        version=1,
        **values,
    )
    db.session.add(app)
    db.session.commit()

    logger.info(
        "Application %s created by %s", app.application_number, actor.email,
        extra={"application_id": app.id, "actor_id": actor.id, "status": app.status},
    )

    if submit:
        return decision_service.decide(app.id, actor, ACTION_SUBMIT)
    return app.to_dict()


def update_application(application_id: str, actor: Actor, data: dict) -> dict:
    """
    Update content of an editable application (owner only).

    An optional ``version`` in ``data`` must match the stored version.

    Raises:
        NotFoundError, ForbiddenError, ValidationError,
        InvalidTransitionError (status no longer editable),
        PersistenceConflictError (edited concurrently)
    """
    app = decision_service.load_for_reader(application_id, actor)
    if app.requester_id != actor.id:
        raise ForbiddenError("Only the requester may edit this application")
    if not app.is_editable:
        raise InvalidTransitionError("update", app.status, "application is no longer editable")

    data = data or {}
    expected_version = app.version
    if data.get("version") is not None:
        try:
            expected_version = int(data["version"])
        except (TypeError, ValueError):
            raise ValidationError("version must be an integer", details={"version": "must be an integer"})
        if expected_version != app.version:
            raise PersistenceConflictError(application_id, expected_version)

    values = _derive(_clean_fields(data, partial=True), current=app)
    merged = {
        "number_of_travellers": values.get("number_of_travellers", app.number_of_travellers or 0),
        "duration_days": values.get("duration_days", app.duration_days or 0),
    }
    _check_limits(merged)

    if not values:
        return app.to_dict()

    if not application_repository.update_content(application_id, expected_version, values):
        fresh = application_repository.load(application_id)
        if not fresh.is_editable:
            raise InvalidTransitionError("update", fresh.status, "application is no longer editable")
        raise PersistenceConflictError(application_id, expected_version)

    logger.info(
        "Application %s updated by %s", application_id, actor.email,
        extra={"application_id": application_id, "actor_id": actor.id},
    )
    return application_repository.load(application_id).to_dict()


# ── Queries ──────────────────────────────────────────────────────────────────


def get_application(application_id: str, actor: Actor) -> dict:
    return decision_service.load_for_reader(application_id, actor).to_dict()


def list_my_applications(actor: Actor) -> list[dict]:
    return [a.to_dict(include_log=False) for a in application_repository.list_by_requester(actor.id)]


def list_reviewer_archive() -> list[dict]:
    """ARCHIVED applications, most recently archived first."""
    apps = application_repository.list_by_status(
        [STATUS_ARCHIVED], order_by=TravelApplication.archived_at.desc(),
    )
    return [a.to_dict(include_log=False) for a in apps]


def list_minister_history(actor: Actor) -> list[dict]:
    """Applications the minister has decided (or otherwise acted on)."""
    return [a.to_dict(include_log=False) for a in application_repository.list_decided_by(actor.id)]


def list_all_archived() -> list[dict]:
    """ARCHIVED and REJECTED applications, most recent decision first."""
    apps = application_repository.list_by_status(
        [STATUS_ARCHIVED, STATUS_REJECTED], order_by=TravelApplication.decided_at.desc(),
    )
    return [a.to_dict(include_log=False) for a in apps]


def list_expense_types() -> list[str]:
    return settings_service.get_expense_types()
