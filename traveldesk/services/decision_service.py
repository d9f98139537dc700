"""
Decision Router - authorization, payload validation and persistence of
workflow transitions.

Every workflow decision (requester submit / resubmit, reviewer and minister
decisions) enters through ``decide``:

    1. load the application              -> NotFoundError
    2. read access (owner or staff role) -> NotFoundError (existence not leaked)
    3. role / ownership for the action   -> ForbiddenError
    4. action legal from current status  -> InvalidTransitionError
    5. typed payload from (action, note) -> ValidationError
    6. workflow engine guards            -> ValidationError
    7. compare-and-swap                  -> retried once, then PersistenceConflictError

Nothing is written before step 7, so every failure above leaves the
application, its log and the outbox untouched.  On a lost compare-and-swap
the application is reloaded and the engine re-run, so a caller whose action
is no longer legal gets InvalidTransitionError describing the fresher state.

Notifications are handed to the dispatcher only after the commit.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from traveldesk.core.exceptions import (
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceConflictError,
    ValidationError,
)
from traveldesk.models.application import (
    MINISTER_QUEUE_STATUSES,
    REVIEWER_QUEUE_STATUSES,
    STATUS_SUBMITTED,
    TravelApplication,
)
from traveldesk.models.auth import ROLE_ADMIN, ROLE_MINISTER, ROLE_REVIEWER
from traveldesk.services import application_repository, notification_dispatcher, settings_service
from traveldesk.services.payloads import ACTION_ROLES, REQUESTER_ACTIONS, Actor, normalize_action, parse_payload
from traveldesk.services.workflow_engine import apply_transition, validate_transition

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 2

READ_ROLES = (ROLE_REVIEWER, ROLE_ADMIN, ROLE_MINISTER)

QUEUE_REVIEWER = "reviewer"
QUEUE_MINISTER = "minister"

_QUEUES = {
    QUEUE_REVIEWER: {"statuses": REVIEWER_QUEUE_STATUSES, "roles": (ROLE_REVIEWER, ROLE_ADMIN)},
    QUEUE_MINISTER: {"statuses": MINISTER_QUEUE_STATUSES, "roles": (ROLE_MINISTER, ROLE_ADMIN)},
}


# ── Access rules ─────────────────────────────────────────────────────────────


def can_read(app: TravelApplication, actor: Actor) -> bool:
    """Owner, or any staff role."""
    return app.requester_id == actor.id or actor.has_any_role(*READ_ROLES)


def load_for_reader(application_id: str, actor: Actor) -> TravelApplication:
    """Load an application the caller may read; NotFoundError otherwise."""
    app = application_repository.load(application_id)
    if not can_read(app, actor):
        raise NotFoundError(resource="Application", resource_id=application_id)
    return app


def authorize(action: str, actor: Actor, app: TravelApplication) -> None:
    """Raise ForbiddenError unless ``actor`` may perform ``action`` on ``app``."""
    if action in REQUESTER_ACTIONS:
        if app.requester_id != actor.id:
            raise ForbiddenError("Only the original requester may submit this application")
        return

    required = ACTION_ROLES.get(action, ())
    if not actor.has_any_role(*required):
        raise ForbiddenError(
            f"Action '{action}' requires one of: {', '.join(required)}",
            required_roles=required,
        )


# ── Decisions ────────────────────────────────────────────────────────────────


def decide(
    application_id: str,
    actor: Actor,
    action: str,
    note: str | None = None,
    *,
    labels: dict[str, str] | None = None,
) -> dict:
    """
    Apply one workflow action on behalf of ``actor``.

    Args:
        application_id: Target application.
        actor: Caller snapshot.
        action: Engine action name, or a UI label when ``labels`` is given.
        note: Free-text note (minister email for referral, justification
              for direct approval, reason / question otherwise).
        labels: UI label -> engine action map accepted by the calling endpoint.

    Returns:
        The updated application dict, approval log included.

    Raises:
        NotFoundError, ForbiddenError, ValidationError,
        InvalidTransitionError, PersistenceConflictError
    """
    action = normalize_action(action, labels)
    app = load_for_reader(application_id, actor)

    try:
        authorize(action, actor, app)
        validation = validate_transition(app.status, action)
        if not validation["valid"]:
            raise InvalidTransitionError(action, app.status, validation["reason"])
        payload = parse_payload(action, note)
    except (ForbiddenError, InvalidTransitionError, ValidationError) as exc:
        logger.warning(
            "Decision %s on %s refused: %s", action, application_id, exc,
            extra={"application_id": application_id, "actor_id": actor.id, "action": action},
        )
        raise

    notification_settings = settings_service.get_notification_settings()

    for attempt in range(1, MAX_ATTEMPTS + 1):
        snapshot = application_repository.to_snapshot(app)
        try:
            result = apply_transition(
                snapshot, payload, actor, datetime.now(timezone.utc), notification_settings,
            )
        except (InvalidTransitionError, ValidationError, ForbiddenError) as exc:
            logger.info(
                "Decision %s on %s rejected (%s): %s",
                action, application_id, type(exc).__name__, exc,
                extra={
                    "application_id": application_id,
                    "actor_id": actor.id,
                    "action": action,
                    "status": snapshot.status,
                },
            )
            raise

        if application_repository.compare_and_swap(
            application_id, snapshot.version, result.changes, result.log_entry,
        ):
            logger.info(
                "Application %s: %s -> %s by %s",
                application_id, result.previous_status, result.new_status, actor.email,
                extra={
                    "application_id": application_id,
                    "actor_id": actor.id,
                    "action": action,
                    "status": result.new_status,
                },
            )
            notification_dispatcher.dispatch(application_id, result.notifications)
            return application_repository.load(application_id).to_dict()

        logger.info(
            "Retrying %s on %s after concurrent update (attempt %d/%d)",
            action, application_id, attempt, MAX_ATTEMPTS,
            extra={"application_id": application_id, "actor_id": actor.id, "action": action},
        )
        app = application_repository.load(application_id)

    raise PersistenceConflictError(application_id, snapshot.version)


def open_for_review(application_id: str, actor: Actor) -> dict:
    """Return an application for a reviewer, claiming it when still SUBMITTED.

    Claiming moves SUBMITTED -> IN_REVIEW and records the reviewer.  It is
    not a decision: nothing is logged and nobody is notified.  Losing the
    claim to a concurrent writer is harmless; the fresh state is returned.
    """
    if not actor.has_any_role(ROLE_REVIEWER, ROLE_ADMIN):
        raise ForbiddenError("Reviewer access required", required_roles=(ROLE_REVIEWER, ROLE_ADMIN))

    app = application_repository.load(application_id)
    if app.status == STATUS_SUBMITTED:
        if application_repository.claim_for_review(application_id, app.version, actor.id):
            logger.info(
                "Application %s opened for review by %s", application_id, actor.email,
                extra={"application_id": application_id, "actor_id": actor.id},
            )
        app = application_repository.load(application_id)
    return app.to_dict()


# ── Queues ───────────────────────────────────────────────────────────────────


def get_queue(queue: str, actor: Actor) -> list[dict]:
    """Pending applications for the reviewer or minister queue, newest submission first."""
    queue_def = _QUEUES.get(queue)
    if queue_def is None:
        raise ValidationError(f"Unknown queue '{queue}'", details={"queue": sorted(_QUEUES)})
    if not actor.has_any_role(*queue_def["roles"]):
        raise ForbiddenError(f"{queue.title()} access required", required_roles=queue_def["roles"])

    return [a.to_dict(include_log=False) for a in application_repository.list_by_status(queue_def["statuses"])]
