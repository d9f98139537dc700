"""
Attachment collaborator.

Stores uploaded files under ``UPLOAD_FOLDER/<application_id>/`` and records
their metadata.  Uploads are accepted only while the application's status
is editable (DRAFT, SUBMITTED, IN_REVIEW, REJECTED); rows are never updated
afterwards.  Size and extension limits come from the ``uploads`` settings.
"""

from __future__ import annotations

import logging
import os
import uuid

from flask import current_app
from sqlalchemy import select
from werkzeug.utils import secure_filename

from traveldesk.core.exceptions import InvalidTransitionError, ValidationError
from traveldesk.models import db
from traveldesk.models.application import Attachment
from traveldesk.services import decision_service, settings_service
from traveldesk.services.payloads import Actor

logger = logging.getLogger(__name__)


def list_by_application(application_id: str, actor: Actor) -> list[dict]:
    decision_service.load_for_reader(application_id, actor)
    rows = db.session.scalars(
        select(Attachment)
        .where(Attachment.application_id == application_id)
        .order_by(Attachment.uploaded_at)
    )
    return [a.to_dict() for a in rows]


def _extension(file_name: str) -> str:
    _, ext = os.path.splitext(file_name or "")
    return ext.lower().lstrip(".")


def validate_upload(file_name: str, size: int) -> None:
    """Raise ValidationError when the file breaks the configured upload limits."""
    uploads = settings_service.get_settings()["uploads"]
    max_mb = uploads.get("maxFileSizeMB") or 10
    allowed = [str(ext).lower().lstrip(".") for ext in uploads.get("allowedFileTypes") or []]

    if not file_name:
        raise ValidationError("File is required", details={"file": "required"})
    if size > max_mb * 1024 * 1024:
        raise ValidationError(
            f"File size exceeds maximum allowed size of {max_mb}MB",
            details={"file": f"max {max_mb}MB"},
        )
    ext = _extension(file_name)
    if not ext:
        raise ValidationError("File must have an extension", details={"file": "missing extension"})
    if allowed and ext not in allowed:
        raise ValidationError(
            f"File type .{ext} is not allowed. Allowed types: {', '.join(allowed)}",
            details={"file": f"allowed: {', '.join(allowed)}"},
        )


def add_attachment(
    application_id: str,
    actor: Actor,
    file_storage,
    attachment_type: str | None = None,
) -> dict:
    """
    Save one uploaded file (a werkzeug FileStorage) and record its metadata.

    Raises:
        NotFoundError: application missing or not readable by ``actor``.
        InvalidTransitionError: application no longer accepts uploads.
        ValidationError: missing file, size or extension not allowed.
    """
    app = decision_service.load_for_reader(application_id, actor)
    if not app.is_editable:
        raise InvalidTransitionError(
            "upload_attachment", app.status, "attachments are only accepted while the application is editable",
        )

    if file_storage is None or not file_storage.filename:
        raise ValidationError("File is required", details={"file": "required"})

    original_name = file_storage.filename
    stream = file_storage.stream
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    validate_upload(original_name, size)

    safe_name = f"{uuid.uuid4().hex[:8]}_{secure_filename(original_name) or 'upload'}"
    folder = os.path.join(current_app.config["UPLOAD_FOLDER"], application_id)
    os.makedirs(folder, exist_ok=True)
    storage_path = os.path.join(folder, safe_name)
    file_storage.save(storage_path)

    attachment = Attachment(
        application_id=application_id,
        file_name=safe_name,
        attachment_type=(attachment_type or None),
        mime_type=file_storage.mimetype or "application/octet-stream",
        size=size,
        storage_path=storage_path,
        uploaded_by=actor.id,
    )
    db.session.add(attachment)
    db.session.commit()

    logger.info(
        "Attachment %s added to application %s by %s", safe_name, application_id, actor.email,
        extra={"application_id": application_id, "actor_id": actor.id},
    )
    return attachment.to_dict()
