"""
Mutation Workflow - create, update and soft-delete students.

Operations take plain field mappings keyed by model attribute name
(native_place, not nativePlace) that have already passed
roster.services.validation.

Update of a missing or soft-deleted student has two modes:

- lenient (default): nothing is written and the caller's fields are
  returned as given, so callers that never check existence keep working
- strict (STRICT_UPDATES=true or strict=True): NoOpUpdate is raised
"""

import os
from datetime import timezone
from typing import Mapping, Optional

from sqlalchemy.orm import Session

from roster.exceptions import NoOpUpdate
from roster.logging_config import get_logger, log_with_context
from roster.models.student import Student, MUTABLE_FIELDS, utcnow
from roster.services.store import StudentStore
from roster.services.visibility import is_visible

logger = get_logger("mutation")

STRICT_UPDATES = os.getenv("STRICT_UPDATES", "false").strip().lower() in ("1", "true", "yes", "on")


def get_student(db: Session, student_id: int) -> Optional[Student]:
    """Visible student with this id, or None when missing or deleted."""
    student = StudentStore(db).get_by_id(student_id)
    return student if is_visible(student) else None


def create_student(db: Session, fields: Mapping, creator_id: int = None) -> Student:
    """
    Persist a new student built from the mutable fields plus owner/creator.

    Any id, timestamps or deleted flag in `fields` are ignored.
    """
    now = utcnow()
    student = Student(**{name: fields.get(name) for name in MUTABLE_FIELDS})
    student.owner_id = fields.get("owner_id")
    student.creator_id = creator_id if creator_id is not None else fields.get("creator_id")
    student.deleted = False
    student.created_at = now
    student.updated_at = now

    student = StudentStore(db).put(student)

    log_with_context(logger, "INFO", "Created student {}".format(student.id),
                     context={"student_id": student.id, "creator_id": student.creator_id})
    return student


def update_student(db: Session, student_id: int, fields: Mapping, strict: bool = None):
    """
    Overwrite the mutable fields of an active student.

    Returns the updated Student. For a missing or deleted student, returns
    `fields` itself (lenient) or raises NoOpUpdate (strict).
    """
    if strict is None:
        strict = STRICT_UPDATES

    store = StudentStore(db)
    student = store.get_by_id(student_id)

    if not is_visible(student):
        log_with_context(logger, "WARNING",
                         "Update ignored, student {} is missing or deleted".format(student_id),
                         context={"student_id": student_id},
                         extra_data={"strict": strict})
        if strict:
            raise NoOpUpdate(student_id)
        return fields

    for name in MUTABLE_FIELDS:
        setattr(student, name, fields.get(name))
    student.updated_at = max(utcnow(), _aware(student.created_at))

    student = store.update(student)

    log_with_context(logger, "INFO", "Updated student {}".format(student_id),
                     context={"student_id": student_id},
                     extra_data={"version": student.version})
    return student


def delete_student(db: Session, student_id: int) -> bool:
    """
    Soft-delete a student. False when the id does not exist.

    Deleting an already-deleted student succeeds without writing.
    """
    store = StudentStore(db)
    student = store.get_by_id(student_id)

    if student is None:
        log_with_context(logger, "INFO", "Delete failed, student {} not found".format(student_id),
                         context={"student_id": student_id})
        return False

    if student.deleted:
        log_with_context(logger, "INFO", "Student {} already deleted".format(student_id),
                         context={"student_id": student_id})
        return True

    student.deleted = True
    student.updated_at = max(utcnow(), _aware(student.created_at))
    store.update(student)

    log_with_context(logger, "INFO", "Deleted student {}".format(student_id),
                     context={"student_id": student_id})
    return True


def _aware(value):
    # SQLite hands datetimes back without tzinfo; they were written as UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
