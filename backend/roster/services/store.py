"""
Record Store - durable keyed storage of student records.

A thin layer over one SQLAlchemy session. It assigns identities, persists
field changes and hands out base queries, but never decides visibility:
soft-deleted rows are returned like any other. Filtering by the
soft-delete policy happens in the query and mutation services on top.

Each write is its own unit of work: it commits on success and rolls the
session back before re-raising on failure, so a failed write never
leaves half-applied state in the session.
"""

from typing import List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, Query
from sqlalchemy.orm.exc import StaleDataError

from roster.exceptions import ConcurrentUpdate
from roster.logging_config import get_logger, log_with_context
from roster.models.student import Student

logger = get_logger("db")


class StudentStore:
    """Store operations for the students table, bound to one session."""

    def __init__(self, db: Session):
        self.db = db

    def query(self) -> Query:
        """Unfiltered base query over all stored students."""
        return self.db.query(Student)

    def put(self, student: Student) -> Student:
        """Insert a new record and return it carrying its assigned id."""
        self.db.add(student)
        self._commit(student)
        self.db.refresh(student)
        log_with_context(logger, "DEBUG", "Inserted student {}".format(student.id),
                         context={"student_id": student.id})
        return student

    def get_by_id(self, student_id: int) -> Optional[Student]:
        """Look up a record by id, deleted or not."""
        return self.db.get(Student, student_id)

    def list_all(self) -> List[Student]:
        """Every stored record, deleted ones included, by id."""
        return self.query().order_by(Student.id.asc()).all()

    def update(self, student: Student) -> Student:
        """Persist in-place changes to a record loaded from this store."""
        self._commit(student)
        self.db.refresh(student)
        log_with_context(logger, "DEBUG", "Updated student {}".format(student.id),
                         context={"student_id": student.id},
                         extra_data={"version": student.version})
        return student

    def _commit(self, student: Student):
        try:
            self.db.commit()
        except StaleDataError:
            self.db.rollback()
            log_with_context(logger, "WARNING",
                             "Concurrent modification of student {}".format(student.id),
                             context={"student_id": student.id})
            raise ConcurrentUpdate(student.id)
        except SQLAlchemyError:
            self.db.rollback()
            log_with_context(logger, "ERROR", "Failed to persist student",
                             context={"student_id": student.id}, exc_info=True)
            raise
