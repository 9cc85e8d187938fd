"""
Student model - the single record type of the roster.

Records are never physically removed: deleting a student flips `deleted`
and the row stays in the table. The `version` column is SQLAlchemy's
optimistic-concurrency counter; every UPDATE is conditioned on it.
"""

from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, DateTime, Boolean, Index
from roster.database import Base

# Fields an update overwrites. id, owner_id, creator_id and the
# timestamps are never taken from update input.
MUTABLE_FIELDS = (
    "name", "gender", "phone", "age", "native_place",
    "major", "email", "tag", "remark",
)

# API (camelCase) name -> model attribute, for every exposed field
API_FIELDS = {
    "id": "id",
    "ownerId": "owner_id",
    "name": "name",
    "gender": "gender",
    "phone": "phone",
    "age": "age",
    "nativePlace": "native_place",
    "major": "major",
    "email": "email",
    "tag": "tag",
    "remark": "remark",
    "creatorId": "creator_id",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Student(Base):
    """
    SQLAlchemy model for the students table.

    Column lengths mirror the field limits checked by
    roster.services.validation before a record reaches the store.
    """
    __tablename__ = "students"

    id = Column(Integer, primary_key=True, autoincrement=True,
                doc="System-assigned identifier, immutable")
    owner_id = Column(Integer, nullable=True,
                      doc="Opaque external reference to the owning user")
    name = Column(String(64), nullable=False,
                  doc="Student name, required")
    gender = Column(String(8), nullable=True)
    phone = Column(String(16), nullable=True,
                   doc="Digits only")
    age = Column(Integer, nullable=True)
    native_place = Column(String(64), nullable=True)
    major = Column(String(128), nullable=True)
    email = Column(String(32), nullable=True)
    tag = Column(String(512), nullable=True,
                 doc="Free-form, comma-separated by convention")
    remark = Column(String(512), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow,
                        doc="Set once at creation")
    updated_at = Column(DateTime, nullable=False, default=utcnow,
                        doc="Refreshed by every successful mutation")
    deleted = Column("is_deleted", Boolean, nullable=False, default=False,
                     doc="Soft-delete flag, only ever goes False -> True")
    creator_id = Column(Integer, nullable=True,
                        doc="Who created the record, never changed afterwards")
    version = Column(Integer, nullable=False,
                     doc="Optimistic-concurrency counter")

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("ix_students_is_deleted", "is_deleted"),
        Index("ix_students_name", "name"),
        Index("ix_students_phone", "phone"),
    )

    def __repr__(self):
        return f"<Student(id={self.id}, name='{self.name}', deleted={self.deleted})>"
