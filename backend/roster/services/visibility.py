"""
Soft-delete policy.

A student is visible to normal reads while its `deleted` flag is False.
`is_visible` is the in-memory predicate used on single records;
`active_clause` is the same rule as an SQL expression for list queries.
"""

from typing import Optional
from roster.models.student import Student


def is_visible(student: Optional[Student]) -> bool:
    return student is not None and not student.deleted


def active_clause():
    return Student.deleted.is_(False)
