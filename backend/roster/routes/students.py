"""
Students API routes.

Maps each roster operation to an endpoint under /api/students and wraps
results in the {success, message, data} envelope. Listing routes come in
pairs: the bare path returns every match, the /page variant returns one
page with its metadata.

Static paths are registered before /{student_id} so that /page, /search,
/by-name and /by-phone never reach the id route.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from roster.database import get_db
from roster.exceptions import NotFound
from roster.schemas import StudentIn, serialize_student, success_response
from roster.services import mutation, query
from roster.services.query import PageRequest

router = APIRouter(prefix="/api/students")

RETRIEVED = "Students retrieved successfully"
SEARCHED = "Search results retrieved successfully"


def page_request(
    page: int = Query(query.DEFAULT_PAGE, description="Page number (0-based)"),
    size: int = Query(query.DEFAULT_SIZE, description="Page size"),
    sort: str = Query(query.DEFAULT_SORT, description="Sort field"),
    direction: str = Query(query.DEFAULT_DIRECTION, description="Sort direction, ASC or DESC"),
) -> PageRequest:
    """Build a validated PageRequest from query parameters."""
    return PageRequest(page=page, size=size, sort=sort, direction=direction)


def _list(students) -> list:
    return [serialize_student(s) for s in students]


def _page(result: query.Page) -> dict:
    return result.map(serialize_student).to_dict()


# ── Listing ──────────────────────────────────────────────────

@router.get("")
def list_students(db: Session = Depends(get_db)):
    """All active students."""
    return success_response(_list(query.list_active(db)), RETRIEVED)


@router.get("/page")
def list_students_paged(paging: PageRequest = Depends(page_request),
                        db: Session = Depends(get_db)):
    return success_response(_page(query.list_active_page(db, paging)), RETRIEVED)


@router.get("/search")
def search_students(term: Optional[str] = Query(None, description="Matches name, phone or email"),
                    db: Session = Depends(get_db)):
    """Case-insensitive search across name, phone and email."""
    return success_response(_list(query.search(db, term)), SEARCHED)


@router.get("/search/page")
def search_students_paged(term: Optional[str] = Query(None, description="Matches name, phone or email"),
                          paging: PageRequest = Depends(page_request),
                          db: Session = Depends(get_db)):
    return success_response(_page(query.search_page(db, term, paging)), SEARCHED)


@router.get("/by-name")
def find_students_by_name(name: str = Query(..., description="Substring of the name, case-sensitive"),
                          db: Session = Depends(get_db)):
    return success_response(_list(query.find_by_name(db, name)), RETRIEVED)


@router.get("/by-name/page")
def find_students_by_name_paged(name: str = Query(..., description="Substring of the name, case-sensitive"),
                                paging: PageRequest = Depends(page_request),
                                db: Session = Depends(get_db)):
    return success_response(_page(query.find_by_name_page(db, name, paging)), RETRIEVED)


@router.get("/by-phone")
def find_students_by_phone(phone: str = Query(..., description="Substring of the phone number"),
                           db: Session = Depends(get_db)):
    return success_response(_list(query.find_by_phone(db, phone)), RETRIEVED)


@router.get("/by-phone/page")
def find_students_by_phone_paged(phone: str = Query(..., description="Substring of the phone number"),
                                 paging: PageRequest = Depends(page_request),
                                 db: Session = Depends(get_db)):
    return success_response(_page(query.find_by_phone_page(db, phone, paging)), RETRIEVED)


# ── Single record ────────────────────────────────────────────

@router.get("/{student_id}")
def get_student(student_id: int, db: Session = Depends(get_db)):
    student = mutation.get_student(db, student_id)
    if student is None:
        raise NotFound(student_id)
    return success_response(serialize_student(student), "Student retrieved successfully")


@router.post("", status_code=status.HTTP_201_CREATED)
def create_student(payload: StudentIn, db: Session = Depends(get_db)):
    student = mutation.create_student(db, payload.model_dump())
    return success_response(serialize_student(student), "Student created successfully")


@router.put("/{student_id}")
def update_student(student_id: int, payload: StudentIn, db: Session = Depends(get_db)):
    """Replace the mutable fields of an active student; 404 when missing or deleted."""
    if mutation.get_student(db, student_id) is None:
        raise NotFound(student_id)
    student = mutation.update_student(db, student_id, payload.model_dump(), strict=True)
    return success_response(serialize_student(student), "Student updated successfully")


@router.delete("/{student_id}")
def delete_student(student_id: int, db: Session = Depends(get_db)):
    """Soft delete. Repeating it on a deleted student still succeeds."""
    if not mutation.delete_student(db, student_id):
        raise NotFound(student_id)
    return success_response(None, "Student deleted successfully")
