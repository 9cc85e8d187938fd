"""
Query Engine - filtered, sorted and paginated views over the roster.

Every read path composes the soft-delete policy with its own filter:

- list_active: all visible students
- find_by_name: visible students whose name contains a substring (case-sensitive)
- find_by_phone: visible students whose phone contains a substring (case-sensitive)
- search: visible students whose name, phone or email contains a term,
  ignoring case; a blank or missing term lists every visible student

Each read has an unpaged form (a list ordered by id) and a paged form
(`*_page`) that takes a PageRequest and returns a Page. Paging is pushed
down to SQL: the full filtered set is ordered by the requested key, ties
broken by ascending id, and only then cut with OFFSET/LIMIT, so the pages
of an unchanged table partition the sorted set exactly.
"""

import math
import time
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from sqlalchemy.orm import Session, Query

from roster.exceptions import InvalidPageRequest
from roster.logging_config import get_logger, log_with_context, elapsed_ms
from roster.models.student import Student, API_FIELDS
from roster.services.store import StudentStore
from roster.services.visibility import active_clause

logger = get_logger("query")

DEFAULT_PAGE = 0
DEFAULT_SIZE = 10
DEFAULT_SORT = "id"
DEFAULT_DIRECTION = "ASC"

LIKE_ESCAPE = "/"

# LIMIT and OFFSET are bound as signed 64-bit integers
MAX_SQL_INT = 2 ** 63 - 1

# Accept both API names (nativePlace) and attribute names (native_place)
SORTABLE_FIELDS = {**API_FIELDS, **{attr: attr for attr in API_FIELDS.values()}}


@dataclass(frozen=True)
class PageRequest:
    """Validated paging parameters: 0-based page, page size, sort key and direction."""

    page: int = DEFAULT_PAGE
    size: int = DEFAULT_SIZE
    sort: str = DEFAULT_SORT
    direction: str = DEFAULT_DIRECTION

    def __post_init__(self):
        if self.page is None or self.page < 0:
            raise InvalidPageRequest("page", "Page index must not be less than zero")
        if self.size is None or self.size < 1:
            raise InvalidPageRequest("size", "Page size must not be less than one")
        if self.size > MAX_SQL_INT:
            raise InvalidPageRequest("size", "Page size must not be greater than {}".format(MAX_SQL_INT))
        if self.page * self.size > MAX_SQL_INT:
            raise InvalidPageRequest("page", "Page index is too large for page size {}".format(self.size))
        if self.sort not in SORTABLE_FIELDS:
            raise InvalidPageRequest("sort", "Unknown sort field: {}".format(self.sort))
        direction = (self.direction or "").upper()
        if direction not in ("ASC", "DESC"):
            raise InvalidPageRequest(
                "direction",
                "Invalid sort direction '{}', expected ASC or DESC".format(self.direction))
        # frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, "direction", direction)

    @property
    def offset(self) -> int:
        return self.page * self.size

    @property
    def sort_attribute(self) -> str:
        return SORTABLE_FIELDS[self.sort]

    def order_by(self) -> list:
        """ORDER BY clauses: the requested key, then id ascending as tiebreaker."""
        column = getattr(Student, self.sort_attribute)
        if self.direction == "DESC":
            clauses = [column.desc().nulls_last()]
        else:
            clauses = [column.asc().nulls_first()]
        if self.sort_attribute != "id":
            clauses.append(Student.id.asc())
        return clauses


@dataclass
class Page:
    """One slice of a sorted result set plus its position metadata."""

    content: List[Any]
    current_page: int
    total_items: int
    size: int
    total_pages: int = field(init=False)

    def __post_init__(self):
        self.total_pages = max(1, math.ceil(self.total_items / self.size))

    @property
    def first(self) -> bool:
        return self.current_page == 0

    @property
    def last(self) -> bool:
        return self.current_page == self.total_pages - 1

    @property
    def empty(self) -> bool:
        return len(self.content) == 0

    def map(self, fn: Callable) -> "Page":
        """Same page metadata with every content item passed through fn."""
        return Page(content=[fn(item) for item in self.content],
                    current_page=self.current_page,
                    total_items=self.total_items,
                    size=self.size)

    def to_dict(self) -> dict:
        return {
            "content": self.content,
            "currentPage": self.current_page,
            "totalItems": self.total_items,
            "totalPages": self.total_pages,
            "size": self.size,
            "first": self.first,
            "last": self.last,
            "empty": self.empty,
        }


def _like_pattern(value: str) -> str:
    """%value% with LIKE wildcards in value matched literally."""
    escaped = (value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
                    .replace("%", LIKE_ESCAPE + "%")
                    .replace("_", LIKE_ESCAPE + "_"))
    return "%{}%".format(escaped)


def _is_blank(term: Optional[str]) -> bool:
    return term is None or not term.strip()


# ── Filters ──────────────────────────────────────────────────

def _active(db: Session) -> Query:
    return StudentStore(db).query().filter(active_clause())


def _by_name(db: Session, name: str) -> Query:
    return _active(db).filter(Student.name.like(_like_pattern(name or ""), escape=LIKE_ESCAPE))


def _by_phone(db: Session, phone: str) -> Query:
    return _active(db).filter(Student.phone.like(_like_pattern(phone or ""), escape=LIKE_ESCAPE))


def _by_term(db: Session, term: Optional[str]) -> Query:
    if _is_blank(term):
        return _active(db)
    pattern = _like_pattern(term)
    return _active(db).filter(
        Student.name.ilike(pattern, escape=LIKE_ESCAPE) |
        Student.phone.ilike(pattern, escape=LIKE_ESCAPE) |
        Student.email.ilike(pattern, escape=LIKE_ESCAPE)
    )


# ── Execution ────────────────────────────────────────────────

def _fetch_all(query: Query, operation: str, context: dict) -> List[Student]:
    start_time = time.perf_counter()
    students = query.order_by(Student.id.asc()).all()
    log_with_context(logger, "DEBUG",
        "{} returned {} students".format(operation, len(students)),
        context=context,
        extra_data={"duration_ms": elapsed_ms(start_time), "total_items": len(students)})
    return students


def _fetch_page(query: Query, page_request: PageRequest, operation: str, context: dict) -> Page:
    start_time = time.perf_counter()
    total_items = query.order_by(None).count()
    content = (query.order_by(*page_request.order_by())
                    .offset(page_request.offset)
                    .limit(page_request.size)
                    .all())
    page = Page(content=content, current_page=page_request.page,
                total_items=total_items, size=page_request.size)
    log_with_context(logger, "DEBUG",
        "{} page {} of {} ({} of {} students)".format(
            operation, page.current_page, page.total_pages, len(content), total_items),
        context={**context, "page": page_request.page, "size": page_request.size,
                 "sort": page_request.sort, "direction": page_request.direction},
        extra_data={"duration_ms": elapsed_ms(start_time), "total_items": total_items})
    return page


# ── Public operations ────────────────────────────────────────

def list_active(db: Session) -> List[Student]:
    return _fetch_all(_active(db), "list_active", {})


def list_active_page(db: Session, page_request: PageRequest = None) -> Page:
    return _fetch_page(_active(db), page_request or PageRequest(), "list_active", {})


def find_by_name(db: Session, name: str) -> List[Student]:
    return _fetch_all(_by_name(db, name), "find_by_name", {"name": name})


def find_by_name_page(db: Session, name: str, page_request: PageRequest = None) -> Page:
    return _fetch_page(_by_name(db, name), page_request or PageRequest(),
                       "find_by_name", {"name": name})


def find_by_phone(db: Session, phone: str) -> List[Student]:
    return _fetch_all(_by_phone(db, phone), "find_by_phone", {"phone": phone})


def find_by_phone_page(db: Session, phone: str, page_request: PageRequest = None) -> Page:
    return _fetch_page(_by_phone(db, phone), page_request or PageRequest(),
                       "find_by_phone", {"phone": phone})


def search(db: Session, term: Optional[str] = None) -> List[Student]:
    """Case-insensitive match on name, phone or email; blank term lists all."""
    return _fetch_all(_by_term(db, term), "search", {"term": term})


def search_page(db: Session, term: Optional[str] = None,
                page_request: PageRequest = None) -> Page:
    return _fetch_page(_by_term(db, term), page_request or PageRequest(),
                       "search", {"term": term})
