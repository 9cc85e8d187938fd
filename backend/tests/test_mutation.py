import pytest

from roster.exceptions import NoOpUpdate
from roster.models.student import Student
from roster.services import mutation
from roster.services.store import StudentStore

FULL_FIELDS = {
    "owner_id": 7,
    "name": "Chen Jing",
    "gender": "F",
    "phone": "13712345678",
    "age": 21,
    "native_place": "Hangzhou",
    "major": "Computer Science",
    "email": "chen@example.com",
    "tag": "honors,dorm-3",
    "remark": "Transferred in spring",
    "creator_id": 42,
}

UPDATE_FIELDS = {
    "name": "Chen Jing Updated",
    "gender": "F",
    "phone": "13700000000",
    "age": 22,
    "native_place": "Ningbo",
    "major": "Mathematics",
    "email": "chen.j@example.com",
    "tag": "honors",
    "remark": None,
}


# ── create ───────────────────────────────────────────────────

def test_create_then_get_round_trip(db):
    created = mutation.create_student(db, FULL_FIELDS)
    fetched = mutation.get_student(db, created.id)

    assert fetched is not None
    for name, value in FULL_FIELDS.items():
        assert getattr(fetched, name) == value
    assert fetched.id is not None
    assert fetched.created_at is not None
    assert fetched.created_at == fetched.updated_at
    assert fetched.deleted is False


def test_create_ignores_caller_supplied_system_fields(db, make_student):
    existing = make_student(name="Existing")

    created = mutation.create_student(db, {"name": "New", "id": existing.id, "deleted": True})

    assert created.id != existing.id
    assert created.deleted is False
    assert StudentStore(db).get_by_id(existing.id).name == "Existing"


def test_create_explicit_creator_wins(db):
    created = mutation.create_student(db, {"name": "X", "creator_id": 1}, creator_id=2)
    assert created.creator_id == 2


# ── get ──────────────────────────────────────────────────────

def test_get_missing_returns_none(db):
    assert mutation.get_student(db, 12345) is None


# ── update ───────────────────────────────────────────────────

def test_update_overwrites_mutable_fields_only(db):
    created = mutation.create_student(db, FULL_FIELDS)
    created_at = created.created_at

    updated = mutation.update_student(db, created.id, {**UPDATE_FIELDS, "owner_id": 99, "creator_id": 99})

    assert isinstance(updated, Student)
    for name, value in UPDATE_FIELDS.items():
        assert getattr(updated, name) == value
    assert updated.id == created.id
    assert updated.owner_id == 7
    assert updated.creator_id == 42
    assert updated.created_at == created_at
    assert updated.created_at <= updated.updated_at
    assert updated.version == 2


def test_update_is_full_replacement(db):
    created = mutation.create_student(db, FULL_FIELDS)

    updated = mutation.update_student(db, created.id, {"name": "Only Name"})

    assert updated.name == "Only Name"
    assert updated.phone is None
    assert updated.major is None


def test_update_missing_returns_input_unchanged(db, make_student):
    make_student(name="Someone")
    fields = dict(UPDATE_FIELDS)

    result = mutation.update_student(db, 999, fields, strict=False)

    assert result is fields
    assert result == UPDATE_FIELDS
    assert len(StudentStore(db).list_all()) == 1
    assert StudentStore(db).get_by_id(999) is None


def test_update_deleted_is_a_no_op(db, make_student):
    student = make_student(name="Deleted Later")
    mutation.delete_student(db, student.id)
    version = student.version

    result = mutation.update_student(db, student.id, UPDATE_FIELDS, strict=False)

    assert result is UPDATE_FIELDS
    stored = StudentStore(db).get_by_id(student.id)
    assert stored.name == "Deleted Later"
    assert stored.version == version


def test_strict_update_of_missing_raises(db):
    with pytest.raises(NoOpUpdate) as exc_info:
        mutation.update_student(db, 999, UPDATE_FIELDS, strict=True)
    assert exc_info.value.student_id == 999


def test_strict_mode_from_configuration(db, make_student, monkeypatch):
    student = make_student(name="Soon Gone")
    mutation.delete_student(db, student.id)
    monkeypatch.setattr(mutation, "STRICT_UPDATES", True)

    with pytest.raises(NoOpUpdate):
        mutation.update_student(db, student.id, UPDATE_FIELDS)


# ── delete ───────────────────────────────────────────────────

def test_delete_missing_returns_false(db):
    assert mutation.delete_student(db, 404) is False


def test_delete_soft_deletes(db, make_student):
    student = make_student(name="To Delete")

    assert mutation.delete_student(db, student.id) is True

    assert mutation.get_student(db, student.id) is None
    stored = StudentStore(db).get_by_id(student.id)
    assert stored is not None
    assert stored.deleted is True
    assert stored.created_at <= stored.updated_at


def test_delete_twice_is_idempotent(db, make_student):
    student = make_student(name="Twice")
    mutation.delete_student(db, student.id)
    stored = StudentStore(db).get_by_id(student.id)
    snapshot = (stored.deleted, stored.updated_at, stored.version)

    assert mutation.delete_student(db, student.id) is True

    db.expire_all()
    stored = StudentStore(db).get_by_id(student.id)
    assert (stored.deleted, stored.updated_at, stored.version) == snapshot
