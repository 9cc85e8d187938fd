"""
Pydantic schemas and the response envelope for the students API.

JSON uses camelCase field names (nativePlace, createdAt); the models
accept snake_case too so services and tests can build them directly.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

EMAIL_MAX_LENGTH = 32


class StudentIn(BaseModel):
    """
    Candidate student fields as sent by a client for create or update.

    `id`, timestamps and the deleted flag are not part of the input;
    unknown keys are ignored.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True,
                              extra="ignore")

    owner_id: Optional[int] = None
    name: str = Field(..., max_length=64)
    gender: Optional[str] = Field(None, max_length=8)
    phone: Optional[str] = Field(None, max_length=16, pattern=r"^[0-9]*$")
    age: Optional[int] = None
    native_place: Optional[str] = Field(None, max_length=64)
    major: Optional[str] = Field(None, max_length=128)
    email: Optional[EmailStr] = None
    tag: Optional[str] = Field(None, max_length=512)
    remark: Optional[str] = Field(None, max_length=512)
    creator_id: Optional[int] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Name is required")
        return value

    @field_validator("email", mode="before")
    @classmethod
    def blank_email_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("email")
    @classmethod
    def email_length(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and len(value) > EMAIL_MAX_LENGTH:
            raise ValueError("Email must be less than {} characters".format(EMAIL_MAX_LENGTH))
        return value


class StudentOut(BaseModel):
    """A stored student as returned by the API."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True,
                              from_attributes=True)

    id: int
    owner_id: Optional[int] = None
    name: str
    gender: Optional[str] = None
    phone: Optional[str] = None
    age: Optional[int] = None
    native_place: Optional[str] = None
    major: Optional[str] = None
    email: Optional[str] = None
    tag: Optional[str] = None
    remark: Optional[str] = None
    creator_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


def serialize_student(student) -> dict:
    """ORM Student (or any object with the same attributes) -> camelCase dict."""
    return StudentOut.model_validate(student).model_dump(by_alias=True, mode="json")


# ── Response envelope ────────────────────────────────────────

def api_response(success: bool, message: str, data: Any = None) -> dict:
    return {"success": success, "message": message, "data": data}


def success_response(data: Any = None, message: str = "Operation successful") -> dict:
    return api_response(True, message, data)


def error_response(message: str, data: Any = None) -> dict:
    return api_response(False, message, data)
