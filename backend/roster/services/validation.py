"""
Field validation for candidate student records.

`validate_student_fields` is the explicit entry point for callers outside
the HTTP layer: it returns a list of field errors instead of raising, and
an empty list means the input is acceptable to the mutation workflow.
`field_errors` converts pydantic error dicts (from StudentIn directly or
from FastAPI's RequestValidationError) into the same shape, so both paths
report identical messages.
"""

from typing import List, Tuple, Optional

from pydantic import ValidationError

from roster.models.student import API_FIELDS
from roster.schemas import StudentIn

# attribute name -> API name
_API_NAMES = {attr: api for api, attr in API_FIELDS.items()}

_LABELS = {
    "ownerId": "Owner ID",
    "name": "Name",
    "gender": "Gender",
    "phone": "Phone",
    "age": "Age",
    "nativePlace": "Native place",
    "major": "Major",
    "email": "Email",
    "tag": "Tag",
    "remark": "Remark",
    "creatorId": "Creator ID",
}


def _api_name(loc: tuple) -> str:
    # FastAPI prefixes errors with where the value came from
    parts = [p for p in loc if p not in ("body", "query", "path")]
    if not parts:
        return "body"
    name = str(parts[0])
    return _API_NAMES.get(name, name)


def _message(field: str, error: dict) -> str:
    label = _LABELS.get(field, field)
    error_type = error.get("type", "")
    ctx = error.get("ctx") or {}

    if error_type == "missing":
        return "{} is required".format(label)
    if error_type == "string_too_long":
        return "{} must be less than {} characters".format(label, ctx.get("max_length"))
    if error_type == "string_pattern_mismatch" and field == "phone":
        return "Phone must contain only digits"
    if error_type.startswith("int_"):
        return "{} must be an integer".format(label)
    if error_type == "value_error":
        if field == "email" and "valid email" in error.get("msg", ""):
            return "Email should be valid"
        return str(ctx.get("error") or error.get("msg", "")).removeprefix("Value error, ")
    return error.get("msg", "Invalid value")


def field_errors(errors: list) -> List[dict]:
    """pydantic error dicts -> [{"field": apiName, "message": text}, ...]"""
    result = []
    for error in errors:
        field = _api_name(tuple(error.get("loc", ())))
        result.append({"field": field, "message": _message(field, error)})
    return result


def parse_student_fields(data: dict) -> Tuple[Optional[StudentIn], List[dict]]:
    """Validate raw input, returning (model, []) or (None, errors)."""
    try:
        return StudentIn.model_validate(data), []
    except ValidationError as exc:
        return None, field_errors(exc.errors())


def validate_student_fields(data: dict) -> List[dict]:
    """Return the field errors for a candidate record; empty when valid."""
    return parse_student_fields(data)[1]
