"""
Validator: ordered field errors, blank required values, enumerations, and
input collected from path/query/body.
"""

from enum import Enum
from typing import Optional

import pytest
from pydantic import BaseModel, Field

from ku_connect.core.errors import RequestValidationFailed
from ku_connect.middleware.context import RequestContext
from ku_connect.middleware.validator import Validator
from ku_connect.schemas.schemas import JobListQuery, PreferenceUpdate, RegisterRequest

validator = Validator()


class Color(str, Enum):
    red = "red"
    blue = "blue"


class Sample(BaseModel):
    name: str
    age: int
    color: Color
    note: Optional[str] = Field(None, max_length=5)


def errors_for(schema, sources=("body",), **ctx_kwargs):
    with pytest.raises(RequestValidationFailed) as exc_info:
        validator.validate(RequestContext(**ctx_kwargs), schema, sources)
    return exc_info.value.to_body()["errors"]


def test_valid_body_is_parsed():
    body = validator.validate(RequestContext(raw_body={"name": "Ann", "age": "21", "color": "red"}), Sample)
    assert body == Sample(name="Ann", age=21, color=Color.red)


def test_every_failure_reported_in_declared_order():
    errors = errors_for(Sample, raw_body={"note": "far too long", "color": "green", "age": "old"})
    assert [e["field"] for e in errors] == ["name", "age", "color", "note"]
    assert errors[0]["message"] == "name is required"


def test_blank_required_string_counts_as_missing():
    errors = errors_for(Sample, raw_body={"name": "   ", "age": 3, "color": "blue"})
    assert errors == [{"field": "name", "message": "name is required"}]


def test_enumeration_must_match():
    errors = errors_for(Sample, raw_body={"name": "a", "age": 1, "color": "green"})
    assert [e["field"] for e in errors] == ["color"]


def test_missing_body_reports_required_fields():
    errors = errors_for(Sample)
    assert [e["field"] for e in errors] == ["name", "age", "color"]


def test_invalid_json_is_a_validation_error():
    errors = errors_for(Sample, body_error="Request body must be valid JSON")
    assert errors == [{"field": "body", "message": "Request body must be valid JSON"}]


def test_non_object_body_is_a_validation_error():
    errors = errors_for(Sample, raw_body=[1, 2, 3])
    assert errors[0]["field"] == "body"


def test_later_source_wins_on_conflict():
    class WithId(BaseModel):
        user_id: str

    ctx = RequestContext(path_params={"user_id": "from-path"}, raw_body={"user_id": "from-body"})
    assert validator.validate(ctx, WithId, ("body", "path")).user_id == "from-path"


def test_query_strings_are_coerced():
    ctx = RequestContext(query_params={"page": "2", "page_size": "5", "job_type": "internship"})
    query = validator.validate(ctx, JobListQuery, ("query",))
    assert (query.page, query.page_size, query.job_type.value) == (2, 5, "internship")


def test_register_request_rejects_admin_self_registration():
    errors = errors_for(RegisterRequest, raw_body={
        "email": "a@ku.th", "password": "long-enough", "role": "ADMIN", "name": "Ann"
    })
    assert errors == [{"field": "role", "message": "Admin accounts cannot be self-registered"}]


def test_preferences_reject_server_owned_fields_and_normalize_industry():
    errors = errors_for(PreferenceUpdate, raw_body={"studentId": "x", "min_salary": -1})
    assert [e["field"] for e in errors] == ["min_salary", "studentId"]

    prefs = validator.validate(RequestContext(raw_body={"industry": " it_software "}), PreferenceUpdate)
    assert prefs.industry.value == "IT_SOFTWARE"
