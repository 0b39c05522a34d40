"""Tests for the error envelope helpers."""

from fastapi.exceptions import RequestValidationError

from opsdesk.core.errors import (
    NotFound,
    RateLimited,
    ValidationFailed,
    error_message,
    validation_error_map,
)


class TestErrorBodies:
    def test_default_message(self):
        assert NotFound().to_body() == {"error": "Not found"}

    def test_validation_failed_errors(self):
        exc = ValidationFailed(errors={"title": ["Required"]})

        assert exc.status_code == 400
        assert exc.to_body() == {"error": "Validation failed", "errors": {"title": ["Required"]}}

    def test_rate_limited(self):
        exc = RateLimited(120)

        assert exc.headers == {"Retry-After": "120"}
        assert exc.to_body() == {
            "error": "Rate limited. Try again in 120 seconds.",
            "retryAfter": 120,
        }


class TestErrorMessage:
    def test_uses_exception_text(self):
        assert error_message(RuntimeError("sheet missing")) == "sheet missing"

    def test_blank_falls_back(self):
        assert error_message(RuntimeError()) == "Unknown error"
        assert error_message(RuntimeError("   ")) == "Unknown error"


class TestValidationErrorMap:
    """Tests for validation_error_map."""

    def test_groups_by_field_without_location_prefix(self):
        exc = RequestValidationError(
            [
                {"loc": ("body", "title"), "msg": "Field required", "type": "missing"},
                {"loc": ("body", "title"), "msg": "Too short", "type": "too_short"},
                {"loc": ("query", "limit"), "msg": "Too large", "type": "less_than_equal"},
                {"loc": ("body", "subtasks", 0, "title"), "msg": "Bad", "type": "x"},
            ]
        )

        assert validation_error_map(exc) == {
            "title": ["Field required", "Too short"],
            "limit": ["Too large"],
            "subtasks.0.title": ["Bad"],
        }

    def test_whole_body_error(self):
        exc = RequestValidationError([{"loc": ("body",), "msg": "Invalid JSON", "type": "x"}])

        assert validation_error_map(exc) == {"_root": ["Invalid JSON"]}
