"""Tests for domain exceptions (error_code, message, details)."""

import pytest

from automation.domain.exceptions import (
    AutomationException,
    DataSyncException,
    ExpressionEvaluationException,
    PredicateCompileException,
    ResourceNotFoundException,
    SqlNotConfiguredException,
    ValidationException,
)


def test_automation_exception_default_error_code() -> None:
    """Base AutomationException uses class name as error_code when not provided."""
    exc = AutomationException("Something failed")
    assert exc.message == "Something failed"
    assert exc.error_code == "AutomationException"
    assert exc.details == {}
    assert str(exc) == "Something failed"


def test_to_dict_is_the_api_error_body() -> None:
    exc = AutomationException("Oops", error_code="CUSTOM", details={"key": "value"})
    assert exc.to_dict() == {
        "error": "CUSTOM",
        "message": "Oops",
        "details": {"key": "value"},
    }


def test_validation_exception() -> None:
    exc = ValidationException("Invalid attribute", field="attribute_id")
    assert exc.error_code == "VALIDATION_ERROR"
    assert exc.details == {"field": "attribute_id"}


def test_validation_exception_without_field() -> None:
    assert ValidationException("Bad").details == {}


def test_resource_not_found() -> None:
    exc = ResourceNotFoundException("workflow", "wf1")
    assert exc.message == "workflow not found: wf1"
    assert exc.error_code == "RESOURCE_NOT_FOUND"
    assert exc.details == {"resource_type": "workflow", "resource_id": "wf1"}


@pytest.mark.parametrize(
    ("kwargs", "details"),
    [
        ({}, {}),
        ({"condition_id": "c1"}, {"condition_id": "c1"}),
        ({"condition_id": "c1", "operator": "REGEX"}, {"condition_id": "c1", "operator": "REGEX"}),
    ],
)
def test_predicate_compile_exception(kwargs, details) -> None:
    exc = PredicateCompileException("cannot compile", **kwargs)
    assert exc.error_code == "PREDICATE_COMPILE_ERROR"
    assert exc.details == details


def test_expression_evaluation_exception() -> None:
    exc = ExpressionEvaluationException("a +", "unexpected end")
    assert exc.error_code == "EXPRESSION_ERROR"
    assert "a +" in exc.message
    assert "unexpected end" in exc.message


def test_data_sync_exception() -> None:
    exc = DataSyncException("sync1", "HTTP 500")
    assert exc.error_code == "DATA_SYNC_ERROR"
    assert exc.details == {"schedule_id": "sync1"}


def test_sql_not_configured() -> None:
    exc = SqlNotConfiguredException()
    assert exc.error_code == "SERVICE_UNAVAILABLE"
    assert isinstance(exc, AutomationException)
