"""
Test suite for job schemas.

System role: Verification of submission rules and error detail shaping
"""

import pytest
from pydantic import ValidationError

from jobcore.core.exceptions import ExecutionFailed
from jobcore.models.job import CallerIdentity, ErrorDetail, JobStatus, QuerySubmission, truncate


class TestQuerySubmission:
    """QuerySubmission validation."""

    @pytest.mark.parametrize(
        "query",
        [
            "SELECT 1",
            "select * from t where a = :a",
            "WITH x AS (SELECT 1) SELECT * FROM x",
            "  SELECT 1;  ",
            "SELECT ';' AS sep",
            "SELECT 'it''s; fine' FROM t",
            "SELECT 1 AS \"a;b\"",
            "-- leading note; with semicolon\nSELECT 1",
        ],
    )
    def test_read_only_queries_should_be_accepted(self, query: str) -> None:
        submission = QuerySubmission(query=query)

        assert not submission.query.endswith(";")

    @pytest.mark.parametrize(
        "query",
        [
            "UPDATE t SET a = 1",
            "INSERT INTO t VALUES (1)",
            "SELECT 1; SELECT 2",
            "SELECT ';'; DELETE FROM t",
            "SELECT 'unterminated",
            "SELECT 1 /* open comment",
            "selection",
            ";",
        ],
    )
    def test_other_statements_should_be_rejected(self, query: str) -> None:
        with pytest.raises(ValidationError):
            QuerySubmission(query=query)

    def test_parameters_must_be_flat_scalars(self) -> None:
        QuerySubmission(query="SELECT 1", parameters={"a": 1, "b": "x", "c": None, "d": 1.5})

        with pytest.raises(ValidationError):
            QuerySubmission(query="SELECT 1", parameters={"a": [1, 2]})


class TestErrorDetail:
    """ErrorDetail.from_exception()."""

    def test_should_prefer_upstream_error_class(self) -> None:
        exc = ExecutionFailed("boom", details={"upstream_error": "OperationalError"})

        detail = ErrorDetail.from_exception(exc)

        assert detail == ErrorDetail(error_class="OperationalError", message="boom")

    def test_should_fall_back_to_exception_type(self) -> None:
        detail = ErrorDetail.from_exception(ValueError("bad value"))

        assert detail.error_class == "ValueError"
        assert detail.message == "bad value"

    def test_should_truncate_message(self) -> None:
        detail = ErrorDetail.from_exception(RuntimeError("y" * 1000), max_length=50)

        assert len(detail.message) == 50
        assert detail.message.endswith("[truncated]")

    def test_truncate_should_leave_short_text(self) -> None:
        assert truncate("short", 50) == "short"


class TestIdentityAndStatus:
    def test_admin_role(self) -> None:
        assert CallerIdentity(subject="a", roles=frozenset({"admin"})).is_admin
        assert not CallerIdentity(subject="a").is_admin

    def test_terminal_statuses(self) -> None:
        assert JobStatus.COMPLETED.is_terminal
        assert JobStatus.FAILED.is_terminal
        assert not JobStatus.PENDING.is_terminal
        assert not JobStatus.RUNNING.is_terminal
