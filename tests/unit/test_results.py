"""
Unit tests for the Result types module.
"""

import pytest

from storage_relayer.shared.results import (
    ErrorSeverity,
    ProcessingError,
    Result,
)


class TestProcessingError:
    """Tests for ProcessingError dataclass."""

    def test_create_error(self):
        """Test creating a processing error."""
        error = ProcessingError(
            source="anchor_check",
            message="Block hash mismatch",
            severity=ErrorSeverity.ERROR,
        )
        assert error.source == "anchor_check"
        assert error.message == "Block hash mismatch"
        assert error.context == {}
        assert error.exception is None

    def test_to_dict(self):
        """Test converting error to dictionary."""
        error = ProcessingError(
            source="storage_check",
            message="Storage trie verification failed",
            severity=ErrorSeverity.WARNING,
            context={"block": 21000000},
            exception=ValueError("not serialized"),
        )
        d = error.to_dict()
        assert d == {
            "source": "storage_check",
            "message": "Storage trie verification failed",
            "severity": "warning",
            "context": {"block": 21000000},
        }


class TestResult:
    """Tests for Result[T] generic class."""

    def test_ok_result(self):
        result = Result.ok({"data": "test"})
        assert result.success is True
        assert result.data == {"data": "test"}
        assert result.errors == []

    def test_fail_result(self):
        error = ProcessingError(
            source="test", message="Test error", severity=ErrorSeverity.ERROR
        )
        result = Result.fail(error)
        assert result.success is False
        assert result.data is None
        assert result.errors == [error]

    def test_fail_with_message_keeps_exception(self):
        original = RuntimeError("boom")
        result = Result.fail_with_message(
            source="account_check",
            message="Quick error",
            context={"block": 1},
            exception=original,
        )
        assert result.success is False
        assert result.errors[0].severity == ErrorSeverity.ERROR
        assert result.errors[0].context == {"block": 1}
        assert result.errors[0].exception is original

    def test_get_error_messages(self):
        result = Result.fail_with_message(source="a", message="error 1")
        assert result.get_error_messages() == ["error 1"]
        assert Result.ok("data").get_error_messages() == []

    def test_unwrap_returns_data_on_success(self):
        assert Result.ok(42).unwrap() == 42

    def test_unwrap_raises_on_failure(self):
        result = Result.fail_with_message(source="a", message="first")
        result.errors.append(
            ProcessingError(
                source="b", message="second", severity=ErrorSeverity.CRITICAL
            )
        )
        with pytest.raises(RuntimeError, match="first; second"):
            result.unwrap()
