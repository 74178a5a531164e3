"""Tests for the error taxonomy, user messages and retry policy."""

import pytest

from invoice_ocr.analysis.errors import (
    GENERIC_USER_MESSAGE,
    USER_MESSAGES,
    AnalysisError,
    AnalysisTimeout,
    ConversionFailure,
    ErrorKind,
    InitializationFailure,
    ParsingFailure,
    PreflightRejection,
    TextExtractionFailure,
    classify_exception,
    user_message,
)
from invoice_ocr.analysis.retry import RetryPolicy
from invoice_ocr.utils.config import RetryConfig


class TestTypedErrors:
    """Tests for kinds and recoverability assigned at throw sites."""

    @pytest.mark.parametrize(
        "error_cls,kind,recoverable",
        [
            (InitializationFailure, ErrorKind.INITIALIZATION, True),
            (ConversionFailure, ErrorKind.CONVERSION, True),
            (TextExtractionFailure, ErrorKind.TEXT_EXTRACTION, True),
            (AnalysisTimeout, ErrorKind.TIMEOUT, True),
            (ParsingFailure, ErrorKind.PARSING, False),
            (PreflightRejection, ErrorKind.PREFLIGHT, False),
        ],
    )
    def test_defaults(self, error_cls: type, kind: ErrorKind, recoverable: bool) -> None:
        error = error_cls()
        assert error.kind == kind
        assert error.recoverable is recoverable
        assert error.message
        assert isinstance(error, AnalysisError)

    def test_custom_message(self) -> None:
        error = ConversionFailure("bad PDF")
        assert error.message == "bad PDF"
        assert str(error) == "bad PDF"

    def test_overrides(self) -> None:
        error = AnalysisError("x", kind=ErrorKind.NETWORK, recoverable=False)
        assert error.kind == ErrorKind.NETWORK
        assert error.recoverable is False
        assert "network" in repr(error)


class TestClassifyException:
    """Tests for mapping uncontrolled exceptions onto kinds."""

    def test_typed_error_returned_unchanged(self) -> None:
        error = TextExtractionFailure()
        assert classify_exception(error) is error

    @pytest.mark.parametrize(
        "exc,kind,recoverable",
        [
            (MemoryError(), ErrorKind.RESOURCE_EXHAUSTED, False),
            (RuntimeError("out of bounds allocation"), ErrorKind.RESOURCE_EXHAUSTED, False),
            (ConnectionError("reset"), ErrorKind.NETWORK, True),
            (RuntimeError("failed to fetch model"), ErrorKind.NETWORK, True),
            (TimeoutError(), ErrorKind.TIMEOUT, True),
            (RuntimeError("operation timed out"), ErrorKind.TIMEOUT, True),
            (ValueError("something odd"), ErrorKind.UNKNOWN, True),
        ],
    )
    def test_classification(self, exc: BaseException, kind: ErrorKind, recoverable: bool) -> None:
        error = classify_exception(exc)
        assert error.kind == kind
        assert error.recoverable is recoverable
        assert error.__cause__ is exc

    def test_memory_takes_precedence_over_network(self) -> None:
        error = classify_exception(RuntimeError("network buffer out of memory"))
        assert error.kind == ErrorKind.RESOURCE_EXHAUSTED


class TestUserMessage:
    """Tests for user-facing messages."""

    def test_one_message_per_kind(self) -> None:
        assert user_message(ParsingFailure()) == USER_MESSAGES[ErrorKind.PARSING]
        assert user_message(InitializationFailure()) == USER_MESSAGES[ErrorKind.INITIALIZATION]

    def test_keyword_fallback_for_unknown_kind(self) -> None:
        error = AnalysisError("socket connection dropped", kind=ErrorKind.UNKNOWN)
        assert user_message(error) == USER_MESSAGES[ErrorKind.NETWORK]

    def test_generic_fallback(self) -> None:
        assert user_message(ValueError("boom")) == GENERIC_USER_MESSAGE


class TestRetryPolicy:
    """Tests for the RetryPolicy class."""

    def setup_method(self) -> None:
        self.policy = RetryPolicy()

    def test_defaults(self) -> None:
        assert self.policy.max_attempts == 3
        assert self.policy.backoff_seconds == 1.0

    def test_from_config(self) -> None:
        policy = RetryPolicy.from_config(RetryConfig(max_attempts=5, backoff_seconds=0.5))
        assert policy == RetryPolicy(max_attempts=5, backoff_seconds=0.5)

    def test_initialization_retried_until_limit(self) -> None:
        error = InitializationFailure()
        assert self.policy.should_retry(error, 1)
        assert self.policy.should_retry(error, 2)
        assert not self.policy.should_retry(error, 3)

    def test_network_retried(self) -> None:
        assert self.policy.should_retry(classify_exception(ConnectionError()), 1)

    @pytest.mark.parametrize(
        "error",
        [
            ConversionFailure(),
            TextExtractionFailure(),
            AnalysisTimeout(),
            ParsingFailure(),
            PreflightRejection(),
            AnalysisError("x", kind=ErrorKind.UNKNOWN),
        ],
    )
    def test_other_kinds_not_retried(self, error: AnalysisError) -> None:
        assert not self.policy.should_retry(error, 1)

    def test_non_recoverable_not_retried(self) -> None:
        error = InitializationFailure(recoverable=False)
        assert not self.policy.should_retry(error, 1)

    def test_linear_backoff(self) -> None:
        assert [self.policy.backoff(i) for i in (1, 2)] == [1.0, 2.0]
