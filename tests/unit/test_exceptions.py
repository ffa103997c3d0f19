"""Tests for the error taxonomy and normalization helpers."""

import asyncio
import json

import aiohttp
import pytest

from floor_arbitrage.constants import ErrorCode, ErrorSeverity
from floor_arbitrage.exceptions import (
    AuthenticationError,
    CircuitOpenError,
    ConfigurationError,
    FloorArbitrageError,
    HttpError,
    NetworkError,
    OrderError,
    RateLimitError,
    RequestTimeoutError,
    ReservoirError,
    UnknownReservoirError,
    ValidationError,
    classify_http_status,
    normalize_error,
    parse_retry_after,
)


def test_base_error_carries_details():
    error = FloorArbitrageError("Test error", {"key": "value"})
    assert str(error) == "Test error"
    assert error.details == {"key": "value"}


def test_configuration_error_inheritance():
    assert isinstance(ConfigurationError("bad"), FloorArbitrageError)
    assert not isinstance(ConfigurationError("bad"), ReservoirError)


def test_rate_limit_error_defaults():
    error = RateLimitError()
    assert error.code == ErrorCode.RATE_LIMIT
    assert error.retry_after_ms == 60000
    assert error.retryable
    assert error.severity == ErrorSeverity.WARNING
    assert error.status == 429
    assert error.details["retry_after_ms"] == 60000


def test_authentication_error_is_critical():
    error = AuthenticationError()
    assert error.message == "Invalid API key"
    assert error.code == ErrorCode.API_KEY_INVALID
    assert error.severity == ErrorSeverity.CRITICAL
    assert not error.retryable


def test_validation_error_keeps_field():
    error = ValidationError("limit", "limit must be between 1 and 1000")
    assert error.field == "limit"
    assert error.code == ErrorCode.VALIDATION_ERROR
    assert str(error) == "limit must be between 1 and 1000 (VALIDATION_ERROR)"


def test_http_error_messages():
    assert HttpError(502).message == "HTTP error! status: 502"
    assert HttpError(502).is_server_error
    assert not HttpError(404).is_server_error
    assert HttpError(503).code == ErrorCode.SERVICE_UNAVAILABLE
    assert HttpError(500).code == ErrorCode.HTTP_ERROR


def test_network_error_prefix():
    assert NetworkError("connection reset").message == "Network error: connection reset"


def test_order_and_circuit_errors():
    order = OrderError("not fillable", order_id="o-1")
    assert order.order_id == "o-1"
    assert order.code == ErrorCode.ORDER_ERROR

    circuit = CircuitOpenError("reservoir", 12.5)
    assert circuit.message == "Circuit 'reservoir' is open"
    assert circuit.details == {"circuit": "reservoir", "retry_in_seconds": 12.5}


def test_to_dict():
    data = RateLimitError(1500).to_dict()
    assert data["type"] == "RateLimitError"
    assert data["code"] == "RATE_LIMIT"
    assert data["severity"] == "warning"
    assert data["details"]["retry_after_ms"] == 1500


@pytest.mark.parametrize(
    "header, expected",
    [("5", 5000), ("0.5", 500), (None, None), ("soon", None), ("-1", None)],
)
def test_parse_retry_after(header, expected):
    assert parse_retry_after(header) == expected


class TestClassifyHttpStatus:
    def test_unauthorized(self):
        error = classify_http_status(401, {}, {"message": "Key revoked"})
        assert isinstance(error, AuthenticationError)
        assert error.message == "Key revoked"

    def test_rate_limited_reads_retry_after(self):
        error = classify_http_status(429, {"Retry-After": "3"})
        assert isinstance(error, RateLimitError)
        assert error.retry_after_ms == 3000

    def test_rate_limited_without_header_has_no_hint(self):
        error = classify_http_status(429, {})
        assert isinstance(error, RateLimitError)
        assert error.retry_after_ms is None

    def test_other_status_uses_body(self):
        error = classify_http_status(
            400, {}, {"message": "Bad collection", "code": "E42", "details": {"x": 1}}
        )
        assert isinstance(error, HttpError)
        assert error.message == "Bad collection"
        assert error.error_code == "E42"
        assert error.details == {"status": 400, "x": 1}

    def test_non_dict_body_ignored(self):
        error = classify_http_status(500, None, "oops")
        assert error.message == "HTTP error! status: 500"


class TestNormalizeError:
    def test_passes_through_reservoir_errors(self):
        error = RateLimitError()
        assert normalize_error(error) is error

    def test_timeout(self):
        assert isinstance(normalize_error(asyncio.TimeoutError()), RequestTimeoutError)

    def test_client_connection_error(self):
        normalized = normalize_error(aiohttp.ClientConnectionError("refused"))
        assert isinstance(normalized, NetworkError)
        assert "refused" in normalized.message

    def test_json_decode_error(self):
        with pytest.raises(json.JSONDecodeError) as exc_info:
            json.loads("{bad")
        normalized = normalize_error(exc_info.value)
        assert isinstance(normalized, ValidationError)
        assert normalized.field == "response"

    def test_unknown(self):
        normalized = normalize_error(RuntimeError("weird"))
        assert isinstance(normalized, UnknownReservoirError)
        assert normalized.message == "weird"
        assert normalized.code == ErrorCode.UNKNOWN_ERROR
