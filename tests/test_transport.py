"""Tests for the Retrying Transport."""

import httpx
import pytest

from risklist_sync.transport.retrying import RetryingTransport, backoff_seconds


def _transport(handler, max_attempts=3):
    sleeps = []
    client = httpx.Client(
        base_url="https://api.test",
        transport=httpx.MockTransport(handler),
    )
    return RetryingTransport(client, max_attempts=max_attempts, sleep=sleeps.append), sleeps


class TestRetryingTransport:
    def test_rate_limited_every_attempt_stops_at_max_attempts(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(429)

        transport, sleeps = _transport(handler)
        response = transport.request("GET", "/x")

        assert len(calls) == 3
        assert response.status_code == 429
        assert sleeps == [2.0, 4.0]

    def test_retry_after_header_is_honoured(self):
        responses = [httpx.Response(429, headers={"Retry-After": "7"}), httpx.Response(200, json={})]

        transport, sleeps = _transport(lambda request: responses.pop(0))
        response = transport.request("GET", "/x")

        assert response.status_code == 200
        assert sleeps == [7.0]

    def test_server_error_retried_then_succeeds(self):
        responses = [httpx.Response(503), httpx.Response(502), httpx.Response(200, json={"ok": True})]

        transport, sleeps = _transport(lambda request: responses.pop(0))
        response = transport.request("GET", "/x")

        assert response.status_code == 200
        assert sleeps == [2.0, 4.0]

    def test_server_error_on_last_attempt_is_returned(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500)

        transport, sleeps = _transport(handler)
        response = transport.request("GET", "/x")

        assert response.status_code == 500
        assert len(calls) == 3
        assert sleeps == [2.0, 4.0]

    def test_client_error_fails_fast(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(404)

        transport, sleeps = _transport(handler)
        response = transport.request("GET", "/x")

        assert response.status_code == 404
        assert len(calls) == 1
        assert sleeps == []

    def test_network_error_reraised_after_exhaustion(self):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError("unreachable", request=request)

        transport, sleeps = _transport(handler)
        with pytest.raises(httpx.ConnectError):
            transport.request("GET", "/x")

        assert len(calls) == 3
        assert sleeps == [2.0, 4.0]

    def test_network_error_then_success(self):
        state = {"n": 0}

        def handler(request):
            state["n"] += 1
            if state["n"] == 1:
                raise httpx.ReadTimeout("slow", request=request)
            return httpx.Response(200, json={})

        transport, sleeps = _transport(handler)
        assert transport.request("GET", "/x").status_code == 200
        assert sleeps == [2.0]

    def test_per_request_attempt_override(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503)

        transport, sleeps = _transport(handler)
        transport.request("GET", "/x", max_attempts=1)

        assert len(calls) == 1
        assert sleeps == []

    def test_backoff_is_exponential(self):
        assert [backoff_seconds(a) for a in (1, 2, 3)] == [2.0, 4.0, 8.0]

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            RetryingTransport(httpx.Client(), max_attempts=0)
