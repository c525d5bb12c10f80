"""Tests for dispatch and failure classification."""

import json

import httpx
import pytest

from core.request_types import OutboundEnvelope
from core.translator import parse_target
from services.upstream import UpstreamClient
from tests.fakes import RecordingLogger

ALLOWED = ("https://v-archive.net",)


def _envelope(method="GET", url="https://v-archive.net/api/a", body=None) -> OutboundEnvelope:
    return OutboundEnvelope(
        method=method,
        url=url,
        headers={"host": "v-archive.net"},
        body=body or {},
        target=parse_target(url),
    )


def _upstream(handler, logger=None) -> UpstreamClient:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return UpstreamClient(client, logger or RecordingLogger(), ALLOWED)


@pytest.mark.asyncio
async def test_success_passes_body_through():
    upstream = _upstream(lambda request: httpx.Response(200, json={"ok": True}))
    result = await upstream.dispatch(_envelope())
    assert result.ok
    assert result.status_code == 200
    assert result.payload == {"ok": True}


@pytest.mark.asyncio
async def test_upstream_error_status_is_not_a_failure():
    upstream = _upstream(lambda request: httpx.Response(404, json={"detail": "missing"}))
    result = await upstream.dispatch(_envelope())
    assert result.ok
    assert result.status_code == 404
    assert result.payload == {"detail": "missing"}


@pytest.mark.asyncio
async def test_non_json_body_is_returned_as_text():
    upstream = _upstream(lambda request: httpx.Response(500, text="boom"))
    result = await upstream.dispatch(_envelope())
    assert result.status_code == 500
    assert result.payload == "boom"


@pytest.mark.asyncio
async def test_post_sends_json_body():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(201, json={})

    upstream = _upstream(handler)
    await upstream.dispatch(_envelope(method="POST", body={"foo": "bar"}))
    assert seen[0].method == "POST"
    assert json.loads(seen[0].content) == {"foo": "bar"}


@pytest.mark.asyncio
async def test_plain_get_has_no_body():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={})

    await _upstream(handler).dispatch(_envelope())
    assert seen[0].content == b""


@pytest.mark.asyncio
async def test_connection_refused_maps_to_502():
    logger = RecordingLogger()

    def handler(request):
        raise httpx.ConnectError("[Errno 111] Connection refused", request=request)

    result = await _upstream(handler, logger).dispatch(_envelope())
    assert not result.ok
    assert result.status_code == 502
    assert result.payload["status"] == 502
    assert result.payload["error"]["origin"] == "https://v-archive.net"
    assert result.payload["error"]["code"] == "ECONNREFUSED"
    assert result.payload["debug"] == {
        "proxiedUrl": "https://v-archive.net/api/a",
        "allowedDomains": ["https://v-archive.net"],
    }
    assert logger.errors[0][1] == 502


@pytest.mark.asyncio
async def test_refusal_detected_through_cause_chain():
    def handler(request):
        try:
            raise ConnectionRefusedError(111, "refused")
        except ConnectionRefusedError as e:
            raise httpx.ConnectError("connect failed", request=request) from e

    result = await _upstream(handler).dispatch(_envelope())
    assert result.status_code == 502
    assert result.payload["error"]["code"] == "ECONNREFUSED"


@pytest.mark.asyncio
async def test_timeout_maps_to_502():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    result = await _upstream(handler).dispatch(_envelope())
    assert result.status_code == 502
    assert result.payload["error"]["code"] == "ReadTimeout"


@pytest.mark.asyncio
async def test_dns_failure_maps_to_500():
    def handler(request):
        raise httpx.ConnectError("[Errno -2] Name or service not known", request=request)

    result = await _upstream(handler).dispatch(_envelope())
    assert result.status_code == 500
    assert result.payload["error"]["message"] == "[Errno -2] Name or service not known"


@pytest.mark.asyncio
async def test_status_error_uses_upstream_status_and_body():
    def handler(request):
        response = httpx.Response(429, json={"error": "slow down"}, request=request)
        raise httpx.HTTPStatusError("rate limited", request=request, response=response)

    result = await _upstream(handler).dispatch(_envelope())
    assert not result.ok
    assert result.status_code == 429
    assert result.payload["error"] == {"error": "slow down"}


@pytest.mark.asyncio
async def test_unexpected_client_error_becomes_500_failure():
    logger = RecordingLogger()

    def handler(request):
        raise RuntimeError("transport exploded")

    result = await _upstream(handler, logger).dispatch(_envelope())
    assert not result.ok
    assert result.status_code == 500
    assert result.payload["error"]["code"] == "RuntimeError"
    assert result.payload["error"]["origin"] == "https://v-archive.net"
    assert "debug" in result.payload
    assert logger.errors[0][1] == 500


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", [b'{"v": NaN}', b'{"v": -Infinity}', b'{"v": 1e999}'])
async def test_non_standard_json_numbers_are_returned_as_text(raw):
    upstream = _upstream(lambda request: httpx.Response(200, content=raw))
    result = await upstream.dispatch(_envelope())
    assert result.ok
    assert result.status_code == 200
    assert result.payload == raw.decode()
