"""
tests/unit/test_cloudflare_client.py

Unit tests for providers/cloudflare_client.py.
All Cloudflare API calls are intercepted by respx — no real network traffic.
"""

from __future__ import annotations

import json
from ipaddress import ip_address

import httpx
import pytest

from exceptions import DnsProviderError
from providers.cloudflare_client import CloudflareClient
from providers.dns_provider import DNSProvider, DnsRecord
from services.dns_service import DnsReconciler

_ZONE = "zone123"
_TOKEN = "test-token"
_BASE = "https://api.cloudflare.com/client/v4"


def _cf_response(result, success=True, result_info=None):
    """Helper: build a Cloudflare-shaped JSON response dict."""
    body = {"success": success, "result": result, "errors": []}
    if result_info is not None:
        body["result_info"] = result_info
    return body


def _mock_zone(mock_http, name="example.com"):
    """Helper: answer the zone lookup that resolves the zone ID to its domain."""
    return mock_http.get(f"{_BASE}/zones/{_ZONE}").mock(
        return_value=httpx.Response(200, json=_cf_response({"id": _ZONE, "name": name}))
    )


def _record_dict(**kwargs):
    return {
        "id": kwargs.get("id", "rec1"),
        "name": kwargs.get("name", "nodes.example.com"),
        "content": kwargs.get("content", "1.2.3.4"),
        "type": kwargs.get("type", "A"),
        "ttl": 60,
        "proxied": False,
        "zone_id": _ZONE,
    }


@pytest.mark.asyncio
async def test_client_satisfies_protocol(http_client):
    assert isinstance(CloudflareClient(http_client, _TOKEN), DNSProvider)


# ---------------------------------------------------------------------------
# verify_zone
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_verify_zone_succeeds(mock_http, http_client):
    mock_http.get(f"{_BASE}/zones/{_ZONE}").mock(
        return_value=httpx.Response(200, json=_cf_response({"id": _ZONE, "name": "example.com"}))
    )

    await CloudflareClient(http_client, _TOKEN).verify_zone(_ZONE)


@pytest.mark.asyncio
async def test_verify_zone_raises_on_forbidden(mock_http, http_client):
    mock_http.get(f"{_BASE}/zones/{_ZONE}").mock(
        return_value=httpx.Response(403, json=_cf_response(None, success=False))
    )

    with pytest.raises(DnsProviderError, match="403"):
        await CloudflareClient(http_client, _TOKEN).verify_zone(_ZONE)


@pytest.mark.asyncio
async def test_relative_name_uses_verified_zone_domain(mock_http, http_client):
    _mock_zone(mock_http)
    client = CloudflareClient(http_client, _TOKEN)

    await client.verify_zone(_ZONE)

    assert client.relative_name(_ZONE, "nodes.example.com") == "nodes"
    assert client.relative_name(_ZONE, "Nodes.Example.com.") == "Nodes"
    assert client.relative_name(_ZONE, "nodes") == "nodes"
    assert client.relative_name(_ZONE, "example.com") == "@"
    assert client.relative_name(_ZONE, "") == ""


@pytest.mark.asyncio
async def test_zone_domain_is_looked_up_once(mock_http, http_client):
    """Listing before verify_zone resolves the domain lazily, then reuses it."""
    zone_route = _mock_zone(mock_http)
    mock_http.get(f"{_BASE}/zones/{_ZONE}/dns_records").mock(
        return_value=httpx.Response(200, json=_cf_response([_record_dict()]))
    )
    client = CloudflareClient(http_client, _TOKEN)

    first = await client.list_records_page(_ZONE, 1)
    await client.list_records_page(_ZONE, 1)

    assert first.records[0].name == "nodes"
    assert zone_route.call_count == 1


@pytest.mark.asyncio
async def test_verify_zone_rejects_response_without_name(mock_http, http_client):
    mock_http.get(f"{_BASE}/zones/{_ZONE}").mock(
        return_value=httpx.Response(200, json=_cf_response({"id": _ZONE}))
    )

    with pytest.raises(DnsProviderError, match="no name"):
        await CloudflareClient(http_client, _TOKEN).verify_zone(_ZONE)


# ---------------------------------------------------------------------------
# list_records_page
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_list_records_page_uses_result_info(mock_http, http_client):
    """is_last_page is False until page reaches total_pages."""
    _mock_zone(mock_http)
    route = mock_http.get(f"{_BASE}/zones/{_ZONE}/dns_records").mock(
        return_value=httpx.Response(
            200,
            json=_cf_response(
                [_record_dict(), _record_dict(id="rec2", type="TXT", content="hello")],
                result_info={"page": 1, "per_page": 100, "total_pages": 2},
            ),
        )
    )

    page = await CloudflareClient(http_client, _TOKEN).list_records_page(_ZONE, 1)

    assert page.is_last_page is False
    assert page.records[0] == DnsRecord(id="rec1", name="nodes", content="1.2.3.4", type="A", ttl=60)
    assert page.records[1].type == "TXT"
    assert route.calls.last.request.url.params["page"] == "1"


@pytest.mark.asyncio
async def test_list_records_page_last_page(mock_http, http_client):
    _mock_zone(mock_http)
    mock_http.get(f"{_BASE}/zones/{_ZONE}/dns_records").mock(
        return_value=httpx.Response(
            200, json=_cf_response([], result_info={"page": 2, "per_page": 100, "total_pages": 2})
        )
    )

    page = await CloudflareClient(http_client, _TOKEN).list_records_page(_ZONE, 2)

    assert page.is_last_page is True


@pytest.mark.asyncio
async def test_list_records_page_raises_on_api_failure(mock_http, http_client):
    """success=false in a 200 response is still an error."""
    _mock_zone(mock_http)
    mock_http.get(f"{_BASE}/zones/{_ZONE}/dns_records").mock(
        return_value=httpx.Response(
            200, json={"success": False, "errors": [{"message": "bad token"}], "result": []}
        )
    )

    with pytest.raises(DnsProviderError, match="success=false"):
        await CloudflareClient(http_client, _TOKEN).list_records_page(_ZONE, 1)


# ---------------------------------------------------------------------------
# create_record / delete_record
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_create_record_posts_unproxied_record(mock_http, http_client):
    _mock_zone(mock_http)
    route = mock_http.post(f"{_BASE}/zones/{_ZONE}/dns_records").mock(
        return_value=httpx.Response(200, json=_cf_response(_record_dict(id="new1", content="10.0.0.1")))
    )

    record = await CloudflareClient(http_client, _TOKEN).create_record(
        _ZONE, "nodes", "10.0.0.1", "A", 60
    )

    assert record.id == "new1"
    assert record.name == "nodes"
    assert json.loads(route.calls.last.request.content) == {
        "type": "A",
        "name": "nodes.example.com",
        "content": "10.0.0.1",
        "ttl": 60,
        "proxied": False,
    }
    assert route.calls.last.request.headers["Authorization"] == f"Bearer {_TOKEN}"


@pytest.mark.asyncio
async def test_delete_record(mock_http, http_client):
    route = mock_http.delete(f"{_BASE}/zones/{_ZONE}/dns_records/rec1").mock(
        return_value=httpx.Response(200, json=_cf_response({"id": "rec1"}))
    )

    await CloudflareClient(http_client, _TOKEN).delete_record(_ZONE, "rec1")

    assert route.called


@pytest.mark.asyncio
async def test_network_error_becomes_provider_error(mock_http, http_client):
    mock_http.delete(f"{_BASE}/zones/{_ZONE}/dns_records/rec1").mock(
        side_effect=httpx.ConnectTimeout("timed out")
    )

    with pytest.raises(DnsProviderError, match="Network error"):
        await CloudflareClient(http_client, _TOKEN).delete_record(_ZONE, "rec1")


@pytest.mark.asyncio
async def test_create_record_keeps_fully_qualified_name(mock_http, http_client):
    _mock_zone(mock_http)
    route = mock_http.post(f"{_BASE}/zones/{_ZONE}/dns_records").mock(
        return_value=httpx.Response(200, json=_cf_response(_record_dict(id="new1")))
    )

    await CloudflareClient(http_client, _TOKEN).create_record(_ZONE, "nodes.example.com.", "1.2.3.4", "A", 60)

    assert json.loads(route.calls.last.request.content)["name"] == "nodes.example.com"


# ---------------------------------------------------------------------------
# Repeated reconcile against the Cloudflare API
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_second_reconcile_creates_nothing(mock_http, http_client):
    """Records created on one pass are recognised by name on the next."""
    _mock_zone(mock_http)
    stored: list[dict] = []

    def list_records(request):
        return httpx.Response(200, json=_cf_response(stored, result_info={"page": 1, "total_pages": 1}))

    def create_record(request):
        body = json.loads(request.content)
        record_id = f"rec{len(stored) + 1}"
        stored.append(
            _record_dict(id=record_id, name=body["name"], content=body["content"], type=body["type"])
        )
        return httpx.Response(200, json=_cf_response(stored[-1]))

    mock_http.get(f"{_BASE}/zones/{_ZONE}/dns_records").mock(side_effect=list_records)
    create_route = mock_http.post(f"{_BASE}/zones/{_ZONE}/dns_records").mock(side_effect=create_record)
    delete_route = mock_http.delete(url__startswith=f"{_BASE}/zones/{_ZONE}/dns_records/")

    client = CloudflareClient(http_client, _TOKEN)
    await client.verify_zone(_ZONE)
    record = client.relative_name(_ZONE, "nodes.example.com")
    reconciler = DnsReconciler(client, _ZONE)
    addresses = [ip_address("1.2.3.4"), ip_address("2001:db8::1")]

    await reconciler.reconcile(record, addresses)
    assert create_route.call_count == 2
    assert {r["name"] for r in stored} == {"nodes.example.com"}

    second = await reconciler.reconcile(record, addresses)

    assert second.is_empty
    assert create_route.call_count == 2
    assert not delete_route.called
