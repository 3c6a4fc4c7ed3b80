"""
providers/digitalocean_client.py

Responsibility: Implements the DNSProvider protocol using the DigitalOcean v2
Domains API. All DigitalOcean HTTP calls are concentrated here.
Does NOT: read configuration, diff record sets, or decide what to create/delete.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from exceptions import DnsProviderError
from providers.dns_provider import DnsRecord, RecordPage, relative_to
from services.metrics_service import MetricsSink

logger = logging.getLogger(__name__)

_DIGITALOCEAN_BASE = "https://api.digitalocean.com/v2"

_PER_PAGE = 100


class DigitalOceanClient:
    """
    Implements DNSProvider for DigitalOcean DNS.

    The zone argument of every method is the domain name ("example.com").
    Record names are relative to the domain ("nodes", not "nodes.example.com"),
    matching what the API returns in each domain record's "name" field.

    Every response's RateLimit-Remaining header is forwarded to the metrics
    sink so operators can see how close the token is to throttling.

    Collaborators:
        - httpx.AsyncClient: injected HTTP client; must be kept alive externally
        - MetricsSink: receives the rate-limit headroom
    """

    name = "digitalocean"

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_token: str,
        metrics: MetricsSink | None = None,
    ) -> None:
        """
        Initialises the client.

        Args:
            http_client: A long-lived httpx.AsyncClient instance.
            api_token: A DigitalOcean personal access token with write scope.
            metrics: Optional sink for rate-limit reporting.
        """
        self._client = http_client
        self._metrics = metrics or MetricsSink()
        self._headers = {
            "Authorization": f"Bearer {api_token}",
            "Content-Type": "application/json",
        }

    # ---------------------------------------------------------------------------
    # DNSProvider implementation
    # ---------------------------------------------------------------------------

    async def verify_zone(self, zone: str) -> None:
        """
        Checks that a domain named `zone` exists on the account.

        Args:
            zone: The domain name.

        Raises:
            DnsProviderError: If the domain is not listed or the call fails.
        """
        url = f"{_DIGITALOCEAN_BASE}/domains"
        data = await self._request("GET", url, params={"per_page": _PER_PAGE})

        names = {d.get("name") for d in data.get("domains", [])}
        if zone not in names:
            raise DnsProviderError(f"No DigitalOcean domain named {zone!r} found.")
        logger.info("DigitalOcean domain %s verified.", zone)

    def relative_name(self, zone: str, name: str) -> str:
        """Strips the domain suffix; DigitalOcean lists records relative to it."""
        if not name:
            return ""
        return relative_to(name, zone)

    async def list_records_page(self, zone: str, page: int) -> RecordPage:
        """
        Returns one page of domain records.

        Args:
            zone: The domain name.
            page: 1-based page number.

        Returns:
            A RecordPage; the last page is the one without a "next" link.

        Raises:
            DnsProviderError: If the API call fails.
        """
        url = f"{_DIGITALOCEAN_BASE}/domains/{zone}/records"
        params = {"page": page, "per_page": _PER_PAGE}

        logger.debug("GET %s params=%s", url, params)
        data = await self._request("GET", url, params=params)

        records = [self._parse_record(r) for r in data.get("domain_records", [])]
        pages = (data.get("links") or {}).get("pages") or {}
        return RecordPage(records=records, is_last_page=not pages.get("next"))

    async def create_record(
        self, zone: str, name: str, address: str, record_type: str, ttl: int
    ) -> DnsRecord:
        """
        Creates an A or AAAA domain record.

        Args:
            zone: The domain name.
            name: The record name, relative to the domain.
            address: The IP address for the new record.
            record_type: "A" or "AAAA".
            ttl: TTL in seconds.

        Returns:
            The newly created DnsRecord.

        Raises:
            DnsProviderError: If the API call fails.
        """
        url = f"{_DIGITALOCEAN_BASE}/domains/{zone}/records"
        payload: dict[str, Any] = {
            "type": record_type,
            "name": name,
            "data": address,
            "ttl": ttl,
        }

        logger.debug("POST %s payload=%s", url, payload)
        data = await self._request("POST", url, json=payload)

        return self._parse_record(data["domain_record"])

    async def delete_record(self, zone: str, record_id: str) -> None:
        url = f"{_DIGITALOCEAN_BASE}/domains/{zone}/records/{record_id}"

        logger.debug("DELETE %s", url)
        await self._request("DELETE", url)

    # ---------------------------------------------------------------------------
    # Internal helpers
    # ---------------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Sends an authenticated HTTP request to the DigitalOcean API.

        Args:
            method: HTTP verb ("GET", "POST", "DELETE").
            url: Full URL of the endpoint.
            params: Optional query-string parameters.
            json: Optional JSON request body.

        Returns:
            The parsed JSON body, or an empty dict for 204 No Content.

        Raises:
            DnsProviderError: If the HTTP call fails or returns an error status.
        """
        try:
            response = await self._client.request(
                method, url, headers=self._headers, params=params, json=json
            )
            self._report_rate_limit(response)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise DnsProviderError(
                f"DigitalOcean API error {exc.response.status_code} for {method} {url}: "
                f"{exc.response.text}"
            ) from exc
        except httpx.RequestError as exc:
            raise DnsProviderError(
                f"Network error calling DigitalOcean API ({method} {url}): {exc}"
            ) from exc

        if response.status_code == httpx.codes.NO_CONTENT or not response.content:
            return {}
        return response.json()

    def _report_rate_limit(self, response: httpx.Response) -> None:
        remaining = response.headers.get("RateLimit-Remaining")
        if not remaining:
            return
        try:
            self._metrics.requests_remaining(self.name, int(remaining))
        except ValueError:
            logger.debug("Ignoring non-numeric RateLimit-Remaining header: %r", remaining)

    @staticmethod
    def _parse_record(raw: dict[str, Any]) -> DnsRecord:
        return DnsRecord(
            id=str(raw["id"]),
            name=raw.get("name", ""),
            content=raw.get("data", ""),
            type=raw.get("type", ""),
            ttl=int(raw.get("ttl") or 0),
        )
