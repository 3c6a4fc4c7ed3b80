"""
providers/cloudflare_client.py

Responsibility: Implements the DNSProvider protocol using the Cloudflare REST API.
All Cloudflare HTTP calls are concentrated here — no other file may call the
Cloudflare API directly.
Does NOT: read configuration, diff record sets, or decide what to create/delete.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from exceptions import DnsProviderError
from providers.dns_provider import DnsRecord, RecordPage, absolute_in, relative_to

logger = logging.getLogger(__name__)

_CLOUDFLARE_BASE = "https://api.cloudflare.com/client/v4"

# Largest page size the dns_records endpoint accepts
_PER_PAGE = 100


class CloudflareClient:
    """
    Implements DNSProvider for the Cloudflare DNS REST API (v4).

    The zone argument of every method is the Cloudflare zone ID. Cloudflare
    itself only speaks fully-qualified names; this client translates to and
    from names relative to the zone ("nodes", "@") so the reconciler sees the
    same form from every provider. The zone ID to domain mapping is resolved
    once and cached.

    All outbound Cloudflare requests go through the injected httpx.AsyncClient,
    making this class fully testable without real network calls (use respx.mock).

    Collaborators:
        - httpx.AsyncClient: injected HTTP client; must be kept alive externally
        - DNSProvider: this class satisfies the protocol contract
    """

    name = "cloudflare"

    def __init__(self, http_client: httpx.AsyncClient, api_token: str) -> None:
        """
        Initialises the client with an HTTP client and a Cloudflare API token.

        Args:
            http_client: A long-lived httpx.AsyncClient instance.
            api_token: A Cloudflare API token with DNS edit permissions.
        """
        self._client = http_client
        self._headers = {
            "Authorization": f"Bearer {api_token}",
            "Content-Type": "application/json",
        }
        # Zone ID -> zone domain, filled by verify_zone()
        self._zone_names: dict[str, str] = {}

    # ---------------------------------------------------------------------------
    # DNSProvider implementation
    # ---------------------------------------------------------------------------

    async def verify_zone(self, zone: str) -> None:
        """
        Confirms the zone ID is readable with the configured token.

        Args:
            zone: The Cloudflare zone ID.

        Raises:
            DnsProviderError: If the zone does not exist or the token lacks access.
        """
        url = f"{_CLOUDFLARE_BASE}/zones/{zone}"
        logger.debug("GET %s (verify)", url)
        data = await self._request("GET", url)

        zone_name = (data.get("result") or {}).get("name")
        if not zone_name:
            raise DnsProviderError(f"Cloudflare zone {zone} has no name in its API response.")
        self._zone_names[zone] = zone_name
        logger.info("Cloudflare zone %s verified (%s).", zone, zone_name)

    def relative_name(self, zone: str, name: str) -> str:
        """
        Returns `name` relative to the zone's domain.

        Before verify_zone() the domain is unknown and only a trailing dot
        is stripped.
        """
        if not name:
            return ""
        return relative_to(name, self._zone_names.get(zone, ""))

    async def list_records_page(self, zone: str, page: int) -> RecordPage:
        """
        Returns one page of records in the zone.

        Args:
            zone: The Cloudflare zone ID.
            page: 1-based page number.

        Returns:
            A RecordPage with zone-relative names; is_last_page is derived
            from result_info.

        Raises:
            DnsProviderError: If the Cloudflare API returns an error.
        """
        url = f"{_CLOUDFLARE_BASE}/zones/{zone}/dns_records"
        params = {"page": page, "per_page": _PER_PAGE}

        logger.debug("GET %s params=%s", url, params)
        data = await self._request("GET", url, params=params)

        zone_name = await self._zone_name(zone)
        records = [self._parse_record(r, zone_name) for r in data.get("result", [])]
        info = data.get("result_info") or {}
        # NOTE: A missing result_info means an unpaginated response.
        is_last = int(info.get("page", page)) >= int(info.get("total_pages", 0) or 0)
        return RecordPage(records=records, is_last_page=is_last)

    async def create_record(
        self, zone: str, name: str, address: str, record_type: str, ttl: int
    ) -> DnsRecord:
        """
        Creates a new A or AAAA record in the given Cloudflare zone.

        Args:
            zone: The Cloudflare zone ID.
            name: The record name, relative ("nodes") or fully-qualified.
            address: The IP address for the new record.
            record_type: "A" or "AAAA".
            ttl: TTL in seconds.

        Returns:
            The newly created DnsRecord.

        Raises:
            DnsProviderError: If the Cloudflare API returns an error.
        """
        zone_name = await self._zone_name(zone)
        url = f"{_CLOUDFLARE_BASE}/zones/{zone}/dns_records"
        payload: dict[str, Any] = {
            "type": record_type,
            "name": absolute_in(name, zone_name),
            "content": address,
            "ttl": ttl,
            "proxied": False,
        }

        logger.debug("POST %s payload=%s", url, payload)
        data = await self._request("POST", url, json=payload)

        return self._parse_record(data["result"], zone_name)

    async def delete_record(self, zone: str, record_id: str) -> None:
        """
        Deletes a DNS record from the given Cloudflare zone.

        Args:
            zone: The Cloudflare zone ID.
            record_id: The Cloudflare-assigned unique record identifier.

        Raises:
            DnsProviderError: If the Cloudflare API returns an error.
        """
        url = f"{_CLOUDFLARE_BASE}/zones/{zone}/dns_records/{record_id}"

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
        Sends an authenticated HTTP request to the Cloudflare API.

        Args:
            method: HTTP verb ("GET", "POST", "DELETE").
            url: Full URL of the Cloudflare API endpoint.
            params: Optional query-string parameters.
            json: Optional JSON request body.

        Returns:
            The parsed JSON response body as a dict.

        Raises:
            DnsProviderError: If the HTTP call fails or the API returns
                              success=false in the response body.
        """
        try:
            response = await self._client.request(
                method, url, headers=self._headers, params=params, json=json
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise DnsProviderError(
                f"Cloudflare API error {exc.response.status_code} for {method} {url}: "
                f"{exc.response.text}"
            ) from exc
        except httpx.RequestError as exc:
            raise DnsProviderError(
                f"Network error calling Cloudflare API ({method} {url}): {exc}"
            ) from exc

        body: dict[str, Any] = response.json()

        # NOTE: Cloudflare wraps all responses in {"success": bool, "result": ...}
        if not body.get("success", False):
            errors = body.get("errors", [])
            raise DnsProviderError(
                f"Cloudflare API returned success=false for {method} {url}. "
                f"Errors: {errors}"
            )

        return body

    async def _zone_name(self, zone: str) -> str:
        """Returns the cached zone domain, verifying the zone on first use."""
        if zone not in self._zone_names:
            await self.verify_zone(zone)
        return self._zone_names[zone]

    @staticmethod
    def _parse_record(raw: dict[str, Any], zone_name: str) -> DnsRecord:
        return DnsRecord(
            id=str(raw["id"]),
            name=relative_to(raw["name"], zone_name),
            content=raw["content"],
            type=raw.get("type", "A"),
            ttl=int(raw.get("ttl", 1)),
        )
