"""
providers/dns_provider.py

Responsibility: Defines the DNSProvider Protocol and the DnsRecord / RecordPage
value objects shared by every provider client.
Does NOT: make HTTP calls, diff record sets, or implement any provider logic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable


# ---------------------------------------------------------------------------
# Value objects: stable shapes returned by all DNSProvider implementations
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DnsRecord:
    """
    Represents a single DNS record as returned by a DNSProvider.

    Using a dataclass (not a raw dict) ensures all callers receive a
    consistent, typed shape regardless of which provider is active.
    """

    # Provider-assigned unique identifier, always carried as a string
    id: str

    # Record name relative to the zone, "@" for the apex
    name: str

    # Record data; an IP address string for A/AAAA records
    content: str

    # Record type, e.g. "A", "AAAA", "CNAME"
    type: str

    # TTL in seconds
    ttl: int


@dataclass(frozen=True)
class RecordPage:
    """One page of a zone's record listing."""

    records: list[DnsRecord] = field(default_factory=list)

    # True when the provider reports no further pages
    is_last_page: bool = True


# ---------------------------------------------------------------------------
# Record name forms: every DNSProvider speaks names relative to the zone
# ---------------------------------------------------------------------------

# Name used for the zone apex in relative form
APEX = "@"


def relative_to(name: str, zone_name: str) -> str:
    """
    Returns `name` relative to `zone_name`.

    "nodes.example.com" and "nodes.example.com." become "nodes", the zone
    itself becomes "@", and names outside the zone (or already relative)
    are returned without their trailing dot.

    Args:
        name: A relative or fully-qualified record name.
        zone_name: The zone's domain, e.g. "example.com".
    """
    name = name.rstrip(".")
    zone_name = zone_name.rstrip(".").lower()
    if not zone_name:
        return name
    if name.lower() == zone_name:
        return APEX
    suffix = "." + zone_name
    if name.lower().endswith(suffix):
        return name[: -len(suffix)]
    return name


def absolute_in(name: str, zone_name: str) -> str:
    """
    Returns the fully-qualified form of `name` inside `zone_name`.

    Args:
        name: A relative ("nodes", "@") or fully-qualified record name.
        zone_name: The zone's domain, e.g. "example.com".
    """
    relative = relative_to(name, zone_name)
    zone_name = zone_name.rstrip(".")
    if relative in ("", APEX):
        return zone_name
    return f"{relative}.{zone_name}"


# ---------------------------------------------------------------------------
# Abstract interface: all DNS providers must implement this contract
# ---------------------------------------------------------------------------


@runtime_checkable
class DNSProvider(Protocol):
    """
    Abstract protocol for DNS record management within a single zone.

    DnsReconciler depends on this abstraction, never on a concrete client.
    Adding a new provider means implementing this protocol; no changes to the
    reconciler, the registry or the app wiring beyond provider selection.
    """

    name: str

    async def verify_zone(self, zone: str) -> None:
        """
        Confirms that the zone exists and the credentials can read it.

        Args:
            zone: The provider-specific zone identifier.

        Raises:
            DnsProviderError: If the zone is missing or the API call fails.
        """
        ...

    def relative_name(self, zone: str, name: str) -> str:
        """
        Converts a configured record name to the relative form this provider
        lists records under, so it can be compared with DnsRecord.name.

        Accurate only after verify_zone() for providers whose zone argument
        is an opaque identifier.

        Args:
            zone: The provider-specific zone identifier.
            name: A relative or fully-qualified record name; "" stays "".
        """
        ...

    async def list_records_page(self, zone: str, page: int) -> RecordPage:
        """
        Returns one page of records in the zone, of every type and name.

        Args:
            zone: The provider-specific zone identifier.
            page: 1-based page number.

        Returns:
            The RecordPage, flagged when it is the last one.

        Raises:
            DnsProviderError: If the API call fails.
        """
        ...

    async def create_record(
        self, zone: str, name: str, address: str, record_type: str, ttl: int
    ) -> DnsRecord:
        """
        Creates a new A or AAAA record.

        Args:
            zone: The provider-specific zone identifier.
            name: The record name.
            address: The IP address the record points at.
            record_type: "A" or "AAAA".
            ttl: TTL in seconds.

        Returns:
            The newly created DnsRecord.

        Raises:
            DnsProviderError: If the API call fails.
        """
        ...

    async def delete_record(self, zone: str, record_id: str) -> None:
        """
        Deletes a record by its provider-assigned identifier.

        Args:
            zone: The provider-specific zone identifier.
            record_id: The record to remove.

        Raises:
            DnsProviderError: If the API call fails.
        """
        ...
