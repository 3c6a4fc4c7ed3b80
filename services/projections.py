"""
services/projections.py

Responsibility: Canonical IP address handling and the pure Projection builder
that turns a membership table into a deduplicated, sorted address list.
Does NOT: hold state, take locks, or talk to Kubernetes or DNS providers.
"""

from __future__ import annotations

import enum
import ipaddress
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from services.member_extractor import Member

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


# ---------------------------------------------------------------------------
# Canonical address form
# ---------------------------------------------------------------------------


def parse_address(text: str) -> IPAddress | None:
    """
    Parses an address string, returning None instead of raising.

    Args:
        text: An IPv4 or IPv6 literal, e.g. "10.0.0.1" or "2001:db8::1".

    Returns:
        The normalized address, or None if `text` is not an IP literal.
    """
    try:
        return normalize(ipaddress.ip_address(text.strip()))
    except (ValueError, AttributeError):
        return None


def normalize(addr: IPAddress) -> IPAddress:
    """Collapses an IPv4-mapped IPv6 address ("::ffff:1.2.3.4") to plain IPv4."""
    if isinstance(addr, ipaddress.IPv6Address) and addr.ipv4_mapped is not None:
        return addr.ipv4_mapped
    return addr


def canonical_key(addr: IPAddress) -> str:
    """
    Returns the representation-independent string used for dedup and equality.

    Two addresses denoting the same host (IPv4 vs. IPv4-mapped IPv6, or
    different textual spellings of one IPv6 address) share one key.
    """
    return str(normalize(addr))


def record_type(addr: IPAddress) -> str:
    """Returns "A" for 4-byte addresses and "AAAA" for 16-byte ones."""
    return "A" if normalize(addr).version == 4 else "AAAA"


# ---------------------------------------------------------------------------
# Projection
# ---------------------------------------------------------------------------


class ProjectionKind(str, enum.Enum):
    INTERNAL = "internal"
    EXTERNAL = "external"


@dataclass(frozen=True)
class Projection:
    """
    A derived view of one address family of the membership table.

    `addresses` is deduplicated by canonical key and sorted by it, so two
    projections compare equal exactly when they denote the same address set.
    """

    kind: ProjectionKind
    addresses: tuple[IPAddress, ...] = ()

    def as_strings(self) -> list[str]:
        return [str(a) for a in self.addresses]


def dedupe_sorted(addresses: Iterable[IPAddress]) -> tuple[IPAddress, ...]:
    """
    Deduplicates addresses by canonical key and orders them by that key.

    Args:
        addresses: Any iterable of addresses; duplicates and mixed spellings allowed.

    Returns:
        One normalized address per canonical key, in lexicographic key order.
    """
    unique: dict[str, IPAddress] = {}
    for addr in addresses:
        normalized = normalize(addr)
        unique[canonical_key(normalized)] = normalized
    return tuple(unique[key] for key in sorted(unique))


def build_projection(table: Mapping[str, Member], kind: ProjectionKind) -> Projection:
    """
    Computes the Internal or External projection of a membership table.

    Pure and deterministic: the result does not depend on the table's
    iteration order.

    Args:
        table: Member name to Member mapping.
        kind: Which address list of each member to project.

    Returns:
        The Projection for `kind`.
    """
    if kind is ProjectionKind.INTERNAL:
        collected = (a for m in table.values() for a in m.internal_addresses)
    else:
        collected = (a for m in table.values() for a in m.external_addresses)
    return Projection(kind=kind, addresses=dedupe_sorted(collected))
