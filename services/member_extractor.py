"""
services/member_extractor.py

Responsibility: Maps one Kubernetes Node object to a typed Member record,
applying the scheduling/readiness eligibility rules.
Does NOT: log, store members, or compute projections. Never raises.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from services.projections import IPAddress, parse_address

if TYPE_CHECKING:
    from kubernetes.client import V1Node

# Node address types that feed the two projections. Hostname, InternalDNS and
# ExternalDNS are ignored.
_INTERNAL_IP = "InternalIP"
_EXTERNAL_IP = "ExternalIP"

_READY = "Ready"


@dataclass(frozen=True)
class Member:
    """
    One cluster node's identity plus its classified addresses.

    Attributes:
        name: The node name; the membership table key.
        internal_addresses: InternalIP addresses in reported order (may repeat).
        external_addresses: ExternalIP addresses in reported order (may repeat).
        skipped: Address strings that were not valid IP literals.
    """

    name: str
    internal_addresses: tuple[IPAddress, ...] = ()
    external_addresses: tuple[IPAddress, ...] = ()
    skipped: tuple[str, ...] = ()

    @property
    def is_exported(self) -> bool:
        """True when the member contributes at least one address to DNS."""
        return bool(self.internal_addresses or self.external_addresses)


def member_name(node: V1Node | Any) -> str:
    """Returns the node's metadata.name, or "" when the object carries none."""
    metadata = getattr(node, "metadata", None)
    name = getattr(metadata, "name", None)
    return name if isinstance(name, str) else ""


def is_eligible(node: V1Node | Any) -> bool:
    """
    Mirrors the subset of the Kubernetes service controller's node predicate
    that matters here: schedulable, and Ready not reported as False/Unknown.
    """
    spec = getattr(node, "spec", None)
    if getattr(spec, "unschedulable", False):
        return False
    status = getattr(node, "status", None)
    for condition in getattr(status, "conditions", None) or []:
        if getattr(condition, "type", None) == _READY and getattr(condition, "status", None) != "True":
            return False
    return True


def extract_member(node: V1Node | Any) -> Member:
    """
    Builds a Member from a Node.

    An ineligible node yields a Member with no addresses; it still occupies
    its name in the registry so a later update is treated as an update.

    Args:
        node: A kubernetes.client V1Node, or any object of the same shape.

    Returns:
        The extracted Member. Malformed input degrades to an empty Member.
    """
    name = member_name(node)
    if not is_eligible(node):
        return Member(name=name)

    internal: list[IPAddress] = []
    external: list[IPAddress] = []
    skipped: list[str] = []

    status = getattr(node, "status", None)
    for entry in getattr(status, "addresses", None) or []:
        kind = getattr(entry, "type", None)
        if kind not in (_INTERNAL_IP, _EXTERNAL_IP):
            continue
        raw = getattr(entry, "address", None)
        parsed = parse_address(raw) if isinstance(raw, str) else None
        if parsed is None:
            skipped.append(str(raw))
        elif kind == _INTERNAL_IP:
            internal.append(parsed)
        else:
            external.append(parsed)

    return Member(
        name=name,
        internal_addresses=tuple(internal),
        external_addresses=tuple(external),
        skipped=tuple(skipped),
    )
