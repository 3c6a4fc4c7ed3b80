"""
tests/unit/test_projections.py

Unit tests for services/projections.py.
"""

from __future__ import annotations

import itertools
from ipaddress import ip_address

from services.member_extractor import Member
from services.projections import (
    Projection,
    ProjectionKind,
    build_projection,
    canonical_key,
    parse_address,
    record_type,
)


def _member(name, internal=(), external=()):
    return Member(
        name=name,
        internal_addresses=tuple(ip_address(a) for a in internal),
        external_addresses=tuple(ip_address(a) for a in external),
    )


# ---------------------------------------------------------------------------
# Canonical form
# ---------------------------------------------------------------------------


def test_canonical_key_unifies_ipv4_mapped_form():
    assert canonical_key(ip_address("::ffff:1.2.3.4")) == canonical_key(ip_address("1.2.3.4")) == "1.2.3.4"


def test_canonical_key_unifies_ipv6_spellings():
    assert canonical_key(ip_address("2001:DB8:0:0::1")) == canonical_key(ip_address("2001:db8::1"))


def test_parse_address_returns_none_for_garbage():
    assert parse_address("host-1.example.com") is None
    assert parse_address("") is None
    assert parse_address(" 10.0.0.1 ") == ip_address("10.0.0.1")


def test_record_type_by_byte_width():
    assert record_type(ip_address("1.2.3.4")) == "A"
    assert record_type(ip_address("::ffff:1.2.3.4")) == "A"
    assert record_type(ip_address("2001:db8::1")) == "AAAA"


# ---------------------------------------------------------------------------
# build_projection
# ---------------------------------------------------------------------------


def test_build_projection_dedupes_and_sorts_lexicographically():
    table = {
        "a": _member("a", internal=["10.0.0.9", "10.0.0.10"], external=["42.0.0.1"]),
        "b": _member("b", internal=["10.0.0.9", "::ffff:10.0.0.10"]),
    }

    internal = build_projection(table, ProjectionKind.INTERNAL)
    external = build_projection(table, ProjectionKind.EXTERNAL)

    # Lexicographic on the canonical string: "10.0.0.10" < "10.0.0.9"
    assert internal == Projection(
        kind=ProjectionKind.INTERNAL,
        addresses=(ip_address("10.0.0.10"), ip_address("10.0.0.9")),
    )
    assert external.as_strings() == ["42.0.0.1"]


def test_build_projection_of_empty_table_is_empty():
    assert build_projection({}, ProjectionKind.EXTERNAL) == Projection(kind=ProjectionKind.EXTERNAL)


def test_build_projection_is_independent_of_insertion_order():
    """Every insertion order of the same members yields an identical projection."""
    members = [
        _member("a", internal=["10.0.0.1"], external=["::ffff:42.0.0.3", "2001:db8::1"]),
        _member("b", internal=["10.0.0.2"], external=["42.0.0.3"]),
        _member("c", internal=["10.0.0.1", "fd00::5"], external=["42.0.0.2"]),
    ]

    results = set()
    for order in itertools.permutations(members):
        table = {m.name: m for m in order}
        results.add(
            (
                build_projection(table, ProjectionKind.INTERNAL),
                build_projection(table, ProjectionKind.EXTERNAL),
            )
        )

    assert len(results) == 1
    internal, external = results.pop()
    assert internal.as_strings() == ["10.0.0.1", "10.0.0.2", "fd00::5"]
    assert external.as_strings() == ["2001:db8::1", "42.0.0.2", "42.0.0.3"]
