"""
services/dns_service.py

Responsibility: Reconciles one DNS record name against a desired address set.
Fetches the provider's current A/AAAA records, computes the minimal
create/delete diff, and applies it. Also routes registry change notices to the
internal or external record name.
Does NOT: make HTTP calls directly, track cluster membership, or retry.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from exceptions import (
    DnsProviderError,
    ProviderCreateError,
    ProviderDeleteError,
    ProviderFetchError,
    TooManyPagesError,
)
from providers.dns_provider import DNSProvider
from services.change_notifier import ChangeNotice
from services.metrics_service import MetricsSink
from services.projections import (
    IPAddress,
    ProjectionKind,
    canonical_key,
    dedupe_sorted,
    parse_address,
    record_type,
)

logger = logging.getLogger(__name__)

# Hard ceiling on record-list pages per reconcile; a provider that never
# reports a last page must not loop forever.
MAX_PAGES = 100

_ADDRESS_TYPES = ("A", "AAAA")


# ---------------------------------------------------------------------------
# Diff
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReconcilePlan:
    """
    The changes one reconcile pass would make for a record name.

    Attributes:
        record_name: The record being reconciled.
        to_create: Desired addresses with no existing record, in desired order.
        to_delete_ids: Provider record ids whose address is no longer desired.
        to_delete_addresses: The addresses of those records, for logging.
    """

    record_name: str
    to_create: tuple[IPAddress, ...] = ()
    to_delete_ids: tuple[str, ...] = ()
    to_delete_addresses: tuple[str, ...] = field(default=(), compare=False)

    @property
    def is_empty(self) -> bool:
        return not self.to_create and not self.to_delete_ids


def diff_records(
    desired: Iterable[IPAddress], existing: Mapping[str, str]
) -> tuple[list[str], list[IPAddress], list[str]]:
    """
    Diffs desired addresses against existing records.

    Both sides are compared by canonical key, so "::ffff:1.2.3.4" and
    "1.2.3.4" are the same address. Addresses on both sides are untouched.

    Args:
        desired: The addresses the record should hold.
        existing: Address string to provider record id.

    Returns:
        (ids to delete, addresses to create, addresses being deleted).
        Deletions are ordered by address key; creations keep desired order.
    """
    desired_by_key: dict[str, IPAddress] = {}
    for addr in desired:
        desired_by_key.setdefault(canonical_key(addr), addr)

    existing_keys: dict[str, str] = {}
    for content, record_id in existing.items():
        parsed = parse_address(content)
        existing_keys[canonical_key(parsed) if parsed is not None else content] = record_id

    to_delete_ids: list[str] = []
    to_delete_addrs: list[str] = []
    for key in sorted(existing_keys):
        if key not in desired_by_key and existing_keys[key] not in to_delete_ids:
            to_delete_ids.append(existing_keys[key])
            to_delete_addrs.append(key)

    to_create = [addr for key, addr in desired_by_key.items() if key not in existing_keys]
    return to_delete_ids, to_create, to_delete_addrs


# ---------------------------------------------------------------------------
# Reconciler
# ---------------------------------------------------------------------------


class DnsReconciler:
    """
    Converges a provider's A/AAAA records for a name onto a desired address set.

    One reconcile pass walks Fetching → Diffing → Creating → Deleting → Done.
    Any provider failure aborts the pass immediately (fail-fast) and raises;
    work already applied is kept. Passes are idempotent, so the recovery
    strategy is simply to run again, which the next membership event or
    periodic resync does.

    Cancellation (asyncio.CancelledError, e.g. from the notification deadline)
    propagates unchanged and is never reported as a provider error.

    Collaborators:
        - DNSProvider: abstract interface satisfied by DigitalOceanClient and
          CloudflareClient
        - MetricsSink: receives attempt/success/failure/create/delete events
    """

    def __init__(
        self,
        provider: DNSProvider,
        zone: str,
        ttl: int = 60,
        *,
        internal_record: str = "",
        external_record: str = "",
        dry_run: bool = False,
        metrics: MetricsSink | None = None,
        max_pages: int = MAX_PAGES,
    ) -> None:
        """
        Initialises the reconciler.

        Args:
            provider: Any DNSProvider implementation.
            zone: The provider zone that holds both records.
            ttl: TTL in seconds applied to newly created records.
            internal_record: Record name for the internal projection; "" disables it.
            external_record: Record name for the external projection; "" disables it.
            dry_run: When True, plans are computed and logged but never applied.
            metrics: Optional metrics sink.
            max_pages: Page ceiling for record listing.
        """
        self._provider = provider
        self._zone = zone
        self._ttl = ttl
        self._records = {
            ProjectionKind.INTERNAL: internal_record,
            ProjectionKind.EXTERNAL: external_record,
        }
        self._dry_run = dry_run
        self._metrics = metrics or MetricsSink()
        self._max_pages = max_pages

    # ---------------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------------

    async def handle_change(self, notice: ChangeNotice) -> None:
        """
        ChangeNotifier sink: publishes one projection to its record name.

        Provider failures are logged with the record name and cause, not
        raised; the next event or resync retries.

        Args:
            notice: The change notice carrying the projection.
        """
        projection = notice.projection
        record_name = self._records.get(projection.kind, "")
        logger.info(
            "Current %s addresses: %s",
            projection.kind.value,
            ", ".join(projection.as_strings()) or "(none)",
        )
        if not record_name:
            logger.debug("No %s record configured — skipping.", projection.kind.value)
            return

        try:
            await self.reconcile(record_name, projection.addresses)
        except DnsProviderError as exc:
            logger.error("Problem updating DNS record %s: %s", record_name, exc)

    async def reconcile(self, record_name: str, addresses: Iterable[IPAddress]) -> ReconcilePlan:
        """
        Runs one full reconcile pass for a record name.

        Args:
            record_name: The record to converge; "" is a successful no-op.
            addresses: The desired address set.

        Returns:
            The plan that was applied (or, in dry-run mode, only logged).

        Raises:
            ProviderFetchError: If listing existing records failed.
            TooManyPagesError: If listing never reached a last page.
            ProviderCreateError: If creating a record failed.
            ProviderDeleteError: If deleting a record failed.
        """
        if not record_name:
            return ReconcilePlan(record_name=record_name)

        self._metrics.reconcile_attempt(record_name)
        try:
            plan = await self.plan(record_name, addresses)
            if self._dry_run:
                self._log_plan(plan, prefix="Dry run — not applying: ")
                return plan
            self._log_plan(plan)
            await self._apply(plan)
        except DnsProviderError:
            self._metrics.reconcile_failure(record_name)
            raise

        self._metrics.reconcile_success(record_name)
        return plan

    async def plan(self, record_name: str, addresses: Iterable[IPAddress]) -> ReconcilePlan:
        """
        Fetches existing records and diffs them against `addresses`.

        Args:
            record_name: The record to inspect.
            addresses: The desired address set.

        Returns:
            The ReconcilePlan; nothing is applied.

        Raises:
            ProviderFetchError: If listing existing records failed.
            TooManyPagesError: If listing never reached a last page.
        """
        existing = await self._fetch_existing(record_name)
        to_delete, to_create, to_delete_addrs = diff_records(dedupe_sorted(addresses), existing)
        return ReconcilePlan(
            record_name=record_name,
            to_create=tuple(to_create),
            to_delete_ids=tuple(to_delete),
            to_delete_addresses=tuple(to_delete_addrs),
        )

    # ---------------------------------------------------------------------------
    # Internal helpers
    # ---------------------------------------------------------------------------

    async def _fetch_existing(self, record_name: str) -> dict[str, str]:
        """
        Builds the address → record id map for `record_name` across all pages.

        Raises:
            ProviderFetchError: If a page could not be fetched.
            TooManyPagesError: If `max_pages` pages went by without a last page.
        """
        existing: dict[str, str] = {}
        for page in range(1, self._max_pages + 1):
            try:
                result = await self._provider.list_records_page(self._zone, page)
            except DnsProviderError as exc:
                raise ProviderFetchError(
                    f"get page {page} of records for zone {self._zone}: {exc}"
                ) from exc

            for record in result.records:
                if record.type not in _ADDRESS_TYPES or record.name != record_name:
                    continue
                if record.content in existing:
                    # NOTE: Only one id per address is kept, so a duplicate
                    # record is never a delete candidate while its address
                    # stays desired.
                    logger.warning(
                        "Duplicate %s record for %s → %s (ids %s, %s); keeping the latter.",
                        record.type,
                        record_name,
                        record.content,
                        existing[record.content],
                        record.id,
                    )
                existing[record.content] = record.id

            if result.is_last_page:
                return existing

        raise TooManyPagesError(
            f"more than {self._max_pages} pages of records for zone {self._zone}"
        )

    async def _apply(self, plan: ReconcilePlan) -> None:
        name = plan.record_name
        for addr in plan.to_create:
            kind = record_type(addr)
            try:
                await self._provider.create_record(self._zone, name, str(addr), kind, self._ttl)
            except DnsProviderError as exc:
                raise ProviderCreateError(f"creating record {kind} {addr}: {exc}") from exc
            self._metrics.record_created(name)
            logger.info("Created %s record %s → %s.", kind, name, addr)

        for record_id, addr in zip(plan.to_delete_ids, plan.to_delete_addresses):
            try:
                await self._provider.delete_record(self._zone, record_id)
            except DnsProviderError as exc:
                raise ProviderDeleteError(f"deleting record id {record_id}: {exc}") from exc
            self._metrics.record_deleted(name)
            logger.info("Deleted record %s → %s (id %s).", name, addr, record_id)

    def _log_plan(self, plan: ReconcilePlan, prefix: str = "") -> None:
        if plan.is_empty:
            logger.debug("%s is already up to date.", plan.record_name)
            return
        logger.info(
            "%sDNS changes needed for %s: create=[%s] delete=[%s]",
            prefix,
            plan.record_name,
            ", ".join(str(a) for a in plan.to_create),
            ", ".join(plan.to_delete_addresses),
        )
