"""Recount signatures and repair counters that lag behind them.

A sign attempt whose counter update fails leaves a signature row without a
matching increment, and concurrent read-increment-write updates can lose
increments. This pass compares ``signatures_count`` with the number of
signature rows. When applying, a counter is only ever raised, never lowered,
and ``is_active`` is recomputed from the repaired count.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from loguru import logger

from app.core.errors import StoreError
from app.services.campaign_store import SqlCampaignStore


@dataclass(frozen=True)
class CountDiscrepancy:
    campaign_id: str
    counter_value: int
    actual_count: int
    repaired: bool = False

    @property
    def difference(self) -> int:
        return self.counter_value - self.actual_count


async def reconcile_signature_counts(
    store: SqlCampaignStore,
    campaign_ids: Optional[Iterable[str]] = None,
    *,
    apply: bool = False,
) -> list[CountDiscrepancy]:
    """Check (and with ``apply`` repair) counters; returns every mismatch found.

    Store errors on one campaign are logged and the pass moves on to the next.
    """

    ids = list(campaign_ids) if campaign_ids is not None else await store.list_campaign_ids()
    found: list[CountDiscrepancy] = []

    for campaign_id in ids:
        log = logger.bind(campaign_id=campaign_id)
        try:
            campaign = await store.get_campaign(campaign_id)
            actual = await store.count_signatures(campaign_id)
        except StoreError as exc:
            log.bind(error=str(exc)).warning("signature_count_check_failed")
            continue

        counter = campaign.signatures_count
        if counter == actual:
            continue

        repaired = False
        if apply and actual > counter:
            try:
                await store.update_campaign_counters(
                    campaign_id, actual, actual < campaign.target_signatures
                )
                repaired = True
            except StoreError as exc:
                log.bind(error=str(exc)).warning("signature_count_repair_failed")

        log.bind(
            counter_value=counter,
            actual_count=actual,
            discrepancy=counter - actual,
            repaired=repaired,
        ).warning("signature_count_discrepancy")
        found.append(CountDiscrepancy(campaign_id, counter, actual, repaired))

    return found
