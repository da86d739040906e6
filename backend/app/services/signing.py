"""Petition signing workflow.

A sign attempt is a sequence of independent store round-trips:

1. duplicate check for (campaign, signer)
2. signature insert
3. fresh read of the campaign counters
4. ``new_count = count + 1`` and ``new_is_active = new_count < target``
5. counter overwrite
6. report success

The sequence is not atomic. Two attempts running side by side can both pass
step 1, and two counter updates can interleave between steps 3 and 5 and
lose an increment. When the store offers a unique constraint and an atomic
increment (``atomic_counters``), steps 3-5 collapse into one statement and
the insert itself rejects duplicates; the three outcomes reported to the
caller stay the same either way.

If step 5 fails after step 2 succeeded, a signature row exists without a
matching increment. Nothing repairs this inline; see
``app.services.reconciliation``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from loguru import logger

from app.core.concurrency import sign_locks
from app.core.errors import DuplicateSignature, StoreError
from app.models.campaign import Campaign


class SignOutcome(str, Enum):
    SUCCESS = "SUCCESS"
    ALREADY_SIGNED = "ALREADY_SIGNED"
    FAILURE = "FAILURE"


@dataclass(slots=True)
class SignResult:
    """Outcome of one sign attempt plus the counters it produced on success."""

    outcome: SignOutcome
    signatures_count: Optional[int] = None
    is_active: Optional[bool] = None
    error: Optional[str] = None


class SignatureLedger(Protocol):
    """Store operations the workflow depends on."""

    atomic_counters: bool

    async def has_signed(self, campaign_id: str, signer_identifier: str) -> bool: ...

    async def insert_signature(self, campaign_id: str, signer_identifier: str) -> None: ...

    async def get_campaign(self, campaign_id: str) -> Campaign: ...

    async def update_campaign_counters(
        self, campaign_id: str, new_count: int, new_is_active: bool
    ) -> None: ...

    async def increment_signature_count(self, campaign_id: str) -> Campaign: ...


def next_counters(current_count: int, target_signatures: int) -> tuple[int, bool]:
    """Counters after one more signature.

    The campaign stays active strictly below target; reaching or passing the
    target closes it. Counts past the target keep growing.
    """

    new_count = (current_count or 0) + 1
    return new_count, new_count < target_signatures


async def _read_increment_write(ledger: SignatureLedger, campaign_id: str) -> tuple[int, bool]:
    campaign = await ledger.get_campaign(campaign_id)
    new_count, new_is_active = next_counters(
        campaign.signatures_count, campaign.target_signatures
    )
    await ledger.update_campaign_counters(campaign_id, new_count, new_is_active)
    return new_count, new_is_active


async def sign_petition(
    ledger: SignatureLedger, campaign_id: str, signer_identifier: str
) -> SignResult:
    """Register one signature by ``signer_identifier`` on ``campaign_id``."""

    log = logger.bind(campaign_id=campaign_id, signer=signer_identifier)

    async with sign_locks.hold((campaign_id, signer_identifier)):
        try:
            if await ledger.has_signed(campaign_id, signer_identifier):
                log.info("petition_already_signed")
                return SignResult(SignOutcome.ALREADY_SIGNED)
        except StoreError as exc:
            log.bind(step="has_signed", error=str(exc)).warning("petition_sign_failed")
            return SignResult(SignOutcome.FAILURE, error=str(exc))

        try:
            await ledger.insert_signature(campaign_id, signer_identifier)
        except DuplicateSignature:
            log.info("petition_already_signed")
            return SignResult(SignOutcome.ALREADY_SIGNED)
        except StoreError as exc:
            log.bind(step="insert_signature", error=str(exc)).warning("petition_sign_failed")
            return SignResult(SignOutcome.FAILURE, error=str(exc))

        try:
            if ledger.atomic_counters:
                campaign = await ledger.increment_signature_count(campaign_id)
                new_count, new_is_active = campaign.signatures_count, campaign.is_active
            else:
                new_count, new_is_active = await _read_increment_write(ledger, campaign_id)
        except StoreError as exc:
            # The signature row stays; the counter lags it until reconciled.
            log.bind(step="update_counters", error=str(exc)).error("petition_sign_failed")
            return SignResult(SignOutcome.FAILURE, error=str(exc))

    log.bind(signatures_count=new_count, is_active=new_is_active).info("petition_signed")
    return SignResult(SignOutcome.SUCCESS, signatures_count=new_count, is_active=new_is_active)
