"""Campaign store client.

Typed read/write access to campaigns, signatures and contact messages. Every
public method is one independent round-trip on its own session: there is no
transaction spanning two calls, no retry and no idempotency key. Failures
surface as the typed errors of ``app.core.errors``; turning them into empty
results is left to the HTTP layer.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from enum import Enum
from typing import Any, AsyncIterator, Mapping, Optional

import anyio
from loguru import logger
from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.core.errors import (
    DuplicateSignature,
    NotFound,
    QueryFailure,
    StoreError,
    WriteFailure,
)
from app.models.base import utcnow
from app.models.campaign import Campaign
from app.models.contact_message import ContactMessage
from app.models.signature import Signature

MYSQL_DUPLICATE_ENTRY = 1062


class CampaignSort(str, Enum):
    NEWEST = "newest"
    OLDEST = "oldest"
    MOST_SIGNATURES = "most_signatures"
    LEAST_SIGNATURES = "least_signatures"
    CLOSING_SOON = "closing_soon"

    @classmethod
    def parse(cls, value: Any) -> "CampaignSort":
        """Map a raw sort key to a member; anything unrecognised is NEWEST."""

        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.NEWEST


def _ordering(sort: CampaignSort) -> tuple:
    # Campaign.id is the final tie-break so every ordering is total.
    if sort is CampaignSort.OLDEST:
        return (Campaign.created_at.asc(), Campaign.id.asc())
    if sort is CampaignSort.MOST_SIGNATURES:
        return (Campaign.signatures_count.desc(), Campaign.id.asc())
    if sort is CampaignSort.LEAST_SIGNATURES:
        return (Campaign.signatures_count.asc(), Campaign.id.asc())
    if sort is CampaignSort.CLOSING_SOON:
        remaining = Campaign.target_signatures - Campaign.signatures_count
        return (remaining.asc(), Campaign.created_at.desc(), Campaign.id.asc())
    return (Campaign.created_at.desc(), Campaign.id.asc())


def _is_unique_violation(exc: IntegrityError) -> bool:
    orig = getattr(exc, "orig", None)
    if orig is not None and getattr(orig, "args", None):
        try:
            if int(orig.args[0]) == MYSQL_DUPLICATE_ENTRY:
                return True
        except (TypeError, ValueError):
            pass
    message = str(orig if orig is not None else exc).lower()
    return "unique" in message or "duplicate" in message


class SqlCampaignStore:
    """Campaign store backed by an async SQLAlchemy session factory."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        timeout: float | None = None,
        atomic_counters: bool | None = None,
    ) -> None:
        self._session_factory = session_factory
        self.timeout = settings.STORE_OP_TIMEOUT_SEC if timeout is None else timeout
        self.atomic_counters = (
            settings.atomic_counters if atomic_counters is None else atomic_counters
        )

    @asynccontextmanager
    async def _round_trip(
        self, operation: str, failure: type[StoreError]
    ) -> AsyncIterator[AsyncSession]:
        try:
            with anyio.fail_after(self.timeout):
                async with self._session_factory() as session:
                    yield session
        except StoreError:
            raise
        except (SQLAlchemyError, TimeoutError) as exc:
            error = str(exc) or type(exc).__name__
            logger.bind(operation=operation, error=error).warning("store_round_trip_failed")
            raise failure(operation, error) from exc

    # Campaigns

    async def list_campaigns(
        self,
        is_active: bool,
        sort: CampaignSort | str = CampaignSort.NEWEST,
        limit: Optional[int] = None,
        offset: int = 0,
        *,
        search: Optional[str] = None,
        exclude_id: Optional[str] = None,
    ) -> list[Campaign]:
        stmt = select(Campaign).where(Campaign.is_active == is_active)
        term = (search or "").strip()
        if term:
            like = f"%{term}%"
            stmt = stmt.where(
                or_(Campaign.title.ilike(like), Campaign.description.ilike(like))
            )
        if exclude_id is not None:
            stmt = stmt.where(Campaign.id != exclude_id)
        stmt = stmt.order_by(*_ordering(CampaignSort.parse(sort)))
        if limit:
            stmt = stmt.limit(limit)
        if offset:
            stmt = stmt.offset(offset)

        async with self._round_trip("list_campaigns", QueryFailure) as session:
            rows = (await session.execute(stmt)).scalars().all()
        return list(rows)

    async def get_campaign(self, campaign_id: str) -> Campaign:
        async with self._round_trip("get_campaign", QueryFailure) as session:
            campaign = await session.get(Campaign, campaign_id)
        if campaign is None:
            raise NotFound("get_campaign", f"campaign {campaign_id} not found")
        return campaign

    async def list_campaign_ids(self) -> list[str]:
        stmt = select(Campaign.id).order_by(Campaign.created_at, Campaign.id)
        async with self._round_trip("list_campaign_ids", QueryFailure) as session:
            return list((await session.execute(stmt)).scalars().all())

    async def create_campaign(self, fields: Mapping[str, Any]) -> Campaign:
        image_url = fields.get("image_url")
        campaign = Campaign(
            title=fields["title"],
            description=fields["description"],
            target_signatures=fields["target_signatures"],
            has_image=bool(fields.get("has_image") or image_url),
            image_url=image_url,
            signatures_count=0,
            is_active=True,
            created_at=utcnow(),
        )
        async with self._round_trip("create_campaign", WriteFailure) as session:
            session.add(campaign)
            await session.commit()
            await session.refresh(campaign)
        logger.bind(campaign_id=campaign.id).info("campaign_created")
        return campaign

    async def update_campaign_counters(
        self, campaign_id: str, new_count: int, new_is_active: bool
    ) -> None:
        stmt = (
            update(Campaign)
            .where(Campaign.id == campaign_id)
            .values(signatures_count=new_count, is_active=new_is_active)
        )
        async with self._round_trip("update_campaign_counters", WriteFailure) as session:
            result = await session.execute(stmt)
            await session.commit()
        if result.rowcount == 0:
            raise WriteFailure("update_campaign_counters", f"campaign {campaign_id} not found")

    async def increment_signature_count(self, campaign_id: str) -> Campaign:
        """Add one signature to the counter in a single statement.

        ``is_active`` is assigned first: MySQL evaluates SET clauses left to
        right against already-updated columns, other backends against the old
        row, and this order gives the same result on both.
        """

        next_count = Campaign.signatures_count + 1
        stmt = (
            update(Campaign)
            .where(Campaign.id == campaign_id)
            .ordered_values(
                (Campaign.is_active, next_count < Campaign.target_signatures),
                (Campaign.signatures_count, next_count),
            )
        )
        async with self._round_trip("increment_signature_count", WriteFailure) as session:
            result = await session.execute(stmt)
            await session.commit()
            if result.rowcount == 0:
                raise NotFound("increment_signature_count", f"campaign {campaign_id} not found")
            campaign = await session.get(Campaign, campaign_id, populate_existing=True)
        return campaign

    # Signatures

    async def has_signed(self, campaign_id: str, signer_identifier: str) -> bool:
        stmt = (
            select(Signature.id)
            .where(
                Signature.campaign_id == campaign_id,
                Signature.signer_identifier == signer_identifier,
            )
            .limit(1)
        )
        async with self._round_trip("has_signed", QueryFailure) as session:
            found = (await session.execute(stmt)).scalar_one_or_none()
        return found is not None

    async def insert_signature(self, campaign_id: str, signer_identifier: str) -> None:
        async with self._round_trip("insert_signature", WriteFailure) as session:
            session.add(
                Signature(
                    campaign_id=campaign_id,
                    signer_identifier=signer_identifier,
                    signed_at=utcnow(),
                )
            )
            try:
                await session.commit()
            except IntegrityError as exc:
                if _is_unique_violation(exc):
                    raise DuplicateSignature(
                        "insert_signature", "signer already recorded for campaign"
                    ) from exc
                raise

    async def list_signatures(self, campaign_id: str, limit: int) -> list[Signature]:
        stmt = (
            select(Signature)
            .where(Signature.campaign_id == campaign_id)
            .order_by(Signature.signed_at.desc(), Signature.id.desc())
            .limit(limit)
        )
        async with self._round_trip("list_signatures", QueryFailure) as session:
            return list((await session.execute(stmt)).scalars().all())

    async def count_signatures(self, campaign_id: str) -> int:
        stmt = (
            select(func.count())
            .select_from(Signature)
            .where(Signature.campaign_id == campaign_id)
        )
        async with self._round_trip("count_signatures", QueryFailure) as session:
            return int((await session.execute(stmt)).scalar_one())

    # Contact

    async def submit_contact_message(self, fields: Mapping[str, Any]) -> None:
        message = ContactMessage(
            email=fields["email"],
            subject=fields["subject"],
            message=fields["message"],
            submitted_at=utcnow(),
        )
        async with self._round_trip("submit_contact_message", WriteFailure) as session:
            session.add(message)
            await session.commit()
