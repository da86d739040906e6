from datetime import datetime

import anyio
import pytest
from sqlalchemy.exc import OperationalError

from app.core.errors import DuplicateSignature, NotFound, QueryFailure, WriteFailure
from app.services.campaign_store import CampaignSort, SqlCampaignStore


class DummyOrig(Exception):
    def __init__(self, code: int, message: str):
        super().__init__(message)
        self.args = (code, message)


class BrokenSession:
    async def __aenter__(self):
        raise OperationalError("SELECT 1", {}, DummyOrig(2003, "Can't connect to MySQL server"))

    async def __aexit__(self, exc_type, exc, tb):
        return False


class StalledSession:
    async def __aenter__(self):
        await anyio.sleep(5)
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


@pytest.fixture
async def three_campaigns(make_campaign):
    older = await make_campaign(
        title="Older", signatures_count=5, created_at=datetime(2024, 1, 1)
    )
    middle = await make_campaign(
        title="Middle", signatures_count=20, created_at=datetime(2024, 2, 1)
    )
    newer = await make_campaign(
        title="Newer", signatures_count=1, created_at=datetime(2024, 3, 1)
    )
    return older, middle, newer


def _titles(rows):
    return [row.title for row in rows]


@pytest.mark.anyio
@pytest.mark.parametrize(
    "sort, expected",
    [
        ("newest", ["Newer", "Middle", "Older"]),
        ("oldest", ["Older", "Middle", "Newer"]),
        ("most_signatures", ["Middle", "Older", "Newer"]),
        ("least_signatures", ["Newer", "Older", "Middle"]),
        ("trending", ["Newer", "Middle", "Older"]),
        ("", ["Newer", "Middle", "Older"]),
    ],
)
async def test_sort_keys_produce_documented_order(store, three_campaigns, sort, expected):
    rows = await store.list_campaigns(True, sort, 10)
    assert _titles(rows) == expected


@pytest.mark.anyio
async def test_closing_soon_orders_by_remaining_signatures(store, make_campaign):
    await make_campaign(title="Far", target_signatures=100, signatures_count=10)
    await make_campaign(title="Near", target_signatures=50, signatures_count=45)
    await make_campaign(title="Mid", target_signatures=30, signatures_count=10)

    rows = await store.list_campaigns(True, CampaignSort.CLOSING_SOON, 10)
    assert _titles(rows) == ["Near", "Mid", "Far"]


def test_sort_parse_falls_back_to_newest():
    assert CampaignSort.parse("MOST_SIGNATURES") is CampaignSort.MOST_SIGNATURES
    assert CampaignSort.parse(" oldest ") is CampaignSort.OLDEST
    assert CampaignSort.parse("nonsense") is CampaignSort.NEWEST
    assert CampaignSort.parse(None) is CampaignSort.NEWEST


@pytest.mark.anyio
async def test_most_signatures_limit_two_over_three_active(store, three_campaigns):
    rows = await store.list_campaigns(True, "most_signatures", 2)
    assert [row.signatures_count for row in rows] == [20, 5]


@pytest.mark.anyio
async def test_list_filters_on_active_flag(store, make_campaign):
    await make_campaign(title="Open")
    await make_campaign(title="Closed", is_active=False, signatures_count=100)

    assert _titles(await store.list_campaigns(True)) == ["Open"]
    assert _titles(await store.list_campaigns(False)) == ["Closed"]


@pytest.mark.anyio
async def test_list_pages_with_offset(store, three_campaigns):
    first = await store.list_campaigns(True, "oldest", 2, 0)
    second = await store.list_campaigns(True, "oldest", 2, 2)
    assert _titles(first) == ["Older", "Middle"]
    assert _titles(second) == ["Newer"]


@pytest.mark.anyio
async def test_list_search_matches_title_or_description(store, make_campaign):
    await make_campaign(title="Bike lanes on Main St", description="Safer cycling.")
    await make_campaign(title="Library hours", description="Open the library on Sundays.")
    await make_campaign(title="Dog park", description="Fenced area for dogs.")

    rows = await store.list_campaigns(True, "newest", 10, search="LIBRARY")
    assert _titles(rows) == ["Library hours"]
    rows = await store.list_campaigns(True, "newest", 10, search="cycling")
    assert _titles(rows) == ["Bike lanes on Main St"]


@pytest.mark.anyio
async def test_list_can_exclude_one_campaign(store, three_campaigns):
    older, _, _ = three_campaigns
    rows = await store.list_campaigns(True, "newest", 10, exclude_id=older.id)
    assert older.id not in [row.id for row in rows]
    assert len(rows) == 2


@pytest.mark.anyio
async def test_get_campaign_not_found_is_distinct(store):
    with pytest.raises(NotFound):
        await store.get_campaign("does-not-exist")


@pytest.mark.anyio
async def test_create_campaign_applies_defaults(store):
    created = await store.create_campaign(
        {"title": "Crosswalk", "description": "Paint a crosswalk.", "target_signatures": 25}
    )
    assert created.id
    assert created.signatures_count == 0
    assert created.is_active is True
    assert created.has_image is False
    assert isinstance(created.created_at, datetime)

    fetched = await store.get_campaign(created.id)
    assert fetched.title == "Crosswalk"


@pytest.mark.anyio
async def test_create_campaign_with_image_url_sets_flag(store):
    created = await store.create_campaign(
        {
            "title": "Mural",
            "description": "A mural for the underpass.",
            "target_signatures": 10,
            "image_url": "https://img.example/mural.jpg",
        }
    )
    assert created.has_image is True


@pytest.mark.anyio
async def test_signature_lookup_and_insert(store, make_campaign):
    campaign = await make_campaign()
    assert await store.has_signed(campaign.id, "anon_1") is False

    await store.insert_signature(campaign.id, "anon_1")

    assert await store.has_signed(campaign.id, "anon_1") is True
    assert await store.has_signed(campaign.id, "anon_2") is False
    assert await store.count_signatures(campaign.id) == 1


@pytest.mark.anyio
async def test_second_insert_for_same_signer_is_duplicate(store, make_campaign):
    campaign = await make_campaign()
    await store.insert_signature(campaign.id, "anon_1")

    with pytest.raises(DuplicateSignature):
        await store.insert_signature(campaign.id, "anon_1")
    assert await store.count_signatures(campaign.id) == 1


@pytest.mark.anyio
async def test_list_signatures_newest_first(store, make_campaign):
    campaign = await make_campaign()
    for signer in ("anon_a", "anon_b", "anon_c"):
        await store.insert_signature(campaign.id, signer)

    rows = await store.list_signatures(campaign.id, 2)
    assert [row.signer_identifier for row in rows] == ["anon_c", "anon_b"]


@pytest.mark.anyio
async def test_update_campaign_counters_overwrites_both_fields(store, make_campaign):
    campaign = await make_campaign(target_signatures=10, signatures_count=9)

    await store.update_campaign_counters(campaign.id, 10, False)

    fetched = await store.get_campaign(campaign.id)
    assert (fetched.signatures_count, fetched.is_active) == (10, False)


@pytest.mark.anyio
async def test_update_campaign_counters_on_missing_campaign(store):
    with pytest.raises(WriteFailure):
        await store.update_campaign_counters("missing", 1, True)


@pytest.mark.anyio
@pytest.mark.parametrize(
    "before, target, after, active",
    [
        (8, 10, 9, True),
        (9, 10, 10, False),
        (12, 10, 13, False),
    ],
)
async def test_increment_signature_count(store, make_campaign, before, target, after, active):
    campaign = await make_campaign(
        target_signatures=target, signatures_count=before, is_active=before < target
    )

    updated = await store.increment_signature_count(campaign.id)

    assert updated.signatures_count == after
    assert updated.is_active is active


@pytest.mark.anyio
async def test_increment_signature_count_missing_campaign(store):
    with pytest.raises(NotFound):
        await store.increment_signature_count("missing")


@pytest.mark.anyio
async def test_submit_contact_message(store, session_factory):
    from sqlalchemy import select

    from app.models import ContactMessage

    await store.submit_contact_message(
        {"email": "a@example.org", "subject": "Hi", "message": "Love the site"}
    )

    async with session_factory() as session:
        rows = (await session.execute(select(ContactMessage))).scalars().all()
    assert [(row.email, row.subject) for row in rows] == [("a@example.org", "Hi")]
    assert rows[0].submitted_at is not None


@pytest.mark.anyio
async def test_backend_error_on_read_is_query_failure():
    store = SqlCampaignStore(lambda: BrokenSession(), timeout=1)

    with pytest.raises(QueryFailure):
        await store.list_campaigns(True)
    with pytest.raises(QueryFailure):
        await store.get_campaign("any")


@pytest.mark.anyio
async def test_backend_error_on_write_is_write_failure():
    store = SqlCampaignStore(lambda: BrokenSession(), timeout=1)

    with pytest.raises(WriteFailure):
        await store.insert_signature("c1", "anon_1")
    with pytest.raises(WriteFailure):
        await store.submit_contact_message({"email": "a@b", "subject": "s", "message": "m"})


@pytest.mark.anyio
async def test_round_trip_timeout_is_reported_as_failure():
    store = SqlCampaignStore(lambda: StalledSession(), timeout=0.05)

    with pytest.raises(QueryFailure):
        await store.has_signed("c1", "anon_1")
