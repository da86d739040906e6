"""API endpoints for browsing, creating and signing campaigns."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.deps import get_store, resolve_signer
from app.core.errors import NotFound, QueryFailure, WriteFailure
from app.core.rate_limit import limiter
from app.schemas.campaign import CampaignCreate, CampaignOut, CampaignPageOut
from app.schemas.signature import SignatureOut, SignRequest, SignResultOut
from app.services.campaign_store import CampaignSort, SqlCampaignStore
from app.services.signing import SignOutcome, SignResult, sign_petition

router = APIRouter(prefix="/campaigns", tags=["campaigns"])

_SIGN_RESPONSES = {
    SignOutcome.SUCCESS: (status.HTTP_200_OK, "Thank you for signing!"),
    SignOutcome.ALREADY_SIGNED: (status.HTTP_409_CONFLICT, "You already signed this petition."),
    SignOutcome.FAILURE: (
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "Your signature could not be recorded. Please try again.",
    ),
}


@router.get("", response_model=CampaignPageOut)
async def list_campaigns(
    status_filter: str = Query("active", alias="status", pattern="^(active|past)$"),
    sort: str = CampaignSort.NEWEST.value,
    q: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1, le=settings.CAMPAIGN_PAGE_MAX),
    offset: int = Query(0, ge=0),
    store: SqlCampaignStore = Depends(get_store),
) -> CampaignPageOut:
    """One page of active or past campaigns.

    Unknown sort keys fall back to newest first. A failed query renders as an
    empty page.
    """
    limit = limit or settings.CAMPAIGN_PAGE_SIZE
    try:
        rows = await store.list_campaigns(
            status_filter == "active", sort, limit, offset, search=q
        )
    except QueryFailure:
        return CampaignPageOut(items=[], has_more=False)

    has_more = len(rows) == limit
    return CampaignPageOut(
        items=[CampaignOut.model_validate(row) for row in rows],
        has_more=has_more,
        next_offset=offset + len(rows) if has_more else None,
    )


@router.get("/featured", response_model=List[CampaignOut])
async def list_featured_campaigns(
    store: SqlCampaignStore = Depends(get_store),
) -> List[CampaignOut]:
    """Active campaigns with the most signatures, for the home page."""
    try:
        return await store.list_campaigns(
            True, CampaignSort.MOST_SIGNATURES, settings.FEATURED_CAMPAIGNS_COUNT
        )
    except QueryFailure:
        return []


@router.get("/{campaign_id}", response_model=CampaignOut)
async def get_campaign(
    campaign_id: str,
    store: SqlCampaignStore = Depends(get_store),
) -> CampaignOut:
    try:
        return await store.get_campaign(campaign_id)
    except NotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Campaign not found. It may have been removed.",
        )
    except QueryFailure:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Error loading campaign details. Please try again later.",
        )


@router.get("/{campaign_id}/related", response_model=List[CampaignOut])
async def list_related_campaigns(
    campaign_id: str,
    store: SqlCampaignStore = Depends(get_store),
) -> List[CampaignOut]:
    try:
        return await store.list_campaigns(
            True,
            CampaignSort.NEWEST,
            settings.RELATED_CAMPAIGNS_COUNT,
            exclude_id=campaign_id,
        )
    except QueryFailure:
        return []


@router.get("/{campaign_id}/signatures", response_model=List[SignatureOut])
async def list_campaign_signatures(
    campaign_id: str,
    limit: int = Query(settings.SIGNATURES_PREVIEW_LIMIT, ge=1, le=100),
    store: SqlCampaignStore = Depends(get_store),
) -> List[SignatureOut]:
    try:
        rows = await store.list_signatures(campaign_id, limit)
    except QueryFailure:
        return []
    return [SignatureOut(signed_at=row.signed_at) for row in rows]


@router.post("", response_model=CampaignOut, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.CREATE_RATE)
async def create_campaign(
    payload: CampaignCreate,
    request: Request,
    store: SqlCampaignStore = Depends(get_store),
) -> CampaignOut:
    try:
        return await store.create_campaign(payload.model_dump())
    except WriteFailure:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="There was a problem creating your petition. Please try again.",
        )


@router.post(
    "/{campaign_id}/sign",
    response_model=SignResultOut,
    responses={
        status.HTTP_409_CONFLICT: {"model": SignResultOut},
        status.HTTP_503_SERVICE_UNAVAILABLE: {"model": SignResultOut},
    },
)
@limiter.limit(settings.SIGN_RATE)
async def sign_campaign(
    campaign_id: str,
    request: Request,
    payload: Optional[SignRequest] = None,
    store: SqlCampaignStore = Depends(get_store),
):
    """Sign a petition as the visitor identified by this request.

    200 on success, 409 when this visitor already signed, 503 (retryable)
    when the store could not record the signature. A success makes any
    previously displayed count stale.
    """
    try:
        await store.get_campaign(campaign_id)
    except NotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Campaign not found. It may have been removed.",
        )
    except QueryFailure:
        result = SignResult(SignOutcome.FAILURE)
    else:
        signer = resolve_signer(request, payload or SignRequest())
        result = await sign_petition(store, campaign_id, signer)

    status_code, detail = _SIGN_RESPONSES[result.outcome]
    body = SignResultOut(
        outcome=result.outcome,
        detail=detail,
        signatures_count=result.signatures_count,
        is_active=result.is_active,
    )
    headers = {"Retry-After": "1"} if result.outcome is SignOutcome.FAILURE else None
    return JSONResponse(
        status_code=status_code, content=body.model_dump(mode="json"), headers=headers
    )
