from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.deps import get_store
from app.core.errors import WriteFailure
from app.core.rate_limit import limiter
from app.schemas.contact import ContactMessageCreate, ContactResultOut
from app.services.campaign_store import SqlCampaignStore

router = APIRouter(prefix="/contact", tags=["contact"])


@router.post(
    "",
    response_model=ContactResultOut,
    status_code=status.HTTP_201_CREATED,
    responses={status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ContactResultOut}},
)
@limiter.limit(settings.CONTACT_RATE)
async def submit_contact_form(
    payload: ContactMessageCreate,
    request: Request,
    store: SqlCampaignStore = Depends(get_store),
):
    try:
        await store.submit_contact_message(payload.model_dump())
    except WriteFailure:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=ContactResultOut(ok=False).model_dump(),
        )
    return ContactResultOut(ok=True)
