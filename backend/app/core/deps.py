from fastapi import Request

from app.core.db import SessionLocal
from app.core.identity import identifier_from_request
from app.core.logging import signer_ctx_var
from app.schemas.signature import SignRequest
from app.services.campaign_store import SqlCampaignStore

_store = SqlCampaignStore(SessionLocal)


def get_store() -> SqlCampaignStore:
    """FastAPI dependency returning the shared campaign store client."""

    return _store


def resolve_signer(request: Request, payload: SignRequest) -> str:
    """Derive the visitor token and attach it to the request's log context."""

    signer = identifier_from_request(
        request,
        language=payload.language,
        width=payload.screen_width,
        height=payload.screen_height,
    )
    request.state.signer = signer
    signer_ctx_var.set(signer)
    return signer
