from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.services.signing import SignOutcome


class SignRequest(BaseModel):
    """Client-reported signals that feed the visitor identifier."""

    screen_width: int = Field(0, ge=0, le=100_000)
    screen_height: int = Field(0, ge=0, le=100_000)
    language: Optional[str] = Field(None, max_length=64)


class SignResultOut(BaseModel):
    outcome: SignOutcome
    detail: str
    signatures_count: Optional[int] = None
    is_active: Optional[bool] = None


class SignatureOut(BaseModel):
    """Public view of a signature; the signer token is never exposed."""

    model_config = ConfigDict(from_attributes=True)

    name: str = "Anonymous supporter"
    signed_at: datetime
