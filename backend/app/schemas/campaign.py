"""Pydantic models for campaign endpoints."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from app.core.config import settings


class CampaignCreate(BaseModel):
    """Schema for the campaign creation form."""

    title: str = Field(..., description="Petition title", min_length=1, max_length=255)
    description: str = Field(..., description="Petition text", min_length=1)
    target_signatures: int = Field(..., description="Signatures needed to close the petition")
    has_image: bool = Field(False, description="Whether the petition carries an image")
    image_url: Optional[str] = Field(None, description="Image location", max_length=1024)

    @field_validator("title", "description", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("target_signatures")
    @classmethod
    def check_target(cls, v: int) -> int:
        if v < settings.MIN_TARGET_SIGNATURES:
            raise ValueError(
                f"target_signatures must be at least {settings.MIN_TARGET_SIGNATURES}"
            )
        return v


class CampaignOut(BaseModel):
    """Campaign as returned to clients."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: str
    target_signatures: int
    signatures_count: int
    is_active: bool
    has_image: bool = False
    image_url: Optional[str] = None
    created_at: datetime

    @computed_field  # type: ignore[prop-decorator]
    @property
    def progress_percent(self) -> int:
        """Share of the target reached, halves rounded up, capped at 100."""
        target = self.target_signatures
        if target <= 0:
            return 100
        return min((200 * self.signatures_count + target) // (2 * target), 100)


class CampaignPageOut(BaseModel):
    """One fixed-size page of a campaign listing."""

    items: List[CampaignOut]
    has_more: bool
    next_offset: Optional[int] = None
