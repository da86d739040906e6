"""ORM model exports for convenient imports elsewhere in the app."""

from app.models.base import Base
from app.models.campaign import Campaign
from app.models.contact_message import ContactMessage
from app.models.signature import Signature

__all__ = [
    "Base",
    "Campaign",
    "ContactMessage",
    "Signature",
]
