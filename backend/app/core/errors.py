"""Error taxonomy for the campaign store and the signing workflow."""

from __future__ import annotations


class StoreError(Exception):
    """Base class for everything the campaign store raises."""

    def __init__(self, operation: str, detail: str | None = None):
        self.operation = operation
        self.detail = detail
        message = operation if detail is None else f"{operation}: {detail}"
        super().__init__(message)


class NotFound(StoreError):
    """A single-record fetch matched nothing (distinct from a failed query)."""


class QueryFailure(StoreError):
    """Network or backend error on a read."""


class WriteFailure(StoreError):
    """Insert or update did not go through."""


class DuplicateSignature(StoreError):
    """The signer already has a signature on this campaign.

    A business outcome rather than a technical fault; raised when the unique
    constraint on (campaign_id, signer_identifier) rejects an insert.
    """
