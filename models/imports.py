"""
Batch import schemas.

A batch reports every item's outcome so partial application after a
failure or cancellation is visible to the caller.
"""

from pydantic import Field
from typing import Optional
from enum import Enum

from models.base import BaseSchema
from models.product import ParsedItem, InventorySource
from models.matching import MatchDecision


class ImportItemStatus(str, Enum):
    """Outcome of one item in a batch."""
    APPLIED = "applied"        # Inventory row added (existing or new entry)
    SKIPPED = "skipped"        # Decision was Skip, nothing written
    FAILED = "failed"          # Collaborator error, nothing or partially written
    CANCELLED = "cancelled"    # Batch stopped before this item


class ImportItemResult(BaseSchema):
    """Result for a single item."""

    index: int = Field(..., ge=0, description="Position in the batch")
    name: str = Field(..., description="Parsed product name")
    status: ImportItemStatus
    decision: Optional[MatchDecision] = None
    catalog_entry_id: Optional[str] = None
    created: bool = Field(default=False, description="A new catalog entry was created")
    error: Optional[str] = None


class ImportSummary(BaseSchema):
    """Counts plus per-item results, in input order."""

    total: int = 0
    applied: int = 0
    created: int = 0
    skipped: int = 0
    failed: int = 0
    cancelled: int = 0
    results: list[ImportItemResult] = Field(default_factory=list)

    def record(self, result: ImportItemResult) -> None:
        """Append a result and bump the matching counter."""
        self.results.append(result)
        self.total += 1
        if result.status == ImportItemStatus.APPLIED:
            self.applied += 1
            if result.created:
                self.created += 1
        elif result.status == ImportItemStatus.SKIPPED:
            self.skipped += 1
        elif result.status == ImportItemStatus.FAILED:
            self.failed += 1
        else:
            self.cancelled += 1


class ImportRequest(BaseSchema):
    """Batch of already parsed items."""

    items: list[ParsedItem] = Field(..., min_length=1)


class ImportTextRequest(BaseSchema):
    """Free-text paste, one product per line."""

    text: str = Field(..., min_length=1)
    source: InventorySource = Field(default=InventorySource.IMPORT)
