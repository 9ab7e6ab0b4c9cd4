"""
Pydantic models for validation and serialization.
"""

from models.base import (
    BaseSchema,
    TimestampMixin,
)
from models.product import (
    StorageLocation,
    InventorySource,
    CatalogEntryCreate,
    CatalogEntry,
    ParsedItem,
)
from models.matching import (
    MatchState,
    UseExisting,
    CreateNew,
    Skip,
    MatchDecision,
    MatchCandidate,
    MatchProposal,
    MatchResolveRequest,
)
from models.inventory import (
    TransactionType,
    InventoryMetadata,
    InventoryAdd,
    InventoryItemResponse,
)
from models.imports import (
    ImportItemStatus,
    ImportItemResult,
    ImportSummary,
    ImportRequest,
    ImportTextRequest,
)

__all__ = [
    # Base
    "BaseSchema",
    "TimestampMixin",

    # Catalog
    "StorageLocation",
    "InventorySource",
    "CatalogEntryCreate",
    "CatalogEntry",
    "ParsedItem",

    # Matching
    "MatchState",
    "UseExisting",
    "CreateNew",
    "Skip",
    "MatchDecision",
    "MatchCandidate",
    "MatchProposal",
    "MatchResolveRequest",

    # Inventory
    "TransactionType",
    "InventoryMetadata",
    "InventoryAdd",
    "InventoryItemResponse",

    # Import
    "ImportItemStatus",
    "ImportItemResult",
    "ImportSummary",
    "ImportRequest",
    "ImportTextRequest",
]
