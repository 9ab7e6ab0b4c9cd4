"""
Business logic services.

Each service handles one domain area.
"""

from services.matching_service import (
    MatchingService,
    get_matching_service,
    similarity,
    find_best_match,
    rank_candidates,
)
from services.product_service import ProductService, get_product_service
from services.inventory_service import InventoryService, get_inventory_service
from services.match_resolution_service import (
    MatchResolution,
    MatchResolutionService,
    get_match_resolution_service,
    resolve,
)
from services.import_service import (
    ImportService,
    get_import_service,
    parse_pasted_text,
)

__all__ = [
    "MatchingService",
    "get_matching_service",
    "similarity",
    "find_best_match",
    "rank_candidates",
    "ProductService",
    "get_product_service",
    "InventoryService",
    "get_inventory_service",
    "MatchResolution",
    "MatchResolutionService",
    "get_match_resolution_service",
    "resolve",
    "ImportService",
    "get_import_service",
    "parse_pasted_text",
]
