"""
Catalog API routes.

The match endpoints back the "similar products found" dialog: the UI
asks for a proposal, shows every candidate plus "create new" and
"skip", then posts the user's choice back.
"""

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from typing import Optional
import structlog

from models.product import CatalogEntry, CatalogEntryCreate, ParsedItem
from models.matching import MatchDecision, MatchProposal, MatchResolveRequest
from services.product_service import get_product_service
from services.match_resolution_service import get_match_resolution_service
from exceptions import (
    AppError,
    CatalogEntryNotFoundError,
    CollaboratorUnavailableError,
    DUPLICATE_CHECK_UNAVAILABLE_MESSAGE,
)

logger = structlog.get_logger(__name__)

router = APIRouter()


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception, duplicate_check: bool = False) -> JSONResponse:
    """
    Convert exception to JSON response.

    With duplicate_check, a collaborator outage is reported with the
    retry message shown by the match dialog.
    """
    if duplicate_check and isinstance(e, CollaboratorUnavailableError):
        body = e.to_dict()
        body["error"]["message"] = DUPLICATE_CHECK_UNAVAILABLE_MESSAGE
        return JSONResponse(status_code=e.status_code, content=body)
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    # Unexpected error
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


# ===================
# MATCHING ROUTES
# ===================

@router.get("/match", response_model=MatchProposal)
async def propose_match(
    name: str = Query(..., min_length=1, description="Parsed product name"),
    brand: Optional[str] = Query(None, description="Parsed brand")
):
    """
    Find catalog entries similar to a parsed product.
    
    Returns every keyword-overlapping candidate with its score and the
    pre-selected default decision.
    
    Raises:
        503: Catalog search unavailable
    """
    try:
        service = get_match_resolution_service()
        return service.propose(ParsedItem(name=name, brand=brand))
        
    except Exception as e:
        return handle_error(e, duplicate_check=True)


@router.post("/match/resolve", response_model=MatchDecision)
async def resolve_match(data: MatchResolveRequest):
    """
    Resolve a parsed product to a decision.
    
    Without an override the default is returned. Candidates are fetched
    again, so the override must name an entry the search still offers.
    
    Raises:
        409: Override names an entry that was not offered
        503: Catalog search unavailable
    """
    try:
        service = get_match_resolution_service()
        return service.resolve(data.item, data.override)
        
    except Exception as e:
        return handle_error(e, duplicate_check=True)


# ===================
# CATALOG ROUTES
# ===================

@router.post("", response_model=CatalogEntry, status_code=201)
async def create_catalog_entry(data: CatalogEntryCreate):
    """
    Create a new catalog entry.
    
    Raises:
        422: Validation error
    """
    try:
        service = get_product_service()
        return service.create(data)
        
    except Exception as e:
        return handle_error(e)


@router.get("/barcode/{barcode}", response_model=CatalogEntry)
async def get_catalog_entry_by_barcode(barcode: str):
    """
    Get a catalog entry by barcode.
    
    Raises:
        404: No entry with this barcode
    """
    try:
        service = get_product_service()
        entry = service.get_by_barcode(barcode)
        
        if not entry:
            raise CatalogEntryNotFoundError(barcode)
        
        return entry
        
    except Exception as e:
        return handle_error(e)


@router.get("/{entry_id}", response_model=CatalogEntry)
async def get_catalog_entry(entry_id: str):
    """
    Get a single catalog entry by ID.
    
    Raises:
        404: Entry not found
    """
    try:
        service = get_product_service()
        return service.get_by_id(entry_id)
        
    except Exception as e:
        return handle_error(e)
