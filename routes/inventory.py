"""
Inventory API routes.
"""

from fastapi import APIRouter
import structlog

from models.inventory import InventoryAdd, InventoryItemResponse
from services.inventory_service import get_inventory_service
from routes.products import handle_error

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post("", response_model=InventoryItemResponse, status_code=201)
async def add_to_inventory(data: InventoryAdd):
    """
    Add quantity of a catalog entry.
    
    Merges into an existing row with the same location and expiry date.
    
    Raises:
        422: Validation error
        503: Database unavailable
    """
    try:
        service = get_inventory_service()
        return service.add(data)
        
    except Exception as e:
        return handle_error(e)
