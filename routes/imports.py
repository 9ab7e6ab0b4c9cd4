"""
Batch import API routes.

Imports run unattended: every item takes its default match decision.
"""

from fastapi import APIRouter
import structlog

from models.imports import ImportRequest, ImportSummary, ImportTextRequest
from services.import_service import get_import_service
from routes.products import handle_error

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post("", response_model=ImportSummary)
async def import_items(data: ImportRequest):
    """
    Import parsed items (receipt lines, categorized paste).
    
    Returns per-item outcomes; a failing item does not stop the batch.
    """
    try:
        service = get_import_service()
        return service.import_items(data.items)
        
    except Exception as e:
        return handle_error(e)


@router.post("/text", response_model=ImportSummary)
async def import_text(data: ImportTextRequest):
    """
    Import a free-text list, one product per line.
    """
    logger.info("import_text_received", source=data.source.value, length=len(data.text))

    try:
        service = get_import_service()
        return service.import_text(data.text, source=data.source)
        
    except Exception as e:
        return handle_error(e)
