"""
Database connection management.

Provides Supabase client singleton for catalog and inventory operations.
"""

from supabase import create_client, Client
from functools import lru_cache
import structlog

from config.settings import settings
from exceptions.errors import CollaboratorUnavailableError

logger = structlog.get_logger(__name__)


@lru_cache()
def get_supabase_client() -> Client:
    """
    Get cached Supabase client instance.
    
    Uses lru_cache to ensure only one client is created.
    Call get_supabase_client.cache_clear() to reconnect.
    
    Returns:
        Client: Supabase client
        
    Raises:
        CollaboratorUnavailableError: If connection fails
    """
    try:
        logger.info(
            "connecting_to_supabase",
            url=settings.supabase_url[:30] + "..."  # Log partial URL only
        )
        
        client = create_client(
            settings.supabase_url,
            settings.supabase_key
        )
        
        logger.info(
            "supabase_connected",
            status="success"
        )
        
        return client
        
    except Exception as e:
        logger.error(
            "supabase_connection_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        raise CollaboratorUnavailableError(
            "supabase",
            f"Failed to connect to Supabase: {e}"
        ) from e


# ===================
# HELPER FUNCTIONS
# ===================

def check_connection() -> dict:
    """
    Check database connection health.
    
    Returns:
        dict: Connection status with details
    """
    try:
        client = get_supabase_client()
        
        products = client.table("products").select("id", count="exact").execute()
        inventory = client.table("inventory").select("id", count="exact").execute()
        
        return {
            "status": "healthy",
            "products_count": products.count,
            "inventory_count": inventory.count
        }
        
    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e)
        }
