"""
Catalog service for product definitions.

Provides the keyword prefilter search the matcher ranks, and the
create/lookup operations the import pipeline writes through.
"""

from typing import Iterable, Optional
import structlog

from config import get_supabase_client
from models.product import CatalogEntry, CatalogEntryCreate
from exceptions import (
    CatalogEntryNotFoundError,
    CollaboratorUnavailableError,
    InvalidProductNameError,
)
from utils.text_utils import normalize_keywords, clean_product_name

logger = structlog.get_logger(__name__)


class ProductService:
    """
    Catalog business logic.
    
    Handles keyword search, lookups and creation of catalog entries.
    """
    
    def __init__(self):
        self.db = get_supabase_client()
        self.table = "products"
    
    # ===================
    # SEARCH
    # ===================
    
    def search_by_keywords(
        self,
        name_keywords: Iterable[str],
        brand: Optional[str] = None
    ) -> list[CatalogEntry]:
        """
        Find catalog entries whose name shares any keyword.
        
        This is the cheap LIKE prefilter; fine ranking happens in the
        matching service. Results are not capped, so the ranker sees
        every hit. The brand never widens the filter; it only counts
        toward the score.
        
        Args:
            name_keywords: Normalized name keywords
            brand: Parsed brand (logged, scored later)
            
        Returns:
            Catalog entries ordered by name ascending
            
        Raises:
            CollaboratorUnavailableError: If the query fails
        """
        keywords = sorted(set(name_keywords))
        
        if not keywords:
            return []
        
        filters = [f"name.ilike.%{keyword}%" for keyword in keywords]
        
        logger.debug(
            "searching_catalog",
            keywords=keywords,
            brand=brand
        )
        
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .or_(",".join(filters))
                .order("name")
                .execute()
            )
            
            entries = [CatalogEntry(**row) for row in result.data]
            
            logger.info(
                "catalog_search_complete",
                keywords=keywords,
                count=len(entries)
            )
            
            return entries
            
        except Exception as e:
            logger.error(
                "catalog_search_failed",
                keywords=keywords,
                error=str(e)
            )
            raise CollaboratorUnavailableError("catalog", str(e), operation="search") from e
    
    def search_similar(
        self,
        name: str,
        brand: Optional[str] = None
    ) -> list[CatalogEntry]:
        """Normalize a raw name and run the keyword search."""
        return self.search_by_keywords(normalize_keywords(name), brand)
    
    # ===================
    # READ OPERATIONS
    # ===================
    
    def get_by_id(self, entry_id: str) -> CatalogEntry:
        """
        Get a single catalog entry by ID.
        
        Args:
            entry_id: Catalog entry UUID
            
        Returns:
            CatalogEntry
            
        Raises:
            CatalogEntryNotFoundError: If entry doesn't exist
        """
        logger.debug("getting_catalog_entry", entry_id=entry_id)
        
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("id", entry_id)
                .execute()
            )
        except Exception as e:
            logger.error(
                "get_catalog_entry_failed",
                entry_id=entry_id,
                error=str(e)
            )
            raise CollaboratorUnavailableError("catalog", str(e), operation="select") from e
        
        if not result.data:
            raise CatalogEntryNotFoundError(entry_id)
        
        return CatalogEntry(**result.data[0])
    
    def get_by_barcode(self, barcode: str) -> Optional[CatalogEntry]:
        """
        Get a catalog entry by barcode.
        
        Args:
            barcode: EAN/UPC code
            
        Returns:
            CatalogEntry or None if not found
        """
        if not barcode or not barcode.strip():
            return None
        
        logger.debug("getting_catalog_entry_by_barcode", barcode=barcode)
        
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("barcode", barcode.strip())
                .limit(1)
                .execute()
            )
            
            if not result.data:
                return None
            
            return CatalogEntry(**result.data[0])
            
        except Exception as e:
            logger.error(
                "get_catalog_entry_by_barcode_failed",
                barcode=barcode,
                error=str(e)
            )
            raise CollaboratorUnavailableError("catalog", str(e), operation="select") from e
    
    # ===================
    # WRITE OPERATIONS
    # ===================
    
    def create(self, data: CatalogEntryCreate) -> CatalogEntry:
        """
        Create a new catalog entry.
        
        Args:
            data: Catalog entry creation data
            
        Returns:
            Created CatalogEntry with a fresh id
            
        Raises:
            InvalidProductNameError: If the name is blank
            CollaboratorUnavailableError: If the insert fails
        """
        name = clean_product_name(data.name)
        if not name:
            raise InvalidProductNameError(data.name)
        
        logger.info("creating_catalog_entry", name=name, brand=data.brand)
        
        try:
            insert_data = {
                "name": name,
                "brand": data.brand,
                "barcode": data.barcode,
                "category_id": data.category_id,
                "default_quantity_unit": data.default_quantity_unit,
            }
            
            result = (
                self.db.table(self.table)
                .insert(insert_data)
                .execute()
            )
            
            entry = CatalogEntry(**result.data[0])
            
            logger.info(
                "catalog_entry_created",
                entry_id=entry.id,
                name=entry.name
            )
            
            return entry
            
        except Exception as e:
            logger.error(
                "create_catalog_entry_failed",
                name=name,
                error=str(e)
            )
            raise CollaboratorUnavailableError("catalog", str(e), operation="insert") from e
    
    def create_entry(
        self,
        name: str,
        brand: Optional[str] = None,
        barcode: Optional[str] = None
    ) -> CatalogEntry:
        """Create an entry from a bare name/brand pair."""
        if not name or not name.strip():
            raise InvalidProductNameError(name)
        return self.create(CatalogEntryCreate(name=name, brand=brand, barcode=barcode))


# Singleton instance
_product_service: Optional[ProductService] = None


def get_product_service() -> ProductService:
    """Get or create ProductService instance."""
    global _product_service
    if _product_service is None:
        _product_service = ProductService()
    return _product_service
