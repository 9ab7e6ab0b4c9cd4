"""
Catalog and parsed-item schemas for validation and serialization.

A catalog entry is the canonical product definition (name + brand). A parsed
item is what an import, receipt or paste step produced and still has to be
matched against the catalog.
"""

from pydantic import Field, field_validator
from typing import Optional
from enum import Enum
from datetime import date

from models.base import BaseSchema, TimestampMixin


class StorageLocation(str, Enum):
    """Where an inventory row is kept."""
    PANTRY = "pantry"
    FRIDGE = "fridge"
    FREEZER = "freezer"


class InventorySource(str, Enum):
    """How an item entered the inventory."""
    MANUAL = "manual"
    BARCODE = "barcode"
    RECEIPT = "receipt"
    IMPORT = "import"


def _blank_to_none(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


class CatalogEntryCreate(BaseSchema):
    """
    Create a new catalog entry.
    
    Required: name
    Optional: brand, barcode, category_id, default_quantity_unit
    """
    
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Product name",
        examples=["Mleko UHT 2% 1L", "Jogurt Naturalny"]
    )
    brand: Optional[str] = Field(
        None,
        max_length=100,
        description="Brand name",
        examples=["Łaciate", "Danone"]
    )
    barcode: Optional[str] = Field(
        None,
        max_length=50,
        description="EAN/UPC barcode"
    )
    category_id: Optional[str] = Field(
        None,
        description="Category UUID"
    )
    default_quantity_unit: str = Field(
        default="units",
        max_length=20,
        description="Unit used when adding this product to inventory"
    )
    
    @field_validator("brand", "barcode")
    @classmethod
    def empty_as_none(cls, v: Optional[str]) -> Optional[str]:
        """Blank optional strings are stored as NULL."""
        return _blank_to_none(v)


class CatalogEntry(BaseSchema, TimestampMixin):
    """
    Catalog entry with all fields.
    
    Identity is the id; name and brand are descriptive and may change.
    """
    
    id: str = Field(..., description="Catalog entry UUID")
    name: str = Field(..., min_length=1, description="Product name")
    brand: Optional[str] = Field(None, description="Brand name")
    barcode: Optional[str] = Field(None, description="EAN/UPC barcode")
    category_id: Optional[str] = Field(None, description="Category UUID")
    default_quantity_unit: str = Field(default="units", description="Default unit")


class ParsedItem(BaseSchema):
    """
    A product produced by import, receipt OCR or paste, not yet persisted.
    
    Only name and brand take part in matching. The remaining fields are
    inventory metadata passed through to the attach step.
    """
    
    name: str = Field(..., max_length=200, description="Parsed product name")
    brand: Optional[str] = Field(None, max_length=100, description="Parsed brand")
    barcode: Optional[str] = Field(None, max_length=50, description="Scanned barcode")
    quantity: float = Field(default=1, gt=0, description="Quantity to add")
    quantity_unit: Optional[str] = Field(None, max_length=20, description="Unit (szt, kg, g, l, ml)")
    expiry_date: Optional[date] = Field(None, description="Best-before date")
    location: Optional[StorageLocation] = Field(None, description="Storage location")
    purchase_price: Optional[float] = Field(None, ge=0, description="Price paid")
    source: InventorySource = Field(default=InventorySource.IMPORT, description="Where the item came from")
    original: Optional[str] = Field(None, description="Raw line the item was parsed from")
    
    @field_validator("brand", "barcode", "quantity_unit")
    @classmethod
    def empty_as_none(cls, v: Optional[str]) -> Optional[str]:
        """Blank optional strings mean 'not provided'."""
        return _blank_to_none(v)
