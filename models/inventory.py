"""
Inventory schemas for validation and serialization.
"""

from pydantic import Field, field_validator
from typing import Optional
from enum import Enum
from datetime import date

from models.base import BaseSchema, TimestampMixin
from models.product import StorageLocation, InventorySource


class TransactionType(str, Enum):
    """Inventory history entry types."""
    ADD = "add"
    REMOVE = "remove"
    ADJUST = "adjust"
    EXPIRE = "expire"


class InventoryMetadata(BaseSchema):
    """
    Everything about an inventory row except product and quantity.
    
    Rows with the same product, location and expiry date are merged.
    """

    quantity_unit: str = Field(default="units", max_length=20, description="Unit")
    expiry_date: Optional[date] = Field(None, description="Best-before date")
    location: Optional[StorageLocation] = Field(None, description="Storage location")
    purchase_date: Optional[date] = Field(None, description="Purchase date")
    purchase_price: Optional[float] = Field(None, ge=0, description="Price paid")
    source: InventorySource = Field(default=InventorySource.MANUAL, description="Origin of the row")

    @field_validator("quantity_unit", mode="before")
    @classmethod
    def default_unit(cls, v: Optional[str]) -> str:
        """Missing unit falls back to 'units'."""
        if v is None or not str(v).strip():
            return "units"
        return v


class InventoryAdd(InventoryMetadata):
    """
    Add quantity of a catalog entry to the inventory.
    
    Required: product_id, quantity
    """

    product_id: str = Field(..., description="Catalog entry UUID")
    quantity: float = Field(..., gt=0, description="Quantity to add")

    @field_validator("quantity")
    @classmethod
    def round_quantity(cls, v: float) -> float:
        """Round quantities to 3 decimal places."""
        return round(v, 3)


class InventoryItemResponse(BaseSchema, TimestampMixin):
    """Inventory row with all fields."""

    id: str = Field(..., description="Inventory row UUID")
    product_id: str = Field(..., description="Catalog entry UUID")
    quantity: float = Field(..., description="Current quantity")
    quantity_unit: str = Field(default="units", description="Unit")
    expiry_date: Optional[date] = Field(None, description="Best-before date")
    location: Optional[StorageLocation] = Field(None, description="Storage location")
    purchase_date: Optional[date] = Field(None, description="Purchase date")
    purchase_price: Optional[float] = Field(None, description="Price paid")
    notes: Optional[str] = Field(None, description="Free-form notes")
