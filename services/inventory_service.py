"""
Inventory service for pantry quantities.

Attaches quantity to catalog entries. Rows for the same product,
location and expiry date are merged, and every change is recorded
as a transaction.
"""

from typing import Optional
import structlog

from config import get_supabase_client
from models.inventory import (
    InventoryAdd,
    InventoryItemResponse,
    InventoryMetadata,
    TransactionType,
)
from exceptions import (
    CollaboratorUnavailableError,
    InvalidQuantityError,
)

logger = structlog.get_logger(__name__)


class InventoryService:
    """
    Inventory business logic.

    Handles adding quantity to the pantry.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "inventory"
        self.transactions_table = "transactions"

    # ===================
    # WRITE OPERATIONS
    # ===================

    def attach(
        self,
        catalog_entry_id: str,
        quantity: float,
        metadata: Optional[InventoryMetadata] = None
    ) -> InventoryItemResponse:
        """
        Add quantity of a catalog entry to the inventory and record it.

        Runs add_quantity then record_transaction. Callers that retry
        failed writes should retry the two steps separately, since
        repeating add_quantity after it committed adds the quantity twice.

        Args:
            catalog_entry_id: Catalog entry UUID
            quantity: Amount to add (> 0)
            metadata: Unit, expiry, location, price and source

        Returns:
            The created or updated inventory row

        Raises:
            InvalidQuantityError: If quantity is not positive
            CollaboratorUnavailableError: If a database call fails
        """
        item = self.add_quantity(catalog_entry_id, quantity, metadata)
        self.record_transaction(item, quantity, metadata)
        return item

    def add_quantity(
        self,
        catalog_entry_id: str,
        quantity: float,
        metadata: Optional[InventoryMetadata] = None
    ) -> InventoryItemResponse:
        """
        Merge quantity into a matching row, or insert a new row.

        A row matches on product, location and expiry date.

        Raises:
            InvalidQuantityError: If quantity is not positive
            CollaboratorUnavailableError: If the row write fails
        """
        if quantity is None or quantity <= 0:
            raise InvalidQuantityError(quantity)

        metadata = metadata or InventoryMetadata()

        logger.info(
            "attaching_inventory",
            product_id=catalog_entry_id,
            quantity=quantity,
            location=metadata.location,
            source=metadata.source
        )

        try:
            existing = self._find_mergeable_row(catalog_entry_id, metadata)

            if existing:
                new_quantity = round(float(existing["quantity"]) + quantity, 3)
                result = (
                    self.db.table(self.table)
                    .update({"quantity": new_quantity})
                    .eq("id", existing["id"])
                    .execute()
                )
                logger.debug(
                    "inventory_row_merged",
                    inventory_id=existing["id"],
                    quantity=new_quantity
                )
            else:
                insert_data = {
                    "product_id": catalog_entry_id,
                    "quantity": quantity,
                    "quantity_unit": metadata.quantity_unit,
                    "expiry_date": metadata.expiry_date.isoformat() if metadata.expiry_date else None,
                    "location": metadata.location.value if metadata.location else None,
                    "purchase_date": metadata.purchase_date.isoformat() if metadata.purchase_date else None,
                    "purchase_price": metadata.purchase_price,
                }
                result = (
                    self.db.table(self.table)
                    .insert(insert_data)
                    .execute()
                )

            item = InventoryItemResponse(**result.data[0])

            logger.info(
                "inventory_attached",
                inventory_id=item.id,
                product_id=catalog_entry_id,
                quantity=item.quantity
            )

            return item

        except Exception as e:
            logger.error(
                "attach_inventory_failed",
                product_id=catalog_entry_id,
                error=str(e)
            )
            raise CollaboratorUnavailableError("inventory", str(e), operation="attach") from e

    def record_transaction(
        self,
        item: InventoryItemResponse,
        quantity: float,
        metadata: Optional[InventoryMetadata] = None
    ) -> None:
        """
        Write the 'add' history entry for a row that already changed.

        Raises:
            CollaboratorUnavailableError: If the insert fails
        """
        metadata = metadata or InventoryMetadata()

        try:
            self.db.table(self.transactions_table).insert({
                "product_id": item.product_id,
                "inventory_id": item.id,
                "type": TransactionType.ADD.value,
                "quantity": quantity,
                "source": metadata.source.value,
            }).execute()

        except Exception as e:
            logger.error(
                "record_transaction_failed",
                inventory_id=item.id,
                error=str(e)
            )
            raise CollaboratorUnavailableError(
                "inventory", str(e), operation="record_transaction"
            ) from e


    def add(self, data: InventoryAdd) -> InventoryItemResponse:
        """Attach using a full InventoryAdd payload."""
        metadata = InventoryMetadata(**data.model_dump(exclude={"product_id", "quantity"}))
        return self.attach(data.product_id, data.quantity, metadata)

    # ===================
    # HELPERS
    # ===================

    def _find_mergeable_row(
        self,
        product_id: str,
        metadata: InventoryMetadata
    ) -> Optional[dict]:
        """Existing row with the same product, location and expiry date."""
        query = (
            self.db.table(self.table)
            .select("*")
            .eq("product_id", product_id)
        )

        if metadata.location:
            query = query.eq("location", metadata.location.value)
        else:
            query = query.is_("location", "null")

        if metadata.expiry_date:
            query = query.eq("expiry_date", metadata.expiry_date.isoformat())
        else:
            query = query.is_("expiry_date", "null")

        result = query.limit(1).execute()

        return result.data[0] if result.data else None


# Singleton instance
_inventory_service: Optional[InventoryService] = None


def get_inventory_service() -> InventoryService:
    """Get or create InventoryService instance."""
    global _inventory_service
    if _inventory_service is None:
        _inventory_service = InventoryService()
    return _inventory_service
