"""
Import service: batch import of parsed products.

Items are resolved one at a time in input order. Each item's candidate
search runs after the previous item was written, so a catalog entry
created for item N is offered to item N+1 (two receipt lines for the
same milk end up as one catalog entry).

The batch never asks a human: every item takes the default decision.
Failures are per item; earlier writes are not rolled back.
"""

import re
from typing import Callable, Optional, Sequence, TypeVar
import structlog

from config import settings
from models.product import ParsedItem, InventorySource
from models.matching import MatchDecision, Skip, UseExisting
from models.inventory import InventoryMetadata
from models.imports import ImportItemResult, ImportItemStatus, ImportSummary
from services.match_resolution_service import (
    MatchResolutionService,
    get_match_resolution_service,
)
from services.product_service import get_product_service
from services.inventory_service import get_inventory_service
from exceptions import (
    AppError,
    CollaboratorUnavailableError,
    DUPLICATE_CHECK_UNAVAILABLE_MESSAGE,
)
from utils.text_utils import clean_product_name

logger = structlog.get_logger(__name__)

T = TypeVar("T")


# "2x Jogurt", "2 x Jogurt"
_LEADING_MULTIPLIER = re.compile(r"^\s*(\d+(?:[.,]\d+)?)\s*[x×]\s+", re.IGNORECASE)
# "Jogurt x2", "Jogurt x 2"
_TRAILING_MULTIPLIER = re.compile(r"\s+[x×]\s*(\d+(?:[.,]\d+)?)\s*$", re.IGNORECASE)
# "Jogurt 3 szt", "Jogurt 3szt."
_PIECE_COUNT = re.compile(r"(\d+(?:[.,]\d+)?)\s*szt\b\.?", re.IGNORECASE)


def _to_quantity(raw: str) -> float:
    return float(raw.replace(",", "."))


def parse_pasted_line(line: str, source: InventorySource = InventorySource.IMPORT) -> Optional[ParsedItem]:
    """
    Parse one pasted line into an item.

    Piece counts ("3 szt", "2x", "x2") become the quantity; package sizes
    like "1L" or "500g" stay in the name because they tell products apart.

    Returns:
        ParsedItem, or None for a blank line
    """
    original = line.strip()
    if not original:
        return None

    quantity = 1.0
    unit = None
    rest = original

    for pattern in (_LEADING_MULTIPLIER, _TRAILING_MULTIPLIER, _PIECE_COUNT):
        match = pattern.search(rest)
        if match:
            quantity = _to_quantity(match.group(1))
            unit = "szt"
            rest = (rest[:match.start()] + " " + rest[match.end():]).strip()
            break

    name = clean_product_name(rest) or original

    if quantity <= 0:
        quantity = 1.0

    return ParsedItem(
        name=name,
        quantity=quantity,
        quantity_unit=unit,
        source=source,
        original=original
    )


def parse_pasted_text(text: str, source: InventorySource = InventorySource.IMPORT) -> list[ParsedItem]:
    """Split pasted text into items, one per non-empty line, keeping order."""
    items = []
    for line in (text or "").splitlines():
        item = parse_pasted_line(line, source)
        if item is not None:
            items.append(item)
    return items


class ImportService:
    """
    Batch import pipeline.

    Collaborators are injected so a batch can run against any catalog or
    inventory implementation; defaults are the Supabase-backed services.
    """

    def __init__(
        self,
        catalog=None,
        inventory=None,
        resolution: Optional[MatchResolutionService] = None,
        write_retries: Optional[int] = None
    ):
        self.catalog = catalog or get_product_service()
        self.inventory = inventory or get_inventory_service()
        if resolution is None:
            resolution = (
                MatchResolutionService(catalog=self.catalog)
                if catalog is not None
                else get_match_resolution_service()
            )
        self.resolution = resolution
        self.write_retries = settings.import_write_retries if write_retries is None else write_retries

    # ===================
    # BATCH
    # ===================

    def import_text(
        self,
        text: str,
        source: InventorySource = InventorySource.IMPORT,
        should_cancel: Optional[Callable[[], bool]] = None
    ) -> ImportSummary:
        """Parse pasted text and import the resulting items."""
        return self.import_items(parse_pasted_text(text, source), should_cancel=should_cancel)

    def import_items(
        self,
        items: Sequence[ParsedItem],
        should_cancel: Optional[Callable[[], bool]] = None
    ) -> ImportSummary:
        """
        Resolve and apply items one at a time, in order.

        Args:
            items: Parsed products
            should_cancel: Checked before each item; True stops the batch

        Returns:
            ImportSummary with applied/created/skipped/failed/cancelled counts
        """
        logger.info("import_started", count=len(items))

        summary = ImportSummary()

        for index, item in enumerate(items):
            if should_cancel is not None and should_cancel():
                logger.warning("import_cancelled", at_index=index, remaining=len(items) - index)
                for rest_index in range(index, len(items)):
                    summary.record(ImportItemResult(
                        index=rest_index,
                        name=items[rest_index].name,
                        status=ImportItemStatus.CANCELLED
                    ))
                break

            summary.record(self._import_one(index, item))

        logger.info(
            "import_complete",
            total=summary.total,
            applied=summary.applied,
            created=summary.created,
            skipped=summary.skipped,
            failed=summary.failed,
            cancelled=summary.cancelled
        )

        return summary

    def _import_one(self, index: int, item: ParsedItem) -> ImportItemResult:
        try:
            decision = self.resolution.start(item).accept_default()
        except CollaboratorUnavailableError as e:
            logger.error("candidate_search_failed", index=index, name=item.name, error=e.message)
            return ImportItemResult(
                index=index,
                name=item.name,
                status=ImportItemStatus.FAILED,
                error=DUPLICATE_CHECK_UNAVAILABLE_MESSAGE
            )

        if isinstance(decision, Skip):
            return ImportItemResult(
                index=index,
                name=item.name,
                status=ImportItemStatus.SKIPPED,
                decision=decision
            )

        catalog_entry_id = getattr(decision, "catalog_entry_id", None)
        created = False

        try:
            catalog_entry_id, created = self._ensure_entry(item, decision)
            self._attach(catalog_entry_id, item)

        except AppError as e:
            logger.error(
                "import_item_failed",
                index=index,
                name=item.name,
                action=decision.action,
                error=e.message
            )
            return ImportItemResult(
                index=index,
                name=item.name,
                status=ImportItemStatus.FAILED,
                decision=decision,
                catalog_entry_id=catalog_entry_id,
                created=created,
                error=e.message
            )

        return ImportItemResult(
            index=index,
            name=item.name,
            status=ImportItemStatus.APPLIED,
            decision=decision,
            catalog_entry_id=catalog_entry_id,
            created=created
        )

    # ===================
    # APPLY
    # ===================

    def apply_decision(self, item: ParsedItem, decision: MatchDecision) -> Optional[str]:
        """
        Carry out an already-resolved decision.

        Retrying a failed write reuses the decision; the item is never
        re-resolved.

        Returns:
            Catalog entry id the inventory was attached to, or None for Skip

        Raises:
            CollaboratorUnavailableError: If a write still fails after retries
        """
        if isinstance(decision, Skip):
            return None

        catalog_entry_id, _ = self._ensure_entry(item, decision)
        self._attach(catalog_entry_id, item)
        return catalog_entry_id

    def _ensure_entry(self, item: ParsedItem, decision: MatchDecision) -> tuple[str, bool]:
        """Catalog entry id to attach to, and whether it was just created."""
        if isinstance(decision, UseExisting):
            return decision.catalog_entry_id, False

        entry = self._with_retries(
            "create_entry",
            lambda: self.catalog.create_entry(item.name, item.brand, item.barcode)
        )
        return entry.id, True

    def _attach(self, catalog_entry_id: str, item: ParsedItem):
        metadata = InventoryMetadata(
            quantity_unit=item.quantity_unit,
            expiry_date=item.expiry_date,
            location=item.location,
            purchase_price=item.purchase_price,
            source=item.source
        )
        # A failed history insert must not repeat the quantity write
        row = self._with_retries(
            "attach",
            lambda: self.inventory.add_quantity(catalog_entry_id, item.quantity, metadata)
        )
        self._with_retries(
            "record_transaction",
            lambda: self.inventory.record_transaction(row, item.quantity, metadata)
        )
        return row

    def _with_retries(self, operation: str, write: Callable[[], T]) -> T:
        """Run a persistence write, retrying collaborator failures."""
        attempts = self.write_retries + 1

        for attempt in range(1, attempts + 1):
            try:
                return write()
            except CollaboratorUnavailableError as e:
                if attempt == attempts:
                    raise
                logger.warning(
                    "persistence_write_retry",
                    operation=operation,
                    attempt=attempt,
                    error=e.message
                )


# Singleton instance
_import_service: Optional[ImportService] = None


def get_import_service() -> ImportService:
    """Get or create ImportService instance."""
    global _import_service
    if _import_service is None:
        _import_service = ImportService()
    return _import_service
