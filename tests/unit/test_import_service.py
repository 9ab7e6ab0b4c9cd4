"""
Unit tests for the import service.

Tests batch ordering, per-item failures, write retries, cancellation
and pasted text parsing.
"""

import pytest
from unittest.mock import MagicMock

from services.import_service import (
    ImportService,
    parse_pasted_line,
    parse_pasted_text,
)
from services.matching_service import MatchingService
from services.match_resolution_service import MatchResolutionService
from services.product_service import ProductService
from services.inventory_service import InventoryService
from models.imports import ImportItemStatus
from models.matching import CreateNew, Skip, UseExisting
from models.product import InventorySource, StorageLocation
from exceptions import (
    CollaboratorUnavailableError,
    DUPLICATE_CHECK_UNAVAILABLE_MESSAGE,
)
from tests.factories import (
    CatalogEntryFactory,
    InMemoryCatalog,
    InMemoryInventory,
    ParsedItemFactory,
)


# ===================
# FIXTURES
# ===================

@pytest.fixture
def catalog():
    """Empty in-memory catalog."""
    return InMemoryCatalog()


@pytest.fixture
def inventory():
    """In-memory inventory recording attach calls."""
    return InMemoryInventory()


@pytest.fixture
def make_service(inventory):
    """Build an ImportService around a catalog."""
    def _make(catalog, write_retries=2):
        matching = MatchingService(threshold=0.6, brand_boost=0.2, brand_threshold=0.5)
        return ImportService(
            catalog=catalog,
            inventory=inventory,
            resolution=MatchResolutionService(catalog=catalog, matching=matching),
            write_retries=write_retries
        )
    return _make


class FlakyInventory(InMemoryInventory):
    """Fails the first `failures` quantity writes."""

    def __init__(self, failures: int):
        super().__init__()
        self.failures = failures
        self.calls = 0

    def add_quantity(self, catalog_entry_id, quantity, metadata=None):
        self.calls += 1
        if self.calls <= self.failures:
            raise CollaboratorUnavailableError("inventory", "connection reset", operation="attach")
        return super().add_quantity(catalog_entry_id, quantity, metadata)


# ===================
# BATCH IMPORT
# ===================

class TestImportItems:
    """Tests for import_items method."""

    def test_second_line_reuses_entry_created_by_first(self, catalog, inventory, make_service):
        """Should offer an entry created earlier in the batch to later items."""
        # Arrange
        service = make_service(catalog)
        items = [
            ParsedItemFactory.create(name="Mleko UHT 2% 1L"),
            ParsedItemFactory.create(name="mleko uht 2% 1l"),
        ]

        # Act
        summary = service.import_items(items)

        # Assert
        assert summary.applied == 2
        assert summary.created == 1
        assert len(catalog.created) == 1
        created_id = catalog.created[0].id
        assert summary.results[0].decision == CreateNew()
        assert summary.results[1].decision == UseExisting(catalog_entry_id=created_id)
        assert [a[0] for a in inventory.attached] == [created_id, created_id]

    def test_matches_existing_catalog_entry(self, inventory, make_service):
        """Should attach to an existing entry instead of creating a duplicate."""
        existing = CatalogEntryFactory.build(id="uuid-1", name="Jogurt Naturalny", brand="Danone")
        catalog = InMemoryCatalog([existing])
        service = make_service(catalog)

        summary = service.import_items([
            ParsedItemFactory.create(name="Jogurt Naturalny 400g", brand="Danone", quantity=2)
        ])

        assert summary.created == 0
        assert summary.results[0].catalog_entry_id == "uuid-1"
        assert inventory.attached[0][:2] == ("uuid-1", 2)

    def test_results_in_input_order(self, catalog, make_service):
        """Should report one result per item, in order."""
        service = make_service(catalog)
        names = ["Masło Extra", "Chleb Razowy", "Jajka Wiejskie"]

        summary = service.import_items([ParsedItemFactory.create(name=n) for n in names])

        assert [r.index for r in summary.results] == [0, 1, 2]
        assert [r.name for r in summary.results] == names
        assert summary.total == 3

    def test_passes_inventory_metadata(self, catalog, inventory, make_service):
        """Should carry unit, location and source through to attach."""
        service = make_service(catalog)
        item = ParsedItemFactory.create(
            name="Ser Gouda",
            quantity=0.5,
            quantity_unit="kg",
            location=StorageLocation.FRIDGE,
            source=InventorySource.RECEIPT
        )

        service.import_items([item])

        _, quantity, metadata = inventory.attached[0]
        assert quantity == 0.5
        assert metadata.quantity_unit == "kg"
        assert metadata.location == StorageLocation.FRIDGE
        assert metadata.source == InventorySource.RECEIPT

    def test_search_failure_fails_item_only(self, inventory, make_service):
        """Should fail an item whose duplicate check is unavailable and continue."""
        catalog = InMemoryCatalog()
        original_search = catalog.search_similar

        def search(name, brand=None):
            if name == "Masło Extra":
                raise CollaboratorUnavailableError("catalog", "timeout", operation="search")
            return original_search(name, brand)

        catalog.search_similar = search
        service = make_service(catalog)

        summary = service.import_items([
            ParsedItemFactory.create(name="Masło Extra"),
            ParsedItemFactory.create(name="Chleb Razowy"),
        ])

        assert summary.failed == 1
        assert summary.applied == 1
        assert summary.results[0].status == ImportItemStatus.FAILED
        assert summary.results[0].error == DUPLICATE_CHECK_UNAVAILABLE_MESSAGE
        assert summary.results[1].status == ImportItemStatus.APPLIED

    def test_blank_name_fails_item(self, catalog, make_service):
        """Should not create a catalog entry without a name."""
        service = make_service(catalog)

        summary = service.import_items([ParsedItemFactory.create(name="   ")])

        assert summary.results[0].status == ImportItemStatus.FAILED
        assert summary.results[0].error
        assert catalog.created == []

    def test_many_similar_names_do_not_hide_exact_match(self, memory_db):
        """Should find the exact entry even when many same-brand names sort before it."""
        # Arrange
        for n in range(1, 13):
            memory_db.rows("products").append(
                CatalogEntryFactory.create(id=f"flavour-{n}", name=f"Mleko Smakowe Danone {n:02d}", brand="Danone")
            )
        memory_db.rows("products").append(
            CatalogEntryFactory.create(id="target", name="Mleko UHT", brand="Danone")
        )
        service = ImportService(catalog=ProductService(), inventory=InventoryService())

        # Act
        summary = service.import_items([ParsedItemFactory.create(name="Mleko UHT", brand="Danone")])

        # Assert
        assert summary.results[0].decision == UseExisting(catalog_entry_id="target")
        assert summary.created == 0
        assert len(memory_db.rows("products")) == 13

    def test_skip_decision_writes_nothing(self, catalog, inventory):
        """Should record Skip without touching catalog or inventory."""
        resolution = MagicMock()
        resolution.start.return_value.accept_default.return_value = Skip()
        service = ImportService(catalog=catalog, inventory=inventory, resolution=resolution)

        summary = service.import_items([ParsedItemFactory.create()])

        assert summary.skipped == 1
        assert catalog.created == []
        assert inventory.attached == []


class TestWriteRetries:
    """Tests for persistence write retries."""

    def test_retry_succeeds(self, catalog, make_service):
        """Should retry a failed attach and apply the item."""
        inventory = FlakyInventory(failures=1)
        service = make_service(catalog, write_retries=2)
        service.inventory = inventory

        summary = service.import_items([ParsedItemFactory.create(name="Masło Extra")])

        assert summary.applied == 1
        assert inventory.calls == 2

    def test_retry_does_not_reresolve(self, catalog, make_service):
        """Should reuse the resolved decision across retries."""
        inventory = FlakyInventory(failures=2)
        service = make_service(catalog, write_retries=2)
        service.inventory = inventory

        service.import_items([ParsedItemFactory.create(name="Masło Extra")])

        assert catalog.search_calls == ["Masło Extra"]
        assert len(catalog.created) == 1

    def test_exhausted_retries_fail_item(self, catalog, make_service):
        """Should fail the item once retries are used up, keeping the created entry."""
        inventory = FlakyInventory(failures=10)
        service = make_service(catalog, write_retries=1)
        service.inventory = inventory

        summary = service.import_items([ParsedItemFactory.create(name="Masło Extra")])

        result = summary.results[0]
        assert result.status == ImportItemStatus.FAILED
        assert result.created is True
        assert result.catalog_entry_id == catalog.created[0].id
        assert inventory.calls == 2
        assert summary.created == 0

    def test_history_failure_does_not_repeat_quantity_write(self, memory_db):
        """Should retry only the transaction insert when it fails after the row changed."""
        # Arrange
        memory_db.fail_next("transactions", "insert")
        service = ImportService(
            catalog=ProductService(),
            inventory=InventoryService(),
            write_retries=2
        )

        # Act
        summary = service.import_items([ParsedItemFactory.create(name="Masło Extra", quantity=1)])

        # Assert
        assert summary.results[0].status == ImportItemStatus.APPLIED
        rows = memory_db.rows("inventory")
        assert len(rows) == 1
        assert rows[0]["quantity"] == 1
        assert len(memory_db.rows("transactions")) == 1

    def test_history_failure_on_merged_row_adds_once(self, memory_db):
        """Should add the quantity to a merged row exactly once across retries."""
        # Arrange
        memory_db.rows("products").append(
            CatalogEntryFactory.create(id="butter", name="Masło Extra")
        )
        memory_db.rows("inventory").append({
            "id": "inv-butter",
            "product_id": "butter",
            "quantity": 2,
            "quantity_unit": "units",
            "location": None,
            "expiry_date": None,
            "created_at": "2025-12-05T10:00:00Z",
        })
        memory_db.fail_next("transactions", "insert")
        service = ImportService(
            catalog=ProductService(),
            inventory=InventoryService(),
            write_retries=2
        )

        # Act
        summary = service.import_items([ParsedItemFactory.create(name="Masło Extra", quantity=1)])

        # Assert
        assert summary.results[0].decision == UseExisting(catalog_entry_id="butter")
        assert memory_db.rows("inventory")[0]["quantity"] == 3
        assert len(memory_db.rows("transactions")) == 1


class TestCancellation:
    """Tests for batch cancellation."""

    def test_cancel_stops_remaining_items(self, catalog, inventory, make_service):
        """Should leave earlier writes and mark the rest cancelled."""
        service = make_service(catalog)
        answers = iter([False, True])

        summary = service.import_items(
            [ParsedItemFactory.create(name=n) for n in ["Masło Extra", "Chleb Razowy", "Jajka"]],
            should_cancel=lambda: next(answers)
        )

        assert summary.applied == 1
        assert summary.cancelled == 2
        assert [r.status for r in summary.results] == [
            ImportItemStatus.APPLIED,
            ImportItemStatus.CANCELLED,
            ImportItemStatus.CANCELLED,
        ]
        assert len(inventory.attached) == 1


class TestApplyDecision:
    """Tests for apply_decision method."""

    def test_use_existing(self, catalog, inventory, make_service):
        """Should attach to the chosen entry."""
        service = make_service(catalog)

        result = service.apply_decision(
            ParsedItemFactory.create(), UseExisting(catalog_entry_id="uuid-1")
        )

        assert result == "uuid-1"
        assert inventory.attached[0][0] == "uuid-1"
        assert catalog.created == []

    def test_create_new(self, catalog, inventory, make_service):
        """Should create an entry then attach to it."""
        service = make_service(catalog)

        result = service.apply_decision(ParsedItemFactory.create(name="Kefir"), CreateNew())

        assert result == catalog.created[0].id
        assert catalog.created[0].name == "Kefir"

    def test_skip(self, catalog, inventory, make_service):
        """Should do nothing for Skip."""
        service = make_service(catalog)

        assert service.apply_decision(ParsedItemFactory.create(), Skip()) is None
        assert inventory.attached == []


# ===================
# PASTE PARSING
# ===================

class TestParsePastedLine:
    """Tests for parse_pasted_line function."""

    def test_plain_name(self):
        """Should keep package sizes in the name with quantity 1."""
        item = parse_pasted_line("Mleko UHT 2% 1L")

        assert item.name == "Mleko UHT 2% 1L"
        assert item.quantity == 1
        assert item.quantity_unit is None

    def test_leading_multiplier(self):
        """Should read '2x Name' as two pieces."""
        item = parse_pasted_line("2x Jogurt Naturalny")

        assert item.name == "Jogurt Naturalny"
        assert item.quantity == 2
        assert item.quantity_unit == "szt"

    def test_trailing_multiplier(self):
        """Should read 'Name x3' as three pieces."""
        item = parse_pasted_line("Jogurt Owocowy x3")

        assert item.name == "Jogurt Owocowy"
        assert item.quantity == 3

    def test_piece_count(self):
        """Should read 'N szt' as a piece count."""
        item = parse_pasted_line("Bułka Kajzerka 4 szt.")

        assert item.name == "Bułka Kajzerka"
        assert item.quantity == 4
        assert item.quantity_unit == "szt"

    def test_keeps_original_and_source(self):
        """Should keep the raw line and the given source."""
        item = parse_pasted_line("  Masło  ", source=InventorySource.RECEIPT)

        assert item.original == "Masło"
        assert item.source == InventorySource.RECEIPT

    def test_blank_line(self):
        """Should return None for a blank line."""
        assert parse_pasted_line("   ") is None


class TestParsePastedText:
    """Tests for parse_pasted_text function."""

    def test_one_item_per_line_in_order(self):
        """Should skip blank lines and keep order."""
        items = parse_pasted_text("Masło\n\n  \n2x Chleb Razowy\nJajka")

        assert [i.name for i in items] == ["Masło", "Chleb Razowy", "Jajka"]

    def test_empty_text(self):
        """Should return no items."""
        assert parse_pasted_text("") == []


class TestImportText:
    """Tests for import_text method."""

    def test_imports_pasted_lines(self, catalog, inventory, make_service):
        """Should parse and import every line."""
        service = make_service(catalog)

        summary = service.import_text("Mleko UHT 2% 1L\nMleko UHT 3.2% 1L x2")

        assert summary.applied == 2
        assert summary.created == 1
        assert inventory.attached[1][1] == 2
