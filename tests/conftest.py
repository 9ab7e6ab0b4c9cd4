"""
Shared test fixtures.
"""

import os
import sys
from pathlib import Path

# Add project root to Python path
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

# Settings require Supabase credentials at import time
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

import pytest
from unittest.mock import patch
from datetime import datetime
from typing import Generator
from uuid import uuid4

# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""
    
    def __init__(self, data: list = None, count: int = None):
        self.data = data or []
        self.count = count if count is not None else len(self.data)


class MockSupabaseQuery:
    """Mock Supabase query builder with chainable methods."""
    
    def __init__(self, table: "MockSupabaseTable", data: list = None, count: int = None):
        self._table = table
        self._data = data or []
        self._count = count
        self._is_single = False
    
    def select(self, *args, **kwargs):
        return self
    
    def insert(self, data):
        # Simulate insert - add id and timestamps
        if isinstance(data, dict):
            data = [data]
        rows = []
        for item in data:
            row = dict(item)
            row["id"] = row.get("id") or f"test-uuid-{uuid4().hex[:8]}"
            row["created_at"] = datetime.utcnow().isoformat() + "Z"
            row["updated_at"] = datetime.utcnow().isoformat() + "Z"
            rows.append(row)
        self._table.inserted.extend(rows)
        self._data = rows
        return self
    
    def update(self, data):
        # Simulate update - merge with existing data
        updated_data = []
        for item in self._data:
            merged = {**item, **data}
            merged["updated_at"] = datetime.utcnow().isoformat() + "Z"
            updated_data.append(merged)
        self._data = updated_data if updated_data else [data]
        self._table.updated.append(data)
        return self
    
    def eq(self, column, value):
        return self
    
    def is_(self, column, value):
        return self
    
    def or_(self, filters, **kwargs):
        self._table.or_filters.append(filters)
        return self
    
    def ilike(self, column, pattern):
        return self
    
    def single(self):
        self._is_single = True
        return self
    
    def order(self, column, **kwargs):
        return self
    
    def limit(self, count):
        self._table.limits.append(count)
        return self
    
    def execute(self) -> MockSupabaseResponse:
        if self._table.error is not None:
            raise self._table.error
        if self._is_single:
            data = self._data[0] if self._data else None
            return MockSupabaseResponse(
                data=data,
                count=1 if data else 0
            )
        return MockSupabaseResponse(
            data=self._data,
            count=self._count if self._count is not None else len(self._data)
        )


class MockSupabaseTable:
    """Mock Supabase table with configurable responses."""
    
    def __init__(self, data: list = None, count: int = None):
        self._data = data or []
        self._count = count
        self.error = None
        self.inserted = []
        self.updated = []
        self.or_filters = []
        self.limits = []
    
    def select(self, *args, **kwargs):
        return MockSupabaseQuery(self, self._data.copy(), self._count)
    
    def insert(self, data):
        query = MockSupabaseQuery(self, self._data.copy(), self._count)
        return query.insert(data)
    
    def update(self, data):
        # For update, pass the existing data so it can be merged
        query = MockSupabaseQuery(self, self._data.copy(), self._count)
        return query.update(data)


class MockSupabaseClient:
    """Mock Supabase client."""
    
    def __init__(self):
        self._tables = {}
    
    def set_table_data(self, table_name: str, data: list, count: int = None):
        """Configure mock data for a table."""
        self._tables[table_name] = MockSupabaseTable(data, count)
    
    def set_table_error(self, table_name: str, error: Exception):
        """Make every query on a table raise."""
        self.table(table_name).error = error
    
    def table(self, name: str) -> MockSupabaseTable:
        """Get mock table (same instance per name, so calls can be inspected)."""
        if name not in self._tables:
            self._tables[name] = MockSupabaseTable()
        return self._tables[name]


# ===================
# FIXTURES
# ===================

@pytest.fixture(autouse=True)
def reset_service_singletons():
    """Drop cached service instances so each test gets its own collaborators."""
    import services.matching_service as matching
    import services.product_service as product
    import services.inventory_service as inventory
    import services.match_resolution_service as resolution
    import services.import_service as importing

    modules = (
        (matching, "_matching_service"),
        (product, "_product_service"),
        (inventory, "_inventory_service"),
        (resolution, "_match_resolution_service"),
        (importing, "_import_service"),
    )
    for module, attr in modules:
        setattr(module, attr, None)
    yield
    for module, attr in modules:
        setattr(module, attr, None)


@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.
    
    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("products", [
                {"id": "1", "name": "Mleko UHT", ...}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client with mock.

    Usage:
        def test_something(mock_db, mock_supabase):
            mock_supabase.set_table_data("products", [...])
            # Now any code using get_supabase_client() gets the mock
    """
    with patch("config.database.get_supabase_client", return_value=mock_supabase):
        with patch("services.product_service.get_supabase_client", return_value=mock_supabase):
            with patch("services.inventory_service.get_supabase_client", return_value=mock_supabase):
                yield mock_supabase


@pytest.fixture
def memory_db() -> Generator:
    """
    Patch the database client with a fake that keeps rows.

    Usage:
        def test_something(memory_db):
            memory_db.fail_next("transactions", "insert")
            ...
            assert len(memory_db.rows("inventory")) == 1
    """
    from tests.factories import InMemorySupabase

    db = InMemorySupabase()
    with patch("services.product_service.get_supabase_client", return_value=db):
        with patch("services.inventory_service.get_supabase_client", return_value=db):
            yield db


@pytest.fixture
def sample_entry_data() -> dict:
    """Sample catalog entry row."""
    return {
        "id": "entry-uuid-123",
        "name": "Mleko UHT 2% 1L",
        "brand": "Łaciate",
        "barcode": "5900820000011",
        "category_id": None,
        "default_quantity_unit": "units",
        "created_at": "2025-12-05T10:00:00Z",
        "updated_at": "2025-12-05T10:00:00Z"
    }


@pytest.fixture
def sample_entries_list() -> list:
    """Sample catalog rows, ordered by name as the search returns them."""
    return [
        {
            "id": "uuid-1",
            "name": "Jogurt Naturalny",
            "brand": "Danone",
            "barcode": None,
            "created_at": "2025-12-05T10:00:00Z",
            "updated_at": "2025-12-05T10:00:00Z"
        },
        {
            "id": "uuid-2",
            "name": "Jogurt Owocowy",
            "brand": "Danone",
            "barcode": None,
            "created_at": "2025-12-05T10:00:00Z",
            "updated_at": "2025-12-05T10:00:00Z"
        },
        {
            "id": "uuid-3",
            "name": "Mleko UHT 3.2%",
            "brand": None,
            "barcode": None,
            "created_at": "2025-12-05T10:00:00Z",
            "updated_at": "2025-12-05T10:00:00Z"
        }
    ]


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client_with_mock_db(mock_db):
    """
    Create FastAPI test client with mocked database.
    
    Usage:
        def test_endpoint(test_client_with_mock_db, mock_supabase):
            mock_supabase.set_table_data("products", [...])
            response = test_client_with_mock_db.get("/api/products/match?name=mleko")
    """
    from fastapi.testclient import TestClient
    from main import app
    
    yield TestClient(app)
