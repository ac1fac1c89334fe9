"""Shared test fixtures and configuration."""

import copy
from datetime import datetime, timezone
import os

import pytest

from catalog_search.config import SearchSettings
from catalog_search.domain.model import Product
from catalog_search.search_engine import SearchEngine


@pytest.fixture(autouse=True)
def isolated_settings_env(monkeypatch, tmp_path):
    """Keep CATALOG_SEARCH_* variables and stray .env files out of every test."""
    for key in list(os.environ):
        if key.upper().startswith("CATALOG_SEARCH_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


CATALOG_ROWS = [
    {
        "id": "1",
        "name": "iPhone 15 Pro Max",
        "description": "Apple flagship smartphone with titanium frame and A17 Pro chip.",
        "category": "smartphones",
        "brand": "Apple",
        "tags": ["ios", "5g", "flagship"],
        "specifications": [{"name": "Storage", "value": "256GB"}, {"name": "Display", "value": "6.7 inch"}],
        "price": 1199,
        "inStock": True,
        "featured": True,
        "rating": 4.8,
        "createdAt": "2024-09-20T10:00:00Z",
    },
    {
        "id": "2",
        "name": "Galaxy S24 Ultra",
        "description": "Samsung smartphone with S Pen and a 200MP camera.",
        "category": "smartphones",
        "brand": "Samsung",
        "tags": ["android", "5g"],
        "specifications": {"Storage": "512GB", "Display": "6.8 inch"},
        "price": 1299,
        "inStock": True,
        "featured": False,
        "rating": 4.7,
        "createdAt": "2024-01-31T10:00:00Z",
    },
    {
        "id": "3",
        "name": "USB-C Charging Cable",
        "description": "Braided cable for fast charging, compatible with iPhone 15 and Android phones.",
        "category": "accessories",
        "brand": "Anker",
        "tags": ["cable", "charging"],
        "specifications": [{"name": "Length", "value": "2m"}],
        "price": 19.99,
        "inStock": False,
        "featured": False,
        "rating": 4.2,
        "createdAt": "2023-05-01T08:30:00Z",
    },
    {
        "id": "4",
        "name": "Arduino Uno R3",
        "description": "Microcontroller board for electronics prototyping.",
        "category": "electronics",
        "brand": None,
        "tags": None,
        "specifications": None,
        "price": 27.5,
        "inStock": True,
        "featured": True,
    },
    {
        "id": "5",
        "name": "Wireless Charging Pad",
        "description": "Qi charger pad for smartphones.",
        "category": "accessories",
        "brand": "Anker",
        "tags": ["wireless", "charging"],
        "price": 35,
        "inStock": True,
        "featured": False,
        "rating": 3.9,
        "createdAt": datetime(2024, 3, 1, tzinfo=timezone.utc),
    },
]


@pytest.fixture
def catalog_rows() -> list[dict]:
    return copy.deepcopy(CATALOG_ROWS)


@pytest.fixture
def catalog(catalog_rows) -> list[Product]:
    return [Product.model_validate(row) for row in catalog_rows]


@pytest.fixture
def settings() -> SearchSettings:
    return SearchSettings()


@pytest.fixture
def multi_field_settings() -> SearchSettings:
    return SearchSettings(strategy="multi_field")


@pytest.fixture
def engine(catalog, settings) -> SearchEngine:
    return SearchEngine(catalog, settings=settings)


@pytest.fixture
def multi_field_engine(catalog, multi_field_settings) -> SearchEngine:
    return SearchEngine(catalog, settings=multi_field_settings)


@pytest.fixture
def make_product():
    """Build a product with sensible defaults for fields a test doesn't care about."""

    def _make(product_id: str, name: str, **fields) -> Product:
        fields.setdefault("price", 10.0)
        fields.setdefault("category", "misc")
        return Product(id=product_id, name=name, **fields)

    return _make
