"""
Tests for catalog loading, validation, analytics and index diagnostics.
"""
import asyncio
import json

import pytest

from catalog.analytics import catalog_analytics
from catalog.loader import JsonCatalog, Product
from catalog.validate_catalog import validate_catalog
from recommender.diagnostics import diagnose_index


@pytest.fixture
def catalog_file(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps([
        {"id": 1, "name": "Galaxy Phone", "brand": "Samsung", "category": "Smartphones", "price": 699, "rating": 4.5},
        {"id": "2", "name": "Old Phone", "category": "Smartphones", "price": 99, "rating": 3.0, "is_active": False},
        {"id": "3", "name": "ZenBook Laptop", "category": "Laptops", "price": 1099, "rating": 4.8},
    ]), encoding="utf-8")
    return path


class TestJsonCatalog:

    def test_lists_active_products_with_string_ids(self, catalog_file):
        products = JsonCatalog(catalog_file).list_products()
        assert [p.id for p in products] == ["1", "3"]

    def test_include_inactive(self, catalog_file):
        assert len(JsonCatalog(catalog_file).list_products(include_inactive=True)) == 3

    def test_get_item_by_id(self, catalog_file):
        catalog = JsonCatalog(catalog_file)
        assert catalog.get_item_by_id(1).name == "Galaxy Phone"
        assert catalog.get_item_by_id("missing") is None

    def test_missing_file_is_empty(self, tmp_path):
        assert JsonCatalog(tmp_path / "nope.json").list_products() == []

    def test_bundled_catalog_is_valid(self):
        products = validate_catalog()
        assert len(products) >= 5


class TestValidateCatalog:

    def test_valid(self, catalog_file, capsys):
        assert len(validate_catalog(catalog_file)) == 3
        assert "validated successfully" in capsys.readouterr().out

    def test_rejects_non_list(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{}", encoding="utf-8")
        with pytest.raises(TypeError):
            validate_catalog(path)

    def test_rejects_bad_rating(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps([{"id": "1", "name": "x", "price": 1, "rating": 7}]), encoding="utf-8")
        with pytest.raises(ValueError, match="Invalid item 0"):
            validate_catalog(path)

    def test_rejects_duplicate_ids(self, tmp_path):
        path = tmp_path / "dup.json"
        path.write_text(json.dumps([{"id": "1", "name": "x"}, {"id": 1, "name": "y"}]), encoding="utf-8")
        with pytest.raises(ValueError, match="Duplicate id"):
            validate_catalog(path)


class TestAnalytics:

    def test_summary(self, sample_products):
        stats = catalog_analytics(sample_products)
        assert stats["total_products"] == 4
        assert stats["total_categories"] == 3
        assert stats["avg_rating"] == pytest.approx(4.35)
        assert stats["avg_price"] == pytest.approx(661.5)
        assert stats["top_categories"][0] == {"name": "Smartphones", "product_count": 2}

    def test_empty_catalog(self):
        stats = catalog_analytics([])
        assert stats["total_products"] == 0
        assert stats["avg_rating"] == 0.0
        assert stats["top_categories"] == []


class TestDiagnostics:

    def test_healthy_index(self, index, sample_products):
        asyncio.run(index.build(sample_products))
        report = diagnose_index(index, sample_products)

        assert report.ready
        assert report.coverage == 1.0
        assert report.embedding_dimension == 4
        assert report.needs_rebuild is False
        assert report.cache_checksum == index.cache.checksum()

    def test_missing_orphaned_and_stale(self, index, sample_products):
        asyncio.run(index.build(sample_products[:3]))
        repriced = sample_products[0].model_copy(update={"price": 10})
        newcomer = Product(id="p9", name="New Phone", price=1)
        catalog = [repriced, sample_products[1], sample_products[3], newcomer]

        report = diagnose_index(index, catalog)

        assert report.missing_ids == ["p4", "p9"]
        assert report.orphaned_ids == ["p3"]
        assert report.stale_ids == ["p1"]
        assert report.coverage == 0.5
        assert report.needs_rebuild is True
        assert report.model_dump()["needs_rebuild"] is True

    def test_empty_index(self, index):
        report = diagnose_index(index, [])
        assert report.total_indexed == 0
        assert report.mean_norm == 0.0
        assert report.coverage == 1.0
