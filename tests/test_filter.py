"""Product filter (paged and unpaged), product listing and the create modal."""

import pytest

from catalog_hub.models import ProductFilterIn

from helpers import RAW, FINISHED, TOOLS, product_payload


@pytest.fixture
async def catalog(products, actor):
    """25 finished goods in RAW plus a few odd ones out."""
    for i in range(1, 26):
        await products.create(product_payload(f"Widget {i:02d}"), actor)
    await products.create(product_payload("Flour", proconfig=12, catids=[FINISHED]), actor)
    await products.create(product_payload("Drill 100%", proisfa=True, proconfig=1, catids=[TOOLS]), actor)
    return products


class TestFilterPagination:

    async def test_paged(self, catalog, actor):
        result = await catalog.filter(ProductFilterIn(proname="widget", page=1, limit=10), actor)

        assert result["success"] is True
        assert len(result["data"]) == 10
        assert result["pagination"] == {
            "totalItems": 25, "currentPage": 1, "totalPages": 3, "itemsPerPage": 10,
        }

    async def test_last_page(self, catalog, actor):
        result = await catalog.filter(ProductFilterIn(proname="widget", page=3, limit=10), actor)
        assert [p["proname"] for p in result["data"]] == [f"Widget {i}" for i in range(21, 26)]

    async def test_unpaged_returns_everything(self, catalog, actor):
        result = await catalog.filter(ProductFilterIn(proname="WIDGET"), actor)

        assert len(result["data"]) == 25
        assert result["pagination"] == {
            "totalItems": 25, "currentPage": 1, "totalPages": 1, "itemsPerPage": 25,
        }

    async def test_page_without_limit_is_unpaged(self, catalog, actor):
        result = await catalog.filter(ProductFilterIn(proname="widget", page=2), actor)
        assert len(result["data"]) == 25
        assert result["pagination"]["totalPages"] == 1

    async def test_ordered_by_id(self, catalog, actor):
        result = await catalog.filter(ProductFilterIn(), actor)
        ids = [int(p["proid"]) for p in result["data"]]
        assert ids == sorted(ids)
        assert len(ids) == 27


class TestFilterCriteria:

    async def test_config(self, catalog, actor):
        result = await catalog.filter(ProductFilterIn(proconfig=12), actor)
        assert [p["proname"] for p in result["data"]] == ["Flour"]

    async def test_category(self, catalog, actor):
        result = await catalog.filter(ProductFilterIn(catid=TOOLS), actor)
        assert [p["proname"] for p in result["data"]] == ["Drill 100%"]

    async def test_fixed_asset_flag(self, catalog, actor):
        result = await catalog.filter(ProductFilterIn(isfa=True), actor)
        assert [p["proisfa"] for p in result["data"]] == [True]

    async def test_name_wildcards_are_literal(self, catalog, actor):
        result = await catalog.filter(ProductFilterIn(proname="100%"), actor)
        assert [p["proname"] for p in result["data"]] == ["Drill 100%"]
        assert (await catalog.filter(ProductFilterIn(proname="%"), actor))["pagination"]["totalItems"] == 1

    async def test_deleted_and_foreign_products_are_hidden(self, catalog, actor, outsider):
        first = (await catalog.filter(ProductFilterIn(proname="Widget 01"), actor))["data"][0]
        await catalog.delete(int(first["proid"]), actor)
        await catalog.create(product_payload("Widget elsewhere"), outsider)

        result = await catalog.filter(ProductFilterIn(proname="widget"), actor)
        assert result["pagination"]["totalItems"] == 24


class TestListProducts:

    async def test_newest_first_with_limit(self, catalog, actor):
        result = await catalog.list_products(actor, limit=5, offset=10)

        assert result["total"] == 27
        assert result["page"] == 3
        assert result["pageSize"] == 5
        ids = [int(p["proid"]) for p in result["products"]]
        assert ids == sorted(ids, reverse=True)

    async def test_search_covers_description(self, catalog, actor):
        result = await catalog.list_products(actor, search="flour DESCRIPTION")
        assert [p["proname"] for p in result["products"]] == ["Flour"]
        assert result["pageSize"] == 1

    async def test_category(self, catalog, actor):
        result = await catalog.list_products(actor, category_id=RAW)
        assert result["total"] == 25


class TestProductModal:

    async def test_dropdowns(self, products, actor):
        modal = await products.product_modal(actor)

        assert modal["modal"]["proname"] == ""
        assert {"id": str(TOOLS), "catname": "Tools"} in modal["categories"]
        assert modal["productTypes"] == [{"id": "1", "value": "Stock item"}]
        assert modal["closingStockTypes"] == [{"id": "2", "value": "Daily"}]
        assert modal["uoms"] == []

    async def test_template_is_a_fresh_copy(self, products, actor):
        first = await products.product_modal(actor)
        first["modal"]["proname"] = "edited"
        first["modal"]["variant"]["purchaseUoms"].append({"uomid": 1})

        second = await products.product_modal(actor)

        assert second["modal"]["proname"] == ""
        assert second["modal"]["variant"]["purchaseUoms"] == []
