"""Variant-level CRUD under an existing product."""

import pytest

from catalog_hub.db_models import ProductVariant, VariantLocation, UomMapping
from catalog_hub.errors import NotFoundError, ValidationError
from catalog_hub.models import VariantUpdateIn, LocationIn, TaxIn

from helpers import EACH, KG, product_payload, variant_in, count_rows


@pytest.fixture
async def product_id(products, actor) -> int:
    row = await products.create(product_payload("Shirt"), actor)
    return int(row["proid"])


class TestCreateVariant:

    async def test_second_variant_switches_shape(self, products, variants, product_id, actor):
        created = await variants.create_variant(product_id, variant_in("Blue"), actor)

        assert created["pvname"] == "Blue"
        assert created["proid"] == str(product_id)
        view = await products.get(product_id, actor)
        assert view["hasvarient"] is True
        assert [v["pvname"] for v in view["variants"]] == ["Default", "Blue"]

    async def test_unknown_product(self, variants, actor):
        with pytest.raises(NotFoundError):
            await variants.create_variant(424242, variant_in(), actor)


class TestReadVariants:

    async def test_list_and_get(self, variants, product_id, actor):
        await variants.create_variant(product_id, variant_in("Blue"), actor)

        listed = await variants.list_variants(product_id, actor)
        one = await variants.get_variant(product_id, int(listed[1]["pvid"]), actor)

        assert [v["pvname"] for v in listed] == ["Default", "Blue"]
        assert one == listed[1]

    async def test_variant_of_another_product(self, products, variants, product_id, actor):
        other = await products.create(product_payload("Other"), actor)
        other_variant = (await products.get(int(other["proid"]), actor))["variant"]
        with pytest.raises(NotFoundError):
            await variants.get_variant(product_id, int(other_variant["pvid"]), actor)

    async def test_other_organization(self, variants, product_id, outsider):
        with pytest.raises(NotFoundError):
            await variants.list_variants(product_id, outsider)


class TestUpdateVariant:

    async def test_updates_in_place(self, products, variants, database, product_id, actor):
        before = (await products.get(product_id, actor))["variant"]

        updated = await variants.update_variant(
            product_id,
            int(before["pvid"]),
            VariantUpdateIn(
                pvname="Renamed",
                pvsalesprice="25.75",
                location=LocationIn(min_stock_uom=KG, par_stock_uom=KG, reorderlevel="3"),
                tax=TaxIn(taxrate="5", hsncode="6109"),
            ),
            actor,
        )

        assert updated["pvid"] == before["pvid"]
        assert updated["pvname"] == "Renamed"
        assert updated["pvdesc"] == before["pvdesc"]
        assert updated["pvsalesprice"] == "25.75"
        assert updated["location"]["pvlid"] == before["location"]["pvlid"]
        assert updated["location"]["reorderlevel"] == "3"
        assert updated["location"]["min_stock_uom_name"] == "kg"
        assert updated["tax"]["protaxid"] == before["tax"]["protaxid"]
        assert updated["tax"]["taxrate"] == "5"
        assert await count_rows(database, VariantLocation, product_id=product_id) == 1

    async def test_creates_missing_location(self, variants, product_id, actor):
        created = await variants.create_variant(product_id, variant_in("Bare", location=None), actor)
        assert created["location"] is None

        updated = await variants.update_variant(
            product_id, int(created["pvid"]),
            VariantUpdateIn(location=LocationIn(min_stock_uom=EACH, par_stock_uom=EACH)),
            actor,
        )
        assert updated["location"]["openingstock"] == "0"


class TestDeleteVariant:

    async def test_last_variant_cannot_go(self, products, variants, product_id, actor):
        only = (await products.get(product_id, actor))["variant"]
        with pytest.raises(ValidationError):
            await variants.delete_variant(product_id, int(only["pvid"]), actor)

    async def test_delete_back_to_single_shape(self, products, variants, database, product_id, actor):
        extra = await variants.create_variant(product_id, variant_in("Blue"), actor)
        pvid = int(extra["pvid"])

        snapshot = await variants.delete_variant(product_id, pvid, actor)

        assert snapshot["pvname"] == "Blue"
        view = await products.get(product_id, actor)
        assert view["hasvarient"] is False
        assert view["variant"]["pvname"] == "Default"
        assert await count_rows(database, ProductVariant, id=pvid, is_deleted=True) == 1
        assert await count_rows(database, VariantLocation, variant_id=pvid, is_deleted=False) == 0
        assert await count_rows(database, UomMapping, variant_id=pvid, is_deleted=False) == 0
        with pytest.raises(NotFoundError):
            await variants.get_variant(product_id, pvid, actor)
