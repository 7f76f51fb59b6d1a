"""Product aggregate: create / read / update / soft-delete against SQLite."""

import pytest

from catalog_hub.db_models import (
    Product, ProductVariant, VariantLocation, VariantTax, UomMapping, UomMappingType,
    AttributeMapping, AttributeMappingValue, ProductCategoryMapping, ProductImageMapping,
)
from catalog_hub.errors import NotFoundError, ReferenceNotFoundError, ValidationError

from helpers import (
    EACH, KG, BOX, RAW, FINISHED, COLOR, SIZE, RED, BLUE, LARGE, PHOTO, DELETED_PHOTO,
    product_payload, variant_payload, count_rows, without_row_ids,
)


class TestCreate:

    async def test_returns_scalar_row_with_string_ids(self, products, actor):
        row = await products.create(product_payload("Bolt"), actor)
        assert row["proid"].isdigit()
        assert row["proname"] == "Bolt"
        assert row["prouom"] == str(EACH)
        assert row["hasvarient"] is False
        assert row["organization_id"] == "100"
        assert "variant" not in row

    async def test_multi_variant_forces_flag(self, products, actor):
        payload = product_payload("Shirt", variant_count=3, hasvarient=False)
        row = await products.create(payload, actor)
        assert row["hasvarient"] is True

    async def test_writes_full_sub_graph(self, products, database, actor):
        row = await products.create(product_payload("Bolt", productimgid=PHOTO), actor)
        pid = int(row["proid"])
        assert await count_rows(database, ProductVariant, product_id=pid) == 1
        assert await count_rows(database, VariantLocation, product_id=pid) == 1
        assert await count_rows(database, VariantTax, product_id=pid) == 1
        assert await count_rows(database, UomMapping, product_id=pid) == 3
        assert await count_rows(database, ProductCategoryMapping, product_id=pid) == 1
        assert await count_rows(database, ProductImageMapping, product_id=pid) == 1

    async def test_unknown_uom_is_rejected(self, products, database, actor):
        with pytest.raises(ReferenceNotFoundError):
            await products.create(product_payload("Bolt", prouom=999), actor)
        assert await count_rows(database, Product) == 0

    async def test_deleted_image_is_rejected(self, products, actor):
        with pytest.raises(ReferenceNotFoundError):
            await products.create(product_payload("Bolt", productimgid=DELETED_PHOTO), actor)

    async def test_failure_mid_uom_list_leaves_nothing(self, products, database, actor):
        purchase = [{"uomid": EACH}, {"uomid": KG}, {"uomid": 999}, {"uomid": BOX}, {"uomid": EACH}]
        payload = product_payload("Bolt", variant=variant_payload(purchaseUoms=purchase))

        with pytest.raises(ReferenceNotFoundError) as exc:
            await products.create(payload, actor)

        assert exc.value.details == {"entity": "uom", "id": "999"}
        for model in (Product, ProductVariant, VariantLocation, VariantTax, UomMapping,
                      ProductCategoryMapping):
            assert await count_rows(database, model) == 0

    async def test_attribute_value_must_belong_to_attribute(self, products, database, actor):
        mappings = [{"attributeid": SIZE, "pvamvaluemodels": [{"avid": RED}]}]
        payload = product_payload("Shirt", variant=variant_payload(pvamappings=mappings))
        with pytest.raises(ValidationError):
            await products.create(payload, actor)
        assert await count_rows(database, AttributeMapping) == 0


class TestRead:

    async def test_single_variant_with_two_purchase_uoms(self, products, actor):
        purchase = [{"uomid": BOX, "is_default": True}, {"uomid": KG}]
        payload = product_payload(
            "Cake", variant=variant_payload(purchaseUoms=purchase, consumptionUom=None)
        )
        row = await products.create(payload, actor)

        view = await products.get(int(row["proid"]), actor)

        assert view["proconfig"] == 14
        assert "variants" not in view
        assert len(view["variant"]["purchaseUoms"]) == 2
        assert view["variant"]["consumptionUom"] is None

    async def test_two_variants_read_as_array(self, products, actor):
        row = await products.create(product_payload("Shirt", variant_count=2), actor)

        view = await products.get(int(row["proid"]), actor)

        assert view["hasvarient"] is True
        assert "variant" not in view
        assert [v["pvname"] for v in view["variants"]] == ["V1", "V2"]
        first, second = view["variants"]
        assert first["location"]["pvlid"] != second["location"]["pvlid"]
        assert first["tax"]["protaxid"] != second["tax"]["protaxid"]

    async def test_identifiers_and_decimals_are_strings(self, products, actor):
        row = await products.create(product_payload("Bolt", productimgid=PHOTO), actor)

        view = await products.get(int(row["proid"]), actor)
        variant = view["variant"]

        assert view["proid"] == row["proid"]
        assert view["uomname"] == "each"
        assert view["categories"] == [{"catid": str(RAW), "catname": "Raw stock"}]
        assert view["productimgid"] == str(PHOTO)
        assert view["product_image_url"].endswith("/p/1.jpg")
        assert variant["pvpurchaseprice"] == "12.5"
        assert variant["pvsalesprice"] == "20"
        assert variant["normal_loss"] == "0"
        assert variant["tax"] == {"protaxid": variant["tax"]["protaxid"], "taxrate": "18", "hsncode": "8471"}
        location = variant["location"]
        assert location["safetylevel"] == "5"
        assert location["min_stock_uom"] == str(EACH)
        assert location["min_stock_uom_name"] == "each"
        assert location["par_stock_uom_name"] == "box"
        assert location["closingstock_on"] == [1, 15]
        assert variant["consumptionUom"]["uomname"] == "each"

    async def test_attribute_mappings_are_enriched(self, products, actor):
        mappings = [{
            "attributeid": COLOR,
            "attrtextprompt": "Pick a color",
            "isrequired": True,
            "controltype": 2,
            "pvamvaluemodels": [
                {"avid": RED, "displayorder": 1},
                {"avid": BLUE, "pvamvcolor": "#000080", "umid": PHOTO, "displayorder": 2},
            ],
        }]
        row = await products.create(
            product_payload("Shirt", variant=variant_payload(pvamappings=mappings)), actor
        )

        view = await products.get(int(row["proid"]), actor)
        mapping = view["variant"]["pvamappings"][0]

        assert mapping["attributename"] == "Color"
        assert mapping["isrequired"] is True
        assert [v["avname"] for v in mapping["pvamvaluemodels"]] == ["Red", "Blue"]
        assert mapping["pvamvaluemodels"][1]["pvamvcolor"] == "#000080"
        assert mapping["pvamvaluemodels"][1]["umid"] == str(PHOTO)

    async def test_other_organization_cannot_read(self, products, actor, outsider):
        row = await products.create(product_payload("Bolt"), actor)
        with pytest.raises(NotFoundError):
            await products.get(int(row["proid"]), outsider)

    async def test_missing_product(self, products, actor):
        with pytest.raises(NotFoundError):
            await products.get(424242, actor)


class TestUpdate:

    async def test_two_variants_down_to_one(self, products, database, actor):
        row = await products.create(product_payload("Shirt", variant_count=2), actor)
        pid = int(row["proid"])

        view = await products.update(pid, product_payload("Shirt", variant_count=1), actor)

        assert view["hasvarient"] is False
        assert "variants" not in view
        assert view["variant"]["pvname"] == "Default"
        assert await count_rows(database, ProductVariant, product_id=pid) == 1
        assert await count_rows(database, VariantLocation, product_id=pid) == 1
        assert await count_rows(database, VariantTax, product_id=pid) == 1
        assert await count_rows(database, UomMapping, product_id=pid) == 3

    async def test_same_input_twice_is_stable(self, products, database, actor):
        mappings = [{"attributeid": SIZE, "pvamvaluemodels": [{"avid": LARGE}]}]
        payload = product_payload(
            "Shirt", variants=[variant_payload("A", pvamappings=mappings), variant_payload("B")]
        )
        row = await products.create(payload, actor)
        pid = int(row["proid"])

        first = await products.update(pid, payload, actor)
        counts = [
            await count_rows(database, model, product_id=pid)
            for model in (ProductVariant, VariantLocation, VariantTax, UomMapping,
                          AttributeMapping, ProductCategoryMapping)
        ]
        second = await products.update(pid, payload, actor)

        assert counts == [
            await count_rows(database, model, product_id=pid)
            for model in (ProductVariant, VariantLocation, VariantTax, UomMapping,
                          AttributeMapping, ProductCategoryMapping)
        ]
        assert counts == [2, 2, 2, 6, 1, 1]
        assert await count_rows(database, AttributeMappingValue) == 1
        assert without_row_ids(first) == without_row_ids(second)

    async def test_scalars_categories_and_image_are_replaced(self, products, actor):
        row = await products.create(product_payload("Bolt", productimgid=PHOTO), actor)
        pid = int(row["proid"])

        view = await products.update(
            pid, product_payload("Bolt M8", catids=[FINISHED, RAW], proconfig=12), actor
        )

        assert view["proname"] == "Bolt M8"
        assert view["proconfig"] == 12
        assert [c["catid"] for c in view["categories"]] == [str(FINISHED), str(RAW)]
        assert view["productimgid"] is None

    async def test_failed_update_keeps_previous_state(self, products, actor):
        row = await products.create(product_payload("Shirt", variant_count=2), actor)
        pid = int(row["proid"])
        before = await products.get(pid, actor)

        broken = product_payload("Shirt", variant=variant_payload(consumptionUom={"uomid": 999}))
        with pytest.raises(ReferenceNotFoundError):
            await products.update(pid, broken, actor)

        assert await products.get(pid, actor) == before

    async def test_consumption_and_default_purchase_stay_single(self, products, database, actor):
        row = await products.create(product_payload("Bolt"), actor)
        pid = int(row["proid"])
        await products.update(pid, product_payload("Bolt"), actor)

        assert await count_rows(
            database, UomMapping, product_id=pid, uom_type=UomMappingType.CONSUMPTION.value
        ) == 1
        assert await count_rows(
            database, UomMapping, product_id=pid,
            uom_type=UomMappingType.PURCHASE.value, is_default=True,
        ) == 1

    async def test_unknown_product(self, products, actor):
        with pytest.raises(NotFoundError):
            await products.update(424242, product_payload("Ghost"), actor)

    async def test_other_organization_cannot_update(self, products, actor, outsider):
        row = await products.create(product_payload("Bolt"), actor)
        with pytest.raises(NotFoundError):
            await products.update(int(row["proid"]), product_payload("Stolen"), outsider)


class TestDelete:

    async def test_deleted_product_is_not_found(self, products, actor):
        row = await products.create(product_payload("Bolt"), actor)
        pid = int(row["proid"])

        snapshot = await products.delete(pid, actor)

        assert snapshot["proid"] == row["proid"]
        assert snapshot["variant"]["pvname"] == "Default"
        with pytest.raises(NotFoundError):
            await products.get(pid, actor)

    async def test_flags_cascade_to_every_owned_row(self, products, database, actor):
        mappings = [{"attributeid": COLOR, "pvamvaluemodels": [{"avid": RED}]}]
        row = await products.create(
            product_payload("Shirt", productimgid=PHOTO, variants=[
                variant_payload("A", pvamappings=mappings), variant_payload("B"),
            ]),
            actor,
        )
        pid = int(row["proid"])

        await products.delete(pid, actor)

        for model in (ProductVariant, VariantLocation, VariantTax, UomMapping, AttributeMapping,
                      ProductCategoryMapping, ProductImageMapping):
            assert await count_rows(database, model, product_id=pid, is_deleted=False) == 0
        assert await count_rows(database, AttributeMappingValue, is_deleted=False) == 0
        assert await count_rows(database, Product, id=pid, is_deleted=True, deleted_by=7) == 1

    async def test_delete_twice(self, products, actor):
        row = await products.create(product_payload("Bolt"), actor)
        await products.delete(int(row["proid"]), actor)
        with pytest.raises(NotFoundError):
            await products.delete(int(row["proid"]), actor)
