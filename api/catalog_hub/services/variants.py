# catalog_hub/services/variants.py
"""
Variant writers.

SubEntityWriter handles the rows hanging off one variant: location, tax,
UOM mappings and attribute mappings with their values.
VariantWriter creates whole variants for a product and clears them again,
either physically (replace-all on product update) or by soft-delete.

Neither class commits or catches: both run inside the caller's
``Database.transaction()`` scope, which is the only rollback point.
"""
from __future__ import annotations
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select, delete, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_hub.db_models import (
    ProductVariant, VariantLocation, VariantTax, UomMapping, UomMappingType,
    AttributeMapping, AttributeMappingValue, utcnow,
)
from catalog_hub.models import (
    Actor, VariantIn, LocationIn, TaxIn, PurchaseUomIn, UomRefIn, AttributeMappingIn,
)
from catalog_hub.services.reference import ReferenceData


def deletion_stamp(actor: Actor, when: Optional[datetime] = None) -> Dict:
    """Column values that mark a row soft-deleted by ``actor``."""
    return {
        "is_deleted": True,
        "deleted_by": actor.user_id,
        "deleted_at": when or utcnow(),
    }


class SubEntityWriter:
    """Writes location/tax/UOM/attribute rows for one variant."""

    def __init__(self, db: AsyncSession, actor: Actor, refs: ReferenceData):
        self.db = db
        self.actor = actor
        self.refs = refs

    # =========================================================================
    # Create
    # =========================================================================

    async def add_location(
        self, product_id: int, variant_id: int, data: LocationIn
    ) -> VariantLocation:
        await self.refs.require_uom(data.min_stock_uom)
        await self.refs.require_uom(data.par_stock_uom)
        location = VariantLocation(
            product_id=product_id,
            variant_id=variant_id,
            organization_id=self.actor.organization_id,
            safety_level=data.safetylevel,
            reorder_level=data.reorderlevel,
            min_stock_uom_id=data.min_stock_uom,
            par_stock_uom_id=data.par_stock_uom,
            opening_stock=data.openingstock,
            closing_stock=data.closingstock,
            closing_stock_on=list(data.closingstock_on),
            auto_renew=data.autorenew,
            created_by=self.actor.user_id,
        )
        self.db.add(location)
        return location

    async def add_tax(self, product_id: int, variant_id: int, data: TaxIn) -> VariantTax:
        tax = VariantTax(
            product_id=product_id,
            variant_id=variant_id,
            tax_rate=data.taxrate,
            hsn_code=data.hsncode,
            created_by=self.actor.user_id,
        )
        self.db.add(tax)
        return tax

    async def add_uom_mappings(
        self,
        product_id: int,
        variant_id: int,
        purchase: Iterable[PurchaseUomIn],
        consumption: Optional[UomRefIn],
    ) -> List[UomMapping]:
        """
        Insert PURCHASE rows (each with its own default flag) and at most one
        CONSUMPTION row, which is always the default.

        The discriminator comes from the input field, never from the caller.
        """
        rows: List[UomMapping] = []
        for item in purchase:
            await self.refs.require_uom(item.uomid)
            rows.append(UomMapping(
                product_id=product_id,
                variant_id=variant_id,
                uom_id=item.uomid,
                uom_type=UomMappingType.PURCHASE.value,
                is_default=item.is_default,
                created_by=self.actor.user_id,
            ))
        if consumption is not None:
            await self.refs.require_uom(consumption.uomid)
            rows.append(UomMapping(
                product_id=product_id,
                variant_id=variant_id,
                uom_id=consumption.uomid,
                uom_type=UomMappingType.CONSUMPTION.value,
                is_default=True,
                created_by=self.actor.user_id,
            ))
        self.db.add_all(rows)
        return rows

    async def add_attribute_mappings(
        self, product_id: int, variant_id: int, mappings: Iterable[AttributeMappingIn]
    ) -> List[AttributeMapping]:
        created: List[AttributeMapping] = []
        for item in mappings:
            await self.refs.require_attribute(item.attributeid)
            mapping = AttributeMapping(
                product_id=product_id,
                variant_id=variant_id,
                attribute_id=item.attributeid,
                text_prompt=item.attrtextprompt,
                is_required=item.isrequired,
                control_type=item.controltype,
                display_order=item.displayorder,
                created_by=self.actor.user_id,
            )
            self.db.add(mapping)
            await self.db.flush()  # need mapping.id for the values

            for value in item.pvamvaluemodels:
                await self.refs.require_attribute_value(value.avid, item.attributeid)
                if value.umid is not None:
                    await self.refs.require_image(value.umid)
                self.db.add(AttributeMappingValue(
                    mapping_id=mapping.id,
                    attribute_value_id=value.avid,
                    color_override=value.pvamvcolor,
                    image_id=value.umid,
                    display_order=value.displayorder,
                    created_by=self.actor.user_id,
                ))
            created.append(mapping)
        return created

    # =========================================================================
    # In-place update (variant-level edits)
    # =========================================================================

    async def upsert_location(
        self, variant: ProductVariant, current: Optional[VariantLocation], data: LocationIn
    ) -> VariantLocation:
        if current is None:
            return await self.add_location(variant.product_id, variant.id, data)
        await self.refs.require_uom(data.min_stock_uom)
        await self.refs.require_uom(data.par_stock_uom)
        current.safety_level = data.safetylevel
        current.reorder_level = data.reorderlevel
        current.min_stock_uom_id = data.min_stock_uom
        current.par_stock_uom_id = data.par_stock_uom
        current.opening_stock = data.openingstock
        current.closing_stock = data.closingstock
        current.closing_stock_on = list(data.closingstock_on)
        current.auto_renew = data.autorenew
        current.modified_by = self.actor.user_id
        current.modified_at = utcnow()
        return current

    async def upsert_tax(
        self, variant: ProductVariant, current: Optional[VariantTax], data: TaxIn
    ) -> VariantTax:
        if current is None:
            return await self.add_tax(variant.product_id, variant.id, data)
        current.tax_rate = data.taxrate
        current.hsn_code = data.hsncode
        current.modified_by = self.actor.user_id
        current.modified_at = utcnow()
        return current

    # =========================================================================
    # Removal
    # =========================================================================

    async def purge_for_product(self, product_id: int) -> None:
        """Physically delete every variant sub-row of a product (replace-all)."""
        mapping_ids = select(AttributeMapping.id).where(AttributeMapping.product_id == product_id)
        # children first, FKs point upward
        await self.db.execute(
            delete(AttributeMappingValue)
            .where(AttributeMappingValue.mapping_id.in_(mapping_ids))
            .execution_options(synchronize_session=False)
        )
        for model in (AttributeMapping, UomMapping, VariantTax, VariantLocation):
            await self.db.execute(
                delete(model)
                .where(model.product_id == product_id)
                .execution_options(synchronize_session=False)
            )

    async def soft_delete_for_variants(self, variant_ids: List[int], stamp: Dict) -> None:
        if not variant_ids:
            return
        mapping_ids = select(AttributeMapping.id).where(AttributeMapping.variant_id.in_(variant_ids))
        await self.db.execute(
            update(AttributeMappingValue)
            .where(
                AttributeMappingValue.mapping_id.in_(mapping_ids),
                AttributeMappingValue.is_deleted == False,
            )
            .values(**stamp)
            .execution_options(synchronize_session=False)
        )
        for model in (AttributeMapping, UomMapping, VariantTax, VariantLocation):
            await self.db.execute(
                update(model)
                .where(model.variant_id.in_(variant_ids), model.is_deleted == False)
                .values(**stamp)
                .execution_options(synchronize_session=False)
            )


class VariantWriter:
    """Creates and clears the variants of one product."""

    def __init__(self, db: AsyncSession, actor: Actor, refs: Optional[ReferenceData] = None):
        self.db = db
        self.actor = actor
        self.refs = refs or ReferenceData(db)
        self.children = SubEntityWriter(db, actor, self.refs)

    async def create_variant(self, product_id: int, data: VariantIn) -> ProductVariant:
        """
        Insert one variant and all of its sub-rows.

        Args:
            product_id: Owning product (must already be flushed)
            data: Variant payload

        Returns:
            The flushed ProductVariant row
        """
        variant = ProductVariant(
            product_id=product_id,
            name=data.pvname,
            description=data.pvdesc,
            barcode=data.pvbarcode,
            purchase_price=data.pvpurchaseprice,
            sales_price=data.pvsalesprice,
            reconciliation_price=data.reconciliation_price,
            normal_loss=data.normal_loss,
            organization_id=self.actor.organization_id,
            created_by=self.actor.user_id,
        )
        self.db.add(variant)
        await self.db.flush()

        if data.location is not None:
            await self.children.add_location(product_id, variant.id, data.location)
        if data.tax is not None:
            await self.children.add_tax(product_id, variant.id, data.tax)
        await self.children.add_uom_mappings(
            product_id, variant.id, data.purchaseUoms, data.consumptionUom
        )
        await self.children.add_attribute_mappings(product_id, variant.id, data.pvamappings)
        await self.db.flush()
        return variant

    async def create_variants(self, product_id: int, payloads: List[VariantIn]) -> List[ProductVariant]:
        return [await self.create_variant(product_id, p) for p in payloads]

    async def purge_product(self, product_id: int) -> None:
        """Physically delete all variants of a product and their sub-rows."""
        await self.children.purge_for_product(product_id)
        await self.db.execute(
            delete(ProductVariant)
            .where(ProductVariant.product_id == product_id)
            .execution_options(synchronize_session=False)
        )

    async def soft_delete(self, variant_ids: List[int], stamp: Dict) -> None:
        """Flag variants and all their sub-rows deleted."""
        if not variant_ids:
            return
        await self.children.soft_delete_for_variants(variant_ids, stamp)
        await self.db.execute(
            update(ProductVariant)
            .where(ProductVariant.id.in_(variant_ids), ProductVariant.is_deleted == False)
            .values(**stamp)
            .execution_options(synchronize_session=False)
        )

    async def live_variant_ids(self, product_id: int) -> List[int]:
        result = await self.db.execute(
            select(ProductVariant.id)
            .where(
                ProductVariant.product_id == product_id,
                ProductVariant.is_deleted == False,
            )
            .order_by(ProductVariant.id)
        )
        return list(result.scalars().all())

    async def count_live(self, product_id: int) -> int:
        result = await self.db.execute(
            select(func.count(ProductVariant.id)).where(
                ProductVariant.product_id == product_id,
                ProductVariant.is_deleted == False,
            )
        )
        return result.scalar_one()
