# catalog_hub/services/product_variants.py
"""
Variant-level CRUD under an existing product.

Unlike a product update these edit rows in place. After every create or
delete the product's ``has_multiple_variants`` flag is recomputed from the
live variant count.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, List

from sqlalchemy.ext.asyncio import AsyncSession

from catalog_hub.database import Database
from catalog_hub.db_models import Product, utcnow
from catalog_hub.errors import NotFoundError, ValidationError
from catalog_hub.models import Actor, VariantIn, VariantUpdateIn
from catalog_hub.services.products import get_live_product
from catalog_hub.services.reader import ProductReader, variant_view, live
from catalog_hub.services.variants import VariantWriter, deletion_stamp

logger = logging.getLogger(__name__)


class ProductVariantService:
    """Create/list/get/update/delete single variants of a product."""

    def __init__(self, db: Database):
        self.db = db

    async def _variant_view(
        self, session: AsyncSession, product_id: int, variant_id: int, actor: Actor
    ) -> Dict[str, Any]:
        await session.flush()
        session.expunge_all()
        variant = await ProductReader(session).load_variant(
            product_id, variant_id, actor.organization_id
        )
        if variant is None:
            raise NotFoundError(f"Variant {variant_id} of product {product_id} not found")
        return variant_view(variant)

    @staticmethod
    async def _sync_flag(writer: VariantWriter, product: Product, actor: Actor) -> int:
        count = await writer.count_live(product.id)
        product.has_multiple_variants = count > 1
        product.modified_by = actor.user_id
        product.modified_at = utcnow()
        return count

    # =========================================================================
    # Writes
    # =========================================================================

    async def create_variant(self, product_id: int, data: VariantIn, actor: Actor) -> Dict[str, Any]:
        async with self.db.transaction() as session:
            product = await get_live_product(session, product_id, actor)
            writer = VariantWriter(session, actor)
            variant = await writer.create_variant(product_id, data)
            count = await self._sync_flag(writer, product, actor)
            view = await self._variant_view(session, product_id, variant.id, actor)

        logger.info("Added variant %s to product %s (%d live)", view["pvid"], product_id, count)
        return view

    async def update_variant(
        self, product_id: int, variant_id: int, data: VariantUpdateIn, actor: Actor
    ) -> Dict[str, Any]:
        """Update scalars; update the live location/tax in place or create them."""
        async with self.db.transaction() as session:
            await get_live_product(session, product_id, actor)
            variant = await ProductReader(session).load_variant(
                product_id, variant_id, actor.organization_id
            )
            if variant is None:
                raise NotFoundError(f"Variant {variant_id} of product {product_id} not found")

            fields = {
                "pvname": "name",
                "pvdesc": "description",
                "pvbarcode": "barcode",
                "pvpurchaseprice": "purchase_price",
                "pvsalesprice": "sales_price",
                "reconciliation_price": "reconciliation_price",
                "normal_loss": "normal_loss",
            }
            changes = data.model_dump(exclude_unset=True, exclude={"location", "tax"})
            for key, value in changes.items():
                if key == "pvbarcode" and value is not None and not value.strip():
                    value = None
                setattr(variant, fields[key], value)
            variant.modified_by = actor.user_id
            variant.modified_at = utcnow()

            writer = VariantWriter(session, actor)
            if data.location is not None:
                locations = live(variant.locations)
                await writer.children.upsert_location(
                    variant, locations[0] if locations else None, data.location
                )
            if data.tax is not None:
                taxes = live(variant.taxes)
                await writer.children.upsert_tax(variant, taxes[0] if taxes else None, data.tax)

            view = await self._variant_view(session, product_id, variant_id, actor)

        logger.info("Updated variant %s of product %s", variant_id, product_id)
        return view

    async def delete_variant(self, product_id: int, variant_id: int, actor: Actor) -> Dict[str, Any]:
        """
        Soft-delete one variant and its sub-rows.

        Raises:
            ValidationError: the variant is the product's last live one
        """
        async with self.db.transaction() as session:
            product = await get_live_product(session, product_id, actor)
            variant = await ProductReader(session).load_variant(
                product_id, variant_id, actor.organization_id
            )
            if variant is None:
                raise NotFoundError(f"Variant {variant_id} of product {product_id} not found")
            snapshot = variant_view(variant)

            writer = VariantWriter(session, actor)
            if await writer.count_live(product_id) <= 1:
                raise ValidationError(
                    "A product must keep at least one variant; delete the product instead",
                    code="LAST_VARIANT",
                )
            await writer.soft_delete([variant_id], deletion_stamp(actor))
            count = await self._sync_flag(writer, product, actor)

        logger.info("Soft-deleted variant %s of product %s (%d live)", variant_id, product_id, count)
        return snapshot

    # =========================================================================
    # Reads
    # =========================================================================

    async def list_variants(self, product_id: int, actor: Actor) -> List[Dict[str, Any]]:
        async with self.db.session() as session:
            product = await ProductReader(session).load(product_id, actor.organization_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        return [variant_view(v) for v in live(product.variants)]

    async def get_variant(self, product_id: int, variant_id: int, actor: Actor) -> Dict[str, Any]:
        async with self.db.session() as session:
            variant = await ProductReader(session).load_variant(
                product_id, variant_id, actor.organization_id
            )
        if variant is None:
            raise NotFoundError(f"Variant {variant_id} of product {product_id} not found")
        return variant_view(variant)
