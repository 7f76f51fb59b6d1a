# catalog_hub/services/products.py
"""
Product Aggregate Engine.

Creates, replaces and soft-deletes a product together with its category
mappings, image mapping and variants. Every write is one transaction taken
from the injected ``Database``; any failure leaves nothing behind.

Also carries the fixed-asset shortcuts, which are products with
``is_fixed_asset`` set, one variant and the default UOM everywhere.
"""
from __future__ import annotations
import copy
import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select, delete, update
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_hub.database import Database
from catalog_hub.db_models import (
    Product, ProductCategoryMapping, ProductImageMapping, ProductConfig, MasterGroup,
    utcnow,
)
from catalog_hub.errors import NotFoundError
from catalog_hub.models import (
    Actor, ProductIn, ProductFilterIn, VariantIn, LocationIn, TaxIn, UomRefIn,
    FixedAssetIn, FixedAssetUpdateIn,
)
from catalog_hub.services.reader import (
    ProductReader, product_view, product_row_view, id_str, dec_str, live,
)
from catalog_hub.services.reference import ReferenceData
from catalog_hub.services.variants import VariantWriter, deletion_stamp

logger = logging.getLogger(__name__)


PRODUCT_TEMPLATE: Dict[str, Any] = {
    "proname": "",
    "prodescription": "",
    "proconfig": None,
    "prouom": None,
    "proisfa": False,
    "catids": [],
    "productimgid": None,
    "variant": {
        "pvname": "",
        "pvdesc": "",
        "pvbarcode": None,
        "pvpurchaseprice": "0",
        "pvsalesprice": "0",
        "reconciliation_price": "0",
        "normal_loss": "0",
        "location": None,
        "tax": None,
        "purchaseUoms": [],
        "consumptionUom": None,
        "pvamappings": [],
    },
}

FIXED_ASSET_TEMPLATE: Dict[str, Any] = {
    "proname": "",
    "prodescription": "",
    "catids": [],
    "location": {"openingstock": "0", "reorderlevel": "0"},
}


async def get_live_product(
    session: AsyncSession, product_id: int, actor: Actor, fixed_asset_only: bool = False
) -> Product:
    conditions = [
        Product.id == product_id,
        Product.organization_id == actor.organization_id,
        Product.is_deleted == False,
    ]
    if fixed_asset_only:
        conditions.append(Product.is_fixed_asset == True)
    result = await session.execute(select(Product).where(*conditions))
    product = result.scalar_one_or_none()
    if product is None:
        what = "Fixed asset" if fixed_asset_only else "Product"
        raise NotFoundError(f"{what} {product_id} not found")
    return product


class ProductService:
    """Transactional root of the product aggregate."""

    def __init__(self, db: Database, default_uom_id: int = 1):
        self.db = db
        self.default_uom_id = default_uom_id

    # =========================================================================
    # Child row helpers (run inside an open transaction)
    # =========================================================================

    async def _write_image(
        self, session: AsyncSession, refs: ReferenceData, product_id: int,
        image_id: Optional[int], actor: Actor,
    ) -> None:
        if image_id is None:
            return
        await refs.require_image(image_id)
        session.add(ProductImageMapping(
            product_id=product_id, image_id=image_id, created_by=actor.user_id,
        ))

    async def _write_categories(
        self, session: AsyncSession, refs: ReferenceData, product_id: int,
        category_ids: Iterable[int], actor: Actor,
    ) -> None:
        rows = []
        for category_id in dict.fromkeys(category_ids):  # dedupe, keep order
            await refs.require_category(category_id)
            rows.append(ProductCategoryMapping(
                product_id=product_id, category_id=category_id, created_by=actor.user_id,
            ))
        session.add_all(rows)

    async def _replace_categories(
        self, session: AsyncSession, refs: ReferenceData, product_id: int,
        category_ids: Iterable[int], actor: Actor,
    ) -> None:
        await session.execute(
            delete(ProductCategoryMapping)
            .where(ProductCategoryMapping.product_id == product_id)
            .execution_options(synchronize_session=False)
        )
        await self._write_categories(session, refs, product_id, category_ids, actor)

    async def _reload(self, session: AsyncSession, product_id: int, actor: Actor) -> Dict[str, Any]:
        await session.flush()
        # drop stale identities left behind by bulk delete/update statements
        session.expunge_all()
        view = await ProductReader(session).read(product_id, actor.organization_id)
        if view is None:
            raise NotFoundError(f"Product {product_id} not found")
        return view

    # =========================================================================
    # Create / Update / Delete
    # =========================================================================

    async def create(self, data: ProductIn, actor: Actor) -> Dict[str, Any]:
        """
        Create a product with its categories, image and variants.

        Returns:
            The product's scalar row; read() returns the full graph.
        """
        payloads = data.variant_payloads
        async with self.db.transaction() as session:
            refs = ReferenceData(session)
            await refs.require_uom(data.prouom)

            product = Product(
                name=data.proname,
                description=data.prodescription,
                config=data.proconfig,
                uom_id=data.prouom,
                organization_id=actor.organization_id,
                is_fixed_asset=data.proisfa,
                has_multiple_variants=len(payloads) > 1,
                created_by=actor.user_id,
            )
            session.add(product)
            await session.flush()

            await self._write_image(session, refs, product.id, data.productimgid, actor)
            await self._write_categories(session, refs, product.id, data.catids, actor)
            await VariantWriter(session, actor, refs).create_variants(product.id, payloads)

        logger.info(
            "Created product %s (%d variant(s), org %s, by %s)",
            product.id, len(payloads), actor.organization_id, actor.user_id,
        )
        return product_row_view(product)

    async def update(self, product_id: int, data: ProductIn, actor: Actor) -> Dict[str, Any]:
        """
        Replace a product's scalars, image, categories and every variant.

        Variant rows and their sub-rows are physically deleted and recreated
        from the submission, so the variant shape may switch between single
        and multi across updates.
        """
        payloads = data.variant_payloads
        async with self.db.transaction() as session:
            product = await get_live_product(session, product_id, actor)
            refs = ReferenceData(session)
            await refs.require_uom(data.prouom)

            product.name = data.proname
            product.description = data.prodescription
            product.config = data.proconfig
            product.uom_id = data.prouom
            product.has_multiple_variants = len(payloads) > 1
            product.modified_by = actor.user_id
            product.modified_at = utcnow()

            await session.execute(
                delete(ProductImageMapping)
                .where(ProductImageMapping.product_id == product_id)
                .execution_options(synchronize_session=False)
            )
            await self._write_image(session, refs, product_id, data.productimgid, actor)
            await self._replace_categories(session, refs, product_id, data.catids, actor)

            writer = VariantWriter(session, actor, refs)
            await writer.purge_product(product_id)
            await writer.create_variants(product_id, payloads)

            view = await self._reload(session, product_id, actor)

        logger.info(
            "Updated product %s (%d variant(s), by %s)", product_id, len(payloads), actor.user_id
        )
        return view

    async def delete(self, product_id: int, actor: Actor) -> Dict[str, Any]:
        """
        Soft-delete a product and everything it owns.

        The flag is set on the product, its category and image mappings, its
        variants and each variant's location, tax, UOM mappings, attribute
        mappings and attribute values.

        Returns:
            The product as it read just before deletion.
        """
        async with self.db.transaction() as session:
            snapshot = await ProductReader(session).read(product_id, actor.organization_id)
            if snapshot is None:
                raise NotFoundError(f"Product {product_id} not found")

            stamp = deletion_stamp(actor)
            writer = VariantWriter(session, actor)
            await writer.soft_delete(await writer.live_variant_ids(product_id), stamp)
            for model in (ProductCategoryMapping, ProductImageMapping):
                await session.execute(
                    update(model)
                    .where(model.product_id == product_id, model.is_deleted == False)
                    .values(**stamp)
                    .execution_options(synchronize_session=False)
                )
            await session.execute(
                update(Product)
                .where(Product.id == product_id)
                .values(**stamp)
                .execution_options(synchronize_session=False)
            )

        logger.info("Soft-deleted product %s (by %s)", product_id, actor.user_id)
        return snapshot

    # =========================================================================
    # Reads
    # =========================================================================

    async def get(self, product_id: int, actor: Actor) -> Dict[str, Any]:
        async with self.db.session() as session:
            view = await ProductReader(session).read(product_id, actor.organization_id)
        if view is None:
            raise NotFoundError(f"Product {product_id} not found")
        return view

    async def filter(self, criteria: ProductFilterIn, actor: Actor) -> Dict[str, Any]:
        async with self.db.session() as session:
            return await ProductReader(session).filter(criteria, actor.organization_id)

    async def list_products(
        self,
        actor: Actor,
        search: Optional[str] = None,
        category_id: Optional[int] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> Dict[str, Any]:
        async with self.db.session() as session:
            return await ProductReader(session).list_products(
                actor.organization_id, search, category_id, limit, offset
            )

    async def product_modal(self, actor: Actor) -> Dict[str, Any]:
        """Empty create template plus dropdown data."""
        async with self.db.session() as session:
            refs = ReferenceData(session)
            categories = await refs.categories()
            product_types = await refs.master_values(MasterGroup.PRODUCT_TYPE)
            closing_types = await refs.master_values(MasterGroup.CLOSING_STOCK)
        return {
            "modal": copy.deepcopy(PRODUCT_TEMPLATE),
            "categories": [{"id": id_str(c.id), "catname": c.name} for c in categories],
            "uoms": [],
            "productTypes": [{"id": id_str(m.id), "value": m.value} for m in product_types],
            "closingStockTypes": [{"id": id_str(m.id), "value": m.value} for m in closing_types],
        }

    # =========================================================================
    # Fixed assets
    # =========================================================================

    async def fixed_asset_modal(self, actor: Actor) -> Dict[str, Any]:
        async with self.db.session() as session:
            categories = await ReferenceData(session).categories()
        return {
            "modal": copy.deepcopy(FIXED_ASSET_TEMPLATE),
            "categories": [{"catid": id_str(c.id), "catname": c.name} for c in categories],
        }

    def _fixed_asset_product(self, data: FixedAssetIn) -> ProductIn:
        uom = self.default_uom_id
        return ProductIn(
            proname=data.proname,
            prodescription=data.prodescription,
            proconfig=ProductConfig.FIXED_ASSET.value,
            prouom=uom,
            proisfa=True,
            catids=data.catids,
            variant=VariantIn(
                pvname=data.proname,
                pvdesc=data.prodescription,
                location=LocationIn(
                    openingstock=data.location.openingstock,
                    reorderlevel=data.location.reorderlevel,
                    min_stock_uom=uom,
                    par_stock_uom=uom,
                ),
                tax=TaxIn(),
                consumptionUom=UomRefIn(uomid=uom),
            ),
        )

    async def create_fixed_asset(self, data: FixedAssetIn, actor: Actor) -> Dict[str, Any]:
        return await self.create(self._fixed_asset_product(data), actor)

    @staticmethod
    def _fixed_asset_view(product: Product) -> Dict[str, Any]:
        variants = live(product.variants)
        location = None
        if variants:
            locations = live(variants[0].locations)
            if locations:
                location = {
                    "openingstock": dec_str(locations[0].opening_stock),
                    "reorderlevel": dec_str(locations[0].reorder_level),
                    "min_stock_uom": id_str(locations[0].min_stock_uom_id),
                    "par_stock_uom": id_str(locations[0].par_stock_uom_id),
                }
        return {
            "proid": id_str(product.id),
            "proname": product.name,
            "prodescription": product.description,
            "categories": product_view(product)["categories"],
            "location": location,
        }

    async def get_fixed_asset(self, product_id: int, actor: Actor) -> Dict[str, Any]:
        async with self.db.session() as session:
            product = await ProductReader(session).load(
                product_id, actor.organization_id, fixed_asset_only=True
            )
            if product is None:
                raise NotFoundError(f"Fixed asset {product_id} not found")
            return self._fixed_asset_view(product)

    async def update_fixed_asset(
        self, product_id: int, data: FixedAssetUpdateIn, actor: Actor
    ) -> Dict[str, Any]:
        """
        Update name/description, categories (only when a non-empty list is
        sent) and the opening stock/reorder level of the asset's location.
        """
        async with self.db.transaction() as session:
            product = await get_live_product(session, product_id, actor, fixed_asset_only=True)
            refs = ReferenceData(session)
            now = utcnow()

            if data.proname is not None:
                product.name = data.proname
            if data.prodescription is not None:
                product.description = data.prodescription
            product.modified_by = actor.user_id
            product.modified_at = now

            if data.catids:
                await self._replace_categories(session, refs, product_id, data.catids, actor)

            if data.location is not None:
                # flush first: the graph load below refreshes the product row
                await session.flush()
                loaded = await ProductReader(session).load(
                    product_id, actor.organization_id, fixed_asset_only=True
                )
                variants = live(loaded.variants)
                locations = live(variants[0].locations) if variants else []
                if locations:
                    locations[0].opening_stock = data.location.openingstock
                    locations[0].reorder_level = data.location.reorderlevel
                    locations[0].modified_by = actor.user_id
                    locations[0].modified_at = now
                else:
                    logger.warning("Fixed asset %s has no live location to update", product_id)

            await session.flush()
            session.expunge_all()
            loaded = await ProductReader(session).load(
                product_id, actor.organization_id, fixed_asset_only=True
            )
            view = self._fixed_asset_view(loaded)

        logger.info("Updated fixed asset %s (by %s)", product_id, actor.user_id)
        return view
