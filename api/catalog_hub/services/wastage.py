# catalog_hub/services/wastage.py
"""
Wastage ledger.

Loss events recorded against a product (and optionally one of its
variants). Wastage is its own aggregate: products and variants are looked
up for validation and display only.
"""
from __future__ import annotations
import logging
import math
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from catalog_hub.database import Database
from catalog_hub.db_models import (
    Product, ProductVariant, ProductConfig, MasterGroup, utcnow,
)
from catalog_hub.db_models_ext import Wastage, WastageAttachment
from catalog_hub.errors import NotFoundError, ValidationError
from catalog_hub.models import Actor, WastageIn, WastageUpdateIn, WastageListIn
from catalog_hub.services.reader import id_str, dec_str, live
from catalog_hub.services.reference import ReferenceData

logger = logging.getLogger(__name__)


def _wastage_options():
    return (
        selectinload(Wastage.product).selectinload(Product.uom),
        selectinload(Wastage.variant),
        selectinload(Wastage.uom),
        selectinload(Wastage.wastage_type),
        selectinload(Wastage.attachments).selectinload(WastageAttachment.image),
    )


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def wastage_view(wastage: Wastage) -> Dict[str, Any]:
    product = wastage.product
    return {
        "wastageid": id_str(wastage.id),
        "wastageno": wastage.wastage_no,
        "seriesid": id_str(wastage.series_id),
        "proid": id_str(wastage.product_id),
        "pvid": id_str(wastage.variant_id),
        "proisfa": wastage.is_fixed_asset,
        "wastageqty": dec_str(wastage.quantity),
        "wastagevalue": dec_str(wastage.value),
        "wastagedate": _iso(wastage.wastage_date),
        "dom": _iso(wastage.manufactured_on),
        "doe": _iso(wastage.expires_on),
        "bcode": wastage.batch_code,
        "fcode": wastage.factory_code,
        "remarks": wastage.remarks,
        "uomid": id_str(wastage.uom_id),
        "uaid": id_str(wastage.address_id),
        "wastagetype": id_str(wastage.wastage_type_id),
        "productname": product.name if product else None,
        "proconfig": product.config if product else None,
        "produomname": product.uom.name if product and product.uom else None,
        "variantname": wastage.variant.name if wastage.variant else None,
        "uomname": wastage.uom.name if wastage.uom else None,
        "wastagetypename": wastage.wastage_type.value if wastage.wastage_type else None,
        "attachments": [
            {
                "attachmentid": id_str(a.id),
                "umid": id_str(a.image_id),
                "url": a.image.url if a.image else None,
            }
            for a in wastage.attachments
        ],
        "createdby": id_str(wastage.created_by),
        "createddate": wastage.created_at.isoformat() if wastage.created_at else None,
    }


class WastageService:
    """CRUD and paginated listing over wastage records."""

    def __init__(self, db: Database, default_page_size: int = 10):
        self.db = db
        self.default_page_size = default_page_size

    # =========================================================================
    # Lookups
    # =========================================================================

    async def _product(self, session: AsyncSession, product_id: int, actor: Actor) -> Product:
        result = await session.execute(
            select(Product).where(
                Product.id == product_id,
                Product.organization_id == actor.organization_id,
                Product.is_deleted == False,
            )
        )
        product = result.scalar_one_or_none()
        if product is None:
            raise ValidationError(f"Product {product_id} not found", code="PRODUCT_NOT_FOUND")
        return product

    async def _check_variant(self, session: AsyncSession, variant_id: int, product_id: int) -> None:
        result = await session.execute(
            select(ProductVariant.id).where(
                ProductVariant.id == variant_id,
                ProductVariant.product_id == product_id,
                ProductVariant.is_deleted == False,
            )
        )
        if result.scalar_one_or_none() is None:
            raise ValidationError(
                f"Variant {variant_id} not found on product {product_id}",
                code="VARIANT_NOT_FOUND",
            )

    async def _load(self, session: AsyncSession, wastage_id: int, actor: Actor) -> Optional[Wastage]:
        result = await session.execute(
            select(Wastage)
            .options(*_wastage_options())
            .where(
                Wastage.id == wastage_id,
                Wastage.organization_id == actor.organization_id,
                Wastage.is_deleted == False,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _reload(self, session: AsyncSession, wastage_id: int, actor: Actor) -> Dict[str, Any]:
        await session.flush()
        session.expunge_all()
        wastage = await self._load(session, wastage_id, actor)
        return wastage_view(wastage)

    # =========================================================================
    # Writes
    # =========================================================================

    async def create(self, data: WastageIn, actor: Actor) -> Dict[str, Any]:
        async with self.db.transaction() as session:
            refs = ReferenceData(session)
            product = await self._product(session, data.proid, actor)
            if data.pvid is not None:
                await self._check_variant(session, data.pvid, product.id)
            if data.uomid is not None:
                await refs.require_uom(data.uomid)
            if data.wastagetype is not None:
                await refs.require_master_value(data.wastagetype, MasterGroup.WASTAGE_TYPE)

            wastage = Wastage(
                wastage_no=data.wastageno,
                series_id=data.seriesid,
                product_id=product.id,
                variant_id=data.pvid,
                is_fixed_asset=product.is_fixed_asset,
                quantity=data.wastageqty,
                value=data.wastagevalue,
                wastage_date=data.wastagedate,
                manufactured_on=data.dom,
                expires_on=data.doe,
                batch_code=data.bcode,
                factory_code=data.fcode,
                remarks=data.remarks,
                uom_id=data.uomid,
                organization_id=actor.organization_id,
                address_id=data.uaid,
                wastage_type_id=data.wastagetype,
                created_by=actor.user_id,
            )
            session.add(wastage)
            await session.flush()

            for image_id in data.attachments:
                await refs.require_image(image_id)
                session.add(WastageAttachment(wastage_id=wastage.id, image_id=image_id))

            view = await self._reload(session, wastage.id, actor)

        logger.info("Created wastage %s for product %s (by %s)", view["wastageid"], data.proid, actor.user_id)
        return view

    async def update(self, wastage_id: int, data: WastageUpdateIn, actor: Actor) -> Dict[str, Any]:
        async with self.db.transaction() as session:
            wastage = await self._load(session, wastage_id, actor)
            if wastage is None:
                raise NotFoundError(f"Wastage {wastage_id} not found")

            if data.proid is not None and data.proid != wastage.product_id:
                product = await self._product(session, data.proid, actor)
                wastage.product_id = product.id
                wastage.is_fixed_asset = product.is_fixed_asset
                if data.pvid is None:
                    # the old variant belongs to the old product
                    wastage.variant_id = None
            if data.pvid is not None:
                await self._check_variant(session, data.pvid, wastage.product_id)
                wastage.variant_id = data.pvid
            if data.wastagetype is not None:
                await ReferenceData(session).require_master_value(
                    data.wastagetype, MasterGroup.WASTAGE_TYPE
                )
                wastage.wastage_type_id = data.wastagetype
            if data.wastageqty is not None:
                wastage.quantity = data.wastageqty
            if data.wastagevalue is not None:
                wastage.value = data.wastagevalue
            if data.wastagedate is not None:
                wastage.wastage_date = data.wastagedate
            if data.remarks is not None:
                wastage.remarks = data.remarks
            wastage.modified_by = actor.user_id
            wastage.modified_at = utcnow()

            view = await self._reload(session, wastage_id, actor)

        logger.info("Updated wastage %s (by %s)", wastage_id, actor.user_id)
        return view

    async def delete(self, wastage_id: int, actor: Actor) -> Dict[str, Any]:
        async with self.db.transaction() as session:
            wastage = await self._load(session, wastage_id, actor)
            if wastage is None:
                raise NotFoundError(f"Wastage {wastage_id} not found")
            wastage.is_deleted = True
            wastage.deleted_by = actor.user_id
            wastage.deleted_at = utcnow()
            view = wastage_view(wastage)

        logger.info("Soft-deleted wastage %s (by %s)", wastage_id, actor.user_id)
        return view

    # =========================================================================
    # Reads
    # =========================================================================

    async def get(self, wastage_id: int, actor: Actor) -> Dict[str, Any]:
        async with self.db.session() as session:
            wastage = await self._load(session, wastage_id, actor)
        if wastage is None:
            raise NotFoundError(f"Wastage {wastage_id} not found")
        return wastage_view(wastage)

    async def list_wastages(self, criteria: WastageListIn, actor: Actor) -> Dict[str, Any]:
        """Newest first, filtered by fixed-asset flag and equality filters."""
        limit = criteria.limit or self.default_page_size
        conditions = [
            Wastage.organization_id == actor.organization_id,
            Wastage.is_deleted == False,
        ]
        if criteria.proisfa is not None:
            conditions.append(Wastage.is_fixed_asset == criteria.proisfa)
        equality = {
            "proid": Wastage.product_id,
            "pvid": Wastage.variant_id,
            "wastagetype": Wastage.wastage_type_id,
            "seriesid": Wastage.series_id,
            "uaid": Wastage.address_id,
            "uomid": Wastage.uom_id,
        }
        for field, column in equality.items():
            value = getattr(criteria, field)
            if value is not None:
                conditions.append(column == value)

        async with self.db.session() as session:
            total = (await session.execute(
                select(func.count(Wastage.id)).where(*conditions)
            )).scalar_one()
            result = await session.execute(
                select(Wastage)
                .options(*_wastage_options())
                .where(*conditions)
                .order_by(Wastage.id.desc())
                .offset((criteria.page - 1) * limit)
                .limit(limit)
            )
            rows = result.scalars().all()

        return {
            "data": [wastage_view(w) for w in rows],
            "pagination": {
                "totalItems": total,
                "currentPage": criteria.page,
                "totalPages": math.ceil(total / limit),
                "itemsPerPage": limit,
            },
        }

    async def modal(self, actor: Actor, proisfa: Optional[bool] = None) -> Dict[str, Any]:
        """
        Create template plus dropdowns.

        Fixed assets come back as a flat list when ``proisfa`` is true,
        otherwise products are grouped by config.
        """
        conditions = [
            Product.organization_id == actor.organization_id,
            Product.is_deleted == False,
        ]
        if proisfa is not None:
            conditions.append(Product.is_fixed_asset == proisfa)

        async with self.db.session() as session:
            result = await session.execute(
                select(Product)
                .options(selectinload(Product.uom), selectinload(Product.variants))
                .where(*conditions)
                .order_by(Product.id)
            )
            products = [self._modal_product(p) for p in result.scalars().all()]
            wastage_types = await ReferenceData(session).master_values(MasterGroup.WASTAGE_TYPE)

        if proisfa:
            dropdown_products: Any = products
        else:
            def of(config: ProductConfig) -> List[Dict[str, Any]]:
                return [p for p in products if p["proconfig"] == config.value]

            dropdown_products = {
                "rawMaterials": of(ProductConfig.RAW_MATERIAL),
                "finishedGoods": of(ProductConfig.FINISHED),
                "semiFinishedGoods": of(ProductConfig.SEMI_FINISHED),
            }

        return {
            "template": {
                "wastageno": "1",
                "seriesid": 0,
                "proid": None,
                "pvid": None,
                "wastageqty": "0",
                "wastagevalue": "0",
                "wastagedate": date.today().isoformat(),
                "remarks": "",
                "wastagetype": None,
                "attachments": [],
                "proisfa": bool(proisfa),
            },
            "dropdowns": {
                "products": dropdown_products,
                "wastageTypes": [{"id": id_str(m.id), "value": m.value} for m in wastage_types],
            },
        }

    @staticmethod
    def _modal_product(product: Product) -> Dict[str, Any]:
        return {
            "proid": id_str(product.id),
            "proname": product.name,
            "proconfig": product.config,
            "prouom": id_str(product.uom_id),
            "prouomname": product.uom.name if product.uom else None,
            "variants": [
                {"pvid": id_str(v.id), "variantname": v.name, "pvcode": v.barcode}
                for v in live(product.variants)
            ],
        }
