# catalog_hub/services/reader.py
"""
Product aggregate reader.

Loads a product with its whole graph in one round of selectin queries and
reshapes it into the canonical output form:

- every identifier and decimal is a string
- one live variant is returned as ``variant``, two or more as ``variants``
- soft-deleted rows anywhere in the graph are left out
"""
from __future__ import annotations
import logging
import math
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from catalog_hub.db_models import (
    Product, ProductVariant, ProductCategoryMapping, ProductImageMapping,
    VariantLocation, VariantTax, UomMapping, UomMappingType,
    AttributeMapping, AttributeMappingValue,
)
from catalog_hub.models import ProductFilterIn

logger = logging.getLogger(__name__)


# ============================================================================
# Output helpers
# ============================================================================

def id_str(value: Optional[int]) -> Optional[str]:
    return None if value is None else str(value)


def dec_str(value: Optional[Decimal]) -> Optional[str]:
    """Render a decimal without exponent or trailing zeros ("10.5000" -> "10.5")."""
    if value is None:
        return None
    value = Decimal(value)
    if value == 0:
        return "0"
    return format(value.normalize(), "f")


def live(rows: Sequence) -> List:
    return [r for r in rows if not r.is_deleted]


def _single(rows: Sequence, what: str, variant_id: int):
    rows = live(rows)
    if len(rows) > 1:
        logger.warning("Variant %s has %d live %s rows, using the first", variant_id, len(rows), what)
    return rows[0] if rows else None


# ============================================================================
# Loader options
# ============================================================================

def aggregate_options():
    """selectinload chain covering the full product graph."""
    return (
        selectinload(Product.uom),
        selectinload(Product.category_mappings).selectinload(ProductCategoryMapping.category),
        selectinload(Product.image_mappings).selectinload(ProductImageMapping.image),
        selectinload(Product.variants).options(*variant_options()),
    )


def variant_options():
    return (
        selectinload(ProductVariant.locations).options(
            selectinload(VariantLocation.min_stock_uom),
            selectinload(VariantLocation.par_stock_uom),
        ),
        selectinload(ProductVariant.taxes),
        selectinload(ProductVariant.uom_mappings).selectinload(UomMapping.uom),
        selectinload(ProductVariant.attribute_mappings).options(
            selectinload(AttributeMapping.attribute),
            selectinload(AttributeMapping.values).options(
                selectinload(AttributeMappingValue.attribute_value),
                selectinload(AttributeMappingValue.image),
            ),
        ),
    )


# ============================================================================
# Transformers
# ============================================================================

def location_view(location: Optional[VariantLocation]) -> Optional[Dict[str, Any]]:
    if location is None:
        return None
    return {
        "pvlid": id_str(location.id),
        "safetylevel": dec_str(location.safety_level),
        "reorderlevel": dec_str(location.reorder_level),
        "min_stock_uom": id_str(location.min_stock_uom_id),
        "min_stock_uom_name": location.min_stock_uom.name if location.min_stock_uom else None,
        "par_stock_uom": id_str(location.par_stock_uom_id),
        "par_stock_uom_name": location.par_stock_uom.name if location.par_stock_uom else None,
        "openingstock": dec_str(location.opening_stock),
        "closingstock": dec_str(location.closing_stock),
        "closingstock_on": [int(d) for d in (location.closing_stock_on or [])],
        "autorenew": location.auto_renew,
    }


def tax_view(tax: Optional[VariantTax]) -> Optional[Dict[str, Any]]:
    if tax is None:
        return None
    return {
        "protaxid": id_str(tax.id),
        "taxrate": dec_str(tax.tax_rate),
        "hsncode": tax.hsn_code,
    }


def attribute_mapping_view(mapping: AttributeMapping) -> Dict[str, Any]:
    return {
        "pvamid": id_str(mapping.id),
        "attributeid": id_str(mapping.attribute_id),
        "attributename": mapping.attribute.name if mapping.attribute else None,
        "attrtextprompt": mapping.text_prompt,
        "isrequired": mapping.is_required,
        "controltype": mapping.control_type,
        "displayorder": mapping.display_order,
        "pvamvaluemodels": [
            {
                "pvamvid": id_str(v.id),
                "avid": id_str(v.attribute_value_id),
                "avname": v.attribute_value.name if v.attribute_value else None,
                "pvamvcolor": v.color_override,
                "umid": id_str(v.image_id),
                "image_url": v.image.url if v.image else None,
                "displayorder": v.display_order,
            }
            for v in live(mapping.values)
        ],
    }


def variant_view(variant: ProductVariant) -> Dict[str, Any]:
    uoms = live(variant.uom_mappings)
    purchase = [u for u in uoms if u.uom_type == UomMappingType.PURCHASE.value]
    consumption = [u for u in uoms if u.uom_type == UomMappingType.CONSUMPTION.value]
    if len(consumption) > 1:
        logger.warning("Variant %s has %d consumption UOMs, using the first", variant.id, len(consumption))

    return {
        "pvid": id_str(variant.id),
        "proid": id_str(variant.product_id),
        "pvname": variant.name,
        "pvdesc": variant.description,
        "pvbarcode": variant.barcode,
        "pvpurchaseprice": dec_str(variant.purchase_price),
        "pvsalesprice": dec_str(variant.sales_price),
        "reconciliation_price": dec_str(variant.reconciliation_price),
        "normal_loss": dec_str(variant.normal_loss),
        "location": location_view(_single(variant.locations, "location", variant.id)),
        "tax": tax_view(_single(variant.taxes, "tax", variant.id)),
        "purchaseUoms": [
            {
                "uommid": id_str(u.id),
                "uomid": id_str(u.uom_id),
                "is_default": u.is_default,
                "uomname": u.uom.name if u.uom else None,
            }
            for u in purchase
        ],
        "consumptionUom": (
            {
                "uommid": id_str(consumption[0].id),
                "uomid": id_str(consumption[0].uom_id),
                "uomname": consumption[0].uom.name if consumption[0].uom else None,
            }
            if consumption else None
        ),
        "pvamappings": [attribute_mapping_view(m) for m in live(variant.attribute_mappings)],
    }


def product_view(product: Product) -> Dict[str, Any]:
    """Canonical product view with the single/array variant shape rule applied."""
    variants = live(product.variants)
    images = live(product.image_mappings)
    image = images[0] if images else None

    view: Dict[str, Any] = {
        "proid": id_str(product.id),
        "proname": product.name,
        "prodescription": product.description,
        "proconfig": product.config,
        "proisfa": product.is_fixed_asset,
        "hasvarient": len(variants) > 1,
        "prouom": id_str(product.uom_id),
        "uomname": product.uom.name if product.uom else None,
        "categories": [
            {"catid": id_str(m.category_id), "catname": m.category.name if m.category else None}
            for m in live(product.category_mappings)
        ],
        "productimgid": id_str(image.image_id) if image else None,
        "product_image_url": image.image.url if image and image.image else None,
    }
    if len(variants) > 1:
        view["variants"] = [variant_view(v) for v in variants]
    elif variants:
        view["variant"] = variant_view(variants[0])
    else:
        logger.warning("Product %s has no live variants", product.id)
        view["variant"] = None
    return view


def product_row_view(product: Product) -> Dict[str, Any]:
    """Scalar columns of a product row, no graph."""
    return {
        "proid": id_str(product.id),
        "proname": product.name,
        "prodescription": product.description,
        "proconfig": product.config,
        "prouom": id_str(product.uom_id),
        "proisfa": product.is_fixed_asset,
        "hasvarient": product.has_multiple_variants,
        "organization_id": id_str(product.organization_id),
        "created_by": id_str(product.created_by),
        "created_at": product.created_at.isoformat() if product.created_at else None,
    }


def pagination(total: int, page: Optional[int], limit: Optional[int]) -> Dict[str, int]:
    if page is None or limit is None:
        # unpaged: one page holding everything
        return {"totalItems": total, "currentPage": 1, "totalPages": 1, "itemsPerPage": total}
    return {
        "totalItems": total,
        "currentPage": page,
        "totalPages": math.ceil(total / limit),
        "itemsPerPage": limit,
    }


# ============================================================================
# Reader
# ============================================================================

class ProductReader:
    """Read side of the product aggregate."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _scope(self, organization_id: int) -> list:
        return [
            Product.organization_id == organization_id,
            Product.is_deleted == False,
        ]

    async def load(
        self, product_id: int, organization_id: int, fixed_asset_only: bool = False
    ) -> Optional[Product]:
        """
        Load a live product of ``organization_id`` with its full graph.

        populate_existing refreshes rows already in the identity map, so a
        re-read after bulk statements in the same session sees current data.
        """
        conditions = self._scope(organization_id) + [Product.id == product_id]
        if fixed_asset_only:
            conditions.append(Product.is_fixed_asset == True)
        result = await self.db.execute(
            select(Product)
            .options(*aggregate_options())
            .where(*conditions)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def read(self, product_id: int, organization_id: int) -> Optional[Dict[str, Any]]:
        product = await self.load(product_id, organization_id)
        if product is None:
            return None
        return product_view(product)

    async def load_variant(
        self, product_id: int, variant_id: int, organization_id: int
    ) -> Optional[ProductVariant]:
        result = await self.db.execute(
            select(ProductVariant)
            .join(Product, Product.id == ProductVariant.product_id)
            .options(*variant_options())
            .where(
                *self._scope(organization_id),
                ProductVariant.id == variant_id,
                ProductVariant.product_id == product_id,
                ProductVariant.is_deleted == False,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def filter(self, criteria: ProductFilterIn, organization_id: int) -> Dict[str, Any]:
        """
        Filter products.

        Paged when both ``page`` and ``limit`` are given; otherwise every
        match is returned and pagination collapses to a single page.
        """
        conditions = self._scope(organization_id)
        name = (criteria.proname or "").strip()
        if name:
            conditions.append(Product.name.icontains(name, autoescape=True))
        if criteria.proconfig is not None:
            conditions.append(Product.config == criteria.proconfig)
        if criteria.catid is not None:
            conditions.append(Product.category_mappings.any(
                (ProductCategoryMapping.category_id == criteria.catid)
                & (ProductCategoryMapping.is_deleted == False)
            ))
        if criteria.isfa is not None:
            conditions.append(Product.is_fixed_asset == criteria.isfa)

        total = (await self.db.execute(
            select(func.count(Product.id)).where(*conditions)
        )).scalar_one()

        stmt = (
            select(Product)
            .options(*aggregate_options())
            .where(*conditions)
            .order_by(Product.id)
            .execution_options(populate_existing=True)
        )
        if criteria.is_paged:
            stmt = stmt.offset((criteria.page - 1) * criteria.limit).limit(criteria.limit)
        else:
            criteria = criteria.model_copy(update={"page": None, "limit": None})

        products = (await self.db.execute(stmt)).scalars().all()
        return {
            "success": True,
            "data": [product_view(p) for p in products],
            "pagination": pagination(total, criteria.page, criteria.limit),
        }

    async def list_products(
        self,
        organization_id: int,
        search: Optional[str] = None,
        category_id: Optional[int] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> Dict[str, Any]:
        """All live products, newest first, with optional search/category/limit."""
        conditions = self._scope(organization_id)
        search = (search or "").strip()
        if search:
            conditions.append(or_(
                Product.name.icontains(search, autoescape=True),
                Product.description.icontains(search, autoescape=True),
            ))
        if category_id is not None:
            conditions.append(Product.category_mappings.any(
                (ProductCategoryMapping.category_id == category_id)
                & (ProductCategoryMapping.is_deleted == False)
            ))

        total = (await self.db.execute(
            select(func.count(Product.id)).where(*conditions)
        )).scalar_one()

        stmt = (
            select(Product)
            .options(*aggregate_options())
            .where(*conditions)
            .order_by(Product.created_at.desc(), Product.id.desc())
            .execution_options(populate_existing=True)
        )
        if offset:
            stmt = stmt.offset(offset)
        if limit:
            stmt = stmt.limit(limit)
        products = (await self.db.execute(stmt)).scalars().all()

        return {
            "products": [product_view(p) for p in products],
            "total": total,
            "page": (offset or 0) // limit + 1 if limit else 1,
            "pageSize": limit or total,
        }
