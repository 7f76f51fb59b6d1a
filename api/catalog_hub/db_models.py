# catalog_hub/db_models.py
"""
SQLAlchemy ORM Models for Catalog Hub.

Reference data (units of measure, categories, attributes, master values,
images) and the product aggregate: product -> variants -> location / tax /
UOM mappings / attribute mappings -> attribute values.
"""
from __future__ import annotations
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, List
import enum

from sqlalchemy import (
    String, Integer, BigInteger, Boolean, Text, DateTime,
    Numeric, ForeignKey, Index, JSON
)
from sqlalchemy.orm import (
    Mapped, mapped_column, relationship
)

from catalog_hub.database import Base, BigIntId

# ============================================================================
# ENUMS
# ============================================================================

class ProductConfig(int, enum.Enum):
    FIXED_ASSET = 1
    RAW_MATERIAL = 12
    SEMI_FINISHED = 13
    FINISHED = 14


class UomMappingType(int, enum.Enum):
    PURCHASE = 21
    CONSUMPTION = 22


class MasterGroup(int, enum.Enum):
    PRODUCT_TYPE = 3
    CLOSING_STOCK = 6
    WASTAGE_TYPE = 12


# ============================================================================
# MIXINS
# ============================================================================

def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditMixin:
    """Mixin for created/modified stamps."""
    created_by: Mapped[Optional[int]] = mapped_column(BigInteger)
    # python-side default: the value is known after flush without a refetch
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False
    )
    modified_by: Mapped[Optional[int]] = mapped_column(BigInteger)
    modified_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


class SoftDeleteMixin:
    """Rows are flagged, not removed."""
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    deleted_by: Mapped[Optional[int]] = mapped_column(BigInteger)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


# ============================================================================
# 1. REFERENCE DATA (read-only for the catalog services)
# ============================================================================

class UnitOfMeasure(Base):
    __tablename__ = "units_of_measure"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class Attribute(Base):
    __tablename__ = "attributes"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    values: Mapped[List["AttributeValue"]] = relationship(back_populates="attribute")


class AttributeValue(Base):
    __tablename__ = "attribute_values"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    attribute_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("attributes.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    display_order: Mapped[Optional[int]] = mapped_column(Integer)
    color: Mapped[Optional[str]] = mapped_column(String(20))
    icon: Mapped[Optional[str]] = mapped_column(String(255))
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    attribute: Mapped["Attribute"] = relationship(back_populates="values")


class MasterValue(Base):
    __tablename__ = "master_values"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    master_id: Mapped[int] = mapped_column(Integer, nullable=False)
    value: Mapped[str] = mapped_column(String(255), nullable=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = (
        Index("idx_master_values_master", "master_id"),
    )


class UserImage(Base):
    __tablename__ = "user_images"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


# ============================================================================
# 2. PRODUCTS
# ============================================================================

class Product(AuditMixin, SoftDeleteMixin, Base):
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    config: Mapped[Optional[int]] = mapped_column(Integer)
    uom_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("units_of_measure.id"), nullable=False)
    organization_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    is_fixed_asset: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    has_multiple_variants: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Relationships
    uom: Mapped["UnitOfMeasure"] = relationship()
    variants: Mapped[List["ProductVariant"]] = relationship(
        back_populates="product", order_by="ProductVariant.id"
    )
    category_mappings: Mapped[List["ProductCategoryMapping"]] = relationship(
        back_populates="product", order_by="ProductCategoryMapping.id"
    )
    image_mappings: Mapped[List["ProductImageMapping"]] = relationship(
        back_populates="product", order_by="ProductImageMapping.id"
    )

    __table_args__ = (
        Index("idx_products_org", "organization_id", "is_deleted"),
        Index("idx_products_config", "config"),
    )


class ProductCategoryMapping(AuditMixin, SoftDeleteMixin, Base):
    __tablename__ = "product_category_mappings"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    product_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("products.id"), nullable=False)
    category_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("categories.id"), nullable=False)

    product: Mapped["Product"] = relationship(back_populates="category_mappings")
    category: Mapped["Category"] = relationship()

    __table_args__ = (
        Index("idx_category_mappings_product", "product_id"),
        Index("idx_category_mappings_category", "category_id"),
    )


class ProductImageMapping(AuditMixin, SoftDeleteMixin, Base):
    __tablename__ = "product_image_mappings"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    product_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("products.id"), nullable=False)
    image_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("user_images.id"), nullable=False)

    product: Mapped["Product"] = relationship(back_populates="image_mappings")
    image: Mapped["UserImage"] = relationship()


# ============================================================================
# 3. PRODUCT VARIANTS (SKUs)
# ============================================================================

class ProductVariant(AuditMixin, SoftDeleteMixin, Base):
    __tablename__ = "product_variants"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    product_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("products.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(500), default="", nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    barcode: Mapped[Optional[str]] = mapped_column(String(100))
    purchase_price: Mapped[Decimal] = mapped_column(Numeric(12, 4), default=Decimal("0"), nullable=False)
    sales_price: Mapped[Decimal] = mapped_column(Numeric(12, 4), default=Decimal("0"), nullable=False)
    reconciliation_price: Mapped[Decimal] = mapped_column(Numeric(12, 4), default=Decimal("0"), nullable=False)
    normal_loss: Mapped[Decimal] = mapped_column(Numeric(7, 4), default=Decimal("0"), nullable=False)
    organization_id: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # Relationships
    product: Mapped["Product"] = relationship(back_populates="variants")
    locations: Mapped[List["VariantLocation"]] = relationship(
        back_populates="variant", order_by="VariantLocation.id"
    )
    taxes: Mapped[List["VariantTax"]] = relationship(
        back_populates="variant", order_by="VariantTax.id"
    )
    uom_mappings: Mapped[List["UomMapping"]] = relationship(
        back_populates="variant", order_by="UomMapping.id"
    )
    attribute_mappings: Mapped[List["AttributeMapping"]] = relationship(
        back_populates="variant", order_by="AttributeMapping.id"
    )

    __table_args__ = (
        Index("idx_variants_product", "product_id", "is_deleted"),
        Index("idx_variants_barcode", "barcode"),
    )


class VariantLocation(AuditMixin, SoftDeleteMixin, Base):
    __tablename__ = "variant_locations"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    product_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("products.id"), nullable=False)
    variant_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("product_variants.id"), nullable=False)
    organization_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    safety_level: Mapped[Decimal] = mapped_column(Numeric(12, 3), default=Decimal("0"), nullable=False)
    reorder_level: Mapped[Decimal] = mapped_column(Numeric(12, 3), default=Decimal("0"), nullable=False)
    min_stock_uom_id: Mapped[Optional[int]] = mapped_column(BigInteger, ForeignKey("units_of_measure.id"))
    par_stock_uom_id: Mapped[Optional[int]] = mapped_column(BigInteger, ForeignKey("units_of_measure.id"))
    opening_stock: Mapped[Decimal] = mapped_column(Numeric(12, 3), default=Decimal("0"), nullable=False)
    closing_stock: Mapped[Decimal] = mapped_column(Numeric(12, 3), default=Decimal("0"), nullable=False)
    # days of month (1-31) on which closing stock is recomputed
    closing_stock_on: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    auto_renew: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Relationships
    variant: Mapped["ProductVariant"] = relationship(back_populates="locations")
    min_stock_uom: Mapped[Optional["UnitOfMeasure"]] = relationship(foreign_keys=[min_stock_uom_id])
    par_stock_uom: Mapped[Optional["UnitOfMeasure"]] = relationship(foreign_keys=[par_stock_uom_id])

    __table_args__ = (
        Index("idx_variant_locations_product", "product_id"),
        Index("idx_variant_locations_variant", "variant_id"),
    )


class VariantTax(AuditMixin, SoftDeleteMixin, Base):
    __tablename__ = "variant_taxes"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    product_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("products.id"), nullable=False)
    variant_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("product_variants.id"), nullable=False)
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=Decimal("0"), nullable=False)
    hsn_code: Mapped[Optional[str]] = mapped_column(String(50))

    variant: Mapped["ProductVariant"] = relationship(back_populates="taxes")

    __table_args__ = (
        Index("idx_variant_taxes_product", "product_id"),
        Index("idx_variant_taxes_variant", "variant_id"),
    )


class UomMapping(AuditMixin, SoftDeleteMixin, Base):
    __tablename__ = "uom_mappings"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    product_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("products.id"), nullable=False)
    variant_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("product_variants.id"), nullable=False)
    uom_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("units_of_measure.id"), nullable=False)
    uom_type: Mapped[int] = mapped_column(Integer, nullable=False)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    variant: Mapped["ProductVariant"] = relationship(back_populates="uom_mappings")
    uom: Mapped["UnitOfMeasure"] = relationship()

    __table_args__ = (
        Index("idx_uom_mappings_product", "product_id"),
        Index("idx_uom_mappings_variant_type", "variant_id", "uom_type"),
    )


class AttributeMapping(AuditMixin, SoftDeleteMixin, Base):
    __tablename__ = "attribute_mappings"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    product_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("products.id"), nullable=False)
    variant_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("product_variants.id"), nullable=False)
    attribute_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("attributes.id"), nullable=False)
    text_prompt: Mapped[Optional[str]] = mapped_column(String(500))
    is_required: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    control_type: Mapped[Optional[int]] = mapped_column(Integer)
    display_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Relationships
    variant: Mapped["ProductVariant"] = relationship(back_populates="attribute_mappings")
    attribute: Mapped["Attribute"] = relationship()
    values: Mapped[List["AttributeMappingValue"]] = relationship(
        back_populates="mapping", order_by="AttributeMappingValue.id"
    )

    __table_args__ = (
        Index("idx_attribute_mappings_product", "product_id"),
        Index("idx_attribute_mappings_variant", "variant_id"),
    )


class AttributeMappingValue(AuditMixin, SoftDeleteMixin, Base):
    __tablename__ = "attribute_mapping_values"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    mapping_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("attribute_mappings.id"), nullable=False)
    attribute_value_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("attribute_values.id"), nullable=False)
    color_override: Mapped[Optional[str]] = mapped_column(String(20))
    image_id: Mapped[Optional[int]] = mapped_column(BigInteger, ForeignKey("user_images.id"))
    display_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    mapping: Mapped["AttributeMapping"] = relationship(back_populates="values")
    attribute_value: Mapped["AttributeValue"] = relationship()
    image: Mapped[Optional["UserImage"]] = relationship()

    __table_args__ = (
        Index("idx_attribute_mapping_values_mapping", "mapping_id"),
    )
