# catalog_hub/db_models_ext.py
"""
SQLAlchemy ORM Models for Catalog Hub - Part 2.

Wastage ledger. Wastage rows reference products/variants for display only;
they are not part of the product aggregate.
"""
from __future__ import annotations
from datetime import date
from decimal import Decimal
from typing import Optional, List

from sqlalchemy import (
    String, Integer, BigInteger, Boolean, Text, Date,
    Numeric, ForeignKey, Index
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from catalog_hub.database import Base, BigIntId
from catalog_hub.db_models import (
    AuditMixin, SoftDeleteMixin,
    Product, ProductVariant, UnitOfMeasure, MasterValue, UserImage,
)


# ============================================================================
# 1. WASTAGES
# ============================================================================

class Wastage(AuditMixin, SoftDeleteMixin, Base):
    __tablename__ = "wastages"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    wastage_no: Mapped[Optional[int]] = mapped_column(Integer)
    series_id: Mapped[Optional[int]] = mapped_column(BigInteger)
    product_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("products.id"), nullable=False)
    # product updates recreate variants; a wastage must not block that
    variant_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("product_variants.id", ondelete="SET NULL")
    )
    is_fixed_asset: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), default=Decimal("0"), nullable=False)
    value: Mapped[Decimal] = mapped_column(Numeric(12, 4), default=Decimal("0"), nullable=False)
    wastage_date: Mapped[date] = mapped_column(Date, nullable=False)
    manufactured_on: Mapped[Optional[date]] = mapped_column(Date)
    expires_on: Mapped[Optional[date]] = mapped_column(Date)
    batch_code: Mapped[Optional[str]] = mapped_column(String(100))
    factory_code: Mapped[Optional[str]] = mapped_column(String(100))
    remarks: Mapped[Optional[str]] = mapped_column(Text)
    uom_id: Mapped[Optional[int]] = mapped_column(BigInteger, ForeignKey("units_of_measure.id"))
    organization_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    address_id: Mapped[Optional[int]] = mapped_column(BigInteger)
    wastage_type_id: Mapped[Optional[int]] = mapped_column(BigInteger, ForeignKey("master_values.id"))

    # Relationships
    product: Mapped["Product"] = relationship()
    variant: Mapped[Optional["ProductVariant"]] = relationship()
    uom: Mapped[Optional["UnitOfMeasure"]] = relationship()
    wastage_type: Mapped[Optional["MasterValue"]] = relationship()
    attachments: Mapped[List["WastageAttachment"]] = relationship(
        back_populates="wastage", order_by="WastageAttachment.id"
    )

    __table_args__ = (
        Index("idx_wastages_org", "organization_id", "is_deleted"),
        Index("idx_wastages_product", "product_id"),
    )


class WastageAttachment(Base):
    __tablename__ = "wastage_attachments"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    wastage_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("wastages.id"), nullable=False)
    image_id: Mapped[Optional[int]] = mapped_column(BigInteger, ForeignKey("user_images.id"))

    wastage: Mapped["Wastage"] = relationship(back_populates="attachments")
    image: Mapped[Optional["UserImage"]] = relationship()
