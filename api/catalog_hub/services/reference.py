# catalog_hub/services/reference.py
"""
Reference data lookups.

Every id a payload points at (UOM, category, attribute, attribute value,
image, master value) is resolved here before a row referencing it is
written. A miss raises ReferenceNotFoundError, which aborts the enclosing
transaction.
"""
from __future__ import annotations
from typing import Dict, List, Optional, Tuple, Type

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_hub.db_models import (
    UnitOfMeasure, Category, Attribute, AttributeValue, MasterValue, UserImage,
    MasterGroup,
)
from catalog_hub.errors import ReferenceNotFoundError, ValidationError


class ReferenceData:
    """Resolves reference ids within one session; hits are cached per instance."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self._seen: Dict[Tuple[str, int], object] = {}

    # =========================================================================
    # Lookups
    # =========================================================================

    async def _require(self, model: Type, ref_id: int, entity: str):
        key = (entity, ref_id)
        if key in self._seen:
            return self._seen[key]
        row = await self.db.get(model, ref_id)
        if row is None or row.is_deleted:
            raise ReferenceNotFoundError(entity, ref_id)
        self._seen[key] = row
        return row

    async def require_uom(self, uom_id: int) -> UnitOfMeasure:
        return await self._require(UnitOfMeasure, uom_id, "uom")

    async def require_category(self, category_id: int) -> Category:
        return await self._require(Category, category_id, "category")

    async def require_attribute(self, attribute_id: int) -> Attribute:
        return await self._require(Attribute, attribute_id, "attribute")

    async def require_attribute_value(
        self, value_id: int, attribute_id: Optional[int] = None
    ) -> AttributeValue:
        """
        Resolve an attribute value, optionally checking it belongs to
        ``attribute_id``.
        """
        value = await self._require(AttributeValue, value_id, "attribute value")
        if attribute_id is not None and value.attribute_id != attribute_id:
            raise ValidationError(
                f"attribute value {value_id} does not belong to attribute {attribute_id}",
                code="ATTRIBUTE_MISMATCH",
            )
        return value

    async def require_image(self, image_id: int) -> UserImage:
        return await self._require(UserImage, image_id, "image")

    async def require_master_value(
        self, value_id: int, group: Optional[MasterGroup] = None
    ) -> MasterValue:
        value = await self._require(MasterValue, value_id, "master value")
        if group is not None and value.master_id != group.value:
            raise ReferenceNotFoundError(group.name.lower().replace("_", " "), value_id)
        return value

    # =========================================================================
    # Dropdowns
    # =========================================================================

    async def categories(self) -> List[Category]:
        result = await self.db.execute(
            select(Category)
            .where(Category.is_deleted == False)
            .order_by(Category.name, Category.id)
        )
        return list(result.scalars().all())

    async def master_values(self, group: MasterGroup) -> List[MasterValue]:
        result = await self.db.execute(
            select(MasterValue)
            .where(
                MasterValue.master_id == group.value,
                MasterValue.is_deleted == False,
            )
            .order_by(MasterValue.id)
        )
        return list(result.scalars().all())
